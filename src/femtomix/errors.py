"""Exception types raised by the mixing engine."""

from __future__ import annotations


class ConfigurationError(ValueError):
    """Engine configuration that cannot be processed (e.g. unsupported species)."""


class StateConsistencyError(AssertionError):
    """Per-batch state observed in a state it can never legally reach."""
