"""Particle-species definitions and PID decisions for pair roles.

The supported species form a closed set; each member knows its PDG code, its
mass and which TPC/TOF n-sigma column of a `Track` belongs to it.
"""

from __future__ import annotations

from enum import Enum

from .errors import ConfigurationError
from .models import RejectionSelection, SpeciesSelection, Track


class Species(Enum):
    """Charged species the engine can identify."""

    PION = (211, 0.13957039, "pi", "pi")
    KAON = (321, 0.493677, "K", "ka")
    PROTON = (2212, 0.93827208816, "p", "pr")
    DEUTERON = (1000010020, 1.87561294257, "d", "de")

    def __init__(self, pdg: int, mass: float, symbol: str, column: str) -> None:
        self.pdg = pdg
        self.mass = mass
        self.symbol = symbol
        self._column = column

    def tpc_nsigma(self, track: Track) -> float:
        """TPC n-sigma of the track under this species hypothesis."""
        return getattr(track, f"tpc_nsigma_{self._column}")

    def tof_nsigma(self, track: Track) -> float:
        """TOF n-sigma of the track under this species hypothesis."""
        return getattr(track, f"tof_nsigma_{self._column}")


_PDG_TO_SPECIES: dict[int, Species] = {s.pdg: s for s in Species}


def species_from_pdg(pdg: int) -> Species:
    """Resolve a PDG code (sign ignored) into a supported `Species`."""
    try:
        return _PDG_TO_SPECIES[abs(int(pdg))]
    except KeyError as exc:
        supported = ", ".join(str(code) for code in sorted(_PDG_TO_SPECIES))
        raise ConfigurationError(
            f"PDG code {pdg} is not supported. Supported codes: {supported}"
        ) from exc


def _within(value: float, window: tuple[float, float]) -> bool:
    return window[0] <= value <= window[1]


def identify(track: Track, selection: SpeciesSelection, species: Species) -> bool:
    """Return True when the track's charge and PID response match `selection`.

    Tracks below the PID momentum threshold are judged on TPC alone; at or
    above the threshold the TOF window is used.
    """
    if track.charge != selection.sign:
        return False
    if track.p < selection.pid_threshold:
        return _within(species.tpc_nsigma(track), selection.tpc_nsigma)
    return _within(species.tof_nsigma(track), selection.tof_nsigma)


def is_rejected(track: Track, rejection: RejectionSelection, species: Species | None) -> bool:
    """Return True when the track falls in the TOF window of the vetoed species."""
    if species is None or not rejection.enabled:
        return False
    return _within(species.tof_nsigma(track), rejection.tof_nsigma)


def accepts_rapidity(track: Track, species: Species, max_rapidity: float) -> bool:
    """Track rapidity acceptance under the species mass hypothesis."""
    return abs(track.rapidity(species.mass)) <= max_rapidity
