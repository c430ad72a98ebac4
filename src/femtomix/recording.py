"""Write-only sinks receiving accepted pairs, selected tracks and counters."""

from __future__ import annotations

from collections import Counter
from typing import Protocol

from .io import pairs_to_frame, tracks_to_frame
from .models import PairResult, Scope, TrackRecord


class PairSink(Protocol):
    """Destination of everything the engine emits."""

    def record_pair(self, pair: PairResult) -> None: ...

    def record_track(self, record: TrackRecord) -> None: ...

    def count(self, name: str, value: int = 1) -> None: ...


class TableRecorder:
    """Keep emissions in memory and expose them as pandas tables."""

    def __init__(self) -> None:
        self.pairs: list[PairResult] = []
        self.tracks: list[TrackRecord] = []
        self.counters: Counter[str] = Counter()

    def record_pair(self, pair: PairResult) -> None:
        self.pairs.append(pair)

    def record_track(self, record: TrackRecord) -> None:
        self.tracks.append(record)

    def count(self, name: str, value: int = 1) -> None:
        self.counters[name] += value

    def pairs_in(self, scope: Scope) -> list[PairResult]:
        """Accepted pairs of one scope, in emission order."""
        return [p for p in self.pairs if p.scope is scope]

    def pairs_frame(self):
        """Accepted pairs as a `pandas.DataFrame`."""
        return pairs_to_frame(self.pairs)

    def tracks_frame(self):
        """Selected-track monitoring records as a `pandas.DataFrame`."""
        return tracks_to_frame(self.tracks)
