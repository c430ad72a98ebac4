"""Grouping of collisions into mixing bins of similar vertex and multiplicity."""

from __future__ import annotations

import math
from typing import Iterable, Mapping, Sequence

from .models import Collision, MixingBinKey, MixingBinning


def _round_half_away(value: float) -> int:
    """Round to nearest integer, halves away from zero."""
    return int(math.copysign(math.floor(abs(value) + 0.5), value))


def mixing_bin_key(collision: Collision, binning: MixingBinning) -> MixingBinKey:
    """Derive the mixing bin of a collision."""
    return MixingBinKey(
        vertex_bin=_round_half_away(collision.pos_z / binning.vertex_bin_width),
        mult_bin=math.floor(collision.mult / binning.mult_bin_width),
    )


class EventBinner:
    """Working set of collision ids per mixing bin for the current batch."""

    def __init__(self, binning: MixingBinning) -> None:
        self.binning = binning
        self.mixing_bins: dict[MixingBinKey, list[int]] = {}

    def __len__(self) -> int:
        return len(self.mixing_bins)

    def build(
        self,
        collisions: Iterable[Collision],
        selected_first: Mapping[int, Sequence[object]],
        selected_second: Mapping[int, Sequence[object]] | None,
    ) -> dict[MixingBinKey, list[int]]:
        """Fill bins with every collision holding at least one selected track.

        `selected_second` is `None` in identical mode, where only the first role
        counts. Collisions keep their ingestion order within a bin.
        """
        for collision in collisions:
            cid = collision.collision_id
            if not selected_first.get(cid):
                if selected_second is None or not selected_second.get(cid):
                    continue
            key = mixing_bin_key(collision, self.binning)
            self.mixing_bins.setdefault(key, []).append(cid)
        return self.mixing_bins

    def iter_bins(self) -> Iterable[tuple[MixingBinKey, list[int]]]:
        """Iterate bins in key order."""
        for key in sorted(self.mixing_bins):
            yield key, self.mixing_bins[key]

    def clear(self) -> None:
        for members in self.mixing_bins.values():
            members.clear()
        self.mixing_bins.clear()
