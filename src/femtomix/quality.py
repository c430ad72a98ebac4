"""Track-quality and collision-level selection predicates."""

from __future__ import annotations

from .models import Collision, EventSelection, Track, TrackQualityCuts


def passes_track_quality(track: Track, cuts: TrackQualityCuts) -> bool:
    """Apply kinematic and detector-quality cuts; the first failing check rejects."""
    p = track.p
    if p <= cuts.p_min or p >= cuts.p_max:
        return False
    if abs(track.eta) >= cuts.eta_max:
        return False
    if track.tpc_n_cls_found < cuts.min_tpc_n_cls_found:
        return False
    if track.tpc_n_cls_shared > cuts.max_tpc_n_cls_shared:
        return False
    if track.its_n_cls < cuts.min_its_n_cls:
        return False
    if track.its_chi2_ncl > cuts.max_its_chi2_ncl:
        return False
    if track.tpc_chi2_ncl > cuts.max_tpc_chi2_ncl:
        return False
    if track.tpc_crossed_rows_over_findable < cuts.min_tpc_crossed_rows_over_findable:
        return False
    if not cuts.dca_xy.accepts(track.dca_xy):
        return False
    return cuts.dca_z.accepts(track.dca_z)


def passes_event_selection(collision: Collision, selection: EventSelection) -> bool:
    """Collision acceptance on vertex z and centrality percentile."""
    if abs(collision.pos_z) >= selection.vertex_z_max:
        return False
    return selection.mult_percentile_min < collision.mult_percentile < selection.mult_percentile_max
