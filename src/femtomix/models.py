"""Core data models used by the event-mixing framework.

This module defines:
- immutable detector objects (`Track`, `Collision`, `LorentzVector`)
- scope/role tags for pair and track emissions (`Scope`, `Role`)
- configurable selection controls (`TrackQualityCuts`, `DcaWindow`,
  `EventSelection`, `SpeciesSelection`, `RejectionSelection`, `PairCuts`,
  `MixingBinning`, `MixingConfig`)
- mixing outputs (`PairResult`, `TrackRecord`).
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import NamedTuple


class Scope(str, Enum):
    """Origin of a track pair: same event (SE) or mixed events (ME)."""

    SE = "SE"
    ME = "ME"


class Role(int, Enum):
    """Position of a track in the pair (first or second particle)."""

    FIRST = 1
    SECOND = 2


@dataclass(frozen=True)
class Track:
    """Single reconstructed track with kinematics, PID and quality observables.

    Kinematics are stored as `(pt, eta, phi)`; Cartesian components and the
    total momentum are derived. `collision_id` is a plain integer reference to
    the owning `Collision` of the same batch.
    """

    track_id: int
    collision_id: int
    pt: float
    eta: float
    phi: float
    charge: int
    tpc_nsigma_pi: float = 0.0
    tpc_nsigma_ka: float = 0.0
    tpc_nsigma_pr: float = 0.0
    tpc_nsigma_de: float = 0.0
    tof_nsigma_pi: float = 0.0
    tof_nsigma_ka: float = 0.0
    tof_nsigma_pr: float = 0.0
    tof_nsigma_de: float = 0.0
    tpc_n_cls_found: int = 0
    tpc_n_cls_shared: int = 0
    tpc_chi2_ncl: float = 0.0
    tpc_crossed_rows_over_findable: float = 1.0
    its_n_cls: int = 0
    its_chi2_ncl: float = 0.0
    dca_xy: float = 0.0
    dca_z: float = 0.0

    @property
    def p(self) -> float:
        """Total momentum magnitude."""
        return self.pt * math.cosh(self.eta)

    @property
    def px(self) -> float:
        return self.pt * math.cos(self.phi)

    @property
    def py(self) -> float:
        return self.pt * math.sin(self.phi)

    @property
    def pz(self) -> float:
        return self.pt * math.sinh(self.eta)

    def rapidity(self, mass: float) -> float:
        """Rapidity of the track under a given mass hypothesis."""
        mt = math.hypot(self.pt, mass)
        if mt == 0.0:
            return math.copysign(1e9, self.pz)
        return math.asinh(self.pz / mt)


@dataclass(frozen=True)
class Collision:
    """One collision (event) with the global conditions used for mixing."""

    collision_id: int
    pos_z: float
    mult: float
    mult_percentile: float = 0.0
    mag_field: float = 5.0  # signed, kG


@dataclass(frozen=True)
class LorentzVector:
    """Simple 4-vector with convenience properties and addition."""

    px: float
    py: float
    pz: float
    e: float

    def __add__(self, other: "LorentzVector") -> "LorentzVector":
        """Component-wise 4-vector addition."""
        return LorentzVector(
            self.px + other.px,
            self.py + other.py,
            self.pz + other.pz,
            self.e + other.e,
        )

    @property
    def p2(self) -> float:
        """Squared 3-momentum magnitude."""
        return self.px * self.px + self.py * self.py + self.pz * self.pz

    @property
    def pt(self) -> float:
        return math.sqrt(self.px * self.px + self.py * self.py)

    @property
    def mass2(self) -> float:
        """Invariant mass squared."""
        return self.e * self.e - self.p2

    @property
    def mass(self) -> float:
        """Invariant mass with signed handling for small negative mass2 values."""
        m2 = self.mass2
        return m2**0.5 if m2 >= 0.0 else -((-m2) ** 0.5)

    @property
    def rapidity(self) -> float:
        """Longitudinal rapidity `0.5 * ln((E + pz) / (E - pz))`."""
        if self.e <= abs(self.pz):
            return math.copysign(1e9, self.pz)
        return 0.5 * math.log((self.e + self.pz) / (self.e - self.pz))


class MixingBinKey(NamedTuple):
    """Vertex-position bin and multiplicity bin of one collision."""

    vertex_bin: int
    mult_bin: int


@dataclass(frozen=True)
class DcaWindow:
    """Inclusion range plus exclusion window applied to `|dca|`.

    A track passes when `include_min <= |dca| <= include_max` and `|dca|` is
    not strictly inside `(exclude_min, exclude_max)`.
    """

    include_min: float = 0.0
    include_max: float = math.inf
    exclude_min: float = 0.0
    exclude_max: float = 0.0

    def accepts(self, dca: float) -> bool:
        value = abs(dca)
        if value < self.include_min or value > self.include_max:
            return False
        return not (self.exclude_min < value < self.exclude_max)


@dataclass(frozen=True)
class TrackQualityCuts:
    """Per-track quality thresholds applied before particle identification."""

    p_min: float = 0.0
    p_max: float = 100.0
    eta_max: float = 100.0
    min_tpc_n_cls_found: int = 0
    max_tpc_n_cls_shared: int = 100
    min_its_n_cls: int = 0
    max_its_chi2_ncl: float = 100.0
    max_tpc_chi2_ncl: float = 100.0
    min_tpc_crossed_rows_over_findable: float = 0.0
    dca_xy: DcaWindow = field(default_factory=DcaWindow)
    dca_z: DcaWindow = field(default_factory=DcaWindow)


@dataclass(frozen=True)
class EventSelection:
    """Collision-level acceptance: vertex position and centrality range."""

    vertex_z_max: float = 10.0
    mult_percentile_min: float = -100.0
    mult_percentile_max: float = 1000.0


@dataclass(frozen=True)
class SpeciesSelection:
    """PID configuration for one role of the pair.

    Below `pid_threshold` the TPC window decides, from the threshold upwards
    the TOF window decides.
    """

    pdg: int
    sign: int = 1
    pid_threshold: float = 10.0
    tpc_nsigma: tuple[float, float] = (-3.0, 3.0)
    tof_nsigma: tuple[float, float] = (-3.0, 3.0)

    @property
    def signed_pdg(self) -> int:
        return self.sign * self.pdg


@dataclass(frozen=True)
class RejectionSelection:
    """Companion species vetoed from the second role by its TOF response."""

    pdg: int = 0
    tof_nsigma: tuple[float, float] = (0.0, 0.0)

    @property
    def enabled(self) -> bool:
        return self.pdg != 0


@dataclass(frozen=True)
class PairCuts:
    """Pair-level acceptance: close-pair geometry and pair rapidity."""

    deta_min: float = 0.01
    dphi_star_min: float = 0.01
    radius: float = 1.2  # m
    max_track_rapidity: float = 100.0
    max_pair_rapidity: float = 0.5


@dataclass(frozen=True)
class MixingBinning:
    """Bin widths used to group compatible collisions."""

    vertex_bin_width: float = 2.0
    mult_bin_width: float = 50.0


@dataclass(frozen=True)
class MixingConfig:
    """Complete engine configuration, fixed for the engine lifetime."""

    first: SpeciesSelection
    second: SpeciesSelection
    rejection: RejectionSelection = field(default_factory=RejectionSelection)
    quality: TrackQualityCuts = field(default_factory=TrackQualityCuts)
    events: EventSelection = field(default_factory=EventSelection)
    pairs: PairCuts = field(default_factory=PairCuts)
    binning: MixingBinning = field(default_factory=MixingBinning)
    do_mixed_event: bool = False

    @property
    def is_identical(self) -> bool:
        """Identical mode when both roles ask for the same signed species."""
        return self.first.signed_pdg == self.second.signed_pdg


@dataclass(frozen=True)
class PairResult:
    """One accepted track pair with its combined observables."""

    scope: Scope
    track_ids: tuple[int, int]
    collision_ids: tuple[int, int]
    mass: float
    pt: float
    rapidity: float


@dataclass(frozen=True)
class TrackRecord:
    """Monitoring record for one track selected into a pair role."""

    role: Role
    track_id: int
    collision_id: int
    p: float
    pt: float
    eta: float
    dca_xy: float
    tpc_nsigma: float
    tof_nsigma: float
    rapidity: float
