"""Same-event / mixed-event pairing engine for one stream of collision batches."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from itertools import combinations, product
from typing import Iterable, Sequence

from .binning import EventBinner
from .errors import ConfigurationError, StateConsistencyError
from .models import (
    Collision,
    MixingConfig,
    PairResult,
    Role,
    Scope,
    SpeciesSelection,
    Track,
    TrackRecord,
)
from .physics import is_close_pair, pair_observables
from .pid import Species, accepts_rapidity, identify, is_rejected, species_from_pdg
from .quality import passes_event_selection, passes_track_quality
from .recording import PairSink, TableRecorder

LOGGER = logging.getLogger("femtomix.engine")


class EngineState(Enum):
    """Lifecycle phase of the engine within one batch."""

    IDLE = "idle"
    SELECTING = "selecting"
    BINNING = "binning"
    MIXING = "mixing"


@dataclass(frozen=True)
class BatchSummary:
    """Bookkeeping of one processed batch."""

    n_collisions: int
    n_tracks: int
    n_selected_first: int
    n_selected_second: int
    n_bins: int
    n_se_pairs: int
    n_me_pairs: int


class MixingEngine:
    """Select tracks, group collisions into mixing bins and pair their tracks.

    The engine handles one batch at a time. Everything it learns about a batch
    (the collision arena, per-role selected tracks and the mixing bins) is
    dropped by `reset()` before `process_batch` returns or raises, so no pair
    can ever reference a collision of an earlier batch.
    """

    def __init__(self, config: MixingConfig, sink: PairSink | None = None) -> None:
        self.config = config
        self.sink = sink if sink is not None else TableRecorder()
        self.is_identical = config.is_identical
        self.first_species = self._resolve_species(config.first, Role.FIRST)
        self.second_species = self._resolve_species(config.second, Role.SECOND)
        self.rejection_species: Species | None = None
        if config.rejection.enabled and not self.is_identical:
            self.rejection_species = species_from_pdg(config.rejection.pdg)
        if config.binning.vertex_bin_width <= 0.0 or config.binning.mult_bin_width <= 0.0:
            raise ConfigurationError("Mixing bin widths must be positive.")

        self.state = EngineState.IDLE
        self.collisions: dict[int, Collision] = {}
        self.selected_tracks_1: dict[int, list[Track]] = {}
        self.selected_tracks_2: dict[int, list[Track]] = {}
        self.binner = EventBinner(config.binning)
        LOGGER.info(
            "IsIdentical=%s; first=%s (sign %+d); second=%s (sign %+d); mixed events %s",
            self.is_identical,
            self.first_species.name,
            config.first.sign,
            self.second_species.name,
            config.second.sign,
            "on" if config.do_mixed_event else "off",
        )

    @staticmethod
    def _resolve_species(selection: SpeciesSelection, role: Role) -> Species:
        try:
            return species_from_pdg(selection.pdg)
        except ConfigurationError as exc:
            raise ConfigurationError(f"Role {role.value}: {exc}") from exc

    def process_batch(
        self,
        collisions: Iterable[Collision],
        tracks: Iterable[Track],
    ) -> BatchSummary:
        """Run selection, binning and mixing over one batch.

        Accepted pairs and selected tracks go to the sink. Per-batch state is
        cleared on every exit path.
        """
        if self.state is not EngineState.IDLE:
            raise StateConsistencyError(f"Batch started while engine is {self.state.value}.")
        try:
            n_tracks = self._select(collisions, tracks)
            self._bin()
            n_se, n_me = self._mix()
            return BatchSummary(
                n_collisions=len(self.collisions),
                n_tracks=n_tracks,
                n_selected_first=sum(len(v) for v in self.selected_tracks_1.values()),
                n_selected_second=sum(len(v) for v in self.selected_tracks_2.values()),
                n_bins=len(self.binner),
                n_se_pairs=n_se,
                n_me_pairs=n_me,
            )
        finally:
            self.reset()

    def process_batches(
        self, batches: Iterable[tuple[Sequence[Collision], Sequence[Track]]]
    ) -> list[BatchSummary]:
        """Process `(collisions, tracks)` batches one after the other."""
        return [self.process_batch(collisions, tracks) for collisions, tracks in batches]

    def reset(self) -> None:
        """Drop all per-batch state and return to `IDLE`."""
        for selected in (self.selected_tracks_1, self.selected_tracks_2):
            for tracks in selected.values():
                tracks.clear()
            selected.clear()
        self.binner.clear()
        self.collisions.clear()
        self.state = EngineState.IDLE

    def has_batch_state(self) -> bool:
        return bool(self.collisions or self.selected_tracks_1 or self.selected_tracks_2 or len(self.binner))

    # ------------------------------------------------------------------ #
    # Selection
    # ------------------------------------------------------------------ #

    def _select(self, collisions: Iterable[Collision], tracks: Iterable[Track]) -> int:
        if self.has_batch_state():
            raise StateConsistencyError("Stale per-batch state found at selection start.")
        self.state = EngineState.SELECTING

        accepted_collisions: set[int] = set()
        for collision in collisions:
            if collision.collision_id in self.collisions:
                raise StateConsistencyError(
                    f"Collision id {collision.collision_id} appears twice in one batch."
                )
            self.collisions[collision.collision_id] = collision
            if passes_event_selection(collision, self.config.events):
                accepted_collisions.add(collision.collision_id)
        self.sink.count("collisions_total", len(self.collisions))
        self.sink.count("collisions_accepted", len(accepted_collisions))

        n_tracks = 0
        for track in tracks:
            n_tracks += 1
            if track.collision_id not in self.collisions:
                raise StateConsistencyError(
                    f"Track {track.track_id} refers to unknown collision {track.collision_id}."
                )
            if not passes_track_quality(track, self.config.quality):
                continue
            self.sink.count("tracks_quality")
            if track.collision_id not in accepted_collisions:
                continue
            if self._select_role(track, Role.FIRST):
                self.selected_tracks_1.setdefault(track.collision_id, []).append(track)
            if not self.is_identical and self._select_role(track, Role.SECOND):
                self.selected_tracks_2.setdefault(track.collision_id, []).append(track)
        self.sink.count("tracks_total", n_tracks)
        LOGGER.debug(
            "Processing %d collisions and %d tracks", len(self.collisions), n_tracks
        )
        return n_tracks

    def _select_role(self, track: Track, role: Role) -> bool:
        if role is Role.FIRST:
            selection, species = self.config.first, self.first_species
        else:
            selection, species = self.config.second, self.second_species
        if not identify(track, selection, species):
            return False
        if not accepts_rapidity(track, species, self.config.pairs.max_track_rapidity):
            return False
        if role is Role.SECOND and is_rejected(track, self.config.rejection, self.rejection_species):
            return False
        self.sink.record_track(
            TrackRecord(
                role=role,
                track_id=track.track_id,
                collision_id=track.collision_id,
                p=track.p,
                pt=track.pt,
                eta=track.eta,
                dca_xy=track.dca_xy,
                tpc_nsigma=species.tpc_nsigma(track),
                tof_nsigma=species.tof_nsigma(track),
                rapidity=track.rapidity(species.mass),
            )
        )
        return True

    # ------------------------------------------------------------------ #
    # Binning and mixing
    # ------------------------------------------------------------------ #

    def _bin(self) -> None:
        if len(self.binner):
            raise StateConsistencyError("Mixing bins are not empty at binning start.")
        self.state = EngineState.BINNING
        self.binner.build(
            self.collisions.values(),
            self.selected_tracks_1,
            None if self.is_identical else self.selected_tracks_2,
        )
        LOGGER.debug("Built %d mixing bins", len(self.binner))

    def _mix(self) -> tuple[int, int]:
        self.state = EngineState.MIXING
        n_se = 0
        n_me = 0
        for key, members in self.binner.iter_bins():
            LOGGER.debug("Mixing bin %s with %d collisions", tuple(key), len(members))
            for idx, first_id in enumerate(members):
                if self.is_identical:
                    n_se += self.pair_within_event(first_id)
                else:
                    n_se += self.pair_across_events(first_id, first_id)
                if not self.config.do_mixed_event:
                    continue
                for second_id in members[idx + 1:]:
                    n_me += self.pair_across_events(first_id, second_id)
        return n_se, n_me

    def pair_within_event(self, collision_id: int) -> int:
        """Pair every unordered couple of first-role tracks of one collision.

        Returns the number of accepted pairs.
        """
        collision = self._collision(collision_id)
        tracks = self.selected_tracks_1.get(collision_id, ())
        accepted = 0
        for first, second in combinations(tracks, 2):
            if self._evaluate_pair(first, collision, second, collision, Scope.SE):
                accepted += 1
        return accepted

    def pair_across_events(self, first_id: int, second_id: int) -> int:
        """Pair first-role tracks of `first_id` with second-role tracks of `second_id`.

        In identical mode both sides come from the first-role selection and
        the two collisions must differ. The scope is SE when both ids are the
        same collision and ME otherwise. Returns the number of accepted pairs.
        """
        if first_id == second_id and self.is_identical:
            raise ValueError("Identical-species pairs within one collision use pair_within_event.")
        scope = Scope.SE if first_id == second_id else Scope.ME
        first_collision = self._collision(first_id)
        second_collision = self._collision(second_id)
        second_pool = self.selected_tracks_1 if self.is_identical else self.selected_tracks_2
        accepted = 0
        for first, second in product(
            self.selected_tracks_1.get(first_id, ()), second_pool.get(second_id, ())
        ):
            if self._evaluate_pair(first, first_collision, second, second_collision, scope):
                accepted += 1
        return accepted

    def _collision(self, collision_id: int) -> Collision:
        try:
            return self.collisions[collision_id]
        except KeyError as exc:
            raise StateConsistencyError(
                f"Collision {collision_id} is not part of the current batch."
            ) from exc

    def _evaluate_pair(
        self,
        first: Track,
        first_collision: Collision,
        second: Track,
        second_collision: Collision,
        scope: Scope,
    ) -> bool:
        tag = scope.value.lower()
        self.sink.count(f"{tag}_candidates")
        cuts = self.config.pairs
        if is_close_pair(first, first_collision.mag_field, second, second_collision.mag_field, cuts):
            return False
        observables = pair_observables(
            first,
            self.first_species.mass,
            second,
            self.second_species.mass,
            cuts.max_pair_rapidity,
        )
        if observables is None:
            return False
        mass, pt, rapidity = observables
        self.sink.record_pair(
            PairResult(
                scope=scope,
                track_ids=(first.track_id, second.track_id),
                collision_ids=(first_collision.collision_id, second_collision.collision_id),
                mass=mass,
                pt=pt,
                rapidity=rapidity,
            )
        )
        self.sink.count(f"{tag}_accepted")
        return True
