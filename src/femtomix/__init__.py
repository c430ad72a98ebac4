"""Public package exports for the event-mixing framework."""

from .binning import EventBinner, mixing_bin_key
from .engine import BatchSummary, EngineState, MixingEngine
from .errors import ConfigurationError, StateConsistencyError
from .models import (
    Collision,
    DcaWindow,
    EventSelection,
    LorentzVector,
    MixingBinKey,
    MixingBinning,
    MixingConfig,
    PairCuts,
    PairResult,
    RejectionSelection,
    Role,
    Scope,
    SpeciesSelection,
    Track,
    TrackQualityCuts,
    TrackRecord,
)
from .pid import Species, species_from_pdg
from .recording import PairSink, TableRecorder

__all__ = [
    "MixingEngine",
    "EngineState",
    "BatchSummary",
    "EventBinner",
    "mixing_bin_key",
    "ConfigurationError",
    "StateConsistencyError",
    "Track",
    "Collision",
    "LorentzVector",
    "MixingBinKey",
    "Scope",
    "Role",
    "DcaWindow",
    "TrackQualityCuts",
    "EventSelection",
    "SpeciesSelection",
    "RejectionSelection",
    "PairCuts",
    "MixingBinning",
    "MixingConfig",
    "PairResult",
    "TrackRecord",
    "Species",
    "species_from_pdg",
    "PairSink",
    "TableRecorder",
]
