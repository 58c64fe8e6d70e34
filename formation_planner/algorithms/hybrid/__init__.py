from .base import (
    SYNC_PROFILES,
    Candidate,
    CandidatePhase,
    HybridConfig,
    HybridVariant,
    SyncMode,
    SyncProfile,
    passing_lanes,
)
from .choreography import ChoreographyConfig, ChoreographyPlanner, plan_choreography
from .planner import HybridPlanner, plan_hybrid
from .presets import build_phases

__all__ = [
    "SYNC_PROFILES",
    "Candidate",
    "CandidatePhase",
    "ChoreographyConfig",
    "ChoreographyPlanner",
    "HybridConfig",
    "HybridPlanner",
    "HybridVariant",
    "SyncMode",
    "SyncProfile",
    "build_phases",
    "passing_lanes",
    "plan_choreography",
    "plan_hybrid",
]
