"""Candidate discovery and match request negotiation."""

from buddymatch.matching.filters import (
    CandidateFilter,
    CandidateResult,
    FilterSpec,
    build_exclusion_set,
)
from buddymatch.matching.geo import distance_km
from buddymatch.matching.ranking import CandidateRanker, Page
from buddymatch.matching.service import MatchingEngine, ProfileStore
from buddymatch.matching.state_machine import (
    EventPublisher,
    MatchRequestStateMachine,
    MatchRequestStore,
)

__all__ = [
    "CandidateFilter",
    "CandidateRanker",
    "CandidateResult",
    "EventPublisher",
    "FilterSpec",
    "MatchRequestStateMachine",
    "MatchRequestStore",
    "MatchingEngine",
    "Page",
    "ProfileStore",
    "build_exclusion_set",
    "distance_km",
]
