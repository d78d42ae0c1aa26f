"""Domain models shared across the engine, stores and API."""

from .profiles import (
    CandidateRecord,
    Coordinate,
    DayOfWeek,
    SkillLevel,
    Sport,
    TimeOfDay,
    UserProfile,
    UserSportPreference,
    VisibilityScope,
)
from .requests import MatchRequest, MatchStatus, PartyRole

__all__ = [
    "CandidateRecord",
    "Coordinate",
    "DayOfWeek",
    "MatchRequest",
    "MatchStatus",
    "PartyRole",
    "SkillLevel",
    "Sport",
    "TimeOfDay",
    "UserProfile",
    "UserSportPreference",
    "VisibilityScope",
]
