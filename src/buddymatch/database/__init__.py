"""Database utilities and store implementations for the matching engine."""

from .memory import InMemoryMatchRequestStore, InMemoryProfileStore
from .models import Base, MatchRequestRow, SportRow, UserProfileRow, UserSportRow
from .queries import (
    SqlMatchRequestStore,
    SqlProfileStore,
    upsert_profile,
    upsert_sport,
    upsert_sport_preference,
)
from .session import async_session_factory, create_schema, get_engine

__all__ = [
    "async_session_factory",
    "create_schema",
    "get_engine",
    "Base",
    "InMemoryMatchRequestStore",
    "InMemoryProfileStore",
    "MatchRequestRow",
    "SportRow",
    "SqlMatchRequestStore",
    "SqlProfileStore",
    "UserProfileRow",
    "UserSportRow",
    "upsert_profile",
    "upsert_sport",
    "upsert_sport_preference",
]
