"""Test configuration and fixtures."""

import math
import sys
from pathlib import Path

import pytest

# Ensure the src/ directory is on sys.path so `import buddymatch` works without installation.
PROJECT_ROOT = Path(__file__).resolve().parents[1]
SRC_PATH = PROJECT_ROOT / "src"
if SRC_PATH.exists():
    sys.path.insert(0, str(SRC_PATH))

from buddymatch.database import InMemoryMatchRequestStore, InMemoryProfileStore  # noqa: E402
from buddymatch.domain import (  # noqa: E402
    Coordinate,
    SkillLevel,
    Sport,
    UserProfile,
    UserSportPreference,
)
from buddymatch.events import InProcessPublisher, MatchAccepted  # noqa: E402
from buddymatch.matching import MatchingEngine  # noqa: E402
from buddymatch.matching.geo import EARTH_RADIUS_KM  # noqa: E402

ORIGIN = Coordinate(latitude=40.0, longitude=-75.0)
KM_PER_DEGREE = math.pi * EARTH_RADIUS_KM / 180


def north_of(origin: Coordinate, km: float) -> Coordinate:
    """Coordinate ``km`` kilometres due north of ``origin`` along its meridian."""

    return Coordinate(latitude=origin.latitude + km / KM_PER_DEGREE, longitude=origin.longitude)


@pytest.fixture
def origin() -> Coordinate:
    return ORIGIN


@pytest.fixture
def at_km():
    """Factory placing a coordinate a given distance from the origin."""

    def _at(km: float) -> Coordinate:
        return north_of(ORIGIN, km)

    return _at


@pytest.fixture
def make_profile():
    """Factory for profiles with sensible defaults."""

    def _make(user_id: str, **overrides) -> UserProfile:
        data = {
            "user_id": user_id,
            "display_name": user_id.title(),
            "location": ORIGIN,
            "max_travel_distance_km": 50.0,
        }
        data.update(overrides)
        return UserProfile(**data)

    return _make


@pytest.fixture
def make_preference():
    def _make(user_id: str, sport_id: str = "tennis", skill=SkillLevel.INTERMEDIATE, **overrides):
        return UserSportPreference(user_id=user_id, sport_id=sport_id, skill_level=skill, **overrides)

    return _make


@pytest.fixture
def profile_store() -> InMemoryProfileStore:
    store = InMemoryProfileStore()
    store.add_sport(Sport(sport_id="tennis", name="Tennis"))
    store.add_sport(Sport(sport_id="running", name="Running"))
    return store


@pytest.fixture
def request_store() -> InMemoryMatchRequestStore:
    return InMemoryMatchRequestStore()


@pytest.fixture
def delivered() -> list[MatchAccepted]:
    return []


@pytest.fixture
def publisher(delivered) -> InProcessPublisher:
    publisher = InProcessPublisher()

    async def _record(event: MatchAccepted) -> None:
        delivered.append(event)

    publisher.subscribe(_record)
    return publisher


@pytest.fixture
def engine(profile_store, request_store, publisher) -> MatchingEngine:
    return MatchingEngine(profiles=profile_store, requests=request_store, publisher=publisher)
