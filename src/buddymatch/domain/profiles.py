"""Profile, sport and location models consumed read-only by the engine."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from buddymatch.errors import InvalidCoordinate


class SkillLevel(str, Enum):
    """Ordered skill levels a user can declare for a sport."""

    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"


class DayOfWeek(str, Enum):
    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"


class TimeOfDay(str, Enum):
    MORNING = "morning"
    AFTERNOON = "afternoon"
    EVENING = "evening"
    NIGHT = "night"


class VisibilityScope(str, Enum):
    """Which profiles and preferences a candidate pool may contain."""

    PUBLIC = "public"
    ALL = "all"


@dataclass(frozen=True, slots=True)
class Coordinate:
    """A point on the Earth's surface in decimal degrees."""

    latitude: float
    longitude: float

    def __post_init__(self) -> None:
        validate_coordinate(self.latitude, self.longitude)


def validate_coordinate(latitude: float, longitude: float) -> None:
    """Raise InvalidCoordinate unless both components are within range."""

    if not -90.0 <= latitude <= 90.0:
        raise InvalidCoordinate(f"Latitude {latitude} is outside [-90, 90]")
    if not -180.0 <= longitude <= 180.0:
        raise InvalidCoordinate(f"Longitude {longitude} is outside [-180, 180]")


class Sport(BaseModel):
    """Catalog entry for a sport."""

    model_config = ConfigDict(frozen=True)

    sport_id: str
    name: str


class UserProfile(BaseModel):
    """Public-facing profile of a user looking for workout partners.

    The location is a single optional value so a profile can never carry a
    latitude without a longitude or vice versa.
    """

    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str
    bio: Optional[str] = None
    profile_picture_url: Optional[str] = None
    location: Optional[Coordinate] = None
    max_travel_distance_km: float = Field(default=20.0, ge=0)
    preferred_days: frozenset[DayOfWeek] = Field(default_factory=frozenset)
    preferred_times: frozenset[TimeOfDay] = Field(default_factory=frozenset)
    is_verified: bool = False
    is_public: bool = True
    active: bool = True


class UserSportPreference(BaseModel):
    """A user's declared skill for one sport, unique per (user_id, sport_id)."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    sport_id: str
    skill_level: SkillLevel
    years_experience: Optional[int] = Field(default=None, ge=0)
    is_public: bool = True


@dataclass(frozen=True, slots=True)
class CandidateRecord:
    """A profile from the candidate pool together with its sport preferences."""

    profile: UserProfile
    preferences: tuple[UserSportPreference, ...]


__all__ = [
    "CandidateRecord",
    "Coordinate",
    "DayOfWeek",
    "SkillLevel",
    "Sport",
    "TimeOfDay",
    "UserProfile",
    "UserSportPreference",
    "VisibilityScope",
    "validate_coordinate",
]
