"""Eligibility predicates applied to a candidate pool."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field
from structlog import get_logger

from buddymatch.domain.profiles import (
    CandidateRecord,
    DayOfWeek,
    SkillLevel,
    Sport,
    TimeOfDay,
    UserProfile,
    UserSportPreference,
)
from buddymatch.domain.requests import MatchRequest, MatchStatus
from buddymatch.errors import MissingLocation
from buddymatch.matching.geo import distance_km

logger = get_logger(__name__)

DEFAULT_MAX_DISTANCE_KM = 50.0

EXCLUDING_STATUSES = frozenset({MatchStatus.PENDING, MatchStatus.ACCEPTED})


class FilterSpec(BaseModel):
    """Criteria a requester applies when searching for buddies.

    ``None`` (or an empty set) for ``days``/``times`` means no schedule
    constraint. ``skill_level`` is an exact match, not a minimum. Without a
    ``max_distance_km`` the engine applies its configured default radius.
    """

    model_config = ConfigDict(frozen=True)

    sport_id: Optional[str] = None
    skill_level: Optional[SkillLevel] = None
    max_distance_km: Optional[float] = Field(default=None, gt=0)
    days: Optional[frozenset[DayOfWeek]] = None
    times: Optional[frozenset[TimeOfDay]] = None


class CandidateResult(BaseModel):
    """A suggested workout partner with the sport they matched on."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    display_name: str
    bio: Optional[str] = None
    profile_picture_url: Optional[str] = None
    sport_id: str
    sport_name: Optional[str] = None
    skill_level: SkillLevel
    years_experience: Optional[int] = None
    is_verified: bool
    distance_km: float = Field(..., ge=0)
    max_travel_distance_km: float
    preferred_days: list[DayOfWeek] = Field(default_factory=list)
    preferred_times: list[TimeOfDay] = Field(default_factory=list)


def build_exclusion_set(
    requester_id: str,
    requests: Iterable[MatchRequest],
    sport_id: str | None,
) -> frozenset[str]:
    """Return the users already pending or connected with the requester.

    Requests in either direction count. With a ``sport_id`` only requests for
    that sport exclude; sport-agnostic discovery excludes on any of them.
    """
    excluded: set[str] = set()
    for request in requests:
        if not request.involves(requester_id) or request.status not in EXCLUDING_STATUSES:
            continue
        if sport_id is not None and request.sport_id != sport_id:
            continue
        excluded.add(request.counterparty(requester_id))
    return frozenset(excluded)


class CandidateFilter:
    """Applies sport, skill, distance, schedule and exclusion predicates.

    The filter is a pure function of its inputs and holds no mutable state, so
    one instance may serve any number of concurrent searches.
    """

    def __init__(self, spec: FilterSpec, sports: Mapping[str, Sport] | None = None) -> None:
        """Initialize the filter.

        Args:
            spec: Search criteria from the requester
            sports: Sport catalog entries used to attach sport names to results
        """
        self.spec = spec
        self.sports = dict(sports or {})

    def _matching_preference(
        self,
        preferences: Iterable[UserSportPreference],
        allowed_sports: frozenset[str],
    ) -> UserSportPreference | None:
        """Pick the candidate preference the result is reported against.

        Lowest sport id wins among the preferences that pass the sport and
        skill predicates.
        """
        eligible = [
            pref
            for pref in preferences
            if pref.sport_id in allowed_sports
            and (self.spec.skill_level is None or pref.skill_level == self.spec.skill_level)
        ]
        if not eligible:
            return None
        return min(eligible, key=lambda pref: pref.sport_id)

    def _schedule_overlaps(self, profile: UserProfile) -> bool:
        if self.spec.days and not (profile.preferred_days & self.spec.days):
            return False
        if self.spec.times and not (profile.preferred_times & self.spec.times):
            return False
        return True

    def apply(
        self,
        requester: UserProfile,
        requester_preferences: Iterable[UserSportPreference],
        pool: Iterable[CandidateRecord],
        excluded: frozenset[str] = frozenset(),
    ) -> list[CandidateResult]:
        """Return every candidate in ``pool`` that satisfies all active predicates.

        Raises:
            MissingLocation: if the requester has no location, since the
                distance predicate is always active.
        """
        if requester.location is None:
            raise MissingLocation(requester.user_id)

        if self.spec.sport_id is not None:
            allowed_sports = frozenset({self.spec.sport_id})
        else:
            allowed_sports = frozenset(pref.sport_id for pref in requester_preferences)

        max_distance = self.spec.max_distance_km or DEFAULT_MAX_DISTANCE_KM
        rejected: Counter[str] = Counter()
        results: list[CandidateResult] = []

        for record in pool:
            profile = record.profile
            if profile.user_id == requester.user_id or not profile.active:
                rejected["ineligible"] += 1
                continue
            if profile.user_id in excluded:
                rejected["excluded"] += 1
                continue

            preference = self._matching_preference(record.preferences, allowed_sports)
            if preference is None:
                rejected["sport_or_skill"] += 1
                continue

            if profile.location is None:
                rejected["no_location"] += 1
                continue
            distance = distance_km(requester.location, profile.location)
            if distance > max_distance or distance > profile.max_travel_distance_km:
                rejected["distance"] += 1
                continue

            if not self._schedule_overlaps(profile):
                rejected["schedule"] += 1
                continue

            sport = self.sports.get(preference.sport_id)
            results.append(
                CandidateResult(
                    user_id=profile.user_id,
                    display_name=profile.display_name,
                    bio=profile.bio,
                    profile_picture_url=profile.profile_picture_url,
                    sport_id=preference.sport_id,
                    sport_name=sport.name if sport else None,
                    skill_level=preference.skill_level,
                    years_experience=preference.years_experience,
                    is_verified=profile.is_verified,
                    distance_km=distance,
                    max_travel_distance_km=profile.max_travel_distance_km,
                    preferred_days=sorted(profile.preferred_days, key=list(DayOfWeek).index),
                    preferred_times=sorted(profile.preferred_times, key=list(TimeOfDay).index),
                )
            )

        logger.debug(
            "candidate_filter_complete",
            requester_id=requester.user_id,
            eligible=len(results),
            rejected=dict(rejected),
        )
        return results


__all__ = [
    "DEFAULT_MAX_DISTANCE_KM",
    "CandidateFilter",
    "CandidateResult",
    "FilterSpec",
    "build_exclusion_set",
]
