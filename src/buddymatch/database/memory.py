"""In-memory stores for tests and local runs without a database."""

from __future__ import annotations

import asyncio
import uuid
from collections import defaultdict
from datetime import datetime
from typing import Iterable

from buddymatch.domain.profiles import (
    CandidateRecord,
    Sport,
    UserProfile,
    UserSportPreference,
    VisibilityScope,
)
from buddymatch.domain.requests import MatchRequest, MatchStatus, PartyRole
from buddymatch.errors import DuplicateActiveRequest, InvalidTransition, MatchNotFound


class InMemoryProfileStore:
    """Profiles, preferences and sports kept in per-entity dictionaries."""

    def __init__(self) -> None:
        self._profiles: dict[str, UserProfile] = {}
        self._preferences: dict[str, dict[str, UserSportPreference]] = defaultdict(dict)
        self._sports: dict[str, Sport] = {}

    def add_profile(self, profile: UserProfile) -> None:
        self._profiles[profile.user_id] = profile

    def add_preference(self, preference: UserSportPreference) -> None:
        self._preferences[preference.user_id][preference.sport_id] = preference

    def add_sport(self, sport: Sport) -> None:
        self._sports[sport.sport_id] = sport

    async def get_profile(self, user_id: str) -> UserProfile | None:
        return self._profiles.get(user_id)

    async def list_sport_preferences(self, user_id: str) -> list[UserSportPreference]:
        return sorted(self._preferences.get(user_id, {}).values(), key=lambda p: p.sport_id)

    async def list_candidate_pool(
        self,
        sport_id: str | None,
        visibility: VisibilityScope,
    ) -> list[CandidateRecord]:
        pool: list[CandidateRecord] = []
        for user_id, profile in self._profiles.items():
            if visibility is VisibilityScope.PUBLIC and not profile.is_public:
                continue
            preferences = tuple(
                pref
                for pref in sorted(self._preferences.get(user_id, {}).values(), key=lambda p: p.sport_id)
                if visibility is VisibilityScope.ALL or pref.is_public
            )
            if not preferences:
                continue
            if sport_id is not None and all(pref.sport_id != sport_id for pref in preferences):
                continue
            pool.append(CandidateRecord(profile=profile, preferences=preferences))
        return pool

    async def get_sports(self, sport_ids: Iterable[str]) -> dict[str, Sport]:
        return {sid: self._sports[sid] for sid in sport_ids if sid in self._sports}


class InMemoryMatchRequestStore:
    """Match requests guarded by a single asyncio lock.

    Each mutation runs its check and its write under the lock, which gives the
    same guarantees as the unique index and conditional update of the SQL store.
    """

    def __init__(self) -> None:
        self._requests: dict[str, MatchRequest] = {}
        self._lock = asyncio.Lock()

    async def create_if_absent(
        self,
        *,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None,
        message: str | None,
        requested_at: datetime,
    ) -> MatchRequest:
        async with self._lock:
            for existing in self._requests.values():
                if (
                    existing.status is MatchStatus.PENDING
                    and existing.requester_id == requester_id
                    and existing.recipient_id == recipient_id
                    and existing.sport_id == sport_id
                ):
                    raise DuplicateActiveRequest(requester_id, recipient_id, sport_id)

            request = MatchRequest(
                match_id=str(uuid.uuid4()),
                requester_id=requester_id,
                recipient_id=recipient_id,
                sport_id=sport_id,
                message=message,
                requested_at=requested_at,
            )
            self._requests[request.match_id] = request
            return request

    async def compare_and_set_status(
        self,
        match_id: str,
        expected: MatchStatus,
        new: MatchStatus,
        *,
        responded_at: datetime,
    ) -> MatchRequest:
        async with self._lock:
            current = self._requests.get(match_id)
            if current is None:
                raise MatchNotFound(match_id)
            if current.status is not expected:
                raise InvalidTransition(
                    f"Match request {match_id} is {current.status.value}, expected {expected.value}"
                )
            updated = current.model_copy(update={"status": new, "responded_at": responded_at})
            self._requests[match_id] = updated
            return updated

    async def get(self, match_id: str) -> MatchRequest | None:
        return self._requests.get(match_id)

    async def get_by_parties(
        self,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None = None,
    ) -> list[MatchRequest]:
        return sorted(
            (
                req
                for req in self._requests.values()
                if req.requester_id == requester_id
                and req.recipient_id == recipient_id
                and (sport_id is None or req.sport_id == sport_id)
            ),
            key=lambda req: (req.requested_at, req.match_id),
        )

    async def list_for_user(
        self,
        user_id: str,
        statuses: frozenset[MatchStatus] | None = None,
        role: PartyRole = PartyRole.EITHER,
    ) -> list[MatchRequest]:
        def _matches_role(req: MatchRequest) -> bool:
            if role is PartyRole.REQUESTER:
                return req.requester_id == user_id
            if role is PartyRole.RECIPIENT:
                return req.recipient_id == user_id
            return req.involves(user_id)

        return sorted(
            (
                req
                for req in self._requests.values()
                if _matches_role(req) and (statuses is None or req.status in statuses)
            ),
            key=lambda req: (req.requested_at, req.match_id),
        )


__all__ = ["InMemoryMatchRequestStore", "InMemoryProfileStore"]
