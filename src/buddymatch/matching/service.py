"""Matching engine facade composing discovery and request negotiation."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, Protocol

from structlog import get_logger

from buddymatch.config.settings import MatchingSettings
from buddymatch.domain.profiles import (
    CandidateRecord,
    Sport,
    UserProfile,
    UserSportPreference,
    VisibilityScope,
)
from buddymatch.domain.requests import MatchRequest, MatchStatus, PartyRole
from buddymatch.errors import (
    MatchNotFound,
    NotAuthorized,
    ProfileNotFound,
    SportNotFound,
    SportNotPracticed,
)
from buddymatch.matching.filters import (
    CandidateFilter,
    CandidateResult,
    FilterSpec,
    build_exclusion_set,
)
from buddymatch.matching.ranking import CandidateRanker, Page
from buddymatch.matching.state_machine import (
    EventPublisher,
    MatchRequestStateMachine,
    MatchRequestStore,
)

logger = get_logger(__name__)


class ProfileStore(Protocol):
    """Read-only access to profiles, sport preferences and the sport catalog."""

    async def get_profile(self, user_id: str) -> UserProfile | None:
        ...

    async def list_sport_preferences(self, user_id: str) -> list[UserSportPreference]:
        ...

    async def list_candidate_pool(
        self,
        sport_id: str | None,
        visibility: VisibilityScope,
    ) -> list[CandidateRecord]:
        ...

    async def get_sports(self, sport_ids: Iterable[str]) -> dict[str, Sport]:
        ...


@dataclass
class MatchingEngine:
    """Single entry point for the API layer and the messaging trigger."""

    profiles: ProfileStore
    requests: MatchRequestStore
    publisher: EventPublisher
    settings: MatchingSettings = field(default_factory=MatchingSettings)
    state_machine: MatchRequestStateMachine = field(init=False)
    ranker: CandidateRanker = field(init=False)

    def __post_init__(self) -> None:
        self.state_machine = MatchRequestStateMachine(store=self.requests, publisher=self.publisher)
        self.ranker = CandidateRanker(max_page_size=self.settings.max_page_size)

    async def find_candidates(
        self,
        requester_id: str,
        filter_spec: FilterSpec | None = None,
        page: int = 1,
        page_size: int | None = None,
    ) -> Page[CandidateResult]:
        """Return one ranked page of buddies matching ``filter_spec``."""

        spec = filter_spec or FilterSpec()
        if spec.max_distance_km is None:
            spec = spec.model_copy(update={"max_distance_km": self.settings.default_max_distance_km})
        requester = await self.profiles.get_profile(requester_id)
        if requester is None:
            raise ProfileNotFound(requester_id)

        requester_preferences = await self.profiles.list_sport_preferences(requester_id)
        pool = await self.profiles.list_candidate_pool(spec.sport_id, self.settings.visibility)
        history = await self.requests.list_for_user(
            requester_id,
            statuses=frozenset({MatchStatus.PENDING, MatchStatus.ACCEPTED}),
        )
        excluded = build_exclusion_set(requester_id, history, spec.sport_id)

        sport_ids = {pref.sport_id for pref in requester_preferences}
        if spec.sport_id is not None:
            sport_ids.add(spec.sport_id)
        sports = await self.profiles.get_sports(sport_ids)

        candidates = CandidateFilter(spec, sports).apply(
            requester, requester_preferences, pool, excluded
        )
        result = self.ranker.rank(
            candidates,
            page=page,
            page_size=page_size or self.settings.default_page_size,
        )
        logger.info(
            "candidate_search_complete",
            requester_id=requester_id,
            sport_id=spec.sport_id,
            pool=len(pool),
            excluded=len(excluded),
            matched=result.total,
            page=result.page,
        )
        return result

    async def create_match_request(
        self,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None = None,
        message: str | None = None,
    ) -> MatchRequest:
        """Send a buddy request after checking both parties and the sport.

        Raises ProfileNotFound for an unknown party, SportNotFound for a sport
        missing from the catalog and SportNotPracticed when either party does
        not hold the sport.
        """
        if requester_id != recipient_id:
            await self._check_request_parties(requester_id, recipient_id, sport_id)
        return await self.state_machine.create(requester_id, recipient_id, sport_id, message)

    async def _check_request_parties(
        self,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None,
    ) -> None:
        for user_id in (requester_id, recipient_id):
            if await self.profiles.get_profile(user_id) is None:
                raise ProfileNotFound(user_id)
        if sport_id is None:
            return
        if sport_id not in await self.profiles.get_sports([sport_id]):
            raise SportNotFound(sport_id)
        for user_id in (requester_id, recipient_id):
            preferences = await self.profiles.list_sport_preferences(user_id)
            if all(pref.sport_id != sport_id for pref in preferences):
                raise SportNotPracticed(user_id, sport_id)

    async def respond_to_match(self, match_id: str, responder_id: str, accept: bool) -> MatchRequest:
        return await self.state_machine.respond(match_id, responder_id, accept)

    async def cancel_match_request(self, match_id: str, requester_id: str) -> MatchRequest:
        return await self.state_machine.cancel(match_id, requester_id)

    async def redeliver_match_accepted(self, match_id: str) -> bool:
        """Retry the MatchAccepted event of an accepted request."""

        return await self.state_machine.redeliver_accepted(match_id)

    async def get_current_matches(self, user_id: str) -> list[MatchRequest]:
        """Accepted buddies of ``user_id`` in either direction."""

        return await self.requests.list_for_user(
            user_id, statuses=frozenset({MatchStatus.ACCEPTED})
        )

    async def get_sent_requests(self, user_id: str) -> list[MatchRequest]:
        return await self.requests.list_for_user(
            user_id, statuses=frozenset({MatchStatus.PENDING}), role=PartyRole.REQUESTER
        )

    async def get_received_requests(self, user_id: str) -> list[MatchRequest]:
        return await self.requests.list_for_user(
            user_id, statuses=frozenset({MatchStatus.PENDING}), role=PartyRole.RECIPIENT
        )

    async def get_match(self, match_id: str, user_id: str) -> MatchRequest:
        """Return a request visible only to its two parties."""

        request = await self.requests.get(match_id)
        if request is None:
            raise MatchNotFound(match_id)
        if not request.involves(user_id):
            raise NotAuthorized("You are not a party to this match request")
        return request

    async def get_requests_between(
        self,
        user_id: str,
        other_id: str,
        sport_id: str | None = None,
    ) -> list[MatchRequest]:
        """Full request history between two users, oldest first."""

        sent = await self.requests.get_by_parties(user_id, other_id, sport_id)
        received = await self.requests.get_by_parties(other_id, user_id, sport_id)
        return sorted([*sent, *received], key=lambda req: (req.requested_at, req.match_id))


__all__ = ["MatchingEngine", "ProfileStore"]
