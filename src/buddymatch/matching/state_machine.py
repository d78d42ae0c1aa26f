"""Match request state machine guarding the request lifecycle."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Callable, Protocol

from structlog import get_logger

from buddymatch.domain.requests import MatchRequest, MatchStatus, PartyRole
from buddymatch.errors import (
    InvalidTransition,
    MatchNotFound,
    NotAuthorized,
    SelfMatchNotAllowed,
)
from buddymatch.events.models import MatchAccepted

logger = get_logger(__name__)

TRANSITIONS: dict[MatchStatus, frozenset[MatchStatus]] = {
    MatchStatus.PENDING: frozenset(
        {MatchStatus.ACCEPTED, MatchStatus.REJECTED, MatchStatus.CANCELED}
    ),
    MatchStatus.ACCEPTED: frozenset(),
    MatchStatus.REJECTED: frozenset(),
    MatchStatus.CANCELED: frozenset(),
}


class MatchRequestStore(Protocol):
    """Persistence for match requests with atomic create and transition."""

    async def create_if_absent(
        self,
        *,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None,
        message: str | None,
        requested_at: datetime,
    ) -> MatchRequest:
        """Insert a pending request or raise DuplicateActiveRequest."""
        ...

    async def compare_and_set_status(
        self,
        match_id: str,
        expected: MatchStatus,
        new: MatchStatus,
        *,
        responded_at: datetime,
    ) -> MatchRequest:
        """Move ``match_id`` to ``new`` only if it is still ``expected``.

        Raises InvalidTransition when the status changed underneath the caller
        and MatchNotFound when the row does not exist.
        """
        ...

    async def get(self, match_id: str) -> MatchRequest | None:
        ...

    async def get_by_parties(
        self,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None = None,
    ) -> list[MatchRequest]:
        ...

    async def list_for_user(
        self,
        user_id: str,
        statuses: frozenset[MatchStatus] | None = None,
        role: PartyRole = PartyRole.EITHER,
    ) -> list[MatchRequest]:
        ...


class EventPublisher(Protocol):
    """Hands ``MatchAccepted`` events to the messaging collaborator."""

    async def publish(self, event: MatchAccepted) -> bool:
        ...


def _utcnow() -> datetime:
    return datetime.now(UTC)


def ensure_transition(current: MatchStatus, new: MatchStatus) -> None:
    """Raise InvalidTransition unless ``current -> new`` is allowed."""

    if new not in TRANSITIONS[current]:
        raise InvalidTransition(
            f"Cannot move a {current.value} match request to {new.value}"
        )


@dataclass(slots=True)
class MatchRequestStateMachine:
    """Creates match requests and settles them exactly once.

    Every transition goes through the store's compare-and-set, so of two
    concurrent responders only one can move a request out of ``pending``; the
    other sees InvalidTransition. Only the winner publishes ``MatchAccepted``.
    """

    store: MatchRequestStore
    publisher: EventPublisher
    clock: Callable[[], datetime] = field(default=_utcnow)

    async def create(
        self,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None = None,
        message: str | None = None,
    ) -> MatchRequest:
        if requester_id == recipient_id:
            raise SelfMatchNotAllowed("You cannot send a match request to yourself")

        request = await self.store.create_if_absent(
            requester_id=requester_id,
            recipient_id=recipient_id,
            sport_id=sport_id,
            message=message,
            requested_at=self.clock(),
        )
        logger.info(
            "match_request_created",
            match_id=request.match_id,
            requester_id=requester_id,
            recipient_id=recipient_id,
            sport_id=sport_id,
        )
        return request

    async def _load(self, match_id: str) -> MatchRequest:
        request = await self.store.get(match_id)
        if request is None:
            raise MatchNotFound(match_id)
        return request

    async def _transition(self, request: MatchRequest, new: MatchStatus) -> MatchRequest:
        ensure_transition(request.status, new)
        return await self.store.compare_and_set_status(
            request.match_id,
            MatchStatus.PENDING,
            new,
            responded_at=self.clock(),
        )

    async def respond(self, match_id: str, responder_id: str, accept: bool) -> MatchRequest:
        request = await self._load(match_id)
        if request.recipient_id != responder_id:
            raise NotAuthorized("You are not authorized to respond to this match request")

        new_status = MatchStatus.ACCEPTED if accept else MatchStatus.REJECTED
        updated = await self._transition(request, new_status)
        logger.info(
            "match_request_responded",
            match_id=match_id,
            responder_id=responder_id,
            status=updated.status.value,
        )

        if updated.status is MatchStatus.ACCEPTED:
            await self._publish_accepted(updated)
        return updated

    async def cancel(self, match_id: str, requester_id: str) -> MatchRequest:
        request = await self._load(match_id)
        if request.requester_id != requester_id:
            raise NotAuthorized("Only the requester can cancel a match request")

        updated = await self._transition(request, MatchStatus.CANCELED)
        logger.info("match_request_canceled", match_id=match_id, requester_id=requester_id)
        return updated

    def _accepted_event(self, request: MatchRequest) -> MatchAccepted:
        return MatchAccepted(
            match_id=request.match_id,
            requester_id=request.requester_id,
            recipient_id=request.recipient_id,
            sport_id=request.sport_id,
            occurred_at=request.responded_at or self.clock(),
        )

    async def redeliver_accepted(self, match_id: str) -> bool:
        """Publish ``MatchAccepted`` again for an accepted request.

        Returns False when the publisher had already delivered it. Publisher
        errors propagate so the caller can retry later.
        """
        request = await self._load(match_id)
        if request.status is not MatchStatus.ACCEPTED:
            raise InvalidTransition(
                f"Match request {match_id} is {request.status.value}, not accepted"
            )
        delivered = await self.publisher.publish(self._accepted_event(request))
        logger.info("match_accepted_redelivered", match_id=match_id, delivered=delivered)
        return delivered

    async def _publish_accepted(self, request: MatchRequest) -> None:
        try:
            await self.publisher.publish(self._accepted_event(request))
        except Exception:
            # The acceptance is already committed; redeliver_accepted retries delivery.
            logger.exception("match_accepted_publish_failed", match_id=request.match_id)


__all__ = [
    "EventPublisher",
    "MatchRequestStateMachine",
    "MatchRequestStore",
    "TRANSITIONS",
    "ensure_transition",
]
