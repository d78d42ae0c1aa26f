"""In-process event publisher feeding registered handlers."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from typing import Awaitable, Callable

from structlog import get_logger

from buddymatch.events.models import MatchAccepted

logger = get_logger(__name__)

EventHandler = Callable[[MatchAccepted], Awaitable[None]]


@dataclass
class InProcessPublisher:
    """Delivers ``MatchAccepted`` events to subscribers once per match.

    A match id is recorded as delivered only after every handler returned
    without error, so a failed delivery can be published again. While one
    delivery for a match is running, concurrent publishes of the same match
    are skipped.
    """

    handlers: list[EventHandler] = field(default_factory=list)
    delivered: set[str] = field(default_factory=set)
    _in_flight: set[str] = field(default_factory=set, repr=False)
    _lock: asyncio.Lock = field(default_factory=asyncio.Lock, repr=False)

    def subscribe(self, handler: EventHandler) -> None:
        self.handlers.append(handler)

    async def publish(self, event: MatchAccepted) -> bool:
        """Deliver the event; return False when it was already delivered.

        When a handler fails the remaining handlers still run and the first
        error is re-raised afterwards; the match stays undelivered.
        """

        async with self._lock:
            if event.match_id in self.delivered or event.match_id in self._in_flight:
                logger.info("match_accepted_duplicate_skipped", match_id=event.match_id)
                return False
            self._in_flight.add(event.match_id)

        errors: list[Exception] = []
        completed = False
        try:
            for handler in self.handlers:
                try:
                    await handler(event)
                except Exception as exc:
                    logger.error(
                        "match_accepted_handler_failed",
                        match_id=event.match_id,
                        error=str(exc),
                    )
                    errors.append(exc)
            completed = not errors
        finally:
            async with self._lock:
                self._in_flight.discard(event.match_id)
                if completed:
                    self.delivered.add(event.match_id)

        if errors:
            raise errors[0]
        logger.info(
            "match_accepted_published",
            match_id=event.match_id,
            handlers=len(self.handlers),
        )
        return True


__all__ = ["EventHandler", "InProcessPublisher"]
