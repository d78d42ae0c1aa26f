"""Match request models."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, model_validator


class MatchStatus(str, Enum):
    """Lifecycle states of a match request."""

    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    CANCELED = "canceled"


class PartyRole(str, Enum):
    """Side of a match request a user is on, used when listing requests."""

    REQUESTER = "requester"
    RECIPIENT = "recipient"
    EITHER = "either"


class MatchRequest(BaseModel):
    """A directed proposal from one user to another to become buddies."""

    model_config = ConfigDict(frozen=True)

    match_id: str
    requester_id: str
    recipient_id: str
    sport_id: Optional[str] = None
    status: MatchStatus = MatchStatus.PENDING
    message: Optional[str] = None
    requested_at: datetime
    responded_at: Optional[datetime] = None

    @model_validator(mode="after")
    def _distinct_parties(self) -> MatchRequest:
        if self.requester_id == self.recipient_id:
            raise ValueError("requester_id and recipient_id must differ")
        return self

    def involves(self, user_id: str) -> bool:
        return user_id in (self.requester_id, self.recipient_id)

    def counterparty(self, user_id: str) -> str:
        """Return the other party of the request from ``user_id``'s point of view."""

        return self.recipient_id if user_id == self.requester_id else self.requester_id


__all__ = ["MatchRequest", "MatchStatus", "PartyRole"]
