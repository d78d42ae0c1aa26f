"""Domain events emitted by the matching engine for downstream consumers."""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    """Enumeration of events published by the engine."""

    MATCH_ACCEPTED = "match_accepted"


class MatchAccepted(BaseModel):
    """Signal that two users became buddies; messaging opens a conversation."""

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "event_type": "match_accepted",
                "match_id": "8a3c",
                "requester_id": "alice",
                "recipient_id": "bob",
                "sport_id": "tennis",
                "occurred_at": "2024-01-01T00:00:00Z",
            }
        },
    )

    event_type: Literal[EventType.MATCH_ACCEPTED] = EventType.MATCH_ACCEPTED
    match_id: str = Field(..., description="Identifier of the accepted match request.")
    requester_id: str
    recipient_id: str
    sport_id: Optional[str] = None
    occurred_at: datetime


__all__ = ["EventType", "MatchAccepted"]
