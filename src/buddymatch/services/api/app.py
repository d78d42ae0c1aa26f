"""FastAPI application exposing candidate discovery and match requests."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import APIRouter, Depends, FastAPI, Header, Query, Request
from pydantic import BaseModel, Field

from buddymatch.config import get_settings
from buddymatch.database import (
    SqlMatchRequestStore,
    SqlProfileStore,
    async_session_factory,
    create_schema,
)
from buddymatch.domain import DayOfWeek, MatchRequest, SkillLevel, TimeOfDay
from buddymatch.events import InProcessPublisher
from buddymatch.matching import CandidateResult, FilterSpec, MatchingEngine, Page
from buddymatch.services.base import create_app

router = APIRouter(prefix="/api/matches", tags=["Matching"])


class MatchRequestBody(BaseModel):
    """Payload for sending a buddy request."""

    recipient_id: str = Field(..., min_length=1)
    sport_id: Optional[str] = None
    message: Optional[str] = Field(default=None, max_length=1000)


class MatchResponseBody(BaseModel):
    """Payload for accepting or declining a received request."""

    accept: bool


def get_matching_engine(request: Request) -> MatchingEngine:
    return request.app.state.engine


def current_user_id(x_user_id: str = Header(..., min_length=1)) -> str:
    """Identity supplied by the upstream authentication layer."""

    return x_user_id


@router.get("/potential", response_model=Page[CandidateResult])
async def find_potential_matches(
    sport_id: Optional[str] = None,
    skill_level: Optional[SkillLevel] = None,
    distance: Optional[float] = Query(default=None, gt=0),
    days: Optional[list[DayOfWeek]] = Query(default=None),
    times: Optional[list[TimeOfDay]] = Query(default=None),
    page: int = Query(default=1, ge=1),
    page_size: Optional[int] = Query(default=None, ge=1),
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> Page[CandidateResult]:
    """Return a ranked page of potential workout buddies."""

    spec = FilterSpec(
        sport_id=sport_id,
        skill_level=skill_level,
        max_distance_km=distance,
        days=frozenset(days) if days else None,
        times=frozenset(times) if times else None,
    )
    return await engine.find_candidates(user_id, spec, page=page, page_size=page_size)


@router.get("/current")
async def current_matches(
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> list[MatchRequest]:
    return await engine.get_current_matches(user_id)


@router.get("/sent")
async def sent_requests(
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> list[MatchRequest]:
    return await engine.get_sent_requests(user_id)


@router.get("/received")
async def received_requests(
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> list[MatchRequest]:
    return await engine.get_received_requests(user_id)


@router.post("/request", status_code=201)
async def send_match_request(
    body: MatchRequestBody,
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> MatchRequest:
    """Send a buddy request to another user."""

    return await engine.create_match_request(user_id, body.recipient_id, body.sport_id, body.message)


@router.put("/{match_id}/respond")
async def respond_to_match_request(
    match_id: str,
    body: MatchResponseBody,
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> MatchRequest:
    """Accept or decline a request addressed to the caller."""

    return await engine.respond_to_match(match_id, user_id, body.accept)


@router.delete("/{match_id}")
async def cancel_match_request(
    match_id: str,
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> MatchRequest:
    """Withdraw a pending request the caller sent."""

    return await engine.cancel_match_request(match_id, user_id)


@router.get("/with/{other_id}")
async def requests_between(
    other_id: str,
    sport_id: Optional[str] = None,
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> list[MatchRequest]:
    return await engine.get_requests_between(user_id, other_id, sport_id)


@router.get("/{match_id}")
async def get_match_request(
    match_id: str,
    user_id: str = Depends(current_user_id),
    engine: MatchingEngine = Depends(get_matching_engine),
) -> MatchRequest:
    return await engine.get_match(match_id, user_id)


def build_sql_engine() -> MatchingEngine:
    """Wire the engine against the configured database."""

    session_factory = async_session_factory()
    return MatchingEngine(
        profiles=SqlProfileStore(session_factory),
        requests=SqlMatchRequestStore(session_factory),
        publisher=InProcessPublisher(),
        settings=get_settings().matching,
    )


@asynccontextmanager
async def _create_schema_on_startup(app: FastAPI) -> AsyncIterator[None]:
    await create_schema()
    yield


def build_app(engine: MatchingEngine | None = None) -> FastAPI:
    """Return configured FastAPI application.

    Without an explicit engine the app talks to the configured database and
    creates missing tables on startup.
    """

    if engine is None:
        app = create_app("matching", lifespan=_create_schema_on_startup)
        app.state.engine = build_sql_engine()
    else:
        app = create_app("matching")
        app.state.engine = engine
    app.include_router(router)
    return app
