"""SQL-backed profile and match request stores."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from typing import Iterable

from sqlalchemy import or_, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from structlog import get_logger

from buddymatch.domain.profiles import (
    CandidateRecord,
    Coordinate,
    DayOfWeek,
    SkillLevel,
    Sport,
    TimeOfDay,
    UserProfile,
    UserSportPreference,
    VisibilityScope,
)
from buddymatch.domain.requests import MatchRequest, MatchStatus, PartyRole
from buddymatch.errors import (
    DuplicateActiveRequest,
    InvalidTransition,
    MatchNotFound,
    StoreUnavailable,
)

from .models import ANY_SPORT_KEY, MatchRequestRow, SportRow, UserProfileRow, UserSportRow

logger = get_logger(__name__)


async def upsert_sport(session: AsyncSession, *, sport_id: str, name: str) -> SportRow:
    """Insert or update a sport catalog entry."""

    persisted = await session.merge(SportRow(sport_id=sport_id, name=name))
    await session.flush()
    return persisted


async def upsert_profile(
    session: AsyncSession,
    *,
    user_id: str,
    display_name: str,
    location: Coordinate | None = None,
    max_travel_distance_km: float = 20.0,
    preferred_days: Iterable[DayOfWeek] = (),
    preferred_times: Iterable[TimeOfDay] = (),
    bio: str | None = None,
    profile_picture_url: str | None = None,
    is_verified: bool = False,
    is_public: bool = True,
    active: bool = True,
) -> UserProfileRow:
    """Insert or update a profile read model."""

    profile = UserProfileRow(
        user_id=user_id,
        display_name=display_name,
        bio=bio,
        profile_picture_url=profile_picture_url,
        latitude=location.latitude if location else None,
        longitude=location.longitude if location else None,
        max_travel_distance_km=max_travel_distance_km,
        preferred_days=sorted(day.value for day in preferred_days),
        preferred_times=sorted(t.value for t in preferred_times),
        is_verified=is_verified,
        is_public=is_public,
        active=active,
    )
    persisted = await session.merge(profile)
    await session.flush()
    return persisted


async def upsert_sport_preference(
    session: AsyncSession,
    *,
    user_id: str,
    sport_id: str,
    skill_level: SkillLevel,
    years_experience: int | None = None,
    is_public: bool = True,
) -> UserSportRow:
    """Insert or update the (user, sport) preference."""

    stmt = select(UserSportRow).where(
        UserSportRow.user_id == user_id,
        UserSportRow.sport_id == sport_id,
    )
    preference = (await session.execute(stmt)).scalar_one_or_none()
    if preference is None:
        preference = UserSportRow(
            user_id=user_id,
            sport_id=sport_id,
            skill_level=skill_level,
            years_experience=years_experience,
            is_public=is_public,
        )
        session.add(preference)
    else:
        preference.skill_level = skill_level
        preference.years_experience = years_experience
        preference.is_public = is_public
    await session.flush()
    return preference


class SqlProfileStore:
    """Profile store reading the profile, sport and preference tables."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_profile(self, user_id: str) -> UserProfile | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(UserProfileRow, user_id)
                return row.to_domain() if row else None
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Profile lookup failed: {exc}") from exc

    async def list_sport_preferences(self, user_id: str) -> list[UserSportPreference]:
        stmt = (
            select(UserSportRow)
            .where(UserSportRow.user_id == user_id)
            .order_by(UserSportRow.sport_id)
        )
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Sport preference lookup failed: {exc}") from exc
        return [row.to_domain() for row in rows]

    async def list_candidate_pool(
        self,
        sport_id: str | None,
        visibility: VisibilityScope,
    ) -> list[CandidateRecord]:
        """Return profiles holding at least one (visible) sport preference."""

        stmt = select(UserProfileRow).where(UserProfileRow.sports.any()).order_by(UserProfileRow.user_id)
        if visibility is VisibilityScope.PUBLIC:
            stmt = stmt.where(UserProfileRow.is_public.is_(True))
        if sport_id is not None:
            stmt = stmt.where(UserProfileRow.sports.any(UserSportRow.sport_id == sport_id))

        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
                pool: list[CandidateRecord] = []
                for row in rows:
                    preferences = tuple(
                        pref.to_domain()
                        for pref in sorted(row.sports, key=lambda p: p.sport_id)
                        if visibility is VisibilityScope.ALL or pref.is_public
                    )
                    if preferences:
                        pool.append(CandidateRecord(profile=row.to_domain(), preferences=preferences))
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Candidate pool query failed: {exc}") from exc
        return pool

    async def get_sports(self, sport_ids: Iterable[str]) -> dict[str, Sport]:
        ids = list(sport_ids)
        if not ids:
            return {}
        stmt = select(SportRow).where(SportRow.sport_id.in_(ids))
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Sport lookup failed: {exc}") from exc
        return {row.sport_id: row.to_domain() for row in rows}


class SqlMatchRequestStore:
    """Match request store relying on the database for atomicity.

    Creation is backed by the partial unique index over pending rows and
    transitions are single conditional UPDATE statements.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create_if_absent(
        self,
        *,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None,
        message: str | None,
        requested_at: datetime,
    ) -> MatchRequest:
        row = MatchRequestRow(
            match_id=str(uuid.uuid4()),
            requester_id=requester_id,
            recipient_id=recipient_id,
            sport_id=sport_id,
            sport_key=sport_id if sport_id is not None else ANY_SPORT_KEY,
            status=MatchStatus.PENDING,
            message=message,
            requested_at=requested_at.astimezone(UTC),
        )
        try:
            async with self._session_factory() as session, session.begin():
                session.add(row)
                request = row.to_domain()
        except IntegrityError as exc:
            logger.info(
                "duplicate_active_request_rejected",
                requester_id=requester_id,
                recipient_id=recipient_id,
                sport_id=sport_id,
            )
            raise DuplicateActiveRequest(requester_id, recipient_id, sport_id) from exc
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Match request insert failed: {exc}") from exc
        return request

    async def compare_and_set_status(
        self,
        match_id: str,
        expected: MatchStatus,
        new: MatchStatus,
        *,
        responded_at: datetime,
    ) -> MatchRequest:
        stmt = (
            update(MatchRequestRow)
            .where(MatchRequestRow.match_id == match_id, MatchRequestRow.status == expected)
            .values(status=new, responded_at=responded_at.astimezone(UTC))
            .execution_options(synchronize_session=False)
        )
        try:
            async with self._session_factory() as session, session.begin():
                result = await session.execute(stmt)
                row = await session.get(MatchRequestRow, match_id, populate_existing=True)
                if row is None:
                    raise MatchNotFound(match_id)
                if result.rowcount != 1:
                    raise InvalidTransition(
                        f"Match request {match_id} is {row.status.value}, expected {expected.value}"
                    )
                return row.to_domain()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Match request update failed: {exc}") from exc

    async def get(self, match_id: str) -> MatchRequest | None:
        try:
            async with self._session_factory() as session:
                row = await session.get(MatchRequestRow, match_id)
                return row.to_domain() if row else None
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Match request lookup failed: {exc}") from exc

    async def _select(self, stmt) -> list[MatchRequest]:
        stmt = stmt.order_by(MatchRequestRow.requested_at, MatchRequestRow.match_id)
        try:
            async with self._session_factory() as session:
                rows = (await session.execute(stmt)).scalars().all()
        except SQLAlchemyError as exc:
            raise StoreUnavailable(f"Match request query failed: {exc}") from exc
        return [row.to_domain() for row in rows]

    async def get_by_parties(
        self,
        requester_id: str,
        recipient_id: str,
        sport_id: str | None = None,
    ) -> list[MatchRequest]:
        stmt = select(MatchRequestRow).where(
            MatchRequestRow.requester_id == requester_id,
            MatchRequestRow.recipient_id == recipient_id,
        )
        if sport_id is not None:
            stmt = stmt.where(MatchRequestRow.sport_id == sport_id)
        return await self._select(stmt)

    async def list_for_user(
        self,
        user_id: str,
        statuses: frozenset[MatchStatus] | None = None,
        role: PartyRole = PartyRole.EITHER,
    ) -> list[MatchRequest]:
        if role is PartyRole.REQUESTER:
            stmt = select(MatchRequestRow).where(MatchRequestRow.requester_id == user_id)
        elif role is PartyRole.RECIPIENT:
            stmt = select(MatchRequestRow).where(MatchRequestRow.recipient_id == user_id)
        else:
            stmt = select(MatchRequestRow).where(
                or_(
                    MatchRequestRow.requester_id == user_id,
                    MatchRequestRow.recipient_id == user_id,
                )
            )
        if statuses is not None:
            stmt = stmt.where(MatchRequestRow.status.in_(list(statuses)))
        return await self._select(stmt)


__all__ = [
    "SqlMatchRequestStore",
    "SqlProfileStore",
    "upsert_profile",
    "upsert_sport",
    "upsert_sport_preference",
]
