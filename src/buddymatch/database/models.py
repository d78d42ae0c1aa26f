"""SQLAlchemy ORM models for profiles, sports and match requests."""

from __future__ import annotations

from datetime import UTC, datetime

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
    text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from buddymatch.domain.profiles import (
    Coordinate,
    DayOfWeek,
    SkillLevel,
    Sport,
    TimeOfDay,
    UserProfile,
    UserSportPreference,
)
from buddymatch.domain.requests import MatchRequest, MatchStatus

# Sport-agnostic requests store this key so the partial unique index also
# covers them (NULLs never collide in a unique index).
ANY_SPORT_KEY = ""


class Base(DeclarativeBase):
    """Declarative base for all ORM models."""


class TimestampMixin:
    """Mixin that adds created/updated timestamp columns."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )


def _values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


def _as_utc(value: datetime | None) -> datetime | None:
    """SQLite drops the offset on read; stored values are always UTC."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


SKILL_LEVEL_ENUM = Enum(SkillLevel, name="skill_level_enum", values_callable=_values)
MATCH_STATUS_ENUM = Enum(MatchStatus, name="match_status_enum", values_callable=_values)


class SportRow(Base, TimestampMixin):
    """Sport catalog entry."""

    __tablename__ = "sports"

    sport_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)

    def to_domain(self) -> Sport:
        return Sport(sport_id=self.sport_id, name=self.name)


class UserProfileRow(Base, TimestampMixin):
    """Read model of a user's profile."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str] = mapped_column(String(128), nullable=False)
    bio: Mapped[str | None] = mapped_column(Text, nullable=True)
    profile_picture_url: Mapped[str | None] = mapped_column(String(255), nullable=True)
    latitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    longitude: Mapped[float | None] = mapped_column(Float, nullable=True)
    max_travel_distance_km: Mapped[float] = mapped_column(Float, nullable=False, default=20.0)
    preferred_days: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    preferred_times: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    is_verified: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    sports: Mapped[list["UserSportRow"]] = relationship(
        back_populates="profile", lazy="selectin", cascade="all, delete-orphan"
    )

    __table_args__ = (
        CheckConstraint(
            "(latitude IS NULL) = (longitude IS NULL)",
            name="ck_user_profiles_location_complete",
        ),
        Index("ix_user_profiles_public", "is_public"),
    )

    def to_domain(self) -> UserProfile:
        location = None
        if self.latitude is not None and self.longitude is not None:
            location = Coordinate(latitude=self.latitude, longitude=self.longitude)
        return UserProfile(
            user_id=self.user_id,
            display_name=self.display_name,
            bio=self.bio,
            profile_picture_url=self.profile_picture_url,
            location=location,
            max_travel_distance_km=self.max_travel_distance_km,
            preferred_days=frozenset(DayOfWeek(day) for day in self.preferred_days or []),
            preferred_times=frozenset(TimeOfDay(t) for t in self.preferred_times or []),
            is_verified=self.is_verified,
            is_public=self.is_public,
            active=self.active,
        )


class UserSportRow(Base, TimestampMixin):
    """A user's skill in a sport."""

    __tablename__ = "user_sports"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("user_profiles.user_id", ondelete="CASCADE"), nullable=False
    )
    sport_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("sports.sport_id", ondelete="CASCADE"), nullable=False, index=True
    )
    skill_level: Mapped[SkillLevel] = mapped_column(SKILL_LEVEL_ENUM, nullable=False)
    years_experience: Mapped[int | None] = mapped_column(Integer, nullable=True)
    is_public: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    profile: Mapped[UserProfileRow] = relationship(back_populates="sports", lazy="selectin")

    __table_args__ = (
        UniqueConstraint("user_id", "sport_id", name="uq_user_sports_user_sport"),
    )

    def to_domain(self) -> UserSportPreference:
        return UserSportPreference(
            user_id=self.user_id,
            sport_id=self.sport_id,
            skill_level=self.skill_level,
            years_experience=self.years_experience,
            is_public=self.is_public,
        )


class MatchRequestRow(Base):
    """Match request; rows are never deleted."""

    __tablename__ = "match_requests"

    match_id: Mapped[str] = mapped_column(String(36), primary_key=True)
    requester_id: Mapped[str] = mapped_column(String(64), nullable=False)
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sport_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    sport_key: Mapped[str] = mapped_column(String(64), nullable=False, default=ANY_SPORT_KEY)
    status: Mapped[MatchStatus] = mapped_column(
        MATCH_STATUS_ENUM, nullable=False, default=MatchStatus.PENDING
    )
    message: Mapped[str | None] = mapped_column(Text, nullable=True)
    requested_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    responded_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint("requester_id <> recipient_id", name="ck_match_requests_distinct_parties"),
        Index(
            "uq_match_requests_pending_triple",
            "requester_id",
            "recipient_id",
            "sport_key",
            unique=True,
            sqlite_where=text("status = 'pending'"),
            postgresql_where=text("status = 'pending'"),
        ),
        Index("ix_match_requests_requester_status", "requester_id", "status"),
        Index("ix_match_requests_recipient_status", "recipient_id", "status"),
    )

    def to_domain(self) -> MatchRequest:
        return MatchRequest(
            match_id=self.match_id,
            requester_id=self.requester_id,
            recipient_id=self.recipient_id,
            sport_id=self.sport_id,
            status=self.status,
            message=self.message,
            requested_at=_as_utc(self.requested_at),
            responded_at=_as_utc(self.responded_at),
        )


__all__ = [
    "ANY_SPORT_KEY",
    "Base",
    "MatchRequestRow",
    "SportRow",
    "UserProfileRow",
    "UserSportRow",
]
