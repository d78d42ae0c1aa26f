"""Deterministic ordering and windowing of filtered candidates."""

from __future__ import annotations

import math
from typing import Generic, Iterable, TypeVar

from pydantic import BaseModel, Field, computed_field

from buddymatch.errors import InvalidPage
from buddymatch.matching.filters import CandidateResult

DEFAULT_PAGE_SIZE = 20
MAX_PAGE_SIZE = 50

T = TypeVar("T")


class Page(BaseModel, Generic[T]):
    """One window of an ordered result set."""

    items: list[T] = Field(default_factory=list)
    page: int = Field(..., ge=1)
    page_size: int = Field(..., ge=1)
    total: int = Field(..., ge=0)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total_pages(self) -> int:
        return math.ceil(self.total / self.page_size) if self.total else 0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def has_next(self) -> bool:
        return self.page < self.total_pages


def ranking_key(candidate: CandidateResult) -> tuple[float, bool, str]:
    """Nearest first, then verified before unverified, then by user id."""

    return (candidate.distance_km, not candidate.is_verified, candidate.user_id)


class CandidateRanker:
    """Orders candidates and cuts out the requested page."""

    def __init__(self, max_page_size: int = MAX_PAGE_SIZE) -> None:
        self.max_page_size = max(1, max_page_size)

    def clamp_page_size(self, page_size: int) -> int:
        return min(max(1, page_size), self.max_page_size)

    def rank(
        self,
        candidates: Iterable[CandidateResult],
        page: int = 1,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Page[CandidateResult]:
        """Return ``page`` (1-based) of the ordered candidates.

        Pages past the end are empty rather than an error.

        Raises:
            InvalidPage: if ``page`` is below 1.
        """
        if page < 1:
            raise InvalidPage(f"Page must be >= 1, got {page}")
        size = self.clamp_page_size(page_size)

        ordered = sorted(candidates, key=ranking_key)
        start = (page - 1) * size
        return Page[CandidateResult](
            items=ordered[start : start + size],
            page=page,
            page_size=size,
            total=len(ordered),
        )


__all__ = ["DEFAULT_PAGE_SIZE", "MAX_PAGE_SIZE", "CandidateRanker", "Page", "ranking_key"]
