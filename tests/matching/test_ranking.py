"""Tests for candidate ordering and pagination."""

import random

import pytest

from buddymatch.domain import SkillLevel
from buddymatch.errors import InvalidPage
from buddymatch.matching.filters import CandidateResult
from buddymatch.matching.ranking import CandidateRanker


def _candidate(user_id: str, distance: float, verified: bool = False) -> CandidateResult:
    return CandidateResult(
        user_id=user_id,
        display_name=user_id,
        sport_id="tennis",
        skill_level=SkillLevel.BEGINNER,
        is_verified=verified,
        distance_km=distance,
        max_travel_distance_km=50,
    )


def test_orders_by_distance_then_verified_then_id():
    candidates = [
        _candidate("zed", 5.0, verified=False),
        _candidate("amy", 5.0, verified=False),
        _candidate("kim", 5.0, verified=True),
        _candidate("bob", 1.0, verified=False),
        _candidate("far", 30.0, verified=True),
    ]

    page = CandidateRanker().rank(candidates, page=1, page_size=10)

    assert [c.user_id for c in page.items] == ["bob", "kim", "amy", "zed", "far"]
    assert page.total == 5
    assert page.total_pages == 1
    assert page.has_next is False


def test_ordering_independent_of_input_order():
    candidates = [_candidate(f"u{i}", float(i % 3), verified=i % 2 == 0) for i in range(20)]
    shuffled = candidates[:]
    random.Random(7).shuffle(shuffled)

    ranker = CandidateRanker()
    assert ranker.rank(candidates, page_size=50).items == ranker.rank(shuffled, page_size=50).items


@pytest.mark.parametrize("page_size", [1, 3, 7, 50])
def test_pages_concatenate_to_full_result(page_size):
    rng = random.Random(page_size)
    candidates = [
        _candidate(f"user-{i:02d}", float(rng.randint(0, 5)), verified=rng.random() > 0.5)
        for i in range(23)
    ]
    ranker = CandidateRanker()
    first = ranker.rank(candidates, page=1, page_size=page_size)

    collected = []
    for number in range(1, first.total_pages + 1):
        collected.extend(ranker.rank(candidates, page=number, page_size=page_size).items)

    assert len(collected) == len(candidates)
    assert len({c.user_id for c in collected}) == len(candidates)
    assert collected == ranker.rank(candidates, page=1, page_size=50).items

    beyond = ranker.rank(candidates, page=first.total_pages + 1, page_size=page_size)
    assert beyond.items == []
    assert beyond.total == len(candidates)


def test_page_size_is_clamped():
    candidates = [_candidate(f"u{i:03d}", float(i)) for i in range(120)]
    ranker = CandidateRanker(max_page_size=50)

    big = ranker.rank(candidates, page=1, page_size=500)
    tiny = ranker.rank(candidates, page=1, page_size=0)

    assert big.page_size == 50
    assert len(big.items) == 50
    assert big.has_next is True
    assert tiny.page_size == 1
    assert len(tiny.items) == 1


def test_empty_result_has_no_pages():
    page = CandidateRanker().rank([], page=1)

    assert page.items == []
    assert page.total_pages == 0
    assert page.has_next is False


def test_invalid_page_number():
    with pytest.raises(InvalidPage):
        CandidateRanker().rank([], page=0)
