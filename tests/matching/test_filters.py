"""Tests for candidate eligibility predicates."""

import random
from datetime import UTC, datetime

import pytest

from buddymatch.domain import (
    CandidateRecord,
    Coordinate,
    DayOfWeek,
    MatchRequest,
    MatchStatus,
    SkillLevel,
    Sport,
    TimeOfDay,
)
from buddymatch.errors import MissingLocation
from buddymatch.matching.filters import CandidateFilter, FilterSpec, build_exclusion_set
from buddymatch.matching.geo import distance_km


@pytest.fixture
def requester(make_profile, origin):
    return make_profile("alice", location=origin, max_travel_distance_km=50)


@pytest.fixture
def requester_prefs(make_preference):
    return [make_preference("alice", "tennis", SkillLevel.INTERMEDIATE)]


def _record(profile, *preferences):
    return CandidateRecord(profile=profile, preferences=tuple(preferences))


def _request(requester_id, recipient_id, status, sport_id="tennis"):
    return MatchRequest(
        match_id=f"{requester_id}-{recipient_id}-{status.value}",
        requester_id=requester_id,
        recipient_id=recipient_id,
        sport_id=sport_id,
        status=status,
        requested_at=datetime.now(UTC),
    )


def test_candidate_own_travel_limit_is_respected(
    requester, requester_prefs, make_profile, make_preference, at_km
):
    """B at 10 km is suggested; C at 40 km with a 20 km limit is not."""
    bob = make_profile("bob", location=at_km(10), max_travel_distance_km=30)
    carol = make_profile("carol", location=at_km(40), max_travel_distance_km=20)
    pool = [
        _record(bob, make_preference("bob", "tennis", SkillLevel.INTERMEDIATE)),
        _record(carol, make_preference("carol", "tennis", SkillLevel.INTERMEDIATE)),
    ]
    spec = FilterSpec(sport_id="tennis", skill_level=SkillLevel.INTERMEDIATE, max_distance_km=50)

    results = CandidateFilter(spec, {"tennis": Sport(sport_id="tennis", name="Tennis")}).apply(
        requester, requester_prefs, pool
    )

    assert [r.user_id for r in results] == ["bob"]
    assert results[0].distance_km == pytest.approx(10, abs=1e-6)
    assert results[0].sport_name == "Tennis"
    assert results[0].skill_level is SkillLevel.INTERMEDIATE


def test_requester_radius_applies(requester, requester_prefs, make_profile, make_preference, at_km):
    far = make_profile("dan", location=at_km(30), max_travel_distance_km=100)
    spec = FilterSpec(sport_id="tennis", max_distance_km=25)

    results = CandidateFilter(spec).apply(
        requester, requester_prefs, [_record(far, make_preference("dan"))]
    )

    assert results == []


def test_skill_filter_is_exact(requester, requester_prefs, make_profile, make_preference, at_km):
    pool = [
        _record(make_profile("b1", location=at_km(1)), make_preference("b1", skill=SkillLevel.BEGINNER)),
        _record(make_profile("b2", location=at_km(2)), make_preference("b2", skill=SkillLevel.ADVANCED)),
        _record(make_profile("b3", location=at_km(3)), make_preference("b3", skill=SkillLevel.EXPERT)),
    ]
    spec = FilterSpec(sport_id="tennis", skill_level=SkillLevel.ADVANCED)

    results = CandidateFilter(spec).apply(requester, requester_prefs, pool)

    assert [r.user_id for r in results] == ["b2"]


def test_sport_filter_requires_preference(requester, requester_prefs, make_profile, make_preference, at_km):
    runner = make_profile("runner", location=at_km(1))
    pool = [_record(runner, make_preference("runner", "running"))]

    results = CandidateFilter(FilterSpec(sport_id="tennis")).apply(requester, requester_prefs, pool)

    assert results == []


def test_sport_agnostic_search_uses_shared_sports(make_profile, make_preference, origin, at_km):
    requester = make_profile("alice", location=origin)
    prefs = [
        make_preference("alice", "running"),
        make_preference("alice", "tennis"),
    ]
    pool = [
        _record(
            make_profile("bob", location=at_km(2)),
            make_preference("bob", "tennis"),
            make_preference("bob", "running"),
        ),
        _record(make_profile("carl", location=at_km(3)), make_preference("carl", "climbing")),
    ]

    results = CandidateFilter(FilterSpec()).apply(requester, prefs, pool)

    assert [r.user_id for r in results] == ["bob"]
    # Lowest shared sport id wins.
    assert results[0].sport_id == "running"


def test_requester_without_sports_gets_nothing(make_profile, make_preference, origin, at_km):
    requester = make_profile("alice", location=origin)
    pool = [_record(make_profile("bob", location=at_km(1)), make_preference("bob"))]

    assert CandidateFilter(FilterSpec()).apply(requester, [], pool) == []


def test_candidate_without_location_is_excluded(requester, requester_prefs, make_profile, make_preference):
    nowhere = make_profile("nomad", location=None)

    results = CandidateFilter(FilterSpec(sport_id="tennis")).apply(
        requester, requester_prefs, [_record(nowhere, make_preference("nomad"))]
    )

    assert results == []


def test_requester_without_location_fails(make_profile, requester_prefs):
    requester = make_profile("alice", location=None)

    with pytest.raises(MissingLocation):
        CandidateFilter(FilterSpec(sport_id="tennis")).apply(requester, requester_prefs, [])


def test_schedule_overlap(requester, requester_prefs, make_profile, make_preference, at_km):
    weekend = make_profile(
        "wendy",
        location=at_km(1),
        preferred_days=frozenset({DayOfWeek.SATURDAY, DayOfWeek.SUNDAY}),
        preferred_times=frozenset({TimeOfDay.MORNING}),
    )
    weekday = make_profile(
        "will",
        location=at_km(2),
        preferred_days=frozenset({DayOfWeek.MONDAY}),
        preferred_times=frozenset({TimeOfDay.MORNING}),
    )
    pool = [
        _record(weekend, make_preference("wendy")),
        _record(weekday, make_preference("will")),
    ]

    by_day = CandidateFilter(
        FilterSpec(sport_id="tennis", days=frozenset({DayOfWeek.SUNDAY}))
    ).apply(requester, requester_prefs, pool)
    by_time = CandidateFilter(
        FilterSpec(sport_id="tennis", times=frozenset({TimeOfDay.EVENING}))
    ).apply(requester, requester_prefs, pool)
    unconstrained = CandidateFilter(
        FilterSpec(sport_id="tennis", days=frozenset())
    ).apply(requester, requester_prefs, pool)

    assert [r.user_id for r in by_day] == ["wendy"]
    assert by_time == []
    assert {r.user_id for r in unconstrained} == {"wendy", "will"}


def test_self_and_inactive_profiles_are_dropped(requester, requester_prefs, make_profile, make_preference, at_km):
    pool = [
        _record(requester, make_preference("alice")),
        _record(make_profile("idle", location=at_km(1), active=False), make_preference("idle")),
    ]

    assert CandidateFilter(FilterSpec(sport_id="tennis")).apply(requester, requester_prefs, pool) == []


def test_exclusion_set_scoped_to_sport_and_status():
    requests = [
        _request("alice", "bob", MatchStatus.PENDING),
        _request("carol", "alice", MatchStatus.ACCEPTED),
        _request("alice", "dave", MatchStatus.REJECTED),
        _request("alice", "erin", MatchStatus.CANCELED),
        _request("alice", "frank", MatchStatus.PENDING, sport_id="running"),
        _request("gina", "hank", MatchStatus.PENDING),
    ]

    assert build_exclusion_set("alice", requests, "tennis") == {"bob", "carol"}
    assert build_exclusion_set("alice", requests, None) == {"bob", "carol", "frank"}


def test_excluded_candidates_are_not_rediscovered(
    requester, requester_prefs, make_profile, make_preference, at_km
):
    pool = [
        _record(make_profile("bob", location=at_km(1)), make_preference("bob")),
        _record(make_profile("carol", location=at_km(2)), make_preference("carol")),
    ]

    results = CandidateFilter(FilterSpec(sport_id="tennis")).apply(
        requester, requester_prefs, pool, excluded=frozenset({"bob"})
    )

    assert [r.user_id for r in results] == ["carol"]


@pytest.mark.parametrize("seed", range(10))
def test_every_result_satisfies_active_predicates(seed, make_profile, make_preference, origin):
    """Randomized pools: each output candidate passes every predicate."""
    rng = random.Random(seed)
    sports = ["tennis", "running", "climbing"]
    skills = list(SkillLevel)
    days = list(DayOfWeek)
    times = list(TimeOfDay)

    requester = make_profile("requester", location=origin)
    requester_prefs = [make_preference("requester", rng.choice(sports))]

    pool = []
    for i in range(60):
        location = None
        if rng.random() > 0.1:
            location = Coordinate(
                latitude=origin.latitude + rng.uniform(-1, 1),
                longitude=origin.longitude + rng.uniform(-1, 1),
            )
        profile = make_profile(
            f"user-{i:03d}",
            location=location,
            max_travel_distance_km=rng.choice([5, 20, 50, 100]),
            preferred_days=frozenset(rng.sample(days, rng.randint(0, 3))),
            preferred_times=frozenset(rng.sample(times, rng.randint(0, 2))),
            is_verified=rng.random() > 0.5,
        )
        prefs = [
            make_preference(profile.user_id, sport, rng.choice(skills))
            for sport in rng.sample(sports, rng.randint(1, 3))
        ]
        pool.append(_record(profile, *prefs))

    spec = FilterSpec(
        sport_id=rng.choice([None, *sports]),
        skill_level=rng.choice([None, *skills]),
        max_distance_km=rng.choice([10, 30, 60, 150]),
        days=frozenset(rng.sample(days, 2)) if rng.random() > 0.5 else None,
        times=frozenset(rng.sample(times, 2)) if rng.random() > 0.5 else None,
    )

    results = CandidateFilter(spec).apply(requester, requester_prefs, pool)
    profiles = {record.profile.user_id: record for record in pool}
    allowed = {spec.sport_id} if spec.sport_id else {p.sport_id for p in requester_prefs}

    for result in results:
        record = profiles[result.user_id]
        profile = record.profile
        assert profile.location is not None
        distance = distance_km(origin, profile.location)
        assert result.distance_km == pytest.approx(distance)
        assert distance <= min(spec.max_distance_km, profile.max_travel_distance_km)
        assert result.sport_id in allowed
        matched = next(p for p in record.preferences if p.sport_id == result.sport_id)
        assert matched.skill_level is result.skill_level
        if spec.skill_level is not None:
            assert result.skill_level is spec.skill_level
        if spec.days:
            assert profile.preferred_days & spec.days
        if spec.times:
            assert profile.preferred_times & spec.times

    # Nothing eligible was dropped either.
    result_ids = {r.user_id for r in results}
    for record in pool:
        profile = record.profile
        if profile.user_id in result_ids or profile.location is None:
            continue
        distance = distance_km(origin, profile.location)
        eligible_prefs = [
            p
            for p in record.preferences
            if p.sport_id in allowed and (spec.skill_level is None or p.skill_level is spec.skill_level)
        ]
        passes = (
            eligible_prefs
            and distance <= min(spec.max_distance_km, profile.max_travel_distance_km)
            and (not spec.days or profile.preferred_days & spec.days)
            and (not spec.times or profile.preferred_times & spec.times)
        )
        assert not passes
