import datetime

import pytest

from vocab_srs.cards import ReviewState, create_initial
from vocab_srs.errors import InvalidQualityError
from vocab_srs.scheduler import (
    QUALITY_LABELS,
    format_interval,
    next_state,
    sm2_schedule,
    time_until_review,
)

NOW = datetime.datetime(2024, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


def make_state(ef: float = 2.5, interval: int = 0, repetitions: int = 0) -> ReviewState:
    return ReviewState(
        item_id="w1",
        easiness_factor=ef,
        interval=interval,
        repetitions=repetitions,
        next_review_at=NOW,
    )


def test_create_initial_is_new_and_due_now():
    state = create_initial("w1", NOW)
    assert state.easiness_factor == 2.5
    assert state.interval == 0
    assert state.repetitions == 0
    assert state.next_review_at == NOW
    assert state.last_reviewed_at is None
    assert state.is_new


def test_three_perfect_reviews_follow_1_6_then_ef_growth():
    s1 = next_state(create_initial("w1", NOW), 5, NOW)
    assert (s1.interval, s1.repetitions) == (1, 1)
    assert s1.easiness_factor == 2.6

    s2 = next_state(s1, 5, NOW)
    assert (s2.interval, s2.repetitions) == (6, 2)
    assert s2.easiness_factor == 2.7

    s3 = next_state(s2, 5, NOW)
    assert s3.repetitions == 3
    assert s3.easiness_factor == 2.8
    # old interval (6) times the new EF (2.8)
    assert s3.interval == round(6 * 2.8)


def test_lapse_from_mature_card_resets_to_tomorrow():
    state = make_state(ef=2.6, interval=30, repetitions=5)
    result = next_state(state, 1, NOW)
    assert result.interval == 1
    assert result.repetitions == 0
    assert result.next_review_at == NOW + datetime.timedelta(days=1)
    assert result.last_reviewed_at == NOW


@pytest.mark.parametrize("quality", [0, 1, 2])
@pytest.mark.parametrize("interval,repetitions", [(0, 0), (1, 1), (6, 2), (120, 9)])
def test_failures_always_reset(quality, interval, repetitions):
    result = next_state(make_state(interval=interval, repetitions=repetitions), quality, NOW)
    assert result.repetitions == 0
    assert result.interval == 1


@pytest.mark.parametrize("quality", [3, 4, 5])
def test_success_increments_repetitions(quality):
    result = next_state(make_state(interval=6, repetitions=2), quality, NOW)
    assert result.repetitions == 3
    assert result.interval >= 1


def test_easiness_non_decreasing_in_quality():
    efs = [next_state(make_state(ef=2.2, interval=6, repetitions=2), q, NOW).easiness_factor
           for q in range(6)]
    assert efs == sorted(efs)


def test_easiness_never_below_floor_after_repeated_blackouts():
    state = create_initial("w1", NOW)
    for _ in range(20):
        state = next_state(state, 0, NOW)
        assert state.easiness_factor >= 1.3
    assert state.easiness_factor == 1.3


def test_third_review_uses_updated_easiness():
    # q=3 lowers EF 2.5 -> 2.36; 10 * 2.36 = 23.6 -> 24 (old EF would give 25)
    interval, ef, reps = sm2_schedule(10, 2.5, 2, 3)
    assert reps == 3
    assert ef == pytest.approx(2.36)
    assert interval == 24


def test_interval_rounds_half_up():
    # q=4 leaves EF at 2.5, so 5 * 2.5 is exactly 12.5; banker's rounding would give 12
    interval, ef, _ = sm2_schedule(5, 2.5, 3, 4)
    assert ef == 2.5
    assert interval == 13


def test_stored_easiness_is_rounded_to_two_places():
    result = next_state(make_state(ef=2.5, interval=6, repetitions=2), 3, NOW)
    assert result.easiness_factor == 2.36
    assert round(result.easiness_factor, 2) == result.easiness_factor


@pytest.mark.parametrize("quality", [-1, 6, 10, 2.5, "5", None, True])
def test_out_of_range_quality_is_rejected(quality):
    with pytest.raises(InvalidQualityError):
        next_state(make_state(), quality, NOW)


def test_next_state_keeps_item_id():
    assert next_state(make_state(), 4, NOW).item_id == "w1"


def test_quality_labels_cover_full_range():
    assert sorted(QUALITY_LABELS) == [0, 1, 2, 3, 4, 5]
    assert QUALITY_LABELS[0][0] == "Blackout"
    assert QUALITY_LABELS[5][0] == "Perfect"


@pytest.mark.parametrize("days,expected", [
    (0, "New"),
    (1, "1 day"),
    (6, "6 days"),
    (7, "1 week"),
    (15, "2 weeks"),
    (45, "2 months"),
    (400, "1 year"),
    (800, "2 years"),
])
def test_format_interval(days, expected):
    assert format_interval(days) == expected


def test_time_until_review():
    state = make_state()
    assert time_until_review(state, NOW) == "Due now"
    later = ReviewState(item_id="w1", next_review_at=NOW + datetime.timedelta(days=3, hours=2))
    assert time_until_review(later, NOW) == "In 3 days"
    soon = ReviewState(item_id="w1", next_review_at=NOW + datetime.timedelta(hours=5))
    assert time_until_review(soon, NOW) == "In 5 hours"
    very_soon = ReviewState(item_id="w1", next_review_at=NOW + datetime.timedelta(minutes=20))
    assert time_until_review(very_soon, NOW) == "In less than an hour"
