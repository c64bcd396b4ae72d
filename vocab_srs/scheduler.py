import datetime
import math
from dataclasses import replace
from typing import Dict, Optional, Tuple

from .cards import MIN_EASINESS, ReviewState, as_utc, utcnow
from .errors import InvalidQualityError

QUALITY_LABELS: Dict[int, Tuple[str, str]] = {
    0: ("Blackout", "Complete failure to recall"),
    1: ("Wrong", "Incorrect, but recognized after"),
    2: ("Hard", "Incorrect, but easy to recall"),
    3: ("Difficult", "Correct with serious difficulty"),
    4: ("Good", "Correct after hesitation"),
    5: ("Perfect", "Perfect response"),
}

PASSING_QUALITY = 3


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def validate_quality(quality: object) -> int:
    # bool is an int subclass; True/False are not ratings.
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(f"Quality must be an integer 0-5, got {quality!r}")
    if quality < 0 or quality > 5:
        raise InvalidQualityError(f"Quality must be between 0 and 5, got {quality}")
    return quality


def sm2_schedule(
    interval: int,
    ease_factor: float,
    repetitions: int,
    quality: int,
) -> Tuple[int, float, int]:
    """
    SM-2 (SuperMemo 2) scheduling step.

    Quality grades (0-5):
      0 – complete blackout
      1 – incorrect, but recognized once shown
      2 – incorrect, but the answer seemed easy to recall
      3 – correct with serious difficulty
      4 – correct after hesitation
      5 – perfect recall

    Algorithm:
      1. Update the E-Factor and clamp it at 1.3.
      2. If quality < 3 (lapse): repetitions -> 0, interval -> 1.
         Otherwise increment repetitions and compute interval:
           n == 1  → 1 day
           n == 2  → 6 days
           n >= 3  → previous interval × updated E-Factor (rounded half up)

    The E-Factor is returned unrounded; callers round it for storage.

    Returns:
        (new_interval, new_ease_factor, new_repetitions)
    """
    quality = validate_quality(quality)

    new_ef = ease_factor + (0.1 - (5 - quality) * (0.08 + (5 - quality) * 0.02))
    if new_ef < MIN_EASINESS:
        new_ef = MIN_EASINESS

    if quality < PASSING_QUALITY:
        new_reps = 0
        new_interval = 1
    else:
        new_reps = repetitions + 1
        if new_reps == 1:
            new_interval = 1
        elif new_reps == 2:
            new_interval = 6
        else:
            # Old interval times the *new* E-Factor.
            new_interval = _round_half_up(interval * new_ef)

    return new_interval, new_ef, new_reps


def next_state(
    current: ReviewState,
    quality: int,
    now: Optional[datetime.datetime] = None,
) -> ReviewState:
    """Apply one rating to ``current`` and return the resulting state.

    Pure: no I/O, no randomness. ``now`` defaults to the current UTC time.
    Raises InvalidQualityError for ratings outside 0-5.
    """
    now = as_utc(now) if now is not None else utcnow()
    new_interval, new_ef, new_reps = sm2_schedule(
        current.interval, current.easiness_factor, current.repetitions, quality
    )
    return replace(
        current,
        easiness_factor=_round_half_up(new_ef * 100) / 100,
        interval=new_interval,
        repetitions=new_reps,
        next_review_at=now + datetime.timedelta(days=new_interval),
        last_reviewed_at=now,
    )


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''}"


def format_interval(days: int) -> str:
    """Human-readable review interval, e.g. ``6 days`` or ``2 months``."""
    if days == 0:
        return "New"
    if days == 1:
        return "1 day"
    if days < 7:
        return f"{days} days"
    if days < 30:
        return _plural(_round_half_up(days / 7), "week")
    if days < 365:
        return _plural(_round_half_up(days / 30), "month")
    return _plural(_round_half_up(days / 365), "year")


def time_until_review(state: ReviewState, now: Optional[datetime.datetime] = None) -> str:
    now = as_utc(now) if now is not None else utcnow()
    review_at = as_utc(state.next_review_at)
    if now >= review_at:
        return "Due now"

    remaining = review_at - now
    days = remaining.days
    hours = remaining.seconds // 3600
    if days > 0:
        return "In " + _plural(days, "day")
    if hours > 0:
        return "In " + _plural(hours, "hour")
    return "In less than an hour"
