"""
SM-2 spaced repetition scheduler.

Pure functions with no I/O. Callers that need deterministic results pass
``now`` explicitly; otherwise the local wall clock is used.

Quality ratings:
    5 - perfect response
    4 - correct response after hesitation
    3 - correct response with serious difficulty
    2 - incorrect response but recalled upon seeing answer
    1 - incorrect response, vaguely recalled
    0 - complete blackout
"""

import math
from collections.abc import Iterable
from dataclasses import replace
from datetime import datetime, timedelta

from vocabflow.domain.constants import (
    CORRECT_QUALITY_THRESHOLD,
    DEFAULT_EASE_FACTOR,
    FIRST_INTERVAL_DAYS,
    LAPSE_INTERVAL_DAYS,
    MAX_QUALITY,
    MIN_EASE_FACTOR,
    MIN_QUALITY,
    SECOND_INTERVAL_DAYS,
)
from vocabflow.domain.dates import end_of_day
from vocabflow.domain.errors import InvalidQualityError
from vocabflow.domain.review.models import ReviewCard, ReviewSchedule


def validate_quality(quality: object) -> int:
    """Return ``quality`` unchanged if it is an int on the 0-5 scale."""
    if isinstance(quality, bool) or not isinstance(quality, int):
        raise InvalidQualityError(quality)
    if not (MIN_QUALITY <= quality <= MAX_QUALITY):
        raise InvalidQualityError(quality)
    return quality


def _round_half_up(value: float) -> int:
    # Intervals are non-negative, so half-up equals half-away-from-zero.
    return int(math.floor(value + 0.5))


def compute_next_review(current: ReviewSchedule, quality: int) -> ReviewSchedule:
    """
    Apply one SM-2 review to a scheduling triple.

    Args:
        current: Repetitions, ease factor and interval before this review.
        quality: Recall quality 0-5.

    Returns:
        A new ReviewSchedule; ``current`` is left untouched.

    Raises:
        InvalidQualityError: If quality is not an integer in [0, 5].
    """
    validate_quality(quality)

    if quality < CORRECT_QUALITY_THRESHOLD:
        repetitions = 0
        interval = LAPSE_INTERVAL_DAYS
    else:
        repetitions = current.repetitions + 1
        if current.repetitions == 0:
            interval = FIRST_INTERVAL_DAYS
        elif current.repetitions == 1:
            interval = SECOND_INTERVAL_DAYS
        else:
            interval = _round_half_up(current.interval * current.ease_factor)

    # EF' = EF + (0.1 - (5-q) * (0.08 + (5-q) * 0.02)), applied on lapses too
    miss = MAX_QUALITY - quality
    ease_factor = current.ease_factor + (0.1 - miss * (0.08 + miss * 0.02))
    ease_factor = max(MIN_EASE_FACTOR, ease_factor)

    return ReviewSchedule(repetitions=repetitions, ease_factor=ease_factor, interval=interval)


def create_card(item_id: str, now: datetime | None = None) -> ReviewCard:
    """Create a fresh card for an item seen for the first time."""
    now = now or datetime.now()
    return ReviewCard(
        item_id=item_id,
        repetitions=0,
        ease_factor=DEFAULT_EASE_FACTOR,
        interval=0,
        next_review_at=now,
        last_reviewed_at=now,
    )


def apply_review_outcome(
    card: ReviewCard, quality: int, now: datetime | None = None
) -> ReviewCard:
    """
    Schedule the next review of ``card`` after a review rated ``quality``.

    The due date is ``interval`` calendar days after ``now`` on the local
    wall clock, so a DST change does not shift it by an hour.
    """
    result = compute_next_review(card.schedule, quality)
    now = now or datetime.now()
    return replace(
        card,
        repetitions=result.repetitions,
        ease_factor=result.ease_factor,
        interval=result.interval,
        next_review_at=now + timedelta(days=result.interval),
        last_reviewed_at=now,
    )


def build_review_queue(
    cards: Iterable[ReviewCard], now: datetime | None = None
) -> list[ReviewCard]:
    """
    Return the cards due on or before today, most overdue first.

    A card is due if its next review falls anywhere up to the end of the
    current local day.
    """
    cutoff = end_of_day(now or datetime.now())
    due = [card for card in cards if card.next_review_at <= cutoff]
    due.sort(key=lambda card: card.next_review_at)
    return due
