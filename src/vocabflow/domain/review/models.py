"""
Domain models for SM-2 review scheduling.

These are pure data structures with no I/O or external dependencies.
"""

from dataclasses import dataclass
from datetime import datetime
from typing import Any

from vocabflow.domain.dates import parse_timestamp


@dataclass(frozen=True)
class ReviewSchedule:
    """
    The SM-2 scheduling triple carried from one review to the next.

    Attributes:
        repetitions: Consecutive correct reviews since the last lapse.
        ease_factor: Interval growth multiplier (never below 1.3).
        interval: Days until the next review.
    """

    repetitions: int
    ease_factor: float
    interval: int


@dataclass(frozen=True)
class ReviewCard:
    """
    Spaced-repetition state for one learnable item.

    Created on first exposure and only ever replaced by the scheduler.
    """

    item_id: str
    repetitions: int
    ease_factor: float
    interval: int  # days
    next_review_at: datetime
    last_reviewed_at: datetime

    @property
    def schedule(self) -> ReviewSchedule:
        return ReviewSchedule(
            repetitions=self.repetitions,
            ease_factor=self.ease_factor,
            interval=self.interval,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "itemId": self.item_id,
            "repetitions": self.repetitions,
            "easeFactor": self.ease_factor,
            "interval": self.interval,
            "nextReview": self.next_review_at.isoformat(),
            "lastReviewed": self.last_reviewed_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ReviewCard":
        return cls(
            item_id=str(data["itemId"]),
            repetitions=int(data["repetitions"]),
            ease_factor=float(data["easeFactor"]),
            interval=int(data["interval"]),
            next_review_at=parse_timestamp(data["nextReview"]),
            last_reviewed_at=parse_timestamp(data["lastReviewed"]),
        )
