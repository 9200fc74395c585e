"""
Domain models for the local progress ledger.

These are pure data structures with no I/O or external dependencies.
Every value is frozen: the ledger replaces records instead of mutating them,
so a snapshot handed to a subscriber never changes underneath it.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any

from vocabflow.domain.constants import (
    DEFAULT_DAILY_GOAL,
    DEFAULT_PLAYBACK_SPEED,
    STATE_VERSION,
)
from vocabflow.domain.dates import parse_date, parse_timestamp
from vocabflow.domain.review.models import ReviewCard


@dataclass(frozen=True)
class VideoProgress:
    """
    Session outcome for one item.

    Attributes:
        item_id: Catalog identifier of the video/question.
        completed: True once the item has been marked watched.
        watched_at: When it was last marked watched.
        answer_selected: Latest answer letter (A-D), set together with is_correct.
        is_correct: Whether the latest answer was correct.
    """

    item_id: str
    completed: bool = False
    watched_at: datetime | None = None
    answer_selected: str | None = None
    is_correct: bool | None = None

    @property
    def answered(self) -> bool:
        return self.is_correct is not None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"itemId": self.item_id, "completed": self.completed}
        if self.watched_at is not None:
            data["watchedAt"] = self.watched_at.isoformat()
        if self.answered:
            data["answerSelected"] = self.answer_selected
            data["isCorrect"] = self.is_correct
        return data

    @classmethod
    def from_dict(cls, item_id: str, data: Mapping[str, Any]) -> "VideoProgress":
        watched_at = data.get("watchedAt")
        answer = data.get("answerSelected")
        is_correct = data.get("isCorrect")
        # Half-recorded answers are dropped.
        if answer is None or is_correct is None:
            answer, is_correct = None, None
        return cls(
            item_id=str(data.get("itemId", item_id)),
            completed=bool(data.get("completed", False)),
            watched_at=parse_timestamp(watched_at) if watched_at else None,
            answer_selected=str(answer) if answer is not None else None,
            is_correct=bool(is_correct) if is_correct is not None else None,
        )


@dataclass(frozen=True)
class DailyActivity:
    """Activity counters for one local calendar day."""

    date: date
    videos_watched: int = 0
    correct_answers: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date.isoformat(),
            "videosWatched": self.videos_watched,
            "correctAnswers": self.correct_answers,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "DailyActivity":
        videos_watched = int(data.get("videosWatched", 0))
        correct_answers = int(data.get("correctAnswers", 0))
        if videos_watched < 0 or correct_answers < 0:
            raise ValueError(f"Negative activity counters for {data['date']}")
        return cls(
            date=parse_date(data["date"]),
            videos_watched=videos_watched,
            correct_answers=correct_answers,
        )


@dataclass(frozen=True)
class Settings:
    """User preferences persisted alongside progress."""

    dark_mode: bool = False
    playback_speed: float = DEFAULT_PLAYBACK_SPEED

    def to_dict(self) -> dict[str, Any]:
        return {"darkMode": self.dark_mode, "playbackSpeed": self.playback_speed}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Settings":
        return cls(
            dark_mode=bool(data.get("darkMode", False)),
            playback_speed=float(data.get("playbackSpeed", DEFAULT_PLAYBACK_SPEED)),
        )


@dataclass(frozen=True)
class TodayProgress:
    completed: int
    goal: int


@dataclass(frozen=True)
class LedgerState:
    """
    Full persisted state of the progress ledger.

    Mappings are never mutated in place; the ledger builds a new state for
    every change.
    """

    video_progress: Mapping[str, VideoProgress] = field(default_factory=dict)
    activities: tuple[DailyActivity, ...] = ()
    favorites: tuple[str, ...] = ()
    daily_goal: int = DEFAULT_DAILY_GOAL
    settings: Settings = field(default_factory=Settings)
    review_cards: Mapping[str, ReviewCard] = field(default_factory=dict)

    def activity_on(self, day: date) -> DailyActivity | None:
        for activity in self.activities:
            if activity.date == day:
                return activity
        return None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the versioned blob handed to storage."""
        return {
            "state": {
                "videoProgress": {k: v.to_dict() for k, v in self.video_progress.items()},
                "dailyGoal": self.daily_goal,
                "activities": [a.to_dict() for a in self.activities],
                "favorites": list(self.favorites),
                "settings": self.settings.to_dict(),
                "reviewCards": {k: c.to_dict() for k, c in self.review_cards.items()},
            },
            "version": STATE_VERSION,
        }

    @classmethod
    def from_dict(
        cls, blob: Mapping[str, Any], default_goal: int = DEFAULT_DAILY_GOAL
    ) -> "LedgerState":
        """
        Decode a stored blob. Missing sections take their defaults.

        Raises:
            KeyError, TypeError, ValueError: If the blob is structurally invalid.
        """
        data = blob.get("state", blob)
        if not isinstance(data, Mapping):
            raise TypeError(f"Expected a mapping for ledger state, got {type(data).__name__}")

        progress = {
            str(item_id): VideoProgress.from_dict(str(item_id), record)
            for item_id, record in data.get("videoProgress", {}).items()
        }

        # Merge duplicate dates so each day has a single entry.
        merged: dict[date, DailyActivity] = {}
        for record in data.get("activities", []):
            activity = DailyActivity.from_dict(record)
            existing = merged.get(activity.date)
            if existing is not None:
                activity = DailyActivity(
                    date=activity.date,
                    videos_watched=existing.videos_watched + activity.videos_watched,
                    correct_answers=existing.correct_answers + activity.correct_answers,
                )
            merged[activity.date] = activity

        favorites = tuple(dict.fromkeys(str(f) for f in data.get("favorites", [])))

        cards = {
            str(item_id): ReviewCard.from_dict(record)
            for item_id, record in data.get("reviewCards", {}).items()
        }

        daily_goal = int(data.get("dailyGoal", default_goal))
        if daily_goal < 1:
            raise ValueError(f"Daily goal must be positive, got {daily_goal}")

        return cls(
            video_progress=progress,
            activities=tuple(sorted(merged.values(), key=lambda a: a.date)),
            favorites=favorites,
            daily_goal=daily_goal,
            settings=Settings.from_dict(data.get("settings", {})),
            review_cards=cards,
        )
