"""
Progress ledger: the authoritative record of a learner's activity.

An explicit, observable store: one instance per session context, state held
as an immutable LedgerState snapshot, every mutation written through to the
storage port and followed by exactly one synchronous notification.
"""

import logging
from collections.abc import Callable
from dataclasses import fields, replace
from datetime import date, datetime, timedelta

from vocabflow.application.scheduler import (
    apply_review_outcome,
    build_review_queue,
    create_card,
    validate_quality,
)
from vocabflow.domain.constants import ANSWER_CHOICES, DEFAULT_DAILY_GOAL
from vocabflow.domain.errors import InvalidAnswerError
from vocabflow.domain.progress.models import (
    DailyActivity,
    LedgerState,
    Settings,
    TodayProgress,
    VideoProgress,
)
from vocabflow.domain.progress.ports import ProgressStorage
from vocabflow.domain.review.models import ReviewCard

logger = logging.getLogger(__name__)

Listener = Callable[[], None]
Clock = Callable[[], datetime]

_SETTING_NAMES = frozenset(f.name for f in fields(Settings))


class ProgressLedger:
    """
    Persisted, observable store of watch progress, answers, activity and cards.

    Follows Dependency Inversion: depends on the ProgressStorage port, not on
    a concrete backend. Designed for a single writer; there is no locking.
    """

    def __init__(
        self,
        storage: ProgressStorage,
        clock: Clock | None = None,
        default_goal: int = DEFAULT_DAILY_GOAL,
    ):
        """
        Args:
            storage: The port used to load and persist state.
            clock: Returns the current local datetime; defaults to datetime.now.
            default_goal: Daily goal used when nothing is stored yet.
        """
        self._storage = storage
        self._clock = clock or datetime.now
        self._default_goal = default_goal
        self._listeners: list[Listener] = []
        self._state = self._load()

    # ------------------------------------------------------------------
    # Observable store
    # ------------------------------------------------------------------

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; returns a function that removes it again."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def get_snapshot(self) -> LedgerState:
        return self._state

    # ------------------------------------------------------------------
    # Mutations
    # ------------------------------------------------------------------

    def mark_item_watched(self, item_id: str) -> None:
        """
        Mark an item as watched.

        Today's videos_watched counter only moves the first time an item
        becomes completed; repeat calls refresh watched_at only.
        """
        now = self._clock()
        state = self._state
        previous = state.video_progress.get(item_id) or VideoProgress(item_id=item_id)
        progress = {
            **state.video_progress,
            item_id: replace(previous, completed=True, watched_at=now),
        }

        if previous.completed:
            self._commit(replace(state, video_progress=progress))
            return

        activities = self._bump_activity(state.activities, now.date(), videos_watched=1)
        self._commit(replace(state, video_progress=progress, activities=activities))

    def record_answer(self, item_id: str, answer: str, is_correct: bool) -> None:
        """
        Record the learner's latest answer for an item.

        A correct answer increments today's correct_answers. Recording a later
        wrong answer overwrites the stored choice but never takes a prior
        increment back.

        Raises:
            InvalidAnswerError: If answer is not one of A-D.
        """
        letter = str(answer).strip().upper()
        if letter not in ANSWER_CHOICES:
            raise InvalidAnswerError(answer)

        state = self._state
        previous = state.video_progress.get(item_id) or VideoProgress(item_id=item_id)
        progress = {
            **state.video_progress,
            item_id: replace(previous, answer_selected=letter, is_correct=bool(is_correct)),
        }

        if not is_correct:
            self._commit(replace(state, video_progress=progress))
            return

        activities = self._bump_activity(
            state.activities, self._clock().date(), correct_answers=1
        )
        self._commit(replace(state, video_progress=progress, activities=activities))

    def toggle_favorite(self, item_id: str) -> bool:
        """Add or remove ``item_id`` from favorites. Returns the new membership."""
        favorites = self._state.favorites
        if item_id in favorites:
            updated = tuple(f for f in favorites if f != item_id)
        else:
            updated = favorites + (item_id,)
        self._commit(replace(self._state, favorites=updated))
        return item_id in updated

    def set_daily_goal(self, goal: int) -> None:
        if isinstance(goal, bool) or not isinstance(goal, int) or goal < 1:
            raise ValueError(f"Daily goal must be a positive integer, got {goal!r}")
        self._commit(replace(self._state, daily_goal=goal))

    def update_settings(self, **changes) -> Settings:
        """Merge ``changes`` into the current settings and return the result."""
        unknown = set(changes) - _SETTING_NAMES
        if unknown:
            raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")
        if "dark_mode" in changes and not isinstance(changes["dark_mode"], bool):
            raise ValueError(f"dark_mode must be a boolean, got {changes['dark_mode']!r}")
        if "playback_speed" in changes:
            speed = changes["playback_speed"]
            if isinstance(speed, bool) or not isinstance(speed, (int, float)) or not speed > 0:
                raise ValueError(f"Playback speed must be a positive number, got {speed!r}")
            changes["playback_speed"] = float(speed)
        settings = replace(self._state.settings, **changes)
        self._commit(replace(self._state, settings=settings))
        return settings

    def record_review(self, item_id: str, quality: int) -> ReviewCard:
        """
        Run one SM-2 review for ``item_id`` and persist the updated card.

        The card is created on first exposure.

        Raises:
            InvalidQualityError: If quality is not an integer in [0, 5].
        """
        validate_quality(quality)
        now = self._clock()
        card = self._state.review_cards.get(item_id) or create_card(item_id, now=now)
        updated = apply_review_outcome(card, quality, now=now)
        cards = {**self._state.review_cards, item_id: updated}
        self._commit(replace(self._state, review_cards=cards))
        logger.debug(
            f"Reviewed {item_id} q={quality}: interval={updated.interval}d "
            f"ef={updated.ease_factor:.2f}"
        )
        return updated

    def reset(self) -> None:
        """Discard all progress and restore defaults."""
        self._commit(LedgerState(daily_goal=self._default_goal))

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_progress(self, item_id: str) -> VideoProgress:
        """Progress for ``item_id``; an untouched record if it was never seen."""
        return self._state.video_progress.get(item_id) or VideoProgress(item_id=item_id)

    def is_favorite(self, item_id: str) -> bool:
        return item_id in self._state.favorites

    def get_streak(self) -> int:
        """
        Count consecutive active days ending today, or yesterday if today
        has no activity yet.
        """
        active_days = {activity.date for activity in self._state.activities}
        if not active_days:
            return 0

        today = self._clock().date()
        yesterday = today - timedelta(days=1)
        if today in active_days:
            anchor = today
        elif yesterday in active_days:
            anchor = yesterday
        else:
            return 0

        streak = 0
        expected = anchor
        while expected in active_days:
            streak += 1
            expected -= timedelta(days=1)
        return streak

    def get_today_progress(self) -> TodayProgress:
        today = self._state.activity_on(self._clock().date())
        return TodayProgress(
            completed=today.videos_watched if today else 0,
            goal=self._state.daily_goal,
        )

    def get_completed_count(self) -> int:
        return sum(1 for p in self._state.video_progress.values() if p.completed)

    def get_answered_count(self) -> int:
        return sum(1 for p in self._state.video_progress.values() if p.answered)

    def get_wrong_answers(self) -> list[VideoProgress]:
        """Items whose latest recorded answer was wrong, ordered by item id."""
        wrong = [p for p in self._state.video_progress.values() if p.is_correct is False]
        return sorted(wrong, key=lambda p: p.item_id)

    def get_card(self, item_id: str) -> ReviewCard | None:
        return self._state.review_cards.get(item_id)

    def get_review_queue(self) -> list[ReviewCard]:
        return build_review_queue(self._state.review_cards.values(), now=self._clock())

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _load(self) -> LedgerState:
        blob = self._storage.load()
        if blob is None:
            return LedgerState(daily_goal=self._default_goal)
        try:
            return LedgerState.from_dict(blob, default_goal=self._default_goal)
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning(f"Stored progress is unreadable, starting fresh: {e}")
            return LedgerState(daily_goal=self._default_goal)

    @staticmethod
    def _bump_activity(
        activities: tuple[DailyActivity, ...],
        day: date,
        videos_watched: int = 0,
        correct_answers: int = 0,
    ) -> tuple[DailyActivity, ...]:
        """
        Return ``activities`` with ``day``'s counters incremented (lookup-or-create).

        A new day is inserted at its date position so the tuple stays sorted.
        """
        bumped = []
        found = False
        for activity in activities:
            if activity.date == day:
                activity = replace(
                    activity,
                    videos_watched=activity.videos_watched + videos_watched,
                    correct_answers=activity.correct_answers + correct_answers,
                )
                found = True
            bumped.append(activity)
        if not found:
            position = next(
                (i for i, activity in enumerate(bumped) if activity.date > day), len(bumped)
            )
            bumped.insert(
                position,
                DailyActivity(
                    date=day,
                    videos_watched=videos_watched,
                    correct_answers=correct_answers,
                ),
            )
        return tuple(bumped)

    def _commit(self, state: LedgerState) -> None:
        self._state = state
        if not self._storage.save(state.to_dict()):
            logger.warning("Progress could not be persisted; keeping in-memory state")
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as e:
                logger.error(f"Progress listener failed: {e}", exc_info=True)
