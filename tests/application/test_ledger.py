from datetime import date, datetime, timedelta
from unittest.mock import MagicMock

import pytest

from vocabflow.application.ledger import ProgressLedger
from vocabflow.domain.errors import InvalidAnswerError, InvalidQualityError
from vocabflow.domain.progress.models import DailyActivity, LedgerState, Settings
from vocabflow.infrastructure.adapters.storage import InMemoryStorage


def _today(ledger, clock) -> DailyActivity | None:
    return ledger.get_snapshot().activity_on(clock().date())


# --- Defaults ---


def test_fresh_ledger_defaults(ledger):
    state = ledger.get_snapshot()
    assert state == LedgerState()
    assert state.daily_goal == 10
    assert state.settings == Settings(dark_mode=False, playback_speed=1.0)


def test_default_goal_only_applies_without_stored_state(storage, clock):
    ledger = ProgressLedger(storage, clock=clock, default_goal=5)
    assert ledger.get_today_progress().goal == 5

    ledger.set_daily_goal(12)
    reloaded = ProgressLedger(storage, clock=clock, default_goal=5)
    assert reloaded.get_today_progress().goal == 12


def test_unknown_item_returns_empty_progress(ledger):
    progress = ledger.get_progress("nope")
    assert progress.item_id == "nope"
    assert progress.completed is False
    assert progress.answer_selected is None
    assert progress.is_correct is None
    assert ledger.get_card("nope") is None
    assert ledger.is_favorite("nope") is False


# --- mark_item_watched ---


def test_mark_item_watched(ledger, clock):
    ledger.mark_item_watched("113-1")

    progress = ledger.get_progress("113-1")
    assert progress.completed is True
    assert progress.watched_at == clock()
    assert _today(ledger, clock) == DailyActivity(clock().date(), 1, 0)


def test_mark_item_watched_counts_each_item_once(ledger, clock):
    ledger.mark_item_watched("113-1")
    clock.advance(minutes=5)
    ledger.mark_item_watched("113-1")

    assert _today(ledger, clock).videos_watched == 1
    assert ledger.get_progress("113-1").watched_at == clock()


def test_mark_item_watched_counts_distinct_items(ledger, clock):
    ledger.mark_item_watched("113-1")
    ledger.mark_item_watched("113-2")

    activities = ledger.get_snapshot().activities
    assert len(activities) == 1
    assert activities[0].videos_watched == 2


def test_rewatch_on_later_day_is_not_counted(ledger, clock):
    ledger.mark_item_watched("113-1")
    clock.advance(days=1)
    ledger.mark_item_watched("113-1")

    assert _today(ledger, clock) is None


def test_mark_item_watched_preserves_answer(ledger):
    ledger.record_answer("113-1", "C", False)
    ledger.mark_item_watched("113-1")

    progress = ledger.get_progress("113-1")
    assert progress.completed is True
    assert progress.answer_selected == "C"
    assert progress.is_correct is False


# --- record_answer ---


def test_record_correct_answer(ledger, clock):
    ledger.record_answer("113-1", "B", True)

    progress = ledger.get_progress("113-1")
    assert progress.answer_selected == "B"
    assert progress.is_correct is True
    assert progress.completed is False
    assert progress.watched_at is None
    assert _today(ledger, clock) == DailyActivity(clock().date(), 0, 1)


def test_record_answer_after_watch_uses_same_day_entry(ledger, clock):
    ledger.mark_item_watched("113-1")
    ledger.record_answer("113-1", "B", True)

    assert ledger.get_snapshot().activities == (DailyActivity(clock().date(), 1, 1),)


def test_later_wrong_answer_does_not_decrement(ledger, clock):
    ledger.record_answer("113-1", "B", True)
    ledger.record_answer("113-1", "D", False)

    progress = ledger.get_progress("113-1")
    assert progress.answer_selected == "D"
    assert progress.is_correct is False
    assert _today(ledger, clock).correct_answers == 1


def test_wrong_answer_creates_no_activity(ledger):
    ledger.record_answer("113-1", "A", False)
    assert ledger.get_snapshot().activities == ()


def test_answer_letter_normalized(ledger):
    ledger.record_answer("113-1", " c ", True)
    assert ledger.get_progress("113-1").answer_selected == "C"


@pytest.mark.parametrize("answer", ["E", "", "AB", "1"])
def test_invalid_answer_rejected(ledger, storage, answer):
    listener = MagicMock()
    ledger.subscribe(listener)

    with pytest.raises(InvalidAnswerError):
        ledger.record_answer("113-1", answer, True)

    listener.assert_not_called()
    assert storage.save_count == 0
    assert ledger.get_snapshot() == LedgerState()


# --- favorites ---


def test_toggle_favorite_round_trip(ledger):
    ledger.toggle_favorite("a")
    before = ledger.get_snapshot().favorites

    assert ledger.toggle_favorite("b") is True
    assert ledger.is_favorite("b")
    assert ledger.toggle_favorite("b") is False

    assert ledger.get_snapshot().favorites == before == ("a",)


def test_favorites_keep_insertion_order(ledger):
    for item in ["c", "a", "b"]:
        ledger.toggle_favorite(item)
    ledger.toggle_favorite("a")
    assert ledger.get_snapshot().favorites == ("c", "b")


# --- goal / settings ---


def test_set_daily_goal(ledger):
    ledger.set_daily_goal(20)
    assert ledger.get_today_progress().goal == 20


@pytest.mark.parametrize("goal", [0, -3, True, 2.5])
def test_set_daily_goal_rejects_invalid(ledger, goal):
    with pytest.raises(ValueError):
        ledger.set_daily_goal(goal)


def test_update_settings_is_partial(ledger):
    settings = ledger.update_settings(dark_mode=True)
    assert settings.dark_mode is True
    assert settings.playback_speed == 1.0

    ledger.update_settings(playback_speed=1.5)
    assert ledger.get_snapshot().settings == Settings(dark_mode=True, playback_speed=1.5)


def test_update_settings_rejects_unknown(ledger):
    with pytest.raises(ValueError, match="volume"):
        ledger.update_settings(volume=3)


@pytest.mark.parametrize(
    "changes",
    [
        {"playback_speed": "fast"},
        {"playback_speed": 0},
        {"playback_speed": -1.5},
        {"playback_speed": True},
        {"playback_speed": None},
        {"dark_mode": "yes"},
        {"dark_mode": 1},
    ],
)
def test_update_settings_rejects_bad_values(ledger, storage, clock, changes):
    ledger.mark_item_watched("v1")
    ledger.toggle_favorite("v1")
    saves = storage.save_count
    listener = MagicMock()
    ledger.subscribe(listener)

    with pytest.raises(ValueError):
        ledger.update_settings(**changes)

    assert storage.save_count == saves
    listener.assert_not_called()
    assert ledger.get_snapshot().settings == Settings()

    reloaded = ProgressLedger(storage, clock=clock)
    assert reloaded.get_progress("v1").completed is True
    assert reloaded.get_snapshot().favorites == ("v1",)


def test_update_settings_accepts_integer_speed(ledger):
    settings = ledger.update_settings(playback_speed=2)
    assert settings.playback_speed == 2.0
    assert isinstance(settings.playback_speed, float)


# --- Aggregates ---


def test_today_progress(ledger, clock):
    assert ledger.get_today_progress().completed == 0

    for i in range(3):
        ledger.mark_item_watched(f"v{i}")
    today = ledger.get_today_progress()
    assert (today.completed, today.goal) == (3, 10)

    clock.advance(days=1)
    assert ledger.get_today_progress().completed == 0


def test_completed_and_answered_counts(ledger):
    assert ledger.get_completed_count() == 0

    ledger.mark_item_watched("v1")
    ledger.mark_item_watched("v2")
    ledger.record_answer("v3", "A", False)
    ledger.record_answer("v1", "B", True)

    assert ledger.get_completed_count() == 2
    assert ledger.get_answered_count() == 2


def test_wrong_answers_sorted_by_item(ledger):
    ledger.record_answer("112-3", "A", False)
    ledger.record_answer("110-9", "B", False)
    ledger.record_answer("111-1", "C", True)

    assert [p.item_id for p in ledger.get_wrong_answers()] == ["110-9", "112-3"]


# --- Streak ---


def _active_on(clock, *days_ago) -> InMemoryStorage:
    today = clock().date()
    return InMemoryStorage(
        LedgerState(
            activities=tuple(
                DailyActivity(today - timedelta(days=d), videos_watched=1) for d in days_ago
            )
        ).to_dict()
    )


def test_streak_no_activity(ledger):
    assert ledger.get_streak() == 0


@pytest.mark.parametrize(
    "days_ago, expected",
    [
        ((0, 1, 2), 3),
        ((2, 0, 1), 3),
        ((0, 2), 1),
        ((1, 2, 3), 3),
        ((1,), 1),
        ((2, 3, 4), 0),
        ((0, 1, 3, 4, 5), 2),
    ],
)
def test_streak(clock, days_ago, expected):
    ledger = ProgressLedger(_active_on(clock, *days_ago), clock=clock)
    assert ledger.get_streak() == expected


def test_streak_built_from_daily_use(ledger, clock):
    for i in range(4):
        ledger.mark_item_watched(f"v{i}")
        clock.advance(days=1)

    # No activity yet on the current day: anchored at yesterday
    assert ledger.get_streak() == 4

    clock.advance(days=1)
    assert ledger.get_streak() == 0


def test_activities_stay_in_date_order(clock):
    storage = InMemoryStorage(
        {
            "state": {
                "activities": [
                    {"date": "2026-03-16", "videosWatched": 1},
                    {"date": "2026-03-12", "videosWatched": 2},
                ]
            }
        }
    )
    ledger = ProgressLedger(storage, clock=clock)
    assert [a.date for a in ledger.get_snapshot().activities] == [
        date(2026, 3, 12),
        date(2026, 3, 16),
    ]

    ledger.mark_item_watched("v1")

    assert [a.date for a in ledger.get_snapshot().activities] == [
        date(2026, 3, 12),
        date(2026, 3, 15),
        date(2026, 3, 16),
    ]
    assert [a["date"] for a in storage.load()["state"]["activities"]] == [
        "2026-03-12",
        "2026-03-15",
        "2026-03-16",
    ]


# --- Reviews ---


def test_record_review_creates_and_schedules_card(ledger, clock):
    card = ledger.record_review("113-1", 4)

    assert card.repetitions == 1
    assert card.interval == 1
    assert card.last_reviewed_at == clock()
    assert card.next_review_at == clock() + timedelta(days=1)
    assert ledger.get_card("113-1") == card


def test_record_review_builds_on_prior_card(ledger, clock):
    ledger.record_review("113-1", 5)
    clock.advance(days=1)
    card = ledger.record_review("113-1", 5)

    assert card.repetitions == 2
    assert card.interval == 6
    assert card.ease_factor == pytest.approx(2.7)


def test_record_review_lapse(ledger, clock):
    ledger.record_review("113-1", 5)
    ledger.record_review("113-1", 5)
    card = ledger.record_review("113-1", 1)

    assert card.repetitions == 0
    assert card.interval == 1


def test_record_review_invalid_quality_leaves_state(ledger, storage):
    with pytest.raises(InvalidQualityError):
        ledger.record_review("113-1", 6)
    assert ledger.get_card("113-1") is None
    assert storage.save_count == 0


def test_review_queue_follows_clock(ledger, clock):
    ledger.record_review("a", 4)  # due tomorrow
    ledger.record_review("b", 1)  # due tomorrow as well
    clock.advance(days=-1)
    ledger.record_review("c", 4)  # reviewed yesterday, due today

    clock.advance(days=1)
    assert [c.item_id for c in ledger.get_review_queue()] == ["c"]

    clock.advance(days=1)
    assert {c.item_id for c in ledger.get_review_queue()} == {"a", "b", "c"}
    assert ledger.get_review_queue()[0].item_id == "c"


# --- Observable store ---


def test_each_mutation_notifies_once(ledger):
    listener = MagicMock()
    ledger.subscribe(listener)

    ledger.mark_item_watched("v1")
    ledger.mark_item_watched("v1")
    ledger.record_answer("v1", "A", True)
    ledger.toggle_favorite("v1")
    ledger.set_daily_goal(3)
    ledger.update_settings(dark_mode=True)
    ledger.record_review("v1", 3)
    ledger.reset()

    assert listener.call_count == 8


def test_queries_do_not_notify(ledger):
    listener = MagicMock()
    ledger.subscribe(listener)

    ledger.get_streak()
    ledger.get_today_progress()
    ledger.get_completed_count()
    ledger.get_review_queue()
    ledger.get_snapshot()

    listener.assert_not_called()


def test_unsubscribe(ledger):
    listener = MagicMock()
    unsubscribe = ledger.subscribe(listener)
    ledger.toggle_favorite("x")
    unsubscribe()
    unsubscribe()
    ledger.toggle_favorite("x")

    assert listener.call_count == 1


def test_listener_sees_persisted_state(ledger, storage):
    seen = []
    ledger.subscribe(lambda: seen.append(storage.load()["state"]["favorites"]))

    ledger.toggle_favorite("x")

    assert seen == [["x"]]


def test_failing_listener_does_not_block_others(ledger):
    broken = MagicMock(side_effect=RuntimeError("boom"))
    healthy = MagicMock()
    ledger.subscribe(broken)
    ledger.subscribe(healthy)

    ledger.mark_item_watched("v1")

    healthy.assert_called_once()
    assert ledger.get_progress("v1").completed is True


def test_snapshots_are_not_mutated(ledger):
    before = ledger.get_snapshot()
    ledger.mark_item_watched("v1")
    after = ledger.get_snapshot()

    assert before is not after
    assert before.video_progress == {}
    assert "v1" in after.video_progress


# --- Persistence ---


def test_every_mutation_is_written_through(ledger, storage):
    ledger.mark_item_watched("v1")
    assert storage.save_count == 1
    ledger.toggle_favorite("v1")
    assert storage.save_count == 2


def test_state_survives_reload(ledger, storage, clock):
    ledger.mark_item_watched("v1")
    ledger.record_answer("v1", "B", True)
    ledger.toggle_favorite("v1")
    ledger.set_daily_goal(7)
    ledger.update_settings(playback_speed=1.25)
    ledger.record_review("v1", 4)

    reloaded = ProgressLedger(storage, clock=clock)

    assert reloaded.get_snapshot() == ledger.get_snapshot()


def test_failing_storage_is_swallowed(clock):
    storage = InMemoryStorage(fail_writes=True)
    ledger = ProgressLedger(storage, clock=clock)
    listener = MagicMock()
    ledger.subscribe(listener)

    ledger.mark_item_watched("v1")

    assert ledger.get_progress("v1").completed is True
    listener.assert_called_once()
    assert storage.load() is None


@pytest.mark.parametrize(
    "blob",
    [
        {"state": "garbage"},
        {"state": {"activities": [{"date": "not-a-date"}]}},
        {"state": {"videoProgress": ["v1"]}},
        {"state": {"dailyGoal": "ten"}},
        {"state": {"dailyGoal": 0}},
        {"state": {"dailyGoal": -4}},
        {"state": {"activities": [{"date": "2026-03-14", "videosWatched": -1}]}},
        {"state": {"activities": [{"date": "2026-03-14", "correctAnswers": -2}]}},
        {"state": {"reviewCards": {"x": {"itemId": "x"}}}},
    ],
)
def test_corrupt_state_falls_back_to_defaults(clock, blob):
    ledger = ProgressLedger(InMemoryStorage(blob), clock=clock)
    assert ledger.get_snapshot() == LedgerState()


def test_reset(ledger, storage, clock):
    ledger.mark_item_watched("v1")
    ledger.reset()

    assert ledger.get_snapshot() == LedgerState()
    assert ProgressLedger(storage, clock=clock).get_completed_count() == 0


def test_default_clock_is_wall_clock(storage):
    ledger = ProgressLedger(storage)
    ledger.mark_item_watched("v1")

    watched_at = ledger.get_progress("v1").watched_at
    assert isinstance(watched_at, datetime)
    assert ledger.get_snapshot().activities[0].date in {
        date.today(),
        date.today() - timedelta(days=1),
    }
