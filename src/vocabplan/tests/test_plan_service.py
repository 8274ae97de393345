"""Tests for plan service."""
import pytest

from vocabplan.clock import ManualClock
from vocabplan.config import settings
from vocabplan.models.vocab_models import (
    LearnOrder,
    PlanChanges,
    PlanDayState,
    PlanMode,
    PlanSettings,
    ProgressRecord,
    StudyState,
    WordStatus,
)
from vocabplan.services.plan_service import PlanService


@pytest.fixture
def state(clock: ManualClock) -> StudyState:
    """An empty study state for today."""
    return StudyState(user_id="learner", day_state=PlanDayState(today_date=clock.day_string()))


@pytest.fixture
def plan_service(state: StudyState, clock: ManualClock) -> PlanService:
    """Create a plan service instance."""
    return PlanService(state, clock)


def test_first_plan_is_a_reset(plan_service: PlanService, clock: ManualClock) -> None:
    """Test creating the first plan."""
    plan, reset = plan_service.save_plan(PlanChanges(selected_books=["fruit"], daily_limit=5))

    assert reset
    assert plan.id
    assert plan.created_at == clock.now()
    assert plan.selected_books == ["fruit"]
    assert plan.daily_limit == 5
    assert plan.plan_mode is PlanMode.COUNT
    assert plan.learn_order is LearnOrder.ALPHABETICAL


def test_removing_a_book_resets(plan_service: PlanService, state: StudyState, clock: ManualClock) -> None:
    """Test that dropping a book wipes progress and history, even with an unchanged limit."""
    first, _ = plan_service.save_plan(PlanChanges(selected_books=["fruit", "animals"], daily_limit=10))
    state.progress["apple"] = ProgressRecord(status=WordStatus.LEARNING, stage=2)
    state.day_state.today_learned_count = 4
    plan_service.add_test_record("all", 10, 8, ["apple"])

    clock.advance(hours=1)
    second, reset = plan_service.save_plan(PlanChanges(selected_books=["fruit"], daily_limit=10))

    assert reset
    assert second.id != first.id
    assert second.created_at == clock.now()
    assert state.progress == {}
    assert state.test_history == []
    assert state.day_state.today_learned_count == 0
    assert state.day_state.today_mistakes == []


def test_adding_a_book_keeps_progress(plan_service: PlanService, state: StudyState, clock: ManualClock) -> None:
    """Test that adding books and changing settings keeps the plan identity."""
    first, _ = plan_service.save_plan(PlanChanges(selected_books=["fruit"]))
    state.progress["apple"] = ProgressRecord(status=WordStatus.LEARNING, stage=2)
    state.day_state.today_learned_count = 3

    clock.advance(hours=1)
    changes = PlanChanges(
        selected_books=["fruit", "animals"],
        plan_mode=PlanMode.DAYS,
        daily_limit=20,
        days_target=30,
        learn_order=LearnOrder.RANDOM,
    )
    second, reset = plan_service.save_plan(changes)

    assert not reset
    assert second.id == first.id
    assert second.created_at == first.created_at
    assert second.selected_books == ["fruit", "animals"]
    assert second.plan_mode is PlanMode.DAYS
    assert second.days_target == 30
    assert second.learn_order is LearnOrder.RANDOM
    assert "apple" in state.progress
    assert state.day_state.today_learned_count == 3


def test_reordering_books_is_not_a_reset(plan_service: PlanService) -> None:
    """Test that the same selection in another order is an update."""
    plan_service.save_plan(PlanChanges(selected_books=["fruit", "animals"]))
    assert not plan_service.is_reset_required(PlanChanges(selected_books=["animals", "fruit"]))
    assert plan_service.is_reset_required(PlanChanges(selected_books=["animals"]))


def test_rollover_zeroes_day_counters(plan_service: PlanService, state: StudyState, clock: ManualClock) -> None:
    """Test the day rollover keeps progress records untouched."""
    plan_service.save_plan(PlanChanges(selected_books=["animals"]))
    record = ProgressRecord(status=WordStatus.LEARNING, stage=3, error_count=1)
    state.progress["cat"] = record
    state.day_state.today_learned_count = 5
    state.day_state.today_mistakes = ["cat"]

    assert not plan_service.check_rollover()

    clock.advance(days=1)
    assert plan_service.check_rollover()
    assert state.day_state.today_date == "2024-03-11"
    assert state.day_state.today_learned_count == 0
    assert state.day_state.today_mistakes == []
    assert state.progress["cat"] is record
    assert record.stage == 3
    assert record.error_count == 1


def test_rollover_with_explicit_day(plan_service: PlanService, state: StudyState) -> None:
    """Test rolling over to a given day."""
    state.day_state.today_learned_count = 2
    assert plan_service.check_rollover("2024-04-01")
    assert state.day_state == PlanDayState(today_date="2024-04-01")
    assert not plan_service.check_rollover("2024-04-01")


def test_record_mistake_deduplicates(plan_service: PlanService, state: StudyState) -> None:
    """Test today's mistakes hold each word once."""
    plan_service.record_mistake("cat")
    plan_service.record_mistake("dog")
    plan_service.record_mistake("cat")
    assert state.day_state.today_mistakes == ["cat", "dog"]


def test_add_test_record(plan_service: PlanService, state: StudyState, clock: ManualClock) -> None:
    """Test appending test results to the history."""
    clock.advance(minutes=3)
    record = plan_service.add_test_record("today", 5, 4, ["dog"])

    assert record.timestamp == clock.now()
    assert record.scope == "today"
    assert record.count == 5
    assert record.score == 4
    assert record.mistakes == ["dog"]
    assert state.test_history == [record]


def test_increment_today_learned(plan_service: PlanService) -> None:
    """Test the daily learned counter."""
    assert plan_service.increment_today_learned() == 1
    assert plan_service.increment_today_learned() == 2


def test_reset_uses_today_as_day(plan_service: PlanService, state: StudyState, clock: ManualClock) -> None:
    """Test that a reset starts counting on the current day."""
    state.day_state = PlanDayState(today_date="2024-01-01", today_learned_count=7)
    clock.advance(days=2, hours=3)
    plan_service.save_plan(PlanChanges(selected_books=["fruit"]))
    assert state.day_state.today_date == "2024-03-12"
    assert state.day_state.today_learned_count == 0


def test_default_daily_limit_from_settings(plan_service: PlanService, monkeypatch: pytest.MonkeyPatch) -> None:
    """Test that a plan without an explicit limit uses the configured default."""
    monkeypatch.setattr(settings.learning, "default_daily_limit", 7)

    plan, _ = plan_service.save_plan(PlanChanges(selected_books=["fruit"]))

    assert plan.daily_limit == 7
    restored = PlanSettings.from_data({"id": plan.id, "created_at": plan.created_at.isoformat()})
    assert restored.daily_limit == 7


if __name__ == "__main__":
    pytest.main([__file__])
