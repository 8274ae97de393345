"""Service for managing the study plan and its daily counters."""
import logging
import uuid
from dataclasses import asdict
from typing import List, Optional, Tuple

from vocabplan import monitoring
from vocabplan.clock import Clock
from vocabplan.models.vocab_models import (
    PlanChanges,
    PlanDayState,
    PlanSettings,
    StudyState,
    TestRecord,
)

logger = logging.getLogger(__name__)


class PlanService:
    """Service for managing the study plan and its daily counters."""

    def __init__(self, state: StudyState, clock: Clock):
        """Initialize the service with a session state and a clock."""
        self.state = state
        self.clock = clock

    @property
    def plan(self) -> Optional[PlanSettings]:
        return self.state.plan

    @property
    def day_state(self) -> PlanDayState:
        return self.state.day_state

    def is_reset_required(self, changes: PlanChanges) -> bool:
        """A plan is reset when there is none yet or a selected book was dropped."""
        if self.state.plan is None:
            return True
        new_books = set(changes.selected_books)
        return any(book not in new_books for book in self.state.plan.selected_books)

    def save_plan(self, changes: PlanChanges) -> Tuple[PlanSettings, bool]:
        """Create, reset or update the plan.

        Returns the resulting plan and whether a reset took place. A reset
        gives the plan a new identity and wipes the progress records, the day
        counters and the test history.
        """
        if self.is_reset_required(changes):
            self._reset(changes)
            return self.state.plan, True

        plan = self.state.plan
        for key, value in asdict(changes).items():
            setattr(plan, key, value)
        logger.info(
            f"Plan {plan.id} updated for user {self.state.user_id}: "
            f"books={plan.selected_books}, mode={plan.plan_mode.value}, "
            f"daily_limit={plan.daily_limit}, order={plan.learn_order.value}"
        )
        return plan, False

    def _reset(self, changes: PlanChanges) -> None:
        now = self.clock.now()
        previous = self.state.plan
        self.state.plan = PlanSettings(
            id=uuid.uuid4().hex,
            created_at=now,
            selected_books=list(changes.selected_books),
            plan_mode=changes.plan_mode,
            daily_limit=changes.daily_limit,
            days_target=changes.days_target,
            learn_order=changes.learn_order,
        )
        self.state.progress.clear()
        self.state.test_history.clear()
        self.state.day_state = PlanDayState(today_date=self.clock.day_string(now))
        monitoring.plan_resets.labels(user_id=self.state.user_id).inc()
        logger.info(
            f"Plan reset for user {self.state.user_id}: "
            f"{previous.id if previous else 'no plan'} -> {self.state.plan.id}, "
            f"books={self.state.plan.selected_books}"
        )

    def check_rollover(self, day: Optional[str] = None) -> bool:
        """Zero the day counters when ``day`` (default: today) is a new day.

        Only the day state is replaced; progress records are never touched.
        """
        day = day or self.clock.day_string()
        if self.state.day_state.today_date == day:
            return False
        logger.info(
            f"Day rollover for user {self.state.user_id}: "
            f"{self.state.day_state.today_date} -> {day} "
            f"(learned {self.state.day_state.today_learned_count}, "
            f"mistakes {len(self.state.day_state.today_mistakes)})"
        )
        self.state.day_state = PlanDayState(today_date=day)
        monitoring.day_rollovers.inc()
        return True

    def increment_today_learned(self) -> int:
        self.state.day_state.today_learned_count += 1
        return self.state.day_state.today_learned_count

    def record_mistake(self, word: str) -> None:
        """Add a word to today's mistakes, once."""
        if word not in self.state.day_state.today_mistakes:
            self.state.day_state.today_mistakes.append(word)

    def add_test_record(self, scope: str, count: int, score: int, mistakes: List[str]) -> TestRecord:
        """Append a finished test to the history."""
        record = TestRecord(
            id=uuid.uuid4().hex,
            timestamp=self.clock.now(),
            scope=scope,
            count=count,
            score=score,
            mistakes=list(mistakes),
        )
        self.state.test_history.append(record)
        logger.info(f"Test recorded for user {self.state.user_id}: scope={scope}, score={score}/{count}")
        return record
