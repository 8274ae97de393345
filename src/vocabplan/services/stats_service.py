"""Progress statistics of a plan."""
import math
from datetime import datetime
from typing import Iterable, Mapping, Optional

from vocabplan.clock import Clock
from vocabplan.models.vocab_models import (
    PlanDayState,
    PlanMode,
    PlanSettings,
    PlanStats,
    ProgressRecord,
    Word,
    WordStatus,
)
from vocabplan.services.task_service import plan_words

STAGE_LABELS = [
    "5 min",
    "30 min",
    "12 hours",
    "1 day",
    "2 days",
    "4 days",
    "7 days",
    "14 days",
    "21 days",
]


def stage_label(stage: int) -> str:
    """Human readable interval of a stage."""
    if 0 <= stage < len(STAGE_LABELS):
        return STAGE_LABELS[stage]
    return "Finished"


def days_since_start(created_at: datetime, now: datetime, clock: Clock) -> int:
    """Calendar days since the plan started, counting the first day as 1."""
    start = clock.start_of_day(created_at).date()
    today = clock.start_of_day(now).date()
    return max(1, (today - start).days + 1)


def compute_stats(
    words: Iterable[Word],
    plan: Optional[PlanSettings],
    progress: Mapping[str, ProgressRecord],
    day_state: PlanDayState,
    now: datetime,
    clock: Clock,
) -> Optional[PlanStats]:
    """Compute the stats of the active plan; ``None`` without a plan."""
    if plan is None:
        return None

    pool = plan_words(words, plan)
    total_words = len(pool)
    learned_unique = sum(
        1 for w in pool
        if w.word in progress and progress[w.word].status is not WordStatus.NEW
    )
    remaining = total_words - learned_unique

    if plan.plan_mode is PlanMode.DAYS:
        days_target = plan.days_target
    else:
        days_target = math.ceil(total_words / max(plan.daily_limit, 1))

    return PlanStats(
        total_words=total_words,
        learned_unique=learned_unique,
        remaining=remaining,
        daily_goal=plan.daily_limit,
        today_learned=day_state.today_learned_count,
        is_finished=remaining == 0,
        days_since_start=days_since_start(plan.created_at, now, clock),
        days_target=days_target or 1,
        created_at=plan.created_at,
    )
