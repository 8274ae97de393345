"""Derivation of what to learn, review and revisit.

Everything here is a pure function of the word pool, the progress records,
the day counters and an explicit ``now``; nothing is mutated.
"""
import logging
import random
from datetime import datetime
from typing import Dict, Iterable, List, Mapping, Optional

from vocabplan.config import settings
from vocabplan.models.vocab_models import (
    LearnOrder,
    MistakeFilter,
    PlanDayState,
    PlanSettings,
    ProgressRecord,
    ReviewMode,
    Word,
    WordStatus,
)

logger = logging.getLogger(__name__)


def plan_words(words: Iterable[Word], plan: Optional[PlanSettings]) -> List[Word]:
    """Words of the plan's selected books, in catalog order."""
    if plan is None:
        return []
    selected = set(plan.selected_books)
    return [w for w in words if w.book_id in selected]


def _shuffle_key(plan_id: str, word: str) -> float:
    # Seeded per plan and word so a word keeps its place while others get learned
    return random.Random(f"{plan_id}:{word}").random()


def order_new_words(words: List[Word], plan: PlanSettings) -> List[Word]:
    """Order words by the plan's learn order."""
    if plan.learn_order is LearnOrder.RANDOM:
        return sorted(words, key=lambda w: (_shuffle_key(plan.id, w.word), w.word))
    return sorted(words, key=lambda w: (w.word.casefold(), w.word))


def _is_unlearned(word: Word, progress: Mapping[str, ProgressRecord]) -> bool:
    record = progress.get(word.word)
    return record is None or record.status is WordStatus.NEW


def fetch_raw_new_words(
    words: Iterable[Word],
    plan: Optional[PlanSettings],
    progress: Mapping[str, ProgressRecord],
    count: int,
) -> List[Word]:
    """First ``count`` unlearned words of the plan, regardless of today's quota."""
    if plan is None or count <= 0:
        return []
    unlearned = [w for w in plan_words(words, plan) if _is_unlearned(w, progress)]
    return order_new_words(unlearned, plan)[:count]


def remaining_quota(plan: PlanSettings, day_state: PlanDayState) -> int:
    return max(0, plan.daily_limit - day_state.today_learned_count)


def get_today_task(
    words: Iterable[Word],
    plan: Optional[PlanSettings],
    progress: Mapping[str, ProgressRecord],
    day_state: PlanDayState,
) -> List[Word]:
    """New words still to learn today."""
    if plan is None:
        return []
    return fetch_raw_new_words(words, plan, progress, remaining_quota(plan, day_state))


def get_review_task(
    words: Iterable[Word],
    plan: Optional[PlanSettings],
    progress: Mapping[str, ProgressRecord],
    now: datetime,
    start_of_today: datetime,
    mode: ReviewMode = ReviewMode.SCIENTIFIC,
) -> List[Word]:
    """Words to review.

    ``scientific``: due words followed by the learned words touched since midnight.
    ``today``: only the learned words touched since midnight.
    """
    pool = plan_words(words, plan)

    touched_today = []
    for word in pool:
        record = progress.get(word.word)
        # Reviews ignore records a failed test created, so they are never queued
        if not record or record.status is WordStatus.NEW:
            continue
        if record.last_review and record.last_review >= start_of_today:
            touched_today.append(word)

    if mode is ReviewMode.TODAY:
        return touched_today

    due = []
    for word in pool:
        record = progress.get(word.word)
        if record and record.status is not WordStatus.NEW and record.next_review and record.next_review <= now:
            due.append(word)

    merged: Dict[str, Word] = {}
    for word in due + touched_today:
        merged.setdefault(word.word, word)
    logger.debug(f"Review task: {len(due)} due, {len(touched_today)} touched today, {len(merged)} total")
    return list(merged.values())


def get_mistakes_list(
    words: Iterable[Word],
    plan: Optional[PlanSettings],
    progress: Mapping[str, ProgressRecord],
    day_state: PlanDayState,
    mistake_filter: MistakeFilter = MistakeFilter.ALL,
    high_frequency_errors: Optional[int] = None,
) -> List[Word]:
    """Words answered wrongly at least once.

    ``high-freq`` keeps words with at least ``high_frequency_errors`` errors
    (default: the configured threshold).
    """
    if high_frequency_errors is None:
        high_frequency_errors = settings.learning.high_frequency_errors
    today_mistakes = set(day_state.today_mistakes)
    selected = []
    for word in plan_words(words, plan):
        record = progress.get(word.word)
        if not record or record.error_count == 0:
            continue
        if mistake_filter is MistakeFilter.TODAY and word.word not in today_mistakes:
            continue
        if mistake_filter is MistakeFilter.HIGH_FREQ and record.error_count < high_frequency_errors:
            continue
        selected.append(word)

    if mistake_filter is MistakeFilter.TODAY:
        return selected
    return sorted(selected, key=lambda w: progress[w.word].error_count, reverse=True)
