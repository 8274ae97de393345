"""Service for the per-word spaced-repetition state machine."""
import logging
from datetime import datetime, timedelta
from typing import Optional

from vocabplan import monitoring
from vocabplan.clock import Clock
from vocabplan.config import LearningSettings, settings
from vocabplan.models.vocab_models import (
    LearnOutcome,
    ProgressRecord,
    StudyState,
    WordStatus,
)
from vocabplan.services.plan_service import PlanService

logger = logging.getLogger(__name__)


class ProgressService:
    """Service for updating progress records from learn, review and test answers.

    Records are created lazily on the first touch of a word. ``stage`` moves
    up one step per success (capped at the last interval), drops to 0 on a
    learn/review failure and one step on a failed test. ``error_count`` only
    grows and ``status`` only moves forward.
    """

    def __init__(
        self,
        state: StudyState,
        plan_service: PlanService,
        clock: Clock,
        learning: Optional[LearningSettings] = None,
    ):
        self.state = state
        self.plan_service = plan_service
        self.clock = clock
        self.learning = learning or settings.learning

    def get_record(self, word: str) -> Optional[ProgressRecord]:
        return self.state.progress.get(word)

    def _get_or_create(self, word: str) -> ProgressRecord:
        record = self.state.progress.get(word)
        if record is None:
            record = ProgressRecord()
            self.state.progress[word] = record
            logger.debug(f"Created progress record for {word}")
        return record

    def _calculate_next_review(self, stage: int, now: datetime) -> datetime:
        """Calculate the next review time based on the stage."""
        stage = min(stage, self.learning.max_stage)
        return now + timedelta(minutes=self.learning.review_intervals[stage])

    def _apply_outcome(self, word: str, record: ProgressRecord, outcome: LearnOutcome, now: datetime) -> None:
        record.last_review = now
        if outcome is LearnOutcome.DONT_KNOW:
            record.error_count += 1
            record.stage = 0
            record.next_review = now + timedelta(minutes=self.learning.mistake_retry_minutes)
            self.plan_service.record_mistake(word)
            return

        record.stage = min(record.stage + 1, self.learning.max_stage)
        record.next_review = self._calculate_next_review(record.stage, now)
        if record.stage >= self.learning.mastery_stage and record.status is not WordStatus.MASTERED:
            record.status = WordStatus.MASTERED
            logger.info(f"Word {word} mastered by user {self.state.user_id}")

    def record_learn_result(self, word: str, outcome: LearnOutcome) -> ProgressRecord:
        """Apply the answer of a learn card.

        The first answer on a new word moves it to ``learning`` and counts it
        towards today's quota; later answers never count it again.
        """
        now = self.clock.now()
        record = self._get_or_create(word)

        if record.status is WordStatus.NEW:
            record.status = WordStatus.LEARNING
            record.first_learned_at = now
            learned = self.plan_service.increment_today_learned()
            monitoring.words_learned.labels(user_id=self.state.user_id).inc()
            logger.debug(f"Word {word} started by user {self.state.user_id}, {learned} today")

        self._apply_outcome(word, record, outcome, now)
        monitoring.study_answers.labels(kind="learn", outcome=outcome.value).inc()
        return record

    def record_review_result(self, word: str, outcome: LearnOutcome) -> Optional[ProgressRecord]:
        """Apply the answer of a review card; words never learned are ignored."""
        record = self.state.progress.get(word)
        # A record only created by a failed test is still new
        if record is None or record.status is WordStatus.NEW:
            logger.debug(f"Review of unlearned word {word} ignored")
            return None

        self._apply_outcome(word, record, outcome, self.clock.now())
        monitoring.study_answers.labels(kind="review", outcome=outcome.value).inc()
        return record

    def record_test_result(self, word: str, is_correct: bool) -> Optional[ProgressRecord]:
        """Apply a test answer. Correct answers leave the record alone."""
        if is_correct:
            monitoring.study_answers.labels(kind="test", outcome="correct").inc()
            return self.state.progress.get(word)

        record = self._get_or_create(word)
        record.error_count += 1
        record.stage = max(record.stage - 1, 0)
        record.last_review = self.clock.now()
        self.plan_service.record_mistake(word)
        monitoring.study_answers.labels(kind="test", outcome="wrong").inc()
        return record
