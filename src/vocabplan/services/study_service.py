"""Study session of one identity: state loading, mutations and persistence."""
import logging
from typing import Any, Dict, List, Optional, Union

from vocabplan import monitoring
from vocabplan.clock import Clock, DayBoundaryTracker
from vocabplan.config import LearningSettings, settings
from vocabplan.exceptions import StaleWriteError
from vocabplan.models.vocab_models import (
    Identity,
    LearnOutcome,
    MistakeFilter,
    PlanChanges,
    PlanDayState,
    PlanSettings,
    PlanStats,
    ProgressRecord,
    ReviewMode,
    StudyState,
    TestRecord,
    Word,
)
from vocabplan.services import stats_service, task_service
from vocabplan.services.catalog_service import WordCatalog
from vocabplan.services.plan_service import PlanService
from vocabplan.services.progress_service import ProgressService
from vocabplan.services.store_service import (
    PLAN_KEY,
    PLAN_STATE_KEY,
    PROGRESS_KEY,
    TEST_HISTORY_KEY,
    USER_KEYS,
    BlobStore,
)

logger = logging.getLogger(__name__)


class StudyService:
    """Entry point used by the presentation layer.

    Holds the state of the active identity, routes answers to the plan and
    progress services, derives tasks on demand and writes every change back
    to the blob store. Without an active identity mutations do nothing and
    queries return empty results.
    """

    def __init__(
        self,
        store: BlobStore,
        catalog: WordCatalog,
        clock: Clock,
        learning: Optional[LearningSettings] = None,
    ):
        self.store = store
        self.catalog = catalog
        self.clock = clock
        self.learning = learning or settings.learning
        self.user: Optional[Identity] = None
        self.state: Optional[StudyState] = None
        self.plan_service: Optional[PlanService] = None
        self.progress_service: Optional[ProgressService] = None
        self._versions: Dict[str, int] = {}
        self._day_tracker = DayBoundaryTracker(clock)

    # --- Identity and loading ---

    def switch_user(self, user: Optional[Identity]) -> None:
        """Drop the in-memory state and load the state of ``user`` (``None`` logs out)."""
        previous = self.user.id if self.user else None
        self.user = user
        self.state = None
        self.plan_service = None
        self.progress_service = None
        self._versions = {}
        self._day_tracker.reset()
        logger.info(f"Switching user {previous} -> {user.id if user else None}")
        if user:
            self._load()

    def _load_blob(self, key: str) -> Optional[Any]:
        data, version = self.store.load(self.user.id, key)
        self._versions[key] = version
        return data

    def _load(self) -> None:
        user_id = self.user.id
        self._versions = {}
        state = StudyState(user_id=user_id, day_state=PlanDayState(today_date=self.clock.day_string()))

        try:
            # Day counters only mean something next to a plan
            plan_data = self._load_blob(PLAN_KEY)
            day_data = self._load_blob(PLAN_STATE_KEY)
            if plan_data:
                state.plan = PlanSettings.from_data(plan_data)
                if day_data:
                    state.day_state = PlanDayState.from_data(day_data)

            progress_data = self._load_blob(PROGRESS_KEY) or {}
            state.progress = {word: ProgressRecord.from_data(record) for word, record in progress_data.items()}

            history_data = self._load_blob(TEST_HISTORY_KEY) or []
            state.test_history = [TestRecord.from_data(record) for record in history_data]
        except (KeyError, TypeError, ValueError) as e:
            logger.error(f"Could not restore state of user {user_id}, keeping what was read: {e}")

        self.state = state
        self.plan_service = PlanService(state, self.clock)
        self.progress_service = ProgressService(state, self.plan_service, self.clock, self.learning)
        self._day_tracker.reset()
        self._observe_day()
        logger.info(
            f"Loaded state of user {user_id}: plan={state.plan.id if state.plan else None}, "
            f"{len(state.progress)} records, {len(state.test_history)} tests"
        )

    def reload(self) -> None:
        """Re-read the active identity's state from the store."""
        if self.user:
            self._load()

    def clear_user_data(self, user_id: str) -> None:
        """Delete everything stored for ``user_id``."""
        self.store.clear_user(user_id)
        if self.user and self.user.id == user_id:
            self._load()

    # --- Persistence ---

    def _serialize(self, key: str) -> Optional[Any]:
        state = self.state
        if key == PLAN_KEY:
            return state.plan.to_data() if state.plan else None
        if key == PLAN_STATE_KEY:
            return state.day_state.to_data() if state.plan else None
        if key == PROGRESS_KEY:
            return {word: record.to_data() for word, record in state.progress.items()}
        if key == TEST_HISTORY_KEY:
            return [record.to_data() for record in state.test_history]
        raise ValueError(f"Unknown key {key}")

    def _persist(self, *keys: str) -> bool:
        """Write blobs back in one transaction; on a stale write the state is reloaded instead."""
        blobs = {}
        for key in keys:
            data = self._serialize(key)
            if data is not None:
                blobs[key] = data
        if not blobs:
            return True

        expected_versions = {key: self._versions.get(key, 0) for key in blobs}
        try:
            self._versions.update(self.store.save_many(self.user.id, blobs, expected_versions))
        except StaleWriteError as e:
            logger.warning(f"{e}; reloading state of user {self.user.id}")
            monitoring.stale_writes.labels(key=e.key).inc()
            self._load()
            return False
        return True

    # --- Clock ---

    def _observe_day(self) -> None:
        """Roll the day counters over when the clock entered a new day."""
        day = self._day_tracker.observe()
        if day and self.plan_service.check_rollover(day):
            self._persist(PLAN_STATE_KEY)

    def _ready(self) -> bool:
        if self.state is None:
            return False
        self._observe_day()
        return True

    # --- Read access ---

    @property
    def plan(self) -> Optional[PlanSettings]:
        return self.state.plan if self._ready() else None

    @property
    def day_state(self) -> Optional[PlanDayState]:
        return self.state.day_state if self._ready() else None

    @property
    def progress(self) -> Dict[str, ProgressRecord]:
        return self.state.progress if self._ready() else {}

    @property
    def test_history(self) -> List[TestRecord]:
        return self.state.test_history if self._ready() else []

    def plan_words(self) -> List[Word]:
        if not self._ready():
            return []
        return task_service.plan_words(self.catalog.all_words(), self.state.plan)

    def get_stats(self) -> Optional[PlanStats]:
        if not self._ready():
            return None
        return stats_service.compute_stats(
            self.catalog.all_words(),
            self.state.plan,
            self.state.progress,
            self.state.day_state,
            self.clock.now(),
            self.clock,
        )

    # --- Mutations ---

    def save_plan(self, changes: PlanChanges) -> Optional[PlanSettings]:
        """Create, update or reset the plan."""
        if not self._ready():
            return None
        plan, reset = self.plan_service.save_plan(changes)
        if reset:
            self._persist(*USER_KEYS)
        else:
            self._persist(PLAN_KEY)
        return plan

    def record_learn_result(self, word: str, outcome: Union[LearnOutcome, str]) -> Optional[ProgressRecord]:
        if not self._ready():
            return None
        record = self.progress_service.record_learn_result(word, LearnOutcome(outcome))
        self._persist(PROGRESS_KEY, PLAN_STATE_KEY)
        return record

    def record_review_result(self, word: str, outcome: Union[LearnOutcome, str]) -> Optional[ProgressRecord]:
        if not self._ready():
            return None
        record = self.progress_service.record_review_result(word, LearnOutcome(outcome))
        if record is not None:
            self._persist(PROGRESS_KEY, PLAN_STATE_KEY)
        return record

    def record_test_result(self, word: str, is_correct: bool) -> Optional[ProgressRecord]:
        if not self._ready():
            return None
        record = self.progress_service.record_test_result(word, is_correct)
        if not is_correct:
            self._persist(PROGRESS_KEY, PLAN_STATE_KEY)
        return record

    def add_test_record(self, scope: str, count: int, score: int, mistakes: List[str]) -> Optional[TestRecord]:
        if not self._ready():
            return None
        record = self.plan_service.add_test_record(scope, count, score, mistakes)
        self._persist(TEST_HISTORY_KEY)
        return record

    # --- Tasks ---

    def get_today_task(self) -> List[Word]:
        if not self._ready():
            return []
        return task_service.get_today_task(
            self.catalog.all_words(), self.state.plan, self.state.progress, self.state.day_state
        )

    def fetch_raw_new_words(self, count: int) -> List[Word]:
        if not self._ready():
            return []
        return task_service.fetch_raw_new_words(
            self.catalog.all_words(), self.state.plan, self.state.progress, count
        )

    def get_review_task(self, mode: Union[ReviewMode, str] = ReviewMode.SCIENTIFIC) -> List[Word]:
        if not self._ready():
            return []
        now = self.clock.now()
        return task_service.get_review_task(
            self.catalog.all_words(),
            self.state.plan,
            self.state.progress,
            now,
            self.clock.start_of_day(now),
            ReviewMode(mode),
        )

    def get_mistakes_list(self, mistake_filter: Union[MistakeFilter, str] = MistakeFilter.ALL) -> List[Word]:
        if not self._ready():
            return []
        return task_service.get_mistakes_list(
            self.catalog.all_words(),
            self.state.plan,
            self.state.progress,
            self.state.day_state,
            MistakeFilter(mistake_filter),
            self.learning.high_frequency_errors,
        )
