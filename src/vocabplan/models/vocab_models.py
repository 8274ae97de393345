"""Models for vocabulary, progress and plan data structures."""
from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from vocabplan.config import settings


class WordStatus(Enum):
    """Learning status of a single word."""
    NEW = "new"
    LEARNING = "learning"
    MASTERED = "mastered"


class LearnOutcome(Enum):
    """Answer given on a learn or review card."""
    KNOW = "know"
    DONT_KNOW = "dont-know"


class PlanMode(Enum):
    """How the daily goal of a plan is expressed."""
    COUNT = "count"  # fixed number of words per day
    DAYS = "days"  # finish the selection within a number of days


class LearnOrder(Enum):
    """Order in which new words are handed out."""
    ALPHABETICAL = "alphabetical"
    RANDOM = "random"


class ReviewMode(Enum):
    """Which words a review session covers."""
    SCIENTIFIC = "scientific"  # due words plus words touched today
    TODAY = "today"  # only words touched today


class MistakeFilter(Enum):
    """Selection of the mistakes list."""
    ALL = "all"
    TODAY = "today"
    HIGH_FREQ = "high-freq"


def _to_iso(moment: Optional[datetime]) -> Optional[str]:
    return moment.isoformat() if moment else None


def _from_iso(value: Optional[str]) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value else None


@dataclass(frozen=True)
class WordDetails:
    """Per-word override applied on top of the catalog entry."""
    meaning: Optional[str] = None
    phonetic: Optional[str] = None
    audio_url: Optional[str] = None
    example: Optional[str] = None
    example_audio_url: Optional[str] = None


@dataclass(frozen=True)
class Word:
    """A vocabulary entry; ``word`` is the case-sensitive key."""
    word: str
    meaning: str = ""
    part_of_speech: str = ""
    level: str = ""
    book_id: str = ""
    phonetic: Optional[str] = None
    audio_url: Optional[str] = None
    example: Optional[str] = None
    example_audio_url: Optional[str] = None

    def with_details(self, details: WordDetails) -> "Word":
        """Return a copy with the override applied; the original is untouched."""
        return replace(
            self,
            meaning=self.meaning or details.meaning or "",
            phonetic=details.phonetic or self.phonetic,
            audio_url=details.audio_url or self.audio_url,
            example=details.example or self.example,
            example_audio_url=details.example_audio_url or self.example_audio_url,
        )

    @classmethod
    def from_dict(cls, data: Dict[str, Any], book_id: str) -> "Word":
        return cls(
            word=data["word"],
            meaning=data.get("meaning", ""),
            part_of_speech=data.get("pos", data.get("part_of_speech", "")),
            level=data.get("level", ""),
            book_id=book_id,
            phonetic=data.get("phonetic"),
            audio_url=data.get("audioUrl", data.get("audio_url")),
            example=data.get("example"),
            example_audio_url=data.get("exampleAudioUrl", data.get("example_audio_url")),
        )


@dataclass
class Book:
    """A named, ordered collection of words."""
    id: str
    title: str
    words: List[Word] = field(default_factory=list)
    description: Optional[str] = None
    is_builtin: bool = False

    @classmethod
    def from_dict(cls, data: Dict[str, Any], is_builtin: bool = False) -> "Book":
        book_id = data["id"]
        return cls(
            id=book_id,
            title=data.get("title", book_id),
            description=data.get("description"),
            words=[Word.from_dict(w, book_id) for w in data.get("words", [])],
            is_builtin=is_builtin,
        )


@dataclass
class ProgressRecord:
    """Spaced-repetition state of one word."""
    status: WordStatus = WordStatus.NEW
    stage: int = 0
    next_review: Optional[datetime] = None
    last_review: Optional[datetime] = None
    first_learned_at: Optional[datetime] = None
    error_count: int = 0

    def to_data(self) -> Dict[str, Any]:
        """Convert to serializable data for storage."""
        return {
            "status": self.status.value,
            "stage": self.stage,
            "next_review": _to_iso(self.next_review),
            "last_review": _to_iso(self.last_review),
            "first_learned_at": _to_iso(self.first_learned_at),
            "error_count": self.error_count,
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "ProgressRecord":
        """Create a record from stored data."""
        return cls(
            status=WordStatus(data.get("status", WordStatus.NEW.value)),
            stage=int(data.get("stage", 0)),
            next_review=_from_iso(data.get("next_review")),
            last_review=_from_iso(data.get("last_review")),
            first_learned_at=_from_iso(data.get("first_learned_at")),
            error_count=int(data.get("error_count", 0)),
        )


@dataclass
class PlanSettings:
    """The active study configuration."""
    id: str
    created_at: datetime
    selected_books: List[str]
    plan_mode: PlanMode = PlanMode.COUNT
    daily_limit: int = field(default_factory=lambda: settings.learning.default_daily_limit)
    days_target: Optional[int] = None
    learn_order: LearnOrder = LearnOrder.ALPHABETICAL

    def to_data(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "created_at": self.created_at.isoformat(),
            "selected_books": list(self.selected_books),
            "plan_mode": self.plan_mode.value,
            "daily_limit": self.daily_limit,
            "days_target": self.days_target,
            "learn_order": self.learn_order.value,
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "PlanSettings":
        return cls(
            id=data["id"],
            created_at=datetime.fromisoformat(data["created_at"]),
            selected_books=list(data.get("selected_books", [])),
            plan_mode=PlanMode(data.get("plan_mode", PlanMode.COUNT.value)),
            daily_limit=int(data.get("daily_limit", settings.learning.default_daily_limit)),
            days_target=data.get("days_target"),
            learn_order=LearnOrder(data.get("learn_order", LearnOrder.ALPHABETICAL.value)),
        )


@dataclass
class PlanChanges:
    """Mutable part of a plan, as submitted by the learner."""
    selected_books: List[str]
    plan_mode: PlanMode = PlanMode.COUNT
    daily_limit: int = field(default_factory=lambda: settings.learning.default_daily_limit)
    days_target: Optional[int] = None
    learn_order: LearnOrder = LearnOrder.ALPHABETICAL


@dataclass
class PlanDayState:
    """Counters of one calendar day."""
    today_date: str
    today_learned_count: int = 0
    today_mistakes: List[str] = field(default_factory=list)

    def to_data(self) -> Dict[str, Any]:
        return {
            "today_date": self.today_date,
            "today_learned_count": self.today_learned_count,
            "today_mistakes": list(self.today_mistakes),
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "PlanDayState":
        return cls(
            today_date=data["today_date"],
            today_learned_count=int(data.get("today_learned_count", 0)),
            today_mistakes=list(data.get("today_mistakes", [])),
        )


@dataclass
class TestRecord:
    """Outcome of one finished test."""
    __test__ = False  # not a pytest class

    id: str
    timestamp: datetime
    scope: str
    count: int
    score: int
    mistakes: List[str] = field(default_factory=list)

    def to_data(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "timestamp": self.timestamp.isoformat(),
            "scope": self.scope,
            "count": self.count,
            "score": self.score,
            "mistakes": list(self.mistakes),
        }

    @classmethod
    def from_data(cls, data: Dict[str, Any]) -> "TestRecord":
        return cls(
            id=data["id"],
            timestamp=datetime.fromisoformat(data["timestamp"]),
            scope=data.get("scope", ""),
            count=int(data.get("count", 0)),
            score=int(data.get("score", 0)),
            mistakes=list(data.get("mistakes", [])),
        )


@dataclass
class PlanStats:
    """Progress figures derived from the plan and its records."""
    total_words: int
    learned_unique: int
    remaining: int
    daily_goal: int
    today_learned: int
    is_finished: bool
    days_since_start: int
    days_target: int
    created_at: datetime


@dataclass(frozen=True)
class Identity:
    """The learner a session belongs to."""
    id: str
    username: str
    avatar_color: str = "#219EBC"
    avatar_id: Optional[str] = None
    is_admin: bool = False


@dataclass
class LeaderboardEntry:
    """One row of the ranking, as exchanged with the ranking service."""
    id: str
    username: str
    avatar_color: str
    score: int
    avatar_id: Optional[str] = None

    def to_payload(self) -> Dict[str, Any]:
        """Wire format of the ranking service."""
        return {
            "id": self.id,
            "username": self.username,
            "avatarId": self.avatar_id,
            "avatarColor": self.avatar_color,
            "score": self.score,
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "LeaderboardEntry":
        return cls(
            id=str(data["id"]),
            username=data["username"],
            avatar_id=data.get("avatarId"),
            avatar_color=data.get("avatarColor") or "",
            score=int(data.get("score") or 0),
        )

    @classmethod
    def for_identity(cls, identity: Identity, score: int) -> "LeaderboardEntry":
        return cls(
            id=identity.id,
            username=identity.username,
            avatar_id=identity.avatar_id,
            avatar_color=identity.avatar_color,
            score=score,
        )


@dataclass
class LeaderboardResult:
    """Leaderboard rows plus whether they came from the local fallback."""
    entries: List[LeaderboardEntry]
    is_offline: bool = False


@dataclass
class StudyState:
    """Everything one identity's session owns; persisted blob by blob."""
    user_id: str
    day_state: PlanDayState
    plan: Optional[PlanSettings] = None
    progress: Dict[str, ProgressRecord] = field(default_factory=dict)
    test_history: List[TestRecord] = field(default_factory=list)
