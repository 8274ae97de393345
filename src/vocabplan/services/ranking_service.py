"""Service for the shared ranking store."""
import logging
from datetime import datetime
from typing import List, Optional

from sqlalchemy import func
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.orm import Session

from vocabplan.clock import Clock, get_clock
from vocabplan.config import settings
from vocabplan.models.models import RankingEntry
from vocabplan.models.vocab_models import LeaderboardEntry

logger = logging.getLogger(__name__)


class RankingService:
    """Service for merging pushed scores into the shared ranking.

    A pushed score never lowers a stored one: on conflict the stored score
    becomes ``max(stored, pushed)``, so replays and out-of-order pushes from
    several sessions converge. The merge runs as one ``INSERT ... ON CONFLICT``
    statement, so concurrent pushes cannot overwrite each other. Profile
    fields are overwritten by the latest push.
    """

    def __init__(self, db: Session, clock: Optional[Clock] = None):
        """Initialize the service with a database session."""
        self.db = db
        self.clock = clock or get_clock()

    def get_entry(self, entry_id: str) -> Optional[RankingEntry]:
        return self.db.query(RankingEntry).filter(RankingEntry.id == entry_id).first()

    def _merge_statement(self, entry: LeaderboardEntry, now: datetime):
        dialect = self.db.get_bind().dialect.name
        if dialect == "postgresql":
            stmt = postgresql.insert(RankingEntry)
            higher = func.greatest
        elif dialect == "sqlite":
            stmt = sqlite.insert(RankingEntry)
            higher = func.max
        else:
            raise NotImplementedError(f"Score merge is not supported on {dialect}")

        stmt = stmt.values(
            id=entry.id,
            username=entry.username,
            avatar_id=entry.avatar_id,
            avatar_color=entry.avatar_color,
            score=entry.score,
            updated_at=now,
        )
        return stmt.on_conflict_do_update(
            index_elements=[RankingEntry.id],
            set_={
                "score": higher(RankingEntry.score, stmt.excluded.score),
                "username": stmt.excluded.username,
                "avatar_id": stmt.excluded.avatar_id,
                "avatar_color": stmt.excluded.avatar_color,
                "updated_at": stmt.excluded.updated_at,
            },
        )

    def upsert_score(self, entry: LeaderboardEntry) -> RankingEntry:
        """Insert or max-merge an identity's score."""
        if not entry.id or not entry.username:
            raise ValueError("Missing required fields")
        if entry.score < 0:
            raise ValueError(f"Score must not be negative, got {entry.score}")

        self.db.execute(self._merge_statement(entry, self.clock.now()))
        self.db.commit()

        row = self.db.get(RankingEntry, entry.id, populate_existing=True)
        logger.debug(f"Merged score for {entry.username} ({entry.id}): pushed {entry.score}, stored {row.score}")
        return row

    def get_leaderboard(self, limit: Optional[int] = None) -> List[RankingEntry]:
        """Best scores first."""
        limit = limit or settings.ranking.leaderboard_limit
        return (
            self.db.query(RankingEntry)
            .order_by(RankingEntry.score.desc(), RankingEntry.updated_at.asc())
            .limit(limit)
            .all()
        )
