"""Score computation and synchronisation with the shared ranking."""
import logging
from typing import Any, List, Mapping, Optional, Sequence

import httpx

from vocabplan import monitoring
from vocabplan.config import settings
from vocabplan.models.vocab_models import (
    Identity,
    LeaderboardEntry,
    LeaderboardResult,
    ProgressRecord,
    WordStatus,
)
from vocabplan.services.store_service import PROGRESS_KEY, BlobStore

logger = logging.getLogger(__name__)

# Shown next to local users when the ranking service cannot be reached
FALLBACK_ENTRIES = [
    LeaderboardEntry(id="bot_1", username="Alex", avatar_id="blue", avatar_color="#219EBC", score=120),
    LeaderboardEntry(id="bot_2", username="Sarah", avatar_id="red", avatar_color="#FF595E", score=85),
    LeaderboardEntry(id="bot_3", username="Tom", avatar_id="green", avatar_color="#8AC926", score=45),
    LeaderboardEntry(id="bot_4", username="Lily", avatar_id="yellow", avatar_color="#FFCA3A", score=30),
]


def derived_score(progress: Mapping[str, ProgressRecord]) -> int:
    """Number of words that are being learned or mastered."""
    return sum(1 for record in progress.values() if record.status is not WordStatus.NEW)


class RankingClient:
    """HTTP client for the ranking service.

    Calls never raise: a transport error, a non-2xx status or a malformed body
    is logged and reported as ``False`` / an empty list. No timeout is set, a
    hanging service only stalls the awaiting caller.
    """

    def __init__(self, base_url: Optional[str] = None, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = (base_url or settings.ranking.base_url).rstrip("/")
        self._client = httpx.AsyncClient(base_url=self.base_url, timeout=None, transport=transport)

    async def close(self) -> None:
        """Close the HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> "RankingClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def sync_score(self, entry: LeaderboardEntry) -> bool:
        """Push a score; the service keeps the higher of stored and pushed."""
        try:
            response = await self._client.post("/sync", json=entry.to_payload())
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to sync score of {entry.id} to ranking service: {e}")
            monitoring.score_syncs.labels(result="failed").inc()
            return False

        success = isinstance(data, dict) and bool(data.get("success"))
        monitoring.score_syncs.labels(result="ok" if success else "rejected").inc()
        if success:
            logger.debug(f"Synced score {entry.score} for {entry.id}")
        else:
            logger.warning(f"Ranking service did not accept score of {entry.id}: {data}")
        return success

    async def fetch_leaderboard(self) -> List[LeaderboardEntry]:
        """Fetch the ranking, best first."""
        try:
            response = await self._client.get("/leaderboard")
            response.raise_for_status()
            data = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Failed to fetch leaderboard: {e}")
            return []

        if not isinstance(data, list):
            logger.warning(f"Unexpected leaderboard payload: {type(data).__name__}")
            return []
        try:
            return [LeaderboardEntry.from_payload(row) for row in data]
        except (KeyError, TypeError, ValueError) as e:
            logger.warning(f"Malformed leaderboard entry: {e}")
            return []


class ScoreService:
    """Service for publishing scores and assembling the leaderboard."""

    def __init__(self, client: RankingClient, store: BlobStore):
        self.client = client
        self.store = store

    def local_score(self, user_id: str) -> int:
        """Score of a user computed from their persisted progress."""
        data, _ = self.store.load(user_id, PROGRESS_KEY)
        if not data:
            return 0
        progress = {word: ProgressRecord.from_data(record) for word, record in data.items()}
        return derived_score(progress)

    async def sync_user(self, user: Identity) -> bool:
        score = self.local_score(user.id)
        return await self.client.sync_score(LeaderboardEntry.for_identity(user, score))

    def local_leaderboard(self, users: Sequence[Identity]) -> List[LeaderboardEntry]:
        """Local users plus the filler entries, best first. Never published."""
        entries = [
            LeaderboardEntry.for_identity(user, self.local_score(user.id))
            for user in users
            if not user.is_admin
        ]
        entries.extend(LeaderboardEntry(**vars(entry)) for entry in FALLBACK_ENTRIES)
        return sorted(entries, key=lambda e: e.score, reverse=True)

    async def load_leaderboard(self, user: Optional[Identity], known_users: Sequence[Identity] = ()) -> LeaderboardResult:
        """Sync the current user's score, then fetch the ranking.

        Falls back to the local leaderboard when the ranking service fails or
        returns nothing.
        """
        if user:
            await self.sync_user(user)

        entries = await self.client.fetch_leaderboard()
        if entries:
            return LeaderboardResult(entries=entries, is_offline=False)

        logger.info("Ranking service unreachable, falling back to local leaderboard")
        monitoring.leaderboard_fallbacks.inc()
        users = list(known_users)
        if user and all(u.id != user.id for u in users):
            users.append(user)
        return LeaderboardResult(entries=self.local_leaderboard(users), is_offline=True)
