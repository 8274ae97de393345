"""Ranking service application."""
import logging
from typing import List

from fastapi import Depends, FastAPI, HTTPException
from sqlalchemy.orm import Session
from starlette import status

from vocabplan.clock import Clock, get_clock
from vocabplan.models.base import get_db
from vocabplan.models.vocab_models import LeaderboardEntry
from vocabplan.schemas import RankingEntrySchema, SyncRequest, SyncResponse
from vocabplan.services.ranking_service import RankingService

logger = logging.getLogger(__name__)


def get_ranking_service(
    db: Session = Depends(get_db),
    clock: Clock = Depends(get_clock),
) -> RankingService:
    return RankingService(db, clock)


def create_app() -> FastAPI:
    """Create the ranking API application."""
    app = FastAPI(title="vocabplan ranking")

    @app.post("/api/sync", response_model=SyncResponse)
    def sync_score(
        request: SyncRequest,
        service: RankingService = Depends(get_ranking_service),
    ) -> SyncResponse:
        """Upsert a score, keeping the higher of stored and pushed."""
        if not request.id or not request.username:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Missing required fields")

        service.upsert_score(
            LeaderboardEntry(
                id=request.id,
                username=request.username,
                avatar_id=request.avatar_id,
                avatar_color=request.avatar_color or "",
                score=request.score,
            )
        )
        return SyncResponse(success=True)

    @app.get("/api/leaderboard", response_model=List[RankingEntrySchema])
    def get_leaderboard(
        service: RankingService = Depends(get_ranking_service),
    ) -> List[RankingEntrySchema]:
        """Top scores, best first."""
        return [RankingEntrySchema.model_validate(row) for row in service.get_leaderboard()]

    logger.info("Ranking application created")
    return app
