"""Pydantic schemas for the ranking API."""
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class RankingEntrySchema(BaseModel):
    """A ranking row on the wire (camelCase keys)."""

    id: str
    username: str
    avatar_id: Optional[str] = Field(None, alias="avatarId")
    avatar_color: Optional[str] = Field(None, alias="avatarColor")
    score: int = 0

    model_config = ConfigDict(from_attributes=True, populate_by_name=True)


class SyncRequest(BaseModel):
    """Score pushed by a client."""

    id: Optional[str] = None
    username: Optional[str] = None
    avatar_id: Optional[str] = Field(None, alias="avatarId")
    avatar_color: Optional[str] = Field(None, alias="avatarColor")
    score: int = Field(0, ge=0, description="Number of learned words")

    model_config = ConfigDict(populate_by_name=True)


class SyncResponse(BaseModel):
    """Acknowledgement of a score push."""

    success: bool
