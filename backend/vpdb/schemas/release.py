"""Release, Backglass, Rom and moderation schemas"""
from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from vpdb.schemas.game import GameReduced
from vpdb.schemas.user import UserReduced


class ModerationHistoryItem(BaseModel):
    event: str
    message: Optional[str] = None
    created_at: datetime
    created_by: Optional[Dict[str, Any]] = None


class ModerationResponse(BaseModel):
    """Moderation state, only shown to creators and moderators"""

    is_approved: bool
    is_refused: bool
    auto_approved: bool
    history: List[ModerationHistoryItem]


class ModerationRequest(BaseModel):
    action: Optional[str] = None
    message: Optional[str] = None


class ReleaseResponse(BaseModel):
    id: str
    name: str
    description: Optional[str] = None
    game: GameReduced
    counter: Dict[str, int]
    rating: Dict[str, float]
    created_by: Optional[UserReduced] = None
    created_at: datetime
    modified_at: datetime
    starred: Optional[bool] = None
    moderation: Optional[ModerationResponse] = None

    class Config:
        from_attributes = True


class ReleaseCreate(BaseModel):
    game_id: str
    name: str = Field(..., min_length=3, max_length=255)
    description: Optional[str] = None


class ReleaseUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=3, max_length=255)
    description: Optional[str] = None


class BackglassResponse(BaseModel):
    id: str
    description: Optional[str] = None
    game: GameReduced
    counter: Dict[str, int]
    created_by: Optional[UserReduced] = None
    created_at: datetime
    moderation: Optional[ModerationResponse] = None

    class Config:
        from_attributes = True


class BackglassCreate(BaseModel):
    game_id: Optional[str] = None   # taken from the path on /games/{game_id}/backglasses
    description: Optional[str] = None


class BackglassUpdate(BaseModel):
    description: Optional[str] = None


class RomResponse(BaseModel):
    id: str
    version: Optional[str] = None
    language: Optional[str] = None
    notes: Optional[str] = None
    game: GameReduced
    created_by: Optional[UserReduced] = None
    created_at: datetime
    moderation: Optional[ModerationResponse] = None

    class Config:
        from_attributes = True


class RomCreate(BaseModel):
    id: str = Field(..., min_length=2, max_length=64, pattern=r"^[a-zA-Z0-9_-]+$", description="ROM name")
    version: Optional[str] = Field(None, max_length=50)
    language: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None
