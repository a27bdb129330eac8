"""Comment, rating and star schemas"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field

from vpdb.schemas.user import UserReduced


class CommentResponse(BaseModel):
    id: str
    message: str
    created_by: Optional[UserReduced] = None
    created_at: datetime

    class Config:
        from_attributes = True


class CommentCreate(BaseModel):
    message: str = Field(..., min_length=1, max_length=10000)


class RatingRequest(BaseModel):
    value: int = Field(..., ge=1, le=10)


class RatingResponse(BaseModel):
    value: int
    created_at: datetime
    modified_at: Optional[datetime] = None
    game: Optional[Dict[str, Any]] = None
    release: Optional[Dict[str, Any]] = None


class StarResponse(BaseModel):
    created_at: datetime
    total_stars: Optional[int] = None
