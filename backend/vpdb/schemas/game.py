"""Game schemas"""
from datetime import datetime
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field

GameType = Literal["ss", "em", "pm", "og", "na"]


class GameReduced(BaseModel):
    id: str
    title: str
    year: Optional[int] = None
    manufacturer: Optional[str] = None

    class Config:
        from_attributes = True


class GameResponse(GameReduced):
    game_type: str
    ipdb_number: Optional[int] = None
    description: Optional[str] = None
    counter: Dict[str, int]
    rating: Dict[str, float]
    created_at: datetime


class GameReleaseSummary(BaseModel):
    id: str
    name: str
    created_at: datetime

    class Config:
        from_attributes = True


class GameDetails(GameResponse):
    """Game with its approved releases"""

    releases: List[GameReleaseSummary] = []


class GameCreate(BaseModel):
    """Schema for creating a game"""

    id: str = Field(..., min_length=2, max_length=64, pattern=r"^[a-z0-9-]+$", description="URL-friendly game ID")
    title: str = Field(..., min_length=1, max_length=255)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    manufacturer: Optional[str] = Field(None, max_length=255)
    game_type: GameType = "na"
    ipdb_number: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None


class GameUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    year: Optional[int] = Field(None, ge=1900, le=2100)
    manufacturer: Optional[str] = Field(None, max_length=255)
    game_type: Optional[GameType] = None
    ipdb_number: Optional[int] = Field(None, ge=1)
    description: Optional[str] = None
