"""Medium schemas"""
from datetime import datetime
from typing import Dict, Literal, Optional

from pydantic import BaseModel

from vpdb.schemas.game import GameReduced
from vpdb.schemas.log_event import LogEventRef
from vpdb.schemas.user import UserReduced

MediumCategory = Literal["flyer_image", "gameplay_video", "instruction_card", "playfield_image", "wheel_image"]


class MediumResponse(BaseModel):
    id: str
    category: str
    description: Optional[str] = None
    game: Optional[GameReduced] = None
    release: Optional[LogEventRef] = None
    counter: Dict[str, int]
    created_by: Optional[UserReduced] = None
    created_at: datetime

    class Config:
        from_attributes = True


class MediumCreate(BaseModel):
    category: MediumCategory
    description: Optional[str] = None
    game_id: Optional[str] = None
    release_id: Optional[str] = None
