"""Log event schemas"""
from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel

from vpdb.schemas.game import GameReduced
from vpdb.schemas.user import UserReduced


class LogEventRef(BaseModel):
    id: str
    name: Optional[str] = None

    class Config:
        from_attributes = True


class LogEventResponse(BaseModel):
    id: str
    event: str
    payload: Dict[str, Any]
    is_public: bool
    actor: Optional[UserReduced] = None
    game: Optional[GameReduced] = None
    release: Optional[LogEventRef] = None
    logged_at: datetime
    ip: Optional[str] = None   # full details only

    class Config:
        from_attributes = True
