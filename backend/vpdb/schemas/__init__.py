"""Pydantic schemas for request/response validation"""
from vpdb.schemas.build import BuildCreate, BuildResponse, BuildUpdate
from vpdb.schemas.game import GameCreate, GameDetails, GameReduced, GameResponse, GameUpdate
from vpdb.schemas.log_event import LogEventResponse
from vpdb.schemas.medium import MediumCreate, MediumResponse
from vpdb.schemas.release import (
    BackglassCreate,
    BackglassResponse,
    BackglassUpdate,
    ModerationRequest,
    ReleaseCreate,
    ReleaseResponse,
    ReleaseUpdate,
    RomCreate,
    RomResponse,
)
from vpdb.schemas.social import CommentCreate, CommentResponse, RatingRequest, RatingResponse, StarResponse
from vpdb.schemas.token import (
    AuthenticateRequest,
    StorageAuthenticateRequest,
    TokenCreate,
    TokenInfo,
    TokenResponse,
    TokenUpdate,
    TokenWithSecret,
)
from vpdb.schemas.user import ProfileResponse, ProfileUpdate, ProviderUserUpdate, UserDetailed, UserReduced, UserUpdate

__all__ = [
    "AuthenticateRequest",
    "BackglassCreate",
    "BackglassResponse",
    "BackglassUpdate",
    "BuildCreate",
    "BuildResponse",
    "BuildUpdate",
    "CommentCreate",
    "CommentResponse",
    "GameCreate",
    "GameDetails",
    "GameReduced",
    "GameResponse",
    "GameUpdate",
    "LogEventResponse",
    "MediumCreate",
    "MediumResponse",
    "ModerationRequest",
    "ProfileResponse",
    "ProfileUpdate",
    "ProviderUserUpdate",
    "RatingRequest",
    "RatingResponse",
    "ReleaseCreate",
    "ReleaseResponse",
    "ReleaseUpdate",
    "RomCreate",
    "RomResponse",
    "StarResponse",
    "StorageAuthenticateRequest",
    "TokenCreate",
    "TokenInfo",
    "TokenResponse",
    "TokenUpdate",
    "TokenWithSecret",
    "UserDetailed",
    "UserReduced",
    "UserUpdate",
]
