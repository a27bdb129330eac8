"""Database models"""
from vpdb.models.build import Build
from vpdb.models.game import Game
from vpdb.models.log_event import LogEvent
from vpdb.models.medium import Medium
from vpdb.models.moderation import ModeratedMixin, ModerationEvent
from vpdb.models.release import Backglass, Release, Rom
from vpdb.models.social import Comment, Rating, Star
from vpdb.models.token import Token
from vpdb.models.user import User, UserProvider

__all__ = [
    "Backglass", "Build", "Comment", "Game", "LogEvent", "Medium", "ModeratedMixin", "ModerationEvent",
    "Rating", "Release", "Rom", "Star", "Token", "User", "UserProvider",
]
