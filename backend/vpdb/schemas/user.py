"""User schemas"""
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserReduced(BaseModel):
    """Public reference to a user"""

    id: str
    name: str
    username: Optional[str] = None

    class Config:
        from_attributes = True


class UserDetailed(UserReduced):
    """User as seen by themselves or by admins"""

    email: str
    roles: List[str]
    plan: str
    providers: Dict[str, Dict[str, Any]]
    is_active: bool
    counter_stars: int
    created_at: datetime


class ProfileResponse(UserDetailed):
    """The logged user's profile, including effective permissions and plan"""

    permissions: Dict[str, List[str]]
    plan_config: Dict[str, Any]


class ProfileUpdate(BaseModel):
    """Updatable profile fields"""

    name: Optional[str] = Field(None, min_length=1, max_length=255)
    username: Optional[str] = Field(None, min_length=3, max_length=30, pattern=r"^[a-zA-Z0-9_.-]+$")
    email: Optional[str] = Field(None, pattern=EMAIL_PATTERN)
    current_password: Optional[str] = None
    password: Optional[str] = Field(None, min_length=6)


class ProviderUserUpdate(BaseModel):
    """A provider creating or updating one of its users"""

    provider_id: Union[int, str] = Field(..., description="ID of the user at the provider")
    email: str = Field(..., pattern=EMAIL_PATTERN)
    username: str = Field(..., min_length=3, max_length=30)
    name: Optional[str] = None


class UserUpdate(BaseModel):
    """Fields an administrator can change on a user"""

    name: str = Field(..., min_length=1, max_length=255)
    username: str = Field(..., min_length=3, max_length=30, pattern=r"^[a-zA-Z0-9_.-]+$")
    email: str = Field(..., pattern=EMAIL_PATTERN)
    roles: List[str] = Field(..., min_length=1)
    plan: Optional[str] = None
    is_active: bool = True
