"""Token and authentication schemas"""
from datetime import datetime
from typing import List, Literal, Optional, Union

from pydantic import BaseModel, Field

from vpdb.schemas.user import UserDetailed


class TokenCreate(BaseModel):
    """Schema for creating an application token"""

    label: Optional[str] = Field(None, min_length=3, max_length=255)
    password: Optional[str] = None
    type: Literal["personal", "application"] = "personal"
    scopes: List[str] = Field(..., min_length=1, description="Scopes the token is valid for")
    provider: Optional[str] = Field(None, description="Required for application tokens")


class TokenUpdate(BaseModel):
    """Updatable token fields"""

    label: Optional[str] = Field(None, min_length=3, max_length=255)
    is_active: Optional[bool] = None
    scopes: Optional[List[str]] = Field(None, min_length=1)


class TokenResponse(BaseModel):
    """Schema for token response (without secret)"""

    id: str
    label: str
    type: str
    scopes: List[str]
    provider: Optional[str] = None
    is_active: bool
    expires_at: datetime
    last_used_at: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class TokenWithSecret(TokenResponse):
    """Token including its secret (only shown once at creation)"""

    token: str = Field(..., description="Token secret - only shown once, save securely!")


class TokenInfo(BaseModel):
    """What is known about a token, app token or JWT"""

    label: Optional[str] = None
    type: str
    scopes: List[str]
    provider: Optional[str] = None
    for_user: Optional[str] = None
    for_path: Optional[str] = None
    created_at: Optional[datetime] = None
    expires_at: datetime
    is_active: bool


class AuthenticateRequest(BaseModel):
    """Log in with username and password, or with a login token"""

    username: Optional[str] = None
    password: Optional[str] = None
    token: Optional[str] = None


class AuthenticateResponse(BaseModel):
    token: str
    expires: datetime
    user: UserDetailed


class StorageAuthenticateRequest(BaseModel):
    paths: Union[str, List[str]]
