"""Build schemas"""
from datetime import datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field

BuildType = Literal["release", "nightly", "experimental"]


class BuildResponse(BaseModel):
    id: str
    label: str
    platform: str
    major_version: str
    type: str
    is_range: bool
    built_at: Optional[datetime] = None
    description: Optional[str] = None
    is_active: bool
    created_at: datetime

    class Config:
        from_attributes = True


class BuildCreate(BaseModel):
    label: str = Field(..., min_length=3, max_length=255)
    platform: Literal["vp"] = "vp"
    major_version: str = Field(..., min_length=1, max_length=10)
    type: BuildType
    is_range: bool = False
    built_at: Optional[datetime] = None
    description: Optional[str] = None


class BuildUpdate(BaseModel):
    label: Optional[str] = Field(None, min_length=3, max_length=255)
    major_version: Optional[str] = Field(None, min_length=1, max_length=10)
    type: Optional[BuildType] = None
    is_range: Optional[bool] = None
    built_at: Optional[datetime] = None
    description: Optional[str] = None
    is_active: Optional[bool] = None
