from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, EmailStr, Field, field_validator

from app.models.enums import Gender


# Shared projection of another user's profile; never carries email or password hash
class UserPublic(BaseModel):
    id: str
    name: str = ""
    age: Optional[int] = None
    bio: Optional[str] = None
    personality: Optional[str] = None
    tags: List[str] = []
    gender: Optional[Gender] = None
    profile_picture_url: Optional[str] = None
    latitude: Optional[float] = None
    longitude: Optional[float] = None

    model_config = ConfigDict(from_attributes=True)


class CandidateProfile(UserPublic):
    """Feed entry; distance_km is set when the feed was queried with a position."""
    distance_km: Optional[float] = None


# Minimal partner card shown next to a match
class PartnerProfile(BaseModel):
    id: str
    name: str = ""
    age: Optional[int] = None
    profile_picture_url: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


# The caller's own profile
class UserProfile(UserPublic):
    email: str
    motivation: Optional[str] = None
    frustration: Optional[str] = None
    profile_picture_public_id: Optional[str] = None
    created_at: Optional[datetime] = None


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    age: Optional[int] = Field(None, ge=18, le=120)
    bio: Optional[str] = None
    personality: Optional[str] = None
    motivation: Optional[str] = None
    frustration: Optional[str] = None
    tags: Optional[List[str]] = None
    gender: Optional[Gender] = None
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)

    @field_validator("tags")
    @classmethod
    def dedupe_tags(cls, v: Optional[List[str]]) -> Optional[List[str]]:
        if v is None:
            return v
        tags, seen = [], set()
        for tag in (t.strip() for t in v):
            if tag and tag.lower() not in seen:
                seen.add(tag.lower())
                tags.append(tag)
        return tags


class UserRegister(BaseModel):
    name: str = Field(..., min_length=1)
    email: EmailStr
    password: str = Field(..., min_length=6)


class UserLogin(BaseModel):
    email: EmailStr
    password: str


class ProfileResponse(BaseModel):
    success: bool = True
    user: UserProfile
