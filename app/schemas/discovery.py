from datetime import datetime
from typing import Optional, List
from pydantic import BaseModel, ConfigDict, Field

from app.core.config import settings
from app.models.enums import InteractionAction
from .user import CandidateProfile, PartnerProfile, UserPublic


class DiscoveryFilters(BaseModel):
    min_age: int = Field(default_factory=lambda: settings.DISCOVERY_MIN_AGE, ge=0)
    max_age: int = Field(default_factory=lambda: settings.DISCOVERY_MAX_AGE, ge=0)
    latitude: Optional[float] = Field(None, ge=-90, le=90)
    longitude: Optional[float] = Field(None, ge=-180, le=180)
    max_distance_km: float = Field(default_factory=lambda: settings.DISCOVERY_MAX_DISTANCE_KM, gt=0)
    limit: int = Field(default_factory=lambda: settings.DISCOVERY_PAGE_SIZE, ge=1, le=100)
    page: int = Field(0, ge=0)

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None


class MatchSchema(BaseModel):
    id: int
    user_a: str
    user_b: str
    matched_at: datetime

    model_config = ConfigDict(from_attributes=True)


class InteractionSchema(BaseModel):
    viewer_id: str
    target_id: str
    action: InteractionAction
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class LikeResult(BaseModel):
    matched: bool
    match: Optional[MatchSchema] = None


class MatchWithPartner(BaseModel):
    match: MatchSchema
    partner: Optional[PartnerProfile] = None  # None when the partner's record is gone


class DeclineResult(BaseModel):
    deleted_count: int


class UnmatchResult(BaseModel):
    removed_match: bool
    deleted_messages: int = 0


# --- Response envelopes --- #

class ProfilesResponse(BaseModel):
    success: bool = True
    profiles: List[CandidateProfile]


class LikeResponse(LikeResult):
    success: bool = True


class MatchesResponse(BaseModel):
    success: bool = True
    matches: List[MatchWithPartner]


class ReceivedLikesResponse(BaseModel):
    success: bool = True
    likes: List[UserPublic]


class SentLikesResponse(BaseModel):
    success: bool = True
    items: List[UserPublic]


class IsMatchedResponse(BaseModel):
    success: bool = True
    matched: bool


class DeclineResponse(DeclineResult):
    success: bool = True


class UnmatchResponse(UnmatchResult):
    success: bool = True


class AckResponse(BaseModel):
    success: bool = True
    message: Optional[str] = None
