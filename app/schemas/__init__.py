# flake8: noqa
from .user import (
    UserPublic, CandidateProfile, PartnerProfile, UserProfile, ProfileUpdate,
    UserRegister, UserLogin, ProfileResponse
)
from .token import TokenPayload, MagicLinkRequest, MagicLinkVerify, AuthResponse, GoogleLogin, FacebookLogin
from .discovery import (
    DiscoveryFilters, MatchSchema, InteractionSchema, LikeResult, MatchWithPartner,
    DeclineResult, UnmatchResult, ProfilesResponse, LikeResponse, MatchesResponse,
    ReceivedLikesResponse, SentLikesResponse, IsMatchedResponse, DeclineResponse,
    UnmatchResponse, AckResponse
)
from .message import MessageCreate, MessageUpdate, MessageSchema, MessageResponse, MessagesResponse
