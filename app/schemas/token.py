from pydantic import BaseModel
from typing import Optional

from .user import UserProfile


class TokenPayload(BaseModel):
    sub: Optional[str] = None  # 'sub' is the standard JWT field for subject (the user's email)
    user_id: Optional[str] = None
    type: Optional[str] = None  # "magic" for sign-in link tokens


class MagicLinkRequest(BaseModel):
    email: str


class MagicLinkVerify(BaseModel):
    token: str


class AuthResponse(BaseModel):
    success: bool = True
    token: str
    token_type: str = "bearer"
    user: UserProfile


class GoogleLogin(BaseModel):
    id_token: str


class FacebookLogin(BaseModel):
    access_token: str
