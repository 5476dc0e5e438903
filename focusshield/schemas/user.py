from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class AuthUser(BaseModel):
    """Current user as exposed by the auth provider."""
    id: str
    email: str = ''
    name: Optional[str] = None
    avatar_url: Optional[str] = None


class SignInRequest(BaseModel):
    timezone: Optional[str] = None


class LoginTrackingResponse(BaseModel):
    user_id: str
    app: str
    login_cnt: int
    last_login_ts: datetime

    class Config:
        from_attributes = True
