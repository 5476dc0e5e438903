from datetime import datetime, timedelta, timezone
from typing import Optional
import logging

from jose import JWTError, jwt
from sqlalchemy.orm import Session

from ..config import get_settings
from ..constants import APP_SLUG
from ..models.models import Profile, UserTracking
from ..schemas.user import AuthUser

logger = logging.getLogger(__name__)

ACCESS_TOKEN_EXPIRE_MINUTES = 60


class AuthNotConfiguredError(Exception):
    """No JWT secret is configured, so tokens can be neither issued nor verified."""


def _secret() -> str:
    secret = get_settings().auth_jwt_secret
    if not secret:
        raise AuthNotConfiguredError("AUTH_JWT_SECRET environment variable not set")
    return secret


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create JWT access token. Used for development and tests, the auth provider issues real ones."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, _secret(), algorithm=get_settings().auth_jwt_algorithm)


def decode_access_token(token: str) -> AuthUser:
    """
    Resolve a bearer token into the current user.

    Raises:
        JWTError: Invalid, expired or subject-less token
        AuthNotConfiguredError: No secret configured
    """
    payload = jwt.decode(token, _secret(), algorithms=[get_settings().auth_jwt_algorithm])
    user_id = payload.get("sub")
    if not user_id:
        raise JWTError("Token has no subject")
    return AuthUser(
        id=str(user_id),
        email=payload.get("email") or '',
        name=payload.get("name"),
        avatar_url=payload.get("avatar_url"),
    )


def track_user_login(db: Session, user_id: str, email: str, app: str = APP_SLUG) -> UserTracking:
    """Record one login: insert the tracking row or bump its counter."""
    now = datetime.now(timezone.utc)
    tracking = db.query(UserTracking).filter(
        UserTracking.user_id == user_id,
        UserTracking.app == app
    ).first()

    if tracking:
        tracking.login_cnt = (tracking.login_cnt or 0) + 1
        tracking.last_login_ts = now
        if email:
            tracking.email = email
    else:
        tracking = UserTracking(user_id=user_id, email=email, app=app, last_login_ts=now, login_cnt=1)
        db.add(tracking)

    db.commit()
    db.refresh(tracking)
    return tracking


def ensure_profile(db: Session, user_id: str, timezone_name: Optional[str] = None) -> Profile:
    profile = db.get(Profile, user_id)
    if profile is None:
        profile = Profile(user_id=user_id, timezone=timezone_name)
        db.add(profile)
    elif timezone_name:
        profile.timezone = timezone_name
    db.commit()
    db.refresh(profile)
    return profile
