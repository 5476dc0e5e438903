from typing import Optional
from urllib.parse import quote
import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import RedirectResponse
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from sqlalchemy.orm import Session

from ..database import get_db
from ..schemas.user import AuthUser, SignInRequest, LoginTrackingResponse
from ..services.auth_service import (
    AuthNotConfiguredError, decode_access_token, ensure_profile, track_user_login,
)
from .metrics import auth_jwt_errors

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])
bearer_scheme = HTTPBearer(auto_error=False)


async def get_optional_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> Optional[AuthUser]:
    """Current user from the bearer token, or None for anonymous requests."""
    if credentials is None:
        return None
    try:
        return decode_access_token(credentials.credentials)
    except AuthNotConfiguredError as e:
        logger.warning("Auth not configured: %s", e)
        return None
    except JWTError as e:
        auth_jwt_errors.inc()
        logger.info("JWT decode failed: %s", e)
        return None


async def get_current_user(user: Optional[AuthUser] = Depends(get_optional_user)) -> AuthUser:
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


@router.get("/me", response_model=AuthUser)
async def read_current_user(current_user: AuthUser = Depends(get_current_user)):
    return current_user


@router.post("/signed-in", response_model=LoginTrackingResponse)
async def signed_in(
    body: Optional[SignInRequest] = None,
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Called once per new sign-in: count the login and make sure a profile exists."""
    ensure_profile(db, current_user.id, body.timezone if body else None)
    return track_user_login(db, current_user.id, current_user.email)


@router.get("/callback")
async def auth_callback(request: Request, error: Optional[str] = None, error_description: Optional[str] = None):
    """OAuth redirect target. Token exchange happens on the client."""
    origin = str(request.base_url).rstrip("/")
    if error:
        logger.error("Auth callback error: %s %s", error, error_description)
        return RedirectResponse(f"{origin}/?auth_error={quote(error)}")
    return RedirectResponse(f"{origin}/app")
