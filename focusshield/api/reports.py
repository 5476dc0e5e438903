from datetime import datetime, timezone
from typing import List, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from ..config import Settings, get_settings
from ..database import get_db
from ..models.models import Profile
from ..schemas.records import RecordKind
from ..schemas.report import WeeklyReportView
from ..schemas.user import AuthUser
from ..services.entitlement import is_pro_subscription
from ..services.remote_store import SqlRemoteStore
from ..services.report_service import build_report_views, build_weekly_reports
from .auth import get_current_user
from .metrics import report_build_duration

router = APIRouter(prefix="/reports", tags=["reports"])


def _resolve_timezone(db: Session, user_id: str, tz_name: Optional[str]):
    """Explicit tz, then the profile timezone, then UTC."""
    if not tz_name:
        profile = db.get(Profile, user_id)
        tz_name = profile.timezone if profile else None
    if not tz_name:
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown timezone: {tz_name}"
        )


@router.get("/weekly", response_model=List[WeeklyReportView])
async def weekly_reports(
    weeks: Optional[int] = Query(None, ge=1, le=104, description="Number of weeks to report, newest first"),
    tz: Optional[str] = Query(None, description="IANA timezone used for week and day boundaries"),
    current_user: AuthUser = Depends(get_current_user),
    db: Session = Depends(get_db),
    settings: Settings = Depends(get_settings)
):
    """Weekly reports over synced records. Weeks beyond the free tier are locked for free users."""
    bucket_tz = _resolve_timezone(db, current_user.id, tz)
    store = SqlRemoteStore(db, user_id=current_user.id)

    with report_build_duration.time():
        sessions = store.select_by_user(RecordKind.SESSIONS, current_user.id)
        meetings = store.select_by_user(RecordKind.MEETING_BLOCKS, current_user.id)
        reports = build_weekly_reports(
            sessions, meetings, datetime.now(timezone.utc), weeks or settings.report_weeks, bucket_tz
        )

    is_pro = is_pro_subscription(store.get_subscription(current_user.id))
    return build_report_views(reports, is_pro, settings.free_tier_report_weeks)
