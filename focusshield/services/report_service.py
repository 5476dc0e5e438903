"""
Weekly report aggregation.

Buckets sessions and meeting blocks into Monday-to-Sunday windows counting
back from now and computes the fragmentation metrics for each window.
"""

from __future__ import annotations

import math
from datetime import datetime, tzinfo
from typing import List, Optional, Sequence

from ..constants import FREE_TIER_REPORT_WEEKS, REPORT_WEEKS
from ..schemas.records import FocusSession, MeetingBlock
from ..schemas.report import WeeklyReport, WeeklyReportView
from ..utils.time_utils import (
    calculate_context_switches,
    calculate_meeting_hours,
    in_window,
    week_bounds,
)
from .entitlement import is_week_locked



def build_weekly_report(
    sessions: Sequence[FocusSession],
    meeting_blocks: Sequence[MeetingBlock],
    week_start: datetime,
    week_end: datetime,
    tz: Optional[tzinfo] = None,
) -> WeeklyReport:
    week_sessions = [s for s in sessions if in_window(s.started_at, week_start, week_end)]
    week_meetings = [b for b in meeting_blocks if in_window(b.start_at, week_start, week_end)]

    return WeeklyReport(
        week_start=week_start,
        week_end=week_end,
        total_focus_minutes=sum(math.floor(s.duration_sec / 60) for s in week_sessions),
        completed_sessions=sum(1 for s in week_sessions if s.is_completed),
        interrupted_sessions=sum(1 for s in week_sessions if s.interrupted),
        meeting_hours=calculate_meeting_hours(week_meetings),
        context_switch_index=calculate_context_switches(week_sessions, week_meetings, tz),
        # Known approximation kept on purpose: one note per session
        ship_notes_count=len(week_sessions),
    )


def build_weekly_reports(
    sessions: Sequence[FocusSession],
    meeting_blocks: Sequence[MeetingBlock],
    now: datetime,
    week_count: int = REPORT_WEEKS,
    tz: Optional[tzinfo] = None,
) -> List[WeeklyReport]:
    """Reports for week offsets 0..week_count-1, offset 0 being the week containing now."""
    reports = []
    for week_offset in range(week_count):
        week_start, week_end = week_bounds(now, week_offset, tz)
        reports.append(build_weekly_report(sessions, meeting_blocks, week_start, week_end, tz))
    return reports


def build_report_views(
    reports: Sequence[WeeklyReport],
    is_pro: bool,
    free_tier_weeks: int = FREE_TIER_REPORT_WEEKS,
) -> List[WeeklyReportView]:
    """Apply the entitlement gate: locked weeks keep their window but not their metrics."""
    views = []
    for week_offset, report in enumerate(reports):
        locked = is_week_locked(is_pro, week_offset, free_tier_weeks)
        views.append(WeeklyReportView(
            week_offset=week_offset,
            locked=locked,
            week_start=report.week_start,
            week_end=report.week_end,
            report=None if locked else report,
        ))
    return views


def week_label(week_offset: int) -> str:
    if week_offset == 0:
        return "This Week"
    if week_offset == 1:
        return "Last Week"
    return f"{week_offset} weeks ago"
