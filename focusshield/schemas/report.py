from pydantic import BaseModel
from typing import Optional
from datetime import datetime


class WeeklyReport(BaseModel):
    week_start: datetime
    week_end: datetime
    total_focus_minutes: int
    completed_sessions: int
    interrupted_sessions: int
    meeting_hours: float
    context_switch_index: float
    # Approximation: equals the week's session count, not the real note count
    ship_notes_count: int


class WeeklyReportView(BaseModel):
    week_offset: int
    locked: bool
    week_start: datetime
    week_end: datetime
    report: Optional[WeeklyReport] = None
