"""FocusShield command line client. Works offline; syncs when an API URL and token are configured."""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from .config import Settings, configure_logging, get_settings
from .exceptions import SyncError, ValidationError
from .schemas.user import AuthUser
from .services.local_store import JsonFileStorage, LocalRecordStore
from .services.remote_store import HttpRemoteStore
from .services.report_service import build_report_views, build_weekly_reports, week_label
from .services.session_service import SessionService, resolve_duration
from .services.sync_service import HISTORY_FILTERS, SyncService
from .services.timer import FocusTimer
from .utils.time_utils import (
    calculate_meeting_hours, format_date_range, format_duration, format_time, get_week_end,
    get_week_start, in_window, to_local,
)

logger = logging.getLogger(__name__)


@dataclass
class CliContext:
    settings: Settings
    store: LocalRecordStore
    remote: Optional[HttpRemoteStore] = None
    user: Optional[AuthUser] = None

    @property
    def sessions(self) -> SessionService:
        return SessionService(self.store)

    @property
    def sync(self) -> SyncService:
        return SyncService(self.store, self.remote, self.user)


def load_store(settings: Settings) -> LocalRecordStore:
    return LocalRecordStore(JsonFileStorage(settings.data_dir))


def load_remote(settings: Settings) -> Optional[HttpRemoteStore]:
    if not settings.remote_configured:
        return None
    return HttpRemoteStore(settings.api_url, settings.token)


def build_context(settings: Settings) -> CliContext:
    remote = load_remote(settings)
    user = remote.current_user() if remote else None
    return CliContext(settings=settings, store=load_store(settings), remote=remote, user=user)


def parse_datetime(value: str, settings: Settings) -> datetime:
    """ISO timestamp; naive values are in the configured (or system local) timezone."""
    parsed = datetime.fromisoformat(value)
    if parsed.tzinfo is None:
        tz = settings.tz()
        parsed = parsed.replace(tzinfo=tz) if tz else parsed.astimezone()
    return parsed


def _print_sign_in_prompt(ctx: CliContext) -> None:
    if ctx.sessions.should_prompt_sign_in(ctx.user):
        print("Save your progress: sign in to sync your sessions across devices.")


async def run_countdown(timer: FocusTimer, duration_sec: int) -> None:
    timer.start(duration_sec)
    try:
        await timer.wait()
    finally:
        timer.close()


def _prompt_ship_note(ctx: CliContext, session_id: str) -> None:
    """Ask until a note is accepted or the user leaves the answer empty."""
    while True:
        try:
            note = input("Ship note (what did you produce? leave empty to skip): ").strip()
        except (EOFError, KeyboardInterrupt):
            print()
            return
        if not note:
            return
        try:
            ctx.sessions.save_ship_note(session_id, note)
            return
        except ValidationError as e:
            print(f"Ship note not saved: {e}. Try again or leave empty to skip.")


def cmd_start(args: argparse.Namespace, ctx: CliContext) -> int:
    duration = resolve_duration(args.preset, args.minutes)
    session = ctx.sessions.start_session(args.task, duration, args.artifact)
    print(f"Focus session started: {session.task_title} ({format_duration(duration)})")

    def on_tick(remaining: int) -> None:
        print(f"\r{format_time(remaining)}", end="", flush=True)

    def on_complete(interrupted: bool) -> None:
        ctx.sessions.end_session(session.id, interrupted=interrupted)

    timer = FocusTimer(on_complete=on_complete, on_tick=on_tick, interval=args.interval)
    try:
        asyncio.run(run_countdown(timer, duration))
        print("\nSession complete.")
    except KeyboardInterrupt:
        ctx.sessions.end_session(session.id, interrupted=True)
        print("\nSession stopped.")

    if not args.no_note:
        _prompt_ship_note(ctx, session.id)

    _print_sign_in_prompt(ctx)
    return 0


def cmd_note(args: argparse.Namespace, ctx: CliContext) -> int:
    note = ctx.sessions.save_ship_note(args.session_id, args.text, args.blocked)
    print(f"Ship note saved ({note.id})")
    _print_sign_in_prompt(ctx)
    return 0


def cmd_meeting_add(args: argparse.Namespace, ctx: CliContext) -> int:
    start = parse_datetime(args.start, ctx.settings) if args.start else None
    end = parse_datetime(args.end, ctx.settings) if args.end else None
    block = ctx.sessions.add_meeting_block(start, end, args.title)
    print(f"Meeting block added ({block.id}): {block.duration_hours:.1f}h")
    return 0


def cmd_meeting_remove(args: argparse.Namespace, ctx: CliContext) -> int:
    ctx.sessions.remove_meeting_block(args.block_id)
    print(f"Meeting block removed ({args.block_id})")
    return 0


def cmd_meeting_list(args: argparse.Namespace, ctx: CliContext) -> int:
    tz = ctx.settings.tz()
    start, end = get_week_start(tz=tz), get_week_end(tz=tz)
    blocks = [b for b in ctx.store.load().meeting_blocks if in_window(b.start_at, start, end)]
    for block in blocks:
        local_start = to_local(block.start_at, tz)
        print(f"{block.id}  {local_start:%a %H:%M}  {block.duration_hours:.1f}h  {block.title or ''}".rstrip())
    print(f"Meeting hours this week: {calculate_meeting_hours(blocks):.1f}")
    return 0


def cmd_history(args: argparse.Namespace, ctx: CliContext) -> int:
    view = ctx.sync.load_history()
    tz = ctx.settings.tz()
    for session in SyncService.filter_sessions(view.sessions, args.filter):
        if session.interrupted:
            status = "Interrupted"
        elif session.ended_at:
            status = "Completed"
        else:
            status = "In Progress"
        started = to_local(session.started_at, tz)
        print(f"{started:%b %d, %Y}  {session.task_title}  [{status}]  {format_duration(session.duration_sec)}")
        if session.ship_note:
            print(f"    Ship note: {session.ship_note.note}")
    if ctx.user and view.has_unsynced:
        print("You have unsynced sessions. Run `focusshield sync`.")
    return 0


def cmd_report(args: argparse.Namespace, ctx: CliContext) -> int:
    data = ctx.sync.load_report_data()
    tz = ctx.settings.tz()
    weeks = max(ctx.settings.report_weeks, args.week + 1)
    reports = build_weekly_reports(data.sessions, data.meeting_blocks, datetime.now().astimezone(), weeks, tz)
    view = build_report_views(reports, data.is_pro, ctx.settings.free_tier_report_weeks)[args.week]

    print(f"{week_label(view.week_offset)}: {format_date_range(view.week_start, view.week_end)}")
    if view.locked:
        print(f"Free accounts can view the last {ctx.settings.free_tier_report_weeks} weeks. "
              "Upgrade to Pro for unlimited report history.")
        return 0

    report = view.report
    print(f"Focus time:            {report.total_focus_minutes // 60}h {report.total_focus_minutes % 60}m")
    print(f"Completed sessions:    {report.completed_sessions}")
    print(f"Interrupted sessions:  {report.interrupted_sessions}")
    print(f"Meeting hours:         {report.meeting_hours:.1f}")
    print(f"Context switch index:  {report.context_switch_index:.1f}")
    print(f"Ship notes:            {report.ship_notes_count}")
    return 0


def cmd_sync(args: argparse.Namespace, ctx: CliContext) -> int:
    if not ctx.sync.remote_enabled:
        print("Sign in and configure FOCUSSHIELD_API_URL to sync.")
        return 0
    result = ctx.sync.push_sync()
    counts = ", ".join(f"{count} {kind.value}" for kind, count in result.pushed.items())
    print(f"Synced {counts}")
    return 0


def cmd_status(args: argparse.Namespace, ctx: CliContext) -> int:
    print(f"User: {ctx.user.email or ctx.user.id if ctx.user else 'anonymous'}")
    print(f"Unsynced data: {'yes' if ctx.store.has_unsynced() else 'no'}")
    active = ctx.sessions.active_session()
    if active:
        print(f"Running session: {active.task_title} ({active.id})")
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="focusshield", description="Focus sessions, ship notes and weekly reports")
    sub = parser.add_subparsers(dest="command", required=True)

    start = sub.add_parser("start", help="Run a focus session")
    start.add_argument("--task", required=True, help="What you are working on")
    start.add_argument("--preset", choices=["pomodoro", "long", "custom"], default="pomodoro")
    start.add_argument("--minutes", type=int, help="Duration for the custom preset")
    start.add_argument("--artifact", help="Link to what you are producing")
    start.add_argument("--no-note", action="store_true", help="Do not ask for a ship note")
    start.add_argument("--interval", type=float, default=1.0, help=argparse.SUPPRESS)
    start.set_defaults(func=cmd_start)

    note = sub.add_parser("note", help="Add a ship note to a session")
    note.add_argument("session_id")
    note.add_argument("text")
    note.add_argument("--blocked", help="What blocked you")
    note.set_defaults(func=cmd_note)

    meeting = sub.add_parser("meeting", help="Manage meeting blocks")
    meeting_sub = meeting.add_subparsers(dest="meeting_command", required=True)
    add = meeting_sub.add_parser("add")
    add.add_argument("--start", help="ISO start time")
    add.add_argument("--end", help="ISO end time")
    add.add_argument("--title")
    add.set_defaults(func=cmd_meeting_add)
    remove = meeting_sub.add_parser("remove")
    remove.add_argument("block_id")
    remove.set_defaults(func=cmd_meeting_remove)
    listing = meeting_sub.add_parser("list")
    listing.set_defaults(func=cmd_meeting_list)

    history = sub.add_parser("history", help="Show session history")
    history.add_argument("--filter", choices=HISTORY_FILTERS, default="all")
    history.set_defaults(func=cmd_history)

    report = sub.add_parser("report", help="Show a weekly report")
    report.add_argument("--week", type=int, default=0, help="Week offset, 0 is this week")
    report.set_defaults(func=cmd_report)

    sync = sub.add_parser("sync", help="Push unsynced records to your account")
    sync.set_defaults(func=cmd_sync)

    status = sub.add_parser("status", help="Show account and sync status")
    status.set_defaults(func=cmd_status)
    return parser


def main(argv: Optional[list[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    settings = get_settings()
    configure_logging(settings.log_level)
    if getattr(args, "week", 0) < 0:
        print("--week must be >= 0", file=sys.stderr)
        return 2

    ctx = build_context(settings)
    try:
        return args.func(args, ctx)
    except ValidationError as e:
        print(str(e), file=sys.stderr)
        return 1
    except SyncError as e:
        print(str(e), file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
