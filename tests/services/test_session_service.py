import pytest
from datetime import datetime, timedelta, timezone

from focusshield.exceptions import ValidationError
from focusshield.schemas.records import RecordKind
from focusshield.schemas.user import AuthUser
from focusshield.services.session_service import SessionService, resolve_duration

NOW = datetime(2024, 5, 15, 14, 0, tzinfo=timezone.utc)


@pytest.fixture
def sessions(local_store):
    return SessionService(local_store)


class TestResolveDuration:
    def test_presets(self):
        assert resolve_duration("pomodoro") == 1500
        assert resolve_duration("long") == 3000

    def test_custom_minutes(self):
        assert resolve_duration("custom", 45) == 2700

    @pytest.mark.parametrize("minutes", [None, 0, -5])
    def test_custom_requires_minutes(self, minutes):
        with pytest.raises(ValidationError):
            resolve_duration("custom", minutes)

    def test_unknown_preset(self):
        with pytest.raises(ValidationError):
            resolve_duration("marathon")


class TestStartSession:
    def test_start_appends_running_session(self, sessions, local_store):
        session = sessions.start_session("  Write the docs  ", 1500, now=NOW)

        stored = local_store.find(RecordKind.SESSIONS, session.id)
        assert stored.task_title == "Write the docs"
        assert stored.duration_sec == 1500
        assert stored.ended_at is None
        assert stored.interrupted is False
        assert stored.synced is None
        assert sessions.active_session().id == session.id

    @pytest.mark.parametrize("title", ["", "   ", None])
    def test_empty_title_is_rejected(self, sessions, local_store, title):
        with pytest.raises(ValidationError, match="task title"):
            sessions.start_session(title, 1500)

        assert local_store.load().sessions == []

    def test_blank_artifact_is_dropped(self, sessions):
        session = sessions.start_session("Task", 1500, artifact_url="   ")

        assert session.artifact_url is None

    def test_zero_duration_is_rejected(self, sessions):
        with pytest.raises(ValidationError):
            sessions.start_session("Task", 0)


class TestEndSession:
    def test_completed_session_records_elapsed_time(self, sessions):
        session = sessions.start_session("Task", 1500, now=NOW)

        ended = sessions.end_session(session.id, interrupted=False, now=NOW + timedelta(seconds=1500))

        assert ended.ended_at == NOW + timedelta(seconds=1500)
        assert ended.duration_sec == 1500
        assert ended.is_completed is True

    def test_interrupted_session_records_partial_time(self, sessions):
        session = sessions.start_session("Task", 1500, now=NOW)

        ended = sessions.end_session(session.id, interrupted=True, now=NOW + timedelta(seconds=412.7))

        assert ended.duration_sec == 412
        assert ended.interrupted is True
        assert ended.is_completed is False
        assert sessions.active_session() is None

    def test_ending_twice_is_noop(self, sessions):
        session = sessions.start_session("Task", 1500, now=NOW)
        sessions.end_session(session.id, interrupted=False, now=NOW + timedelta(minutes=25))

        assert sessions.end_session(session.id, interrupted=True, now=NOW + timedelta(hours=1)) is None

    def test_unknown_session(self, sessions):
        assert sessions.end_session("missing", interrupted=False) is None


class TestShipNote:
    def test_minimum_length_after_trim(self, sessions, local_store):
        session = sessions.start_session("Task", 1500)

        with pytest.raises(ValidationError, match="at least 10"):
            sessions.save_ship_note(session.id, "   123456789   ")
        note = sessions.save_ship_note(session.id, "  1234567890  ")

        assert note.note == "1234567890"
        assert local_store.ship_notes_count() == 1

    def test_blocked_reason_is_optional(self, sessions):
        session = sessions.start_session("Task", 1500)

        note = sessions.save_ship_note(session.id, "Shipped the login page", blocked_reason="  ")

        assert note.blocked_reason is None

    def test_one_note_per_session(self, sessions):
        session = sessions.start_session("Task", 1500)
        sessions.save_ship_note(session.id, "Shipped the login page")

        with pytest.raises(ValidationError):
            sessions.save_ship_note(session.id, "Shipped it a second time")

    def test_unknown_session(self, sessions):
        with pytest.raises(ValidationError):
            sessions.save_ship_note("missing", "Shipped the login page")


class TestMeetingBlocks:
    def test_add_and_remove(self, sessions, local_store):
        block = sessions.add_meeting_block(NOW, NOW + timedelta(hours=1), title=" Standup ")

        assert local_store.find(RecordKind.MEETING_BLOCKS, block.id).title == "Standup"

        sessions.remove_meeting_block(block.id)

        assert local_store.load().meeting_blocks == []

    def test_missing_times(self, sessions):
        with pytest.raises(ValidationError, match="start and end"):
            sessions.add_meeting_block(NOW, None)

    @pytest.mark.parametrize("end_offset", [timedelta(0), timedelta(minutes=-30)])
    def test_end_must_follow_start(self, sessions, local_store, end_offset):
        with pytest.raises(ValidationError, match="after start"):
            sessions.add_meeting_block(NOW, NOW + end_offset)

        assert local_store.load().meeting_blocks == []


class TestSignInPrompt:
    def test_prompt_after_first_completed_session_with_note(self, sessions):
        session = sessions.start_session("Task", 1500, now=NOW)
        assert sessions.should_prompt_sign_in(None) is False

        sessions.end_session(session.id, interrupted=False, now=NOW + timedelta(minutes=25))
        assert sessions.should_prompt_sign_in(None) is False

        sessions.save_ship_note(session.id, "Shipped the login page")
        assert sessions.should_prompt_sign_in(None) is True

    def test_interrupted_session_does_not_count(self, sessions):
        session = sessions.start_session("Task", 1500, now=NOW)
        sessions.end_session(session.id, interrupted=True, now=NOW + timedelta(minutes=3))
        sessions.save_ship_note(session.id, "Got blocked by CI")

        assert sessions.should_prompt_sign_in(None) is False

    def test_signed_in_user_is_never_prompted(self, sessions):
        session = sessions.start_session("Task", 1500, now=NOW)
        sessions.end_session(session.id, interrupted=False, now=NOW + timedelta(minutes=25))
        sessions.save_ship_note(session.id, "Shipped the login page")

        assert sessions.should_prompt_sign_in(AuthUser(id="user-1")) is False
