import pytest
from datetime import timedelta
from jose import JWTError

from focusshield.constants import APP_SLUG
from focusshield.models.models import UserTracking
from focusshield.services.auth_service import (
    create_access_token, decode_access_token, ensure_profile, track_user_login,
)


class TestTokens:
    def test_decode_roundtrip(self):
        token = create_access_token({"sub": "user-1", "email": "dev@example.com", "name": "Dev"})

        user = decode_access_token(token)

        assert user.id == "user-1"
        assert user.email == "dev@example.com"
        assert user.name == "Dev"

    def test_expired_token(self):
        token = create_access_token({"sub": "user-1"}, expires_delta=timedelta(minutes=-1))

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_token_without_subject(self):
        token = create_access_token({"email": "dev@example.com"})

        with pytest.raises(JWTError):
            decode_access_token(token)

    def test_garbage_token(self):
        with pytest.raises(JWTError):
            decode_access_token("not.a.token")


class TestLoginTracking:
    def test_first_login_creates_row(self, db):
        tracking = track_user_login(db, "user-1", "dev@example.com")

        assert tracking.login_cnt == 1
        assert tracking.app == APP_SLUG

    def test_repeat_login_increments(self, db):
        track_user_login(db, "user-1", "dev@example.com")
        track_user_login(db, "user-1", "")
        tracking = track_user_login(db, "user-1", "new@example.com")

        assert tracking.login_cnt == 3
        assert tracking.email == "new@example.com"
        assert db.query(UserTracking).count() == 1

    def test_profile_keeps_timezone_until_changed(self, db):
        ensure_profile(db, "user-1", "Europe/Berlin")
        profile = ensure_profile(db, "user-1", None)

        assert profile.timezone == "Europe/Berlin"
        assert ensure_profile(db, "user-1", "Asia/Tokyo").timezone == "Asia/Tokyo"
