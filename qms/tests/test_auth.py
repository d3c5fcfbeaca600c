"""Tests for local user accounts, password handling and login throttling."""

import sqlite3

import pytest

from qms.auth.db import (
    authenticate,
    change_password,
    create_user,
    get_user,
    get_user_by_email,
    list_users,
    set_active,
    set_password,
    update_role,
)
from qms.auth.rate_limit import LoginRateLimiter


@pytest.fixture
def user(memory_db):
    return create_user(memory_db, "Sales@Example.com", "Sam Sales", "correct-horse", "sales")


class TestUsers:
    def test_create_normalizes_email(self, user):
        assert user["email"] == "sales@example.com"
        assert user["role"] == "sales"
        assert user["must_change_password"] is True

    def test_password_is_hashed(self, memory_db, user):
        stored = memory_db.execute(
            "SELECT password_hash FROM users WHERE id = ?", (user["id"],)
        ).fetchone()[0]
        assert stored != "correct-horse"

    def test_duplicate_email(self, memory_db, user):
        with pytest.raises(sqlite3.IntegrityError):
            create_user(memory_db, "sales@example.com", "Other", "another-pass", "sales")

    def test_invalid_role(self, memory_db):
        with pytest.raises(ValueError, match="Invalid role"):
            create_user(memory_db, "x@example.com", "X", "long-password", "janitor")

    def test_short_password(self, memory_db):
        with pytest.raises(ValueError, match="at least"):
            create_user(memory_db, "x@example.com", "X", "short", "sales")

    def test_list_users(self, memory_db, user):
        emails = [u["email"] for u in list_users(memory_db)]
        assert "sales@example.com" in emails


class TestAuthenticate:
    def test_success(self, memory_db, user):
        result = authenticate(memory_db, "SALES@example.com", "correct-horse")
        assert result["id"] == user["id"]
        assert "password_hash" not in result

    def test_wrong_password(self, memory_db, user):
        assert authenticate(memory_db, "sales@example.com", "wrong-horse") is None

    def test_unknown_user(self, memory_db):
        assert authenticate(memory_db, "ghost@example.com", "whatever1") is None

    def test_inactive_user(self, memory_db, user):
        set_active(memory_db, user["id"], False)
        assert authenticate(memory_db, "sales@example.com", "correct-horse") is None


class TestPasswordAndRole:
    def test_change_password(self, memory_db, user):
        ok, _ = change_password(memory_db, user["id"], "correct-horse", "battery-staple")
        assert ok
        assert authenticate(memory_db, "sales@example.com", "battery-staple")

    def test_change_password_wrong_current(self, memory_db, user):
        ok, message = change_password(memory_db, user["id"], "nope-nope", "battery-staple")
        assert not ok
        assert "incorrect" in message

    def test_set_password_flags_change(self, memory_db, user):
        set_password(memory_db, user["id"], "reset-value-1", must_change=True)
        assert get_user(memory_db, user["id"])["must_change_password"]

    def test_update_role(self, memory_db, user):
        assert update_role(memory_db, user["id"], "procurement")
        assert get_user_by_email(memory_db, "sales@example.com")["role"] == "procurement"

    def test_update_role_invalid(self, memory_db, user):
        with pytest.raises(ValueError):
            update_role(memory_db, user["id"], "owner")


class TestRateLimiter:
    def test_blocks_after_max_attempts(self):
        limiter = LoginRateLimiter(max_attempts=3, window_seconds=60)
        for _ in range(3):
            assert limiter.check("1.2.3.4", "a@example.com") == 0
            limiter.record_failure("1.2.3.4", "a@example.com")
        assert limiter.check("1.2.3.4", "A@example.com") > 0

    def test_other_ip_unaffected(self):
        limiter = LoginRateLimiter(max_attempts=1, window_seconds=60)
        limiter.record_failure("1.2.3.4", "a@example.com")
        assert limiter.check("5.6.7.8", "a@example.com") == 0

    def test_reset(self):
        limiter = LoginRateLimiter(max_attempts=1, window_seconds=60)
        limiter.record_failure("1.2.3.4", "a@example.com")
        limiter.reset("1.2.3.4", "a@example.com")
        assert limiter.check("1.2.3.4", "a@example.com") == 0
