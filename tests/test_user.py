"""Unit tests for the User aggregate."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from storefront.domain.identity.user import User
from storefront.foundation.domain.exceptions import InvalidStateTransitionError
from storefront.foundation.domain.principal import Role

NOW = datetime(2026, 3, 15, 12, 0, tzinfo=UTC)
LOCK = timedelta(minutes=30)


def _new_user(**overrides: str) -> User:
    fields = {"email": "  Alice@Example.COM ", "password_hash": "hash"}
    fields.update(overrides)
    return User(**fields)  # type: ignore[arg-type]


def _fail(user: User, times: int, now: datetime = NOW) -> None:
    for _ in range(times):
        user.request_record_failed_login(now, threshold=5, lock_duration=LOCK)


@pytest.mark.unit
class TestUserRegistration:
    def test_normalizes_email_and_defaults(self) -> None:
        user = _new_user(first_name=" Alice ")
        assert user.email == "alice@example.com"
        assert user.role == Role.CUSTOMER
        assert user.first_name == "Alice"
        assert user.is_active
        assert user.failed_login_attempts == 0
        assert user.locked_until is None

    def test_records_registered_event(self) -> None:
        events = _new_user().collect_events()
        assert type(events[0]).__name__ == "Registered"
        assert events[0].email == "  Alice@Example.COM "

    def test_rejects_malformed_email(self) -> None:
        with pytest.raises(ValueError, match="Invalid email"):
            _new_user(email="not-an-email")

    def test_rejects_unknown_role(self) -> None:
        with pytest.raises(ValueError):
            _new_user(role="superuser")

    def test_principal_projection(self) -> None:
        user = _new_user(role="moderator")
        principal = user.as_principal()
        assert principal.user_id == user.id
        assert principal.role is Role.MODERATOR
        assert principal.is_active


@pytest.mark.unit
class TestLoginThrottling:
    def test_four_failures_do_not_lock(self) -> None:
        user = _new_user()
        _fail(user, 4)
        assert user.failed_login_attempts == 4
        assert user.locked_until is None

    def test_fifth_failure_locks_for_thirty_minutes(self) -> None:
        user = _new_user()
        _fail(user, 5)
        assert user.failed_login_attempts == 5
        assert user.locked_until == NOW + LOCK
        assert user.is_locked(NOW + timedelta(minutes=29))
        assert not user.is_locked(NOW + LOCK)

    def test_failure_after_lock_expiry_starts_fresh_window(self) -> None:
        user = _new_user()
        _fail(user, 5)
        _fail(user, 1, now=NOW + LOCK + timedelta(seconds=1))
        assert user.failed_login_attempts == 1
        assert user.locked_until is None

    def test_successful_login_resets_counter(self) -> None:
        user = _new_user()
        _fail(user, 3)
        user.request_record_successful_login(NOW)
        assert user.failed_login_attempts == 0
        assert user.last_login_at == NOW


@pytest.mark.unit
class TestAccountAdministration:
    def test_deactivate_is_idempotent(self) -> None:
        user = _new_user()
        user.request_deactivate()
        version = user.version
        user.request_deactivate()
        assert not user.is_active
        assert user.version == version

    def test_reactivate_clears_lockout(self) -> None:
        user = _new_user()
        _fail(user, 5)
        user.request_deactivate()
        user.request_reactivate()
        assert user.is_active
        assert user.failed_login_attempts == 0
        assert user.locked_until is None

    def test_change_role(self) -> None:
        user = _new_user()
        user.request_change_role(Role.ADMIN)
        assert user.role == "admin"
        assert user.as_principal().role is Role.ADMIN

    def test_disabled_user_cannot_change_password(self) -> None:
        user = _new_user()
        user.request_deactivate()
        with pytest.raises(InvalidStateTransitionError):
            user.request_change_password("new-hash")
        assert user.password_hash == "hash"


@pytest.mark.unit
class TestUserProfile:
    def test_updates_names(self) -> None:
        user = _new_user(first_name="Alice", last_name="Smith")
        user.collect_events()
        user.request_update_profile(first_name=" Alicia ")
        assert (user.first_name, user.last_name) == ("Alicia", "Smith")
        assert [type(e).__name__ for e in user.collect_events()] == ["ProfileUpdated"]

    def test_unchanged_names_record_nothing(self) -> None:
        user = _new_user(first_name="Alice")
        user.collect_events()
        user.request_update_profile(first_name="Alice", last_name=None)
        assert user.collect_events() == []
