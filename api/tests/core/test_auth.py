"""Unit tests for core.auth module.

Tests the two caller modes:
- get_user_id_from_session reads user_id from session
- is_service_request checks the bearer service key
- require_auth for user-only endpoints
- resolve_streak_subject picks who gets processed
"""

from unittest.mock import MagicMock

import pytest
from fastapi import HTTPException, Request

from core.auth import (
    AuthorizationError,
    get_user_id_from_session,
    is_service_request,
    require_auth,
    resolve_streak_subject,
)

SERVICE_HEADERS = {"authorization": "Bearer test-service-key"}


def _make_request(session: dict | None = None, headers: dict | None = None) -> Request:
    """Create a mock Request with session and headers support."""
    request = MagicMock(spec=Request)
    request.session = session or {}
    request.headers = headers or {}
    request.state = MagicMock()
    return request


@pytest.mark.unit
class TestGetUserIdFromSession:
    def test_returns_user_id_when_present(self):
        request = _make_request(session={"user_id": "user_abc"})
        assert get_user_id_from_session(request) == "user_abc"

    def test_coerces_to_string(self):
        request = _make_request(session={"user_id": 42})
        assert get_user_id_from_session(request) == "42"

    @pytest.mark.parametrize("session", [{}, {"user_id": None}, {"user_id": ""}])
    def test_returns_none_when_missing(self, session):
        assert get_user_id_from_session(_make_request(session=session)) is None


@pytest.mark.unit
class TestIsServiceRequest:
    def test_matching_key(self):
        assert is_service_request(_make_request(headers=SERVICE_HEADERS))

    def test_scheme_is_case_insensitive(self):
        request = _make_request(headers={"authorization": "bearer test-service-key"})
        assert is_service_request(request)

    @pytest.mark.parametrize(
        "header",
        ["Bearer wrong-key", "Basic test-service-key", "test-service-key", ""],
    )
    def test_rejects_other_credentials(self, header):
        assert not is_service_request(_make_request(headers={"authorization": header}))

    def test_rejects_when_no_key_configured(self, monkeypatch):
        from core.config import clear_settings_cache

        monkeypatch.setenv("SERVICE_API_KEY", "")
        clear_settings_cache()

        assert not is_service_request(_make_request(headers={"authorization": "Bearer "}))


@pytest.mark.unit
class TestRequireAuth:
    def test_returns_user_id_and_sets_state(self):
        request = _make_request(session={"user_id": "user_abc"})

        assert require_auth(request) == "user_abc"
        assert request.state.user_id == "user_abc"

    def test_raises_401_without_session(self):
        with pytest.raises(HTTPException) as exc_info:
            require_auth(_make_request())

        assert exc_info.value.status_code == 401

    def test_service_key_is_not_a_user_session(self):
        with pytest.raises(HTTPException):
            require_auth(_make_request(headers=SERVICE_HEADERS))


@pytest.mark.unit
class TestResolveStreakSubject:
    def test_service_caller_processes_requested_user(self):
        request = _make_request(headers=SERVICE_HEADERS)

        subject = resolve_streak_subject(request, "user_target")

        assert subject.user_id == "user_target"
        assert subject.via_service
        assert request.state.user_id == "user_target"

    def test_service_caller_must_name_user(self):
        with pytest.raises(AuthorizationError):
            resolve_streak_subject(_make_request(headers=SERVICE_HEADERS), None)

    def test_session_user_processes_self(self):
        subject = resolve_streak_subject(
            _make_request(session={"user_id": "user_abc"}), None
        )

        assert subject.user_id == "user_abc"
        assert not subject.via_service

    def test_session_user_may_name_self(self):
        subject = resolve_streak_subject(
            _make_request(session={"user_id": "user_abc"}), "user_abc"
        )

        assert subject.user_id == "user_abc"

    def test_session_user_cannot_process_someone_else(self):
        with pytest.raises(AuthorizationError):
            resolve_streak_subject(
                _make_request(session={"user_id": "user_abc"}), "user_other"
            )

    def test_no_credentials(self):
        with pytest.raises(AuthorizationError, match="Missing authorization"):
            resolve_streak_subject(_make_request(), "user_abc")
