"""Caller authentication for streak endpoints.

Two authorization modes:
- User session: ``request.session["user_id"]`` set by the login flow
  (signed cookie via SessionMiddleware). The subject is that user.
- Service caller: ``Authorization: Bearer <SERVICE_API_KEY>``. Used by the
  scheduler to process an explicit user id.

Exactly one must be present for streak processing.
"""

from __future__ import annotations

import hmac
from dataclasses import dataclass
from typing import Annotated

from fastapi import Depends, HTTPException, Request

from core.config import get_settings
from core.logger import get_logger
from core.wide_event import set_wide_event_fields

logger = get_logger(__name__)

_BEARER_PREFIX = "bearer "


class AuthorizationError(Exception):
    """Raised when neither a user session nor a service caller is present."""


@dataclass(frozen=True)
class StreakSubject:
    """The user whose streak is processed, and how the caller was authorized."""

    user_id: str
    via_service: bool


def get_user_id_from_session(request: Request) -> str | None:
    user_id = request.session.get("user_id")
    if user_id is None or user_id == "":
        return None
    return str(user_id)


def is_service_request(request: Request) -> bool:
    """True when the bearer token matches the configured service key."""
    header = request.headers.get("authorization", "")
    if not header.lower().startswith(_BEARER_PREFIX):
        return False

    expected = get_settings().service_api_key
    if not expected:
        return False

    token = header[len(_BEARER_PREFIX) :].strip()
    return hmac.compare_digest(token.encode(), expected.encode())


def require_auth(request: Request) -> str:
    """Raises 401 if there is no user session. Sets request.state.user_id."""
    user_id = get_user_id_from_session(request)
    if not user_id:
        raise HTTPException(status_code=401, detail="Unauthorized")

    request.state.user_id = user_id
    set_wide_event_fields(user_id=user_id)
    return user_id


def resolve_streak_subject(
    request: Request, requested_user_id: str | None
) -> StreakSubject:
    """Pick the user to process from the caller's authorization mode.

    Raises:
        AuthorizationError: no usable authorization mode.
    """
    if is_service_request(request):
        if not requested_user_id:
            raise AuthorizationError("Service callers must supply user_id")
        request.state.user_id = requested_user_id
        set_wide_event_fields(user_id=requested_user_id, auth_mode="service")
        return StreakSubject(user_id=requested_user_id, via_service=True)

    session_user_id = get_user_id_from_session(request)
    if session_user_id:
        if requested_user_id and requested_user_id != session_user_id:
            logger.warning(
                "auth.cross_user_request.rejected",
                session_user_id=session_user_id,
                requested_user_id=requested_user_id,
            )
            raise AuthorizationError("Users may only process their own streak")
        request.state.user_id = session_user_id
        set_wide_event_fields(user_id=session_user_id, auth_mode="session")
        return StreakSubject(user_id=session_user_id, via_service=False)

    raise AuthorizationError("Missing authorization")


UserId = Annotated[str, Depends(require_auth)]
