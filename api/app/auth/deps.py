"""
Identity dependencies for FastAPI.

The identity provider is external; this service only verifies the token it
issued and reads the stable user id from the ``sub`` claim.

Supports two transports:
1. Cookie session (web): httpOnly cookie carrying the access token
2. Bearer token (API clients): Authorization header

A request with neither is a guest (``None``). A request with a token that does
not verify is rejected with 401 rather than downgraded to guest.
"""

import logging
import uuid

from fastapi import Cookie, Depends, Header, HTTPException
from pydantic import BaseModel

from app.auth.security import decode_access_token
from app.config import DEV_MODE

logger = logging.getLogger(__name__)

SESSION_COOKIE_NAME = "swap_session"


class AuthErrorDetail(BaseModel):
    message: str = "unauthorized"
    reason: str
    trace_id: str


def _unauthorized(reason: str, trace_id: str, message: str = "unauthorized") -> HTTPException:
    log_data = {"trace_id": trace_id, "reason": reason}
    logger.warning(f"[AUTH_FAILURE] {log_data}")
    return HTTPException(
        status_code=401,
        detail=AuthErrorDetail(message=message, reason=reason, trace_id=trace_id).model_dump() if DEV_MODE else {"message": message, "trace_id": trace_id},
    )


def _extract_bearer(authorization: str, trace_id: str) -> str:
    parts = authorization.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise _unauthorized("malformed_token", trace_id, "Invalid Authorization header")
    return parts[1].strip()


def _user_id_from_token(token: str, trace_id: str) -> str:
    try:
        payload = decode_access_token(token)
    except HTTPException as e:
        if e.status_code != 401:
            raise
        reason = "token_expired" if "expired" in str(e.detail).lower() else "signature_invalid"
        raise _unauthorized(reason, trace_id)
    user_id = str(payload.get("sub") or "").strip()
    if not user_id:
        raise _unauthorized("token_missing_subject", trace_id)
    logger.debug(f"[auth] token valid, sub={user_id}")
    return user_id


def get_current_user_id(
    session_token: str | None = Cookie(default=None, alias=SESSION_COOKIE_NAME),
    authorization: str | None = Header(default=None, alias="Authorization"),
) -> str | None:
    """Return the caller's user id, or ``None`` for a guest."""
    trace_id = str(uuid.uuid4())
    if session_token:
        return _user_id_from_token(session_token, trace_id)
    if authorization:
        return _user_id_from_token(_extract_bearer(authorization, trace_id), trace_id)
    return None


def require_user_id(user_id: str | None = Depends(get_current_user_id)) -> str:
    if not user_id:
        raise _unauthorized("missing_token", str(uuid.uuid4()), "Authentication required")
    return user_id
