"""Request authentication: Google ID tokens, or a dev header when bypassed.

The verified email, lower-cased, is the owner id every task and chat
session is scoped by.
"""
from __future__ import annotations

import os
from functools import lru_cache

from fastapi import Header, HTTPException, status
from google.auth.transport import requests as google_requests
from google.oauth2 import id_token

DEV_BYPASS_ENV = "TCA_DEV_AUTH_BYPASS"
CLIENT_ID_ENV = "GOOGLE_OAUTH_CLIENT_ID"
ALLOWED_EMAILS_ENV = "TCA_ALLOWED_EMAILS"


class AuthError(HTTPException):
    def __init__(self, detail: str, code: int = status.HTTP_401_UNAUTHORIZED) -> None:
        super().__init__(status_code=code, detail=detail)


def _split_env(name: str) -> list[str]:
    raw = os.getenv(name) or ""
    return [item.strip() for item in raw.split(",") if item.strip()]


@lru_cache
def _audiences() -> tuple[str, ...]:
    return tuple(_split_env(CLIENT_ID_ENV))


def _allowed_emails() -> set[str]:
    return {email.lower() for email in _split_env(ALLOWED_EMAILS_ENV)}


def _owner_id(email: str) -> str:
    owner = email.strip().lower()
    allowed = _allowed_emails()
    if allowed and owner not in allowed:
        raise AuthError(f"{owner} is not allowed to use this service.", status.HTTP_403_FORBIDDEN)
    return owner


def _verify_token(token: str) -> dict:
    audiences = _audiences()
    if not audiences:
        raise AuthError("Server missing GOOGLE_OAUTH_CLIENT_ID config.")

    request = google_requests.Request()
    validation_error: ValueError | None = None
    for audience in audiences:
        try:
            return id_token.verify_oauth2_token(token, request, audience)
        except ValueError as exc:
            validation_error = exc
    raise AuthError(f"Invalid token: {validation_error}")


def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    dev_user: str | None = Header(default=None, alias="X-User-Email"),
) -> str:
    """Return the owner id of the caller.

    During development/testing set TCA_DEV_AUTH_BYPASS=1 and supply X-User-Email.
    When TCA_ALLOWED_EMAILS is set, other accounts get 403.
    """

    if os.getenv(DEV_BYPASS_ENV) == "1":
        if dev_user:
            return _owner_id(dev_user)
        raise AuthError(
            "Auth bypass enabled but X-User-Email header missing (dev only)."
        )

    if not authorization or not authorization.startswith("Bearer "):
        raise AuthError("Missing Bearer token.")

    idinfo = _verify_token(authorization.split(" ", 1)[1].strip())
    email = idinfo.get("email")
    if not email:
        raise AuthError("Token missing email claim.")
    return _owner_id(email)
