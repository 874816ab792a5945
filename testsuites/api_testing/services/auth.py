"""
Customer authentication and account endpoints.

The storefront tracks sessions with the OCSESSID cookie. Callers pull the
token out of a login response with extract_session_token() and thread it
into later requests through session_headers(); nothing is stored here.
"""

from __future__ import annotations

import re
from typing import Any, Dict, Mapping, Optional

from ..framework.models import HttpMethod, NormalizedResponse, RequestSpec
from .routes import store_request


SESSION_COOKIE = "OCSESSID"

_SESSION_PATTERN = re.compile(rf"{SESSION_COOKIE}=([^;,\s]+)")


def session_headers(token: str) -> Dict[str, str]:
    """Headers carrying a session token both as cookie and as Bearer token."""
    return {
        "Cookie": f"{SESSION_COOKIE}={token}",
        "Authorization": f"Bearer {token}",
    }


def extract_session_token(response: NormalizedResponse) -> Optional[str]:
    """Return the OCSESSID value from Set-Cookie, or None."""
    for cookie in response.headers.get_list("set-cookie"):
        match = _SESSION_PATTERN.search(cookie)
        if match:
            return match.group(1)
    return None


def login(email: str, password: str) -> RequestSpec:
    return store_request(
        HttpMethod.POST,
        "account/login",
        body={"email": email, "password": password},
    )


def register(customer: Mapping[str, Any]) -> RequestSpec:
    """
    Register a customer.

    ``customer`` carries firstname, lastname, email, telephone, password and
    confirm; ``agree`` defaults to 1 (privacy policy accepted).
    """
    required = ("firstname", "lastname", "email", "telephone", "password", "confirm")
    missing = [name for name in required if name not in customer]
    if missing:
        raise ValueError(f"Registration data missing fields: {', '.join(missing)}")

    body = dict(customer)
    body.setdefault("agree", 1)
    return store_request(HttpMethod.POST, "account/register", body=body)


def logout(session: Optional[str] = None) -> RequestSpec:
    return store_request(
        HttpMethod.GET, "account/logout", headers=session_headers(session) if session else None
    )


def get_session(session: Optional[str] = None) -> RequestSpec:
    """Account page; shows the login form when the session is anonymous."""
    return store_request(
        HttpMethod.GET, "account/account", headers=session_headers(session) if session else None
    )


def forgot_password(email: str) -> RequestSpec:
    return store_request(HttpMethod.POST, "account/forgotten", body={"email": email})


def reset_password(code: str, password: str, confirm: str) -> RequestSpec:
    return store_request(
        HttpMethod.POST,
        "account/reset",
        body={"code": code, "password": password, "confirm": confirm},
    )


def verify_email(token: str) -> RequestSpec:
    return store_request(HttpMethod.GET, "account/success", {"token": token})


def get_user_profile(session: Optional[str] = None) -> RequestSpec:
    return get_session(session)


def update_profile(profile: Mapping[str, Any], session: Optional[str] = None) -> RequestSpec:
    """Update firstname/lastname/email/telephone; unknown fields are rejected."""
    allowed = {"firstname", "lastname", "email", "telephone"}
    unknown = set(profile) - allowed
    if unknown:
        raise ValueError(f"Unsupported profile fields: {', '.join(sorted(unknown))}")
    return store_request(
        HttpMethod.POST,
        "account/edit",
        body=dict(profile),
        headers=session_headers(session) if session else None,
    )


def change_password(
    new_password: str,
    confirm: str,
    session: Optional[str] = None,
) -> RequestSpec:
    """The store's password form only takes the new password and its confirmation."""
    return store_request(
        HttpMethod.POST,
        "account/password",
        body={"password": new_password, "confirm": confirm},
        headers=session_headers(session) if session else None,
    )


__all__ = [
    "SESSION_COOKIE",
    "change_password",
    "extract_session_token",
    "forgot_password",
    "get_session",
    "get_user_profile",
    "login",
    "logout",
    "register",
    "reset_password",
    "session_headers",
    "update_profile",
    "verify_email",
]
