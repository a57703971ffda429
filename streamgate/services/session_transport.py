"""Session transports — how a session reference travels between client and gateway."""
from __future__ import annotations

from typing import Optional

from fastapi import Request, Response

SESSION_COOKIE = "sessionId"
SESSION_ACTIVE_COOKIE = "sessionActive"
SESSION_HEADER = "X-Session-Id"


class SessionTransport:
    """Reads the caller's session reference and hands out new ones."""

    def read(self, request: Request) -> Optional[str]:
        raise NotImplementedError

    def attach(self, response: Response, session_id: str) -> None:
        raise NotImplementedError


class CookieSessionTransport(SessionTransport):
    """Set-once ``sessionId`` cookie plus a script-visible ``sessionActive`` marker."""

    def __init__(self, max_age: int):
        self.max_age = max_age

    def read(self, request: Request) -> Optional[str]:
        return request.cookies.get(SESSION_COOKIE) or None

    def attach(self, response: Response, session_id: str) -> None:
        response.set_cookie(
            SESSION_COOKIE, session_id, max_age=self.max_age, path="/", httponly=True, samesite="lax"
        )
        response.set_cookie(SESSION_ACTIVE_COOKIE, "1", max_age=self.max_age, path="/", samesite="lax")


class HeaderSessionTransport(SessionTransport):
    """Session reference in the ``X-Session-Id`` request and response headers."""

    def read(self, request: Request) -> Optional[str]:
        return request.headers.get(SESSION_HEADER) or None

    def attach(self, response: Response, session_id: str) -> None:
        response.headers[SESSION_HEADER] = session_id


def create_transport(options) -> SessionTransport:
    if options.session_transport == "header":
        return HeaderSessionTransport()
    return CookieSessionTransport(max_age=options.session_ttl)
