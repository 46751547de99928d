# sessions.py
# Who is calling. The hosted identity provider sits in front of this service
# and forwards the verified user as X-User-Id / X-User-Email.

from dataclasses import dataclass
from enum import Enum
from typing import Union

from fastapi import Request

from .errors import Unauthorized


class AuthStatus(str, Enum):
    INITIALIZING = "initializing"
    AUTHENTICATED = "authenticated"
    UNAUTHENTICATED = "unauthenticated"
    ERROR = "error"


@dataclass(frozen=True)
class Anonymous:
    @property
    def status(self) -> AuthStatus:
        return AuthStatus.UNAUTHENTICATED


@dataclass(frozen=True)
class Authenticated:
    user_id: str
    email: str = ""

    @property
    def status(self) -> AuthStatus:
        return AuthStatus.AUTHENTICATED


Session = Union[Anonymous, Authenticated]


def resolve_session(request: Request) -> Session:
    user_id = (request.headers.get("x-user-id") or "").strip()
    if not user_id:
        return Anonymous()
    return Authenticated(user_id=user_id, email=(request.headers.get("x-user-email") or "").strip())


def require_user(session: Session) -> Authenticated:
    if not isinstance(session, Authenticated):
        raise Unauthorized("Sign in required")
    return session
