from enum import Enum
from typing import Protocol

from ..models import SessionState


class SessionCheck(str, Enum):
    """Answer of a remote session validation."""
    AUTHORIZED = "authorized"
    UNAUTHORIZED = "unauthorized"


class AuthBackend(Protocol):
    """Protocol for the authentication service."""
    async def validate_session(self, token: str) -> SessionCheck:
        ...

    async def logout(self, session: SessionState) -> bool:
        ...
