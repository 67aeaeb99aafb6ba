"""
Session layer: the signed-in user's state and its enforcement.
"""
from .session_store import DEFAULT_SESSION_TTL, SessionStore, SignOutReason
from .session_guard import SessionGuard

__all__ = ["DEFAULT_SESSION_TTL", "SessionStore", "SignOutReason", "SessionGuard"]
