"""
Backend collaborators consumed by the core.

Only protocols live here; concrete HTTP clients belong to the surrounding app.
"""
from .analysis_backend import AnalysisBackend
from .auth_backend import AuthBackend, SessionCheck
from .bookmark_backend import BookmarkBackend

__all__ = ["AnalysisBackend", "AuthBackend", "BookmarkBackend", "SessionCheck"]
