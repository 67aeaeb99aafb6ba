"""
Bookmark layer: server-confirmed mirror of saved products.
"""
from .bookmark_set import BookmarkSet, ToggleOutcome

__all__ = ["BookmarkSet", "ToggleOutcome"]
