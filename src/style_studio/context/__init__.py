"""
Shared context objects.

One StudioContext per running application; workflows are created from it.
"""
from .studio_context import StudioContext, create_storage

__all__ = ["StudioContext", "create_storage"]
