from typing import Any, Dict, List, Optional, Protocol


class BookmarkBackend(Protocol):
    """Protocol for the member service that stores saved products."""
    async def fetch_bookmarks(self, token: str) -> List[Dict[str, Any]]:
        ...

    async def add_bookmark(self, token: str, product_id: str, style_name: Optional[str] = None) -> bool:
        ...

    async def remove_bookmarks(self, token: str, product_ids: List[str]) -> bool:
        ...
