from typing import Any, Optional, Protocol


class AnalysisBackend(Protocol):
    """
    Protocol for the style analysis service.

    Both calls return the backend payload, or None when the service reports failure.
    """
    async def analyze_by_image(self, image: Any) -> Optional[Any]:
        ...

    async def analyze_by_catalog_item(self, item_id: str) -> Optional[Any]:
        ...
