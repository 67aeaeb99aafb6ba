"""
Bookmark set synchronization.

Local mirror of the user's saved products. The server is authoritative:
local state changes only after the server confirms a mutation.
"""
import logging
from enum import Enum
from typing import Any, Awaitable, Iterable, List, Optional, Set, Tuple

from pydantic import ValidationError as SchemaValidationError

from ..backends.bookmark_backend import BookmarkBackend
from ..exceptions import InvalidInputError, NotSignedInError, SessionExpiredError
from ..interaction.notifications import NoticeLevel, Notifier
from ..models import BookmarkItem, SessionState
from ..schemas import BookmarkRecord
from ..security.input_validator import InputValidator
from ..session.session_guard import SessionGuard
from ..utils.clock import Clock, utc_now

logger = logging.getLogger(__name__)


class ToggleOutcome(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    IGNORED = "ignored"
    FAILED = "failed"
    UNAUTHENTICATED = "unauthenticated"


class BookmarkSet:
    """
    Newest-first set of bookmarks keyed by ``product_id``.

    Key traits:
    - No optimistic updates: toggle and clear mutate after confirmation
    - One toggle per product id in flight; repeats are ignored
    - Authoritative only after a successful ``sync_all()``
    - ``reset()`` (sign-out) invalidates every call still in flight
    """

    def __init__(
        self,
        backend: BookmarkBackend,
        guard: SessionGuard,
        notifier: Notifier,
        clock: Clock = utc_now,
    ):
        """
        :param backend: Member service storing the bookmarks
        :param guard: Session gate for authenticated calls
        :param notifier: Where failures are reported to the user
        :param clock: Time source for locally added items
        """
        self._backend = backend
        self._guard = guard
        self._notifier = notifier
        self._clock = clock

        self._items: List[BookmarkItem] = []
        self._authoritative = False
        self._pending: Set[str] = set()
        self._generation = 0
        self._sync_sequence = 0

    @property
    def items(self) -> Tuple[BookmarkItem, ...]:
        return tuple(self._items)

    @property
    def product_ids(self) -> List[str]:
        return [item.product_id for item in self._items]

    @property
    def is_authoritative(self) -> bool:
        return self._authoritative

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, product_id: object) -> bool:
        return any(item.product_id == product_id for item in self._items)

    def is_pending(self, product_id: str) -> bool:
        """True while a toggle for this product is awaiting the server (UI disables the control)."""
        return product_id in self._pending

    async def toggle(self, product_id: str, style_name: Optional[str] = None) -> ToggleOutcome:
        """
        Add the product if absent, remove it if present.

        :param product_id: Product to toggle
        :param style_name: Style the product was recommended for (saved with new bookmarks)
        :return: What happened
        """
        try:
            product_id = InputValidator.validate_product_id(product_id)
            style_name = InputValidator.sanitize_label(style_name, default="") or None
        except InvalidInputError as e:
            self._notifier.notify(NoticeLevel.ERROR, f"Cannot bookmark this item: {e}")
            return ToggleOutcome.FAILED

        if product_id in self._pending:
            logger.debug(f"Toggle for {product_id} already in flight, ignoring")
            return ToggleOutcome.IGNORED

        session = self._require_session(prompt="Sign in to save items.")
        if session is None:
            return ToggleOutcome.UNAUTHENTICATED

        removing = product_id in self
        generation = self._generation
        self._pending.add(product_id)
        try:
            if removing:
                confirmed = await self._confirmed(
                    self._backend.remove_bookmarks(session.token, [product_id]),
                    f"remove bookmark {product_id}",
                )
            else:
                confirmed = await self._confirmed(
                    self._backend.add_bookmark(session.token, product_id, style_name),
                    f"add bookmark {product_id}",
                )
        finally:
            if generation == self._generation:
                self._pending.discard(product_id)

        if generation != self._generation:
            logger.debug(f"Dropping toggle result for {product_id}: bookmarks were reset")
            return ToggleOutcome.IGNORED

        if not confirmed:
            action = "remove" if removing else "save"
            self._notifier.notify(NoticeLevel.ERROR, f"Could not {action} the bookmark.")
            return ToggleOutcome.FAILED

        if removing:
            self._items = [item for item in self._items if item.product_id != product_id]
            return ToggleOutcome.REMOVED

        if product_id not in self:
            self._items.insert(
                0,
                BookmarkItem(product_id=product_id, created_at=self._clock(), style_name=style_name),
            )
        return ToggleOutcome.ADDED

    async def sync_all(self) -> bool:
        """
        Replace the local set with the server's list, newest first.

        :return: True if the local set is now authoritative
        """
        session = self._require_session(prompt="Sign in to view your bookmarks.", redirect=True)
        if session is None:
            return False

        generation = self._generation
        self._sync_sequence += 1
        sequence = self._sync_sequence

        try:
            raw_items = await self._backend.fetch_bookmarks(session.token)
        except Exception as e:
            logger.warning(f"Bookmark sync failed: {e}")
            return False

        if generation != self._generation or sequence != self._sync_sequence:
            logger.debug("Dropping superseded bookmark sync result")
            return False

        if raw_items is None:
            logger.warning("Bookmark sync returned no list")
            return False

        self._items = self._parse(raw_items)
        self._authoritative = True
        logger.info(f"Bookmarks synced: {len(self._items)} item(s)")
        return True

    async def clear(self, product_ids: Optional[Iterable[str]] = None) -> bool:
        """
        Delete several bookmarks in one call.

        Nothing changes locally unless the server confirms the whole batch.

        :param product_ids: Products to delete, None for all
        :return: True if the deletion was confirmed
        """
        try:
            if product_ids is None:
                targets = self.product_ids
            else:
                targets = InputValidator.validate_product_ids(product_ids)
        except InvalidInputError as e:
            self._notifier.notify(NoticeLevel.ERROR, f"Cannot delete bookmarks: {e}")
            return False

        if not targets:
            return True

        session = self._require_session(prompt="Sign in to manage bookmarks.")
        if session is None:
            return False

        generation = self._generation
        confirmed = await self._confirmed(
            self._backend.remove_bookmarks(session.token, targets),
            f"remove {len(targets)} bookmark(s)",
        )

        if not confirmed:
            self._notifier.notify(
                NoticeLevel.ERROR,
                "Could not delete the selected bookmarks. Nothing was removed.",
            )
            return False

        if generation != self._generation:
            logger.debug("Bookmarks were reset while deleting, nothing to update")
            return True

        removed = set(targets)
        self._items = [item for item in self._items if item.product_id not in removed]
        return True

    def reset(self) -> None:
        """Forget everything (sign-out). Calls still in flight will not apply."""
        self._items = []
        self._authoritative = False
        self._pending.clear()
        self._generation += 1

    def _require_session(self, prompt: Optional[str] = None, redirect: bool = False) -> Optional[SessionState]:
        try:
            return self._guard.require()
        except SessionExpiredError:
            # Sign-out listeners already cleared state and informed the user
            return None
        except NotSignedInError:
            if prompt:
                self._notifier.notify(NoticeLevel.WARNING, prompt)
            if redirect:
                self._notifier.redirect_to_sign_in()
            return None

    async def _confirmed(self, call: Awaitable[Any], description: str) -> bool:
        try:
            return bool(await call)
        except Exception as e:
            logger.warning(f"Failed to {description}: {e}")
            return False

    def _parse(self, raw_items: Iterable[Any]) -> List[BookmarkItem]:
        by_id = {}
        for raw in raw_items:
            try:
                item = BookmarkRecord.model_validate(raw).to_item()
            except SchemaValidationError as e:
                logger.warning(f"Skipping malformed bookmark: {e.error_count()} error(s)")
                continue
            current = by_id.get(item.product_id)
            if current is None or _sort_key(item) > _sort_key(current):
                by_id[item.product_id] = item

        return sorted(by_id.values(), key=_sort_key, reverse=True)


def _sort_key(item: BookmarkItem) -> float:
    return item.created_at.timestamp() if item.created_at else float("-inf")
