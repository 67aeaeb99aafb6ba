"""
Shared fakes and fixtures.

Backends are in-process async fakes. Analysis calls can be held open and
resolved in any order, which is what the supersession tests need.
"""
import asyncio
import io
from datetime import datetime, timedelta, timezone

import pytest
from PIL import Image

from style_studio.app import StudioApp
from style_studio.backends.auth_backend import SessionCheck
from style_studio.config import StudioConfig
from style_studio.history.storage import InMemorySessionStorage
from style_studio.interaction.notifications import NoticeBoard


START = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class MutableClock:
    """Clock that only moves when told to."""

    def __init__(self, start: datetime = START):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> datetime:
        self.now = self.now + timedelta(**kwargs)
        return self.now


async def settle(rounds: int = 10) -> None:
    """Let scheduled tasks run until they block."""
    for _ in range(rounds):
        await asyncio.sleep(0)


def catalog_payload(ref) -> dict:
    return {"internalProducts": [{"productId": f"{ref}-match"}], "naverProducts": []}


class FakeAnalysisBackend:
    """
    Analysis service fake.

    Manual mode (default): every call blocks until ``resolve``/``fail`` is
    called with its index. Auto mode answers immediately.
    """

    def __init__(self, auto: bool = False):
        self.auto = auto
        self.payloads = {}
        self.error = None
        self.calls = []
        self._futures = []

    async def analyze_by_image(self, image):
        return await self._respond("image", image)

    async def analyze_by_catalog_item(self, item_id):
        return await self._respond("catalog", item_id)

    async def _respond(self, method, ref):
        self.calls.append((method, ref))
        if self.error is not None:
            raise self.error
        if self.auto:
            key = ref if isinstance(ref, str) else method
            return self.payloads.get(key, catalog_payload(key))
        future = asyncio.get_running_loop().create_future()
        self._futures.append(future)
        return await future

    async def wait_for_calls(self, count: int) -> None:
        for _ in range(50):
            if len(self.calls) >= count:
                return
            await asyncio.sleep(0)
        raise AssertionError(f"Expected {count} analysis call(s), got {len(self.calls)}")

    def resolve(self, index: int, payload) -> None:
        self._futures[index].set_result(payload)

    def fail(self, index: int, error: Exception) -> None:
        self._futures[index].set_exception(error)


class FakeBookmarkBackend:
    """
    Member service fake backed by a dict.

    With ``hold`` set, every call waits until ``release_all()``.
    """

    def __init__(self):
        self.store = {}
        self.fail_add = False
        self.fail_remove = False
        self.fetch_error = None
        self.hold = False
        self.fetch_calls = 0
        self.add_calls = []
        self.remove_calls = []
        self.tokens = []
        self._held = []

    async def fetch_bookmarks(self, token):
        self.tokens.append(token)
        self.fetch_calls += 1
        snapshot = [dict(item) for item in self.store.values()]
        await self._maybe_hold()
        if self.fetch_error is not None:
            raise self.fetch_error
        return snapshot

    async def add_bookmark(self, token, product_id, style_name=None):
        self.tokens.append(token)
        self.add_calls.append((product_id, style_name))
        await self._maybe_hold()
        if self.fail_add:
            return False
        self.store[product_id] = {
            "productId": product_id,
            "createdAt": "2024-05-01T12:00:00Z",
            "savedStyleName": style_name,
        }
        return True

    async def remove_bookmarks(self, token, product_ids):
        self.tokens.append(token)
        self.remove_calls.append(list(product_ids))
        await self._maybe_hold()
        if self.fail_remove:
            return False
        for product_id in product_ids:
            self.store.pop(product_id, None)
        return True

    def seed(self, product_id, created_at, **extra):
        self.store[product_id] = {"productId": product_id, "createdAt": created_at, **extra}

    async def _maybe_hold(self):
        if not self.hold:
            return
        future = asyncio.get_running_loop().create_future()
        self._held.append(future)
        await future

    @property
    def held_count(self) -> int:
        return len([f for f in self._held if not f.done()])

    def release(self, index: int) -> None:
        self._held[index].set_result(None)

    def release_all(self) -> None:
        for future in self._held:
            if not future.done():
                future.set_result(None)


class FakeAuthBackend:
    def __init__(self):
        self.check = SessionCheck.AUTHORIZED
        self.validate_error = None
        self.logout_result = True
        self.logout_error = None
        self.validate_calls = []
        self.logout_calls = []

    async def validate_session(self, token):
        self.validate_calls.append(token)
        if self.validate_error is not None:
            raise self.validate_error
        return self.check

    async def logout(self, session):
        self.logout_calls.append(session)
        if self.logout_error is not None:
            raise self.logout_error
        return self.logout_result


def image_bytes(fmt: str = "PNG", size=(8, 8)) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", size, color=(200, 30, 30)).save(buffer, format=fmt)
    return buffer.getvalue()


@pytest.fixture
def clock():
    return MutableClock()


@pytest.fixture
def analysis_backend():
    return FakeAnalysisBackend()


@pytest.fixture
def bookmark_backend():
    return FakeBookmarkBackend()


@pytest.fixture
def auth_backend():
    return FakeAuthBackend()


@pytest.fixture
def notice_board(clock):
    return NoticeBoard(clock=clock)


@pytest.fixture
def studio_config():
    return StudioConfig(analysis_timeout_seconds=None)


@pytest.fixture
def app(studio_config, analysis_backend, bookmark_backend, auth_backend, notice_board, clock):
    """Initialized StudioApp wired to the fakes."""
    studio_app = StudioApp(
        studio_config,
        analysis_backend,
        bookmark_backend,
        auth_backend,
        storage=InMemorySessionStorage(),
        notifier=notice_board,
        clock=clock,
    )
    studio_app.initialize()
    yield studio_app
    studio_app.close()
