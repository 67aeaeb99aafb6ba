"""
Tests for the session store and session guard.
"""
import asyncio
from datetime import timedelta
from unittest.mock import Mock

import pytest

from style_studio.backends.auth_backend import SessionCheck
from style_studio.exceptions import NotSignedInError, SessionExpiredError
from style_studio.interaction.notifications import NoticeLevel
from style_studio.models import SessionState
from style_studio.session.session_guard import SessionGuard
from style_studio.session.session_store import SessionStore, SignOutReason


@pytest.fixture
def store(clock):
    return SessionStore(ttl=timedelta(hours=6), clock=clock)


@pytest.fixture
def guard(store, auth_backend, notice_board):
    return SessionGuard(store, auth_backend, notice_board)


class TestSessionStore:
    def test_open_issues_fixed_lifetime(self, store, clock):
        session = store.open("tok-1", "u1", "Mina")

        assert session.issued_at == clock()
        assert session.expires_at == clock() + timedelta(hours=6)
        assert store.current() is session

    def test_open_requires_token(self, store):
        with pytest.raises(ValueError):
            store.open("", "u1", "Mina")

    def test_expiry_closes_session_on_read(self, store, clock):
        listener = Mock()
        store.add_sign_out_listener(listener)
        session = store.open("tok-1", "u1", "Mina")

        clock.now = session.expires_at
        assert store.current() is session

        clock.now = session.expires_at + timedelta(milliseconds=1)
        assert store.current() is None
        assert store.peek() is None
        listener.assert_called_once_with(SignOutReason.EXPIRED)

    def test_restore_skips_expired_session(self, store, clock):
        stale = SessionState.issue("tok", "u1", "Mina", issued_at=clock() - timedelta(hours=7), ttl=timedelta(hours=6))
        fresh = SessionState.issue("tok", "u1", "Mina", issued_at=clock(), ttl=timedelta(hours=6))

        assert store.restore(stale) is None
        assert store.peek() is None
        assert store.restore(fresh) is fresh

    def test_close_without_session(self, store):
        listener = Mock()
        store.add_sign_out_listener(listener)

        assert not store.close(SignOutReason.LOGOUT)
        listener.assert_not_called()

    def test_failing_listener_does_not_block_others(self, store):
        failing = Mock(side_effect=RuntimeError("boom"))
        healthy = Mock()
        store.add_sign_out_listener(failing)
        store.add_sign_out_listener(healthy)
        store.open("tok-1", "u1", "Mina")

        assert store.close(SignOutReason.LOGOUT)
        healthy.assert_called_once_with(SignOutReason.LOGOUT)


class TestSessionGuardRequire:
    def test_require_without_session(self, guard):
        with pytest.raises(NotSignedInError):
            guard.require()

    def test_require_after_expiry(self, guard, store, clock):
        store.open("tok-1", "u1", "Mina")
        clock.advance(hours=6, milliseconds=1)

        with pytest.raises(SessionExpiredError):
            guard.require()
        with pytest.raises(NotSignedInError):
            guard.require()

    def test_current_token(self, guard, store):
        assert guard.current_token() is None
        store.open("tok-1", "u1", "Mina")
        assert guard.current_token() == "tok-1"


class TestSessionGuardVerify:
    def test_expired_session_forces_logout_without_remote_call(self, guard, store, clock, auth_backend):
        session = store.open("tok-1", "u1", "Mina")
        clock.now = session.expires_at + timedelta(milliseconds=1)

        assert asyncio.run(guard.verify()) is False
        assert auth_backend.validate_calls == []
        assert store.peek() is None

    def test_network_failure_keeps_session(self, guard, store, auth_backend):
        session = store.open("tok-1", "u1", "Mina")
        auth_backend.validate_error = ConnectionError("offline")

        assert asyncio.run(guard.verify()) is True
        assert store.current() is session

    def test_authorized_keeps_session(self, guard, store, auth_backend):
        store.open("tok-1", "u1", "Mina")

        assert asyncio.run(guard.verify()) is True
        assert auth_backend.validate_calls == ["tok-1"]

    def test_unauthorized_revokes_session(self, guard, store, auth_backend):
        listener = Mock()
        store.add_sign_out_listener(listener)
        store.open("tok-1", "u1", "Mina")
        auth_backend.check = SessionCheck.UNAUTHORIZED

        assert asyncio.run(guard.verify()) is False
        assert store.peek() is None
        listener.assert_called_once_with(SignOutReason.REVOKED)

    def test_unauthorized_for_replaced_session_is_ignored(self, store, notice_board):
        class SwappingAuth:
            async def validate_session(self, token):
                store.open("tok-2", "u1", "Mina")
                return SessionCheck.UNAUTHORIZED

            async def logout(self, session):
                return True

        store.open("tok-1", "u1", "Mina")
        guard = SessionGuard(store, SwappingAuth(), notice_board)

        assert asyncio.run(guard.verify()) is False
        assert store.current().token == "tok-2"

    def test_remote_check_disabled(self, store, auth_backend, notice_board):
        guard = SessionGuard(store, auth_backend, notice_board, remote_check=False)
        store.open("tok-1", "u1", "Mina")

        assert asyncio.run(guard.verify()) is True
        assert auth_backend.validate_calls == []

    def test_verify_without_session(self, guard, auth_backend):
        assert asyncio.run(guard.verify()) is False
        assert auth_backend.validate_calls == []


class TestSessionGuardLogout:
    def test_logout_success(self, guard, store, notice_board):
        listener = Mock()
        store.add_sign_out_listener(listener)
        store.open("tok-1", "u1", "Mina")

        assert asyncio.run(guard.logout()) is True
        assert store.peek() is None
        listener.assert_called_once_with(SignOutReason.LOGOUT)
        assert notice_board.latest().level is NoticeLevel.INFO

    @pytest.mark.parametrize("failure", ["declined", "error"])
    def test_logout_failure_keeps_session(self, guard, store, auth_backend, notice_board, failure):
        session = store.open("tok-1", "u1", "Mina")
        if failure == "declined":
            auth_backend.logout_result = False
        else:
            auth_backend.logout_error = ConnectionError("offline")

        assert asyncio.run(guard.logout()) is False
        assert store.current() is session
        assert notice_board.latest(NoticeLevel.ERROR).message == "Logout failed. Please try again."

    def test_logout_without_session(self, guard, auth_backend):
        assert asyncio.run(guard.logout()) is True
        assert auth_backend.logout_calls == []
