"""
Tests for the connection lifecycle manager

Tests cover:
- Disconnect classification and the backoff schedule
- Reconnect attempts reset on open
- Full reset on conflict, remote logout and exhausted attempts
- Reentrancy guards for connecting and recovering
- Logout and credential wipe
"""

import asyncio

import pytest

from linkagent.config import ConnectionSettings
from linkagent.connection import (
    ConnectionManager,
    ConnectionState,
    DisconnectCause,
    classify_disconnect,
    reconnect_delay,
)
from linkagent.events import EventBus, EventType
from linkagent.transport.base import DisconnectInfo, RawInboundMessage
from linkagent.transport.credentials import wipe_auth_state


def make_manager(transport, sleep, bus=None, **settings):
    settings = ConnectionSettings(auth_dir=transport.auth_dir, **settings)
    return ConnectionManager(transport, event_bus=bus or EventBus(), settings=settings, sleep=sleep)


# =============================================================================
# Classification and backoff
# =============================================================================

class TestClassifyDisconnect:

    def test_conflict_first(self):
        info = DisconnectInfo(reason="Stream Errored (conflict)", logged_out=True)
        assert classify_disconnect(info, attempts=10, max_attempts=10) is DisconnectCause.CONFLICT

    def test_attempts_before_logout(self):
        info = DisconnectInfo(reason="closed", logged_out=True)
        assert classify_disconnect(info, attempts=10, max_attempts=10) is DisconnectCause.ATTEMPTS_EXHAUSTED

    def test_logged_out(self):
        info = DisconnectInfo(reason="closed", logged_out=True)
        assert classify_disconnect(info, attempts=0, max_attempts=10) is DisconnectCause.LOGGED_OUT

    def test_transient(self):
        cause = classify_disconnect(DisconnectInfo(reason="timed out"), attempts=3, max_attempts=10)
        assert cause is DisconnectCause.TRANSIENT
        assert not cause.requires_reset


class TestReconnectDelay:

    def test_schedule(self):
        assert [reconnect_delay(n) for n in range(1, 7)] == [5.0, 10.0, 20.0, 30.0, 30.0, 30.0]

    def test_custom_base_and_cap(self):
        assert reconnect_delay(3, base=1.0, cap=3.0) == 3.0


# =============================================================================
# Lifecycle
# =============================================================================

class TestConnectionLifecycle:

    @pytest.mark.asyncio
    async def test_open_emits_ready(self, fake_transport, blocking_sleep):
        bus = EventBus()
        events = []
        bus.subscribe_many([EventType.READY, EventType.CONNECTION_STATE, EventType.STATUS_UPDATE], events.append)

        manager = make_manager(fake_transport, blocking_sleep, bus)
        await manager.start()

        assert manager.state is ConnectionState.OPEN
        assert manager.is_ready()
        assert [e.type for e in events] == [
            EventType.CONNECTION_STATE,
            EventType.READY,
            EventType.CONNECTION_STATE,
            EventType.STATUS_UPDATE,
        ]
        assert events[0].data == {"state": "connecting"}
        assert events[-1].data == {"ready": True}
        await manager.close()

    @pytest.mark.asyncio
    async def test_backoff_sequence_and_reset_on_open(self, fake_transport, blocking_sleep):
        manager = make_manager(fake_transport, blocking_sleep)
        await manager.start()

        delays = []
        for _ in range(5):
            await fake_transport.drop()
            delays.append(manager.last_reconnect_delay)

        assert delays == [5.0, 10.0, 20.0, 30.0, 30.0]
        assert manager.reconnect_attempts == 5
        assert manager.state is ConnectionState.CLOSED
        assert not manager.is_ready()

        await manager.on_open()
        assert manager.reconnect_attempts == 0
        await fake_transport.drop()
        assert manager.last_reconnect_delay == 5.0
        await manager.close()

    @pytest.mark.asyncio
    async def test_reconnect_runs_after_delay(self, fake_transport, instant_sleep):
        manager = make_manager(fake_transport, instant_sleep)
        await manager.start()
        await fake_transport.drop()
        await asyncio.sleep(0.01)

        assert instant_sleep.delays == [5.0]
        assert fake_transport.start_calls == 2
        assert manager.state is ConnectionState.OPEN
        assert manager.reconnect_attempts == 0
        await manager.close()

    @pytest.mark.asyncio
    async def test_failed_start_is_transient(self, fake_transport, blocking_sleep):
        fake_transport.start_error = RuntimeError("boom")
        manager = make_manager(fake_transport, blocking_sleep)
        await manager.start()

        assert manager.state is ConnectionState.CLOSED
        assert manager.reconnect_attempts == 1
        assert manager.last_reconnect_delay == 5.0
        assert manager.disconnect_history[-1].reason == "boom"
        await manager.close()

    @pytest.mark.asyncio
    async def test_single_connection_attempt(self, fake_transport, blocking_sleep):
        fake_transport.start_gate = asyncio.Event()
        manager = make_manager(fake_transport, blocking_sleep)

        first = asyncio.create_task(manager.start())
        await asyncio.sleep(0)
        await manager._start_connection()
        assert fake_transport.start_calls == 1

        fake_transport.start_gate.set()
        await first
        assert manager.state is ConnectionState.OPEN
        await manager.close()

    @pytest.mark.asyncio
    async def test_no_reconnect_after_close(self, fake_transport, blocking_sleep):
        manager = make_manager(fake_transport, blocking_sleep)
        await manager.start()
        await manager.close()
        await manager.on_close(DisconnectInfo(reason="Connection lost"))
        assert manager.reconnect_attempts == 0
        assert manager.last_reconnect_delay is None

    @pytest.mark.asyncio
    async def test_messages_forwarded(self, fake_transport, blocking_sleep):
        received = []

        async def handler(messages):
            received.extend(messages)

        manager = make_manager(fake_transport, blocking_sleep)
        manager.set_message_handler(handler)
        message = RawInboundMessage("111@s.whatsapp.net", "k1", False, 1700000000, text="hi")
        await manager.on_messages([message])
        assert received == [message]


# =============================================================================
# Full reset
# =============================================================================

class TestFullReset:

    @pytest.mark.asyncio
    async def test_conflict_wipes_and_reconnects(self, fake_transport, instant_sleep):
        auth = fake_transport.auth_dir
        bus = EventBus()
        disconnected = []
        bus.subscribe(EventType.DISCONNECTED, disconnected.append)

        manager = make_manager(fake_transport, instant_sleep, bus)
        await manager.start()
        import os
        os.makedirs(auth, exist_ok=True)
        with open(os.path.join(auth, "creds.json"), "w") as f:
            f.write("{}")

        await fake_transport.drop(reason="Stream Errored (conflict)")

        assert not os.path.exists(auth)
        assert instant_sleep.delays == [2.0]
        assert disconnected[0].data == {"reason": "Stream Errored (conflict)", "auto_recovery": True}
        assert fake_transport.start_calls == 2
        assert manager.state is ConnectionState.OPEN
        assert manager.disconnect_history[-1].cause is DisconnectCause.CONFLICT
        await manager.close()

    @pytest.mark.asyncio
    async def test_remote_logout(self, fake_transport, instant_sleep):
        manager = make_manager(fake_transport, instant_sleep)
        await manager.start()
        await fake_transport.drop(reason="Connection Failure", logged_out=True)
        assert manager.disconnect_history[-1].cause is DisconnectCause.LOGGED_OUT
        assert manager.reconnect_attempts == 0
        await manager.close()

    @pytest.mark.asyncio
    async def test_attempts_exhausted(self, fake_transport, instant_sleep):
        manager = make_manager(fake_transport, instant_sleep, max_reconnect_attempts=3)
        await manager.start()
        manager.reconnect_attempts = 3
        await fake_transport.drop()
        assert manager.disconnect_history[-1].cause is DisconnectCause.ATTEMPTS_EXHAUSTED
        assert manager.reconnect_attempts == 0
        assert manager.state is ConnectionState.OPEN
        await manager.close()

    @pytest.mark.asyncio
    async def test_second_reset_rejected(self, fake_transport, blocking_sleep):
        manager = make_manager(fake_transport, blocking_sleep)
        manager._is_recovering = True
        assert await manager.full_reset("conflict", DisconnectCause.CONFLICT) is False
        record = manager.disconnect_history[-1]
        assert record.handled is False
        assert fake_transport.start_calls == 0

    @pytest.mark.asyncio
    async def test_failed_reset_retries(self, fake_transport):
        delays = []

        async def sleep(seconds):
            delays.append(seconds)
            if len(delays) == 1:
                raise RuntimeError("interrupted")

        manager = make_manager(fake_transport, sleep)
        assert await manager.full_reset("conflict", DisconnectCause.CONFLICT) is True
        await asyncio.sleep(0.01)

        # reset delay (fails), retry delay, reset delay again
        assert delays == [2.0, 5.0, 2.0]
        assert manager.state is ConnectionState.OPEN
        await manager.close()


# =============================================================================
# Logout
# =============================================================================

class TestLogout:

    @pytest.mark.asyncio
    async def test_logout(self, fake_transport, blocking_sleep):
        bus = EventBus()
        events = []
        bus.subscribe_many([EventType.STATUS_UPDATE, EventType.DISCONNECTED], events.append)

        manager = make_manager(fake_transport, blocking_sleep, bus)
        await manager.start()
        events.clear()

        await manager.logout()

        assert fake_transport.logged_out
        assert manager.state is ConnectionState.CLOSED
        assert manager.reconnect_attempts == 0
        assert manager.last_reconnect_delay == 0.5
        assert [(e.type, e.data) for e in events] == [
            (EventType.STATUS_UPDATE, {"ready": False}),
            (EventType.DISCONNECTED, {"reason": "User requested logout"}),
        ]
        await manager.close()

    @pytest.mark.asyncio
    async def test_logout_without_session_when_remote_logout_fails(self, fake_transport, instant_sleep, tmp_path):
        auth = tmp_path / "auth_info"
        auth.mkdir()
        (auth / "creds.json").write_text("{}")
        fake_transport.logout_error = RuntimeError("not connected")

        manager = make_manager(fake_transport, instant_sleep)
        assert manager.state is ConnectionState.IDLE

        await manager.logout()

        assert not auth.exists()
        assert not fake_transport.logged_out
        assert manager.last_reconnect_delay == 0.5
        reconnect = manager._reconnect_task
        assert reconnect is not None

        await reconnect
        assert instant_sleep.delays == [0.5]
        assert fake_transport.start_calls == 1
        assert manager.state is ConnectionState.OPEN
        await manager.close()


# =============================================================================
# Own sends
# =============================================================================

class TestOwnSends:

    @pytest.mark.asyncio
    async def test_sent_keys_are_recognised(self, fake_transport, instant_sleep):
        manager = make_manager(fake_transport, instant_sleep)
        await manager.start()

        key = await manager.send_text("111@s.whatsapp.net", "hello")
        echo = RawInboundMessage("111@s.whatsapp.net", key, from_me=True, timestamp=1, text="hello")
        typed = RawInboundMessage("111@s.whatsapp.net", "typed-1", from_me=True, timestamp=1, text="hello")

        assert manager.is_own_send(echo)
        assert not manager.is_own_send(typed)
        await manager.close()

    @pytest.mark.asyncio
    async def test_failed_send_leaves_nothing_in_flight(self, fake_transport, instant_sleep):
        async def broken_send(conversation_id, text):
            raise RuntimeError("socket closed")

        manager = make_manager(fake_transport, instant_sleep)
        fake_transport.send_text = broken_send
        with pytest.raises(RuntimeError):
            await manager.send_text("111@s.whatsapp.net", "hello")

        typed = RawInboundMessage("111@s.whatsapp.net", "typed-1", from_me=True, timestamp=1, text="hello")
        assert not manager.is_own_send(typed)


class TestWipeAuthState:

    def test_missing_directory(self, tmp_path):
        assert wipe_auth_state(str(tmp_path / "none")) is True

    def test_removes_directory(self, tmp_path):
        auth = tmp_path / "auth"
        auth.mkdir()
        (auth / "creds.json").write_text("{}")
        assert wipe_auth_state(str(auth)) is True
        assert not auth.exists()
