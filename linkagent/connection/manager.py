"""
linkagent Connection Manager - owns the single device-linked session

State machine:
    idle -> connecting -> open
    open -> closed -> connecting              (transient failure, backoff)
    closed -> full reset -> connecting        (conflict, remote logout,
                                               attempts exhausted)

Two boolean guards keep the session unique: ``_is_connecting`` rejects a
second connection attempt while one is in flight, and ``_is_recovering``
rejects a second full reset while one runs. Only one reconnect timer task
exists at any time.
"""

import asyncio
import logging
from collections import deque
from typing import Any, Awaitable, Callable, Deque, List, Optional, Tuple

from ..config import ConnectionSettings
from ..constants import LOGOUT_REASON
from ..events import EventBus, EventType
from ..transport.base import ContentType, DeviceTransport, DisconnectInfo, Presence, RawInboundMessage
from ..transport.credentials import wipe_auth_state
from .models import (
    ConnectionState,
    DisconnectCause,
    DisconnectRecord,
    classify_disconnect,
    reconnect_delay,
)

logger = logging.getLogger(__name__)

MessageHandler = Callable[[List[RawInboundMessage]], Awaitable[None]]
SleepFunc = Callable[[float], Awaitable[Any]]

DISCONNECT_HISTORY_SIZE = 50
OWN_SEND_HISTORY_SIZE = 500


class ConnectionManager:
    """
    Connection lifecycle manager and session listener.

    Example:
        manager = ConnectionManager(transport, event_bus)
        manager.set_message_handler(orchestrator.handle_inbound)
        await manager.start()
    """

    def __init__(
        self,
        transport: DeviceTransport,
        event_bus: Optional[EventBus] = None,
        settings: Optional[ConnectionSettings] = None,
        sleep: SleepFunc = asyncio.sleep,
    ):
        self.transport = transport
        self.event_bus = event_bus or EventBus()
        self.settings = settings or ConnectionSettings(auth_dir=transport.auth_dir)
        self._sleep = sleep

        self.state = ConnectionState.IDLE
        self.reconnect_attempts = 0
        self.disconnect_history: Deque[DisconnectRecord] = deque(maxlen=DISCONNECT_HISTORY_SIZE)
        self.last_reconnect_delay: Optional[float] = None

        self._is_connecting = False
        self._is_recovering = False
        self._reconnect_task: Optional[asyncio.Task] = None
        self._message_handler: Optional[MessageHandler] = None
        self._closed = False

        # Keys of messages this session sent, and sends still awaiting the library
        self._own_send_keys: Deque[Any] = deque(maxlen=OWN_SEND_HISTORY_SIZE)
        self._sends_in_flight: List[Tuple[str, Optional[str]]] = []

    def set_message_handler(self, handler: MessageHandler) -> None:
        self._message_handler = handler

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        logger.info(f"[Connection] Starting (auth storage: {self.settings.auth_dir})")
        self._closed = False
        await self._start_connection()

    async def _start_connection(self) -> None:
        if self._is_connecting:
            logger.warning("[Connection] Connection attempt already in progress, skipping")
            return
        if self._closed:
            return

        self._is_connecting = True
        failure: Optional[Exception] = None
        try:
            await self._teardown_session()
            self.state = ConnectionState.CONNECTING
            await self.event_bus.emit(EventType.CONNECTION_STATE, state="connecting")
            logger.info("[Connection] Starting new connection")
            await self.transport.start(self)
        except Exception as e:
            logger.error(f"[Connection] Error starting connection: {e}", exc_info=True)
            failure = e
        finally:
            self._is_connecting = False

        if failure is not None:
            await self.on_close(DisconnectInfo(reason=str(failure) or failure.__class__.__name__))

    async def _teardown_session(self) -> None:
        """Drop the current session and its listeners."""
        try:
            await self.transport.close()
        except Exception as e:
            logger.warning(f"[Connection] Error cleaning up session: {e}")

    def _cancel_reconnect(self) -> None:
        if self._reconnect_task is not None and not self._reconnect_task.done():
            if self._reconnect_task is not asyncio.current_task():
                self._reconnect_task.cancel()
        self._reconnect_task = None

    def _schedule_reconnect(self, delay: float) -> None:
        self._cancel_reconnect()
        self.last_reconnect_delay = delay
        self._reconnect_task = asyncio.create_task(self._reconnect_after(delay))

    async def _reconnect_after(self, delay: float) -> None:
        await self._sleep(delay)
        await self._start_connection()

    async def close(self) -> None:
        """Stop reconnecting and drop the session (process shutdown)."""
        self._closed = True
        self._cancel_reconnect()
        await self._teardown_session()
        self.state = ConnectionState.CLOSED

    def is_ready(self) -> bool:
        return self.state == ConnectionState.OPEN and self.transport.is_ready()

    # ------------------------------------------------------------------
    # Session listener callbacks
    # ------------------------------------------------------------------

    async def on_qr(self, code: str) -> None:
        logger.info("[Connection] QR code received, scan it from Settings > Linked Devices")
        await self.event_bus.emit(EventType.QR_CODE, qr=code)

    async def on_credentials_update(self) -> None:
        await self.event_bus.emit(EventType.AUTHENTICATED)

    async def on_open(self) -> None:
        self.state = ConnectionState.OPEN
        self.reconnect_attempts = 0
        self._cancel_reconnect()
        logger.info("[Connection] Session open, waiting for messages")
        await self.event_bus.emit(EventType.READY)
        await self.event_bus.emit(EventType.CONNECTION_STATE, state="open")
        await self.event_bus.emit(EventType.STATUS_UPDATE, ready=True)

    async def on_close(self, info: DisconnectInfo) -> None:
        self.state = ConnectionState.CLOSED
        logger.info(f"[Connection] Connection closed: {info.reason}")
        await self.event_bus.emit(EventType.CONNECTION_STATE, state="close", reason=info.reason)

        if self._closed:
            return

        cause = classify_disconnect(info, self.reconnect_attempts, self.settings.max_reconnect_attempts)
        if cause.requires_reset:
            logger.warning(f"[Connection] {cause.value} detected, starting full reset")
            await self.full_reset(info.reason, cause=cause)
            return

        self.reconnect_attempts += 1
        delay = reconnect_delay(
            self.reconnect_attempts,
            base=self.settings.base_reconnect_delay,
            cap=self.settings.max_reconnect_delay,
        )
        self.disconnect_history.append(DisconnectRecord(cause, info.reason, self.reconnect_attempts))
        logger.info(
            f"[Connection] Reconnecting in {delay}s "
            f"(attempt {self.reconnect_attempts}/{self.settings.max_reconnect_attempts})"
        )
        self._schedule_reconnect(delay)

    async def on_messages(self, messages: List[RawInboundMessage]) -> None:
        if self._message_handler is None:
            logger.debug(f"[Connection] No message handler, dropping {len(messages)} message(s)")
            return
        await self._message_handler(messages)

    # ------------------------------------------------------------------
    # Recovery
    # ------------------------------------------------------------------

    async def full_reset(self, reason: str, cause: DisconnectCause = DisconnectCause.LOGGED_OUT) -> bool:
        """Wipe credentials and restart linking from scratch.

        Returns False when a reset was already running; the request is
        still recorded in ``disconnect_history``.
        """
        if self._is_recovering:
            self.disconnect_history.append(
                DisconnectRecord(cause, reason, self.reconnect_attempts, handled=False)
            )
            logger.warning("[Connection] Full reset already in progress, skipping")
            return False

        self._is_recovering = True
        self.disconnect_history.append(DisconnectRecord(cause, reason, self.reconnect_attempts))
        logger.warning(f"[Connection] Full reset started: {reason}")

        try:
            self._cancel_reconnect()
            await self._teardown_session()
            self.state = ConnectionState.CLOSED
            wipe_auth_state(self.settings.auth_dir)
            self.reconnect_attempts = 0

            await self.event_bus.emit(EventType.DISCONNECTED, reason=reason, auto_recovery=True)

            logger.info(f"[Connection] Waiting {self.settings.reset_delay}s before reconnecting")
            await self._sleep(self.settings.reset_delay)
        except Exception as e:
            logger.error(f"[Connection] Full reset failed: {e}", exc_info=True)
            self._is_recovering = False
            self._schedule_reset_retry(reason, cause)
            return True

        self._is_recovering = False
        await self._start_connection()
        return True

    def _schedule_reset_retry(self, reason: str, cause: DisconnectCause) -> None:
        async def _retry() -> None:
            await self._sleep(self.settings.reset_retry_delay)
            await self.full_reset(reason, cause=cause)

        logger.info(f"[Connection] Retrying full reset in {self.settings.reset_retry_delay}s")
        self._cancel_reconnect()
        self._reconnect_task = asyncio.create_task(_retry())

    async def logout(self) -> None:
        """Revoke this device and restart linking. Works without a session."""
        logger.info("[Connection] Logging out")
        try:
            await self.transport.logout()
        except Exception as e:
            logger.warning(f"[Connection] Error during remote logout: {e}")

        self._cancel_reconnect()
        await self._teardown_session()
        self.state = ConnectionState.CLOSED
        wipe_auth_state(self.settings.auth_dir)

        await self.event_bus.emit(EventType.STATUS_UPDATE, ready=False)
        await self.event_bus.emit(EventType.DISCONNECTED, reason=LOGOUT_REASON)

        self.reconnect_attempts = 0
        logger.info("[Connection] Logged out, restarting connection for a new QR code")
        self._schedule_reconnect(self.settings.logout_reconnect_delay)

    # ------------------------------------------------------------------
    # Send capability
    # ------------------------------------------------------------------

    async def send_text(self, conversation_id: str, text: str) -> Any:
        marker = (conversation_id, text)
        self._sends_in_flight.append(marker)
        try:
            key = await self.transport.send_text(conversation_id, text)
        finally:
            self._sends_in_flight.remove(marker)
        self._remember_own_send(key)
        return key

    async def send_audio(self, conversation_id: str, audio: bytes, mime_type: str) -> Any:
        marker = (conversation_id, None)
        self._sends_in_flight.append(marker)
        try:
            key = await self.transport.send_audio(conversation_id, audio, mime_type, voice_note=True)
        finally:
            self._sends_in_flight.remove(marker)
        self._remember_own_send(key)
        return key

    def _remember_own_send(self, key: Any) -> None:
        if key is not None:
            self._own_send_keys.append(key)

    def is_own_send(self, message: RawInboundMessage) -> bool:
        """True if ``message`` is the echo of something this session sent."""
        if message.message_key is not None and message.message_key in self._own_send_keys:
            return True
        if message.content_type == ContentType.AUDIO:
            return (message.conversation_id, None) in self._sends_in_flight
        return (message.conversation_id, message.text) in self._sends_in_flight

    async def send_presence(self, conversation_id: str, presence: Presence) -> None:
        await self.transport.send_presence(conversation_id, presence)

    async def delete_message(self, conversation_id: str, message_key: Any) -> None:
        """Best-effort removal of an operator command message."""
        try:
            await self.transport.delete_message(conversation_id, message_key)
        except Exception as e:
            logger.warning(f"[Connection] Error deleting message: {e}")

    async def download_media(self, message: RawInboundMessage) -> Optional[bytes]:
        return await self.transport.download_media(message)
