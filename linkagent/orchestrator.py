"""
linkagent Orchestrator - inbound classification and turn processing

The orchestrator is the single owned context every component hangs off.
Non-live messages and echoes of our own sends are dropped; the rest of
the raw inbound messages are split three ways:
- operator commands (@stop, @play, @continue, @clean) from the linked device
- any other operator message, which takes that conversation over
- user messages, which go through the accumulator

Flushed turns then pass the pause gate, the agent loop, the history store
and finally the delivery pipeline.
"""

import logging
import time
from typing import List, Optional

from .accumulator import AccumulatedTurn, MessageAccumulator
from .agent import AgentLoop
from .connection import ConnectionManager
from .constants import (
    ASSISTANT_ROLE,
    ASSISTANT_UNAVAILABLE_PLACEHOLDER,
    DEFAULT_FALLBACK_MESSAGE,
    USER_ROLE,
    is_group_conversation,
)
from .control import ControlCommand, PauseController, PauseStatus, parse_command
from .delivery import DeliveryPipeline
from .events import EventBus, EventType
from .history import ConversationHistoryStore, ConversationStats
from .providers.media.base import BaseMediaDescriber, media_label, normalize_mime_type
from .transport.base import ContentType, RawInboundMessage

logger = logging.getLogger(__name__)


class ConversationOrchestrator:
    """
    Wires the accumulator, pause gate, agent loop, history and delivery.

    Example:
        orchestrator = ConversationOrchestrator(
            connection=manager,
            agent=agent_loop,
            history=ConversationHistoryStore("threads.json"),
        )
        await orchestrator.start()
    """

    def __init__(
        self,
        connection: ConnectionManager,
        agent: AgentLoop,
        history: ConversationHistoryStore,
        event_bus: Optional[EventBus] = None,
        pause: Optional[PauseController] = None,
        delivery: Optional[DeliveryPipeline] = None,
        media_describer: Optional[BaseMediaDescriber] = None,
        accumulator_window: float = 7.0,
        model_context_turns: int = 20,
        fallback_message: str = DEFAULT_FALLBACK_MESSAGE,
        startup_timestamp_ms: Optional[int] = None,
    ):
        self.connection = connection
        self.agent = agent
        self.history = history
        self.event_bus = event_bus or connection.event_bus
        self.pause = pause or PauseController(self.event_bus)
        self.delivery = delivery or DeliveryPipeline(connection)
        self.media_describer = media_describer
        self.accumulator = MessageAccumulator(self.process_turn, window_seconds=accumulator_window)
        self.model_context_turns = model_context_turns
        self.fallback_message = fallback_message
        self.startup_timestamp_ms = (
            startup_timestamp_ms if startup_timestamp_ms is not None else int(time.time() * 1000)
        )

        self.connection.set_message_handler(self.handle_inbound)

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        logger.info(f"Message accumulator window: {self.accumulator.window_seconds}s")
        await self.connection.start()

    async def shutdown(self) -> None:
        await self.accumulator.close()
        await self.connection.close()

    # ------------------------------------------------------------------
    # Inbound
    # ------------------------------------------------------------------

    async def handle_inbound(self, messages: List[RawInboundMessage]) -> None:
        for message in messages:
            if not message.live:
                logger.debug(f"Skipping non-live message {message.message_key} in {message.conversation_id}")
                continue
            if message.from_me and self.connection.is_own_send(message):
                logger.debug(f"Skipping echo of our own reply in {message.conversation_id}")
                continue
            if message.from_me:
                await self._handle_manual_message(message)
            else:
                await self._handle_user_message(message)

    async def _handle_manual_message(self, message: RawInboundMessage) -> None:
        """Operator-authored message: a command or a takeover."""
        cid = message.conversation_id
        if is_group_conversation(cid):
            return

        command = parse_command(message.text)
        if command is ControlCommand.STOP:
            await self.pause.set_global_pause(True)
            await self.connection.delete_message(cid, message.message_key)
            logger.info("@stop received - global pause on")
        elif command is ControlCommand.PLAY:
            await self.pause.set_global_pause(False)
            await self.connection.delete_message(cid, message.message_key)
            logger.info("@play received - global pause off")
        elif command is ControlCommand.CONTINUE:
            await self.pause.resume_conversation(cid, cutoff=message.timestamp_ms)
            await self.connection.delete_message(cid, message.message_key)
            logger.info(f"@continue received - conversation {cid} resumed")
        elif command is ControlCommand.CLEAN:
            cleared = self.history.clear(cid)
            await self.connection.delete_message(cid, message.message_key)
            if cleared:
                logger.info(f"@clean received - history cleared for {cid}")
            else:
                logger.info(f"@clean received - no history stored for {cid}")
        else:
            name = cid.split("@")[0]
            await self.pause.pause_conversation(cid, name)
            logger.info(f"Manual message detected for {name} - bot paused in this conversation")

    async def _handle_user_message(self, message: RawInboundMessage) -> None:
        cid = message.conversation_id
        if is_group_conversation(cid):
            return

        try:
            instant = message.timestamp_ms
            if instant < self.startup_timestamp_ms:
                logger.debug(f"Ignoring message from {message.contact_label} sent before startup")
                return

            label = message.contact_label
            if message.content_type == ContentType.TEXT:
                logger.info(f"Message from {label}: {message.text}")
                model_input = message.text
            elif message.content_type.is_media:
                logger.info(f"{message.content_type.value.upper()} from {label}")
                model_input = await self._build_media_input(message)
                if not model_input:
                    logger.error("Skipping message because the media could not be processed")
                    return
            else:
                logger.info(f"Unsupported message type from {label}, ignoring")
                return

            if not model_input or not model_input.strip():
                logger.warning("Empty message, skipping")
                return

            await self.event_bus.emit(
                EventType.MESSAGE_RECEIVED,
                sender=cid,
                name=label,
                message=model_input,
            )
            self.accumulator.add(cid, model_input, instant, contact_label=label)

        except Exception as e:
            logger.error(f"Error handling message from {cid}: {e}", exc_info=True)
            await self.event_bus.emit(EventType.ERROR, error=str(e))

    async def _build_media_input(self, message: RawInboundMessage) -> Optional[str]:
        """Describe inbound media as text for the model."""
        try:
            data = await self.connection.download_media(message)
        except Exception as e:
            logger.error(f"Error downloading media: {e}")
            return None
        if not data:
            logger.error("Unable to download media data from the message")
            return None

        mime_type = normalize_mime_type(message.mime_type)
        description = None
        if self.media_describer is not None:
            description = await self.media_describer.describe(mime_type, data)

        kind = "ptt" if message.is_voice_note else message.content_type.value
        lines = []
        if message.content_type in (ContentType.AUDIO, ContentType.VIDEO):
            spoken = "AUDIO" if message.content_type == ContentType.AUDIO else "VIDEO"
            lines.append(f"[NOTE: the customer sent {spoken} - you MUST reply using the text_to_speech tool]")
        lines.append(f"The user sent a media message of type {media_label(kind, mime_type)}.")
        if mime_type:
            lines.append(f"MIME type: {mime_type}")
        if message.caption:
            lines.append(f"Caption provided by the user: {message.caption}")
        if description:
            lines.append("Detailed description of the media (generated automatically):")
            lines.append(description)
        else:
            lines.append("An automatic description could not be generated for this media.")
        return "\n".join(lines)

    # ------------------------------------------------------------------
    # Turn processing
    # ------------------------------------------------------------------

    async def process_turn(self, turn: AccumulatedTurn) -> None:
        """Gate, run the agent, persist and deliver one flushed turn."""
        cid = turn.conversation_id
        decision = self.pause.check(cid, turn.last_message_at)
        if not decision.allowed:
            logger.info(f"Turn for {turn.contact_label} dropped ({decision.value})")
            return

        logger.info(f"Processing {turn.message_count} accumulated message(s) for {turn.contact_label}")
        try:
            prior = self.history.get_history_for_model(cid, self.model_context_turns)
            result = await self.agent.run(prior, turn.text)
        except Exception as e:
            logger.error(f"Agent execution failed for {cid}: {e}")
            await self.delivery.send_fallback(cid, self.fallback_message)
            return

        self.history.add_turn(cid, USER_ROLE, turn.text)
        summary = result.history_summary.strip() or ASSISTANT_UNAVAILABLE_PLACEHOLDER
        self.history.add_turn(cid, ASSISTANT_ROLE, summary)

        report = await self.delivery.deliver(cid, result.payload, input_text=turn.text)
        if report.failure is not None:
            logger.error(f"Reply to {cid} stopped after {report.sent_parts}/{report.total_parts} part(s)")

    # ------------------------------------------------------------------
    # Dashboard surface
    # ------------------------------------------------------------------

    async def toggle_global_pause(self, paused: bool) -> PauseStatus:
        await self.pause.set_global_pause(paused)
        return self.pause.get_status()

    async def resume_conversation(self, conversation_id: str) -> bool:
        return await self.pause.resume_conversation(conversation_id)

    def get_pause_status(self) -> PauseStatus:
        return self.pause.get_status()

    async def logout(self) -> None:
        await self.connection.logout()

    def is_ready(self) -> bool:
        return self.connection.is_ready()

    def history_stats(self) -> ConversationStats:
        return self.history.get_stats()
