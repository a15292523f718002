"""
Tests for the conversation orchestrator

Tests cover:
- User messages accumulate into one agent run and one reply
- Group, pre-startup and unsupported messages are ignored
- Operator takeover and in-band commands (@stop, @play, @continue, @clean)
- Resume cutoff boundary
- Agent failure sends the fallback and writes no history
- Media messages are described for the model
- Audio replies reach the transport as voice notes
"""

import asyncio
import base64
from typing import List

import pytest
import pytest_asyncio

from linkagent.accumulator import AccumulatedTurn
from linkagent.agent import AgentLoop, AgentToolbox
from linkagent.config import ConnectionSettings
from linkagent.connection import ConnectionManager
from linkagent.delivery import DeliveryPipeline
from linkagent.events import EventBus, EventType
from linkagent.history import ConversationHistoryStore
from linkagent.llm import BaseLLMClient, LLMResponse, ToolCall
from linkagent.orchestrator import ConversationOrchestrator
from linkagent.providers.media.base import BaseMediaDescriber
from linkagent.providers.tts.base import BaseTTSProvider
from linkagent.transport.base import ContentType, Presence, RawInboundMessage

WINDOW = 0.05
ALICE = "111@s.whatsapp.net"
BOB = "222@s.whatsapp.net"
GROUP = "12345-678@g.us"
STARTUP_MS = 1_700_000_000_000
NOW = 1_700_000_100  # seconds, after startup


# =============================================================================
# Mock Classes
# =============================================================================

class EchoLLMClient(BaseLLMClient):
    """Answers 'Reply: <last user text>' unless told to fail or speak"""

    def __init__(self, fail=False, speak=False):
        super().__init__()
        self.fail = fail
        self.speak = speak
        self.calls: List[list] = []

    async def _call_api(self, messages, tools=None, **kwargs):
        self.calls.append([dict(m) for m in messages])
        if self.fail:
            raise RuntimeError("model unavailable")
        if self.speak and messages[-1]["role"] != "tool":
            return LLMResponse(content="", tool_calls=[
                ToolCall(id="t1", name="text_to_speech", arguments={"text": "Hello by voice"}),
            ])
        user_text = [m for m in messages if m["role"] == "user"][-1]["content"]
        return LLMResponse(content=f"Reply: {user_text}")


class StaticTTSProvider(BaseTTSProvider):

    async def synthesize(self, text, voice_id=None, model_id=None):
        return {"success": True, "audio_base64": base64.b64encode(b"voice-bytes").decode()}

    def is_enabled(self):
        return True


class StaticDescriber(BaseMediaDescriber):

    def __init__(self, description="A cat on a sofa"):
        super().__init__()
        self.description = description
        self.calls = []

    async def describe(self, mime_type, data):
        self.calls.append((mime_type, data))
        return self.description

    def is_enabled(self):
        return True


class Harness:
    """Orchestrator wired to a fake transport with instant pacing"""

    def __init__(self, transport, tmp_path, llm=None, tts=None, describer=None):
        async def no_wait(seconds):
            return None

        async def never(seconds):
            await asyncio.Event().wait()

        self.transport = transport
        self.bus = EventBus()
        self.events = []
        for event_type in EventType:
            self.bus.subscribe(event_type, self.events.append)

        self.llm = llm or EchoLLMClient()
        self.connection = ConnectionManager(
            transport,
            event_bus=self.bus,
            settings=ConnectionSettings(auth_dir=transport.auth_dir),
            sleep=never,
        )
        self.history = ConversationHistoryStore(str(tmp_path / "threads.json"))
        self.orchestrator = ConversationOrchestrator(
            connection=self.connection,
            agent=AgentLoop(self.llm, toolbox=AgentToolbox(tts_provider=tts)),
            history=self.history,
            event_bus=self.bus,
            delivery=DeliveryPipeline(self.connection, sleep=no_wait),
            media_describer=describer,
            accumulator_window=WINDOW,
            startup_timestamp_ms=STARTUP_MS,
        )

    def texts_sent(self, conversation_id=ALICE):
        return [s[2] for s in self.transport.sent if s[0] == "text" and s[1] == conversation_id]

    def events_of(self, event_type):
        return [e for e in self.events if e.type == event_type]


def user_message(text, conversation_id=ALICE, timestamp=NOW, **kwargs):
    return RawInboundMessage(
        conversation_id=conversation_id,
        message_key=f"key-{text}",
        from_me=False,
        timestamp=timestamp,
        text=text,
        push_name="Alice",
        **kwargs,
    )


def operator_message(text, conversation_id=ALICE, timestamp=NOW):
    return RawInboundMessage(
        conversation_id=conversation_id,
        message_key=f"op-{text}",
        from_me=True,
        timestamp=timestamp,
        text=text,
    )


async def settle():
    await asyncio.sleep(WINDOW * 4)


@pytest_asyncio.fixture
async def harness(fake_transport, tmp_path):
    h = Harness(fake_transport, tmp_path)
    await h.orchestrator.start()
    yield h
    await h.orchestrator.shutdown()


# =============================================================================
# User messages
# =============================================================================

class TestUserMessages:

    @pytest.mark.asyncio
    async def test_burst_produces_single_reply(self, harness):
        await harness.orchestrator.handle_inbound([user_message("Hi")])
        await harness.orchestrator.handle_inbound([user_message("Are you there?")])
        await settle()

        assert len(harness.llm.calls) == 1
        assert harness.texts_sent() == ["Reply: Hi\n\nAre you there?"]
        history = harness.history.get_history(ALICE)
        assert [(t.role, t.content) for t in history] == [
            ("user", "Hi\n\nAre you there?"),
            ("assistant", "Reply: Hi\n\nAre you there?"),
        ]
        presence = [s[2] for s in harness.transport.sent if s[0] == "presence"]
        assert presence == [Presence.COMPOSING, Presence.PAUSED]

    @pytest.mark.asyncio
    async def test_prior_history_sent_to_model(self, harness):
        harness.history.add_turn(ALICE, "user", "earlier question")
        harness.history.add_turn(ALICE, "assistant", "earlier answer")
        await harness.orchestrator.handle_inbound([user_message("follow up")])
        await settle()

        messages = harness.llm.calls[0]
        assert [m["content"] for m in messages[1:]] == ["earlier question", "earlier answer", "follow up"]

    @pytest.mark.asyncio
    async def test_message_received_event(self, harness):
        await harness.orchestrator.handle_inbound([user_message("Hi")])
        event = harness.events_of(EventType.MESSAGE_RECEIVED)[0]
        assert event.data == {"sender": ALICE, "name": "Alice", "message": "Hi"}

    @pytest.mark.asyncio
    async def test_ignored_messages(self, harness):
        await harness.orchestrator.handle_inbound([
            user_message("group chat", conversation_id=GROUP),
            user_message("old", timestamp=STARTUP_MS // 1000 - 60),
            user_message("", content_type=ContentType.OTHER),
            user_message("   "),
        ])
        await settle()
        assert harness.llm.calls == []
        assert harness.orchestrator.accumulator.pending_conversations() == []

    @pytest.mark.asyncio
    async def test_agent_failure_sends_fallback(self, fake_transport, tmp_path):
        h = Harness(fake_transport, tmp_path, llm=EchoLLMClient(fail=True))
        await h.orchestrator.start()
        await h.orchestrator.handle_inbound([user_message("Hi")])
        await settle()

        assert h.texts_sent() == [h.orchestrator.fallback_message]
        assert h.history.get_history(ALICE) == []
        await h.orchestrator.shutdown()


# =============================================================================
# Operator control
# =============================================================================

class TestOperatorControl:

    @pytest.mark.asyncio
    async def test_manual_message_pauses_conversation(self, harness):
        await harness.orchestrator.handle_inbound([operator_message("I'll take this one")])
        assert harness.orchestrator.pause.is_paused(ALICE)
        manual = harness.events_of(EventType.MESSAGE_SENT_MANUALLY)[0]
        assert manual.data == {"chat_id": ALICE, "name": "111"}
        assert harness.transport.deleted == []

        await harness.orchestrator.handle_inbound([user_message("Hello?", timestamp=NOW + 1)])
        await harness.orchestrator.handle_inbound([user_message("Hi Bob here", conversation_id=BOB)])
        await settle()

        assert harness.texts_sent(ALICE) == []
        assert harness.texts_sent(BOB) == ["Reply: Hi Bob here"]

    @pytest.mark.asyncio
    async def test_stop_and_play(self, harness):
        await harness.orchestrator.handle_inbound([operator_message("@stop")])
        assert harness.orchestrator.get_pause_status().global_pause
        assert harness.transport.deleted == [(ALICE, "op-@stop")]

        await harness.orchestrator.handle_inbound([user_message("Hi")])
        await settle()
        assert harness.llm.calls == []

        await harness.orchestrator.handle_inbound([operator_message("@play", conversation_id=BOB)])
        assert not harness.orchestrator.get_pause_status().global_pause
        await harness.orchestrator.handle_inbound([user_message("Hi again", timestamp=NOW + 5)])
        await settle()
        assert harness.texts_sent() == ["Reply: Hi again"]

    @pytest.mark.asyncio
    async def test_play_elsewhere_keeps_conversation_pause(self, harness):
        await harness.orchestrator.handle_inbound([operator_message("taking over")])
        await harness.orchestrator.handle_inbound([operator_message("@stop", conversation_id=BOB)])
        for offset, text in enumerate(["one", "two", "three"]):
            await harness.orchestrator.handle_inbound([user_message(text, timestamp=NOW + offset)])
        assert harness.orchestrator.accumulator.buffered_count(ALICE) == 3

        await harness.orchestrator.handle_inbound([operator_message("@play", conversation_id=BOB)])
        assert not harness.orchestrator.get_pause_status().global_pause
        await settle()

        assert harness.orchestrator.pause.is_paused(ALICE)
        assert harness.llm.calls == []
        assert harness.texts_sent(ALICE) == []
        assert harness.history.get_history(ALICE) == []

    @pytest.mark.asyncio
    async def test_continue_sets_cutoff(self, harness):
        await harness.orchestrator.handle_inbound([operator_message("taking over")])
        await harness.orchestrator.handle_inbound([operator_message("@continue", timestamp=NOW + 10)])

        pause = harness.orchestrator.pause
        assert not pause.is_paused(ALICE)
        assert pause.resume_cutoff(ALICE) == (NOW + 10) * 1000
        assert harness.transport.deleted == [(ALICE, "op-@continue")]

    @pytest.mark.asyncio
    async def test_cutoff_boundary(self, harness):
        await harness.orchestrator.pause.resume_conversation(ALICE, cutoff=1000)

        await harness.orchestrator.process_turn(AccumulatedTurn(ALICE, "Alice", "stale", 1000, 1))
        assert harness.llm.calls == []

        await harness.orchestrator.process_turn(AccumulatedTurn(ALICE, "Alice", "fresh", 1001, 1))
        assert harness.texts_sent() == ["Reply: fresh"]

    @pytest.mark.asyncio
    async def test_clean_clears_history(self, harness):
        harness.history.add_turn(ALICE, "user", "remember me")
        harness.history.add_turn(BOB, "user", "me too")
        await harness.orchestrator.handle_inbound([operator_message("@clean")])

        assert harness.history.get_history(ALICE) == []
        assert len(harness.history.get_history(BOB)) == 1
        assert harness.transport.deleted == [(ALICE, "op-@clean")]

    @pytest.mark.asyncio
    async def test_group_operator_messages_ignored(self, harness):
        await harness.orchestrator.handle_inbound([operator_message("@stop", conversation_id=GROUP)])
        assert not harness.orchestrator.get_pause_status().global_pause


# =============================================================================
# Echoes of our own replies
# =============================================================================

class TestOwnReplyEchoes:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("mode", ["after_send", "before_return", "appended"])
    async def test_own_reply_does_not_take_over(self, echoing_transport_factory, tmp_path, mode):
        transport = echoing_transport_factory(mode)
        h = Harness(transport, tmp_path)
        await h.orchestrator.start()

        await h.orchestrator.handle_inbound([user_message("Hi")])
        await settle()
        await asyncio.gather(*transport.echo_tasks)

        assert not h.orchestrator.pause.is_paused(ALICE)
        assert h.events_of(EventType.MESSAGE_SENT_MANUALLY) == []

        await h.orchestrator.handle_inbound([user_message("Still there?", timestamp=NOW + 60)])
        await settle()
        await asyncio.gather(*transport.echo_tasks)

        assert len(h.llm.calls) == 2
        assert h.texts_sent() == ["Reply: Hi", "Reply: Still there?"]
        assert not h.orchestrator.pause.is_paused(ALICE)
        await h.orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_operator_message_after_reply_still_takes_over(self, echoing_transport_factory, tmp_path):
        transport = echoing_transport_factory("after_send")
        h = Harness(transport, tmp_path)
        await h.orchestrator.start()

        await h.orchestrator.handle_inbound([user_message("Hi")])
        await settle()
        await asyncio.gather(*transport.echo_tasks)

        await h.orchestrator.handle_inbound([operator_message("Let me handle this", timestamp=NOW + 30)])
        assert h.orchestrator.pause.is_paused(ALICE)
        await h.orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_non_live_user_message_ignored(self, harness):
        await harness.orchestrator.handle_inbound([user_message("synced from history", live=False)])
        await settle()
        assert harness.llm.calls == []


# =============================================================================
# Media and audio
# =============================================================================

class TestMedia:

    @pytest.mark.asyncio
    async def test_image_described(self, fake_transport, tmp_path):
        describer = StaticDescriber()
        h = Harness(fake_transport, tmp_path, describer=describer)
        await h.orchestrator.start()
        fake_transport.media = b"jpeg-bytes"

        await h.orchestrator.handle_inbound([user_message(
            "", content_type=ContentType.IMAGE, mime_type="image/jpeg", caption="look",
        )])
        await settle()

        assert describer.calls == [("image/jpeg", b"jpeg-bytes")]
        model_input = h.llm.calls[0][-1]["content"]
        assert "The user sent a media message of type image." in model_input
        assert "MIME type: image/jpeg" in model_input
        assert "Caption provided by the user: look" in model_input
        assert "A cat on a sofa" in model_input
        assert "text_to_speech" not in model_input
        await h.orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_voice_note_asks_for_audio_reply(self, fake_transport, tmp_path):
        h = Harness(fake_transport, tmp_path, describer=StaticDescriber("Hello, what time is it?"))
        await h.orchestrator.start()
        fake_transport.media = b"ogg-bytes"

        await h.orchestrator.handle_inbound([user_message(
            "", content_type=ContentType.AUDIO, mime_type="audio/ogg; codecs=opus", is_voice_note=True,
        )])
        await settle()

        model_input = h.llm.calls[0][-1]["content"]
        assert model_input.startswith("[NOTE: the customer sent AUDIO")
        assert "type voice message" in model_input
        assert "MIME type: audio/ogg" in model_input
        await h.orchestrator.shutdown()

    @pytest.mark.asyncio
    async def test_undownloadable_media_skipped(self, harness):
        harness.transport.media = None
        await harness.orchestrator.handle_inbound([user_message("", content_type=ContentType.IMAGE)])
        await settle()
        assert harness.llm.calls == []

    @pytest.mark.asyncio
    async def test_audio_reply_delivered_as_voice_note(self, fake_transport, tmp_path):
        h = Harness(fake_transport, tmp_path, llm=EchoLLMClient(speak=True), tts=StaticTTSProvider())
        await h.orchestrator.start()
        await h.orchestrator.handle_inbound([user_message("Talk to me")])
        await settle()

        audio = [s for s in fake_transport.sent if s[0] == "audio"]
        assert audio == [("audio", ALICE, b"voice-bytes")]
        assert h.texts_sent() == []
        assert h.history.get_history(ALICE)[-1].content == "[Audio sent]"
        await h.orchestrator.shutdown()


# =============================================================================
# Dashboard surface
# =============================================================================

class TestDashboardSurface:

    @pytest.mark.asyncio
    async def test_toggle_and_resume(self, harness):
        status = await harness.orchestrator.toggle_global_pause(True)
        assert status.global_pause
        status = await harness.orchestrator.toggle_global_pause(False)
        assert not status.global_pause

        await harness.orchestrator.handle_inbound([operator_message("manual")])
        assert await harness.orchestrator.resume_conversation(ALICE) is True
        assert harness.orchestrator.get_pause_status().paused_conversations == []

    @pytest.mark.asyncio
    async def test_ready_and_stats(self, harness):
        assert harness.orchestrator.is_ready()
        harness.history.add_turn(ALICE, "user", "hi")
        assert harness.orchestrator.history_stats().total_turns == 1

    @pytest.mark.asyncio
    async def test_logout(self, harness):
        await harness.orchestrator.logout()
        assert harness.transport.logged_out
        assert not harness.orchestrator.is_ready()
