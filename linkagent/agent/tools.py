"""
linkagent Agent Tools - tagged tool results and the toolbox that runs them

Every tool call resolves to one of four result types. The loop inspects
the type, not a dict shape, to apply the email dedupe and audio override
rules, and each type renders the compact JSON the model gets back.
"""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Union

from ..constants import (
    AUDIO_ACK_MESSAGE,
    EMAIL_ALREADY_SENT_REASON,
    EMAIL_TOOL_NAME,
    EMAIL_TOOL_SCHEMA,
    TTS_TOOL_NAME,
    TTS_TOOL_SCHEMA,
)
from ..providers.email.base import BaseEmailProvider
from ..providers.tts.base import BaseTTSProvider

logger = logging.getLogger(__name__)


@dataclass
class SpeechResult:
    """Outcome of text_to_speech."""
    success: bool
    audio_base64: Optional[str] = None
    script: Optional[str] = None
    error: Optional[str] = None

    @property
    def has_audio(self) -> bool:
        return self.success and bool(self.audio_base64)

    def to_model_content(self) -> str:
        # Audio never goes back to the model
        if self.has_audio:
            return json.dumps({"success": True, "message": AUDIO_ACK_MESSAGE})
        return json.dumps({"success": False, "error": self.error or "No audio returned"})


@dataclass
class EmailResult:
    """Outcome of send_email."""
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None

    def to_model_content(self) -> str:
        if self.success:
            return json.dumps({"success": True, "id": self.id})
        return json.dumps({"success": False, "error": self.error})


@dataclass
class EmailSkippedResult:
    """Synthetic result for a repeated send_email within one run."""
    reason: str = EMAIL_ALREADY_SENT_REASON

    success = True

    def to_model_content(self) -> str:
        return json.dumps({"success": True, "skipped": True, "reason": self.reason})


@dataclass
class ToolFailure:
    """Any tool error, reported back to the model instead of raised."""
    error: str

    success = False

    def to_model_content(self) -> str:
        return json.dumps({"success": False, "error": self.error})


ToolResult = Union[SpeechResult, EmailResult, EmailSkippedResult, ToolFailure]


class AgentToolbox:
    """
    Declares and executes the agent's tools.

    Tools whose provider is not configured are not declared to the model.

    Example:
        toolbox = AgentToolbox(tts_provider=ElevenLabsProvider(api_key="..."))
        result = await toolbox.execute("text_to_speech", {"text": "Hi!"})
    """

    def __init__(
        self,
        tts_provider: Optional[BaseTTSProvider] = None,
        email_provider: Optional[BaseEmailProvider] = None,
    ):
        self.tts_provider = tts_provider
        self.email_provider = email_provider

    def tool_schemas(self) -> List[Dict[str, Any]]:
        schemas = []
        if self.tts_provider is not None:
            schemas.append(TTS_TOOL_SCHEMA)
        if self.email_provider is not None:
            schemas.append(EMAIL_TOOL_SCHEMA)
        return schemas

    async def execute(self, name: str, arguments: Dict[str, Any]) -> ToolResult:
        """Run one tool. Errors become ToolFailure, never exceptions."""
        logger.info(f"[Agent] Executing tool: {name}")
        try:
            if name == TTS_TOOL_NAME:
                return await self._text_to_speech(arguments)
            if name == EMAIL_TOOL_NAME:
                return await self._send_email(arguments)
            return ToolFailure(error=f"Unknown tool: {name}")
        except Exception as e:
            logger.error(f"[Agent] Error executing tool {name}: {e}", exc_info=True)
            return ToolFailure(error=str(e))

    async def _text_to_speech(self, arguments: Dict[str, Any]) -> ToolResult:
        if self.tts_provider is None:
            return ToolFailure(error="Text-to-speech is not configured")
        text = arguments.get("text")
        if not isinstance(text, str) or not text.strip():
            return ToolFailure(error="'text' is required")

        result = await self.tts_provider.synthesize(
            text,
            voice_id=arguments.get("voice_id"),
            model_id=arguments.get("model_id"),
        )
        return SpeechResult(
            success=bool(result.get("success")),
            audio_base64=result.get("audio_base64"),
            script=text,
            error=result.get("error"),
        )

    async def _send_email(self, arguments: Dict[str, Any]) -> ToolResult:
        if self.email_provider is None:
            return ToolFailure(error="Email is not configured")
        missing = [k for k in ("to", "subject", "html") if not isinstance(arguments.get(k), str)]
        if missing:
            return ToolFailure(error=f"Missing required fields: {', '.join(missing)}")

        result = await self.email_provider.send_email(
            to=arguments["to"],
            subject=arguments["subject"],
            html=arguments["html"],
            sender=arguments.get("from"),
        )
        return EmailResult(
            success=bool(result.get("success")),
            id=result.get("id"),
            error=result.get("error"),
        )
