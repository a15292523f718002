"""
linkagent Agent Loop - bounded tool-calling loop over the model

Each run:
1. Validates and builds the message list from prior turns + the new user text
2. Calls the model up to ``max_rounds`` times, executing requested tools
3. Resolves the final deliverable (audio override wins over model text)
4. Derives a blob-free history summary
"""

import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Union

from ..config.profile import AgentProfileStore
from ..constants import EMAIL_TOOL_NAME, USER_ROLE, VALID_TURN_ROLES
from ..history.models import Turn
from ..llm.base import BaseLLMClient, LLMResponse
from ..payload import DeliverablePayload, MessagePart, build_history_summary
from .errors import InvalidInputError, MaxIterationsExceededError
from .models import AgentLoopConfig, AgentTurnResult, ToolCallRecord
from .prompts import DEFAULT_SYSTEM_PROMPT
from .tools import AgentToolbox, EmailResult, EmailSkippedResult, SpeechResult, ToolResult

logger = logging.getLogger(__name__)

PriorTurn = Union[Turn, Dict[str, Any]]


class AgentLoop:
    """
    Drives the model until it answers without tool calls.

    Example:
        loop = AgentLoop(llm_client=client, toolbox=AgentToolbox(tts_provider=tts))
        result = await loop.run(history, "Can you send me a voice note?")
        result.payload  # DeliverablePayload
    """

    def __init__(
        self,
        llm_client: BaseLLMClient,
        toolbox: Optional[AgentToolbox] = None,
        config: Optional[AgentLoopConfig] = None,
        profile_store: Optional[AgentProfileStore] = None,
    ):
        self.llm_client = llm_client
        self.toolbox = toolbox or AgentToolbox()
        self.config = config or AgentLoopConfig()
        self.profile_store = profile_store

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    async def run(self, prior_turns: Sequence[PriorTurn], new_user_text: str) -> AgentTurnResult:
        """Produce the final deliverable for one user turn.

        Raises:
            InvalidInputError: empty message list or an unknown role
            MaxIterationsExceededError: no final answer within max_rounds
        """
        conversation = self._build_conversation(prior_turns, new_user_text)
        system_prompt, call_config = self._resolve_call_settings()

        messages: List[Dict[str, Any]] = [{"role": "system", "content": system_prompt}]
        messages.extend(conversation)
        tool_schemas = self.toolbox.tool_schemas()

        email_sent = False
        pending_audio: Optional[str] = None
        pending_script: Optional[str] = None
        records: List[ToolCallRecord] = []
        final_content: Optional[str] = None
        rounds = 0

        logger.debug(f"[Agent] Starting run with {len(conversation)} message(s)")

        for round_number in range(1, self.config.max_rounds + 1):
            rounds = round_number
            response = await self.llm_client.chat_completion(
                messages,
                tools=tool_schemas or None,
                config=call_config,
            )

            if not response.has_tool_calls:
                final_content = response.content or ""
                break

            logger.info(f"[Agent] Round {round_number}: model requested {len(response.tool_calls)} tool(s)")
            messages.append(self._assistant_message_from_response(response))

            for tool_call in response.tool_calls:
                if tool_call.name == EMAIL_TOOL_NAME and email_sent:
                    logger.info("[Agent] send_email already executed in this run, skipping duplicate call")
                    result: ToolResult = EmailSkippedResult()
                else:
                    result = await self.toolbox.execute(tool_call.name, tool_call.arguments or {})
                    if isinstance(result, EmailResult) and result.success:
                        email_sent = True

                if isinstance(result, SpeechResult) and result.has_audio:
                    pending_audio = result.audio_base64
                    pending_script = result.script
                    logger.info(f"[Agent] Audio captured for final response ({len(pending_audio)} chars)")

                records.append(ToolCallRecord(
                    name=tool_call.name,
                    tool_call_id=tool_call.id,
                    round=round_number,
                    success=result.success,
                    skipped=isinstance(result, EmailSkippedResult),
                ))
                messages.append(self._build_tool_result_message(tool_call.id, result.to_model_content()))

        if final_content is None:
            raise MaxIterationsExceededError(self.config.max_rounds)

        if pending_audio:
            logger.info("[Agent] Overriding response with audio payload")
            payload = DeliverablePayload(parts=[MessagePart.audio_part(pending_audio)])
            final_content = payload.to_json()
            summary = build_history_summary(final_content, pending_script)
        else:
            payload = DeliverablePayload.from_content(final_content)
            summary = build_history_summary(final_content)

        return AgentTurnResult(
            payload=payload,
            history_summary=summary,
            content=final_content,
            audio_override=pending_audio is not None,
            rounds=rounds,
            tool_calls=records,
        )

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _build_conversation(prior_turns: Sequence[PriorTurn], new_user_text: str) -> List[Dict[str, str]]:
        """Validate turns and convert them to chat messages."""
        entries = [t.to_message() if isinstance(t, Turn) else t for t in prior_turns]
        entries.append({"role": USER_ROLE, "content": new_user_text})

        conversation = []
        for entry in entries:
            if not isinstance(entry, dict):
                raise InvalidInputError(f"Invalid turn: {entry!r}")
            role = entry.get("role")
            if role not in VALID_TURN_ROLES:
                raise InvalidInputError(f"Invalid role: {role!r}")
            content = entry.get("content")
            if not isinstance(content, str) or not content.strip():
                continue
            conversation.append({"role": role, "content": content})

        if not conversation:
            raise InvalidInputError("No valid messages to send to the model")
        return conversation

    def _resolve_call_settings(self):
        """System prompt and per-call overrides, profile file first."""
        system_prompt = self.config.system_prompt or DEFAULT_SYSTEM_PROMPT
        call_config: Dict[str, Any] = {}
        if self.config.max_tokens:
            call_config["max_tokens"] = self.config.max_tokens
        if self.config.model:
            call_config["model"] = self.config.model

        if self.profile_store is not None:
            profile = self.profile_store.get()
            if profile.system_prompt:
                system_prompt = profile.system_prompt
            if profile.max_tokens:
                call_config["max_tokens"] = profile.max_tokens
            if profile.model:
                call_config["model"] = profile.model
        return system_prompt, call_config

    @staticmethod
    def _build_tool_result_message(tool_call_id: str, content: str) -> Dict[str, Any]:
        return {
            "role": "tool",
            "tool_call_id": tool_call_id,
            "content": content,
        }

    @staticmethod
    def _assistant_message_from_response(response: LLMResponse) -> Dict[str, Any]:
        """Convert LLMResponse to dict for the messages list."""
        return {
            "role": "assistant",
            "content": response.content or None,
            "tool_calls": [
                {
                    "id": tc.id,
                    "type": "function",
                    "function": {
                        "name": tc.name,
                        "arguments": json.dumps(tc.arguments) if isinstance(tc.arguments, dict) else tc.arguments,
                    },
                }
                for tc in response.tool_calls or []
            ],
        }
