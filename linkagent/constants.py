"""
Shared constants for linkagent.

Centralizes values needed by the agent loop, the history store and the
delivery pipeline to avoid circular imports and duplication.
"""

from typing import Any, Dict, FrozenSet

# ── Tool names ──

TTS_TOOL_NAME = "text_to_speech"
EMAIL_TOOL_NAME = "send_email"

TTS_TOOL_SCHEMA: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": TTS_TOOL_NAME,
        "description": (
            "Generate a spoken audio reply from text. Use it to answer with a "
            "natural, human-sounding voice note."
        ),
        "parameters": {
            "type": "object",
            "properties": {
                "text": {
                    "type": "string",
                    "description": "Text to speak. Prefer short, natural sentences.",
                },
                "voice_id": {
                    "type": "string",
                    "description": "Voice ID (optional, a default is configured)",
                },
                "model_id": {
                    "type": "string",
                    "description": "Speech model ID (optional, a default is configured)",
                },
            },
            "required": ["text"],
        },
    },
}

EMAIL_TOOL_SCHEMA: Dict[str, Any] = {
    "type": "function",
    "function": {
        "name": EMAIL_TOOL_NAME,
        "description": "Send an email, e.g. to escalate to a technician or to support.",
        "parameters": {
            "type": "object",
            "properties": {
                "to": {"type": "string", "description": "Recipient email address"},
                "subject": {"type": "string", "description": "Email subject"},
                "html": {"type": "string", "description": "HTML body of the email"},
                "from": {"type": "string", "description": "Sender address (optional)"},
            },
            "required": ["to", "subject", "html"],
        },
    },
}

# ── Tool result messages fed back to the model ──

AUDIO_ACK_MESSAGE = "Audio generated successfully"
EMAIL_ALREADY_SENT_REASON = "Email already sent in this query"

# ── Deliverable payloads ──

PART_TEXT = "text"
PART_AUDIO = "audio"

AUDIO_FILENAME = "voice.ogg"
VOICE_NOTE_MIMETYPE = "audio/ogg; codecs=opus"

# History placeholders (never persist raw audio)
AUDIO_SENT_PLACEHOLDER = "[Audio sent]"
AUDIO_CAPTION_PREFIX = "[Audio]: "
OMITTED_BLOB = "[omitted]"
ASSISTANT_UNAVAILABLE_PLACEHOLDER = "[Assistant reply unavailable]"

# ── Conversations ──

USER_ROLE = "user"
ASSISTANT_ROLE = "assistant"
VALID_TURN_ROLES: FrozenSet[str] = frozenset({USER_ROLE, ASSISTANT_ROLE})

GROUP_ID_SUFFIX = "@g.us"

DEFAULT_FALLBACK_MESSAGE = (
    "Hi! I'm having a little trouble right now, I'll get back to you shortly."
)

MANUAL_OVERRIDE_REASON = "manual override"
LOGOUT_REASON = "User requested logout"


def is_group_conversation(conversation_id: str) -> bool:
    """Group channels are never handled by the agent."""
    return conversation_id.endswith(GROUP_ID_SUFFIX)
