"""
linkagent Payload - Outbound message parts and blob-free summaries

A reply is an ordered list of typed parts (text or audio). The model may
answer with plain text or with a JSON document of the form
``{"messages": [{"type": "text", "text": "..."}, ...]}``; both shapes are
normalized into a DeliverablePayload here.
"""

import json
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from .constants import (
    AUDIO_CAPTION_PREFIX,
    AUDIO_FILENAME,
    AUDIO_SENT_PLACEHOLDER,
    OMITTED_BLOB,
    PART_AUDIO,
    PART_TEXT,
)

_AUDIO_BLOB_PATTERN = re.compile(r'("audio_base64"\s*:\s*")([^"]+)"')


@dataclass
class MessagePart:
    """One outbound message: a text bubble or a voice note."""
    type: str
    text: Optional[str] = None
    audio_base64: Optional[str] = None
    filename: Optional[str] = None
    caption: Optional[str] = None

    @classmethod
    def text_part(cls, text: str) -> "MessagePart":
        return cls(type=PART_TEXT, text=text)

    @classmethod
    def audio_part(cls, audio_base64: str, filename: str = AUDIO_FILENAME) -> "MessagePart":
        return cls(type=PART_AUDIO, audio_base64=audio_base64, filename=filename)

    @property
    def is_deliverable(self) -> bool:
        """Text parts need text, audio parts need audio data."""
        if self.type == PART_TEXT:
            return bool(self.text)
        if self.type == PART_AUDIO:
            return bool(self.audio_base64)
        return False

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"type": self.type}
        if self.text is not None:
            data["text"] = self.text
        if self.audio_base64 is not None:
            data["audio_base64"] = self.audio_base64
        if self.filename is not None:
            data["filename"] = self.filename
        if self.caption is not None:
            data["caption"] = self.caption
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MessagePart":
        return cls(
            type=str(data.get("type", "")),
            text=data.get("text") if isinstance(data.get("text"), str) else None,
            audio_base64=data.get("audio_base64") if isinstance(data.get("audio_base64"), str) else None,
            filename=data.get("filename"),
            caption=data.get("caption") if isinstance(data.get("caption"), str) else None,
        )


@dataclass
class DeliverablePayload:
    """Ordered sequence of message parts for one reply."""
    parts: List[MessagePart] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not any(part.is_deliverable for part in self.parts)

    def to_dict(self) -> Dict[str, Any]:
        return {"messages": [part.to_dict() for part in self.parts]}

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_content(cls, content: Optional[str]) -> "DeliverablePayload":
        """Parse model output into parts.

        Structured ``{"messages": [...]}`` JSON keeps its parts; anything
        else becomes a single text part.
        """
        if not content or not content.strip():
            return cls()
        parsed = _parse_messages_document(content)
        if parsed is not None:
            return cls(parts=[MessagePart.from_dict(m) for m in parsed if isinstance(m, dict)])
        return cls(parts=[MessagePart.text_part(content)])


def _parse_messages_document(content: str) -> Optional[List[Any]]:
    """Return the ``messages`` list of a structured payload, or None."""
    try:
        parsed = json.loads(content.strip())
    except (json.JSONDecodeError, TypeError):
        return None
    if isinstance(parsed, dict) and isinstance(parsed.get("messages"), list):
        return parsed["messages"]
    return None


def summarize_parts(messages: List[Any]) -> Optional[str]:
    """Compact text for a list of message dicts, without audio data.

    Returns None when no part yields any text.
    """
    lines = []
    for message in messages:
        if not isinstance(message, dict):
            continue
        if message.get("type") == PART_TEXT and isinstance(message.get("text"), str):
            text = message["text"].strip()
            if text:
                lines.append(text)
        elif message.get("type") == PART_AUDIO:
            caption = message.get("caption")
            if isinstance(caption, str) and caption.strip():
                lines.append(f"{AUDIO_CAPTION_PREFIX}{caption.strip()}")
            else:
                lines.append(AUDIO_SENT_PLACEHOLDER)
    return "\n".join(lines) if lines else None


def build_history_summary(content: Optional[str], audio_script: Optional[str] = None) -> str:
    """Blob-free representation of a reply for the history store."""
    if audio_script and audio_script.strip():
        return AUDIO_SENT_PLACEHOLDER

    trimmed = (content or "").strip()
    if not trimmed:
        return ""

    messages = _parse_messages_document(trimmed)
    if messages is not None:
        summary = summarize_parts(messages)
        if summary:
            return summary

    return trimmed


def strip_audio_blobs(content: str) -> str:
    """Replace inline ``audio_base64`` values with a placeholder."""
    return _AUDIO_BLOB_PATTERN.sub(rf'\1{OMITTED_BLOB}"', content)
