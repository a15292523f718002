"""
Gemini Media Describer - image, video and audio description via google-genai
"""

import logging
from typing import FrozenSet, Optional

from .base import BaseMediaDescriber, normalize_mime_type

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"

SUPPORTED_MIME_TYPES: FrozenSet[str] = frozenset({
    "image/png", "image/jpeg", "image/webp", "image/heic", "image/heif",
    "video/mp4", "video/mpeg", "video/mov", "video/avi", "video/x-flv",
    "video/mpg", "video/webm", "video/wmv", "video/3gpp",
    "audio/mpeg", "audio/mp3", "audio/wav", "audio/aac", "audio/ogg",
    "audio/flac", "audio/amr", "audio/aiff",
})

DESCRIPTION_PROMPT = (
    "You are the eyes and ears of an AI assistant. Analyze the attached file and "
    "write a detailed textual description of its content.\n"
    "- For an image, describe what you see in detail (objects, people, setting, "
    "colors, visible text).\n"
    "- For audio, give a clean transcription of any speech. Describe non-speech "
    "sounds in parentheses, such as (music) or (applause).\n"
    "- For video, describe scenes and visual actions and transcribe any spoken words.\n"
    "The description must let another AI understand the full context of the file "
    "without accessing it directly."
)


class GeminiMediaDescriber(BaseMediaDescriber):
    """Google Gemini media describer using the google-genai SDK."""

    def __init__(self, api_key: str, model: str = DEFAULT_MODEL):
        super().__init__()
        self.api_key = api_key
        self.model = model or DEFAULT_MODEL
        self._client = None

        if self.is_enabled():
            logger.info(f"Gemini media describer initialized (model={self.model})")
        else:
            logger.warning("Gemini media describer disabled - missing api_key, media will not be described")

    def is_enabled(self) -> bool:
        return bool(self.api_key)

    def _get_client(self):
        """Lazy-initialize the google-genai client."""
        if self._client is None:
            from google import genai
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def describe(self, mime_type: Optional[str], data: bytes) -> Optional[str]:
        if not self.is_enabled():
            return None

        normalized = normalize_mime_type(mime_type)
        if not normalized or normalized not in SUPPORTED_MIME_TYPES:
            logger.warning(f"[Gemini] MIME type {mime_type!r} not supported")
            return None

        try:
            from google.genai import types

            logger.info(f"[Gemini] Describing {normalized} ({len(data)} bytes)")
            client = self._get_client()
            response = await client.aio.models.generate_content(
                model=self.model,
                contents=[
                    DESCRIPTION_PROMPT,
                    types.Part.from_bytes(data=data, mime_type=normalized),
                ],
            )
            text = (response.text or "").strip()
            return text or None

        except Exception as e:
            logger.error(f"[Gemini] Error describing media: {e}", exc_info=True)
            return None
