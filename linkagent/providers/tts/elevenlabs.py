"""
ElevenLabs TTS Provider - Speech synthesis via the ElevenLabs REST API
"""

import base64
import logging
from typing import Any, Dict, Optional

import httpx

from .base import BaseTTSProvider

logger = logging.getLogger(__name__)

API_BASE_URL = "https://api.elevenlabs.io/v1"
DEFAULT_VOICE_ID = "zHg66WqoRrUdExrjJ7d5"
DEFAULT_MODEL_ID = "eleven_v3"
DEFAULT_OUTPUT_FORMAT = "mp3_22050_32"

DEFAULT_VOICE_SETTINGS: Dict[str, Any] = {
    "stability": 0.5,
    "similarity_boost": 0.75,
    "style": 0.0,
    "use_speaker_boost": True,
}


class ElevenLabsProvider(BaseTTSProvider):
    """
    ElevenLabs text-to-speech provider.

    Requires configuration:
    - api_key: ElevenLabs API key

    Optional:
    - voice_id, model_id, output_format: defaults for every request
    """

    def __init__(
        self,
        api_key: str,
        voice_id: str = DEFAULT_VOICE_ID,
        model_id: str = DEFAULT_MODEL_ID,
        output_format: str = DEFAULT_OUTPUT_FORMAT,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        super().__init__()
        self.api_key = api_key
        self.voice_id = voice_id or DEFAULT_VOICE_ID
        self.model_id = model_id or DEFAULT_MODEL_ID
        self.output_format = output_format or DEFAULT_OUTPUT_FORMAT
        self._transport = transport

        if self.is_enabled():
            logger.info(f"ElevenLabs TTS Provider initialized (voice: {self.voice_id}, model: {self.model_id})")
        else:
            logger.warning("ElevenLabs TTS Provider disabled - missing api_key")

    def is_enabled(self) -> bool:
        return bool(self.api_key)

    async def synthesize(
        self,
        text: str,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """Generate audio and return it base64-encoded."""
        if not self.is_enabled():
            return {"success": False, "error": "ElevenLabs API key not configured"}
        if not isinstance(text, str) or not text.strip():
            return {"success": False, "error": "text is required"}

        voice = voice_id or self.voice_id
        logger.info(f"[ElevenLabs] Generating audio ({len(text)} chars, voice {voice})")

        try:
            async with httpx.AsyncClient(transport=self._transport) as client:
                response = await client.post(
                    f"{API_BASE_URL}/text-to-speech/{voice}",
                    headers={
                        "xi-api-key": self.api_key,
                        "Content-Type": "application/json",
                    },
                    json={
                        "text": text,
                        "model_id": model_id or self.model_id,
                        "output_format": self.output_format,
                        "voice_settings": DEFAULT_VOICE_SETTINGS,
                    },
                    timeout=30.0,
                )

                if response.status_code != 200:
                    logger.error(f"[ElevenLabs] API error: {response.status_code} - {response.text}")
                    return {"success": False, "error": f"ElevenLabs API error: {response.status_code}"}

                audio = response.content
                logger.info(f"[ElevenLabs] Audio generated: {len(audio)} bytes")
                return {
                    "success": True,
                    "audio_base64": base64.b64encode(audio).decode("ascii"),
                }

        except Exception as e:
            logger.error(f"[ElevenLabs] Error generating audio: {e}", exc_info=True)
            return {"success": False, "error": str(e)}
