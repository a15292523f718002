"""
Base TTS Provider - Abstract base class for text-to-speech providers
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class BaseTTSProvider(ABC):
    """
    Abstract base class for text-to-speech providers.

    All TTS providers must implement:
    - synthesize(text, voice_id, model_id) - Generate audio
    - is_enabled() - Check if provider is configured and ready
    """

    def __init__(self):
        self.provider_name = self.__class__.__name__

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice_id: Optional[str] = None,
        model_id: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Generate speech for ``text``.

        Returns:
            {"success": True, "audio_base64": "..."} on success,
            {"success": False, "error": "..."} otherwise
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        """
        Check if provider is configured and enabled.

        Returns:
            True if provider can synthesize audio, False otherwise
        """
        pass
