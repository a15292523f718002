"""
Provider Factory - Creates TTS, email and media providers from configuration
"""

import logging
from typing import Optional

from ..config import ProviderSettings
from .email.base import BaseEmailProvider
from .media.base import BaseMediaDescriber
from .tts.base import BaseTTSProvider

logger = logging.getLogger(__name__)


class ProviderFactory:
    """
    Factory for external providers.

    Supported providers:
    - tts: elevenlabs
    - email: resend
    - media: gemini
    """

    @staticmethod
    def create_tts_provider(settings: ProviderSettings) -> Optional[BaseTTSProvider]:
        if not settings.enabled:
            return None
        options = settings.options
        provider_type = settings.provider.lower()

        if provider_type == "elevenlabs":
            from .tts.elevenlabs import ElevenLabsProvider
            return ElevenLabsProvider(
                api_key=options.get("api_key", ""),
                voice_id=options.get("voice_id", ""),
                model_id=options.get("model_id", ""),
                output_format=options.get("output_format", ""),
            )

        logger.error(f"Unknown TTS provider type: {provider_type}")
        return None

    @staticmethod
    def create_email_provider(settings: ProviderSettings) -> Optional[BaseEmailProvider]:
        if not settings.enabled:
            return None
        options = settings.options
        provider_type = settings.provider.lower()

        if provider_type == "resend":
            from .email.resend import ResendProvider
            return ResendProvider(
                api_key=options.get("api_key", ""),
                from_email=options.get("from_email", ""),
            )

        logger.error(f"Unknown email provider type: {provider_type}")
        return None

    @staticmethod
    def create_media_describer(settings: ProviderSettings) -> Optional[BaseMediaDescriber]:
        if not settings.enabled:
            return None
        options = settings.options
        provider_type = settings.provider.lower()

        if provider_type == "gemini":
            from .media.gemini import GeminiMediaDescriber
            return GeminiMediaDescriber(
                api_key=options.get("api_key", ""),
                model=options.get("model", ""),
            )

        logger.error(f"Unknown media provider type: {provider_type}")
        return None
