"""Text-to-speech providers"""

from .base import BaseTTSProvider
from .elevenlabs import ElevenLabsProvider

__all__ = ["BaseTTSProvider", "ElevenLabsProvider"]
