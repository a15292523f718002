"""Media description providers"""

from .base import BaseMediaDescriber, media_label, normalize_mime_type
from .gemini import GeminiMediaDescriber, SUPPORTED_MIME_TYPES

__all__ = [
    "BaseMediaDescriber",
    "media_label",
    "normalize_mime_type",
    "GeminiMediaDescriber",
    "SUPPORTED_MIME_TYPES",
]
