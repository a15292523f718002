"""
Base Media Describer - Abstract interface for media description services

Inbound images, videos and voice notes are turned into text before they
reach the agent, so the model only ever sees a description.
"""

import logging
from abc import ABC, abstractmethod
from typing import Optional

logger = logging.getLogger(__name__)

_LABELS_BY_KIND = {
    "image": "image",
    "video": "video",
    "audio": "audio file",
    "ptt": "voice message",
}


def normalize_mime_type(mime_type: Optional[str]) -> Optional[str]:
    """Strip parameters and lowercase: ``audio/ogg; codecs=opus`` -> ``audio/ogg``."""
    if not mime_type or not isinstance(mime_type, str):
        return None
    return mime_type.split(";")[0].strip().lower() or None


def media_label(kind: Optional[str], mime_type: Optional[str] = None) -> str:
    """Human readable label for a media message."""
    if kind in _LABELS_BY_KIND:
        return _LABELS_BY_KIND[kind]
    mime_type = mime_type or ""
    if mime_type.startswith("image/"):
        return "image"
    if mime_type.startswith("video/"):
        return "video"
    if mime_type.startswith("audio/"):
        return "audio file"
    return "media"


class BaseMediaDescriber(ABC):
    """
    Abstract base class for media description services.

    All describers must implement:
    - describe(mime_type, data) - Return a description or None
    - is_enabled() - Check if the describer is configured
    """

    def __init__(self):
        self.provider_name = self.__class__.__name__

    @abstractmethod
    async def describe(self, mime_type: Optional[str], data: bytes) -> Optional[str]:
        """
        Describe a media payload in natural language.

        Returns:
            The description, or None if the type is unsupported or the
            service is unavailable
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        pass
