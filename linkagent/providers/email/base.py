"""
Base Email Provider - Abstract interface for outbound email providers
"""

import logging
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


class BaseEmailProvider(ABC):
    """
    Abstract base class for outbound email providers.

    All email providers must implement:
    - send_email(to, subject, html, sender) - Send one message
    - is_enabled() - Check if provider is configured and ready
    """

    def __init__(self):
        self.provider_name = self.__class__.__name__

    @abstractmethod
    async def send_email(
        self,
        to: str,
        subject: str,
        html: str,
        sender: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Send an HTML email.

        Returns:
            {"success": True, "id": "<provider id>"} on success,
            {"success": False, "error": "..."} otherwise
        """
        pass

    @abstractmethod
    def is_enabled(self) -> bool:
        pass
