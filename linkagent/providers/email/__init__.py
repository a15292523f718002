"""Outbound email providers"""

from .base import BaseEmailProvider
from .resend import ResendProvider

__all__ = ["BaseEmailProvider", "ResendProvider"]
