"""External service providers: text-to-speech, email and media description"""

from .factory import ProviderFactory

__all__ = ["ProviderFactory"]
