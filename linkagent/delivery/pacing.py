"""Human-plausible delays for paced delivery. All values in milliseconds."""

import random
from dataclasses import dataclass, fields
from typing import Any, Dict, Optional, Tuple


@dataclass
class HumanPacing:
    """
    Delay model for outbound messages.

    Attributes:
        min_reading_ms: Floor for the "reading the question" delay
        reading_ms_per_char: Reading time per character of the inbound turn
        before_typing_ms: Pause before composing starts (up to 1.5x)
        typing_ms_per_char: Typing time per character of the outbound part
        after_send_ms: Pause after each text part (up to 2x)
        jitter: Relative jitter for reading and typing delays
        audio_pre_record_ms: Pause before "recording" shows
        audio_recording_ms: Time spent "recording"
        audio_after_send_ms: Pause after each voice note
        fallback_delay_ms: Pause before the apology message
    """
    min_reading_ms: int = 2000
    reading_ms_per_char: int = 50
    before_typing_ms: int = 1000
    typing_ms_per_char: int = 40
    after_send_ms: int = 500
    jitter: float = 0.2
    audio_pre_record_ms: Tuple[int, int] = (2000, 3000)
    audio_recording_ms: Tuple[int, int] = (3000, 4000)
    audio_after_send_ms: Tuple[int, int] = (1000, 2000)
    fallback_delay_ms: Tuple[int, int] = (1000, 2000)

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "HumanPacing":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {}
        for key, value in (data or {}).items():
            if key not in known:
                continue
            kwargs[key] = tuple(value) if isinstance(value, list) else value
        return cls(**kwargs)

    @staticmethod
    def _between(rng: random.Random, low: float, high: float) -> float:
        return rng.uniform(low, high) / 1000.0

    def _around(self, rng: random.Random, center: float) -> float:
        return self._between(rng, center * (1 - self.jitter), center * (1 + self.jitter))

    # Text parts

    def reading_delay(self, input_length: int, rng: random.Random) -> float:
        return self._around(rng, max(self.min_reading_ms, input_length * self.reading_ms_per_char))

    def before_typing_delay(self, rng: random.Random) -> float:
        return self._between(rng, self.before_typing_ms, self.before_typing_ms * 1.5)

    def typing_delay(self, output_length: int, rng: random.Random) -> float:
        return self._around(rng, output_length * self.typing_ms_per_char)

    def after_send_delay(self, rng: random.Random) -> float:
        return self._between(rng, self.after_send_ms, self.after_send_ms * 2)

    # Audio parts

    def pre_record_delay(self, rng: random.Random) -> float:
        return self._between(rng, *self.audio_pre_record_ms)

    def recording_delay(self, rng: random.Random) -> float:
        return self._between(rng, *self.audio_recording_ms)

    def audio_after_send_delay(self, rng: random.Random) -> float:
        return self._between(rng, *self.audio_after_send_ms)

    def fallback_delay(self, rng: random.Random) -> float:
        return self._between(rng, *self.fallback_delay_ms)
