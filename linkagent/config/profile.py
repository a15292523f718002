"""
Agent profile store - editable system prompt and model settings on disk

The profile lives in a small JSON file so an operator can change the
agent's persona without restarting the process. The agent loop reads it
on every run.
"""

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)


@dataclass
class AgentProfile:
    """Persisted agent settings."""
    system_prompt: str
    model: str
    max_tokens: int
    last_updated: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "systemPrompt": self.system_prompt,
            "model": self.model,
            "maxTokens": self.max_tokens,
            "lastUpdated": self.last_updated,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentProfile":
        return cls(
            system_prompt=data.get("systemPrompt", ""),
            model=data.get("model", ""),
            max_tokens=int(data.get("maxTokens") or 0),
            last_updated=data.get("lastUpdated"),
        )


class AgentProfileStore:
    """
    JSON-backed agent profile with an in-memory cache.

    The cache is refreshed whenever the file's modification time changes,
    so edits made outside the process apply to the next run.

    Example:
        store = AgentProfileStore("config/agent-profile.json")
        profile = store.get()
        store.save({"system_prompt": "You are ..."})
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self._profile: Optional[AgentProfile] = None
        self._mtime: Optional[float] = None

    def load(self) -> AgentProfile:
        """Read the profile from disk, replacing the cache."""
        try:
            mtime = self.path.stat().st_mtime
            with open(self.path, "r", encoding="utf-8") as f:
                self._profile = AgentProfile.from_dict(json.load(f))
            self._mtime = mtime
        except (OSError, json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.error(f"Error loading agent profile {self.path}: {e}")
            raise ValueError(f"Failed to load agent profile from '{self.path}'") from e
        logger.info(f"Agent profile loaded from {self.path}")
        return self._profile

    def get(self) -> AgentProfile:
        """Cached profile, reloaded if the file changed since the last read."""
        if self._profile is None:
            return self.load()
        try:
            mtime = self.path.stat().st_mtime
        except OSError:
            return self._profile
        if mtime != self._mtime:
            try:
                return self.load()
            except ValueError:
                logger.warning(f"Keeping previous agent profile, {self.path} is unreadable")
        return self._profile

    @property
    def is_loaded(self) -> bool:
        return self._profile is not None

    def save(self, updates: Dict[str, Any]) -> AgentProfile:
        """Merge ``updates`` into the current profile and persist it.

        Keys use attribute names (system_prompt, model, max_tokens).
        """
        current = self.get() if self.path.exists() else AgentProfile("", "", 0)
        merged = AgentProfile(
            system_prompt=updates.get("system_prompt", current.system_prompt),
            model=updates.get("model", current.model),
            max_tokens=int(updates.get("max_tokens", current.max_tokens) or 0),
            last_updated=datetime.now(timezone.utc).isoformat(),
        )
        if not merged.system_prompt or not merged.model or not merged.max_tokens:
            raise ValueError("Missing required profile fields: system_prompt, model, max_tokens")

        self.path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(merged.to_dict(), f, indent=2, ensure_ascii=False)

        self._profile = merged
        self._mtime = self.path.stat().st_mtime
        logger.info(f"Agent profile saved to {self.path}")
        return merged
