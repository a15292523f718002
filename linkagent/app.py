"""
linkagent Application - Single entry point for the device-linked agent.

Usage:
    from linkagent import LinkAgent

    app = LinkAgent("config.yaml")
    await app.start()
    await app.run_forever()
"""

import asyncio
import importlib
import logging
import os
import re
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .config import LinkAgentConfig

logger = logging.getLogger(__name__)


def _load_config(path: str) -> dict:
    """Read YAML config file with ${VAR} environment variable substitution."""
    import yaml

    with open(path, "r", encoding="utf-8") as f:
        raw = f.read()

    # Replace ${VAR} with environment variable values
    def _replace_env(match):
        var_name = match.group(1)
        value = os.environ.get(var_name)
        if value is None:
            raise ValueError(
                f"Environment variable '{var_name}' not set "
                f"(referenced in config file '{path}')"
            )
        return value

    resolved = re.sub(r"\$\{(\w+)\}", _replace_env, raw)
    return yaml.safe_load(resolved) or {}


def _load_class(class_path: str):
    """Resolve ``"package.module:ClassName"`` to the class object."""
    module_name, sep, class_name = class_path.partition(":")
    if not sep or not module_name or not class_name:
        raise ValueError(f"Invalid transport class path '{class_path}' (expected 'module:Class')")
    module = importlib.import_module(module_name)
    try:
        return getattr(module, class_name)
    except AttributeError as e:
        raise ValueError(f"Transport class '{class_name}' not found in '{module_name}'") from e


class LinkAgent:
    """
    linkagent Application entry point.

    Sync constructor reads config; async initialization is deferred
    to the first start() call.

    Args:
        config: Path to YAML configuration file, or an already parsed dict.

    Example:
        app = LinkAgent("config.yaml")
        await app.start()
    """

    def __init__(self, config: Union[str, Dict[str, Any]]):
        raw = _load_config(config) if isinstance(config, str) else dict(config)
        self.config = LinkAgentConfig.from_dict(raw)
        self._initialized = False

        llm_cfg = self.config.llm
        if not llm_cfg.provider or not llm_cfg.model:
            raise ValueError("Missing required config fields: 'llm.provider' and 'llm.model'")

        # Will be set during lazy initialization
        self._event_bus = None
        self._llm_client = None
        self._history = None
        self._connection = None
        self._orchestrator = None
        self._stopped: Optional[asyncio.Event] = None

    async def _ensure_initialized(self) -> None:
        """Lazy initialization - runs once on first start() call."""
        if self._initialized:
            return

        cfg = self.config

        # 1. Event bus
        from .events import EventBus
        self._event_bus = EventBus()

        # 2. LLM client
        from .llm import LiteLLMClient, LLMConfig
        llm_config = LLMConfig(
            model=cfg.llm.model,
            api_key=cfg.llm.api_key,
            base_url=cfg.llm.base_url,
            max_tokens=cfg.llm.max_tokens,
            temperature=cfg.llm.temperature,
        )
        self._llm_client = LiteLLMClient(config=llm_config, provider_name=cfg.llm.provider)
        logger.info(f"LLM client: provider={cfg.llm.provider}, model={cfg.llm.model}")

        # 3. External providers
        from .providers import ProviderFactory
        tts_provider = ProviderFactory.create_tts_provider(cfg.tts)
        email_provider = ProviderFactory.create_email_provider(cfg.email)
        media_describer = ProviderFactory.create_media_describer(cfg.media)
        logger.info(
            f"Providers: tts={cfg.tts.provider or 'off'}, "
            f"email={cfg.email.provider or 'off'}, media={cfg.media.provider or 'off'}"
        )

        # 4. Agent loop (+ editable profile)
        from .agent import AgentLoop, AgentLoopConfig, AgentToolbox
        profile_store = self._create_profile_store()
        agent = AgentLoop(
            llm_client=self._llm_client,
            toolbox=AgentToolbox(tts_provider=tts_provider, email_provider=email_provider),
            config=AgentLoopConfig(
                max_rounds=cfg.agent.max_rounds,
                system_prompt=cfg.agent.system_prompt,
            ),
            profile_store=profile_store,
        )

        # 5. History
        from .history import ConversationHistoryStore
        self._history = ConversationHistoryStore(path=cfg.history.path, max_turns=cfg.history.max_turns)

        # 6. Transport + connection manager
        from .connection import ConnectionManager
        transport_cls = _load_class(cfg.transport.class_path)
        transport = transport_cls(auth_dir=cfg.connection.auth_dir, **cfg.transport.options)
        self._connection = ConnectionManager(
            transport=transport,
            event_bus=self._event_bus,
            settings=cfg.connection,
        )
        logger.info(f"Transport: {cfg.transport.class_path}")

        # 7. Delivery + orchestrator
        from .delivery import DeliveryPipeline, HumanPacing
        from .orchestrator import ConversationOrchestrator
        delivery = DeliveryPipeline(self._connection, pacing=HumanPacing.from_dict(cfg.delivery))
        self._orchestrator = ConversationOrchestrator(
            connection=self._connection,
            agent=agent,
            history=self._history,
            event_bus=self._event_bus,
            delivery=delivery,
            media_describer=media_describer,
            accumulator_window=cfg.accumulator_window,
            model_context_turns=cfg.history.model_context_turns,
            fallback_message=cfg.fallback_message,
        )

        self._stopped = asyncio.Event()
        self._initialized = True
        logger.info("linkagent initialized")

    def _create_profile_store(self):
        path = self.config.agent.profile_path
        if not path:
            return None

        from .config import AgentProfileStore
        store = AgentProfileStore(path)
        if Path(path).exists():
            store.load()
        else:
            from .agent.prompts import DEFAULT_SYSTEM_PROMPT
            store.save({
                "system_prompt": self.config.agent.system_prompt or DEFAULT_SYSTEM_PROMPT,
                "model": self.config.llm.model,
                "max_tokens": self.config.llm.max_tokens,
            })
            logger.info(f"Created default agent profile at {path}")
        return store

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    async def start(self) -> None:
        await self._ensure_initialized()
        await self._orchestrator.start()

    async def run_forever(self) -> None:
        """Start (if needed) and block until shutdown() is called."""
        await self.start()
        await self._stopped.wait()

    async def shutdown(self) -> None:
        if not self._initialized:
            return
        await self._orchestrator.shutdown()
        await self._llm_client.close()
        self._stopped.set()
        logger.info("linkagent stopped")

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------

    @property
    def event_bus(self):
        return self._event_bus

    @property
    def orchestrator(self):
        return self._orchestrator

    @property
    def connection(self):
        return self._connection

    @property
    def history(self):
        return self._history
