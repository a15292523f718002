"""
linkagent - an automated conversational agent for a linked messaging device

linkagent receives text and media turns from a device-linked session,
debounces bursts into single turns, runs a bounded tool-calling model
loop (text-to-speech and email tools) and delivers the reply back with
human-like pacing. The operator can take over any conversation from the
same device, and in-band commands control automated replies:

- @stop      pause automated replies everywhere
- @play      resume automated replies everywhere
- @continue  resume this conversation (earlier messages are ignored)
- @clean     forget this conversation's history

Quick Start:
    from linkagent import LinkAgent

    app = LinkAgent("config.yaml")
    await app.run_forever()
"""

from .app import LinkAgent
from .config import LinkAgentConfig
from .orchestrator import ConversationOrchestrator
from .payload import DeliverablePayload, MessagePart

__version__ = "0.1.0"

__all__ = [
    "LinkAgent",
    "LinkAgentConfig",
    "ConversationOrchestrator",
    "DeliverablePayload",
    "MessagePart",
]
