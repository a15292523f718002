"""linkagent delivery - human-paced outbound messages"""

from .pacing import HumanPacing
from .pipeline import DeliveryPipeline, DeliveryReport, MessageSender, SendFailure

__all__ = [
    "HumanPacing",
    "DeliveryPipeline",
    "DeliveryReport",
    "MessageSender",
    "SendFailure",
]
