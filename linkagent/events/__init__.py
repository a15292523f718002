"""linkagent events - typed broadcast signals for dashboards and observers"""

from .bus import EventBus, EventCallback
from .models import Event, EventType

__all__ = ["EventBus", "EventCallback", "Event", "EventType"]
