"""Hub connection: MQTT publish/subscribe presented as feeds."""

from .client import HubClient, HubConnectionError, connect_to_hub, make_client_id
from .events import Event
from .feeds import TopicNotifier, TopicWatcher

__all__ = [
    "HubClient",
    "HubConnectionError",
    "connect_to_hub",
    "make_client_id",
    "Event",
    "TopicNotifier",
    "TopicWatcher",
]
