"""In-process publish/subscribe notification broker."""

from __future__ import annotations

from .center import NotificationCenter
from .channel import Channel
from .dispatcher import Dispatcher, PublishMode
from .errors import BroadcastError, BrokerClosedError, InvalidArgumentError
from .executor import AsyncioHomeContext, HomeContext, QueueHomeContext, ThreadAffinityExecutor
from .factory import create_notification_center
from .messages import BroadcastMessage, DeliveryFault, MessageBase
from .registry import SubscriptionRegistry
from .settings import BrokerSettings
from .subscription import Affinity, Subscription, SubscriptionState

__all__ = [
    "Affinity",
    "AsyncioHomeContext",
    "BroadcastError",
    "BroadcastMessage",
    "BrokerClosedError",
    "BrokerSettings",
    "Channel",
    "DeliveryFault",
    "Dispatcher",
    "HomeContext",
    "InvalidArgumentError",
    "MessageBase",
    "NotificationCenter",
    "PublishMode",
    "QueueHomeContext",
    "Subscription",
    "SubscriptionRegistry",
    "SubscriptionState",
    "ThreadAffinityExecutor",
    "create_notification_center",
]
