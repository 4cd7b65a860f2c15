"""Public broker surface.

``NotificationCenter`` ties the registry, dispatcher and thread-affinity
executor together.  There is no process-wide instance: create one and hand it
to the objects that need to talk to each other.

Two addressing schemes are supported side by side:

* string topics -- ``subscribe("door", cb)`` / ``publish(sender, "door", data)``
  plus the legacy observer form ``register_observer(self, "door", action)``;
* typed topics -- ``subscribe(BroadcastMessage[str], cb)`` /
  ``publish_message(BroadcastMessage[str]("hi"))`` or via ``channel()``.

The same owner may subscribe to the same topic several times; each
registration is delivered independently (no de-duplication).
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Dict, List, Optional, Type, TypeVar

from .channel import Channel
from .dispatcher import Dispatcher, ErrorHandler, PublishMode
from .errors import BrokerClosedError, InvalidArgumentError
from .executor import HomeContext, ThreadAffinityExecutor
from .registry import SubscriptionRegistry
from .settings import BrokerSettings
from .subscription import Affinity, Condition, Subscription, Topic, describe_topic, is_valid_topic

logger = logging.getLogger(__name__)

TMessage = TypeVar("TMessage")

_MISSING = object()


class NotificationCenter:
    """In-process publish/subscribe broker."""

    def __init__(
        self,
        settings: BrokerSettings | None = None,
        home_context: HomeContext | None = None,
        error_handler: ErrorHandler | None = None,
    ):
        self.settings = settings or BrokerSettings()
        self._registry = SubscriptionRegistry()
        self._executor = ThreadAffinityExecutor(
            max_workers=self.settings.max_workers,
            home_context=home_context,
            thread_name_prefix=self.settings.thread_name_prefix,
        )
        self._dispatcher = Dispatcher(
            self._registry,
            self._executor,
            error_handler=error_handler,
            purge_after_publish=self.settings.purge_after_publish,
        )
        self._closed = False

    # ---------------------------------------------------------------------
    # Configuration
    # ---------------------------------------------------------------------

    @property
    def home_context(self) -> HomeContext | None:
        return self._executor.home_context

    @home_context.setter
    def home_context(self, context: HomeContext | None) -> None:
        self._executor.home_context = context

    @property
    def error_handler(self) -> ErrorHandler | None:
        return self._dispatcher.error_handler

    @error_handler.setter
    def error_handler(self, handler: ErrorHandler | None) -> None:
        self._dispatcher.error_handler = handler

    @property
    def closed(self) -> bool:
        return self._closed

    # ---------------------------------------------------------------------
    # Subscription
    # ---------------------------------------------------------------------

    def subscribe(
        self,
        topic: Topic,
        callback: Callable[[Any, Subscription], Any],
        condition: Optional[Condition] = None,
        affinity: Affinity = Affinity.UNSPECIFIED,
        owner: Any = None,
    ) -> Subscription:
        """Register ``callback(payload, subscription)`` for ``topic``.

        ``condition(payload)`` is evaluated before each delivery; only a truthy
        result lets the callback run.  Bound-method callbacks are held weakly
        and purged once their instance is collected.
        """
        if not is_valid_topic(topic):
            raise InvalidArgumentError("Topic must be a non-empty string or a message type", "topic")
        if callback is None or not callable(callback):
            raise InvalidArgumentError("Callback must not be null when subscribing", "callback")
        if condition is not None and not callable(condition):
            raise InvalidArgumentError("Condition must be callable", "condition")

        subscription = Subscription(
            topic,
            callback,
            owner=owner,
            condition=condition,
            affinity=affinity,
            release=self._registry.remove,
        )
        self._registry.register(subscription)
        return subscription

    def register_observer(
        self,
        observer: Any,
        notification: str,
        action: Callable[[Any, Dict[str, Any]], Any],
        condition: Optional[Condition] = None,
        affinity: Affinity = Affinity.UNSPECIFIED,
    ) -> Subscription | None:
        """Legacy string-topic registration: ``action(sender, userdata)``.

        Invalid input (no observer, blank notification, no action, or an
        observer that cannot be weakly referenced) is ignored and ``None`` is
        returned.
        """
        if observer is None or not isinstance(notification, str) or not notification.strip() or not callable(action):
            logger.debug("[center] ignored observer registration for %r", notification)
            return None
        try:
            subscription = Subscription(
                notification,
                action,
                owner=observer,
                condition=condition,
                affinity=affinity,
                pass_sender=True,
                release=self._registry.remove,
            )
        except InvalidArgumentError as exc:
            logger.debug("[center] ignored observer registration: %s", exc)
            return None
        return self._registry.register(subscription)

    def unsubscribe(self, handle_or_owner: Any, topic: Any = _MISSING) -> None:
        """``unsubscribe(handle)`` or ``unsubscribe(owner, topic)``. Unknown targets are ignored."""
        if topic is _MISSING:
            if isinstance(handle_or_owner, Subscription):
                handle_or_owner.unsubscribe()
            return
        if handle_or_owner is None or not is_valid_topic(topic):
            return
        self._registry.unregister(handle_or_owner, topic)

    def unregister_observer(self, observer: Any, notification: str) -> None:
        self.unsubscribe(observer, notification)

    def unsubscribe_all(self, topic: Topic | None = None) -> int:
        return self._registry.unregister_all(topic)

    # ---------------------------------------------------------------------
    # Publication
    # ---------------------------------------------------------------------

    def publish(self, sender: Any, topic: Topic, payload: Any = None) -> int:
        """Deliver ``payload`` to the topic's subscribers and return once they ran."""
        return self._publish(sender, topic, payload, PublishMode.SYNC)

    def publish_async(self, sender: Any, topic: Topic, payload: Any = None) -> int:
        """Schedule delivery to the topic's subscribers without waiting for them."""
        return self._publish(sender, topic, payload, PublishMode.ASYNC)

    def publish_message(self, message: Any, sender: Any = None) -> int:
        """Typed publication: the message's class is the topic."""
        self._check_message(message)
        return self._publish(sender, type(message), message, PublishMode.SYNC)

    def publish_message_async(self, message: Any, sender: Any = None) -> int:
        self._check_message(message)
        return self._publish(sender, type(message), message, PublishMode.ASYNC)

    def channel(self, message_type: Type[TMessage]) -> Channel[TMessage]:
        """Typed wrapper bound to one message class."""
        if not isinstance(message_type, type):
            raise InvalidArgumentError("Channel requires a message type", "message_type")
        return Channel(self, message_type)

    # ---------------------------------------------------------------------
    # Maintenance & diagnostics
    # ---------------------------------------------------------------------

    def purge(self) -> int:
        return self._registry.purge()

    def subscriber_count(self, topic: Topic | None = None) -> int:
        return self._registry.count(topic)

    def topics(self) -> List[Topic]:
        return self._registry.topics()

    def stats(self) -> Dict[str, int]:
        return self._registry.stats()

    def shutdown(self, wait: bool = True) -> None:
        if self._closed:
            return
        self._closed = True
        self._executor.shutdown(wait=wait)
        logger.debug("[center] shut down")

    def __enter__(self) -> "NotificationCenter":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown()

    # ---------------------------------------------------------------------
    # Helpers
    # ---------------------------------------------------------------------

    def _publish(self, sender: Any, topic: Topic, payload: Any, mode: PublishMode) -> int:
        if self._closed:
            raise BrokerClosedError()
        if not is_valid_topic(topic):
            raise InvalidArgumentError("Topic must be a non-empty string or a message type", "topic")
        if payload is None:
            payload = {}
        logger.debug("[center] publish topic=%s mode=%s", describe_topic(topic), mode.value)
        return self._dispatcher.publish(sender, topic, payload, mode)

    @staticmethod
    def _check_message(message: Any) -> None:
        if message is None:
            raise InvalidArgumentError("You can not publish a null message.", "message")
