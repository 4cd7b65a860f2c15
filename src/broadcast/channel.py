from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Generic, Optional, Type, TypeVar

from .errors import InvalidArgumentError
from .subscription import Affinity, Subscription

if TYPE_CHECKING:  # pragma: no cover
    from .center import NotificationCenter

TMessage = TypeVar("TMessage")


class Channel(Generic[TMessage]):
    """Typed view of a notification center for a single message class.

    Storage stays in the center; this wrapper only pins the topic and lets
    type checkers see the payload type at the call site::

        greetings = center.channel(BroadcastMessage[str])
        greetings.subscribe(lambda msg, sub: print(msg.content))
        greetings.publish(BroadcastMessage[str]("hello"))
    """

    def __init__(self, center: "NotificationCenter", message_type: Type[TMessage]):
        self.center = center
        self.message_type = message_type

    def subscribe(
        self,
        callback: Callable[[TMessage, Subscription], Any],
        condition: Optional[Callable[[TMessage], bool]] = None,
        affinity: Affinity = Affinity.UNSPECIFIED,
        owner: Any = None,
    ) -> Subscription:
        return self.center.subscribe(self.message_type, callback, condition=condition, affinity=affinity, owner=owner)

    def publish(self, message: TMessage, sender: Any = None) -> int:
        self._check(message)
        return self.center.publish_message(message, sender=sender)

    def publish_async(self, message: TMessage, sender: Any = None) -> int:
        self._check(message)
        return self.center.publish_message_async(message, sender=sender)

    def unsubscribe_all(self) -> int:
        return self.center.unsubscribe_all(self.message_type)

    def subscriber_count(self) -> int:
        return self.center.subscriber_count(self.message_type)

    def _check(self, message: Any) -> None:
        if message is None:
            raise InvalidArgumentError("You can not publish a null message.", "message")
        if type(message) is not self.message_type:
            raise InvalidArgumentError(
                f"Channel for {self.message_type.__qualname__} cannot publish {type(message).__qualname__}",
                "message",
            )

    def __repr__(self) -> str:
        return f"Channel({self.message_type.__qualname__})"
