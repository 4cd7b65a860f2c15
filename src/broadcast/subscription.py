"""A single registered handler and its lifecycle.

The broker never holds an owner strongly.  The owner is either passed
explicitly or, when the callback is a bound method, taken from the method's
instance; in the latter case the callback itself is kept through
``weakref.WeakMethod`` so registering ``self.handle`` does not pin ``self``.
Plain functions and lambdas are held strongly: a lambda that closes over its
owner keeps that owner alive until it is unsubscribed.
"""

from __future__ import annotations

import inspect
import logging
import threading
import uuid
import weakref
from enum import Enum
from typing import Any, Callable, Optional, Union

from .errors import InvalidArgumentError

logger = logging.getLogger(__name__)

Topic = Union[str, type]
Condition = Callable[[Any], bool]
Release = Callable[["Subscription"], Any]


class Affinity(str, Enum):
    """Where a subscriber's callback is allowed to run."""

    HOME = "home"  # always marshalled to the home context when one exists
    ANYWHERE = "anywhere"
    UNSPECIFIED = "unspecified"  # HOME if a home context is installed, else ANYWHERE


class SubscriptionState(str, Enum):
    ACTIVE = "active"
    UNSUBSCRIBED = "unsubscribed"


def describe_topic(topic: Any) -> str:
    """Readable topic name for log lines."""
    if isinstance(topic, type):
        return topic.__qualname__
    return str(topic)


def is_valid_topic(topic: Any) -> bool:
    if isinstance(topic, str):
        return bool(topic.strip())
    return isinstance(topic, type)


class Subscription:
    """One (callback, condition, affinity) registration plus its state.

    The object returned from ``subscribe`` is the subscription itself; it doubles
    as the unsubscribe token.  ``unsubscribe()`` may be called any number of
    times from any thread.
    """

    def __init__(
        self,
        topic: Topic,
        callback: Callable[..., Any],
        *,
        owner: Any = None,
        condition: Optional[Condition] = None,
        affinity: Affinity = Affinity.UNSPECIFIED,
        pass_sender: bool = False,
        release: Optional[Release] = None,
    ):
        self.id = uuid.uuid4().hex
        self.topic = topic
        self.condition = condition
        self.affinity = Affinity(affinity)
        # Legacy observers receive (sender, userdata) instead of (payload, subscription)
        self.pass_sender = pass_sender

        self._owner_ref: Optional[weakref.ref] = None
        if owner is not None:
            try:
                self._owner_ref = weakref.ref(owner)
            except TypeError:
                raise InvalidArgumentError(
                    f"Owner of type {type(owner).__name__} does not support weak references", "owner"
                ) from None

        bound_self = callback.__self__ if inspect.ismethod(callback) else None
        if owner is None and bound_self is not None and not isinstance(bound_self, type):
            try:
                self._owner_ref = weakref.ref(bound_self)
                owner = bound_self
            except TypeError:
                pass  # e.g. list.append; keep the callback strongly and run ownerless

        self._callback: Optional[Callable[..., Any]] = None
        self._callback_ref: Optional[weakref.WeakMethod] = None
        if owner is not None and bound_self is owner:
            self._callback_ref = weakref.WeakMethod(callback)
        else:
            self._callback = callback

        self._release = release
        self._state = SubscriptionState.ACTIVE
        self._state_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @property
    def state(self) -> SubscriptionState:
        return self._state

    @property
    def owner(self) -> Any:
        """The owning object, or ``None`` when there is none or it was collected."""
        if self._owner_ref is None:
            return None
        return self._owner_ref()

    @property
    def has_owner(self) -> bool:
        return self._owner_ref is not None

    def owned_by(self, candidate: Any) -> bool:
        return self._owner_ref is not None and self._owner_ref() is candidate

    def is_alive(self) -> bool:
        """False once the owner (or the instance behind a weak bound method) is gone."""
        if self._owner_ref is not None and self._owner_ref() is None:
            return False
        if self._callback_ref is not None and self._callback_ref() is None:
            return False
        return True

    def is_active(self) -> bool:
        return self._state is SubscriptionState.ACTIVE and self.is_alive()

    def mark_unsubscribed(self) -> bool:
        """Move to UNSUBSCRIBED. Returns True only for the call that made the transition."""
        with self._state_lock:
            if self._state is SubscriptionState.UNSUBSCRIBED:
                return False
            self._state = SubscriptionState.UNSUBSCRIBED
            return True

    def unsubscribe(self) -> None:
        if not self.mark_unsubscribed():
            return
        logger.debug("[subscription] unsubscribed id=%s topic=%s", self.id, describe_topic(self.topic))
        if self._release is not None:
            self._release(self)

    # ------------------------------------------------------------------
    # Delivery
    # ------------------------------------------------------------------

    def accepts(self, payload: Any) -> bool:
        if self.condition is None:
            return True
        return bool(self.condition(payload))

    def deliver(self, sender: Any, payload: Any) -> bool:
        """Invoke the callback. Returns False when the callback target is already gone."""
        callback = self._callback if self._callback_ref is None else self._callback_ref()
        if callback is None:
            return False
        if self.pass_sender:
            callback(sender, payload)
        else:
            callback(payload, self)
        return True

    def __repr__(self) -> str:
        return (
            f"Subscription(id={self.id[:8]}, topic={describe_topic(self.topic)!r}, "
            f"affinity={self.affinity.value}, state={self._state.value})"
        )
