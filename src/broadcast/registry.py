"""Topic -> subscriptions storage shared by every publisher and subscriber.

Locking follows two levels: ``_lock`` guards the topic map, each topic entry
has its own lock guarding its list.  When both are needed the map lock is taken
first.  Publishers only ever take an entry lock long enough to copy the list,
so callbacks never run while a registry lock is held.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Dict, List, Optional, Tuple

from .subscription import Subscription, SubscriptionState, Topic, describe_topic, is_valid_topic

logger = logging.getLogger(__name__)


class _TopicEntry:
    __slots__ = ("lock", "subscriptions", "retired")

    def __init__(self):
        self.lock = threading.Lock()
        self.subscriptions: List[Subscription] = []
        # Set once the entry has been dropped from the map; writers must fetch a fresh one
        self.retired = False


class SubscriptionRegistry:
    """Thread-safe mapping from topic key to an insertion-ordered subscriber list."""

    def __init__(self):
        self._topics: Dict[Topic, _TopicEntry] = {}
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def register(self, subscription: Optional[Subscription]) -> Optional[Subscription]:
        """Append ``subscription`` to its topic list. Invalid registrations are ignored."""
        if subscription is None or not is_valid_topic(subscription.topic) or not subscription.is_alive():
            logger.debug("[registry] ignored invalid registration %r", subscription)
            return None

        topic = subscription.topic
        while True:
            entry = self._get_entry(topic, create=True)
            with entry.lock:
                if entry.retired:
                    continue  # pruned between lookup and lock; retry on a fresh entry
                if not any(s is subscription for s in entry.subscriptions):
                    entry.subscriptions.append(subscription)
                break

        logger.debug("[registry] registered id=%s topic=%s", subscription.id, describe_topic(topic))
        return subscription

    def unregister(self, owner: Any, topic: Topic) -> Optional[Subscription]:
        """Remove the first active subscription under ``topic`` owned by ``owner``."""
        if owner is None:
            return None
        entry = self._get_entry(topic)
        if entry is None:
            return None

        found: Optional[Subscription] = None
        with entry.lock:
            for index, subscription in enumerate(entry.subscriptions):
                if subscription.state is SubscriptionState.ACTIVE and subscription.owned_by(owner):
                    found = entry.subscriptions.pop(index)
                    break

        if found is None:
            return None
        found.mark_unsubscribed()
        self._discard_if_empty(topic, entry)
        logger.debug("[registry] unregistered id=%s topic=%s", found.id, describe_topic(topic))
        return found

    def remove(self, subscription: Subscription) -> bool:
        """Identity-based removal; this is what a subscription's release closure calls."""
        subscription.mark_unsubscribed()
        entry = self._get_entry(subscription.topic)
        if entry is None:
            return False

        removed = False
        with entry.lock:
            for index, candidate in enumerate(entry.subscriptions):
                if candidate is subscription:
                    del entry.subscriptions[index]
                    removed = True
                    break

        if removed:
            self._discard_if_empty(subscription.topic, entry)
        return removed

    def unregister_all(self, topic: Optional[Topic] = None) -> int:
        """Drop one topic (or every topic). Removed subscribers are not notified."""
        with self._lock:
            if topic is None:
                entries = list(self._topics.values())
                self._topics.clear()
            else:
                entry = self._topics.pop(topic, None)
                entries = [entry] if entry is not None else []

            removed: List[Subscription] = []
            for entry in entries:
                with entry.lock:
                    entry.retired = True
                    removed.extend(entry.subscriptions)
                    entry.subscriptions = []

        for subscription in removed:
            subscription.mark_unsubscribed()
        label = describe_topic(topic) if topic is not None else "*"
        logger.debug("[registry] unregister_all topic=%s removed=%d", label, len(removed))
        return len(removed)

    def purge(self) -> int:
        """Evict unsubscribed and dead-owner entries across all topics; drop empty topics."""
        removed: List[Subscription] = []
        with self._lock:
            for topic, entry in list(self._topics.items()):
                with entry.lock:
                    keep = []
                    for subscription in entry.subscriptions:
                        if subscription.is_active():
                            keep.append(subscription)
                        else:
                            removed.append(subscription)
                    entry.subscriptions = keep
                    if not keep:
                        entry.retired = True
                        del self._topics[topic]

        for subscription in removed:
            subscription.mark_unsubscribed()
        if removed:
            logger.debug("[registry] purged %d subscription(s)", len(removed))
        return len(removed)

    # ------------------------------------------------------------------
    # Read access
    # ------------------------------------------------------------------

    def snapshot(self, topic: Topic) -> Tuple[Subscription, ...]:
        """Independent copy of the topic's list, safe to iterate while others mutate it."""
        entry = self._get_entry(topic)
        if entry is None:
            return ()
        with entry.lock:
            return tuple(entry.subscriptions)

    def topics(self) -> List[Topic]:
        with self._lock:
            return list(self._topics.keys())

    def count(self, topic: Optional[Topic] = None) -> int:
        if topic is not None:
            return len(self.snapshot(topic))
        with self._lock:
            entries = list(self._topics.values())
        total = 0
        for entry in entries:
            with entry.lock:
                total += len(entry.subscriptions)
        return total

    def stats(self) -> Dict[str, int]:
        """Diagnostics: subscriber count per topic name."""
        return {describe_topic(topic): self.count(topic) for topic in self.topics()}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_entry(self, topic: Topic, create: bool = False) -> Optional[_TopicEntry]:
        with self._lock:
            entry = self._topics.get(topic)
            if entry is None and create:
                entry = self._topics[topic] = _TopicEntry()
            return entry

    def _discard_if_empty(self, topic: Topic, entry: _TopicEntry) -> None:
        with self._lock:
            with entry.lock:
                if entry.subscriptions or self._topics.get(topic) is not entry:
                    return
                entry.retired = True
                del self._topics[topic]
