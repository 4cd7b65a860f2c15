from __future__ import annotations

import functools
import logging
import threading
from enum import Enum
from typing import Any, Callable, Optional

from .executor import ThreadAffinityExecutor
from .messages import DeliveryFault
from .registry import SubscriptionRegistry
from .subscription import Affinity, Subscription, Topic, describe_topic

logger = logging.getLogger(__name__)

ErrorHandler = Callable[[DeliveryFault], Any]


class PublishMode(str, Enum):
    SYNC = "sync"
    ASYNC = "async"


class Dispatcher:
    """Fans a publication out to the subscribers of one topic.

    The subscriber list is snapshotted up front and iterated without any lock
    held, so callbacks may subscribe, unsubscribe or publish re-entrantly.  A
    failing condition or callback only affects its own delivery.
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        executor: ThreadAffinityExecutor,
        error_handler: Optional[ErrorHandler] = None,
        purge_after_publish: bool = True,
    ):
        self.registry = registry
        self.executor = executor
        self.error_handler = error_handler
        self.purge_after_publish = purge_after_publish
        self._purge_lock = threading.Lock()
        self._purge_scheduled = False

    def publish(self, sender: Any, topic: Topic, payload: Any, mode: PublishMode = PublishMode.SYNC) -> int:
        """Route ``payload`` to every matching subscriber. Returns how many were routed."""
        subscriptions = self.registry.snapshot(topic)
        if not subscriptions:
            return 0

        routed = 0
        for subscription in subscriptions:
            if not subscription.is_active():
                continue
            try:
                if not subscription.accepts(payload):
                    continue
            except Exception as exc:
                self._report(subscription, "condition", exc)
                continue
            if self._route(subscription, sender, payload, PublishMode(mode)):
                routed += 1

        logger.debug("[dispatch] topic=%s mode=%s routed=%d", describe_topic(topic), PublishMode(mode).value, routed)
        self._schedule_purge()
        return routed

    def resolve_affinity(self, affinity: Affinity) -> Affinity:
        if affinity is Affinity.UNSPECIFIED:
            return Affinity.HOME if self.executor.home_context is not None else Affinity.ANYWHERE
        return affinity

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _route(self, subscription: Subscription, sender: Any, payload: Any, mode: PublishMode) -> bool:
        job = functools.partial(self._deliver, subscription, sender, payload)
        affinity = self.resolve_affinity(subscription.affinity)
        try:
            if affinity is Affinity.HOME:
                # Sync publishers wait for the home thread; async ones only post
                self.executor.run_on_home(job, wait=mode is PublishMode.SYNC)
            elif mode is PublishMode.ASYNC:
                self.executor.run_async(job)
            else:
                self.executor.run_here(job)
        except RuntimeError as exc:
            # Worker pool shut down or home context stopped
            self._report(subscription, "callback", exc)
            return False
        return True

    def _deliver(self, subscription: Subscription, sender: Any, payload: Any) -> None:
        if not subscription.is_active():
            return  # unsubscribed after the snapshot was taken
        try:
            subscription.deliver(sender, payload)
        except Exception as exc:
            self._report(subscription, "callback", exc)

    def _report(self, subscription: Subscription, stage: str, exc: Exception) -> None:
        logger.error(
            "[dispatch] %s failed for subscription=%s topic=%s: %s",
            stage,
            subscription.id,
            describe_topic(subscription.topic),
            exc,
            exc_info=exc,
        )
        if self.error_handler is None:
            return
        fault = DeliveryFault.from_exception(subscription.id, subscription.topic, stage, exc)
        try:
            self.error_handler(fault)
        except Exception:
            logger.exception("[dispatch] error handler raised while reporting %s", fault.subscription_id)

    def _schedule_purge(self) -> None:
        if not self.purge_after_publish:
            return
        with self._purge_lock:
            if self._purge_scheduled:
                return
            self._purge_scheduled = True
        try:
            self.executor.run_async(self._run_purge)
        except RuntimeError:
            with self._purge_lock:
                self._purge_scheduled = False
            logger.debug("[dispatch] purge skipped, worker pool is shut down")

    def _run_purge(self) -> None:
        with self._purge_lock:
            self._purge_scheduled = False
        try:
            self.registry.purge()
        except Exception:
            logger.exception("[dispatch] purge failed")
