from __future__ import annotations

import os
from dataclasses import dataclass, asdict
from typing import Mapping

from .errors import InvalidArgumentError

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass
class BrokerSettings:
    """Runtime config for a notification center (env overridable)."""

    max_workers: int | None = None  # None lets ThreadPoolExecutor pick its default
    thread_name_prefix: str = "broadcast"
    purge_after_publish: bool = True
    log_level: str = "INFO"

    def to_dict(self):
        return asdict(self)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "BrokerSettings":
        """Build settings from ``BROADCAST_*`` variables, keeping defaults for unset ones."""
        env = os.environ if environ is None else environ
        settings = cls()

        raw_workers = env.get("BROADCAST_MAX_WORKERS", "").strip()
        if raw_workers:
            try:
                settings.max_workers = int(raw_workers)
            except ValueError:
                raise InvalidArgumentError(
                    f"BROADCAST_MAX_WORKERS must be an integer, got {raw_workers!r}", "max_workers"
                ) from None
            if settings.max_workers <= 0:
                raise InvalidArgumentError("BROADCAST_MAX_WORKERS must be greater than 0", "max_workers")

        prefix = env.get("BROADCAST_THREAD_PREFIX", "").strip()
        if prefix:
            settings.thread_name_prefix = prefix

        raw_purge = env.get("BROADCAST_PURGE_AFTER_PUBLISH", "").strip().lower()
        if raw_purge:
            if raw_purge in _TRUE:
                settings.purge_after_publish = True
            elif raw_purge in _FALSE:
                settings.purge_after_publish = False
            else:
                raise InvalidArgumentError(
                    f"BROADCAST_PURGE_AFTER_PUBLISH must be a boolean, got {raw_purge!r}",
                    "purge_after_publish",
                )

        level = env.get("BROADCAST_LOG_LEVEL", "").strip()
        if level:
            settings.log_level = level.upper()

        return settings
