"""Construction helper that wires settings, .env loading and logging."""

from __future__ import annotations

from typing import Any

from dotenv import load_dotenv

from .center import NotificationCenter
from .settings import BrokerSettings
from .utils.logger import setup_logger


def create_notification_center(
    settings: BrokerSettings | None = None,
    env_file: str | None = ".env",
    configure_logging: bool = True,
    **kwargs: Any,
) -> NotificationCenter:
    """Return a new notification center configured from the environment.

    ``kwargs`` are passed through to ``NotificationCenter`` (``home_context``,
    ``error_handler``).
    """
    if settings is None:
        if env_file:
            # Load env first so BROADCAST_* values from .env are visible
            load_dotenv(env_file, override=False)
        settings = BrokerSettings.from_env()

    if configure_logging:
        setup_logger(level=settings.log_level)

    return NotificationCenter(settings=settings, **kwargs)
