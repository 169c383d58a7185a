from __future__ import annotations

import logging

from qubit_commons.config import Settings, settings

logger = logging.getLogger(__name__)


def resolve_log_level(name: str | None) -> int:
    if not name:
        return logging.INFO
    level = getattr(logging, name.strip().upper(), None)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(level: str | None = None, cfg: Settings | None = None) -> None:
    """Configure root logging for a host application and report unsafe settings."""

    cfg = cfg or settings
    logging.basicConfig(level=resolve_log_level(level or cfg.log_level))

    for msg in cfg.security_warnings():
        logger.warning("SECURITY WARNING: %s", msg)
