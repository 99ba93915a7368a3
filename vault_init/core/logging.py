"""Logging setup for vault-init."""

import logging

from vault_init.config import VAULT_INIT_LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def configure_logging(level: str | None = None) -> None:
    """Configure root logging.

    Args:
        level: Level name (DEBUG, INFO, ...). Defaults to VAULT_INIT_LOG_LEVEL.
            Unknown names fall back to INFO.
    """
    level_name = (level or VAULT_INIT_LOG_LEVEL).upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format=LOG_FORMAT,
        force=True,
    )
    # httpx logs every request URL at INFO
    logging.getLogger("httpx").setLevel(logging.WARNING)
