"""
Logging setup for the CLI and embedding hosts.

The packaged `logging.yaml` defines one stderr handler and quiets httpx. The
effective level comes from, in order: the explicit argument (CLI
`--log-level`), then `app.log_level` from settings (`LOCALMATCH_LOG_LEVEL`).
Only the `localmatch` logger tree and the handlers follow that level, so a
host application's own root level is left alone.
"""

from __future__ import annotations

import copy
import logging.config

from localmatch.config.settings import get_logging_config, get_settings


def configure_logging(level: str | None = None) -> str:
    """Apply the packaged logging config; returns the effective level name."""
    effective = (level or get_settings().app.log_level).upper()

    # The cached dict is shared; dictConfig must get a private copy.
    config = copy.deepcopy(get_logging_config())
    for handler in config.get("handlers", {}).values():
        handler["level"] = effective
    config.setdefault("loggers", {})["localmatch"] = {"level": effective}

    logging.config.dictConfig(config)
    return effective
