"""Logging setup, called from the app lifespan."""

from __future__ import annotations

import logging

LOG_FORMAT = '%(asctime)s %(levelname)s %(name)s: %(message)s'

_configured = False


def setup_logging(level: str = 'INFO') -> None:
    """Attach one stream handler to the root logger; later calls only change the level."""
    global _configured
    root = logging.getLogger()
    if not _configured:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)
        _configured = True
    root.setLevel(getattr(logging, level.upper(), logging.INFO))
