"""Centralized logging configuration.

Applies per-category log levels from Settings so that the chatty engine
loggers (operations, matches, include expansion) can be turned on for a
single test run without flooding everything else.

Usage:
    from mockdb.infrastructure.logging.log_config import setup_logging
    setup_logging()   # Call once, e.g. from a conftest or a script
"""

import logging
import sys

from mockdb.config import Settings, get_settings


# ── Logger-name → Settings-field mapping ────────────────────────────
#
# Each entry maps one or more Python logger names to a Settings field.
# When setup_logging() runs, it sets the level of each listed logger
# to the value of the corresponding setting.

_CATEGORY_MAP: dict[str, list[str]] = {
    "log_level_engine": [
        "mockdb.application.services.query_engine",
        "mockdb.application.services.update_engine",
        "mockdb.application.services.relationship_resolver",
        "mockdb.infrastructure.storage",
    ],
    "log_level_requests": [
        "mockdb.application.services.object_request_service",
        "ObjectRequestService",
    ],
}


def setup_logging(settings: Settings | None = None) -> None:
    """Configure Python logging levels from engine settings.

    With ``debug_db`` enabled every mockdb category is forced to DEBUG.
    """
    settings = settings or get_settings()
    root_level = _parse_level(settings.log_level)

    # ── Root logger ────────────────────────────────────────────────
    root = logging.getLogger()
    root.setLevel(root_level)

    # Ensure at least one handler exists (pytest usually adds one,
    # but plain scripts may not).
    if not root.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setFormatter(
            logging.Formatter(
                "%(levelname)-8s %(name)s — %(message)s",
            )
        )
        root.addHandler(handler)

    # ── Per-category loggers ───────────────────────────────────────
    for settings_field, logger_names in _CATEGORY_MAP.items():
        raw_level: str = getattr(settings, settings_field, "INFO")
        level = logging.DEBUG if settings.debug_db else _parse_level(raw_level)

        for name in logger_names:
            logging.getLogger(name).setLevel(level)

    logging.getLogger(__name__).debug(
        "Logging configured: root=%s, engine=%s, requests=%s, debug_db=%s",
        settings.log_level,
        settings.log_level_engine,
        settings.log_level_requests,
        settings.debug_db,
    )


def _parse_level(raw: str) -> int:
    """Convert a level name string to a logging constant, defaulting to INFO."""
    numeric = getattr(logging, raw.upper(), None)
    if isinstance(numeric, int):
        return numeric
    return logging.INFO
