"""Colored request logger: ANSI-colored console logging for the request lifecycle.

Provides a RequestLogger with color-coded output per request kind,
making it easy to follow what a test suite did to the mock store.

Color scheme:
    🟢 Green   Create
    🔵 Blue    Fetch by id
    🟠 Cyan    Find (query)
    🟡 Yellow  Update
    🟣 Magenta Delete
    ⚪ White   Hooks
    🔴 Red     Errors
"""

import logging
import time
from contextlib import contextmanager
from typing import Any


# ── ANSI Color Codes ─────────────────────────────────────────────────

class _Colors:
    """ANSI escape codes for terminal colors."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"

    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"
    MAGENTA = "\033[95m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"


# ── Request Stage Definitions ────────────────────────────────────────

class RequestStage:
    """Predefined request stages with colors and icons."""

    CREATE = ("CREATE", _Colors.GREEN, "➕")
    FETCH = ("FETCH", _Colors.BLUE, "🔎")
    FIND = ("FIND", _Colors.CYAN, "📋")
    UPDATE = ("UPDATE", _Colors.YELLOW, "✏️")
    DELETE = ("DELETE", _Colors.MAGENTA, "🗑️")
    HOOK = ("HOOK", _Colors.WHITE, "🪝")


# ── RequestLogger ────────────────────────────────────────────────────

Stage = tuple[str, str, str]


class RequestLogger:
    """Color-coded logger for object requests.

    Usage:
        log = RequestLogger("ObjectRequestService")
        with log.timed_step(RequestStage.CREATE, "Player"):
            ...
    """

    def __init__(self, component_name: str):
        self._logger = logging.getLogger(component_name)

    @staticmethod
    def _tag(stage: Stage) -> str:
        label, color, icon = stage
        return f"{color}{icon} [{label}]{_Colors.RESET}"

    def step_start(self, stage: Stage, message: str) -> None:
        self._logger.debug("%s %s%s%s", self._tag(stage), stage[1], message, _Colors.RESET)

    def step_complete(self, stage: Stage, message: str, elapsed_ms: float) -> None:
        self._logger.info(
            "%s %s✓ %s%s %s(%.1fms)%s",
            self._tag(stage), _Colors.GREEN, message, _Colors.RESET,
            _Colors.GRAY, elapsed_ms, _Colors.RESET,
        )

    def step_error(self, stage: Stage, message: str, error: BaseException, elapsed_ms: float) -> None:
        """Log an aborted request in red, naming the exception that ended it."""
        self._logger.error(
            "%s❌ [%s] %s failed after %.1fms%s %s→ %s: %s%s",
            _Colors.RED, stage[0], message, elapsed_ms, _Colors.RESET,
            _Colors.DIM, type(error).__name__, error, _Colors.RESET,
        )

    def detail(self, message: str, **fields: Any) -> None:
        """Log a dimmed sub-line at DEBUG, e.g. match counts for a find."""
        extra = " ".join(f"{key}={value}" for key, value in fields.items())
        self._logger.debug(
            "   %s├─ %s%s %s", _Colors.GRAY, message, _Colors.RESET, extra
        )

    @contextmanager
    def timed_step(self, stage: Stage, message: str):
        """Log the start of a request and how long it took to answer or fail."""
        self.step_start(stage, message)
        start = time.perf_counter()
        try:
            yield
        except Exception as e:
            self.step_error(stage, message, e, (time.perf_counter() - start) * 1000)
            raise
        self.step_complete(stage, message, (time.perf_counter() - start) * 1000)
