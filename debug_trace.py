"""
debug_trace.py

Trace instrumentation for following the markup <-> flow sync loop.

Tracing is controlled by the PIPESYNC_TRACE environment variable (or
``configure`` / ``main.py --trace``):

    PIPESYNC_TRACE=1              every category except the verbose ones
    PIPESYNC_TRACE=SYNC,SURGERY   only the listed categories
    PIPESYNC_TRACE=0 or unset     off

Categories: SYNC (state machine and echo suppression), SURGERY (text edits),
REBUILD (parse/graph pipeline), LAYOUT (fallback placement), CATALOG
(reference data), MAIN.  ERROR and CRASH are shown whenever tracing is on.
"""

import os
import sys
import traceback
from datetime import datetime
from functools import wraps
from typing import FrozenSet, Optional

# Left out of PIPESYNC_TRACE=1; name them explicitly to see them
VERBOSE_CATEGORIES = frozenset({"LAYOUT"})

# Shown whenever tracing is on
ALWAYS_CATEGORIES = frozenset({"ERROR", "CRASH"})

_ALL = frozenset({"1", "ALL", "TRUE", "YES"})

DEBUG_TRACE = False

# None means every category except VERBOSE_CATEGORIES
TRACE_CATEGORIES: Optional[FrozenSet[str]] = None

# Log file (None for stderr only)
LOG_FILE = os.environ.get("PIPESYNC_TRACE_FILE") or None

_log_file = None


def configure(setting: str) -> None:
    """Switch tracing on or off from a PIPESYNC_TRACE style setting."""
    global DEBUG_TRACE, TRACE_CATEGORIES
    names = {part.strip().upper() for part in setting.split(",") if part.strip()}
    names.discard("0")
    DEBUG_TRACE = bool(names)
    TRACE_CATEGORIES = None if not names or names & _ALL else frozenset(names)


def trace_enabled(category: str) -> bool:
    """Return True when messages of ``category`` are traced."""
    if not DEBUG_TRACE:
        return False
    if category in ALWAYS_CATEGORIES:
        return True
    if TRACE_CATEGORIES is None:
        return category not in VERBOSE_CATEGORIES
    return category in TRACE_CATEGORIES


def _get_log_file():
    global _log_file
    if LOG_FILE and _log_file is None:
        try:
            _log_file = open(LOG_FILE, "w", encoding="utf-8")
        except OSError:
            pass
    return _log_file


def trace(msg: str, category: str = "INFO"):
    """Print a trace message with timestamp."""
    if not trace_enabled(category):
        return

    timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
    line = f"[{timestamp}] [{category}] {msg}"

    print(line, file=sys.stderr, flush=True)

    log_file = _get_log_file()
    if log_file:
        try:
            log_file.write(line + "\n")
            log_file.flush()
        except OSError:
            pass


def trace_exception(msg: str = "Exception"):
    """Print exception info."""
    if not DEBUG_TRACE:
        return
    trace(f"{msg}: {traceback.format_exc()}", "ERROR")


def trace_call(category: str = "CALL"):
    """Decorator to trace entry and exit of a function.

    The category is checked on every call, so ``configure`` takes effect for
    functions decorated at import time.
    """
    def decorator(func):
        @wraps(func)
        def wrapper(*args, **kwargs):
            if not trace_enabled(category):
                return func(*args, **kwargs)
            func_name = func.__qualname__
            trace(f">>> {func_name}", category)
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                trace(f"!!! {func_name} raised {type(e).__name__}: {e}", "ERROR")
                raise
            trace(f"<<< {func_name}", category)
            return result
        return wrapper
    return decorator


def close_log():
    """Close log file."""
    global _log_file
    if _log_file:
        try:
            _log_file.close()
        except OSError:
            pass
        _log_file = None


configure(os.environ.get("PIPESYNC_TRACE", ""))
