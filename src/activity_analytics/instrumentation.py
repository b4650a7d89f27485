"""Call-site instrumentation: timing/logging decorator and log masking."""

from __future__ import annotations

import functools
import logging
import re
import time
from typing import Any, Callable

logger = logging.getLogger(__name__)

MAX_LOGGED_LENGTH = 100
SLOW_CALL_THRESHOLD_MS = 1000

_SENSITIVE_KEYS = "apiKey|api_key|authorization|accessToken|refreshToken|password|secret"

_MASK_PATTERNS: list[tuple[re.Pattern, str]] = [
    (re.compile(r"Bearer\s+[A-Za-z0-9._\-]+"), "Bearer ***"),
    # "key": "value"
    (
        re.compile(rf'(?i)("(?:{_SENSITIVE_KEYS}|email)"\s*:\s*")[^"]*(")'),
        r"\1***\2",
    ),
    # key=value
    (
        re.compile(rf"""(?i)((?:{_SENSITIVE_KEYS})['"]?\s*[:=]\s*['"]?)([^'"\s,}}]+)"""),
        r"\1***",
    ),
    (
        re.compile(r"""(?i)(email['"]?\s*[:=]\s*['"]?)([^'"\s,}]+@[^'"\s,}]+)"""),
        r"\1***",
    ),
]


def mask_sensitive(text: str | None) -> str | None:
    """Replace tokens, keys, passwords and emails in ``text`` with ``***``."""
    if text is None:
        return None
    for pattern, replacement in _MASK_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


def _describe(value: Any) -> str:
    """Strings are masked; other objects are logged by type only."""
    if value is None:
        return "None"
    if isinstance(value, str):
        described = mask_sensitive(value) or ""
    elif isinstance(value, (int, float, bool)):
        described = repr(value)
    elif isinstance(value, (list, tuple)):
        described = f"{type(value).__name__}[{len(value)}]"
    else:
        described = type(value).__name__
    if len(described) > MAX_LOGGED_LENGTH:
        described = described[:MAX_LOGGED_LENGTH] + "..."
    return described


def timed(operation: str | None = None) -> Callable:
    """Log entry, exit, elapsed time and failures of the wrapped callable.

    Calls slower than ``SLOW_CALL_THRESHOLD_MS`` are logged at WARNING.
    Exceptions are logged and re-raised unchanged.
    """

    def decorator(func: Callable) -> Callable:
        name = operation or func.__qualname__

        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            if logger.isEnabledFor(logging.DEBUG):
                # Skip ``self`` for bound methods.
                shown = args[1:] if args and hasattr(args[0], func.__name__) else args
                params = ", ".join(
                    [_describe(a) for a in shown]
                    + [f"{k}={_describe(v)}" for k, v in kwargs.items()]
                )
                logger.debug("-> %s [%s]", name, params or "no parameters")

            started = time.perf_counter()
            try:
                result = func(*args, **kwargs)
            except Exception as e:
                elapsed_ms = (time.perf_counter() - started) * 1000
                logger.error("x %s [%.0fms] %s: %s", name, elapsed_ms, type(e).__name__, e)
                raise

            elapsed_ms = (time.perf_counter() - started) * 1000
            if elapsed_ms > SLOW_CALL_THRESHOLD_MS:
                logger.warning("SLOW %s [%.0fms]", name, elapsed_ms)
            else:
                logger.info("<- %s [%.0fms] %s", name, elapsed_ms, _describe(result))
            return result

        return wrapper

    return decorator
