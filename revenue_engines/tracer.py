"""
revenue_engines.tracer -- Engine invocation tracer emitting REVENUE_ENGINE_TRACE.

Responsibility:
    Provide a decorator (``@traced_engine``) that wraps pure engine
    invocations with one structured trace record: engine_name,
    engine_version, input_fingerprint (SHA-256 over selected keyword
    arguments) and duration_ms.

Architecture position:
    Engines -- infrastructure support for the pure calculation layer.
    Emits a log record only; uses the ``revenue_kernel.engines.tracer``
    logger so it is picked up by ``configure_logging``.

Invariants enforced:
    - Fingerprints are deterministic: dataclasses are canonicalized field
      by field, dict keys are sorted, Decimals keep their exact text.
    - The decorator reads kwargs and logs; it never alters inputs or the
      wrapped function's return value.

Failure modes:
    - A fingerprint field missing from kwargs is recorded as "null".
    - Unknown types fall back to ``str(value)``.

Usage:
    from revenue_engines.tracer import traced_engine

    @traced_engine("revenue_allocation", "1.0", fingerprint_fields=("project",))
    def allocate(self, *, project, method):
        ...
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import logging
import time
from collections.abc import Callable
from decimal import Decimal
from enum import Enum
from typing import Any

_logger = logging.getLogger("revenue_kernel.engines.tracer")

TRACE_TYPE = "REVENUE_ENGINE_TRACE"


def _canonicalize(value: Any) -> str:
    """Produce a stable string representation of a value for fingerprinting."""
    if value is None:
        return "null"
    if isinstance(value, Enum):
        return str(value.value)
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float, Decimal)):
        return str(value)
    if isinstance(value, str):
        return value
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        fields = {
            f.name: getattr(value, f.name) for f in dataclasses.fields(value)
        }
        return type(value).__name__ + _canonicalize(fields)
    if isinstance(value, dict):
        items = sorted(value.items(), key=lambda kv: str(kv[0]))
        return "{" + ",".join(f"{k}:{_canonicalize(v)}" for k, v in items) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_canonicalize(v) for v in value) + "]"
    return str(value)


def compute_input_fingerprint(
    fingerprint_fields: tuple[str, ...],
    kwargs: dict[str, Any],
) -> str:
    """Return a 16-char SHA-256 prefix over the named kwargs.

    Only the fields listed in ``fingerprint_fields`` are included, in that
    order. Identical inputs always produce the identical fingerprint.
    """
    parts: list[str] = []
    for name in fingerprint_fields:
        parts.append(f"{name}={_canonicalize(kwargs.get(name))}")
    canonical = "|".join(parts)
    return hashlib.sha256(canonical.encode("utf-8")).hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable:
    """Decorator that emits REVENUE_ENGINE_TRACE for engine invocations.

    Args:
        engine_name: Engine identifier (e.g. "revenue_allocation").
        engine_version: Engine version (e.g. "1.0").
        fingerprint_fields: Keyword argument names hashed into the
            input fingerprint.
    """

    def decorator(func: Callable) -> Callable:
        @functools.wraps(func)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            fp = ""
            if fingerprint_fields:
                fp = compute_input_fingerprint(fingerprint_fields, kwargs)

            t0 = time.monotonic()
            result = func(*args, **kwargs)
            duration_ms = round((time.monotonic() - t0) * 1000, 2)

            _logger.info(
                TRACE_TYPE,
                extra={
                    "trace_type": TRACE_TYPE,
                    "engine_name": engine_name,
                    "engine_version": engine_version,
                    "input_fingerprint": fp,
                    "duration_ms": duration_ms,
                    "function": func.__qualname__,
                },
            )
            return result

        return wrapper

    return decorator
