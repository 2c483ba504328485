"""
Debug tracing for pure engine calls.

``@traced_engine`` logs one ``engine_invoked`` record per call with the
engine name and version, how long the call took, and a short hash of the
arguments it was given.  Two calls with the same hash saw the same inputs,
which is enough to tell whether a recomputed order total could differ from
the stored one.

Engines stay pure: the decorator reads arguments and writes a log record,
nothing else.
"""

from __future__ import annotations

import dataclasses
import functools
import hashlib
import inspect
import logging
import time
from collections.abc import Callable, Mapping
from typing import Any

from stock_kernel.logging_config import get_logger

_logger = get_logger("engines.tracer")


def _stable_text(value: Any) -> str:
    if value is None:
        return "~"
    if isinstance(value, str):
        return value
    if isinstance(value, Mapping):
        return "{" + ",".join(
            f"{key}:{_stable_text(value[key])}" for key in sorted(value, key=str)
        ) + "}"
    if isinstance(value, (list, tuple)):
        return "[" + ",".join(_stable_text(item) for item in value) + "]"
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return _stable_text(dataclasses.asdict(value))
    # Decimal keeps its exponent in str(), so 1.0 and 1.00 hash differently.
    return str(value)


def input_fingerprint(arguments: Mapping[str, Any], names: tuple[str, ...]) -> str:
    """First 16 hex chars of a SHA-256 over the named arguments."""
    digest = hashlib.sha256()
    for name in names:
        digest.update(f"{name}={_stable_text(arguments.get(name))};".encode())
    return digest.hexdigest()[:16]


def traced_engine(
    engine_name: str,
    engine_version: str,
    fingerprint_fields: tuple[str, ...] = (),
) -> Callable[[Callable[..., Any]], Callable[..., Any]]:
    def decorate(func: Callable[..., Any]) -> Callable[..., Any]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        def call(*args: Any, **kwargs: Any) -> Any:
            started = time.perf_counter()
            result = func(*args, **kwargs)
            elapsed_ms = (time.perf_counter() - started) * 1000

            if _logger.isEnabledFor(logging.DEBUG):
                bound = signature.bind(*args, **kwargs)
                _logger.debug(
                    "engine_invoked",
                    extra={
                        "engine_name": engine_name,
                        "engine_version": engine_version,
                        "input_fingerprint": input_fingerprint(
                            bound.arguments, fingerprint_fields
                        )
                        if fingerprint_fields
                        else None,
                        "duration_ms": round(elapsed_ms, 3),
                    },
                )
            return result

        return call

    return decorate
