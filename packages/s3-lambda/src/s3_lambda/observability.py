"""Structured log lines and progress reporting for batch requests."""

import logging
from collections.abc import Mapping

from tqdm import tqdm


def _kv_pairs(fields: Mapping[str, object]) -> str:
    parts: list[str] = []
    for key, value in fields.items():
        if value is None:
            continue
        text = str(value).strip()
        if not text:
            continue
        parts.append(f"{key}={text}")
    return " ".join(parts)


def log_event(
    logger: logging.Logger,
    message: str,
    level: int = logging.INFO,
    **fields: object,
) -> None:
    """Emit a stable structured log line.

    Key fields are appended as ``k=v`` tokens so plain-text log sinks stay greppable.
    """
    if not logger.isEnabledFor(level):
        return
    suffix = _kv_pairs(fields)
    if suffix:
        logger.log(level, "%s %s", message, suffix)
    else:
        logger.log(level, "%s", message)


def progress_bar(operation: str, total: int, *, enabled: bool) -> tqdm:
    """Create a progress bar that ticks once per finished object."""
    return tqdm(total=total, desc=operation, unit="obj", disable=not enabled, leave=False)
