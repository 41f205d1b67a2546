"""Fail-soft stage evaluation shared by the cache, the PDF extractor and the resolver."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, TypeVar

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

ResultT = TypeVar("ResultT")


def first_success(
    strategies: Sequence[tuple[str, Callable[[], ResultT | None]]],
    *,
    logger: logging.Logger,
    subject: str,
) -> ResultT | None:
    """Evaluate named strategies in order and return the first non-``None`` result.

    A strategy that raises any ``Exception`` is logged and skipped.
    ``None`` is returned only when every strategy is exhausted.
    """
    for name, strategy in strategies:
        try:
            result = strategy()
        except Exception as exc:
            logger.warning("Strategy %s failed for %s: %s", name, subject, exc)
            continue
        if result is not None:
            logger.debug("Strategy %s succeeded for %s", name, subject)
            return result
        logger.debug("Strategy %s produced nothing for %s", name, subject)
    return None
