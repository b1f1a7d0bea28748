"""Ordered fallback attempts.

Several Yunxiao operations exist under more than one endpoint or accept more
than one spelling of a value. Callers describe the alternatives as an ordered
list of ``(label, fn)`` pairs and take the first one that succeeds.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Generic, Iterable, TypeVar

from yx_core.errors import AttemptsExhaustedError, YxError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass
class Attempt(Generic[T]):
    label: str
    value: T


def first_success(
    attempts: Iterable[tuple[str, Callable[[], T]]],
    failure_message: str,
    should_continue: Callable[[YxError], bool] | None = None,
) -> Attempt[T]:
    """Run *attempts* in order and return the first that succeeds.

    A failing attempt moves on to the next one unless *should_continue*
    rejects its error, in which case the error propagates unchanged.
    Raises AttemptsExhaustedError carrying the last error when none succeed.
    """
    last_error: YxError | None = None
    for label, fn in attempts:
        try:
            return Attempt(label=label, value=fn())
        except YxError as exc:
            if should_continue is not None and not should_continue(exc):
                raise
            logger.debug("Attempt %s failed: %s", label, exc)
            last_error = exc

    detail = str(last_error) if last_error is not None else "no attempts were made"
    raise AttemptsExhaustedError(f"{failure_message}. Last error: {detail}", last_error=last_error)
