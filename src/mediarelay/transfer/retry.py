"""Bounded exponential backoff for transient transfer failures."""

import logging
from typing import Any, Awaitable, Callable

from tenacity import AsyncRetrying, RetryCallState, retry_if_exception_type, wait_exponential

from mediarelay.core.exceptions import TransientNetworkError
from mediarelay.transfer.config import TransferConfig

logger = logging.getLogger(__name__)


def _log_retry(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception() if retry_state.outcome else None
    logger.warning(
        "Transient upload failure, backing off",
        extra={
            "attempt": retry_state.attempt_number,
            "backoff_seconds": retry_state.next_action.sleep if retry_state.next_action else None,
            "error": str(exception),
        },
    )


def backoff_retrying(
    config: TransferConfig,
    exhausted: Callable[[], bool],
    sleep: Callable[[float], Awaitable[Any]],
) -> AsyncRetrying:
    """Build a retry loop over TransientNetworkError.

    The attempt budget lives with the caller: ``exhausted`` is consulted after
    every failed attempt, so the caller decrements its own counter inside the
    attempt and the loop stops once it reaches zero. Delays start at
    ``backoff_base_seconds`` and double up to ``backoff_cap_seconds``.

    Usage::

        async for attempt in backoff_retrying(config, exhausted, sleep):
            with attempt:
                ...
    """
    return AsyncRetrying(
        stop=lambda retry_state: exhausted(),
        wait=wait_exponential(
            multiplier=config.backoff_base_seconds, max=config.backoff_cap_seconds
        ),
        retry=retry_if_exception_type(TransientNetworkError),
        before_sleep=_log_retry,
        sleep=sleep,
        reraise=True,
    )
