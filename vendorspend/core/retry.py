"""
Retry-with-backoff for transient external calls.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type, TypeVar

from tenacity import (
    RetryError,
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from vendorspend.core.config import settings
from vendorspend.core.exceptions import ExternalServiceError, TransientExternalError
from vendorspend.core.metrics import EXTERNAL_CALL_RETRIES

logger = logging.getLogger(__name__)

T = TypeVar("T")


async def retry_with_backoff(
    operation: Callable[[], Awaitable[T]],
    operation_name: str,
    max_attempts: Optional[int] = None,
    initial_delay: Optional[float] = None,
    multiplier: Optional[float] = None,
    retry_on: Tuple[Type[BaseException], ...] = (TransientExternalError,),
    context: Optional[Dict[str, Any]] = None,
) -> T:
    """
    Await ``operation`` until it succeeds or ``max_attempts`` is reached.

    Delays grow as ``initial_delay * multiplier ** (attempt - 1)``. Only
    exceptions listed in ``retry_on`` are retried; anything else propagates
    immediately. Running out of attempts raises ExternalServiceError carrying
    the operation name and caller context.
    """
    max_attempts = max_attempts or settings.RETRY_MAX_ATTEMPTS
    initial_delay = settings.RETRY_INITIAL_DELAY if initial_delay is None else initial_delay
    multiplier = multiplier or settings.RETRY_BACKOFF_MULTIPLIER
    context = context or {}

    def _log_retry(retry_state):
        EXTERNAL_CALL_RETRIES.labels(operation=operation_name).inc()
        logger.warning(
            f"Retrying {operation_name} (attempt {retry_state.attempt_number}/{max_attempts}): "
            f"{retry_state.outcome.exception()}"
        )

    @retry(
        stop=stop_after_attempt(max_attempts),
        wait=wait_exponential(multiplier=initial_delay, exp_base=multiplier, min=0),
        retry=retry_if_exception_type(retry_on),
        before_sleep=_log_retry,
    )
    async def _attempt():
        return await operation()

    try:
        return await _attempt()
    except RetryError as e:
        last_error = e.last_attempt.exception()
        logger.error(
            f"{operation_name} failed after {max_attempts} attempts: {last_error} "
            f"context={context}"
        )
        raise ExternalServiceError(
            f"{operation_name} failed after {max_attempts} attempts",
            details={
                "operation": operation_name,
                "attempts": max_attempts,
                "last_error": str(last_error),
                **{k: str(v) for k, v in context.items()},
            },
        ) from last_error
