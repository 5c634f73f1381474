"""Timeouts and retries for calls that leave the process."""

import asyncio
from collections.abc import Awaitable, Callable
from typing import TypeVar

import structlog
from sqlalchemy.exc import InterfaceError, OperationalError, SQLAlchemyError
from tenacity import AsyncRetrying, retry_if_exception_type, stop_after_attempt, wait_exponential

from samagra.config import settings
from samagra.core.exceptions import DependencyFailureException, DependencyTimeoutException

logger = structlog.get_logger(__name__)

T = TypeVar("T")

# Errors that usually mean a dropped or recycled connection, safe to retry for reads
TRANSIENT_STORE_ERRORS = (OperationalError, InterfaceError)


async def bounded(
    awaitable: Awaitable[T],
    operation: str,
    timeout: float | None = None,
) -> T:
    """
    Await an external call with an upper time bound.

    Args:
        awaitable: The pending call
        operation: Short name used in logs and error messages
        timeout: Seconds to wait, defaults to the configured external call timeout

    Returns:
        Result of the call

    Raises:
        DependencyTimeoutException: If the call did not finish in time
    """
    limit = timeout if timeout is not None else settings.external_call_timeout_seconds
    try:
        async with asyncio.timeout(limit):
            return await awaitable
    except TimeoutError:
        logger.warning("external_call_timed_out", operation=operation, timeout=limit)
        raise DependencyTimeoutException(f"{operation} timed out") from None


async def retry_read(
    call: Callable[[], Awaitable[T]],
    operation: str,
    recover: Callable[[], Awaitable[None]] | None = None,
) -> T:
    """
    Run an idempotent store read, retrying transient failures with backoff.

    Writes must never go through here; they surface DependencyFailureException
    and leave re-submission to the caller.

    Args:
        call: Zero-argument factory producing the read coroutine
        operation: Short name used in logs and error messages
        recover: Optional hook run after a transient failure (e.g. session rollback)

    Returns:
        Result of the read
    """
    try:
        async for attempt in AsyncRetrying(
            stop=stop_after_attempt(max(settings.store_read_retries, 1)),
            wait=wait_exponential(multiplier=0.1, max=2),
            retry=retry_if_exception_type(TRANSIENT_STORE_ERRORS),
            reraise=True,
        ):
            with attempt:
                try:
                    return await bounded(call(), operation)
                except TRANSIENT_STORE_ERRORS as e:
                    logger.warning(
                        "store_read_retrying",
                        operation=operation,
                        attempt=attempt.retry_state.attempt_number,
                        error=str(e),
                    )
                    if recover is not None:
                        await recover()
                    raise
    except SQLAlchemyError as e:
        logger.error("store_read_failed", operation=operation, error=str(e))
        raise DependencyFailureException(f"{operation} failed") from e

    raise DependencyFailureException(f"{operation} failed")  # pragma: no cover
