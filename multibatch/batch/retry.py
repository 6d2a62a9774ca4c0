"""Caller-side retry for MultiBatch commits.

MultiBatch never retries on its own: only the caller knows whether a
failure is transient and whether resubmitting already-committed batches is
safe for its data. This module packages a reasonable default policy.

Example:
    batch = MultiBatch(db, failure_policy="retain_failed")
    ...
    await commit_with_retry(batch, attempts=5)

With the default ``preserve`` policy every staged batch is resubmitted on
each attempt, including batches that already committed.
"""

from typing import Callable, Optional

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from multibatch.batch.aggregator import MultiBatch, _as_positive_int
from multibatch.batch.types import CommitResult
from multibatch.core.config import settings
from multibatch.core.exceptions import CommitError
from multibatch.core.logging import logger

# gRPC status names and HTTP codes that drivers report for retryable failures
TRANSIENT_CODES = frozenset(
    {
        "ABORTED",
        "DEADLINE_EXCEEDED",
        "RESOURCE_EXHAUSTED",
        "UNAVAILABLE",
        429,
        500,
        503,
        504,
    }
)


def _code_of(exception: BaseException):
    for attr in ("code", "status_code", "grpc_status_code"):
        code = getattr(exception, attr, None)
        if callable(code):
            try:
                code = code()
            except TypeError:
                continue
        if code is None:
            continue
        # Enum-like codes (e.g. grpc.StatusCode.UNAVAILABLE) expose .name
        return getattr(code, "name", code)
    return None


def is_transient_failure(exception: BaseException) -> bool:
    """Check if a driver exception looks transient (worth retrying).

    Handles:
    - Timeouts and connection errors
    - Exceptions carrying a retryable gRPC status or HTTP code

    Args:
        exception: Exception raised by a batch commit

    Returns:
        True if retrying the commit may succeed
    """
    if isinstance(exception, (TimeoutError, ConnectionError)):
        return True
    return _code_of(exception) in TRANSIENT_CODES


def _should_retry(
    retry_on: Callable[[BaseException], bool],
) -> Callable[[BaseException], bool]:
    def predicate(exception: BaseException) -> bool:
        if not isinstance(exception, CommitError):
            return False
        return all(retry_on(o.error) for o in exception.failures)

    return predicate


def _log_before_sleep(retry_state: RetryCallState) -> None:
    exception = retry_state.outcome.exception()
    sleep = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.with_context(attempt=retry_state.attempt_number).warning(
        f"Commit attempt failed, retrying in {sleep:.1f}s: {exception}"
    )


async def commit_with_retry(
    batch: MultiBatch,
    *,
    attempts: Optional[int] = None,
    retry_on: Optional[Callable[[BaseException], bool]] = None,
    wait=None,
) -> CommitResult:
    """Commit a MultiBatch, retrying while every failure is transient.

    Args:
        batch: MultiBatch to commit
        attempts: Total attempts including the first (defaults to
            ``settings.COMMIT_RETRY_ATTEMPTS``)
        retry_on: Predicate applied to each failed batch's exception; a
            commit is retried only if it holds for all of them
            (defaults to ``is_transient_failure``)
        wait: tenacity wait strategy (defaults to exponential backoff
            between ``settings.COMMIT_RETRY_MIN_WAIT`` and ``COMMIT_RETRY_MAX_WAIT``)

    Returns:
        CommitResult of the successful attempt

    Raises:
        CommitError: From the last attempt, or the first non-transient one
        ConfigurationError: If attempts is not a positive whole number
    """
    if attempts is None:
        attempts = settings.COMMIT_RETRY_ATTEMPTS
    attempts = _as_positive_int(attempts, "attempts")

    retrying = AsyncRetrying(
        stop=stop_after_attempt(attempts),
        retry=retry_if_exception(_should_retry(retry_on or is_transient_failure)),
        wait=wait
        or wait_exponential(
            multiplier=1,
            min=settings.COMMIT_RETRY_MIN_WAIT,
            max=settings.COMMIT_RETRY_MAX_WAIT,
        ),
        before_sleep=_log_before_sleep,
        reraise=True,
    )
    async for attempt in retrying:
        with attempt:
            return await batch.commit()
