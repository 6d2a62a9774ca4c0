"""MultiBatch: write batches without tracking the per-batch operation cap.

Provides the same staging operations as a driver batch (delete/set/update)
but spreads them over as many underlying batches as needed, and commits
them all concurrently with a single call.

Usage:
    from multibatch import MultiBatch

    batch = MultiBatch(db)  # limit defaults to the driver's hard maximum
    for ref in refs:
        batch.delete(ref)
    batch.set(doc_ref, {"name": "x"}).update(other_ref, {"count": 2})
    await batch.commit()

Writes split across batch boundaries are NOT atomic as a whole: each
underlying batch commits or fails on its own.
"""

import asyncio
import inspect
import numbers
import threading
from typing import Any, List, Optional, Tuple, Union

from multibatch.batch.protocol import BatchHandle, Connection
from multibatch.batch.types import CommitResult, HandleOutcome
from multibatch.core.config import settings
from multibatch.core.enums import AggregatorState, FailurePolicy
from multibatch.core.exceptions import BatchStateError, CommitError, ConfigurationError
from multibatch.core.logging import ContextualLogger, LoggerConfigurator

# Distinguishes "options not passed" from an explicit None / {} options value
_OMITTED: Any = object()


def _as_positive_int(value: Any, name: str) -> int:
    """Coerce a whole-number value (int, numpy integer, 10.0) to a positive int.

    Raises:
        ConfigurationError: If value is a bool, not a whole number, or <= 0
    """
    if isinstance(value, numbers.Integral) and not isinstance(value, bool):
        number = int(value)
    elif isinstance(value, float) and value.is_integer():
        number = int(value)
    else:
        raise ConfigurationError(f"{name} must be a positive whole number, got {value!r}")
    if number <= 0:
        raise ConfigurationError(f"{name} must be a positive whole number, got {value!r}")
    return number


class MultiBatch:
    """Stages writes across multiple driver batches to work around the batch limit.

    Batches are filled strictly left to right: a batch never receives another
    write once a later batch exists, and no batch holds more than ``limit``
    writes.

    Not meant to be shared between concurrent writers without care: staging
    is guarded by a lock, but staging while a commit is in flight raises
    BatchStateError.
    """

    def __init__(
        self,
        connection: Connection,
        limit: Optional[int] = None,
        *,
        failure_policy: Optional[Union[FailurePolicy, str]] = None,
        max_concurrency: Optional[int] = None,
        logger: Optional[ContextualLogger] = None,
    ):
        """Create a MultiBatch on top of a driver connection.

        Args:
            connection: Database client exposing ``batch()``
            limit: Writes per underlying batch. Clamped to the connection's
                hard maximum; defaults to that maximum when omitted.
            failure_policy: What stays staged after a partially failed commit
                (defaults to ``settings.FAILURE_POLICY``)
            max_concurrency: Max batch commits in flight at once
                (defaults to ``settings.MAX_COMMIT_CONCURRENCY``; None = all)
            logger: Contextual logger to use instead of the module default

        Raises:
            ConfigurationError: If limit or max_concurrency is not a positive
                whole number, or the connection advertises an invalid maximum
        """
        hard_limit = self._resolve_hard_limit(connection)

        if limit is None:
            effective_limit = hard_limit
        else:
            effective_limit = min(_as_positive_int(limit, "limit"), hard_limit)

        if max_concurrency is None:
            max_concurrency = settings.MAX_COMMIT_CONCURRENCY
        if max_concurrency is not None:
            max_concurrency = _as_positive_int(max_concurrency, "max_concurrency")

        try:
            policy = FailurePolicy(failure_policy or settings.FAILURE_POLICY)
        except ValueError as e:
            raise ConfigurationError(f"Unknown failure policy: {failure_policy!r}") from e

        self._connection = connection
        self._limit: int = effective_limit
        self._max_concurrency: Optional[int] = max_concurrency
        self._failure_policy: FailurePolicy = policy
        self._logger = logger or LoggerConfigurator.configure_logger(
            __name__, dimensions={"limit": effective_limit}
        )

        self._lock = threading.Lock()
        self._state = AggregatorState.ACCUMULATING
        self._last_result: Optional[CommitResult] = None

        self._batches: List[BatchHandle] = []
        self._counts: List[int] = []  # Writes staged per batch, parallel to _batches
        self._pending = 0
        self._reset_locked()

    @staticmethod
    def _resolve_hard_limit(connection: Connection) -> int:
        advertised = getattr(connection, "max_batch_operations", None)
        if advertised is None:
            return settings.BATCH_HARD_LIMIT
        return _as_positive_int(advertised, "connection max_batch_operations")

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def connection(self) -> Connection:
        return self._connection

    @property
    def limit(self) -> int:
        """Maximum writes per underlying batch."""
        return self._limit

    @property
    def failure_policy(self) -> FailurePolicy:
        return self._failure_policy

    @property
    def max_concurrency(self) -> Optional[int]:
        return self._max_concurrency

    @property
    def batches(self) -> Tuple[BatchHandle, ...]:
        """Staged driver batches in creation order (a snapshot)."""
        with self._lock:
            return tuple(self._batches)

    @property
    def batch_count(self) -> int:
        with self._lock:
            return len(self._batches)

    @property
    def pending_count(self) -> int:
        """Writes already placed in the current (last) batch."""
        with self._lock:
            return self._pending

    @property
    def operation_count(self) -> int:
        """Writes staged across all batches since the last reset."""
        with self._lock:
            return sum(self._counts)

    @property
    def state(self) -> AggregatorState:
        return self._state

    @property
    def last_result(self) -> Optional[CommitResult]:
        """Outcome of the most recent commit attempt, if any."""
        return self._last_result

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}(limit={self._limit}, batches={len(self._batches)}, "
            f"operations={sum(self._counts)}, state={self._state.value})"
        )

    # -------------------------------------------------------------------------
    # Staging
    # -------------------------------------------------------------------------

    def delete(self, reference: Any) -> "MultiBatch":
        """Stage a delete of the referenced document.

        Args:
            reference: Driver document reference

        Returns:
            This MultiBatch, for chaining
        """
        return self._stage("delete", reference)

    def set(self, reference: Any, document_data: Any, options: Any = _OMITTED) -> "MultiBatch":
        """Stage a set of the referenced document.

        ``options`` (e.g. ``merge=True`` settings) is forwarded only when passed:
        the driver may treat an explicit empty value differently from no value.

        Args:
            reference: Driver document reference
            document_data: Document contents
            options: Driver set options

        Returns:
            This MultiBatch, for chaining
        """
        if options is _OMITTED:
            return self._stage("set", reference, document_data)
        return self._stage("set", reference, document_data, options)

    def update(self, reference: Any, field_updates: Any) -> "MultiBatch":
        """Stage an update of the referenced document.

        Args:
            reference: Driver document reference
            field_updates: Fields to change

        Returns:
            This MultiBatch, for chaining
        """
        return self._stage("update", reference, field_updates)

    def _stage(self, operation: str, *args: Any) -> "MultiBatch":
        # Target selection and counting form one critical section so that
        # concurrent writers never push a batch past the limit.
        with self._lock:
            self._ensure_not_committing(operation)
            batch_count, pending = len(self._batches), self._pending
            target = self._acquire_target()
            try:
                getattr(target, operation)(*args)
            except Exception:
                # A write rejected by the driver must not leave an empty batch behind
                if len(self._batches) > batch_count:
                    self._batches.pop()
                    self._counts.pop()
                    self._pending = pending
                raise
            self._pending += 1
            self._counts[-1] += 1
        return self

    def _acquire_target(self) -> BatchHandle:
        """Return the batch with spare capacity, opening a new one when full.

        Must be called with the lock held.
        """
        if self._pending < self._limit:
            return self._batches[-1]

        batch = self._connection.batch()
        self._batches.append(batch)
        self._counts.append(0)
        self._pending = 0
        self._logger.debug(f"Opened batch #{len(self._batches)}")
        return batch

    # -------------------------------------------------------------------------
    # Commit
    # -------------------------------------------------------------------------

    async def commit(self) -> CommitResult:
        """Commit every staged batch concurrently and wait for all of them.

        A failing batch does not cancel the others; every batch is allowed to
        finish so the full set of failures is visible.

        Returns:
            CommitResult with one outcome per batch, in creation order

        Raises:
            CommitError: If any batch failed. Successful batches are not rolled
                back. What remains staged depends on the failure policy.
            BatchStateError: If a commit is already in flight
        """
        with self._lock:
            self._ensure_not_committing("commit")
            self._state = AggregatorState.COMMITTING
            batches = list(self._batches)
            counts = list(self._counts)

        self._logger.debug(
            f"Committing {len(batches)} batch(es) with {sum(counts)} operation(s)"
        )

        semaphore = asyncio.Semaphore(self._max_concurrency) if self._max_concurrency else None
        tasks = [
            asyncio.create_task(
                self._commit_batch(batch, semaphore), name=f"multibatch-commit-{index}"
            )
            for index, batch in enumerate(batches)
        ]

        try:
            # Wait for all - failures are collected, not raised
            results = await asyncio.gather(*tasks, return_exceptions=True)
        except asyncio.CancelledError:
            with self._lock:
                self._state = AggregatorState.FAILED
            self._logger.warning("Commit cancelled; staged batches kept")
            raise

        outcomes = []
        for index, (count, result) in enumerate(zip(counts, results, strict=True)):
            if isinstance(result, BaseException):
                self._logger.with_context(batch=index + 1, operations=count).error(
                    f"Batch commit failed: {type(result).__name__}: {result}"
                )
                outcomes.append(HandleOutcome(index=index, operation_count=count, error=result))
            else:
                outcomes.append(HandleOutcome(index=index, operation_count=count, result=result))
        commit_result = CommitResult(outcomes=outcomes)

        with self._lock:
            self._last_result = commit_result
            if commit_result.succeeded:
                self._reset_locked()
            else:
                self._apply_failure_policy_locked(commit_result, batches, counts)

        if commit_result.succeeded:
            self._logger.info(f"Committed {commit_result.summary()}")
            return commit_result

        self._logger.error(
            f"Commit failed ({commit_result.summary()}); policy={self._failure_policy.value}"
        )
        raise CommitError(commit_result) from commit_result.failures[0].error

    async def _commit_batch(
        self, batch: BatchHandle, semaphore: Optional[asyncio.Semaphore]
    ) -> Any:
        if semaphore is None:
            return await self._run_commit(batch)
        async with semaphore:
            return await self._run_commit(batch)

    @staticmethod
    async def _run_commit(batch: BatchHandle) -> Any:
        """Run a driver commit, off the event loop when the driver is blocking."""
        if inspect.iscoroutinefunction(batch.commit):
            return await batch.commit()

        result = await asyncio.to_thread(batch.commit)
        if inspect.isawaitable(result):
            result = await result
        return result

    # -------------------------------------------------------------------------
    # State management
    # -------------------------------------------------------------------------

    def reset(self) -> None:
        """Discard every staged batch and start over with a fresh one.

        Raises:
            BatchStateError: If a commit is in flight
        """
        with self._lock:
            self._ensure_not_committing("reset")
            dropped = sum(self._counts)
            self._reset_locked()
        if dropped:
            self._logger.warning(f"Discarded {dropped} staged operation(s)")

    def _reset_locked(self) -> None:
        self._batches = [self._connection.batch()]
        self._counts = [0]
        self._pending = 0
        self._state = AggregatorState.ACCUMULATING

    def _apply_failure_policy_locked(
        self, result: CommitResult, batches: List[BatchHandle], counts: List[int]
    ) -> None:
        policy = self._failure_policy
        if policy is FailurePolicy.RESET:
            self._reset_locked()
            return

        if policy is FailurePolicy.RETAIN_FAILED:
            failed = result.failed_indices
            self._batches = [batches[i] for i in failed]
            self._counts = [counts[i] for i in failed]
            # Failed batches are closed: the next write opens a fresh batch
            self._pending = self._limit

        self._state = AggregatorState.FAILED

    def _ensure_not_committing(self, operation: str) -> None:
        if self._state is AggregatorState.COMMITTING:
            raise BatchStateError(f"Cannot {operation} while a commit is in flight")
