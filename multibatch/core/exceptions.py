"""Exceptions for multibatch.

All package exceptions inherit from MultiBatchException.
"""

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from multibatch.batch.types import CommitResult, HandleOutcome


class MultiBatchException(Exception):
    """Base exception for multibatch."""

    pass


class ConfigurationError(MultiBatchException, ValueError):
    """Raised when a MultiBatch is constructed with an invalid configuration.

    Examples:
    - limit of 0, a negative limit, or a non-integer limit
    - max_concurrency that is not a positive integer
    - a connection advertising a non-positive hard maximum
    """

    pass


class BatchStateError(MultiBatchException):
    """Raised when an operation is not valid in the aggregator's current state.

    Staging writes, resetting, or starting a second commit while a commit is
    in flight on the same instance all raise this error.
    """

    pass


class StagingError(MultiBatchException):
    """Invalid arguments to delete/set/update.

    MultiBatch does not validate references or data itself; drivers and
    adapters may raise this when they reject a write eagerly. Otherwise the
    rejection surfaces as a CommitError.
    """

    pass


class CommitError(MultiBatchException):
    """Raised when one or more underlying batch commits fail.

    Batches that committed successfully are NOT rolled back. Inspect
    ``failed_indices`` and ``succeeded_indices`` (0-based, in creation order)
    to tell partial success apart from total failure.
    """

    def __init__(self, result: "CommitResult"):
        """Initialize commit error.

        Args:
            result: Outcome of every batch submitted in the failed commit
        """
        self.result = result
        numbers = ", ".join(f"#{i + 1}" for i in result.failed_indices)
        details = "; ".join(
            f"#{o.index + 1}: {type(o.error).__name__}: {o.error}" for o in result.failures
        )
        super().__init__(
            f"{len(result.failures)} of {len(result.outcomes)} batch commit(s) failed "
            f"(batch {numbers}): {details}"
        )

    @property
    def failures(self) -> List["HandleOutcome"]:
        """Outcomes of the batches that failed."""
        return self.result.failures

    @property
    def failed_indices(self) -> List[int]:
        """Indices of the batches that failed."""
        return self.result.failed_indices

    @property
    def succeeded_indices(self) -> List[int]:
        """Indices of the batches that committed."""
        return self.result.succeeded_indices

    @property
    def is_partial(self) -> bool:
        """True when at least one batch committed despite the failure."""
        return bool(self.result.succeeded_indices)
