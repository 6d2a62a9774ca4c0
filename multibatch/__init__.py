"""multibatch - write batches for document databases without tracking the batch limit."""

from multibatch.batch import (
    BatchHandle,
    CommitResult,
    Connection,
    HandleOutcome,
    MultiBatch,
    commit_with_retry,
    is_transient_failure,
)
from multibatch.core.config import BATCH_LIMIT, Settings, settings
from multibatch.core.enums import AggregatorState, FailurePolicy
from multibatch.core.exceptions import (
    BatchStateError,
    CommitError,
    ConfigurationError,
    MultiBatchException,
    StagingError,
)

__version__ = "0.1.0"

__all__ = [
    "MultiBatch",
    "BATCH_LIMIT",
    "BatchHandle",
    "Connection",
    "CommitResult",
    "HandleOutcome",
    "AggregatorState",
    "FailurePolicy",
    "commit_with_retry",
    "is_transient_failure",
    "Settings",
    "settings",
    "MultiBatchException",
    "ConfigurationError",
    "CommitError",
    "BatchStateError",
    "StagingError",
]
