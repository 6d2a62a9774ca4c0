"""Batch aggregation: stage writes across driver batches and commit them together."""

from multibatch.batch.aggregator import MultiBatch
from multibatch.batch.protocol import BatchHandle, Connection
from multibatch.batch.retry import commit_with_retry, is_transient_failure
from multibatch.batch.types import CommitResult, HandleOutcome

__all__ = [
    "MultiBatch",
    "BatchHandle",
    "Connection",
    "CommitResult",
    "HandleOutcome",
    "commit_with_retry",
    "is_transient_failure",
]
