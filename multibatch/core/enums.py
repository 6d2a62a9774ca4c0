"""Enums shared by the batch aggregator and its settings."""

from enum import Enum


class FailurePolicy(str, Enum):
    """What a MultiBatch keeps staged after a commit in which some batch failed.

    Batches are independent atomic units, so after a partial failure some
    writes are already durable. The policy decides what the next commit()
    resubmits.
    """

    PRESERVE = "preserve"  # keep every batch; next commit resubmits all of them
    RETAIN_FAILED = "retain_failed"  # keep only the batches that failed
    RESET = "reset"  # drop everything, as after a successful commit


class AggregatorState(str, Enum):
    """Lifecycle state of a MultiBatch instance."""

    ACCUMULATING = "accumulating"
    COMMITTING = "committing"
    FAILED = "failed"
