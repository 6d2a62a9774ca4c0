"""Commit outcome dataclasses.

A commit submits every staged batch; each batch yields one HandleOutcome.
CommitResult groups them in batch creation order.
"""

from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class HandleOutcome:
    """Outcome of committing one underlying batch."""

    index: int  # Position of the batch in creation order (0-based)
    operation_count: int
    result: Any = None  # Whatever the driver's commit() returned (e.g. list of WriteResult)
    error: Optional[BaseException] = None

    @property
    def succeeded(self) -> bool:
        """Check if this batch committed."""
        return self.error is None


@dataclass
class CommitResult:
    """Outcomes of all batches submitted by one commit() call."""

    outcomes: List[HandleOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        """True only when every batch committed."""
        return all(o.succeeded for o in self.outcomes)

    @property
    def failures(self) -> List[HandleOutcome]:
        """Outcomes of the batches that failed."""
        return [o for o in self.outcomes if not o.succeeded]

    @property
    def failed_indices(self) -> List[int]:
        return [o.index for o in self.outcomes if not o.succeeded]

    @property
    def succeeded_indices(self) -> List[int]:
        return [o.index for o in self.outcomes if o.succeeded]

    @property
    def results(self) -> List[Any]:
        """Per-batch driver results, in batch order (None for failed batches)."""
        return [o.result for o in self.outcomes]

    @property
    def operation_count(self) -> int:
        """Total operations across all submitted batches."""
        return sum(o.operation_count for o in self.outcomes)

    def summary(self) -> str:
        """Get a summary string of the commit."""
        return (
            f"{len(self.outcomes)} batches, {self.operation_count} operations, "
            f"{len(self.failures)} failed"
        )
