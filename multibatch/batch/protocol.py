"""Driver protocols consumed by MultiBatch.

MultiBatch never imports a database driver. Anything shaped like these
protocols plugs in, e.g. ``google.cloud.firestore.Client`` / ``WriteBatch``
or ``AsyncClient`` / ``AsyncWriteBatch``.

Protocol Methods:
- Connection.batch: create a new, empty batch
- BatchHandle.delete/set/update: stage one write, no return value needed
- BatchHandle.commit: apply every staged write as one atomic unit;
  may be a coroutine function or a blocking function
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class BatchHandle(Protocol):
    """One atomic unit of writes, provided by the driver."""

    def delete(self, reference: Any) -> Any:
        """Stage a delete of the referenced document."""
        ...

    def set(self, reference: Any, document_data: Any, *args: Any, **kwargs: Any) -> Any:
        """Stage a set (create or overwrite, optionally merge) of a document."""
        ...

    def update(self, reference: Any, field_updates: Any) -> Any:
        """Stage a partial update of an existing document."""
        ...

    def commit(self) -> Any:
        """Apply all staged writes. Returns driver results or an awaitable of them."""
        ...


@runtime_checkable
class Connection(Protocol):
    """Database client able to hand out new batches.

    A connection may also expose an integer ``max_batch_operations``
    attribute; MultiBatch uses it as the hard ceiling for its limit.
    """

    def batch(self) -> BatchHandle:
        """Create a new, empty batch."""
        ...
