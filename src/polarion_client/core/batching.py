"""
Greedy partitioning of resources into create batches.

Each batch is posted as ``{"data":[item,item,...]}``. Its size is the
envelope plus the items plus one comma between consecutive items, which is
exactly what codec.dumps produces. Every emitted batch satisfies
``len(items) <= max_count`` and ``size <= max_bytes``; input order is kept.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, List, Sequence, TypeVar

from .codec import encoded_size

T = TypeVar("T")

ENVELOPE_OVERHEAD = len(b'{"data":[]}')


@dataclass
class Batch(Generic[T]):
    items: List[T] = field(default_factory=list)
    size: int = 0

    def __len__(self) -> int:
        return len(self.items)


@dataclass(frozen=True)
class OversizedItem:
    """An input that cannot fit even alone in a batch."""

    index: int
    size: int


@dataclass
class BatchPlan(Generic[T]):
    batches: List[Batch[T]]
    oversized: List[OversizedItem]

    @property
    def item_count(self) -> int:
        return sum(len(b) for b in self.batches)


def plan_batches(
    items: Sequence[T],
    max_count: int,
    max_bytes: int,
    *,
    size_of: Callable[[T], int] = encoded_size,  # type: ignore[assignment]
    overhead: int = ENVELOPE_OVERHEAD,
    separator: int = 1,
) -> BatchPlan[T]:
    """
    Partition items and report the ones skipped for size.

    An item is oversized when ``size + overhead > max_bytes``. A new batch is
    started when adding the next item would break either limit.
    """
    if max_count < 1:
        raise ValueError("max_count must be >= 1")
    if max_bytes < 1:
        raise ValueError("max_bytes must be >= 1")

    batches: List[Batch[T]] = []
    oversized: List[OversizedItem] = []
    current: Batch[T] = Batch()

    for index, item in enumerate(items):
        size = size_of(item)
        if size + overhead > max_bytes:
            oversized.append(OversizedItem(index=index, size=size))
            continue

        if current.items:
            projected = current.size + separator + size
            if projected > max_bytes or len(current.items) >= max_count:
                batches.append(current)
                current = Batch(items=[item], size=overhead + size)
            else:
                current.items.append(item)
                current.size = projected
        else:
            current.items.append(item)
            current.size = overhead + size

    if current.items:
        batches.append(current)
    return BatchPlan(batches=batches, oversized=oversized)


def partition(
    items: Sequence[T],
    max_count: int,
    max_bytes: int,
    *,
    size_of: Callable[[T], int] = encoded_size,  # type: ignore[assignment]
    overhead: int = ENVELOPE_OVERHEAD,
    separator: int = 1,
) -> List[Batch[T]]:
    """Batches only; oversized items are silently left out (see plan_batches)."""
    return plan_batches(
        items,
        max_count,
        max_bytes,
        size_of=size_of,
        overhead=overhead,
        separator=separator,
    ).batches


__all__ = [
    "ENVELOPE_OVERHEAD",
    "Batch",
    "BatchPlan",
    "OversizedItem",
    "partition",
    "plan_batches",
]
