# src/chaospage/sinks.py
"""Record sinks for the paginating lister.

A sink is any ``Callable[[Record], None]``. These two cover the common
test needs: keep every record, or just tally them.
"""

from __future__ import annotations

from collections import Counter

from chaospage.types import Record


class CollectingSink:
    """Keeps every emitted record, in order."""

    def __init__(self) -> None:
        self.records: list[Record] = []

    def __call__(self, record: Record) -> None:
        self.records.append(record)

    def __len__(self) -> int:
        return len(self.records)

    @property
    def ids(self) -> list[str]:
        return [r.id for r in self.records]


class CountingSink:
    """Tallies records without keeping them.

    ``amount_sum`` is the sum of ``Record.amount`` over everything emitted,
    the aggregate the bug-cache-sum scenario checks.
    """

    def __init__(self) -> None:
        self.count = 0
        self.amount_sum = 0.0
        self.per_page: Counter[int] = Counter()

    def __call__(self, record: Record) -> None:
        self.count += 1
        self.amount_sum += record.amount
        self.per_page[record.page] += 1
