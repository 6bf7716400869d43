# src/chaospage/types.py
"""Record and paging types produced by the chaos page source.

Records are fully materialized when a page is produced, so a host that
reads fields lazily (one column at a time) can do so from the record it
already holds without asking the source again.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from typing import Any

# Sentinel next-page value meaning "pagination is finished".
NO_MORE_PAGES = -1


@dataclass(frozen=True, slots=True)
class Record:
    """One synthetic item on a page.

    Attributes:
        id: "{page}_{index}" identifier, unique within a scenario run.
        amount: 10.0 * (page + 0.5), identical for every item on a page.
        page: Index of the page that produced this record.
    """

    id: str
    amount: float
    page: int

    @classmethod
    def synthesize(cls, page: int, index: int) -> Record:
        """Build the record at position ``index`` of ``page``."""
        return cls(id=f"{page}_{index}", amount=10.0 * (page + 0.5), page=page)

    def get(self, field_name: str) -> Any:
        """Return a single field by name.

        Raises:
            KeyError: If ``field_name`` is not a record field.
        """
        if field_name not in RECORD_FIELDS:
            raise KeyError(f"Unknown record field {field_name!r}. Valid fields: {list(RECORD_FIELDS)}")
        return getattr(self, field_name)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


RECORD_FIELDS: tuple[str, ...] = tuple(f.name for f in fields(Record))


@dataclass(frozen=True, slots=True)
class PagingResponse:
    """Pointer to the page that follows the one just served."""

    next_page: int

    @property
    def is_last(self) -> bool:
        return self.next_page == NO_MORE_PAGES


@dataclass(frozen=True, slots=True)
class Page:
    """A successfully served page: its records plus the paging response."""

    index: int
    items: tuple[Record, ...]
    response: PagingResponse

    @property
    def next_page(self) -> int:
        return self.response.next_page

    def __len__(self) -> int:
        return len(self.items)


@dataclass(slots=True)
class FailureState:
    """Failure counter for one scenario run.

    Owned by the caller and handed to a PageSource at construction. Not
    safe to share between concurrent runs: callers racing on the same
    state see an unpredictable failure schedule.
    """

    error_count: int = 0
    # Total fetch attempts seen per page index (successful or not).
    requests: dict[int, int] = field(default_factory=dict)

    def reset(self) -> None:
        self.error_count = 0
        self.requests.clear()
