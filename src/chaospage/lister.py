# src/chaospage/lister.py
"""Retry-driven pagination loop over a PageSource.

Pages are fetched strictly in order. Page N+1 is never requested until
page N has been retried to a conclusion and every one of its records has
been handed to the sink.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass, field

from chaospage.errors import ListingCancelled
from chaospage.logging import get_logger
from chaospage.retry import RetryPolicy
from chaospage.source import PageSource
from chaospage.types import NO_MORE_PAGES, Page, Record

logger = get_logger(__name__)


@dataclass
class ListingStats:
    """Progress of one listing, updated per record and per page."""

    records_emitted: int = 0
    pages_fetched: int = 0
    # page index -> fetch attempts, including the successful one
    attempts_by_page: dict[int, int] = field(default_factory=dict)

    @property
    def total_attempts(self) -> int:
        return sum(self.attempts_by_page.values())

    @property
    def retries(self) -> int:
        """Attempts beyond the first, summed over all pages."""
        return sum(n - 1 for n in self.attempts_by_page.values() if n > 1)


class PaginatingLister:
    """Streams every record of a PageSource to a sink.

    Example:
        lister = PaginatingLister(PageSource(ScenarioConfig()))
        sink = CollectingSink()
        stats = lister.list(sink, RetryPolicy(RetryConfig(max_attempts=6)))
    """

    def __init__(self, source: PageSource) -> None:
        self._source = source
        self._last_stats: ListingStats | None = None

    @property
    def source(self) -> PageSource:
        return self._source

    @property
    def last_stats(self) -> ListingStats | None:
        """Stats of the most recent listing, including one that raised."""
        return self._last_stats

    def list(
        self,
        sink: Callable[[Record], None],
        retry_policy: RetryPolicy,
        *,
        shutdown_event: threading.Event | None = None,
        stats: ListingStats | None = None,
    ) -> ListingStats:
        """Fetch pages from 0 until NO_MORE_PAGES, streaming records to sink.

        Args:
            sink: Called once per record, in page order.
            retry_policy: Wraps every page fetch.
            shutdown_event: When set, the listing stops before the next
                fetch or during a retry back-off.
            stats: Progress object to fill in (default: a new one). Passing
                one lets the caller read progress after an error.

        Returns:
            Stats for the completed listing.

        Raises:
            ListingCancelled: If shutdown_event was set.
            Exception: The first error the retry policy gives up on,
                unchanged. Records from earlier pages have already been
                emitted by then.
        """
        if stats is None:
            stats = ListingStats()
        self._last_stats = stats
        current_page = 0

        while True:
            if shutdown_event is not None and shutdown_event.is_set():
                logger.info("listing cancelled", page=current_page, records=stats.records_emitted)
                raise ListingCancelled(current_page)

            page = self._fetch_with_retry(current_page, retry_policy, stats, shutdown_event)

            for item in page.items:
                sink(item)
                stats.records_emitted += 1
            stats.pages_fetched += 1
            logger.debug(
                "page streamed",
                page=current_page,
                records=len(page),
                attempts=stats.attempts_by_page[current_page],
                next_page=page.next_page,
            )

            current_page = page.next_page
            if current_page == NO_MORE_PAGES:
                break

        logger.info(
            "listing complete",
            pages=stats.pages_fetched,
            records=stats.records_emitted,
            retries=stats.retries,
        )
        return stats

    def _fetch_with_retry(
        self,
        page_index: int,
        retry_policy: RetryPolicy,
        stats: ListingStats,
        shutdown_event: threading.Event | None,
    ) -> Page:
        def _attempt() -> Page:
            stats.attempts_by_page[page_index] = stats.attempts_by_page.get(page_index, 0) + 1
            return self._source.fetch_page(page_index)

        try:
            return retry_policy.invoke(_attempt, shutdown_event=shutdown_event)
        except ListingCancelled as e:
            logger.info("listing cancelled during retry back-off", page=page_index, records=stats.records_emitted)
            raise ListingCancelled(page_index) from e
        except Exception as e:
            logger.warning(
                "page fetch failed",
                page=page_index,
                attempts=stats.attempts_by_page.get(page_index, 0),
                records=stats.records_emitted,
                error=str(e),
                error_type=type(e).__name__,
            )
            raise
