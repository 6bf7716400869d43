# src/chaospage/errors.py
"""Exceptions raised by the chaos page source, retry policy and lister.

Two failure kinds come out of a PageSource:

- InvalidPageError: the caller asked for the page past the valid range.
  Fatal, never retried.
- RetriableError: a simulated transient failure. Its message is a fixed
  sentinel so that message-matching retry classifiers recognise it.

ListingCancelled is raised when the caller's shutdown event fires between
pages or while a retry back-off is waiting.
"""

from __future__ import annotations

# Message carried by every injected transient failure.
RETRIABLE_ERROR_MESSAGE = "retriable error"

INVALID_PAGE_MESSAGE = "invalid page"


class ChaosPageError(Exception):
    """Base class for chaospage errors."""


class InvalidPageError(ChaosPageError):
    """Raised when the requested page is the one past the valid range.

    Attributes:
        page_index: The page that was requested.
        max_pages: Number of valid pages in the scenario.
    """

    def __init__(self, page_index: int, max_pages: int) -> None:
        self.page_index = page_index
        self.max_pages = max_pages
        super().__init__(INVALID_PAGE_MESSAGE)


class RetriableError(ChaosPageError):
    """Injected transient failure.

    ``str(error)`` is always RETRIABLE_ERROR_MESSAGE; the page and the
    1-based failure number travel as attributes.
    """

    def __init__(self, page_index: int, attempt: int) -> None:
        self.page_index = page_index
        self.attempt = attempt
        super().__init__(RETRIABLE_ERROR_MESSAGE)


class ListingCancelled(ChaosPageError):
    """Raised when a listing is cancelled before it finished.

    Attributes:
        page_index: Page that would have been fetched next, or None if
            cancellation happened outside a listing.
    """

    def __init__(self, page_index: int | None = None) -> None:
        self.page_index = page_index
        where = f" before page {page_index}" if page_index is not None else ""
        super().__init__(f"Listing cancelled{where}")
