# src/chaospage/source.py
"""Deterministic fault-injecting page source.

Stands in for a paginated API. Every page is synthesized from its index
alone, except the designated failing page, which raises RetriableError
the first ``failure_count`` times it is requested and succeeds from then
on. The failure counter lives in a caller-owned FailureState so each
scenario run starts clean and runs stay isolated from one another.

Usage:
    source = PageSource(ScenarioConfig())
    page = source.fetch_page(0)
    page.items[0].id      # "0_0"
    page.next_page        # 1
"""

from __future__ import annotations

from chaospage.config import ScenarioConfig
from chaospage.errors import InvalidPageError, RetriableError
from chaospage.logging import get_logger
from chaospage.types import NO_MORE_PAGES, FailureState, Page, PagingResponse, Record

logger = get_logger(__name__)


class PageSource:
    """Serves pages for one scenario run.

    Not thread-safe. A FailureState shared between concurrent callers
    gives each of them an unpredictable share of the injected failures.
    """

    def __init__(self, config: ScenarioConfig, state: FailureState | None = None) -> None:
        """Initialize the source.

        Args:
            config: Page shape and failure schedule.
            state: Failure counter for this run. A fresh one is created
                when omitted.
        """
        self._config = config
        self._state = state if state is not None else FailureState()

    @property
    def config(self) -> ScenarioConfig:
        return self._config

    @property
    def state(self) -> FailureState:
        return self._state

    @property
    def failures_remaining(self) -> int:
        """Injected failures the designated page still has to serve."""
        return max(0, self._config.failure_count - self._state.error_count)

    def fetch_page(self, page_index: int) -> Page:
        """Serve one page.

        Args:
            page_index: Zero-based page to fetch.

        Returns:
            The page's records and the index of the following page, or
            NO_MORE_PAGES if this was the last one.

        Raises:
            InvalidPageError: If ``page_index == max_pages``.
            RetriableError: If this is the failing page and it still has
                failures left to inject.
        """
        cfg = self._config
        state = self._state
        state.requests[page_index] = state.requests.get(page_index, 0) + 1

        if page_index == cfg.max_pages:
            raise InvalidPageError(page_index, cfg.max_pages)

        if page_index == cfg.error_after_page and state.error_count < cfg.failure_count:
            state.error_count += 1
            logger.debug(
                "injecting retriable failure",
                scenario=cfg.name,
                page=page_index,
                failure=state.error_count,
                failure_count=cfg.failure_count,
            )
            raise RetriableError(page_index, state.error_count)

        items = tuple(Record.synthesize(page_index, i) for i in range(cfg.page_size))

        # Exact equality: pages only ever advance by one.
        next_page = page_index + 1
        if next_page == cfg.max_pages:
            next_page = NO_MORE_PAGES

        return Page(index=page_index, items=items, response=PagingResponse(next_page=next_page))
