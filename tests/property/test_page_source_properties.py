# tests/property/test_page_source_properties.py
"""Property-based tests for PageSource and PaginatingLister.

Invariants checked over generated scenario shapes:
- index max_pages is always invalid, whatever the failure state
- the failing page fails exactly failure_count times, then never again
- non-failing pages are deterministic
- record fields follow the page/index formula
- the sentinel appears iff the next index equals max_pages
- a listing with enough attempts emits max_pages * page_size records
"""

from __future__ import annotations

import pytest
from hypothesis import assume, given, settings
from hypothesis import strategies as st

from chaospage.config import ScenarioConfig
from chaospage.errors import InvalidPageError, RetriableError
from chaospage.lister import PaginatingLister
from chaospage.retry import RetryConfig, RetryPolicy
from chaospage.sinks import CollectingSink
from chaospage.source import PageSource
from chaospage.types import NO_MORE_PAGES, FailureState

scenarios = st.builds(
    ScenarioConfig,
    max_pages=st.integers(min_value=1, max_value=8),
    page_size=st.integers(min_value=0, max_value=20),
    error_after_page=st.integers(min_value=0, max_value=8),
    failure_count=st.integers(min_value=0, max_value=6),
)


class TestInvalidPageProperty:
    @given(config=scenarios, prior_errors=st.integers(min_value=0, max_value=10))
    def test_max_pages_always_invalid(self, config: ScenarioConfig, prior_errors: int) -> None:
        source = PageSource(config, FailureState(error_count=prior_errors))
        with pytest.raises(InvalidPageError):
            source.fetch_page(config.max_pages)


class TestFailureScheduleProperty:
    @given(config=scenarios, extra_fetches=st.integers(min_value=1, max_value=5))
    def test_fails_exactly_failure_count_times(self, config: ScenarioConfig, extra_fetches: int) -> None:
        assume(config.error_after_page < config.max_pages)
        source = PageSource(config)

        failures = 0
        successes = 0
        for _ in range(config.failure_count + extra_fetches):
            try:
                source.fetch_page(config.error_after_page)
            except RetriableError:
                assert successes == 0, "failure after the page already succeeded"
                failures += 1
            else:
                successes += 1

        assert failures == config.failure_count
        assert successes == extra_fetches
        assert source.state.error_count == config.failure_count


class TestSynthesizedPageProperties:
    @given(config=scenarios, data=st.data())
    def test_record_invariants_and_sentinel(self, config: ScenarioConfig, data: st.DataObject) -> None:
        page_index = data.draw(st.integers(min_value=0, max_value=config.max_pages - 1))
        source = PageSource(config, FailureState(error_count=config.failure_count))

        page = source.fetch_page(page_index)

        assert len(page.items) == config.page_size
        for i, record in enumerate(page.items):
            assert record.id == f"{page_index}_{i}"
            assert record.amount == 10.0 * (page_index + 0.5)
            assert record.page == page_index
        assert (page.next_page == NO_MORE_PAGES) == (page_index + 1 == config.max_pages)
        if page_index + 1 != config.max_pages:
            assert page.next_page == page_index + 1

    @given(config=scenarios, data=st.data())
    def test_non_failing_pages_are_deterministic(self, config: ScenarioConfig, data: st.DataObject) -> None:
        page_index = data.draw(st.integers(min_value=0, max_value=config.max_pages - 1))
        assume(page_index != config.error_after_page)

        first = PageSource(config).fetch_page(page_index)
        second_source = PageSource(config)
        second_source.fetch_page(page_index)
        second = second_source.fetch_page(page_index)

        assert first == second


class TestListingProperties:
    @given(config=scenarios)
    @settings(max_examples=50)
    def test_enough_attempts_lists_everything(self, config: ScenarioConfig) -> None:
        policy = RetryPolicy(RetryConfig(max_attempts=config.failure_count + 1), sleep=lambda _: None)
        sink = CollectingSink()

        stats = PaginatingLister(PageSource(config)).list(sink, policy)

        assert stats.records_emitted == config.max_pages * config.page_size
        assert [r.page for r in sink.records] == sorted(r.page for r in sink.records)
        assert stats.pages_fetched == config.max_pages

    @given(config=scenarios)
    @settings(max_examples=50)
    def test_too_few_attempts_truncates_at_failing_page(self, config: ScenarioConfig) -> None:
        assume(config.failure_count > 0)
        assume(config.error_after_page < config.max_pages)
        policy = RetryPolicy(RetryConfig(max_attempts=config.failure_count), sleep=lambda _: None)
        sink = CollectingSink()
        lister = PaginatingLister(PageSource(config))

        with pytest.raises(RetriableError):
            lister.list(sink, policy)

        assert len(sink) == config.error_after_page * config.page_size
        assert lister.last_stats is not None
        assert lister.last_stats.attempts_by_page[config.error_after_page] == config.failure_count
