# src/chaospage/scenario.py
"""One-call scenario runs.

run_scenario() wires a fresh FailureState, PageSource, RetryPolicy and
PaginatingLister from a ChaosPageConfig and runs the listing. Errors are
returned in the result rather than raised, so a truncated stream and the
error that truncated it can be inspected together.
"""

from __future__ import annotations

import threading
from collections.abc import Callable
from dataclasses import dataclass

from chaospage.config import ChaosPageConfig
from chaospage.lister import ListingStats, PaginatingLister
from chaospage.logging import get_logger
from chaospage.retry import RetryPolicy
from chaospage.sinks import CountingSink
from chaospage.source import PageSource
from chaospage.types import FailureState, Record

logger = get_logger(__name__)


@dataclass(frozen=True, slots=True)
class ScenarioResult:
    """Outcome of a scenario run.

    Attributes:
        stats: Listing progress, complete or up to the failure.
        state: The run's failure counter after the listing.
        error: The error that stopped the listing, or None on success.
    """

    stats: ListingStats
    state: FailureState
    error: Exception | None = None

    @property
    def succeeded(self) -> bool:
        return self.error is None


def run_scenario(
    config: ChaosPageConfig,
    sink: Callable[[Record], None] | None = None,
    *,
    shutdown_event: threading.Event | None = None,
    retry_policy: RetryPolicy | None = None,
) -> ScenarioResult:
    """Run one isolated listing of the configured scenario.

    Args:
        config: Scenario and retry configuration.
        sink: Receives every record (default: a CountingSink).
        shutdown_event: Cancels the listing when set.
        retry_policy: Overrides the policy built from ``config.retry``.
    """
    state = FailureState()
    lister = PaginatingLister(PageSource(config.scenario, state))
    policy = retry_policy if retry_policy is not None else RetryPolicy.from_settings(config.retry)
    record_sink = sink if sink is not None else CountingSink()

    log = logger.bind(scenario=config.scenario.name)
    log.info(
        "scenario starting",
        max_pages=config.scenario.max_pages,
        page_size=config.scenario.page_size,
        error_after_page=config.scenario.error_after_page,
        failure_count=config.scenario.failure_count,
        max_attempts=policy.config.max_attempts,
    )

    stats = ListingStats()
    try:
        lister.list(record_sink, policy, shutdown_event=shutdown_event, stats=stats)
    except Exception as e:
        log.warning("scenario stopped early", records=stats.records_emitted, error_type=type(e).__name__)
        return ScenarioResult(stats=stats, state=state, error=e)

    return ScenarioResult(stats=stats, state=state)
