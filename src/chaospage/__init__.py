"""
chaospage: a deterministic fault-injecting paginated source.

Serves synthetic pages, fails one designated page a fixed number of times,
and drives a retry-aware pagination loop over it, so retry and pagination
logic can be asserted against an exact, reproducible failure schedule.
"""

from chaospage.config import ChaosPageConfig, RetrySettings, ScenarioConfig, load_config
from chaospage.errors import (
    RETRIABLE_ERROR_MESSAGE,
    ChaosPageError,
    InvalidPageError,
    ListingCancelled,
    RetriableError,
)
from chaospage.lister import ListingStats, PaginatingLister
from chaospage.retry import (
    CompositeClassifier,
    ErrorClassifier,
    MessageClassifier,
    RetryConfig,
    RetryDecision,
    RetryPolicy,
    TypeClassifier,
    default_classifier,
)
from chaospage.scenario import ScenarioResult, run_scenario
from chaospage.sinks import CollectingSink, CountingSink
from chaospage.source import PageSource
from chaospage.types import NO_MORE_PAGES, RECORD_FIELDS, FailureState, Page, PagingResponse, Record

__version__ = "0.1.0"

__all__ = [
    "NO_MORE_PAGES",
    "RECORD_FIELDS",
    "RETRIABLE_ERROR_MESSAGE",
    "ChaosPageConfig",
    "ChaosPageError",
    "CollectingSink",
    "CompositeClassifier",
    "CountingSink",
    "ErrorClassifier",
    "FailureState",
    "InvalidPageError",
    "ListingCancelled",
    "ListingStats",
    "MessageClassifier",
    "Page",
    "PageSource",
    "PaginatingLister",
    "PagingResponse",
    "Record",
    "RetriableError",
    "RetryConfig",
    "RetryDecision",
    "RetryPolicy",
    "RetrySettings",
    "ScenarioConfig",
    "ScenarioResult",
    "TypeClassifier",
    "default_classifier",
    "load_config",
    "run_scenario",
]
