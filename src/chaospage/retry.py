# src/chaospage/retry.py
"""RetryPolicy: classifier-driven retries with tenacity.

The policy decides per error whether a fetch is worth repeating. That
decision belongs to a pluggable ErrorClassifier; the default one matches
the exact message of the injected transient failure, which is how the
reproduced scenario recognises it.

When attempts run out, or the classifier answers FATAL, the original
exception is re-raised unchanged so callers see the page source's own
error rather than a wrapper.

Example:
    policy = RetryPolicy(RetryConfig(max_attempts=6))
    page = policy.invoke(lambda: source.fetch_page(3))
"""

from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Protocol, TypeVar

from tenacity import (
    RetryCallState,
    Retrying,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from chaospage.errors import RETRIABLE_ERROR_MESSAGE, ListingCancelled
from chaospage.logging import get_logger

if TYPE_CHECKING:
    from chaospage.config import RetrySettings

T = TypeVar("T")

logger = get_logger(__name__)


class RetryDecision(Enum):
    """Outcome of classifying an error."""

    RETRY = "retry"
    FATAL = "fatal"


class ErrorClassifier(Protocol):
    """Decides whether an error is worth another attempt."""

    def classify(self, error: BaseException) -> RetryDecision: ...


class MessageClassifier:
    """RETRY when ``str(error)`` exactly equals one of the given messages."""

    def __init__(self, messages: Iterable[str]) -> None:
        self._messages = frozenset(messages)

    @property
    def messages(self) -> frozenset[str]:
        return self._messages

    def classify(self, error: BaseException) -> RetryDecision:
        if str(error) in self._messages:
            return RetryDecision.RETRY
        return RetryDecision.FATAL

    def __repr__(self) -> str:
        return f"MessageClassifier({sorted(self._messages)!r})"


class TypeClassifier:
    """RETRY when the error is an instance of one of the given types."""

    def __init__(self, *types: type[BaseException]) -> None:
        if not types:
            raise ValueError("TypeClassifier needs at least one exception type")
        self._types = types

    def classify(self, error: BaseException) -> RetryDecision:
        if isinstance(error, self._types):
            return RetryDecision.RETRY
        return RetryDecision.FATAL


class CompositeClassifier:
    """RETRY when any member classifier answers RETRY."""

    def __init__(self, classifiers: Iterable[ErrorClassifier]) -> None:
        self._classifiers = tuple(classifiers)

    def classify(self, error: BaseException) -> RetryDecision:
        for classifier in self._classifiers:
            if classifier.classify(error) is RetryDecision.RETRY:
                return RetryDecision.RETRY
        return RetryDecision.FATAL


def default_classifier() -> MessageClassifier:
    """Classifier that retries only the injected transient failure."""
    return MessageClassifier([RETRIABLE_ERROR_MESSAGE])


@dataclass
class RetryConfig:
    """Configuration for retry behavior.

    max_attempts is the TOTAL number of tries, not the number of retries.
    So max_attempts=3 means: try, retry, retry (3 total).
    """

    max_attempts: int = 3
    base_delay: float = 0.0  # seconds
    max_delay: float = 1.0  # seconds
    jitter: float = 0.0  # seconds
    exponential_base: float = 2.0  # backoff multiplier

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.base_delay < 0 or self.max_delay < 0 or self.jitter < 0:
            raise ValueError("delays and jitter must be >= 0")

    @property
    def max_retries(self) -> int:
        return self.max_attempts - 1

    @classmethod
    def no_retry(cls) -> RetryConfig:
        """Factory for no-retry configuration (single attempt)."""
        return cls(max_attempts=1)

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> RetryConfig:
        """Factory from the RetrySettings config model."""
        return cls(
            max_attempts=settings.max_attempts,
            base_delay=settings.initial_delay_seconds,
            max_delay=settings.max_delay_seconds,
            jitter=settings.jitter_seconds,
            exponential_base=settings.exponential_base,
        )


class RetryPolicy:
    """Runs an operation, retrying the errors its classifier accepts.

    Back-off uses exponential growth with jitter. When a shutdown event is
    passed to invoke(), back-off waits end early once it is set and
    ListingCancelled is raised instead of making another attempt.
    """

    def __init__(
        self,
        config: RetryConfig,
        classifier: ErrorClassifier | None = None,
        *,
        sleep: Callable[[float], None] | None = None,
    ) -> None:
        """Initialize the policy.

        Args:
            config: Attempt budget and back-off shape.
            classifier: Retry classification (default: default_classifier()).
            sleep: Sleep function for testing (default: time.sleep). Not
                used when invoke() is given a shutdown event.
        """
        self._config = config
        self._classifier = classifier if classifier is not None else default_classifier()
        self._sleep = sleep if sleep is not None else time.sleep

    @classmethod
    def from_settings(cls, settings: RetrySettings) -> RetryPolicy:
        return cls(RetryConfig.from_settings(settings), MessageClassifier(settings.retry_messages))

    @property
    def config(self) -> RetryConfig:
        return self._config

    @property
    def classifier(self) -> ErrorClassifier:
        return self._classifier

    def classify(self, error: BaseException) -> RetryDecision:
        return self._classifier.classify(error)

    def should_retry(self, error: BaseException) -> bool:
        return self.classify(error) is RetryDecision.RETRY

    def invoke(
        self,
        operation: Callable[[], T],
        *,
        on_retry: Callable[[int, BaseException], None] | None = None,
        shutdown_event: threading.Event | None = None,
    ) -> T:
        """Execute operation with retry logic.

        Args:
            operation: Zero-argument callable to run.
            on_retry: Called as ``on_retry(attempt, error)`` before each
                back-off, with the 1-based number of the attempt that just
                failed. Not called for the final failing attempt.
            shutdown_event: Cancels pending back-off waits when set.

        Returns:
            Result of operation.

        Raises:
            ListingCancelled: If shutdown_event fires during a back-off.
            Exception: The operation's own error, when it is classified
                FATAL or the attempt budget is spent.
        """
        cfg = self._config

        def _before_sleep(retry_state: RetryCallState) -> None:
            # before_sleep only runs after a failed attempt.
            assert retry_state.outcome is not None
            error = retry_state.outcome.exception()
            assert error is not None
            logger.info(
                "retrying after transient error",
                attempt=retry_state.attempt_number,
                max_attempts=cfg.max_attempts,
                error=str(error),
            )
            if on_retry is not None:
                on_retry(retry_state.attempt_number, error)

        retrying = Retrying(
            stop=stop_after_attempt(cfg.max_attempts),
            wait=wait_exponential_jitter(
                initial=cfg.base_delay,
                max=cfg.max_delay,
                exp_base=cfg.exponential_base,
                jitter=cfg.jitter,
            ),
            retry=retry_if_exception(self.should_retry),
            before_sleep=_before_sleep,
            sleep=self._sleep if shutdown_event is None else _interruptible_sleep(shutdown_event),
            reraise=True,
        )
        return retrying(operation)


def _interruptible_sleep(shutdown_event: threading.Event) -> Callable[[float], None]:
    def _sleep(seconds: float) -> None:
        if shutdown_event.wait(seconds):
            raise ListingCancelled()

    return _sleep
