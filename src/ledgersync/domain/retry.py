"""Bounded retries with capped exponential backoff."""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar, Union

from ledgersync.domain.errors import RetryExhaustedError, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RetryPolicy:
    """How many times to attempt an operation and how long to wait between."""

    max_attempts: int = 1
    initial_delay_ms: int = 1000
    max_delay_ms: int = 10000

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValidationError(f"max_attempts must be at least 1, got {self.max_attempts}")
        if self.initial_delay_ms < 0 or self.max_delay_ms < 0:
            raise ValidationError("Retry delays must not be negative")

    def delay_ms(self, attempt_index: int) -> int:
        """Wait before the retry following zero-based ``attempt_index``."""
        return min(self.initial_delay_ms * 2**attempt_index, self.max_delay_ms)


class _NoRetry:
    """Marker for operations that must run exactly once."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "NO_RETRY"


NO_RETRY = _NoRetry()

DEFAULT_RETRY_POLICY = RetryPolicy(max_attempts=1, initial_delay_ms=1000, max_delay_ms=10000)

RetrySetting = Union[RetryPolicy, _NoRetry, None]


class RetryExecutor:
    """Run fallible operations under a retry policy.

    Failures of every attempt are kept; when all attempts fail a single
    RetryExhaustedError carries them in order.
    """

    def __init__(
        self,
        default_policy: Optional[RetryPolicy] = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """Initialize retry executor.

        Args:
            default_policy: Policy used when a call does not pass one
            sleep: Function used to wait, in seconds
        """
        self.default_policy = default_policy
        self.sleep = sleep

    def resolve_policy(self, policy: RetrySetting = None) -> RetrySetting:
        """Return the policy a call would run under."""
        if policy is not None:
            return policy
        if self.default_policy is not None:
            return self.default_policy
        return DEFAULT_RETRY_POLICY

    def execute(self, operation: Callable[[], T], context: str, policy: RetrySetting = None) -> T:
        """Run ``operation`` until it succeeds or the policy is exhausted.

        Args:
            operation: Zero-argument callable to run
            context: Label used in logs and in the aggregate error
            policy: RetryPolicy, NO_RETRY, or None for the default

        Returns:
            Whatever ``operation`` returns

        Raises:
            RetryExhaustedError: If every attempt failed
            Exception: The operation's own error, unchanged, under NO_RETRY
        """
        effective = self.resolve_policy(policy)
        if effective is NO_RETRY:
            return operation()

        errors: list[BaseException] = []
        for attempt in range(effective.max_attempts):
            try:
                return operation()
            except Exception as e:
                errors.append(e)
                if attempt + 1 >= effective.max_attempts:
                    break
                delay_ms = effective.delay_ms(attempt)
                logger.warning(
                    "%s failed, retrying",
                    context,
                    extra={
                        "attempt": attempt + 1,
                        "max_attempts": effective.max_attempts,
                        "delay_ms": delay_ms,
                        "error": str(e),
                    },
                )
                self.sleep(delay_ms / 1000)

        raise RetryExhaustedError(context, errors) from errors[-1]
