"""
Retry executor with a fixed delay between attempts

Provides resilient retry logic for transient backend failures with:
- A fixed, configurable delay between attempts
- A total attempt budget
- Exception filtering (only listed exception classes are retried)
- A result predicate so "succeeded but not good enough yet" can be retried
- Callback support for metrics integration

Usage:
    from utils.retry import RetryOperation, RetryPolicy

    policy = RetryPolicy(
        max_attempts=10,
        retry_on=(BackendUnavailable,),
        accept_result=lambda healthy: healthy,
        delay=3.0,
        message="Connect to Elasticsearch cluster",
    )
    healthy = RetryOperation(check_cluster, policy).retry()
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Generic, Optional, Tuple, Type, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class RetryDecision(Enum):
    """What to do with the outcome of one attempt"""

    ACCEPT = "accept"
    RETRY = "retry"
    ABORT = "abort"


@dataclass(frozen=True)
class AttemptOutcome:
    """Result of a single attempt: either a value or the raised exception

    accepted holds the verdict of the policy result predicate, evaluated
    once per attempt.
    """

    result: Any = None
    error: Optional[BaseException] = None
    accepted: bool = True

    @property
    def failed(self) -> bool:
        return self.error is not None


def _accept_any(result: Any) -> bool:
    return True


@dataclass(frozen=True)
class RetryPolicy:
    """
    Retry configuration

    Attributes:
        max_attempts: Total number of attempts, including the first one
        retry_on: Exception classes that are considered transient
        accept_result: Predicate over a successful result; False means retry
        delay: Seconds to wait between attempts
        message: Human-readable description used in log messages
    """

    max_attempts: int = 3
    retry_on: Tuple[Type[BaseException], ...] = (Exception,)
    accept_result: Callable[[Any], bool] = _accept_any
    delay: float = 1.0
    message: str = "operation"

    def __post_init__(self):
        if self.max_attempts < 1:
            raise ValueError(
                f"max_attempts must be a positive integer, got {self.max_attempts}"
            )
        if self.delay < 0:
            raise ValueError(f"delay must not be negative, got {self.delay}")

    def decide(self, outcome: AttemptOutcome, attempt: int) -> RetryDecision:
        """
        Decide how to proceed after an attempt

        Args:
            outcome: Outcome of the attempt
            attempt: 1-based number of the attempt that produced the outcome

        Returns:
            ACCEPT to return the result, RETRY to try again,
            ABORT to re-raise the error
        """
        attempts_left = attempt < self.max_attempts

        if outcome.failed:
            if not isinstance(outcome.error, self.retry_on):
                return RetryDecision.ABORT
            return RetryDecision.RETRY if attempts_left else RetryDecision.ABORT

        if outcome.accepted:
            return RetryDecision.ACCEPT

        # Budget exhausted: hand back the last unsatisfying result
        return RetryDecision.RETRY if attempts_left else RetryDecision.ACCEPT


class RetryOperation(Generic[T]):
    """
    Executes a zero-argument operation under a RetryPolicy

    Example:
        operation = RetryOperation(
            lambda: client.cluster_health()["cluster_name"] != "",
            RetryPolicy(max_attempts=5, retry_on=(BackendUnavailable,), delay=2.0),
        )
        healthy = operation.retry()
    """

    def __init__(
        self,
        operation: Callable[[], T],
        policy: RetryPolicy,
        on_retry: Optional[Callable[[int, AttemptOutcome], None]] = None,
        sleep: Optional[Callable[[float], None]] = None,
    ):
        """
        Initialize retry operation

        Args:
            operation: Callable producing the result
            policy: Retry policy to apply
            on_retry: Callback(attempt, outcome) called before each retry
            sleep: Sleep function (default: time.sleep)
        """
        self.operation = operation
        self.policy = policy
        self.on_retry = on_retry
        self._sleep = sleep or time.sleep
        self.attempts = 0

    def _attempt(self) -> AttemptOutcome:
        try:
            result = self.operation()
        except Exception as e:
            return AttemptOutcome(error=e)
        return AttemptOutcome(result=result, accepted=self.policy.accept_result(result))

    def retry(self) -> T:
        """
        Run the operation until the policy accepts an outcome

        Returns:
            The first accepted result, or the last result once the attempt
            budget is spent

        Raises:
            The last error if it is not retryable or the budget is exhausted
        """
        policy = self.policy
        self.attempts = 0

        while True:
            self.attempts += 1
            outcome = self._attempt()
            decision = policy.decide(outcome, self.attempts)

            if decision is RetryDecision.ACCEPT:
                if not outcome.accepted:
                    logger.warning(
                        f"{policy.message}: no acceptable result after "
                        f"{self.attempts} attempt(s)"
                    )
                return outcome.result

            if decision is RetryDecision.ABORT:
                error = outcome.error
                if isinstance(error, policy.retry_on):
                    logger.error(
                        f"{policy.message}: max attempts ({policy.max_attempts}) "
                        f"exceeded: {type(error).__name__}: {error}"
                    )
                else:
                    logger.error(
                        f"{policy.message}: non-retryable exception: "
                        f"{type(error).__name__}: {error}"
                    )
                raise error

            reason = (
                f"{type(outcome.error).__name__}: {outcome.error}"
                if outcome.failed
                else f"unacceptable result {outcome.result!r}"
            )
            logger.warning(
                f"{policy.message}: attempt {self.attempts}/{policy.max_attempts} "
                f"failed ({reason}). Retrying in {policy.delay:.2f}s..."
            )

            if self.on_retry:
                try:
                    self.on_retry(self.attempts, outcome)
                except Exception as callback_error:
                    logger.error(f"Error in retry callback: {callback_error}")

            self._sleep(policy.delay)
