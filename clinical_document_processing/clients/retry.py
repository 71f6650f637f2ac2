"""
Retry Controller - Bounded Exponential-Backoff Retry

Wraps one logical provider call. Failures are classified by a single
function, ``classify_error``, which is the only place in the system that
knows which message substrings mean "transient". Keeping that coupling here
means it can be swapped for typed status codes if provider SDKs expose them.

Algorithm:
    1. Invoke the operation
    2. On failure, classify the error
        - FATAL     → re-raise immediately, no retry consumed
        - RETRYABLE → if retries remain, sleep backoff(i) and go to 1,
                      otherwise re-raise the last error
    3. backoff(i) = min(base * 2^i, cap) + uniform(0, jitter)   (milliseconds)

With the defaults (base 1s, cap 30s, jitter 1s) a retryable failure is
retried three times, so an always-failing operation runs four times.

Author: Shubham Singh
Date: January 2026
"""

import asyncio
import random
from typing import Awaitable, Callable, Optional, TypeVar

from loguru import logger

from clinical_document_processing.core.constants import RETRYABLE_ERROR_MARKERS
from clinical_document_processing.core.enums import ErrorClass
from clinical_document_processing.core.models import RetryState

T = TypeVar("T")


# =============================================================================
# STAGE 1: ERROR CLASSIFICATION
# =============================================================================


def classify_error(error: BaseException) -> ErrorClass:
    """
    Classify a provider failure as retryable or fatal.

    An error is retryable iff its message, lowercased, contains any of
    ``RETRYABLE_ERROR_MARKERS`` ("rate limit", "quota", "timeout", "503",
    "429", "500"). Everything else (e.g. "invalid api key") is fatal.

    Args:
        error: The exception raised by the provider call

    Returns:
        ErrorClass.RETRYABLE or ErrorClass.FATAL
    """
    message = str(error).lower()
    if any(marker in message for marker in RETRYABLE_ERROR_MARKERS):
        return ErrorClass.RETRYABLE
    return ErrorClass.FATAL


# =============================================================================
# STAGE 2: BACKOFF
# =============================================================================


def compute_backoff_delay_ms(
    attempt: int,
    base_delay_ms: float = 1000,
    max_delay_ms: float = 30000,
    jitter_ms: float = 1000,
    rng: Callable[[], float] = random.random,
) -> float:
    """
    Exponential backoff with cap and jitter.

    Args:
        attempt: Zero-based retry index (0 for the first retry)
        base_delay_ms: Delay before the first retry, without jitter
        max_delay_ms: Cap applied before jitter is added
        jitter_ms: Upper bound of the uniform jitter
        rng: Source of uniform values in [0, 1)

    Returns:
        Delay in milliseconds, in [min(base*2^attempt, cap), that + jitter]
    """
    exponential = min(base_delay_ms * (2**attempt), max_delay_ms)
    return exponential + rng() * jitter_ms


# =============================================================================
# STAGE 3: RETRY CONTROLLER
# =============================================================================


class RetryController:
    """
    Runs an async operation with bounded, classified retries.

    What it does:
        Retries transient failures with exponential backoff and re-raises
        fatal failures at once. Stateless across calls: a RetryState exists
        only for the duration of one ``run()``.

    Example:
        >>> controller = RetryController(max_retries=3)
        >>> text = await controller.run(lambda: client.call(prompt))
    """

    def __init__(
        self,
        max_retries: int = 3,
        base_delay_ms: float = 1000,
        max_delay_ms: float = 30000,
        jitter_ms: float = 1000,
        classifier: Callable[[BaseException], ErrorClass] = classify_error,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ):
        self._max_retries = max_retries
        self._base_delay_ms = base_delay_ms
        self._max_delay_ms = max_delay_ms
        self._jitter_ms = jitter_ms
        self._classifier = classifier
        self._sleep = sleep
        self._rng = rng

    @property
    def max_retries(self) -> int:
        return self._max_retries

    def classify(self, error: BaseException) -> ErrorClass:
        """Classify ``error`` with this controller's classifier."""
        return self._classifier(error)

    def backoff_ms(self, attempt: int) -> float:
        """Backoff delay before retry number ``attempt`` (zero-based)."""
        return compute_backoff_delay_ms(
            attempt,
            base_delay_ms=self._base_delay_ms,
            max_delay_ms=self._max_delay_ms,
            jitter_ms=self._jitter_ms,
            rng=self._rng,
        )

    async def run(
        self,
        operation: Callable[[], Awaitable[T]],
        max_retries: Optional[int] = None,
        label: str = "operation",
    ) -> T:
        """
        Run ``operation`` until it succeeds, fails fatally, or retries run out.

        Args:
            operation: Zero-argument coroutine function to invoke
            max_retries: Override of the controller's retry cap
            label: Name used in log messages (usually the provider name)

        Returns:
            The operation's result

        Raises:
            The last error raised by ``operation``
        """
        retries = self._max_retries if max_retries is None else max_retries
        state = RetryState()

        while True:
            state.attempt += 1
            try:
                return await operation()
            except Exception as error:
                state.last_error = error

                if self.classify(error) is ErrorClass.FATAL:
                    logger.warning(
                        f"Non-retryable failure | {label} | Attempt {state.attempt} | {error}"
                    )
                    raise

                retry_index = state.attempt - 1
                if retry_index >= retries:
                    logger.warning(
                        f"Retries exhausted | {label} | Attempts: {state.attempt} | {error}"
                    )
                    raise

                delay_ms = self.backoff_ms(retry_index)
                logger.warning(
                    f"{label} call failed, retrying in {delay_ms:.0f}ms "
                    f"(attempt {state.attempt}/{retries + 1}) | {error}"
                )
                await self._sleep(delay_ms / 1000)
