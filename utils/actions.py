"""
Resilient Action Executor.

Retries a state-changing browser action when it fails for a transient reason
(element detached mid-render, not yet visible/enabled, covered by an
animation, navigation tore down the execution context). A locator that
matches nothing is absence, which retrying cannot fix, so it fails at once.
"""
import logging
import time
from typing import Callable, Optional, TypeVar

from playwright.sync_api import Locator, TimeoutError as PlaywrightTimeoutError, Error as PlaywrightError

from config import RetryConfig

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_ATTEMPTS = 3
DEFAULT_DELAY_MS = 1000

# Playwright 错误消息中表示“稍后重试可能成功”的片段
TRANSIENT_MARKERS = (
    "detached",
    "not attached",
    "stale",
    "not stable",
    "not visible",
    "not enabled",
    "intercepts pointer events",
    "Execution context was destroyed",
)


# ---- Exceptions ----
class ActionError(Exception):
    """Base error for executor failures."""
    pass


class ElementAbsentError(ActionError):
    """The target locator matches zero elements; not retried."""
    pass


class ActionRetryExhaustedError(ActionError):
    """All attempts failed transiently; carries the last underlying error."""

    def __init__(self, message: str, attempts: int, last_error: Optional[BaseException] = None):
        super().__init__(message)
        self.attempts = attempts
        self.last_error = last_error


def is_transient(exc: BaseException) -> bool:
    """Whether ``exc`` is worth another attempt."""
    if isinstance(exc, PlaywrightTimeoutError):
        return True
    if isinstance(exc, PlaywrightError):
        message = str(exc)
        return any(marker in message for marker in TRANSIENT_MARKERS)
    return False


class ResilientActionExecutor:
    """
    Run an action with a bounded number of attempts and a fixed delay between them.

    Attempting(1) -> transient failure -> Attempting(2) ... -> Attempting(attempts);
    success ends the loop, the last transient failure raises
    ActionRetryExhaustedError, and any other error propagates unchanged.
    """

    def __init__(self, attempts: int = DEFAULT_ATTEMPTS, delay_ms: int = DEFAULT_DELAY_MS):
        if attempts < 1:
            raise ValueError("attempts must be >= 1")
        self.attempts = attempts
        self.delay_ms = delay_ms

    @classmethod
    def from_config(cls, retry: RetryConfig) -> "ResilientActionExecutor":
        return cls(attempts=retry.attempts, delay_ms=retry.delay_ms)

    def execute(
            self,
            action: Callable[[], T],
            description: str = "action",
            *,
            locator: Optional[Locator] = None,
            idempotent: bool = True,
    ) -> T:
        """
        Execute ``action``.

        Args:
            action: zero-argument callable performing the browser operation
            description: human readable name used in logs and errors
            locator: when given, checked for zero matches before each attempt
            idempotent: non-idempotent actions (form submission, add-to-cart)
                are executed exactly once

        Raises:
            ElementAbsentError: ``locator`` matches no element
            ActionRetryExhaustedError: every attempt failed transiently
        """
        max_attempts = self.attempts if idempotent else 1
        last_error: Optional[BaseException] = None

        for attempt in range(1, max_attempts + 1):
            if locator is not None and locator.count() == 0:
                raise ElementAbsentError(f"{description}: target element is absent")

            try:
                result = action()
            except PlaywrightError as e:
                if not is_transient(e):
                    raise
                last_error = e
                logger.warning(
                    "%s failed (attempt %d/%d): %s",
                    description, attempt, max_attempts, str(e).splitlines()[0],
                )
                if attempt < max_attempts:
                    time.sleep(self.delay_ms / 1000)
                continue

            if attempt > 1:
                logger.info("%s succeeded on attempt %d", description, attempt)
            return result

        raise ActionRetryExhaustedError(
            f"{description} failed after {max_attempts} attempt(s): {last_error}",
            attempts=max_attempts,
            last_error=last_error,
        ) from last_error

    def click(self, locator: Locator, description: Optional[str] = None, timeout: Optional[float] = None,
              **kwargs) -> None:
        """Retrying click on ``locator``."""
        self.execute(
            lambda: locator.click(timeout=timeout, **kwargs),
            description or "click",
            locator=locator,
        )
