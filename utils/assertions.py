"""
Hard and soft checks.

Hard checks raise CheckFailedError (an AssertionError, so pytest reports it as
a test failure rather than an error) carrying what was expected and what was
observed. Soft checks only log and return the observed boolean.
"""
import logging
import re
from typing import Any, Optional, Sized

logger = logging.getLogger(__name__)

FAILURE_ASSERTION = "assertion"
FAILURE_INFRASTRUCTURE = "infrastructure"


class CheckFailedError(AssertionError):
    """A hard check did not hold."""

    def __init__(self, message: str, expected: Any = None, actual: Any = None, check: Optional[str] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual
        self.check = check

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base} (expected: {self.expected!r}, actual: {self.actual!r})"


def hard_assert(condition: bool, message: str, *, expected: Any = None, actual: Any = None,
                check: Optional[str] = None) -> None:
    if not condition:
        logger.error("Check failed [%s]: %s", check or "assert", message)
        raise CheckFailedError(message, expected=expected, actual=actual, check=check)
    logger.debug("Check passed [%s]: %s", check or "assert", message)


def assert_true(condition: bool, message: str) -> None:
    hard_assert(bool(condition), message, expected=True, actual=bool(condition), check="true")


def assert_greater_than(actual: Any, threshold: Any, message: Optional[str] = None) -> None:
    hard_assert(
        actual is not None and actual > threshold,
        message or f"Expected value > {threshold}, got {actual}",
        expected=f"> {threshold}",
        actual=actual,
        check="greater_than",
    )


def assert_at_least(actual: Any, minimum: Any, message: Optional[str] = None) -> None:
    hard_assert(
        actual is not None and actual >= minimum,
        message or f"Expected value >= {minimum}, got {actual}",
        expected=f">= {minimum}",
        actual=actual,
        check="at_least",
    )


def assert_at_most(actual: Any, maximum: Any, message: Optional[str] = None) -> None:
    hard_assert(
        actual is not None and actual <= maximum,
        message or f"Expected value <= {maximum}, got {actual}",
        expected=f"<= {maximum}",
        actual=actual,
        check="at_most",
    )


def assert_matches(text: Optional[str], pattern: str, message: Optional[str] = None,
                   flags: int = re.IGNORECASE) -> None:
    """``pattern`` must be found (re.search) in ``text``; case-insensitive by default."""
    hard_assert(
        text is not None and re.search(pattern, text, flags) is not None,
        message or f"'{text}' does not match /{pattern}/",
        expected=f"/{pattern}/",
        actual=text,
        check="matches",
    )


def assert_not_empty(value: Optional[Sized], message: Optional[str] = None) -> None:
    if isinstance(value, str):
        empty = not value.strip()
    else:
        empty = value is None or len(value) == 0
    hard_assert(
        not empty,
        message or "Expected a non-empty value",
        expected="non-empty",
        actual=value,
        check="not_empty",
    )


def soft_check(condition: bool, description: str) -> bool:
    """Log the outcome of a check that must never fail the test."""
    result = bool(condition)
    if result:
        logger.info("Soft check passed: %s", description)
    else:
        logger.warning("Soft check not satisfied: %s", description)
    return result


def classify_failure(exc: BaseException) -> str:
    """'assertion' for check mismatches, 'infrastructure' for everything else."""
    if isinstance(exc, AssertionError):
        return FAILURE_ASSERTION
    return FAILURE_INFRASTRUCTURE
