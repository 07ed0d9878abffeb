from __future__ import annotations

import json
import logging
import time
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Literal, Optional, Tuple, Union

import allure
from playwright.sync_api import Page, Locator, TimeoutError as PlaywrightTimeoutError, Error as PlaywrightError

logger = logging.getLogger(__name__)

DEFAULT_WAIT_TIMEOUT = 5000  # milliseconds

Pick = Literal["first", "last", "all"]


# ---- Exceptions ----
class SelectorError(Exception):
    """Base selector-related error."""
    pass


class SelectorResolutionError(SelectorError):
    """Raised when a selector input cannot be turned into a locator at all."""
    pass


# ---- ResolveInfo ----
@dataclass(frozen=True)
class ResolveInfo:
    """
    Metadata returned alongside a Locator describing how it was resolved.
    - strategy: how the locator was built ("union", "candidate", "raw_string", "locator_object")
    - ctx: context description (always "page" here)
    - attempts: list of attempts (candidate/outcome) executed during resolution
    """
    strategy: str
    ctx: str
    attempts: List[Dict[str, Any]]


# ---- LocatorStrategy ----
@dataclass(frozen=True)
class LocatorStrategy:
    """
    Ordered candidate selector expressions for one UI concept.

    Candidates are plain Playwright selector strings, most specific / most
    stable first. ``pick`` chooses which match of the concept is wanted once a
    candidate resolves ("first", "last", or "all" for collections such as the
    product grid).
    """
    concept: str
    candidates: Tuple[str, ...]
    pick: Pick = "first"
    description: Optional[str] = None

    def __post_init__(self):
        if isinstance(self.candidates, str):
            object.__setattr__(self, "candidates", (self.candidates,))
        else:
            object.__setattr__(self, "candidates", tuple(self.candidates))
        if not self.candidates:
            raise ValueError(f"LocatorStrategy '{self.concept}' needs at least one candidate")

    def formatted(self, **kwargs) -> "LocatorStrategy":
        """Replace templated placeholders in every candidate and return a new strategy."""

        def fmt(s: str) -> str:
            if "{" not in s:
                return s
            try:
                return s.format(**kwargs)
            except (KeyError, IndexError, ValueError) as e:
                logger.warning(f"Selector formatting failed for '{s}': {e}")
                return s  # 降级返回原字符串

        return replace(self, candidates=tuple(fmt(c) for c in self.candidates))

    def with_pick(self, pick: Pick) -> "LocatorStrategy":
        return replace(self, pick=pick)

    def __str__(self) -> str:
        return self.description or self.concept


SelectorLike = Union[LocatorStrategy, str, Locator]


# ---- Internal helpers ----
def _attach_to_allure(name: str, payload: Any) -> None:
    """Attach structured info to Allure; failures here never affect the test."""
    try:
        content = json.dumps(payload, ensure_ascii=False, indent=2, default=str)
        allure.attach(content, name=name, attachment_type=allure.attachment_type.JSON)
    except Exception:
        logger.debug("Allure attach failed for %s", name, exc_info=True)


def _apply_pick(loc: Locator, pick: Pick) -> Locator:
    if pick == "first":
        return loc.first
    if pick == "last":
        return loc.last
    return loc


def _waitable(loc: Locator, pick: Pick) -> Locator:
    """wait_for is strict: collections are waited on through their first match."""
    return loc.first if pick == "all" else loc


def _union(page: Page, strategy: LocatorStrategy) -> Locator:
    loc = page.locator(strategy.candidates[0])
    for candidate in strategy.candidates[1:]:
        loc = loc.or_(page.locator(candidate))
    return loc


def _record_attempts(strategy: LocatorStrategy, attempts: List[Dict[str, Any]], found: bool) -> None:
    info = {"concept": strategy.concept, "found": found, "attempts": attempts}
    logger.debug("Selector attempts: %s", json.dumps(info, ensure_ascii=False, default=str))
    if not found:
        _attach_to_allure(f"selector_not_found[{strategy.concept}]", info)


# ---- Public API ----
class SelectorHelper:
    """
    Selector Resolver.

    ``first_visible`` never raises for candidates that do not appear: absence
    is reported as ``None`` and it is up to the caller to decide whether that
    is fatal.
    """

    @staticmethod
    def resolve_with_meta(page: Page, selector: SelectorLike) -> Tuple[Locator, ResolveInfo]:
        """
        Resolve and return (Locator, ResolveInfo) WITHOUT waiting.

        Accepts:
          - LocatorStrategy (candidates combined with Locator.or_)
          - str (raw locator string -> page.locator)
          - Locator (returned as-is)
        """
        if isinstance(selector, Locator):
            return selector, ResolveInfo(strategy="locator_object", ctx="page", attempts=[])

        if isinstance(selector, str):
            try:
                loc = page.locator(selector)
            except PlaywrightError as e:
                raise SelectorResolutionError(f"Raw string selector failed to produce a locator: {selector}") from e
            return loc, ResolveInfo(strategy="raw_string", ctx="page",
                                    attempts=[{"strategy": "raw_string", "value": selector}])

        if not isinstance(selector, LocatorStrategy):
            raise SelectorResolutionError(f"Unsupported selector type: {type(selector)}")

        loc = _apply_pick(_union(page, selector), selector.pick)
        attempts = [{"strategy": "union", "value": c} for c in selector.candidates]
        return loc, ResolveInfo(strategy="union", ctx="page", attempts=attempts)

    @staticmethod
    def resolve_locator(page: Page, selector: SelectorLike) -> Locator:
        loc, _meta = SelectorHelper.resolve_with_meta(page, selector)
        return loc

    @staticmethod
    def first_visible(
            page: Page,
            strategy: LocatorStrategy,
            timeout: Optional[float] = None,
            *,
            divide_budget: bool = False,
    ) -> Optional[Locator]:
        """
        Return the first candidate of ``strategy`` that becomes visible, or None.

        Budget policies:
          - divide_budget=False (shared deadline): all candidates are raced as one
            union locator against a single ``timeout``; whichever renders first wins.
          - divide_budget=True: candidates are tried in declaration order, each
            waiting ``timeout / len(candidates)``, so the total wait never exceeds
            ``timeout`` however many candidates there are.
        """
        timeout = timeout if timeout is not None else DEFAULT_WAIT_TIMEOUT
        attempts: List[Dict[str, Any]] = []

        if not divide_budget:
            loc = _apply_pick(_union(page, strategy), strategy.pick)
            started = time.monotonic()
            try:
                _waitable(loc, strategy.pick).wait_for(state="visible", timeout=timeout)
            except PlaywrightTimeoutError as e:
                attempts.append({"candidate": "union", "timeout_ms": timeout, "error": str(e).splitlines()[0]})
                _record_attempts(strategy, attempts, found=False)
                logger.debug("'%s' not visible within %sms", strategy.concept, timeout)
                return None
            except PlaywrightError as e:
                attempts.append({"candidate": "union", "error": str(e).splitlines()[0]})
                _record_attempts(strategy, attempts, found=False)
                logger.warning("'%s' lookup failed: %s", strategy.concept, e)
                return None
            attempts.append({"candidate": "union", "elapsed_ms": round((time.monotonic() - started) * 1000)})
            _record_attempts(strategy, attempts, found=True)
            return loc

        per_candidate = timeout / len(strategy.candidates)
        for candidate in strategy.candidates:
            loc = _apply_pick(page.locator(candidate), strategy.pick)
            try:
                _waitable(loc, strategy.pick).wait_for(state="visible", timeout=per_candidate)
            except PlaywrightTimeoutError:
                attempts.append({"candidate": candidate, "timeout_ms": per_candidate, "visible": False})
                continue
            except PlaywrightError as e:
                # 非法选择器等：记录后继续尝试下一个候选
                attempts.append({"candidate": candidate, "error": str(e).splitlines()[0]})
                logger.warning("Candidate '%s' for '%s' failed: %s", candidate, strategy.concept, e)
                continue
            attempts.append({"candidate": candidate, "visible": True})
            _record_attempts(strategy, attempts, found=True)
            return loc

        _record_attempts(strategy, attempts, found=False)
        return None

    @staticmethod
    def exists(page: Page, selector: SelectorLike, *, timeout: Optional[float] = None) -> bool:
        """
        Check whether an element is attached.

        With ``timeout`` (>0) waits for the "attached" state, otherwise performs a
        quick non-blocking ``count()``.
        """
        try:
            loc, _meta = SelectorHelper.resolve_with_meta(page, selector)
        except SelectorResolutionError:
            return False

        if timeout and timeout > 0:
            try:
                loc.first.wait_for(state="attached", timeout=timeout)
            except PlaywrightTimeoutError:
                return False
        return loc.count() > 0

    @staticmethod
    def count(page: Page, selector: SelectorLike) -> int:
        """Number of elements currently matching ``selector``."""
        if isinstance(selector, LocatorStrategy):
            selector = selector.with_pick("all")
        loc, _meta = SelectorHelper.resolve_with_meta(page, selector)
        return loc.count()
