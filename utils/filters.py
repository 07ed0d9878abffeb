"""
Fallback Filter Applier.

Applies a numeric range filter through the in-page form when it is rendered,
and otherwise rewrites the results address (``price={min}-{max}``) and
navigates to it. Exactly one path runs per call.
"""
import logging
from typing import Callable, Optional, Union
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from playwright.sync_api import Page, Error as PlaywrightError

from config import TimeoutsConfig
from utils.actions import ResilientActionExecutor
from utils.selector_helper import LocatorStrategy, SelectorHelper

logger = logging.getLogger(__name__)

Number = Union[int, float]

DEFAULT_PRICE_PARAM = "price"


def format_bound(value: Number) -> str:
    """500.0 -> '500', 12.5 -> '12.5'"""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def build_price_filter_url(url: str, low: Number, high: Number, param: str = DEFAULT_PRICE_PARAM) -> str:
    """
    Return ``url`` with ``param`` set to ``{low}-{high}``.

    An existing ``param`` is replaced; all other query parameters and their
    order are kept.
    """
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != param]
    query.append((param, f"{format_bound(low)}-{format_bound(high)}"))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


class FallbackFilterApplier:
    """UI range filter with URL-mutation fallback."""

    def __init__(
            self,
            page: Page,
            min_input: LocatorStrategy,
            max_input: LocatorStrategy,
            apply_button: LocatorStrategy,
            timeouts: TimeoutsConfig,
            *,
            dismiss_popups: Optional[Callable[[], object]] = None,
            executor: Optional[ResilientActionExecutor] = None,
            param: str = DEFAULT_PRICE_PARAM,
    ):
        self.page = page
        self.min_input = min_input
        self.max_input = max_input
        self.apply_button = apply_button
        self.timeouts = timeouts
        self.dismiss_popups = dismiss_popups
        self.executor = executor or ResilientActionExecutor()
        self.param = param

    def apply_range(self, low: Number, high: Number) -> None:
        if low > high:
            # 配置层已拒绝 min > max；直接调用时原样透传，交给站点处理
            logger.warning("Range filter with min %s > max %s, applying as given", low, high)

        min_field = SelectorHelper.first_visible(self.page, self.min_input, self.timeouts.price_input_wait)
        if min_field is not None:
            self._apply_via_form(min_field, low, high)
        else:
            self._apply_via_url(low, high)

        self.page.wait_for_timeout(self.timeouts.results_wait)
        if self.dismiss_popups is not None:
            self.dismiss_popups()

    def _apply_via_form(self, min_field, low: Number, high: Number) -> None:
        logger.info("Applying range %s-%s via filter inputs", low, high)
        min_field.fill(format_bound(low))
        max_field = SelectorHelper.resolve_locator(self.page, self.max_input)
        max_field.fill(format_bound(high))

        apply = SelectorHelper.resolve_locator(self.page, self.apply_button)
        try:
            apply.click(timeout=self.timeouts.apply_button_wait)
        except PlaywrightError as e:
            logger.info("Apply button not actionable (%s), submitting with Enter", str(e).splitlines()[0])
            self.executor.execute(lambda: min_field.press("Enter"), "submit range filter", idempotent=False)

    def _apply_via_url(self, low: Number, high: Number) -> None:
        target = build_price_filter_url(self.page.url, low, high, self.param)
        logger.info("Filter inputs not found, applying range via URL: %s", target)
        self.page.goto(target, wait_until="domcontentloaded", timeout=self.timeouts.fallback_navigation)
