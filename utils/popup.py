"""
Popup Dismisser.

Best-effort removal of at most one overlay (login nag, promo modal, cookie
banner). The candidate list is scanned in order, each candidate getting an
equal slice of the total budget; the first visible one is clicked and the
scan stops, whether or not the click lands. The click is charged against the
same slice, so a call never waits longer than the budget.
"""
import logging
import time
from typing import Optional

from playwright.sync_api import Page

from utils.selector_helper import LocatorStrategy

logger = logging.getLogger(__name__)

DEFAULT_POPUP_BUDGET = 4000  # milliseconds
MIN_CLICK_TIMEOUT = 1  # milliseconds


class PopupDismisser:
    """Click the first visible dismissal control; never raises."""

    def __init__(self, strategy: LocatorStrategy, budget_ms: int = DEFAULT_POPUP_BUDGET):
        self.strategy = strategy
        self.budget_ms = budget_ms

    def dismiss(self, page: Page, budget_ms: Optional[int] = None) -> bool:
        """
        Try to dismiss one popup.

        Returns True when a dismissal control was clicked, False when none was
        visible within the budget (the common case) or the visible one could
        not be clicked.
        """
        budget = budget_ms if budget_ms is not None else self.budget_ms
        per_candidate = budget / len(self.strategy.candidates)

        for candidate in self.strategy.candidates:
            started = time.monotonic()
            try:
                control = page.locator(candidate).first
            except Exception as e:
                logger.debug("Popup control '%s' not resolvable: %s", candidate, e)
                continue
            if not self._appears(control, per_candidate):
                continue

            spent = (time.monotonic() - started) * 1000
            remaining = max(MIN_CLICK_TIMEOUT, per_candidate - spent)
            try:
                control.click(timeout=remaining)
            except Exception as e:
                # 弹窗关闭失败不影响主流程
                logger.debug("Popup control '%s' visible but not clickable: %s", candidate, e)
                return False
            logger.info("Dismissed popup via '%s'", candidate)
            return True

        logger.debug("No popup to dismiss")
        return False

    @staticmethod
    def _appears(control, timeout: float) -> bool:
        try:
            control.wait_for(state="visible", timeout=timeout)
        except Exception:
            return False
        return True
