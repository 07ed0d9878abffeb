"""
Same-tab vs new-tab navigation outcome.

Some product links open in the current tab, others in a new one. The click is
raced against the context's "page" event; if no new page shows up within the
bound, navigation is assumed to have happened in place.
"""
import logging
from dataclasses import dataclass
from typing import Union

from playwright.sync_api import Page, Locator, TimeoutError as PlaywrightTimeoutError

logger = logging.getLogger(__name__)

DEFAULT_NEW_TAB_WAIT = 5000
DEFAULT_LOAD_WAIT = 30000


@dataclass(frozen=True)
class NavigatedInPlace:
    page: Page

    @property
    def opened_new_tab(self) -> bool:
        return False


@dataclass(frozen=True)
class OpenedNewSurface:
    page: Page

    @property
    def opened_new_tab(self) -> bool:
        return True


NavigationOutcome = Union[NavigatedInPlace, OpenedNewSurface]


def click_and_follow(
        page: Page,
        target: Locator,
        *,
        click_timeout: float,
        new_tab_timeout: float = DEFAULT_NEW_TAB_WAIT,
        load_timeout: float = DEFAULT_LOAD_WAIT,
) -> NavigationOutcome:
    """
    Click ``target`` and return where the navigation landed.

    A click that itself times out is re-raised; only a missing "page" event
    is interpreted as same-tab navigation.
    """
    clicked = False
    try:
        with page.context.expect_page(timeout=new_tab_timeout) as new_page_info:
            target.click(timeout=click_timeout)
            clicked = True
        new_page = new_page_info.value
    except PlaywrightTimeoutError:
        if not clicked:
            raise
        logger.info("No new tab within %sms, continuing in current tab", new_tab_timeout)
        page.wait_for_load_state("domcontentloaded", timeout=load_timeout)
        return NavigatedInPlace(page)

    new_page.wait_for_load_state("domcontentloaded", timeout=load_timeout)
    logger.info("Navigation opened a new tab: %s", new_page.url)
    return OpenedNewSurface(new_page)
