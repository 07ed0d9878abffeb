"""
Daraz 首页页面对象
"""
import re

from playwright.sync_api import Error as PlaywrightError

from pages.base_page import BasePage
from pages.home_selector import search_input, search_button
from utils.actions import ActionError
from utils.assertions import assert_matches
from utils.logger import logger, log_step


class HomePage(BasePage):
    """Daraz 首页：打开站点、执行搜索"""

    @log_step("打开首页")
    def open(self) -> None:
        """打开首页，尽力等待网络空闲后关闭弹窗"""
        self.goto(self.base_url, timeout=self.timeouts.navigation)
        self.wait_for_network_idle()
        self.dismiss_popups()

    @log_step("搜索商品")
    def search_for(self, term: str) -> None:
        """
        执行搜索

        优先点击搜索按钮，按钮不可见或点击失败时回车提交，然后等待跳转到结果页。

        Args:
            term: 搜索关键词

        Raises:
            ElementAbsentError: 搜索框不存在
            PlaywrightTimeoutError: 未跳转到结果页
        """
        logger.info(self._log(f"Searching for: {term!r}"))
        self.dismiss_popups()

        field = self.find_first_visible(search_input, self.timeouts.search_input_wait)
        if field is None:
            # 交给执行器报告缺失
            field = self.resolve(search_input)
        self.fill(field, term)

        if not self._click_search_button():
            self.executor.execute(lambda: field.press("Enter"), "submit search", idempotent=False)

        self.wait_for_url(
            re.compile(self.config.shop.search_url_pattern),
            timeout=self.timeouts.results_url_wait,
        )
        logger.info(self._log(f"Results loaded: {self.current_url()}"))

    def _click_search_button(self) -> bool:
        """点击搜索按钮；按钮不可见或点击失败时返回 False，由调用方回车提交"""
        button = self.find_first_visible(search_button, self.timeouts.search_button_wait)
        if button is None:
            logger.info(self._log("Search button not visible, submitting with Enter"))
            return False
        try:
            self.safe_click(button, timeout=self.timeouts.search_button_wait, description="click search button")
        except (ActionError, PlaywrightError) as e:
            logger.warning(self._log(f"Search button not clickable, submitting with Enter: {e}"))
            return False
        return True

    def verify_page_loaded(self) -> None:
        """断言首页标题包含站点名"""
        self.wait_for_load_state("domcontentloaded", timeout=self.timeouts.title_check)
        assert_matches(self.title(), self.config.shop.title_pattern, "Home page title does not look like Daraz")
