"""
BasePage - Page Object Pattern 基类

封装 SelectorHelper / PopupDismisser / ResilientActionExecutor 的通用能力。
所有页面对象类应继承此类。
"""
from __future__ import annotations

import re
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Optional, Union, Callable, Pattern
from urllib.parse import urljoin

import allure
from playwright.sync_api import Page, Locator, Response, TimeoutError as PlaywrightTimeoutError

from config import settings, AppConfig
from pages.common_selector import popup_close
from utils.actions import ResilientActionExecutor
from utils.logger import logger, log_exception
from utils.popup import PopupDismisser
from utils.selector_helper import (
    SelectorHelper,
    LocatorStrategy,
    SelectorLike,
)


class BasePage:
    """页面对象基类 - 封装通用的页面操作方法"""

    # 滚动到底部的默认步数与每步停顿（毫秒）
    SCROLL_STEPS = 5
    SCROLL_PAUSE = 300

    def __init__(self, page: Page, config: Optional[AppConfig] = None):
        """
        初始化 BasePage

        Args:
            page: Playwright Page 对象
            config: 运行配置（默认取全局 settings 的当前快照）
        """
        self.page = page
        self.config = config or settings.current()
        self.timeouts = self.config.timeouts
        self.base_url = self.config.base_url

        self.executor = ResilientActionExecutor.from_config(self.config.retry)
        self.popups = PopupDismisser(popup_close, budget_ms=self.timeouts.popup_dismiss)

        # 页面元数据
        self._page_name = self.__class__.__name__
        self._load_time: Optional[float] = None

    def _log(self, message: str) -> str:
        return f"[{self._page_name}] {message}"

    # ==================== 导航相关方法 ====================

    def goto(self, url: str, timeout: Optional[int] = None, wait_until: str = "domcontentloaded") -> Optional[Response]:
        """
        导航到指定 URL

        Args:
            url: 目标 URL（如果是相对路径，会拼接 base_url）
            timeout: 超时时间（毫秒），默认 timeouts.navigation
            wait_until: 等待状态（"load" | "domcontentloaded" | "networkidle" | "commit"）

        Raises:
            PlaywrightTimeoutError: 导航超时
        """
        if not url.startswith(("http://", "https://")) and self.base_url:
            url = urljoin(self.base_url, url)

        logger.info(self._log(f"Navigate to: {url}"))

        start_time = time.time()
        response = self.page.goto(url, timeout=timeout or self.timeouts.navigation, wait_until=wait_until)
        self._load_time = time.time() - start_time

        logger.info(self._log(f"Page loaded in {self._load_time:.2f}s"))
        return response

    def wait_for_network_idle(self, timeout: Optional[int] = None) -> bool:
        """尽力等待网络空闲；站点长连接较多，超时不视为失败"""
        try:
            self.page.wait_for_load_state("networkidle", timeout=timeout or self.timeouts.network_idle)
            return True
        except PlaywrightTimeoutError:
            logger.debug(self._log("Network did not become idle, continuing"))
            return False

    def wait_for_url(self, url: Union[str, Pattern[str], Callable[[str], bool]], timeout: Optional[int] = None) -> None:
        """等待 URL 匹配"""
        self.page.wait_for_url(url, timeout=timeout or self.timeouts.default)

    def wait_for_load_state(self, state: str = "domcontentloaded", timeout: Optional[int] = None) -> None:
        """等待页面加载状态"""
        self.page.wait_for_load_state(state, timeout=timeout or self.timeouts.page_load)

    def wait_for_timeout(self, timeout: int) -> None:
        """固定等待（毫秒），用于筛选/结果刷新后的稳定期"""
        self.page.wait_for_timeout(timeout)

    def current_url(self) -> str:
        """获取当前 URL"""
        return self.page.url

    def title(self) -> str:
        """获取页面标题"""
        return self.page.title()

    # ==================== 元素定位与解析 ====================

    def resolve(self, selector: SelectorLike) -> Locator:
        """
        解析选择器并返回 Locator（不等待）

        Args:
            selector: LocatorStrategy | str | Locator
        """
        return SelectorHelper.resolve_locator(self.page, selector)

    def find_first_visible(
        self,
        strategy: LocatorStrategy,
        timeout: Optional[int] = None,
        divide_budget: bool = False,
    ) -> Optional[Locator]:
        """
        返回第一个可见的候选元素；全部不可见时返回 None（不抛异常）

        Args:
            strategy: 候选选择器策略
            timeout: 等待预算（毫秒）
            divide_budget: True 时预算在候选间平均分配，否则共享同一截止时间
        """
        return SelectorHelper.first_visible(
            self.page,
            strategy,
            timeout if timeout is not None else self.timeouts.default,
            divide_budget=divide_budget,
        )

    def exists(self, selector: SelectorLike, timeout: Optional[int] = None) -> bool:
        """检查元素是否存在（timeout 为 None 时快速检查）"""
        return SelectorHelper.exists(self.page, selector, timeout=timeout)

    def count(self, selector: SelectorLike) -> int:
        """匹配元素数量"""
        return SelectorHelper.count(self.page, selector)

    def all_texts(self, selector: SelectorLike) -> list:
        """获取所有匹配元素的文本"""
        if isinstance(selector, LocatorStrategy):
            selector = selector.with_pick("all")
        return self.resolve(selector).all_inner_texts()

    # ==================== 弹窗与操作 ====================

    def dismiss_popups(self, budget_ms: Optional[int] = None) -> bool:
        """尽力关闭一个遮挡弹窗（永不抛异常）"""
        return self.popups.dismiss(self.page, budget_ms)

    def safe_click(
        self,
        selector: SelectorLike,
        timeout: Optional[int] = None,
        description: Optional[str] = None,
    ) -> None:
        """
        带重试的点击

        Args:
            selector: LocatorStrategy | str | Locator
            timeout: 单次点击超时（毫秒），默认 timeouts.action
            description: 日志中使用的操作名称

        Raises:
            ElementAbsentError: 元素不存在
            ActionRetryExhaustedError: 重试耗尽
        """
        locator = self.resolve(selector)
        self.executor.click(
            locator,
            description or f"click {selector}",
            timeout=timeout or self.timeouts.action,
        )

    def fill(self, selector: SelectorLike, value: str, timeout: Optional[int] = None) -> None:
        """填充输入框（先清空再输入），瞬时失败会重试"""
        locator = self.resolve(selector)
        logger.debug(self._log(f"Filling {selector} with: {value[:50]}"))
        self.executor.execute(
            lambda: locator.fill(value, timeout=timeout or self.timeouts.action),
            f"fill {selector}",
            locator=locator,
        )

    # ==================== 滚动操作 ====================

    def scroll_to_bottom(self, steps: Optional[int] = None, pause_ms: Optional[int] = None) -> None:
        """分步滚动到底部，触发懒加载内容"""
        steps = steps or self.SCROLL_STEPS
        pause_ms = pause_ms if pause_ms is not None else self.SCROLL_PAUSE
        for _ in range(steps):
            self.page.evaluate("window.scrollBy(0, window.innerHeight)")
            self.page.wait_for_timeout(pause_ms)

    # ==================== 截图与调试 ====================

    def screenshot_on_failure(self, name: str = "failure", full_page: bool = True) -> Optional[Path]:
        """失败时截图，保存到 allure.screenshot_dir 并附加到 Allure 报告"""
        if not self.config.allure.screenshot_on_failure:
            return None
        try:
            screenshot_dir = Path(self.config.allure.screenshot_dir)
            screenshot_dir.mkdir(parents=True, exist_ok=True)
            safe_name = re.sub(r"[^\w.-]", "_", name)
            path = screenshot_dir / f"{safe_name}_{int(time.time())}.png"
            data = self.page.screenshot(path=str(path), full_page=full_page)
            allure.attach(data, name=safe_name, attachment_type=allure.attachment_type.PNG)
            logger.info(self._log(f"Screenshot saved: {path}"))
            return path
        except Exception as e:
            logger.error(self._log(f"Failed to take screenshot: {e}"))
            return None

    @contextmanager
    def auto_screenshot_on_error(self, name: str = "operation"):
        """
        上下文管理器：操作失败时自动截图并重新抛出

        Usage:
            with results.auto_screenshot_on_error("apply_filters"):
                results.apply_brand_filter(brands)
        """
        try:
            yield
        except Exception as e:
            log_exception(e, context=self._log(name))
            self.screenshot_on_failure(name=name)
            raise

    def __repr__(self) -> str:
        return f"<{self._page_name} url={self.page.url!r}>"
