"""
商品详情页页面对象
"""
from typing import Iterable, Optional, Sequence

from playwright.sync_api import Error as PlaywrightError

from pages.base_page import BasePage
from pages.product_detail_selector import (
    product_title,
    product_price,
    shipping_info,
    seller_name,
    add_to_cart,
)
from utils.assertions import assert_greater_than, assert_matches, assert_not_empty, assert_true, soft_check
from utils.logger import logger, log_step
from utils.price import parse_price


def match_shipping_keyword(texts: Iterable[str], keywords: Sequence[str]) -> Optional[str]:
    """返回第一个在文本中出现的包邮关键词（忽略大小写），没有则 None"""
    lowered = [k.lower() for k in keywords]
    for text in texts:
        haystack = (text or "").lower()
        for keyword in lowered:
            if keyword in haystack:
                return keyword
    return None


class ProductDetailPage(BasePage):
    """商品详情页"""

    @log_step("等待详情页加载")
    def wait_for_page_load(self) -> None:
        self.wait_for_load_state("domcontentloaded", timeout=self.timeouts.page_load)
        self.wait_for_timeout(self.timeouts.page_settle)
        self.dismiss_popups()

    # ==================== 读取信息 ====================

    def get_product_title(self) -> str:
        """商品标题；标题元素缺失时退回 <title>"""
        title = self.find_first_visible(product_title, self.timeouts.title_wait)
        if title is not None:
            try:
                text = title.inner_text(timeout=self.timeouts.title_wait).strip()
            except PlaywrightError as e:
                logger.debug(self._log(f"Title element unreadable: {e}"))
                text = ""
            if text:
                return text
        logger.info(self._log("Title element missing, falling back to document title"))
        return self.title().strip()

    def get_product_price(self) -> Optional[float]:
        """商品价格；元素缺失或无法解析时返回 None"""
        try:
            text = self.resolve(product_price).text_content(timeout=self.timeouts.price_text_wait)
        except PlaywrightError as e:
            logger.warning(self._log(f"Price not readable: {str(e).splitlines()[0]}"))
            return None
        price = parse_price(text)
        logger.info(self._log(f"Price text {text!r} -> {price}"))
        return price

    def get_seller_name(self) -> Optional[str]:
        seller = self.find_first_visible(seller_name, self.timeouts.title_wait)
        if seller is None:
            return None
        try:
            return seller.inner_text(timeout=self.timeouts.title_wait).strip() or None
        except PlaywrightError:
            return None

    def is_free_shipping_available(self) -> bool:
        """
        先检查配送信息区块，再检查整页文本（软检查，永不抛异常）
        """
        keywords = self.config.shop.free_shipping_keywords
        try:
            matched = match_shipping_keyword(self.all_texts(shipping_info), keywords)
            if matched is None:
                matched = match_shipping_keyword([self.page.inner_text("body")], keywords)
        except PlaywrightError as e:
            logger.warning(self._log(f"Shipping info not readable: {e}"))
            return False

        if matched:
            logger.info(self._log(f"Free shipping keyword found: {matched!r}"))
            return True
        logger.info(self._log("No free shipping keyword on page"))
        return False

    # ==================== 校验 ====================

    def verify_on_product_page(self) -> None:
        assert_matches(self.current_url(), self.config.shop.product_url_pattern, "Not on a product detail page")

    def assert_product_title_visible(self) -> str:
        title = self.get_product_title()
        assert_not_empty(title, "Product title is empty")
        return title

    def assert_product_price_visible(self) -> Optional[float]:
        """价格可解析时必须大于 0；不可解析时记录并跳过"""
        price = self.get_product_price()
        if price is None:
            logger.warning(self._log("Price not parsable, skipping price check"))
            return None
        assert_greater_than(price, 0, f"Product price must be positive, got {price}")
        return price

    def assert_free_shipping_available(self) -> None:
        assert_true(self.is_free_shipping_available(), "Free shipping is not available for this product")

    def soft_check_free_shipping(self) -> bool:
        return soft_check(self.is_free_shipping_available(), "free shipping available")

    def assert_add_to_cart_visible(self) -> bool:
        """加入购物车按钮缺失（如售罄）只记录，不失败"""
        button = self.find_first_visible(add_to_cart, self.timeouts.add_to_cart_wait)
        if button is None:
            logger.warning(self._log("Add to cart button not visible (possibly sold out)"))
            return False
        return True
