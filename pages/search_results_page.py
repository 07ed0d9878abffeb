"""
搜索结果页页面对象：品牌/价格筛选、商品计数、打开商品
"""
from typing import List, Optional, Sequence, Union

from playwright.sync_api import Page

from pages.base_page import BasePage
from pages.search_results_selector import (
    product_cards,
    product_prices,
    price_min_input,
    price_max_input,
    price_apply_button,
    brand_option,
)
from utils.assertions import assert_greater_than, assert_matches, hard_assert
from utils.filters import FallbackFilterApplier
from utils.logger import logger, log_step, log_duration
from utils.navigation import NavigationOutcome, click_and_follow
from utils.price import parse_price, assert_prices_in_range

Number = Union[int, float]


class NoProductsError(LookupError):
    """结果页没有任何商品卡片，无法打开商品"""
    pass


def clamp_index(index: int, count: int) -> int:
    """
    把请求的下标限制在 [0, count - 1]

    Raises:
        NoProductsError: count == 0
    """
    if count <= 0:
        raise NoProductsError("No products found on the results page")
    return max(0, min(index, count - 1))


class SearchResultsPage(BasePage):
    """搜索结果页"""

    def __init__(self, page: Page, config=None):
        super().__init__(page, config)
        self.filters = FallbackFilterApplier(
            page,
            price_min_input,
            price_max_input,
            price_apply_button,
            self.timeouts,
            dismiss_popups=self.dismiss_popups,
            executor=self.executor,
            param=self.config.shop.price_query_param,
        )

    # ==================== 筛选 ====================

    @log_step("应用品牌筛选")
    def apply_brand_filter(self, brands: Optional[Sequence[str]] = None) -> Optional[str]:
        """
        点击第一个在侧栏中可见的品牌

        Args:
            brands: 品牌优先级列表，默认 shop.target_brands

        Returns:
            实际应用的品牌；都不可见时返回 None
        """
        brands = list(brands if brands is not None else self.config.shop.target_brands)

        self.wait_for_timeout(self.timeouts.filter_wait)
        self.dismiss_popups()

        per_brand = max(1, self.timeouts.filter_wait // max(1, len(brands)))
        for brand in brands:
            option = self.find_first_visible(brand_option.formatted(brand=brand), per_brand)
            if option is None:
                logger.debug(self._log(f"Brand not visible: {brand}"))
                continue
            self.safe_click(option, description=f"select brand {brand}")
            logger.info(self._log(f"Applied brand filter: {brand}"))
            self.wait_for_timeout(self.timeouts.results_wait)
            return brand

        logger.warning(self._log(f"None of the preferred brands are visible: {brands}"))
        return None

    @log_step("应用价格筛选")
    def apply_price_filter(self, min_price: Optional[Number] = None, max_price: Optional[Number] = None) -> None:
        """
        应用价格区间；页面上没有价格输入框时改写 URL 的 price 参数

        Args:
            min_price: 最低价，默认 shop.price_min
            max_price: 最高价，默认 shop.price_max
        """
        low = self.config.shop.price_min if min_price is None else min_price
        high = self.config.shop.price_max if max_price is None else max_price
        self.dismiss_popups()
        with log_duration(f"price filter {low}-{high}"):
            self.filters.apply_range(low, high)

    # ==================== 商品列表 ====================

    def count_products(self) -> int:
        """等待商品卡片出现（超时不报错）后返回数量"""
        self.find_first_visible(product_cards, self.timeouts.product_cards_wait)
        total = self.count(product_cards)
        logger.info(self._log(f"Product count: {total}"))
        return total

    def assert_product_count_greater_than(self, minimum: Optional[int] = None) -> int:
        minimum = self.config.shop.min_product_count if minimum is None else minimum
        total = self.count_products()
        assert_greater_than(total, minimum, f"Expected more than {minimum} products, found {total}")
        return total

    def get_product_prices(self, sample_size: Optional[int] = None) -> List[Optional[float]]:
        """前 sample_size 个商品价格；无法解析的为 None"""
        sample_size = sample_size or self.config.shop.price_sample_size
        texts = self.all_texts(product_prices)[:sample_size]
        return [parse_price(t) for t in texts]

    def assert_prices_within_range(
        self,
        min_price: Optional[Number] = None,
        max_price: Optional[Number] = None,
        sample_size: Optional[int] = None,
    ) -> int:
        """
        抽样校验价格在区间内；没有可解析的价格时跳过校验

        Returns:
            实际校验的价格个数
        """
        low = self.config.shop.price_min if min_price is None else min_price
        high = self.config.shop.price_max if max_price is None else max_price
        prices = self.get_product_prices(sample_size)
        checked = assert_prices_in_range(prices, low, high)
        logger.info(self._log(f"Validated {checked} price(s) within {low}-{high}"))
        return checked

    @log_step("打开商品详情")
    def open_product(self, index: int = 0) -> NavigationOutcome:
        """
        打开第 index 个商品（超出范围时取最后一个）

        Returns:
            NavigatedInPlace 或 OpenedNewSurface，包含后续使用的 page

        Raises:
            NoProductsError: 没有商品
        """
        self.find_first_visible(product_cards, self.timeouts.product_cards_wait)
        total = self.count(product_cards)
        target_index = clamp_index(index, total)
        if target_index != index:
            logger.warning(self._log(f"Index {index} out of range, clamped to {target_index}"))

        card = self.resolve(product_cards).nth(target_index)
        self.dismiss_popups()
        outcome = click_and_follow(
            self.page,
            card,
            click_timeout=self.timeouts.product_click,
            new_tab_timeout=self.timeouts.new_tab_wait,
            load_timeout=self.timeouts.page_load,
        )
        logger.info(self._log(f"Opened product #{target_index} ({type(outcome).__name__}): {outcome.page.url}"))
        return outcome

    # ==================== 校验 ====================

    def verify_on_results_page(self) -> None:
        assert_matches(self.current_url(), self.config.shop.results_url_pattern,
                       "Not on a search results page")

    def verify_search_term(self, term: Optional[str] = None) -> None:
        term = term or self.config.shop.search_term
        page_title = self.title()
        hard_assert(
            term.lower() in page_title.lower(),
            f"Search term {term!r} not in page title",
            expected=term,
            actual=page_title,
            check="search_term_in_title",
        )

