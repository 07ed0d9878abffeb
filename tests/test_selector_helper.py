import unittest
from unittest.mock import Mock, patch

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError, Error as PlaywrightError

from utils.selector_helper import LocatorStrategy, SelectorHelper, SelectorResolutionError


def _locator(visible: bool = True, count: int = 1) -> Mock:
    loc = Mock()
    loc.first = loc
    loc.last = loc
    loc.or_ = Mock(return_value=loc)
    loc.count = Mock(return_value=count)
    if not visible:
        loc.wait_for = Mock(side_effect=PlaywrightTimeoutError("Timeout exceeded"))
    return loc


class TestLocatorStrategy(unittest.TestCase):
    """LocatorStrategy 单元测试"""

    def test_requires_at_least_one_candidate(self):
        with self.assertRaises(ValueError):
            LocatorStrategy("empty", ())

    def test_single_string_becomes_tuple(self):
        strategy = LocatorStrategy("logo", "#logo")
        self.assertEqual(strategy.candidates, ("#logo",))

    def test_formatted_replaces_placeholders(self):
        strategy = LocatorStrategy("brand", ('label:has-text("{brand}")', ".static"))
        formatted = strategy.formatted(brand="Samsung")
        self.assertEqual(formatted.candidates, ('label:has-text("Samsung")', ".static"))
        # 原对象不变
        self.assertEqual(strategy.candidates[0], 'label:has-text("{brand}")')

    def test_formatted_keeps_original_on_missing_key(self):
        strategy = LocatorStrategy("brand", ('label:has-text("{brand}")',))
        self.assertEqual(strategy.formatted(other="x").candidates, strategy.candidates)


class TestFirstVisibleDividedBudget(unittest.TestCase):
    """平均分配预算的候选查找"""

    def setUp(self):
        self.mock_page = Mock()

    def test_only_last_candidate_present(self):
        """只有最后一个候选存在：仍然找到，且总等待不超过预算"""
        absent = [_locator(visible=False) for _ in range(4)]
        present = _locator(visible=True)
        self.mock_page.locator = Mock(side_effect=absent + [present])
        strategy = LocatorStrategy("popup", ("#a", "#b", "#c", "#d", "#e"))

        result = SelectorHelper.first_visible(self.mock_page, strategy, 5000, divide_budget=True)

        self.assertIs(result, present)
        waits = [loc.wait_for.call_args.kwargs["timeout"] for loc in absent + [present]]
        self.assertEqual(waits, [1000.0] * 5)
        self.assertLessEqual(sum(waits), 5000)

    def test_stops_at_first_visible(self):
        first = _locator(visible=True)
        second = _locator(visible=True)
        self.mock_page.locator = Mock(side_effect=[first, second])
        strategy = LocatorStrategy("x", ("#a", "#b"))

        result = SelectorHelper.first_visible(self.mock_page, strategy, 1000, divide_budget=True)

        self.assertIs(result, first)
        self.assertEqual(self.mock_page.locator.call_count, 1)

    def test_none_visible_returns_none(self):
        self.mock_page.locator = Mock(side_effect=[_locator(visible=False), _locator(visible=False)])
        strategy = LocatorStrategy("x", ("#a", "#b"))

        self.assertIsNone(SelectorHelper.first_visible(self.mock_page, strategy, 1000, divide_budget=True))

    def test_invalid_candidate_is_skipped(self):
        broken = _locator()
        broken.wait_for = Mock(side_effect=PlaywrightError("Unexpected token"))
        good = _locator(visible=True)
        self.mock_page.locator = Mock(side_effect=[broken, good])

        result = SelectorHelper.first_visible(self.mock_page, LocatorStrategy("x", ("#!", "#ok")), 1000,
                                              divide_budget=True)
        self.assertIs(result, good)


class TestFirstVisibleSharedDeadline(unittest.TestCase):
    """共享截止时间：候选合并为一个 union locator"""

    def setUp(self):
        self.mock_page = Mock()

    def test_union_waits_once_with_full_budget(self):
        loc = _locator(visible=True)
        self.mock_page.locator = Mock(return_value=loc)
        strategy = LocatorStrategy("title", ("h1.a", "h1.b", "h1.c"))

        result = SelectorHelper.first_visible(self.mock_page, strategy, 10000)

        self.assertIs(result, loc)
        self.assertEqual(loc.or_.call_count, 2)
        loc.wait_for.assert_called_once_with(state="visible", timeout=10000)

    def test_timeout_returns_none(self):
        self.mock_page.locator = Mock(return_value=_locator(visible=False))

        self.assertIsNone(SelectorHelper.first_visible(self.mock_page, LocatorStrategy("x", ("#a",)), 100))

    def test_not_found_is_attached_to_allure(self):
        self.mock_page.locator = Mock(return_value=_locator(visible=False))

        with patch("utils.selector_helper._attach_to_allure") as attach:
            SelectorHelper.first_visible(self.mock_page, LocatorStrategy("x", ("#a",)), 100)
        attach.assert_called_once()
        self.assertEqual(attach.call_args.args[0], "selector_not_found[x]")


class TestResolveAndCount(unittest.TestCase):

    def setUp(self):
        self.mock_page = Mock()
        self.loc = _locator(count=3)
        self.mock_page.locator = Mock(return_value=self.loc)

    def test_resolve_raw_string(self):
        loc, info = SelectorHelper.resolve_with_meta(self.mock_page, ".card")
        self.assertIs(loc, self.loc)
        self.assertEqual(info.strategy, "raw_string")

    def test_resolve_strategy_union(self):
        _loc, info = SelectorHelper.resolve_with_meta(self.mock_page, LocatorStrategy("x", ("#a", "#b")))
        self.assertEqual(info.strategy, "union")
        self.assertEqual([a["value"] for a in info.attempts], ["#a", "#b"])

    def test_unsupported_type(self):
        with self.assertRaises(SelectorResolutionError):
            SelectorHelper.resolve_with_meta(self.mock_page, 42)

    def test_count_uses_all_matches(self):
        self.assertEqual(SelectorHelper.count(self.mock_page, LocatorStrategy("cards", (".card",))), 3)

    def test_exists_quick_check(self):
        self.assertTrue(SelectorHelper.exists(self.mock_page, ".card"))
        self.loc.count.return_value = 0
        self.assertFalse(SelectorHelper.exists(self.mock_page, ".card"))

    def test_exists_with_timeout(self):
        self.loc.wait_for = Mock(side_effect=PlaywrightTimeoutError("Timeout"))
        self.assertFalse(SelectorHelper.exists(self.mock_page, ".card", timeout=100))


if __name__ == "__main__":
    unittest.main()
