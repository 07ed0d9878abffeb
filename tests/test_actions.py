import unittest
from unittest.mock import Mock, patch

from playwright.sync_api import TimeoutError as PlaywrightTimeoutError, Error as PlaywrightError

from config import RetryConfig
from utils.actions import (
    ResilientActionExecutor,
    ActionRetryExhaustedError,
    ElementAbsentError,
    is_transient,
)


def _flaky(failures: int, error: Exception = None):
    """前 failures 次抛出瞬时错误，之后返回 'ok'"""
    error = error or PlaywrightError("Element is not attached to the DOM")
    action = Mock(side_effect=[error] * failures + ["ok"])
    return action


@patch("utils.actions.time.sleep")
class TestResilientActionExecutor(unittest.TestCase):
    """ResilientActionExecutor 单元测试"""

    def test_success_first_try(self, sleep):
        action = Mock(return_value="ok")
        self.assertEqual(ResilientActionExecutor().execute(action), "ok")
        self.assertEqual(action.call_count, 1)
        sleep.assert_not_called()

    def test_k_transient_failures_then_success(self, sleep):
        for k in range(3):
            with self.subTest(k=k):
                sleep.reset_mock()
                action = _flaky(k)
                self.assertEqual(ResilientActionExecutor(attempts=3, delay_ms=1000).execute(action), "ok")
                self.assertEqual(action.call_count, k + 1)
                self.assertEqual(sleep.call_count, k)
                for c in sleep.call_args_list:
                    self.assertEqual(c.args, (1.0,))

    def test_always_failing_raises_after_ceiling(self, sleep):
        last = PlaywrightTimeoutError("Timeout 8000ms exceeded")
        action = Mock(side_effect=last)

        with self.assertRaises(ActionRetryExhaustedError) as ctx:
            ResilientActionExecutor(attempts=3).execute(action, "click buy")

        self.assertEqual(action.call_count, 3)
        self.assertEqual(ctx.exception.attempts, 3)
        self.assertIs(ctx.exception.last_error, last)
        self.assertIs(ctx.exception.__cause__, last)
        # 最后一次失败后不再等待
        self.assertEqual(sleep.call_count, 2)

    def test_permanent_error_not_retried(self, sleep):
        action = Mock(side_effect=PlaywrightError("Unknown engine \"foo\" while parsing selector"))
        with self.assertRaises(PlaywrightError):
            ResilientActionExecutor().execute(action)
        self.assertEqual(action.call_count, 1)

    def test_non_playwright_error_propagates(self, sleep):
        action = Mock(side_effect=ValueError("bad"))
        with self.assertRaises(ValueError):
            ResilientActionExecutor().execute(action)
        self.assertEqual(action.call_count, 1)

    def test_absent_element_not_retried(self, sleep):
        locator = Mock()
        locator.count = Mock(return_value=0)
        action = Mock()

        with self.assertRaises(ElementAbsentError):
            ResilientActionExecutor().execute(action, "click", locator=locator)
        action.assert_not_called()

    def test_element_disappearing_between_attempts(self, sleep):
        locator = Mock()
        locator.count = Mock(side_effect=[1, 0])
        action = _flaky(1)

        with self.assertRaises(ElementAbsentError):
            ResilientActionExecutor().execute(action, locator=locator)
        self.assertEqual(action.call_count, 1)

    def test_non_idempotent_runs_once(self, sleep):
        action = _flaky(1)
        with self.assertRaises(ActionRetryExhaustedError) as ctx:
            ResilientActionExecutor(attempts=3).execute(action, "add to cart", idempotent=False)
        self.assertEqual(action.call_count, 1)
        self.assertEqual(ctx.exception.attempts, 1)

    def test_click_helper(self, sleep):
        locator = Mock()
        locator.count = Mock(return_value=1)
        locator.click = Mock(side_effect=[PlaywrightTimeoutError("Timeout"), None])

        ResilientActionExecutor().click(locator, "click card", timeout=8000)

        self.assertEqual(locator.click.call_count, 2)
        locator.click.assert_called_with(timeout=8000)

    def test_from_config(self, sleep):
        executor = ResilientActionExecutor.from_config(RetryConfig(attempts=5, delay_ms=250))
        self.assertEqual((executor.attempts, executor.delay_ms), (5, 250))

    def test_invalid_attempts(self, sleep):
        with self.assertRaises(ValueError):
            ResilientActionExecutor(attempts=0)


class TestIsTransient(unittest.TestCase):

    def test_classification(self):
        cases = [
            (PlaywrightTimeoutError("Timeout 30000ms exceeded"), True),
            (PlaywrightError("Element is not attached to the DOM"), True),
            (PlaywrightError("element is not visible"), True),
            (PlaywrightError("<div> intercepts pointer events"), True),
            (PlaywrightError("Execution context was destroyed, most likely because of a navigation"), True),
            (PlaywrightError("strict mode violation"), False),
            (RuntimeError("detached"), False),
        ]
        for exc, expected in cases:
            with self.subTest(exc=str(exc)):
                self.assertEqual(is_transient(exc), expected)


if __name__ == "__main__":
    unittest.main()
