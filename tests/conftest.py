import re
import sys
import warnings
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

import allure
import pytest

from config import settings
from utils.assertions import classify_failure
from utils.data_loader import load_yaml_file, InvalidYamlFormatError


# ==================== 命令行选项 ====================
def pytest_addoption(parser):
    group = parser.getgroup("daraz")
    group.addoption(
        "--run-e2e",
        action="store_true",
        default=False,
        help="运行访问真实站点的 e2e 用例",
    )
    group.addoption(
        "--config-override",
        action="store",
        default="",
        help='覆盖配置项，例如 "browser.headless=false,timeouts.popup_dismiss=2000"',
    )


def pytest_configure(config):
    overrides = config.getoption("--config-override")
    if overrides:
        settings.apply_overrides(overrides)


def pytest_collection_modifyitems(config, items):
    if config.getoption("--run-e2e"):
        return
    skip_e2e = pytest.mark.skip(reason="需要 --run-e2e 才会访问真实站点")
    for item in items:
        if "e2e" in item.keywords:
            item.add_marker(skip_e2e)


# ==================== 失败分类与报告 ====================
@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(item, call):
    outcome = yield
    report = outcome.get_result()
    setattr(item, f"rep_{report.when}", report)

    if report.failed and call.excinfo is not None:
        kind = classify_failure(call.excinfo.value)
        report.user_properties.append(("failure_kind", kind))
        item.user_properties.append(("failure_kind", kind))
        allure.dynamic.label("failure_kind", kind)


# ==================== 浏览器 fixture ====================
@pytest.fixture(scope="session")
def app_config():
    return settings.current()


@pytest.fixture(scope="session")
def playwright_instance():
    from playwright.sync_api import sync_playwright

    with sync_playwright() as p:
        yield p


@pytest.fixture(scope="session")
def browser(playwright_instance, app_config):
    browser_cfg = app_config.browser
    launcher = getattr(playwright_instance, browser_cfg.type)
    browser = launcher.launch(headless=browser_cfg.headless, slow_mo=browser_cfg.slow_mo)
    yield browser
    browser.close()


@pytest.fixture
def context(browser, app_config):
    """每个用例独立的浏览器上下文"""
    browser_cfg = app_config.browser
    ctx = browser.new_context(
        viewport=browser_cfg.viewport,
        ignore_https_errors=browser_cfg.ignore_https_errors,
    )
    ctx.set_default_timeout(browser_cfg.action_timeout)
    ctx.set_default_navigation_timeout(browser_cfg.navigation_timeout)
    yield ctx
    ctx.close()


@pytest.fixture
def page(context, request):
    from utils.logger import setup_playwright_logging, attach_logs_to_allure

    pg = context.new_page()
    setup_playwright_logging(pg)
    yield pg

    rep = getattr(request.node, "rep_call", None)
    if rep is not None and rep.failed:
        # 商品详情可能在新标签页打开，截最后一个页面
        target = context.pages[-1] if context.pages else pg
        try:
            allure.attach(
                target.screenshot(full_page=True),
                name=f"failure_{request.node.name}",
                attachment_type=allure.attachment_type.PNG,
            )
        except Exception as e:
            warnings.warn(f"失败截图未能生成: {e}", UserWarning)
        attach_logs_to_allure()


# ==================== 安全的YAML加载（带缓存） ====================
@lru_cache(maxsize=128)
def _cached_load_yaml(file_path_str: str) -> Dict[str, List[Dict[str, Any]]]:
    """带缓存的YAML加载（基于绝对路径）"""
    return load_yaml_file(Path(file_path_str))


def _extract_yaml_param_names(metafunc, first_case: Dict[str, Any]) -> List[str]:
    """
    提取需从YAML注入的参数名（测试函数参数名必须与YAML字段名一致）
    """
    yaml_fields = set(first_case.keys()) if first_case else set()
    param_names = [p for p in metafunc.fixturenames if p in yaml_fields]

    if not param_names and yaml_fields:
        _raise_usage_error(
            metafunc,
            f"测试函数参数与YAML字段无匹配\n"
            f"  YAML字段: {sorted(yaml_fields)}\n"
            f"  测试参数: {sorted(metafunc.fixturenames)}\n"
            f"  要求: 测试函数参数名必须与YAML字段名完全一致"
        )
    return param_names


def _case_id(case: Dict[str, Any], group_name: str, idx: int) -> str:
    case_id = str(case.get("id", "")) or str(case.get("name", "")) or str(case.get("desc", ""))
    # 清理为有效标识符
    case_id = re.sub(r"[^a-zA-Z0-9_]", "_", case_id)
    case_id = re.sub(r"_+", "_", case_id).strip("_")
    if not case_id or not case_id[0].isalpha():
        case_id = f"{group_name}_{idx}"
    if len(case_id) > 100:
        case_id = case_id[:97] + "..."
    return case_id


# ==================== 核心钩子 ====================
def pytest_generate_tests(metafunc):
    """
    @pytest.mark.yaml_data(file="xxx.yaml", group="yyy") 动态参数化

    文件位于 <project_root>/test_data/；文件、用例组缺失时跳过，格式错误时终止收集。
    """
    marker = metafunc.definition.get_closest_marker("yaml_data")
    if marker is None:
        return

    try:
        file_name = marker.kwargs["file"]
        group_name = marker.kwargs["group"]
    except KeyError as e:
        _raise_usage_error(
            metafunc,
            f"@pytest.mark.yaml_data 缺少必需参数 {e}\n"
            f"  正确用法: @pytest.mark.yaml_data(file='xxx.yaml', group='yyy')\n"
            f"  当前参数: {marker.kwargs}"
        )
        return

    abs_file_path = settings.project_root / "test_data" / file_name
    if not abs_file_path.exists():
        _warn_and_skip(metafunc, f"YAML数据文件不存在，跳过测试: {abs_file_path}")
        _parametrize_empty(metafunc)
        return

    try:
        res = _cached_load_yaml(str(abs_file_path))
    except InvalidYamlFormatError as e:
        _raise_usage_error(metafunc, f"YAML数据格式验证失败，测试终止:\n{e}")
        return

    cases = res.get(group_name)
    if not cases:
        available = list(res.keys())
        _warn_and_skip(
            metafunc,
            f"YAML中不存在用例组 '{group_name}'，跳过测试。\n"
            f"  可用组: {available if available else '[空]'}"
        )
        _parametrize_empty(metafunc)
        return

    param_names = _extract_yaml_param_names(metafunc, cases[0])

    param_values: List[Tuple[Any, ...]] = []
    param_ids: List[str] = []
    for idx, case in enumerate(cases):
        missing = [p for p in param_names if p not in case]
        if missing:
            continue  # 跳过字段缺失的用例
        param_values.append(tuple(case[p] for p in param_names))
        param_ids.append(_case_id(case, group_name, idx))

    if not param_values:
        _warn_and_skip(
            metafunc,
            f"用例组 '{group_name}' 无有效用例（所有用例均因字段缺失被跳过）\n"
            f"  所需参数: {param_names}"
        )
        _parametrize_empty(metafunc)
        return

    metafunc.parametrize(",".join(param_names), param_values, ids=param_ids, scope="function")


# ==================== 辅助函数 ====================
def _raise_usage_error(metafunc, message: str) -> None:
    """在收集阶段抛出使用错误"""
    raise pytest.UsageError(f"[YAML数据错误] in {metafunc.definition.nodeid}\n{message}")


def _warn_and_skip(metafunc, message: str) -> None:
    """
    收集阶段不能 pytest.skip()，改为发出 UserWarning 并打印到 stderr
    """
    full_message = f"[YAML数据] in {metafunc.definition.nodeid}\n{message}"
    warnings.warn(full_message, UserWarning, stacklevel=2)
    print(f"\n⚠️  YAML数据跳过 [{metafunc.definition.nodeid}]:\n{message}", file=sys.stderr)


def _parametrize_empty(metafunc) -> None:
    """参数化空列表触发 pytest 自动跳过"""
    safe_params = [
        p for p in metafunc.fixturenames
        if p.isidentifier() and not p.startswith("_") and p != "request"
    ]
    param_name = safe_params[0] if safe_params else "yaml_skip_marker"
    metafunc.parametrize(param_name, [], ids=[], scope="function")
