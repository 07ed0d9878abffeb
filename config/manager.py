import os
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from ._path import PROJECT_ROOT
from .env_loader import EnvLoader
from .yaml_loader import YamlLoader, deep_merge


class BrowserConfig(BaseModel):
    """浏览器配置模型"""
    type: str = "chromium"  # chromium/firefox/webkit
    headless: bool = True
    slow_mo: int = 0
    viewport: Dict[str, int] = {"width": 1366, "height": 768}
    ignore_https_errors: bool = True
    action_timeout: int = 15000
    navigation_timeout: int = 30000

    model_config = ConfigDict(frozen=True)

    @field_validator("type")
    @classmethod
    def validate_browser_type(cls, v):
        valid_types = ["chromium", "firefox", "webkit"]
        if v not in valid_types:
            raise ValueError(f"无效的浏览器类型: {v}, 必须是 {valid_types}")
        return v


class LogConfig(BaseModel):
    """日志配置模型"""
    log_dir: Path = PROJECT_ROOT / "logs"
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file: str = "test_run.log"

    model_config = ConfigDict(frozen=True)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v):
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        v = str(v).upper()
        if v not in valid_levels:
            raise ValueError(f"无效的日志级别: {v}, 必须是 {valid_levels}")
        return v


class TimeoutsConfig(BaseModel):
    """超时预算（毫秒）"""
    default: int = 30000
    navigation: int = 40000
    network_idle: int = 30000
    page_load: int = 30000
    page_settle: int = 2000

    # 弹窗关闭总预算（在各候选选择器之间平均分配）
    popup_dismiss: int = 4000
    # 筛选栏稳定等待 / 结果刷新等待
    filter_wait: int = 3000
    results_wait: int = 4000

    search_input_wait: int = 15000
    search_button_wait: int = 5000
    results_url_wait: int = 30000
    title_check: int = 15000

    price_input_wait: int = 8000
    apply_button_wait: int = 5000
    fallback_navigation: int = 30000

    product_cards_wait: int = 15000
    product_click: int = 10000
    new_tab_wait: int = 5000

    title_wait: int = 10000
    price_text_wait: int = 8000
    add_to_cart_wait: int = 8000
    action: int = 8000

    model_config = ConfigDict(frozen=True)

    @field_validator("*")
    @classmethod
    def validate_positive(cls, v):
        if v <= 0:
            raise ValueError("超时值必须大于0")
        return v


class RetryConfig(BaseModel):
    """可重试操作的策略"""
    attempts: int = 3
    delay_ms: int = 1000

    model_config = ConfigDict(frozen=True)

    @field_validator("attempts")
    @classmethod
    def validate_attempts(cls, v):
        if v < 1:
            raise ValueError("重试次数至少为1")
        return v

    @field_validator("delay_ms")
    @classmethod
    def validate_delay(cls, v):
        if v < 0:
            raise ValueError("重试间隔不能为负数")
        return v


class ShopConfig(BaseModel):
    """购物流程的业务数据"""
    search_term: str = "electronics"
    price_min: float = 500
    price_max: float = 5000
    # 依次尝试，使用第一个在侧栏中可见的品牌
    target_brands: Tuple[str, ...] = ("Samsung", "Xiaomi", "Audionic", "Anker", "Sony")
    min_product_count: int = 1
    price_sample_size: int = 10
    # TODO: 裸词 "free" 会命中 "Buy 1 Free 1" 等促销文案，待业务确认后收窄
    free_shipping_keywords: Tuple[str, ...] = ("free shipping", "free delivery", "free")
    price_query_param: str = "price"
    results_url_pattern: str = r"catalog|search|list"
    search_url_pattern: str = r"/catalog/\?q=|search"
    product_url_pattern: str = r"/products/|/i/"
    title_pattern: str = r"Daraz"

    model_config = ConfigDict(frozen=True)

    @field_validator("price_min", "price_max")
    @classmethod
    def validate_non_negative(cls, v):
        if v < 0:
            raise ValueError("价格不能为负数")
        return v

    @model_validator(mode="after")
    def validate_price_range(self):
        if self.price_min > self.price_max:
            raise ValueError(f"price_min ({self.price_min}) 不能大于 price_max ({self.price_max})")
        return self


class AllureConfig(BaseModel):
    """Allure报告配置"""
    screenshot_on_failure: bool = True
    screenshot_dir: Path = PROJECT_ROOT / "screenshots"

    model_config = ConfigDict(frozen=True)


class AppConfig(BaseModel):
    """应用级配置模型（一次测试运行内不可变）"""

    env: str = "dev"
    base_url: str = "https://www.daraz.pk"

    browser: BrowserConfig = Field(default_factory=BrowserConfig)
    timeouts: TimeoutsConfig = Field(default_factory=TimeoutsConfig)
    retry: RetryConfig = Field(default_factory=RetryConfig)
    shop: ShopConfig = Field(default_factory=ShopConfig)
    allure: AllureConfig = Field(default_factory=AllureConfig)
    log: LogConfig = Field(default_factory=LogConfig)

    project_root: Path = PROJECT_ROOT

    model_config = ConfigDict(frozen=True, extra="ignore")

    @field_validator("env")
    @classmethod
    def validate_env(cls, v):
        valid_envs = ["dev", "staging", "prod"]
        if v not in valid_envs:
            raise ValueError(f"无效环境: {v}, 必须是 {valid_envs}")
        return v


class ConfigManager:
    """配置管理核心: YAML → 环境变量 → 命令行覆盖，最后由 pydantic 校验"""

    def __init__(self, yaml_loader: Optional[YamlLoader] = None, env_loader: Optional[EnvLoader] = None):
        self._config: Optional[AppConfig] = None
        self._yaml_loader = yaml_loader or YamlLoader()
        self._env_loader = env_loader or EnvLoader()
        self._overrides: Dict[str, Any] = {}

    def _load_config(self) -> AppConfig:
        """加载完整配置"""
        env_config = self._env_loader.load()

        # 1. 加载基础YAML配置
        env_name = self._overrides.get("env") or env_config.get("env") or os.getenv("ENV", "dev")
        base_config = self._yaml_loader.load_environment(env=env_name)

        # 2. 合并环境变量，3. 应用命令行覆盖
        merged = deep_merge(base_config, env_config)
        final_config = deep_merge(merged, self._overrides)

        try:
            return AppConfig(**final_config)
        except ValidationError as e:
            self._handle_validation_error(e)

    def initialize(self) -> None:
        """显式初始化 (通常不需要调用)"""
        if self._config is None:
            self._config = self._load_config()

    def current(self) -> AppConfig:
        """返回当前的不可变配置记录"""
        self.initialize()
        return self._config

    def reset(self) -> None:
        """丢弃已加载的配置，下次访问时重新加载"""
        self._config = None
        self._yaml_loader.clear_cache()

    def __getattr__(self, name: str) -> Any:
        """动态属性访问: settings.timeouts.popup_dismiss"""
        if name.startswith("_"):
            raise AttributeError(name)

        config = self.current()
        try:
            return getattr(config, name)
        except AttributeError:
            available = ", ".join(AppConfig.model_fields)
            raise AttributeError(f"配置中不存在属性: {name}\n可用属性: {available}") from None

    def get(self, path: str, default: Any = None) -> Any:
        """
        安全获取嵌套配置
        示例: settings.get("timeouts.popup_dismiss", 4000)
        """
        current: Any = self.current().model_dump()
        for key in path.split("."):
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    def apply_overrides(self, overrides_str: str) -> None:
        """
        应用命令行覆盖
        格式: "key1=value1,key2.subkey=value2"
        """
        if not overrides_str:
            return

        self._overrides = {}
        for pair in self._split_pairs(overrides_str):
            if "=" not in pair:
                continue
            key, value = pair.split("=", 1)
            keys = [k.strip() for k in key.strip().split(".")]
            current = self._overrides

            for k in keys[:-1]:
                current = current.setdefault(k, {})
            current[keys[-1]] = self._parse_value(value.strip())

        # 覆盖项变化后需要重新加载
        self._config = None

    @staticmethod
    def _split_pairs(overrides_str: str) -> List[str]:
        """按逗号切分，但保留 [...] 中的逗号"""
        pairs, buf, depth = [], [], 0
        for ch in overrides_str:
            if ch == "[":
                depth += 1
            elif ch == "]":
                depth = max(0, depth - 1)
            if ch == "," and depth == 0:
                pairs.append("".join(buf))
                buf = []
                continue
            buf.append(ch)
        if buf:
            pairs.append("".join(buf))
        return pairs

    def _parse_value(self, value: str) -> Any:
        """智能解析配置值类型"""
        # 布尔值
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        # 数字
        try:
            if "." in value:
                return float(value)
            return int(value)
        except ValueError:
            pass

        # 列表
        if value.startswith("[") and value.endswith("]"):
            items = [item.strip() for item in value[1:-1].split(",") if item.strip()]
            return [self._parse_value(item) for item in items]

        return value

    def to_yaml(self) -> str:
        """生成配置快照YAML"""
        data = self.current().model_dump(mode="json")
        return yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True)

    @staticmethod
    def _handle_validation_error(error: ValidationError):
        """处理验证错误"""
        messages = []
        for err in error.errors():
            loc = ".".join(str(l) for l in err["loc"])
            msg = f"配置项 '{loc}': {err['msg']} (值: {err.get('input')})"
            messages.append(msg)

        error_msg = "配置验证失败:\n" + "\n".join(messages)
        raise RuntimeError(error_msg) from None
