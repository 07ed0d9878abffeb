from ._path import PROJECT_ROOT
from .manager import (
    AppConfig,
    AllureConfig,
    BrowserConfig,
    ConfigManager,
    LogConfig,
    RetryConfig,
    ShopConfig,
    TimeoutsConfig,
)
from .env_loader import EnvLoader
from .yaml_loader import YamlLoader, deep_merge

# 全局唯一配置实例
settings = ConfigManager()

__all__ = [
    "settings",
    "AppConfig",
    "AllureConfig",
    "BrowserConfig",
    "ConfigManager",
    "LogConfig",
    "RetryConfig",
    "ShopConfig",
    "TimeoutsConfig",
    "EnvLoader",
    "YamlLoader",
    "deep_merge",
    "PROJECT_ROOT",
]
