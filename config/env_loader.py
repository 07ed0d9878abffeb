"""
环境变量加载器
负责从系统环境和.env文件加载配置
"""
import os
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from ._path import PROJECT_ROOT

ENV_PREFIX = "APP_"
NESTED_DELIMITER = "__"

# CI 环境标记变量
CI_ENV_VARS = {
    "GITHUB_ACTIONS": "github_actions",
    "GITLAB_CI": "gitlab_ci",
    "JENKINS_HOME": "jenkins",
    "CIRCLECI": "circleci",
    "CI": "generic_ci",
}


class EnvLoader:
    """环境变量加载器"""

    def __init__(self, env_file: Optional[Path] = None, prefix: str = ENV_PREFIX):
        self.env_file = env_file
        self.prefix = prefix
        self._loaded = False

    def load(self) -> Dict[str, Any]:
        """加载环境变量配置"""
        if not self._loaded:
            # .env 文件（如果存在），不覆盖已有的系统环境变量
            env_path = self.env_file or Path(os.getenv("ENV_FILE", PROJECT_ROOT / ".env"))
            if env_path.exists():
                load_dotenv(env_path, override=False)
            self._loaded = True

        config = self._env_to_config()
        return self._merge(config, self._load_prefixed())

    @staticmethod
    def detect_ci() -> Optional[str]:
        """检测CI/CD环境"""
        for var, name in CI_ENV_VARS.items():
            if os.getenv(var):
                return name
        return None

    def _env_to_config(self) -> Dict[str, Any]:
        """常用的非前缀环境变量"""
        config: Dict[str, Any] = {}

        if env := os.getenv("ENV"):
            config["env"] = env.lower()
        if base_url := os.getenv("BASE_URL"):
            config["base_url"] = base_url

        browser_config: Dict[str, Any] = {}
        if headless := os.getenv("BROWSER_HEADLESS"):
            browser_config["headless"] = headless.lower() == "true"
        elif self.detect_ci():
            # CI 环境强制无头模式
            browser_config["headless"] = True
        if browser_type := os.getenv("BROWSER_TYPE"):
            browser_config["type"] = browser_type.lower()
        if browser_config:
            config["browser"] = browser_config

        if log_level := os.getenv("LOG_LEVEL"):
            config["log"] = {"log_level": log_level.upper()}

        return config

    def _load_prefixed(self) -> Dict[str, Any]:
        """APP_ 前缀变量 → 嵌套字典（APP_TIMEOUTS__POPUP_DISMISS → timeouts.popup_dismiss）"""
        result: Dict[str, Any] = {}

        for key, value in os.environ.items():
            if not key.startswith(self.prefix):
                continue
            clean_key = key[len(self.prefix):].lower()
            parts = clean_key.split(NESTED_DELIMITER)
            current = result
            for part in parts[:-1]:
                current = current.setdefault(part, {})
            current[parts[-1]] = value

        return self._convert_env_values(result)

    @classmethod
    def _convert_env_values(cls, data: Any) -> Any:
        """递归转换环境变量值类型"""
        if isinstance(data, dict):
            return {k: cls._convert_env_values(v) for k, v in data.items()}
        if isinstance(data, list):
            return [cls._convert_env_values(v) for v in data]
        if isinstance(data, str):
            # 布尔值转换
            if data.lower() in ("true", "false"):
                return data.lower() == "true"
            # 数字转换
            try:
                if "." in data:
                    return float(data)
                return int(data)
            except ValueError:
                pass
            # 列表转换 (简单支持)
            if data.startswith("[") and data.endswith("]"):
                items = [item.strip() for item in data[1:-1].split(",") if item.strip()]
                return [cls._convert_env_values(item) for item in items]
        return data

    @classmethod
    def _merge(cls, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = cls._merge(result[key], value)
            else:
                result[key] = value
        return result
