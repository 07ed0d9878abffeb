"""
环境配置文件：environments/base.yaml 打底，environments/{env}.yaml 覆盖
"""
import copy
from pathlib import Path
from typing import Any, Dict, Union

import yaml

from ._path import PROJECT_ROOT

BASE_FILE = "base.yaml"


def deep_merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """override 覆盖 base，嵌套字典逐层合并；两个入参都不会被修改"""
    if not isinstance(base, dict):
        return override
    result = dict(base)
    for key, value in override.items():
        if isinstance(result.get(key), dict) and isinstance(value, dict):
            result[key] = deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def read_mapping(path: Path, required: bool = False) -> Dict[str, Any]:
    """读取一个根节点为字典的 YAML 文件；可选文件缺失时返回 {}"""
    if not path.is_file():
        if required:
            raise FileNotFoundError(f"基础配置文件不存在: {path}")
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"YAML解析错误 ({path}): {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"YAML根节点必须是字典 ({path})")
    return data


class YamlLoader:
    """按环境名加载并缓存合并后的配置"""

    def __init__(self, config_dir: Union[str, Path] = PROJECT_ROOT / "environments"):
        self.config_dir = Path(config_dir)
        self._cache: Dict[str, Dict[str, Any]] = {}

    def load_environment(self, env: str = "dev") -> Dict[str, Any]:
        if env not in self._cache:
            base = read_mapping(self.config_dir / BASE_FILE, required=True)
            overlay = read_mapping(self.config_dir / f"{env}.yaml")
            self._cache[env] = deep_merge(base, overlay)
        # 调用方会继续合并环境变量，返回副本
        return copy.deepcopy(self._cache[env])

    def clear_cache(self) -> None:
        self._cache.clear()
