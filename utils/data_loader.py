"""
测试数据加载：test_data/*.yaml -> {组名: [用例, ...]}
"""
from pathlib import Path
from typing import Any, Dict, List

import yaml

Case = Dict[str, Any]


class InvalidYamlFormatError(ValueError):
    """测试数据文件结构不是 {组名: 用例 | [用例, ...]}"""


def load_yaml_file(file_path: Path) -> Dict[str, List[Case]]:
    """
    读取测试数据文件，每个组统一为用例列表

    单个用例可直接写成字典；空文件返回 {}。

    Raises:
        FileNotFoundError: 文件不存在
        InvalidYamlFormatError: 语法错误或结构不符
    """
    file_path = Path(file_path)
    if not file_path.is_file():
        raise FileNotFoundError(f"测试数据文件不存在: {file_path}")

    try:
        raw = yaml.safe_load(file_path.read_text(encoding="utf-8"))
    except (yaml.YAMLError, UnicodeDecodeError) as e:
        raise InvalidYamlFormatError(f"{file_path}: 无法解析\n{e}") from e

    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise InvalidYamlFormatError(f"{file_path}: 根节点应为 组名 -> 用例，实际为 {type(raw).__name__}")
    return {group: _as_cases(file_path, group, value) for group, value in raw.items()}


def _as_cases(file_path: Path, group: str, value: Any) -> List[Case]:
    cases = [value] if isinstance(value, dict) else value
    if not isinstance(cases, list) or not cases:
        raise InvalidYamlFormatError(f"{file_path}: 组 '{group}' 应为非空用例或用例列表，实际为 {value!r}")
    for idx, case in enumerate(cases, 1):
        if not isinstance(case, dict) or not case:
            raise InvalidYamlFormatError(f"{file_path}: 组 '{group}' 第 {idx} 个用例应为非空字典，实际为 {case!r}")
    return cases
