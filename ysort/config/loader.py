"""YAML 配置加载

读取 YAML 文件并构造 AppSettings（或其子类），解析结果按绝对路径缓存。

使用示例:
    from ysort.config import configure_sortable, load_yaml_config

    settings = load_yaml_config("config/settings.yaml")
    configure_sortable(settings.sortable)
"""

import os
from typing import Any, Dict, Optional, Type, TypeVar

import yaml

from .settings import AppSettings

T = TypeVar("T", bound=AppSettings)

_cache: Dict[str, Dict[str, Any]] = {}


def resolve_config_path(config_path: str, base_dir: Optional[str] = None) -> str:
    if os.path.isabs(config_path):
        return config_path
    return os.path.abspath(os.path.join(base_dir or os.getcwd(), config_path))


def read_yaml(config_path: str, base_dir: Optional[str] = None, use_cache: bool = True) -> Dict[str, Any]:
    """读取 YAML 文件为字典，空文件返回 {}

    Raises:
        FileNotFoundError: 配置文件不存在
        yaml.YAMLError: YAML 解析错误
    """
    abs_path = resolve_config_path(config_path, base_dir)
    if use_cache and abs_path in _cache:
        return _cache[abs_path]

    if not os.path.exists(abs_path):
        raise FileNotFoundError(f"配置文件不存在: {abs_path}")

    with open(abs_path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}

    _cache[abs_path] = data
    return data


def clear_config_cache() -> None:
    _cache.clear()


def load_yaml_config(
    config_path: str,
    settings_class: Type[T] = AppSettings,
    base_dir: Optional[str] = None,
    reload: bool = False,
    **overrides
) -> T:
    """加载 YAML 配置并创建 Settings 实例

    Args:
        config_path: 配置文件路径
        settings_class: AppSettings 或其子类
        base_dir: 相对路径的基础目录，默认当前工作目录
        reload: 忽略缓存重新读取文件
        **overrides: 覆盖文件中的顶层配置项

    使用示例:
        settings = load_yaml_config("config/settings.yaml", debug=True)
        settings.sortable.step
    """
    # 复制一份，覆盖参数不污染缓存
    data = dict(read_yaml(config_path, base_dir, use_cache=not reload))
    data.update(overrides)
    return settings_class(**data)
