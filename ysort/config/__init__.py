"""配置模块

- AppSettings: 应用基础配置，支持 YAML + 环境变量
- 子配置类: DatabaseSettings, LoggingSettings, SortableSettings
- load_yaml_config: 从 YAML 文件构造配置
- configure_sortable: 设置排序模型的全局默认值

快速开始:
    from ysort.config import AppSettings, configure_sortable, load_yaml_config

    class Settings(AppSettings):
        app_name: str = "My App"

    settings = load_yaml_config("config/settings.yaml", Settings)
    configure_sortable(settings.sortable)

配置优先级: YAML 文件与覆盖参数 > 环境变量 > 默认值
"""

from .settings import (
    AppSettings,
    DatabaseSettings,
    LoggingSettings,
    SortableSettings,
    get_sortable_settings,
    configure_sortable,
)

from .loader import (
    resolve_config_path,
    read_yaml,
    clear_config_cache,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "SortableSettings",
    "get_sortable_settings",
    "configure_sortable",
    "resolve_config_path",
    "read_yaml",
    "clear_config_cache",
    "load_yaml_config",
]
