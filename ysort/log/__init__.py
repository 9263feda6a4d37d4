"""日志模块

使用示例:
    from ysort.log import configure_logging, get_logger

    # 应用启动时按配置设置 "ysort" 日志输出
    configure_logging(settings.logging)

    # 在模块中获取日志记录器
    logger = get_logger()
"""

from .logger import (
    DEFAULT_LOG_FORMAT,
    create_formatter,
    setup_logger,
    configure_logging,
    get_logger,
    sortable_logger,
    logger,
)

__all__ = [
    "DEFAULT_LOG_FORMAT",
    "create_formatter",
    "setup_logger",
    "configure_logging",
    "get_logger",
    "sortable_logger",
    "logger",
]
