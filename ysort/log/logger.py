"""
日志工具模块

ysort 的日志记录器都挂在 "ysort" 之下:
    ysort.orm.sortable    排序引擎（移动完成 INFO，无操作与批量位移 DEBUG，失败 ERROR）
    ysort.orm.db_session  数据库初始化
    ysort.exceptions      异常处理器

库本身不添加处理器，应用通过 configure_logging(settings.logging) 配置输出。
"""

import inspect
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

# 默认日志格式
DEFAULT_LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(filename)s:%(lineno)d - %(message)s"


def create_formatter(log_format: str = None, datefmt: str = "%Y-%m-%d %H:%M:%S") -> logging.Formatter:
    return logging.Formatter(log_format or DEFAULT_LOG_FORMAT, datefmt=datefmt)


def setup_logger(
    name: str = "ysort",
    level: str = "INFO",
    log_file: str = None,
    console: bool = True,
    log_format: str = None,
    max_bytes: int = 10 * 1024 * 1024,
    backup_count: int = 5,
    encoding: str = "utf-8",
    propagate: bool = True,
) -> logging.Logger:
    """设置并返回配置好的日志记录器

    重复调用会关闭并替换之前添加的处理器。

    Args:
        name: 日志记录器名称
        level: 日志级别，未知级别按 INFO 处理
        log_file: 日志文件路径（按大小轮转），不指定则不写入文件
        console: 是否输出到控制台
        log_format: 日志格式，默认 DEFAULT_LOG_FORMAT
        max_bytes: 单个日志文件最大字节数
        backup_count: 保留的备份文件数量
        encoding: 文件编码
        propagate: 是否传播到父日志器

    使用示例:
        from ysort.log import setup_logger

        setup_logger("ysort.orm.sortable", level="DEBUG", log_file="logs/sortable.log")
    """
    _logger = logging.getLogger(name)
    _logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    _logger.propagate = propagate

    for handler in list(_logger.handlers):
        _logger.removeHandler(handler)
        handler.close()

    formatter = create_formatter(log_format)

    if console:
        console_handler = logging.StreamHandler()
        console_handler.setFormatter(formatter)
        _logger.addHandler(console_handler)

    if log_file:
        log_dir = os.path.dirname(log_file)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_file, maxBytes=max_bytes, backupCount=backup_count, encoding=encoding
        )
        file_handler.setFormatter(formatter)
        _logger.addHandler(file_handler)

    return _logger


def configure_logging(config=None) -> logging.Logger:
    """按 LoggingSettings 配置 "ysort" 日志记录器

    Args:
        config: LoggingSettings，为 None 时从环境变量（YSORT_LOG_*）加载

    使用示例:
        settings = load_yaml_config("config/settings.yaml")
        configure_logging(settings.logging)
    """
    if config is None:
        from ..config import LoggingSettings
        config = LoggingSettings()

    return setup_logger(
        "ysort",
        level=config.level,
        log_file=config.file_path or None,
        console=config.enable_console,
        max_bytes=config.file_max_bytes,
        backup_count=config.file_backup_count,
        encoding=config.file_encoding,
    )


def get_logger(name: Optional[str] = None) -> logging.Logger:
    """获取日志记录器

    - 无参数: 使用调用模块的 __name__
    - 不含点号的简写: 自动添加 'ysort.' 前缀（"orm" -> "ysort.orm"）
    - 其它名称原样使用
    """
    if name is None:
        frame = inspect.currentframe()
        caller = frame.f_back if frame is not None else None
        name = caller.f_globals.get("__name__", "ysort") if caller is not None else "ysort"
    elif name != "ysort" and "." not in name:
        name = f"ysort.{name}"

    return logging.getLogger(name)


sortable_logger = get_logger("ysort.orm.sortable")

# 通用日志记录器
logger = logging.getLogger("ysort")
