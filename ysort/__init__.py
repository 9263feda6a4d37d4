"""
YSort - SQLAlchemy 模型的连续排序位置管理

提供排序引擎、排序 Mixin、保存钩子以及日志、配置、异常等基础功能
"""

from .version import __version__, __author__, __description__

# 导出排序功能
from .orm import (
    CoreModel,
    init_database,
    get_engine,
    db_session_scope,
    SortFieldMixin,
    SortableMixin,
    PositionEngine,
    PositionConfig,
    SqlAlchemyPositionStore,
    GroupResolver,
    activate_sortable_hook,
    deactivate_sortable_hook,
    is_sortable_hook_active,
)
from .orm.sortable import (
    SortableError,
    RowNotFoundError,
    PersistenceFailureError,
    InvalidConfigurationError,
    InvalidPositionError,
)

# 导出异常处理
from .exceptions import (
    ErrorCode,
    BusinessException,
    register_exception_handlers,
)

# 导出配置
from .config import (
    AppSettings,
    SortableSettings,
    configure_sortable,
    load_yaml_config,
)

# 导出日志
from .log import get_logger, setup_logger, configure_logging

__all__ = [
    "__version__",
    "__author__",
    "__description__",
    "CoreModel",
    "init_database",
    "get_engine",
    "db_session_scope",
    "SortFieldMixin",
    "SortableMixin",
    "PositionEngine",
    "PositionConfig",
    "SqlAlchemyPositionStore",
    "GroupResolver",
    "activate_sortable_hook",
    "deactivate_sortable_hook",
    "is_sortable_hook_active",
    "SortableError",
    "RowNotFoundError",
    "PersistenceFailureError",
    "InvalidConfigurationError",
    "InvalidPositionError",
    "ErrorCode",
    "BusinessException",
    "register_exception_handlers",
    "AppSettings",
    "SortableSettings",
    "configure_sortable",
    "load_yaml_config",
    "get_logger",
    "setup_logger",
    "configure_logging",
]
