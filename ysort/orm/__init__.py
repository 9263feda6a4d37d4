"""ORM模块

提供排序场景所需的 ORM 基础设施：
- CoreModel: 核心模型基类（自增主键、自动表名、save / delete / get）
- 数据库会话管理
- 排序扩展（SortFieldMixin / SortableMixin / 排序钩子）

使用示例:
    from ysort.orm import CoreModel, SortFieldMixin, SortableMixin, init_database, db_session_scope

    init_database("sqlite:///./app.db", sortable_hook=True)

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        title = mapped_column(String(100))

    with db_session_scope():
        Banner.get(1).move_to_top()
"""

from .id_model import IdModel, Base
from .core_model import CoreModel
from .db_session import (
    db_manager,
    init_database,
    get_engine,
    db_session_scope,
    create_db_engine,
    enable_sqlite_savepoint,
)
from .utils import to_snake_case, apply_group_filters

# 排序扩展
from .sortable import (
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

__all__ = [
    "Base",
    "IdModel",
    "CoreModel",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
    "create_db_engine",
    "enable_sqlite_savepoint",
    "to_snake_case",
    "apply_group_filters",
    "SortFieldMixin",
    "SortableMixin",
    "PositionEngine",
    "PositionConfig",
    "SqlAlchemyPositionStore",
    "GroupResolver",
    "activate_sortable_hook",
    "deactivate_sortable_hook",
    "is_sortable_hook_active",
]
