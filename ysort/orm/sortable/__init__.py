"""排序管理模块

提供分组内连续排序号的维护能力。

导出:
    - SortFieldMixin: 排序字段 Mixin（提供 sort_order 字段）
    - SortableMixin: 排序管理 Mixin（提供排序操作方法）
    - PositionEngine / PositionConfig: 排序位置引擎与配置
    - SqlAlchemyPositionStore: 基于 SQLAlchemy 的持久化实现
    - GroupResolver: 分组条件解析
    - activate_sortable_hook: 保存/删除时自动维护排序号
    - 排序异常: SortableError 及其子类

使用示例:
    from ysort.orm import CoreModel
    from ysort.orm.sortable import SortFieldMixin, SortableMixin, activate_sortable_hook

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        title = mapped_column(String(100))

    activate_sortable_hook()

    banner = Banner.get(1)
    banner.move_up()          # 上移
    banner.move_down()        # 下移
    banner.move_to_top()      # 置顶
    banner.move_to_bottom()   # 置底
    banner.move_to(3)         # 移动到排序号 3
"""

from .exceptions import (
    SortableError,
    RowNotFoundError,
    PersistenceFailureError,
    InvalidConfigurationError,
    InvalidPositionError,
)
from .group_resolver import GroupResolver, resolve, normalize_group_columns
from .position_engine import (
    ShiftOp,
    PredicateKind,
    PositionPredicate,
    PositionShift,
    RowSnapshot,
    PositionConfig,
    PendingPositions,
    PositionEngine,
    build_position_config,
)
from .position_store import PositionStore, SqlAlchemyPositionStore
from .sortable_fields import SortFieldMixin
from .sortable_mixin import SortableMixin
from .hooks import (
    activate_sortable_hook,
    deactivate_sortable_hook,
    is_sortable_hook_active,
)

__all__ = [
    "SortableError",
    "RowNotFoundError",
    "PersistenceFailureError",
    "InvalidConfigurationError",
    "InvalidPositionError",
    "GroupResolver",
    "resolve",
    "normalize_group_columns",
    "ShiftOp",
    "PredicateKind",
    "PositionPredicate",
    "PositionShift",
    "RowSnapshot",
    "PositionConfig",
    "PendingPositions",
    "PositionEngine",
    "build_position_config",
    "PositionStore",
    "SqlAlchemyPositionStore",
    "SortFieldMixin",
    "SortableMixin",
    "activate_sortable_hook",
    "deactivate_sortable_hook",
    "is_sortable_hook_active",
]
