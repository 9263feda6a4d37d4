"""排序事件钩子

注册 Session 的 before_flush 监听器，在保存与删除时自动维护排序号：

- 新增记录: 未指定排序号时追加到末尾，指定时插入并让后续记录后移
- 修改排序号: 直接赋值 obj.sort_order = 3 等价于 move(obj.id, 3)
- 修改分组字段: 关闭旧分组的空位，再放入新分组
- 删除记录: 之后的记录前移，关闭空位

一次 flush 内按 删除 -> 修改 -> 新增 的顺序处理。

使用示例:
    from ysort.orm.sortable import activate_sortable_hook

    # 在应用启动时激活
    activate_sortable_hook()

    session.add(Banner(title="新轮播图"))               # 追加到末尾
    session.add(Banner(title="插队", sort_order=1))     # 插入到第一位
    session.commit()
"""

from typing import Any, Dict, Optional, Tuple

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session

from ysort.log import sortable_logger
from .position_engine import PendingPositions, PositionEngine
from .sortable_mixin import SortableMixin

_hook_active = False


def activate_sortable_hook() -> None:
    """激活排序钩子（重复调用无副作用）"""
    global _hook_active
    if _hook_active:
        return
    event.listen(Session, "before_flush", _before_flush)
    _hook_active = True
    sortable_logger.debug("排序钩子已激活")


def deactivate_sortable_hook() -> None:
    """停用排序钩子"""
    global _hook_active
    if not _hook_active:
        return
    event.remove(Session, "before_flush", _before_flush)
    _hook_active = False
    sortable_logger.debug("排序钩子已停用")


def is_sortable_hook_active() -> bool:
    return _hook_active


class _FlushContext:
    """单次 flush 内按模型类缓存引擎与待插入记录"""

    def __init__(self, session: Session):
        self.session = session
        self._engines: Dict[type, Tuple[PositionEngine, PendingPositions]] = {}

    def get(self, model: type) -> Tuple[PositionEngine, PendingPositions]:
        if model not in self._engines:
            engine = model.get_position_engine(self.session, savepoint=False)
            self._engines[model] = (engine, PendingPositions(engine.config.field))
        return self._engines[model]


def _original_value(state, key: str) -> Any:
    """属性修改前的值；未修改时返回当前值"""
    history = state.attrs[key].history
    if history.deleted:
        return history.deleted[0]
    if history.unchanged:
        return history.unchanged[0]
    if history.added:
        return None
    return state.attrs[key].value


def _original_group(state, engine: PositionEngine) -> Optional[Dict[str, Any]]:
    group = engine.config.group
    if not any(state.attrs[name].history.has_changes() for name in group):
        return None
    return {name: _original_value(state, name) for name in group}


def _before_flush(session: Session, flush_context, instances) -> None:
    context = _FlushContext(session)

    for obj in list(session.deleted):
        if not isinstance(obj, SortableMixin):
            continue
        engine, pending = context.get(type(obj))
        state = inspect(obj)
        engine.on_before_delete(
            obj,
            original_position=_original_value(state, engine.config.field),
            original_group=_original_group(state, engine),
            pending=pending,
        )

    for obj in list(session.dirty):
        if not isinstance(obj, SortableMixin) or obj in session.deleted:
            continue
        if not session.is_modified(obj, include_collections=False):
            continue
        engine, pending = context.get(type(obj))
        state = inspect(obj)
        field_name = engine.config.field
        original_group = _original_group(state, engine)
        if original_group is None and not state.attrs[field_name].history.has_changes():
            continue
        engine.on_before_save(
            obj,
            is_new=False,
            original_position=_original_value(state, field_name),
            original_group=original_group,
            pending=pending,
        )

    for obj in list(session.new):
        if not isinstance(obj, SortableMixin):
            continue
        engine, pending = context.get(type(obj))
        engine.on_before_save(obj, is_new=True, pending=pending)


__all__ = [
    "activate_sortable_hook",
    "deactivate_sortable_hook",
    "is_sortable_hook_active",
]
