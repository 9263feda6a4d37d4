"""排序持久化边界

PositionStore 协议描述引擎需要的全部存储能力；
SqlAlchemyPositionStore 基于 SQLAlchemy Session 实现。

- 读取直接查询数据库列值（no_autoflush），不依赖 identity map 中可能过期的对象
- 写入使用 Core UPDATE（synchronize_session=False），一次语句完成一段区间的位移
- 写入后使已加载、且排序字段没有未提交修改的实例的排序字段过期，下次访问时重新加载
- exclude() 标记的行（同一次 flush 中已处理删除、尚未执行 DELETE）不再参与分组计算
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional, Protocol, Set

from sqlalchemy import func, inspect, select, update
from sqlalchemy.orm import Session

from ..utils import apply_group_filters
from .group_resolver import GroupColumns, normalize_group_columns
from .position_engine import PositionPredicate, PositionShift, PredicateKind, RowSnapshot, ShiftOp


class PositionStore(Protocol):
    """排序存储协议"""

    def get(self, row_id: Any) -> Optional[RowSnapshot]:
        ...

    def find_max(self, conditions: Dict[str, Any]) -> Optional[int]:
        ...

    def update_all(self, shift: PositionShift) -> int:
        ...

    def save_position(self, row_id: Any, position: int) -> None:
        ...

    def lock_group(self, conditions: Dict[str, Any]) -> None:
        ...

    def atomic(self):
        ...

    def renumber(self, conditions: Dict[str, Any], start: int, step: int) -> int:
        ...

    def exclude(self, row_id: Any) -> None:
        ...


def predicate_clause(column, predicate: PositionPredicate):
    """将位移区间转换为 SQL 条件"""
    if predicate.kind == PredicateKind.LT:
        return column < predicate.high
    if predicate.kind == PredicateKind.GT:
        return column > predicate.low
    if predicate.kind == PredicateKind.GE:
        return column >= predicate.low
    return column.between(predicate.low, predicate.high)


class SqlAlchemyPositionStore:
    """基于 SQLAlchemy Session 的排序存储

    Args:
        model: 模型类
        session: 数据库会话
        field: 排序字段名
        group: 分组字段
        savepoint: atomic() 是否开启 SAVEPOINT；
            在 before_flush 中必须为 False（begin_nested 会触发 flush），
            此时由 flush 所在事务保证原子性
    """

    def __init__(
        self,
        model,
        session: Session,
        field: str = "sort_order",
        group: GroupColumns = None,
        savepoint: bool = True,
    ):
        self.model = model
        self.session = session
        self.field = field
        self.group_columns = normalize_group_columns(group)
        self.savepoint = savepoint
        self.excluded_ids: Set[Any] = set()

    @property
    def column(self):
        return getattr(self.model, self.field)

    # ==================== 读取 ====================

    def get(self, row_id: Any) -> Optional[RowSnapshot]:
        columns = [self.model.id, self.column]
        columns.extend(getattr(self.model, name) for name in self.group_columns)
        stmt = select(*columns).where(self.model.id == row_id)
        with self.session.no_autoflush:
            result = self.session.execute(stmt).first()
        if result is None:
            return None
        return RowSnapshot(
            id=result[0],
            position=result[1],
            group_values=dict(zip(self.group_columns, result[2:])),
        )

    def find_max(self, conditions: Dict[str, Any]) -> Optional[int]:
        stmt = self._scoped(select(func.max(self.column)), conditions)
        with self.session.no_autoflush:
            return self.session.execute(stmt).scalar()

    def lock_group(self, conditions: Dict[str, Any]) -> None:
        """锁定分组内所有行（SELECT ... FOR UPDATE，SQLite 会忽略）"""
        stmt = self._scoped(select(self.model.id), conditions).with_for_update()
        with self.session.no_autoflush:
            self.session.execute(stmt).all()

    # ==================== 写入 ====================

    def update_all(self, shift: PositionShift) -> int:
        column = getattr(self.model, shift.field)
        if shift.op == ShiftOp.INCREMENT:
            value = column + shift.delta
        else:
            value = column - shift.delta

        stmt = update(self.model).where(predicate_clause(column, shift.predicate))
        stmt = self._scoped(stmt, shift.conditions)
        stmt = stmt.values({shift.field: value}).execution_options(synchronize_session=False)

        with self.session.no_autoflush:
            result = self.session.execute(stmt)
        self._expire_loaded(shift.field)
        return result.rowcount

    def save_position(self, row_id: Any, position: int) -> None:
        stmt = (
            update(self.model)
            .where(self.model.id == row_id)
            .values({self.field: position})
            .execution_options(synchronize_session=False)
        )
        with self.session.no_autoflush:
            self.session.execute(stmt)
        self._expire_loaded(self.field)

    def renumber(self, conditions: Dict[str, Any], start: int, step: int) -> int:
        stmt = self._scoped(select(self.model.id, self.column), conditions).order_by(self.column, self.model.id)

        count = 0
        with self.session.no_autoflush:
            rows = self.session.execute(stmt).all()
            for index, (row_id, position) in enumerate(rows):
                target = start + index * step
                if position != target:
                    self.session.execute(
                        update(self.model)
                        .where(self.model.id == row_id)
                        .values({self.field: target})
                        .execution_options(synchronize_session=False)
                    )
                    count += 1
        if count:
            self._expire_loaded(self.field)
        return count

    @contextmanager
    def atomic(self) -> Iterator[None]:
        if not self.savepoint:
            yield
            return
        with self.session.begin_nested():
            yield

    def exclude(self, row_id: Any) -> None:
        """将行排除在后续的分组计算之外（删除已处理、DELETE 尚未执行）"""
        self.excluded_ids.add(row_id)

    # ==================== 内部方法 ====================

    def _scoped(self, stmt, conditions: Dict[str, Any]):
        stmt = apply_group_filters(self.model, stmt, conditions)
        if self.excluded_ids:
            stmt = stmt.where(self.model.id.notin_(self.excluded_ids))
        return stmt

    def _expire_loaded(self, field: str) -> None:
        """使已加载实例的排序字段过期，保留未提交的修改"""
        for obj in list(self.session.identity_map.values()):
            if not isinstance(obj, self.model):
                continue
            if inspect(obj).attrs[field].history.has_changes():
                continue
            self.session.expire(obj, [field])


__all__ = [
    "PositionStore",
    "SqlAlchemyPositionStore",
    "predicate_clause",
]
