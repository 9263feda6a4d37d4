"""排序位置引擎

维护分组内连续、唯一的排序号。给定某一行的目标位置，计算同组其它行
需要执行的最少批量位移（一次 UPDATE 完成一段区间的 +step / -step）。

引擎只依赖 PositionStore 协议，不直接拼接 SQL；SQLAlchemy 实现见 position_store。

不变量（每个操作完成后，同一分组内）:
    - 排序号唯一
    - 最小排序号等于 start
    - 相邻排序号之差恰好为 step
    - 移动到 X 的行最终位于 X，区间内其它行各移动一个 step

使用示例:
    config = PositionConfig(field="sort_order", group=("category_id",))
    engine = PositionEngine(config, SqlAlchemyPositionStore(Product, session, "sort_order", "category_id"))

    engine.to_top(product_id)
    engine.move(product_id, 3)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field as dc_field
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ysort.log import sortable_logger
from .exceptions import (
    SortableError,
    RowNotFoundError,
    PersistenceFailureError,
    InvalidConfigurationError,
    InvalidPositionError,
)
from .group_resolver import GroupResolver, normalize_group_columns

if TYPE_CHECKING:
    from .position_store import PositionStore


# ==================== 数据结构 ====================

class ShiftOp(str, Enum):
    """批量位移方向"""
    INCREMENT = "increment"
    DECREMENT = "decrement"


class PredicateKind(str, Enum):
    LT = "lt"
    GT = "gt"
    GE = "ge"
    BETWEEN = "between"


@dataclass(frozen=True)
class PositionPredicate:
    """位移区间条件

    between 为闭区间 [low, high]。
    """
    kind: PredicateKind
    low: Optional[int] = None
    high: Optional[int] = None

    @classmethod
    def lt(cls, value: int) -> "PositionPredicate":
        return cls(PredicateKind.LT, high=value)

    @classmethod
    def gt(cls, value: int) -> "PositionPredicate":
        return cls(PredicateKind.GT, low=value)

    @classmethod
    def ge(cls, value: int) -> "PositionPredicate":
        return cls(PredicateKind.GE, low=value)

    @classmethod
    def between(cls, low: int, high: int) -> "PositionPredicate":
        return cls(PredicateKind.BETWEEN, low=low, high=high)

    def matches(self, position: Optional[int]) -> bool:
        """判断某个排序号是否落在区间内（用于内存中的待插入记录）"""
        if position is None:
            return False
        if self.kind == PredicateKind.LT:
            return position < self.high
        if self.kind == PredicateKind.GT:
            return position > self.low
        if self.kind == PredicateKind.GE:
            return position >= self.low
        return self.low <= position <= self.high

    def __str__(self) -> str:
        if self.kind == PredicateKind.LT:
            return f"< {self.high}"
        if self.kind == PredicateKind.GT:
            return f"> {self.low}"
        if self.kind == PredicateKind.GE:
            return f">= {self.low}"
        return f"BETWEEN {self.low} AND {self.high}"


@dataclass(frozen=True)
class PositionShift:
    """一次批量位移：对同组内满足 predicate 的行执行 field = field +/- delta"""
    field: str
    op: ShiftOp
    delta: int
    predicate: PositionPredicate
    conditions: Dict[str, Any] = dc_field(default_factory=dict)

    def apply(self, position: int) -> int:
        if self.op == ShiftOp.INCREMENT:
            return position + self.delta
        return position - self.delta


@dataclass(frozen=True)
class RowSnapshot:
    """从存储层读取的一行排序信息"""
    id: Any
    position: Optional[int]
    group_values: Dict[str, Any] = dc_field(default_factory=dict)


class PositionConfig(BaseModel):
    """排序配置（构造后不可变）

    Attributes:
        field: 排序字段名
        group: 分组字段
        start: 分组内第一个排序号
        step: 相邻排序号的间隔，必须为正整数
    """
    model_config = ConfigDict(frozen=True)

    field: str = "sort_order"
    group: Tuple[str, ...] = ()
    start: int = 1
    step: int = 1

    @field_validator("group", mode="before")
    @classmethod
    def normalize_group(cls, value):
        return tuple(normalize_group_columns(value))

    @field_validator("step")
    @classmethod
    def validate_step(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("step 必须为正整数")
        return value


def build_position_config(**kwargs) -> PositionConfig:
    """构造 PositionConfig，校验失败时抛出 InvalidConfigurationError"""
    try:
        return PositionConfig(**kwargs)
    except ValidationError as exc:
        raise InvalidConfigurationError(
            f"排序配置无效: {exc.errors()[0]['msg']}",
            config=kwargs,
        ) from exc


class PendingPositions:
    """单次 flush 内的待写入记录追踪

    before_flush 阶段新记录尚未写入数据库，已处理的修改记录的新位置也只存在于属性上，
    批量 UPDATE 不会作用到它们。这里按分组记住这些记录，使同一次 flush 中的
    后续计算能看到它们的位置，并在区间位移时同步调整它们。
    """

    def __init__(self, field: str):
        self.field = field
        self._rows: Dict[Tuple, List[Any]] = {}

    def add(self, key: Tuple, row: Any) -> None:
        self._rows.setdefault(key, []).append(row)

    def last(self, key: Tuple) -> Optional[int]:
        positions = [getattr(row, self.field) for row in self._rows.get(key, [])]
        positions = [p for p in positions if p is not None]
        return max(positions) if positions else None

    def shift(self, key: Tuple, shift: PositionShift) -> int:
        count = 0
        for row in self._rows.get(key, []):
            position = getattr(row, self.field)
            if shift.predicate.matches(position):
                setattr(row, self.field, shift.apply(position))
                count += 1
        return count

    def __len__(self) -> int:
        return sum(len(rows) for rows in self._rows.values())


# ==================== 引擎 ====================

class PositionEngine:
    """排序位置引擎

    每个公开操作都在 store.atomic() 中执行，读取位置前先锁定分组；
    存储层抛出的非排序异常统一记录日志并包装为 PersistenceFailureError。

    移动类操作返回 bool：True 表示发生了移动，False 表示已在目标位置（无操作）。
    """

    def __init__(
        self,
        config: PositionConfig,
        store: "PositionStore",
        logger: logging.Logger = None,
    ):
        self.config = config
        self.store = store
        self.resolver = GroupResolver(config.group)
        self.logger = logger or sortable_logger

    # ==================== 基础查询 ====================

    def get_start(self) -> int:
        return self.config.start

    def get_step(self) -> int:
        return self.config.step

    def get_last(self, conditions: Dict[str, Any] = None) -> Optional[int]:
        """分组内最大排序号，分组为空时返回 None"""
        with self._guard("get_last", atomic=False):
            return self.store.find_max(conditions or {})

    def get_new(
        self,
        conditions: Dict[str, Any] = None,
        pending: Optional[PendingPositions] = None,
    ) -> int:
        """新记录追加到末尾时应使用的排序号

        分组为空时返回 start，否则返回 last + step。
        传入 pending 时同时考虑本次 flush 中尚未写入的新记录。
        """
        with self._guard("get_new", atomic=False):
            return self._new_position(conditions or {}, pending)

    # ==================== 移动操作 ====================

    def to_top(self, row_id: Any) -> bool:
        """置顶：比当前小的记录后移一个 step，目标行设为 start"""
        with self._guard("to_top", row_id=row_id):
            row = self._locked_row(row_id)
            start = self.get_start()
            if row.position == start:
                self.logger.debug(f"to_top 无需移动: id={row_id} 已在 {start}")
                return False

            self._shift(ShiftOp.INCREMENT, PositionPredicate.lt(row.position), row.group_values)
            self.store.save_position(row.id, start)
            self.logger.info(f"置顶完成: id={row_id} {row.position} -> {start}")
            return True

    def to_bottom(self, row_id: Any) -> bool:
        """置底：比当前大的记录前移一个 step，目标行设为原最大排序号"""
        with self._guard("to_bottom", row_id=row_id):
            row = self._locked_row(row_id)
            new_position = self.store.find_max(row.group_values)
            if new_position is None or row.position == new_position:
                self.logger.debug(f"to_bottom 无需移动: id={row_id} 已在 {row.position}")
                return False

            self._shift(ShiftOp.DECREMENT, PositionPredicate.gt(row.position), row.group_values)
            self.store.save_position(row.id, new_position)
            self.logger.info(f"置底完成: id={row_id} {row.position} -> {new_position}")
            return True

    def move(self, row_id: Any, new_position: int, move_own: bool = True) -> bool:
        """移动到指定排序号

        Args:
            row_id: 目标行 ID
            new_position: 目标排序号，超出范围时截断到 [start, last]，
                不在 start + k * step 网格上时抛出 InvalidPositionError
            move_own: 是否同时写入目标行自身的排序号；
                为 False 时只为目标行腾出位置，由调用方负责写入（flush 钩子场景）

        Returns:
            是否发生移动
        """
        with self._guard("move", row_id=row_id, position=new_position):
            row = self._locked_row(row_id)
            last = self.store.find_max(row.group_values)
            target = self._normalize(new_position, last)
            if target == row.position:
                self.logger.debug(f"move 无需移动: id={row_id} 已在 {target}")
                return False

            self._move_range(row.position, target, row.group_values)
            if move_own:
                self.store.save_position(row.id, target)
            self.logger.info(f"移动完成: id={row_id} {row.position} -> {target}")
            return True

    def move_up(self, row_id: Any) -> bool:
        """上移一个 step，已在顶部时不移动"""
        with self._guard("move_up", row_id=row_id):
            row = self._locked_row(row_id)
            if row.position <= self.get_start():
                self.logger.debug(f"move_up 无需移动: id={row_id} 已在顶部")
                return False
            target = row.position - self.get_step()
            self._move_range(row.position, target, row.group_values)
            self.store.save_position(row.id, target)
            self.logger.info(f"上移完成: id={row_id} {row.position} -> {target}")
            return True

    def move_down(self, row_id: Any) -> bool:
        """下移一个 step，已在底部时不移动"""
        with self._guard("move_down", row_id=row_id):
            row = self._locked_row(row_id)
            last = self.store.find_max(row.group_values)
            if last is None or row.position >= last:
                self.logger.debug(f"move_down 无需移动: id={row_id} 已在底部")
                return False
            target = row.position + self.get_step()
            self._move_range(row.position, target, row.group_values)
            self.store.save_position(row.id, target)
            self.logger.info(f"下移完成: id={row_id} {row.position} -> {target}")
            return True

    def insert_at(self, new_position: int, conditions: Dict[str, Any] = None) -> int:
        """为即将插入的记录腾出位置：>= new_position 的记录后移一个 step

        Returns:
            受影响的行数
        """
        conditions = conditions or {}
        with self._guard("insert_at", position=new_position):
            self.store.lock_group(conditions)
            if new_position < self.get_start():
                new_position = self.get_start()
            self._check_grid(new_position)
            return self._shift(ShiftOp.INCREMENT, PositionPredicate.ge(new_position), conditions)

    def remove(self, position: int, conditions: Dict[str, Any] = None) -> int:
        """关闭被移除记录留下的空位：> position 的记录前移一个 step"""
        conditions = conditions or {}
        with self._guard("remove", position=position):
            self.store.lock_group(conditions)
            return self._shift(ShiftOp.DECREMENT, PositionPredicate.gt(position), conditions)

    def normalize(self, conditions: Dict[str, Any] = None) -> int:
        """从 start 开始按 (排序号, id) 重新连续编号，用于修复历史数据

        Returns:
            被改写的行数
        """
        conditions = conditions or {}
        with self._guard("normalize"):
            self.store.lock_group(conditions)
            count = self.store.renumber(conditions, self.get_start(), self.get_step())
            self.logger.info(f"规范化排序号完成: conditions={conditions} updated={count}")
            return count

    # ==================== 生命周期钩子 ====================

    def on_before_save(
        self,
        row: Any,
        is_new: bool,
        original_position: Optional[int] = None,
        original_group: Optional[Dict[str, Any]] = None,
        pending: Optional[PendingPositions] = None,
    ) -> Optional[int]:
        """保存前调整排序号

        - 新记录: 未指定位置或指定为末尾时追加；否则先腾出位置再插入
        - 分组变更: 关闭旧分组的空位，再按新记录放入新分组
          （排序号未被修改时追加到末尾）
        - 排序号变更: 为目标位置腾出区间，行自身的写入留在本次保存中

        传入 pending 时，处理过的已有记录会被排除在数据库计算之外并交由 pending 追踪。

        目标位置经过截断后写回 row 的排序字段。

        Returns:
            行最终的排序号
        """
        field_name = self.config.field
        row_id = getattr(row, "id", None)
        with self._guard("on_before_save", row_id=row_id):
            conditions = self.resolver.resolve(row)
            requested = getattr(row, field_name, None)

            if is_new:
                self.store.lock_group(conditions)
                return self._place_new(row, requested, conditions, pending)

            snapshot = self.store.get(row_id) if row_id is not None else None
            current_group = snapshot.group_values if snapshot else (original_group or conditions)
            self.store.lock_group(current_group)
            if snapshot is not None:
                snapshot = self.store.get(row_id)
            current = snapshot.position if snapshot else original_position
            position_changed = requested != original_position

            if current_group != conditions:
                if current is not None:
                    self._shift(
                        ShiftOp.DECREMENT, PositionPredicate.gt(current), current_group, pending
                    )
                if pending is not None and row_id is not None:
                    self.store.exclude(row_id)
                self.store.lock_group(conditions)
                self.logger.debug(f"分组变更: id={row_id} {current_group} -> {conditions}")
                return self._place_new(
                    row, requested if position_changed else None, conditions, pending
                )

            if not position_changed:
                return requested

            last = self._last(conditions, pending)
            target = last if requested is None else self._normalize(requested, last)
            if current is not None and target != current:
                self._move_range(current, target, conditions, pending)
                self.logger.info(f"移动完成: id={row_id} {current} -> {target}")
            setattr(row, field_name, target)
            if pending is not None:
                if row_id is not None:
                    self.store.exclude(row_id)
                pending.add(self.resolver.group_key(conditions), row)
            return target

    def on_before_delete(
        self,
        row: Any,
        original_position: Optional[int] = None,
        original_group: Optional[Dict[str, Any]] = None,
        pending: Optional[PendingPositions] = None,
    ) -> int:
        """删除前关闭空位

        行随后被 store 排除，同一次 flush 中的后续计算不再把它计入分组。

        Returns:
            受影响的行数
        """
        row_id = getattr(row, "id", None)
        with self._guard("on_before_delete", row_id=row_id):
            snapshot = self.store.get(row_id) if row_id is not None else None
            if snapshot is not None:
                position, conditions = snapshot.position, snapshot.group_values
            else:
                position = original_position
                if position is None:
                    position = getattr(row, self.config.field, None)
                conditions = original_group if original_group is not None else self.resolver.resolve(row)

            if position is None:
                return 0
            self.store.lock_group(conditions)
            count = self._shift(ShiftOp.DECREMENT, PositionPredicate.gt(position), conditions, pending)
            if row_id is not None:
                self.store.exclude(row_id)
            return count

    # ==================== 内部方法 ====================

    @contextmanager
    def _guard(self, action: str, atomic: bool = True, **context):
        """在事务内执行操作并统一异常类型"""
        try:
            if atomic:
                with self.store.atomic():
                    yield
            else:
                yield
        except SortableError:
            raise
        except Exception as exc:
            self.logger.error(
                f"排序操作失败: action={action} context={context} error={type(exc).__name__}: {exc}"
            )
            raise PersistenceFailureError(
                f"排序操作 {action} 持久化失败",
                original_error=exc,
                action=action,
                **context
            ) from exc

    def _locked_row(self, row_id: Any) -> RowSnapshot:
        """读取目标行，锁定其分组后重新读取"""
        row = self.store.get(row_id)
        if row is None:
            raise RowNotFoundError(row_id)
        self.store.lock_group(row.group_values)
        row = self.store.get(row_id)
        if row is None:
            raise RowNotFoundError(row_id)
        return row

    def _last(self, conditions: Dict[str, Any], pending: Optional[PendingPositions]) -> Optional[int]:
        last = self.store.find_max(conditions)
        if pending is not None:
            pending_last = pending.last(self.resolver.group_key(conditions))
            if pending_last is not None and (last is None or pending_last > last):
                last = pending_last
        return last

    def _new_position(self, conditions: Dict[str, Any], pending: Optional[PendingPositions]) -> int:
        last = self._last(conditions, pending)
        if last is None:
            return self.get_start()
        return last + self.get_step()

    def _place_new(
        self,
        row: Any,
        requested: Optional[int],
        conditions: Dict[str, Any],
        pending: Optional[PendingPositions],
    ) -> int:
        default = self._new_position(conditions, pending)
        if requested is None or requested == default:
            target = default
        else:
            target = self._normalize(requested, default)
            if target != default:
                self._shift(ShiftOp.INCREMENT, PositionPredicate.ge(target), conditions, pending)

        setattr(row, self.config.field, target)
        if pending is not None:
            pending.add(self.resolver.group_key(conditions), row)
        self.logger.debug(f"新记录排序号: {target} conditions={conditions}")
        return target

    def _move_range(
        self,
        current: int,
        target: int,
        conditions: Dict[str, Any],
        pending: Optional[PendingPositions] = None,
    ) -> int:
        step = self.get_step()
        if target < current:
            predicate = PositionPredicate.between(target, current - step)
            return self._shift(ShiftOp.INCREMENT, predicate, conditions, pending)
        predicate = PositionPredicate.between(current + step, target)
        return self._shift(ShiftOp.DECREMENT, predicate, conditions, pending)

    def _shift(
        self,
        op: ShiftOp,
        predicate: PositionPredicate,
        conditions: Dict[str, Any],
        pending: Optional[PendingPositions] = None,
    ) -> int:
        shift = PositionShift(
            field=self.config.field,
            op=op,
            delta=self.get_step(),
            predicate=predicate,
            conditions=dict(conditions),
        )
        count = self.store.update_all(shift)
        if pending is not None:
            count += pending.shift(self.resolver.group_key(conditions), shift)
        self.logger.debug(
            f"批量位移: {shift.field} {op.value} {shift.delta} where {predicate} "
            f"conditions={shift.conditions} rows={count}"
        )
        return count

    def _check_grid(self, position: int) -> None:
        if (position - self.get_start()) % self.get_step() != 0:
            raise InvalidPositionError(
                position,
                message=f"排序号 {position} 不在 start={self.get_start()} step={self.get_step()} 的网格上",
            )

    def _normalize(self, requested: int, upper: Optional[int]) -> int:
        """截断到 [start, upper]；范围内的值必须落在网格上"""
        start = self.get_start()
        if requested <= start:
            return start
        if upper is not None and requested >= upper:
            return upper
        self._check_grid(requested)
        return requested


__all__ = [
    "ShiftOp",
    "PredicateKind",
    "PositionPredicate",
    "PositionShift",
    "RowSnapshot",
    "PositionConfig",
    "build_position_config",
    "PendingPositions",
    "PositionEngine",
]
