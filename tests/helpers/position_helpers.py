"""排序引擎测试辅助工具

提供基于字典的 PositionStore 实现，用于脱离数据库测试 PositionEngine。
"""

import copy
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Set

from ysort.orm.sortable import PositionShift, RowSnapshot


class FailingStoreError(RuntimeError):
    """模拟存储层故障"""


class InMemoryPositionStore:
    """内存排序存储

    Args:
        field: 排序字段名
        group: 分组字段列表
        fail_on: 调用该方法时抛出 FailingStoreError（如 "save_position"）

    rows 结构: {id: {"position": int, **group_values}}
    """

    def __init__(self, field: str = "sort_order", group: List[str] = None, fail_on: str = None):
        self.field = field
        self.group = list(group or [])
        self.fail_on = fail_on
        self.rows: Dict[Any, Dict[str, Any]] = {}
        self.shifts: List[PositionShift] = []
        self.locked: List[Dict[str, Any]] = []
        self.excluded: Set[Any] = set()
        self._next_id = 1

    # ==================== 测试数据 ====================

    def add(self, position: int, **group_values) -> int:
        row_id = self._next_id
        self._next_id += 1
        self.rows[row_id] = {"position": position, **group_values}
        return row_id

    def seed(self, count: int, start: int = 1, step: int = 1, **group_values) -> List[int]:
        return [self.add(start + i * step, **group_values) for i in range(count)]

    def position(self, row_id: Any) -> int:
        return self.rows[row_id]["position"]

    def positions(self, **conditions) -> List[int]:
        return sorted(row["position"] for row in self.rows.values() if self._matches(row, conditions))

    def order(self, **conditions) -> List[Any]:
        """按排序号返回行 ID"""
        matched = [(row["position"], row_id) for row_id, row in self.rows.items() if self._matches(row, conditions)]
        return [row_id for _, row_id in sorted(matched)]

    # ==================== PositionStore 协议 ====================

    def get(self, row_id: Any) -> Optional[RowSnapshot]:
        self._maybe_fail("get")
        row = self.rows.get(row_id)
        if row is None:
            return None
        return RowSnapshot(
            id=row_id,
            position=row["position"],
            group_values={name: row.get(name) for name in self.group},
        )

    def find_max(self, conditions: Dict[str, Any]) -> Optional[int]:
        self._maybe_fail("find_max")
        positions = [row["position"] for _, row in self._scoped(conditions)]
        return max(positions) if positions else None

    def update_all(self, shift: PositionShift) -> int:
        self._maybe_fail("update_all")
        self.shifts.append(shift)
        count = 0
        for _, row in self._scoped(shift.conditions):
            if shift.predicate.matches(row["position"]):
                row["position"] = shift.apply(row["position"])
                count += 1
        return count

    def save_position(self, row_id: Any, position: int) -> None:
        self._maybe_fail("save_position")
        self.rows[row_id]["position"] = position

    def lock_group(self, conditions: Dict[str, Any]) -> None:
        self._maybe_fail("lock_group")
        self.locked.append(dict(conditions))

    @contextmanager
    def atomic(self):
        backup = copy.deepcopy(self.rows)
        try:
            yield
        except BaseException:
            self.rows = backup
            raise

    def renumber(self, conditions: Dict[str, Any], start: int, step: int) -> int:
        self._maybe_fail("renumber")
        matched = sorted((row["position"], row_id) for row_id, row in self._scoped(conditions))
        count = 0
        for index, (position, row_id) in enumerate(matched):
            target = start + index * step
            if position != target:
                self.rows[row_id]["position"] = target
                count += 1
        return count

    def exclude(self, row_id: Any) -> None:
        self.excluded.add(row_id)

    # ==================== 内部方法 ====================

    def _scoped(self, conditions: Dict[str, Any]):
        for row_id, row in self.rows.items():
            if row_id not in self.excluded and self._matches(row, conditions):
                yield row_id, row

    def _maybe_fail(self, method: str) -> None:
        if self.fail_on == method:
            raise FailingStoreError(f"{method} failed")

    @staticmethod
    def _matches(row: Dict[str, Any], conditions: Dict[str, Any]) -> bool:
        return all(row.get(name) == value for name, value in conditions.items())
