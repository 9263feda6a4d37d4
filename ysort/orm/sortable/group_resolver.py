"""分组解析

根据模型配置的分组字段，从一行数据中提取分组条件。
同一分组内的记录共享一套连续的排序号，不同分组互不影响。

使用示例:
    resolver = GroupResolver(["category_id", "status"])
    resolver.resolve(product)     # {"category_id": 3, "status": "on"}
    resolver.resolve(banner)      # 无分组字段时返回 {}
"""

from collections.abc import Mapping
from typing import Any, Dict, Iterable, List, Optional, Tuple, Union

GroupColumns = Union[str, Iterable[str], None]


def normalize_group_columns(group: GroupColumns) -> List[str]:
    """将 __sort_group_by__ 的各种写法统一为字段列表"""
    if not group:
        return []
    if isinstance(group, str):
        return [group]
    return list(group)


def resolve(row: Any, group_columns: GroupColumns) -> Dict[str, Any]:
    """提取分组条件

    每个分组字段生成一个等值条件。行上不存在的字段解析为 None，
    存储层对 None 使用 IS NULL 匹配。此函数不会抛出异常。

    Args:
        row: 模型实例、任意对象或字典
        group_columns: 分组字段

    Returns:
        字段名 -> 值；无分组字段时返回空字典（整表为一组）
    """
    columns = normalize_group_columns(group_columns)
    if isinstance(row, Mapping):
        return {column: row.get(column) for column in columns}
    return {column: getattr(row, column, None) for column in columns}


class GroupResolver:
    """绑定分组字段的解析器"""

    def __init__(self, group_columns: GroupColumns = None):
        self.group_columns: Tuple[str, ...] = tuple(normalize_group_columns(group_columns))

    def resolve(self, row: Any) -> Dict[str, Any]:
        return resolve(row, self.group_columns)

    def group_key(self, conditions: Optional[Dict[str, Any]]) -> Tuple[Tuple[str, Any], ...]:
        """分组条件的可哈希形式，用于在一次 flush 内按分组追踪新记录"""
        conditions = conditions or {}
        return tuple((column, conditions.get(column)) for column in self.group_columns)

    def __repr__(self) -> str:
        return f"GroupResolver(group_columns={list(self.group_columns)!r})"


__all__ = [
    "GroupColumns",
    "normalize_group_columns",
    "resolve",
    "GroupResolver",
]
