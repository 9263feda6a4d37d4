"""ORM 工具函数

提供命名转换与分组条件相关的小工具。
"""
import re
from typing import Any, Dict


def to_snake_case(name: str) -> str:
    """驼峰命名转下划线命名（支持连续大写缩写如 API、URL）

    Examples:
        >>> to_snake_case("MenuItem")
        'menu_item'
        >>> to_snake_case("APIClient")
        'api_client'
    """
    # 处理连续大写+数字后跟大写+小写：APIClient → API_Client
    result = re.sub(r'([A-Z\d]+)([A-Z][a-z])', r'\1_\2', name)
    # 处理小写字母后跟大写：menuItem → menu_Item
    result = re.sub(r'([a-z\d])([A-Z])', r'\1_\2', result)
    return result.lower()


def apply_group_filters(model, stmt, conditions: Dict[str, Any]):
    """为查询/更新语句添加分组等值过滤条件

    值为 None 的列使用 IS NULL 匹配。

    Args:
        model: 模型类
        stmt: select/update 语句或 Query 对象
        conditions: 列名 -> 值

    Returns:
        添加过滤条件后的语句
    """
    for field, value in conditions.items():
        column = getattr(model, field)
        if value is None:
            stmt = stmt.where(column.is_(None))
        else:
            stmt = stmt.where(column == value)
    return stmt


__all__ = [
    "to_snake_case",
    "apply_group_filters",
]
