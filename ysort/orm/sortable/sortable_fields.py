"""排序字段定义

提供标准的排序字段定义 Mixin，简化模型定义。

使用示例:
    from ysort.orm import CoreModel
    from ysort.orm.sortable import SortFieldMixin, SortableMixin

    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        title = mapped_column(String(100))
        # sort_order 字段由 SortFieldMixin 自动提供
"""

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class SortFieldMixin:
    """排序字段 Mixin

    提供标准的 sort_order 字段定义。

    字段说明:
        - sort_order: 排序序号，值越小越靠前。
          不设默认值：新记录由排序钩子分配，未激活钩子时需要显式赋值
          （可使用 Model.get_new_position()）
    """

    sort_order: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        index=True,
        comment="排序序号"
    )


__all__ = [
    "SortFieldMixin",
]
