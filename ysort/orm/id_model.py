"""ID模型基类

提供主键（ID）相关的功能。

使用说明：
    IdModel 是 CoreModel 的父类，只负责自增整数主键。
    一般情况下，用户应该使用 CoreModel，而不是直接使用 IdModel。
"""

from __future__ import annotations

from sqlalchemy import Integer
from sqlalchemy.orm import declarative_base, Mapped, mapped_column


# 声明基类
Base = declarative_base()


class IdModel(Base):
    """ID模型基类

    提供功能：
    - 自增整数主键

    使用示例:
        class Banner(IdModel):
            __tablename__ = "banner"
            title = mapped_column(String(100))
    """
    __abstract__ = True

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True, comment='主键ID')
