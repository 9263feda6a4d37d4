"""
ORM基础模型

排序模型的公共基类：自增主键、自动表名，以及 save / delete / get。
保存与删除会触发 flush，排序钩子激活时排序号在此时维护。
"""

from __future__ import annotations

from typing import ClassVar, Optional, TYPE_CHECKING

from sqlalchemy.orm import Query, Session, declared_attr, object_session

from .id_model import IdModel
from .utils import to_snake_case

if TYPE_CHECKING:
    from typing_extensions import Self


class CoreModel(IdModel):
    """ORM基础模型类

    使用示例:
        from ysort.orm import CoreModel, SortFieldMixin, SortableMixin, init_database

        init_database("sqlite:///./app.db", sortable_hook=True)

        class Banner(CoreModel, SortFieldMixin, SortableMixin):
            title: Mapped[str] = mapped_column(String(100))

        Banner(title="首页").save(commit=True)   # 自动追加到末尾
    """
    __abstract__ = True

    # query 属性由 init_database 通过 scoped_session.query_property() 设置
    if TYPE_CHECKING:
        query: ClassVar[Query[Self]]
    query = None

    @declared_attr.directive
    def __tablename__(cls) -> str:
        """驼峰命名转下划线"""
        return to_snake_case(cls.__name__)

    def __repr__(self):
        return f"<{self.__class__.__name__} id={self.id}>"

    @classmethod
    def current_session(cls) -> Session:
        """query 所在的 session，未设置 query 时使用 db_manager 的 session"""
        if cls.query is not None:
            return cls.query.session
        from .db_session import db_manager
        return db_manager.get_session()

    @property
    def session(self) -> Session:
        session = object_session(self)
        return session if session is not None else self.current_session()

    def save(self, commit: bool = False) -> Self:
        """保存对象

        Args:
            commit: 是否立即提交，默认 False（仅 flush）
        """
        session = self.session
        session.add(self)
        self._flush_or_commit(session, commit)
        return self

    def delete(self, commit: bool = False) -> None:
        session = self.session
        session.delete(self)
        self._flush_or_commit(session, commit)

    @classmethod
    def get(cls, id: int) -> Optional[Self]:
        """根据ID获取对象，不存在返回None"""
        return cls.current_session().get(cls, id)

    @staticmethod
    def _flush_or_commit(session: Session, commit: bool) -> None:
        if commit:
            session.commit()
        else:
            session.flush()
