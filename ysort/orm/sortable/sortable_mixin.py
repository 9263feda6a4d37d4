"""排序管理 Mixin

提供通用的排序操作方法，支持简单列表排序和分组排序。
所有位置计算委托给 PositionEngine，分组内排序号始终保持连续。

使用示例:
    from ysort.orm import CoreModel
    from ysort.orm.sortable import SortFieldMixin, SortableMixin

    # 简单列表排序（无分组）
    class Banner(CoreModel, SortFieldMixin, SortableMixin):
        title = mapped_column(String(100))

    banner = Banner.get(1)
    banner.move_up()          # 上移一位
    banner.move_down()        # 下移一位
    banner.move_to_top()      # 置顶
    banner.move_to_bottom()   # 置底

    # 分组排序（同一分类内排序）
    class Product(CoreModel, SortFieldMixin, SortableMixin):
        __sort_group_by__ = "category_id"  # 按分类分组

        category_id = mapped_column(Integer)
        name = mapped_column(String(100))

    product = Product.get(1)
    product.move_up()  # 在同一分类内上移
"""

from typing import Any, Dict, List, Optional, Union

from sqlalchemy import inspect as sa_inspect
from sqlalchemy.orm import Session, object_session

from ysort.config import get_sortable_settings
from ..utils import apply_group_filters
from .exceptions import InvalidConfigurationError
from .group_resolver import normalize_group_columns, resolve
from .position_engine import PositionConfig, PositionEngine, build_position_config
from .position_store import SqlAlchemyPositionStore


class SortableMixin:
    """排序管理 Mixin

    为模型提供排序操作能力。

    字段要求（使用者需定义或使用 SortFieldMixin）:
        - sort_order: int  排序序号

    可配置属性（子类可覆盖）:
        - __sort_field__: 排序字段名，默认取 SortableSettings.field（"sort_order"）
        - __sort_group_by__: 分组字段，默认 None（不分组）
            - 字符串: 单字段分组，如 "category_id"
            - 列表: 多字段分组，如 ["category_id", "status"]
        - __sort_start__: 第一个排序号，默认取 SortableSettings.start
        - __sort_step__: 排序号间隔，默认取 SortableSettings.step

    配置在首次使用时校验并按类缓存（configure_sortable 后重新计算），字段不存在或 step <= 0
    时抛出 InvalidConfigurationError。
    """

    # ==================== 配置 ====================

    # 排序字段名（子类可覆盖，None 表示使用全局 SortableSettings）
    __sort_field__: Optional[str] = None

    # 分组字段（子类可覆盖）
    # - None: 不分组，全局排序
    # - str: 单字段分组
    # - list: 多字段分组
    __sort_group_by__: Union[str, List[str], None] = None

    # None 表示使用全局 SortableSettings
    __sort_start__: Optional[int] = None
    __sort_step__: Optional[int] = None

    @classmethod
    def get_position_config(cls) -> PositionConfig:
        """获取（并缓存）当前模型的排序配置

        缓存与生成它的全局 SortableSettings 绑定，configure_sortable()
        替换全局配置后重新计算。
        """
        settings = get_sortable_settings()
        cached = cls.__dict__.get("_ysort_position_config")
        if cached is not None and cached[0] is settings:
            return cached[1]

        field_name = cls.__sort_field__ or settings.field
        group = normalize_group_columns(cls.__sort_group_by__)
        config = build_position_config(
            field=field_name,
            group=group,
            start=settings.start if cls.__sort_start__ is None else cls.__sort_start__,
            step=settings.step if cls.__sort_step__ is None else cls.__sort_step__,
        )

        mapper = sa_inspect(cls, raiseerr=False)
        if mapper is None:
            raise InvalidConfigurationError(f"{cls.__name__} 不是已映射的模型类")
        known = set(mapper.column_attrs.keys())
        for name in [field_name, *group]:
            if name not in known:
                raise InvalidConfigurationError(
                    f"{cls.__name__} 没有排序相关字段: {name}",
                    model=cls.__name__,
                    column=name,
                )

        setattr(cls, "_ysort_position_config", (settings, config))
        return config

    @classmethod
    def get_position_engine(cls, session: Session = None, savepoint: bool = True) -> PositionEngine:
        """创建绑定到会话的排序引擎

        Args:
            session: 数据库会话，默认使用 cls.query 所在的会话
            savepoint: 是否在 SAVEPOINT 中执行每个操作（flush 钩子中为 False）
        """
        config = cls.get_position_config()
        store = SqlAlchemyPositionStore(
            cls,
            session if session is not None else cls._sortable_session(),
            field=config.field,
            group=config.group,
            savepoint=savepoint,
        )
        return PositionEngine(config, store)

    @classmethod
    def _sortable_session(cls) -> Session:
        if getattr(cls, "query", None) is not None:
            return cls.query.session
        from ..db_session import db_manager
        return db_manager.get_session()

    # ==================== 内部方法 ====================

    def _instance_engine(self) -> PositionEngine:
        session = object_session(self)
        if session is None:
            session = type(self)._sortable_session()
        if self.id is None:
            # 新对象需要先写入才能按 id 定位
            session.add(self)
            session.flush()
        return type(self).get_position_engine(session)

    def _get_sort_field_column(self):
        return getattr(self.__class__, self.get_position_config().field)

    def _get_sort_value(self) -> Optional[int]:
        return getattr(self, self.get_position_config().field, None)

    def _get_siblings_query(self, include_self: bool = False):
        query = apply_group_filters(self.__class__, self.__class__.query, self.get_group_conditions())
        if not include_self and self.id is not None:
            query = query.filter(self.__class__.id != self.id)
        return query

    # ==================== 实例方法 ====================

    def get_group_conditions(self) -> Dict[str, Any]:
        """当前实例所在分组的条件"""
        return resolve(self, self.get_position_config().group)

    def move_to_top(self) -> bool:
        """置顶

        Returns:
            是否移动（已在顶部返回 False）

        Example:
            banner = Banner.get(1)
            banner.move_to_top()
            session.commit()
        """
        return self._instance_engine().to_top(self.id)

    def move_to_bottom(self) -> bool:
        """置底

        Returns:
            是否移动（已在底部返回 False）
        """
        return self._instance_engine().to_bottom(self.id)

    def move_to(self, position: int) -> bool:
        """移动到指定排序号

        超出范围的值会被截断到分组的首尾；不在 start + k * step 网格上的值
        抛出 InvalidPositionError。

        Example:
            banner = Banner.get(1)
            banner.move_to(3)  # 移动到排序号 3，原 3 及之后的记录依次后移
            session.commit()
        """
        return self._instance_engine().move(self.id, position)

    def move_up(self) -> bool:
        """上移一位，已在顶部返回 False"""
        return self._instance_engine().move_up(self.id)

    def move_down(self) -> bool:
        """下移一位，已在底部返回 False"""
        return self._instance_engine().move_down(self.id)

    def get_sort_position(self) -> int:
        """获取当前排序名次（1-based）

        Example:
            banner = Banner.get(1)
            print(f"当前在第 {banner.get_sort_position()} 位")
        """
        count = self._get_siblings_query().filter(
            self._get_sort_field_column() < self._get_sort_value()
        ).count()
        return count + 1

    def get_previous(self):
        """获取前一个对象（排序号更小的最近记录），没有时返回 None"""
        return self._get_siblings_query().filter(
            self._get_sort_field_column() < self._get_sort_value()
        ).order_by(self._get_sort_field_column().desc()).first()

    def get_next(self):
        """获取后一个对象（排序号更大的最近记录），没有时返回 None"""
        return self._get_siblings_query().filter(
            self._get_sort_field_column() > self._get_sort_value()
        ).order_by(self._get_sort_field_column()).first()

    # ==================== 类方法 ====================

    @classmethod
    def get_sort_start(cls) -> int:
        return cls.get_position_config().start

    @classmethod
    def get_sort_step(cls) -> int:
        return cls.get_position_config().step

    @classmethod
    def get_last_position(cls, conditions: Dict[str, Any] = None) -> Optional[int]:
        """获取分组内最大排序号，分组为空返回 None

        Example:
            Banner.get_last_position()
            Product.get_last_position({"category_id": 1})
        """
        return cls.get_position_engine().get_last(conditions)

    @classmethod
    def get_new_position(cls, conditions: Dict[str, Any] = None) -> int:
        """获取新记录追加到末尾时的排序号"""
        return cls.get_position_engine().get_new(conditions)

    @classmethod
    def normalize_sort_order(cls, conditions: Dict[str, Any] = None) -> int:
        """规范化排序号

        消除序号间隙，从 start 开始按 step 重新连续编号。

        Returns:
            更新的记录数

        Example:
            # 排序号为 1, 3, 7, 10
            Banner.normalize_sort_order()
            # 规范化后: 1, 2, 3, 4
        """
        return cls.get_position_engine().normalize(conditions)

    @classmethod
    def get_sorted(cls, conditions: Dict[str, Any] = None, desc: bool = False):
        """获取排序后的记录列表

        Example:
            banners = Banner.get_sorted()
            products = Product.get_sorted({"category_id": 1})
        """
        sort_field = getattr(cls, cls.get_position_config().field)
        query = apply_group_filters(cls, cls.query, conditions or {})
        if desc:
            query = query.order_by(sort_field.desc(), cls.id.desc())
        else:
            query = query.order_by(sort_field, cls.id)
        return query.all()


__all__ = [
    "SortableMixin",
]
