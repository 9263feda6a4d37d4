"""排序 Mixin 使用示例

演示 SortableMixin 与排序钩子的使用场景：
1. 简单列表排序（置顶、上移、移动到指定位置）
2. 分组排序（同一分类内独立编号）
3. 排序钩子（新增、插入、删除时自动维护排序号）
4. 步长排序与异常处理
"""

import sys
from pathlib import Path

# 添加项目根目录到 path
sys.path.insert(0, str(Path(__file__).parent.parent.parent))

from sqlalchemy import Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from ysort.config import LoggingSettings
from ysort.log import configure_logging
from ysort.orm import (
    Base,
    CoreModel,
    init_database,
    SortFieldMixin,
    SortableMixin,
    activate_sortable_hook,
    deactivate_sortable_hook,
)
from ysort.orm.sortable import InvalidPositionError, RowNotFoundError


# ==================== 模型定义 ====================

class Banner(CoreModel, SortFieldMixin, SortableMixin):
    """轮播图 - 简单列表排序"""
    __tablename__ = "demo_banner"

    title: Mapped[str] = mapped_column(String(100), comment="标题")


class Product(CoreModel, SortFieldMixin, SortableMixin):
    """产品 - 按分类分组排序"""
    __tablename__ = "demo_product"
    __sort_group_by__ = "category_id"

    category_id: Mapped[int] = mapped_column(Integer, comment="分类ID")
    name: Mapped[str] = mapped_column(String(100), comment="名称")


class Chapter(CoreModel, SortFieldMixin, SortableMixin):
    """章节 - 步长 10，便于人工插入"""
    __tablename__ = "demo_chapter"
    __sort_start__ = 10
    __sort_step__ = 10

    title: Mapped[str] = mapped_column(String(100), comment="标题")


def show(title, rows, label="title"):
    items = ", ".join(f"{getattr(r, label)}:{r.sort_order}" for r in rows)
    print(f"  {title}: [{items}]")


# ==================== 示例 ====================

def demo_simple_list():
    """示例 1: 简单列表排序"""
    print("\n" + "=" * 60)
    print("Demo 1: Simple List")
    print("=" * 60)

    for i in range(1, 6):
        Banner(title=f"B{i}", sort_order=Banner.get_new_position()).save(commit=True)
    show("Created", Banner.get_sorted())

    b4 = Banner.query.filter_by(title="B4").first()
    b4.move_to(2)
    Banner.query.session.commit()
    show("B4 -> 2", Banner.get_sorted())

    b5 = Banner.query.filter_by(title="B5").first()
    b5.move_to_top()
    Banner.query.session.commit()
    show("B5 -> top", Banner.get_sorted())

    print(f"  B5 move_up (already top): {b5.move_up()}")
    print(f"  B5 position: {b5.get_sort_position()}, next: {b5.get_next().title}")


def demo_grouped():
    """示例 2: 分组排序"""
    print("\n" + "=" * 60)
    print("Demo 2: Grouped Sorting")
    print("=" * 60)

    for category_id in (1, 2):
        for i in range(1, 4):
            conditions = {"category_id": category_id}
            Product(
                category_id=category_id,
                name=f"C{category_id}-P{i}",
                sort_order=Product.get_new_position(conditions),
            ).save(commit=True)

    p3 = Product.query.filter_by(name="C1-P3").first()
    p3.move_to_top()
    Product.query.session.commit()

    show("Category 1", Product.get_sorted({"category_id": 1}), "name")
    show("Category 2", Product.get_sorted({"category_id": 2}), "name")


def demo_hook():
    """示例 3: 排序钩子"""
    print("\n" + "=" * 60)
    print("Demo 3: Sortable Hook")
    print("=" * 60)

    activate_sortable_hook()
    try:
        session = Banner.query.session

        Banner(title="Tail").save(commit=True)
        show("Append", Banner.get_sorted())

        Banner(title="Inserted", sort_order=3).save(commit=True)
        show("Insert at 3", Banner.get_sorted())

        Banner.query.filter_by(title="B1").first().delete(commit=True)
        show("Delete B1", Banner.get_sorted())

        tail = Banner.query.filter_by(title="Tail").first()
        tail.sort_order = 1
        session.commit()
        show("Tail = 1", Banner.get_sorted())
    finally:
        deactivate_sortable_hook()


def demo_step_and_errors():
    """示例 4: 步长与异常处理"""
    print("\n" + "=" * 60)
    print("Demo 4: Step And Errors")
    print("=" * 60)

    for i in range(1, 4):
        Chapter(title=f"Ch{i}", sort_order=Chapter.get_new_position()).save(commit=True)
    show("Created", Chapter.get_sorted())

    ch3 = Chapter.query.filter_by(title="Ch3").first()
    try:
        ch3.move_to(15)
    except InvalidPositionError as e:
        print(f"  [Error] {e.code.value}: {e.message}")

    try:
        Chapter.get_position_engine().to_top(999)
    except RowNotFoundError as e:
        print(f"  [Error] {e.code.value}: {e.message}")

    # 删除后出现间隙，规范化重新编号
    Chapter.query.filter_by(title="Ch2").first().delete(commit=True)
    show("After delete", Chapter.get_sorted())
    Chapter.normalize_sort_order()
    Chapter.query.session.commit()
    show("Normalized", Chapter.get_sorted())


def main():
    """主函数"""
    print("=" * 60)
    print("SortableMixin Demo")
    print("=" * 60)

    configure_logging(LoggingSettings(level="WARNING"))

    # 初始化数据库（内存数据库）
    engine, session_scope = init_database("sqlite:///:memory:")
    Base.metadata.create_all(engine)

    try:
        demo_simple_list()
        demo_grouped()
        demo_hook()
        demo_step_and_errors()

        print("\n" + "=" * 60)
        print("All demos completed successfully!")
        print("=" * 60)
    except Exception as e:
        print(f"\n[Error] {e}")
        session_scope.rollback()
        raise
    finally:
        session_scope.remove()


if __name__ == "__main__":
    main()
