"""排序钩子测试

测试 before_flush 钩子在新增、修改、删除时自动维护排序号。
"""

import pytest
from sqlalchemy import Integer, String, event
from sqlalchemy.orm import Mapped, Session, mapped_column

from ysort.orm import (
    CoreModel,
    SortFieldMixin,
    SortableMixin,
    activate_sortable_hook,
    deactivate_sortable_hook,
    is_sortable_hook_active,
)
from ysort.orm.sortable import InvalidPositionError
from ysort.orm.sortable.hooks import _before_flush


# ==================== 测试模型定义 ====================

class HookBanner(CoreModel, SortFieldMixin, SortableMixin):
    """轮播图 - 简单排序"""
    __tablename__ = "test_sortable_hook_banner"
    __table_args__ = {'extend_existing': True}

    title: Mapped[str] = mapped_column(String(100))


class HookProduct(CoreModel, SortFieldMixin, SortableMixin):
    """产品 - 按分类分组排序"""
    __tablename__ = "test_sortable_hook_product"
    __table_args__ = {'extend_existing': True}
    __sort_group_by__ = "category_id"

    category_id: Mapped[int] = mapped_column(Integer)
    name: Mapped[str] = mapped_column(String(100))


class HookTask(CoreModel, SortFieldMixin, SortableMixin):
    """任务 - 步长 10"""
    __tablename__ = "test_sortable_hook_task"
    __table_args__ = {'extend_existing': True}
    __sort_start__ = 10
    __sort_step__ = 10

    name: Mapped[str] = mapped_column(String(100))


# ==================== 测试类 ====================

class TestSortableHook:
    """排序钩子测试"""

    @pytest.fixture(autouse=True)
    def setup_db(self, scoped_db, sortable_hook):
        """初始化数据库并激活钩子"""
        self.session_scope = scoped_db

    @property
    def session(self):
        return self.session_scope()

    def banners(self):
        return [(b.title, b.sort_order) for b in HookBanner.get_sorted()]

    def products(self, category_id):
        return [(p.name, p.sort_order) for p in HookProduct.get_sorted({"category_id": category_id})]

    def create_banners(self, *titles):
        for title in titles:
            HookBanner(title=title).save(commit=True)

    # ---------- 激活状态 ----------

    def test_activation_is_idempotent(self):
        activate_sortable_hook()
        activate_sortable_hook()
        assert is_sortable_hook_active()
        assert event.contains(Session, "before_flush", _before_flush)

    def test_deactivate(self):
        deactivate_sortable_hook()
        assert not is_sortable_hook_active()
        assert not event.contains(Session, "before_flush", _before_flush)

        # 停用后不再自动分配排序号
        HookBanner(title="Manual", sort_order=5).save(commit=True)
        assert self.banners() == [("Manual", 5)]

    # ---------- 新增 ----------

    def test_new_rows_appended(self):
        self.create_banners("B1", "B2", "B3")
        assert self.banners() == [("B1", 1), ("B2", 2), ("B3", 3)]

    def test_new_rows_in_one_flush(self):
        """同一次 flush 的多个新记录依次追加，排序号不重复"""
        self.session.add_all([HookBanner(title=f"B{i}") for i in range(1, 5)])
        self.session.commit()

        assert self.banners() == [("B1", 1), ("B2", 2), ("B3", 3), ("B4", 4)]

    def test_insert_at_position(self):
        """向 [1..4] 的第 3 位插入新记录"""
        self.create_banners("B1", "B2", "B3", "B4")

        HookBanner(title="New", sort_order=3).save(commit=True)

        assert self.banners() == [
            ("B1", 1), ("B2", 2), ("New", 3), ("B3", 4), ("B4", 5),
        ]

    def test_insert_at_top(self):
        self.create_banners("B1", "B2")

        HookBanner(title="Top", sort_order=1).save(commit=True)

        assert self.banners() == [("Top", 1), ("B1", 2), ("B2", 3)]

    def test_insert_beyond_end_is_appended(self):
        self.create_banners("B1", "B2")

        HookBanner(title="Far", sort_order=99).save(commit=True)

        assert self.banners() == [("B1", 1), ("B2", 2), ("Far", 3)]

    def test_mixed_new_rows_in_one_flush(self):
        self.create_banners("B1", "B2")

        self.session.add(HookBanner(title="Tail"))
        self.session.add(HookBanner(title="Head", sort_order=1))
        self.session.commit()

        assert self.banners() == [("Head", 1), ("B1", 2), ("B2", 3), ("Tail", 4)]

    def test_new_rows_with_step(self):
        for name in ["T1", "T2", "T3"]:
            HookTask(name=name).save(commit=True)

        tasks = HookTask.get_sorted()
        assert [(t.name, t.sort_order) for t in tasks] == [("T1", 10), ("T2", 20), ("T3", 30)]

    def test_off_grid_new_row_rejected(self):
        for name in ["T1", "T2"]:
            HookTask(name=name).save(commit=True)

        self.session.add(HookTask(name="Bad", sort_order=15))
        with pytest.raises(InvalidPositionError):
            self.session.commit()
        self.session.rollback()

        assert [t.sort_order for t in HookTask.get_sorted()] == [10, 20]

    # ---------- 修改 ----------

    def test_assign_position_moves_row(self):
        """直接赋值排序号等价于移动"""
        self.create_banners("B1", "B2", "B3", "B4")

        b4 = HookBanner.query.filter_by(title="B4").first()
        b4.sort_order = 2
        self.session.commit()

        assert self.banners() == [("B1", 1), ("B4", 2), ("B2", 3), ("B3", 4)]

    def test_assign_position_down(self):
        self.create_banners("B1", "B2", "B3")

        b1 = HookBanner.query.filter_by(title="B1").first()
        b1.sort_order = 3
        self.session.commit()

        assert self.banners() == [("B2", 1), ("B3", 2), ("B1", 3)]

    def test_other_changes_do_not_move(self):
        self.create_banners("B1", "B2")

        b1 = HookBanner.query.filter_by(title="B1").first()
        b1.title = "B1 renamed"
        self.session.commit()

        assert self.banners() == [("B1 renamed", 1), ("B2", 2)]

    def test_group_change_appends_to_new_group(self):
        for i in range(1, 4):
            HookProduct(category_id=1, name=f"A{i}").save(commit=True)
        for i in range(1, 3):
            HookProduct(category_id=2, name=f"B{i}").save(commit=True)

        a2 = HookProduct.query.filter_by(name="A2").first()
        a2.category_id = 2
        self.session.commit()

        assert self.products(1) == [("A1", 1), ("A3", 2)]
        assert self.products(2) == [("B1", 1), ("B2", 2), ("A2", 3)]

    def test_group_change_with_position(self):
        for i in range(1, 3):
            HookProduct(category_id=1, name=f"A{i}").save(commit=True)
        for i in range(1, 3):
            HookProduct(category_id=2, name=f"B{i}").save(commit=True)

        a1 = HookProduct.query.filter_by(name="A1").first()
        a1.category_id = 2
        a1.sort_order = 2
        self.session.commit()

        assert self.products(1) == [("A2", 1)]
        assert self.products(2) == [("B1", 1), ("A1", 2), ("B2", 3)]

    # ---------- 删除 ----------

    def test_delete_closes_gap(self):
        self.create_banners("B1", "B2", "B3", "B4")

        b2 = HookBanner.query.filter_by(title="B2").first()
        b2.delete(commit=True)

        assert self.banners() == [("B1", 1), ("B3", 2), ("B4", 3)]

    def test_delete_several_in_one_flush(self):
        self.create_banners("B1", "B2", "B3", "B4", "B5")

        for title in ("B2", "B4"):
            self.session.delete(HookBanner.query.filter_by(title=title).first())
        self.session.commit()

        assert self.banners() == [("B1", 1), ("B3", 2), ("B5", 3)]

    def test_delete_and_insert_in_one_flush(self):
        self.create_banners("B1", "B2", "B3")

        self.session.delete(HookBanner.query.filter_by(title="B1").first())
        self.session.add(HookBanner(title="New"))
        self.session.commit()

        assert self.banners() == [("B2", 1), ("B3", 2), ("New", 3)]

    def test_delete_in_group(self):
        for i in range(1, 4):
            HookProduct(category_id=1, name=f"A{i}").save(commit=True)
        HookProduct(category_id=2, name="B1").save(commit=True)

        HookProduct.query.filter_by(name="A1").first().delete(commit=True)

        assert self.products(1) == [("A2", 1), ("A3", 2)]
        assert self.products(2) == [("B1", 1)]

    def test_delete_last_and_insert_in_one_flush(self):
        """删除末尾记录后追加的新记录接在剩余记录之后"""
        self.create_banners("B1", "B2", "B3")

        self.session.delete(HookBanner.query.filter_by(title="B3").first())
        self.session.add(HookBanner(title="New"))
        self.session.commit()

        assert self.banners() == [("B1", 1), ("B2", 2), ("New", 3)]

    def test_delete_last_and_move_to_end_in_one_flush(self):
        self.create_banners("B1", "B2", "B3", "B4", "B5")

        self.session.delete(HookBanner.query.filter_by(title="B5").first())
        b2 = HookBanner.query.filter_by(title="B2").first()
        b2.sort_order = 5
        self.session.commit()

        assert self.banners() == [("B1", 1), ("B3", 2), ("B4", 3), ("B2", 4)]

    def test_delete_and_move_up_in_one_flush(self):
        self.create_banners("B1", "B2", "B3", "B4", "B5")

        self.session.delete(HookBanner.query.filter_by(title="B2").first())
        b5 = HookBanner.query.filter_by(title="B5").first()
        b5.sort_order = 1
        self.session.commit()

        assert self.banners() == [("B5", 1), ("B1", 2), ("B3", 3), ("B4", 4)]

    def test_delete_move_and_insert_in_one_flush(self):
        """删除、移动、追加、插队在同一次 flush 中完成"""
        self.create_banners("B1", "B2", "B3", "B4")

        self.session.delete(HookBanner.query.filter_by(title="B4").first())
        b1 = HookBanner.query.filter_by(title="B1").first()
        b1.sort_order = 3
        self.session.add(HookBanner(title="Tail"))
        self.session.add(HookBanner(title="Head", sort_order=1))
        self.session.commit()

        assert self.banners() == [
            ("Head", 1), ("B2", 2), ("B3", 3), ("B1", 4), ("Tail", 5),
        ]

    def test_delete_and_group_change_in_one_flush(self):
        for i in range(1, 4):
            HookProduct(category_id=1, name=f"A{i}").save(commit=True)
        for i in range(1, 3):
            HookProduct(category_id=2, name=f"B{i}").save(commit=True)

        self.session.delete(HookProduct.query.filter_by(name="B2").first())
        a3 = HookProduct.query.filter_by(name="A3").first()
        a3.category_id = 2
        self.session.add(HookProduct(category_id=1, name="A4"))
        self.session.commit()

        assert self.products(1) == [("A1", 1), ("A2", 2), ("A4", 3)]
        assert self.products(2) == [("B1", 1), ("A3", 2)]

    # ---------- 与 Mixin 方法配合 ----------

    def test_mixin_methods_with_hook_active(self):
        self.create_banners("B1", "B2", "B3")

        b3 = HookBanner.query.filter_by(title="B3").first()
        b3.move_to_top()
        self.session.commit()

        assert self.banners() == [("B3", 1), ("B1", 2), ("B2", 3)]
