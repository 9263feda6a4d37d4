"""
Pytest 公共配置和 Fixtures

- memory_engine: 支持 SAVEPOINT 的 SQLite 内存库
- db_session: 普通会话
- scoped_db: 已建表、已设置 CoreModel.query 的 scoped session
- sortable_hook: 在测试期间激活排序钩子
- sortable_defaults: 隔离全局排序默认配置
- yaml_file: 写入临时 YAML 配置文件
"""

from typing import Generator

import pytest
import yaml
from sqlalchemy.orm import Session, scoped_session, sessionmaker

from ysort.config import DatabaseSettings
from ysort.config import settings as settings_module
from ysort.orm import Base, CoreModel
from ysort.orm.db_session import create_db_engine
from ysort.orm.sortable import activate_sortable_hook, deactivate_sortable_hook


# ==================== 数据库 Fixtures ====================

@pytest.fixture
def memory_engine():
    """内存数据库引擎（StaticPool，所有会话共享同一连接）"""
    engine = create_db_engine(DatabaseSettings(url="sqlite:///:memory:"))
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(memory_engine) -> Generator[Session, None, None]:
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def scoped_db(memory_engine) -> Generator[scoped_session, None, None]:
    """建表并让 Model.query / save() / 排序操作使用同一个 scoped session"""
    Base.metadata.create_all(bind=memory_engine)
    session_scope = scoped_session(sessionmaker(autocommit=False, autoflush=False, bind=memory_engine))
    CoreModel.query = session_scope.query_property()
    yield session_scope
    session_scope.remove()
    CoreModel.query = None


@pytest.fixture
def sortable_hook():
    activate_sortable_hook()
    yield
    deactivate_sortable_hook()


@pytest.fixture
def sortable_defaults():
    """测试前后重置全局 SortableSettings"""
    settings_module._sortable_settings = None
    yield settings_module
    settings_module._sortable_settings = None


# ==================== 配置文件 Fixtures ====================

@pytest.fixture
def yaml_file(tmp_path):
    """写入 YAML 文件的工厂函数，content 可以是字符串或字典"""

    def _write(name: str, content="") -> str:
        path = tmp_path / name
        path.parent.mkdir(parents=True, exist_ok=True)
        if not isinstance(content, str):
            content = yaml.safe_dump(content, allow_unicode=True)
        path.write_text(content, encoding="utf-8")
        return str(path)

    return _write
