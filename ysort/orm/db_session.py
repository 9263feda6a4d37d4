"""
数据库会话管理

- enable_sqlite_savepoint(): 让 SQLite 支持排序操作使用的 SAVEPOINT
- db_manager / init_database(): 创建引擎与 scoped session，并设置 CoreModel.query
- db_session_scope(): 自动提交、回滚与清理的会话上下文
"""

from contextlib import contextmanager
from typing import Callable, Generator, Optional, Tuple

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.orm import Session, scoped_session, sessionmaker
from sqlalchemy.pool import StaticPool

from ysort.config import DatabaseSettings
from ysort.log import get_logger

logger = get_logger()

_NOT_INITIALIZED = "数据库未初始化，请先调用 init_database()"


def enable_sqlite_savepoint(engine: Engine) -> None:
    """让 pysqlite 驱动正确支持 SAVEPOINT（session.begin_nested）

    pysqlite 默认自行管理事务，会吞掉 SAVEPOINT；
    这里关闭驱动的事务管理，由 SQLAlchemy 显式发出 BEGIN。
    """

    @event.listens_for(engine, "connect")
    def _do_connect(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _do_begin(conn):
        conn.exec_driver_sql("BEGIN")


def create_db_engine(config: DatabaseSettings) -> Engine:
    """按配置创建引擎

    SQLite 内存库使用 StaticPool（所有会话共享同一连接），
    SQLite 引擎都会启用 SAVEPOINT 支持。
    """
    url = make_url(config.url)
    if url.get_backend_name() != "sqlite":
        return create_engine(
            config.url,
            echo=config.echo,
            pool_pre_ping=config.pool_pre_ping,
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
        )

    if url.database in (None, "", ":memory:"):
        engine = create_engine(
            config.url,
            echo=config.echo,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
    else:
        engine = create_engine(
            config.url,
            echo=config.echo,
            connect_args={"check_same_thread": False, "timeout": config.pool_timeout},
        )
    enable_sqlite_savepoint(engine)
    return engine


class DatabaseManager:
    """数据库连接状态

    使用示例:
        from ysort.orm import db_manager

        db_manager.init("sqlite:///./app.db")
        session = db_manager.get_session()
    """

    def __init__(self):
        self._engine: Optional[Engine] = None
        self._session_scope: Optional[scoped_session] = None

    @property
    def engine(self) -> Engine:
        if self._engine is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._engine

    @property
    def session_scope(self) -> scoped_session:
        if self._session_scope is None:
            raise RuntimeError(_NOT_INITIALIZED)
        return self._session_scope

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None

    def init(
        self,
        database_url: str = None,
        config: DatabaseSettings = None,
        scopefunc: Callable = None,
        auto_setup_query: bool = True,
        sortable_hook: bool = False,
    ) -> Tuple[Engine, scoped_session]:
        """初始化数据库连接

        Args:
            database_url: 数据库连接URL，优先于 config.url
            config: 数据库配置，均未提供时从环境变量（YSORT_DB_*）加载
            scopefunc: session 作用域函数，默认按线程隔离
            auto_setup_query: 是否设置 CoreModel.query
            sortable_hook: 是否同时激活排序钩子

        Returns:
            (engine, session_scope)

        Raises:
            ValueError: 没有可用的数据库URL
        """
        if config is None:
            config = DatabaseSettings(url=database_url) if database_url else DatabaseSettings()
        elif database_url:
            config = config.model_copy(update={"url": database_url})
        if not config.url:
            raise ValueError("database_url 是必需的，请通过参数、config 或 YSORT_DB_URL 提供")

        logger.info(f"初始化数据库: {make_url(config.url).render_as_string(hide_password=True)}")
        self.dispose()
        self._engine = create_db_engine(config)
        self._session_scope = scoped_session(
            sessionmaker(autocommit=False, autoflush=True, bind=self._engine),
            scopefunc=scopefunc,
        )

        # 延迟导入避免循环依赖
        if auto_setup_query:
            from .core_model import CoreModel
            CoreModel.query = self._session_scope.query_property()
        if sortable_hook:
            from .sortable import activate_sortable_hook
            activate_sortable_hook()

        return self._engine, self._session_scope

    def get_session(self) -> Session:
        return self.session_scope()

    def remove(self) -> None:
        """移除当前作用域的 session，不提交"""
        if self._session_scope is not None:
            self._session_scope.remove()

    def dispose(self) -> None:
        """释放引擎并重置状态"""
        self.remove()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_scope = None


db_manager = DatabaseManager()


def init_database(
    database_url: str = None,
    config: DatabaseSettings = None,
    scopefunc: Callable = None,
    auto_setup_query: bool = True,
    sortable_hook: bool = False,
) -> Tuple[Engine, scoped_session]:
    """初始化数据库连接（db_manager.init 的便捷函数）

    使用示例:
        engine, session = init_database("sqlite:///./app.db", sortable_hook=True)
        engine, session = init_database(config=settings.database)
    """
    return db_manager.init(
        database_url=database_url,
        config=config,
        scopefunc=scopefunc,
        auto_setup_query=auto_setup_query,
        sortable_hook=sortable_hook,
    )


def get_engine() -> Engine:
    return db_manager.engine


@contextmanager
def db_session_scope(auto_commit: bool = True) -> Generator[Session, None, None]:
    """会话上下文：正常结束时提交，异常时回滚，最后清理

    排序操作失败抛出的 SortableError 会让整个上下文回滚。

    使用示例:
        with db_session_scope() as session:
            Banner.get(1).move_to_top()
    """
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        db_manager.remove()


__all__ = [
    "DatabaseManager",
    "db_manager",
    "init_database",
    "get_engine",
    "db_session_scope",
    "create_db_engine",
    "enable_sqlite_savepoint",
]
