"""
Pyrecord 语句执行器

Database 包装一个 DatabaseConnector，负责：
- 按语句首个关键字区分查询与修改语句
- 为每条修改语句开启隐式事务（可关闭），失败时回滚并继续抛出原异常
- 显式事务作用域 transaction()，作用域内不再开启隐式事务
- 分发 query_issued / result_produced / rows_affected 事件

进程级默认数据库：
    import pyrecord

    pyrecord.configure(SQLiteConnector(SqliteConnectorOptions(database='app.db')))
    users = pyrecord.table('users').where('age', '>', 18).get()

未调用 configure() 时，get_database() 首次被调用时从 PYRECORD_* 环境变量初始化。
"""

import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, List, Optional, Sequence, Union, TYPE_CHECKING

from ..common.exceptions import QueryError, TransactionError
from ..common.options import ConnectorOptions, load_options_from_env, load_options_from_file
from ..connectors import DatabaseConnector, SQLiteConnector, connector_from_options
from ..query.compiler import SQLDialect
from .event import QueryListener, QUERY_ISSUED, RESULT_PRODUCED, ROWS_AFFECTED, event

if TYPE_CHECKING:
    from ..query.builder import QueryBuilder


logger = logging.getLogger(__name__)


# 修改语句的首个关键字
_MUTATING_KEYWORDS = ('insert', 'update', 'delete', 'replace')


def _leading_keyword(sql: str) -> str:
    stripped = sql.lstrip(' \t\r\n(')
    return stripped.split(None, 1)[0].lower() if stripped else ''


def is_mutating(sql: str) -> bool:
    """语句是否为修改语句（按首个关键字判断）"""
    return _leading_keyword(sql) in _MUTATING_KEYWORDS


class Database:
    """
    数据库（语句执行器）

    Args:
        connector: 数据库连接器，None 表示内存 SQLite
        transactional: 是否为修改语句开启隐式事务，None 使用连接器选项
    """

    def __init__(
        self,
        connector: Optional[DatabaseConnector] = None,
        transactional: Optional[bool] = None
    ):
        self.connector = connector or SQLiteConnector()
        self._transactional = self.connector.transactional if transactional is None else transactional
        self._in_transaction = False
        self._listeners: Dict[int, QueryListener] = {}

    @classmethod
    def from_options(cls, options: ConnectorOptions) -> 'Database':
        """从连接器选项创建"""
        return cls(connector_from_options(options))

    # ========== 属性 ==========

    @property
    def dialect(self) -> SQLDialect:
        return self.connector.dialect

    @property
    def supports_insert_get_id(self) -> bool:
        return self.connector.supports_insert_get_id

    @property
    def transactional(self) -> bool:
        return self._transactional

    @property
    def in_transaction(self) -> bool:
        """是否处于显式事务中"""
        return self._in_transaction

    def enable_transaction(self) -> None:
        self._transactional = True

    def disable_transaction(self) -> None:
        self._transactional = False

    # ========== 查询构建入口 ==========

    def table(self, name: str) -> 'QueryBuilder':
        """以指定表创建查询构建器"""
        from ..query.builder import QueryBuilder
        return QueryBuilder(name, database=self)

    # ========== 原始语句 ==========

    def execute(self, sql: str, params: Optional[Sequence[Any]] = None) -> Union[List[Dict[str, Any]], int]:
        """
        执行任意语句

        Returns:
            查询语句返回行列表，修改语句返回受影响行数
        """
        if is_mutating(sql):
            return self._run_update(sql, params)
        return self._run_query(sql, params)

    def select(self, sql: str, *params: Any) -> List[Dict[str, Any]]:
        """执行查询语句"""
        self._check_kind(sql, 'select')
        return self._run_query(sql, params)

    def insert(self, sql: str, *params: Any) -> int:
        """执行插入语句，返回受影响行数"""
        self._check_kind(sql, 'insert')
        return self._run_update(sql, params)

    def update(self, sql: str, *params: Any) -> int:
        """执行更新语句，返回受影响行数"""
        self._check_kind(sql, 'update')
        return self._run_update(sql, params)

    def delete(self, sql: str, *params: Any) -> int:
        """执行删除语句，返回受影响行数"""
        self._check_kind(sql, 'delete')
        return self._run_update(sql, params)

    def statement(self, sql: str) -> None:
        """执行不返回结果的语句（建表、清空表等）"""
        logger.debug("%s", sql)
        event.dispatch(self, QUERY_ISSUED, sql)
        with self._implicit_transaction():
            self.connector.execute_statement(sql)

    def insert_get_id(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """
        执行插入语句并返回后端生成的主键

        调用前应检查 supports_insert_get_id。
        """
        self._check_kind(sql, 'insert')
        self._issue(sql, params)
        with self._implicit_transaction():
            key = self.connector.execute_insert_get_id(sql, params)
        event.dispatch(self, ROWS_AFFECTED, sql, 1)
        return key

    def _check_kind(self, sql: str, keyword: str) -> None:
        if keyword not in sql.lower():
            raise QueryError(f"Not a {keyword} statement: {sql}")

    def _issue(self, sql: str, params: Optional[Sequence[Any]]) -> None:
        logger.debug("%s %s", sql, list(params or ()))
        event.dispatch(self, QUERY_ISSUED, sql)

    def _run_query(self, sql: str, params: Optional[Sequence[Any]]) -> List[Dict[str, Any]]:
        self._issue(sql, params)
        rows = self.connector.execute_query(sql, params)
        event.dispatch(self, RESULT_PRODUCED, sql, rows)
        return rows

    def _run_update(self, sql: str, params: Optional[Sequence[Any]]) -> int:
        self._issue(sql, params)
        with self._implicit_transaction():
            count = self.connector.execute_update(sql, params)
        event.dispatch(self, ROWS_AFFECTED, sql, count)
        return count

    # ========== 事务 ==========

    @contextmanager
    def _implicit_transaction(self) -> Generator[None, None, None]:
        if not self._transactional or self._in_transaction:
            yield
            return
        self.connector.begin()
        try:
            yield
            self.connector.commit()
        except BaseException:
            self._safe_rollback()
            raise

    def _safe_rollback(self) -> None:
        try:
            self.connector.rollback()
        except Exception as e:
            # 回滚失败不能掩盖原异常
            logger.warning("Rollback failed: %s", e)

    @contextmanager
    def transaction(self) -> Generator['Database', None, None]:
        """
        显式事务作用域

        作用域正常退出时提交，抛出异常时回滚并继续抛出。
        作用域内的修改语句不再单独开启隐式事务。

        Raises:
            TransactionError: 已处于事务中

        Example:
            with db.transaction():
                db.table('accounts').where('id', 1).decrement('balance', 10)
                db.table('accounts').where('id', 2).increment('balance', 10)
        """
        if self._in_transaction:
            raise TransactionError("Nested transactions are not supported")
        self.connector.begin()
        self._in_transaction = True
        try:
            yield self
            self.connector.commit()
        except BaseException:
            self._safe_rollback()
            raise
        finally:
            self._in_transaction = False

    def begin_transaction(self) -> None:
        """手动开启事务"""
        if self._in_transaction:
            raise TransactionError("A transaction is already active")
        self.connector.begin()
        self._in_transaction = True

    def commit(self) -> None:
        """提交手动开启的事务"""
        if not self._in_transaction:
            raise TransactionError("No active transaction to commit")
        try:
            self.connector.commit()
        finally:
            self._in_transaction = False

    def rollback(self) -> None:
        """回滚手动开启的事务"""
        if not self._in_transaction:
            raise TransactionError("No active transaction to roll back")
        try:
            self.connector.rollback()
        finally:
            self._in_transaction = False

    # ========== 监听器 ==========

    def register(self, listener: QueryListener) -> None:
        """注册查询监听器（可注册多个）"""
        if id(listener) in self._listeners:
            return
        self._listeners[id(listener)] = listener
        event.listen(self, QUERY_ISSUED, listener.on_query_issued)
        event.listen(self, RESULT_PRODUCED, listener.on_result_produced)
        event.listen(self, ROWS_AFFECTED, listener.on_rows_affected)

    def unregister(self, listener: QueryListener) -> None:
        """移除查询监听器"""
        if self._listeners.pop(id(listener), None) is None:
            return
        event.remove(self, QUERY_ISSUED, listener.on_query_issued)
        event.remove(self, RESULT_PRODUCED, listener.on_result_produced)
        event.remove(self, ROWS_AFFECTED, listener.on_rows_affected)

    # ========== 生命周期 ==========

    def close(self) -> None:
        """关闭连接并清除监听器"""
        self.connector.close()
        self._listeners.clear()
        event.clear(self)

    def __enter__(self) -> 'Database':
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()

    def __repr__(self) -> str:
        return f"Database({self.connector!r})"


# ========== 进程级默认数据库 ==========

_default_database: Optional[Database] = None
_default_lock = threading.Lock()


def _build_database(
    connector: Optional[DatabaseConnector] = None,
    options: Optional[ConnectorOptions] = None,
    config_file: Optional[Union[str, Path]] = None
) -> Database:
    if connector is not None:
        return Database(connector)
    if options is None:
        options = load_options_from_file(config_file) if config_file else load_options_from_env()
    return Database.from_options(options)


def configure(
    connector: Optional[DatabaseConnector] = None,
    *,
    options: Optional[ConnectorOptions] = None,
    config_file: Optional[Union[str, Path]] = None
) -> Database:
    """
    配置进程级默认数据库

    优先级：connector > options > config_file > PYRECORD_* 环境变量。
    已存在的默认数据库会被关闭。

    Returns:
        新的默认数据库
    """
    global _default_database
    database = _build_database(connector, options, config_file)
    with _default_lock:
        previous, _default_database = _default_database, database
    if previous is not None and previous is not database:
        previous.close()
    return database


def set_database(database: Optional[Database]) -> None:
    """直接设置默认数据库（不关闭旧实例）"""
    global _default_database
    with _default_lock:
        _default_database = database


def get_database() -> Database:
    """
    获取默认数据库

    首次调用且未配置时，从环境变量初始化（加锁保证只初始化一次）。
    """
    global _default_database
    if _default_database is None:
        with _default_lock:
            if _default_database is None:
                _default_database = _build_database()
    return _default_database


def close_database() -> None:
    """关闭并清除默认数据库"""
    global _default_database
    with _default_lock:
        database, _default_database = _default_database, None
    if database is not None:
        database.close()


def table(name: str) -> 'QueryBuilder':
    """以默认数据库创建查询构建器"""
    return get_database().table(name)
