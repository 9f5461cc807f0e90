"""
SQLite 连接器

基于标准库 sqlite3，以自动提交模式打开连接，事务由显式的 BEGIN / COMMIT 控制。
"""

import sqlite3
from typing import Any, Dict, List, Optional, Sequence

from ..common.exceptions import (
    DatabaseConnectionError, ExecutionError, TransactionError
)
from ..common.options import SqliteConnectorOptions
from ..core.types import TypeRegistry
from ..query.compiler import SQLiteDialect
from .base import DatabaseConnector


class SQLiteConnector(DatabaseConnector):
    """SQLite 连接器"""

    DB_TYPE = 'sqlite'
    REQUIRED_DEPENDENCIES: List[str] = []  # 标准库
    dialect_class = SQLiteDialect

    def __init__(self, options: Optional[SqliteConnectorOptions] = None):
        super().__init__(options or SqliteConnectorOptions())

    def _connect(self) -> sqlite3.Connection:
        opts = self.options
        kwargs: Dict[str, Any] = {
            'check_same_thread': opts.check_same_thread,
            'isolation_level': None,
        }
        if opts.timeout is not None:
            kwargs['timeout'] = opts.timeout
        try:
            conn = sqlite3.connect(opts.database, **kwargs)
        except sqlite3.Error as e:
            raise DatabaseConnectionError(f"Failed to connect to SQLite: {e}", cause=e) from e
        conn.row_factory = sqlite3.Row
        return conn

    def _close(self, connection: sqlite3.Connection) -> None:
        connection.close()

    def _run(self, sql: str, params: Optional[Sequence[Any]]) -> sqlite3.Cursor:
        values = [TypeRegistry.to_database(p) for p in (params or ())]
        try:
            return self.connection.execute(sql, values)
        except sqlite3.Error as e:
            raise ExecutionError(str(e), sql=sql, cause=e) from e

    def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        cursor = self._run(sql, params)
        try:
            return [dict(row) for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise ExecutionError(str(e), sql=sql, cause=e) from e

    def execute_update(self, sql: str, params: Optional[Sequence[Any]] = None) -> int:
        return self._run(sql, params).rowcount

    def execute_insert_get_id(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        cursor = self._run(sql, params)
        if cursor.rowcount > 0 and cursor.lastrowid is not None:
            return cursor.lastrowid
        raise ExecutionError("Insertion failed, please check your database constraints", sql=sql)

    def execute_statement(self, sql: str) -> None:
        try:
            self.connection.execute(sql)
        except sqlite3.Error as e:
            raise ExecutionError(str(e), sql=sql, cause=e) from e

    def _control(self, sql: str) -> None:
        try:
            self.connection.execute(sql)
        except sqlite3.Error as e:
            raise TransactionError(str(e), sql=sql, cause=e) from e

    def begin(self) -> None:
        self._control('BEGIN')

    def commit(self) -> None:
        self._control('COMMIT')

    def rollback(self) -> None:
        if self.connection.in_transaction:
            self._control('ROLLBACK')
