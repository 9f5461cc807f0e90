"""
MySQL 连接器

使用 mysql-connector-python 提供的 ``mysql.connector``，以预处理游标执行带 ``?`` 占位符的语句。

安装驱动::

    pip install mysql-connector-python
    # 或：pip install pyrecord[mysql]

驱动缺失时在建立连接时抛出 ConfigurationError。
"""

from typing import Any, Dict, List, Optional, Sequence

from ..common.exceptions import (
    ConfigurationError, DatabaseConnectionError, ExecutionError, TransactionError
)
from ..common.options import MySQLConnectorOptions
from ..core.types import TypeRegistry
from ..query.compiler import MySQLDialect
from .base import DatabaseConnector


class MySQLConnector(DatabaseConnector):
    """MySQL / MariaDB 连接器"""

    DB_TYPE = 'mysql'
    REQUIRED_DEPENDENCIES = ['mysql.connector']
    dialect_class = MySQLDialect

    def __init__(self, options: Optional[MySQLConnectorOptions] = None):
        super().__init__(options or MySQLConnectorOptions())

    def describe(self) -> str:
        opts = self.options
        return f"{opts.host}:{opts.port}/{opts.database}"

    def _connect(self) -> Any:
        try:
            import mysql.connector
        except ImportError:
            raise ConfigurationError(
                "mysql-connector-python is required for MySQL. "
                "Install with: pip install mysql-connector-python"
            ) from None

        opts = self.options
        kwargs: Dict[str, Any] = {
            'host': opts.host,
            'port': opts.port,
            'database': opts.database,
            'user': opts.username,
            'password': opts.password,
            'charset': opts.charset,
            'autocommit': True,
        }
        if opts.connect_timeout is not None:
            kwargs['connect_timeout'] = opts.connect_timeout
        try:
            return mysql.connector.connect(**kwargs)
        except mysql.connector.Error as e:
            raise DatabaseConnectionError(f"Failed to connect to MySQL: {e}", cause=e) from e

    def _close(self, connection: Any) -> None:
        connection.close()

    def _execute(self, sql: str, params: Optional[Sequence[Any]], fetch: bool = False) -> Any:
        import mysql.connector

        values = tuple(TypeRegistry.to_database(p) for p in (params or ()))
        cursor = self.connection.cursor(prepared=True)
        try:
            cursor.execute(sql, values)
            if fetch:
                columns = [col[0] for col in cursor.description or ()]
                return [dict(zip(columns, row)) for row in cursor.fetchall()]
            return cursor.rowcount, cursor.lastrowid
        except mysql.connector.Error as e:
            raise ExecutionError(str(e), sql=sql, cause=e) from e
        finally:
            cursor.close()

    def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        return self._execute(sql, params, fetch=True)

    def execute_update(self, sql: str, params: Optional[Sequence[Any]] = None) -> int:
        rowcount, _ = self._execute(sql, params)
        return rowcount

    def execute_insert_get_id(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        rowcount, lastrowid = self._execute(sql, params)
        if rowcount > 0 and lastrowid:
            return lastrowid
        raise ExecutionError("Insertion failed, please check your database constraints", sql=sql)

    def execute_statement(self, sql: str) -> None:
        import mysql.connector

        cursor = self.connection.cursor()
        try:
            cursor.execute(sql)
        except mysql.connector.Error as e:
            raise ExecutionError(str(e), sql=sql, cause=e) from e
        finally:
            cursor.close()

    def begin(self) -> None:
        import mysql.connector

        try:
            self.connection.start_transaction()
        except mysql.connector.Error as e:
            raise TransactionError(str(e), cause=e) from e

    def commit(self) -> None:
        import mysql.connector

        try:
            self.connection.commit()
        except mysql.connector.Error as e:
            raise TransactionError(str(e), cause=e) from e

    def rollback(self) -> None:
        import mysql.connector

        try:
            self.connection.rollback()
        except mysql.connector.Error as e:
            raise TransactionError(str(e), cause=e) from e
