"""
语句执行器测试

覆盖范围：
- 原始语句（select / insert / update / delete / statement / execute / insert_get_id）
- 语句类型检查
- 监听器注册与事件分发
- 连接器懒加载与关闭
- 进程级默认数据库
"""

import logging
from typing import List

import pytest

import pyrecord
from pyrecord import Database, QueryListener, event
from pyrecord.common.exceptions import ExecutionError, QueryError
from pyrecord.common.options import SqliteConnectorOptions
from pyrecord.connectors import (
    MySQLConnector, SQLiteConnector, get_available_connectors, get_connector,
)
from pyrecord.core.database import is_mutating
from conftest import RecordingListener, create_schema


class TestRawStatements:
    """原始语句测试"""

    def test_insert_select(self, db: Database) -> None:
        assert db.insert('insert into roles (name) values (?)', 'admin') == 1
        rows = db.select('select name from roles where name = ?', 'admin')
        assert rows == [{'name': 'admin'}]

    def test_update_delete(self, db: Database) -> None:
        db.insert('insert into roles (name) values (?)', 'a')
        assert db.update('update roles set name = ? where name = ?', 'b', 'a') == 1
        assert db.delete('delete from roles where name = ?', 'b') == 1

    def test_kind_is_checked(self, db: Database) -> None:
        with pytest.raises(QueryError):
            db.select('delete from roles')
        with pytest.raises(QueryError):
            db.insert('select 1')

    def test_execute_classifies_statement(self, db: Database) -> None:
        assert db.execute('insert into roles (name) values (?)', ['x']) == 1
        assert db.execute('select name from roles') == [{'name': 'x'}]
        assert db.execute('  DELETE from roles') == 1

    def test_insert_get_id(self, db: Database) -> None:
        key = db.insert_get_id('insert into roles (name) values (?)', ['x'])
        assert db.select('select id from roles') == [{'id': key}]

    def test_driver_error_is_wrapped(self, db: Database) -> None:
        with pytest.raises(ExecutionError) as exc_info:
            db.select('select * from missing_table')
        assert exc_info.value.sql == 'select * from missing_table'
        assert exc_info.value.cause is not None

    def test_is_mutating(self) -> None:
        assert is_mutating('insert into t values (1)')
        assert is_mutating('\n  Update t set a = 1')
        assert not is_mutating('select * from t')
        assert not is_mutating('( select 1 ) union ( select 2 )')
        assert not is_mutating('')


class TestListeners:
    """监听器测试"""

    def test_hooks_receive_sql(self, db: Database, listener: RecordingListener) -> None:
        db.table('roles').insert({'name': 'admin'})
        rows = db.table('roles').get()
        assert listener.issued == [
            'insert into `roles` (`name`) values (?)',
            'select * from `roles`',
        ]
        assert listener.affected == [('insert into `roles` (`name`) values (?)', 1)]
        assert listener.results == [('select * from `roles`', rows)]

    def test_multiple_listeners(self, db: Database) -> None:
        first, second = RecordingListener(), RecordingListener()
        db.register(first)
        db.register(second)
        db.register(first)
        db.table('roles').count()
        assert len(first.issued) == 1
        assert len(second.issued) == 1

    def test_unregister(self, db: Database, listener: RecordingListener) -> None:
        db.unregister(listener)
        db.table('roles').count()
        assert listener.issued == []

    def test_listener_errors_propagate(self, db: Database) -> None:
        class Failing(QueryListener):
            def on_query_issued(self, sql: str) -> None:
                raise RuntimeError('boom')

        db.register(Failing())
        with pytest.raises(RuntimeError):
            db.table('roles').get()

    def test_function_listeners(self, db: Database) -> None:
        seen: List[str] = []

        @event.listens_for(db, 'query_issued')
        def on_sql(sql: str) -> None:
            seen.append(sql)

        db.table('roles').count()
        assert seen == ['select count(*) as aggregate from `roles`']

    def test_sql_is_logged(self, db: Database, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.DEBUG, logger='pyrecord.core.database'):
            db.table('roles').where('name', 'x').get()
        assert "select * from `roles` where `name` = ? ['x']" in caplog.text

    def test_close_clears_listeners(self, listener: RecordingListener) -> None:
        database = Database()
        database.register(listener)
        database.close()
        assert not event.has_listeners(database, 'query_issued')


class TestConnectors:
    """连接器测试"""

    def test_lazy_connection(self) -> None:
        connector = SQLiteConnector()
        assert not connector.is_connected
        database = Database(connector)
        database.statement('create table t (a integer)')
        assert connector.is_connected
        database.close()
        assert not connector.is_connected

    def test_file_database(self, temp_dir) -> None:
        path = str(temp_dir / 'app.db')
        with Database(SQLiteConnector(SqliteConnectorOptions(database=path))) as database:
            create_schema(database)
            database.table('roles').insert({'name': 'persisted'})
        with Database(SQLiteConnector(SqliteConnectorOptions(database=path))) as database:
            assert database.table('roles').pluck_list('name') == ['persisted']

    def test_get_connector(self) -> None:
        assert isinstance(get_connector('sqlite'), SQLiteConnector)
        assert isinstance(get_connector('mysql'), MySQLConnector)
        with pytest.raises(pyrecord.ConfigurationError):
            get_connector('oracle')

    def test_available_connectors(self) -> None:
        available = get_available_connectors()
        assert available['sqlite'] is True
        assert 'mysql' in available

    def test_mysql_dialect_without_connecting(self) -> None:
        database = Database(MySQLConnector())
        assert database.dialect.name == 'mysql'
        assert not database.connector.is_connected


class TestDefaultDatabase:
    """进程级默认数据库测试"""

    def teardown_method(self) -> None:
        pyrecord.close_database()

    def test_configure_with_connector(self) -> None:
        database = pyrecord.configure(SQLiteConnector())
        assert pyrecord.get_database() is database
        create_schema(database)
        pyrecord.table('roles').insert({'name': 'x'})
        assert pyrecord.table('roles').count() == 1

    def test_lazy_init_from_environment(self, monkeypatch: pytest.MonkeyPatch) -> None:
        pyrecord.close_database()
        monkeypatch.setenv('PYRECORD_CONNECTION', 'sqlite')
        monkeypatch.setenv('PYRECORD_DATABASE', ':memory:')
        monkeypatch.setenv('PYRECORD_TRANSACTIONAL', 'false')
        database = pyrecord.get_database()
        assert database is pyrecord.get_database()
        assert database.transactional is False
        assert database.dialect.name == 'sqlite'

    def test_configure_from_file(self, temp_dir) -> None:
        config = temp_dir / 'db.properties'
        config.write_text('# comment\nPYRECORD_CONNECTION=sqlite\nPYRECORD_INSERT_GET_ID=false\n')
        database = pyrecord.configure(config_file=config)
        assert database.supports_insert_get_id is False

    def test_configure_closes_previous(self) -> None:
        first = pyrecord.configure(SQLiteConnector())
        first.statement('create table t (a integer)')
        pyrecord.configure(SQLiteConnector())
        assert not first.connector.is_connected
