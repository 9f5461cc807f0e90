"""
Pyrecord - 关系型数据库访问层

三层 API：
- 原始参数化语句：Database.select / insert / update / delete / statement
- 链式查询构建器：table('users').where('age', '>', 18).order_by('name').get()
- Active Record 模型与关联关系：User.find(1).has_many(Game, 'user_id')

快速开始：
    from pyrecord import Database, declarative_base, Column

    db = Database()  # 内存 SQLite
    Base = declarative_base(db)

    class User(Base):
        __tablename__ = 'users'
        id = Column(int, primary_key=True)
        name = Column(str)

    db.statement('create table users (id integer primary key, name text)')
    alice = User.create(name='Alice')
"""

from .core import (
    Column,
    Model,
    declarative_base,
    map_row_to_record,
    map_record_to_row,
    get_model,
    Relationship,
    RelationshipMixin,
    Database,
    configure,
    get_database,
    set_database,
    close_database,
    table,
    TypeRegistry,
    event,
    EventManager,
    QueryListener,
)
from .query import (
    QueryBuilder,
    ModelQuery,
    CompiledQuery,
    SQLDialect,
    MySQLDialect,
    SQLiteDialect,
    disambiguate_columns,
)
from .connectors import (
    DatabaseConnector,
    SQLiteConnector,
    MySQLConnector,
    get_connector,
    get_available_connectors,
)
from .common.options import (
    SqliteConnectorOptions,
    MySQLConnectorOptions,
    load_options_from_env,
    load_options_from_file,
)
from .common.exceptions import (
    PyrecordException,
    ConfigurationError,
    NullPrimaryKeyError,
    MappingError,
    RelationshipError,
    ExecutionError,
    DatabaseConnectionError,
    TransactionError,
    NotFoundError,
    RecordNotFoundError,
    UnsupportedOperationError,
    QueryError,
)

__version__ = '0.1.0'

__all__ = [
    # ORM
    'Column',
    'Model',
    'declarative_base',
    'map_row_to_record',
    'map_record_to_row',
    'get_model',
    'Relationship',
    'RelationshipMixin',
    # Database
    'Database',
    'configure',
    'get_database',
    'set_database',
    'close_database',
    'table',
    # Query
    'QueryBuilder',
    'ModelQuery',
    'CompiledQuery',
    'SQLDialect',
    'MySQLDialect',
    'SQLiteDialect',
    'disambiguate_columns',
    # Connectors
    'DatabaseConnector',
    'SQLiteConnector',
    'MySQLConnector',
    'get_connector',
    'get_available_connectors',
    # Options
    'SqliteConnectorOptions',
    'MySQLConnectorOptions',
    'load_options_from_env',
    'load_options_from_file',
    # Types & Events
    'TypeRegistry',
    'event',
    'EventManager',
    'QueryListener',
    # Exceptions
    'PyrecordException',
    'ConfigurationError',
    'NullPrimaryKeyError',
    'MappingError',
    'RelationshipError',
    'ExecutionError',
    'DatabaseConnectionError',
    'TransactionError',
    'NotFoundError',
    'RecordNotFoundError',
    'UnsupportedOperationError',
    'QueryError',
]
