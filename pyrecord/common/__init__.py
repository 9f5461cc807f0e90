"""
Pyrecord 通用模块

包含异常定义、配置选项与工具函数
"""

from .exceptions import (
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
from .options import (
    SqliteConnectorOptions,
    MySQLConnectorOptions,
    ConnectorOptions,
    get_default_connector_options,
    load_options_from_env,
    load_options_from_file,
)
from .utils import make_plural, check_operator

__all__ = [
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
    # Options
    'SqliteConnectorOptions',
    'MySQLConnectorOptions',
    'ConnectorOptions',
    'get_default_connector_options',
    'load_options_from_env',
    'load_options_from_file',
    # Utils
    'make_plural',
    'check_operator',
]
