"""
Pyrecord 连接器模块

提供连接器注册、发现和实例化功能
"""

from typing import Dict, List, Optional, Type

from ..common.exceptions import ConfigurationError
from ..common.options import (
    ConnectorOptions, MySQLConnectorOptions, SqliteConnectorOptions,
    get_default_connector_options,
)
from .base import DatabaseConnector
from .mysql import MySQLConnector
from .sqlite import SQLiteConnector


# 连接类型 -> 连接器类
CONNECTORS: Dict[str, Type[DatabaseConnector]] = {
    SQLiteConnector.DB_TYPE: SQLiteConnector,
    MySQLConnector.DB_TYPE: MySQLConnector,
}


def get_connector(db_type: str, options: Optional[ConnectorOptions] = None) -> DatabaseConnector:
    """
    按连接类型创建连接器

    Args:
        db_type: 'sqlite' 或 'mysql'
        options: 连接器选项，None 使用默认选项

    Returns:
        未连接的连接器实例（首次执行语句时才建立连接）

    Raises:
        ConfigurationError: 未知的连接类型
    """
    connector_class = CONNECTORS.get(db_type)
    if connector_class is None:
        raise ConfigurationError(
            f"Unknown connection type: '{db_type}'. "
            f"Valid types: {', '.join(sorted(CONNECTORS))}"
        )
    if options is None:
        options = get_default_connector_options(db_type)
    return connector_class(options)  # type: ignore[arg-type]


def connector_from_options(options: ConnectorOptions) -> DatabaseConnector:
    """根据选项对象的类型创建连接器"""
    if isinstance(options, SqliteConnectorOptions):
        return SQLiteConnector(options)
    if isinstance(options, MySQLConnectorOptions):
        return MySQLConnector(options)
    raise ConfigurationError(f"Unsupported connector options: {type(options).__name__}")


def get_available_connectors() -> Dict[str, bool]:
    """返回各连接类型的依赖是否可用"""
    return {name: cls.is_available() for name, cls in CONNECTORS.items()}


__all__: List[str] = [
    'DatabaseConnector',
    'SQLiteConnector',
    'MySQLConnector',
    'CONNECTORS',
    'get_connector',
    'connector_from_options',
    'get_available_connectors',
]
