"""
Pyrecord 配置选项 dataclass 定义

该模块定义了所有连接器的配置选项，以及从环境变量 / properties 文件加载配置的函数。

支持的配置键（环境变量或 properties 文件中的 KEY=VALUE）：
    PYRECORD_CONNECTION     连接类型：'sqlite'（默认）或 'mysql'
    PYRECORD_HOST           数据库主机
    PYRECORD_PORT           端口
    PYRECORD_DATABASE       数据库名（SQLite 为文件路径）
    PYRECORD_USERNAME       用户名
    PYRECORD_PASSWORD       密码
    PYRECORD_TRANSACTIONAL  是否为每条修改语句开启隐式事务（true/false）
    PYRECORD_INSERT_GET_ID  是否使用后端生成的主键（true/false）
"""
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from .exceptions import ConfigurationError


ENV_PREFIX = 'PYRECORD_'


@dataclass(slots=True)
class SqliteConnectorOptions:
    """SQLite 连接器配置选项"""
    database: str = ':memory:'  # 数据库文件路径
    check_same_thread: bool = True  # 检查同一线程
    timeout: Optional[float] = None  # 连接超时时间
    transactional: bool = True  # 修改语句是否包裹在隐式事务中
    insert_get_id: bool = True  # 是否通过 lastrowid 获取生成的主键


@dataclass(slots=True)
class MySQLConnectorOptions:
    """MySQL 连接器配置选项"""
    host: str = 'localhost'  # 主机
    port: int = 3306  # 端口
    database: str = ''  # 数据库名
    username: Optional[str] = None  # 用户名
    password: Optional[str] = None  # 密码
    charset: str = 'utf8mb4'  # 字符集
    connect_timeout: Optional[int] = None  # 连接超时时间（秒）
    transactional: bool = True  # 修改语句是否包裹在隐式事务中
    insert_get_id: bool = True  # 是否通过 lastrowid 获取生成的主键


# Connector 选项联合类型
ConnectorOptions = Union[SqliteConnectorOptions, MySQLConnectorOptions]


def get_default_connector_options(db_type: str) -> ConnectorOptions:
    """根据连接器类型返回默认选项"""
    defaults: Dict[str, ConnectorOptions] = {
        'sqlite': SqliteConnectorOptions(),
        'mysql': MySQLConnectorOptions(),
    }
    if db_type not in defaults:
        raise ConfigurationError(
            f"Unknown connection type: '{db_type}'. "
            f"Valid types: {', '.join(sorted(defaults))}"
        )
    return defaults[db_type]


def _parse_bool(value: str) -> bool:
    return value.strip().lower() in ('true', '1', 'yes', 'on')


def options_from_mapping(values: Mapping[str, str]) -> ConnectorOptions:
    """
    从配置键值映射构建连接器选项

    Args:
        values: 键为 PYRECORD_* 的映射（其它键被忽略）

    Returns:
        与 PYRECORD_CONNECTION 对应的选项对象

    Raises:
        ConfigurationError: 连接类型未知或端口不是整数
    """
    def get(key: str) -> Optional[str]:
        value = values.get(ENV_PREFIX + key)
        if value is None or value.strip() == '':
            return None
        return value.strip()

    db_type = (get('CONNECTION') or 'sqlite').lower()
    options = get_default_connector_options(db_type)

    database = get('DATABASE')
    if database is not None:
        options.database = database

    transactional = get('TRANSACTIONAL')
    if transactional is not None:
        options.transactional = _parse_bool(transactional)

    insert_get_id = get('INSERT_GET_ID')
    if insert_get_id is not None:
        options.insert_get_id = _parse_bool(insert_get_id)

    if isinstance(options, MySQLConnectorOptions):
        host = get('HOST')
        if host is not None:
            options.host = host
        port = get('PORT')
        if port is not None:
            try:
                options.port = int(port)
            except ValueError:
                raise ConfigurationError(f"Invalid port: '{port}'") from None
        options.username = get('USERNAME')
        options.password = get('PASSWORD')

    return options


def load_options_from_env(environ: Optional[Mapping[str, str]] = None) -> ConnectorOptions:
    """
    从环境变量加载连接器选项

    Args:
        environ: 环境变量映射，None 表示 os.environ

    Returns:
        连接器选项
    """
    return options_from_mapping(os.environ if environ is None else environ)


def load_options_from_file(path: Union[str, Path]) -> ConnectorOptions:
    """
    从 properties 文件加载连接器选项

    文件格式为每行一个 KEY=VALUE，空行和以 '#' 或 '!' 开头的行被忽略。

    Args:
        path: 配置文件路径

    Returns:
        连接器选项

    Raises:
        ConfigurationError: 文件无法读取
    """
    file_path = Path(path)
    try:
        content = file_path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"Can't load config file: {file_path}") from e

    values: Dict[str, str] = {}
    for line in content.splitlines():
        line = line.strip()
        if not line or line.startswith(('#', '!')):
            continue
        key, sep, value = line.partition('=')
        if not sep:
            continue
        values[key.strip()] = value.strip()

    return options_from_mapping(values)
