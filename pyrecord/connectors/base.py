"""
Pyrecord 数据库连接器基类

连接器负责物理连接与驱动调用：
- 首次使用时建立连接（加锁，保证只初始化一次）
- 执行语句并返回结果集 / 受影响行数 / 生成的主键
- 事务控制（begin / commit / rollback）

驱动抛出的异常统一包装为 ExecutionError。
"""

import importlib.util
import logging
import threading
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Sequence, Type

from ..common.options import ConnectorOptions
from ..query.compiler import SQLDialect


logger = logging.getLogger(__name__)


class DatabaseConnector(ABC):
    """
    数据库连接器抽象基类

    子类需要实现：
    - _connect / _close：建立与关闭物理连接
    - execute_query / execute_update / execute_insert_get_id / execute_statement
    - begin / commit / rollback
    """

    DB_TYPE: str = ''  # 连接类型标识
    REQUIRED_DEPENDENCIES: List[str] = []  # 依赖的第三方模块
    dialect_class: Type[SQLDialect] = SQLDialect

    def __init__(self, options: ConnectorOptions):
        self.options = options
        self.dialect = self.dialect_class()
        self._connection: Any = None
        self._lock = threading.Lock()

    @classmethod
    def is_available(cls) -> bool:
        """检查依赖是否已安装"""
        for dep in cls.REQUIRED_DEPENDENCIES:
            try:
                if importlib.util.find_spec(dep) is None:
                    return False
            except ModuleNotFoundError:
                return False
        return True

    @property
    def supports_insert_get_id(self) -> bool:
        """是否支持获取后端生成的主键"""
        return bool(self.options.insert_get_id)

    @property
    def transactional(self) -> bool:
        """修改语句是否默认包裹在隐式事务中"""
        return bool(self.options.transactional)

    @property
    def is_connected(self) -> bool:
        return self._connection is not None

    @property
    def connection(self) -> Any:
        """物理连接（首次访问时建立）"""
        if self._connection is None:
            with self._lock:
                if self._connection is None:
                    self._connection = self._connect()
                    logger.info("Connected to %s database %s", self.DB_TYPE, self.describe())
        return self._connection

    def connect(self) -> None:
        """显式建立连接"""
        _ = self.connection

    def close(self) -> None:
        """关闭连接（未连接时无操作）"""
        with self._lock:
            if self._connection is None:
                return
            connection, self._connection = self._connection, None
        self._close(connection)
        logger.info("Closed %s database %s", self.DB_TYPE, self.describe())

    def describe(self) -> str:
        """连接描述（用于日志）"""
        return repr(getattr(self.options, 'database', ''))

    @abstractmethod
    def _connect(self) -> Any:
        """建立物理连接"""
        pass

    @abstractmethod
    def _close(self, connection: Any) -> None:
        """关闭物理连接"""
        pass

    @abstractmethod
    def execute_query(self, sql: str, params: Optional[Sequence[Any]] = None) -> List[Dict[str, Any]]:
        """
        执行查询语句

        Returns:
            行列表，每行为 列名 -> 值 的字典
        """
        pass

    @abstractmethod
    def execute_update(self, sql: str, params: Optional[Sequence[Any]] = None) -> int:
        """执行修改语句，返回受影响行数"""
        pass

    @abstractmethod
    def execute_insert_get_id(self, sql: str, params: Optional[Sequence[Any]] = None) -> Any:
        """执行插入语句，返回后端生成的主键"""
        pass

    @abstractmethod
    def execute_statement(self, sql: str) -> None:
        """执行不返回结果的语句（DDL 等）"""
        pass

    @abstractmethod
    def begin(self) -> None:
        pass

    @abstractmethod
    def commit(self) -> None:
        pass

    @abstractmethod
    def rollback(self) -> None:
        pass

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.describe()})"
