"""
Pyrecord 异常定义

异常层次：
- PyrecordException
  - ConfigurationError          主键缺失 / 映射配置错误
    - NullPrimaryKeyError       主键值为 None
  - MappingError                行 <-> 记录 转换失败
  - RelationshipError           外键字段不存在 / 自关联
  - ExecutionError              SQL 执行失败
    - DatabaseConnectionError   数据库连接失败
    - TransactionError          事务状态错误
  - NotFoundError               查询无结果
    - RecordNotFoundError       按主键查询无结果
  - UnsupportedOperationError   后端能力不支持
  - QueryError                  查询构建器误用
"""

from typing import Any, Dict, Optional


class PyrecordException(Exception):
    """Pyrecord 基础异常类"""

    def __init__(
        self,
        message: str = '',
        *,
        table_name: Optional[str] = None,
        column_name: Optional[str] = None,
        pk: Any = None,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.table_name = table_name
        self.column_name = column_name
        self.pk = pk
        self.details: Dict[str, Any] = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """
        序列化为字典

        Returns:
            包含异常类型、消息及非空上下文属性的字典
        """
        result: Dict[str, Any] = {
            'error': type(self).__name__,
            'message': self.message,
        }
        if self.table_name is not None:
            result['table_name'] = self.table_name
        if self.column_name is not None:
            result['column_name'] = self.column_name
        if self.pk is not None:
            result['pk'] = self.pk
        if self.details:
            result['details'] = self.details
        return result


class ConfigurationError(PyrecordException):
    """配置异常（主键无法解析、映射缺失等）"""


class NullPrimaryKeyError(ConfigurationError):
    """主键值为空异常"""
    def __init__(self, table_name: str, primary_key: str):
        super().__init__(
            f"The value of primary key '{primary_key}' is None",
            table_name=table_name,
            column_name=primary_key
        )


class MappingError(PyrecordException):
    """行与记录之间的转换异常"""

    def __init__(
        self,
        message: str,
        *,
        value: Any = None,
        target_type: Optional[str] = None,
        **kwargs: Any
    ):
        details = kwargs.pop('details', None) or {}
        if value is not None:
            details['value'] = repr(value)
            details['value_type'] = type(value).__name__
        if target_type is not None:
            details['target_type'] = target_type
        self.value = value
        self.target_type = target_type
        super().__init__(message, details=details, **kwargs)


class RelationshipError(PyrecordException):
    """关联关系异常"""


class ExecutionError(PyrecordException):
    """SQL 执行异常"""

    def __init__(
        self,
        message: str,
        *,
        sql: Optional[str] = None,
        cause: Optional[BaseException] = None,
        **kwargs: Any
    ):
        self.sql = sql
        self.cause = cause
        details = kwargs.pop('details', None) or {}
        if sql is not None:
            details['sql'] = sql
        super().__init__(message, details=details, **kwargs)


class DatabaseConnectionError(ExecutionError):
    """数据库连接异常"""


class TransactionError(ExecutionError):
    """事务异常"""


class NotFoundError(PyrecordException):
    """查询无匹配记录异常"""


class RecordNotFoundError(NotFoundError):
    """记录不存在异常"""
    def __init__(self, table_name: str, pk: Any):
        super().__init__(
            f"There is no row in table '{table_name}' with primary key '{pk}'",
            table_name=table_name,
            pk=pk
        )


class UnsupportedOperationError(PyrecordException):
    """后端不支持的操作"""


class QueryError(PyrecordException):
    """查询构建异常"""
