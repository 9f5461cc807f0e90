"""
异常处理测试

测试方法：
- 等价类划分：各异常类型的触发条件
- 错误推断：异常继承关系和属性

覆盖范围：
- 异常继承层次结构
- 异常消息和属性
- to_dict 序列化
"""

import pytest

from pyrecord import (
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


class TestExceptionHierarchy:
    """异常继承关系测试"""

    def test_all_exceptions_inherit_from_base(self) -> None:
        for exc_class in (
            ConfigurationError, NullPrimaryKeyError, MappingError, RelationshipError,
            ExecutionError, DatabaseConnectionError, TransactionError, NotFoundError,
            RecordNotFoundError, UnsupportedOperationError, QueryError,
        ):
            assert issubclass(exc_class, PyrecordException)

    def test_specialisations(self) -> None:
        assert issubclass(NullPrimaryKeyError, ConfigurationError)
        assert issubclass(DatabaseConnectionError, ExecutionError)
        assert issubclass(TransactionError, ExecutionError)
        assert issubclass(RecordNotFoundError, NotFoundError)


class TestExceptionAttributes:
    """异常属性测试"""

    def test_base_to_dict_skips_empty_fields(self) -> None:
        assert PyrecordException('boom').to_dict() == {'error': 'PyrecordException', 'message': 'boom'}

    def test_record_not_found(self) -> None:
        exc = RecordNotFoundError('users', 7)
        assert str(exc) == "There is no row in table 'users' with primary key '7'"
        assert exc.to_dict() == {
            'error': 'RecordNotFoundError',
            'message': "There is no row in table 'users' with primary key '7'",
            'table_name': 'users',
            'pk': 7,
        }

    def test_null_primary_key(self) -> None:
        exc = NullPrimaryKeyError('users', 'ID')
        assert exc.table_name == 'users'
        assert exc.column_name == 'ID'

    def test_mapping_error_details(self) -> None:
        exc = MappingError('bad value', value='abc', target_type='int', column_name='age')
        assert exc.details == {'value': "'abc'", 'value_type': 'str', 'target_type': 'int'}
        assert exc.column_name == 'age'

    def test_execution_error_keeps_sql_and_cause(self) -> None:
        cause = RuntimeError('driver failure')
        exc = ExecutionError('failed', sql='select 1', cause=cause)
        assert exc.sql == 'select 1'
        assert exc.cause is cause
        assert exc.to_dict()['details'] == {'sql': 'select 1'}

    def test_catch_by_base(self) -> None:
        with pytest.raises(PyrecordException):
            raise QueryError('misuse')
