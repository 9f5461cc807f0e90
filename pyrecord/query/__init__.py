"""
Pyrecord 查询子系统

包含查询构建器、模型查询和 SQL 编译器
"""

from .builder import QueryBuilder, QueryDescription
from .model_query import ModelQuery
from .compiler import (
    QueryCompiler,
    CompiledQuery,
    SQLDialect,
    MySQLDialect,
    SQLiteDialect,
    disambiguate_columns,
)

__all__ = [
    # Builder
    'QueryBuilder',
    'QueryDescription',
    'ModelQuery',
    # Compiler
    'QueryCompiler',
    'CompiledQuery',
    'SQLDialect',
    'MySQLDialect',
    'SQLiteDialect',
    'disambiguate_columns',
]
