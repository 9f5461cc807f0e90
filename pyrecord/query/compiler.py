"""
Pyrecord SQL 编译器

将 QueryDescription 编译为参数化 SQL（CompiledQuery），并对每条语句执行列名消歧处理。

方言（SQLDialect）负责所有与后端相关的语法：
- 标识符引用字符
- LIMIT / OFFSET 语法
- 锁子句
- 随机排序函数
- 日期函数
- UNION 组合方式
- TRUNCATE 语句与全默认值 INSERT 语句
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, TYPE_CHECKING

from ..common.exceptions import QueryError

if TYPE_CHECKING:
    from .builder import QueryDescription


def disambiguate_columns(sql: str, quote: str = '`') -> str:
    """
    列名消歧

    在引用标识符内部遇到 '.' 时，将其替换为「闭合引用 + . + 重新打开引用」，
    即 `table.column` -> `table`.`column`。引用外部的 '.' 不受影响。
    同时去除首尾空白并将连续空白折叠为单个空格。

    对已消歧的 SQL 再次执行结果不变。

    Args:
        sql: SQL 文本
        quote: 标识符引用字符

    Returns:
        处理后的 SQL
    """
    solved: List[str] = []
    inside = False
    for ch in sql.strip():
        if ch == quote:
            inside = not inside
            solved.append(ch)
        elif ch == '.' and inside:
            solved.append(quote + '.' + quote)
        else:
            solved.append(ch)
    return ' '.join(''.join(solved).split())


@dataclass
class CompiledQuery:
    """编译结果：SQL 文本 + 位置参数"""
    sql: str
    params: List[Any] = field(default_factory=list)

    def __iter__(self):  # type: ignore[no-untyped-def]
        # 支持 sql, params = compiled
        return iter((self.sql, self.params))


class SQLDialect:
    """SQL 方言基类（默认即 MySQL 语法）"""

    name: str = 'generic'
    quote_char: str = '`'
    random_function: str = 'RAND()'
    shared_lock_clause: str = 'lock in share mode'
    update_lock_clause: str = 'for update'
    # offset 不能脱离 limit 单独出现时使用的 limit 值
    unbounded_limit: Optional[str] = None

    def quote(self, identifier: str) -> str:
        """引用标识符"""
        return f"{self.quote_char}{identifier}{self.quote_char}"

    def paging(self, limit: Optional[int], offset: Optional[int]) -> str:
        """生成 LIMIT / OFFSET 子句"""
        parts: List[str] = []
        if limit is not None:
            parts.append(f"limit {limit}")
        elif offset is not None and self.unbounded_limit is not None:
            parts.append(f"limit {self.unbounded_limit}")
        if offset is not None:
            parts.append(f"offset {offset}")
        return ' '.join(parts)

    def date_function(self, part: str, column: str) -> str:
        """
        生成日期函数表达式

        Args:
            part: 'date' / 'year' / 'month' / 'day'
            column: 列名（未引用）
        """
        return f"{part}({self.quote(column)})"

    def combine_union(self, main_sql: str, other_sql: str, limit: Optional[int] = None) -> str:
        """组合 UNION 查询"""
        sql = f"( {main_sql} ) union ( {other_sql} )"
        if limit is not None:
            sql += f" limit {limit}"
        return sql

    def truncate(self, table: str) -> str:
        """清空表语句"""
        return f"truncate {self.quote(table)}"

    def default_insert(self, table: str) -> str:
        """全部列取默认值的插入语句"""
        return f"insert into {self.quote(table)} () values ()"

    def disambiguate(self, sql: str) -> str:
        """列名消歧"""
        return disambiguate_columns(sql, self.quote_char)

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


class MySQLDialect(SQLDialect):
    """MySQL / MariaDB 方言"""

    name = 'mysql'
    unbounded_limit = '18446744073709551615'


class SQLiteDialect(SQLDialect):
    """SQLite 方言"""

    name = 'sqlite'
    random_function = 'random()'
    shared_lock_clause = ''
    update_lock_clause = ''
    unbounded_limit = '-1'

    _STRFTIME_FORMATS: Dict[str, str] = {
        'year': '%Y',
        'month': '%m',
        'day': '%d',
    }

    def date_function(self, part: str, column: str) -> str:
        fmt = self._STRFTIME_FORMATS.get(part)
        if fmt is None:
            return super().date_function(part, column)
        return f"cast(strftime('{fmt}', {self.quote(column)}) as integer)"

    def combine_union(self, main_sql: str, other_sql: str, limit: Optional[int] = None) -> str:
        # SQLite 不允许带括号的 compound select 成员
        sql = f"select * from ( {main_sql} ) union select * from ( {other_sql} )"
        if limit is not None:
            sql += f" limit {limit}"
        return sql

    def truncate(self, table: str) -> str:
        return f"delete from {self.quote(table)}"

    def default_insert(self, table: str) -> str:
        return f"insert into {self.quote(table)} default values"


class QueryCompiler:
    """
    查询编译器

    每个 compile_* 方法都返回经过列名消歧的 CompiledQuery。
    """

    def __init__(self, dialect: SQLDialect):
        self.dialect = dialect

    def _table(self, description: 'QueryDescription') -> str:
        if not description.table:
            raise QueryError("No table specified for query")
        return self.dialect.quote(description.table)

    def _select_sql(
        self,
        description: 'QueryDescription',
        limit: Optional[int],
        selection: Optional[str] = None
    ) -> str:
        if selection is None:
            selection = description.selection
            if description.distinct:
                selection = 'distinct ' + selection
        parts = [
            'select', selection,
            'from', self._table(description),
            description.join_clause,
            description.where_clause,
            description.group_clause,
            description.having_clause,
            description.order_clause,
            self.dialect.paging(limit, description.offset),
            description.lock,
        ]
        return self.dialect.disambiguate(' '.join(parts))

    def compile_select(
        self,
        description: 'QueryDescription',
        *,
        first: bool = False,
        selection: Optional[str] = None
    ) -> CompiledQuery:
        """
        编译 SELECT 语句

        Args:
            description: 查询描述
            first: 是否只取第一行（limit 1）
            selection: 覆盖选择列表达式

        Returns:
            CompiledQuery，参数顺序为 where、having，然后是 union 查询的参数
        """
        limit = 1 if first else description.limit
        sql = self._select_sql(description, limit, selection)
        params = list(description.parameters)

        union = description.union
        if union is not None:
            other_sql = self._select_sql(union, union.limit)
            sql = self.dialect.disambiguate(
                self.dialect.combine_union(sql, other_sql, limit=1 if first else None)
            )
            params.extend(union.parameters)

        return CompiledQuery(sql, params)

    def compile_aggregate(self, description: 'QueryDescription', expression: str) -> CompiledQuery:
        """
        编译聚合查询，结果列名为 aggregate

        带 union 的查询先整体作为派生表，再在外层聚合，使 union 两侧列数保持一致。
        """
        if description.union is None:
            description.selection = f'{expression} as aggregate'
            description.distinct = False
            return self.compile_select(description)
        inner = self.compile_select(description)
        sql = (
            f"select {expression} as aggregate from ( {inner.sql} ) as "
            f"{self.dialect.quote('union_result')}"
        )
        return CompiledQuery(self.dialect.disambiguate(sql), inner.params)

    def compile_insert(self, table: Optional[str], values: Dict[str, Any]) -> CompiledQuery:
        """
        编译 INSERT 语句（参数列表为全新的列值列表）

        values 为空时生成全部列取默认值的插入语句。
        """
        if not table:
            raise QueryError("No table specified for insert")
        if not values:
            return CompiledQuery(self.dialect.disambiguate(self.dialect.default_insert(table)), [])
        columns, params = self._split(values)
        placeholders = ', '.join('?' for _ in params)
        sql = (
            f"insert into {self.dialect.quote(table)} "
            f"({', '.join(columns)}) values ({placeholders})"
        )
        return CompiledQuery(self.dialect.disambiguate(sql), params)

    def compile_update(self, description: 'QueryDescription', values: Dict[str, Any]) -> CompiledQuery:
        """编译 UPDATE 语句（赋值参数在前，谓词参数在后）"""
        if not values:
            raise QueryError("Cannot update with an empty set of values")
        columns, params = self._split(values)
        assignments = ', '.join(f"{column} = ?" for column in columns)
        sql = f"update {self._table(description)} set {assignments} {description.where_clause}"
        params.extend(description.where_params)
        return CompiledQuery(self.dialect.disambiguate(sql), params)

    def compile_delete(self, description: 'QueryDescription') -> CompiledQuery:
        """编译 DELETE 语句"""
        sql = f"delete from {self._table(description)} {description.where_clause}"
        return CompiledQuery(self.dialect.disambiguate(sql), list(description.where_params))

    def compile_increment(
        self,
        description: 'QueryDescription',
        column: str,
        amount: Any,
        sign: str = '+'
    ) -> CompiledQuery:
        """编译自增 / 自减语句"""
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise QueryError(f"Increment amount must be a number, got {type(amount).__name__}")
        quoted = self.dialect.quote(column)
        sql = (
            f"update {self._table(description)} set {quoted} = {quoted} {sign} {amount} "
            f"{description.where_clause}"
        )
        return CompiledQuery(self.dialect.disambiguate(sql), list(description.where_params))

    def compile_truncate(self, description: 'QueryDescription') -> CompiledQuery:
        """编译清空表语句"""
        self._table(description)
        return CompiledQuery(self.dialect.disambiguate(self.dialect.truncate(description.table or '')), [])

    def _split(self, values: Dict[str, Any]) -> Tuple[List[str], List[Any]]:
        columns = [self.dialect.quote(column) for column in values]
        return columns, list(values.values())
