"""
Pyrecord 查询构建器

QueryBuilder 以链式调用累积一个 QueryDescription，并在终结操作时编译、执行。

    from pyrecord import table

    rows = (table('users')
            .where('age', '>', 18)
            .order_by('name')
            .limit(10)
            .get())

终结操作（get / first / count / insert / update / delete 等）会消费构建器，
之后对同一构建器的任何调用都会抛出 QueryError。
"""

from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Dict, Iterable, List, Optional, Sequence, TYPE_CHECKING

from ..common.exceptions import QueryError, UnsupportedOperationError
from ..common.utils import check_operator
from .compiler import CompiledQuery, QueryCompiler

if TYPE_CHECKING:
    from ..core.database import Database


class _Unset:
    """未传参哨兵"""

    def __repr__(self) -> str:
        return '<unset>'


UNSET: Any = _Unset()


def _as_list(values: Any) -> List[Any]:
    """IN 列表参数；单个字符串 / 字节串视为一个值"""
    if values is None:
        return []
    if isinstance(values, (str, bytes, bytearray)):
        return [values]
    return list(values)


@dataclass
class QueryDescription:
    """查询描述：尚未编译的查询状态"""
    table: Optional[str] = None
    selection: str = '*'
    distinct: bool = False
    join_clause: str = ''
    where_clause: str = ''
    group_clause: str = ''
    having_clause: str = ''
    order_clause: str = ''
    limit: Optional[int] = None
    offset: Optional[int] = None
    lock: str = ''
    union: Optional['QueryDescription'] = None
    where_params: List[Any] = field(default_factory=list)
    having_params: List[Any] = field(default_factory=list)

    @property
    def parameters(self) -> List[Any]:
        """绑定参数（where 在前，having 在后，与 SQL 中占位符顺序一致）"""
        return self.where_params + self.having_params


class QueryBuilder:
    """
    原始查询构建器

    所有修改方法返回自身以支持链式调用。

    Args:
        table: 表名
        database: 执行语句的 Database，None 表示进程默认数据库
    """

    def __init__(self, table: Optional[str] = None, database: Optional['Database'] = None):
        if database is None:
            from ..core.database import get_database
            database = get_database()
        self._database = database
        self._compiler = QueryCompiler(database.dialect)
        self._description: Optional[QueryDescription] = QueryDescription(table=table)

    @property
    def database(self) -> 'Database':
        return self._database

    @property
    def dialect(self) -> Any:
        return self._compiler.dialect

    @property
    def consumed(self) -> bool:
        """是否已被终结操作消费"""
        return self._description is None

    def _state(self) -> QueryDescription:
        if self._description is None:
            raise QueryError("This query builder has already been consumed; start a new query")
        return self._description

    def _take(self) -> QueryDescription:
        description = self._state()
        self._description = None
        return description

    def _quote(self, column: str) -> str:
        return self.dialect.quote(column)

    # ========== 选择列 ==========

    def select(self, *columns: str) -> 'QueryBuilder':
        """替换选择列（保留 distinct 状态）"""
        d = self._state()
        d.selection = ', '.join(self._quote(c) for c in columns) if columns else '*'
        return self

    def add_select(self, column: str) -> 'QueryBuilder':
        """追加选择列"""
        d = self._state()
        if d.selection.strip() == '*':
            d.selection = self._quote(column)
        else:
            d.selection += ', ' + self._quote(column)
        return self

    def distinct(self) -> 'QueryBuilder':
        self._state().distinct = True
        return self

    # ========== 谓词 ==========

    def _add_where(self, fragment: str, boolean: str = 'and', params: Iterable[Any] = ()) -> 'QueryBuilder':
        d = self._state()
        if d.where_clause:
            d.where_clause += f' {boolean} {fragment}'
        elif boolean == 'or':
            # 未先调用 where 时不补 where 关键字
            d.where_clause = f' or {fragment}'
        else:
            d.where_clause = f'where {fragment}'
        d.where_params.extend(params)
        return self

    def where(self, column: str, operator: Any, value: Any = UNSET) -> 'QueryBuilder':
        """
        添加 and 连接的谓词

        where('age', 18) 等价于 where('age', '=', 18)
        """
        if value is UNSET:
            operator, value = '=', operator
        operator = check_operator(operator)
        return self._add_where(f"{self._quote(column)} {operator} ?", 'and', [value])

    def or_where(self, column: str, operator: Any, value: Any = UNSET) -> 'QueryBuilder':
        """添加 or 连接的谓词"""
        if value is UNSET:
            operator, value = '=', operator
        operator = check_operator(operator)
        return self._add_where(f"{self._quote(column)} {operator} ?", 'or', [value])

    def where_id(self, value: Any, primary_key: str = 'id') -> 'QueryBuilder':
        return self.where(primary_key, '=', value)

    def where_like(self, column: str, pattern: str) -> 'QueryBuilder':
        return self.where(column, 'like', pattern)

    def where_between(self, column: str, low: Any, high: Any) -> 'QueryBuilder':
        """范围谓词，边界值以浮点字面量写入 SQL"""
        return self._add_where(
            f"{self._quote(column)} between {float(low)} and {float(high)}"
        )

    def where_not_between(self, column: str, low: Any, high: Any) -> 'QueryBuilder':
        return self._add_where(
            f"{self._quote(column)} not between {float(low)} and {float(high)}"
        )

    def where_in(self, column: str, values: Optional[Sequence[Any]]) -> 'QueryBuilder':
        """IN 谓词；空集合退化为恒假谓词 0 = 1"""
        values = _as_list(values)
        if not values:
            return self._add_where('0 = 1')
        placeholders = ', '.join('?' for _ in values)
        return self._add_where(f"{self._quote(column)} in ({placeholders})", 'and', values)

    def where_not_in(self, column: str, values: Optional[Sequence[Any]]) -> 'QueryBuilder':
        """NOT IN 谓词；空集合退化为恒真谓词 1 = 1"""
        values = _as_list(values)
        if not values:
            return self._add_where('1 = 1')
        placeholders = ', '.join('?' for _ in values)
        return self._add_where(f"{self._quote(column)} not in ({placeholders})", 'and', values)

    def where_null(self, column: str) -> 'QueryBuilder':
        return self._add_where(f"{self._quote(column)} is null")

    def where_not_null(self, column: str) -> 'QueryBuilder':
        return self._add_where(f"{self._quote(column)} is not null")

    def where_date(self, column: str, operator: Any, value: Any = UNSET) -> 'QueryBuilder':
        """按日期比较，值以 ISO 字符串绑定"""
        if value is UNSET:
            operator, value = '=', operator
        operator = check_operator(operator)
        if isinstance(value, datetime):
            value = value.date()
        if isinstance(value, date):
            value = value.isoformat()
        expr = self.dialect.date_function('date', column)
        return self._add_where(f"{expr} {operator} ?", 'and', [str(value)])

    def _where_date_part(self, part: str, column: str, operator: Any, value: Any) -> 'QueryBuilder':
        if value is UNSET:
            operator, value = '=', operator
        operator = check_operator(operator)
        expr = self.dialect.date_function(part, column)
        return self._add_where(f"{expr} {operator} {int(value)}")

    def where_year(self, column: str, operator: Any, value: Any = UNSET) -> 'QueryBuilder':
        return self._where_date_part('year', column, operator, value)

    def where_month(self, column: str, operator: Any, value: Any = UNSET) -> 'QueryBuilder':
        return self._where_date_part('month', column, operator, value)

    def where_day(self, column: str, operator: Any, value: Any = UNSET) -> 'QueryBuilder':
        return self._where_date_part('day', column, operator, value)

    def where_column(self, first: str, operator: Any, second: Any = UNSET) -> 'QueryBuilder':
        """比较两列"""
        if second is UNSET:
            operator, second = '=', operator
        operator = check_operator(operator)
        return self._add_where(f"{self._quote(first)} {operator} {self._quote(second)}")

    def where_has(self, column: str, number: Optional[Any] = None) -> 'QueryBuilder':
        """计数列至少为 1，或等于给定数量"""
        if number is None:
            return self.where(column, '>=', 1)
        return self.where(column, '=', number)

    def where_doesnt_have(self, column: str) -> 'QueryBuilder':
        return self.where(column, '=', 0)

    # ========== 分组 / 排序 ==========

    def group_by(self, *columns: str) -> 'QueryBuilder':
        d = self._state()
        d.group_clause = 'group by ' + ', '.join(self._quote(c) for c in columns) if columns else ''
        return self

    def order_by(self, column: str, direction: str = 'asc') -> 'QueryBuilder':
        """
        排序

        包含 '()' 的列（如 RAND()）按原样写入。
        """
        direction = direction.strip().lower()
        if direction not in ('asc', 'desc'):
            raise QueryError(f"Invalid order direction: '{direction}'")
        d = self._state()
        term = column if '()' in column else f"{self._quote(column)} {direction}"
        if d.order_clause:
            d.order_clause += f', {term}'
        else:
            d.order_clause = f'order by {term}'
        return self

    def order_by_desc(self, column: str) -> 'QueryBuilder':
        return self.order_by(column, 'desc')

    def latest(self, column: str = 'created_at') -> 'QueryBuilder':
        return self.order_by(column, 'desc')

    def oldest(self, column: str = 'created_at') -> 'QueryBuilder':
        return self.order_by(column, 'asc')

    def in_random_order(self) -> 'QueryBuilder':
        return self.order_by(self.dialect.random_function)

    def having(self, column: str, operator: Any, value: Any = UNSET) -> 'QueryBuilder':
        """having 谓词（绑定参数）"""
        if value is UNSET:
            operator, value = '=', operator
        operator = check_operator(operator)
        return self._add_having(f"{self._quote(column)} {operator} ?", [value])

    def having_raw(self, expression: str) -> 'QueryBuilder':
        """having 原始表达式（不绑定参数）"""
        return self._add_having(expression, [])

    def _add_having(self, fragment: str, params: List[Any]) -> 'QueryBuilder':
        d = self._state()
        if d.having_clause:
            d.having_clause += f' and {fragment}'
        else:
            d.having_clause = f'having {fragment}'
        d.having_params.extend(params)
        return self

    # ========== 分页 / 锁 ==========

    def limit(self, value: int) -> 'QueryBuilder':
        self._state().limit = int(value)
        return self

    def take(self, value: int) -> 'QueryBuilder':
        return self.limit(value)

    def offset(self, value: int) -> 'QueryBuilder':
        self._state().offset = int(value)
        return self

    def skip(self, value: int) -> 'QueryBuilder':
        return self.offset(value)

    def shared_lock(self) -> 'QueryBuilder':
        self._state().lock = self.dialect.shared_lock_clause
        return self

    def lock_for_update(self) -> 'QueryBuilder':
        self._state().lock = self.dialect.update_lock_clause
        return self

    # ========== 连接 / 联合 ==========

    def _set_join(self, kind: str, table: str, first: str, operator: str, second: str) -> 'QueryBuilder':
        operator = check_operator(operator)
        self._state().join_clause = (
            f"{kind} {self._quote(table)} on {self._quote(first)} {operator} {self._quote(second)}"
        )
        return self

    def join(self, table: str, first: str, operator: str, second: str) -> 'QueryBuilder':
        """inner join（只保留一个 join 子句，再次调用会替换）"""
        return self._set_join('inner join', table, first, operator, second)

    def left_join(self, table: str, first: str, operator: str, second: str) -> 'QueryBuilder':
        return self._set_join('left join', table, first, operator, second)

    def cross_join(self, table: str) -> 'QueryBuilder':
        self._state().join_clause = f"cross join {self._quote(table)}"
        return self

    def union(self, other: 'QueryBuilder') -> 'QueryBuilder':
        """合并另一个构建器的查询（other 被消费）"""
        if other is self:
            raise QueryError("Cannot union a query with itself")
        d = self._state()
        d.union = other._take()
        return self

    # ========== 编译 ==========

    def to_sql(self) -> CompiledQuery:
        """编译 select 语句（不消费构建器）"""
        return self._compiler.compile_select(self._state())

    def __repr__(self) -> str:
        if self._description is None:
            return f"<{type(self).__name__} consumed>"
        return f"<{type(self).__name__} table={self._description.table!r}>"

    # ========== 终结操作 ==========

    def _select(self, compiled: CompiledQuery) -> List[Dict[str, Any]]:
        return self._database.select(compiled.sql, *compiled.params)

    def get(self) -> List[Dict[str, Any]]:
        """执行查询，返回全部行"""
        return self._select(self._compiler.compile_select(self._take()))

    def first(self) -> Optional[Dict[str, Any]]:
        """执行查询，返回第一行或 None"""
        rows = self._select(self._compiler.compile_select(self._take(), first=True))
        return rows[0] if rows else None

    def pluck(self, column: str) -> List[Dict[str, Any]]:
        """只选择一列"""
        d = self._take()
        d.selection = self._quote(column)
        return self._select(self._compiler.compile_select(d))

    def pluck_list(self, column: str) -> List[Any]:
        """只选择一列，返回值列表"""
        return [next(iter(row.values())) for row in self.pluck(column)]

    def value(self, column: str) -> Any:
        """第一行指定列的值，无结果时返回 None"""
        d = self._take()
        d.selection = self._quote(column)
        rows = self._select(self._compiler.compile_select(d, first=True))
        if not rows:
            return None
        return next(iter(rows[0].values()))

    def _aggregate(self, expression: str) -> Any:
        rows = self._select(self._compiler.compile_aggregate(self._take(), expression))
        if not rows:
            return None
        return rows[0].get('aggregate')

    def count(self) -> int:
        result = self._aggregate('count(*)')
        return int(result) if result is not None else 0

    def max(self, column: str) -> Optional[float]:
        result = self._aggregate(f'max({self._quote(column)})')
        return float(result) if result is not None else None

    def min(self, column: str) -> Optional[float]:
        result = self._aggregate(f'min({self._quote(column)})')
        return float(result) if result is not None else None

    def avg(self, column: str) -> Optional[float]:
        result = self._aggregate(f'avg({self._quote(column)})')
        return float(result) if result is not None else None

    def sum(self, column: str) -> float:
        result = self._aggregate(f'sum({self._quote(column)})')
        return float(result) if result is not None else 0.0

    def insert(self, values: Dict[str, Any]) -> int:
        """插入一行，返回受影响行数"""
        d = self._take()
        compiled = self._compiler.compile_insert(d.table, values)
        return self._database.insert(compiled.sql, *compiled.params)

    def insert_get_id(self, values: Dict[str, Any]) -> Any:
        """
        插入一行并返回后端生成的主键

        Raises:
            UnsupportedOperationError: 后端不支持获取生成主键
        """
        if not self._database.supports_insert_get_id:
            raise UnsupportedOperationError(
                "The current connection does not support retrieving generated keys"
            )
        d = self._take()
        compiled = self._compiler.compile_insert(d.table, values)
        return self._database.insert_get_id(compiled.sql, compiled.params)

    def update(self, values: Dict[str, Any]) -> int:
        """更新匹配的行，返回受影响行数"""
        compiled = self._compiler.compile_update(self._take(), values)
        return self._database.update(compiled.sql, *compiled.params)

    def delete(self) -> int:
        """删除匹配的行，返回受影响行数"""
        compiled = self._compiler.compile_delete(self._take())
        return self._database.delete(compiled.sql, *compiled.params)

    def increment(self, column: str, amount: Any = 1) -> int:
        compiled = self._compiler.compile_increment(self._take(), column, amount, '+')
        return self._database.update(compiled.sql, *compiled.params)

    def decrement(self, column: str, amount: Any = 1) -> int:
        compiled = self._compiler.compile_increment(self._take(), column, amount, '-')
        return self._database.update(compiled.sql, *compiled.params)

    def truncate(self) -> None:
        """清空表"""
        compiled = self._compiler.compile_truncate(self._take())
        self._database.statement(compiled.sql)
