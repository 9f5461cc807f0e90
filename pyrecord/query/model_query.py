"""
Pyrecord 模型查询

ModelQuery 组合（而非继承）一个 QueryBuilder，终结操作返回模型实例。
原始行终结操作、原始 insert、join、union 与列投影不属于该类型。

    users = User.where('age', '>', 18).order_by('name').limit(10).get()
    user = User.query().where('name', 'Alice').first_or_fail()
"""

from typing import Any, Dict, Generic, Iterable, List, Optional, Type, TypeVar, TYPE_CHECKING

from ..common.exceptions import NotFoundError
from .builder import QueryBuilder, UNSET
from .compiler import CompiledQuery

if TYPE_CHECKING:
    from ..core.orm import Model


T = TypeVar('T', bound='Model')


class ModelQuery(Generic[T]):
    """
    绑定到模型的查询

    Args:
        model: 模型类
        builder: 以模型表为目标的原始构建器
    """

    def __init__(self, model: Type[T], builder: QueryBuilder):
        self.model = model
        self._builder = builder

    # ========== 谓词 ==========

    def where(self, column: str, operator: Any, value: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.where(column, operator, value)
        return self

    def or_where(self, column: str, operator: Any, value: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.or_where(column, operator, value)
        return self

    def where_id(self, value: Any) -> 'ModelQuery[T]':
        self._builder.where_id(value, self.model.get_primary_key())
        return self

    def where_like(self, column: str, pattern: str) -> 'ModelQuery[T]':
        self._builder.where_like(column, pattern)
        return self

    def where_between(self, column: str, low: Any, high: Any) -> 'ModelQuery[T]':
        self._builder.where_between(column, low, high)
        return self

    def where_not_between(self, column: str, low: Any, high: Any) -> 'ModelQuery[T]':
        self._builder.where_not_between(column, low, high)
        return self

    def where_in(self, column: str, values: Optional[Iterable[Any]]) -> 'ModelQuery[T]':
        self._builder.where_in(column, list(values or []))
        return self

    def where_not_in(self, column: str, values: Optional[Iterable[Any]]) -> 'ModelQuery[T]':
        self._builder.where_not_in(column, list(values or []))
        return self

    def where_null(self, column: str) -> 'ModelQuery[T]':
        self._builder.where_null(column)
        return self

    def where_not_null(self, column: str) -> 'ModelQuery[T]':
        self._builder.where_not_null(column)
        return self

    def where_date(self, column: str, operator: Any, value: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.where_date(column, operator, value)
        return self

    def where_year(self, column: str, operator: Any, value: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.where_year(column, operator, value)
        return self

    def where_month(self, column: str, operator: Any, value: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.where_month(column, operator, value)
        return self

    def where_day(self, column: str, operator: Any, value: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.where_day(column, operator, value)
        return self

    def where_column(self, first: str, operator: Any, second: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.where_column(first, operator, second)
        return self

    def where_has(self, column: str, number: Optional[Any] = None) -> 'ModelQuery[T]':
        self._builder.where_has(column, number)
        return self

    def where_doesnt_have(self, column: str) -> 'ModelQuery[T]':
        self._builder.where_doesnt_have(column)
        return self

    # ========== 分组 / 排序 / 分页 / 锁 ==========

    def group_by(self, *columns: str) -> 'ModelQuery[T]':
        self._builder.group_by(*columns)
        return self

    def having(self, column: str, operator: Any, value: Any = UNSET) -> 'ModelQuery[T]':
        self._builder.having(column, operator, value)
        return self

    def having_raw(self, expression: str) -> 'ModelQuery[T]':
        self._builder.having_raw(expression)
        return self

    def order_by(self, column: str, direction: str = 'asc') -> 'ModelQuery[T]':
        self._builder.order_by(column, direction)
        return self

    def order_by_desc(self, column: str) -> 'ModelQuery[T]':
        self._builder.order_by_desc(column)
        return self

    def latest(self, column: str = 'created_at') -> 'ModelQuery[T]':
        self._builder.latest(column)
        return self

    def oldest(self, column: str = 'created_at') -> 'ModelQuery[T]':
        self._builder.oldest(column)
        return self

    def in_random_order(self) -> 'ModelQuery[T]':
        self._builder.in_random_order()
        return self

    def distinct(self) -> 'ModelQuery[T]':
        self._builder.distinct()
        return self

    def limit(self, value: int) -> 'ModelQuery[T]':
        self._builder.limit(value)
        return self

    def take(self, value: int) -> 'ModelQuery[T]':
        return self.limit(value)

    def offset(self, value: int) -> 'ModelQuery[T]':
        self._builder.offset(value)
        return self

    def skip(self, value: int) -> 'ModelQuery[T]':
        return self.offset(value)

    def shared_lock(self) -> 'ModelQuery[T]':
        self._builder.shared_lock()
        return self

    def lock_for_update(self) -> 'ModelQuery[T]':
        self._builder.lock_for_update()
        return self

    def to_sql(self) -> CompiledQuery:
        return self._builder.to_sql()

    def __repr__(self) -> str:
        return f"<ModelQuery {self.model.__name__}>"

    # ========== 终结操作 ==========

    def get(self) -> List[T]:
        return [self.model.from_row(row) for row in self._builder.get()]

    def first(self) -> Optional[T]:
        row = self._builder.first()
        return self.model.from_row(row) if row is not None else None

    def first_or_fail(self) -> T:
        """
        Raises:
            NotFoundError: 没有匹配的记录
        """
        record = self.first()
        if record is None:
            raise NotFoundError(
                f"No row in table '{self.model.get_table()}' matches the query",
                table_name=self.model.get_table()
            )
        return record

    def find(self, pk: Any) -> Optional[T]:
        """在当前条件下按主键查找"""
        return self.where(self.model.get_primary_key(), pk).first()

    def count(self) -> int:
        return self._builder.count()

    def max(self, column: str) -> Optional[float]:
        return self._builder.max(column)

    def min(self, column: str) -> Optional[float]:
        return self._builder.min(column)

    def avg(self, column: str) -> Optional[float]:
        return self._builder.avg(column)

    def sum(self, column: str) -> float:
        return self._builder.sum(column)

    def pluck_list(self, column: str) -> List[Any]:
        return self._builder.pluck_list(column)

    def value(self, column: str) -> Any:
        return self._builder.value(column)

    def update(self, values: Dict[str, Any]) -> int:
        return self._builder.update(values)

    def delete(self) -> int:
        return self._builder.delete()

    def increment(self, column: str, amount: Any = 1) -> int:
        return self._builder.increment(column, amount)

    def decrement(self, column: str, amount: Any = 1) -> int:
        return self._builder.decrement(column, amount)
