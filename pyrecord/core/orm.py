"""
Pyrecord ORM 核心

提供：
- Column：声明式列描述符（属性名、列名覆盖、忽略标记、主键标记）
- Model：Active Record 基类（行 <-> 记录映射、增删改查、查询入口）
- declarative_base：创建绑定到指定数据库的模型基类

示例：
    Base = declarative_base(db)

    class User(Base):
        __tablename__ = 'users'
        __primary_key__ = 'ID'

        id = Column(int, name='ID')
        name = Column(str)
        age = Column(int)
        nickname = Column(str, ignore=True)

    user = User.create(name='Alice', age=20)
    adults = User.where('age', '>=', 18).order_by('name').get()
"""

from typing import Any, Callable, Dict, Iterable, List, Optional, Type, TypeVar, TYPE_CHECKING

from ..common.exceptions import (
    ConfigurationError, NotFoundError, NullPrimaryKeyError, RecordNotFoundError
)
from ..common.utils import make_plural
from ..query.builder import QueryBuilder
from ..query.model_query import ModelQuery
from .relationship import RelationshipMixin
from .types import TypeRegistry

if TYPE_CHECKING:
    from .database import Database


T = TypeVar('T', bound='Model')

# 模型注册表：类名 -> 模型类（供 Relationship 按名称解析目标）
_model_registry: Dict[str, Type['Model']] = {}


def get_model(name: str) -> Type['Model']:
    """按类名查找已注册的模型"""
    try:
        return _model_registry[name]
    except KeyError:
        raise ConfigurationError(f"Unknown model: '{name}'") from None


class Column:
    """
    列描述符

    Args:
        col_type: 属性的 Python 类型，读取时按此类型转换
        name: 列名，默认与属性名相同
        primary_key: 是否为主键
        ignore: 是否忽略（不参与持久化）
        default: 属性未赋值时的默认值（可为可调用对象）
        comment: 列备注
    """

    def __init__(
        self,
        col_type: Type[Any] = object,
        *,
        name: Optional[str] = None,
        primary_key: bool = False,
        ignore: bool = False,
        default: Any = None,
        comment: Optional[str] = None
    ):
        self.col_type = col_type
        self.name = name
        self.primary_key = primary_key
        self.ignore = ignore
        self.default = default
        self.comment = comment
        self.attr_name: Optional[str] = None

    def __set_name__(self, owner: type, attr_name: str) -> None:
        self.attr_name = attr_name
        if self.name is None:
            self.name = attr_name

    @property
    def column_name(self) -> str:
        return self.name or self.attr_name or ''

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        try:
            return instance.__dict__[self.attr_name]
        except KeyError:
            return self.default() if callable(self.default) else self.default

    def __set__(self, instance: Any, value: Any) -> None:
        instance.__dict__[self.attr_name] = value

    def __delete__(self, instance: Any) -> None:
        instance.__dict__.pop(self.attr_name, None)

    def __repr__(self) -> str:
        type_name = getattr(self.col_type, '__name__', str(self.col_type))
        return f"Column({self.attr_name!r} -> {self.column_name!r}, {type_name})"


def map_row_to_record(row: Dict[str, Any], model: Type[T]) -> T:
    """
    将结果行映射为记录

    零参数构造记录，然后对每个非忽略列读取 row[列名] 并按声明类型转换。
    值为 None 或行中缺少该列时属性保持未赋值。

    Raises:
        MappingError: 类型转换失败
    """
    record = model()
    for column in model.__columns__.values():
        if column.ignore:
            continue
        value = row.get(column.column_name)
        if value is None:
            continue
        setattr(record, column.attr_name, TypeRegistry.coerce(value, column.col_type, column.column_name))  # type: ignore[arg-type]
    return record


def map_record_to_row(record: 'Model') -> Dict[str, Any]:
    """将记录映射为 列名 -> 值 字典（不含忽略列）"""
    return {
        column.column_name: getattr(record, column.attr_name)  # type: ignore[arg-type]
        for column in type(record).__columns__.values()
        if not column.ignore
    }


class Model(RelationshipMixin):
    """
    Active Record 模型基类

    类属性：
        __tablename__: 表名，默认为小写类名的复数形式
        __primary_key__: 主键列名，默认 'id'（或标记了 primary_key=True 的列）
        __database__: 使用的数据库，None 表示进程默认数据库
        __abstract__: 抽象模型（不注册、不对应表）
    """

    __abstract__ = True
    __tablename__: Optional[str] = None
    __primary_key__: str = 'id'
    __database__: Optional['Database'] = None
    __columns__: Dict[str, Column] = {}

    def __init_subclass__(cls, **kwargs: Any) -> None:
        super().__init_subclass__(**kwargs)
        if '__abstract__' not in cls.__dict__:
            cls.__abstract__ = False

        columns: Dict[str, Column] = {}
        for klass in reversed(cls.__mro__):
            for attr_name, value in vars(klass).items():
                if isinstance(value, Column):
                    columns[attr_name] = value
        cls.__columns__ = columns

        if cls.__abstract__:
            return

        if cls.__dict__.get('__tablename__') is None:
            cls.__tablename__ = make_plural(cls.__name__.lower())
        if '__primary_key__' not in cls.__dict__:
            flagged = [c for c in columns.values() if c.primary_key]
            if flagged:
                cls.__primary_key__ = flagged[0].column_name
        _model_registry[cls.__name__] = cls

    def __init__(self, **values: Any):
        columns = type(self).__columns__
        for key, value in values.items():
            if key not in columns:
                raise TypeError(f"{type(self).__name__} has no column attribute '{key}'")
            setattr(self, key, value)

    # ========== 映射信息 ==========

    @classmethod
    def get_table(cls) -> str:
        if cls.__abstract__ or not cls.__tablename__:
            raise ConfigurationError(f"{cls.__name__} is abstract and has no table")
        return cls.__tablename__

    @classmethod
    def get_primary_key(cls) -> str:
        """主键列名"""
        return cls.__primary_key__

    @classmethod
    def primary_column(cls) -> Column:
        """
        主键列描述符

        先按属性名精确匹配主键名，再按列名覆盖匹配。

        Raises:
            ConfigurationError: 没有可解析的主键属性
        """
        pk = cls.get_primary_key()
        for column in cls.__columns__.values():
            if not column.ignore and column.attr_name == pk:
                return column
        for column in cls.__columns__.values():
            if not column.ignore and column.column_name == pk:
                return column
        raise ConfigurationError(
            f"Primary key '{pk}' of {cls.__name__} does not match any attribute",
            table_name=cls.__tablename__,
            column_name=pk
        )

    @classmethod
    def get_database(cls) -> 'Database':
        if cls.__database__ is not None:
            return cls.__database__
        from .database import get_database
        return get_database()

    @property
    def primary_value(self) -> Any:
        """主键值"""
        return getattr(self, type(self).primary_column().attr_name)  # type: ignore[arg-type]

    @classmethod
    def from_row(cls: Type[T], row: Dict[str, Any]) -> T:
        return map_row_to_record(row, cls)

    def to_row(self) -> Dict[str, Any]:
        return map_record_to_row(self)

    def to_dict(self) -> Dict[str, Any]:
        """属性名 -> 值"""
        return {
            attr_name: getattr(self, attr_name)
            for attr_name, column in type(self).__columns__.items()
            if not column.ignore
        }

    # ========== 查询入口 ==========

    @classmethod
    def _builder(cls) -> QueryBuilder:
        return QueryBuilder(cls.get_table(), database=cls.get_database())

    @classmethod
    def query(cls: Type[T]) -> 'ModelQuery[T]':
        """创建绑定到本模型的查询"""
        return ModelQuery(cls, cls._builder())

    @classmethod
    def where(cls: Type[T], column: str, operator: Any, *value: Any) -> 'ModelQuery[T]':
        return cls.query().where(column, operator, *value)

    @classmethod
    def or_where(cls: Type[T], column: str, operator: Any, *value: Any) -> 'ModelQuery[T]':
        return cls.query().or_where(column, operator, *value)

    @classmethod
    def where_in(cls: Type[T], column: str, values: Iterable[Any]) -> 'ModelQuery[T]':
        return cls.query().where_in(column, values)

    @classmethod
    def where_not_in(cls: Type[T], column: str, values: Iterable[Any]) -> 'ModelQuery[T]':
        return cls.query().where_not_in(column, values)

    @classmethod
    def where_null(cls: Type[T], column: str) -> 'ModelQuery[T]':
        return cls.query().where_null(column)

    @classmethod
    def where_not_null(cls: Type[T], column: str) -> 'ModelQuery[T]':
        return cls.query().where_not_null(column)

    @classmethod
    def where_between(cls: Type[T], column: str, low: Any, high: Any) -> 'ModelQuery[T]':
        return cls.query().where_between(column, low, high)

    @classmethod
    def where_not_between(cls: Type[T], column: str, low: Any, high: Any) -> 'ModelQuery[T]':
        return cls.query().where_not_between(column, low, high)

    @classmethod
    def where_like(cls: Type[T], column: str, pattern: str) -> 'ModelQuery[T]':
        return cls.query().where_like(column, pattern)

    @classmethod
    def order_by(cls: Type[T], column: str, direction: str = 'asc') -> 'ModelQuery[T]':
        return cls.query().order_by(column, direction)

    @classmethod
    def latest(cls: Type[T], column: str = 'created_at') -> 'ModelQuery[T]':
        return cls.query().latest(column)

    @classmethod
    def oldest(cls: Type[T], column: str = 'created_at') -> 'ModelQuery[T]':
        return cls.query().oldest(column)

    @classmethod
    def distinct(cls: Type[T]) -> 'ModelQuery[T]':
        return cls.query().distinct()

    @classmethod
    def limit(cls: Type[T], value: int) -> 'ModelQuery[T]':
        return cls.query().limit(value)

    take = limit

    @classmethod
    def offset(cls: Type[T], value: int) -> 'ModelQuery[T]':
        return cls.query().offset(value)

    skip = offset

    # ========== 读取 ==========

    @classmethod
    def find(cls: Type[T], pk: Any) -> Optional[T]:
        """按主键查找，不存在返回 None"""
        return cls.query().find(pk)

    @classmethod
    def find_or_fail(cls: Type[T], pk: Any) -> T:
        """
        按主键查找

        Raises:
            RecordNotFoundError: 记录不存在
        """
        record = cls.find(pk)
        if record is None:
            raise RecordNotFoundError(cls.get_table(), pk)
        return record

    @classmethod
    def find_many(cls: Type[T], pks: Iterable[Any]) -> List[T]:
        """按主键列表查找，跳过不存在的主键"""
        records = []
        for pk in pks:
            record = cls.find(pk)
            if record is not None:
                records.append(record)
        return records

    @classmethod
    def find_many_or_fail(cls: Type[T], pks: Iterable[Any]) -> List[T]:
        """按主键列表查找，任一主键不存在即抛出 RecordNotFoundError"""
        return [cls.find_or_fail(pk) for pk in pks]

    @classmethod
    def all(cls: Type[T]) -> List[T]:
        return cls.query().get()

    @classmethod
    def get(cls: Type[T]) -> List[T]:
        return cls.query().get()

    @classmethod
    def first(cls: Type[T]) -> Optional[T]:
        return cls.query().first()

    @classmethod
    def count(cls) -> int:
        return cls.query().count()

    @classmethod
    def max(cls, column: str) -> Optional[float]:
        return cls.query().max(column)

    @classmethod
    def min(cls, column: str) -> Optional[float]:
        return cls.query().min(column)

    @classmethod
    def avg(cls, column: str) -> Optional[float]:
        return cls.query().avg(column)

    @classmethod
    def sum(cls, column: str) -> float:
        return cls.query().sum(column)

    # ========== 写入 ==========

    @classmethod
    def create(cls: Type[T], instance: Optional[T] = None, **values: Any) -> T:
        """
        插入记录并返回从数据库重新读取的实例

        主键为 None 且后端支持获取生成主键时，使用 insert_get_id 并按返回的主键读取；
        否则普通插入后，按给定主键读取，或按其余全部列匹配并取主键最大的一行。

        Args:
            instance: 要插入的记录，None 时由 values 构造
            **values: 列属性值

        Raises:
            NotFoundError: 插入后无法定位新行
        """
        if instance is None:
            instance = cls(**values)
        else:
            for key, value in values.items():
                setattr(instance, key, value)

        row = instance.to_row()
        pk = cls.get_primary_key()
        pk_value = row.get(pk)
        if pk_value is None:
            row.pop(pk, None)

        if pk_value is None and cls.get_database().supports_insert_get_id:
            key = cls._builder().insert_get_id(row)
            return cls.find_or_fail(key)

        cls._builder().insert(row)
        if pk_value is not None:
            return cls.find_or_fail(pk_value)

        query = cls.query()
        for column, value in row.items():
            if value is None:
                query.where_null(column)
            else:
                query.where(column, value)
        record = query.order_by(pk, 'desc').first()
        if record is None:
            raise NotFoundError(
                f"Inserted row could not be located in table '{cls.get_table()}'",
                table_name=cls.get_table()
            )
        return record

    @classmethod
    def update_or_create(
        cls: Type[T],
        attributes: Dict[str, Any],
        values: Optional[Dict[str, Any]] = None
    ) -> T:
        """
        按 attributes 查找记录，存在则用 values 更新，否则以 attributes + values 创建

        attributes 的键为列名，values 的键为属性名。
        """
        values = values or {}
        query = cls.query()
        for column, value in attributes.items():
            if value is None:
                query.where_null(column)
            else:
                query.where(column, value)
        record = query.first()
        if record is None:
            instance = cls()
            by_column = {c.column_name: c.attr_name for c in cls.__columns__.values()}
            for column, value in attributes.items():
                setattr(instance, by_column.get(column, column), value)
            return cls.create(instance, **values)
        for key, value in values.items():
            setattr(record, key, value)
        record.save()
        return record

    def save(self: T) -> T:
        """
        保存记录

        主键为 None 或数据库中不存在该主键时插入（并回填主键），否则更新除主键外的所有列。

        Raises:
            ConfigurationError: 映射结果中没有主键列
        """
        cls = type(self)
        row = self.to_row()
        pk = cls.get_primary_key()
        if pk not in row:
            raise ConfigurationError(
                f"Primary key '{pk}' is not among the mapped columns of {cls.__name__}",
                table_name=cls.__tablename__,
                column_name=pk
            )
        pk_value = row.pop(pk)
        exists = pk_value is not None and cls._builder().where(pk, pk_value).count() > 0

        if not exists:
            created = cls.create(self)
            pk_attr = cls.primary_column().attr_name
            setattr(self, pk_attr, getattr(created, pk_attr))  # type: ignore[arg-type]
        elif row:
            cls._builder().where(pk, pk_value).update(row)
        return self

    def delete(self) -> int:
        """
        删除记录

        Raises:
            NullPrimaryKeyError: 主键值为 None
        """
        cls = type(self)
        pk = cls.get_primary_key()
        pk_value = self.primary_value
        if pk_value is None:
            raise NullPrimaryKeyError(cls.get_table(), pk)
        return cls._builder().where(pk, pk_value).delete()

    @classmethod
    def destroy(cls, *pks: Any) -> int:
        """
        按主键删除（不加载记录）

        destroy(1, 2, 3) 或 destroy([1, 2, 3])

        Returns:
            删除的行数
        """
        if len(pks) == 1 and isinstance(pks[0], (list, tuple, set)):
            pks = tuple(pks[0])
        if not pks:
            return 0
        return cls._builder().where_in(cls.get_primary_key(), list(pks)).delete()

    def refresh(self: T) -> T:
        """
        从数据库重新读取所有列

        Raises:
            NullPrimaryKeyError: 主键值为 None
            RecordNotFoundError: 记录已不存在
        """
        cls = type(self)
        pk_value = self.primary_value
        if pk_value is None:
            raise NullPrimaryKeyError(cls.get_table(), cls.get_primary_key())
        fresh = cls.find_or_fail(pk_value)
        for attr_name, column in cls.__columns__.items():
            if column.ignore:
                continue
            if attr_name in fresh.__dict__:
                self.__dict__[attr_name] = fresh.__dict__[attr_name]
            else:
                self.__dict__.pop(attr_name, None)
        return self

    # ========== 比较 / 显示 ==========

    def __eq__(self, other: object) -> bool:
        if self is other:
            return True
        if type(self) is not type(other):
            return NotImplemented
        pk_value = self.primary_value
        return pk_value is not None and pk_value == other.primary_value  # type: ignore[attr-defined]

    def __hash__(self) -> int:
        """
        已持久化的记录按 (类型, 主键) 计算哈希，与 __eq__ 一致；未持久化的记录按对象标识计算

        save() / create() 回填主键后哈希值会改变，因此未持久化的记录在保存前
        不应放入 set 或作为 dict 的键。
        """
        pk_value = self.primary_value
        if pk_value is None:
            return id(self)
        return hash((type(self), pk_value))

    def __repr__(self) -> str:
        fields = ', '.join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"<{type(self).__name__}({fields})>"


def declarative_base(db: Optional['Database'] = None, name: str = 'Base') -> Type[Model]:
    """
    创建声明式模型基类

    Args:
        db: 绑定的数据库，None 表示进程默认数据库
        name: 基类名称

    Returns:
        抽象模型基类，子类自动使用 db
    """
    return type(name, (Model,), {'__abstract__': True, '__database__': db})  # type: ignore[return-value]
