"""
Pyrecord 关联关系

RelationshipMixin 为模型实例提供关联查询与关联修改方法，每次调用都会重新查询，不做缓存：

    class User(Base):
        __tablename__ = 'users'
        __primary_key__ = 'ID'
        id = Column(int, name='ID')

        def games(self):
            return self.has_many(Game, 'user_id')

        def roles(self):
            return self.belongs_to_many(Role, 'role_user', 'user_id', 'role_id')

也可使用声明式描述符 Relationship：

    class Game(Base):
        user_id = Column(int)
        user = Relationship('User', 'belongs_to', 'user_id')
"""

from typing import Any, Dict, List, Optional, Type, Union, TYPE_CHECKING

from ..common.exceptions import ConfigurationError, RelationshipError
from ..query.builder import QueryBuilder

if TYPE_CHECKING:
    from .orm import Model


def _resolve_attribute(model: Type['Model'], key: str) -> str:
    """将列名或属性名解析为模型属性名（忽略列除外）"""
    for attr_name, column in model.__columns__.items():
        if column.ignore:
            continue
        if attr_name == key or column.column_name == key:
            return attr_name
    raise RelationshipError(
        f"{key} column or field not found in the attributes list of {model.__name__}",
        column_name=key
    )


class RelationshipMixin:
    """关联关系方法（混入 Model）"""

    def _join_table(self, name: str) -> QueryBuilder:
        return QueryBuilder(name, database=type(self).get_database())  # type: ignore[attr-defined]

    def _refuse_self(self, other: Any, action: str) -> None:
        if type(other) is type(self):
            raise RelationshipError(f"Can't {action} a record to itself")

    # ========== 一对一 ==========

    def has_one(self, related: Type['Model'], foreign_key: str) -> Optional['Model']:
        """
        一对一：关联模型的主键等于本记录的 foreign_key 属性值

        foreign_key 按属性名或列名解析为本模型的属性。

        Raises:
            RelationshipError: 本模型没有 foreign_key 对应的属性
        """
        attr_name = _resolve_attribute(type(self), foreign_key)  # type: ignore[arg-type]
        return related.query().where(related.get_primary_key(), getattr(self, attr_name)).first()

    def belongs_to(self, related: Type['Model'], foreign_key: str) -> Optional['Model']:
        """
        反向一对一 / 多对一：关联模型的主键等于本记录名为 foreign_key 的属性值

        Raises:
            RelationshipError: 本记录没有名为 foreign_key 的属性
        """
        if not hasattr(self, foreign_key):
            raise RelationshipError(
                f"{type(self).__name__} has no attribute '{foreign_key}'",
                column_name=foreign_key
            )
        return related.query().where(related.get_primary_key(), getattr(self, foreign_key)).first()

    # ========== 一对多 ==========

    def has_many(self, related: Type['Model'], foreign_key: str) -> List['Model']:
        """关联模型中 foreign_key 等于本记录主键值的全部记录"""
        return related.query().where(foreign_key, self.primary_value).get()  # type: ignore[attr-defined]

    # ========== 多对多 ==========

    def belongs_to_many(
        self,
        related: Type['Model'],
        join_table: str,
        foreign_key: str,
        related_key: str
    ) -> List['Model']:
        """
        多对多

        先从中间表取出 foreign_key 等于本记录主键值的所有 related_key，
        再查询主键在该集合中的关联记录。集合为空时谓词退化为恒假。

        Args:
            related: 关联模型
            join_table: 中间表名
            foreign_key: 中间表中指向本模型的列
            related_key: 中间表中指向关联模型的列
        """
        keys = self._join_table(join_table).where(
            foreign_key, self.primary_value  # type: ignore[attr-defined]
        ).pluck_list(related_key)
        return related.query().where_in(related.get_primary_key(), keys).get()

    # ========== 关联修改 ==========

    def associate(self, instance: 'Model', foreign_key: str) -> 'Model':
        """
        将 instance 的 foreign_key 属性设为本记录主键值并保存 instance

        Raises:
            RelationshipError: instance 与本记录类型相同，或没有 foreign_key 对应的属性
        """
        self._refuse_self(instance, 'associate')
        attr_name = _resolve_attribute(type(instance), foreign_key)
        setattr(instance, attr_name, self.primary_value)  # type: ignore[attr-defined]
        instance.save()
        return instance

    def attach(self, join_table: str, foreign_key: str, related_key: str, instance: Optional['Model']) -> None:
        """
        在中间表中插入 (本记录, instance) 关联行；已存在时不重复插入

        记录相等按模型类型与主键值判断。
        """
        if instance is None:
            return
        self._refuse_self(instance, 'attach')
        existing = self.belongs_to_many(type(instance), join_table, foreign_key, related_key)
        if instance in existing:
            return
        self._join_table(join_table).insert({
            foreign_key: self.primary_value,  # type: ignore[attr-defined]
            related_key: instance.primary_value,
        })

    def detach(self, join_table: str, foreign_key: str, related_key: str, *instances: 'Model') -> int:
        """
        删除中间表中与 instances 的关联行（每个实例一条 delete 语句）

        Returns:
            删除的行数
        """
        deleted = 0
        for instance in instances:
            if instance is None:
                continue
            self._refuse_self(instance, 'detach')
            deleted += (self._join_table(join_table)
                        .where(foreign_key, self.primary_value)  # type: ignore[attr-defined]
                        .where(related_key, instance.primary_value)
                        .delete())
        return deleted

    def pivot(
        self,
        join_table: str,
        foreign_key: str,
        related_key: str,
        instance: 'Model',
        column: Optional[str] = None
    ) -> Union[Dict[str, Any], Any]:
        """
        读取中间表中 (本记录, instance) 的关联行

        Args:
            column: 只读取该列；None 时返回整行（无匹配返回空字典）

        Raises:
            RelationshipError: instance 与本记录类型相同
        """
        self._refuse_self(instance, 'pivot')
        query = (self._join_table(join_table)
                 .where(foreign_key, self.primary_value)  # type: ignore[attr-defined]
                 .where(related_key, instance.primary_value))
        if column is not None:
            return query.value(column)
        return query.first() or {}


class Relationship:
    """
    声明式关联描述符

    每次属性访问都会重新查询。

    Args:
        target: 关联模型类，或已注册的模型类名
        kind: 'has_one' / 'belongs_to' / 'has_many' / 'belongs_to_many'
        foreign_key: 外键列
        join_table: 中间表（belongs_to_many 必填）
        related_key: 中间表中指向关联模型的列（belongs_to_many 必填）
    """

    KINDS = ('has_one', 'belongs_to', 'has_many', 'belongs_to_many')

    def __init__(
        self,
        target: Union[str, Type['Model']],
        kind: str,
        foreign_key: str,
        join_table: Optional[str] = None,
        related_key: Optional[str] = None
    ):
        if kind not in self.KINDS:
            raise ConfigurationError(
                f"Unknown relationship kind: '{kind}'. Valid kinds: {', '.join(self.KINDS)}"
            )
        if kind == 'belongs_to_many' and (join_table is None or related_key is None):
            raise ConfigurationError("belongs_to_many requires join_table and related_key")
        self.target = target
        self.kind = kind
        self.foreign_key = foreign_key
        self.join_table = join_table
        self.related_key = related_key
        self.name: Optional[str] = None

    def __set_name__(self, owner: type, name: str) -> None:
        self.name = name

    @property
    def target_model(self) -> Type['Model']:
        if isinstance(self.target, str):
            from .orm import get_model
            return get_model(self.target)
        return self.target

    def __get__(self, instance: Any, owner: type) -> Any:
        if instance is None:
            return self
        target = self.target_model
        if self.kind == 'belongs_to_many':
            return instance.belongs_to_many(target, self.join_table, self.foreign_key, self.related_key)
        return getattr(instance, self.kind)(target, self.foreign_key)

    def __repr__(self) -> str:
        target = self.target if isinstance(self.target, str) else self.target.__name__
        return f"Relationship({target!r}, {self.kind!r}, {self.foreign_key!r})"
