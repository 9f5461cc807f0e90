"""
Pyrecord 核心模块

包含 ORM、关联关系、语句执行器、类型转换与事件钩子
"""

from .event import event, EventManager, QueryListener
from .types import TypeRegistry
from .orm import (
    Column,
    Model,
    declarative_base,
    map_row_to_record,
    map_record_to_row,
    get_model,
)
from .relationship import Relationship, RelationshipMixin
from .database import (
    Database,
    configure,
    get_database,
    set_database,
    close_database,
    table,
)

__all__ = [
    # ORM
    'Column',
    'Model',
    'declarative_base',
    'map_row_to_record',
    'map_record_to_row',
    'get_model',
    'Relationship',
    'RelationshipMixin',
    # Database
    'Database',
    'configure',
    'get_database',
    'set_database',
    'close_database',
    'table',
    # Types & Events
    'TypeRegistry',
    'event',
    'EventManager',
    'QueryListener',
]
