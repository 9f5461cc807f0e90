"""
Pyrecord 查询事件钩子系统

每次执行 SQL 时，Database 会分发以下事件：
- query_issued       (sql)          语句执行前
- result_produced    (sql, rows)    查询语句返回结果后
- rows_affected      (sql, count)   修改语句执行后

使用方式：
    from pyrecord import event

    # 装饰器注册
    @event.listens_for(db, 'query_issued')
    def log_sql(sql):
        print(sql)

    # 函数式注册
    event.listen(db, 'rows_affected', lambda sql, count: print(count))

    # 监听器对象（实现 QueryListener 的方法）
    db.register(MyListener())

    # 移除监听器
    event.remove(db, 'query_issued', log_sql)

监听器中抛出的异常不会被隔离，会直接传播给调用方。
"""

from typing import Any, Callable, Dict, List, Set, Tuple


QUERY_ISSUED = 'query_issued'
RESULT_PRODUCED = 'result_produced'
ROWS_AFFECTED = 'rows_affected'

# 有效的事件名称
ALL_EVENTS: Set[str] = {QUERY_ISSUED, RESULT_PRODUCED, ROWS_AFFECTED}


class QueryListener:
    """
    查询监听器基类

    子类按需覆盖任意方法，通过 Database.register() 注册。
    """

    def on_query_issued(self, sql: str) -> None:
        """语句执行前调用"""

    def on_result_produced(self, sql: str, rows: List[Dict[str, Any]]) -> None:
        """查询语句返回结果后调用"""

    def on_rows_affected(self, sql: str, count: int) -> None:
        """修改语句执行后调用"""


class EventManager:
    """
    事件管理器

    全局单例，按 Database 实例管理监听器。
    """

    def __init__(self) -> None:
        # {(id(target), event_name): [callbacks]}
        self._listeners: Dict[Tuple[int, str], List[Callable[..., Any]]] = {}
        # 保存 target 引用，防止 id 复用
        self._target_refs: Dict[int, Any] = {}

    def listen(self, target: Any, event_name: str, fn: Callable[..., Any]) -> None:
        """
        注册事件监听器

        Args:
            target: Database 实例
            event_name: 事件名称
            fn: 回调函数
        """
        if event_name not in ALL_EVENTS:
            raise ValueError(
                f"Unknown event: '{event_name}'. "
                f"Valid events: {', '.join(sorted(ALL_EVENTS))}"
            )
        key = (id(target), event_name)
        self._listeners.setdefault(key, []).append(fn)
        self._target_refs[id(target)] = target

    def listens_for(self, target: Any, event_name: str) -> Callable[..., Any]:
        """
        装饰器方式注册事件监听器

        Args:
            target: Database 实例
            event_name: 事件名称

        Returns:
            装饰器函数
        """
        def decorator(fn: Callable[..., Any]) -> Callable[..., Any]:
            self.listen(target, event_name, fn)
            return fn
        return decorator

    def remove(self, target: Any, event_name: str, fn: Callable[..., Any]) -> None:
        """
        移除事件监听器

        Args:
            target: Database 实例
            event_name: 事件名称
            fn: 要移除的回调函数
        """
        listeners = self._listeners.get((id(target), event_name), [])
        if fn in listeners:
            listeners.remove(fn)

    def has_listeners(self, target: Any, event_name: str) -> bool:
        """是否存在监听器"""
        return bool(self._listeners.get((id(target), event_name)))

    def dispatch(self, target: Any, event_name: str, *args: Any) -> None:
        """
        分发事件

        Args:
            target: Database 实例
            event_name: 事件名称
            *args: 回调参数
        """
        for fn in list(self._listeners.get((id(target), event_name), [])):
            fn(*args)

    def clear(self, target: Any = None) -> None:
        """
        清除监听器

        Args:
            target: 要清除的目标。None 清除所有。
        """
        if target is None:
            self._listeners.clear()
            self._target_refs.clear()
            return

        tid = id(target)
        for key in [k for k in self._listeners if k[0] == tid]:
            del self._listeners[key]
        self._target_refs.pop(tid, None)


# 全局单例
event = EventManager()
