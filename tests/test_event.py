"""
Pyrecord 事件钩子系统测试

测试 EventManager 的注册、分发、移除与清除。
"""

from typing import Any, List

import pytest

from pyrecord.core.event import ALL_EVENTS, EventManager, QueryListener


class Target:
    pass


@pytest.fixture
def manager() -> EventManager:
    return EventManager()


class TestEventManager:
    """EventManager 测试"""

    def test_all_events(self) -> None:
        assert ALL_EVENTS == {'query_issued', 'result_produced', 'rows_affected'}

    def test_listen_and_dispatch(self, manager: EventManager) -> None:
        target = Target()
        calls: List[Any] = []
        manager.listen(target, 'rows_affected', lambda sql, count: calls.append((sql, count)))
        manager.dispatch(target, 'rows_affected', 'delete from t', 3)
        assert calls == [('delete from t', 3)]

    def test_dispatch_is_per_target(self, manager: EventManager) -> None:
        a, b = Target(), Target()
        calls: List[str] = []
        manager.listen(a, 'query_issued', calls.append)
        manager.dispatch(b, 'query_issued', 'select 1')
        assert calls == []

    def test_decorator(self, manager: EventManager) -> None:
        target = Target()
        calls: List[str] = []

        @manager.listens_for(target, 'query_issued')
        def record(sql: str) -> None:
            calls.append(sql)

        manager.dispatch(target, 'query_issued', 'select 1')
        assert calls == ['select 1']
        assert record is not None

    def test_unknown_event(self, manager: EventManager) -> None:
        with pytest.raises(ValueError):
            manager.listen(Target(), 'after_commit', print)

    def test_remove(self, manager: EventManager) -> None:
        target = Target()
        calls: List[str] = []
        manager.listen(target, 'query_issued', calls.append)
        manager.remove(target, 'query_issued', calls.append)
        manager.remove(target, 'query_issued', calls.append)
        manager.dispatch(target, 'query_issued', 'select 1')
        assert calls == []
        assert not manager.has_listeners(target, 'query_issued')

    def test_clear(self, manager: EventManager) -> None:
        a, b = Target(), Target()
        manager.listen(a, 'query_issued', print)
        manager.listen(b, 'query_issued', print)
        manager.clear(a)
        assert not manager.has_listeners(a, 'query_issued')
        assert manager.has_listeners(b, 'query_issued')
        manager.clear()
        assert not manager.has_listeners(b, 'query_issued')

    def test_listeners_run_in_registration_order(self, manager: EventManager) -> None:
        target = Target()
        order: List[int] = []
        manager.listen(target, 'query_issued', lambda sql: order.append(1))
        manager.listen(target, 'query_issued', lambda sql: order.append(2))
        manager.dispatch(target, 'query_issued', 'select 1')
        assert order == [1, 2]


class TestQueryListener:
    """QueryListener 默认实现测试"""

    def test_default_methods_are_noops(self) -> None:
        listener = QueryListener()
        assert listener.on_query_issued('select 1') is None
        assert listener.on_result_produced('select 1', []) is None
        assert listener.on_rows_affected('delete from t', 0) is None
