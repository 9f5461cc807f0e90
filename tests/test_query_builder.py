"""
查询构建器测试

测试方法：
- 场景设计：链式调用编译出的 SQL 与参数
- 性质测试：占位符数量与顺序始终等于参数列表
- 端到端：在内存 SQLite 上执行终结操作

覆盖范围：
- 谓词、分组、排序、分页、锁、连接、联合
- 终结操作（get / first / pluck / value / 聚合 / insert / update / delete / increment / truncate）
- 构建器消费语义
"""

from datetime import date

import pytest

from pyrecord import Database, MySQLConnector, QueryBuilder
from pyrecord.common.exceptions import QueryError, UnsupportedOperationError
from pyrecord.common.options import SqliteConnectorOptions
from pyrecord.connectors import SQLiteConnector


@pytest.fixture
def mysql_db() -> Database:
    """MySQL 方言（仅编译，不建立连接）"""
    return Database(MySQLConnector())


@pytest.fixture
def seeded(db: Database) -> Database:
    users = [
        ('Alice', 30, '2020-01-15'),
        ('Bob', 17, '2021-06-30'),
        ('Carol', 45, '2020-12-01'),
        ('Dave', 17, None),
    ]
    for name, age, created_at in users:
        db.table('users').insert({'name': name, 'age': age, 'created_at': created_at})
    return db


class TestCompiledSql:
    """编译结果测试"""

    def test_basic_scenario(self, db: Database) -> None:
        compiled = db.table('users').where('age', '>', 18).order_by('name').limit(10).to_sql()
        assert compiled.sql == 'select * from `users` where `age` > ? order by `name` asc limit 10'
        assert compiled.params == [18]

    def test_operator_defaults_to_equals(self, db: Database) -> None:
        compiled = db.table('users').where('name', 'Alice').to_sql()
        assert compiled.sql == 'select * from `users` where `name` = ?'
        assert compiled.params == ['Alice']

    def test_and_or_chain(self, db: Database) -> None:
        compiled = db.table('users').where('age', '>', 18).or_where('name', 'Bob').where('age', '<', 60).to_sql()
        assert compiled.sql == 'select * from `users` where `age` > ? or `name` = ? and `age` < ?'
        assert compiled.params == [18, 'Bob', 60]

    def test_or_where_first_has_no_where_keyword(self, db: Database) -> None:
        assert db.table('users').or_where('name', 'Bob').to_sql().sql == (
            'select * from `users` or `name` = ?'
        )

    def test_invalid_operator(self, db: Database) -> None:
        with pytest.raises(QueryError):
            db.table('users').where('age', '; drop', 1)

    def test_select_add_select_distinct(self, db: Database) -> None:
        compiled = db.table('users').distinct().select('name').add_select('users.age').to_sql()
        assert compiled.sql == 'select distinct `name`, `users`.`age` from `users`'

    def test_reselect_keeps_distinct(self, db: Database) -> None:
        compiled = db.table('users').select('name').distinct().select('age').to_sql()
        assert compiled.sql == 'select distinct `age` from `users`'

    def test_between_interpolates_floats(self, db: Database) -> None:
        compiled = db.table('users').where_between('age', 18, 30).where_not_between('age', 20, 21).to_sql()
        assert compiled.sql == (
            'select * from `users` where `age` between 18.0 and 30.0 and `age` not between 20.0 and 21.0'
        )
        assert compiled.params == []

    def test_where_in_binds_values(self, db: Database) -> None:
        compiled = db.table('users').where_in('ID', [1, 2, 3]).to_sql()
        assert compiled.sql == 'select * from `users` where `ID` in (?, ?, ?)'
        assert compiled.params == [1, 2, 3]

    def test_where_in_string_is_single_value(self, db: Database) -> None:
        compiled = db.table('users').where_in('name', 'abc').to_sql()
        assert compiled.sql == 'select * from `users` where `name` in (?)'
        assert compiled.params == ['abc']
        compiled = db.table('users').where_not_in('name', b'abc').to_sql()
        assert compiled.sql == 'select * from `users` where `name` not in (?)'
        assert compiled.params == [b'abc']

    def test_where_in_empty_is_false(self, db: Database) -> None:
        assert db.table('users').where_in('ID', []).to_sql().sql == 'select * from `users` where 0 = 1'
        assert db.table('users').where_in('ID', None).to_sql().sql == 'select * from `users` where 0 = 1'

    def test_where_not_in_empty_is_true(self, db: Database) -> None:
        assert db.table('users').where_not_in('ID', []).to_sql().sql == 'select * from `users` where 1 = 1'

    def test_null_predicates(self, db: Database) -> None:
        compiled = db.table('users').where_null('age').where_not_null('name').to_sql()
        assert compiled.sql == 'select * from `users` where `age` is null and `name` is not null'

    def test_where_column(self, db: Database) -> None:
        compiled = db.table('users').where_column('users.ID', 'games.user_id').to_sql()
        assert compiled.sql == 'select * from `users` where `users`.`ID` = `games`.`user_id`'

    def test_where_has(self, db: Database) -> None:
        assert db.table('t').where_has('games').to_sql().params == [1]
        assert db.table('t').where_has('games').to_sql().sql == 'select * from `t` where `games` >= ?'
        assert db.table('t').where_has('games', 3).to_sql().sql == 'select * from `t` where `games` = ?'
        assert db.table('t').where_doesnt_have('games').to_sql().params == [0]

    def test_date_parts_mysql(self, mysql_db: Database) -> None:
        compiled = (mysql_db.table('users')
                    .where_date('born', date(2020, 1, 2))
                    .where_year('born', '>', 1990)
                    .where_month('born', 5)
                    .where_day('born', '<=', 20)
                    .to_sql())
        assert compiled.sql == (
            'select * from `users` where date(`born`) = ? and year(`born`) > 1990 '
            'and month(`born`) = 5 and day(`born`) <= 20'
        )
        assert compiled.params == ['2020-01-02']

    def test_group_having_order(self, db: Database) -> None:
        compiled = (db.table('games')
                    .select('user_id')
                    .group_by('user_id')
                    .having('user_id', '>', 0)
                    .having_raw('count(*) > 1')
                    .order_by_desc('user_id')
                    .order_by('title')
                    .to_sql())
        assert compiled.sql == (
            'select `user_id` from `games` group by `user_id` having `user_id` > ? and count(*) > 1 '
            'order by `user_id` desc, `title` asc'
        )
        assert compiled.params == [0]

    def test_having_before_where_keeps_placeholder_order(self, db: Database) -> None:
        compiled = db.table('games').having('score', '>', 5).where('user_id', 1).group_by('user_id').to_sql()
        assert compiled.sql == 'select * from `games` where `user_id` = ? group by `user_id` having `score` > ?'
        assert compiled.params == [1, 5]

    def test_invalid_direction(self, db: Database) -> None:
        with pytest.raises(QueryError):
            db.table('users').order_by('name', 'sideways')

    def test_latest_oldest(self, db: Database) -> None:
        assert db.table('users').latest().to_sql().sql == 'select * from `users` order by `created_at` desc'
        assert db.table('users').oldest('ID').to_sql().sql == 'select * from `users` order by `ID` asc'

    def test_random_order(self, db: Database, mysql_db: Database) -> None:
        assert db.table('users').in_random_order().to_sql().sql == 'select * from `users` order by random()'
        assert mysql_db.table('users').in_random_order().to_sql().sql == 'select * from `users` order by RAND()'

    def test_paging(self, db: Database) -> None:
        assert db.table('users').skip(20).take(10).to_sql().sql == 'select * from `users` limit 10 offset 20'
        assert db.table('users').offset(5).to_sql().sql == 'select * from `users` limit -1 offset 5'

    def test_locks(self, db: Database, mysql_db: Database) -> None:
        assert mysql_db.table('users').shared_lock().to_sql().sql == 'select * from `users` lock in share mode'
        assert mysql_db.table('users').lock_for_update().to_sql().sql == 'select * from `users` for update'
        assert db.table('users').lock_for_update().to_sql().sql == 'select * from `users`'

    def test_second_join_replaces_first(self, db: Database) -> None:
        compiled = (db.table('users')
                    .join('roles', 'users.ID', '=', 'roles.id')
                    .left_join('games', 'users.ID', '=', 'games.user_id')
                    .to_sql())
        assert compiled.sql == (
            'select * from `users` left join `games` on `users`.`ID` = `games`.`user_id`'
        )

    def test_cross_join(self, db: Database) -> None:
        assert db.table('users').cross_join('roles').to_sql().sql == 'select * from `users` cross join `roles`'

    def test_mysql_union(self, mysql_db: Database) -> None:
        other = mysql_db.table('admins').where('level', '>', 2)
        compiled = mysql_db.table('users').where('age', '>', 18).union(other).to_sql()
        assert compiled.sql == (
            '( select * from `users` where `age` > ? ) union ( select * from `admins` where `level` > ? )'
        )
        assert compiled.params == [18, 2]

    @pytest.mark.parametrize('build', [
        lambda q: q.where('a', 1).or_where('b', '<', 2).where_in('c', [3, 4]),
        lambda q: q.having('x', '>', 1).where_null('y').where('z', 'like', 'a%'),
        lambda q: q.where_between('a', 1, 2).where_date('d', '2020-01-01').having('n', 3).where_not_in('e', [5]),
        lambda q: q.where_in('a', []).where_year('d', 2020).where_has('g'),
    ])
    def test_placeholders_match_parameters(self, db: Database, build) -> None:
        compiled = build(db.table('t')).to_sql()
        assert compiled.sql.count('?') == len(compiled.params)


class TestConsumption:
    """构建器消费测试"""

    def test_terminal_consumes(self, db: Database) -> None:
        query = db.table('users').where('age', '>', 1)
        query.get()
        assert query.consumed
        with pytest.raises(QueryError):
            query.where('name', 'x')
        with pytest.raises(QueryError):
            query.get()

    def test_to_sql_does_not_consume(self, db: Database) -> None:
        query = db.table('users')
        query.to_sql()
        assert not query.consumed
        assert query.count() == 0

    def test_union_consumes_other(self, db: Database) -> None:
        other = db.table('users')
        db.table('users').union(other)
        with pytest.raises(QueryError):
            other.to_sql()

    def test_union_with_itself(self, db: Database) -> None:
        query = db.table('users')
        with pytest.raises(QueryError):
            query.union(query)

    def test_builder_uses_default_database(self, default_db: Database) -> None:
        builder = QueryBuilder('users')
        assert builder.database is default_db


class TestExecution:
    """在 SQLite 上执行终结操作"""

    def test_get_and_first(self, seeded: Database) -> None:
        rows = seeded.table('users').where('age', 17).order_by('name').get()
        assert [r['name'] for r in rows] == ['Bob', 'Dave']
        first = seeded.table('users').order_by_desc('age').first()
        assert first is not None and first['name'] == 'Carol'
        assert seeded.table('users').where('name', 'Nobody').first() is None

    def test_where_in_empty_returns_no_rows(self, seeded: Database) -> None:
        assert seeded.table('users').where_in('ID', []).get() == []

    def test_pluck_and_value(self, seeded: Database) -> None:
        assert seeded.table('users').order_by('name').pluck_list('name') == ['Alice', 'Bob', 'Carol', 'Dave']
        assert seeded.table('users').where('name', 'Carol').value('age') == 45
        assert seeded.table('users').where('name', 'Nobody').value('age') is None
        rows = seeded.table('users').where('name', 'Bob').pluck('age')
        assert rows == [{'age': 17}]

    def test_aggregates(self, seeded: Database) -> None:
        assert seeded.table('users').count() == 4
        assert seeded.table('users').where('age', 17).count() == 2
        assert seeded.table('users').max('age') == 45.0
        assert seeded.table('users').min('age') == 17.0
        assert seeded.table('users').avg('age') == pytest.approx(27.25)
        assert seeded.table('users').sum('age') == 109.0

    def test_aggregates_on_empty_table(self, db: Database) -> None:
        assert db.table('games').count() == 0
        assert db.table('games').max('score') is None
        assert db.table('games').sum('score') == 0.0

    def test_insert_get_id(self, db: Database) -> None:
        first_id = db.table('roles').insert_get_id({'name': 'admin'})
        second_id = db.table('roles').insert_get_id({'name': 'user'})
        assert second_id == first_id + 1

    def test_insert_get_id_unsupported(self) -> None:
        connector = SQLiteConnector(SqliteConnectorOptions(insert_get_id=False))
        with Database(connector) as database:
            with pytest.raises(UnsupportedOperationError):
                database.table('roles').insert_get_id({'name': 'admin'})

    def test_update_and_delete(self, seeded: Database) -> None:
        assert seeded.table('users').where('age', 17).update({'age': 18}) == 2
        assert seeded.table('users').where('age', 18).count() == 2
        assert seeded.table('users').where('name', 'Dave').delete() == 1
        assert seeded.table('users').count() == 3

    def test_increment_decrement(self, seeded: Database) -> None:
        seeded.table('users').where('name', 'Alice').increment('age', 5)
        seeded.table('users').where('name', 'Bob').decrement('age')
        assert seeded.table('users').where('name', 'Alice').value('age') == 35
        assert seeded.table('users').where('name', 'Bob').value('age') == 16

    def test_truncate(self, seeded: Database) -> None:
        seeded.table('users').truncate()
        assert seeded.table('users').count() == 0

    def test_union_on_sqlite(self, seeded: Database) -> None:
        young = seeded.table('users').select('name').where('age', '<', 18)
        rows = seeded.table('users').select('name').where('age', '>', 40).union(young).get()
        assert sorted(r['name'] for r in rows) == ['Bob', 'Carol', 'Dave']

    def test_aggregates_over_union(self, seeded: Database) -> None:
        young = seeded.table('users').select('name').where('age', '<', 18)
        assert seeded.table('users').select('name').where('age', '>', 40).union(young).count() == 3
        low = seeded.table('users').select('age').where('age', '<', 18)
        assert seeded.table('users').select('age').where('age', '>', 40).union(low).max('age') == 45.0

    def test_join_on_sqlite(self, seeded: Database) -> None:
        alice_id = seeded.table('users').where('name', 'Alice').value('ID')
        seeded.table('games').insert({'title': 'Chess', 'score': 9.5, 'user_id': alice_id})
        rows = (seeded.table('users')
                .select('users.name', 'games.title')
                .join('games', 'users.ID', '=', 'games.user_id')
                .get())
        assert rows == [{'name': 'Alice', 'title': 'Chess'}]

    def test_date_parts_on_sqlite(self, seeded: Database) -> None:
        assert seeded.table('users').where_year('created_at', 2020).count() == 2
        assert seeded.table('users').where_month('created_at', 6).pluck_list('name') == ['Bob']
        assert seeded.table('users').where_date('created_at', date(2020, 12, 1)).value('name') == 'Carol'

    def test_offset_without_limit(self, seeded: Database) -> None:
        names = seeded.table('users').order_by('name').skip(2).pluck_list('name')
        assert names == ['Carol', 'Dave']
