"""
Pyrecord 事务功能演示

展示：
- transaction() 作用域：成功提交，异常回滚
- 手动 begin_transaction / commit / rollback
- 查询监听器
"""

import os
import sys

# 添加父目录到路径
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pyrecord import Database, QueryListener

print("=" * 60)
print("Pyrecord 事务功能演示")
print("=" * 60)


class PrintListener(QueryListener):
    def on_query_issued(self, sql: str) -> None:
        print(f"   [sql] {sql}")


db = Database()
db.statement('create table accounts (id integer primary key, owner text, balance integer)')
db.table('accounts').insert({'id': 1, 'owner': 'Alice', 'balance': 1000})
db.table('accounts').insert({'id': 2, 'owner': 'Bob', 'balance': 500})


def balances() -> dict:
    return {row['owner']: row['balance'] for row in db.table('accounts').order_by('id').get()}


print(f"\n初始余额: {balances()}")

# 成功的转账
print("\n1. 成功的转账")
listener = PrintListener()
db.register(listener)
with db.transaction():
    db.table('accounts').where('id', 1).decrement('balance', 200)
    db.table('accounts').where('id', 2).increment('balance', 200)
db.unregister(listener)
print(f"   ✓ 提交后: {balances()}")

# 失败的转账
print("\n2. 失败的转账（自动回滚）")
try:
    with db.transaction():
        db.table('accounts').where('id', 1).decrement('balance', 5000)
        if db.table('accounts').where('id', 1).value('balance') < 0:
            raise ValueError('insufficient balance')
except ValueError as e:
    print(f"   ✓ 捕获异常: {e}")
print(f"   ✓ 回滚后: {balances()}")

# 手动事务
print("\n3. 手动事务")
db.begin_transaction()
db.table('accounts').where('id', 2).update({'owner': 'Robert'})
db.rollback()
print(f"   ✓ rollback 后: {balances()}")

db.close()
print("\n" + "=" * 60)
print("演示完成")
print("=" * 60)
