"""
Pyrecord 查询构建器演示

展示：
- 链式构建 select / where / order / limit
- 聚合与 pluck
- insert / update / increment / delete
- to_sql() 查看生成的 SQL 与参数
"""

import os
import sys

# 添加父目录到路径
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pyrecord import Database

print("=" * 60)
print("Pyrecord 查询构建器演示")
print("=" * 60)

db = Database()
db.statement(
    'create table products ('
    'id integer primary key autoincrement, name text, category text, price real, stock integer)'
)

# 插入数据
print("\n1. 插入数据")
for name, category, price, stock in [
    ('Keyboard', 'input', 49.0, 10),
    ('Mouse', 'input', 19.5, 25),
    ('Monitor', 'display', 189.0, 4),
    ('Projector', 'display', 420.0, 1),
]:
    key = db.table('products').insert_get_id(
        {'name': name, 'category': category, 'price': price, 'stock': stock}
    )
    print(f"   ✓ {name} -> id={key}")

# 查询
print("\n2. 条件查询")
rows = (db.table('products')
        .select('name', 'price')
        .where('price', '>', 20)
        .order_by_desc('price')
        .limit(2)
        .get())
for row in rows:
    print(f"   - {row['name']}: {row['price']}")

print("\n3. 生成的 SQL")
sql, params = db.table('products').where('category', 'input').where_in('id', [1, 2]).to_sql()
print(f"   {sql}")
print(f"   参数: {params}")

# 聚合
print("\n4. 聚合")
print(f"   数量: {db.table('products').count()}")
print(f"   最高价: {db.table('products').max('price')}")
print(f"   display 总库存: {db.table('products').where('category', 'display').sum('stock')}")
print(f"   名称列表: {db.table('products').order_by('name').pluck_list('name')}")

# 分组
print("\n5. 分组")
categories = (db.table('products')
              .group_by('category')
              .having_raw('count(*) > 1')
              .pluck_list('category'))
print(f"   多于一件商品的分类: {categories}")

# 修改
print("\n6. 修改")
changed = db.table('products').where('stock', '<', 5).increment('stock', 10)
print(f"   补货 {changed} 行")
changed = db.table('products').where('name', 'Mouse').update({'price': 17.0})
print(f"   调价 {changed} 行")
removed = db.table('products').where('category', 'display').where('price', '>', 400).delete()
print(f"   删除 {removed} 行")
print(f"   剩余: {db.table('products').count()}")

db.close()
print("\n" + "=" * 60)
print("演示完成")
print("=" * 60)
