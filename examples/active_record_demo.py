"""
Pyrecord Active Record 模式演示

展示：
- declarative_base 创建基类、Column 声明属性
- create / find / save / delete / destroy
- 模型级链式查询与聚合
"""

import os
import sys
from datetime import datetime
from typing import Type

# 添加父目录到路径
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pyrecord import Database, Model, declarative_base, Column, NotFoundError

print("=" * 60)
print("Pyrecord Active Record 模式演示")
print("=" * 60)

# 1. 初始化
print("\n1. 初始化数据库")
db = Database()
db.statement(
    'create table students ('
    'id integer primary key autoincrement, name text, age integer, enrolled_at text)'
)
Base: Type[Model] = declarative_base(db)
print("   ✓ Database 创建成功")


class Student(Base):
    """学生模型（默认表名 students）"""
    id = Column(int, primary_key=True)
    name = Column(str)
    age = Column(int)
    enrolled_at = Column(datetime, default=datetime.now)
    note = Column(str, ignore=True)


print(f"   ✓ Student -> 表 '{Student.get_table()}'，主键 '{Student.get_primary_key()}'")

# 2. 创建
print("\n2. 创建记录")
alice = Student.create(name='Alice', age=20)
bob = Student.create(name='Bob', age=22)
carol = Student(name='Carol', age=19)
carol.save()
print(f"   ✓ {alice}")
print(f"   ✓ {bob}")
print(f"   ✓ {carol}（save 回填主键 {carol.id}）")

# 3. 查询
print("\n3. 查询")
found = Student.find(alice.id)
print(f"   find({alice.id}) -> {found.name if found else None}")
print(f"   find_many -> {[s.name for s in Student.find_many([1, 2, 99])]}")
adults = Student.where('age', '>=', 20).order_by('name').get()
print(f"   age >= 20 -> {[s.name for s in adults]}")
print(f"   平均年龄: {Student.avg('age')}")
print(f"   人数: {Student.count()}")

try:
    Student.find_or_fail(99)
except NotFoundError as e:
    print(f"   ✓ find_or_fail: {e}")

# 4. 更新
print("\n4. 更新")
bob.age = 23
bob.save()
print(f"   ✓ Bob 年龄更新为 {Student.find(bob.id).age}")
record = Student.update_or_create({'name': 'Dave'}, {'age': 21})
print(f"   ✓ update_or_create 新建: {record}")

# 5. 删除
print("\n5. 删除")
carol.delete()
print(f"   ✓ 删除 Carol，剩余 {Student.count()}")
removed = Student.destroy(alice.id, bob.id)
print(f"   ✓ destroy 删除 {removed} 行，剩余 {[s.name for s in Student.all()]}")

db.close()
print("\n" + "=" * 60)
print("演示完成")
print("=" * 60)
