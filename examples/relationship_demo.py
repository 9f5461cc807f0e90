"""
Pyrecord 关联关系演示

展示：
- 一对多 has_many / 反向 belongs_to
- 声明式 Relationship 描述符
- 多对多 belongs_to_many / attach / detach / pivot
"""

import os
import sys

# 添加父目录到路径
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '..')))

from pyrecord import Database, declarative_base, Column, Relationship

print("=" * 60)
print("Pyrecord 关联关系演示")
print("=" * 60)

db = Database()
for ddl in (
    'create table authors (id integer primary key autoincrement, name text)',
    'create table books (id integer primary key autoincrement, title text, author_id integer)',
    'create table tags (id integer primary key autoincrement, label text)',
    'create table book_tag (book_id integer, tag_id integer, added_by text)',
):
    db.statement(ddl)
Base = declarative_base(db)


class Author(Base):
    id = Column(int, primary_key=True)
    name = Column(str)

    def books(self):
        return self.has_many(Book, 'author_id')


class Book(Base):
    id = Column(int, primary_key=True)
    title = Column(str)
    author_id = Column(int)

    author = Relationship('Author', 'belongs_to', 'author_id')
    tags = Relationship('Tag', 'belongs_to_many', 'book_id', join_table='book_tag', related_key='tag_id')


class Tag(Base):
    id = Column(int, primary_key=True)
    label = Column(str)


# 一对多
print("\n1. 一对多")
orwell = Author.create(name='George Orwell')
for title in ('1984', 'Animal Farm'):
    orwell.associate(Book(title=title), 'author_id')
print(f"   {orwell.name} 的书: {[b.title for b in orwell.books()]}")

book = Book.where('title', '1984').first()
print(f"   《{book.title}》的作者: {book.author.name}")

# 多对多
print("\n2. 多对多")
classic = Tag.create(label='classic')
dystopia = Tag.create(label='dystopia')
book.attach('book_tag', 'book_id', 'tag_id', classic)
book.attach('book_tag', 'book_id', 'tag_id', dystopia)
book.attach('book_tag', 'book_id', 'tag_id', dystopia)  # 已存在，不重复插入
print(f"   《{book.title}》的标签: {[t.label for t in book.tags]}")

db.table('book_tag').where('tag_id', classic.id).update({'added_by': 'editor'})
print(f"   pivot: {book.pivot('book_tag', 'book_id', 'tag_id', classic)}")
print(f"   pivot 列: {book.pivot('book_tag', 'book_id', 'tag_id', classic, 'added_by')}")

removed = book.detach('book_tag', 'book_id', 'tag_id', classic)
print(f"   detach 删除 {removed} 行，剩余标签: {[t.label for t in book.tags]}")

db.close()
print("\n" + "=" * 60)
print("演示完成")
print("=" * 60)
