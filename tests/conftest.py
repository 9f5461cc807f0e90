"""
Pytest 配置和共享 fixtures

此文件提供 pytest 测试所需的共享配置和 fixtures：
- 内存 SQLite 数据库（users / games / roles / role_user 表）
- 记录 SQL 的查询监听器
- 绑定到测试数据库的 User / Game / Role 模型
"""
import sys
import tempfile
from pathlib import Path
from types import SimpleNamespace
from typing import Any, Dict, Generator, List, Tuple

import pytest

# 确保可以导入 pyrecord
sys.path.insert(0, str(Path(__file__).parent.parent))

from pyrecord import (  # noqa: E402
    Column, Database, QueryListener, Relationship, declarative_base, set_database,
)


SCHEMA = [
    "create table users ("
    " ID integer primary key autoincrement,"
    " name text,"
    " age integer,"
    " created_at text)",
    "create table games ("
    " id integer primary key autoincrement,"
    " title text,"
    " score real,"
    " user_id integer)",
    "create table roles ("
    " id integer primary key autoincrement,"
    " name text)",
    "create table role_user ("
    " user_id integer,"
    " role_id integer,"
    " since text)",
]


class RecordingListener(QueryListener):
    """记录所有执行过的语句"""

    def __init__(self) -> None:
        self.issued: List[str] = []
        self.results: List[Tuple[str, List[Dict[str, Any]]]] = []
        self.affected: List[Tuple[str, int]] = []

    def on_query_issued(self, sql: str) -> None:
        self.issued.append(sql)

    def on_result_produced(self, sql: str, rows: List[Dict[str, Any]]) -> None:
        self.results.append((sql, rows))

    def on_rows_affected(self, sql: str, count: int) -> None:
        self.affected.append((sql, count))

    def clear(self) -> None:
        self.issued.clear()
        self.results.clear()
        self.affected.clear()


def create_schema(db: Database) -> None:
    for ddl in SCHEMA:
        db.statement(ddl)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """
    提供临时目录 fixture

    Yields:
        临时目录的 Path 对象
    """
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def db() -> Generator[Database, None, None]:
    """
    内存 SQLite 数据库 fixture（已建表）

    Yields:
        Database 实例，测试结束后关闭
    """
    database = Database()
    create_schema(database)
    yield database
    database.close()


@pytest.fixture
def listener(db: Database) -> RecordingListener:
    """已注册到 db 的 SQL 记录监听器"""
    recording = RecordingListener()
    db.register(recording)
    return recording


@pytest.fixture
def models(db: Database) -> SimpleNamespace:
    """
    绑定到 db 的测试模型

    - User：主键列 ID（属性 id），has_many Game，belongs_to_many Role
    - Game：belongs_to User
    - Role：belongs_to_many User
    """
    Base = declarative_base(db)

    class User(Base):
        __tablename__ = 'users'
        __primary_key__ = 'ID'

        id = Column(int, name='ID')
        name = Column(str)
        age = Column(int)
        created_at = Column(str)
        nickname = Column(str, ignore=True)

        def games(self):
            return self.has_many(Game, 'user_id')

        def roles(self):
            return self.belongs_to_many(Role, 'role_user', 'user_id', 'role_id')

    class Game(Base):
        id = Column(int, primary_key=True)
        title = Column(str)
        score = Column(float)
        user_id = Column(int)

        owner = Relationship('User', 'belongs_to', 'user_id')

    class Role(Base):
        __tablename__ = 'roles'

        id = Column(int)
        name = Column(str)

        users = Relationship('User', 'belongs_to_many', 'role_id',
                             join_table='role_user', related_key='user_id')

    return SimpleNamespace(User=User, Game=Game, Role=Role, Base=Base)


@pytest.fixture
def default_db(db: Database) -> Generator[Database, None, None]:
    """将 db 设为进程默认数据库，测试结束后恢复"""
    set_database(db)
    yield db
    set_database(None)
