from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Generator, List, Mapping, Optional

from sqlalchemy import create_engine, event, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.pool import QueuePool, StaticPool

from .models import TodoEntity, UserEntity
from .repositories import (
    DuplicateEmailError,
    RepositoryError,
    Store,
    TodoRepository,
    UserRepository,
)
from .settings import Settings

logger = logging.getLogger(__name__)

MEMORY_PATH = ":memory:"


@dataclass(frozen=True)
class _UserCols:
    table: str = "users"
    id: str = "id"
    email: str = "email"
    password_hash: str = "password_hash"
    name: str = "name"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


@dataclass(frozen=True)
class _TodoCols:
    table: str = "todos"
    id: str = "id"
    user_id: str = "user_id"
    title: str = "title"
    description: str = "description"
    completed: str = "completed"
    created_at: str = "created_at"
    updated_at: str = "updated_at"


_U = _UserCols()
_T = _TodoCols()


def _enable_foreign_keys(dbapi_conn: Any, _record: Any) -> None:
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA foreign_keys = ON")
    cursor.close()


# PUBLIC_INTERFACE
def create_db_engine(
    db_path: str,
    pool_size: int = 25,
    pool_recycle: float = 3600.0,
    pool_timeout: float = 10.0,
) -> Engine:
    """
    Build the SQLAlchemy engine shared by the repositories.

    - File databases get a ``QueuePool`` of at most ``pool_size`` connections
      (no overflow). Checkout waits up to ``pool_timeout`` seconds, every
      connection is pinged before use and recycled after ``pool_recycle``
      seconds.
    - ``:memory:`` gets a ``StaticPool``: one connection shared by every
      caller, since each new sqlite3 connection would open its own empty
      database.
    - Foreign keys are enforced on every connection.
    """
    connect_args = {"check_same_thread": False}
    if db_path == MEMORY_PATH:
        engine = create_engine("sqlite://", poolclass=StaticPool, connect_args=connect_args)
    else:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        engine = create_engine(
            f"sqlite:///{db_path}",
            poolclass=QueuePool,
            pool_size=pool_size,
            max_overflow=0,
            pool_timeout=pool_timeout,
            pool_recycle=int(pool_recycle),
            pool_pre_ping=True,
            connect_args={**connect_args, "timeout": pool_timeout},
        )
    event.listen(engine, "connect", _enable_foreign_keys)
    return engine


@contextmanager
def _translate_errors(operation: str) -> Generator[None, None, None]:
    try:
        yield
    except IntegrityError as e:
        if "UNIQUE" in str(e.orig) and f"{_U.table}.{_U.email}" in str(e.orig):
            raise DuplicateEmailError("email already registered") from e
        raise RepositoryError(f"{operation} failed: {e.orig}") from e
    except SQLAlchemyError as e:
        raise RepositoryError(f"{operation} failed: {e}") from e


# PUBLIC_INTERFACE
def ping_database(engine: Engine) -> bool:
    """Run ``SELECT 1``; False when no connection can be used."""
    try:
        with engine.connect() as conn:
            conn.execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("database ping failed")
        return False
    return True


def init_schema(engine: Engine) -> None:
    """Create tables and indexes if they do not exist yet."""
    with _translate_errors("schema init"), engine.begin() as conn:
        conn.execute(
            text(
                f"""
                CREATE TABLE IF NOT EXISTS {_U.table} (
                    {_U.id} TEXT PRIMARY KEY,
                    {_U.email} TEXT NOT NULL UNIQUE,
                    {_U.password_hash} TEXT NOT NULL,
                    {_U.name} TEXT NOT NULL,
                    {_U.created_at} TEXT NOT NULL,
                    {_U.updated_at} TEXT NOT NULL
                )
                """
            )
        )
        conn.execute(
            text(f"CREATE INDEX IF NOT EXISTS idx_{_U.table}_email ON {_U.table}({_U.email})")
        )
        conn.execute(
            text(
                f"""
                CREATE TABLE IF NOT EXISTS {_T.table} (
                    {_T.id} TEXT PRIMARY KEY,
                    {_T.user_id} TEXT NOT NULL REFERENCES {_U.table}({_U.id}) ON DELETE CASCADE,
                    {_T.title} TEXT NOT NULL,
                    {_T.description} TEXT NULL,
                    {_T.completed} INTEGER NOT NULL DEFAULT 0,
                    {_T.created_at} TEXT NOT NULL,
                    {_T.updated_at} TEXT NOT NULL
                )
                """
            )
        )
        conn.execute(
            text(f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_user_id ON {_T.table}({_T.user_id})")
        )
        conn.execute(
            text(
                f"CREATE INDEX IF NOT EXISTS idx_{_T.table}_user_id_completed "
                f"ON {_T.table}({_T.user_id}, {_T.completed})"
            )
        )


def _dump_dt(value: datetime) -> str:
    return value.isoformat(timespec="microseconds")


def _parse_dt(value: str) -> datetime:
    return datetime.fromisoformat(value)


class SQLiteUserRepository(UserRepository):
    """
    SQLite-backed implementation of the UserRepository interface.
    """

    _select_by_id = text(f"SELECT * FROM {_U.table} WHERE {_U.id} = :id")

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _row_to_entity(self, row: Mapping[str, Any]) -> UserEntity:
        return {
            "id": str(row[_U.id]),
            "email": str(row[_U.email]),
            "password_hash": str(row[_U.password_hash]),
            "name": str(row[_U.name]),
            "created_at": _parse_dt(row[_U.created_at]),
            "updated_at": _parse_dt(row[_U.updated_at]),
        }

    def create(self, user: UserEntity) -> UserEntity:
        with _translate_errors("create user"), self._engine.begin() as conn:
            conn.execute(
                text(
                    f"""
                    INSERT INTO {_U.table} ({_U.id}, {_U.email}, {_U.password_hash},
                        {_U.name}, {_U.created_at}, {_U.updated_at})
                    VALUES (:id, :email, :password_hash, :name, :created_at, :updated_at)
                    """
                ),
                {
                    "id": user["id"],
                    "email": user["email"],
                    "password_hash": user["password_hash"],
                    "name": user["name"],
                    "created_at": _dump_dt(user["created_at"]),
                    "updated_at": _dump_dt(user["updated_at"]),
                },
            )
            row = conn.execute(self._select_by_id, {"id": user["id"]}).mappings().first()
        if row is None:
            raise RepositoryError("create user failed: row not found after insert")
        return self._row_to_entity(row)

    def get(self, user_id: str) -> Optional[UserEntity]:
        with _translate_errors("get user"), self._engine.connect() as conn:
            row = conn.execute(self._select_by_id, {"id": user_id}).mappings().first()
        return self._row_to_entity(row) if row else None

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with _translate_errors("get user by email"), self._engine.connect() as conn:
            row = conn.execute(
                text(f"SELECT * FROM {_U.table} WHERE {_U.email} = :email"), {"email": email}
            ).mappings().first()
        return self._row_to_entity(row) if row else None

    def update(self, user: UserEntity) -> Optional[UserEntity]:
        with _translate_errors("update user"), self._engine.begin() as conn:
            result = conn.execute(
                text(
                    f"""
                    UPDATE {_U.table}
                    SET {_U.email} = :email, {_U.password_hash} = :password_hash,
                        {_U.name} = :name, {_U.updated_at} = :updated_at
                    WHERE {_U.id} = :id
                    """
                ),
                {
                    "email": user["email"],
                    "password_hash": user["password_hash"],
                    "name": user["name"],
                    "updated_at": _dump_dt(user["updated_at"]),
                    "id": user["id"],
                },
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(self._select_by_id, {"id": user["id"]}).mappings().first()
        return self._row_to_entity(row) if row else None

    def delete(self, user_id: str) -> bool:
        with _translate_errors("delete user"), self._engine.begin() as conn:
            result = conn.execute(
                text(f"DELETE FROM {_U.table} WHERE {_U.id} = :id"), {"id": user_id}
            )
            return result.rowcount > 0


class SQLiteTodoRepository(TodoRepository):
    """
    SQLite-backed implementation of the TodoRepository interface.
    """

    _select_by_id = text(f"SELECT * FROM {_T.table} WHERE {_T.id} = :id")

    def __init__(self, engine: Engine) -> None:
        self._engine = engine

    def _row_to_entity(self, row: Mapping[str, Any]) -> TodoEntity:
        return {
            "id": str(row[_T.id]),
            "user_id": str(row[_T.user_id]),
            "title": str(row[_T.title]),
            "description": row[_T.description] if row[_T.description] is not None else None,
            "completed": bool(row[_T.completed]),
            "created_at": _parse_dt(row[_T.created_at]),
            "updated_at": _parse_dt(row[_T.updated_at]),
        }

    def create(self, todo: TodoEntity) -> TodoEntity:
        with _translate_errors("create todo"), self._engine.begin() as conn:
            conn.execute(
                text(
                    f"""
                    INSERT INTO {_T.table} ({_T.id}, {_T.user_id}, {_T.title}, {_T.description},
                        {_T.completed}, {_T.created_at}, {_T.updated_at})
                    VALUES (:id, :user_id, :title, :description, :completed, :created_at, :updated_at)
                    """
                ),
                {
                    "id": todo["id"],
                    "user_id": todo["user_id"],
                    "title": todo["title"],
                    "description": todo["description"],
                    "completed": 1 if todo["completed"] else 0,
                    "created_at": _dump_dt(todo["created_at"]),
                    "updated_at": _dump_dt(todo["updated_at"]),
                },
            )
            row = conn.execute(self._select_by_id, {"id": todo["id"]}).mappings().first()
        if row is None:
            raise RepositoryError("create todo failed: row not found after insert")
        return self._row_to_entity(row)

    def get(self, todo_id: str) -> Optional[TodoEntity]:
        with _translate_errors("get todo"), self._engine.connect() as conn:
            row = conn.execute(self._select_by_id, {"id": todo_id}).mappings().first()
        return self._row_to_entity(row) if row else None

    def list_by_owner(self, user_id: str, completed: Optional[bool] = None) -> List[TodoEntity]:
        clauses = [f"{_T.user_id} = :user_id"]
        params: Dict[str, Any] = {"user_id": user_id}
        if completed is not None:
            clauses.append(f"{_T.completed} = :completed")
            params["completed"] = 1 if completed else 0
        where_sql = " AND ".join(clauses)

        with _translate_errors("list todos"), self._engine.connect() as conn:
            rows = conn.execute(
                text(
                    f"""
                    SELECT * FROM {_T.table}
                    WHERE {where_sql}
                    ORDER BY {_T.created_at} DESC, rowid DESC
                    """
                ),
                params,
            ).mappings().all()
        return [self._row_to_entity(r) for r in rows]

    def update(self, todo: TodoEntity) -> Optional[TodoEntity]:
        # user_id is not in SET: ownership never transfers.
        with _translate_errors("update todo"), self._engine.begin() as conn:
            result = conn.execute(
                text(
                    f"""
                    UPDATE {_T.table}
                    SET {_T.title} = :title, {_T.description} = :description,
                        {_T.completed} = :completed, {_T.updated_at} = :updated_at
                    WHERE {_T.id} = :id
                    """
                ),
                {
                    "title": todo["title"],
                    "description": todo["description"],
                    "completed": 1 if todo["completed"] else 0,
                    "updated_at": _dump_dt(todo["updated_at"]),
                    "id": todo["id"],
                },
            )
            if result.rowcount == 0:
                return None
            row = conn.execute(self._select_by_id, {"id": todo["id"]}).mappings().first()
        return self._row_to_entity(row) if row else None

    def delete(self, todo_id: str) -> bool:
        with _translate_errors("delete todo"), self._engine.begin() as conn:
            result = conn.execute(
                text(f"DELETE FROM {_T.table} WHERE {_T.id} = :id"), {"id": todo_id}
            )
            return result.rowcount > 0


# PUBLIC_INTERFACE
def build_sqlite_store(settings: Settings) -> Store:
    """Create the engine, make sure the schema exists, and wire both repositories to it."""
    engine = create_db_engine(
        settings.sqlite_db_path,
        pool_size=settings.db_pool_max_size,
        pool_recycle=settings.db_pool_max_lifetime_seconds,
        pool_timeout=settings.db_pool_acquire_timeout_seconds,
    )
    init_schema(engine)
    logger.info("database connection established", extra={"path": settings.sqlite_db_path})
    return Store(
        users=SQLiteUserRepository(engine),
        todos=SQLiteTodoRepository(engine),
        backend="sqlite",
        ping=lambda: ping_database(engine),
        close=engine.dispose,
    )
