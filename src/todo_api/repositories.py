from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from threading import RLock
from typing import Callable, Dict, Iterable, List, Optional

from .models import TodoEntity, UserEntity
from .settings import Settings


class RepositoryError(Exception):
    """A genuine storage fault. Absence is never reported with this."""


class DuplicateEmailError(RepositoryError):
    """The store refused a user because the email is already taken."""


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract storage contract for users."""

    @abstractmethod
    def create(self, user: UserEntity) -> UserEntity:
        """Persist a new user. Raises DuplicateEmailError if the email is taken."""

    @abstractmethod
    def get(self, user_id: str) -> Optional[UserEntity]:
        """Return a user by id, or None if not found."""

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[UserEntity]:
        """Return a user by exact email, or None if not found."""

    @abstractmethod
    def update(self, user: UserEntity) -> Optional[UserEntity]:
        """Overwrite a stored user. Return it, or None if not found."""

    @abstractmethod
    def delete(self, user_id: str) -> bool:
        """Delete a user (and their todos). Return True if deleted, False if not found."""


# PUBLIC_INTERFACE
class TodoRepository(ABC):
    """Abstract storage contract for todos."""

    @abstractmethod
    def create(self, todo: TodoEntity) -> TodoEntity:
        """Persist a new todo and return it."""

    @abstractmethod
    def get(self, todo_id: str) -> Optional[TodoEntity]:
        """Return a todo by id, or None if not found."""

    @abstractmethod
    def list_by_owner(self, user_id: str, completed: Optional[bool] = None) -> List[TodoEntity]:
        """
        Return the owner's todos, most recently created first.
        - Optionally filtered by completion status
        - Always a list; empty when nothing matches
        """

    @abstractmethod
    def update(self, todo: TodoEntity) -> Optional[TodoEntity]:
        """Overwrite a stored todo. Return it, or None if not found."""

    @abstractmethod
    def delete(self, todo_id: str) -> bool:
        """Delete a todo by id. Return True if deleted, False if not found."""


class InMemoryUserRepository(UserRepository):
    """
    Thread-safe in-memory user storage suitable for testing and default runtime.
    """

    def __init__(self, on_delete: Optional[Callable[[str], None]] = None) -> None:
        self._lock = RLock()
        self._items: Dict[str, UserEntity] = {}
        self._on_delete = on_delete

    def create(self, user: UserEntity) -> UserEntity:
        with self._lock:
            if any(u["email"] == user["email"] for u in self._items.values()):
                raise DuplicateEmailError(f"email already registered: {user['email']}")
            self._items[user["id"]] = user.copy()
        return user.copy()

    def get(self, user_id: str) -> Optional[UserEntity]:
        with self._lock:
            item = self._items.get(user_id)
            return None if item is None else item.copy()

    def get_by_email(self, email: str) -> Optional[UserEntity]:
        with self._lock:
            for item in self._items.values():
                if item["email"] == email:
                    return item.copy()
            return None

    def update(self, user: UserEntity) -> Optional[UserEntity]:
        with self._lock:
            if user["id"] not in self._items:
                return None
            clash = any(
                u["email"] == user["email"] and u["id"] != user["id"]
                for u in self._items.values()
            )
            if clash:
                raise DuplicateEmailError(f"email already registered: {user['email']}")
            self._items[user["id"]] = user.copy()
            return user.copy()

    def delete(self, user_id: str) -> bool:
        with self._lock:
            removed = self._items.pop(user_id, None) is not None
        if removed and self._on_delete is not None:
            self._on_delete(user_id)
        return removed


class InMemoryTodoRepository(TodoRepository):
    """
    Thread-safe in-memory todo storage suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        # dicts keep insertion order, which breaks created_at ties in list_by_owner
        self._items: Dict[str, TodoEntity] = {}

    def create(self, todo: TodoEntity) -> TodoEntity:
        with self._lock:
            self._items[todo["id"]] = todo.copy()
        return todo.copy()

    def get(self, todo_id: str) -> Optional[TodoEntity]:
        with self._lock:
            item = self._items.get(todo_id)
            return None if item is None else item.copy()

    def list_by_owner(self, user_id: str, completed: Optional[bool] = None) -> List[TodoEntity]:
        with self._lock:
            items: Iterable[TodoEntity] = reversed(list(self._items.values()))
            items = [t for t in items if t["user_id"] == user_id]
            if completed is not None:
                items = [t for t in items if t["completed"] == completed]
            # sorted() is stable, so equal timestamps stay newest-inserted first
            items_sorted = sorted(items, key=lambda t: t["created_at"], reverse=True)
            # Return copies to avoid external mutation
            return [t.copy() for t in items_sorted]

    def update(self, todo: TodoEntity) -> Optional[TodoEntity]:
        with self._lock:
            if todo["id"] not in self._items:
                return None
            self._items[todo["id"]] = todo.copy()
            return todo.copy()

    def delete(self, todo_id: str) -> bool:
        with self._lock:
            return self._items.pop(todo_id, None) is not None

    def delete_by_owner(self, user_id: str) -> None:
        with self._lock:
            for todo_id in [k for k, t in self._items.items() if t["user_id"] == user_id]:
                del self._items[todo_id]


@dataclass
class Store:
    """The repositories of one backend plus its lifecycle hooks."""

    users: UserRepository
    todos: TodoRepository
    backend: str
    ping: Callable[[], bool]
    close: Callable[[], None]


def _noop() -> None:
    return None


# PUBLIC_INTERFACE
def build_store(settings: Settings) -> Store:
    """
    Factory to return the configured store based on settings.
    - memory: InMemoryUserRepository / InMemoryTodoRepository
    - sqlite: SQLiteUserRepository / SQLiteTodoRepository sharing one SQLAlchemy engine
    """
    if settings.persistence_backend == "sqlite":
        from .db import build_sqlite_store

        return build_sqlite_store(settings)

    todos = InMemoryTodoRepository()
    # Mirrors the ON DELETE CASCADE of the relational schema.
    users = InMemoryUserRepository(on_delete=todos.delete_by_owner)
    return Store(users=users, todos=todos, backend="memory", ping=lambda: True, close=_noop)
