from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, List, Optional

from ..errors import Forbidden, InternalError, NotFound
from ..models import TodoEntity, utcnow
from ..repositories import RepositoryError, TodoRepository
from ..schemas import TodoCreate, TodoUpdate

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TodoService:
    """
    Ownership-checked CRUD over the todo store.

    get, update and delete all go through ``get``: a missing todo is NotFound,
    a todo owned by someone else is Forbidden. The two are kept distinct.
    """

    def __init__(self, todos: TodoRepository, clock: Callable[[], datetime] = utcnow) -> None:
        self._todos = todos
        self._clock = clock

    def create(self, user_id: str, req: TodoCreate) -> TodoEntity:
        now = self._clock()
        todo: TodoEntity = {
            "id": str(uuid.uuid4()),
            "user_id": user_id,
            "title": req.title,
            "description": req.description,
            "completed": False,
            "created_at": now,
            "updated_at": now,
        }
        try:
            created = self._todos.create(todo)
        except RepositoryError:
            logger.exception("failed to create todo", extra={"user_id": user_id})
            raise InternalError()
        logger.info("todo created successfully", extra={"todo_id": created["id"], "user_id": user_id})
        return created

    def get(self, user_id: str, todo_id: str) -> TodoEntity:
        try:
            todo = self._todos.get(todo_id)
        except RepositoryError:
            logger.exception("failed to get todo by ID", extra={"todo_id": todo_id})
            raise InternalError()
        if todo is None:
            raise NotFound("Todo not found")
        if todo["user_id"] != user_id:
            logger.warning(
                "user attempted to access todo they don't own",
                extra={"user_id": user_id, "todo_id": todo_id, "owner_id": todo["user_id"]},
            )
            raise Forbidden()
        return todo

    def list(self, user_id: str, completed: Optional[bool] = None) -> List[TodoEntity]:
        """Caller's todos, newest first. Never None."""
        try:
            todos = self._todos.list_by_owner(user_id, completed=completed)
        except RepositoryError:
            logger.exception("failed to list todos", extra={"user_id": user_id})
            raise InternalError()
        return list(todos or [])

    def update(self, user_id: str, todo_id: str, req: TodoUpdate) -> TodoEntity:
        """Partial merge: only non-null fields in ``req`` overwrite; updated_at always moves."""
        todo = self.get(user_id, todo_id)

        if req.title is not None:
            todo["title"] = req.title
        if req.description is not None:
            todo["description"] = req.description
        if req.completed is not None:
            todo["completed"] = req.completed
        todo["updated_at"] = self._clock()

        try:
            updated = self._todos.update(todo)
        except RepositoryError:
            logger.exception("failed to update todo", extra={"todo_id": todo_id})
            raise InternalError()
        if updated is None:
            # Deleted between the ownership check and the write.
            raise NotFound("Todo not found")
        logger.info("todo updated successfully", extra={"todo_id": todo_id, "user_id": user_id})
        return updated

    def delete(self, user_id: str, todo_id: str) -> None:
        self.get(user_id, todo_id)
        try:
            self._todos.delete(todo_id)
        except RepositoryError:
            logger.exception("failed to delete todo", extra={"todo_id": todo_id})
            raise InternalError()
        logger.info("todo deleted successfully", extra={"todo_id": todo_id, "user_id": user_id})
