from __future__ import annotations

import uuid
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status

from ..auth import Principal, get_current_principal
from ..errors import BadRequest
from ..models import TodoEntity
from ..schemas import Envelope, ErrorEnvelope, MessageOut, TodoCreate, TodoOut, TodoUpdate
from ..services.todos import TodoService

router = APIRouter(
    prefix="/api/v1/todos",
    tags=["todos"],
    responses={
        401: {"model": ErrorEnvelope, "description": "Missing, invalid or expired token"},
    },
)

_OWNED_RESPONSES = {
    400: {"model": ErrorEnvelope, "description": "Invalid todo ID or validation error"},
    403: {"model": ErrorEnvelope, "description": "Todo belongs to another user"},
    404: {"model": ErrorEnvelope, "description": "Todo not found"},
}


def _get_service(request: Request) -> TodoService:
    """
    Dependency returning the TodoService built at application startup.
    """
    return request.app.state.todo_service


def _parse_todo_id(todo_id: str) -> str:
    try:
        return str(uuid.UUID(todo_id))
    except ValueError as e:
        raise BadRequest("Invalid todo ID") from e


def _out(todo: TodoEntity) -> TodoOut:
    return TodoOut(**todo)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=Envelope[TodoOut],
    status_code=status.HTTP_201_CREATED,
    summary="Create Todo",
    description="Create a new Todo item owned by the caller and return the created resource.",
    responses={
        201: {"description": "Todo created successfully"},
        400: {"model": ErrorEnvelope, "description": "Validation error"},
    },
)
def create_todo(
    payload: TodoCreate,
    principal: Principal = Depends(get_current_principal),
    service: TodoService = Depends(_get_service),
) -> Envelope[TodoOut]:
    """
    Create a new Todo.
    """
    created = service.create(principal.user_id, payload)
    return Envelope[TodoOut](data=_out(created))


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=Envelope[List[TodoOut]],
    summary="List Todos",
    description=(
        "List the caller's todos, most recently created first.\n\n"
        "Query parameters:\n"
        "- completed: filter by completion status\n\n"
        "An account with no todos gets an empty list."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
    },
)
def list_todos(
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    principal: Principal = Depends(get_current_principal),
    service: TodoService = Depends(_get_service),
) -> Envelope[List[TodoOut]]:
    """
    List the caller's todos.
    """
    items = service.list(principal.user_id, completed=completed)
    return Envelope[List[TodoOut]](data=[_out(it) for it in items])


# PUBLIC_INTERFACE
@router.get(
    "/{todo_id}",
    response_model=Envelope[TodoOut],
    summary="Get Todo",
    description="Get a single Todo item by ID.",
    responses={200: {"description": "Todo found"}, **_OWNED_RESPONSES},
)
def get_todo(
    todo_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TodoService = Depends(_get_service),
) -> Envelope[TodoOut]:
    """
    Retrieve a single Todo item by its ID.
    """
    item = service.get(principal.user_id, _parse_todo_id(todo_id))
    return Envelope[TodoOut](data=_out(item))


# PUBLIC_INTERFACE
@router.patch(
    "/{todo_id}",
    response_model=Envelope[TodoOut],
    summary="Update Todo",
    description="Partially update fields of a Todo item. Omitted or null fields keep their values.",
    responses={200: {"description": "Todo updated"}, **_OWNED_RESPONSES},
)
def patch_todo(
    todo_id: str,
    payload: TodoUpdate,
    principal: Principal = Depends(get_current_principal),
    service: TodoService = Depends(_get_service),
) -> Envelope[TodoOut]:
    """
    Partial update of a Todo item.
    """
    updated = service.update(principal.user_id, _parse_todo_id(todo_id), payload)
    return Envelope[TodoOut](data=_out(updated))


# PUBLIC_INTERFACE
@router.delete(
    "/{todo_id}",
    response_model=Envelope[MessageOut],
    summary="Delete Todo",
    description="Delete a Todo item by ID.",
    responses={200: {"description": "Todo deleted"}, **_OWNED_RESPONSES},
)
def delete_todo(
    todo_id: str,
    principal: Principal = Depends(get_current_principal),
    service: TodoService = Depends(_get_service),
) -> Envelope[MessageOut]:
    """
    Delete a Todo.
    """
    service.delete(principal.user_id, _parse_todo_id(todo_id))
    return Envelope[MessageOut](data=MessageOut(message="Todo deleted successfully"))
