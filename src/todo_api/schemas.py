from __future__ import annotations

from datetime import datetime
from typing import Generic, List, Optional, TypeVar

from pydantic import BaseModel, ConfigDict, Field, StrictBool, field_validator

from .password import MAX_PASSWORD_LENGTH, MIN_PASSWORD_LENGTH
from .validation import check_email_shape

DataT = TypeVar("DataT")

TITLE_MAX = 255
DESCRIPTION_MAX = 2000


def _strip_title(v: Optional[str]) -> Optional[str]:
    """Strip surrounding whitespace so a blank title fails the length rule."""
    if isinstance(v, str):
        return v.strip()
    return v


# PUBLIC_INTERFACE
class RegisterRequest(BaseModel):
    """
    Schema for registering a new account.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {"email": "a@b.com", "password": "password123", "name": "A"}
        }
    )

    email: str = Field(..., description="Login email, unique per account", min_length=1, max_length=255)
    password: str = Field(
        ...,
        description="Plaintext password (8..72 characters)",
        min_length=MIN_PASSWORD_LENGTH,
        max_length=MAX_PASSWORD_LENGTH,
    )
    name: str = Field(..., description="Display name", min_length=1, max_length=255)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return check_email_shape(v)


# PUBLIC_INTERFACE
class LoginRequest(BaseModel):
    """
    Schema for exchanging credentials for a session token.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"email": "a@b.com", "password": "password123"}}
    )

    email: str = Field(..., description="Login email", min_length=1)
    password: str = Field(..., description="Plaintext password", min_length=1)

    @field_validator("email")
    @classmethod
    def validate_email(cls, v: str) -> str:
        return check_email_shape(v)


# PUBLIC_INTERFACE
class TodoCreate(BaseModel):
    """
    Schema for creating a new Todo item. New items always start as not completed.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
            }
        }
    )

    title: str = Field(..., description="Short title for the todo item", min_length=1, max_length=TITLE_MAX)
    description: Optional[str] = Field(
        default=None, description="Optional detailed description", max_length=DESCRIPTION_MAX
    )

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        return _strip_title(v)


# PUBLIC_INTERFACE
class TodoUpdate(BaseModel):
    """
    Schema for updating an existing Todo item.
    All fields are optional; only provided, non-null fields will be updated.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "title": "Buy groceries and supplies",
                "description": "Milk, eggs, bread, and paper towels",
                "completed": True,
            }
        }
    )

    title: Optional[str] = Field(
        default=None, description="Short title for the todo item", min_length=1, max_length=TITLE_MAX
    )
    description: Optional[str] = Field(
        default=None, description="Optional detailed description", max_length=DESCRIPTION_MAX
    )
    completed: Optional[StrictBool] = Field(default=None, description="Completion status flag")

    @field_validator("title", mode="before")
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        return _strip_title(v)


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """
    Public view of a user. The password hash has no field here and never leaves the service.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "0b7f8d4e-3c1a-4f5e-9a43-5d1c2b7e9f10",
                "email": "a@b.com",
                "name": "A",
                "created_at": "2025-01-25T10:15:30.123456+00:00",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the user")
    email: str = Field(..., description="Login email")
    name: str = Field(..., description="Display name")
    created_at: datetime = Field(..., description="Registration timestamp")


# PUBLIC_INTERFACE
class LoginOut(BaseModel):
    """
    Session token plus the user it was issued to.
    """

    token: str = Field(..., description="Signed bearer token")
    expires_at: datetime = Field(..., description="Instant after which the token is rejected")
    user: UserOut


# PUBLIC_INTERFACE
class TodoOut(BaseModel):
    """
    Schema returned by the API for a Todo item.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": "5a3c7e2b-8d6f-4b1a-9e0c-2f4d6b8a1c3e",
                "user_id": "0b7f8d4e-3c1a-4f5e-9a43-5d1c2b7e9f10",
                "title": "Buy groceries",
                "description": "Milk, eggs, bread",
                "completed": False,
                "created_at": "2025-01-25T10:15:30.123456+00:00",
                "updated_at": "2025-01-26T09:00:00.000001+00:00",
            }
        }
    )

    id: str = Field(..., description="Unique identifier of the todo item")
    user_id: str = Field(..., description="Identifier of the owning user")
    title: str = Field(..., description="Short title for the todo item")
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    completed: bool = Field(..., description="Completion status flag")
    created_at: datetime = Field(..., description="Creation timestamp")
    updated_at: datetime = Field(..., description="Last update timestamp")


class MessageOut(BaseModel):
    message: str


class HealthOut(BaseModel):
    status: str = Field(..., description="'healthy' or 'unhealthy'")
    database: str = Field(..., description="Store liveness: 'healthy' or 'unhealthy'")
    time: str = Field(..., description="Server time, RFC 3339 UTC")


# PUBLIC_INTERFACE
class Envelope(BaseModel, Generic[DataT]):
    """
    Success envelope wrapped around every response body.
    """

    success: bool = Field(default=True, description="Always true for successful responses")
    data: DataT


class ErrorBody(BaseModel):
    code: str = Field(..., description="Stable machine-readable error code")
    message: str = Field(..., description="Human readable message")
    details: Optional[List[str]] = Field(
        default=None, description="Per-field problems as 'field: reason' strings"
    )


# PUBLIC_INTERFACE
class ErrorEnvelope(BaseModel):
    """
    Error envelope; used for OpenAPI documentation of error responses.
    """

    success: bool = Field(default=False)
    error: ErrorBody
