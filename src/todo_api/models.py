from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional, TypedDict


def utcnow() -> datetime:
    """Timezone-aware current UTC time; the default clock of every component."""
    return datetime.now(timezone.utc)


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A registered account as held by the store.

    Fields:
    - id: opaque UUID string
    - email: unique, case-sensitive as stored
    - password_hash: bcrypt hash; never leaves the service layer
    - name: display name
    - created_at / updated_at: timezone-aware UTC timestamps
    """

    id: str
    email: str
    password_hash: str
    name: str
    created_at: datetime
    updated_at: datetime


# PUBLIC_INTERFACE
class TodoEntity(TypedDict):
    """
    A todo item as held by the store.

    Fields:
    - id: opaque UUID string
    - user_id: owning user's id, fixed at creation
    - title: 1..255 chars (trimmed on input via schemas)
    - description: optional, up to 2000 chars
    - completed: completion flag, False on creation
    - created_at / updated_at: timezone-aware UTC timestamps; updated_at moves on every mutation
    """

    id: str
    user_id: str
    title: str
    description: Optional[str]
    completed: bool
    created_at: datetime
    updated_at: datetime
