from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from .errors import Unauthorized
from .tokens import InvalidTokenError, TokenManager

logger = logging.getLogger(__name__)

# Only used so the OpenAPI schema advertises bearer auth; the header is parsed below.
_security = HTTPBearer(auto_error=False)


@dataclass(frozen=True)
class Principal:
    """Identity of the authenticated caller, taken from token claims."""

    user_id: str
    email: str


# PUBLIC_INTERFACE
def extract_bearer_token(authorization: Optional[str]) -> str:
    """
    Return the token from an ``Authorization: Bearer <token>`` header value.

    Raises:
        Unauthorized: the header is missing or not exactly ``Bearer <token>``.
    """
    if not authorization:
        raise Unauthorized()
    parts = authorization.split(" ")
    if len(parts) != 2 or parts[0] != "Bearer" or not parts[1]:
        raise Unauthorized("Invalid authorization header format")
    return parts[1]


def get_token_manager(request: Request) -> TokenManager:
    return request.app.state.token_manager


# PUBLIC_INTERFACE
def get_bearer_token(
    request: Request,
    _creds: Optional[HTTPAuthorizationCredentials] = Depends(_security),
) -> str:
    """FastAPI dependency returning the raw bearer token of the request."""
    return extract_bearer_token(request.headers.get("Authorization"))


# PUBLIC_INTERFACE
def get_current_principal(
    token: str = Depends(get_bearer_token),
    tokens: TokenManager = Depends(get_token_manager),
) -> Principal:
    """
    FastAPI dependency enforcing a valid session token.

    Raises:
        Unauthorized: missing, malformed, invalid or expired token.
    """
    try:
        claims = tokens.validate(token)
    except InvalidTokenError as e:
        logger.warning("invalid token: %s", e)
        raise Unauthorized("Invalid or expired token") from e
    return Principal(user_id=claims.user_id, email=claims.email)
