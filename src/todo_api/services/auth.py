from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable

from ..errors import DuplicateResource, InternalError, InvalidCredentials, NotFound, Unauthorized
from ..models import UserEntity, utcnow
from ..password import PasswordHasher, PasswordHashError
from ..repositories import DuplicateEmailError, RepositoryError, UserRepository
from ..schemas import LoginOut, LoginRequest, RegisterRequest, UserOut
from ..tokens import InvalidTokenError, IssuedToken, TokenManager

logger = logging.getLogger(__name__)


def to_user_out(user: UserEntity) -> UserOut:
    """Public view of a stored user; the password hash is dropped here."""
    return UserOut(
        id=user["id"],
        email=user["email"],
        name=user["name"],
        created_at=user["created_at"],
    )


# PUBLIC_INTERFACE
class AuthService:
    """
    Registration, login and token refresh.

    Collaborators are injected: the user store, the token manager that holds
    the signing secret, and the password hasher.
    """

    def __init__(
        self,
        users: UserRepository,
        tokens: TokenManager,
        hasher: PasswordHasher,
        clock: Callable[[], datetime] = utcnow,
    ) -> None:
        self._users = users
        self._tokens = tokens
        self._hasher = hasher
        self._clock = clock

    def register(self, req: RegisterRequest) -> UserOut:
        """
        Create an account.

        Raises:
            DuplicateResource: the email is already registered.
        """
        try:
            existing = self._users.get_by_email(req.email)
        except RepositoryError:
            logger.exception("failed to check existing user")
            raise InternalError()
        if existing is not None:
            raise DuplicateResource()

        try:
            password_hash = self._hasher.hash(req.password)
        except PasswordHashError:
            logger.exception("failed to hash password")
            raise InternalError()

        now = self._clock()
        user: UserEntity = {
            "id": str(uuid.uuid4()),
            "email": req.email,
            "password_hash": password_hash,
            "name": req.name,
            "created_at": now,
            "updated_at": now,
        }
        try:
            created = self._users.create(user)
        except DuplicateEmailError:
            # Lost a race with a concurrent registration of the same email.
            raise DuplicateResource()
        except RepositoryError:
            logger.exception("failed to create user")
            raise InternalError()

        logger.info("user registered successfully", extra={"user_id": created["id"]})
        return to_user_out(created)

    def login(self, req: LoginRequest) -> LoginOut:
        """
        Exchange credentials for a token.

        Raises:
            InvalidCredentials: unknown email or wrong password; the two are
                indistinguishable.
        """
        try:
            user = self._users.get_by_email(req.email)
        except RepositoryError:
            logger.exception("failed to get user by email")
            raise InternalError()
        if user is None:
            raise InvalidCredentials()

        try:
            matches = self._hasher.verify(req.password, user["password_hash"])
        except PasswordHashError:
            logger.exception("failed to verify password", extra={"user_id": user["id"]})
            raise InternalError()
        if not matches:
            raise InvalidCredentials()

        issued = self._tokens.issue(user["id"], user["email"])
        logger.info("user logged in successfully", extra={"user_id": user["id"]})
        return self._login_out(issued, user)

    def refresh(self, token: str) -> LoginOut:
        """
        Trade a still-valid token for a new one with a fresh expiry.

        The old token stays valid until its own expiry.

        Raises:
            Unauthorized: the token is invalid or already expired.
            NotFound: the user behind the token no longer exists.
        """
        try:
            issued = self._tokens.refresh(token)
        except InvalidTokenError as e:
            logger.warning("failed to refresh token: %s", e)
            raise Unauthorized("Invalid or expired token") from e

        try:
            claims = self._tokens.validate(issued.token)
        except InvalidTokenError:
            logger.exception("failed to validate refreshed token")
            raise InternalError()

        user = self.get_user(claims.user_id)
        logger.info("token refreshed successfully", extra={"user_id": user["id"]})
        return self._login_out(issued, user)

    def get_user(self, user_id: str) -> UserEntity:
        """
        Raises:
            NotFound: no user has this id.
        """
        try:
            user = self._users.get(user_id)
        except RepositoryError:
            logger.exception("failed to get user by ID", extra={"user_id": user_id})
            raise InternalError()
        if user is None:
            raise NotFound("User not found")
        return user

    @staticmethod
    def _login_out(issued: IssuedToken, user: UserEntity) -> LoginOut:
        return LoginOut(token=issued.token, expires_at=issued.expires_at, user=to_user_out(user))
