"""Signed session tokens.

Tokens are stateless HS256 JWTs. Nothing is stored server-side, so there is no
revocation: a token stays valid until its ``exp`` even after the account
changes, and refreshing does not invalidate the token it was refreshed from.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Dict

import jwt

from .models import utcnow

ALGORITHM = "HS256"
DEFAULT_ISSUER = "todo-api"
DEFAULT_TTL = timedelta(hours=72)
_REQUIRED_CLAIMS = ["user_id", "email", "iat", "nbf", "exp", "iss"]

Clock = Callable[[], datetime]


class InvalidTokenError(Exception):
    """The token is malformed, tampered with, or outside its validity window."""


class ExpiredTokenError(InvalidTokenError):
    pass


@dataclass(frozen=True)
class IssuedToken:
    token: str
    expires_at: datetime


@dataclass(frozen=True)
class TokenClaims:
    user_id: str
    email: str
    issued_at: datetime
    not_before: datetime
    expires_at: datetime


def _from_timestamp(value: Any) -> datetime:
    return datetime.fromtimestamp(int(value), tz=timezone.utc)


# PUBLIC_INTERFACE
class TokenManager:
    """
    Issues, validates and refreshes session tokens signed with one shared secret.

    Args:
        secret: symmetric signing key known only to the server process.
        ttl: lifetime of every issued token.
        issuer: value of the ``iss`` claim, checked on validation.
        clock: source of "now"; injectable so validity windows are testable.
    """

    def __init__(
        self,
        secret: str,
        ttl: timedelta = DEFAULT_TTL,
        issuer: str = DEFAULT_ISSUER,
        clock: Clock = utcnow,
    ) -> None:
        if not secret:
            raise ValueError("token secret must not be empty")
        self._secret = secret
        self._ttl = ttl
        self._issuer = issuer
        self._clock = clock

    def issue(self, user_id: str, email: str) -> IssuedToken:
        # NumericDate has one-second resolution; truncate so expires_at matches exp.
        now = self._clock().replace(microsecond=0)
        expires_at = now + self._ttl
        payload: Dict[str, Any] = {
            "user_id": str(user_id),
            "email": email,
            "iat": int(now.timestamp()),
            "nbf": int(now.timestamp()),
            "exp": int(expires_at.timestamp()),
            "iss": self._issuer,
        }
        token = jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        return IssuedToken(token=token, expires_at=expires_at)

    def validate(self, token: str) -> TokenClaims:
        """
        Verify algorithm, signature, issuer and validity window.

        A token is accepted up to and including its expiry instant and
        rejected strictly after it.

        Raises:
            ExpiredTokenError: ``now`` is past ``exp``.
            InvalidTokenError: anything else is wrong with the token.
        """
        try:
            header = jwt.get_unverified_header(token)
        except jwt.PyJWTError as e:
            raise InvalidTokenError(f"failed to parse token: {e}") from e
        if header.get("alg") != ALGORITHM:
            raise InvalidTokenError(f"unexpected signing method: {header.get('alg')}")

        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self._issuer,
                options={
                    "require": _REQUIRED_CLAIMS,
                    # The window is checked below against the injected clock.
                    "verify_exp": False,
                    "verify_nbf": False,
                    "verify_iat": False,
                },
            )
        except jwt.PyJWTError as e:
            raise InvalidTokenError(f"failed to parse token: {e}") from e

        try:
            claims = TokenClaims(
                user_id=str(payload["user_id"]),
                email=str(payload["email"]),
                issued_at=_from_timestamp(payload["iat"]),
                not_before=_from_timestamp(payload["nbf"]),
                expires_at=_from_timestamp(payload["exp"]),
            )
        except (TypeError, ValueError, OverflowError) as e:
            raise InvalidTokenError(f"invalid token claims: {e}") from e

        now = self._clock()
        if now > claims.expires_at:
            raise ExpiredTokenError("token has expired")
        if now < claims.not_before:
            raise InvalidTokenError("token is not yet valid")
        return claims

    def refresh(self, token: str) -> IssuedToken:
        """Issue a fresh token for the identity in ``token`` while it is still valid."""
        claims = self.validate(token)
        return self.issue(claims.user_id, claims.email)
