from __future__ import annotations

from fastapi import APIRouter, Depends, Request, status

from ..auth import get_bearer_token
from ..schemas import Envelope, ErrorEnvelope, LoginOut, LoginRequest, RegisterRequest, UserOut
from ..services.auth import AuthService

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["auth"],
)


def _get_service(request: Request) -> AuthService:
    """
    Dependency returning the AuthService built at application startup.
    """
    return request.app.state.auth_service


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=Envelope[UserOut],
    status_code=status.HTTP_201_CREATED,
    summary="Register",
    description="Create an account. The response never contains the password or its hash.",
    responses={
        201: {"description": "User registered"},
        400: {"model": ErrorEnvelope, "description": "Validation error or malformed body"},
        409: {"model": ErrorEnvelope, "description": "Email already registered"},
    },
)
def register(payload: RegisterRequest, service: AuthService = Depends(_get_service)) -> Envelope[UserOut]:
    """
    Register a new user.
    """
    return Envelope[UserOut](data=service.register(payload))


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=Envelope[LoginOut],
    summary="Login",
    description="Exchange email and password for a signed session token.",
    responses={
        200: {"description": "Token issued"},
        400: {"model": ErrorEnvelope, "description": "Validation error or malformed body"},
        401: {"model": ErrorEnvelope, "description": "Invalid email or password"},
    },
)
def login(payload: LoginRequest, service: AuthService = Depends(_get_service)) -> Envelope[LoginOut]:
    """
    Log a user in.
    """
    return Envelope[LoginOut](data=service.login(payload))


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=Envelope[LoginOut],
    summary="Refresh Token",
    description=(
        "Issue a new token for the bearer of a still-valid token. "
        "Expired tokens cannot be refreshed, and the old token is not revoked."
    ),
    responses={
        200: {"description": "Token refreshed"},
        401: {"model": ErrorEnvelope, "description": "Missing, invalid or expired token"},
        404: {"model": ErrorEnvelope, "description": "User no longer exists"},
    },
)
def refresh(
    token: str = Depends(get_bearer_token),
    service: AuthService = Depends(_get_service),
) -> Envelope[LoginOut]:
    """
    Refresh the caller's session token.
    """
    return Envelope[LoginOut](data=service.refresh(token))
