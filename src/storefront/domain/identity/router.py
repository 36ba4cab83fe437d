"""Identity REST API router.

Registration and login are public (excluded from credential resolution)
and share one per-client rate limit; ``/auth/me`` needs any
authenticated principal and account administration needs the admin role.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime  # noqa: TC003 (pydantic resolves it at runtime)
from typing import Annotated
from uuid import UUID  # noqa: TC003 (FastAPI resolves path params at runtime)

from fastapi import APIRouter, Depends, Request, Response
from pydantic import BaseModel, Field

from storefront.domain.identity.accounts import (
    LoginCommand,
    LoginHandler,
    RegisterUserCommand,
    RegisterUserHandler,
    UpdateAccountCommand,
    UpdateAccountHandler,
    UpdateProfileCommand,
    UpdateProfileHandler,
)
from storefront.domain.identity.repository import UserRepository
from storefront.domain.identity.user import User
from storefront.foundation.domain.principal import Principal, Role
from storefront.infra.auth.dependencies import CurrentPrincipal, require_roles
from storefront.infra.auth.gate import AuthGate, IssuedCredential
from storefront.infra.auth.rate_limit import enforce_auth_rate_limit

router = APIRouter(prefix="/auth", tags=["auth"])


@dataclass(frozen=True)
class CookiePolicy:
    name: str
    secure: bool


# -- Dependencies --------------------------------------------------------------


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository  # type: ignore[no-any-return]


def get_register_handler(request: Request) -> RegisterUserHandler:
    return request.app.state.register_user_handler  # type: ignore[no-any-return]


def get_login_handler(request: Request) -> LoginHandler:
    return request.app.state.login_handler  # type: ignore[no-any-return]


def get_cookie_policy(request: Request) -> CookiePolicy:
    settings = request.app.state.auth_settings
    return CookiePolicy(name=settings.cookie_name, secure=settings.cookie_secure)


def get_auth_gate(request: Request) -> AuthGate:
    return request.app.state.auth_gate  # type: ignore[no-any-return]


def get_update_account_handler(request: Request) -> UpdateAccountHandler:
    return request.app.state.update_account_handler  # type: ignore[no-any-return]


def get_update_profile_handler(request: Request) -> UpdateProfileHandler:
    return request.app.state.update_profile_handler  # type: ignore[no-any-return]


# -- Request / Response models ------------------------------------------------


class RegisterRequest(BaseModel):
    email: str = Field(max_length=255)
    password: str
    first_name: str = Field(default="", max_length=100)
    last_name: str = Field(default="", max_length=100)


class LoginRequest(BaseModel):
    email: str
    password: str


class UpdateProfileRequest(BaseModel):
    first_name: str | None = Field(default=None, max_length=100)
    last_name: str | None = Field(default=None, max_length=100)
    password: str | None = None
    current_password: str | None = None


class UpdateAccountRequest(BaseModel):
    is_active: bool | None = None
    role: Role | None = None
    password: str | None = None


class UserResponse(BaseModel):
    id: str
    email: str
    role: str
    first_name: str
    last_name: str
    is_active: bool
    last_login_at: datetime | None
    version: int


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_at: datetime
    user: UserResponse


# -- Endpoints ----------------------------------------------------------------


@router.post("/register", status_code=201, dependencies=[Depends(enforce_auth_rate_limit)])
def register(
    body: RegisterRequest,
    response: Response,
    handler: Annotated[RegisterUserHandler, Depends(get_register_handler)],
    gate: Annotated[AuthGate, Depends(get_auth_gate)],
    cookie: Annotated[CookiePolicy, Depends(get_cookie_policy)],
) -> TokenResponse:
    """Register a customer account and sign it in."""
    user = handler.handle(
        RegisterUserCommand(
            email=body.email,
            password=body.password,
            first_name=body.first_name,
            last_name=body.last_name,
        )
    )
    credential = gate.issue_credential(user.as_principal())
    return _token_response(response, cookie, credential, user)


@router.post("/login", dependencies=[Depends(enforce_auth_rate_limit)])
def login(
    body: LoginRequest,
    response: Response,
    handler: Annotated[LoginHandler, Depends(get_login_handler)],
    repository: Annotated[UserRepository, Depends(get_user_repository)],
    cookie: Annotated[CookiePolicy, Depends(get_cookie_policy)],
) -> TokenResponse:
    """Exchange email and password for a credential.

    The credential is returned in the body and also set as an HTTP-only
    cookie for browser clients.
    """
    result = handler.handle(LoginCommand(email=body.email, password=body.password))
    user = repository.get(result.principal.user_id)
    return _token_response(response, cookie, result.credential, user)


@router.get("/me")
def me(
    principal: CurrentPrincipal,
    repository: Annotated[UserRepository, Depends(get_user_repository)],
) -> UserResponse:
    """Return the live record of the authenticated principal."""
    return _user_response(repository.get(principal.user_id))


@router.put("/me")
def update_me(
    body: UpdateProfileRequest,
    principal: CurrentPrincipal,
    handler: Annotated[UpdateProfileHandler, Depends(get_update_profile_handler)],
) -> UserResponse:
    """Change the caller's name, or their password given the current one."""
    user = handler.handle(
        UpdateProfileCommand(
            user_id=principal.user_id,
            first_name=body.first_name,
            last_name=body.last_name,
            password=body.password,
            current_password=body.current_password,
        )
    )
    return _user_response(user)


@router.patch("/users/{user_id}")
def update_account(
    user_id: UUID,
    body: UpdateAccountRequest,
    principal: Annotated[Principal, Depends(require_roles(Role.ADMIN))],
    handler: Annotated[UpdateAccountHandler, Depends(get_update_account_handler)],
) -> UserResponse:
    """Deactivate, reactivate, re-role or reset the password of an account."""
    user = handler.handle(
        UpdateAccountCommand(
            user_id=user_id,
            requested_by=str(principal.user_id),
            is_active=body.is_active,
            role=body.role.value if body.role is not None else None,
            password=body.password,
        )
    )
    return _user_response(user)


# -- Helpers ------------------------------------------------------------------


def _token_response(
    response: Response,
    cookie: CookiePolicy,
    credential: IssuedCredential,
    user: User,
) -> TokenResponse:
    response.set_cookie(
        cookie.name,
        credential.token,
        httponly=True,
        secure=cookie.secure,
        samesite="strict",
        expires=credential.expires_at,
    )
    return TokenResponse(
        access_token=credential.token,
        expires_at=credential.expires_at,
        user=_user_response(user),
    )


def _user_response(user: User) -> UserResponse:
    return UserResponse(
        id=str(user.id),
        email=user.email,
        role=user.role,
        first_name=user.first_name,
        last_name=user.last_name,
        is_active=user.is_active,
        last_login_at=user.last_login_at,
        version=user.version,
    )
