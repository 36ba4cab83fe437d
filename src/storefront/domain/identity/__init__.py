"""Storefront Identity -- user accounts, login throttling and credentials.

Provides the User aggregate, its event-sourced application, the
repository that backs the Auth Gate's principal store, and the
registration, login, profile and account administration handlers.
"""

from storefront.domain.identity.accounts import (
    LoginCommand,
    LoginHandler,
    LoginResult,
    RegisterUserCommand,
    RegisterUserHandler,
    UpdateAccountCommand,
    UpdateAccountHandler,
    UpdateProfileCommand,
    UpdateProfileHandler,
)
from storefront.domain.identity.repository import UserRepository
from storefront.domain.identity.user import User
from storefront.domain.identity.user_app import UserApplication

__all__ = [
    "LoginCommand",
    "LoginHandler",
    "LoginResult",
    "RegisterUserCommand",
    "RegisterUserHandler",
    "UpdateAccountCommand",
    "UpdateAccountHandler",
    "UpdateProfileCommand",
    "UpdateProfileHandler",
    "User",
    "UserApplication",
    "UserRepository",
]
