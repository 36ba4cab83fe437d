"""FastAPI application factory.

Provides :func:`create_app`, which builds the event-sourced applications,
repositories, Auth Gate, auth rate limiter and command handlers, stores them on
``app.state`` and wires middleware, error handlers and routers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from starlette.middleware.cors import CORSMiddleware

from fastapi import FastAPI
from storefront.domain.catalog import (
    DiscontinueProductHandler,
    ListProductHandler,
    ProductApplication,
    ProductRepository,
    ReviseProductHandler,
)
from storefront.domain.catalog.router import router as products_router
from storefront.domain.identity import (
    LoginHandler,
    RegisterUserCommand,
    RegisterUserHandler,
    UpdateAccountHandler,
    UpdateProfileHandler,
    UserApplication,
    UserRepository,
)
from storefront.domain.identity.router import router as auth_router
from storefront.domain.ordering import (
    ChangeOrderStatusHandler,
    OrderApplication,
    OrderContentsHandler,
    OrderRepository,
    PlaceOrderHandler,
    get_ordering_settings,
)
from storefront.domain.ordering.router import router as orders_router
from storefront.foundation.application import SystemClock
from storefront.foundation.domain.principal import Role
from storefront.infra.auth import (
    AuthGate,
    AuthRateLimiter,
    BcryptPasswordHasher,
    BearerAuthMiddleware,
    JWTTokenCodec,
    get_auth_settings,
)
from storefront.infra.fastapi.error_handlers import register_exception_handlers
from storefront.infra.fastapi.health import router as health_router
from storefront.infra.fastapi.middleware import RequestContextMiddleware
from storefront.infra.fastapi.settings import get_app_settings
from storefront.infra.observability import configure_logging
from storefront.infra.persistence import create_registry

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Mapping

    from storefront.domain.ordering import OrderingSettings
    from storefront.foundation.domain.ports import Clock, PasswordHasherPort
    from storefront.infra.auth import AuthSettings
    from storefront.infra.fastapi.settings import AppSettings

logger = logging.getLogger(__name__)


def _seed_admin(
    repository: UserRepository,
    hasher: PasswordHasherPort,
    auth_settings: AuthSettings,
) -> None:
    email = auth_settings.bootstrap_admin_email
    password = auth_settings.bootstrap_admin_password
    if not email or not password:
        return
    if repository.find_by_email(email.strip().lower()) is not None:
        return
    user = RegisterUserHandler(repository, hasher).handle(
        RegisterUserCommand(email=email, password=password, role=Role.ADMIN)
    )
    logger.info("bootstrap_admin_created", extra={"user_id": str(user.id)})


def create_app(
    settings: AppSettings | None = None,
    *,
    auth_settings: AuthSettings | None = None,
    ordering_settings: OrderingSettings | None = None,
    clock: Clock | None = None,
    persistence_env: Mapping[str, str] | None = None,
) -> FastAPI:
    """Create the storefront FastAPI application.

    Args:
        settings: Application settings. If ``None``, loaded from environment.
        auth_settings: Auth Gate settings. If ``None``, loaded from environment.
        ordering_settings: Order Ledger settings. If ``None``, loaded from
            environment.
        clock: Time source for credentials, lockouts and order history.
            Defaults to the system clock.
        persistence_env: Overrides for the eventsourcing environment
            (``PERSISTENCE_MODULE``, ``POSTGRES_DBNAME``, ...). Process
            environment variables are used when omitted.

    Returns:
        Configured FastAPI application instance.
    """
    settings = settings or get_app_settings()
    auth_settings = auth_settings or get_auth_settings()
    ordering_settings = ordering_settings or get_ordering_settings()
    clock = clock or SystemClock()

    configure_logging()

    env = dict(persistence_env) if persistence_env is not None else None
    user_app = UserApplication(env=env)
    order_app = OrderApplication(env=env)
    product_app = ProductApplication(env=env)

    user_repository = UserRepository(
        user_app,
        create_registry(user_app, "user_email_registry"),
    )
    order_repository = OrderRepository(
        order_app,
        create_registry(order_app, "order_number_registry"),
        create_registry(order_app, "order_owner_index"),
        max_save_attempts=ordering_settings.max_save_attempts,
    )

    product_repository = ProductRepository(
        product_app,
        create_registry(product_app, "product_sku_registry"),
    )

    hasher = BcryptPasswordHasher(rounds=auth_settings.bcrypt_rounds)
    codec = JWTTokenCodec(
        auth_settings.jwt_secret,
        algorithm=auth_settings.jwt_algorithm,
        issuer=auth_settings.issuer,
    )
    gate = AuthGate(codec, user_repository, clock, auth_settings.token_ttl)
    policy = ordering_settings.pricing_policy()

    @asynccontextmanager
    async def lifespan(_app: FastAPI) -> AsyncIterator[None]:
        logger.info("storefront_started", extra={"version": settings.version})
        try:
            yield
        finally:
            user_app.close()
            order_app.close()
            product_app.close()
            logger.info("storefront_stopped")

    app = FastAPI(
        title=settings.title,
        version=settings.version,
        description=settings.description,
        docs_url=settings.docs_url,
        redoc_url=settings.redoc_url,
        openapi_url=settings.openapi_url,
        debug=settings.debug,
        lifespan=lifespan,
    )

    app.state.user_app = user_app
    app.state.order_app = order_app
    app.state.product_app = product_app
    app.state.user_repository = user_repository
    app.state.order_repository = order_repository
    app.state.product_repository = product_repository
    app.state.auth_gate = gate
    app.state.auth_settings = auth_settings
    app.state.auth_rate_limiter = AuthRateLimiter(
        clock,
        attempts=auth_settings.rate_limit_attempts,
        window_seconds=auth_settings.rate_limit_window_seconds,
    )
    app.state.register_user_handler = RegisterUserHandler(user_repository, hasher)
    app.state.login_handler = LoginHandler(
        user_repository,
        hasher,
        gate,
        clock,
        max_failed_attempts=auth_settings.max_failed_attempts,
        lockout_duration=auth_settings.lockout_duration,
    )
    app.state.update_account_handler = UpdateAccountHandler(user_repository, hasher)
    app.state.update_profile_handler = UpdateProfileHandler(user_repository, hasher)
    app.state.list_product_handler = ListProductHandler(product_repository)
    app.state.revise_product_handler = ReviseProductHandler(product_repository)
    app.state.discontinue_product_handler = DiscontinueProductHandler(product_repository)
    app.state.place_order_handler = PlaceOrderHandler(
        order_repository,
        product_repository,
        clock,
        tax_rate=ordering_settings.tax_rate,
        policy=policy,
    )
    app.state.change_order_status_handler = ChangeOrderStatusHandler(order_repository, clock)
    app.state.order_contents_handler = OrderContentsHandler(
        order_repository,
        product_repository,
        policy,
    )

    # Starlette runs middleware in reverse order of registration:
    # request context wraps CORS, which wraps the bearer check.
    app.add_middleware(BearerAuthMiddleware, gate=gate, cookie_name=auth_settings.cookie_name)
    app.add_middleware(CORSMiddleware, **settings.cors.middleware_options())
    app.add_middleware(RequestContextMiddleware)

    register_exception_handlers(app)

    for router in (health_router, auth_router, products_router, orders_router):
        app.include_router(router)

    _seed_admin(user_repository, hasher, auth_settings)

    return app
