# storefront/api/deps.py
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from storefront.core.config import Settings
from storefront.core.logging import security_alert
from storefront.core.metrics import Metrics
from storefront.core.security import TokenError, TokenService
from storefront.models.user import User
from storefront.services.cart_service import CartStore
from storefront.services.catalog_service import Catalog
from storefront.services.exceptions import UnauthorizedError, UserNotFoundError
from storefront.services.identity import Identity, IdentityResolver
from storefront.services.order_service import OrderEngine
from storefront.services.user_service import UserAccounts

bearer_scheme = HTTPBearer(auto_error=False, description="Access token from POST /users/login")


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_tokens(request: Request) -> TokenService:
    return request.app.state.tokens


def get_metrics(request: Request) -> Metrics:
    return request.app.state.metrics


def get_users(request: Request) -> UserAccounts:
    return request.app.state.users


def get_catalog(request: Request) -> Catalog:
    return request.app.state.catalog


def get_cart_store(request: Request) -> CartStore:
    return request.app.state.carts


def get_order_engine(request: Request) -> OrderEngine:
    return request.app.state.orders


def get_identity_resolver(request: Request) -> IdentityResolver:
    return request.app.state.identity_resolver


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    tokens: TokenService = Depends(get_tokens),
    users: UserAccounts = Depends(get_users),
) -> User | None:
    """Return the bearer's user, or None when no bearer token was sent.

    A token that is present but invalid is rejected rather than treated as
    anonymous.
    """
    if credentials is None:
        return None

    try:
        user_id = tokens.user_id_from_token(credentials.credentials)
    except TokenError as exc:
        security_alert("Rejected bearer token", reason=exc.reason, path=request.url.path)
        raise UnauthorizedError(exc.reason) from exc

    try:
        return await users.get_user(user_id)
    except UserNotFoundError as exc:
        raise UnauthorizedError("Could not validate credentials") from exc


async def get_current_user(user: User | None = Depends(get_optional_user)) -> User:
    if user is None:
        raise UnauthorizedError("Authorization header is required")
    return user


def _session_header(request: Request, settings: Settings) -> str | None:
    # an empty header counts as no session at all
    value = request.headers.get(settings.SESSION_HEADER)
    if value is None or not value.strip():
        return None
    return value


async def get_identity(
    request: Request,
    user: User | None = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Identity:
    """Identity for write paths; mints a session when the client has none."""
    return resolver.resolve(
        user.id if user else None,
        _session_header(request, settings),
        mint=True,
    )


async def get_optional_identity(
    request: Request,
    user: User | None = Depends(get_optional_user),
    settings: Settings = Depends(get_settings),
    resolver: IdentityResolver = Depends(get_identity_resolver),
) -> Identity | None:
    return resolver.resolve_optional(user.id if user else None, _session_header(request, settings))
