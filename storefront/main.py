# storefront/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import Response

from storefront import __version__
from storefront.api.error_handlers import register_exception_handlers
from storefront.api.routers import carts, items, orders, users
from storefront.core.config import Settings, get_settings
from storefront.core.logging import setup_logging
from storefront.core.metrics import Metrics
from storefront.core.security import TokenService
from storefront.db.session import Database
from storefront.initial_data import init_data
from storefront.middleware import ObservabilityMiddleware, SecurityHeadersMiddleware
from storefront.services.cart_service import CartStore
from storefront.services.catalog_service import Catalog
from storefront.services.identity import IdentityResolver
from storefront.services.order_service import OrderEngine
from storefront.services.user_service import UserAccounts

TAGS_METADATA = [
    {"name": "users", "description": "Signup, login and the caller's profile."},
    {"name": "items", "description": "Catalog listing and item creation."},
    {"name": "carts", "description": "Carts for signed-in users and anonymous sessions."},
    {"name": "orders", "description": "Orders placed from the active cart."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    state = app.state
    await init_data(state.settings, state.database, state.catalog)
    yield
    await state.database.dispose()


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build the application and every component it needs from one settings object."""
    settings = settings or get_settings()
    setup_logging(settings)

    app = FastAPI(
        title=settings.PROJECT_NAME,
        version=__version__,
        description=(
            "Storefront API.\n\n"
            "- **Carts** work for signed-in users (bearer token) and for anonymous "
            f"shoppers, who round-trip the `{settings.SESSION_HEADER}` header.\n"
            "- **Orders** turn the caller's active cart into an order."
        ),
        openapi_tags=TAGS_METADATA,
        lifespan=lifespan,
    )

    database = Database(settings)
    metrics = Metrics(settings)
    catalog = Catalog(database)

    app.state.settings = settings
    app.state.database = database
    app.state.metrics = metrics
    app.state.tokens = TokenService(settings)
    app.state.identity_resolver = IdentityResolver(settings)
    app.state.users = UserAccounts(database)
    app.state.catalog = catalog
    app.state.carts = CartStore(database)
    app.state.orders = OrderEngine(database)

    # --- Middlewares ---
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    app.add_middleware(ObservabilityMiddleware, metrics=metrics)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        # browsers only let scripts read a minted session if it is exposed
        expose_headers=[settings.SESSION_HEADER],
    )

    register_exception_handlers(app)

    # --- Routers ---
    app.include_router(users.router, prefix=settings.API_PREFIX)
    app.include_router(items.router, prefix=settings.API_PREFIX)
    app.include_router(carts.router, prefix=settings.API_PREFIX)
    app.include_router(orders.router, prefix=settings.API_PREFIX)

    @app.get("/", include_in_schema=False)
    def root():
        return {"status": "ok", "docs_url": "/docs"}

    @app.get("/metrics", include_in_schema=False)
    def export_metrics():
        body, content_type = metrics.export()
        return Response(content=body, media_type=content_type)

    return app
