# storefront/initial_data.py
from storefront.core.config import Settings
from storefront.core.logging import get_logger
from storefront.db.session import Database
from storefront.services.catalog_service import Catalog

logger = get_logger(__name__)


async def init_data(settings: Settings, database: Database, catalog: Catalog) -> None:
    """Startup bootstrap: schema for unmanaged databases, then the demo catalog.

    Both steps are idempotent, so running several workers is safe.
    """
    if settings.CREATE_SCHEMA_ON_STARTUP:
        await database.create_all()
        logger.info("Database schema ensured", extra={"dialect": database.engine.dialect.name})

    if not settings.SEED_CATALOG:
        logger.info("Skipping catalog seed: SEED_CATALOG is disabled.")
        return
    created = await catalog.seed_demo_items()
    logger.info("Catalog seed finished", extra={"created_count": created})
