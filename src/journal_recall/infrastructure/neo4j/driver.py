"""Neo4j driver and schema management."""

from neo4j import AsyncDriver, AsyncGraphDatabase
from neo4j.exceptions import DriverError, Neo4jError

from journal_recall.core.base import DatabaseErrorDetails
from journal_recall.core.config import Settings
from journal_recall.core.errors import StoreError
from journal_recall.core.logging import get_logger

from .queries import SCHEMA_STATEMENTS

logger = get_logger(__name__)


async def create_neo4j_driver(settings: Settings, max_connection_lifetime: int = 3600) -> AsyncDriver:
    """Create a Neo4j driver and verify connectivity.

    The caller owns the driver and must close it on shutdown.

    Raises:
        StoreError: If the database cannot be reached
    """
    logger.info(
        "Creating Neo4j driver",
        uri=settings.neo4j_uri,
        pool_size=settings.neo4j_max_pool_size,
        connection_lifetime=max_connection_lifetime,
    )

    driver = AsyncGraphDatabase.driver(
        settings.neo4j_uri,
        auth=(settings.neo4j_user, settings.neo4j_password.get_secret_value()),
        max_connection_pool_size=settings.neo4j_max_pool_size,
        max_connection_lifetime=max_connection_lifetime,
    )

    try:
        await driver.verify_connectivity()
    except (Neo4jError, DriverError, OSError) as e:
        await driver.close()
        raise StoreError(
            message=f"Could not connect to Neo4j at {settings.neo4j_uri}",
            details=DatabaseErrorDetails(
                source="create_neo4j_driver",
                operation="verify_connectivity",
                service_name="neo4j",
                endpoint=settings.neo4j_uri,
            ),
        ) from e

    logger.info("Neo4j connection established")
    return driver


async def ensure_schema(driver: AsyncDriver) -> None:
    """Create uniqueness constraints and lookup indexes if they are missing."""
    try:
        async with driver.session() as session:
            for statement in SCHEMA_STATEMENTS:
                result = await session.run(statement)
                await result.consume()
    except (Neo4jError, DriverError) as e:
        raise StoreError(
            message="Failed to create Neo4j schema",
            details=DatabaseErrorDetails(
                source="ensure_schema", operation="create_constraints", service_name="neo4j", query_type="schema"
            ),
        ) from e
    logger.info("Neo4j schema ready", statements=len(SCHEMA_STATEMENTS))
