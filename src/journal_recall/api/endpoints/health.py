"""Health endpoint."""

from fastapi import APIRouter, Depends
from neo4j.exceptions import DriverError, Neo4jError

from journal_recall.api.dependencies import AppServices, get_services
from journal_recall.core.logging import get_logger
from journal_recall.domain.models.utils import utc_now

logger = get_logger(__name__)
router = APIRouter()


@router.get("/health", operation_id="health")
async def health_check(services: AppServices = Depends(get_services)) -> dict:
    """Report liveness and whether Neo4j answers."""
    database = "unconfigured"
    if services.driver is not None:
        try:
            await services.driver.verify_connectivity()
            database = "ok"
        except (Neo4jError, DriverError, OSError) as e:
            logger.warning("Neo4j health check failed", error=e)
            database = "unavailable"

    return {
        "status": "healthy" if database != "unavailable" else "degraded",
        "database": database,
        "timestamp": utc_now().isoformat(),
    }
