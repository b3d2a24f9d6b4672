"""Translation of driver failures into StoreError."""

from collections.abc import Iterator
from contextlib import contextmanager

from neo4j.exceptions import DriverError, Neo4jError

from journal_recall.core.base import DatabaseErrorDetails
from journal_recall.core.errors import StoreError


@contextmanager
def store_errors(operation: str, query_type: str = "read", label: str | None = None) -> Iterator[None]:
    """Re-raise Neo4j driver and database errors as ``StoreError``.

    Usage:
        with store_errors("save_entry", query_type="write", label="JournalEntry"):
            await tx.run(query, params)
    """
    try:
        yield
    except (Neo4jError, DriverError) as e:
        code = getattr(e, "code", None)
        raise StoreError(
            message=f"Neo4j {operation} failed: {e}",
            details=DatabaseErrorDetails(
                source="neo4j",
                operation=operation,
                service_name="neo4j",
                query_type=query_type,
                label=label,
                neo4j_code=code,
            ),
        ) from e
