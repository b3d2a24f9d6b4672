"""Request-scoped logging context.

Values bound here are merged into every log event by
``structlog.contextvars.merge_contextvars``, so an owner id or entry id bound
at the start of a write shows up on every line logged while handling it,
including lines emitted from concurrently running embedding tasks (tasks copy
the current context when they are created).
"""

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

import structlog


def get_log_context() -> dict[str, Any]:
    """Get a copy of the current logging context."""
    return dict(structlog.contextvars.get_contextvars())


def bind_log_context(**values: Any) -> None:
    """Bind values into the logging context for the current task."""
    structlog.contextvars.bind_contextvars(**values)


def clear_log_context() -> None:
    """Clear the current logging context."""
    structlog.contextvars.clear_contextvars()


@contextmanager
def log_context(**values: Any) -> Iterator[None]:
    """Bind values for the duration of a block, restoring the previous ones after.

    Example:
        with log_context(owner_id=owner_id, entry_id=str(entry_id)):
            ...
    """
    with structlog.contextvars.bound_contextvars(**values):
        yield
