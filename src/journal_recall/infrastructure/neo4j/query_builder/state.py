"""State management for the Cypher query builder.

Tracks the clauses added so far and rejects sequences that would produce an
invalid read query (WHERE before MATCH, LIMIT before RETURN, and so on).
"""

from enum import Enum, auto
from typing import ClassVar


class ClauseType(Enum):
    """Enum for Cypher clause types."""

    MATCH = auto()
    WHERE = auto()
    WITH = auto()
    RETURN = auto()
    ORDER_BY = auto()
    LIMIT = auto()


_READING = {ClauseType.MATCH}


class CypherQueryState:
    """State machine for tracking Cypher query state."""

    _VALID_AFTER: ClassVar[dict[ClauseType, set[ClauseType]]] = {
        ClauseType.MATCH: _READING | {ClauseType.WHERE, ClauseType.WITH, ClauseType.RETURN},
        ClauseType.WHERE: _READING | {ClauseType.WITH, ClauseType.RETURN},
        ClauseType.WITH: _READING | {ClauseType.WHERE, ClauseType.WITH, ClauseType.RETURN, ClauseType.ORDER_BY},
        ClauseType.RETURN: {ClauseType.ORDER_BY, ClauseType.LIMIT},
        ClauseType.ORDER_BY: {ClauseType.LIMIT},
        ClauseType.LIMIT: set(),
    }

    _VALID_START_CLAUSES: ClassVar[set[ClauseType]] = _READING

    def __init__(self) -> None:
        self._clauses: list[ClauseType] = []

    @property
    def clauses(self) -> tuple[ClauseType, ...]:
        return tuple(self._clauses)

    @property
    def is_complete(self) -> bool:
        """A read query is complete once it has a RETURN."""
        return ClauseType.RETURN in self._clauses

    @property
    def has_limit(self) -> bool:
        return ClauseType.LIMIT in self._clauses

    def add_clause(self, clause_type: ClauseType) -> None:
        """Add a clause to the query state.

        Raises:
            ValueError: If adding the clause would create an invalid query
        """
        self.validate_can_add(clause_type)
        self._clauses.append(clause_type)

    def validate_can_add(self, clause_type: ClauseType) -> None:
        if not self._clauses:
            if clause_type not in self._VALID_START_CLAUSES:
                raise ValueError(f"Query must start with MATCH, got {clause_type.name}")
            return

        prev_clause = self._clauses[-1]
        allowed = self._VALID_AFTER[prev_clause]
        if clause_type not in allowed:
            valid_next = ", ".join(sorted(clause.name for clause in allowed)) or "nothing"
            raise ValueError(
                f"Cannot add {clause_type.name} after {prev_clause.name}, valid options are: {valid_next}"
            )

    def validate_query_complete(self) -> None:
        """Raises ValueError if the query has no RETURN clause."""
        if not self.is_complete:
            raise ValueError("Query is not complete. It must contain a RETURN clause")
