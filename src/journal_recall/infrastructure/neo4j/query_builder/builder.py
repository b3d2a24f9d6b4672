"""Main Cypher query builder implementation.

Provides a fluent interface for constructing parameterized read queries.
"""

from collections.abc import Callable, Sequence
from typing import Any, LiteralString, cast

from journal_recall.core.logging import get_logger

from .patterns import PatternBuilder
from .predicates import Predicate
from .state import ClauseType, CypherQueryState

logger = get_logger(__name__)


def create_literal_str(prefix: str, clause: str) -> LiteralString:
    """Concatenate builder-generated fragments into a LiteralString.

    Only fragments produced by the builder itself, validated identifiers and
    ``$pN`` placeholders may pass through here; values never do.
    """
    return cast("LiteralString", prefix + clause)


class CypherQueryBuilder:
    """Fluent Cypher query builder.

    Parameters are named ``p0``, ``p1`` ... in the order their placeholders
    are emitted.

    Example:
        ```python
        query, params = (
            CypherQueryBuilder()
            .match(lambda p: p.node("JournalEntry", "e"))
            .where([PropertyEquals("e", "owner_id", owner_id)])
            .return_clause("e")
            .limit(10)
            .build(require_limit=True)
        )
        ```
    """

    def __init__(self) -> None:
        self._query_parts: list[LiteralString] = []
        self._parameters: dict[str, Any] = {}
        self._param_counter: int = 0
        self._state_machine = CypherQueryState()

    def add_parameter(self, value: Any) -> str:
        """Register a parameter value and return its name."""
        param_name = f"p{self._param_counter}"
        self._parameters[param_name] = value
        self._param_counter += 1
        return param_name

    def _append(self, clause_type: ClauseType, keyword: str, body: str) -> "CypherQueryBuilder":
        self._state_machine.add_clause(clause_type)
        self._query_parts.append(create_literal_str(keyword, body))
        return self

    def match(self, pattern_func: Callable[[PatternBuilder], PatternBuilder]) -> "CypherQueryBuilder":
        """Add a MATCH clause built with a PatternBuilder."""
        self._state_machine.validate_can_add(ClauseType.MATCH)
        return self._append(ClauseType.MATCH, "MATCH ", pattern_func(PatternBuilder()).build())

    def where(self, predicates: Sequence[Predicate]) -> "CypherQueryBuilder":
        """Add a WHERE clause joining ``predicates`` with AND."""
        if not predicates:
            raise ValueError("WHERE requires at least one predicate")
        self._state_machine.validate_can_add(ClauseType.WHERE)
        condition = " AND ".join(predicate.render(self.add_parameter) for predicate in predicates)
        return self._append(ClauseType.WHERE, "WHERE ", condition)

    def with_clause(self, *with_items: str, **params: Any) -> "CypherQueryBuilder":
        """Add a WITH clause.

        Items may reference keyword placeholders such as ``{embedding}``;
        each is replaced by a fresh parameter in the order given.

        Example:
            ```python
            query.with_clause("e", "min(1 - vector.similarity.cosine(c.embedding, {embedding})) AS distance",
                              embedding=vector)
            ```
        """
        self._state_machine.validate_can_add(ClauseType.WITH)
        names = {key: f"${self.add_parameter(value)}" for key, value in params.items()}
        body = ", ".join(item.format(**names) if names else item for item in with_items)
        return self._append(ClauseType.WITH, "WITH ", body)

    def return_clause(self, *return_items: str) -> "CypherQueryBuilder":
        return self._append(ClauseType.RETURN, "RETURN ", ", ".join(return_items))

    def order_by(self, *order_items: str) -> "CypherQueryBuilder":
        return self._append(ClauseType.ORDER_BY, "ORDER BY ", ", ".join(order_items))

    def limit(self, count: int) -> "CypherQueryBuilder":
        """Add a parameterized LIMIT clause."""
        if count < 1:
            raise ValueError(f"LIMIT must be positive, got {count}")
        self._state_machine.validate_can_add(ClauseType.LIMIT)
        return self._append(ClauseType.LIMIT, "LIMIT ", f"${self.add_parameter(count)}")

    def build(self, require_limit: bool = False) -> tuple[LiteralString, dict[str, Any]]:
        """Build the final Cypher query and parameters.

        Args:
            require_limit: Reject queries without a LIMIT clause

        Raises:
            ValueError: If the query is not in a valid state
        """
        self._state_machine.validate_query_complete()
        if require_limit and not self._state_machine.has_limit:
            raise ValueError("Query must be bounded by a LIMIT clause")

        query: LiteralString = " ".join(self._query_parts)
        logger.debug("Built Cypher query", query=query, param_names=list(self._parameters))
        return query, dict(self._parameters)
