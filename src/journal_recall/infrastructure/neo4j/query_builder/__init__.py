"""Neo4j query builder framework.

This package provides a fluent interface for building parameterized Cypher
queries from typed predicates.
"""

from .builder import CypherQueryBuilder
from .patterns import PatternBuilder
from .predicates import ContainsAny, Predicate, PropertyEquals
from .state import ClauseType, CypherQueryState

__all__ = [
    "ClauseType",
    "ContainsAny",
    "CypherQueryBuilder",
    "CypherQueryState",
    "PatternBuilder",
    "Predicate",
    "PropertyEquals",
]
