"""Typed WHERE predicates.

Each predicate renders itself to Cypher, requesting one parameter name per
value from the builder so that placeholders are numbered in the order they
appear in the query text.
"""

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

from .patterns import _check_identifier

ParamNamer = Callable[[Any], str]


@dataclass(frozen=True)
class PropertyEquals:
    """``variable.prop = $pN``"""

    variable: str
    prop: str
    value: Any

    def render(self, add_parameter: ParamNamer) -> str:
        target = f"{_check_identifier(self.variable, 'variable')}.{_check_identifier(self.prop, 'property')}"
        return f"{target} = ${add_parameter(self.value)}"


@dataclass(frozen=True)
class ContainsAny:
    """Case-insensitive substring match of any of ``terms`` against ``variable.prop``.

    Terms are expected lower-cased; the property is lowered in Cypher. With no
    terms the predicate is the constant ``false``.
    """

    variable: str
    prop: str
    terms: Sequence[str]

    def render(self, add_parameter: ParamNamer) -> str:
        if not self.terms:
            return "false"
        target = f"toLower({_check_identifier(self.variable, 'variable')}.{_check_identifier(self.prop, 'property')})"
        clauses = [f"{target} CONTAINS ${add_parameter(term)}" for term in self.terms]
        return "(" + " OR ".join(clauses) + ")"


Predicate = PropertyEquals | ContainsAny
