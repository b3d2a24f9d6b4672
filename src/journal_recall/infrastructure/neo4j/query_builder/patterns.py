"""Pattern builders for Cypher MATCH clauses."""

import re
from typing import LiteralString, cast

_IDENTIFIER = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


def _check_identifier(value: str, kind: str) -> str:
    # Labels and variables are interpolated, never parameterized
    if not _IDENTIFIER.match(value):
        raise ValueError(f"Invalid {kind}: {value!r}")
    return value


class PatternBuilder:
    """Builder for path patterns such as ``(e:JournalEntry)-[:HAS_CHUNK]->(c:JournalChunk)``.

    Properties are not supported here; filter with WHERE predicates so that
    every value travels as a query parameter.
    """

    def __init__(self) -> None:
        self._parts: list[str] = []

    def node(self, label: str | None = None, variable: str = "") -> "PatternBuilder":
        inner = _check_identifier(variable, "variable") if variable else ""
        if label:
            inner += f":{_check_identifier(label, 'label')}"
        self._parts.append(f"({inner})")
        return self

    def rel_to(self, rel_type: str, variable: str = "") -> "PatternBuilder":
        """Outgoing relationship ``-[variable:TYPE]->``."""
        name = _check_identifier(variable, "variable") if variable else ""
        self._parts.append(f"-[{name}:{_check_identifier(rel_type, 'relationship type')}]->")
        return self

    def build(self) -> LiteralString:
        if not self._parts or not self._parts[-1].startswith("("):
            raise ValueError("Pattern must start and end with a node")
        return cast("LiteralString", "".join(self._parts))
