"""Compiled forms of imposter stubs.

Stub configuration documents are validated and compiled once, when an
imposter is created or a stub is added; matching only ever sees these types.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Pattern


PREDICATE_OPERATORS = ("equals", "contains", "matches", "exists")
COMPOSITE_OPERATORS = ("and", "or", "not")


@dataclass
class CompiledPredicate:
    """One predicate operator with its field expectations."""
    operator: str
    fields: Dict[str, Any] = field(default_factory=dict)
    patterns: Dict[str, Pattern] = field(default_factory=dict)
    children: List["CompiledPredicate"] = field(default_factory=list)


@dataclass
class CompiledResponse:
    """A response template and the behaviors applied to it."""
    kind: str
    template: Dict[str, Any]
    behaviors: List[Dict[str, Any]] = field(default_factory=list)


@dataclass
class CompiledStub:
    """A stub ready for matching. All predicates must pass."""
    predicates: List[CompiledPredicate]
    responses: List[CompiledResponse]
    definition: Dict[str, Any]

    @property
    def response(self) -> Optional[CompiledResponse]:
        return self.responses[0] if self.responses else None
