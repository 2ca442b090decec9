from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Literal, Protocol, Union

# ============================================================================
# Flowchart model — records assembled by FlowDb from parser events
# ============================================================================

NodeShape = Literal[
    "rectangle",
    "rounded",
    "diamond",
    "stadium",
    "circle",
    "subroutine",     # [[text]]
    "doublecircle",   # (((text)))
    "hexagon",        # {{text}}
    "cylinder",       # [(text)]
    "asymmetric",     # >text]
    "trapezoid",      # [/text\]
    "trapezoid-alt",  # [\text/]
]

LinkKind = Literal["arrow", "arrow_open", "double_arrow"]

LinkStroke = Literal["solid", "dotted", "thick"]


@dataclass(slots=True)
class Vertex:
    id: str
    text: str | None = None
    # Shape type as reported by the parser
    type: str | None = None
    styles: list[str] = field(default_factory=list)
    classes: list[str] = field(default_factory=list)
    link: str | None = None
    tooltip: str | None = None


@dataclass(slots=True)
class LinkType:
    """Arrow descriptor handed over by the parser for a single edge."""

    type: str | None = None
    stroke: str | None = None
    text: str | None = None


@dataclass(slots=True)
class Edge:
    start: str
    end: str
    type: str | None = None
    stroke: str | None = None
    text: str = ""
    style: list[str] | None = None
    interpolate: str | None = None


@dataclass(slots=True)
class EdgeDefaults:
    """Fallbacks consulted by the renderer for edges without their own value."""

    style: list[str] | None = None
    interpolate: str | None = None


@dataclass(slots=True)
class ClassDef:
    id: str
    styles: list[str] = field(default_factory=list)


@dataclass(slots=True)
class Subgraph:
    id: str
    # Member ids: vertices and nested subgraphs alike
    nodes: list[str]
    title: str = ""
    classes: list[str] = field(default_factory=list)


# ============================================================================
# Edge update targets for linkStyle statements
# ============================================================================


@dataclass(frozen=True, slots=True)
class AllUnset:
    """Targets the registry-wide fallback used by edges lacking a value."""


@dataclass(frozen=True, slots=True)
class EdgeIndex:
    """Targets one edge by its declaration position."""

    index: int

    def __post_init__(self) -> None:
        if self.index < 0:
            raise ValueError(f"Edge index must be non-negative, got {self.index}")


EdgeTarget = Union[AllUnset, EdgeIndex]


# ============================================================================
# Subgraph indexing results
# ============================================================================


@dataclass(slots=True)
class SearchResult:
    # True when the target id was reached
    result: bool
    # Visited descendants accumulated on the way
    count: int


@dataclass(slots=True)
class IndexReport:
    """Outcome of one depth-first indexing run."""

    visited: int = 0
    # The visit cap was hit before the walk finished
    truncated: bool = False
    # (parent id, member id) pairs that pointed back into the current path
    cycles: list[tuple[str, str]] = field(default_factory=list)

    @property
    def has_cycles(self) -> bool:
        return bool(self.cycles)


# ============================================================================
# Deferred bindings against a rendering surface
# ============================================================================


@dataclass(frozen=True, slots=True)
class ClickBinding:
    node_id: str
    function_name: str


ClickCallback = Callable[[str], object]


class RenderSurface(Protocol):
    """What bind_functions() needs from the renderer's container."""

    def bind_tooltip(self, element_id: str, text: str) -> None: ...

    def bind_click(self, element_id: str, handler: Callable[[], object]) -> None: ...
