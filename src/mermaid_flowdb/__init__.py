"""mermaid-flowdb — Build normalized flowchart models from Mermaid text."""

from __future__ import annotations

from .config import FlowConfig
from .db import FlowDb
from .graph_export import to_grandalf_graph
from .identifiers import normalize_id
from .indexer import MAX_INDEXED_SUBGRAPHS, SubgraphIndexer
from .parser import parse_edge_targets, parse_flowchart
from .sanitize import sanitize_text, sanitize_url
from .types import (
    AllUnset,
    ClassDef,
    ClickBinding,
    Edge,
    EdgeDefaults,
    EdgeIndex,
    IndexReport,
    LinkType,
    SearchResult,
    Subgraph,
    Vertex,
)

__all__ = [
    "parse_flowchart",
    "parse_edge_targets",
    "to_grandalf_graph",
    "normalize_id",
    "sanitize_text",
    "sanitize_url",
    "FlowDb",
    "FlowConfig",
    "SubgraphIndexer",
    "MAX_INDEXED_SUBGRAPHS",
    "AllUnset",
    "EdgeIndex",
    "Vertex",
    "Edge",
    "EdgeDefaults",
    "LinkType",
    "ClassDef",
    "Subgraph",
    "ClickBinding",
    "IndexReport",
    "SearchResult",
]
