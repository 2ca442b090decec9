from __future__ import annotations

import logging
import re
from types import SimpleNamespace
from typing import Callable, Iterable, Sequence

from .config import FlowConfig
from .identifiers import normalize_id, split_ids
from .indexer import SubgraphIndexer
from .sanitize import sanitize_text, sanitize_url, strip_quotes
from .types import (
    AllUnset,
    ClassDef,
    ClickBinding,
    ClickCallback,
    Edge,
    EdgeDefaults,
    EdgeTarget,
    IndexReport,
    LinkType,
    RenderSurface,
    Subgraph,
    Vertex,
)

logger = logging.getLogger(__name__)

CLICKABLE_CLASS = "clickable"

_WHITESPACE = re.compile(r"\s")

# ============================================================================
# FlowDb — per-diagram session holding every registry
#
# The parser drives the mutation methods during a single pass; the renderer
# then calls index_nodes() once and reads the registries back. One instance
# serves one diagram at a time; clear() resets it for the next one.
# ============================================================================


class FlowDb:
    def __init__(self, config: FlowConfig | None = None) -> None:
        self.config = config or FlowConfig()
        self._callbacks: dict[str, ClickCallback] = {}
        self.lex = SimpleNamespace(first_graph=self.first_graph)
        self.clear()

    def clear(self) -> None:
        """Forget everything parsed so far so a new diagram can be built."""
        self.vertices: dict[str, Vertex] = {}
        self.edges: list[Edge] = []
        self.edge_defaults = EdgeDefaults()
        self.classes: dict[str, ClassDef] = {}
        self.subgraphs: list[Subgraph] = []
        self.subgraph_lookup: dict[str, Subgraph] = {}
        self._subgraph_positions: dict[str, int] = {}
        self.tooltips: dict[str, str] = {}
        self.bindings: list[ClickBinding] = []
        self.direction: str | None = None
        self._sub_count = 0
        self._first_graph_flag = True
        self._indexer = SubgraphIndexer(self.subgraphs, self._subgraph_positions)

    # ------------------------------------------------------------------------
    # Vertices
    # ------------------------------------------------------------------------

    def add_vertex(
        self,
        raw_id: str | None,
        text: str | None = None,
        type: str | None = None,
        styles: Iterable[str] | None = None,
        classes: Iterable[str] | None = None,
    ) -> None:
        """Create or update a vertex.

        Text and shape overwrite earlier values; styles and classes are
        appended to whatever the vertex already carries.
        """
        if raw_id is None or not raw_id.strip():
            return

        vid = normalize_id(raw_id)
        vertex = self.vertices.get(vid)
        if vertex is None:
            vertex = Vertex(id=vid)
            self.vertices[vid] = vertex

        if text is not None:
            vertex.text = strip_quotes(sanitize_text(text.strip(), self.config))
        elif not vertex.text:
            vertex.text = raw_id

        if type is not None:
            vertex.type = type
        if styles is not None:
            vertex.styles.extend(styles)
        if classes is not None:
            vertex.classes.extend(classes)

    def get_vertices(self) -> dict[str, Vertex]:
        return self.vertices

    # ------------------------------------------------------------------------
    # Edges
    # ------------------------------------------------------------------------

    def add_link(
        self,
        start: str,
        end: str,
        link_type: LinkType,
        link_text: str | None = None,
    ) -> None:
        """Append an edge between two (possibly undeclared) vertices.

        The label is always taken from ``link_type.text``; ``link_text`` is
        accepted for call compatibility but does not contribute.
        """
        edge = Edge(start=normalize_id(start), end=normalize_id(end))
        logger.debug("Got edge %s -> %s", edge.start, edge.end)

        link_text = link_type.text
        if link_text is not None:
            edge.text = strip_quotes(sanitize_text(link_text.strip(), self.config))

        edge.type = link_type.type
        edge.stroke = link_type.stroke
        self.edges.append(edge)

    def update_link_interpolate(
        self, targets: Sequence[EdgeTarget], interpolation: str
    ) -> None:
        for target in targets:
            if isinstance(target, AllUnset):
                self.edge_defaults.interpolate = interpolation
            else:
                self.edges[target.index].interpolate = interpolation

    def update_link(self, targets: Sequence[EdgeTarget], styles: Sequence[str]) -> None:
        """Apply a linkStyle declaration.

        Indexed edges always get a fill declaration, defaulting to
        ``fill:none`` so a curved edge is not rendered as a filled shape.
        """
        for target in targets:
            if isinstance(target, AllUnset):
                self.edge_defaults.style = list(styles)
                continue

            style = list(styles)
            if not any("fill" in s for s in style):
                style.append("fill:none")
            self.edges[target.index].style = style

    def get_edges(self) -> list[Edge]:
        return self.edges

    # ------------------------------------------------------------------------
    # Classes
    # ------------------------------------------------------------------------

    def add_class(self, class_id: str, styles: Iterable[str] | None = None) -> None:
        class_def = self.classes.get(class_id)
        if class_def is None:
            class_def = ClassDef(id=class_id)
            self.classes[class_id] = class_def
        if styles is not None:
            class_def.styles.extend(styles)

    def get_classes(self) -> dict[str, ClassDef]:
        return self.classes

    def set_class(self, ids: str, class_name: str) -> None:
        """Attach ``class_name`` to every listed vertex and subgraph.

        Vertex and subgraph lookups are independent: an id registered as both
        gets the class on both records. Unknown ids are ignored.
        """
        for vid in split_ids(ids):
            vertex = self.vertices.get(vid)
            if vertex is not None:
                vertex.classes.append(class_name)

            subgraph = self.subgraph_lookup.get(vid)
            if subgraph is not None:
                subgraph.classes.append(class_name)

    # ------------------------------------------------------------------------
    # Links, tooltips and click callbacks
    # ------------------------------------------------------------------------

    def set_tooltip(self, ids: str, tooltip: str | None) -> None:
        if tooltip is None:
            return
        text = sanitize_text(tooltip, self.config)
        for vid in split_ids(ids):
            self.tooltips[vid] = text
            vertex = self.vertices.get(vid)
            if vertex is not None:
                vertex.tooltip = text

    def get_tooltip(self, raw_id: str) -> str | None:
        return self.tooltips.get(normalize_id(raw_id))

    def set_link(self, ids: str, url: str, tooltip: str | None = None) -> None:
        """Turn the listed vertices into hyperlinks."""
        link = url if self.config.is_loose else sanitize_url(url)
        for vid in split_ids(ids):
            vertex = self.vertices.get(vid)
            if vertex is not None:
                vertex.link = link
        self.set_tooltip(ids, tooltip)
        self.set_class(ids, CLICKABLE_CLASS)

    def set_click_event(
        self, ids: str, function_name: str | None, tooltip: str | None = None
    ) -> None:
        """Queue click callbacks for the listed vertices.

        Bindings are only recorded with ``security_level="loose"``. They are
        resolved against registered callbacks when bind_functions() runs.
        """
        for vid in split_ids(ids):
            self._add_click_binding(vid, function_name)
        self.set_tooltip(ids, tooltip)
        self.set_class(ids, CLICKABLE_CLASS)

    def _add_click_binding(self, vid: str, function_name: str | None) -> None:
        if not self.config.is_loose or function_name is None:
            return
        if vid in self.vertices:
            self.bindings.append(ClickBinding(node_id=vid, function_name=function_name))

    def register_callback(self, name: str, callback: ClickCallback) -> None:
        """Make ``callback`` available to ``click <id> <name>`` statements."""
        self._callbacks[name] = callback

    def bind_functions(self, surface: RenderSurface) -> None:
        """Replay tooltips and queued click bindings against ``surface``."""
        for vid, text in self.tooltips.items():
            surface.bind_tooltip(vid, text)

        for binding in self.bindings:
            callback = self._callbacks.get(binding.function_name)
            if callback is None:
                logger.warning(
                    "No callback registered as %r for node %r",
                    binding.function_name,
                    binding.node_id,
                )
                continue
            surface.bind_click(binding.node_id, _click_handler(callback, binding.node_id))

    # ------------------------------------------------------------------------
    # Subgraphs
    # ------------------------------------------------------------------------

    def add_subgraph(
        self,
        raw_id: str | None,
        member_lists: Iterable[Iterable[str]],
        title: str | None = None,
    ) -> str:
        """Register a subgraph and return the id it was stored under.

        A bare title containing whitespace that was also passed as the id is
        treated as a title only, and the subgraph gets a generated id.
        """
        sg_id = raw_id
        if title is not None and raw_id == title and _WHITESPACE.search(title):
            sg_id = None

        nodes: list[str] = []
        seen: set[str] = set()
        for members in member_lists:
            for member in members:
                if not member.strip():
                    continue
                nid = normalize_id(member)
                if nid not in seen:
                    seen.add(nid)
                    nodes.append(nid)

        sg_id = normalize_id(sg_id or f"subGraph{self._sub_count}")
        self._sub_count += 1

        subgraph = Subgraph(
            id=sg_id,
            nodes=nodes,
            title=sanitize_text(title or "", self.config).strip(),
        )
        self._subgraph_positions.setdefault(sg_id, len(self.subgraphs))
        self.subgraphs.append(subgraph)
        self.subgraph_lookup[sg_id] = subgraph
        logger.debug("Added subgraph %s with %d members", sg_id, len(nodes))
        return sg_id

    def get_subgraphs(self) -> list[Subgraph]:
        return self.subgraphs

    def index_nodes(self) -> IndexReport:
        """Build the depth-first position table; call once after parsing."""
        return self._indexer.index()

    def get_depth_first_pos(self, step: int) -> int | None:
        return self._indexer.depth_first_pos(step)

    # ------------------------------------------------------------------------
    # Session state
    # ------------------------------------------------------------------------

    def set_direction(self, token: str) -> None:
        direction = token
        if "<" in direction:
            direction = "RL"
        if "^" in direction:
            direction = "BT"
        if ">" in direction:
            direction = "LR"
        if "v" in direction:
            direction = "TB"
        self.direction = direction

    def get_direction(self) -> str | None:
        return self.direction

    def first_graph(self) -> bool:
        if self._first_graph_flag:
            self._first_graph_flag = False
            return True
        return False

    @staticmethod
    def default_style() -> str:
        return (
            "fill:#ffa;stroke: #f66; stroke-width: 3px; stroke-dasharray: 5, 5;"
            "fill:#ffa;stroke: #666;"
        )


def _click_handler(callback: ClickCallback, node_id: str) -> Callable[[], object]:
    def handler() -> object:
        return callback(node_id)

    return handler
