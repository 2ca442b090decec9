from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable

from .config import FlowConfig
from .db import FlowDb
from .sanitize import strip_quotes
from .types import (
    AllUnset,
    EdgeIndex,
    EdgeTarget,
    LinkKind,
    LinkStroke,
    LinkType,
    NodeShape,
)

logger = logging.getLogger(__name__)

# ============================================================================
# Flowchart front-end
#
# A line-oriented reader for Mermaid flowchart text. It keeps no model of its
# own: every statement is forwarded to a FlowDb session as mutation calls,
# exactly as a generated grammar would.
#
# Supported syntax:
#   graph TD / flowchart LR           header (TD|TB|LR|BT|RL or < > ^ v)
#   A[Text] --> B(Text) & C           node chains, & groups, shapes
#   A -->|label| B                    edge labels
#   A:::cls                           class shorthand
#   classDef name fill:#f9f,stroke:#333
#   class A,B name
#   style A fill:#f9f
#   linkStyle 0,1 stroke:#f00
#   linkStyle default interpolate basis stroke:#f00
#   click A callback "tooltip"
#   click A href "https://..." "tooltip"
#   subgraph id [Title] ... end       nested subgraphs become members
# ============================================================================


@dataclass
class _OpenSubgraph:
    id: str | None
    title: str | None
    members: list[str] = field(default_factory=list)


def parse_flowchart(
    text: str,
    db: FlowDb | None = None,
    config: FlowConfig | None = None,
) -> FlowDb:
    """Parse Mermaid flowchart text into a FlowDb session.

    A supplied ``db`` is cleared first and keeps its own configuration;
    otherwise a new session is created with ``config``. Passing both is a
    ``ValueError``. Lines that are neither a known statement nor a complete
    node/edge chain are skipped without touching the session.
    """
    if db is not None and config is not None:
        raise ValueError("Pass either a FlowDb session or a FlowConfig, not both")

    lines = [
        l.strip()
        for l in re.split(r"[\n;]", text)
        if l.strip() and not l.strip().startswith("%%")
    ]

    if not lines:
        raise ValueError("Empty mermaid diagram")

    header_match = HEADER_REGEX.match(lines[0])
    if not header_match:
        raise ValueError(
            f'Invalid mermaid header: "{lines[0]}". '
            'Expected "graph TD", "flowchart LR", etc.'
        )

    if db is None:
        db = FlowDb(config)
    else:
        db.clear()

    db.set_direction(_direction_token(header_match.group(1)))

    subgraph_stack: list[_OpenSubgraph] = []

    for line in lines[1:]:
        # --- classDef ---
        m = re.match(r"^classDef\s+([\w-]+)\s+(.+)$", line)
        if m:
            db.add_class(m.group(1), _split_styles(m.group(2)))
            continue

        # --- class assignment ---
        m = re.match(r"^class\s+([\w,-]+)\s+([\w-]+)$", line)
        if m:
            db.set_class(m.group(1), m.group(2))
            continue

        # --- style statement ---
        m = re.match(r"^style\s+([\w-]+)\s+(.+)$", line)
        if m:
            db.add_vertex(m.group(1), styles=_split_styles(m.group(2)))
            continue

        # --- linkStyle ---
        m = LINK_STYLE_REGEX.match(line)
        if m:
            _apply_link_style(db, line, m)
            continue

        # --- click ---
        m = re.match(r"^click\s+([\w-]+)\s+(.+)$", line)
        if m:
            _apply_click(db, m.group(1), m.group(2).strip())
            continue

        # --- direction ---
        m = re.match(r"^direction\s+(TD|TB|LR|BT|RL)\s*$", line, re.IGNORECASE)
        if m:
            # Per-subgraph directions are not modelled
            if not subgraph_stack:
                db.set_direction(m.group(1).upper())
            continue

        # --- subgraph start ---
        m = re.match(r"^subgraph\s+(.+)$", line)
        if m:
            subgraph_stack.append(_open_subgraph(m.group(1).strip()))
            continue

        # --- subgraph end ---
        if line == "end":
            if subgraph_stack:
                completed = subgraph_stack.pop()
                sg_id = db.add_subgraph(
                    completed.id, [completed.members], completed.title
                )
                if subgraph_stack:
                    subgraph_stack[-1].members.append(sg_id)
            continue

        # --- Edge/node definitions ---
        _parse_edge_line(line, db, subgraph_stack)

    return db


# ============================================================================
# Statement helpers
# ============================================================================

HEADER_REGEX = re.compile(
    r"^(?:graph|flowchart)\s+(TD|TB|LR|BT|RL|<|>|\^|v)\s*$", re.IGNORECASE
)

LINK_STYLE_REGEX = re.compile(
    r"^linkStyle\s+(default|\d+(?:\s*,\s*\d+)*)"
    r"(?:\s+interpolate\s+(\w+))?"
    r"(?:\s+(.+))?$"
)

CLICK_LINK_REGEX = re.compile(r'^(?:href\s+)?"([^"]*)"(?:\s+"([^"]*)")?$')
CLICK_CALLBACK_REGEX = re.compile(r'^(?:call\s+)?([\w.]+)(?:\(\))?(?:\s+"([^"]*)")?$')


def _direction_token(token: str) -> str:
    if token.lower() == "v":
        return "v"
    return token.upper()


def _split_styles(styles: str) -> list[str]:
    """Split 'fill:#f00,stroke:#333' into individual declarations."""
    return [s.strip() for s in styles.split(",") if s.strip()]


def parse_edge_targets(positions: Iterable[int | str]) -> list[EdgeTarget]:
    """Convert raw linkStyle positions ("default" or integers) to targets."""
    targets: list[EdgeTarget] = []
    for pos in positions:
        if isinstance(pos, int):
            targets.append(EdgeIndex(pos))
            continue
        token = pos.strip()
        if token == "default":
            targets.append(AllUnset())
        elif token.isdigit():
            targets.append(EdgeIndex(int(token)))
        else:
            raise ValueError(f'Invalid linkStyle target: "{pos}"')
    return targets


def _apply_link_style(db: FlowDb, line: str, m: re.Match[str]) -> None:
    targets = parse_edge_targets(m.group(1).split(","))
    interpolation = m.group(2)
    styles = _split_styles(m.group(3) or "")

    edge_count = len(db.get_edges())
    missing = [
        t.index for t in targets if isinstance(t, EdgeIndex) and t.index >= edge_count
    ]
    if missing:
        raise ValueError(
            f'linkStyle refers to a missing edge in "{line}" '
            f"({edge_count} edges declared)"
        )

    if interpolation:
        db.update_link_interpolate(targets, interpolation)
    if styles:
        db.update_link(targets, styles)


def _apply_click(db: FlowDb, node_id: str, rest: str) -> None:
    m = CLICK_LINK_REGEX.match(rest)
    if m:
        db.set_link(node_id, m.group(1), m.group(2))
        return

    m = CLICK_CALLBACK_REGEX.match(rest)
    if m:
        db.set_click_event(node_id, m.group(1), m.group(2))


def _open_subgraph(rest: str) -> _OpenSubgraph:
    bracket_match = re.match(r"^([\w-]+)\s*\[(.+)\]$", rest)
    if bracket_match:
        return _OpenSubgraph(
            id=bracket_match.group(1),
            title=strip_quotes(bracket_match.group(2).strip()),
        )

    quoted_match = re.match(r'^"(.+)"$', rest)
    if quoted_match:
        return _OpenSubgraph(id=None, title=quoted_match.group(1))

    # A bare title doubles as the id; FlowDb drops it if it has spaces
    return _OpenSubgraph(id=rest, title=rest)


# ============================================================================
# Flowchart edge line parser
# ============================================================================

ARROW_REGEX = re.compile(r"^(<)?(-->|-\.->|==>|---|-\.-|===)(?:\|([^|]*)\|)?")

NODE_PATTERNS: list[tuple[re.Pattern[str], NodeShape]] = [
    # Triple delimiters
    (re.compile(r"^(\w+(?:-\w+)*)\(\(\((.+?)\)\)\)"), "doublecircle"),
    # Double delimiters with mixed brackets
    (re.compile(r"^(\w+(?:-\w+)*)\(\[(.+?)\]\)"), "stadium"),
    (re.compile(r"^(\w+(?:-\w+)*)\(\((.+?)\)\)"), "circle"),
    (re.compile(r"^(\w+(?:-\w+)*)\[\[(.+?)\]\]"), "subroutine"),
    (re.compile(r"^(\w+(?:-\w+)*)\[\((.+?)\)\]"), "cylinder"),
    # Trapezoid variants
    (re.compile(r"^(\w+(?:-\w+)*)\[/(.+?)\\\]"), "trapezoid"),
    (re.compile(r"^(\w+(?:-\w+)*)\[\\(.+?)/\]"), "trapezoid-alt"),
    # Asymmetric flag
    (re.compile(r"^(\w+(?:-\w+)*)>(.+?)\]"), "asymmetric"),
    # Double curly braces (hexagon)
    (re.compile(r"^(\w+(?:-\w+)*)\{\{(.+?)\}\}"), "hexagon"),
    # Single-char delimiters
    (re.compile(r"^(\w+(?:-\w+)*)\[(.+?)\]"), "rectangle"),
    (re.compile(r"^(\w+(?:-\w+)*)\((.+?)\)"), "rounded"),
    (re.compile(r"^(\w+(?:-\w+)*)\{(.+?)\}"), "diamond"),
]

BARE_NODE_REGEX = re.compile(r"^(\w+(?:-\w+)*)")
CLASS_SHORTHAND_REGEX = re.compile(r"^:::([\w][\w-]*)")

# Statement keywords that never name a node at the start of a line
RESERVED_KEYWORDS = frozenset(
    {
        "accDescr",
        "accTitle",
        "class",
        "classDef",
        "click",
        "direction",
        "end",
        "linkStyle",
        "style",
        "subgraph",
    }
)


@dataclass
class _NodeRef:
    id: str
    text: str | None = None
    shape: NodeShape | None = None
    css_class: str | None = None


@dataclass
class _Chain:
    groups: list[list[_NodeRef]]
    # links[i] joins groups[i] to groups[i + 1]
    links: list[LinkType]


def _parse_edge_line(
    line: str,
    db: FlowDb,
    subgraph_stack: list[_OpenSubgraph],
) -> None:
    chain = _read_chain(line.strip())
    if chain is None:
        logger.debug("Ignoring unrecognized line %r", line)
        return

    prev_group: list[_NodeRef] = []
    for i, group in enumerate(chain.groups):
        for node in group:
            _register_node(node, db, subgraph_stack)
        if i > 0:
            link_type = chain.links[i - 1]
            for source in prev_group:
                for target in group:
                    db.add_link(source.id, target.id, link_type)
        prev_group = group


def _read_chain(text: str) -> _Chain | None:
    """Read a whole node/edge chain, or None when the line is not one."""
    bare = BARE_NODE_REGEX.match(text)
    if not bare or bare.group(1) in RESERVED_KEYWORDS:
        return None

    first_group = _consume_node_group(text)
    if first_group is None:
        return None

    group, remaining = first_group
    chain = _Chain(groups=[group], links=[])

    while remaining:
        arrow_match = ARROW_REGEX.match(remaining)
        if not arrow_match:
            return None

        link_type = _link_type_from_arrow(
            arrow_match.group(2), bool(arrow_match.group(1)), arrow_match.group(3)
        )
        remaining = remaining[arrow_match.end() :].strip()

        next_group = _consume_node_group(remaining)
        if next_group is None:
            return None

        group, remaining = next_group
        chain.links.append(link_type)
        chain.groups.append(group)

    return chain


def _consume_node_group(text: str) -> tuple[list[_NodeRef], str] | None:
    first = _consume_node(text)
    if not first:
        return None

    nodes = [first[0]]
    remaining = first[1].strip()

    while remaining.startswith("&"):
        nxt = _consume_node(remaining[1:].strip())
        if not nxt:
            return None
        nodes.append(nxt[0])
        remaining = nxt[1].strip()

    return nodes, remaining


def _consume_node(text: str) -> tuple[_NodeRef, str] | None:
    node: _NodeRef | None = None
    remaining = text

    for pattern, shape in NODE_PATTERNS:
        m = pattern.match(text)
        if m:
            node = _NodeRef(id=m.group(1), text=m.group(2), shape=shape)
            remaining = text[m.end() :]
            break

    if node is None:
        bare_match = BARE_NODE_REGEX.match(text)
        if not bare_match:
            return None
        node = _NodeRef(id=bare_match.group(1))
        remaining = text[bare_match.end() :]

    class_match = CLASS_SHORTHAND_REGEX.match(remaining)
    if class_match:
        node.css_class = class_match.group(1)
        remaining = remaining[class_match.end() :]

    return node, remaining


def _register_node(
    node: _NodeRef,
    db: FlowDb,
    subgraph_stack: list[_OpenSubgraph],
) -> None:
    db.add_vertex(node.id, node.text, node.shape)
    # Duplicates are dropped by FlowDb.add_subgraph
    if subgraph_stack:
        subgraph_stack[-1].members.append(node.id)
    if node.css_class:
        db.add_vertex(node.id, classes=[node.css_class])


def _link_type_from_arrow(op: str, has_arrow_start: bool, label: str | None) -> LinkType:
    stroke: LinkStroke
    kind: LinkKind

    if op in ("-.->", "-.-"):
        stroke = "dotted"
    elif op in ("==>", "==="):
        stroke = "thick"
    else:
        stroke = "solid"

    if not op.endswith(">"):
        kind = "arrow_open"
    elif has_arrow_start:
        kind = "double_arrow"
    else:
        kind = "arrow"
    return LinkType(type=kind, stroke=stroke, text=label)
