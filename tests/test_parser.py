"""Tests for the flowchart front-end."""

from __future__ import annotations

import pytest

from mermaid_flowdb.config import FlowConfig
from mermaid_flowdb.db import FlowDb
from mermaid_flowdb.parser import parse_edge_targets, parse_flowchart
from mermaid_flowdb.types import AllUnset, EdgeIndex


# ============================================================================
# Graph header parsing
# ============================================================================


class TestGraphHeader:
    def test_parses_graph_td_header(self):
        db = parse_flowchart("graph TD\n  A --> B")
        assert db.get_direction() == "TD"

    def test_parses_flowchart_lr_header(self):
        db = parse_flowchart("flowchart LR\n  A --> B")
        assert db.get_direction() == "LR"

    @pytest.mark.parametrize("direction", ["TD", "TB", "LR", "BT", "RL"])
    def test_accepts_all_directions(self, direction):
        db = parse_flowchart(f"graph {direction}\n  A --> B")
        assert db.get_direction() == direction

    @pytest.mark.parametrize(
        "token, expected", [("<", "RL"), (">", "LR"), ("^", "BT"), ("v", "TB")]
    )
    def test_accepts_arrow_directions(self, token, expected):
        db = parse_flowchart(f"graph {token}\n  A --> B")
        assert db.get_direction() == expected

    def test_case_insensitive_keyword(self):
        db = parse_flowchart("graph td\n  A --> B")
        assert db.get_direction() == "TD"

    def test_throws_on_empty_input(self):
        with pytest.raises(ValueError, match="Empty mermaid diagram"):
            parse_flowchart("")

    def test_throws_on_invalid_header(self):
        with pytest.raises(ValueError, match="Invalid mermaid header"):
            parse_flowchart("sequenceDiagram\n  A ->> B")

    def test_throws_on_header_without_direction(self):
        with pytest.raises(ValueError, match="Invalid mermaid header"):
            parse_flowchart("graph\n  A --> B")

    def test_top_level_direction_statement(self):
        db = parse_flowchart("graph TD\n  direction LR\n  A --> B")
        assert db.get_direction() == "LR"


# ============================================================================
# Node shapes
# ============================================================================


class TestNodeShapes:
    @pytest.mark.parametrize(
        "source, shape, text",
        [
            ("A[Hello World]", "rectangle", "Hello World"),
            ("A(Rounded)", "rounded", "Rounded"),
            ("A{Decision}", "diamond", "Decision"),
            ("A([Stadium])", "stadium", "Stadium"),
            ("A((Circle))", "circle", "Circle"),
            ("A[[Subroutine]]", "subroutine", "Subroutine"),
            ("A(((Double)))", "doublecircle", "Double"),
            ("A{{Hexagon}}", "hexagon", "Hexagon"),
            ("A[(Database)]", "cylinder", "Database"),
            ("A>Flag Shape]", "asymmetric", "Flag Shape"),
            ("A[/Trapezoid\\]", "trapezoid", "Trapezoid"),
            ("A[\\Alt Trapezoid/]", "trapezoid-alt", "Alt Trapezoid"),
        ],
    )
    def test_parses_shape(self, source, shape, text):
        db = parse_flowchart(f"graph TD\n  {source}")
        vertex = db.get_vertices()["A"]
        assert vertex.type == shape
        assert vertex.text == text

    def test_bare_nodes_use_id_as_text(self):
        db = parse_flowchart("graph TD\n  A --> B")
        vertices = db.get_vertices()
        assert vertices["A"].text == "A"
        assert vertices["A"].type is None
        assert vertices["B"].text == "B"

    def test_supports_hyphenated_node_ids(self):
        db = parse_flowchart("graph TD\n  my-node[My Node]")
        assert db.get_vertices()["my-node"].text == "My Node"

    def test_later_definition_overwrites_text(self):
        db = parse_flowchart("graph TD\n  A[Start] --> B\n  A[Begin] --> B")
        assert db.get_vertices()["A"].text == "Begin"

    def test_bare_reference_keeps_text(self):
        db = parse_flowchart("graph TD\n  A[Start] --> B\n  A --> C")
        assert db.get_vertices()["A"].text == "Start"

    def test_quoted_text_is_unquoted(self):
        db = parse_flowchart('graph TD\n  A["Quoted (parens)"]')
        assert db.get_vertices()["A"].text == "Quoted (parens)"

    def test_digit_ids_are_normalized(self):
        db = parse_flowchart("graph TD\n  1[One] --> 2")
        assert set(db.get_vertices()) == {"s1", "s2"}
        assert db.get_vertices()["s2"].text == "2"
        edge = db.get_edges()[0]
        assert (edge.start, edge.end) == ("s1", "s2")

    def test_preserves_node_order(self):
        db = parse_flowchart("graph TD\n  Z[Last] --> A[First]")
        assert list(db.get_vertices()) == ["Z", "A"]


# ============================================================================
# Edge parsing
# ============================================================================


class TestEdgeParsing:
    def test_parses_solid_edge(self):
        db = parse_flowchart("graph TD\n  A --> B")
        edges = db.get_edges()
        assert len(edges) == 1
        assert edges[0].start == "A"
        assert edges[0].end == "B"
        assert edges[0].type == "arrow"
        assert edges[0].stroke == "solid"
        assert edges[0].text == ""

    def test_parses_edge_without_spaces(self):
        db = parse_flowchart("graph TD\n  A-->B")
        assert [(e.start, e.end) for e in db.get_edges()] == [("A", "B")]

    @pytest.mark.parametrize(
        "arrow, kind, stroke",
        [
            ("-->", "arrow", "solid"),
            ("---", "arrow_open", "solid"),
            ("-.->", "arrow", "dotted"),
            ("-.-", "arrow_open", "dotted"),
            ("==>", "arrow", "thick"),
            ("===", "arrow_open", "thick"),
            ("<-->", "double_arrow", "solid"),
        ],
    )
    def test_arrow_styles(self, arrow, kind, stroke):
        db = parse_flowchart(f"graph TD\n  A {arrow} B")
        edge = db.get_edges()[0]
        assert edge.type == kind
        assert edge.stroke == stroke

    def test_parses_edge_label(self):
        db = parse_flowchart("graph TD\n  A -->|Yes| B")
        assert db.get_edges()[0].text == "Yes"

    def test_parses_chains(self):
        db = parse_flowchart("graph TD\n  A --> B --> C")
        assert [(e.start, e.end) for e in db.get_edges()] == [("A", "B"), ("B", "C")]

    def test_parses_ampersand_groups(self):
        db = parse_flowchart("graph TD\n  A & B --> C & D")
        assert [(e.start, e.end) for e in db.get_edges()] == [
            ("A", "C"),
            ("A", "D"),
            ("B", "C"),
            ("B", "D"),
        ]

    def test_semicolon_separated_statements(self):
        db = parse_flowchart("graph TD;A-->B;B-->C")
        assert len(db.get_edges()) == 2


# ============================================================================
# Styling statements
# ============================================================================


class TestStyling:
    def test_classdef(self):
        db = parse_flowchart(
            "graph TD\n"
            "  classDef highlight fill:#f96,stroke:#333\n"
            "  A --> B"
        )
        assert db.get_classes()["highlight"].styles == ["fill:#f96", "stroke:#333"]

    def test_class_assignment(self):
        db = parse_flowchart("graph TD\n  A --> B --> C\n  class A,B highlight")
        vertices = db.get_vertices()
        assert vertices["A"].classes == ["highlight"]
        assert vertices["B"].classes == ["highlight"]
        assert vertices["C"].classes == []

    def test_class_shorthand(self):
        db = parse_flowchart("graph TD\n  A:::hot --> B")
        assert db.get_vertices()["A"].classes == ["hot"]
        assert len(db.get_edges()) == 1

    def test_style_statement_appends(self):
        db = parse_flowchart(
            "graph TD\n  A --> B\n  style A fill:#f9f,stroke:#333\n  style A color:#fff"
        )
        assert db.get_vertices()["A"].styles == ["fill:#f9f", "stroke:#333", "color:#fff"]

    def test_link_style_by_index(self):
        db = parse_flowchart(
            "graph TD\n  A --> B\n  B --> C\n  linkStyle 1 stroke:#f00,stroke-width:2px"
        )
        edges = db.get_edges()
        assert edges[0].style is None
        assert edges[1].style == ["stroke:#f00", "stroke-width:2px", "fill:none"]

    def test_link_style_default_with_interpolation(self):
        db = parse_flowchart(
            "graph TD\n  A --> B\n  linkStyle default interpolate basis stroke:#0f0"
        )
        assert db.edge_defaults.interpolate == "basis"
        assert db.edge_defaults.style == ["stroke:#0f0"]

    def test_link_style_interpolation_only(self):
        db = parse_flowchart("graph TD\n  A --> B\n  linkStyle 0 interpolate linear")
        assert db.get_edges()[0].interpolate == "linear"
        assert db.get_edges()[0].style is None

    def test_link_style_missing_edge_raises(self):
        with pytest.raises(ValueError, match="missing edge"):
            parse_flowchart("graph TD\n  A --> B\n  linkStyle 3 stroke:#f00")

    def test_link_style_missing_edge_leaves_edges_untouched(self):
        db = FlowDb()
        with pytest.raises(ValueError, match="missing edge"):
            parse_flowchart(
                "graph TD\n  A --> B\n  linkStyle 0,9 interpolate basis stroke:#f00",
                db=db,
            )
        edge = db.get_edges()[0]
        assert edge.interpolate is None
        assert edge.style is None


class TestParseEdgeTargets:
    def test_mixed_positions(self):
        assert parse_edge_targets(["default", "2", 0]) == [
            AllUnset(),
            EdgeIndex(2),
            EdgeIndex(0),
        ]

    def test_rejects_unknown_token(self):
        with pytest.raises(ValueError, match="Invalid linkStyle target"):
            parse_edge_targets(["all"])


# ============================================================================
# Click statements
# ============================================================================


class TestClick:
    def test_click_href_sets_link_and_tooltip(self):
        db = parse_flowchart(
            'graph TD\n  A --> B\n  click A href "https://example.com" "Open"'
        )
        vertex = db.get_vertices()["A"]
        assert vertex.link == "https://example.com"
        assert vertex.classes == ["clickable"]
        assert db.get_tooltip("A") == "Open"

    def test_click_bare_url(self):
        db = parse_flowchart('graph TD\n  A --> B\n  click B "https://example.com"')
        assert db.get_vertices()["B"].link == "https://example.com"

    def test_click_callback_in_loose_mode(self):
        db = parse_flowchart(
            'graph TD\n  A --> B\n  click A showDetails "Details"',
            config=FlowConfig(security_level="loose"),
        )
        assert [(b.node_id, b.function_name) for b in db.bindings] == [
            ("A", "showDetails")
        ]
        assert db.get_tooltip("A") == "Details"

    def test_click_call_syntax(self):
        db = parse_flowchart(
            "graph TD\n  A --> B\n  click A call showDetails()",
            config=FlowConfig(security_level="loose"),
        )
        assert db.bindings[0].function_name == "showDetails"


# ============================================================================
# Subgraphs
# ============================================================================


class TestSubgraphs:
    def test_parses_simple_subgraph(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph Backend\n"
            "    A --> B\n"
            "  end"
        )
        subgraphs = db.get_subgraphs()
        assert len(subgraphs) == 1
        assert subgraphs[0].id == "Backend"
        assert subgraphs[0].title == "Backend"
        assert subgraphs[0].nodes == ["A", "B"]

    def test_parses_subgraph_with_bracket_id(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph be [Backend Services]\n"
            "    A --> B\n"
            "  end"
        )
        assert db.get_subgraphs()[0].id == "be"
        assert db.get_subgraphs()[0].title == "Backend Services"

    def test_parses_subgraph_hyphenated_id(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph us-east [US East Region]\n"
            "    A --> B\n"
            "  end"
        )
        assert db.get_subgraphs()[0].id == "us-east"

    def test_title_with_spaces_gets_generated_id(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph My Group\n"
            "    A --> B\n"
            "  end"
        )
        assert db.get_subgraphs()[0].id == "subGraph0"
        assert db.get_subgraphs()[0].title == "My Group"

    def test_quoted_title_gets_generated_id(self):
        db = parse_flowchart('graph TD\n  subgraph "Edge Tier"\n    A\n  end')
        assert db.get_subgraphs()[0].id == "subGraph0"
        assert db.get_subgraphs()[0].title == "Edge Tier"

    def test_members_are_deduplicated(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph sg\n"
            "    A --> B\n"
            "    B --> A\n"
            "    C\n"
            "  end"
        )
        assert db.get_subgraphs()[0].nodes == ["A", "B", "C"]

    def test_nested_subgraphs(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph Outer\n"
            "    subgraph Inner\n"
            "      A --> B\n"
            "    end\n"
            "    C --> D\n"
            "  end"
        )
        subgraphs = db.get_subgraphs()
        assert [sg.id for sg in subgraphs] == ["Inner", "Outer"]
        assert subgraphs[0].nodes == ["A", "B"]
        assert subgraphs[1].nodes == ["Inner", "C", "D"]

        db.index_nodes()
        assert db.get_depth_first_pos(0) == 1
        assert db.get_depth_first_pos(1) == 0

    def test_class_on_subgraph(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph sg\n"
            "    A\n"
            "  end\n"
            "  class sg hot"
        )
        assert db.get_subgraphs()[0].classes == ["hot"]

    def test_direction_inside_subgraph_is_ignored(self):
        db = parse_flowchart(
            "graph TD\n"
            "  subgraph sg\n"
            "    direction LR\n"
            "    A\n"
            "  end"
        )
        assert db.get_direction() == "TD"
        assert db.get_subgraphs()[0].nodes == ["A"]


# ============================================================================
# Sessions
# ============================================================================


class TestSessions:
    def test_reuses_and_clears_supplied_db(self):
        db = FlowDb()
        parse_flowchart("graph TD\n  A --> B", db=db)
        assert db.first_graph() is True

        result = parse_flowchart("graph LR\n  X --> Y", db=db)
        assert result is db
        assert set(db.get_vertices()) == {"X", "Y"}
        assert len(db.get_edges()) == 1
        assert db.first_graph() is True

    def test_ignores_comment_lines(self):
        db = parse_flowchart(
            "graph TD\n"
            "  %% This is a comment\n"
            "  A --> B\n"
            "  %% Another comment"
        )
        assert len(db.get_vertices()) == 2
        assert len(db.get_edges()) == 1

    def test_handles_extra_whitespace_and_empty_lines(self):
        db = parse_flowchart("  graph TD  \n\n    A  -->  B  \n\n  B --> C")
        assert len(db.get_edges()) == 2
        assert len(db.get_vertices()) == 3

    def test_rejects_db_together_with_config(self):
        with pytest.raises(ValueError, match="not both"):
            parse_flowchart(
                "graph TD\n  A --> B",
                db=FlowDb(),
                config=FlowConfig(security_level="loose"),
            )

    @pytest.mark.parametrize(
        "line",
        [
            "accTitle: My chart",
            "accDescr: Nodes and links",
            "click A",
            "class A",
            "style A",
            "linkStyle",
            "A --> B extra words",
            "A -->",
            "A & --> B",
        ],
    )
    def test_unrecognized_lines_are_ignored(self, line):
        db = parse_flowchart(f"graph TD\n  A --> B\n  {line}")
        assert list(db.get_vertices()) == ["A", "B"]
        assert len(db.get_edges()) == 1

    def test_unrecognized_lines_do_not_add_vertices(self):
        db = parse_flowchart("graph TD\naccTitle: My chart\nclick A\nA-->B")
        assert list(db.get_vertices()) == ["A", "B"]

    def test_keyword_prefixed_ids_are_nodes(self):
        db = parse_flowchart("graph TD\n  classA --> styleB")
        assert list(db.get_vertices()) == ["classA", "styleB"]
