from __future__ import annotations

from grandalf.graphs import Vertex as GVertex, Edge as GEdge, Graph

from .db import FlowDb

# ============================================================================
# grandalf export
#
# Hands the finished model to grandalf so a Sugiyama layout can run
# downstream. Edge endpoints are never validated by FlowDb, so endpoints that
# were not declared as vertices get placeholder grandalf vertices whose data
# is None.
# ============================================================================


def to_grandalf_graph(db: FlowDb) -> Graph:
    """Build a grandalf Graph from the vertices and edges of ``db``.

    grandalf vertices carry the ``Vertex`` record as ``data``; grandalf edges
    carry the ``Edge`` record, in declaration order.
    """
    vertices: dict[str, GVertex] = {
        vid: GVertex(vertex) for vid, vertex in db.get_vertices().items()
    }

    edges: list[GEdge] = []
    for edge in db.get_edges():
        src_v = _ensure_vertex(vertices, edge.start)
        tgt_v = _ensure_vertex(vertices, edge.end)
        edges.append(GEdge(src_v, tgt_v, data=edge))

    return Graph(list(vertices.values()), edges)


def _ensure_vertex(vertices: dict[str, GVertex], vid: str) -> GVertex:
    v = vertices.get(vid)
    if v is None:
        v = GVertex(None)
        vertices[vid] = v
    return v
