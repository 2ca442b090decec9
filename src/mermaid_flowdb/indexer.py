from __future__ import annotations

import logging
from dataclasses import dataclass

from .types import IndexReport, SearchResult, Subgraph

logger = logging.getLogger(__name__)

# Upper bound on recorded visits; large or pathological hierarchies are
# silently truncated at this point.
MAX_INDEXED_SUBGRAPHS = 2000

# ============================================================================
# Subgraph depth-first indexer
#
# Walks the subgraph membership structure depth first and records, for each
# step, the list position of the subgraph visited at that step. The renderer
# uses the resulting table to decide nesting order. Members that do not
# resolve to a subgraph are plain vertices and are skipped.
#
# Membership is expected to form a tree but nothing enforces it. A member that
# points back to a subgraph on the current path is reported as a cycle and
# not followed; shared children (a DAG) are visited once per parent.
# ============================================================================


@dataclass
class _Frame:
    position: int
    cursor: int = 0
    count: int = 1


class SubgraphIndexer:
    """Depth-first position cross-reference over a subgraph registry."""

    def __init__(
        self,
        subgraphs: list[Subgraph],
        positions: dict[str, int],
        max_visits: int = MAX_INDEXED_SUBGRAPHS,
    ) -> None:
        self._subgraphs = subgraphs
        self._positions = positions
        self.max_visits = max_visits
        self.cross_ref: list[int] = []
        self.report = IndexReport()

    def reset(self) -> None:
        self.cross_ref = []
        self.report = IndexReport()

    def index(self) -> IndexReport:
        """Walk the whole structure from the last-registered subgraph."""
        self.reset()
        if self._subgraphs:
            # None never equals a subgraph id, so the walk covers everything
            self.search(None, len(self._subgraphs) - 1)

        if self.report.truncated:
            logger.warning(
                "Subgraph indexing stopped after %d visits", self.report.visited
            )
        for parent, member in self.report.cycles:
            logger.warning(
                "Subgraph %r lists its ancestor %r as a member; not followed",
                parent,
                member,
            )
        return self.report

    def search(self, target_id: str | None, position: int) -> SearchResult:
        """Depth-first search for ``target_id`` starting at ``position``.

        Every subgraph reached is recorded in ``cross_ref`` before its
        members are explored. On a match, ``count`` is the number of
        subgraphs counted on the way down; otherwise it is the size of the
        explored structure.
        """
        if not self._record(position):
            return SearchResult(result=False, count=0)
        if self._subgraphs[position].id == target_id:
            return SearchResult(result=True, count=0)

        stack = [_Frame(position)]
        on_path = {position}

        while True:
            frame = stack[-1]
            members = self._subgraphs[frame.position].nodes

            if frame.cursor < len(members):
                member = members[frame.cursor]
                frame.cursor += 1

                child = self._positions.get(member, -1)
                if child < 0:
                    continue
                if child in on_path:
                    self.report.cycles.append(
                        (self._subgraphs[frame.position].id, member)
                    )
                    continue

                if not self._record(child):
                    return SearchResult(
                        result=False, count=sum(f.count for f in stack)
                    )
                if self._subgraphs[child].id == target_id:
                    return SearchResult(
                        result=True, count=sum(f.count for f in stack)
                    )

                stack.append(_Frame(child))
                on_path.add(child)
                continue

            # All members explored: fold this frame's count into its parent
            stack.pop()
            on_path.discard(frame.position)
            if not stack:
                return SearchResult(result=False, count=frame.count)
            stack[-1].count += frame.count

    def depth_first_pos(self, step: int) -> int | None:
        if 0 <= step < len(self.cross_ref):
            return self.cross_ref[step]
        return None

    def _record(self, position: int) -> bool:
        if len(self.cross_ref) >= self.max_visits:
            self.report.truncated = True
            return False
        self.cross_ref.append(position)
        self.report.visited += 1
        return True
