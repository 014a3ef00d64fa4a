"""Rendering-ready graph views enriched with analysis results.

Supported formats:
  - D3 JSON: ``{"nodes": [...], "links": [...]}`` for force-directed layouts
  - Cytoscape JSON: ``{"elements": [...]}`` for Cytoscape.js

Each node carries its community id and palette color, composite
centrality, key-node flag and completeness priority so the canvas can drive
emphasis and badges without re-running analysis. Both methods return dicts.
Writing them anywhere is up to the caller.
"""

from __future__ import annotations

import logging
from typing import Any, Sequence

from nexus.graph.communities import community_color
from nexus.graph.models import Connection, IntelNode
from nexus.investigation.analyzer import AnalysisResult

logger = logging.getLogger(__name__)

# Visual size range for centrality-scaled nodes
_MIN_SIZE = 10.0
_MAX_SIZE = 50.0


class GraphExporter:
    """Build rendering views of an analyzed snapshot.

    Parameters
    ----------
    nodes:
        The snapshot's nodes.
    edges:
        The snapshot's connections. Connections to unknown nodes are omitted.
    result:
        Analysis of the same snapshot.
    """

    def __init__(
        self,
        nodes: Sequence[IntelNode],
        edges: Sequence[Connection],
        result: AnalysisResult,
    ) -> None:
        self._nodes = list(nodes)
        self._edges = list(edges)
        self._result = result
        self._key_nodes = set(result.key_nodes)
        self._completeness = {
            record.node_id: record for record in result.investigation.node_analysis
        }

    def _node_data(self, node: IntelNode) -> dict[str, Any]:
        community = self._result.communities.get(node.id, 0)
        centrality = self._result.centrality.get(node.id, 0.0)
        record = self._completeness.get(node.id)
        return {
            "id": node.id,
            "title": node.title,
            "category": node.category.value,
            "community": community,
            "color": community_color(community),
            "centrality": centrality,
            "size": _MIN_SIZE + centrality * (_MAX_SIZE - _MIN_SIZE),
            "key_node": node.id in self._key_nodes,
            "priority": record.priority.value if record else None,
            "completeness": record.overall_score if record else None,
        }

    def _valid_edges(self) -> list[Connection]:
        known = {node.id for node in self._nodes}
        valid = [e for e in self._edges if e.source_id in known and e.target_id in known]
        skipped = len(self._edges) - len(valid)
        if skipped:
            logger.debug("Omitting %d dangling connection(s) from export", skipped)
        return valid

    # -- D3 ------------------------------------------------------------------

    def to_d3_json(self) -> dict[str, Any]:
        """Export as D3.js force-graph data."""
        return {
            "nodes": [self._node_data(node) for node in self._nodes],
            "links": [
                {
                    "id": edge.id,
                    "source": edge.source_id,
                    "target": edge.target_id,
                    "label": edge.label or "",
                    "kind": edge.kind.value if edge.kind else None,
                }
                for edge in self._valid_edges()
            ],
        }

    # -- Cytoscape -----------------------------------------------------------

    def to_cytoscape_json(self) -> dict[str, Any]:
        """Export as Cytoscape.js elements."""
        elements: list[dict[str, Any]] = []
        for node in self._nodes:
            elements.append({"group": "nodes", "data": self._node_data(node)})

        for edge in self._valid_edges():
            elements.append({
                "group": "edges",
                "data": {
                    "id": edge.id,
                    "source": edge.source_id,
                    "target": edge.target_id,
                    "label": edge.label or "",
                    "kind": edge.kind.value if edge.kind else None,
                },
            })

        return {"elements": elements}
