"""Nexus graph layer.

Snapshot models, the adjacency index and the graph-theoretic passes:
label-propagation communities, composite centrality and structural
metrics.

Usage::

    from nexus.graph import IntelNode, Connection, analyze_graph

    result = analyze_graph(nodes, edges)
    result.communities
    result.key_nodes
"""

from nexus.graph.models import Connection, IntelNode, NodeCategory
from nexus.graph.index import GraphIndex
from nexus.graph.communities import CommunityDetector, community_color
from nexus.graph.centrality import (
    CentralityEngine,
    GraphAnalysisResult,
    analyze_graph,
    select_key_nodes,
)
from nexus.graph.structure import StructureMetrics, gini_coefficient

__all__ = [
    "Connection",
    "IntelNode",
    "NodeCategory",
    "GraphIndex",
    "CommunityDetector",
    "community_color",
    "CentralityEngine",
    "GraphAnalysisResult",
    "analyze_graph",
    "select_key_nodes",
    "StructureMetrics",
    "gini_coefficient",
]
