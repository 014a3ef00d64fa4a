"""Structural graph metrics.

Per node: degree, clustering coefficient and a betweenness proxy.
Global: connectivity, average degree and structural balance.

The betweenness proxy is ``degree / max degree``, not shortest-path
betweenness. Exact betweenness is O(VE) and too slow for interactive
re-analysis.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from itertools import combinations
from typing import Sequence

import networkx as nx

from nexus.graph.index import GraphIndex

logger = logging.getLogger(__name__)


@dataclass
class StructureMetrics:
    """Structural metrics for one snapshot."""

    degrees: dict[str, int] = field(default_factory=dict)
    clustering_coefficients: dict[str, float] = field(default_factory=dict)
    betweenness: dict[str, float] = field(default_factory=dict)
    global_connectivity: float = 0.0
    structural_balance: float = 0.0
    average_degree: float = 0.0

    @classmethod
    def compute(cls, index: GraphIndex) -> "StructureMetrics":
        n = index.node_count
        if n == 0:
            return cls()

        degrees = {node_id: index.degree(node_id) for node_id in index.node_ids}
        max_degree = max(max(degrees.values()), 1)

        components = [len(c) for c in nx.connected_components(index.graph)]
        largest = max(components, default=0)

        return cls(
            degrees=degrees,
            clustering_coefficients=clustering_coefficients(index),
            betweenness={k: d / max_degree for k, d in degrees.items()},
            global_connectivity=largest / n,
            structural_balance=1 - gini_coefficient(list(degrees.values())),
            average_degree=sum(degrees.values()) / n,
        )


def clustering_coefficients(index: GraphIndex) -> dict[str, float]:
    """Fraction of each node's neighbor pairs that are themselves adjacent.

    Nodes with fewer than two neighbors score 0.
    """
    coefficients: dict[str, float] = {}
    for node_id in index.node_ids:
        neighbors = index.neighbors(node_id)
        k = len(neighbors)
        if k < 2:
            coefficients[node_id] = 0.0
            continue

        triangles = sum(1 for u, v in combinations(neighbors, 2) if index.adjacent(u, v))
        coefficients[node_id] = triangles / (k * (k - 1) / 2)
    return coefficients


def gini_coefficient(values: Sequence[float]) -> float:
    """Gini coefficient of a distribution; 0 for empty or all-zero input."""
    if not values:
        return 0.0

    ordered = sorted(values)
    n = len(ordered)
    mean = sum(ordered) / n
    if mean == 0:
        return 0.0

    weighted = 0.0
    for i, value in enumerate(ordered):
        weighted += (2 * (i + 1) - n - 1) * value
    return weighted / (n * n * mean)
