"""Node centrality and key-node selection.

Composite centrality blends two signals:

  - degree centrality: neighbor count relative to the best-connected node
  - an iterative PageRank-style score, normalized to the top scorer

Key nodes are those at or above ``max(0.5, score at the 20th percentile
position)`` of the descending ranking. The percentile term only bites on
graphs where many nodes score above 0.5.
"""

from __future__ import annotations

import logging
import math
import random
from dataclasses import dataclass, field
from typing import Iterable

from nexus.graph.communities import DEFAULT_MAX_ITERATIONS, CommunityDetector
from nexus.graph.index import GraphIndex
from nexus.graph.models import Connection, IntelNode

logger = logging.getLogger(__name__)

DEFAULT_DAMPING = 0.85
DEFAULT_PAGERANK_ITERATIONS = 20
DEFAULT_KEY_NODE_FLOOR = 0.5
DEFAULT_KEY_NODE_PERCENTILE = 0.2

DEGREE_WEIGHT = 0.4
PAGERANK_WEIGHT = 0.6

# Floor for the PageRank normalizer
_MIN_PAGERANK_MAX = 0.001


@dataclass
class GraphAnalysisResult:
    """Community partition and centrality for one snapshot."""

    communities: dict[str, int] = field(default_factory=dict)
    centrality: dict[str, float] = field(default_factory=dict)
    key_nodes: list[str] = field(default_factory=list)
    community_count: int = 0

    def community_members(self) -> dict[int, list[str]]:
        members: dict[int, list[str]] = {}
        for node_id, community_id in self.communities.items():
            members.setdefault(community_id, []).append(node_id)
        return members


class CentralityEngine:
    """Compute degree, PageRank-style and composite centrality.

    Parameters
    ----------
    damping:
        PageRank damping factor.
    iterations:
        Fixed number of PageRank iterations. There is no convergence check.
    """

    def __init__(
        self,
        damping: float = DEFAULT_DAMPING,
        iterations: int = DEFAULT_PAGERANK_ITERATIONS,
    ) -> None:
        self._damping = damping
        self._iterations = iterations

    def degree_centrality(self, index: GraphIndex) -> dict[str, float]:
        node_ids = index.node_ids
        max_degree = max([index.degree(n) for n in node_ids] + [1])
        return {n: index.degree(n) / max_degree for n in node_ids}

    def pagerank(self, index: GraphIndex) -> dict[str, float]:
        """Iterative score normalized so the top node scores 1.0."""
        node_ids = index.node_ids
        n = len(node_ids)
        if n == 0:
            return {}

        d = self._damping
        base = (1 - d) / n
        scores = {node_id: 1 / n for node_id in node_ids}

        for _ in range(self._iterations):
            updated: dict[str, float] = {}
            for node_id in node_ids:
                total = 0.0
                for neighbor in index.neighbors(node_id):
                    total += scores[neighbor] / index.degree(neighbor)
                updated[node_id] = base + d * total
            scores = updated

        top = max(max(scores.values()), _MIN_PAGERANK_MAX)
        return {node_id: score / top for node_id, score in scores.items()}

    def composite(self, index: GraphIndex) -> dict[str, float]:
        """``0.4 * degree + 0.6 * pagerank`` per node."""
        degree = self.degree_centrality(index)
        rank = self.pagerank(index)
        return {
            node_id: degree.get(node_id, 0.0) * DEGREE_WEIGHT
            + rank.get(node_id, 0.0) * PAGERANK_WEIGHT
            for node_id in index.node_ids
        }


def select_key_nodes(
    centrality: dict[str, float],
    floor: float = DEFAULT_KEY_NODE_FLOOR,
    percentile: float = DEFAULT_KEY_NODE_PERCENTILE,
) -> list[str]:
    """Nodes at or above ``max(floor, percentile score)``, highest first."""
    if not centrality:
        return []

    ranked = sorted(centrality.items(), key=lambda x: x[1], reverse=True)
    position = math.floor(len(ranked) * percentile)
    percentile_score = ranked[position][1] if position < len(ranked) else 0.0
    threshold = max(floor, percentile_score)

    logger.debug(
        "Key-node threshold %.4f (floor %.2f, percentile score %.4f)",
        threshold, floor, percentile_score,
    )
    return [node_id for node_id, score in ranked if score >= threshold]


def analyze_graph(
    nodes: Iterable[IntelNode],
    edges: Iterable[Connection],
    rng: random.Random | None = None,
    *,
    index: GraphIndex | None = None,
    max_iterations: int = DEFAULT_MAX_ITERATIONS,
    damping: float = DEFAULT_DAMPING,
    pagerank_iterations: int = DEFAULT_PAGERANK_ITERATIONS,
    key_node_floor: float = DEFAULT_KEY_NODE_FLOOR,
    key_node_percentile: float = DEFAULT_KEY_NODE_PERCENTILE,
) -> GraphAnalysisResult:
    """Detect communities and rank nodes for one snapshot.

    Pass a prebuilt ``index`` to reuse it; ``nodes`` and ``edges`` are then
    ignored.
    """
    if index is None:
        index = GraphIndex(nodes, edges)
    if index.node_count == 0:
        return GraphAnalysisResult()

    communities = CommunityDetector(max_iterations=max_iterations, rng=rng).detect(index)
    centrality = CentralityEngine(
        damping=damping, iterations=pagerank_iterations,
    ).composite(index)
    key_nodes = select_key_nodes(
        centrality, floor=key_node_floor, percentile=key_node_percentile,
    )

    return GraphAnalysisResult(
        communities=communities,
        centrality=centrality,
        key_nodes=key_nodes,
        community_count=len(set(communities.values())),
    )
