"""Undirected adjacency index over a graph snapshot.

Wraps a simple ``networkx.Graph``: parallel connections collapse into one
edge and connections to unknown node ids are dropped. Every supplied node
is present, isolated or not.
"""

from __future__ import annotations

import logging
from typing import Iterable, Mapping

import networkx as nx

from nexus.graph.models import Connection, IntelNode

logger = logging.getLogger(__name__)


class GraphIndex:
    """Neighbor sets for every node in a snapshot.

    Parameters
    ----------
    nodes:
        The snapshot's nodes. Order is preserved and used as the node
        index order by community detection.
    edges:
        The snapshot's connections. Direction is ignored.
    """

    def __init__(
        self,
        nodes: Iterable[IntelNode],
        edges: Iterable[Connection],
    ) -> None:
        self._nodes: dict[str, IntelNode] = {}
        self._graph = nx.Graph()
        self.dangling_edges = 0
        self.duplicate_nodes = 0

        for node in nodes:
            if node.id in self._nodes:
                self.duplicate_nodes += 1
                continue
            self._nodes[node.id] = node
            self._graph.add_node(node.id, category=node.category)

        for edge in edges:
            if edge.source_id not in self._nodes or edge.target_id not in self._nodes:
                self.dangling_edges += 1
                continue
            self._graph.add_edge(edge.source_id, edge.target_id)

        if self.duplicate_nodes:
            logger.debug(
                "Ignored %d repeated node id(s); first occurrence kept",
                self.duplicate_nodes,
            )
        if self.dangling_edges:
            logger.debug(
                "Skipped %d connection(s) referencing unknown nodes",
                self.dangling_edges,
            )

    @property
    def graph(self) -> nx.Graph:
        return self._graph

    @property
    def node_ids(self) -> list[str]:
        return list(self._nodes)

    @property
    def node_count(self) -> int:
        return len(self._nodes)

    @property
    def edge_count(self) -> int:
        return self._graph.number_of_edges()

    def __contains__(self, node_id: object) -> bool:
        return node_id in self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def node(self, node_id: str) -> IntelNode | None:
        return self._nodes.get(node_id)

    def neighbors(self, node_id: str) -> list[str]:
        """Neighbor ids in the order their connections were supplied.

        A self-loop makes the node its own neighbor.
        """
        if node_id not in self._graph:
            return []
        return list(self._graph.adj[node_id])

    def degree(self, node_id: str) -> int:
        """Neighbor-set size (a self-loop counts once)."""
        if node_id not in self._graph:
            return 0
        return len(self._graph.adj[node_id])

    def adjacent(self, u: str, v: str) -> bool:
        return self._graph.has_edge(u, v)

    @property
    def adjacency(self) -> Mapping[str, set[str]]:
        return {n: set(self._graph.adj[n]) for n in self._nodes}
