"""Community detection by label propagation.

Every node starts in its own community. On each pass nodes are visited in
a fresh random order and adopt the most frequent label among their
neighbors. Ties go to the label seen first while scanning the neighbors;
the node's own label gets no preference. Passes stop once nothing changes
or the iteration cap is hit.

The visitation order makes results vary between runs. Pass a seeded
``random.Random`` for reproducible partitions.
"""

from __future__ import annotations

import logging
import random
from collections import Counter

from nexus.graph.index import GraphIndex

logger = logging.getLogger(__name__)

DEFAULT_MAX_ITERATIONS = 10

# Rendering palette, indexed by ``community_id % len(COMMUNITY_COLORS)``
COMMUNITY_COLORS: list[str] = [
    "#06B6D4",  # Cyan
    "#F97316",  # Orange
    "#22C55E",  # Green
    "#A855F7",  # Purple
    "#EC4899",  # Pink
    "#EAB308",  # Yellow
    "#EF4444",  # Red
    "#3B82F6",  # Blue
    "#6366F1",  # Indigo
    "#14B8A6",  # Teal
]


def community_color(community_id: int) -> str:
    """Palette entry for a community id."""
    return COMMUNITY_COLORS[community_id % len(COMMUNITY_COLORS)]


class CommunityDetector:
    """Label propagation over a :class:`GraphIndex`.

    Parameters
    ----------
    max_iterations:
        Maximum number of full passes.
    rng:
        Source of the per-pass visitation order. Defaults to an unseeded
        ``random.Random``.
    """

    def __init__(
        self,
        max_iterations: int = DEFAULT_MAX_ITERATIONS,
        rng: random.Random | None = None,
    ) -> None:
        self._max_iterations = max_iterations
        self._rng = rng or random.Random()

    def detect(self, index: GraphIndex) -> dict[str, int]:
        """Return node id -> community id, contiguous from 0."""
        node_ids = index.node_ids
        if not node_ids:
            return {}

        labels = {node_id: i for i, node_id in enumerate(node_ids)}

        iteration = 0
        changed = True
        while changed and iteration < self._max_iterations:
            changed = False
            iteration += 1

            order = list(node_ids)
            self._rng.shuffle(order)

            for node_id in order:
                neighbors = index.neighbors(node_id)
                if not neighbors:
                    continue

                counts = Counter(labels[n] for n in neighbors)
                best_label = labels[node_id]
                best_count = 0
                for label, count in counts.items():
                    if count > best_count:
                        best_count = count
                        best_label = label

                if labels[node_id] != best_label:
                    labels[node_id] = best_label
                    changed = True

        logger.debug(
            "Label propagation stopped after %d pass(es) (converged=%s)",
            iteration, not changed,
        )

        return _renumber(labels)


def _renumber(labels: dict[str, int]) -> dict[str, int]:
    """Relabel to 0..k-1 in order of first appearance."""
    mapping: dict[int, int] = {}
    for label in labels.values():
        if label not in mapping:
            mapping[label] = len(mapping)
    return {node_id: mapping[label] for node_id, label in labels.items()}
