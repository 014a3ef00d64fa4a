"""Adaptive attribute statistics.

There is no fixed schema for what a "complete" node of a category looks
like. Instead, each analysis run learns the fill rate of every field within
each category from the snapshot itself, so expectations track the data as
the investigation grows.

A field's importance is its self-information in bits,
``-log2(fill rate)``, capped at 6 bits: a field only a few nodes have is
worth more than one every node has.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from typing import Iterable

from nexus.graph.models import IntelNode, NodeCategory

logger = logging.getLogger(__name__)

TITLE_FIELD = "_title"
CONTENT_FIELD = "_content"

MAX_IMPORTANCE_BITS = 6.0
MIN_FILL_RATE = 0.01
SPARSE_IMPORTANCE_THRESHOLD = 1.0
MAX_SUGGESTIONS = 5

# Score when every known field is filled by every node of the category
NEUTRAL_ATTRIBUTE_SCORE = 0.5


@dataclass
class SparseAttribute:
    """An informative field the node is missing."""

    field: str
    importance: float  # normalized to 0-1
    fill_rate: float


def field_importance(fill_rate: float) -> float:
    """Self-information of a field in bits, capped."""
    return min(-math.log2(max(fill_rate, MIN_FILL_RATE)), MAX_IMPORTANCE_BITS)


@dataclass
class AttributeStatistics:
    """Per-category field fill rates learned from one snapshot."""

    field_fill_rates: dict[NodeCategory, dict[str, float]] = field(default_factory=dict)
    type_count: dict[NodeCategory, int] = field(default_factory=dict)

    @classmethod
    def from_nodes(cls, nodes: Iterable[IntelNode]) -> "AttributeStatistics":
        type_count: dict[NodeCategory, int] = {}
        occurrences: dict[NodeCategory, dict[str, int]] = {}

        for node in nodes:
            type_count[node.category] = type_count.get(node.category, 0) + 1
            fields = occurrences.setdefault(node.category, {})

            for key in node.attributes:
                if node.has_field(key):
                    fields[key] = fields.get(key, 0) + 1
            for pseudo in (TITLE_FIELD, CONTENT_FIELD):
                if node.has_field(pseudo):
                    fields[pseudo] = fields.get(pseudo, 0) + 1

        fill_rates = {
            category: {
                name: count / (type_count.get(category) or 1)
                for name, count in fields.items()
            }
            for category, fields in occurrences.items()
        }

        logger.debug(
            "Learned attribute statistics for %d categories", len(fill_rates),
        )
        return cls(field_fill_rates=fill_rates, type_count=type_count)

    def known_fields(self, category: NodeCategory) -> dict[str, float]:
        return self.field_fill_rates.get(category, {})

    def attribute_completeness(
        self,
        node: IntelNode,
        max_suggestions: int = MAX_SUGGESTIONS,
    ) -> tuple[float, list[SparseAttribute]]:
        """Return ``(score, sparse attributes)`` for one node.

        Score is the importance-weighted share of known fields the node has
        filled. Without statistics for the category, the node is scored on
        its own filled attribute count.
        """
        fill_rates = self.known_fields(node.category)

        if not fill_rates:
            filled = node.filled_attribute_count()
            score = min(0.5 + filled * 0.1, 0.8) if filled > 0 else 0.3
            return score, []

        total = 0.0
        weighted = 0.0
        sparse: list[SparseAttribute] = []

        for name, fill_rate in fill_rates.items():
            importance = field_importance(fill_rate)
            total += importance

            if node.has_field(name):
                weighted += importance
            elif importance > SPARSE_IMPORTANCE_THRESHOLD:
                sparse.append(SparseAttribute(
                    field=name[1:] if name.startswith("_") else name,
                    importance=importance / MAX_IMPORTANCE_BITS,
                    fill_rate=fill_rate,
                ))

        score = weighted / total if total > 0 else NEUTRAL_ATTRIBUTE_SCORE

        sparse.sort(key=lambda s: s.importance, reverse=True)
        return score, sparse[:max_suggestions]

    def information_density(self, nodes: Iterable[IntelNode]) -> float:
        """Filled known fields over all known fields, across nodes.

        0.5 when no fields are known at all.
        """
        total = 0
        filled = 0
        for node in nodes:
            for name in self.known_fields(node.category):
                total += 1
                if node.has_field(name):
                    filled += 1
        return filled / total if total > 0 else 0.5
