"""Per-node investigation completeness.

Each node is scored on three axes, all in [0, 1]:

  - relation: expected relations present (see ``relations``)
  - attribute: informative fields filled (see ``attributes``)
  - structure: how well the node is embedded in the graph

The overall score is a weighted geometric mean, so one very weak axis drags
the node down even when the other two are strong.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Sequence

from nexus.graph.index import GraphIndex
from nexus.graph.models import IntelNode, NodeCategory
from nexus.graph.structure import StructureMetrics
from nexus.investigation.attributes import AttributeStatistics, SparseAttribute
from nexus.investigation.relations import MissingRelation, RelationExpectationModel

logger = logging.getLogger(__name__)

# relation, attribute, structure
AXIS_WEIGHTS = (0.30, 0.40, 0.30)

_MIN_AXIS_VALUE = 0.01


class Priority(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _PRIORITY_RANK[self]


_PRIORITY_RANK = {
    Priority.CRITICAL: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}

PRIORITY_LABELS = {
    Priority.CRITICAL: "Urgent",
    Priority.HIGH: "High",
    Priority.MEDIUM: "Medium",
    Priority.LOW: "Low",
}


class IssueType(str, Enum):
    ISOLATED = "isolated"
    PERIPHERAL = "peripheral"
    BRIDGE_DEPENDENCY = "bridge_dependency"
    LOW_CONNECTIVITY = "low_connectivity"


@dataclass
class StructuralIssue:
    """A structural weakness of a node's position in the graph."""

    type: IssueType
    severity: float  # 0-1
    description: str


@dataclass
class NodeCompleteness:
    """Completeness assessment for one node."""

    node_id: str
    node_category: NodeCategory
    node_title: str
    relation_score: float
    attribute_score: float
    structure_score: float
    overall_score: float
    priority: Priority
    missing_relations: list[MissingRelation] = field(default_factory=list)
    sparse_attributes: list[SparseAttribute] = field(default_factory=list)
    structural_issues: list[StructuralIssue] = field(default_factory=list)

    def has_issue(self, issue_type: IssueType) -> bool:
        return any(i.type == issue_type for i in self.structural_issues)


# ---------------------------------------------------------------------------
# Scoring helpers
# ---------------------------------------------------------------------------


def geometric_weighted_mean(values: Sequence[float], weights: Sequence[float]) -> float:
    """``exp(sum(w * ln(max(v, 0.01))) / sum(w))``."""
    if not values or len(values) != len(weights):
        return 0.0

    log_sum = 0.0
    weight_sum = 0.0
    for value, weight in zip(values, weights):
        log_sum += weight * math.log(max(value, _MIN_AXIS_VALUE))
        weight_sum += weight
    if weight_sum <= 0:
        return 0.0
    return math.exp(log_sum / weight_sum)


def structure_completeness(
    node_id: str,
    metrics: StructureMetrics,
) -> tuple[float, list[StructuralIssue]]:
    """Return ``(score, issues)`` for one node's structural position."""
    degree = metrics.degrees.get(node_id, 0)
    clustering = metrics.clustering_coefficients.get(node_id, 0.0)
    betweenness = metrics.betweenness.get(node_id, 0.0)
    average = metrics.average_degree

    if average > 0:
        degree_score = min(degree / (average * 2), 1.0)
    else:
        degree_score = 0.5 if degree > 0 else 0.0

    issues: list[StructuralIssue] = []
    if degree == 0:
        issues.append(StructuralIssue(
            type=IssueType.ISOLATED,
            severity=1.0,
            description="Node is completely isolated with no connections",
        ))
    elif degree == 1:
        issues.append(StructuralIssue(
            type=IssueType.PERIPHERAL,
            severity=0.6,
            description="Node sits on the edge of the network with a single connection",
        ))

    if degree > 0 and clustering < 0.1 and betweenness > 0.5:
        issues.append(StructuralIssue(
            type=IssueType.BRIDGE_DEPENDENCY,
            severity=0.7,
            description="Node is a key bridge but lacks redundant connections",
        ))

    if 0 < degree < average * 0.3:
        issues.append(StructuralIssue(
            type=IssueType.LOW_CONNECTIVITY,
            severity=0.4,
            description="Node is weakly connected; consider expanding its links",
        ))

    isolation_bonus = 0.2 if degree > 0 else 0.0
    score = degree_score * 0.5 + clustering * 0.3 + isolation_bonus
    return min(score, 1.0), issues


def determine_priority(
    overall_score: float,
    missing_relations: Sequence[MissingRelation],
    structural_issues: Sequence[StructuralIssue],
) -> Priority:
    isolated = any(i.type == IssueType.ISOLATED for i in structural_issues)
    critical_missing = any(r.expected_probability >= 0.8 for r in missing_relations)

    if overall_score < 0.3 or isolated:
        return Priority.CRITICAL
    if overall_score < 0.5 or critical_missing:
        return Priority.HIGH
    if overall_score < 0.7:
        return Priority.MEDIUM
    return Priority.LOW


def completeness_label(score: float) -> str:
    if score >= 0.8:
        return "Excellent"
    if score >= 0.6:
        return "Good"
    if score >= 0.4:
        return "Fair"
    if score >= 0.2:
        return "Poor"
    return "Insufficient"


def priority_label(priority: Priority) -> str:
    return PRIORITY_LABELS[Priority(priority)]


# ---------------------------------------------------------------------------
# Scorer
# ---------------------------------------------------------------------------


class CompletenessScorer:
    """Score nodes against shared per-snapshot models.

    Parameters
    ----------
    index:
        Adjacency for the snapshot.
    attribute_stats:
        Fill-rate statistics learned from the same snapshot.
    structure:
        Structural metrics for the same snapshot.
    relations:
        Relation expectation model. Defaults to the built-in table.
    max_suggestions:
        Cap on missing-relation and sparse-attribute lists.
    """

    def __init__(
        self,
        index: GraphIndex,
        attribute_stats: AttributeStatistics,
        structure: StructureMetrics,
        relations: RelationExpectationModel | None = None,
        max_suggestions: int = 5,
    ) -> None:
        self._index = index
        self._attribute_stats = attribute_stats
        self._structure = structure
        self._relations = relations or RelationExpectationModel(
            max_suggestions=max_suggestions,
        )
        self._max_suggestions = max_suggestions

    def score(self, node: IntelNode) -> NodeCompleteness:
        relation_score, missing = self._relations.relation_completeness(node, self._index)
        attribute_score, sparse = self._attribute_stats.attribute_completeness(
            node, max_suggestions=self._max_suggestions,
        )
        structure_score, issues = structure_completeness(node.id, self._structure)

        overall = geometric_weighted_mean(
            [relation_score, attribute_score, structure_score],
            AXIS_WEIGHTS,
        )

        return NodeCompleteness(
            node_id=node.id,
            node_category=node.category,
            node_title=node.title,
            relation_score=relation_score,
            attribute_score=attribute_score,
            structure_score=structure_score,
            overall_score=overall,
            priority=determine_priority(overall, missing, issues),
            missing_relations=missing,
            sparse_attributes=sparse,
            structural_issues=issues,
        )
