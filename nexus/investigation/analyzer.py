"""Investigation analyzer: the engine's public entry point.

Runs the whole analysis over one immutable snapshot:

  1. Build the adjacency index once
  2. Detect communities and rank nodes by centrality
  3. Learn attribute fill rates and structural metrics once
  4. Score every node's completeness independently
  5. Aggregate distribution, prioritized suggestions and graph health

Usage::

    analyzer = InvestigationAnalyzer()
    result = analyzer.analyze(nodes, edges)

    result.key_nodes
    result.investigation.prioritized_suggestions[:10]

The analysis is a pure function of its input. It holds no state between
calls and never mutates the snapshot, so it is safe to run from worker
threads. Discard stale results instead of cancelling a run.
"""

from __future__ import annotations

import logging
import random
from dataclasses import asdict, dataclass, field
from typing import Any, Iterable, Sequence

from nexus.config.settings import AnalysisSettings
from nexus.config.settings import settings as default_settings
from nexus.graph.centrality import GraphAnalysisResult, analyze_graph
from nexus.graph.index import GraphIndex
from nexus.graph.models import Connection, IntelNode
from nexus.graph.structure import StructureMetrics
from nexus.investigation.attributes import AttributeStatistics
from nexus.investigation.completeness import (
    CompletenessScorer,
    NodeCompleteness,
)
from nexus.investigation.relations import RelationExpectationModel

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Result types
# ---------------------------------------------------------------------------


@dataclass
class CompletenessDistribution:
    """Node counts per overall-score bucket."""

    critical: int = 0  # < 0.3
    low: int = 0       # 0.3 - 0.5
    medium: int = 0    # 0.5 - 0.7
    high: int = 0      # >= 0.7

    @classmethod
    def from_scores(cls, scores: Iterable[float]) -> "CompletenessDistribution":
        dist = cls()
        for score in scores:
            if score < 0.3:
                dist.critical += 1
            elif score < 0.5:
                dist.low += 1
            elif score < 0.7:
                dist.medium += 1
            else:
                dist.high += 1
        return dist


@dataclass
class GraphHealth:
    connectivity: float = 0.0
    information_density: float = 0.0
    structural_balance: float = 0.0


@dataclass
class InvestigationAnalysis:
    """Graph-wide completeness aggregate."""

    total_nodes: int = 0
    average_completeness: float = 0.0
    completeness_distribution: CompletenessDistribution = field(
        default_factory=CompletenessDistribution,
    )
    node_analysis: list[NodeCompleteness] = field(default_factory=list)
    prioritized_suggestions: list[NodeCompleteness] = field(default_factory=list)
    graph_health: GraphHealth = field(default_factory=GraphHealth)


@dataclass
class AnalysisResult:
    """Everything one analysis run produces. Recomputed on every run."""

    communities: dict[str, int] = field(default_factory=dict)
    centrality: dict[str, float] = field(default_factory=dict)
    key_nodes: list[str] = field(default_factory=list)
    community_count: int = 0
    investigation: InvestigationAnalysis = field(default_factory=InvestigationAnalysis)

    @property
    def node_completeness(self) -> list[NodeCompleteness]:
        return self.investigation.node_analysis

    def completeness_for(self, node_id: str) -> NodeCompleteness | None:
        for record in self.investigation.node_analysis:
            if record.node_id == node_id:
                return record
        return None

    def summary(self) -> dict[str, Any]:
        """Plain-dict view for report composition."""
        inv = self.investigation
        return {
            "total_nodes": inv.total_nodes,
            "community_count": self.community_count,
            "key_nodes": list(self.key_nodes),
            "average_completeness": inv.average_completeness,
            "completeness_distribution": asdict(inv.completeness_distribution),
            "graph_health": asdict(inv.graph_health),
            "prioritized_suggestions": [
                {
                    "node_id": s.node_id,
                    "title": s.node_title,
                    "category": s.node_category.value,
                    "priority": s.priority.value,
                    "overall_score": s.overall_score,
                    "missing_relations": [m.description for m in s.missing_relations],
                    "sparse_attributes": [a.field for a in s.sparse_attributes],
                    "structural_issues": [i.type.value for i in s.structural_issues],
                }
                for s in inv.prioritized_suggestions
            ],
        }


# ---------------------------------------------------------------------------
# Analyzer
# ---------------------------------------------------------------------------


class InvestigationAnalyzer:
    """Analyze graph snapshots.

    Parameters
    ----------
    settings:
        Tunables. Defaults to the module-level settings read from the
        environment at import.
    rng:
        Random source for label propagation, shared by every call.
        Overrides ``settings.RANDOM_SEED`` when given. Otherwise a seeded
        analyzer starts each call from a fresh generator, so repeated
        calls on the same snapshot agree.
    relations:
        Relation expectation model. Defaults to the built-in table.
    """

    def __init__(
        self,
        settings: AnalysisSettings | None = None,
        rng: random.Random | None = None,
        relations: RelationExpectationModel | None = None,
    ) -> None:
        self._settings = settings or default_settings
        self._rng = rng
        self._relations = relations or RelationExpectationModel(
            max_suggestions=self._settings.MAX_SUGGESTIONS,
        )

    @property
    def settings(self) -> AnalysisSettings:
        return self._settings

    def analyze(
        self,
        nodes: Sequence[IntelNode],
        edges: Sequence[Connection],
    ) -> AnalysisResult:
        """Run community, centrality and completeness analysis."""
        nodes = list(nodes)
        if not nodes:
            return AnalysisResult()

        index = GraphIndex(nodes, edges)
        graph_result = self._analyze_graph(index)
        investigation = self._analyze_investigation(nodes, index)

        logger.info(
            "Analysis complete: %d nodes, %d edges, %d communities, "
            "%d key nodes, average completeness %.2f",
            index.node_count, index.edge_count, graph_result.community_count,
            len(graph_result.key_nodes), investigation.average_completeness,
        )

        return AnalysisResult(
            communities=graph_result.communities,
            centrality=graph_result.centrality,
            key_nodes=graph_result.key_nodes,
            community_count=graph_result.community_count,
            investigation=investigation,
        )

    def analyze_graph(
        self,
        nodes: Sequence[IntelNode],
        edges: Sequence[Connection],
    ) -> GraphAnalysisResult:
        """Community and centrality analysis only."""
        return self._analyze_graph(GraphIndex(nodes, edges))

    def analyze_investigation(
        self,
        nodes: Sequence[IntelNode],
        edges: Sequence[Connection],
    ) -> InvestigationAnalysis:
        """Completeness analysis only."""
        nodes = list(nodes)
        if not nodes:
            return InvestigationAnalysis()
        return self._analyze_investigation(nodes, GraphIndex(nodes, edges))

    # -- internals -----------------------------------------------------------

    def _run_rng(self) -> random.Random | None:
        if self._rng is not None:
            return self._rng
        if self._settings.RANDOM_SEED is not None:
            return random.Random(self._settings.RANDOM_SEED)
        return None

    def _analyze_graph(self, index: GraphIndex) -> GraphAnalysisResult:
        s = self._settings
        return analyze_graph(
            (), (),
            rng=self._run_rng(),
            index=index,
            max_iterations=s.LPA_MAX_ITERATIONS,
            damping=s.PAGERANK_DAMPING,
            pagerank_iterations=s.PAGERANK_ITERATIONS,
            key_node_floor=s.KEY_NODE_FLOOR,
            key_node_percentile=s.KEY_NODE_PERCENTILE,
        )

    def _analyze_investigation(
        self,
        nodes: Sequence[IntelNode],
        index: GraphIndex,
    ) -> InvestigationAnalysis:
        if index.node_count == 0:
            return InvestigationAnalysis()

        attribute_stats = AttributeStatistics.from_nodes(nodes)
        structure = StructureMetrics.compute(index)
        scorer = CompletenessScorer(
            index,
            attribute_stats,
            structure,
            relations=self._relations,
            max_suggestions=self._settings.MAX_SUGGESTIONS,
        )

        node_analysis = [scorer.score(node) for node in nodes]
        scores = [n.overall_score for n in node_analysis]

        ceiling = self._settings.SUGGESTION_SCORE_CEILING
        prioritized = sorted(
            (n for n in node_analysis if n.overall_score < ceiling),
            key=lambda n: (n.priority.rank, n.overall_score),
        )

        return InvestigationAnalysis(
            total_nodes=len(node_analysis),
            average_completeness=sum(scores) / len(scores),
            completeness_distribution=CompletenessDistribution.from_scores(scores),
            node_analysis=node_analysis,
            prioritized_suggestions=prioritized,
            graph_health=GraphHealth(
                connectivity=structure.global_connectivity,
                information_density=attribute_stats.information_density(nodes),
                structural_balance=structure.structural_balance,
            ),
        )


def analyze(
    nodes: Sequence[IntelNode],
    edges: Sequence[Connection],
    rng: random.Random | None = None,
) -> AnalysisResult:
    """One-shot analysis with default settings."""
    return InvestigationAnalyzer(rng=rng).analyze(nodes, edges)
