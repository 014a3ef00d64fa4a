"""Tests for nexus.investigation: completeness scoring and orchestration.

Tests cover:
  - Relation expectations (probability table, descriptions, default score)
  - Adaptive attribute statistics (fill rates, importance, fallback)
  - Structure scoring, geometric mean and priority rules
  - InvestigationAnalyzer end to end, including degenerate input
  - Rendering exports enriched with analysis results

Uses a small synthetic OSINT dataset:
  - "Petrov cell": a person with phone, email and organization, an
    organization with a domain, and a loose isolated lead
"""

import math
import random

import pytest

from nexus.config.settings import AnalysisSettings
from nexus.config.settings import settings as default_settings
from nexus.graph.communities import community_color
from nexus.graph.index import GraphIndex
from nexus.graph.models import Connection, ConnectionKind, IntelNode, NodeCategory
from nexus.graph.structure import StructureMetrics
from nexus.investigation.analyzer import (
    CompletenessDistribution,
    InvestigationAnalyzer,
    analyze,
)
from nexus.investigation.attributes import AttributeStatistics, field_importance
from nexus.investigation.completeness import (
    IssueType,
    Priority,
    completeness_label,
    determine_priority,
    geometric_weighted_mean,
    priority_label,
    structure_completeness,
)
from nexus.investigation.exporters import GraphExporter
from nexus.investigation.relations import (
    DEFAULT_RELATION_SCORE,
    RELATION_PROBABILITIES,
    MissingRelation,
    RelationExpectationModel,
    relation_description,
)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------

def _node(nid: str, category: str = "NOTE", title: str = "", content: str = "",
          **attrs) -> IntelNode:
    return IntelNode(id=nid, category=category, title=title, content=content,
                     attributes=attrs)


def _edge(source: str, target: str, eid: str = "") -> Connection:
    return Connection(id=eid or f"{source}->{target}", source_id=source, target_id=target)


def _analyzer(seed: int = 0) -> InvestigationAnalyzer:
    return InvestigationAnalyzer(settings=AnalysisSettings(), rng=random.Random(seed))


@pytest.fixture
def petrov_nodes() -> list[IntelNode]:
    return [
        _node("p1", "ENTITY", title="Viktor Petrov", content="Suspected facilitator",
              nationality="RU", alias="VP", dob="1971-04-02"),
        _node("p2", "ENTITY", title="Elena Kozlova", nationality="CY"),
        _node("ph1", "PHONE_NUMBER", title="+7 900 000 0000", carrier="MTS"),
        _node("em1", "EMAIL", title="vp@sunrise.example"),
        _node("org1", "ORGANIZATION", title="Sunrise Holdings",
              industry="Shipping", registration="VG-1234"),
        _node("dom1", "DOMAIN", title="sunrise.example", registrar="NameCheap"),
        _node("lead", "NOTE", title="Unverified tip", content="Check the yacht"),
    ]


@pytest.fixture
def petrov_edges() -> list[Connection]:
    return [
        _edge("p1", "ph1"),
        _edge("p1", "em1"),
        _edge("p1", "org1"),
        _edge("p2", "org1"),
        _edge("org1", "dom1"),
        _edge("em1", "dom1"),
        _edge("p1", "ghost"),  # dangling
    ]


# ---------------------------------------------------------------------------
# Relations
# ---------------------------------------------------------------------------


class TestRelationExpectationModel:
    def test_partial_coverage(self):
        nodes = [_node("p", "ENTITY"), _node("ph", "PHONE_NUMBER"), _node("em", "EMAIL")]
        index = GraphIndex(nodes, [_edge("p", "ph"), _edge("p", "em")])
        score, missing = RelationExpectationModel().relation_completeness(nodes[0], index)

        total = sum(RELATION_PROBABILITIES[NodeCategory.ENTITY].values())
        assert score == pytest.approx((0.85 + 0.80) / total)
        assert len(missing) == 5
        assert [m.expected_probability for m in missing] == [0.75, 0.70, 0.65, 0.60, 0.55]
        assert missing[0].target_category is NodeCategory.SOCIAL_PROFILE
        assert missing[0].description == "This person has no linked social media account"

    def test_missing_only_above_threshold(self):
        node = _node("ip", "IP_ADDRESS")
        index = GraphIndex([node], [])
        score, missing = RelationExpectationModel().relation_completeness(node, index)
        assert score == 0.0
        assert all(m.expected_probability >= 0.5 for m in missing)
        assert NodeCategory.MALWARE not in {m.target_category for m in missing}

    def test_fully_covered(self):
        passport = _node("pp", "PASSPORT")
        others = [_node("e", "ENTITY"), _node("v", "VISA"), _node("f", "FLIGHT")]
        index = GraphIndex([passport] + others, [_edge("pp", o.id) for o in others])
        score, missing = RelationExpectationModel().relation_completeness(passport, index)
        assert score == pytest.approx(1.0)
        assert missing == []

    def test_unmapped_category_default(self):
        node = _node("n", "HYPOTHESIS")
        index = GraphIndex([node], [])
        score, missing = RelationExpectationModel().relation_completeness(node, index)
        assert score == DEFAULT_RELATION_SCORE == 0.7
        assert missing == []

    def test_unknown_category_default(self):
        node = _node("n", "NOT_A_REAL_KIND")
        score, missing = RelationExpectationModel().relation_completeness(
            node, GraphIndex([node], []),
        )
        assert score == 0.7
        assert missing == []

    def test_generic_description(self):
        assert relation_description(NodeCategory.ENTITY, NodeCategory.DEVICE) == (
            "Consider linking a DEVICE entity"
        )

    def test_custom_table(self):
        model = RelationExpectationModel(
            probabilities={NodeCategory.NOTE: {NodeCategory.REPORT: 0.9}},
        )
        node = _node("n", "NOTE")
        score, missing = model.relation_completeness(node, GraphIndex([node], []))
        assert score == 0.0
        assert missing[0].target_category is NodeCategory.REPORT


# ---------------------------------------------------------------------------
# Attributes
# ---------------------------------------------------------------------------


class TestAttributeStatistics:
    @pytest.fixture
    def people(self) -> list[IntelNode]:
        return [
            _node("a", "ENTITY", title="A", name="Alice", alias="Al"),
            _node("b", "ENTITY", title="B", name="Bob"),
            _node("c", "ENTITY", title="C", name="Carol", alias=" "),
            _node("d", "ENTITY", title="D", name="Dan", score=float("nan")),
        ]

    def test_fill_rates(self, people):
        stats = AttributeStatistics.from_nodes(people)
        rates = stats.known_fields(NodeCategory.ENTITY)
        assert rates == {"name": 1.0, "alias": 0.25, "_title": 1.0}
        assert stats.type_count[NodeCategory.ENTITY] == 4

    def test_importance(self):
        assert field_importance(1.0) == 0.0
        assert field_importance(0.25) == pytest.approx(2.0)
        assert field_importance(0.0) == 6.0
        assert field_importance(0.001) == 6.0

    def test_rare_field_filled(self, people):
        stats = AttributeStatistics.from_nodes(people)
        score, sparse = stats.attribute_completeness(people[0])
        assert score == pytest.approx(1.0)
        assert sparse == []

    def test_rare_field_missing(self, people):
        stats = AttributeStatistics.from_nodes(people)
        score, sparse = stats.attribute_completeness(people[1])
        assert score == 0.0
        assert len(sparse) == 1
        assert sparse[0].field == "alias"
        assert sparse[0].importance == pytest.approx(2.0 / 6)
        assert sparse[0].fill_rate == 0.25

    def test_all_common_fields_neutral(self):
        nodes = [_node("a", "EMAIL", title="x"), _node("b", "EMAIL", title="y")]
        stats = AttributeStatistics.from_nodes(nodes)
        score, sparse = stats.attribute_completeness(nodes[0])
        assert score == 0.5
        assert sparse == []

    def test_pseudo_field_names_stripped(self):
        nodes = [_node("a", "REPORT", content="body")] + [
            _node(f"r{i}", "REPORT") for i in range(7)
        ]
        stats = AttributeStatistics.from_nodes(nodes)
        _, sparse = stats.attribute_completeness(nodes[1])
        assert [s.field for s in sparse] == ["content"]

    def test_sparse_capped_and_sorted(self):
        rare = {f"f{i}": "x" for i in range(8)}
        nodes = [_node("full", "DEVICE", **rare)] + [
            _node(f"d{i}", "DEVICE", **{f"f{i}": "x", f"f{(i + 1) % 8}": "x"}) for i in range(8)
        ]
        stats = AttributeStatistics.from_nodes(nodes)
        empty = _node("empty", "DEVICE")
        _, sparse = stats.attribute_completeness(empty)
        assert len(sparse) <= 5
        importances = [s.importance for s in sparse]
        assert importances == sorted(importances, reverse=True)

    @pytest.mark.parametrize("attrs,expected", [
        ({}, 0.3),
        ({"a": "x"}, 0.6),
        ({"a": "x", "b": 2}, 0.7),
        ({f"k{i}": True for i in range(6)}, 0.8),
        ({"a": "", "b": None}, 0.3),
    ])
    def test_fallback_without_statistics(self, attrs, expected):
        stats = AttributeStatistics()
        score, sparse = stats.attribute_completeness(_node("n", "VEHICLE", **attrs))
        assert score == pytest.approx(expected)
        assert sparse == []

    def test_information_density(self):
        nodes = [_node("a", "ENTITY", title="A", x="1"), _node("b", "ENTITY", title="B")]
        stats = AttributeStatistics.from_nodes(nodes)
        assert stats.information_density(nodes) == pytest.approx(0.75)

    def test_information_density_default(self):
        nodes = [_node("a", "NOTE")]
        stats = AttributeStatistics.from_nodes(nodes)
        assert stats.information_density(nodes) == 0.5


# ---------------------------------------------------------------------------
# Completeness scoring
# ---------------------------------------------------------------------------


class TestStructureCompleteness:
    def test_isolated(self):
        metrics = StructureMetrics(degrees={"a": 0, "b": 2}, average_degree=1.0)
        score, issues = structure_completeness("a", metrics)
        assert score == 0.0
        assert [i.type for i in issues] == [IssueType.ISOLATED]
        assert issues[0].severity == 1.0

    def test_peripheral_and_low_connectivity(self):
        metrics = StructureMetrics(
            degrees={"a": 1}, betweenness={"a": 0.1}, average_degree=4.0,
        )
        score, issues = structure_completeness("a", metrics)
        types = {i.type for i in issues}
        assert types == {IssueType.PERIPHERAL, IssueType.LOW_CONNECTIVITY}
        assert score == pytest.approx(0.5 * (1 / 8) + 0.2)

    def test_bridge_dependency(self):
        metrics = StructureMetrics(
            degrees={"hub": 4},
            clustering_coefficients={"hub": 0.0},
            betweenness={"hub": 1.0},
            average_degree=2.0,
        )
        score, issues = structure_completeness("hub", metrics)
        bridge = [i for i in issues if i.type == IssueType.BRIDGE_DEPENDENCY]
        assert bridge and bridge[0].severity == 0.7
        assert score == pytest.approx(0.5 + 0.2)

    def test_zero_average_degree(self):
        metrics = StructureMetrics(degrees={"a": 1}, average_degree=0.0)
        score, _ = structure_completeness("a", metrics)
        assert score == pytest.approx(0.5 * 0.5 + 0.2)

    def test_connected_bonus_is_flat(self):
        metrics = StructureMetrics(
            degrees={"a": 2},
            clustering_coefficients={"a": 0.5},
            average_degree=2.0,
        )
        score, _ = structure_completeness("a", metrics)
        assert score == pytest.approx(0.5 * 0.5 + 0.3 * 0.5 + 0.2)

    def test_score_capped(self):
        metrics = StructureMetrics(
            degrees={"a": 10},
            clustering_coefficients={"a": 1.0},
            average_degree=1.0,
        )
        score, _ = structure_completeness("a", metrics)
        assert score == 1.0


class TestScoringHelpers:
    def test_geometric_mean_all_ones(self):
        assert geometric_weighted_mean([1.0, 1.0, 1.0], [0.3, 0.4, 0.3]) == pytest.approx(1.0)

    def test_geometric_mean_floor(self):
        assert geometric_weighted_mean([0.0, 0.0, 0.0], [0.3, 0.4, 0.3]) == pytest.approx(0.01)

    def test_geometric_mean_one_weak_axis(self):
        value = geometric_weighted_mean([1.0, 0.01, 1.0], [0.3, 0.4, 0.3])
        assert value == pytest.approx(0.01 ** 0.4)
        assert value < 0.2

    def test_geometric_mean_mismatched(self):
        assert geometric_weighted_mean([0.5], [0.3, 0.7]) == 0.0

    def test_priority_isolated_always_critical(self):
        from nexus.investigation.completeness import StructuralIssue
        isolated = StructuralIssue(IssueType.ISOLATED, 1.0, "isolated")
        assert determine_priority(0.95, [], [isolated]) is Priority.CRITICAL

    @pytest.mark.parametrize("score,expected", [
        (0.2, Priority.CRITICAL),
        (0.4, Priority.HIGH),
        (0.6, Priority.MEDIUM),
        (0.75, Priority.LOW),
    ])
    def test_priority_thresholds(self, score, expected):
        assert determine_priority(score, [], []) is expected

    def test_priority_high_probability_missing(self):
        missing = [MissingRelation(NodeCategory.EMAIL, 0.8, "no email")]
        assert determine_priority(0.9, missing, []) is Priority.HIGH

    def test_priority_rank_order(self):
        ranks = [p.rank for p in (Priority.CRITICAL, Priority.HIGH, Priority.MEDIUM, Priority.LOW)]
        assert ranks == [0, 1, 2, 3]

    @pytest.mark.parametrize("score,label", [
        (0.85, "Excellent"), (0.6, "Good"), (0.45, "Fair"), (0.2, "Poor"), (0.1, "Insufficient"),
    ])
    def test_completeness_label(self, score, label):
        assert completeness_label(score) == label

    def test_priority_label(self):
        assert priority_label(Priority.CRITICAL) == "Urgent"
        assert priority_label("low") == "Low"


# ---------------------------------------------------------------------------
# InvestigationAnalyzer
# ---------------------------------------------------------------------------


class TestInvestigationAnalyzer:
    def test_empty_graph(self):
        result = _analyzer().analyze([], [])
        assert result.community_count == 0
        assert result.investigation.average_completeness == 0.0
        assert result.investigation.prioritized_suggestions == []
        assert result.investigation.total_nodes == 0

    def test_scores_bounded(self, petrov_nodes, petrov_edges):
        result = _analyzer().analyze(petrov_nodes, petrov_edges)
        assert result.investigation.total_nodes == len(petrov_nodes)
        for record in result.investigation.node_analysis:
            for value in (record.relation_score, record.attribute_score,
                          record.structure_score, record.overall_score):
                assert 0.0 <= value <= 1.0
            assert len(record.missing_relations) <= 5
            assert len(record.sparse_attributes) <= 5

    def test_suggestion_lists_sorted(self, petrov_nodes, petrov_edges):
        result = _analyzer().analyze(petrov_nodes, petrov_edges)
        for record in result.investigation.node_analysis:
            probs = [m.expected_probability for m in record.missing_relations]
            assert probs == sorted(probs, reverse=True)
            imps = [s.importance for s in record.sparse_attributes]
            assert imps == sorted(imps, reverse=True)

    def test_prioritized_suggestions(self, petrov_nodes, petrov_edges):
        result = _analyzer().analyze(petrov_nodes, petrov_edges)
        suggestions = result.investigation.prioritized_suggestions
        assert suggestions
        assert all(s.overall_score < 0.8 for s in suggestions)
        keys = [(s.priority.rank, s.overall_score) for s in suggestions]
        assert keys == sorted(keys)
        critical = [s.node_id for s in suggestions if s.priority is Priority.CRITICAL]
        assert suggestions[0].priority is Priority.CRITICAL
        assert "lead" in critical

    def test_isolated_lead_flagged(self, petrov_nodes, petrov_edges):
        result = _analyzer().analyze(petrov_nodes, petrov_edges)
        lead = result.completeness_for("lead")
        assert lead is not None
        assert lead.has_issue(IssueType.ISOLATED)
        assert lead.priority is Priority.CRITICAL
        assert lead.relation_score == 0.7
        assert result.centrality["lead"] < result.centrality["p1"]

    def test_distribution_counts(self, petrov_nodes, petrov_edges):
        result = _analyzer().analyze(petrov_nodes, petrov_edges)
        dist = result.investigation.completeness_distribution
        assert dist.critical + dist.low + dist.medium + dist.high == len(petrov_nodes)

    def test_graph_health(self, petrov_nodes, petrov_edges):
        health = _analyzer().analyze(petrov_nodes, petrov_edges).investigation.graph_health
        assert health.connectivity == pytest.approx(6 / 7)
        assert 0.0 <= health.information_density <= 1.0
        assert 0.0 <= health.structural_balance <= 1.0

    def test_communities_cover_all_nodes(self, petrov_nodes, petrov_edges):
        result = _analyzer().analyze(petrov_nodes, petrov_edges)
        assert set(result.communities) == {n.id for n in petrov_nodes}
        labels = set(result.communities.values())
        assert labels == set(range(len(labels)))
        assert result.community_count == len(labels)

    def test_summary(self, petrov_nodes, petrov_edges):
        summary = _analyzer().analyze(petrov_nodes, petrov_edges).summary()
        assert summary["total_nodes"] == 7
        assert set(summary["completeness_distribution"]) == {"critical", "low", "medium", "high"}
        assert set(summary["graph_health"]) == {
            "connectivity", "information_density", "structural_balance",
        }
        lead = next(s for s in summary["prioritized_suggestions"] if s["node_id"] == "lead")
        assert lead["priority"] == "critical"
        assert "isolated" in lead["structural_issues"]

    def test_accepts_iterables(self, petrov_nodes, petrov_edges):
        result = _analyzer().analyze(iter(petrov_nodes), petrov_edges)
        assert result.investigation.total_nodes == 7

    def test_seeded_settings_reproducible(self, petrov_nodes, petrov_edges):
        settings = AnalysisSettings(RANDOM_SEED=7)
        first = InvestigationAnalyzer(settings=settings).analyze(petrov_nodes, petrov_edges)
        second = InvestigationAnalyzer(settings=settings).analyze(petrov_nodes, petrov_edges)
        assert first.communities == second.communities

    def test_seeded_analyzer_reusable(self):
        gen = random.Random(11)
        nodes = [_node(f"n{i}") for i in range(40)]
        edges = [
            _edge(f"n{gen.randrange(40)}", f"n{gen.randrange(40)}", f"e{i}")
            for i in range(60)
        ]
        analyzer = InvestigationAnalyzer(settings=AnalysisSettings(RANDOM_SEED=7))
        runs = [analyzer.analyze(nodes, edges).communities for _ in range(4)]
        assert all(run == runs[0] for run in runs)
        fresh = InvestigationAnalyzer(settings=AnalysisSettings(RANDOM_SEED=7))
        assert fresh.analyze(nodes, edges).communities == runs[0]

    def test_default_settings_shared(self):
        assert InvestigationAnalyzer().settings is default_settings

    def test_analyze_investigation_only(self, petrov_nodes, petrov_edges):
        inv = _analyzer().analyze_investigation(petrov_nodes, petrov_edges)
        assert inv.total_nodes == 7
        assert _analyzer().analyze_investigation([], []).total_nodes == 0

    def test_max_suggestions_setting(self):
        settings = AnalysisSettings(MAX_SUGGESTIONS=2)
        person = _node("p", "ENTITY")
        result = InvestigationAnalyzer(settings=settings).analyze([person], [])
        assert len(result.completeness_for("p").missing_relations) == 2

    def test_distribution_buckets(self):
        dist = CompletenessDistribution.from_scores([0.1, 0.3, 0.5, 0.69, 0.7, 0.99])
        assert (dist.critical, dist.low, dist.medium, dist.high) == (1, 1, 2, 2)


class TestDegenerateInput:
    def test_no_edges(self):
        result = analyze([_node("a"), _node("b")], [])
        assert result.investigation.total_nodes == 2
        assert all(r.priority is Priority.CRITICAL for r in result.node_completeness)

    def test_only_dangling_edges(self):
        result = analyze([_node("a")], [_edge("x", "y"), _edge("a", "z")])
        assert result.completeness_for("a").has_issue(IssueType.ISOLATED)

    def test_empty_attribute_maps(self):
        result = analyze([_node("a", "ENTITY"), _node("b", "ENTITY")], [_edge("a", "b")])
        for record in result.node_completeness:
            assert 0.0 <= record.attribute_score <= 1.0

    def test_self_loop(self):
        result = analyze([_node("a", title="solo")], [_edge("a", "a")])
        record = result.completeness_for("a")
        assert record is not None
        assert record.has_issue(IssueType.PERIPHERAL)
        assert not record.has_issue(IssueType.ISOLATED)
        assert result.community_count == 1
        assert 0.0 <= result.centrality["a"] <= 1.0
        assert math.isfinite(record.overall_score)


# ---------------------------------------------------------------------------
# End-to-end scenarios
# ---------------------------------------------------------------------------


class TestScenarios:
    def test_chain_of_three(self):
        nodes = [_node("A", "TOPIC"), _node("B", "TOPIC"), _node("C", "TOPIC")]
        result = _analyzer().analyze(nodes, [_edge("A", "B"), _edge("B", "C")])

        assert result.centrality["B"] > result.centrality["A"]
        assert result.centrality["B"] > result.centrality["C"]

        for node_id in ("A", "C"):
            record = result.completeness_for(node_id)
            assert record.has_issue(IssueType.PERIPHERAL)
            assert not record.has_issue(IssueType.ISOLATED)
        for record in result.node_completeness:
            assert record.relation_score == 0.7
            assert record.missing_relations == []

    def test_isolated_populated_node(self):
        node = _node("solo", "ENTITY", title="Viktor", content="profile",
                     name="Viktor", phone="+7", email="v@x.example", active=True)
        result = _analyzer().analyze([node], [])
        record = result.completeness_for("solo")
        issue = next(i for i in record.structural_issues if i.type == IssueType.ISOLATED)
        assert issue.severity == 1.0
        assert record.priority is Priority.CRITICAL

    def test_two_disjoint_pairs(self):
        nodes = [_node(n) for n in "abcd"]
        result = _analyzer().analyze(nodes, [_edge("a", "b"), _edge("c", "d")])
        health = result.investigation.graph_health
        assert health.connectivity == 0.5
        assert health.structural_balance == 1.0
        assert result.communities["a"] == result.communities["b"]
        assert result.communities["a"] != result.communities["c"]


# ---------------------------------------------------------------------------
# Exports
# ---------------------------------------------------------------------------


class TestGraphExporter:
    @pytest.fixture
    def exported(self):
        nodes = [
            _node("p1", "ENTITY", title="Viktor"),
            _node("ph1", "PHONE_NUMBER", title="+7 900"),
            _node("lone", "NOTE", title="loose note"),
        ]
        edges = [
            Connection(id="e1", source_id="p1", target_id="ph1", label="uses",
                       kind=ConnectionKind.CONFIRMED),
            _edge("p1", "ghost", "e2"),
        ]
        result = InvestigationAnalyzer(rng=random.Random(0)).analyze(nodes, edges)
        return GraphExporter(nodes, edges, result), result

    def test_d3_json(self, exported):
        exporter, result = exported
        data = exporter.to_d3_json()
        assert len(data["nodes"]) == 3
        assert len(data["links"]) == 1
        link = data["links"][0]
        assert link["source"] == "p1"
        assert link["label"] == "uses"
        assert link["kind"] == "CONFIRMED"

        node = next(n for n in data["nodes"] if n["id"] == "p1")
        assert node["category"] == "ENTITY"
        assert node["community"] == result.communities["p1"]
        assert node["color"] == community_color(result.communities["p1"])
        assert node["centrality"] == pytest.approx(result.centrality["p1"])
        assert node["key_node"] is True

    def test_isolated_node_badge(self, exported):
        exporter, _ = exported
        lone = next(n for n in exporter.to_d3_json()["nodes"] if n["id"] == "lone")
        assert lone["priority"] == "critical"
        assert lone["key_node"] is False

    def test_cytoscape_json(self, exported):
        exporter, _ = exported
        data = exporter.to_cytoscape_json()
        nodes = [e for e in data["elements"] if e["group"] == "nodes"]
        edges = [e for e in data["elements"] if e["group"] == "edges"]
        assert len(nodes) == 3
        assert len(edges) == 1
        assert edges[0]["data"]["target"] == "ph1"
