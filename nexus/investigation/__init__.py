"""Investigation completeness analysis.

Scores every node on relation, attribute and structure completeness and
turns the weakest into a prioritized list of follow-ups.

Usage::

    from nexus.investigation import InvestigationAnalyzer

    result = InvestigationAnalyzer().analyze(nodes, edges)
    for record in result.investigation.prioritized_suggestions[:5]:
        print(record.node_title, record.priority.value)
"""

from nexus.investigation.analyzer import (
    AnalysisResult,
    InvestigationAnalysis,
    InvestigationAnalyzer,
    analyze,
)
from nexus.investigation.completeness import NodeCompleteness, Priority
from nexus.investigation.exporters import GraphExporter

__all__ = [
    "AnalysisResult",
    "InvestigationAnalysis",
    "InvestigationAnalyzer",
    "analyze",
    "GraphExporter",
    "NodeCompleteness",
    "Priority",
]
