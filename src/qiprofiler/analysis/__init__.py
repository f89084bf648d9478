"""Instantiation causality analysis and quantifier cost ranking."""

from qiprofiler.analysis.blame import build_term_blame, find_blame_conflicts
from qiprofiler.analysis.costs import (
    CostReportLine,
    cost_report,
    rank_quantifier_costs,
    total_instantiations,
)
from qiprofiler.analysis.graph import (
    InstantiationGraph,
    NodeKey,
    build_instantiation_graph,
)
from qiprofiler.analysis.profiler import Profiler

__all__ = [
    "Profiler",
    "build_term_blame",
    "find_blame_conflicts",
    "InstantiationGraph",
    "NodeKey",
    "build_instantiation_graph",
    "CostReportLine",
    "cost_report",
    "rank_quantifier_costs",
    "total_instantiations",
]
