"""
Profiler - runs the full analysis of one trace.

    trace log -> TraceModel -> blame map -> instantiation graph
    trace log -> TraceModel -> quantifier costs -> ranked costs

The model is processed once; the profiler keeps only the derived graph and
the ranked costs. Every failure propagates to the caller; there is no
partial result.

Usage:
    from qiprofiler.analysis import Profiler

    profiler = Profiler.parse("z3.log")
    print(profiler.instantiation_graph)
    for line in profiler.cost_report():
        print(line)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from qiprofiler.analysis.blame import build_term_blame, find_blame_conflicts
from qiprofiler.analysis.costs import (
    CostReportLine,
    cost_report,
    rank_quantifier_costs,
    total_instantiations,
)
from qiprofiler.analysis.graph import InstantiationGraph, build_instantiation_graph
from qiprofiler.trace.config import TraceConfig
from qiprofiler.trace.models import (
    InstantiationKey,
    QuantifierCost,
    TermId,
    TraceModel,
)
from qiprofiler.trace.parser import parse_trace_file

logger = logging.getLogger(__name__)

MAX_LOGGED_CONFLICTS = 10


@dataclass(frozen=True)
class Profiler:
    """Analysis results for a single trace."""

    quantifier_stats: tuple[QuantifierCost, ...]
    instantiation_graph: InstantiationGraph

    @classmethod
    def parse(
        cls,
        path: str | Path,
        config: TraceConfig | None = None,
        report_blame_conflicts: bool = True,
    ) -> "Profiler":
        """Process a trace log file and analyze it."""
        model = parse_trace_file(path, config)
        return cls.from_model(model, report_blame_conflicts=report_blame_conflicts)

    @classmethod
    def from_model(
        cls,
        model: TraceModel,
        report_blame_conflicts: bool = True,
    ) -> "Profiler":
        """Analyze an already processed trace."""
        instantiations = model.instantiations()

        if report_blame_conflicts:
            _log_blame_conflicts(find_blame_conflicts(instantiations))

        blame = build_term_blame(instantiations)
        graph = build_instantiation_graph(model, blame)
        ranked = rank_quantifier_costs(model.quant_costs())

        return cls(quantifier_stats=tuple(ranked), instantiation_graph=graph)

    def total_instantiations(self) -> int:
        return total_instantiations(self.quantifier_stats)

    def cost_report(self) -> list[CostReportLine]:
        return cost_report(list(self.quantifier_stats))


def _log_blame_conflicts(
    conflicts: dict[TermId, tuple[InstantiationKey, ...]],
) -> None:
    if not conflicts:
        return
    logger.warning(
        "%d term(s) were produced by more than one instantiation; "
        "blaming the last producer",
        len(conflicts),
    )
    for term, owners in list(conflicts.items())[:MAX_LOGGED_CONFLICTS]:
        logger.warning(
            "  %s produced by %s", term, ", ".join(str(k) for k in owners)
        )
