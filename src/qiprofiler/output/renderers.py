"""
Output renderers for different formats.

Separates presentation logic from analysis logic.
Uses schema.py Pydantic models as the single source of truth
for JSON serialization.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING

from qiprofiler.output.schema import (
    EdgeSchema,
    GraphSchema,
    NodeSchema,
    ProfileReportSchema,
    QuantifierCostSchema,
)

if TYPE_CHECKING:
    from qiprofiler.analysis.costs import CostReportLine
    from qiprofiler.analysis.graph import InstantiationGraph
    from qiprofiler.analysis.profiler import Profiler


class OutputFormat(str, Enum):
    """Supported output formats."""

    TEXT = "text"
    JSON = "json"


def render(profiler: "Profiler", format: OutputFormat = OutputFormat.TEXT) -> str:
    """
    Render profiler results in the specified format.

    Raises:
        CostReportError: If percentages cannot be computed.
    """
    if format == OutputFormat.TEXT:
        return render_text(profiler)
    elif format == OutputFormat.JSON:
        return render_json(profiler)
    else:
        raise ValueError(f"Unknown output format: {format}")


# =============================================================================
# Text
# =============================================================================


def render_graph_dump(graph: "InstantiationGraph") -> str:
    """Debug dump of the graph's edges, names and nodes."""
    edges = {src: set(targets) for src, targets in graph.edges.items()}
    return "\n".join([
        "EDGES: ",
        f"{edges!r}\n\n",
        "NODE NAMES: ",
        f"{dict(graph.names)!r}\n\n",
        "NODES: ",
        f"{set(graph.nodes)!r}",
    ])


def render_cost_lines(lines: list["CostReportLine"]) -> str:
    return "\n".join(f"{line} \n" for line in lines)


def render_text(profiler: "Profiler") -> str:
    parts = [render_graph_dump(profiler.instantiation_graph)]
    cost_text = render_cost_lines(profiler.cost_report())
    if cost_text:
        parts.append(cost_text)
    return "\n".join(parts)


# =============================================================================
# JSON (schema-based)
# =============================================================================


def graph_to_schema(graph: "InstantiationGraph") -> GraphSchema:
    return GraphSchema(
        nodes=[
            NodeSchema(key=key, version=version, name=graph.names[(key, version)])
            for key, version in sorted(graph.nodes)
        ],
        edges=[
            EdgeSchema(source=src, target=dst)
            for src, dst in sorted(graph.iter_edges())
        ],
    )


def profiler_to_schema(profiler: "Profiler") -> ProfileReportSchema:
    return ProfileReportSchema(
        graph=graph_to_schema(profiler.instantiation_graph),
        quantifiers=[
            QuantifierCostSchema(
                quantifier=line.quantifier,
                instantiations=line.instantiations,
                cost=line.cost,
                score=line.score,
                percentage=line.percentage,
            )
            for line in profiler.cost_report()
        ],
        total_instantiations=profiler.total_instantiations(),
    )


def render_json(profiler: "Profiler") -> str:
    return profiler_to_schema(profiler).model_dump_json(indent=2)
