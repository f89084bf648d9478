"""
Instantiation causality graph.

Connects quantifier instantiations U -> V when U produced a term that V
then used as a trigger. Built in one pass from a finished blame map:

    1. Every [new-match] instantiation becomes a node, even if it
       triggered nothing.
    2. For each trigger term an instantiation used, the instantiation
       blamed for that term gets an edge to it.
    3. Nodes are exposed in their ``(fingerprint, version)`` form.
    4. Every node is named after its quantifier.

Equalities used during matching do not contribute edges. Instantiations
that depended on an equality between produced terms are therefore
under-attributed; whether and how to blame equalities is still open.

Usage:
    from qiprofiler.analysis.graph import build_instantiation_graph

    graph = build_instantiation_graph(model)
    for src, dst in graph.iter_edges():
        print(graph.names[src], "->", graph.names[dst])
"""

from __future__ import annotations

import logging
from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType

from qiprofiler.analysis.blame import build_term_blame
from qiprofiler.exceptions import ModelError
from qiprofiler.trace.models import (
    Equality,
    InstantiationKey,
    NewMatch,
    TermId,
    TraceModel,
    Trigger,
)

logger = logging.getLogger(__name__)

NodeKey = tuple[int, int]


@dataclass(frozen=True)
class InstantiationGraph:
    """
    Directed graph over quantifier instantiations.

    Attributes:
        nodes: Every instantiation in the graph.
        edges: Producer -> instantiations it triggered. Producers that
            triggered nothing have no entry.
        names: Quantifier name of every node.

    Nodes and edges are unordered.
    """

    nodes: frozenset[NodeKey] = frozenset()
    edges: Mapping[NodeKey, frozenset[NodeKey]] = field(default_factory=dict)
    names: Mapping[NodeKey, str] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(self, "edges", MappingProxyType(dict(self.edges)))
        object.__setattr__(self, "names", MappingProxyType(dict(self.names)))

    @property
    def edge_count(self) -> int:
        return sum(len(targets) for targets in self.edges.values())

    def successors(self, node: NodeKey) -> frozenset[NodeKey]:
        """Instantiations triggered by ``node``."""
        return self.edges.get(node, frozenset())

    def iter_edges(self) -> Iterator[tuple[NodeKey, NodeKey]]:
        for src, targets in self.edges.items():
            for dst in targets:
                yield src, dst

    def __repr__(self) -> str:
        return (
            f"InstantiationGraph(nodes={len(self.nodes)}, "
            f"edges={self.edge_count})"
        )


def build_instantiation_graph(
    model: TraceModel,
    blame: Mapping[TermId, InstantiationKey] | None = None,
) -> InstantiationGraph:
    """
    Build the causality graph of a trace.

    Args:
        model: Processed trace
        blame: Term -> producing instantiation. Computed from the model's
            [new-match] instantiations when omitted.

    Returns:
        InstantiationGraph

    Raises:
        ModelError: If the blame map points at an instantiation that is not
            a [new-match] instantiation of the model, or if a node's
            quantifier cannot be resolved to a name.
    """
    matches = {
        key: inst
        for key, inst in model.instantiations().items()
        if isinstance(inst.frame, NewMatch)
    }
    if blame is None:
        blame = build_term_blame(matches)

    # U -> V if U produced a term that triggered V
    adjacency: dict[InstantiationKey, set[InstantiationKey]] = {
        key: set() for key in matches
    }
    for key, inst in matches.items():
        for used in inst.frame.used:
            if isinstance(used, Trigger):
                responsible = blame.get(used.term)
                if responsible is None:
                    # Input term, or produced by a discovered instantiation
                    continue
                if responsible not in adjacency:
                    raise ModelError(
                        f"Term {used.term} is blamed on {responsible}, "
                        f"which is not a matched instantiation",
                        reference=str(responsible),
                    )
                adjacency[responsible].add(key)
            elif isinstance(used, Equality):
                continue
            else:
                raise TypeError(f"Unexpected matched term: {used!r}")

    edges: dict[NodeKey, set[NodeKey]] = {}
    nodes: set[InstantiationKey] = set()
    for src, targets in adjacency.items():
        nodes.add(src)
        for dst in targets:
            edges.setdefault(src.as_tuple(), set()).add(dst.as_tuple())
            nodes.add(dst)

    names = {
        node.as_tuple(): model.term_name(model.instantiation(node).quantifier)
        for node in nodes
    }

    graph = InstantiationGraph(
        nodes=frozenset(node.as_tuple() for node in nodes),
        edges={src: frozenset(targets) for src, targets in edges.items()},
        names=names,
    )
    logger.info(
        "Built instantiation graph: %d nodes, %d edges",
        len(graph.nodes),
        graph.edge_count,
    )
    return graph
