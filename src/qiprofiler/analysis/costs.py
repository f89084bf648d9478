"""
Quantifier cost ranking.

Quantifiers are ranked by ``instantiations x cost``, most expensive first.
The report states each quantifier's share of all instantiations as a
truncated integer percentage; the numbers must not be rounded, so that
reports stay comparable with earlier runs.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass

from qiprofiler.exceptions import CostReportError
from qiprofiler.trace.models import QuantifierCost


@dataclass(frozen=True)
class CostReportLine:
    """One quantifier's line in the cost report."""

    quantifier: str
    instantiations: int
    cost: int
    score: int
    percentage: int

    def __str__(self) -> str:
        return (
            f"Instantiated {self.quantifier} {self.instantiations} times "
            f"({self.percentage}% of the total)"
        )


def rank_quantifier_costs(costs: Iterable[QuantifierCost]) -> list[QuantifierCost]:
    """
    Sort descending by score.

    Stable ascending sort, then reversed: tied quantifiers come out in
    reverse input order, and reversing an ascending list is a no-op.
    """
    ranked = sorted(costs, key=lambda c: c.score)
    ranked.reverse()
    return ranked


def total_instantiations(costs: Iterable[QuantifierCost]) -> int:
    return sum(c.instantiations for c in costs)


def cost_report(ranked: list[QuantifierCost]) -> list[CostReportLine]:
    """
    Build report lines for already ranked costs.

    Raises:
        CostReportError: If there are costs but no instantiations at all,
            since no share can be computed.
    """
    if not ranked:
        return []

    total = total_instantiations(ranked)
    if total == 0:
        raise CostReportError(
            f"{len(ranked)} quantifier(s) listed but zero instantiations in total"
        )

    return [
        CostReportLine(
            quantifier=c.quantifier,
            instantiations=c.instantiations,
            cost=c.cost,
            score=c.score,
            percentage=100 * c.instantiations // total,
        )
        for c in ranked
    ]
