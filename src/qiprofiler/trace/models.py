"""
In-memory model of a Z3 trace log.

The model is a set of arena-style tables keyed by identifier:
- terms: TermId -> Term (everything built by [mk-app], [mk-quant], ...)
- instantiations: InstantiationKey -> QuantifierInstantiation

Records never hold references to each other, only identifiers, because
the underlying structure is a graph with cycles and many-to-many links.
Look things up through TraceModel instead.

Two closed sum types describe how an instantiation came about:
- InstantiationFrame = NewMatch | Discovered
- MatchedTerm = Trigger | Equality

All records are frozen; a TraceModel is built once by the parser and is
read-only afterwards.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Union

from qiprofiler.exceptions import ModelError

TermId = str
"""Term identifier exactly as written in the log, e.g. ``#12`` or ``datatype#3``."""


class TermKind(str, Enum):
    """What kind of log entry created a term."""
    APP = "app"
    QUANT = "quant"
    LAMBDA = "lambda"
    VAR = "var"
    PROOF = "proof"


@dataclass(frozen=True)
class Term:
    """A term (e-node) of the solver's term graph."""

    ident: TermId
    kind: TermKind
    name: str | None = None
    args: tuple[TermId, ...] = ()


@dataclass(frozen=True, order=True)
class InstantiationKey:
    """
    Identity of one instantiation event.

    ``key`` is the fingerprint printed by Z3. The same fingerprint can be
    instantiated again later in the run; ``version`` counts those
    re-instantiations, starting at 0.
    """

    key: int
    version: int = 0

    def as_tuple(self) -> tuple[int, int]:
        """Externally visible ``(identity, version)`` form."""
        return (self.key, self.version)

    def __str__(self) -> str:
        return f"{self.key:#x}.{self.version}"


# =============================================================================
# Matched terms
# =============================================================================


@dataclass(frozen=True)
class Trigger:
    """A term that matched a trigger pattern."""

    term: TermId


@dataclass(frozen=True)
class Equality:
    """An equality between two terms used while matching."""

    lhs: TermId
    rhs: TermId


MatchedTerm = Union[Trigger, Equality]


# =============================================================================
# Instantiation frames
# =============================================================================


@dataclass(frozen=True)
class NewMatch:
    """
    Instantiation caused by an E-matching pattern match ([new-match]).

    Attributes:
        quantifier: Term id of the instantiated quantifier.
        pattern: Term id of the pattern that matched.
        bound: Terms bound to the quantifier's variables.
        used: Terms (and equalities) the match relied on.
    """

    quantifier: TermId
    pattern: TermId
    bound: tuple[TermId, ...] = ()
    used: tuple[MatchedTerm, ...] = ()


@dataclass(frozen=True)
class Discovered:
    """
    Instantiation found without a pattern match ([inst-discovered]),
    e.g. by MBQI or theory solving.
    """

    method: str
    quantifier: TermId
    terms: tuple[TermId, ...] = ()


InstantiationFrame = Union[NewMatch, Discovered]


# =============================================================================
# Instantiations
# =============================================================================


@dataclass(frozen=True)
class QuantifierInstance:
    """One [instance] ... [end-of-instance] block."""

    proof: TermId | None = None
    generation: int | None = None
    enodes: tuple[TermId, ...] = ()


@dataclass(frozen=True)
class QuantifierInstantiation:
    """A single firing of a quantifier and everything it produced."""

    key: InstantiationKey
    frame: InstantiationFrame
    instances: tuple[QuantifierInstance, ...] = ()

    @property
    def quantifier(self) -> TermId:
        return self.frame.quantifier

    @property
    def is_new_match(self) -> bool:
        return isinstance(self.frame, NewMatch)

    @property
    def produced_terms(self) -> tuple[TermId, ...]:
        """Terms that came into existence because of this firing, in log order."""
        return tuple(
            enode for instance in self.instances for enode in instance.enodes
        )


@dataclass(frozen=True)
class QuantifierCost:
    """Per-quantifier cost aggregate."""

    quantifier: str
    instantiations: int
    cost: int

    @property
    def score(self) -> int:
        """Ranking key: instantiations x cost."""
        return self.instantiations * self.cost


# =============================================================================
# Trace model
# =============================================================================


@dataclass(frozen=True)
class TraceModel:
    """
    Structured, immutable view of a processed trace log.

    Usage:
        model = parse_trace_file("z3.log")
        for key, inst in model.instantiations().items():
            print(key, model.term_name(inst.quantifier))
    """

    terms: Mapping[TermId, Term] = field(default_factory=dict)
    instantiation_table: Mapping[InstantiationKey, QuantifierInstantiation] = field(
        default_factory=dict
    )
    tool_version: str | None = None
    line_count: int = 0

    def __post_init__(self) -> None:
        # Freeze the tables so consumers cannot mutate the shared model
        object.__setattr__(self, "terms", MappingProxyType(dict(self.terms)))
        object.__setattr__(
            self,
            "instantiation_table",
            MappingProxyType(dict(self.instantiation_table)),
        )

    def instantiations(self) -> Mapping[InstantiationKey, QuantifierInstantiation]:
        """All instantiations, in log order."""
        return self.instantiation_table

    def instantiation(self, key: InstantiationKey) -> QuantifierInstantiation:
        """Look up an instantiation, failing if the key is unknown."""
        try:
            return self.instantiation_table[key]
        except KeyError:
            raise ModelError(
                f"Unknown instantiation {key}", reference=str(key)
            ) from None

    def term(self, ident: TermId) -> Term:
        """Look up a term, failing if it was never defined."""
        try:
            return self.terms[ident]
        except KeyError:
            raise ModelError(f"Unknown term {ident}", reference=ident) from None

    def term_name(self, ident: TermId) -> str:
        """Declared name of a term (the quantifier name for [mk-quant] terms)."""
        term = self.term(ident)
        if term.name is None:
            raise ModelError(
                f"Term {ident} ({term.kind.value}) has no name", reference=ident
            )
        return term.name

    def quant_costs(self) -> list[QuantifierCost]:
        """
        Aggregate instantiation counts and costs per quantifier name.

        Every instantiation counts once. Its cost is the number of terms it
        produced, but at least 1: a firing that produced nothing still cost
        the solver a match. Quantifiers appear in order of first
        instantiation.
        """
        counts: dict[str, int] = {}
        costs: dict[str, int] = {}
        for inst in self.instantiation_table.values():
            name = self.term_name(inst.quantifier)
            counts[name] = counts.get(name, 0) + 1
            costs[name] = costs.get(name, 0) + max(1, len(inst.produced_terms))

        return [
            QuantifierCost(quantifier=name, instantiations=count, cost=costs[name])
            for name, count in counts.items()
        ]
