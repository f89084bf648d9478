"""Z3 trace log parsing and the in-memory trace model."""

from qiprofiler.trace.config import DEFAULT_CONFIG, LENIENT_CONFIG, TraceConfig
from qiprofiler.trace.models import (
    Discovered,
    Equality,
    InstantiationFrame,
    InstantiationKey,
    MatchedTerm,
    NewMatch,
    QuantifierCost,
    QuantifierInstance,
    QuantifierInstantiation,
    Term,
    TermId,
    TermKind,
    TraceModel,
    Trigger,
)
from qiprofiler.trace.parser import TraceParser, parse_trace, parse_trace_file

__all__ = [
    "TraceConfig",
    "DEFAULT_CONFIG",
    "LENIENT_CONFIG",
    "TraceParser",
    "parse_trace",
    "parse_trace_file",
    "TraceModel",
    "Term",
    "TermId",
    "TermKind",
    "InstantiationKey",
    "InstantiationFrame",
    "NewMatch",
    "Discovered",
    "MatchedTerm",
    "Trigger",
    "Equality",
    "QuantifierInstance",
    "QuantifierInstantiation",
    "QuantifierCost",
]
