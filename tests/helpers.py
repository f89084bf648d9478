"""Builders for small in-memory trace models, and a sample trace log."""

from __future__ import annotations

import textwrap

from qiprofiler.trace.models import (
    Discovered,
    Equality,
    InstantiationKey,
    MatchedTerm,
    NewMatch,
    QuantifierInstance,
    QuantifierInstantiation,
    Term,
    TermKind,
    TraceModel,
    Trigger,
)

QUANTIFIERS = {
    "#q1": "ax_first",
    "#q2": "ax_second",
}


def new_match(
    fingerprint: int,
    quantifier: str = "#q1",
    triggers: tuple[str, ...] = (),
    produced: tuple[str, ...] = (),
    version: int = 0,
    equalities: tuple[tuple[str, str], ...] = (),
) -> QuantifierInstantiation:
    used: list[MatchedTerm] = [Trigger(t) for t in triggers]
    used.extend(Equality(lhs, rhs) for lhs, rhs in equalities)
    return QuantifierInstantiation(
        key=InstantiationKey(fingerprint, version),
        frame=NewMatch(quantifier=quantifier, pattern="#p", used=tuple(used)),
        instances=(QuantifierInstance(enodes=tuple(produced)),),
    )


def discovered(
    fingerprint: int,
    quantifier: str = "#q1",
    produced: tuple[str, ...] = (),
) -> QuantifierInstantiation:
    return QuantifierInstantiation(
        key=InstantiationKey(fingerprint),
        frame=Discovered(method="mbqi", quantifier=quantifier),
        instances=(QuantifierInstance(enodes=tuple(produced)),),
    )


def make_model(
    *instantiations: QuantifierInstantiation,
    quantifiers: dict[str, str] | None = None,
) -> TraceModel:
    names = QUANTIFIERS if quantifiers is None else quantifiers
    terms = {
        ident: Term(ident, TermKind.QUANT, name) for ident, name in names.items()
    }
    return TraceModel(
        terms=terms,
        instantiation_table={inst.key: inst for inst in instantiations},
    )


# Six instantiations of two quantifiers:
#   0x1.0 (ax_f) produces #12, which triggers 0x2.0 (ax_g)
#   0x2.0 (ax_g) produces #13, which triggers 0x1.1 (ax_f)
#   0x3.0 (ax_f) matched through an equality only
#   0x4.0 (ax_g) discovered by theory solving, produces #14
#   0x5.0 (ax_g) triggered by #14, which nobody is blamed for
SAMPLE_LOG = textwrap.dedent("""\
    [tool-version] Z3 4.8.17
    [mk-var] #1 0
    [mk-app] #2 f #1
    [mk-app] #3 pattern #2
    [mk-quant] #4 ax_f 1 #3 #2
    [mk-app] #5 g #1
    [mk-app] #6 pattern #5
    [mk-quant] #7 ax_g 1 #6 #5
    [mk-app] #10 a
    [attach-enode] #10 0
    [mk-app] #11 f #10
    [attach-enode] #11 0
    [push] 1
    [new-match] 0x1 #4 #3 #10 ; #11
    [instance] 0x1 #30 ; 1
    [mk-app] #12 g #10
    [attach-enode] #12 1
    [end-of-instance]
    [new-match] 0x2 #7 #6 #10 ; #12
    [instance] 0x2 ; 2
    [mk-app] #13 f #12
    [attach-enode] #13 2
    [end-of-instance]
    [new-match] 0x1 #4 #3 #12 ; #13
    [instance] 0x1 ; 3
    [end-of-instance]
    [new-match] 0x3 #4 #3 #10 ; (#12 #11)
    [inst-discovered] theory-solving 0x4 #7 ; #11
    [instance] 0x4
    [mk-app] #14 g #11
    [attach-enode] #14 1
    [end-of-instance]
    [new-match] 0x5 #7 #6 #11 ; #14
    [eof]
    [garbage after eof]
""")
