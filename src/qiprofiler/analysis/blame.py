"""
Term blame: which instantiation produced which term.

Only instantiations that came from a pattern match ([new-match]) are
considered. Discovered instantiations have no traced cause, so the terms
they produce stay unattributed, exactly like terms from the input
assertions.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping

from qiprofiler.trace.models import (
    InstantiationKey,
    QuantifierInstantiation,
    TermId,
)

logger = logging.getLogger(__name__)


def build_term_blame(
    instantiations: Mapping[InstantiationKey, QuantifierInstantiation],
) -> dict[TermId, InstantiationKey]:
    """
    Map every produced term to the instantiation responsible for it.

    If several instantiations claim the same term the last one in
    iteration order wins. A term with no entry has nobody to blame.
    """
    blame: dict[TermId, InstantiationKey] = {}
    for key, inst in instantiations.items():
        if not inst.is_new_match:
            continue
        for term in inst.produced_terms:
            blame[term] = key
    return blame


def find_blame_conflicts(
    instantiations: Mapping[InstantiationKey, QuantifierInstantiation],
) -> dict[TermId, tuple[InstantiationKey, ...]]:
    """
    Terms claimed by more than one [new-match] instantiation.

    A well-formed trace has none. build_term_blame() still resolves such
    terms to the last claimant; this only reports them.
    """
    claims: dict[TermId, list[InstantiationKey]] = {}
    for key, inst in instantiations.items():
        if not inst.is_new_match:
            continue
        for term in inst.produced_terms:
            owners = claims.setdefault(term, [])
            if key not in owners:
                owners.append(key)

    return {
        term: tuple(owners)
        for term, owners in claims.items()
        if len(owners) > 1
    }
