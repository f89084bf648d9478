"""
Parser for Z3 trace logs (``z3 trace=true``).

This module handles:
- Reading trace logs line by line without loading the file into memory
- Building the term table from [mk-*] lines
- Building instantiation records from [new-match] / [inst-discovered]
- Attaching produced e-nodes from [instance] ... [end-of-instance] blocks
- Enforcing file size limits and, optionally, the Z3 version

Error handling philosophy: fail fast with the line number of the first
problem, unless the caller explicitly asked for a lenient pass via
TraceConfig.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from pathlib import Path

from rich.console import Console
from rich.progress import Progress

from qiprofiler.exceptions import TraceError
from qiprofiler.trace.config import DEFAULT_CONFIG, TraceConfig
from qiprofiler.trace.models import (
    Discovered,
    Equality,
    InstantiationKey,
    MatchedTerm,
    NewMatch,
    QuantifierInstance,
    QuantifierInstantiation,
    Term,
    TermId,
    TermKind,
    TraceModel,
    Trigger,
)

logger = logging.getLogger(__name__)

SUPPORTED_MAJOR_VERSIONS = frozenset({"4"})

# Lines that are valid trace output but carry nothing the profiler uses
IGNORED_TAGS = frozenset({
    "[assign]",
    "[attach-meaning]",
    "[attach-var-names]",
    "[begin-check]",
    "[conflict]",
    "[decide-and-or]",
    "[eq-expl]",
    "[mk-enode]",
    "[pop]",
    "[push]",
    "[query-done]",
    "[resolve-lit]",
    "[resolve-process]",
})

PROGRESS_STEP = 10_000

_SYNTAX = "syntax"
_CONSISTENCY = "consistency"


@dataclass
class _OpenInstance:
    """An [instance] block that has not seen [end-of-instance] yet."""

    key: InstantiationKey
    proof: TermId | None
    generation: int | None
    enodes: list[TermId] = field(default_factory=list)


@dataclass
class _PendingInstantiation:
    key: InstantiationKey
    frame: NewMatch | Discovered
    instances: list[QuantifierInstance] = field(default_factory=list)

    def freeze(self) -> QuantifierInstantiation:
        return QuantifierInstantiation(
            key=self.key, frame=self.frame, instances=tuple(self.instances)
        )


class TraceParser:
    """
    Incremental trace log parser.

    Feed lines with process_line() and call build() once at the end.
    parse_trace() and parse_trace_file() wrap this for the common cases.
    """

    def __init__(self, config: TraceConfig | None = None) -> None:
        self.config = config or DEFAULT_CONFIG
        self.line_count = 0
        self.skipped_lines = 0
        self.finished = False

        self._terms: dict[TermId, Term] = {}
        self._instantiations: dict[InstantiationKey, _PendingInstantiation] = {}
        self._latest_version: dict[int, int] = {}
        self._open_instance: _OpenInstance | None = None
        # [instance] blocks rejected as inconsistent that have not ended yet
        self._skipped_blocks = 0
        self._tool_version: str | None = None

        self._handlers: dict[str, Callable[[list[str]], None]] = {
            "[tool-version]": self._on_tool_version,
            "[mk-app]": self._on_mk_app,
            "[mk-quant]": self._on_mk_quant,
            "[mk-lambda]": self._on_mk_lambda,
            "[mk-var]": self._on_mk_var,
            "[mk-proof]": self._on_mk_proof,
            "[new-match]": self._on_new_match,
            "[inst-discovered]": self._on_inst_discovered,
            "[instance]": self._on_instance,
            "[attach-enode]": self._on_attach_enode,
            "[end-of-instance]": self._on_end_of_instance,
            "[eof]": self._on_eof,
        }

    # -------------------------------------------------------------------------
    # Driving
    # -------------------------------------------------------------------------

    def process_line(self, line: str) -> None:
        """Process one log line. Lines after [eof] are ignored."""
        self.line_count += 1
        if self.finished:
            return

        stripped = line.strip()
        if not stripped:
            return

        try:
            self._dispatch(stripped)
        except TraceError as e:
            if self._may_skip(e.source):
                self.skipped_lines += 1
                logger.debug(
                    "Skipping line %d (%s): %s", self.line_count, e.source, e.message
                )
                return
            raise TraceError(
                e.message,
                source=e.source,
                line_number=self.line_count,
                detail=stripped,
            ) from e

    def build(self) -> TraceModel:
        """Finish parsing and return the immutable model."""
        self._skipped_blocks = 0
        if self._open_instance is not None:
            key = self._open_instance.key
            if not self.config.skip_consistency_checks:
                raise TraceError(
                    f"Log ended inside the [instance] block of {key}",
                    source=_CONSISTENCY,
                )
            logger.debug("Closing unterminated [instance] block of %s", key)
            self._on_end_of_instance([])

        model = TraceModel(
            terms=self._terms,
            instantiation_table={
                key: pending.freeze()
                for key, pending in self._instantiations.items()
            },
            tool_version=self._tool_version,
            line_count=self.line_count,
        )
        logger.info(
            "Processed %d lines: %d terms, %d instantiations (%d lines skipped)",
            self.line_count,
            len(model.terms),
            len(model.instantiation_table),
            self.skipped_lines,
        )
        return model

    def _may_skip(self, source: str) -> bool:
        if source == _SYNTAX:
            return self.config.ignore_invalid_lines
        if source == _CONSISTENCY:
            return self.config.skip_consistency_checks
        return False

    def _dispatch(self, line: str) -> None:
        if not line.startswith("["):
            raise TraceError("Expected a [tag] at the start of the line", source=_SYNTAX)

        end = line.find("]")
        if end < 0:
            raise TraceError("Unterminated [tag]", source=_SYNTAX)

        tag = line[: end + 1]
        if tag in IGNORED_TAGS:
            return

        handler = self._handlers.get(tag)
        if handler is None:
            raise TraceError(f"Unknown tag {tag}", source=_SYNTAX)

        try:
            handler(line[end + 1:].split())
        except (ValueError, IndexError) as e:
            raise TraceError(f"Malformed {tag} line: {e}", source=_SYNTAX) from e

    # -------------------------------------------------------------------------
    # Terms
    # -------------------------------------------------------------------------

    def _on_tool_version(self, args: list[str]) -> None:
        self._tool_version = " ".join(args)
        if self.config.skip_version_check:
            return
        if len(args) < 2 or args[0] != "Z3":
            raise TraceError(
                f"Unsupported tool: {self._tool_version!r}", source="version"
            )
        major = args[1].split(".")[0]
        if major not in SUPPORTED_MAJOR_VERSIONS:
            raise TraceError(
                f"Unsupported Z3 version: {args[1]}", source="version"
            )

    def _add_term(self, term: Term) -> None:
        if term.ident in self._terms:
            # Ids are recycled after [pop]; the newest definition wins
            logger.debug("Redefining term %s", term.ident)
        self._terms[term.ident] = term

    def _on_mk_app(self, args: list[str]) -> None:
        ident = _term_id(args[0])
        self._add_term(Term(ident, TermKind.APP, args[1], _term_ids(args[2:])))

    def _on_mk_proof(self, args: list[str]) -> None:
        ident = _term_id(args[0])
        self._add_term(Term(ident, TermKind.PROOF, args[1], _term_ids(args[2:])))

    def _on_mk_quant(self, args: list[str]) -> None:
        ident = _term_id(args[0])
        int(args[2])  # variable count
        self._add_term(Term(ident, TermKind.QUANT, args[1], _term_ids(args[3:])))

    def _on_mk_lambda(self, args: list[str]) -> None:
        ident = _term_id(args[0])
        int(args[2])
        self._add_term(Term(ident, TermKind.LAMBDA, args[1], _term_ids(args[3:])))

    def _on_mk_var(self, args: list[str]) -> None:
        ident = _term_id(args[0])
        int(args[1])
        self._add_term(Term(ident, TermKind.VAR))

    # -------------------------------------------------------------------------
    # Instantiations
    # -------------------------------------------------------------------------

    def _next_key(self, fingerprint: int) -> InstantiationKey:
        if fingerprint in self._latest_version:
            version = self._latest_version[fingerprint] + 1
        else:
            version = 0
        self._latest_version[fingerprint] = version
        return InstantiationKey(fingerprint, version)

    def _add_instantiation(self, fingerprint: int, frame: NewMatch | Discovered) -> None:
        key = self._next_key(fingerprint)
        self._instantiations[key] = _PendingInstantiation(key, frame)

    def _on_new_match(self, args: list[str]) -> None:
        before, after = _split_at_semicolon(args)
        if len(before) < 3:
            raise TraceError(
                "[new-match] needs a fingerprint, a quantifier and a pattern",
                source=_SYNTAX,
            )
        fingerprint = _fingerprint(before[0])
        frame = NewMatch(
            quantifier=_term_id(before[1]),
            pattern=_term_id(before[2]),
            bound=_term_ids(before[3:]),
            used=_matched_terms(after),
        )
        self._add_instantiation(fingerprint, frame)

    def _on_inst_discovered(self, args: list[str]) -> None:
        before, _ = _split_at_semicolon(args)
        if len(before) < 3:
            raise TraceError(
                "[inst-discovered] needs a method, a fingerprint and a quantifier",
                source=_SYNTAX,
            )
        frame = Discovered(
            method=before[0],
            quantifier=_term_id(before[2]),
            terms=_term_ids(before[3:]),
        )
        self._add_instantiation(_fingerprint(before[1]), frame)

    def _on_instance(self, args: list[str]) -> None:
        before, after = _split_at_semicolon(args)
        fingerprint = _fingerprint(before[0])
        proof = _term_id(before[1]) if len(before) > 1 else None
        generation = int(after[0]) if after else None

        if self._open_instance is not None or self._skipped_blocks:
            outer = self._open_instance.key if self._open_instance else "a skipped block"
            self._skipped_blocks += 1
            raise TraceError(
                f"[instance] of {fingerprint:#x} inside the block of {outer}",
                source=_CONSISTENCY,
            )
        if fingerprint not in self._latest_version:
            self._skipped_blocks += 1
            raise TraceError(
                f"[instance] of unknown fingerprint {fingerprint:#x}",
                source=_CONSISTENCY,
            )

        key = InstantiationKey(fingerprint, self._latest_version[fingerprint])
        self._open_instance = _OpenInstance(key, proof, generation)

    def _on_attach_enode(self, args: list[str]) -> None:
        ident = _term_id(args[0])
        int(args[1])  # generation
        if self._skipped_blocks:
            return
        if self._open_instance is None:
            # Terms created while asserting the input, not by an instantiation
            return
        self._open_instance.enodes.append(ident)

    def _on_end_of_instance(self, args: list[str]) -> None:
        if self._skipped_blocks:
            self._skipped_blocks -= 1
            return
        current = self._open_instance
        if current is None:
            raise TraceError(
                "[end-of-instance] without a matching [instance]",
                source=_CONSISTENCY,
            )
        self._instantiations[current.key].instances.append(
            QuantifierInstance(
                proof=current.proof,
                generation=current.generation,
                enodes=tuple(current.enodes),
            )
        )
        self._open_instance = None

    def _on_eof(self, args: list[str]) -> None:
        self.finished = True


# =============================================================================
# Token helpers
# =============================================================================


def _term_id(token: str) -> TermId:
    if "#" not in token:
        raise TraceError(f"Expected a term id, got {token!r}", source=_SYNTAX)
    return token


def _term_ids(tokens: list[str]) -> tuple[TermId, ...]:
    return tuple(_term_id(token) for token in tokens)


def _fingerprint(token: str) -> int:
    if not token.startswith("0x"):
        raise TraceError(f"Expected a fingerprint, got {token!r}", source=_SYNTAX)
    return int(token, 16)


def _split_at_semicolon(args: list[str]) -> tuple[list[str], list[str]]:
    if ";" in args:
        index = args.index(";")
        return args[:index], args[index + 1:]
    return args, []


def _matched_terms(tokens: list[str]) -> tuple[MatchedTerm, ...]:
    """
    Decode the used terms of a [new-match] line.

    ``#12`` is a trigger term; ``(#12 #34)`` is an equality.
    """
    result: list[MatchedTerm] = []
    it = iter(tokens)
    for token in it:
        if token.startswith("("):
            rhs = next(it, None)
            if rhs is None or not rhs.endswith(")"):
                raise TraceError(
                    f"Unterminated equality starting at {token!r}", source=_SYNTAX
                )
            result.append(Equality(_term_id(token[1:]), _term_id(rhs[:-1])))
        else:
            result.append(Trigger(_term_id(token)))
    return tuple(result)


# =============================================================================
# Entry points
# =============================================================================


def parse_trace(
    lines: Iterable[str],
    config: TraceConfig | None = None,
    total_lines: int | None = None,
) -> TraceModel:
    """
    Parse trace log lines into a TraceModel.

    Args:
        lines: Log lines (an open file, a list, ``text.splitlines()``...)
        config: Parser configuration. Defaults to strict parsing.
        total_lines: Line count used to size the progress bar.

    Returns:
        TraceModel: Immutable model of the trace

    Raises:
        TraceError: On the first line that cannot be processed

    Example:
        >>> model = parse_trace(["[mk-quant] #1 ax 0 #2"])
        >>> model.term_name("#1")
        'ax'
    """
    parser = TraceParser(config)

    if not parser.config.show_progress:
        for line in lines:
            parser.process_line(line)
        return parser.build()

    # Progress goes to stderr so reports on stdout stay pipeable
    with Progress(transient=True, console=Console(stderr=True)) as progress:
        task = progress.add_task("Processing trace", total=total_lines)
        for line in lines:
            parser.process_line(line)
            if parser.line_count % PROGRESS_STEP == 0:
                progress.update(task, completed=parser.line_count)
        progress.update(task, completed=parser.line_count)

    return parser.build()


def parse_trace_file(path: str | Path, config: TraceConfig | None = None) -> TraceModel:
    """
    Parse a trace log file.

    Raises:
        TraceError: If the file cannot be read or parsed
    """
    config = config or DEFAULT_CONFIG
    filepath = Path(path)

    if not filepath.exists():
        raise TraceError(f"File not found: {filepath}", source="file_read")

    if not filepath.is_file():
        raise TraceError(f"Path is not a file: {filepath}", source="file_read")

    size_mb = filepath.stat().st_size / (1024 * 1024)
    if size_mb > config.max_file_size_mb:
        raise TraceError(
            f"File too large: {size_mb:.1f}MB (max {config.max_file_size_mb}MB)",
            detail="Increase max_file_size_mb in config to process this log",
            source="resource_limit",
        )

    try:
        total_lines = None
        if config.show_progress:
            with filepath.open(encoding="utf-8", errors="replace") as f:
                total_lines = sum(1 for _ in f)

        with filepath.open(encoding="utf-8", errors="replace") as f:
            return parse_trace(f, config, total_lines=total_lines)
    except OSError as e:
        raise TraceError(
            f"Cannot read file: {filepath}", detail=str(e), source="file_read"
        ) from e
