"""
Package-level exception hierarchy for qiprofiler.

All exceptions inherit from QIProfilerError, enabling:
- Catching all profiler errors with a single except clause
- Context fields for debugging (source, line_number, instantiation, ...)
- Structured serialization via to_dict() for JSON error output

Hierarchy:
    QIProfilerError
    ├── TraceError          – Trace log cannot be opened, read or parsed
    ├── ModelError          – Trace model is malformed (unresolved references)
    ├── CostReportError     – Cost percentages cannot be computed
    ├── ConfigurationError  – Invalid profiler configuration
    └── VisualizationError  – Graph viewer cannot be launched
"""

from __future__ import annotations

from typing import Any


class QIProfilerError(Exception):
    """
    Base exception for all qiprofiler errors.

    Attributes:
        message: Human-readable error description.
    """

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary for JSON error output."""
        return {
            "error_type": type(self).__name__,
            "message": self.message,
        }


# ── Input Errors ─────────────────────────────────────────────────────────


class TraceError(QIProfilerError):
    """
    Failed to open, read or parse a solver trace log.

    Attributes:
        source: Where the error occurred (e.g. "file_read", "syntax").
        line_number: 1-based line of the offending log entry, if known.
        detail: Technical details for debugging (optional).
    """

    def __init__(
        self,
        message: str,
        *,
        source: str = "unknown",
        line_number: int | None = None,
        detail: str | None = None,
    ) -> None:
        self.source = source
        self.line_number = line_number
        self.detail = detail
        if line_number is not None:
            message = f"line {line_number}: {message}"
        super().__init__(message)

    def __str__(self) -> str:
        if self.detail:
            return f"{self.message}\n\nDetails: {self.detail}"
        return self.message

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["source"] = self.source
        result["line_number"] = self.line_number
        result["detail"] = self.detail
        return result


# ── Model Errors ─────────────────────────────────────────────────────────


class ModelError(QIProfilerError):
    """
    The trace model references something it does not define.

    Raised while resolving quantifier names for graph nodes. Never
    downgraded to a per-node skip: dropping a node would corrupt the
    attribution of everything it triggered.

    Attributes:
        reference: The unresolved identifier (term id or instantiation key).
    """

    def __init__(self, message: str, reference: str | None = None) -> None:
        self.reference = reference
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["reference"] = self.reference
        return result


# ── Report Errors ────────────────────────────────────────────────────────


class CostReportError(QIProfilerError):
    """Quantifier costs exist but sum to zero instantiations."""
    pass


# ── Configuration Errors ─────────────────────────────────────────────────


class ConfigurationError(QIProfilerError):
    """
    Error in profiler configuration.

    Attributes:
        config_key: The configuration key that caused the error (if known).
    """

    def __init__(self, message: str, config_key: str | None = None) -> None:
        self.config_key = config_key
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        result = super().to_dict()
        result["config_key"] = self.config_key
        return result


# ── Visualization Errors ─────────────────────────────────────────────────


class VisualizationError(QIProfilerError):
    """
    The interactive graph viewer cannot be started.

    Usually means the optional ``viz`` extra (networkx, matplotlib)
    is not installed.
    """
    pass
