"""
Trace parser configuration.

Z3 trace logs are routinely several gigabytes, and older or newer Z3
releases emit lines this parser does not know. These switches decide how
forgiving the parser is.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TraceConfig(BaseModel):
    """
    Configuration for the trace log parser.

    Attributes:
        skip_version_check: Accept logs from any [tool-version].
        ignore_invalid_lines: Skip lines that cannot be parsed instead of
            failing on the first one.
        skip_consistency_checks: Skip [instance]/[attach-enode] lines that
            refer to unknown instantiations or appear outside a block.
        show_progress: Render a progress bar while reading the log.
        max_file_size_mb: Refuse to open larger files.

    Example:
        # Strict defaults
        config = TraceConfig()

        # Best-effort processing of a log from an unknown Z3 build
        config = TraceConfig(skip_version_check=True, ignore_invalid_lines=True)
    """

    model_config = ConfigDict(frozen=True)

    skip_version_check: bool = Field(
        default=False,
        description="Accept logs produced by unsupported Z3 versions",
    )

    ignore_invalid_lines: bool = Field(
        default=False,
        description="Skip unparseable lines instead of failing",
    )

    skip_consistency_checks: bool = Field(
        default=False,
        description="Skip instance lines that refer to unknown instantiations",
    )

    show_progress: bool = Field(
        default=False,
        description="Show a progress bar while reading the log",
    )

    max_file_size_mb: float = Field(
        default=2048.0,
        gt=0,
        description="Maximum log size in megabytes",
    )


DEFAULT_CONFIG = TraceConfig()

# Matches the settings the profiler has always used for arbitrary logs
LENIENT_CONFIG = TraceConfig(
    skip_version_check=True,
    ignore_invalid_lines=True,
    skip_consistency_checks=True,
)
