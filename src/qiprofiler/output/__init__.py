"""Report rendering and graph visualization."""

from qiprofiler.output.renderers import (
    OutputFormat,
    render,
    render_graph_dump,
    render_json,
    render_text,
)

__all__ = [
    "OutputFormat",
    "render",
    "render_graph_dump",
    "render_json",
    "render_text",
]
