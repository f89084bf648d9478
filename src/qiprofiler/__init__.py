"""qiprofiler - quantifier instantiation profiler for Z3 trace logs."""

__version__ = "0.1.0"
__license__ = "MIT"

# Exception hierarchy (import first so other modules can use it)
from qiprofiler.exceptions import (
    QIProfilerError,
    TraceError,
    ModelError,
    CostReportError,
    ConfigurationError,
    VisualizationError,
)

from qiprofiler.trace import (
    InstantiationKey,
    QuantifierCost,
    TraceConfig,
    TraceModel,
    parse_trace,
    parse_trace_file,
)
from qiprofiler.analysis import (
    CostReportLine,
    InstantiationGraph,
    Profiler,
    build_instantiation_graph,
    build_term_blame,
    rank_quantifier_costs,
)
from qiprofiler.config import (
    Config,
    Environment,
    get_config,
)

__all__ = [
    # Exception hierarchy
    "QIProfilerError",
    "TraceError",
    "ModelError",
    "CostReportError",
    "ConfigurationError",
    "VisualizationError",
    # Trace model
    "TraceConfig",
    "TraceModel",
    "InstantiationKey",
    "QuantifierCost",
    "parse_trace",
    "parse_trace_file",
    # Analysis
    "Profiler",
    "InstantiationGraph",
    "CostReportLine",
    "build_term_blame",
    "build_instantiation_graph",
    "rank_quantifier_costs",
    # Configuration
    "Config",
    "Environment",
    "get_config",
    # Metadata
    "__version__",
    "__license__",
]
