"""
Interactive viewer for the instantiation graph.

Pure consumer of InstantiationGraph: converts it to a networkx DiGraph
and draws it with matplotlib, one square node per instantiation labelled
with its quantifier name. The initial layout comes from networkx; nodes
can then be dragged with the mouse, and clicking a node selects it and
highlights the instantiations it triggered.

Requires the optional ``viz`` extra:
    pip install qiprofiler[viz]
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from qiprofiler.exceptions import VisualizationError

if TYPE_CHECKING:
    import networkx as nx

    from qiprofiler.analysis.graph import InstantiationGraph

logger = logging.getLogger(__name__)

WINDOW_TITLE = "SMT quantifier instantiations graph"

# Fixed seed so the same trace always gets the same layout
LAYOUT_SEED = 42

NODE_COLOR = "#ffffff"
EDGE_COLOR = "#666666"
NODE_BORDER_COLOR = "#4a90d9"
SELECTED_COLOR = "#c44536"
TRIGGERED_COLOR = "#f2c14e"

# Click distance that still hits a node, as a fraction of the visible span
PICK_RADIUS = 0.04


def _import_networkx() -> Any:
    try:
        import networkx
    except ImportError as e:
        raise VisualizationError(
            "The graph viewer needs networkx: pip install qiprofiler[viz]"
        ) from e
    return networkx


def _import_pyplot() -> Any:
    try:
        import matplotlib.pyplot as plt
    except ImportError as e:
        raise VisualizationError(
            "The graph viewer needs matplotlib: pip install qiprofiler[viz]"
        ) from e
    return plt


def to_networkx(graph: "InstantiationGraph") -> "nx.DiGraph":
    """
    Convert the instantiation graph to a networkx DiGraph.

    Nodes are ``(fingerprint, version)`` tuples with a ``name`` attribute.
    """
    nx = _import_networkx()

    g = nx.DiGraph()
    for node in graph.nodes:
        g.add_node(node, name=graph.names[node])
    g.add_edges_from(graph.iter_edges())
    return g


class GraphView:
    """
    Matplotlib figure of an instantiation graph with draggable nodes.

    Press on a node to select it and start dragging; release to drop it.
    Pressing on empty space clears the selection. Presses are ignored
    while the toolbar's pan or zoom mode is active.

    Attributes:
        graph: The networkx DiGraph being shown.
        pos: Current node positions, updated while dragging.
        selected: The selected node, if any.
    """

    def __init__(self, graph: "InstantiationGraph") -> None:
        self._nx = _import_networkx()
        plt = _import_pyplot()

        self.graph = to_networkx(graph)
        self.pos: dict[Any, tuple[float, float]] = {
            node: (float(x), float(y))
            for node, (x, y) in self._nx.spring_layout(
                self.graph, seed=LAYOUT_SEED
            ).items()
        }
        self.selected: Any | None = None
        self._dragging: Any | None = None
        self._limits: tuple[Any, Any] | None = None

        self.fig, self.ax = plt.subplots(figsize=(12, 9))
        if self.fig.canvas.manager is not None:
            self.fig.canvas.manager.set_window_title(WINDOW_TITLE)

        self.redraw()
        self.fig.tight_layout()
        self._limits = (self.ax.get_xlim(), self.ax.get_ylim())

        canvas = self.fig.canvas
        canvas.mpl_connect("button_press_event", self.on_press)
        canvas.mpl_connect("motion_notify_event", self.on_motion)
        canvas.mpl_connect("button_release_event", self.on_release)

    def node_at(self, x: float, y: float) -> Any | None:
        """Closest node within the pick radius of a point, in data coordinates."""
        (x0, x1), (y0, y1) = self.ax.get_xlim(), self.ax.get_ylim()
        radius = PICK_RADIUS * max(abs(x1 - x0), abs(y1 - y0))

        best, best_dist = None, radius
        for node, (nx_, ny_) in self.pos.items():
            dist = ((nx_ - x) ** 2 + (ny_ - y) ** 2) ** 0.5
            if dist <= best_dist:
                best, best_dist = node, dist
        return best

    def on_press(self, event: Any) -> None:
        if event.inaxes is not self.ax or event.xdata is None:
            return
        if getattr(self.fig.canvas.toolbar, "mode", ""):
            return

        node = self.node_at(event.xdata, event.ydata)
        self.selected = node
        self._dragging = node
        if node is not None:
            logger.debug("Selected %s (%s)", node, self.graph.nodes[node]["name"])
        self.redraw()

    def on_motion(self, event: Any) -> None:
        if self._dragging is None:
            return
        if event.inaxes is not self.ax or event.xdata is None:
            return
        self.pos[self._dragging] = (event.xdata, event.ydata)
        self.redraw()

    def on_release(self, event: Any) -> None:
        self._dragging = None

    def redraw(self) -> None:
        nx = self._nx
        ax = self.ax
        limits = self._limits

        ax.clear()

        triggered: set[Any] = set()
        if self.selected is not None:
            triggered = set(self.graph.successors(self.selected))
        colors = [
            SELECTED_COLOR if node == self.selected
            else TRIGGERED_COLOR if node in triggered
            else NODE_COLOR
            for node in self.graph.nodes
        ]
        nx.draw_networkx_nodes(
            self.graph,
            self.pos,
            ax=ax,
            nodelist=list(self.graph.nodes),
            node_shape="s",
            node_color=colors,
            edgecolors=NODE_BORDER_COLOR,
            node_size=900,
        )
        nx.draw_networkx_edges(
            self.graph, self.pos, ax=ax, edge_color=EDGE_COLOR, arrows=True
        )
        nx.draw_networkx_labels(
            self.graph,
            self.pos,
            ax=ax,
            labels=nx.get_node_attributes(self.graph, "name"),
            font_family="monospace",
            font_size=8,
        )

        if self.selected is not None:
            key, version = self.selected
            ax.set_title(
                f"{self.graph.nodes[self.selected]['name']} "
                f"({key:#x}.{version}, triggered {len(triggered)})"
            )

        ax.set_axis_off()
        if limits is not None:
            # Keep the view still while nodes move
            ax.set_xlim(limits[0])
            ax.set_ylim(limits[1])
        self.fig.canvas.draw_idle()


def show_graph(graph: "InstantiationGraph") -> None:
    """Open a window with the instantiation graph. Blocks until closed."""
    plt = _import_pyplot()

    view = GraphView(graph)
    logger.info(
        "Drawing %d nodes and %d edges",
        view.graph.number_of_nodes(),
        view.graph.number_of_edges(),
    )
    plt.show()
