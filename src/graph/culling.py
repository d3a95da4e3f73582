from dataclasses import dataclass, field
from typing import FrozenSet, Iterable, List, Optional

from src.graph.adjacency import apply_highlight
from src.graph.models import GraphEdge, GraphNode, LayoutResult, Viewport

MIN_ZOOM = 0.01

# Zooming to a node never leaves the view more zoomed out than this
FOCUS_ZOOM = 1.2

@dataclass(frozen=True)
class Bounds:
    min_x: float
    min_y: float
    max_x: float
    max_y: float

    def contains(self, x: float, y: float) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

@dataclass
class VisibleGraph:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    bounds: Optional[Bounds] = None
    highlight: FrozenSet[str] = frozenset()

def visible_bounds(viewport: Viewport, buffer_factor: float = 1.0) -> Bounds:
    """World-space rectangle on screen, padded by at least one viewport each way.

    Screen = world * zoom + pan, so world = (screen - pan) / zoom.
    """
    zoom = max(viewport.zoom, MIN_ZOOM)
    factor = max(buffer_factor, 1.0)
    buffer_x = factor * viewport.screen_width / zoom
    buffer_y = factor * viewport.screen_height / zoom

    return Bounds(
        min_x=-viewport.pan_x / zoom - buffer_x,
        min_y=-viewport.pan_y / zoom - buffer_y,
        max_x=(-viewport.pan_x + viewport.screen_width) / zoom + buffer_x,
        max_y=(-viewport.pan_y + viewport.screen_height) / zoom + buffer_y,
    )

def cull_layout(
    layout: LayoutResult,
    viewport: Viewport,
    highlight: Iterable[str] = (),
    selected: Optional[str] = None,
    buffer_factor: float = 1.0,
) -> VisibleGraph:
    """Filters the full layout down to what can appear on screen.

    Only positions are tested; an edge survives only when both of its
    endpoints do, so nothing is drawn from or to an off-screen node.
    """
    bounds = visible_bounds(viewport, buffer_factor)
    highlight = frozenset(highlight)

    kept = [node for node in layout.nodes if bounds.contains(node.position[0], node.position[1])]
    kept_ids = {node.id for node in kept}
    edges = [edge for edge in layout.edges if edge.source in kept_ids and edge.target in kept_ids]

    return VisibleGraph(
        nodes=apply_highlight(kept, highlight, selected),
        edges=edges,
        bounds=bounds,
        highlight=highlight,
    )

def focus_viewport(node: GraphNode, viewport: Viewport, min_zoom: float = FOCUS_ZOOM) -> Viewport:
    """Viewport centered on a node, zooming in to at least min_zoom but never out."""
    zoom = max(viewport.zoom, min_zoom)
    cx, cy = node.center
    return Viewport(
        pan_x=viewport.screen_width / 2 - cx * zoom,
        pan_y=viewport.screen_height / 2 - cy * zoom,
        zoom=zoom,
        screen_width=viewport.screen_width,
        screen_height=viewport.screen_height,
    )
