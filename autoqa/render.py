"""Plotly rendering of a mind map layout, with click-to-select support."""

from __future__ import annotations
from typing import Any, Mapping, Optional
import logging

import plotly.graph_objects as go

from .mindmap import TreeLayout, Viewport

logger = logging.getLogger(__name__)

LINK_COLOR = "#cbd5e1"
NODE_STROKE = "#3b82f6"
ROOT_FILL = "#3b82f6"
SCENARIO_FILL = "#ffffff"
SELECTED_FILL = "#f59e0b"
BACKGROUND = "#f8fafc"

ROOT_SIZE = 16
SCENARIO_SIZE = 12

MIN_CANVAS_HEIGHT = 480
ROW_HEIGHT = 36


def canvas_height(scenario_count: int) -> int:
    """Canvas grows with the number of scenarios so labels do not overlap."""
    return max(MIN_CANVAS_HEIGHT, scenario_count * ROW_HEIGHT + 40)


def build_figure(
    layout: TreeLayout,
    viewport: Optional[Viewport] = None,
    selected_index: Optional[int] = None
) -> go.Figure:
    """
    Draw links as Bezier path shapes and all nodes as a single scatter trace.

    ``customdata`` on each point carries the scenario index (-1 for the root)
    so selection events can be mapped back to a scenario. Axis ranges are the
    inverse of the viewport transform; the y axis runs downwards like screen
    coordinates. ``uirevision`` follows the viewport, so a pan made by
    dragging survives reruns until the viewport itself changes.
    """
    viewport = viewport or Viewport(layout.width, layout.height)

    shapes = [
        dict(type="path", path=link.path, line=dict(color=LINK_COLOR, width=2), layer="below")
        for link in layout.links
    ]

    fills, sizes, positions = [], [], []
    for n in layout.nodes:
        if n.is_root:
            fills.append(ROOT_FILL)
            sizes.append(ROOT_SIZE)
            positions.append("middle left")
        else:
            fills.append(SELECTED_FILL if n.node.index == selected_index else SCENARIO_FILL)
            sizes.append(SCENARIO_SIZE)
            positions.append("middle right")

    nodes = go.Scatter(
        x=[n.x for n in layout.nodes],
        y=[n.y for n in layout.nodes],
        mode="markers+text",
        text=[n.label for n in layout.nodes],
        textposition=positions,
        hovertext=[n.node.name for n in layout.nodes],
        hoverinfo="text",
        customdata=[n.node.index for n in layout.nodes],
        marker=dict(size=sizes, color=fills, line=dict(color=NODE_STROKE, width=2)),
    )

    (x0, x1), (y0, y1) = viewport.visible_range()

    fig = go.Figure(nodes)
    fig.update_layout(
        shapes=shapes,
        height=int(layout.height),
        margin=dict(l=0, r=0, t=0, b=0),
        xaxis=dict(range=[x0, x1], visible=False),
        yaxis=dict(range=[y1, y0], visible=False),
        dragmode="pan",
        uirevision=viewport.revision,
        clickmode="event+select",
        showlegend=False,
        plot_bgcolor=BACKGROUND,
        paper_bgcolor=BACKGROUND,
    )
    return fig


def selected_index_from_event(event: Optional[Mapping[str, Any]]) -> Optional[int]:
    """Scenario index from a Streamlit plotly selection event, or None for the root / no point."""
    if not event:
        return None
    try:
        points = event["selection"]["points"]
    except (KeyError, TypeError):
        return None

    for point in points:
        customdata = point.get("customdata")
        if isinstance(customdata, (list, tuple)):
            customdata = customdata[0] if customdata else None
        if customdata is None and point.get("point_index") is not None:
            # nodes[0] is the root, scenarios follow in order
            customdata = point["point_index"] - 1
        if customdata is not None and int(customdata) >= 0:
            return int(customdata)
    return None
