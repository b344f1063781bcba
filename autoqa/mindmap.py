"""
Mind map layout and interaction state.

Builds the feature -> scenario hierarchy from a TestSuite and lays it out as
a horizontal node-link tree: depth runs left to right, siblings are spread
evenly top to bottom. The result is plain geometry; rendering lives in
``render.py``. Layouts are rebuilt on each render pass; a tab keeps its
Viewport and SelectionState between passes.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import List, Optional, Tuple
import logging

from .models import TestCaseScenario, TestSuite

logger = logging.getLogger(__name__)

ROOT_FALLBACK_NAME = "功能"
LABEL_MAX_LENGTH = 25

MIN_SCALE = 0.5
MAX_SCALE = 2.0

Point = Tuple[float, float]


@dataclass
class MindMapNode:
    name: str
    type: str  # "root" or "scenario"
    children: List["MindMapNode"] = field(default_factory=list)
    data: Optional[TestCaseScenario] = None
    index: int = -1  # position in TestSuite.scenarios, -1 for the root


@dataclass(frozen=True)
class Margin:
    top: float = 20
    right: float = 120
    bottom: float = 20
    left: float = 120


@dataclass
class PositionedNode:
    node: MindMapNode
    depth: int
    x: float
    y: float

    @property
    def label(self) -> str:
        return truncate_label(self.node.name)

    @property
    def is_root(self) -> bool:
        return self.node.type == "root"


@dataclass
class Link:
    source: PositionedNode
    target: PositionedNode

    @property
    def path(self) -> str:
        return link_path((self.source.x, self.source.y), (self.target.x, self.target.y))


@dataclass
class TreeLayout:
    nodes: List[PositionedNode]
    links: List[Link]
    width: float
    height: float

    @property
    def root(self) -> PositionedNode:
        return self.nodes[0]

    def scenario_nodes(self) -> List[PositionedNode]:
        return [n for n in self.nodes if not n.is_root]


def truncate_label(text: str, max_length: int = LABEL_MAX_LENGTH) -> str:
    if len(text) > max_length:
        return text[:max_length] + "..."
    return text


def build_mind_map(suite: Optional[TestSuite]) -> MindMapNode:
    """Root for the feature, one child per scenario in generation order."""
    if suite is None:
        return MindMapNode(name=ROOT_FALLBACK_NAME, type="root")

    root = MindMapNode(name=suite.feature_name or ROOT_FALLBACK_NAME, type="root")
    for index, scenario in enumerate(suite.scenarios):
        root.children.append(
            MindMapNode(name=scenario.scenario_name, type="scenario", data=scenario, index=index)
        )
    return root


def link_path(source: Point, target: Point) -> str:
    """Horizontal cubic Bezier from source to target (control points share the midpoint x)."""
    x0, y0 = source
    x1, y1 = target
    mx = (x0 + x1) / 2
    return f"M{x0:g},{y0:g}C{mx:g},{y0:g} {mx:g},{y1:g} {x1:g},{y1:g}"


def layout_tree(
    root: MindMapNode,
    width: float,
    height: float,
    margin: Margin = Margin()
) -> TreeLayout:
    """
    Tidy tree layout sized to the viewport.

    Leaves take consecutive slots in depth-first order and each parent is
    centred over its children. Slots are scaled so the n leaves occupy the
    inner height with half a slot of padding at both ends; a root-only tree
    sits in the vertical middle.
    """
    inner_width = max(width - margin.left - margin.right, 0)
    inner_height = max(height - margin.top - margin.bottom, 0)

    slots: List[Tuple[MindMapNode, int, float]] = []
    leaf_count = 0
    max_depth = 0

    def visit(node: MindMapNode, depth: int) -> float:
        nonlocal leaf_count, max_depth
        max_depth = max(max_depth, depth)
        position = len(slots)
        slots.append((node, depth, 0.0))
        if not node.children:
            slot = float(leaf_count)
            leaf_count += 1
        else:
            child_slots = [visit(child, depth + 1) for child in node.children]
            slot = (child_slots[0] + child_slots[-1]) / 2
        slots[position] = (node, depth, slot)
        return slot

    visit(root, 0)

    kx = inner_height / leaf_count
    ky = inner_width / (max_depth or 1)

    positioned: List[PositionedNode] = []
    by_id = {}
    for node, depth, slot in slots:
        p = PositionedNode(
            node=node,
            depth=depth,
            x=margin.left + depth * ky,
            y=margin.top + (slot + 0.5) * kx,
        )
        positioned.append(p)
        by_id[id(node)] = p

    links = []
    for p in positioned:
        for child in p.node.children:
            links.append(Link(source=p, target=by_id[id(child)]))

    return TreeLayout(nodes=positioned, links=links, width=width, height=height)


def layout_suite(suite: Optional[TestSuite], width: float, height: float) -> TreeLayout:
    return layout_tree(build_mind_map(suite), width, height)


class Viewport:
    """
    Pan/zoom state as an affine transform applied to the whole node-link group.

    Screen = world * scale + translate. Scale is clamped to [0.5, 2.0];
    translation is unbounded.
    """

    def __init__(self, width: float, height: float, scale: float = 1.0, tx: float = 0.0, ty: float = 0.0):
        self.width = width
        self.height = height
        self.scale = self._clamp(scale)
        self.tx = tx
        self.ty = ty

    @staticmethod
    def _clamp(scale: float) -> float:
        return min(MAX_SCALE, max(MIN_SCALE, scale))

    def apply(self, point: Point) -> Point:
        x, y = point
        return x * self.scale + self.tx, y * self.scale + self.ty

    def invert(self, point: Point) -> Point:
        x, y = point
        return (x - self.tx) / self.scale, (y - self.ty) / self.scale

    def zoom_to(self, scale: float, anchor: Optional[Point] = None) -> None:
        """Set the scale, keeping the world point under ``anchor`` fixed on screen."""
        if anchor is None:
            anchor = (self.width / 2, self.height / 2)
        world = self.invert(anchor)
        self.scale = self._clamp(scale)
        self.tx = anchor[0] - world[0] * self.scale
        self.ty = anchor[1] - world[1] * self.scale

    def zoom_by(self, factor: float, anchor: Optional[Point] = None) -> None:
        self.zoom_to(self.scale * factor, anchor)

    def pan_by(self, dx: float, dy: float) -> None:
        self.tx += dx
        self.ty += dy

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    def reset(self) -> None:
        self.scale = 1.0
        self.tx = 0.0
        self.ty = 0.0

    @property
    def revision(self) -> str:
        """Identity of the current transform; stays equal while nothing changes."""
        return f"{self.scale:g}:{self.tx:g}:{self.ty:g}"

    def visible_range(self) -> Tuple[Point, Point]:
        """World-space (x0, x1), (y0, y1) currently on screen."""
        x0, y0 = self.invert((0, 0))
        x1, y1 = self.invert((self.width, self.height))
        return (x0, x1), (y0, y1)


class SelectionState:
    """At most one selected scenario; a new selection replaces the old one."""

    def __init__(self):
        self.index: Optional[int] = None
        self.scenario: Optional[TestCaseScenario] = None

    @property
    def current(self) -> Optional[TestCaseScenario]:
        return self.scenario

    def select(self, index: int, scenario: TestCaseScenario) -> None:
        self.index = index
        self.scenario = scenario

    def select_in(self, suite: TestSuite, index: int) -> bool:
        """Select by scenario position; out-of-range indexes (the root) are ignored."""
        if 0 <= index < len(suite.scenarios):
            self.select(index, suite.scenarios[index])
            return True
        return False

    def apply_pick(self, suite: TestSuite, picked: Optional[int], last_pick: Optional[int]) -> Optional[int]:
        """
        Reconcile the chart's current pick with the selection.

        Only a change of pick acts: a new scenario replaces the selection and
        an empty pick (click on blank canvas or the root) dismisses it.
        Returns the pick to remember for the next pass.
        """
        if picked == last_pick:
            return last_pick
        if picked is None or not self.select_in(suite, picked):
            self.clear()
        return picked

    def clear(self) -> None:
        self.index = None
        self.scenario = None

    def is_selected(self, index: int) -> bool:
        return self.index is not None and self.index == index
