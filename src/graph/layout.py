"""Commit graph layout.

Two paths share the same edge construction:

  * layered: Sugiyama-style pipeline on a networkx DiGraph
      1. rank assignment (longest path from the tips, then tightened)
      2. virtual nodes on edges spanning several ranks
      3. crossing reduction (weighted barycenter sweeps)
      4. lane assignment: each first-parent chain keeps one lane, the main
         line in lane 0
  * fallback: one column in input order, O(n), used for large or cyclic input
"""

import bisect
import logging
from typing import Dict, List, Optional, Sequence, Set, Tuple

import networkx as nx

from src.graph.builder import CycleError, GraphModel, topological_order
from src.graph.colors import ColorAssignment, assign_colors
from src.graph.cycles import LAYERED_MAX_COMMITS, should_use_fallback
from src.graph.models import (
    BRANCH,
    FALLBACK,
    LAYERED,
    LEFT_RIGHT,
    MAINLINE_NAMES,
    CommitRecord,
    GraphEdge,
    GraphNode,
    GraphSettings,
    LayoutOptions,
    LayoutResult,
)

logger = logging.getLogger(__name__)

# Node dimensions for the two size classes
NODE_WIDTH_NORMAL = 280.0
NODE_HEIGHT_NORMAL = 100.0
NODE_WIDTH_COMPACT = 200.0
NODE_HEIGHT_COMPACT = 60.0

COMPACT_SPACING_SCALE = 0.6

FALLBACK_X = 50.0
FALLBACK_SPACING_NORMAL = 40.0
FALLBACK_SPACING_COMPACT = 20.0

VIRTUAL_PREFIX = "__virtual__"

CROSSING_SWEEPS = 4

# Primary-parent edges pull harder when ordering ranks
PRIMARY_EDGE_WEIGHT = 2.0
MERGE_EDGE_WEIGHT = 1.0

def node_size(compact: bool) -> Tuple[float, float]:
    if compact:
        return NODE_WIDTH_COMPACT, NODE_HEIGHT_COMPACT
    return NODE_WIDTH_NORMAL, NODE_HEIGHT_NORMAL

def build_edges(model: GraphModel, colors: ColorAssignment) -> List[GraphEdge]:
    """One edge per distinct loaded (child, parent) pair, colored by the child."""
    return [
        GraphEdge(
            source=child,
            target=parent,
            color=colors.color_of(child),
            is_merge=index > 0,
        )
        for child, parent, index in model.edges()
    ]

def simple_layout(
    commits: Sequence[CommitRecord],
    colors: ColorAssignment,
    settings: Optional[GraphSettings] = None,
) -> LayoutResult:
    """Stacks commits in a single column in input order."""
    settings = settings or GraphSettings()
    model = GraphModel.from_commits(commits)
    width, height = node_size(settings.compact_mode)
    spacing = FALLBACK_SPACING_COMPACT if settings.compact_mode else FALLBACK_SPACING_NORMAL

    nodes = [
        GraphNode(
            id=commit.hash,
            record=commit,
            color=colors.color_of(commit.hash),
            position=(FALLBACK_X, index * (height + spacing)),
            width=width,
            height=height,
            compact=settings.compact_mode,
        )
        for index, commit in enumerate(model.commits)
    ]
    return LayoutResult(nodes=nodes, edges=build_edges(model, colors), algorithm=FALLBACK)

def assign_ranks(model: GraphModel) -> Dict[str, int]:
    """Ranks commits so every child sits on a lower rank than its parents."""
    order = topological_order(model)
    ranks: Dict[str, int] = {c.hash: 0 for c in order}

    # Longest path from the tips
    for commit in order:
        for parent, _ in model.parents_of(commit):
            ranks[parent] = max(ranks[parent], ranks[commit.hash] + 1)

    # Pull every commit down to just above its nearest parent, so stale
    # branches sit next to their fork point instead of at the top.
    for commit in reversed(order):
        parent_ranks = [ranks[p] for p, _ in model.parents_of(commit)]
        if parent_ranks:
            ranks[commit.hash] = min(parent_ranks) - 1

    return ranks

def _virtual_id(source: str, target: str, step: int) -> str:
    return f"{VIRTUAL_PREFIX}{source}:{target}:{step}"

def build_layered_graph(
    model: GraphModel, ranks: Dict[str, int]
) -> Tuple[nx.DiGraph, Dict[str, int], Dict[Tuple[str, str], List[str]]]:
    """Splits edges spanning several ranks into chains through virtual nodes.

    Returns the augmented graph, the ranks extended with virtual nodes, and
    the virtual chain for each split (child, parent) edge.
    """
    graph = nx.DiGraph()
    layer_of = dict(ranks)
    chains: Dict[Tuple[str, str], List[str]] = {}

    for commit in model.commits:
        graph.add_node(commit.hash, virtual=False)

    for child, parent, index in model.edges():
        weight = PRIMARY_EDGE_WEIGHT if index == 0 else MERGE_EDGE_WEIGHT
        span = layer_of[parent] - layer_of[child]
        if span <= 1:
            graph.add_edge(child, parent, weight=weight)
            continue

        chain = []
        previous = child
        for step in range(1, span):
            vid = _virtual_id(child, parent, step)
            graph.add_node(vid, virtual=True)
            layer_of[vid] = layer_of[child] + step
            graph.add_edge(previous, vid, weight=weight)
            chain.append(vid)
            previous = vid
        graph.add_edge(previous, parent, weight=weight)
        chains[(child, parent)] = chain

    return graph, layer_of, chains

def _edge_weight(graph: nx.DiGraph, a: str, b: str) -> float:
    if graph.has_edge(a, b):
        return graph.edges[a, b]["weight"]
    return graph.edges[b, a]["weight"]

def _barycenter(graph: nx.DiGraph, node: str, neighbors, positions: Dict[str, int]) -> Optional[float]:
    total = 0.0
    weights = 0.0
    for neighbor in neighbors(node):
        if neighbor in positions:
            weight = _edge_weight(graph, node, neighbor)
            total += positions[neighbor] * weight
            weights += weight
    if not weights:
        return None
    return total / weights

def order_layers(graph: nx.DiGraph, layer_of: Dict[str, int]) -> List[List[str]]:
    """Orders nodes inside each rank to reduce edge crossings.

    Barycenter heuristic: alternate downward sweeps (using children in the
    rank above) and upward sweeps (using parents in the rank below). Ties and
    nodes without neighbors keep their previous position, so an unchanged
    input always produces the same ordering.
    """
    layer_count = max(layer_of.values()) + 1 if layer_of else 0
    layers: List[List[str]] = [[] for _ in range(layer_count)]
    # graph node order is input order followed by virtual nodes
    for node in graph.nodes:
        layers[layer_of[node]].append(node)

    def sweep(layer_indices, reference_offset, neighbors) -> bool:
        changed = False
        for idx in layer_indices:
            reference = {n: i for i, n in enumerate(layers[idx + reference_offset])}
            current = layers[idx]
            keys = {}
            for i, node in enumerate(current):
                bary = _barycenter(graph, node, neighbors, reference)
                keys[node] = (i if bary is None else bary, i)
            reordered = sorted(current, key=keys.__getitem__)
            if reordered != current:
                layers[idx] = reordered
                changed = True
        return changed

    for _ in range(CROSSING_SWEEPS):
        down = sweep(range(1, layer_count), -1, graph.predecessors)
        up = sweep(range(layer_count - 2, -1, -1), 1, graph.successors)
        if not down and not up:
            break

    return layers

def _primary_parent(model: GraphModel, commit: CommitRecord) -> Optional[str]:
    # parents_of yields in index order, so only the first entry can be index 0
    for parent, index in model.parents_of(commit):
        return parent if index == 0 else None
    return None

def find_mainline_tip(model: GraphModel) -> Optional[str]:
    """Commit the main lane starts from.

    HEAD on main/master wins, then any main/master branch, then HEAD, then
    the first commit of the input.
    """
    named = None
    head = None
    for commit in model.commits:
        for ref in commit.refs:
            mainline = ref.kind == BRANCH and ref.name in MAINLINE_NAMES
            if mainline and ref.is_head:
                return commit.hash
            if mainline and named is None:
                named = commit.hash
            if ref.is_head and head is None:
                head = commit.hash
    if named or head:
        return named or head
    return model.commits[0].hash if model.commits else None

def build_tracks(
    model: GraphModel,
    layer_of: Dict[str, int],
    chains: Dict[Tuple[str, str], List[str]],
) -> List[List[str]]:
    """Splits the layered graph into tracks that each keep a single lane.

    A commit track follows primary parents, with the virtual nodes between
    them, until it reaches a parent another track already holds. The main
    line is always the first track. Virtual nodes of every other long edge
    form a track of their own.
    """
    on_track: Set[str] = set()
    tracks: List[List[str]] = []

    def follow(start: str) -> List[str]:
        track = [start]
        on_track.add(start)
        current = start
        while True:
            parent = _primary_parent(model, model.by_hash[current])
            if parent is None or parent in on_track:
                return track
            chain = chains.get((current, parent), [])
            on_track.update(chain)
            track.extend(chain)
            track.append(parent)
            on_track.add(parent)
            current = parent

    tip = find_mainline_tip(model)
    if tip is not None:
        tracks.append(follow(tip))
    # stable sort: children first, input order within a rank
    for commit in sorted(model.commits, key=lambda c: layer_of[c.hash]):
        if commit.hash not in on_track:
            tracks.append(follow(commit.hash))
    for chain in chains.values():
        if chain[0] not in on_track:
            on_track.update(chain)
            tracks.append(chain)
    return tracks

def _lane_is_free(spans: List[Tuple[int, int]], top: int, bottom: int) -> bool:
    i = bisect.bisect_left(spans, (top, top))
    if i > 0 and spans[i - 1][1] >= top:
        return False
    return not (i < len(spans) and spans[i][0] <= bottom)

def assign_lanes(
    tracks: List[List[str]],
    layer_of: Dict[str, int],
    layers: List[List[str]],
) -> Dict[str, int]:
    """Gives every track the lowest lane that is free over its rank span.

    The main line takes lane 0. Other tracks are placed by their first rank,
    then by where the barycenter ordering put their first node.
    """
    index_in_layer = {node: i for layer in layers for i, node in enumerate(layer)}

    def key(track):
        return layer_of[track[0]], index_in_layer[track[0]]

    occupied: List[List[Tuple[int, int]]] = []
    lanes: Dict[str, int] = {}
    for track in tracks[:1] + sorted(tracks[1:], key=key):
        top, bottom = layer_of[track[0]], layer_of[track[-1]]
        lane = 0
        while lane < len(occupied) and not _lane_is_free(occupied[lane], top, bottom):
            lane += 1
        if lane == len(occupied):
            occupied.append([])
        bisect.insort(occupied[lane], (top, bottom))
        for node in track:
            lanes[node] = lane
    return lanes

def assign_cross_coordinates(
    lanes: Dict[str, int],
    lane_extent: float,
    node_spacing: float,
    margin: float,
) -> Dict[str, float]:
    """Lane centers along the cross axis; lane 0 sits against the margin."""
    pitch = lane_extent + node_spacing
    return {node: margin + lane_extent / 2 + lane * pitch for node, lane in lanes.items()}

def layered_layout(
    model: GraphModel,
    colors: ColorAssignment,
    settings: Optional[GraphSettings] = None,
    options: Optional[LayoutOptions] = None,
) -> LayoutResult:
    """Runs the layered pipeline. Raises CycleError on a cyclic graph."""
    settings = settings or GraphSettings()
    options = options or LayoutOptions()
    compact = settings.compact_mode
    horizontal = settings.direction == LEFT_RIGHT

    width, height = node_size(compact)
    scale = COMPACT_SPACING_SCALE if compact else 1.0
    node_spacing = options.node_spacing * scale
    rank_spacing = options.rank_spacing * scale

    # Extent of a node along the rank axis and along the cross axis
    rank_extent, cross_extent = (width, height) if horizontal else (height, width)

    ranks = assign_ranks(model)
    graph, layer_of, chains = build_layered_graph(model, ranks)
    layers = order_layers(graph, layer_of)

    lanes = assign_lanes(build_tracks(model, layer_of, chains), layer_of, layers)
    cross = assign_cross_coordinates(lanes, cross_extent, node_spacing, options.margin)

    def center(node: str) -> Tuple[float, float]:
        along = options.margin + rank_extent / 2 + layer_of[node] * (rank_extent + rank_spacing)
        return (along, cross[node]) if horizontal else (cross[node], along)

    nodes = []
    for commit in model.commits:
        cx, cy = center(commit.hash)
        nodes.append(GraphNode(
            id=commit.hash,
            record=commit,
            color=colors.color_of(commit.hash),
            position=(cx - width / 2, cy - height / 2),
            width=width,
            height=height,
            compact=compact,
        ))

    edges = build_edges(model, colors)
    for edge in edges:
        route = [edge.source] + chains.get((edge.source, edge.target), []) + [edge.target]
        edge.points = [center(node) for node in route]

    logger.debug(
        f"Layered layout: {len(nodes)} commits, {len(graph) - len(nodes)} virtual nodes, "
        f"{len(layers)} ranks, {max(lanes.values()) + 1} lanes"
    )
    return LayoutResult(nodes=nodes, edges=edges, algorithm=LAYERED)

def layout_commit_graph(
    commits: Sequence[CommitRecord],
    colors: Optional[ColorAssignment] = None,
    settings: Optional[GraphSettings] = None,
    options: Optional[LayoutOptions] = None,
    max_commits: int = LAYERED_MAX_COMMITS,
) -> LayoutResult:
    """Lays out the commit graph; never raises on malformed history."""
    if not commits:
        return LayoutResult()

    settings = settings or GraphSettings()
    if colors is None:
        colors = assign_colors(commits, by_author=settings.color_by_author)

    if should_use_fallback(commits, max_commits):
        return simple_layout(commits, colors, settings)

    try:
        return layered_layout(GraphModel.from_commits(commits), colors, settings, options)
    except (CycleError, nx.NetworkXUnfeasible) as e:
        logger.error(f"Layered layout failed ({e}), using simple layout")
        return simple_layout(commits, colors, settings)
