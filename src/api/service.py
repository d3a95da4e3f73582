import logging
from typing import List, Optional

from src.graph.culling import cull_layout, focus_viewport
from src.graph.cycles import LAYERED_MAX_COMMITS
from src.graph.models import Author, CommitRecord, GraphEdge as EngineEdge, GraphNode as EngineNode
from src.graph.models import MAINLINE_NAMES, GraphSettings, Ref, Viewport
from src.graph.stream import STREAM_MIN_COMMITS, STREAM_MIN_INTERVAL, StreamMerger
from src.api.schemas import (
    BoundsSchema,
    CommitBatch,
    CommitChunk,
    CommitIn,
    FocusRequest,
    GraphEdge,
    GraphNode,
    GraphResponse,
    HighlightResponse,
    LegendEntry,
    LoadResponse,
    RefSchema,
    SettingsSchema,
    ViewportRequest,
    ViewportSchema,
    VisibleGraphResponse,
)

logger = logging.getLogger(__name__)

class GraphService:
    """Caller-side state for the graph engine: commit list, settings, snapshot."""

    def __init__(
        self,
        max_commits: int = LAYERED_MAX_COMMITS,
        min_interval: float = STREAM_MIN_INTERVAL,
        min_commits: int = STREAM_MIN_COMMITS,
    ):
        self.merger = StreamMerger(
            max_commits=max_commits,
            min_interval=min_interval,
            min_commits=min_commits,
        )

    @property
    def snapshot(self):
        return self.merger.snapshot

    @property
    def loaded(self) -> int:
        return self.merger.loaded

    def reset(self) -> LoadResponse:
        self.merger.reset()
        return self._load_response(recomputed=False)

    def load_commits(self, batch: CommitBatch) -> LoadResponse:
        self.merger.replace([self._to_record(c) for c in batch.commits])
        return self._load_response(recomputed=True)

    def append_chunk(self, chunk: CommitChunk) -> LoadResponse:
        recomputed = self.merger.append(
            [self._to_record(c) for c in chunk.commits],
            total=chunk.total,
            done=chunk.done,
        )
        return self._load_response(recomputed=recomputed)

    def get_settings(self) -> SettingsSchema:
        s = self.merger.settings
        return SettingsSchema(
            direction=s.direction,
            compact_mode=s.compact_mode,
            color_by_author=s.color_by_author,
            hide_merge_commits=s.hide_merge_commits,
            search_query=s.search_query,
        )

    def update_settings(self, req: SettingsSchema) -> SettingsSchema:
        logger.info(f"Graph settings changed: {req.model_dump()}")
        self.merger.update_settings(GraphSettings(
            direction=req.direction,
            compact_mode=req.compact_mode,
            color_by_author=req.color_by_author,
            hide_merge_commits=req.hide_merge_commits,
            search_query=req.search_query,
        ))
        return self.get_settings()

    def get_graph_data(self) -> GraphResponse:
        layout = self.snapshot.layout
        return GraphResponse(
            algorithm=layout.algorithm if layout.nodes else None,
            nodes=[self._node_response(n) for n in layout.nodes],
            edges=[self._edge_response(e) for e in layout.edges],
        )

    def get_visible(self, req: ViewportRequest) -> VisibleGraphResponse:
        snapshot = self.snapshot
        highlight = snapshot.highlight(req.selected)
        visible = cull_layout(snapshot.layout, self._viewport(req), highlight, req.selected, req.buffer_factor)

        b = visible.bounds
        return VisibleGraphResponse(
            nodes=[self._node_response(n) for n in visible.nodes],
            edges=[self._edge_response(e) for e in visible.edges],
            highlight=sorted(visible.highlight),
            bounds=BoundsSchema(min_x=b.min_x, min_y=b.min_y, max_x=b.max_x, max_y=b.max_y),
            total_nodes=len(snapshot.layout.nodes),
        )

    def get_focus(self, req: FocusRequest) -> Optional[ViewportSchema]:
        node = next((n for n in self.snapshot.layout.nodes if n.id == req.oid), None)
        if node is None:
            return None
        focused = focus_viewport(node, self._viewport(req))
        return ViewportSchema(
            pan_x=focused.pan_x,
            pan_y=focused.pan_y,
            zoom=focused.zoom,
            screen_width=focused.screen_width,
            screen_height=focused.screen_height,
        )

    def get_highlight(self, oid: str) -> Optional[HighlightResponse]:
        adjacency = self.snapshot.adjacency
        if oid not in adjacency:
            return None
        return HighlightResponse(
            oid=oid,
            parents=adjacency.parents_of(oid),
            children=sorted(adjacency.children_of(oid)),
            highlight=sorted(adjacency.highlight(oid)),
        )

    def get_legend(self) -> List[LegendEntry]:
        # main/master first, then by name
        def key(item):
            name = item[0]
            return (name not in MAINLINE_NAMES, name)

        return [
            LegendEntry(name=name, color=color)
            for name, color in sorted(self.snapshot.colors.ref_colors.items(), key=key)
        ]

    def _load_response(self, recomputed: bool) -> LoadResponse:
        layout = self.snapshot.layout
        return LoadResponse(
            loaded=self.merger.loaded,
            total=self.merger.total,
            progress=self.merger.progress,
            complete=self.merger.complete,
            recomputed=recomputed,
            algorithm=layout.algorithm if layout.nodes else None,
        )

    def _viewport(self, req: ViewportSchema) -> Viewport:
        return Viewport(
            pan_x=req.pan_x,
            pan_y=req.pan_y,
            zoom=req.zoom,
            screen_width=req.screen_width,
            screen_height=req.screen_height,
        )

    def _to_record(self, commit: CommitIn) -> CommitRecord:
        return CommitRecord(
            hash=commit.hash,
            parents=tuple(commit.parents),
            refs=tuple(Ref(name=r.name, kind=r.type, is_head=r.is_head) for r in commit.refs),
            author=Author(name=commit.author.name, email=commit.author.email),
            timestamp=commit.timestamp,
            message=commit.message,
        )

    def _node_response(self, node: EngineNode) -> GraphNode:
        record = node.record
        # Use first line of message as label, truncated
        short_msg = record.message.splitlines()[0][:30] if record.message else ""
        return GraphNode(
            id=node.id,
            label=f"{node.id[:7]} - {short_msg}",
            color=node.color,
            x=node.position[0],
            y=node.position[1],
            width=node.width,
            height=node.height,
            compact=node.compact,
            highlighted=node.highlighted,
            selected=node.selected,
            message=record.message,
            author=record.author.name,
            parent_oids=list(record.parents),
            refs=[RefSchema(name=r.name, type=r.kind, is_head=r.is_head) for r in record.refs],
        )

    def _edge_response(self, edge: EngineEdge) -> GraphEdge:
        return GraphEdge(
            id=edge.id,
            source=edge.source,
            target=edge.target,
            color=edge.color,
            is_merge=edge.is_merge,
            type=edge.kind,
            points=list(edge.points),
        )
