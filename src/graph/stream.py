import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, List, Optional, Sequence, Tuple

from src.graph.adjacency import AdjacencyIndex
from src.graph.builder import GraphModel
from src.graph.colors import ColorAssignment, assign_colors
from src.graph.cycles import LAYERED_MAX_COMMITS
from src.graph.layout import layout_commit_graph
from src.graph.models import CommitRecord, GraphSettings, LayoutOptions, LayoutResult

logger = logging.getLogger(__name__)

STREAM_MIN_INTERVAL = 1.0
STREAM_MIN_COMMITS = 2000

@dataclass(frozen=True)
class GraphSnapshot:
    """Everything derived from one commit list. Replaced as a whole, never patched."""
    commits: Tuple[CommitRecord, ...] = ()
    model: GraphModel = field(default_factory=lambda: GraphModel.from_commits([]))
    colors: ColorAssignment = field(default_factory=ColorAssignment)
    layout: LayoutResult = field(default_factory=LayoutResult)
    adjacency: AdjacencyIndex = field(default_factory=AdjacencyIndex)
    settings: GraphSettings = field(default_factory=GraphSettings)

    def highlight(self, selected: Optional[str]):
        return self.adjacency.highlight(selected)

def filter_merge_commits(commits: Sequence[CommitRecord]) -> List[CommitRecord]:
    return [c for c in commits if len(c.parents) <= 1]

def _matches_search(commit: CommitRecord, query: str) -> bool:
    # query is already lower-cased; short hashes are prefixes of the full hash
    return (
        query in commit.message.lower()
        or query in commit.hash.lower()
        or query in commit.author.name.lower()
        or any(query in ref.name.lower() for ref in commit.refs)
    )

def filter_by_search(commits: Sequence[CommitRecord], query: str) -> List[CommitRecord]:
    """Keeps commits whose message, hash, author name or ref names contain the query, ignoring case."""
    if not query.strip():
        return list(commits)
    query = query.lower()
    return [c for c in commits if _matches_search(c, query)]

def compute_snapshot(
    commits: Sequence[CommitRecord],
    settings: Optional[GraphSettings] = None,
    options: Optional[LayoutOptions] = None,
    max_commits: int = LAYERED_MAX_COMMITS,
) -> GraphSnapshot:
    settings = settings or GraphSettings()
    if settings.hide_merge_commits:
        commits = filter_merge_commits(commits)
    if settings.search_query.strip():
        commits = filter_by_search(commits, settings.search_query)

    model = GraphModel.from_commits(commits)
    colors = assign_colors(model.commits, by_author=settings.color_by_author)
    layout = layout_commit_graph(model.commits, colors, settings, options, max_commits)
    adjacency = AdjacencyIndex.build(model.commits)

    return GraphSnapshot(
        commits=tuple(model.commits),
        model=model,
        colors=colors,
        layout=layout,
        adjacency=adjacency,
        settings=settings,
    )

class StreamMerger:
    """Owns the growing commit list and throttles recomputation.

    Chunks are appended as they arrive; the derived snapshot is rebuilt on
    the first chunk, then only once enough time or enough commits have
    accumulated, and always when the stream completes.

    Calls may come from several threads. Mutations take a lock, but layout
    runs outside it; a recompute that finishes after a newer recompute
    started, or after a reset, is discarded.
    """

    def __init__(
        self,
        settings: Optional[GraphSettings] = None,
        options: Optional[LayoutOptions] = None,
        max_commits: int = LAYERED_MAX_COMMITS,
        min_interval: float = STREAM_MIN_INTERVAL,
        min_commits: int = STREAM_MIN_COMMITS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings or GraphSettings()
        self.options = options or LayoutOptions()
        self.max_commits = max_commits
        self.min_interval = min_interval
        self.min_commits = min_commits
        self.clock = clock
        self._lock = threading.Lock()
        self._generation = 0
        self.reset()

    def reset(self):
        with self._lock:
            self._generation += 1
            self.commits: List[CommitRecord] = []
            self.total = 0
            self.complete = False
            self.snapshot = GraphSnapshot(settings=self.settings)
            self._last_recompute: Optional[float] = None
            self._last_count = 0

    @property
    def loaded(self) -> int:
        return len(self.commits)

    @property
    def progress(self) -> int:
        if self.total <= 0:
            return 100 if self.complete else 0
        return min(100, round(self.loaded * 100 / self.total))

    def replace(self, commits: Sequence[CommitRecord]) -> GraphSnapshot:
        """Single-batch path: the whole history arrives at once."""
        with self._lock:
            self.commits = list(commits)
            self.total = len(self.commits)
            self.complete = True
        return self.recompute()

    def append(self, chunk: Sequence[CommitRecord], total: Optional[int] = None, done: bool = False) -> bool:
        """Appends a streamed chunk. Returns True when the snapshot was rebuilt."""
        with self._lock:
            self.commits.extend(chunk)
            if total is not None:
                self.total = total
            self.total = max(self.total, len(self.commits))
            if done:
                self.complete = True
            due = self._should_recompute(done)

        if due:
            self.recompute()
            return True

        logger.debug(f"Buffered chunk of {len(chunk)} commits ({self.loaded}/{self.total})")
        return False

    def _should_recompute(self, done: bool) -> bool:
        if done or self._last_recompute is None:
            return True
        elapsed = self.clock() - self._last_recompute
        grown = len(self.commits) - self._last_count
        return elapsed >= self.min_interval or grown > self.min_commits

    def update_settings(self, settings: GraphSettings) -> GraphSnapshot:
        with self._lock:
            self.settings = settings
        return self.recompute()

    def recompute(self) -> GraphSnapshot:
        with self._lock:
            self._generation += 1
            generation = self._generation
            commits = list(self.commits)
            settings = self.settings
            # the throttle window starts when a recompute starts
            self._last_recompute = self.clock()
            self._last_count = len(commits)

        started = self.clock()
        snapshot = compute_snapshot(commits, settings, self.options, self.max_commits)
        elapsed = self.clock() - started

        with self._lock:
            if generation != self._generation:
                logger.info(
                    f"Discarded stale graph for {len(snapshot.commits)} commits, "
                    f"state changed during layout"
                )
                return self.snapshot
            self.snapshot = snapshot

        logger.info(
            f"Recomputed graph for {len(snapshot.commits)} commits "
            f"({snapshot.layout.algorithm}) in {elapsed:.3f}s"
        )
        return snapshot
