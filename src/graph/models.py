from dataclasses import dataclass, field
from typing import List, Optional, Tuple, Set

BRANCH = "branch"
REMOTE = "remote"
TAG = "tag"
REF_KINDS = (BRANCH, REMOTE, TAG)

TOP_BOTTOM = "TB"
LEFT_RIGHT = "LR"

LAYERED = "layered"
FALLBACK = "fallback"

# Branch names treated as the main line
MAINLINE_NAMES = ("main", "master")

@dataclass(frozen=True)
class Author:
    name: str
    email: str

@dataclass(frozen=True)
class Ref:
    name: str
    kind: str = BRANCH
    is_head: bool = False

    @property
    def is_branch_like(self) -> bool:
        return self.kind in (BRANCH, REMOTE)

@dataclass(frozen=True)
class CommitRecord:
    hash: str
    parents: Tuple[str, ...] = ()
    refs: Tuple[Ref, ...] = ()
    author: Author = Author(name="", email="")
    timestamp: int = 0
    message: str = ""

    def __post_init__(self):
        # Accept lists from callers but keep the record hashable and immutable
        object.__setattr__(self, "parents", tuple(self.parents))
        object.__setattr__(self, "refs", tuple(self.refs))

    @property
    def primary_parent(self) -> Optional[str]:
        return self.parents[0] if self.parents else None

    @property
    def is_merge(self) -> bool:
        return len(self.parents) > 1

def parse_decorations(text: str, remote_prefixes: Tuple[str, ...] = ("origin/",)) -> List[Ref]:
    """Parses a `git log --format=%D` decoration string into refs."""
    refs: List[Ref] = []
    if not text or not text.strip():
        return refs

    for part in (p.strip() for p in text.split(",")):
        if not part or part == "HEAD":
            continue
        if part.startswith("HEAD -> "):
            refs.append(Ref(name=part[len("HEAD -> "):], kind=BRANCH, is_head=True))
        elif part.startswith("tag: "):
            refs.append(Ref(name=part[len("tag: "):], kind=TAG))
        elif part.startswith(remote_prefixes):
            refs.append(Ref(name=part, kind=REMOTE))
        else:
            refs.append(Ref(name=part, kind=BRANCH))
    return refs

@dataclass
class GraphSettings:
    direction: str = TOP_BOTTOM
    compact_mode: bool = False
    color_by_author: bool = False
    hide_merge_commits: bool = False
    search_query: str = ""

@dataclass
class LayoutOptions:
    node_spacing: float = 40.0
    rank_spacing: float = 80.0
    margin: float = 50.0

@dataclass
class GraphNode:
    id: str
    record: CommitRecord
    color: str
    position: Tuple[float, float]
    width: float
    height: float
    compact: bool = False
    highlighted: bool = False
    selected: bool = False

    @property
    def x(self) -> float:
        return self.position[0]

    @property
    def y(self) -> float:
        return self.position[1]

    @property
    def center(self) -> Tuple[float, float]:
        return (self.position[0] + self.width / 2, self.position[1] + self.height / 2)

@dataclass
class GraphEdge:
    source: str
    target: str
    color: str
    is_merge: bool = False
    kind: str = "smoothstep"
    points: List[Tuple[float, float]] = field(default_factory=list)

    @property
    def id(self) -> str:
        return f"{self.source}-{self.target}"

@dataclass
class LayoutResult:
    nodes: List[GraphNode] = field(default_factory=list)
    edges: List[GraphEdge] = field(default_factory=list)
    algorithm: str = LAYERED

    def node_ids(self) -> Set[str]:
        return {node.id for node in self.nodes}

    def bounds(self) -> Optional[Tuple[float, float, float, float]]:
        """(min_x, min_y, max_x, max_y) of all node boxes, or None when empty."""
        if not self.nodes:
            return None
        return (
            min(n.position[0] for n in self.nodes),
            min(n.position[1] for n in self.nodes),
            max(n.position[0] + n.width for n in self.nodes),
            max(n.position[1] + n.height for n in self.nodes),
        )

@dataclass(frozen=True)
class Viewport:
    pan_x: float
    pan_y: float
    zoom: float
    screen_width: float
    screen_height: float
