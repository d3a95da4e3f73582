from typing import List, Literal, Optional, Tuple
from pydantic import BaseModel, Field

class AuthorSchema(BaseModel):
    name: str = ""
    email: str = ""

class RefSchema(BaseModel):
    name: str
    type: Literal["branch", "remote", "tag"] = "branch"
    is_head: bool = False

class CommitIn(BaseModel):
    hash: str
    parents: List[str] = []
    refs: List[RefSchema] = []
    author: AuthorSchema = AuthorSchema()
    timestamp: int = 0
    message: str = ""

class CommitBatch(BaseModel):
    commits: List[CommitIn]

class CommitChunk(BaseModel):
    commits: List[CommitIn]
    total: Optional[int] = Field(default=None, ge=0)
    done: bool = False

class LoadResponse(BaseModel):
    loaded: int
    total: int
    progress: int
    complete: bool
    recomputed: bool
    algorithm: Optional[str] = None

class SettingsSchema(BaseModel):
    direction: Literal["TB", "LR"] = "TB"
    compact_mode: bool = False
    color_by_author: bool = False
    hide_merge_commits: bool = False
    search_query: str = ""

class GraphNode(BaseModel):
    id: str
    label: str
    color: str
    x: float
    y: float
    width: float
    height: float
    compact: bool = False
    highlighted: bool = False
    selected: bool = False
    # Enriching graph for UI details
    message: str
    author: str
    parent_oids: List[str]
    refs: List[RefSchema] = []

class GraphEdge(BaseModel):
    id: str
    source: str
    target: str
    color: str
    is_merge: bool
    type: str = "smoothstep"
    points: List[Tuple[float, float]] = []

class GraphResponse(BaseModel):
    algorithm: Optional[str] = None
    nodes: List[GraphNode]
    edges: List[GraphEdge]

class ViewportSchema(BaseModel):
    pan_x: float = 0.0
    pan_y: float = 0.0
    zoom: float = Field(default=1.0, gt=0)
    screen_width: float = Field(gt=0)
    screen_height: float = Field(gt=0)

class ViewportRequest(ViewportSchema):
    selected: Optional[str] = None
    buffer_factor: float = Field(default=1.0, ge=1.0)

class FocusRequest(ViewportSchema):
    oid: str

class BoundsSchema(BaseModel):
    min_x: float
    min_y: float
    max_x: float
    max_y: float

class VisibleGraphResponse(BaseModel):
    nodes: List[GraphNode]
    edges: List[GraphEdge]
    highlight: List[str]
    bounds: BoundsSchema
    total_nodes: int

class HighlightResponse(BaseModel):
    oid: str
    parents: List[str]
    children: List[str]
    highlight: List[str]

class LegendEntry(BaseModel):
    name: str
    color: str
