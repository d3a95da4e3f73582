from fastapi import FastAPI, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from typing import List
import os

from src.api.service import GraphService
from src.api.schemas import (
    CommitBatch,
    CommitChunk,
    FocusRequest,
    GraphResponse,
    HighlightResponse,
    LegendEntry,
    LoadResponse,
    SettingsSchema,
    ViewportRequest,
    ViewportSchema,
    VisibleGraphResponse,
)

import logging

# Configure Logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title="Commit Graph Explorer API")

# Allow CORS
# In production, set ALLOWED_ORIGINS to a comma-separated list of domains
allowed_origins_env = os.getenv("ALLOWED_ORIGINS", "*")
allowed_origins = [origin.strip() for origin in allowed_origins_env.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Initialize Service
# Layout threshold and stream throttle can be tuned per deployment
service = GraphService(
    max_commits=int(os.getenv("GRAPH_LAYERED_MAX_COMMITS", "5000")),
    min_interval=float(os.getenv("GRAPH_STREAM_MIN_INTERVAL", "1.0")),
    min_commits=int(os.getenv("GRAPH_STREAM_MIN_COMMITS", "2000")),
)

@app.put("/api/commits", response_model=LoadResponse)
def load_commits(batch: CommitBatch):
    """Replace the commit list with a complete batch."""
    result = service.load_commits(batch)
    logger.info(f"Loaded {result.loaded} commits ({result.algorithm})")
    return result

@app.post("/api/commits/chunks", response_model=LoadResponse)
def append_chunk(chunk: CommitChunk):
    """Append a streamed chunk of commits."""
    return service.append_chunk(chunk)

@app.delete("/api/commits", response_model=LoadResponse)
def reset_commits():
    """Discard the commit list and everything derived from it."""
    return service.reset()

@app.get("/api/commits/{oid}/highlight", response_model=HighlightResponse)
def get_highlight(oid: str):
    """Get the parents and children adjacent to a commit."""
    highlight = service.get_highlight(oid)
    if not highlight:
        raise HTTPException(status_code=404, detail="Commit not found")
    return highlight

@app.get("/api/settings", response_model=SettingsSchema)
def get_settings():
    return service.get_settings()

@app.put("/api/settings", response_model=SettingsSchema)
def update_settings(req: SettingsSchema):
    """Change layout/color settings. Recomputes the graph."""
    return service.update_settings(req)

@app.get("/api/graph", response_model=GraphResponse)
def get_graph():
    """Get the full positioned graph (nodes and edges)."""
    return service.get_graph_data()

@app.post("/api/graph/visible", response_model=VisibleGraphResponse)
def get_visible(req: ViewportRequest):
    """Get the part of the graph inside a viewport, with selection highlight."""
    return service.get_visible(req)

@app.post("/api/graph/focus", response_model=ViewportSchema)
def focus_commit(req: FocusRequest):
    """Get a viewport centered on a commit, zoomed in to at least 1.2."""
    viewport = service.get_focus(req)
    if viewport is None:
        raise HTTPException(status_code=404, detail="Commit not in graph")
    return viewport

@app.get("/api/legend", response_model=List[LegendEntry])
def get_legend():
    return service.get_legend()

@app.get("/health")
def health_check():
    return {"status": "ok", "commits": service.loaded}
