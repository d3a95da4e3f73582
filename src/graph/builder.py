import logging
from collections import deque
from typing import Deque, Dict, Iterator, List, Optional, Sequence, Set, Tuple

from src.graph.models import CommitRecord

logger = logging.getLogger(__name__)

class CycleError(ValueError):
    pass

class GraphModel:
    """Lookup view over a loaded commit list.

    Parents that are not in the loaded set are routine under pagination
    (the ancestor simply has not been fetched yet) and are ignored here.
    """

    def __init__(self, commits: List[CommitRecord], by_hash: Dict[str, CommitRecord]):
        self.commits = commits
        self.by_hash = by_hash

    @classmethod
    def from_commits(cls, commits: Sequence[CommitRecord]) -> "GraphModel":
        ordered: List[CommitRecord] = []
        by_hash: Dict[str, CommitRecord] = {}
        for commit in commits:
            if commit.hash in by_hash:
                logger.warning(f"Duplicate commit {commit.hash} in input, keeping first occurrence")
                continue
            by_hash[commit.hash] = commit
            ordered.append(commit)
        return cls(ordered, by_hash)

    def __len__(self) -> int:
        return len(self.commits)

    def __contains__(self, oid: str) -> bool:
        return oid in self.by_hash

    def contains(self, oid: str) -> bool:
        return oid in self.by_hash

    def get(self, oid: str) -> Optional[CommitRecord]:
        return self.by_hash.get(oid)

    @property
    def ids(self) -> Set[str]:
        return set(self.by_hash)

    def parents_of(self, commit: CommitRecord) -> Iterator[Tuple[str, int]]:
        """Loaded, non-self, distinct parents of a commit with their index."""
        seen: Set[str] = set()
        for index, parent in enumerate(commit.parents):
            if parent == commit.hash or parent in seen:
                continue
            if parent not in self.by_hash:
                continue
            seen.add(parent)
            yield parent, index

    def edges(self) -> Iterator[Tuple[str, str, int]]:
        """Yields (child, parent, parent_index) for every drawable edge."""
        for commit in self.commits:
            for parent, index in self.parents_of(commit):
                yield commit.hash, parent, index

def topological_order(model: GraphModel) -> List[CommitRecord]:
    """Sorts commits children before parents (newest first).

    Kahn's algorithm over child -> parent edges; ties are broken by input
    order so the result only depends on the caller's list.
    """
    position = {c.hash: i for i, c in enumerate(model.commits)}
    # in_degree here is "number of loaded children not yet emitted"
    in_degree: Dict[str, int] = {c.hash: 0 for c in model.commits}
    for _, parent, _ in model.edges():
        in_degree[parent] += 1

    ready: Deque[str] = deque(c.hash for c in model.commits if in_degree[c.hash] == 0)
    result: List[CommitRecord] = []

    while ready:
        oid = ready.popleft()
        commit = model.by_hash[oid]
        result.append(commit)
        released = []
        for parent, _ in model.parents_of(commit):
            in_degree[parent] -= 1
            if in_degree[parent] == 0:
                released.append(parent)
        for parent in sorted(released, key=position.__getitem__):
            ready.append(parent)

    if len(result) != len(model.commits):
        raise CycleError("Cycle detected in commit graph")
    return result
