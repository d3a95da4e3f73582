import logging
from dataclasses import dataclass, field
from typing import Dict, List, Sequence, Set

from src.graph.models import CommitRecord

logger = logging.getLogger(__name__)

# Above this many commits the layered layout is skipped entirely
LAYERED_MAX_COMMITS = 5000

@dataclass
class AnomalyReport:
    self_loops: List[str] = field(default_factory=list)
    dangling_parents: int = 0
    duplicate_parents: int = 0

    @property
    def clean(self) -> bool:
        return not self.self_loops and not self.dangling_parents and not self.duplicate_parents

def scan_anomalies(commits: Sequence[CommitRecord]) -> AnomalyReport:
    """Counts edges that edge construction will drop. None of these force the fallback."""
    known = {c.hash for c in commits}
    report = AnomalyReport()
    for commit in commits:
        seen: Set[str] = set()
        for parent in commit.parents:
            if parent in seen:
                report.duplicate_parents += 1
                continue
            seen.add(parent)
            if parent == commit.hash:
                report.self_loops.append(commit.hash)
            elif parent not in known:
                report.dangling_parents += 1
    return report

def has_cycle(commits: Sequence[CommitRecord]) -> bool:
    """Detects a cycle along parent links with an iterative DFS.

    Uses an explicit stack of (oid, next parent index) frames, so deep
    histories never touch the interpreter's recursion limit.
    """
    commit_map: Dict[str, CommitRecord] = {}
    for commit in commits:
        commit_map.setdefault(commit.hash, commit)

    finished: Set[str] = set()

    for start in commit_map:
        if start in finished:
            continue

        stack = [[start, 0]]
        path: Set[str] = {start}

        while stack:
            frame = stack[-1]
            oid, index = frame
            parents = commit_map[oid].parents

            descended = False
            while index < len(parents):
                parent = parents[index]
                index += 1

                if parent == oid:
                    logger.warning(f"Skipping self-loop: commit {oid} references itself as parent")
                    continue
                if parent not in commit_map or parent in finished:
                    continue
                if parent in path:
                    logger.error(f"Cycle detected in commit graph at {parent}")
                    return True

                frame[1] = index
                stack.append([parent, 0])
                path.add(parent)
                descended = True
                break

            if not descended:
                # All parents explored
                stack.pop()
                path.discard(oid)
                finished.add(oid)

    return False

def should_use_fallback(commits: Sequence[CommitRecord], max_commits: int = LAYERED_MAX_COMMITS) -> bool:
    if len(commits) > max_commits:
        logger.warning(
            f"Large repo ({len(commits)} commits) - using simple layout instead of layered layout"
        )
        return True
    if has_cycle(commits):
        logger.error("Commit graph contains cycles - using simple layout")
        return True
    return False
