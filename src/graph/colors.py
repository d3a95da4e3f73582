from dataclasses import dataclass, field
from functools import lru_cache
from typing import Dict, Sequence

from src.graph.models import CommitRecord

BRANCH_COLORS = (
    "#3B82F6",  # blue
    "#10B981",  # green
    "#F59E0B",  # amber
    "#EF4444",  # red
    "#8B5CF6",  # violet
    "#EC4899",  # pink
    "#06B6D4",  # cyan
    "#84CC16",  # lime
    "#F97316",  # orange
    "#6366F1",  # indigo
)

NEUTRAL_COLOR = "#6B7280"

@dataclass
class ColorAssignment:
    commit_colors: Dict[str, str] = field(default_factory=dict)
    ref_colors: Dict[str, str] = field(default_factory=dict)

    def color_of(self, oid: str) -> str:
        return self.commit_colors.get(oid, NEUTRAL_COLOR)

def branch_color(index: int) -> str:
    return BRANCH_COLORS[index % len(BRANCH_COLORS)]

def assign_branch_colors(commits: Sequence[CommitRecord]) -> ColorAssignment:
    """Colors commits by propagating branch identity down first-parent chains.

    Commits are visited in the caller's order (newest first), so a child has
    always been seen before its parents and hands its color to the primary
    parent. A side branch gets its own hue at the point it diverges.
    """
    inherited: Dict[str, str] = {}
    assignment = ColorAssignment()
    next_index = 0

    for commit in commits:
        if commit.hash in assignment.commit_colors:
            continue

        color = inherited.get(commit.hash)
        if color is None and commit.refs:
            # New lineage
            color = branch_color(next_index)
            next_index += 1

        for ref in commit.refs:
            if color is not None and ref.is_branch_like and ref.name not in assignment.ref_colors:
                assignment.ref_colors[ref.name] = color

        if color is None:
            assignment.commit_colors[commit.hash] = NEUTRAL_COLOR
            continue

        assignment.commit_colors[commit.hash] = color
        primary = commit.primary_parent
        if (
            primary is not None
            and primary != commit.hash
            and primary not in inherited
            and primary not in assignment.commit_colors
        ):
            inherited[primary] = color

    return assignment

def _to_int32(value: int) -> int:
    value &= 0xFFFFFFFF
    return value - 0x100000000 if value & 0x80000000 else value

@lru_cache(maxsize=4096)
def author_color(email: str) -> str:
    """Stable HSL color for an author email, independent of any traversal."""
    key = email.lower()
    h = 0
    for ch in key:
        h = _to_int32(ord(ch) + ((h << 5) - h))

    hue = abs(h) % 360
    saturation = 65 + abs(h >> 8) % 20
    lightness = 45 + abs(h >> 16) % 15
    return f"hsl({hue}, {saturation}%, {lightness}%)"

def assign_author_colors(commits: Sequence[CommitRecord]) -> ColorAssignment:
    assignment = ColorAssignment()
    for commit in commits:
        assignment.commit_colors.setdefault(commit.hash, author_color(commit.author.email))
    return assignment

def assign_colors(commits: Sequence[CommitRecord], by_author: bool = False) -> ColorAssignment:
    if by_author:
        return assign_author_colors(commits)
    return assign_branch_colors(commits)
