from dataclasses import dataclass, field, replace
from typing import Dict, FrozenSet, Iterable, List, Optional, Sequence, Set

from src.graph.models import CommitRecord, GraphNode

@dataclass
class AdjacencyIndex:
    """Precomputed parent/child lookups for highlight-on-select.

    Built once per commit set; a selection only reads from it.
    """
    parents: Dict[str, List[str]] = field(default_factory=dict)
    children: Dict[str, Set[str]] = field(default_factory=dict)

    @classmethod
    def build(cls, commits: Sequence[CommitRecord]) -> "AdjacencyIndex":
        index = cls()
        for commit in commits:
            index.parents.setdefault(commit.hash, [])

        for commit in commits:
            ordered = index.parents[commit.hash]
            for parent in commit.parents:
                if parent == commit.hash or parent not in index.parents or parent in ordered:
                    continue
                ordered.append(parent)
                index.children.setdefault(parent, set()).add(commit.hash)
        return index

    def __contains__(self, oid: str) -> bool:
        return oid in self.parents

    def parents_of(self, oid: str) -> List[str]:
        return list(self.parents.get(oid, ()))

    def children_of(self, oid: str) -> Set[str]:
        return set(self.children.get(oid, ()))

    def highlight(self, selected: Optional[str]) -> FrozenSet[str]:
        if selected is None or selected not in self.parents:
            return frozenset()
        return frozenset(self.parents[selected]).union(self.children.get(selected, ()))

def apply_highlight(
    nodes: Iterable[GraphNode],
    highlight: Iterable[str] = (),
    selected: Optional[str] = None,
) -> List[GraphNode]:
    """Returns copies of the nodes flagged for the current selection."""
    highlighted = highlight if isinstance(highlight, (set, frozenset)) else set(highlight)
    return [
        replace(node, highlighted=node.id in highlighted, selected=node.id == selected)
        for node in nodes
    ]
