import sys

from src.graph.models import Author, CommitRecord, Ref
from src.graph.stream import compute_snapshot

def synthetic_history(count: int):
    """Newest-first history: a main line with a feature branch merged every 10 commits."""
    commits = []
    for i in range(count - 1, -1, -1):
        oid = f"{i:040x}"
        parents = [f"{i - 1:040x}"] if i > 0 else []
        if i % 10 == 9 and i > 2:
            parents.append(f"{i - 2:040x}")
        refs = [Ref(name="main", is_head=True)] if i == count - 1 else []
        commits.append(CommitRecord(
            hash=oid,
            parents=parents,
            refs=refs,
            author=Author(name=f"dev{i % 3}", email=f"dev{i % 3}@example.com"),
            timestamp=i,
            message=f"Commit {i}",
        ))
    return commits

def main():
    count = int(sys.argv[1]) if len(sys.argv) > 1 else 50
    print(f"Laying out {count} synthetic commits...")
    snapshot = compute_snapshot(synthetic_history(count))
    layout = snapshot.layout

    print(f"Algorithm: {layout.algorithm}")
    print(f"Nodes: {len(layout.nodes)}  Edges: {len(layout.edges)}")
    print(f"Bounds: {layout.bounds()}")

    print("\nFirst commits:")
    for node in layout.nodes[:10]:
        parents = " ".join(p[-7:] for p in node.record.parents)
        print(f"* {node.id[-7:]} ({parents}) {node.color} @ {node.position}")

if __name__ == "__main__":
    main()
