import time

from src.graph.adjacency import AdjacencyIndex, apply_highlight
from src.graph.layout import layout_commit_graph
from src.graph.models import CommitRecord, Ref

def linear(count):
    return [CommitRecord(hash=f"c{i}", parents=[f"c{i - 1}"] if i else []) for i in range(count - 1, -1, -1)]

def test_scenario_select_middle_commit():
    commits = [
        CommitRecord(hash="C3", parents=["C2"], refs=[Ref(name="main", is_head=True)]),
        CommitRecord(hash="C2", parents=["C1"]),
        CommitRecord(hash="C1"),
    ]
    index = AdjacencyIndex.build(commits)

    assert index.highlight("C2") == {"C1", "C3"}
    assert index.highlight("C3") == {"C2"}
    assert index.highlight("C1") == {"C2"}

def test_merge_parents_and_children():
    commits = [
        CommitRecord(hash="M", parents=["P1", "P2"]),
        CommitRecord(hash="P1", parents=["R"]),
        CommitRecord(hash="P2", parents=["R"]),
        CommitRecord(hash="R"),
    ]
    index = AdjacencyIndex.build(commits)

    assert index.parents_of("M") == ["P1", "P2"]
    assert index.children_of("R") == {"P1", "P2"}
    assert index.highlight("M") == {"P1", "P2"}
    assert index.highlight("R") == {"P1", "P2"}
    assert index.highlight("P1") == {"M", "R"}

def test_unknown_or_no_selection():
    index = AdjacencyIndex.build(linear(3))
    assert index.highlight(None) == frozenset()
    assert index.highlight("missing") == frozenset()
    assert index.parents_of("missing") == []
    assert index.children_of("missing") == set()

def test_self_loops_and_unloaded_parents_are_not_adjacent():
    commits = [
        CommitRecord(hash="A", parents=["A", "B", "B", "gone"]),
        CommitRecord(hash="B"),
    ]
    index = AdjacencyIndex.build(commits)

    assert index.parents_of("A") == ["B"]
    assert index.highlight("A") == {"B"}
    assert "gone" not in index.children

def test_apply_highlight_flags_copies():
    result = layout_commit_graph(linear(3))
    flagged = apply_highlight(result.nodes, {"c0", "c2"}, selected="c1")
    by_id = {n.id: n for n in flagged}

    assert by_id["c0"].highlighted and by_id["c2"].highlighted
    assert not by_id["c1"].highlighted
    assert by_id["c1"].selected
    # the layout itself is untouched
    assert not any(n.highlighted or n.selected for n in result.nodes)
    assert [n.position for n in flagged] == [n.position for n in result.nodes]

def _query_time(index, oid, repeats=2000):
    best = float("inf")
    for _ in range(5):
        start = time.perf_counter()
        for _ in range(repeats):
            index.highlight(oid)
        best = min(best, time.perf_counter() - start)
    return best

def test_highlight_cost_does_not_grow_with_repository_size():
    timings = {}
    for size in (100, 10000, 100000):
        index = AdjacencyIndex.build(linear(size))
        timings[size] = _query_time(index, f"c{size // 2}")

    # Lookups only; a scan over all commits would be ~1000x slower at 100k
    assert timings[100000] < timings[100] * 20
