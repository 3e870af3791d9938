from helpers import make_tasks
from shared.graph import TaskGraph
from tasks import Task


def test_graph_exposes_ids_in_input_order():
    graph = TaskGraph(make_tasks({"B": [], "A": ["B"], "C": ["A", "B"]}))
    assert graph.task_ids() == ["B", "A", "C"]
    assert graph.all_ids() == {"A", "B", "C"}
    assert graph.neighbors("C") == ["A", "B"]


def test_dangling_dependency_is_kept_not_fatal():
    graph = TaskGraph(make_tasks({"A": ["X"]}))
    assert graph.neighbors("A") == ["X"]
    assert graph.exists("A")
    assert not graph.exists("X")
    assert graph.dangling("A") == ["X"]
    assert "X" not in graph.G


def test_neighbors_of_unknown_id_is_empty():
    graph = TaskGraph(make_tasks({"A": []}))
    assert graph.neighbors("nope") == []


def test_duplicate_dependencies_collapse_in_order():
    task = Task(id="C", description="c", dependencies=["A", "B", "A", " B "])
    assert task.dependencies == ["A", "B"]


def test_duplicate_task_ids_keep_first():
    graph = TaskGraph([Task(id="A", description="first"), Task(id="A", description="second")])
    assert len(graph) == 1
    assert graph.task("A").description == "first"


def test_topological_order_runs_dependencies_first_with_input_tiebreak():
    graph = TaskGraph(make_tasks({"C": ["A", "B"], "B": [], "A": []}))
    assert graph.topological_order() == ["B", "A", "C"]
    assert graph.topological_order(exclude={"B"}) == ["A", "C"]


def test_single_string_dependency_is_one_id():
    assert Task(id="B", description="b", dependencies="AB").dependencies == ["AB"]
    assert Task(id="C", description="c", dependencies=7).dependencies == ["7"]
