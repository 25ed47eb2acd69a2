# tests/test_hierarchy.py

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import pytest

from pluto_todo.errors import HierarchyCycleError, TaskNotFound
from pluto_todo.models.task import CreateTaskRequest, Task, TaskProgress
from pluto_todo.storage.task_store import TaskStore
from pluto_todo.tasks.hierarchy import HierarchyEngine

T0 = datetime(2025, 1, 1, 9, tzinfo=UTC)


class TreeBuilder:
    def __init__(self, store: TaskStore) -> None:
        self.store = store
        self.minute = 0

    def add(self, title: str, parent: Task | None = None, *, completed: bool = False, tags=None) -> Task:
        self.minute += 1
        task = Task.new(
            CreateTaskRequest(title=title, parent_id=parent.id if parent else None, tags=tags),
            now=T0 + timedelta(minutes=self.minute),
        )
        task.completed = completed
        self.store.create(task)
        return task


@pytest.fixture()
def tree(store: TaskStore) -> TreeBuilder:
    return TreeBuilder(store)


def _ids(tasks: list[Task]) -> set[str]:
    return {t.id for t in tasks}


def test_hierarchy_collects_all_descendants(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    root = tree.add("root")
    a = tree.add("a", root)
    b = tree.add("b", root)
    a1 = tree.add("a1", a)
    a1x = tree.add("a1x", a1)
    other = tree.add("other root")

    assert _ids(engine.get_task_hierarchy(root.id)) == {a.id, b.id, a1.id, a1x.id}
    assert engine.get_task_hierarchy(a1x.id) == []
    assert _ids(engine.get_task_hierarchy()) == {root.id, a.id, b.id, a1.id, a1x.id, other.id}


def test_hierarchy_lists_parents_before_children(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    root = tree.add("root")
    a = tree.add("a", root)
    a1 = tree.add("a1", a)
    tree.add("a1x", a1)
    tree.add("b", root)

    order = [t.id for t in engine.get_task_hierarchy(root.id)]
    for task in engine.get_task_hierarchy(root.id):
        if task.parent_id != root.id:
            assert order.index(task.parent_id) < order.index(task.id)


def test_progress_on_leaf_is_empty(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    leaf = tree.add("leaf")
    assert engine.calculate_task_progress(leaf.id) == TaskProgress(0, 0, 0.0, False)


def test_progress_counts_whole_subtree(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    root = tree.add("root")
    a = tree.add("a", root, completed=True)
    tree.add("b", root, completed=True)
    tree.add("a1", a, completed=True)
    tree.add("a2", a)

    progress = engine.calculate_task_progress(root.id)
    assert progress.total_subtasks == 4
    assert progress.completed_subtasks == 3
    assert progress.progress_percentage == pytest.approx(75.0)
    assert progress.has_subtasks is True


def test_delete_with_subtasks_removes_subtree_only(
    engine: HierarchyEngine, store: TaskStore, tree: TreeBuilder
) -> None:
    root = tree.add("root")
    a = tree.add("a", root, tags=["x"])
    tree.add("b", root)
    tree.add("a1", a, tags=["y"])
    tree.add("a2", a)
    keep = tree.add("keep")

    subtree = engine.get_task_hierarchy(root.id)
    removed_ids = {root.id} | _ids(subtree)
    before = store.count_tasks()

    removed = engine.delete_task_and_subtasks(root.id)

    assert removed == len(subtree) + 1
    assert before - store.count_tasks() == len(subtree) + 1
    remaining = store.list_tasks()
    assert _ids(remaining) == {keep.id}
    assert all(t.parent_id not in removed_ids for t in remaining)
    (tag_rows,) = store._conn.execute("SELECT COUNT(*) FROM task_tags").fetchone()
    assert tag_rows == 0


def test_delete_with_subtasks_of_unknown_id_is_noop(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    tree.add("stays")
    assert engine.delete_task_and_subtasks("missing") == 0


def test_promote_moves_direct_children_to_grandparent(
    engine: HierarchyEngine, store: TaskStore, tree: TreeBuilder
) -> None:
    top = tree.add("top")
    mid = tree.add("mid", top)
    c1 = tree.add("c1", mid)
    c2 = tree.add("c2", mid)
    gc = tree.add("gc", c1)

    promoted = engine.delete_task_and_promote_subtasks(mid.id)

    assert [t.id for t in promoted] == [c1.id, c2.id]
    assert store.get_by_id(mid.id) is None
    assert store.get_by_id(c1.id).parent_id == top.id
    assert store.get_by_id(c2.id).parent_id == top.id
    assert store.get_by_id(gc.id).parent_id == c1.id
    assert store.get_by_id(c1.id).updated_at > c1.updated_at


def test_promote_from_root_makes_children_roots(
    engine: HierarchyEngine, store: TaskStore, tree: TreeBuilder
) -> None:
    root = tree.add("root")
    child = tree.add("child", root)

    engine.delete_task_and_promote_subtasks(root.id)

    assert store.get_by_id(child.id).parent_id is None
    assert _ids(store.list_root_tasks()) == {child.id}


def test_promote_unknown_task_raises(engine: HierarchyEngine) -> None:
    with pytest.raises(TaskNotFound):
        engine.delete_task_and_promote_subtasks("missing")


def test_bulk_complete_returns_only_changed_tasks(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    root = tree.add("root")
    a = tree.add("a", root, completed=True)
    tree.add("b", root, completed=True)
    open_ids = {
        tree.add("c", root).id,
        tree.add("a1", a).id,
        tree.add("a2", a).id,
    }

    changed = engine.bulk_mark_subtasks_completed(root.id)

    assert _ids(changed) == open_ids
    assert all(t.completed for t in changed)
    progress = engine.calculate_task_progress(root.id)
    assert progress.completed_subtasks == progress.total_subtasks == 5
    assert engine.get_incomplete_subtasks(root.id) == []


def test_has_subtasks_and_bulk_check(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    parent = tree.add("parent")
    child = tree.add("child", parent)
    lone = tree.add("lone")

    assert engine.has_subtasks(parent.id) is True
    assert engine.has_subtasks(child.id) is False
    assert engine.bulk_has_subtasks([lone.id, parent.id, child.id]) == [parent.id]


def test_get_task_with_subtasks_starts_with_task(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    parent = tree.add("parent")
    child = tree.add("child", parent)

    result = engine.get_task_with_subtasks(parent.id)
    assert [t.id for t in result] == [parent.id, child.id]
    with pytest.raises(TaskNotFound):
        engine.get_task_with_subtasks("missing")


def test_parent_assignment_rejects_cycles(engine: HierarchyEngine, tree: TreeBuilder) -> None:
    root = tree.add("root")
    child = tree.add("child", root)
    grandchild = tree.add("grandchild", child)
    other = tree.add("other")

    with pytest.raises(HierarchyCycleError):
        engine.ensure_valid_parent(root.id, grandchild.id)
    with pytest.raises(HierarchyCycleError):
        engine.ensure_valid_parent(root.id, root.id)
    with pytest.raises(TaskNotFound):
        engine.ensure_valid_parent(root.id, "missing")

    engine.ensure_valid_parent(grandchild.id, other.id)
    engine.ensure_valid_parent(None, root.id)


def test_bulk_promote_stops_at_first_failure(
    engine: HierarchyEngine, store: TaskStore, tree: TreeBuilder
) -> None:
    first = tree.add("first")
    last = tree.add("last")

    with pytest.raises(TaskNotFound):
        engine.bulk_delete_tasks_and_promote_subtasks([first.id, "missing", last.id])

    assert store.get_by_id(first.id) is None
    assert store.get_by_id(last.id) is not None


def test_bulk_delete_tolerates_already_removed_descendants(
    engine: HierarchyEngine, store: TaskStore, tree: TreeBuilder
) -> None:
    root = tree.add("root")
    child = tree.add("child", root)
    other = tree.add("other")

    removed = engine.bulk_delete_tasks_with_subtasks([root.id, child.id, other.id])

    assert removed == 3
    assert store.count_tasks() == 0
