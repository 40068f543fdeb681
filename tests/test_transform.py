"""
Tests for the container index and the speculative transform.
"""
from collections import Counter

from taskboard.index import ContainerIndex
from taskboard.schema import BoardState, DragGesture, MoveIntent
from taskboard.transform import apply_move, reorder

from conftest import make_board_data, layout


def _all_ids(state):
    return Counter(state.task_ids())


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Container index
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestContainerIndex:

    def setup_method(self):
        self.state = BoardState.from_dict(make_board_data())
        self.index = ContainerIndex(self.state)

    def test_resolve_container(self):
        assert self.index.resolve_container("t2") == "A"

    def test_resolve_unknown_task(self):
        assert self.index.resolve_container("nope") is None

    def test_container_identifier(self):
        assert self.index.is_container_identifier("B")
        assert self.index.is_container_identifier("unassigned")
        assert not self.index.is_container_identifier("t1")

    def test_drop_on_container_appends(self):
        assert self.index.resolve_target("B") == ("B", None)

    def test_drop_on_task_inserts_before_it(self):
        assert self.index.resolve_target("t2") == ("A", 1)

    def test_resolve_gesture(self):
        intent = self.index.resolve_gesture(DragGesture("t1", "B"))
        assert intent == MoveIntent("t1", "A", "B", None)

    def test_gesture_without_target(self):
        assert self.index.resolve_gesture(DragGesture("t1", None)) is None

    def test_stale_gesture(self):
        assert self.index.resolve_gesture(DragGesture("ghost", "B")) is None
        assert self.index.resolve_gesture(DragGesture("t1", "ghost")) is None


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# apply_move
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class TestCrossContainer:

    def setup_method(self):
        self.state = BoardState.from_dict(make_board_data({"A": ["t1", "t2"], "B": ["t3", "t4"]}))

    def test_append_without_index(self):
        new = apply_move(self.state, MoveIntent("t1", "A", "B"))
        assert layout(new) == {"A": ["t2"], "B": ["t3", "t4", "t1"]}

    def test_insert_at_index(self):
        new = apply_move(self.state, MoveIntent("t1", "A", "B", 1))
        assert layout(new) == {"A": ["t2"], "B": ["t3", "t1", "t4"]}

    def test_index_past_end_is_clamped(self):
        new = apply_move(self.state, MoveIntent("t1", "A", "B", 99))
        assert layout(new)["B"] == ["t3", "t4", "t1"]

    def test_task_relabelled(self):
        new = apply_move(self.state, MoveIntent("t1", "A", "B"))
        moved = new.tasks_in("B")[-1]
        assert moved.container_id == "B"
        assert moved.container_name == "Column B"
        assert moved.name == "Task t1"

    def test_input_not_mutated(self):
        before = layout(self.state)
        apply_move(self.state, MoveIntent("t1", "A", "B"))
        assert layout(self.state) == before
        assert self.state.tasks_in("A")[0].container_id == "A"

    def test_task_set_preserved(self):
        new = apply_move(self.state, MoveIntent("t2", "A", "B", 0))
        assert _all_ids(new) == _all_ids(self.state)
        assert max(_all_ids(new).values()) == 1

    def test_stale_source_is_not_applicable(self):
        assert apply_move(self.state, MoveIntent("t3", "A", "B")) is None

    def test_unknown_target_is_not_applicable(self):
        assert apply_move(self.state, MoveIntent("t1", "A", "Z")) is None

    def test_drop_on_empty_container(self):
        state = BoardState.from_dict(make_board_data())
        new = apply_move(state, MoveIntent("t1", "A", "B"))
        assert layout(new)["B"] == ["t1"]
        assert "t1" not in layout(new)["A"]


class TestReorder:

    def setup_method(self):
        self.state = BoardState.from_dict(make_board_data({"A": ["t1", "t2", "t3"]}))

    def test_move_up(self):
        new = apply_move(self.state, MoveIntent("t3", "A", "A", 0))
        assert layout(new)["A"] == ["t3", "t1", "t2"]

    def test_move_down(self):
        new = apply_move(self.state, MoveIntent("t1", "A", "A", 2))
        assert layout(new)["A"] == ["t2", "t3", "t1"]

    def test_own_index_is_unchanged(self):
        new = apply_move(self.state, MoveIntent("t2", "A", "A", 1))
        assert new == self.state

    def test_reapplying_same_index_is_stable(self):
        once = apply_move(self.state, MoveIntent("t1", "A", "A", 2))
        twice = apply_move(once, MoveIntent("t1", "A", "A", 2))
        assert twice == once

    def test_reorder_without_index_is_not_applicable(self):
        assert apply_move(self.state, MoveIntent("t1", "A", "A")) is None

    def test_reorder_helper(self):
        assert reorder(["a", "b", "c"], 0, 1) == ["b", "a", "c"]
