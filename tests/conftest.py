"""Shared fixtures for taskboard tests."""

import sys
from pathlib import Path

import pytest

# Ensure the package is importable without installation
sys.path.insert(0, str(Path(__file__).parent.parent))

from taskboard.schema import BoardState


def make_board_data(containers=None, board_id="b1"):
    """
    Build a board fetch payload.

    containers maps container id → list of task ids, in display order.
    Default: unassigned:[], A:[t1, t2], B:[].
    """
    if containers is None:
        containers = {"unassigned": [], "A": ["t1", "t2"], "B": []}
    categories = []
    for order, cid in enumerate(containers):
        name = "Unassigned" if cid == "unassigned" else f"Column {cid}"
        categories.append({"id": cid, "name": name, "order": order, "color": "#fff"})
    names = {c["id"]: c["name"] for c in categories}
    return {
        "board": {"_id": board_id, "name": "Test board", "owner": "u1", "categories": categories},
        "tasksByCategory": {
            cid: [
                {"_id": tid, "name": f"Task {tid}", "categoryId": cid, "categoryName": names[cid]}
                for tid in tids
            ]
            for cid, tids in containers.items()
        },
    }


def layout(state):
    """Container id → list of task ids, for compact assertions."""
    return {cid: [t.task_id for t in state.tasks_in(cid)] for cid in state.container_ids()}


@pytest.fixture
def board_data():
    return make_board_data()


@pytest.fixture
def board_state(board_data):
    return BoardState.from_dict(board_data)
