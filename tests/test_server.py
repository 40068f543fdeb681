"""
Tests for the Flask reference board API.
"""
import textwrap

import pytest

from taskboard.server import BoardRepository, create_app, load_seed

from conftest import make_board_data


def _payload(task_id="t1", source="A", target="B", board_id="b1"):
    return {
        "taskId": task_id,
        "boardId": board_id,
        "sourceContainerId": source,
        "targetContainerId": target,
        "targetContainerName": f"Column {target}",
    }


class TestBoardApi:

    def setup_method(self):
        self.repo = BoardRepository()
        self.repo.add(make_board_data())
        self.client = create_app(self.repo, api_secret="").test_client()

    def test_health(self):
        r = self.client.get("/health")
        assert r.status_code == 200
        assert r.get_json() == {"status": "ok", "boards": 1}

    def test_get_board(self):
        r = self.client.get("/boards/b1")
        assert r.status_code == 200
        data = r.get_json()
        assert [t["_id"] for t in data["tasksByCategory"]["A"]] == ["t1", "t2"]

    def test_get_unknown_board(self):
        assert self.client.get("/boards/zzz").status_code == 404

    def test_move(self):
        r = self.client.patch("/tasks/t1/move", json=_payload())
        assert r.status_code == 200
        assert r.get_json()["task"]["categoryId"] == "B"
        state = self.repo.get("b1")
        assert [t.task_id for t in state.tasks_in("B")] == ["t1"]

    def test_move_source_mismatch_conflicts(self):
        r = self.client.patch("/tasks/t1/move", json=_payload(source="B", target="A"))
        assert r.status_code == 409

    def test_move_unknown_target(self):
        r = self.client.patch("/tasks/t1/move", json=_payload(target="Z"))
        assert r.status_code == 400

    def test_move_unknown_task(self):
        r = self.client.patch("/tasks/ghost/move", json=_payload(task_id="ghost"))
        assert r.status_code == 404

    def test_move_missing_fields(self):
        r = self.client.patch("/tasks/t1/move", json={"taskId": "t1"})
        assert r.status_code == 400

    def test_move_task_id_mismatch(self):
        r = self.client.patch("/tasks/t2/move", json=_payload(task_id="t1"))
        assert r.status_code == 400


class TestApiKey:

    def setup_method(self):
        repo = BoardRepository()
        repo.add(make_board_data())
        self.client = create_app(repo, api_secret="s3cret").test_client()

    def test_missing_key(self):
        assert self.client.patch("/tasks/t1/move", json=_payload()).status_code == 401

    def test_wrong_key(self):
        r = self.client.patch("/tasks/t1/move", json=_payload(), headers={"X-API-Key": "nope"})
        assert r.status_code == 403

    def test_valid_key(self):
        r = self.client.patch("/tasks/t1/move", json=_payload(), headers={"X-API-Key": "s3cret"})
        assert r.status_code == 200

    def test_reads_stay_open(self):
        assert self.client.get("/boards/b1").status_code == 200


def test_load_seed(tmp_path):
    seed = tmp_path / "board.yaml"
    seed.write_text(textwrap.dedent("""
        board:
          _id: demo
          categories:
            - {id: todo, name: To do, order: 1}
            - {id: done, name: Done, order: 2}
        tasksByCategory:
          todo:
            - {_id: t1, name: First}
          done: []
    """))
    repo = BoardRepository()
    assert load_seed(str(seed), repo) == 1
    state = repo.get("demo")
    assert state.tasks_in("todo")[0].container_name == "To do"


def test_seed_with_duplicates_rejected(tmp_path):
    from taskboard.schema import BoardIntegrityError
    seed = tmp_path / "bad.yaml"
    seed.write_text(textwrap.dedent("""
        board: {_id: x, categories: [{id: a, name: A}, {id: b, name: B}]}
        tasksByCategory:
          a: [{_id: t1}]
          b: [{_id: t1}]
    """))
    with pytest.raises(BoardIntegrityError):
        load_seed(str(seed), BoardRepository())
