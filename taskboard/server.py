#!/usr/bin/env python3
"""
Taskboard Reference Server
--------------------------
A small board API for local development and demos, holding boards in
memory. It serves the two calls the move engine depends on.

Usage:
    taskboard-server --seed board.yaml --port 3001

API:
    GET   /health                 → { status, boards }
    GET   /boards/<board_id>      → { board, tasksByCategory }
    PATCH /tasks/<task_id>/move   → JSON body: { taskId, boardId, sourceContainerId,
                                                 targetContainerId, targetContainerName }
                                    Returns: { task }

Write calls need an X-API-Key header when TASKBOARD_API_SECRET is set.
"""

import argparse
import hmac
import logging
import os
import threading
from functools import wraps
from typing import Dict, Any, Optional

import yaml
from flask import Flask, current_app, jsonify, request

from .config import configure_logging
from .index import ContainerIndex
from .schema import BoardIntegrityError, BoardState, MoveIntent
from .transform import apply_move

logger = logging.getLogger(__name__)


class MoveRejected(Exception):
    """A move the repository refuses, with the HTTP status to report."""

    def __init__(self, message: str, status: int):
        super().__init__(message)
        self.status = status


class BoardRepository:
    """Thread-safe in-memory board storage."""

    def __init__(self):
        self._boards: Dict[str, BoardState] = {}
        self._lock = threading.Lock()

    def add(self, data: Dict[str, Any]) -> BoardState:
        state = BoardState.from_dict(data)
        with self._lock:
            self._boards[state.board_id] = state
        return state

    def get(self, board_id: str) -> Optional[BoardState]:
        with self._lock:
            return self._boards.get(board_id)

    def board_ids(self):
        with self._lock:
            return list(self._boards)

    def move(self, board_id: str, task_id: str, source_id: str, target_id: str) -> Dict[str, Any]:
        """Move a task between containers. Raises MoveRejected."""
        with self._lock:
            state = self._boards.get(board_id)
            if state is None:
                raise MoveRejected(f"Board {board_id} not found", 404)
            index = ContainerIndex(state)
            actual = index.resolve_container(task_id)
            if actual is None:
                raise MoveRejected(f"Task {task_id} not found", 404)
            if actual != source_id:
                raise MoveRejected(f"Task {task_id} is in {actual}, not {source_id}", 409)
            if not index.is_container_identifier(target_id):
                raise MoveRejected(f"Unknown category {target_id}", 400)
            new_state = apply_move(state, MoveIntent(task_id, source_id, target_id))
            if new_state is None:
                raise MoveRejected(f"Task {task_id} is already in {target_id}", 409)
            self._boards[board_id] = new_state
            moved = next(t for t in new_state.tasks_in(target_id) if t.task_id == task_id)
            return moved.to_dict()


def load_seed(path: str, repository: BoardRepository) -> int:
    """Load one board payload or a list of them from YAML."""
    with open(path) as f:
        raw = yaml.safe_load(f) or []
    boards = raw if isinstance(raw, list) else [raw]
    for data in boards:
        repository.add(data)
    return len(boards)


# ── Auth ─────────────────────────────────────────────────────────────────────


def require_api_key(f):
    """Decorator: reject write requests without a valid X-API-Key header."""
    @wraps(f)
    def decorated(*args, **kwargs):
        secret = current_app.config.get("API_SECRET") or ""
        if secret:
            provided = request.headers.get("X-API-Key", "").strip()
            if not hmac.compare_digest(provided, secret):
                code = 401 if not provided else 403
                return jsonify({"error": "Unauthorized"}), code
        return f(*args, **kwargs)
    return decorated


# ── App ──────────────────────────────────────────────────────────────────────


def create_app(repository: Optional[BoardRepository] = None, api_secret: Optional[str] = None) -> Flask:
    app = Flask(__name__)
    app.config["API_SECRET"] = api_secret if api_secret is not None else os.environ.get("TASKBOARD_API_SECRET", "")
    repo = repository or BoardRepository()
    app.extensions["board_repository"] = repo

    @app.route("/health")
    def health():
        return jsonify({"status": "ok", "boards": len(repo.board_ids())})

    @app.route("/boards/<board_id>")
    def get_board(board_id):
        state = repo.get(board_id)
        if state is None:
            return jsonify({"error": "Board not found"}), 404
        return jsonify(state.to_dict())

    @app.route("/tasks/<task_id>/move", methods=["PATCH"])
    @require_api_key
    def move_task(task_id):
        data = request.get_json(force=True, silent=True) or {}
        board_id = (data.get("boardId") or "").strip()
        source_id = (data.get("sourceContainerId") or "").strip()
        target_id = (data.get("targetContainerId") or "").strip()
        if not board_id or not source_id or not target_id:
            return jsonify({"error": "boardId, sourceContainerId and targetContainerId are required"}), 400
        if data.get("taskId") and data["taskId"] != task_id:
            return jsonify({"error": "taskId does not match URL"}), 400
        try:
            task = repo.move(board_id, task_id, source_id, target_id)
        except MoveRejected as e:
            logger.info(f"Rejected move of {task_id}: {e}")
            return jsonify({"error": str(e)}), e.status
        logger.info(f"Moved {task_id}: {source_id} → {target_id}")
        return jsonify({"task": task})

    return app


# ── Main ─────────────────────────────────────────────────────────────────────


def main():
    parser = argparse.ArgumentParser(description="Taskboard reference board API")
    parser.add_argument("--host", default="127.0.0.1",
                        help="Bind address (use 0.0.0.0 to expose on network)")
    parser.add_argument("--port", type=int, default=3001)
    parser.add_argument("--seed", help="YAML file with one board payload or a list of them")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    configure_logging(args.log_level)
    repository = BoardRepository()
    if args.seed:
        try:
            count = load_seed(args.seed, repository)
        except (OSError, yaml.YAMLError, BoardIntegrityError) as e:
            parser.error(f"cannot load seed {args.seed}: {e}")
        logger.info(f"Loaded {count} board(s) from {args.seed}")

    app = create_app(repository)
    app.run(host=args.host, port=args.port, debug=False, threaded=True)


if __name__ == "__main__":
    main()
