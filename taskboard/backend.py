"""
Backend collaborators: board fetch and the optimistic move call.

HttpBoardBackend talks to the board API with requests; the blocking calls
run in a worker thread so the event loop stays interactive.
InMemoryBoardBackend is a scriptable stand-in for demos and tests.
"""
import asyncio
import copy
import logging
from typing import Optional, Dict, Any, List

import requests

from .schema import MoveTaskRequest, MoveResult

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """Raised when the board API cannot be reached or answers with an error."""
    pass


class BoardBackend:
    """Interface the move engine depends on."""

    async def fetch_board(self, board_id: str) -> Dict[str, Any]:
        """Return {"board": {...}, "tasksByCategory": {...}}."""
        raise NotImplementedError

    async def move_task(self, request: MoveTaskRequest) -> MoveResult:
        raise NotImplementedError


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# HTTP
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class HttpBoardBackend(BoardBackend):
    """HTTP client for the board API."""

    def __init__(self, base_url: str = "http://localhost:3001", token: Optional[str] = None,
                 timeout: float = 10.0, session: Optional[requests.Session] = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update({"Content-Type": "application/json"})
        if token:
            self.session.headers.update({"Authorization": f"Bearer {token}"})

    @staticmethod
    def _describe(r: requests.Response) -> str:
        if r.status_code == 401:
            return "Unauthorized (401): session expired or invalid token"
        if r.status_code == 403:
            return "Forbidden (403)"
        try:
            body = r.json()
        except ValueError:
            body = None
        detail = body.get("error") if isinstance(body, dict) else None
        return f"HTTP {r.status_code}: {detail or r.text[:200]}"

    def fetch_board_sync(self, board_id: str) -> Dict[str, Any]:
        url = f"{self.base_url}/boards/{board_id}"
        try:
            r = self.session.get(url, timeout=self.timeout)
        except requests.RequestException as e:
            raise BackendError(f"Network error fetching board {board_id}: {e}") from e
        if not r.ok:
            raise BackendError(self._describe(r))
        return r.json()

    def move_task_sync(self, request: MoveTaskRequest) -> MoveResult:
        url = f"{self.base_url}/tasks/{request.task_id}/move"
        try:
            r = self.session.patch(url, json=request.to_payload(), timeout=self.timeout)
        except requests.RequestException as e:
            logger.warning(f"Move {request.task_id} network error: {e}")
            return MoveResult.failure(f"Network error: {e}")
        if not r.ok:
            return MoveResult.failure(self._describe(r))
        return MoveResult.success()

    async def fetch_board(self, board_id: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self.fetch_board_sync, board_id)

    async def move_task(self, request: MoveTaskRequest) -> MoveResult:
        return await asyncio.to_thread(self.move_task_sync, request)

    def health(self) -> bool:
        """Check if the board API is reachable."""
        try:
            r = self.session.get(f"{self.base_url}/health", timeout=2)
            return r.ok
        except requests.RequestException:
            return False


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# In-memory
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class InMemoryBoardBackend(BoardBackend):
    """
    Serves boards from memory and accepts every move unless told otherwise.

    fail_next(n, reason) rejects the next n moves; delay adds latency to
    every call so several moves can be in flight at once.
    """

    def __init__(self, boards: Optional[Dict[str, Dict[str, Any]]] = None, delay: float = 0.0):
        self.boards: Dict[str, Dict[str, Any]] = copy.deepcopy(boards or {})
        self.delay = delay
        self.requests: List[MoveTaskRequest] = []
        self._failures: List[str] = []
        self._errors: List[Exception] = []

    def fail_next(self, count: int = 1, reason: str = "Move rejected") -> None:
        self._failures.extend([reason] * count)

    def raise_next(self, error: Exception) -> None:
        self._errors.append(error)

    async def fetch_board(self, board_id: str) -> Dict[str, Any]:
        if self.delay:
            await asyncio.sleep(self.delay)
        if board_id not in self.boards:
            raise BackendError(f"Board {board_id} not found")
        return copy.deepcopy(self.boards[board_id])

    async def move_task(self, request: MoveTaskRequest) -> MoveResult:
        self.requests.append(request)
        if self.delay:
            await asyncio.sleep(self.delay)
        if self._errors:
            raise self._errors.pop(0)
        if self._failures:
            return MoveResult.failure(self._failures.pop(0))
        self._apply(request)
        return MoveResult.success()

    def _apply(self, request: MoveTaskRequest) -> None:
        data = self.boards.get(request.board_id)
        if not data:
            return
        by_cat = data.setdefault("tasksByCategory", {})
        source = by_cat.get(request.source_container_id, [])
        for i, item in enumerate(source):
            if (item.get("_id") or item.get("id")) == request.task_id:
                task = source.pop(i)
                task["categoryId"] = request.target_container_id
                task["categoryName"] = request.target_container_name
                by_cat.setdefault(request.target_container_id, []).append(task)
                return
