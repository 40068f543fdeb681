"""
Board session: wires store, coordinator and backend for one board view.

Opening a board fetches it and installs it in the store. If another board
is requested while a fetch is still running, the older fetch result is
dropped so the newest request wins.
"""
import logging
from typing import Optional

from .backend import BoardBackend, HttpBoardBackend
from .config import Config
from .coordinator import MoveCoordinator
from .notifications import Notifier
from .schema import BoardState, DragGesture
from .store import ReconciliationStore

logger = logging.getLogger(__name__)


class BoardSession:
    """Owns the state of the currently open board."""

    def __init__(self, backend: BoardBackend, notifier: Optional[Notifier] = None):
        self.backend = backend
        self.notifier = notifier or Notifier()
        self.store = ReconciliationStore()
        self.coordinator = MoveCoordinator(self.store, backend, self.notifier)
        self.board_id: Optional[str] = None
        self.loading = False
        self.error: Optional[str] = None
        self._generation = 0

    @classmethod
    def from_config(cls, cfg: Config) -> "BoardSession":
        backend = HttpBoardBackend(cfg.api_base_url, token=cfg.api_token, timeout=cfg.request_timeout)
        return cls(backend, Notifier(default_ttl=cfg.notification_ttl_secs))

    @property
    def state(self) -> Optional[BoardState]:
        return self.store.get_state()

    async def open_board(self, board_id: str) -> bool:
        """Fetch and install a board. Returns False on failure or when superseded."""
        self._generation += 1
        generation = self._generation
        self.loading = True
        self.error = None
        try:
            data = await self.backend.fetch_board(board_id)
            state = BoardState.from_dict(data)
        except Exception as e:
            if generation != self._generation:
                return False
            self.loading = False
            self.error = str(e) or "An error occurred"
            logger.error(f"Failed to open board {board_id}: {self.error}")
            return False

        if generation != self._generation:
            logger.debug(f"Discarding superseded fetch of board {board_id}")
            return False
        self.loading = False
        self.board_id = board_id
        self.store.open(state)
        logger.info(f"Opened board {board_id} ({len(state.task_ids())} tasks)")
        return True

    def close_board(self) -> None:
        self._generation += 1
        self.board_id = None
        self.loading = False
        self.store.close()

    # Handlers the drag source is wired to

    def on_drag_start(self, active_id: str) -> None:
        self.coordinator.on_drag_start(active_id)

    def on_drag_over(self, active_id: str, over_id: Optional[str]) -> None:
        self.coordinator.on_drag_over(DragGesture(active_id, over_id))

    def on_drag_end(self, active_id: str, over_id: Optional[str]) -> None:
        self.coordinator.on_drag_end(DragGesture(active_id, over_id))

    def on_drag_cancel(self) -> None:
        self.coordinator.on_drag_cancel()
