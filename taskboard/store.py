"""
Reconciliation store: the single owner of the open board's state.

Holds the visible BoardState, the registry of in-flight (unconfirmed)
moves, and applies backend outcomes. Rendering code subscribes to it;
nothing outside mutates state except through these methods.
"""
import logging
from typing import Optional, Dict, Callable, List

from .schema import BoardState, Move, MoveState

logger = logging.getLogger(__name__)

STATE_CHANGED = "state_changed"
BOARD_CHANGED = "board_changed"
MOVE_REGISTERED = "move_registered"
MOVE_CONFIRMED = "move_confirmed"
MOVE_ROLLED_BACK = "move_rolled_back"


class ReconciliationStore:
    """In-memory board state plus the in-flight move registry."""

    def __init__(self, state: Optional[BoardState] = None):
        self._state = state
        self._in_flight: Dict[str, Move] = {}   # optimistic_id -> committed move
        self.subscribers: Dict[str, list] = {}  # event_type -> list of callbacks

    # ── Subscriptions ────────────────────────────────────────────────────

    def subscribe(self, event_type: str, callback: Callable) -> None:
        """Register a callback for an event type."""
        if event_type not in self.subscribers:
            self.subscribers[event_type] = []
        self.subscribers[event_type].append(callback)

    def _emit(self, event_type: str, **kwargs) -> None:
        """Emit an event to all subscribers."""
        for callback in self.subscribers.get(event_type, []):
            try:
                callback(**kwargs)
            except Exception as e:
                logger.error(f"Error in {event_type} callback: {e}")

    # ── Board lifecycle ──────────────────────────────────────────────────

    def open(self, state: BoardState) -> None:
        """Install a freshly fetched board. Outstanding moves of the previous board are forgotten."""
        if self._in_flight:
            logger.info(f"Dropping {len(self._in_flight)} in-flight move(s) from previous board")
        self._in_flight.clear()
        self._emit(BOARD_CHANGED, board_id=state.board_id)
        self.set_state(state)

    def close(self) -> None:
        self._in_flight.clear()
        self._state = None
        self._emit(BOARD_CHANGED, board_id=None)
        self._emit(STATE_CHANGED, state=None)

    @property
    def is_open(self) -> bool:
        return self._state is not None

    # ── State ────────────────────────────────────────────────────────────

    def get_state(self) -> Optional[BoardState]:
        return self._state

    def set_state(self, new_state: BoardState) -> None:
        self._state = new_state
        self._emit(STATE_CHANGED, state=new_state)

    # ── In-flight registry ───────────────────────────────────────────────

    def register_in_flight(self, optimistic_id: str, task_id: str,
                           snapshot: Optional[BoardState] = None,
                           move: Optional[Move] = None) -> Move:
        """Record a committed move awaiting backend confirmation."""
        if optimistic_id in self._in_flight:
            raise ValueError(f"Move {optimistic_id} is already in flight")
        if move is None:
            move = Move(task_id=task_id, state=MoveState.COMMITTED)
        move.optimistic_id = optimistic_id
        if snapshot is not None:
            move.snapshot = snapshot
        self._in_flight[optimistic_id] = move
        self._emit(MOVE_REGISTERED, move=move)
        return move

    def in_flight(self) -> List[Move]:
        return list(self._in_flight.values())

    def get_in_flight(self, optimistic_id: str) -> Optional[Move]:
        return self._in_flight.get(optimistic_id)

    def is_in_flight(self, task_id: str) -> bool:
        return any(m.task_id == task_id for m in self._in_flight.values())

    def resolve_success(self, optimistic_id: str) -> bool:
        """
        Confirm a move. The optimistic state is already final, so only the
        record is dropped. Returns False for unknown or already-resolved ids.
        """
        move = self._in_flight.pop(optimistic_id, None)
        if move is None:
            logger.debug(f"Ignoring duplicate success for {optimistic_id}")
            return False
        move.transition_to(MoveState.CONFIRMED, reason="Backend accepted move")
        self._emit(MOVE_CONFIRMED, move=move)
        return True

    def resolve_failure(self, optimistic_id: str, snapshot: Optional[BoardState] = None,
                        reason: str = "") -> bool:
        """
        Roll back a move by replacing the whole board state with its snapshot.

        Idempotent: unknown or already-resolved ids are ignored.
        """
        move = self._in_flight.pop(optimistic_id, None)
        if move is None:
            logger.debug(f"Ignoring duplicate failure for {optimistic_id}")
            return False
        restore = snapshot if snapshot is not None else move.snapshot
        move.failure_reason = reason
        move.transition_to(MoveState.ROLLED_BACK, reason=reason or "Backend rejected move")
        if restore is not None:
            self.set_state(restore)
        else:
            logger.warning(f"No snapshot for {optimistic_id}; state left as is")
        self._emit(MOVE_ROLLED_BACK, move=move)
        return True
