"""
Move coordinator: turns drag gestures into previews, commits and rollbacks.

Per gesture:
  drag start   → remember where the card came from (IDLE)
  drag over    → cosmetic cross-container write to the store (PREVIEWING)
  drag end     → same container: local reorder, no network
                 other container: snapshot, optimistic write, backend call (COMMITTED)
  response     → CONFIRMED (record dropped) or ROLLED_BACK (snapshot restored)

The backend call is the only suspension point. It is scheduled on the
running event loop and never awaited by the handlers, so further drags
stay responsive while moves are in flight.
"""
import asyncio
import logging
import time
from typing import Optional, Set, Tuple

from .backend import BoardBackend
from .index import ContainerIndex
from .notifications import Notifier
from .schema import BoardState, DragGesture, Move, MoveIntent, MoveResult, MoveState, MoveTaskRequest
from .store import BOARD_CHANGED, ReconciliationStore
from .transform import apply_move

logger = logging.getLogger(__name__)


class MoveCoordinator:
    """Drag-and-drop entry points for one board view."""

    def __init__(self, store: ReconciliationStore, backend: BoardBackend,
                 notifier: Optional[Notifier] = None):
        self.store = store
        self.backend = backend
        self.notifier = notifier
        self._gesture: Optional[Move] = None
        self._abandoned: Optional[str] = None   # task id of a drag cut off by a board switch
        self._pending: Set[asyncio.Task] = set()
        self._last_stamp = 0
        store.subscribe(BOARD_CHANGED, self._on_board_changed)

    # ──────────────────────────────────────────
    # Gesture handlers
    # ──────────────────────────────────────────

    def on_drag_start(self, active_id: str) -> None:
        self._abandoned = None
        self._gesture = self._begin(active_id)

    def on_drag_over(self, gesture: DragGesture) -> None:
        """Preview a cross-container move. Never creates an in-flight record."""
        if gesture.over_id is None:
            return
        move = self._current_gesture(gesture.active_id)
        state = self.store.get_state()
        if move is None or state is None:
            return
        intent = ContainerIndex(state).resolve_gesture(gesture)
        if intent is None or intent.is_reorder:
            return
        if self.preview(intent):
            move.transition_to(MoveState.PREVIEWING, reason=f"over {intent.target_container_id}")

    def on_drag_end(self, gesture: DragGesture) -> None:
        """Finish a gesture: local reorder, optimistic commit, or discard."""
        move = self._current_gesture(gesture.active_id)
        self._gesture = None
        self._abandoned = None
        if move is None:
            return

        state = self.store.get_state()
        base = self._baseline(state, move)
        target = self._drop_target(gesture, move, state, base)
        if target is None:
            if base is not state:
                self.store.set_state(base)
            return

        target_id, index = target
        intent = MoveIntent(
            task_id=move.task_id,
            source_container_id=move.origin_container_id,
            target_container_id=target_id,
            target_index=index,
        )
        self.commit(intent, move=move, base=base)

    def on_drag_cancel(self) -> None:
        move, self._gesture = self._gesture, None
        self._abandoned = None
        if move is None:
            return
        state = self.store.get_state()
        base = self._baseline(state, move)
        if base is not state:
            self.store.set_state(base)

    # ──────────────────────────────────────────
    # Preview + commit
    # ──────────────────────────────────────────

    def preview(self, intent: MoveIntent) -> bool:
        """Write the transformed state directly. Returns False if not applicable."""
        state = self.store.get_state()
        if state is None:
            return False
        candidate = apply_move(state, intent)
        if candidate is None:
            return False
        self.store.set_state(candidate)
        return True

    def commit(self, intent: MoveIntent, move: Optional[Move] = None,
               base: Optional[BoardState] = None) -> Optional[Move]:
        """
        Apply a move for real.

        base is the state the move is applied to (default: the current
        state); it becomes the rollback snapshot. Reorders inside one
        container are written locally and return None. Cross-container moves
        return the committed Move whose backend call has been scheduled.
        """
        state = self.store.get_state()
        if base is None:
            base = state
        if base is None:
            return None

        candidate = apply_move(base, intent)
        if candidate is None:
            logger.debug(f"Move not applicable: {intent}")
            if base is not state:
                self.store.set_state(base)
            return None

        if intent.is_reorder:
            self.store.set_state(candidate)
            logger.debug(f"Reordered {intent.task_id} in {intent.source_container_id}")
            return None

        loop = asyncio.get_running_loop()

        if move is None:
            index = ContainerIndex(base)
            move = Move(
                task_id=intent.task_id,
                origin_container_id=intent.source_container_id,
                origin_index=index.position_of(intent.task_id, intent.source_container_id) or 0,
            )
        optimistic_id = self._next_optimistic_id(intent.task_id)
        move.intent = intent
        move.request = MoveTaskRequest(
            task_id=intent.task_id,
            board_id=base.board_id,
            source_container_id=intent.source_container_id,
            target_container_id=intent.target_container_id,
            target_container_name=base.container_name(intent.target_container_id),
        )
        move.transition_to(MoveState.COMMITTED, reason=f"dropped on {intent.target_container_id}")

        self.store.register_in_flight(optimistic_id, intent.task_id, snapshot=base, move=move)
        self.store.set_state(candidate)
        logger.info(
            f"Committed {optimistic_id}: {intent.source_container_id} → {intent.target_container_id}"
        )

        task = loop.create_task(self._dispatch(move))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)
        return move

    async def _dispatch(self, move: Move) -> None:
        """Send the move and reconcile with the outcome. Backend errors never escape."""
        try:
            result = await self.backend.move_task(move.request)
        except Exception as e:
            logger.warning(f"Move {move.optimistic_id} raised: {e}")
            result = MoveResult.failure(str(e) or e.__class__.__name__)

        if result.ok:
            if self.store.resolve_success(move.optimistic_id):
                logger.info(f"Confirmed {move.optimistic_id}")
            return

        if self.store.resolve_failure(move.optimistic_id, move.snapshot, reason=result.reason):
            logger.warning(f"Rolled back {move.optimistic_id}: {result.reason}")
            if self.notifier:
                self.notifier.push(f"Could not move task: {result.reason}. Board restored.")

    async def drain(self) -> None:
        """Wait until every scheduled backend call has settled."""
        while self._pending:
            await asyncio.gather(*list(self._pending))

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ──────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────

    def _next_optimistic_id(self, task_id: str) -> str:
        stamp = time.monotonic_ns()
        if stamp <= self._last_stamp:
            stamp = self._last_stamp + 1
        self._last_stamp = stamp
        return f"{task_id}_{stamp}"

    def _begin(self, active_id: str) -> Optional[Move]:
        state = self.store.get_state()
        if state is None:
            return None
        index = ContainerIndex(state)
        cid = index.resolve_container(active_id)
        if cid is None:
            logger.debug(f"Drag started on unknown task {active_id}")
            return None
        return Move(task_id=active_id, origin_container_id=cid,
                    origin_index=index.position_of(active_id, cid))

    def _current_gesture(self, active_id: str) -> Optional[Move]:
        if self._gesture is None and active_id == self._abandoned:
            return None
        if self._gesture is None or self._gesture.task_id != active_id:
            self._abandoned = None
            self._gesture = self._begin(active_id)
        return self._gesture

    def _on_board_changed(self, board_id: Optional[str]) -> None:
        # Origins recorded on the previous board mean nothing on the next one
        if self._gesture is not None:
            logger.debug(f"Abandoning drag of {self._gesture.task_id}: board changed to {board_id}")
            self._abandoned = self._gesture.task_id
        self._gesture = None

    def _baseline(self, state: Optional[BoardState], move: Move) -> Optional[BoardState]:
        """The current state with this gesture's preview undone (task back at its origin)."""
        if state is None or not move.previewed:
            return state
        cid = ContainerIndex(state).resolve_container(move.task_id)
        if cid is None or move.origin_index is None:
            return state
        # Same container is a reorder back to origin_index, otherwise a move home
        undo = MoveIntent(move.task_id, cid, move.origin_container_id, move.origin_index)
        return apply_move(state, undo) or state

    def _drop_target(self, gesture: DragGesture, move: Move, state: Optional[BoardState],
                     base: Optional[BoardState]) -> Optional[Tuple[str, Optional[int]]]:
        if gesture.over_id is None or base is None:
            return None
        if gesture.over_id == gesture.active_id:
            # Dropped on itself: only meaningful where a preview already placed it
            if not move.previewed:
                return None
            index = ContainerIndex(state)
            cid = index.resolve_container(move.task_id)
            if cid is None or cid == move.origin_container_id:
                return None
            return cid, index.position_of(move.task_id, cid)
        return ContainerIndex(base).resolve_target(gesture.over_id)
