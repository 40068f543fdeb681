"""
Container index: read-only lookups over a BoardState.

Drag targets share one identifier namespace in the UI layer, so a drop
target may be a task id or a container id. The index tells them apart and
turns a raw gesture into a MoveIntent.
"""
import logging
from typing import Optional

from .schema import BoardState, DragGesture, MoveIntent

logger = logging.getLogger(__name__)


class ContainerIndex:
    """Pure queries over one board state."""

    def __init__(self, state: BoardState):
        self.state = state

    def resolve_container(self, task_id: str) -> Optional[str]:
        """Return the id of the container holding task_id, or None."""
        for cid in self.state.container_ids():
            if any(t.task_id == task_id for t in self.state.tasks_in(cid)):
                return cid
        return None

    def is_container_identifier(self, identifier: str) -> bool:
        return identifier in self.state.container_ids()

    def position_of(self, task_id: str, container_id: str) -> Optional[int]:
        for i, task in enumerate(self.state.tasks_in(container_id)):
            if task.task_id == task_id:
                return i
        return None

    def resolve_target(self, over_id: str):
        """
        Resolve a drop target to (container_id, index).

        A container id means "append" (index None); a task id means "insert
        before that task". Returns None when the target is unknown.
        """
        if self.is_container_identifier(over_id):
            return over_id, None
        cid = self.resolve_container(over_id)
        if cid is None:
            return None
        return cid, self.position_of(over_id, cid)

    def resolve_gesture(self, gesture: DragGesture) -> Optional[MoveIntent]:
        """Turn a drag gesture into a MoveIntent, or None if it is stale or has no target."""
        if gesture.over_id is None:
            return None
        source = self.resolve_container(gesture.active_id)
        target = self.resolve_target(gesture.over_id)
        if source is None or target is None:
            logger.debug(f"Stale gesture ignored: {gesture.active_id} over {gesture.over_id}")
            return None
        target_id, index = target
        return MoveIntent(
            task_id=gesture.active_id,
            source_container_id=source,
            target_container_id=target_id,
            target_index=index,
        )
