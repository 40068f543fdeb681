"""
Speculative transform: derive the board state that a move would produce.

apply_move() never touches its input. It returns None instead of raising
when the move no longer makes sense (stale task or container reference),
so drag handlers can drop lagging events without special-casing them.
"""
from dataclasses import replace
from typing import Optional, List

from .schema import BoardState, MoveIntent, Task


def _clamp(index: int, size: int) -> int:
    return max(0, min(index, size))


def reorder(tasks: List[Task], from_index: int, to_index: int) -> List[Task]:
    """Remove the item at from_index and insert it at to_index."""
    items = list(tasks)
    item = items.pop(from_index)
    items.insert(_clamp(to_index, len(items)), item)
    return items


def apply_move(state: BoardState, intent: MoveIntent) -> Optional[BoardState]:
    """
    Return the board state after moving intent.task_id, or None if not applicable.

    Same container with an index is a positional reorder. Across containers
    the task is removed from the source, relabelled with the target's id and
    name, and inserted at target_index (appended when the index is None).
    """
    source_tasks = state.tasks_in(intent.source_container_id)
    from_index = next(
        (i for i, t in enumerate(source_tasks) if t.task_id == intent.task_id), None
    )
    if from_index is None:
        return None

    if intent.is_reorder:
        if intent.target_index is None:
            return None
        moved = reorder(source_tasks, from_index, intent.target_index)
        return state.with_containers({intent.source_container_id: tuple(moved)})

    if intent.target_container_id not in state.container_ids():
        return None

    task = source_tasks[from_index]
    relabelled = replace(
        task,
        container_id=intent.target_container_id,
        container_name=state.container_name(intent.target_container_id) or task.container_name,
    )
    remaining = source_tasks[:from_index] + source_tasks[from_index + 1:]

    target_tasks = list(state.tasks_in(intent.target_container_id))
    if intent.target_index is None:
        target_tasks.append(relabelled)
    else:
        target_tasks.insert(_clamp(intent.target_index, len(target_tasks)), relabelled)

    return state.with_containers({
        intent.source_container_id: remaining,
        intent.target_container_id: tuple(target_tasks),
    })
