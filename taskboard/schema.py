"""
Board data model and move state machine.

Move lifecycle:
  Idle → Previewing → Committed → Confirmed | Rolled back

Board state values are never mutated in place. Every move produces a new
BoardState, so a state captured before a commit can be restored verbatim.
"""
from enum import Enum
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from types import MappingProxyType
from typing import Optional, List, Dict, Any, Mapping, Tuple

UNASSIGNED_ID = "unassigned"
UNASSIGNED_NAME = "Unassigned"


class BoardIntegrityError(ValueError):
    """Raised when board data places a task in more than one container."""
    pass


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Board contents
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class Task:
    """A task card. Display fields are opaque to the move engine."""

    task_id: str
    name: str = ""
    description: str = ""
    container_id: str = ""
    container_name: str = ""       # Denormalized copy of the container's name
    tags: Tuple[str, ...] = ()
    due_date: Optional[str] = None
    extra: Mapping[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        data = dict(self.extra)
        data.update({
            "_id": self.task_id,
            "name": self.name,
            "description": self.description,
            "categoryId": self.container_id,
            "categoryName": self.container_name,
            "tags": list(self.tags),
            "dueDate": self.due_date,
        })
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Task":
        known = {"_id", "id", "name", "description", "categoryId", "categoryName", "tags", "dueDate"}
        return cls(
            task_id=str(data.get("_id") or data.get("id") or ""),
            name=data.get("name") or "",
            description=data.get("description") or "",
            container_id=data.get("categoryId") or "",
            container_name=data.get("categoryName") or "",
            tags=tuple(data.get("tags") or ()),
            due_date=data.get("dueDate"),
            extra={k: v for k, v in data.items() if k not in known},
        )


@dataclass(frozen=True)
class Category:
    """An ordered container of tasks (a board column)."""

    id: str
    name: str
    order: int = 0
    color: str = ""
    created_at: Optional[str] = None

    @property
    def is_unassigned(self) -> bool:
        return self.id == UNASSIGNED_ID or self.name == UNASSIGNED_NAME

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "order": self.order,
            "color": self.color,
            "createdAt": self.created_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Category":
        return cls(
            id=str(data.get("id") or data.get("_id") or ""),
            name=data.get("name", ""),
            order=int(data.get("order") or 0),
            color=data.get("color") or "",
            created_at=data.get("createdAt"),
        )


@dataclass(frozen=True)
class Board:
    """Board descriptor as returned by the board fetch."""

    id: str
    name: str = ""
    owner: str = ""
    members: Tuple[str, ...] = ()
    task_counter: int = 0
    categories: Tuple[Category, ...] = ()
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    def category(self, category_id: str) -> Optional[Category]:
        for cat in self.categories:
            if cat.id == category_id:
                return cat
        return None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "_id": self.id,
            "name": self.name,
            "owner": self.owner,
            "members": list(self.members),
            "taskCounter": self.task_counter,
            "categories": [c.to_dict() for c in self.categories],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Board":
        return cls(
            id=str(data.get("_id") or data.get("id") or ""),
            name=data.get("name", ""),
            owner=data.get("owner", ""),
            members=tuple(data.get("members") or ()),
            task_counter=int(data.get("taskCounter") or 0),
            categories=tuple(Category.from_dict(c) for c in data.get("categories") or ()),
            created_at=data.get("createdAt"),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True)
class BoardState:
    """
    All containers of the open board and their ordered task lists.

    The container mapping is read-only; use transform.apply_move() to
    derive a new state.
    """

    board: Board
    tasks_by_container: Mapping[str, Tuple[Task, ...]]

    def __post_init__(self):
        frozen = MappingProxyType({k: tuple(v) for k, v in self.tasks_by_container.items()})
        object.__setattr__(self, "tasks_by_container", frozen)

    @property
    def board_id(self) -> str:
        return self.board.id

    def tasks_in(self, container_id: str) -> Tuple[Task, ...]:
        return self.tasks_by_container.get(container_id, ())

    def container_ids(self) -> List[str]:
        ids = [c.id for c in self.board.categories]
        ids.extend(k for k in self.tasks_by_container if k not in ids)
        return ids

    def container_name(self, container_id: str) -> str:
        cat = self.board.category(container_id)
        if cat:
            return cat.name
        return UNASSIGNED_NAME if container_id == UNASSIGNED_ID else ""

    def task_ids(self) -> List[str]:
        """Every task id on the board, in container order."""
        return [t.task_id for cid in self.container_ids() for t in self.tasks_in(cid)]

    def columns(self) -> List[Category]:
        """Display columns, left to right, without the unassigned container."""
        cats = [c for c in self.board.categories if not c.is_unassigned]
        return sorted(cats, key=lambda c: c.order)

    def inbox(self) -> Tuple[Task, ...]:
        for cat in self.board.categories:
            if cat.is_unassigned:
                return self.tasks_in(cat.id)
        return self.tasks_in(UNASSIGNED_ID)

    def with_containers(self, changes: Mapping[str, Tuple[Task, ...]]) -> "BoardState":
        merged = dict(self.tasks_by_container)
        merged.update(changes)
        return BoardState(board=self.board, tasks_by_container=merged)

    def check_integrity(self) -> None:
        """Raise BoardIntegrityError if a task id appears more than once."""
        seen: Dict[str, str] = {}
        for cid in self.container_ids():
            for task in self.tasks_in(cid):
                if task.task_id in seen:
                    raise BoardIntegrityError(
                        f"Task {task.task_id} is in both {seen[task.task_id]} and {cid}"
                    )
                seen[task.task_id] = cid

    def to_dict(self) -> Dict[str, Any]:
        return {
            "board": self.board.to_dict(),
            "tasksByCategory": {
                cid: [t.to_dict() for t in self.tasks_in(cid)] for cid in self.container_ids()
            },
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BoardState":
        """Build from a board fetch payload ({board, tasksByCategory})."""
        board = Board.from_dict(data.get("board") or {})
        raw = data.get("tasksByCategory") or {}
        containers: Dict[str, Tuple[Task, ...]] = {c.id: () for c in board.categories}
        for cid, items in raw.items():
            name = board.category(cid).name if board.category(cid) else (
                UNASSIGNED_NAME if cid == UNASSIGNED_ID else ""
            )
            tasks = []
            for item in items or ():
                task = Task.from_dict(item)
                # Membership is defined by the list the task sits in
                if task.container_id != cid or (name and task.container_name != name):
                    task = _relocated(task, cid, name or task.container_name)
                tasks.append(task)
            containers[cid] = tuple(tasks)
        state = cls(board=board, tasks_by_container=containers)
        state.check_integrity()
        return state


def _relocated(task: Task, container_id: str, container_name: str) -> Task:
    return replace(task, container_id=container_id, container_name=container_name)


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Gestures and intents
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


@dataclass(frozen=True)
class DragGesture:
    """Raw drag event: the dragged card and whatever it is over (task id, container id or None)."""
    active_id: str
    over_id: Optional[str] = None


@dataclass(frozen=True)
class MoveIntent:
    """A resolved relocation request. target_index None means append."""
    task_id: str
    source_container_id: str
    target_container_id: str
    target_index: Optional[int] = None

    @property
    def is_reorder(self) -> bool:
        return self.source_container_id == self.target_container_id


@dataclass(frozen=True)
class MoveTaskRequest:
    """Payload of the backend move call."""
    task_id: str
    board_id: str
    source_container_id: str
    target_container_id: str
    target_container_name: str

    def to_payload(self) -> Dict[str, str]:
        return {
            "taskId": self.task_id,
            "boardId": self.board_id,
            "sourceContainerId": self.source_container_id,
            "targetContainerId": self.target_container_id,
            "targetContainerName": self.target_container_name,
        }

    @classmethod
    def from_payload(cls, data: Dict[str, Any]) -> "MoveTaskRequest":
        return cls(
            task_id=data.get("taskId", ""),
            board_id=data.get("boardId", ""),
            source_container_id=data.get("sourceContainerId", ""),
            target_container_id=data.get("targetContainerId", ""),
            target_container_name=data.get("targetContainerName", ""),
        )


@dataclass(frozen=True)
class MoveResult:
    """Outcome of a backend move call."""
    ok: bool
    reason: str = ""

    @classmethod
    def success(cls) -> "MoveResult":
        return cls(ok=True)

    @classmethod
    def failure(cls, reason: str) -> "MoveResult":
        return cls(ok=False, reason=reason or "Move rejected")


# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━
# Move state machine
# ━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━━


class MoveState(Enum):
    """States a single drag-and-drop move passes through."""
    IDLE = "idle"                  # Drag started, nothing written yet
    PREVIEWING = "previewing"      # Cosmetic drag-over writes only
    COMMITTED = "committed"        # Optimistic write done, backend call in flight
    CONFIRMED = "confirmed"        # Backend accepted the move
    ROLLED_BACK = "rolled_back"    # Backend rejected, snapshot restored

    @classmethod
    def from_str(cls, value: str) -> "MoveState":
        try:
            return cls[value.upper()]
        except KeyError:
            return cls.IDLE


ALLOWED_TRANSITIONS = {
    MoveState.IDLE: [MoveState.PREVIEWING, MoveState.COMMITTED],
    MoveState.PREVIEWING: [MoveState.PREVIEWING, MoveState.COMMITTED],
    MoveState.COMMITTED: [MoveState.CONFIRMED, MoveState.ROLLED_BACK],
    MoveState.CONFIRMED: [],     # Terminal
    MoveState.ROLLED_BACK: [],   # Terminal
}


@dataclass
class Move:
    """One drag gesture and, once committed, its in-flight record."""

    task_id: str
    origin_container_id: str = ""
    origin_index: int = 0
    state: MoveState = MoveState.IDLE
    history: List[Dict[str, Any]] = field(default_factory=list)

    # Set at commit time
    optimistic_id: Optional[str] = None
    intent: Optional[MoveIntent] = None
    snapshot: Optional[BoardState] = None
    request: Optional[MoveTaskRequest] = None
    failure_reason: str = ""

    @property
    def previewed(self) -> bool:
        return any(h["to_state"] == MoveState.PREVIEWING.value for h in self.history)

    @property
    def is_settled(self) -> bool:
        return self.state in (MoveState.CONFIRMED, MoveState.ROLLED_BACK)

    def transition_to(self, new_state: MoveState, reason: str = "") -> bool:
        """Attempt a state transition. Returns True if successful."""
        if new_state not in ALLOWED_TRANSITIONS.get(self.state, []):
            return False
        self.history.append({
            "from_state": self.state.value,
            "to_state": new_state.value,
            "reason": reason,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        })
        self.state = new_state
        return True
