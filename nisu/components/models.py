"""
Data model for playlists, notebooks and progress records.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Iterable, Mapping, Optional, Sequence

from nisu.components.errors import MalformedTaskError


class TaskKind(str, Enum):
    """The five kinds of learning task."""
    PROMPT = "prompt"
    WEBSITE = "website"
    MULTIMEDIA = "multimedia"
    QUIZ = "quiz"
    ASSIGNMENT = "assignment"

    @classmethod
    def parse(cls, raw: Optional[str]) -> Optional["TaskKind"]:
        """
        Normalize a kind string as received from the backend.

        Trims and lowercases; anything mentioning "multimedia" counts as
        multimedia. Returns None for values outside the five kinds.
        """
        if not raw:
            return None
        value = raw.strip().lower()
        try:
            return cls(value)
        except ValueError:
            pass
        if "multimedia" in value:
            return cls.MULTIMEDIA
        return None


class TaskStatus(str, Enum):
    PENDING = "pending"
    COMPLETE = "complete"


@dataclass(frozen=True)
class Task:
    """
    One task descriptor of a playlist.

    `kind` is None when the backend sent a kind this version does not know;
    the raw string is kept in `raw_kind`.
    """
    id: str
    kind: Optional[TaskKind]
    payload: str = ""
    status: TaskStatus = TaskStatus.PENDING
    raw_kind: str = ""

    @property
    def is_complete(self) -> bool:
        return self.status is TaskStatus.COMPLETE

    def with_status(self, status: TaskStatus) -> "Task":
        return replace(self, status=status)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Task":
        """
        Build a task from its wire shape.

        Accepts {id, type, command, status?} as the backend and the cache store
        it, and {id, kind, payload} as well.

        Raises:
            MalformedTaskError: If id or kind is missing
        """
        if not isinstance(data, Mapping):
            raise MalformedTaskError(f"task descriptor is not an object: {data!r}")

        task_id = data.get("id")
        if task_id is None or str(task_id).strip() == "":
            raise MalformedTaskError(f"task descriptor without id: {dict(data)!r}")

        raw_kind = data.get("type", data.get("kind"))
        if not isinstance(raw_kind, str) or not raw_kind.strip():
            raise MalformedTaskError(f"task {task_id!r} has no kind")

        payload = data.get("command", data.get("payload"))
        try:
            status = TaskStatus(data.get("status") or TaskStatus.PENDING.value)
        except ValueError:
            status = TaskStatus.PENDING

        return cls(
            id=str(task_id),
            kind=TaskKind.parse(raw_kind),
            payload="" if payload is None else str(payload),
            status=status,
            raw_kind=raw_kind,
        )

    @classmethod
    def coerce(cls, item: "Task | Mapping[str, Any]") -> "Task":
        if isinstance(item, Task):
            return item
        return cls.from_dict(item)

    def to_dict(self) -> dict[str, str]:
        """Cache / wire shape. Unknown kinds keep their original string."""
        return {
            "id": self.id,
            "type": self.kind.value if self.kind else self.raw_kind,
            "command": self.payload,
            "status": self.status.value,
        }


def first_pending(tasks: Sequence[Task]) -> int:
    """Index of the first task that is not complete, or len(tasks)."""
    for index, task in enumerate(tasks):
        if not task.is_complete:
            return index
    return len(tasks)


# Used when a notebook has no playlist yet
DEFAULT_PLAYLIST: tuple[Task, ...] = (
    Task(id="default1", kind=TaskKind.PROMPT,
         payload="What is the subject of this notebook?", raw_kind="Prompt"),
    Task(id="default2", kind=TaskKind.PROMPT,
         payload="Please summarize the key concepts.", raw_kind="Prompt"),
)


@dataclass(frozen=True)
class NotebookRef:
    """A notebook as far as the current page lets us identify it."""
    name: str
    id: Optional[str] = None


@dataclass(frozen=True)
class NotebookSummary:
    """One entry of GET /students/notebooks."""
    id: str
    name: str
    id_from_external_system: Optional[str] = None
    created_by: Optional[str] = None
    updated_at: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "NotebookSummary":
        external = data.get("idFromExternalSystem", data.get("idFromNotebookLM"))
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            id_from_external_system=str(external) if external else None,
            created_by=data.get("createdBy"),
            updated_at=data.get("updatedAt"),
        )


@dataclass(frozen=True)
class LastOpenedNotebook:
    """The notebook the student opened last, cached as lastOpenedNotebook."""
    id: str
    name: str
    open_time: str
    id_from_external_system: Optional[str] = None

    def matches(self, external_id: str) -> bool:
        """True if the id from a page URL refers to this notebook."""
        return external_id in (self.id, self.id_from_external_system)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "LastOpenedNotebook":
        external = data.get("idFromExternalSystem", data.get("idFromNotebookLM"))
        return cls(
            id=str(data["id"]),
            name=str(data["name"]),
            open_time=str(data.get("openTime", "")),
            id_from_external_system=str(external) if external else None,
        )

    def to_dict(self) -> dict[str, str]:
        data = {"id": self.id, "name": self.name, "openTime": self.open_time}
        if self.id_from_external_system:
            data["idFromExternalSystem"] = self.id_from_external_system
        return data


@dataclass(frozen=True)
class ProgressUpdate:
    """Body of POST /students/progress."""
    item_id: str
    completed: bool
    notebook_id: Optional[str] = None
    notebook_name: Optional[str] = None

    def to_payload(self) -> dict[str, Any]:
        payload: dict[str, Any] = {"itemId": self.item_id, "completed": self.completed}
        if self.notebook_id:
            payload["notebookId"] = self.notebook_id
        if self.notebook_name:
            payload["notebookName"] = self.notebook_name
        return payload


@dataclass(frozen=True)
class ProgressRecord:
    """
    Completed task ids of one student in one notebook.

    `apply` is an idempotent upsert: completing an id twice, or removing an
    absent one, leaves the record unchanged.
    """
    notebook_key: str
    completed_items: tuple[str, ...] = field(default_factory=tuple)

    def apply(self, item_id: str, completed: bool) -> "ProgressRecord":
        if completed:
            if item_id in self.completed_items:
                return self
            return replace(self, completed_items=self.completed_items + (item_id,))
        if item_id not in self.completed_items:
            return self
        return replace(
            self,
            completed_items=tuple(i for i in self.completed_items if i != item_id),
        )

    @classmethod
    def from_items(cls, notebook_key: str, items: Iterable[Any]) -> "ProgressRecord":
        return cls(notebook_key, tuple(dict.fromkeys(str(i) for i in items)))
