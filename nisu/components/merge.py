"""
Merge a freshly fetched playlist with the locally cached one.
"""
import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Union

from nisu.components.errors import MalformedTaskError
from nisu.components.models import Task, TaskStatus, first_pending

logger = logging.getLogger(__name__)

TaskLike = Union[Task, Mapping[str, Any]]


@dataclass(frozen=True)
class MergeResult:
    """
    Working playlist plus the index of the next pending task.

    `from_fallback` marks a playlist built from the default tasks instead of
    the server's; it is run but never replaces the cached playlist.
    """
    playlist: tuple[Task, ...]
    cursor: int
    from_fallback: bool = False

    @property
    def current(self) -> Optional[Task]:
        if self.cursor < len(self.playlist):
            return self.playlist[self.cursor]
        return None

    @property
    def all_complete(self) -> bool:
        return self.cursor >= len(self.playlist)

    @classmethod
    def of(cls, tasks: Iterable[Task]) -> "MergeResult":
        playlist = tuple(tasks)
        return cls(playlist, first_pending(playlist))


def parse_tasks(items: Optional[Iterable[TaskLike]]) -> list[Task]:
    """
    Parse task descriptors, dropping malformed ones.

    Args:
        items: Raw descriptors (mappings) or Task instances

    Returns:
        Valid tasks in input order
    """
    tasks = []
    for item in items or ():
        try:
            tasks.append(Task.coerce(item))
        except MalformedTaskError as e:
            logger.warning("Dropping malformed playlist item: %s", e)
    return tasks


def merge_playlists(
    remote: Optional[Iterable[TaskLike]],
    cached: Optional[Iterable[TaskLike]],
    fallback: Optional[Iterable[TaskLike]] = None,
) -> MergeResult:
    """
    Reconcile the server playlist with the cached one.

    Server order wins. A task already cached is emitted as cached (its status
    survives the refresh); a new one starts pending.

    Args:
        remote: Playlist as returned by the backend
        cached: Playlist from the local cache
        fallback: Used instead of `remote` when the server playlist is empty

    Returns:
        MergeResult with the merged playlist and its cursor
    """
    remote_tasks = parse_tasks(remote)
    from_fallback = False
    if not remote_tasks and fallback is not None:
        logger.warning("Empty playlist received, using fallback playlist")
        remote_tasks = parse_tasks(fallback)
        from_fallback = True

    stored: dict[str, Task] = {}
    for task in parse_tasks(cached):
        stored.setdefault(task.id, task)

    merged = []
    for task in remote_tasks:
        if task.id in stored:
            merged.append(stored[task.id])
        else:
            merged.append(task.with_status(TaskStatus.PENDING))

    return MergeResult(tuple(merged), first_pending(merged), from_fallback)
