"""
Progress synchronizer: the only place a task's status changes.

Completion is pushed to the backend first, then the changed tasks are
written into the cached playlist by id, leaving entries of other playlists
in place. A failed push is logged and the local state still advances.
"""
import logging
from typing import TYPE_CHECKING, Optional, Sequence

from nisu.components.errors import ApiError, NotAuthenticatedError
from nisu.components.merge import MergeResult
from nisu.components.models import NotebookRef, ProgressRecord, ProgressUpdate, Task, TaskStatus
from nisu.components.store import LocalCache

if TYPE_CHECKING:
    from nisu.components.api_client import ApiClient

logger = logging.getLogger(__name__)


class ProgressSynchronizer:

    def __init__(self, api: "ApiClient", cache: LocalCache):
        self.api = api
        self.cache = cache

    def resolve_id(self, notebook: NotebookRef) -> Optional[str]:
        return notebook.id or self.cache.name_to_id().get(notebook.name)

    def report_completion(self, notebook: NotebookRef, task_id: str,
                          completed: bool) -> Optional[ProgressRecord]:
        """
        Send one completion flag to the backend.

        Without a known id the update is keyed by name only; the backend
        resolves it. Never raises.

        Returns:
            The record acknowledged by the backend, or None if the update was lost
        """
        update = ProgressUpdate(
            item_id=task_id,
            completed=completed,
            notebook_id=self.resolve_id(notebook),
            notebook_name=notebook.name,
        )
        try:
            record = self.api.post_progress(update)
        except (ApiError, NotAuthenticatedError) as e:
            logger.error("Error updating progress for %s/%s: %s", notebook.name, task_id, e)
            return None
        logger.info("Progress updated: %s/%s completed=%s", notebook.name, task_id, completed)
        return record

    def record_status(self, notebook: NotebookRef, playlist: Sequence[Task],
                      task_id: str, completed: bool = True) -> MergeResult:
        """
        Set one task's status, sync it and persist the playlist.

        Args:
            notebook: Notebook the playlist belongs to
            playlist: Current working playlist
            task_id: Task whose status changes
            completed: New status

        Returns:
            The updated playlist and cursor
        """
        status = TaskStatus.COMPLETE if completed else TaskStatus.PENDING
        if not any(t.id == task_id for t in playlist):
            logger.warning("Task %s is not in the playlist of %s", task_id, notebook.name)
            return MergeResult.of(playlist)

        result = MergeResult.of(
            t.with_status(status) if t.id == task_id else t for t in playlist
        )
        self.report_completion(notebook, task_id, completed)
        self.cache.update_playlist(result.playlist)
        return result
