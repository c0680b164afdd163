"""
End-to-end study session.

idle -> resolving_notebook -> merging -> (executing_task -> syncing)* ->
all_complete | awaiting_user

A trigger (overlay click) is only accepted while the session is at rest;
clicks that arrive while a task runs are ignored, so two tasks never overlap.
"""
import logging
from dataclasses import replace
from enum import Enum
from typing import Any, Callable, Mapping, Optional

from nisu.components.api_client import ApiClient
from nisu.components.errors import ApiError, MalformedTaskError, NotAuthenticatedError, UnauthorizedError
from nisu.components.executor import TaskExecutor
from nisu.components.merge import MergeResult, merge_playlists
from nisu.components.models import DEFAULT_PLAYLIST, NotebookRef, Task
from nisu.components.progress import ProgressSynchronizer
from nisu.components.resolver import NotebookResolver
from nisu.components.session import SessionManager
from nisu.components.store import LocalCache

logger = logging.getLogger(__name__)

MSG_WELCOME = "Click me and we can study together!"
MSG_SIGN_IN = "Please sign in to use NISU"
MSG_OPEN_NOTEBOOK = "Please open a notebook first"
MSG_LOAD_ERROR = "Error loading content. Please try again."
MSG_NO_TASKS = "No tasks available for this notebook."
MSG_MORE = "Click me for more"
MSG_ALL_DONE = "Great job, no tasks left!"
MSG_BUSY = "Still working on the current task..."


class SessionState(str, Enum):
    IDLE = "idle"
    RESOLVING_NOTEBOOK = "resolving_notebook"
    MERGING = "merging"
    EXECUTING_TASK = "executing_task"
    SYNCING = "syncing"
    ALL_COMPLETE = "all_complete"
    AWAITING_USER = "awaiting_user"


AT_REST = (SessionState.IDLE, SessionState.AWAITING_USER, SessionState.ALL_COMPLETE)


class StudySession:
    """
    Drives one notebook page: resolve, merge, execute, sync.

    Args:
        cache: Local cache shared by all components
        sessions: Identity session owner
        resolver: Maps the page URL to a notebook
        api: Backend client
        executor: Runs tasks on the page
        synchronizer: Records task status locally and remotely
        notify: Shows a status line to the student
        page_url: Returns the current page URL
        page_title: Returns the current page title (development fallback only)
    """

    def __init__(
        self,
        cache: LocalCache,
        sessions: SessionManager,
        resolver: NotebookResolver,
        api: ApiClient,
        executor: TaskExecutor,
        synchronizer: ProgressSynchronizer,
        notify: Callable[[str], None],
        page_url: Callable[[], str],
        page_title: Optional[Callable[[], Optional[str]]] = None,
    ):
        self.cache = cache
        self.sessions = sessions
        self.resolver = resolver
        self.api = api
        self.executor = executor
        self.synchronizer = synchronizer
        self.notify = notify
        self.page_url = page_url
        self.page_title = page_title
        self.state = SessionState.IDLE
        self.notebook: Optional[NotebookRef] = None

    @property
    def busy(self) -> bool:
        return self.state not in AT_REST

    def current_notebook(self) -> Optional[NotebookRef]:
        title = self.page_title() if self.page_title and self.resolver.dev_fallback else None
        return self.resolver.resolve(self.page_url(), title)

    def refresh(self) -> Optional[MergeResult]:
        """
        Fetch the notebook's playlist and merge it into the cache.

        Returns:
            The merged playlist, or None when there is nothing to work on
            (no notebook, not signed in, or a task is already running)
        """
        if self.busy:
            logger.info("Refresh skipped, session is %s", self.state.value)
            return None

        self.state = SessionState.RESOLVING_NOTEBOOK
        notebook = self.current_notebook()
        if notebook is None:
            self.notify(MSG_OPEN_NOTEBOOK)
            self.state = SessionState.AWAITING_USER
            return None

        if not self.sessions.is_authenticated:
            self.notify(MSG_SIGN_IN)
            self.state = SessionState.AWAITING_USER
            return None

        self.state = SessionState.MERGING
        cached, _ = self.cache.load_playlist()
        try:
            response = self.api.fetch_playlist(notebook.name)
        except (UnauthorizedError, NotAuthenticatedError) as e:
            logger.warning("Playlist fetch rejected: %s", e)
            self.notify(MSG_SIGN_IN)
            self.state = SessionState.AWAITING_USER
            return None
        except ApiError as e:
            logger.error("Error fetching playlist for %s: %s", notebook.name, e)
            self.notify(MSG_LOAD_ERROR)
            result = replace(merge_playlists(DEFAULT_PLAYLIST, cached), from_fallback=True)
        else:
            if response.notebook_id:
                self.cache.remember_notebook(response.notebook_id, notebook.name)
                notebook = NotebookRef(notebook.name, notebook.id or response.notebook_id)
            result = merge_playlists(response.playlist, cached, fallback=DEFAULT_PLAYLIST)

        if result.from_fallback:
            logger.info("Running default playlist, cached playlist left as is")
        else:
            self.cache.save_playlist(result.playlist, result.cursor)
        self.notebook = notebook
        logger.info("Playlist for %s: %d tasks, cursor %d",
                    notebook.name, len(result.playlist), result.cursor)
        self.state = SessionState.ALL_COMPLETE if result.all_complete else SessionState.AWAITING_USER
        return result

    def advance(self) -> bool:
        """
        Run the next pending task. Called on every overlay click.

        Returns:
            True if a task was executed
        """
        if self.busy:
            logger.info("Trigger ignored, session is %s", self.state.value)
            self.notify(MSG_BUSY)
            return False

        try:
            result = self.refresh()
            if result is None:
                return False
            if not result.playlist:
                self.notify(MSG_NO_TASKS)
                return False
            if result.all_complete:
                self.notify(MSG_ALL_DONE)
                return False

            task = result.current
            self.state = SessionState.EXECUTING_TASK
            self.executor.execute(task)

            self.state = SessionState.SYNCING
            result = self.synchronizer.record_status(self.notebook, result.playlist, task.id, True)

            if result.all_complete:
                self.notify(MSG_ALL_DONE)
                self.state = SessionState.ALL_COMPLETE
            else:
                self.notify(MSG_MORE)
                self.state = SessionState.AWAITING_USER
            return True
        finally:
            if self.busy:
                self.state = SessionState.AWAITING_USER

    def execute_item(self, notebook_name: str, item: "Task | Mapping[str, Any]") -> bool:
        """
        Run a single task pushed from the student interface.

        Refused when the page shows a different notebook.
        """
        if self.busy:
            logger.info("Direct task ignored, session is %s", self.state.value)
            return False

        current = self.current_notebook()
        if current is None or current.name != notebook_name:
            logger.warning("Current notebook %r doesn't match requested %r",
                           current.name if current else None, notebook_name)
            self.notify(f'Please open the "{notebook_name}" notebook in NotebookLM first.')
            return False

        try:
            task = Task.coerce(item)
        except MalformedTaskError as e:
            logger.error("Rejecting task from student interface: %s", e)
            return False

        try:
            self.state = SessionState.EXECUTING_TASK
            self.executor.execute(task)

            self.state = SessionState.SYNCING
            playlist, _ = self.cache.load_playlist()
            if any(t.id == task.id for t in playlist):
                self.synchronizer.record_status(current, playlist, task.id, True)
            else:
                self.synchronizer.report_completion(current, task.id, True)
            return True
        finally:
            self.state = SessionState.AWAITING_USER
