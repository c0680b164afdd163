"""
Task executor: performs one playlist task against the live notebook page.

Per task: idle -> dispatching -> awaiting_readiness -> done | failed -> idle.
Failures are logged, never raised; the completion callback always runs, so
the playlist keeps moving even when the page does not cooperate.
"""
import logging
from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Callable, Optional

from playwright.sync_api import ElementHandle, Error as PlaywrightError, Page

from nisu.components.media import is_audio_url, show_media_player, transform_media_url
from nisu.components.models import Task, TaskKind
from nisu.components.utils import ensure_scheme, poll_until

if TYPE_CHECKING:
    from nisu.base_config.base_config import BaseConfig

logger = logging.getLogger(__name__)


class ExecutorState(str, Enum):
    IDLE = "idle"
    DISPATCHING = "dispatching"
    AWAITING_READINESS = "awaiting_readiness"
    DONE = "done"
    FAILED = "failed"


@dataclass(frozen=True)
class ExecutionResult:
    task_id: str
    state: ExecutorState
    detail: str = ""

    @property
    def succeeded(self) -> bool:
        return self.state is ExecutorState.DONE


CompletionCallback = Callable[[ExecutionResult], None]


class TaskExecutor:
    """
    Runs tasks on a Playwright page.

    Args:
        page: The notebook page
        cfg: Selectors and timing
        sleep: Waits N milliseconds; defaults to page.wait_for_timeout, which
               keeps Playwright's event loop running while we wait
        open_url: Opens a URL in a new browsing context; defaults to a new
                  page in the same browser context
    """

    def __init__(
        self,
        page: Page,
        cfg: "BaseConfig",
        sleep: Optional[Callable[[float], None]] = None,
        open_url: Optional[Callable[[str], None]] = None,
    ):
        self.page = page
        self.cfg = cfg
        self._sleep = sleep or page.wait_for_timeout
        self._open_url = open_url or self._open_in_new_page
        self.state = ExecutorState.IDLE

    def execute(self, task: Task, on_complete: Optional[CompletionCallback] = None) -> ExecutionResult:
        """
        Perform one task and report the outcome.

        Args:
            task: The task at the playlist cursor
            on_complete: Invoked exactly once with the result, in every outcome

        Returns:
            The same ExecutionResult handed to on_complete
        """
        self.state = ExecutorState.DISPATCHING
        logger.info("Executing task %s (%s)", task.id, task.raw_kind or task.kind)

        try:
            result = self._dispatch(task)
            if result.succeeded:
                self._sleep(self.cfg.settle_delay_ms)
        except PlaywrightError as e:
            logger.error("Task %s failed: %s", task.id, e)
            result = self._fail(task, f"page error: {e}")

        self.state = ExecutorState.IDLE
        if on_complete is not None:
            on_complete(result)
        return result

    def _dispatch(self, task: Task) -> ExecutionResult:
        kind = task.kind
        if kind is TaskKind.PROMPT or kind is TaskKind.QUIZ:
            return self._submit_text(task, self.cfg.sel_query_input, self.cfg.sel_query_submit)
        if kind is TaskKind.ASSIGNMENT:
            return self._submit_text(task, self.cfg.sel_assignment_input, self.cfg.sel_assignment_submit)
        if kind is TaskKind.WEBSITE:
            return self._open_website(task)
        if kind is TaskKind.MULTIMEDIA:
            return self._show_media(task)

        logger.error("Unknown task type %r for task %s, skipping", task.raw_kind, task.id)
        return self._fail(task, f"unknown task type {task.raw_kind!r}")

    def _done(self, task: Task, detail: str = "") -> ExecutionResult:
        self.state = ExecutorState.DONE
        return ExecutionResult(task.id, ExecutorState.DONE, detail)

    def _fail(self, task: Task, detail: str) -> ExecutionResult:
        self.state = ExecutorState.FAILED
        return ExecutionResult(task.id, ExecutorState.FAILED, detail)

    def _query_first(self, selectors: tuple[str, ...]) -> Optional[ElementHandle]:
        for selector in selectors:
            element = self.page.query_selector(selector)
            if element is not None:
                return element
        return None

    def _ready_button(self, selectors: tuple[str, ...]) -> Optional[ElementHandle]:
        """First submit control that is present and enabled."""
        for selector in selectors:
            element = self.page.query_selector(selector)
            if element is not None and element.is_enabled():
                return element
        return None

    def _submit_text(self, task: Task, input_selectors: tuple[str, ...],
                     submit_selectors: tuple[str, ...]) -> ExecutionResult:
        box = self._query_first(input_selectors)
        if box is None:
            logger.error("Input box not found for task %s (%s)", task.id, task.kind.value)
            return self._fail(task, "input not found")

        # fill() clears the box and fires the input event the page listens for
        box.fill(task.payload)

        self.state = ExecutorState.AWAITING_READINESS
        button = poll_until(
            lambda: self._ready_button(submit_selectors),
            interval_ms=self.cfg.poll_interval_ms,
            attempts=self.cfg.poll_attempts,
            sleep=self._sleep,
        )
        if button is None:
            logger.error("Submit button not found or still disabled after timeout (task %s)", task.id)
            return self._fail(task, "submit timeout")

        button.click()
        return self._done(task)

    def _open_website(self, task: Task) -> ExecutionResult:
        url = ensure_scheme(task.payload)
        self._open_url(url)
        return self._done(task, url)

    def _open_in_new_page(self, url: str) -> None:
        new_page = self.page.context.new_page()
        new_page.goto(url)

    def _show_media(self, task: Task) -> ExecutionResult:
        embed_url = transform_media_url(task.payload)
        logger.info("Embeddable media URL: %s", embed_url)
        audio = is_audio_url(task.payload) or is_audio_url(embed_url)
        show_media_player(self.page, embed_url, audio)
        return self._done(task, embed_url)
