"""
Study assistant runner: opens the notebook host and wires the components.
"""
import logging

from playwright.sync_api import BrowserContext, Error as PlaywrightError, Page, sync_playwright

from nisu.base_config.base_config import BaseConfig
from nisu.components.api_client import ApiClient, create_api_client
from nisu.components.errors import ApiError, NotAuthenticatedError
from nisu.components.executor import TaskExecutor
from nisu.components.models import NotebookSummary
from nisu.components.overlay import install_overlay, set_bubble_text
from nisu.components.progress import ProgressSynchronizer
from nisu.components.resolver import NotebookResolver, note_opened_page, refresh_notebook_directory
from nisu.components.session import SessionManager, prompt_login
from nisu.components.store import LocalCache
from nisu.components.study_session import MSG_SIGN_IN, MSG_WELCOME, StudySession
from nisu.components.utils import full_url

logger = logging.getLogger(__name__)


class StudyAssistant:
    """
    Runs playlists in a persistent browser window.

    The student signs in to the notebook host in that window as usual; every
    click on the overlay runs the next task of the open notebook.
    """

    def __init__(self, cfg: BaseConfig):
        self.cfg = cfg
        self.cache = LocalCache(cfg.cache_path)
        self.sessions = SessionManager(self.cache)
        self.notebooks: list[NotebookSummary] = []

    def ensure_logged_in(self) -> None:
        """Restore the stored session or ask for a token."""
        if self.sessions.load() is not None:
            print(f"✓ Signed in as {self.sessions.current.user.email}")
            return
        print("Not signed in to NISU.")
        prompt_login(self.sessions)

    def build_session(self, page: Page, api: ApiClient) -> StudySession:
        cfg = self.cfg
        return StudySession(
            cache=self.cache,
            sessions=self.sessions,
            resolver=NotebookResolver(self.cache, cfg.dev_fallback, cfg.default_notebook_name),
            api=api,
            executor=TaskExecutor(page, cfg),
            synchronizer=ProgressSynchronizer(api, self.cache),
            notify=lambda text: self._notify(page, text),
            page_url=lambda: page.url,
            page_title=page.title,
        )

    def _notify(self, page: Page, text: str) -> None:
        print(f"  → {text}")
        try:
            set_bubble_text(page, text)
        except PlaywrightError as e:
            logger.debug("Bubble not updated: %s", e)

    def _install(self, page: Page, session: StudySession) -> None:
        note_opened_page(self.cache, self.notebooks, page.url)
        text = MSG_WELCOME if self.sessions.is_authenticated else MSG_SIGN_IN
        try:
            if install_overlay(page, self.cfg.binding_name, text):
                session.refresh()
        except PlaywrightError as e:
            logger.warning("Overlay not installed on %s: %s", page.url, e)

    def _on_trigger(self, session: StudySession) -> None:
        try:
            session.advance()
        except Exception as e:
            logger.exception("Error running next task")
            print(f"  ⚠ failed: {e}")

    def _open_page(self, ctx: BrowserContext) -> Page:
        return ctx.pages[0] if ctx.pages else ctx.new_page()

    def run(self) -> None:
        """Main execution method. Returns when the notebook window is closed."""
        self.ensure_logged_in()
        start_url = full_url(self.cfg.base, self.cfg.start_path)

        with sync_playwright() as p:
            api = create_api_client(p, self.cfg, self.sessions)
            try:
                self.notebooks = refresh_notebook_directory(api, self.cache)
                print(f"Found: {len(self.notebooks)} notebooks")
            except (ApiError, NotAuthenticatedError) as e:
                print(f"  ⚠ could not load notebooks: {e}")

            ctx = p.chromium.launch_persistent_context(
                user_data_dir=self.cfg.profile_dir,
                headless=self.cfg.headless,
            )
            page = self._open_page(ctx)
            session = self.build_session(page, api)

            page.expose_binding(self.cfg.binding_name, lambda source: self._on_trigger(session))
            page.on("load", lambda _: self._install(page, session))

            page.goto(start_url)
            self._install(page, session)
            print(f"Ready: {page.url}")

            try:
                page.wait_for_event("close", timeout=0)
            except PlaywrightError:
                pass

            api.request.dispose()
            ctx.close()


def create_assistant(cfg: BaseConfig) -> StudyAssistant:
    """
    Factory function to create the assistant for a config.

    Raises:
        TypeError: If cfg is not a BaseConfig
    """
    if not isinstance(cfg, BaseConfig):
        raise TypeError(f"Unknown config type: {type(cfg).__name__}")
    return StudyAssistant(cfg)
