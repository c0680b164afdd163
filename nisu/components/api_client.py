"""
Client for the NISU backend (notebooks, playlists, progress).

Requests go through Playwright's APIRequestContext, the same HTTP stack the
browser automation uses.
"""
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Optional

from playwright.sync_api import APIRequestContext, APIResponse, Error as PlaywrightError

from nisu.components.errors import ApiError, TransportError, UnauthorizedError
from nisu.components.models import NotebookSummary, ProgressRecord, ProgressUpdate
from nisu.components.session import SessionManager
from nisu.components.utils import api_url

if TYPE_CHECKING:
    from playwright.sync_api import Playwright
    from nisu.base_config.base_config import BaseConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PlaylistResponse:
    """Body of GET /students/notebooks/{nameOrId}/playlist."""
    playlist: list[dict[str, Any]]
    notebook_id: Optional[str] = None


class ApiClient:
    """Bearer-authenticated calls to the backend collaborator."""

    def __init__(
        self,
        request: APIRequestContext,
        sessions: SessionManager,
        api_base: str,
        timeout_ms: int = 30_000,
    ):
        self.request = request
        self.sessions = sessions
        self.api_base = api_base
        self.timeout_ms = timeout_ms

    def _headers(self) -> dict[str, str]:
        session = self.sessions.require()
        return {"Authorization": f"Bearer {session.token}"}

    def _check(self, resp: APIResponse, what: str) -> Any:
        """Return the JSON body or raise the matching ApiError."""
        if resp.status in (401, 403):
            raise UnauthorizedError(f"{what}: {resp.text()}", status=resp.status)
        if not resp.ok:
            raise ApiError(f"Failed to {what}: {resp.text()}", status=resp.status)
        try:
            return resp.json()
        except (PlaywrightError, ValueError) as e:
            raise ApiError(f"Failed to {what}: invalid JSON ({e})", status=resp.status)

    def _get(self, url: str, what: str) -> Any:
        headers = self._headers()
        try:
            resp = self.request.get(url, headers=headers, timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise TransportError(f"Failed to {what}: {e}") from e
        return self._check(resp, what)

    def _post(self, url: str, body: dict[str, Any], what: str) -> Any:
        headers = self._headers()
        headers["Content-Type"] = "application/json"
        try:
            resp = self.request.post(url, data=body, headers=headers, timeout=self.timeout_ms)
        except PlaywrightError as e:
            raise TransportError(f"Failed to {what}: {e}") from e
        return self._check(resp, what)

    def fetch_notebooks(self) -> list[NotebookSummary]:
        """Notebooks visible to the signed-in student."""
        data = self._get(api_url(self.api_base, "students", "notebooks"), "fetch notebooks")
        notebooks = []
        for raw in (data or {}).get("notebooks") or []:
            try:
                notebooks.append(NotebookSummary.from_dict(raw))
            except (KeyError, TypeError) as e:
                logger.warning("Skipping malformed notebook entry %r: %s", raw, e)
        return notebooks

    def fetch_playlist(self, notebook: str) -> PlaylistResponse:
        """
        Playlist of one notebook.

        Args:
            notebook: Notebook name or id; the backend accepts either
        """
        url = api_url(self.api_base, "students", "notebooks", notebook, "playlist")
        data = self._get(url, "fetch playlist") or {}
        playlist = data.get("playlist") or []
        if not isinstance(playlist, list):
            raise ApiError(f"Failed to fetch playlist: 'playlist' is not a list ({playlist!r})")
        notebook_id = data.get("notebookId")
        return PlaylistResponse(
            playlist=playlist,
            notebook_id=str(notebook_id) if notebook_id else None,
        )

    def post_progress(self, update: ProgressUpdate) -> ProgressRecord:
        """Upsert one completion flag; returns the record the backend now holds."""
        url = api_url(self.api_base, "students", "progress")
        data = self._post(url, update.to_payload(), "update progress") or {}
        if data.get("success") is False:
            raise ApiError(f"Failed to update progress: {data.get('error') or data}")
        key = update.notebook_id or update.notebook_name or ""
        return ProgressRecord.from_items(key, data.get("completedItems") or [])


def create_api_client(playwright: "Playwright", cfg: "BaseConfig", sessions: SessionManager) -> ApiClient:
    """Build an ApiClient with its own request context."""
    request = playwright.request.new_context()
    return ApiClient(request, sessions, cfg.api_base, timeout_ms=cfg.request_timeout_ms)
