from __future__ import annotations

import json
import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable
from urllib.parse import unquote

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from nisu.base_config.notebooklm_config import NotebookLMConfig  # noqa: E402
from nisu.components.api_client import PlaylistResponse  # noqa: E402
from nisu.components.errors import ApiError  # noqa: E402
from nisu.components.models import NotebookSummary, ProgressRecord, ProgressUpdate  # noqa: E402
from nisu.components.session import SessionManager, UserData  # noqa: E402
from nisu.components.store import LocalCache  # noqa: E402


class FakeElement:
    def __init__(self, enabled: bool = True, on_click: Callable[[], None] | None = None) -> None:
        self.enabled = enabled
        self.value = ""
        self.clicks = 0
        self.on_click = on_click

    def fill(self, value: str) -> None:
        self.value = value

    def is_enabled(self) -> bool:
        return self.enabled

    def click(self) -> None:
        self.clicks += 1
        if self.on_click is not None:
            self.on_click()


class FakeContext:
    def __init__(self) -> None:
        self.opened: list[str] = []

    def new_page(self) -> "FakeContext":
        return self

    def goto(self, url: str) -> None:
        self.opened.append(url)


class FakePage:
    """The slice of playwright.sync_api.Page the components use."""

    def __init__(self, url: str = "https://notebooklm.google.com/", title: str = "NotebookLM") -> None:
        self.url = url
        self._title = title
        self.elements: dict[str, FakeElement] = {}
        self.waits: list[float] = []
        self.evaluated: list[tuple[str, Any]] = []
        self.queried: list[str] = []
        self.context = FakeContext()
        self.on_wait: Callable[[int], None] | None = None

    def query_selector(self, selector: str) -> FakeElement | None:
        self.queried.append(selector)
        return self.elements.get(selector)

    def wait_for_timeout(self, timeout: float) -> None:
        self.waits.append(timeout)
        if self.on_wait is not None:
            self.on_wait(len(self.waits))

    def evaluate(self, expression: str, arg: Any = None) -> Any:
        self.evaluated.append((expression, arg))
        return True

    def title(self) -> str:
        return self._title


class FakeResponse:
    def __init__(self, status: int, body: Any = None) -> None:
        self.status = status
        self._body = body

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def json(self) -> Any:
        if isinstance(self._body, str):
            return json.loads(self._body)
        return self._body

    def text(self) -> str:
        return self._body if isinstance(self._body, str) else json.dumps(self._body)


class FakeBackend:
    """
    In-memory backend behind a fake APIRequestContext.

    Progress records are keyed by notebook id (or name) and the token's
    user, and updated with ProgressRecord.apply like the real server.
    """

    def __init__(self, api_base: str = "https://api.test/api") -> None:
        self.api_base = api_base
        self.valid_tokens = {"good-token": "student@example.com"}
        self.notebooks = [
            {"id": "101", "name": "Biology", "idFromExternalSystem": "ext-bio"},
            {"id": "102", "name": "Chemistry"},
        ]
        self.playlists: dict[str, list[dict[str, Any]]] = {}
        self.progress: dict[tuple[str, str], ProgressRecord] = {}
        self.calls: list[tuple[str, str, Any]] = []

    def _user(self, headers: dict[str, str]) -> str | None:
        auth = headers.get("Authorization", "")
        if not auth.startswith("Bearer "):
            return None
        return self.valid_tokens.get(auth[len("Bearer "):])

    def get(self, url: str, headers: dict[str, str] | None = None, timeout: float | None = None) -> FakeResponse:
        self.calls.append(("GET", url, None))
        user = self._user(headers or {})
        if user is None:
            return FakeResponse(401, {"error": "Unauthorized: Invalid token"})
        path = url[len(self.api_base):]
        if path == "/students/notebooks":
            return FakeResponse(200, {"notebooks": self.notebooks})
        parts = path.split("/")
        if len(parts) == 5 and parts[1:3] == ["students", "notebooks"] and parts[4] == "playlist":
            key = unquote(parts[3])
            for nb in self.notebooks:
                if key in (nb["id"], nb["name"]):
                    return FakeResponse(200, {"playlist": self.playlists.get(nb["name"], []),
                                              "notebookId": nb["id"]})
            return FakeResponse(404, {"error": "Notebook not found"})
        return FakeResponse(404, {"error": "Not found"})

    def post(self, url: str, data: Any = None, headers: dict[str, str] | None = None,
             timeout: float | None = None) -> FakeResponse:
        self.calls.append(("POST", url, data))
        user = self._user(headers or {})
        if user is None:
            return FakeResponse(401, {"error": "Unauthorized: Invalid token"})
        if url != self.api_base + "/students/progress":
            return FakeResponse(404, {"error": "Not found"})
        key = data.get("notebookId") or data.get("notebookName")
        record = self.progress.get((key, user), ProgressRecord(key))
        record = record.apply(data["itemId"], data["completed"])
        self.progress[(key, user)] = record
        return FakeResponse(200, {"success": True, "completedItems": list(record.completed_items)})


@dataclass
class FakeApi:
    """Stands in for ApiClient at the component level."""
    playlist: list[dict[str, Any]] = field(default_factory=list)
    notebook_id: str | None = None
    fail_with: ApiError | None = None
    progress_error: ApiError | None = None
    updates: list[ProgressUpdate] = field(default_factory=list)
    records: dict[str, ProgressRecord] = field(default_factory=dict)
    fetched: list[str] = field(default_factory=list)

    def fetch_notebooks(self) -> list[NotebookSummary]:
        return [NotebookSummary(id="101", name="Biology", id_from_external_system="ext-bio")]

    def fetch_playlist(self, notebook: str) -> PlaylistResponse:
        self.fetched.append(notebook)
        if self.fail_with is not None:
            raise self.fail_with
        return PlaylistResponse(playlist=[dict(i) for i in self.playlist], notebook_id=self.notebook_id)

    def post_progress(self, update: ProgressUpdate) -> ProgressRecord:
        self.updates.append(update)
        if self.progress_error is not None:
            raise self.progress_error
        key = update.notebook_id or update.notebook_name or ""
        record = self.records.get(key, ProgressRecord(key)).apply(update.item_id, update.completed)
        self.records[key] = record
        return record


@pytest.fixture
def cfg() -> NotebookLMConfig:
    return NotebookLMConfig(api_base="https://api.test/api")


@pytest.fixture
def cache(tmp_path: Path) -> LocalCache:
    return LocalCache(tmp_path / "cache.json")


@pytest.fixture
def sessions(cache: LocalCache) -> SessionManager:
    manager = SessionManager(cache)
    manager.login("good-token", UserData(email="student@example.com", name="Student"))
    return manager


@pytest.fixture
def page() -> FakePage:
    return FakePage()


@pytest.fixture
def backend() -> FakeBackend:
    return FakeBackend()
