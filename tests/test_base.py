import sys

import pytest
from playwright.sync_api import Error as PlaywrightError

from conftest import FakeApi, FakePage
from nisu import notebooklm_run
from nisu.base_config.notebooklm_config import NotebookLMConfig
from nisu.components.base import StudyAssistant, create_assistant
from nisu.components.executor import TaskExecutor
from nisu.components.media import BUBBLE_ID
from nisu.components.models import NotebookSummary
from nisu.components.overlay import OVERLAY_ID, install_overlay, set_bubble_text
from nisu.components.session import UserData
from nisu.components.study_session import MSG_SIGN_IN, MSG_WELCOME


class RecordingSession:
    def __init__(self, error: Exception | None = None) -> None:
        self.refreshed = 0
        self.advanced = 0
        self.error = error

    def refresh(self) -> None:
        self.refreshed += 1

    def advance(self) -> bool:
        self.advanced += 1
        if self.error is not None:
            raise self.error
        return True


@pytest.fixture
def assistant(tmp_path) -> StudyAssistant:
    return create_assistant(NotebookLMConfig(cache_path=tmp_path / "nisu.json"))


def test_install_overlay_passes_ids(page: FakePage) -> None:
    assert install_overlay(page, "nisuAdvance", "hello") is True
    _, arg = page.evaluated[-1]
    assert arg == {"overlayId": OVERLAY_ID, "bubbleId": BUBBLE_ID, "binding": "nisuAdvance", "text": "hello"}


def test_set_bubble_text(page: FakePage) -> None:
    set_bubble_text(page, "Click me for more")
    assert page.evaluated[-1][1] == {"bubbleId": BUBBLE_ID, "text": "Click me for more"}


def test_create_assistant_rejects_unknown_config() -> None:
    with pytest.raises(TypeError):
        create_assistant(object())


def test_build_session_wires_page(assistant: StudyAssistant, page: FakePage) -> None:
    page.url = "https://notebooklm.google.com/app/Biology"
    session = assistant.build_session(page, FakeApi())
    assert isinstance(session.executor, TaskExecutor)
    assert session.executor.page is page
    assert session.current_notebook().name == "Biology"
    assert session.resolver.dev_fallback is False


def test_notify_prints_and_updates_bubble(assistant: StudyAssistant, page: FakePage, capsys) -> None:
    assistant._notify(page, "Great job")
    assert "→ Great job" in capsys.readouterr().out
    assert page.evaluated[-1][1]["text"] == "Great job"


def test_notify_survives_closed_page(assistant: StudyAssistant, page: FakePage) -> None:
    def closed(*_args):
        raise PlaywrightError("Target closed")

    page.evaluate = closed
    assistant._notify(page, "anything")


def test_install_refreshes_once_overlay_is_new(assistant: StudyAssistant, page: FakePage) -> None:
    session = RecordingSession()
    assistant._install(page, session)
    assert session.refreshed == 1
    assert page.evaluated[-1][1]["text"] == MSG_SIGN_IN

    page.evaluate = lambda *_args: False
    assistant._install(page, session)
    assert session.refreshed == 1


def test_install_welcomes_signed_in_student(assistant: StudyAssistant, page: FakePage) -> None:
    assistant.sessions.login("good-token", UserData(email="student@example.com"))
    assistant._install(page, RecordingSession())
    assert page.evaluated[-1][1]["text"] == MSG_WELCOME


def test_trigger_errors_are_reported(assistant: StudyAssistant, capsys) -> None:
    session = RecordingSession(error=RuntimeError("boom"))
    assistant._on_trigger(session)
    assert session.advanced == 1
    assert "⚠ failed: boom" in capsys.readouterr().out


def test_ensure_logged_in_restores_session(assistant: StudyAssistant, capsys) -> None:
    assistant.sessions.login("good-token", UserData(email="student@example.com"))
    fresh = StudyAssistant(assistant.cfg)
    fresh.ensure_logged_in()
    assert fresh.sessions.is_authenticated
    assert "Signed in as student@example.com" in capsys.readouterr().out


def test_main_logout_clears_cache(tmp_path, monkeypatch, capsys) -> None:
    monkeypatch.chdir(tmp_path)
    cache_file = tmp_path / ".nisu" / "notebooklm.json"
    cache_file.parent.mkdir()
    cache_file.write_text('{"authToken": "t"}', encoding="utf-8")
    monkeypatch.setattr(sys, "argv", ["nisu", "--logout"])

    notebooklm_run.main()

    assert not cache_file.exists()
    assert "Signed out" in capsys.readouterr().out


def test_install_records_id_only_notebook(assistant: StudyAssistant, page: FakePage) -> None:
    assistant.notebooks = [NotebookSummary("101", "Biology", "ext-bio")]
    page.url = "https://notebooklm.google.com/notebook/ext-bio"
    assistant._install(page, RecordingSession())
    assert assistant.cache.last_opened().name == "Biology"
