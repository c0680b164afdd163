"""
Base configuration for the study assistant.
"""
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class BaseConfig:
    """Base configuration for all notebook hosts."""
    # Base URL of the notebook application
    base: str

    # Entry page opened on start
    start_path: str

    # Backend collaborator (notebooks, playlists, progress)
    api_base: str

    # Query box selectors, tried in order
    sel_query_input: tuple[str, ...] = ("textarea",)
    sel_query_submit: tuple[str, ...] = ('button[type="submit"]',)

    # Assignment selectors, tried in order
    sel_assignment_input: tuple[str, ...] = (".assignment-box", "textarea.assignment-input")
    sel_assignment_submit: tuple[str, ...] = ("button.assignment-submit",)

    # Readiness polling: interval x attempts is the timeout ceiling (~5s)
    poll_interval_ms: int = 100
    poll_attempts: int = 50

    # Pause after a task so the page can update before the next one
    settle_delay_ms: int = 500

    # HTTP timeout for backend calls
    request_timeout_ms: int = 30_000

    # Local cache (token, playlist, cursor, notebook maps)
    cache_path: Path = Path(".nisu/cache.json")

    # Runtime / Browser settings
    profile_dir: str = ".pw_profile_nisu"
    headless: bool = False

    # Development only: guess a notebook name when the URL does not identify one
    dev_fallback: bool = False
    default_notebook_name: str = "Sample Biology Notebook"

    # Name of the page binding called by the overlay
    binding_name: str = "nisuAdvance"
