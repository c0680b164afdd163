"""
Configuration for NotebookLM.
"""
from dataclasses import dataclass
from pathlib import Path

from nisu.base_config.base_config import BaseConfig


@dataclass(frozen=True)
class NotebookLMConfig(BaseConfig):
    """
    Configuration for the NotebookLM host.
    Extends BaseConfig with NotebookLM-specific settings.
    """
    # Base URLs / Navigation
    base: str = "https://notebooklm.google.com"
    start_path: str = "/"
    api_base: str = "https://ai-dot-funkeai.uc.r.appspot.com/api"

    # Query box selectors (NotebookLM first, then generic fallbacks)
    sel_query_input: tuple[str, ...] = ("textarea.query-box-input", "textarea")
    sel_query_submit: tuple[str, ...] = (
        'button[type="submit"]',
        "button.submit",
        "button[aria-label='Send message']",
    )

    # Runtime / Browser settings
    profile_dir: str = ".pw_profile_notebooklm"   # persistent browser profile (Google login)
    cache_path: Path = Path(".nisu/notebooklm.json")
    headless: bool = False                         # the student works in this window
