"""
Work out which notebook the student is looking at.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional
from urllib.parse import parse_qs, unquote, urlparse

from nisu.components.models import LastOpenedNotebook, NotebookRef, NotebookSummary
from nisu.components.store import LocalCache

if TYPE_CHECKING:
    from nisu.components.api_client import ApiClient

logger = logging.getLogger(__name__)

TITLE_SUFFIX = " - NotebookLM"
PLACEHOLDER_TITLES = ("", "NotebookLM", "Untitled notebook")


class UrlShape(str, Enum):
    BY_NAME = "by_name"          # /app/<name>
    BY_ID_AND_NAME = "by_id_and_name"  # /notebooks/<externalId>/<name>
    BY_ID = "by_id"              # /notebook/<externalId>


@dataclass(frozen=True)
class UrlMatch:
    shape: UrlShape
    name: Optional[str] = None
    external_id: Optional[str] = None


def parse_notebook_url(url: str) -> Optional[UrlMatch]:
    """Match a page URL against the known notebook URL shapes."""
    try:
        parts = urlparse(url).path.split("/")
    except ValueError:
        logger.warning("Cannot parse URL %r", url)
        return None

    if len(parts) >= 3 and parts[1] == "app" and parts[2]:
        return UrlMatch(UrlShape.BY_NAME, name=unquote(parts[2]))
    if len(parts) >= 4 and parts[1] == "notebooks" and parts[3]:
        return UrlMatch(
            UrlShape.BY_ID_AND_NAME,
            name=unquote(parts[3]),
            external_id=unquote(parts[2]) or None,
        )
    if len(parts) >= 3 and parts[1] == "notebook" and parts[2]:
        return UrlMatch(UrlShape.BY_ID, external_id=unquote(parts[2]))
    return None


class NotebookResolver:
    """
    Resolves the current page to a NotebookRef.

    Returns None whenever the notebook cannot be determined; callers ask the
    student to open a notebook instead of guessing. Only with `dev_fallback`
    does it fall back to the query string, the page title and finally
    `default_name`.
    """

    def __init__(self, cache: LocalCache, dev_fallback: bool = False,
                 default_name: str = "Sample Biology Notebook"):
        self.cache = cache
        self.dev_fallback = dev_fallback
        self.default_name = default_name

    def resolve(self, page_url: str, page_title: Optional[str] = None) -> Optional[NotebookRef]:
        match = parse_notebook_url(page_url)

        if match is not None and match.name:
            return self._ref_for_name(match.name)

        if match is not None and match.external_id:
            name = self._name_for_external_id(match.external_id)
            if name is not None:
                return self._ref_for_name(name)
            logger.info("Notebook %s not found in cache", match.external_id)
            return None

        if self.dev_fallback:
            return self._dev_guess(page_url, page_title)

        logger.info("No notebook in URL %s", page_url)
        return None

    def _ref_for_name(self, name: str) -> NotebookRef:
        return NotebookRef(name=name, id=self.cache.name_to_id().get(name))

    def _name_for_external_id(self, external_id: str) -> Optional[str]:
        last = self.cache.last_opened()
        if last is not None and last.matches(external_id):
            return last.name
        return self.cache.id_to_name().get(external_id)

    def _dev_guess(self, page_url: str, page_title: Optional[str]) -> NotebookRef:
        query = parse_qs(urlparse(page_url).query)
        if query.get("notebook"):
            return self._ref_for_name(query["notebook"][0])

        if page_title:
            title = page_title.replace(TITLE_SUFFIX, "").strip()
            if title not in PLACEHOLDER_TITLES:
                return self._ref_for_name(title)

        logger.warning("Using default notebook %r (development fallback)", self.default_name)
        return self._ref_for_name(self.default_name)


def refresh_notebook_directory(api: "ApiClient", cache: LocalCache) -> list[NotebookSummary]:
    """Fetch the student's notebooks and remember every id/name pair."""
    notebooks = api.fetch_notebooks()
    for notebook in notebooks:
        cache.remember_notebook(notebook.id, notebook.name)
    return notebooks


def record_opened_notebook(cache: LocalCache, notebook: NotebookSummary,
                           now: Optional[datetime] = None) -> LastOpenedNotebook:
    """Remember the notebook the student just opened."""
    now = now or datetime.now(timezone.utc)
    record = LastOpenedNotebook(
        id=notebook.id,
        name=notebook.name,
        open_time=now.isoformat(),
        id_from_external_system=notebook.id_from_external_system,
    )
    cache.set_last_opened(record)
    cache.remember_notebook(notebook.id, notebook.name)
    return record


def note_opened_page(cache: LocalCache, notebooks: Iterable[NotebookSummary],
                     page_url: str) -> Optional[LastOpenedNotebook]:
    """
    Record the notebook behind an id-only page URL as last opened.

    Args:
        cache: Local cache
        notebooks: The student's notebook directory
        page_url: URL the page just loaded

    Returns:
        The stored record, or None if the URL carries no known notebook id
    """
    match = parse_notebook_url(page_url)
    if match is None or match.name or not match.external_id:
        return None
    for notebook in notebooks:
        if match.external_id in (notebook.id, notebook.id_from_external_system):
            return record_opened_notebook(cache, notebook)
    return None
