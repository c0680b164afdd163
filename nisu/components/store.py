"""
Local persistent cache, the assistant's counterpart of chrome.storage.local.

One JSON document on disk. Every read goes to the file and every write
replaces whole values, so a read-modify-write never works on a stale copy.
"""
import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Optional, Sequence

from nisu.components.merge import parse_tasks
from nisu.components.models import LastOpenedNotebook, Task, first_pending

logger = logging.getLogger(__name__)

AUTH_TOKEN = "authToken"
USER_DATA = "userData"
PLAYLIST = "playlist"
CURSOR = "cursor"
ID_TO_NAME = "notebookIdToNameMap"
NAME_TO_ID = "notebookNameToIdMap"
LAST_OPENED = "lastOpenedNotebook"


class LocalCache:
    """Key/value store backed by a JSON file."""

    def __init__(self, path: Path | str):
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error("Cache %s unreadable, starting empty: %s", self.path, e)
            return {}
        if not isinstance(data, dict):
            logger.error("Cache %s does not hold an object, starting empty", self.path)
            return {}
        return data

    def _write(self, data: dict[str, Any]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp = tempfile.mkstemp(dir=self.path.parent, prefix=self.path.name, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(data, fh, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)
        except BaseException:
            Path(tmp).unlink(missing_ok=True)
            raise

    def get(self, key: str, default: Any = None) -> Any:
        return self._read().get(key, default)

    def set(self, **values: Any) -> None:
        """Replace the given keys in one write."""
        data = self._read()
        data.update(values)
        self._write(data)

    def remove(self, *keys: str) -> None:
        data = self._read()
        for key in keys:
            data.pop(key, None)
        self._write(data)

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

    # Playlist

    def load_playlist(self) -> tuple[list[Task], int]:
        """Cached playlist and its cursor, recomputed from the statuses."""
        data = self._read()
        tasks = parse_tasks(data.get(PLAYLIST) or [])
        cursor = first_pending(tasks)
        if data.get(CURSOR, cursor) != cursor:
            logger.debug("Stored cursor %r out of date, using %d", data.get(CURSOR), cursor)
        return tasks, cursor

    def save_playlist(self, tasks: Sequence[Task], cursor: int) -> None:
        self.set(**{PLAYLIST: [t.to_dict() for t in tasks], CURSOR: cursor})

    def update_playlist(self, tasks: Sequence[Task]) -> int:
        """
        Write the given tasks into the cached playlist by id.

        Cached entries the given tasks do not name are kept in place; new ids
        are appended. Returns the stored cursor.
        """
        data = self._read()
        updates = {t.id: t for t in tasks}
        merged = [updates.pop(t.id, t) for t in parse_tasks(data.get(PLAYLIST) or [])]
        merged.extend(t for t in tasks if t.id in updates)
        cursor = first_pending(merged)
        data[PLAYLIST] = [t.to_dict() for t in merged]
        data[CURSOR] = cursor
        self._write(data)
        return cursor

    # Notebook id <-> name maps

    def id_to_name(self) -> dict[str, str]:
        return dict(self.get(ID_TO_NAME) or {})

    def name_to_id(self) -> dict[str, str]:
        return dict(self.get(NAME_TO_ID) or {})

    def remember_notebook(self, notebook_id: Optional[str], name: Optional[str]) -> None:
        """Record an id/name pair seen together. Entries are never removed."""
        if not notebook_id or not name:
            return
        data = self._read()
        id_to_name = dict(data.get(ID_TO_NAME) or {})
        name_to_id = dict(data.get(NAME_TO_ID) or {})
        if id_to_name.get(notebook_id) == name and name_to_id.get(name) == notebook_id:
            return
        id_to_name[notebook_id] = name
        name_to_id[name] = notebook_id
        data[ID_TO_NAME] = id_to_name
        data[NAME_TO_ID] = name_to_id
        self._write(data)

    # Last opened notebook

    def last_opened(self) -> Optional[LastOpenedNotebook]:
        raw = self.get(LAST_OPENED)
        if not raw:
            return None
        try:
            return LastOpenedNotebook.from_dict(raw)
        except (KeyError, TypeError) as e:
            logger.warning("Ignoring malformed %s entry: %s", LAST_OPENED, e)
            return None

    def set_last_opened(self, record: LastOpenedNotebook) -> None:
        self.set(**{LAST_OPENED: record.to_dict()})
