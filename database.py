"""JSON file storage for the pagination cursor and the per-date play archives."""

import json
import os
from typing import Any, Dict, List, Optional

from models import PayloadError, PlayEvent


class JsonDocument:
    """A JSON file that is always read and written whole."""

    def __init__(self, path: str):
        self.path = path

    def exists(self) -> bool:
        return os.path.exists(self.path)

    def read(self) -> Optional[Any]:
        """Return the parsed document, or None if the file does not exist."""
        if not self.exists():
            return None
        with open(self.path, 'r', encoding='utf-8') as f:
            return json.load(f)

    def write(self, data: Any):
        """Replace the file contents with ``data``."""
        with open(self.path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2)


class CursorStore:
    """Stores the last consumed recently-played cursor."""

    def __init__(self, path: str = "info-schema.json"):
        self.document = JsonDocument(path)
        self.data: Dict[str, Any] = {}

    def read_after(self) -> Optional[str]:
        """Load the document and return ``cursor.after`` if present."""
        data = self.document.read()
        self.data = data if isinstance(data, dict) else {}
        cursor = self.data.get("cursor")
        if not isinstance(cursor, dict):
            return None
        return cursor.get("after")

    def save_after(self, after: Optional[str]):
        """Write the document back, replacing the cursor when ``after`` is set."""
        if after:
            self.data["cursor"] = {"after": after}
        self.document.write(self.data)


class DateArchive:
    """One ``<date>.json`` file per calendar date, each holding ``{"items": [...]}``."""

    def __init__(self, directory: str):
        self.directory = directory
        os.makedirs(directory, exist_ok=True)

    def path_for(self, date: str) -> str:
        return os.path.join(self.directory, f"{date}.json")

    def append(self, date: str, events: List[PlayEvent]) -> str:
        """Append ``events`` to the archive for ``date`` and return its path.

        Events are added at the tail as given. Nothing is deduplicated.
        """
        path = self.path_for(date)
        document = JsonDocument(path)
        data = document.read()

        new_items = [event.to_dict() for event in events]
        if data:
            items = _items_of(data, path)
            items.extend(new_items)
        else:
            data = {"items": new_items}

        document.write(data)
        return path

    def load(self, path: str) -> List[Dict[str, Any]]:
        """Return the raw items stored at ``path``."""
        data = JsonDocument(path).read()
        if data is None:
            raise FileNotFoundError(f"No archive at {path}")
        return _items_of(data, path)

    def replace(self, path: str, items: List[Dict[str, Any]]):
        """Overwrite the items stored at ``path``, keeping any other keys."""
        document = JsonDocument(path)
        data = document.read()
        if not isinstance(data, dict):
            data = {}
        data["items"] = items
        document.write(data)


def _items_of(data: Any, path: str) -> List[Dict[str, Any]]:
    if not isinstance(data, dict):
        raise PayloadError(f"{path}: archive should be an object")
    items = data.get("items")
    if not isinstance(items, list):
        raise PayloadError(f"{path}: 'items' should be a list")
    return items
