import os
import json
import uuid
import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from config import LIBRARY_FILE

logger = logging.getLogger(__name__)

# ==========================================
# Saved Script Library
# ==========================================

DEFAULT_CATEGORIES = [
    "Animation",
    "Text",
    "Shapes",
    "Effects",
    "Camera",
    "Expressions",
    "Utility",
    "Workflow",
    "Other",
]


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _new_id() -> str:
    return uuid.uuid4().hex[:12]


class ScriptLibrary:
    """Saved scripts with categories, search and favorites, stored in one JSON file."""

    def __init__(self, path: str = LIBRARY_FILE):
        self.path = path

    def _read(self) -> Dict[str, Any]:
        if not os.path.exists(self.path):
            return {"scripts": [], "categories": list(DEFAULT_CATEGORIES)}
        try:
            with open(self.path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, ValueError) as e:
            logger.warning("Unreadable script library %s: %s", self.path, e)
            return {"scripts": [], "categories": list(DEFAULT_CATEGORIES)}
        data.setdefault("scripts", [])
        data.setdefault("categories", list(DEFAULT_CATEGORIES))
        return data

    def _write(self, library: Dict[str, Any]) -> None:
        os.makedirs(os.path.dirname(self.path) or ".", exist_ok=True)
        with open(self.path, "w", encoding="utf-8") as f:
            json.dump(library, f, indent=2)

    def save(
        self,
        code: str,
        name: str = "Untitled Script",
        description: str = "",
        category: str = "Other",
        tags: Optional[List[str]] = None,
        prompt: str = "",
    ) -> Dict[str, Any]:
        library = self._read()
        entry = {
            "id": _new_id(),
            "name": name or "Untitled Script",
            "description": description,
            "code": code,
            "category": category or "Other",
            "tags": list(tags or []),
            "prompt": prompt,
            "favorite": False,
            "created": _now(),
            "last_used": None,
            "use_count": 0,
        }
        library["scripts"].append(entry)
        self._write(library)
        return entry

    def get_all(self, category: Optional[str] = None, favorite: bool = False,
                search: Optional[str] = None) -> List[Dict[str, Any]]:
        scripts = self._read()["scripts"]
        if category:
            scripts = [s for s in scripts if s.get("category") == category]
        if favorite:
            scripts = [s for s in scripts if s.get("favorite")]
        if search:
            q = search.lower()
            scripts = [
                s for s in scripts
                if q in (s.get("name") or "").lower()
                or q in (s.get("description") or "").lower()
                or any(q in t.lower() for t in s.get("tags") or [])
            ]
        return scripts

    def get_by_id(self, script_id: str) -> Optional[Dict[str, Any]]:
        for script in self._read()["scripts"]:
            if script["id"] == script_id:
                return script
        return None

    def _modify(self, script_id: str, change) -> Optional[Dict[str, Any]]:
        library = self._read()
        for script in library["scripts"]:
            if script["id"] == script_id:
                change(script)
                self._write(library)
                return script
        return None

    def update(self, script_id: str, **updates: Any) -> Optional[Dict[str, Any]]:
        updates.pop("id", None)
        return self._modify(script_id, lambda s: s.update(updates))

    def toggle_favorite(self, script_id: str) -> Optional[bool]:
        script = self._modify(script_id, lambda s: s.update(favorite=not s.get("favorite")))
        return script["favorite"] if script else None

    def record_usage(self, script_id: str) -> None:
        self._modify(script_id, lambda s: s.update(use_count=(s.get("use_count") or 0) + 1, last_used=_now()))

    def remove(self, script_id: str) -> bool:
        library = self._read()
        remaining = [s for s in library["scripts"] if s["id"] != script_id]
        if len(remaining) == len(library["scripts"]):
            return False
        library["scripts"] = remaining
        self._write(library)
        return True

    def get_categories(self) -> List[str]:
        return self._read()["categories"]

    def add_category(self, category: str) -> None:
        library = self._read()
        if category not in library["categories"]:
            library["categories"].append(category)
            self._write(library)

    def export_library(self) -> str:
        return json.dumps(self._read(), indent=2)

    def import_library(self, json_str: str) -> int:
        """Merges scripts from an exported library, assigning fresh ids. Returns the count."""
        imported = json.loads(json_str)
        library = self._read()
        count = 0
        for script in imported.get("scripts") or []:
            script["id"] = _new_id()
            library["scripts"].append(script)
            count += 1
        self._write(library)
        return count
