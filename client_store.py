"""
Client-side key/value store.

Plays the part of the browser's local storage for API clients. Values are
kept as JSON text under string keys and, when a path is given, the whole
store is written back to that file after every change.
"""
import json
import logging
import os
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

AUTH_KEY = "auth"
CART_KEY = "cart"


class ClientStore:
    def __init__(self, path: Optional[str] = None):
        self.path = path
        self._items: Dict[str, str] = {}
        if path and os.path.exists(path):
            with open(path, encoding="utf-8") as fh:
                self._items = json.load(fh)

    def __contains__(self, key: str) -> bool:
        return key in self._items

    def read(self, key: str, default: Any = None) -> Any:
        raw = self._items.get(key)
        if raw is None:
            return default
        try:
            return json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable value stored under %r", key)
            return default

    def write(self, key: str, value: Any) -> None:
        self._items[key] = json.dumps(value)
        self._flush()

    def clear(self, key: str) -> None:
        """Remove ``key`` entirely; reading it afterwards gives the default."""
        if self._items.pop(key, None) is not None:
            self._flush()

    def _flush(self) -> None:
        if not self.path:
            return
        with open(self.path, "w", encoding="utf-8") as fh:
            json.dump(self._items, fh)
