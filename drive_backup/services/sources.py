"""
Content sources for backups: local JSON files, upstream HTTP(S) endpoints, request bodies.
Each source exposes `name` (the Drive file name) and `read()` (text or parsed JSON).
"""

import json
import threading
from pathlib import Path
from typing import Any, Protocol, runtime_checkable

import requests

from drive_backup.config.logging_config import setup_logger

logger = setup_logger(__name__)


def _as_json_value(value: Any) -> Any:
    """Re-encode a parsed JSON string so the upserter does not take it for raw text."""
    if isinstance(value, str):
        return json.dumps(value, ensure_ascii=False)
    return value


@runtime_checkable
class ContentSource(Protocol):
    """Anything that can hand the upserter a file name and content."""

    name: str

    def read(self) -> Any:
        """Return text, bytes, or an already-parsed JSON value."""
        ...


class LocalFileSource:
    """A JSON file on local disk; uploaded under its base name."""

    def __init__(self, path: Path | str):
        self.path = Path(path)
        self.name = self.path.name

    def read(self) -> str:
        if not self.path.is_file():
            raise FileNotFoundError(f"File does not exist: {self.path}")
        return self.path.read_text(encoding="utf-8")


class HttpJsonSource:
    """GET a JSON document from an upstream API."""

    def __init__(
        self,
        url: str,
        name: str = "data.json",
        follow_redirects: bool = True,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ):
        self.url = url
        self.name = name
        self.follow_redirects = follow_redirects
        self.timeout = timeout
        self._session = session

    def read(self) -> Any:
        getter = self._session.get if self._session is not None else requests.get
        logger.info("Fetching %s (follow_redirects=%s)", self.url, self.follow_redirects)
        resp = getter(self.url, timeout=self.timeout, allow_redirects=self.follow_redirects)
        resp.raise_for_status()
        return _as_json_value(resp.json())


class PayloadSource:
    """Content already in memory, e.g. an inbound request body."""

    def __init__(self, payload: Any, name: str = "data.json"):
        self.payload = payload
        self.name = name

    def read(self) -> Any:
        return _as_json_value(self.payload)


class LastKnownGoodStore:
    """Holds the last payload fetched successfully. Owned and passed around by the caller."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._payload: Any = None
        self._has_value = False

    def get(self) -> Any:
        with self._lock:
            return self._payload

    def has_value(self) -> bool:
        with self._lock:
            return self._has_value

    def set(self, payload: Any) -> None:
        with self._lock:
            self._payload = payload
            self._has_value = True


class FallbackSource:
    """Wraps an HTTP source; on a fetch failure serves the last good payload if there is one."""

    def __init__(self, primary: HttpJsonSource, store: LastKnownGoodStore):
        self.primary = primary
        self.store = store
        self.name = primary.name
        self.used_fallback = False

    def read(self) -> Any:
        try:
            payload = self.primary.read()
        except (requests.RequestException, ValueError) as e:
            if not self.store.has_value():
                raise
            logger.warning("Fetch failed (%s); using last known good payload", e)
            self.used_fallback = True
            return self.store.get()
        self.used_fallback = False
        self.store.set(payload)
        return payload


# ---------------------------------------------------------------------------
#  Path helpers
# ---------------------------------------------------------------------------


def resolve_json_path(file_query: str | None, data_path: str | Path, data_dir: str | Path) -> Path:
    """None -> default data path; relative names under data_dir; absolute paths unchanged."""
    if not file_query:
        return Path(data_path)
    candidate = Path(file_query)
    if candidate.is_absolute():
        return candidate
    return Path(data_dir) / candidate


def list_json_files(data_dir: str | Path) -> list[Path]:
    """Regular *.json files directly under data_dir, sorted by name."""
    root = Path(data_dir)
    if not root.is_dir():
        return []
    return sorted(p for p in root.iterdir() if p.is_file() and p.suffix.lower() == ".json")
