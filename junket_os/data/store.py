"""
Remote store clients: a key-collection read/write interface.

Two backends share one surface:
- LocalStore: one JSON file per collection under a directory
- ApiStore: the backend REST API (list or {"data": [...]} payloads)

get() always returns a list of raw records. A missing collection is an empty
list; a transport failure is a StoreConnectionError for the caller to surface.
"""
import json
import logging
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import requests

from junket_os.config import config, API_ENDPOINTS

logger = logging.getLogger(__name__)


class StoreConnectionError(Exception):
    """Raised when the remote store cannot be reached or answers with an error."""
    pass


def extract_records(payload: Any) -> List[Dict[str, Any]]:
    """
    Pull the record list out of any payload shape the backend produces.

    Accepts a bare list, {"data": [...]} and {"success": bool, "data": [...]}.
    Anything else (including success=False) is an empty list.
    """
    if isinstance(payload, list):
        return [r for r in payload if isinstance(r, dict)]
    if isinstance(payload, dict):
        if payload.get("success") is False:
            return []
        data = payload.get("data")
        if isinstance(data, list):
            return [r for r in data if isinstance(r, dict)]
    return []


class LocalStore:
    """Collections stored as <directory>/<collection>.json."""

    def __init__(self, directory: Optional[Path] = None):
        self.directory = Path(directory) if directory is not None else config.store_dir

    def _path(self, collection: str) -> Path:
        return self.directory / f"{collection}.json"

    def get(self, collection: str) -> List[Dict[str, Any]]:
        path = self._path(collection)
        if not path.exists():
            return []
        try:
            with path.open("r", encoding="utf-8") as fh:
                payload = json.load(fh)
        except json.JSONDecodeError as e:
            logger.error(f"Collection file {path} is not valid JSON: {e}")
            raise StoreConnectionError(f"Could not read {collection}: {e}")
        return extract_records(payload)

    def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        """Append a record (last write wins on id collisions)."""
        record = dict(record)
        record.setdefault("id", str(uuid.uuid4()))

        existing = [r for r in self.get(collection) if r.get("id") != record["id"]]
        existing.append(record)

        self.directory.mkdir(parents=True, exist_ok=True)
        with self._path(collection).open("w", encoding="utf-8") as fh:
            json.dump(existing, fh, indent=2, default=str)

        logger.info(f"Saved record {record['id']} to {collection}")
        return record

    def health_check(self) -> Tuple[bool, str]:
        if self.directory.exists():
            return True, f"Local store at {self.directory}"
        return False, f"Local store directory not found: {self.directory}"


class ApiStore:
    """Client for the backend REST API."""

    def __init__(self, base_url: Optional[str] = None,
                 token: Optional[str] = None,
                 timeout: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = (base_url or config.api_base_url).rstrip("/")
        self.token = token if token is not None else config.api_token
        self.timeout = timeout if timeout is not None else config.request_timeout_seconds
        self.session = session or requests.Session()

    @property
    def headers(self) -> Dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _url(self, collection: str) -> str:
        endpoint = API_ENDPOINTS.get(collection, f"/{collection.replace('_', '-')}")
        return f"{self.base_url}{endpoint}"

    def get(self, collection: str) -> List[Dict[str, Any]]:
        url = self._url(collection)
        try:
            response = self.session.get(url, headers=self.headers, timeout=self.timeout)
            if response.status_code == 404:
                logger.warning(f"Collection {collection} not found at {url}")
                return []
            response.raise_for_status()
            payload = response.json()
        except requests.Timeout:
            logger.error(f"Timed out fetching {collection} from {url}")
            raise StoreConnectionError(f"Connection timeout while loading {collection}")
        except requests.RequestException as e:
            logger.error(f"Failed to fetch {collection} from {url}: {e}")
            raise StoreConnectionError(f"Failed to load {collection}: {e}")
        except ValueError as e:
            logger.error(f"Invalid JSON from {url}: {e}")
            raise StoreConnectionError(f"Invalid response while loading {collection}")

        return extract_records(payload)

    def save(self, collection: str, record: Dict[str, Any]) -> Dict[str, Any]:
        url = self._url(collection)
        try:
            response = self.session.post(url, headers=self.headers, json=record, timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
        except requests.RequestException as e:
            logger.error(f"Failed to save to {collection} at {url}: {e}")
            raise StoreConnectionError(f"Failed to save {collection} record: {e}")
        except ValueError:
            return record

        if isinstance(payload, dict) and isinstance(payload.get("data"), dict):
            return payload["data"]
        return record

    def health_check(self) -> Tuple[bool, str]:
        """Ping the backend /health endpoint."""
        root = self.base_url[:-4] if self.base_url.endswith("/api") else self.base_url
        try:
            response = self.session.get(f"{root}/health", timeout=self.timeout)
            data = response.json()
        except requests.Timeout:
            return False, "Connection timeout"
        except (requests.RequestException, ValueError) as e:
            return False, f"Connection error: {e}"

        if response.ok and isinstance(data, dict) and data.get("status") == "OK":
            return True, "Connected successfully"
        return False, "Backend API is not responding"


def get_store(backend: Optional[str] = None):
    """Build the store configured by STORE_BACKEND ('api' or 'local')."""
    backend = (backend or config.store_backend).lower()
    if backend == "api":
        return ApiStore()
    return LocalStore()
