"""
Remote document store: the storage keys mapped onto the file server API.

    queueAuth           GET  /queue-auth.json
                        POST /api/save-auth
                        DELETE /api/delete-auth
    queueBackup_<name>  GET  /api/get-queue-backup/<name>
                        POST /api/save-queue-backup   {queueName, data}
                        DELETE /api/delete-queue-backup/<name>

No retries: a failed call raises TransportError and the caller decides.
"""

from __future__ import annotations

from typing import Any, Dict, Optional
from urllib.parse import quote

import requests

from ..utils.exceptions import TransportError
from ..utils.logger import get_logger
from .base import CREDENTIALS_KEY, KeyValueStorage, queue_name_from_key
from .json_files import unwrap_backup

logger = get_logger(__name__)

DEFAULT_TIMEOUT = 5.0


class RemoteDocumentStore(KeyValueStorage):
    """KeyValueStorage over the document server's HTTP API"""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        auth_path: str = "/queue-auth.json",
        session: Optional[requests.Session] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.auth_path = auth_path
        self.http = session or requests.Session()

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def _request(self, method: str, path: str, **kwargs) -> requests.Response:
        try:
            response = self.http.request(method, self._url(path), timeout=self.timeout, **kwargs)
        except requests.RequestException as e:
            raise TransportError(f"{method} {path} failed: {e}")
        if response.status_code >= 500:
            raise TransportError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        return response

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        queue_name = queue_name_from_key(key)
        if key == CREDENTIALS_KEY:
            path = self.auth_path
        elif queue_name is not None:
            path = f"/api/get-queue-backup/{quote(queue_name, safe='')}"
        else:
            raise KeyError(f"Key not served remotely: {key}")

        response = self._request("GET", path)
        if response.status_code == 404:
            return None
        if not response.ok:
            raise TransportError(f"GET {path} returned {response.status_code}", response.status_code)
        try:
            doc = response.json()
        except ValueError as e:
            raise TransportError(f"GET {path} returned invalid JSON: {e}")
        if queue_name is not None and isinstance(doc, dict):
            return unwrap_backup(doc)
        return doc

    def set(self, key: str, document: Dict[str, Any]) -> None:
        queue_name = queue_name_from_key(key)
        if key == CREDENTIALS_KEY:
            path, body = "/api/save-auth", document
        elif queue_name is not None:
            path, body = "/api/save-queue-backup", {"queueName": queue_name, "data": document}
        else:
            raise KeyError(f"Key not served remotely: {key}")

        response = self._request("POST", path, json=body)
        if not response.ok:
            raise TransportError(f"POST {path} returned {response.status_code}", response.status_code)
        logger.debug("Remote document saved", key=key)

    def delete(self, key: str) -> bool:
        queue_name = queue_name_from_key(key)
        if key == CREDENTIALS_KEY:
            path = "/api/delete-auth"
        elif queue_name is not None:
            path = f"/api/delete-queue-backup/{quote(queue_name, safe='')}"
        else:
            raise KeyError(f"Key not served remotely: {key}")

        response = self._request("DELETE", path)
        if response.status_code == 404:
            return False
        if not response.ok:
            raise TransportError(f"DELETE {path} returned {response.status_code}", response.status_code)
        return True

    def _json(self, method: str, path: str) -> Dict[str, Any]:
        response = self._request(method, path)
        if not response.ok:
            raise TransportError(f"{method} {path} returned {response.status_code}", response.status_code)
        return response.json()

    def trigger_cleanup(self) -> Dict[str, Any]:
        """Ask the server to run its inactivity sweep now"""
        return self._json("POST", "/api/manual-cleanup")

    def cleanup_status(self) -> Dict[str, Any]:
        return self._json("GET", "/api/cleanup-status")
