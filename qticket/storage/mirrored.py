"""
Local storage mirrored to a remote document store.

Local is authoritative: writes land there first and always succeed or
raise. The remote copy is updated best-effort on a single worker thread
(FIFO, so mirrored writes keep their order); failures are logged and
dropped. Reads prefer the remote copy so documents written from other
devices show up, falling back to local when the server is unreachable
or when this process still has writes the server has not seen.
"""

from __future__ import annotations

import copy
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable, Dict, Optional, Set

from ..utils.exceptions import QueueTicketError, TransportError
from ..utils.logger import get_logger
from .base import CREDENTIALS_KEY, KeyValueStorage, queue_name_from_key

logger = get_logger(__name__)


def is_mirrored_key(key: str) -> bool:
    return key == CREDENTIALS_KEY or queue_name_from_key(key) is not None


class MirroredStorage(KeyValueStorage):
    """Dual persistence target: local always, remote fire-and-forget"""

    def __init__(
        self,
        local: KeyValueStorage,
        remote: KeyValueStorage,
        background: bool = True,
    ):
        self.local = local
        self.remote = remote
        self.background = background
        self._executor: Optional[ThreadPoolExecutor] = None
        self._last: Optional[Future] = None
        self._lock = threading.Lock()
        # Keys whose remote copy is behind local: queued writes or a failed mirror
        self._pending: Dict[str, int] = {}
        self._stale: Set[str] = set()

    # -------------------- reads --------------------

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        if not is_mirrored_key(key) or self._remote_behind(key):
            return self.local.get(key)
        try:
            doc = self.remote.get(key)
        except TransportError as e:
            logger.warning("Server not available, using local copy", key=key, error=str(e))
            return self.local.get(key)
        if doc is None:
            return self.local.get(key)
        self.local.set(key, doc)
        return doc

    def _remote_behind(self, key: str) -> bool:
        with self._lock:
            return self._pending.get(key, 0) > 0 or key in self._stale

    # -------------------- writes --------------------

    def set(self, key: str, document: Dict[str, Any]) -> None:
        self.local.set(key, document)
        if is_mirrored_key(key):
            snapshot = copy.deepcopy(document)
            self._mirror("save", key, lambda: self.remote.set(key, snapshot))

    def delete(self, key: str) -> bool:
        removed = self.local.delete(key)
        if is_mirrored_key(key):
            self._mirror("delete", key, lambda: self.remote.delete(key))
        return removed

    def _mirror(self, action: str, key: str, call: Callable[[], Any]) -> None:
        def run() -> None:
            try:
                call()
            except QueueTicketError as e:
                logger.warning(
                    "Server mirror failed, using local copy only",
                    action=action,
                    key=key,
                    error=str(e),
                )
                with self._lock:
                    self._stale.add(key)
            else:
                logger.debug("Mirrored to server", action=action, key=key)
                with self._lock:
                    self._stale.discard(key)
            finally:
                with self._lock:
                    self._pending[key] = self._pending.get(key, 1) - 1
                    if self._pending[key] <= 0:
                        del self._pending[key]

        with self._lock:
            self._pending[key] = self._pending.get(key, 0) + 1
        if not self.background:
            run()
            return
        with self._lock:
            if self._executor is None:
                self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="remote-mirror")
            self._last = self._executor.submit(run)

    def flush(self, timeout: Optional[float] = None) -> None:
        """Wait for queued mirror writes (shutdown, tests)"""
        with self._lock:
            last = self._last
        if last is not None:
            last.result(timeout=timeout)

    def close(self) -> None:
        with self._lock:
            executor, self._executor = self._executor, None
        if executor is not None:
            executor.shutdown(wait=True)
