"""JSON file storage: one pretty-printed document per key"""

from __future__ import annotations

import json
import re
import shutil
import tempfile
from pathlib import Path
from typing import Any, Dict, List, Optional

from ..utils.exceptions import DocumentSchemaError
from ..utils.logger import get_logger
from .base import CREDENTIALS_KEY, KeyValueStorage, queue_name_from_key

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[\\/\x00]")


def unwrap_backup(doc: Dict[str, Any]) -> Dict[str, Any]:
    """Backups travel as {queueName, data}; older files hold the bare document"""
    inner = doc.get("data")
    if "queueName" in doc and isinstance(inner, dict):
        return inner
    return doc


def safe_file_component(name: str) -> str:
    """Make a queue name usable inside a file name without leaving the directory"""
    cleaned = _UNSAFE_CHARS.sub("_", name)
    if cleaned in ("", ".", ".."):
        cleaned = cleaned.replace(".", "_") or "_"
    return cleaned


def atomic_write_json(path: Path, payload: Dict[str, Any]) -> None:
    """Atomically write pretty-printed JSON to the target path."""
    path.parent.mkdir(parents=True, exist_ok=True)
    with tempfile.NamedTemporaryFile(
        mode="w", dir=str(path.parent), delete=False, encoding="utf-8"
    ) as tf:
        json.dump(payload, tf, indent=2, ensure_ascii=False, default=str)
        temp_path = Path(tf.name)
    try:
        shutil.move(str(temp_path), str(path))
    except Exception:
        if temp_path.exists():
            temp_path.unlink()
        raise


def read_json(path: Path) -> Optional[Dict[str, Any]]:
    """Read a JSON object; None when the file does not exist"""
    if not path.exists():
        return None
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise DocumentSchemaError(f"Corrupt JSON in {path}: {e}")
    if not isinstance(data, dict):
        raise DocumentSchemaError(f"Expected a JSON object in {path}")
    return data


class JsonFileStorage(KeyValueStorage):
    """Files named <key>.json inside one directory"""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, key: str) -> Path:
        return self.directory / f"{safe_file_component(key)}.json"

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        return read_json(self.path_for(key))

    def set(self, key: str, document: Dict[str, Any]) -> None:
        atomic_write_json(self.path_for(key), document)

    def delete(self, key: str) -> bool:
        path = self.path_for(key)
        if not path.exists():
            return False
        path.unlink()
        return True


class ServerFileStorage(JsonFileStorage):
    """
    File layout of the document server:
        queueAuth            -> <data_dir>/queue-auth.json
        queueBackup_<name>   -> <backup_dir>/queue-backup-<name>.json
    """

    def __init__(self, auth_file: Path, backup_dir: Path):
        super().__init__(Path(backup_dir))
        self.auth_file = Path(auth_file)
        self.backup_dir = Path(backup_dir)

    def backup_path(self, queue_name: str) -> Path:
        return self.backup_dir / f"queue-backup-{safe_file_component(queue_name)}.json"

    def path_for(self, key: str) -> Path:
        if key == CREDENTIALS_KEY:
            return self.auth_file
        queue_name = queue_name_from_key(key)
        if queue_name is not None:
            return self.backup_path(queue_name)
        return super().path_for(key)

    def get(self, key: str) -> Optional[Dict[str, Any]]:
        doc = super().get(key)
        if doc is not None and queue_name_from_key(key) is not None:
            return unwrap_backup(doc)
        return doc

    def set(self, key: str, document: Dict[str, Any]) -> None:
        queue_name = queue_name_from_key(key)
        if queue_name is not None:
            # Same envelope the save-queue-backup endpoint writes
            document = {"queueName": queue_name, "data": document}
        super().set(key, document)

    def queue_names(self) -> List[str]:
        """Queue names that currently have a state document on disk"""
        if not self.backup_dir.exists():
            return []
        names = []
        for p in sorted(self.backup_dir.glob("queue-backup-*.json")):
            names.append(p.stem[len("queue-backup-"):])
        return names

    def ensure_dirs(self) -> None:
        self.backup_dir.mkdir(parents=True, exist_ok=True)
        self.auth_file.parent.mkdir(parents=True, exist_ok=True)
        logger.info("Backup directory ready", backup_dir=str(self.backup_dir))
