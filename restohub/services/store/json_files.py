"""
Local JSON File Store

One UTF-8 JSON file per collection under the data directory, shaped as:

    { "<collection key>": <records or document>, "lastUpdated": "<ISO-8601>" }

Writes are serialized per file with a FileLock, which protects writers on the
same host. It does not make the files safe for several hosts sharing a disk.

Version: 1.0.0
"""

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol

from filelock import FileLock, Timeout

from restohub.core.exceptions import PersistenceError
from restohub.services.store.base import Mutation, apply_mutations

logger = logging.getLogger(__name__)


class FileBackedCollection(Protocol):
    """What the file store needs to know about a collection."""
    name: str
    filename: str
    key: str
    id_field: str

    def default_payload(self) -> Any: ...


class JsonFileStore:
    """
    Reads and writes collection files.

    Missing files are created with the collection's default payload before
    the first read; creation checks for the file first, so it happens once.
    """

    def __init__(self, data_directory: str | Path, lock_timeout: int = 10):
        self.data_directory = Path(data_directory)
        self.lock_timeout = lock_timeout

    def path_for(self, spec: FileBackedCollection) -> Path:
        return self.data_directory / spec.filename

    def _lock_for(self, spec: FileBackedCollection) -> FileLock:
        return FileLock(str(self.path_for(spec)) + ".lock", timeout=self.lock_timeout)

    def _ensure_data_dir(self) -> None:
        if not self.data_directory.exists():
            self.data_directory.mkdir(parents=True, exist_ok=True)
            logger.info(f"Created data directory: {self.data_directory}")

    # =========================================================================
    # FILE LEVEL
    # =========================================================================

    def ensure_file(self, spec: FileBackedCollection) -> bool:
        """
        Create the collection file with its default payload if it is missing.

        Returns:
            bool: True if the file was created by this call
        """
        path = self.path_for(spec)
        if path.exists():
            return False

        self._ensure_data_dir()
        try:
            with self._lock_for(spec):
                if path.exists():
                    return False
                self._write_file(path, spec, spec.default_payload())
        except Timeout:
            raise PersistenceError(f"Lock timeout ({self.lock_timeout}s) on {path.name}")
        except OSError as e:
            logger.error(f"Error creating {path}: {e}")
            raise PersistenceError(f"Could not create {path.name}: {e}")

        logger.info(f"Initialized {path.name} with default {spec.name} data")
        return True

    def read_payload(self, spec: FileBackedCollection) -> Any:
        """Return the collection value stored under the collection key."""
        self.ensure_file(spec)
        path = self.path_for(spec)
        try:
            with open(path, "r", encoding="utf-8") as f:
                content = json.load(f)
        except (OSError, ValueError) as e:
            logger.error(f"Error reading {path}: {e}")
            raise PersistenceError(f"Could not read {path.name}: {e}")

        if not isinstance(content, dict) or spec.key not in content:
            raise PersistenceError(
                f"{path.name} is missing the '{spec.key}' key"
            )
        return content[spec.key]

    def write_payload(self, spec: FileBackedCollection, payload: Any) -> None:
        """Overwrite the collection value and stamp ``lastUpdated``."""
        self._ensure_data_dir()
        path = self.path_for(spec)
        try:
            with self._lock_for(spec):
                self._write_file(path, spec, payload)
        except Timeout:
            raise PersistenceError(f"Lock timeout ({self.lock_timeout}s) on {path.name}")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing {path}: {e}")
            raise PersistenceError(f"Could not write {path.name}: {e}")

    def _write_file(self, path: Path, spec: FileBackedCollection, payload: Any) -> None:
        content = {
            spec.key: payload,
            "lastUpdated": datetime.now(timezone.utc).isoformat(),
        }
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(content, f, indent=2, ensure_ascii=False)
        tmp_path.replace(path)

    # =========================================================================
    # RECORD LEVEL
    # =========================================================================

    def read_records(self, spec: FileBackedCollection) -> list[dict[str, Any]]:
        records = self.read_payload(spec)
        if not isinstance(records, list):
            raise PersistenceError(f"{spec.filename}: '{spec.key}' is not a list")
        return records

    def apply(self, spec: FileBackedCollection, mutations: list[Mutation]) -> list[dict[str, Any]]:
        """
        Read the file, apply all mutations in memory and write it once.

        The read and write happen under one lock so concurrent writers on this
        host cannot interleave between them.
        """
        self.ensure_file(spec)
        path = self.path_for(spec)
        try:
            with self._lock_for(spec):
                records = self.read_records(spec)
                updated = apply_mutations(records, mutations, spec.id_field)
                self._write_file(path, spec, updated)
        except Timeout:
            raise PersistenceError(f"Lock timeout ({self.lock_timeout}s) on {path.name}")
        except (OSError, TypeError, ValueError) as e:
            logger.error(f"Error writing {path}: {e}")
            raise PersistenceError(f"Could not write {path.name}: {e}")

        logger.debug(f"Applied {len(mutations)} mutation(s) to {path.name}")
        return updated
