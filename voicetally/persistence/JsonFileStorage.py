"""JSON file implementation of the TallyStorage protocol.

The file holds one JSON object mapping storage keys to encoded states, so
several keys can share a file. Writes go to a temporary file that replaces
the original, so a crash never leaves a half-written state behind. A file
that cannot be read is renamed to <name>.bak before the next save, and a
file holding an undecodable state is copied there before that key is
overwritten.
"""

import json
import logging
import os
import shutil
import threading
from pathlib import Path
from typing import Optional

from voicetally.errors import StorageUnavailableError
from voicetally.persistence.codec import decode_state, encode_state
from voicetally.types import TallyState

logger = logging.getLogger(__name__)


class JsonFileStorage:
    """Key-value blob store backed by a single JSON file.

    Args:
        path: JSON file location; parent directories are created on save.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self._lock = threading.Lock()
        # keys whose stored state failed to decode; backed up before the next save
        self._invalid_keys: set = set()

    def load(self, key: str) -> Optional[TallyState]:
        """Load the state stored under key.

        Returns:
            The decoded state, or None when the file or key does not exist.

        Raises:
            StorageUnavailableError: If the file cannot be read or decoded.
        """
        with self._lock:
            blobs = self._read_all()

        if key not in blobs:
            return None

        try:
            return decode_state(blobs[key])
        except ValueError as exc:
            with self._lock:
                self._invalid_keys.add(key)
            raise StorageUnavailableError(f"Stored state under {key!r} is invalid: {exc}") from exc

    def save(self, key: str, state: TallyState) -> None:
        """Store state under key, keeping other keys in the file.

        Raises:
            StorageUnavailableError: If the file cannot be written.
        """
        with self._lock:
            try:
                blobs = self._read_all()
            except StorageUnavailableError as exc:
                self._move_aside(exc)
                blobs = {}
            else:
                if key in self._invalid_keys:
                    self._copy_aside(key)

            blobs[key] = encode_state(state)
            tmp_path = self.path.with_name(self.path.name + '.tmp')

            try:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(tmp_path, 'w', encoding='utf-8') as f:
                    json.dump(blobs, f)
                os.replace(tmp_path, self.path)
            except OSError as exc:
                raise StorageUnavailableError(f"Cannot write {self.path}: {exc}") from exc

    @property
    def backup_path(self) -> Path:
        return self.path.with_name(self.path.name + '.bak')

    def _move_aside(self, reason: Exception) -> None:
        """Rename an unreadable file to <name>.bak so a save does not destroy it."""
        try:
            os.replace(self.path, self.backup_path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot move unreadable {self.path} aside: {exc}") from exc
        logger.warning(f"Unreadable storage file moved to {self.backup_path}: {reason}")

    def _copy_aside(self, key: str) -> None:
        try:
            shutil.copyfile(self.path, self.backup_path)
        except OSError as exc:
            raise StorageUnavailableError(f"Cannot back up {self.path}: {exc}") from exc
        self._invalid_keys.discard(key)
        logger.warning(f"Invalid state under {key!r} backed up to {self.backup_path}")

    def _read_all(self) -> dict:
        if not self.path.exists():
            return {}

        try:
            with open(self.path, 'r', encoding='utf-8') as f:
                blobs = json.load(f)
        except (OSError, json.JSONDecodeError) as exc:
            raise StorageUnavailableError(f"Cannot read {self.path}: {exc}") from exc

        if not isinstance(blobs, dict):
            raise StorageUnavailableError(f"Unexpected content in {self.path}")
        return blobs
