import json
import logging
from pathlib import Path
from typing import Any, Dict, Iterable, List, Optional, Protocol, Union, runtime_checkable

@runtime_checkable
class KeyValueStore(Protocol):
    """Opaque blob store the bookmark manager reads at startup and writes after every change"""

    def get(self, key: str) -> Optional[Any]:
        ...

    def set(self, key: str, document: Any) -> bool:
        ...

class JsonFileStore:
    """
    Key-value store backed by a single JSON file.

    The file holds one object mapping keys to documents, plus the list of
    keys registered for syncing. Every set() rewrites the whole file.
    """

    SYNC_KEYS_FIELD = '__sync_keys__'

    def __init__(self, file_path: Union[str, Path]):
        self.file_path = Path(file_path)
        self._log = logging.getLogger("FileBookmarks.store")

    def _read(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            return {}
        with open(self.file_path, 'r', encoding='utf-8') as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"Store file {self.file_path} does not contain a JSON object")
        return data

    def _write(self, data: Dict[str, Any]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.file_path.with_suffix(self.file_path.suffix + '.tmp')
        with open(tmp_path, 'w', encoding='utf-8') as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
        tmp_path.replace(self.file_path)

    def get(self, key: str) -> Optional[Any]:
        """Return the document stored under key, or None if absent"""
        value = self._read().get(key)
        self._log.debug(f"get {key}: {'hit' if value is not None else 'miss'}")
        return value

    def set(self, key: str, document: Any) -> bool:
        """Replace the document stored under key"""
        try:
            data = self._read()
        except (OSError, ValueError) as e:
            # An unreadable file is replaced rather than blocking every save
            self._log.warning(f"Discarding unreadable store file {self.file_path}: {e}")
            data = {}
        data[key] = document
        try:
            self._write(data)
        except (OSError, TypeError, ValueError) as e:
            self._log.error(f"Failed to write store file {self.file_path}: {e}")
            return False
        self._log.debug(f"set {key}")
        return True

    def set_keys_for_sync(self, keys: Iterable[str]) -> None:
        try:
            data = self._read()
        except (OSError, ValueError):
            data = {}
        data[self.SYNC_KEYS_FIELD] = sorted(set(keys))
        self._write(data)

    def keys_for_sync(self) -> List[str]:
        return list(self._read().get(self.SYNC_KEYS_FIELD, []))
