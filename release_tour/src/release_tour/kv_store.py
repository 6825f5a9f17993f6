"""
Persistent Key/Value Storage

Plain string-to-string stores used for saved-code overlays and UI
preferences. Three backends:
- InMemoryKeyValueStore: process-local, for tests and throwaway sessions
- JsonFileKeyValueStore: one JSON object on disk, rewritten atomically
- SupabaseKeyValueStore: a `kv_store(key, value)` table, with an in-memory
  copy used when the database is unreachable
"""

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Dict, Optional

from release_tour.config import TourConfig

logger = logging.getLogger(__name__)


class KeyValueStore:
    """Interface shared by all storage backends."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def delete(self, key: str) -> None:
        raise NotImplementedError


class InMemoryKeyValueStore(KeyValueStore):
    """Dictionary-backed store."""

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def delete(self, key: str) -> None:
        self._data.pop(key, None)

    def __len__(self) -> int:
        return len(self._data)


class JsonFileKeyValueStore(KeyValueStore):
    """
    Store persisted as a single JSON object.

    The whole file is loaded on construction. Every write replaces the file
    via a temporary file in the same directory, so a crash mid-write never
    leaves a truncated store behind.
    """

    def __init__(self, path: str):
        self.path = Path(path).expanduser()
        self._data: Dict[str, str] = self._load()

    def _load(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning(f"⚠️ [JsonFileKeyValueStore] Ignoring unreadable store {self.path}: {e}")
            return {}
        if not isinstance(data, dict):
            logger.warning(f"⚠️ [JsonFileKeyValueStore] Store {self.path} is not an object, starting empty")
            return {}
        return {str(k): str(v) for k, v in data.items()}

    def _flush(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.path.parent, prefix=".kv-", suffix=".json")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                json.dump(self._data, fh, ensure_ascii=False, indent=2, sort_keys=True)
            os.replace(tmp_path, self.path)
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise

    def get(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value
        self._flush()

    def delete(self, key: str) -> None:
        if key in self._data:
            del self._data[key]
            self._flush()


class SupabaseKeyValueStore(KeyValueStore):
    """
    Store backed by a Supabase table with `key` (primary key) and `value` columns.

    Writes and deletes land in the in-memory copy first, so a read that follows
    a failed remote call still observes the latest change within this process.
    """

    def __init__(self, supabase_client, table: str = "kv_store"):
        """
        Initialize SupabaseKeyValueStore.

        Args:
            supabase_client: Supabase client instance
            table: Table name holding the key/value rows
        """
        self.supabase = supabase_client
        self.table = table
        # None marks a key deleted in this process
        self._in_memory: Dict[str, Optional[str]] = {}

    def get(self, key: str) -> Optional[str]:
        if key in self._in_memory:
            return self._in_memory[key]

        try:
            result = self.supabase.table(self.table).select('value').eq('key', key).execute()
        except Exception as e:
            logger.warning(f"⚠️ [SupabaseKeyValueStore] Error reading '{key}': {e}")
            return None

        if result.data:
            value = result.data[0].get("value")
            if value is not None:
                self._in_memory[key] = value
            return value
        return None

    def set(self, key: str, value: str) -> None:
        self._in_memory[key] = value
        try:
            self.supabase.table(self.table).upsert({"key": key, "value": value}).execute()
        except Exception as e:
            logger.warning(f"⚠️ [SupabaseKeyValueStore] Error saving '{key}', kept in memory: {e}")

    def delete(self, key: str) -> None:
        self._in_memory[key] = None
        try:
            self.supabase.table(self.table).delete().eq('key', key).execute()
        except Exception as e:
            logger.warning(f"⚠️ [SupabaseKeyValueStore] Error deleting '{key}': {e}")


def build_store(config: TourConfig, supabase_client=None) -> KeyValueStore:
    """
    Create the storage backend selected by configuration.

    Args:
        config: Tour configuration
        supabase_client: Client to use when config.storage == "supabase"

    Returns:
        KeyValueStore instance
    """
    if config.storage == "file":
        return JsonFileKeyValueStore(config.storage_path)
    if config.storage == "supabase":
        if supabase_client is None:
            raise ValueError("Supabase storage selected but no Supabase client was provided")
        return SupabaseKeyValueStore(supabase_client, table=config.kv_table)
    return InMemoryKeyValueStore()
