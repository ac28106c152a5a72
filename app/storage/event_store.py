import asyncio
import json
import logging
import os
import uuid
from pathlib import Path
from typing import Dict, List, Optional, Protocol

from pydantic import ValidationError as ModelValidationError

from app.core.config import load_config
from app.core.errors import PersistenceError
from app.core.models import EventRecord, EventRecordInput

logger = logging.getLogger(__name__)


def _new_event_id() -> str:
    return uuid.uuid4().hex


class EventStore(Protocol):
    async def save(self, record: EventRecordInput) -> EventRecord:
        """
        Persist ``record`` and return it with a store-assigned id.

        Raises PersistenceError if the backend is unreachable or rejects the
        write. Nothing is stored when an error is raised.
        """
        ...

    async def get(self, event_id: str) -> Optional[EventRecord]:
        ...

    async def list_for_home(self, home_id: str) -> List[EventRecord]:
        ...


class InMemoryEventStore:
    """Process-local store, used by default and in tests."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self._records: Dict[str, EventRecord] = {}
        self._lock = asyncio.Lock()
        # Set to simulate an unreachable or rejecting backend
        self.fail_with = fail_with

    async def save(self, record: EventRecordInput) -> EventRecord:
        if self.fail_with is not None:
            raise PersistenceError(f"Event store unavailable: {self.fail_with}") from self.fail_with

        async with self._lock:
            saved = EventRecord(id=_new_event_id(), **record.model_dump())
            self._records[saved.id] = saved
        logger.info(f"Saved event {saved.id} for home {saved.home_id}")
        return saved

    async def get(self, event_id: str) -> Optional[EventRecord]:
        return self._records.get(event_id)

    async def list_for_home(self, home_id: str) -> List[EventRecord]:
        return [r for r in self._records.values() if r.home_id == home_id]

    def __len__(self) -> int:
        return len(self._records)


class JsonFileEventStore:
    """One JSON document per event under ``store_dir``."""

    def __init__(self, store_dir: Optional[str] = None):
        """
        Initialize the file store.

        Args:
            store_dir: Directory holding event files. If None, uses EVENT_STORE_DIR.
        """
        self.store_dir = Path(store_dir or load_config().event_store_dir)

    def _path_for(self, event_id: str) -> Path:
        return self.store_dir / f"{event_id}.json"

    def _write(self, saved: EventRecord) -> None:
        self.store_dir.mkdir(parents=True, exist_ok=True)
        final_path = self._path_for(saved.id)
        tmp_path = final_path.with_suffix(".json.tmp")
        payload = saved.model_dump_json(indent=2)
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            # Atomic swap: readers see either nothing or the full record
            os.replace(tmp_path, final_path)
        except OSError:
            if tmp_path.exists():
                tmp_path.unlink()
            raise

    def _read(self, path: Path) -> Optional[EventRecord]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                return EventRecord.model_validate(json.load(f))
        except (json.JSONDecodeError, ModelValidationError, IOError) as exc:
            logger.warning(f"Skipping unreadable event file {path.name}: {exc}")
            return None

    async def save(self, record: EventRecordInput) -> EventRecord:
        saved = EventRecord(id=_new_event_id(), **record.model_dump())
        try:
            await asyncio.to_thread(self._write, saved)
        except (OSError, ValueError) as exc:
            # ValueError covers pydantic serialization failures
            raise PersistenceError(f"Could not write event: {exc}") from exc
        logger.info(f"Saved event {saved.id} to {self.store_dir}")
        return saved

    async def get(self, event_id: str) -> Optional[EventRecord]:
        path = self._path_for(event_id)
        if not path.exists():
            return None
        return await asyncio.to_thread(self._read, path)

    async def list_for_home(self, home_id: str) -> List[EventRecord]:
        if not self.store_dir.exists():
            return []
        records = []
        for path in sorted(self.store_dir.glob("*.json")):
            record = await asyncio.to_thread(self._read, path)
            if record is not None and record.home_id == home_id:
                records.append(record)
        return records


def select_event_store_from_env() -> EventStore:
    """Factory function to select the event store based on EVENT_STORE_DRIVER."""
    config = load_config()
    driver = config.event_store_driver

    if driver == "memory":
        return InMemoryEventStore()
    elif driver == "json":
        return JsonFileEventStore(config.event_store_dir)
    else:
        raise ValueError(f"Unsupported EVENT_STORE_DRIVER: {driver}")


# Global store instance
_event_store: Optional[EventStore] = None


def get_event_store() -> EventStore:
    """Get the global event store instance."""
    global _event_store
    if _event_store is None:
        _event_store = select_event_store_from_env()
    return _event_store


def reset_event_store() -> None:
    """Reset the global event store instance."""
    global _event_store
    _event_store = None
