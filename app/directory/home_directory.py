import asyncio
import json
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Protocol

from app.core.config import load_config
from app.core.models import Person, Room

logger = logging.getLogger(__name__)


class HomeDirectory(Protocol):
    async def list_rooms(self, home_id: str) -> List[Room]:
        """Rooms belonging to the household ``home_id``."""
        ...

    async def list_people(self, home_id: str) -> List[Person]:
        """Members of the household, in the household's member order."""
        ...


def _parse_person(person_id: str, raw: Dict[str, Any]) -> Person:
    first = raw.get("firstName", "")
    last = raw.get("lastName", "")
    name = raw.get("name") or f"{first} {last}".strip() or person_id
    return Person(
        id=person_id,
        name=name,
        first_name=first or None,
        delivery_token=raw.get("expoPushToken") or None,
    )


class JsonHomeDirectory:
    """Household data read from a JSON fixture with homes, rooms and users."""

    def __init__(self, data_path: Optional[Path] = None) -> None:
        self._path = Path(data_path or load_config().directory_path)

    def _load(self) -> Dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            return json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, IOError) as exc:
            logger.warning(f"Directory file {self._path} unreadable: {exc}")
            return {}

    async def list_rooms(self, home_id: str) -> List[Room]:
        raw = await asyncio.to_thread(self._load)
        rooms: List[Room] = []
        for r in raw.get("rooms", []):
            if r.get("homeId") != home_id:
                continue
            rooms.append(Room(id=r["id"], name=r.get("name", r["id"]), home_id=home_id))
        return rooms

    async def list_people(self, home_id: str) -> List[Person]:
        raw = await asyncio.to_thread(self._load)
        home = raw.get("homes", {}).get(home_id, {})
        users = raw.get("users", {})

        people: List[Person] = []
        for person_id in home.get("users", []):
            if person_id not in users:
                continue
            people.append(_parse_person(person_id, users[person_id]))
        return people

    async def get_person(self, home_id: str, person_id: str) -> Optional[Person]:
        for person in await self.list_people(home_id):
            if person.id == person_id:
                return person
        return None


# Global directory instance
_directory: Optional[JsonHomeDirectory] = None


def get_home_directory() -> JsonHomeDirectory:
    """Get the global home directory instance."""
    global _directory
    if _directory is None:
        _directory = JsonHomeDirectory()
    return _directory


def reset_home_directory() -> None:
    global _directory
    _directory = None
