from datetime import date as date_type, datetime, time, timedelta
from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator


ClockTime = Union[datetime, time]


def _unique(ids: List[str]) -> List[str]:
    seen = set()
    ordered = []
    for item in ids:
        if item in seen:
            continue
        seen.add(item)
        ordered.append(item)
    return ordered


class Person(BaseModel):
    id: str
    name: str
    delivery_token: Optional[str] = None
    first_name: Optional[str] = None

    @property
    def display_first_name(self) -> str:
        if self.first_name:
            return self.first_name
        parts = self.name.split()
        return parts[0] if parts else self.name


class Room(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    home_id: Optional[str] = None


class EventDraft(BaseModel):
    """In-progress event composition, mutable until submitted."""

    model_config = ConfigDict(validate_assignment=True)

    title: str = ""
    room_id: Optional[str] = None
    date: Optional[date_type] = None
    start_time: Optional[ClockTime] = None
    end_time: Optional[ClockTime] = None
    attendee_ids: List[str] = []

    @field_validator("date", mode="before")
    @classmethod
    def _calendar_day(cls, value):
        # Date pickers hand back a full datetime; only the day matters here
        if isinstance(value, datetime):
            return value.date()
        return value

    @field_validator("attendee_ids")
    @classmethod
    def _dedupe_attendees(cls, value: List[str]) -> List[str]:
        return _unique(value)

    @classmethod
    def for_organizer(
        cls,
        organizer: Person,
        now: Optional[datetime] = None,
        **fields,
    ) -> "EventDraft":
        """
        Start a draft owned by ``organizer``.

        The organizer is always the first attendee. Date and times default to
        ``now`` and a 30 minute slot starting at ``now``.
        """
        now = now or datetime.now()
        fields.setdefault("date", now.date())
        fields.setdefault("start_time", now)
        fields.setdefault("end_time", now + timedelta(minutes=30))
        attendees = list(fields.pop("attendee_ids", []))
        return cls(attendee_ids=[organizer.id, *attendees], **fields)


class EventRecordInput(BaseModel):
    model_config = ConfigDict(frozen=True)

    home_id: str
    title: str
    room_id: str
    start_date: datetime
    end_date: datetime
    attendee_ids: List[str]


class EventRecord(EventRecordInput):
    id: str


class LinkPayload(BaseModel):
    route: str
    params: Dict[str, str] = {}

    def as_data(self) -> Dict[str, Dict]:
        return {"navigate": {"route": self.route, "params": dict(self.params)}}
