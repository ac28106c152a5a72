from datetime import date as date_type, time
from typing import List, Optional

from pydantic import BaseModel

from app.core.models import EventRecord


class ScheduleEventRequest(BaseModel):
    home_id: str
    organizer_id: str
    title: str = ""
    room_id: Optional[str] = None
    date: Optional[date_type] = None
    start_time: Optional[time] = None
    end_time: Optional[time] = None
    # None means "only the organizer", matching the form's initial selection
    attendee_ids: Optional[List[str]] = None


class ScheduleEventResponse(BaseModel):
    ok: bool = True
    event: EventRecord
    navigate: str


class ScheduleEventErrorResponse(BaseModel):
    ok: bool = False
    errors: List[str]
    message: str


class PersonSummary(BaseModel):
    id: str
    name: str
    can_receive_alerts: bool
