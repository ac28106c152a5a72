from typing import List

from app.core.models import EventDraft


TITLE_MISSING = "Please enter a title"
ROOM_MISSING = "Please select a room"
DATE_MISSING = "Please choose a date"
START_MISSING = "Please select a start time"
END_MISSING = "Please select an end time"
PEOPLE_MISSING = "Please choose at least one person"


def validate(draft: EventDraft) -> List[str]:
    """
    Return one message per missing required field, in form order.

    An empty list means the draft can be submitted. Start/end ordering is
    not checked.
    """
    errors: List[str] = []
    if not (draft.title or "").strip():
        errors.append(TITLE_MISSING)
    if not draft.room_id:
        errors.append(ROOM_MISSING)
    if draft.date is None:
        errors.append(DATE_MISSING)
    if draft.start_time is None:
        errors.append(START_MISSING)
    if draft.end_time is None:
        errors.append(END_MISSING)
    if not draft.attendee_ids:
        errors.append(PEOPLE_MISSING)
    return errors


def join_messages(messages: List[str]) -> str:
    return "\n".join(messages)
