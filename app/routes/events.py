from fastapi import APIRouter, Request, HTTPException
from fastapi.responses import JSONResponse

from app.core.config import load_config
from app.core.errors import PersistenceError, ValidationError
from app.core.models import EventDraft
from app.directory.home_directory import get_home_directory
from app.notifications.dispatcher import get_dispatcher
from app.schemas.events import (
    PersonSummary,
    ScheduleEventErrorResponse,
    ScheduleEventRequest,
    ScheduleEventResponse,
)
from app.scheduling.workflow import SchedulingWorkflow
from app.storage.event_store import get_event_store


router = APIRouter()


def _require_api_key_if_configured(request: Request) -> None:
    cfg = load_config()
    if not cfg.api_key:
        return
    provided = request.headers.get("x-api-key") or request.headers.get("X-API-Key")
    if provided != cfg.api_key:
        raise HTTPException(status_code=401, detail="Invalid or missing API key")


@router.post("/events")
async def schedule_event(request: Request, body: ScheduleEventRequest):
    """
    Validate, save and announce a new event.

    Responds once the event is saved; attendee alerts go out in the
    background and their failure does not change the response.
    """
    _require_api_key_if_configured(request)

    directory = get_home_directory()
    people = await directory.list_people(body.home_id)
    organizer = next((p for p in people if p.id == body.organizer_id), None)
    if organizer is None:
        raise HTTPException(status_code=404, detail=f"Organizer {body.organizer_id} not found in home {body.home_id}")

    attendee_ids = body.attendee_ids if body.attendee_ids is not None else [organizer.id]
    draft = EventDraft(
        title=body.title,
        room_id=body.room_id,
        date=body.date,
        start_time=body.start_time,
        end_time=body.end_time,
        attendee_ids=attendee_ids,
    )

    workflow = SchedulingWorkflow(
        organizer=organizer,
        home_id=body.home_id,
        store=get_event_store(),
        dispatcher=get_dispatcher(),
        people=people,
    )
    result = await workflow.submit(draft)

    if isinstance(result.error, ValidationError):
        content = ScheduleEventErrorResponse(errors=result.errors, message=result.error.message)
        return JSONResponse(status_code=422, content=content.model_dump())
    if isinstance(result.error, PersistenceError):
        raise HTTPException(status_code=503, detail=str(result.error))

    response = ScheduleEventResponse(event=result.record, navigate=load_config().home_route)
    return JSONResponse(status_code=201, content=response.model_dump(mode="json"))


@router.get("/events/{event_id}")
async def get_event(request: Request, event_id: str):
    """Deep-link target for the 'Event' route carried in alerts."""
    _require_api_key_if_configured(request)
    record = await get_event_store().get(event_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return JSONResponse(status_code=200, content=record.model_dump(mode="json"))


@router.get("/homes/{home_id}/rooms")
async def list_rooms(request: Request, home_id: str):
    _require_api_key_if_configured(request)
    rooms = await get_home_directory().list_rooms(home_id)
    return JSONResponse(status_code=200, content=[room.model_dump() for room in rooms])


@router.get("/homes/{home_id}/people")
async def list_people(request: Request, home_id: str):
    _require_api_key_if_configured(request)
    people = await get_home_directory().list_people(home_id)
    summaries = [
        PersonSummary(id=p.id, name=p.name, can_receive_alerts=bool(p.delivery_token))
        for p in people
    ]
    return JSONResponse(status_code=200, content=[s.model_dump() for s in summaries])
