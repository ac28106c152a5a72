"""
Submit path for a single scheduled event.

A workflow run validates a snapshot of the draft, composes the start and end
timestamps, persists the record and then hands notification off to a
detached task. The run is complete as soon as the record is saved; alert
delivery is best-effort and can never undo a successful save.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Sequence, Set, Union

from app.core.errors import DispatchError, PersistenceError, SchedulingError, ValidationError
from app.core.models import EventDraft, EventRecord, EventRecordInput, LinkPayload, Person
from app.notifications.dispatcher import NotificationDispatcher, resolve_recipients
from app.observability.logger import log_error, log_event, log_warning, timing
from app.routes.health import update_last_dispatch
from app.scheduling.time_composer import compose
from app.scheduling.validator import validate
from app.storage.event_store import EventStore

logger = logging.getLogger(__name__)

EVENT_ROUTE = "Event"

# Strong references so detached dispatch tasks outlive the workflow object
_running_dispatches: Set[asyncio.Task] = set()

DispatchCallback = Callable[[EventRecord, Optional[Exception]], Union[None, Awaitable[None]]]


class WorkflowState(str, Enum):
    COMPOSING = "composing"
    VALIDATING = "validating"
    INVALID = "invalid"
    PERSISTING = "persisting"
    PERSIST_ERROR = "persist_error"
    PERSISTED = "persisted"
    NOTIFYING = "notifying"
    DONE = "done"


@dataclass
class SubmissionResult:
    """Outcome of one submit, including that run's own state history."""

    ok: bool = False
    record: Optional[EventRecord] = None
    errors: List[str] = field(default_factory=list)
    error: Optional[SchedulingError] = None
    dispatch_error: Optional[Exception] = None
    state: WorkflowState = WorkflowState.COMPOSING
    history: List[WorkflowState] = field(default_factory=lambda: [WorkflowState.COMPOSING])

    def transition(self, state: WorkflowState) -> None:
        logger.debug(f"workflow {self.state.value} -> {state.value}")
        self.state = state
        self.history.append(state)

    @property
    def message(self) -> Optional[str]:
        if isinstance(self.error, ValidationError):
            return self.error.message
        if self.error is not None:
            return str(self.error)
        return None


def format_when(moment: datetime) -> str:
    """Short local date and time, e.g. '01/10/2024 9:00 AM'."""
    hour = moment.hour % 12 or 12
    am_pm = "AM" if moment.hour < 12 else "PM"
    return f"{moment:%m/%d/%Y} {hour}:{moment.minute:02d} {am_pm}"


def alert_title(record: EventRecord) -> str:
    return f"{record.title} has been Scheduled"


def alert_body(organizer: Person, record: EventRecord) -> str:
    return f"{organizer.display_first_name} just scheduled a new event for {format_when(record.start_date)}."


class SchedulingWorkflow:
    """Orchestrates validate -> compose -> save -> notify for one organizer."""

    def __init__(
        self,
        organizer: Person,
        home_id: str,
        store: EventStore,
        dispatcher: NotificationDispatcher,
        people: Sequence[Person] = (),
        on_dispatch_complete: Optional[DispatchCallback] = None,
    ):
        self.organizer = organizer
        self.home_id = home_id
        self.store = store
        self.dispatcher = dispatcher
        self.people = list(people)
        self.on_dispatch_complete = on_dispatch_complete
        self._dispatch_tasks: Set[asyncio.Task] = set()

    def build_record_input(self, draft: EventDraft) -> EventRecordInput:
        return EventRecordInput(
            home_id=self.home_id,
            title=draft.title,
            room_id=draft.room_id,
            start_date=compose(draft.date, draft.start_time),
            end_date=compose(draft.date, draft.end_time),
            attendee_ids=list(draft.attendee_ids),
        )

    async def submit(self, draft: EventDraft) -> SubmissionResult:
        """
        Run one submission attempt.

        Each call tracks its own state on the returned result, so overlapping
        submits never interleave. Validation and persistence failures end back
        in COMPOSING with the caller's draft untouched.
        """
        snapshot = draft.model_copy(deep=True)
        result = SubmissionResult()

        result.transition(WorkflowState.VALIDATING)
        errors = validate(snapshot)
        if errors:
            result.errors = errors
            result.error = ValidationError(errors)
            result.transition(WorkflowState.INVALID)
            result.transition(WorkflowState.COMPOSING)
            return result

        record_input = self.build_record_input(snapshot)

        result.transition(WorkflowState.PERSISTING)
        try:
            with timing("event_save") as timer:
                record = await self.store.save(record_input)
        except Exception as exc:
            if isinstance(exc, PersistenceError):
                error = exc
            else:
                error = PersistenceError(f"Unexpected store failure: {exc}")
                error.__cause__ = exc
            log_error(error, {"action": "save_failed", "home_id": self.home_id})
            result.error = error
            result.transition(WorkflowState.PERSIST_ERROR)
            result.transition(WorkflowState.COMPOSING)
            return result

        log_event(
            action="saved",
            driver=type(self.store).__name__,
            title=record.title,
            recipients_count=len(record.attendee_ids),
            event_id=record.id,
            duration_ms=timer.get_duration_ms(),
        )
        result.ok = True
        result.record = record
        result.transition(WorkflowState.PERSISTED)

        result.transition(WorkflowState.NOTIFYING)
        task = asyncio.create_task(self._dispatch(record, result))
        self._dispatch_tasks.add(task)
        task.add_done_callback(self._dispatch_tasks.discard)
        _running_dispatches.add(task)
        task.add_done_callback(_running_dispatches.discard)

        result.transition(WorkflowState.DONE)
        return result

    async def _dispatch(self, record: EventRecord, result: SubmissionResult) -> None:
        recipients = resolve_recipients(self.people, record.attendee_ids)
        error: Optional[Exception] = None
        sent = 0
        try:
            sent = await self.dispatcher.fanout(
                recipients,
                exclude_id=self.organizer.id,
                title=alert_title(record),
                body=alert_body(self.organizer, record),
                link=LinkPayload(route=EVENT_ROUTE, params={"eventId": record.id}),
            )
        except DispatchError as exc:
            error = exc
        except Exception as exc:
            error = DispatchError(f"Unexpected dispatch failure: {exc}")
            error.__cause__ = exc

        if error is not None:
            result.dispatch_error = error
            log_warning("Event saved but attendee notification failed", {
                "event_id": record.id,
                "error": str(error),
            })

        update_last_dispatch(
            event_id=record.id,
            driver=self.dispatcher.driver,
            recipients_count=sent,
            success=error is None,
            error=str(error) if error is not None else None,
        )

        if self.on_dispatch_complete is not None:
            try:
                outcome = self.on_dispatch_complete(record, error)
                if asyncio.iscoroutine(outcome):
                    await outcome
            except Exception as exc:
                logger.warning(f"on_dispatch_complete callback failed: {exc}")

    @property
    def pending_dispatches(self) -> int:
        return len(self._dispatch_tasks)

    async def wait_for_dispatch(self) -> None:
        """Await every outstanding notification task."""
        if self._dispatch_tasks:
            await asyncio.gather(*list(self._dispatch_tasks))
