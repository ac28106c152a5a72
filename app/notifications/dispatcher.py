import logging
from typing import Iterable, List, Optional, Sequence

from app.channels.push_client import PushTransport, select_push_transport_from_env
from app.core.errors import DispatchError
from app.core.models import LinkPayload, Person
from app.observability.logger import log_event, timing

logger = logging.getLogger(__name__)


def resolve_recipients(people: Iterable[Person], attendee_ids: Sequence[str]) -> List[Person]:
    """Map attendee ids to known people, keeping attendee order. Unknown ids are skipped."""
    by_id = {person.id: person for person in people}
    return [by_id[attendee_id] for attendee_id in attendee_ids if attendee_id in by_id]


def collect_tokens(recipients: Iterable[Person], exclude_id: Optional[str]) -> List[str]:
    """
    Delivery tokens for everyone except ``exclude_id``.

    People without a token have never registered a device and are skipped.
    Duplicate tokens collapse to one, first occurrence wins.
    """
    tokens: List[str] = []
    for person in recipients:
        if person.id == exclude_id:
            continue
        if not person.delivery_token:
            continue
        if person.delivery_token in tokens:
            continue
        tokens.append(person.delivery_token)
    return tokens


class NotificationDispatcher:
    """Sends one alert per scheduled event to every attendee but the organizer."""

    def __init__(self, transport: PushTransport):
        self.transport = transport

    @property
    def driver(self) -> str:
        return getattr(self.transport, "driver", "unknown")

    async def fanout(
        self,
        recipients: Sequence[Person],
        exclude_id: Optional[str],
        title: str,
        body: str,
        link: LinkPayload,
    ) -> int:
        """
        Deliver ``title``/``body`` plus the deep link to every resolvable recipient.

        Returns the number of tokens handed to the transport (0 means nothing
        was sent). Transport failures are raised as DispatchError.
        """
        tokens = collect_tokens(recipients, exclude_id)
        event_id = link.params.get("eventId")

        if not tokens:
            log_event(
                action="skipped",
                driver=self.driver,
                title=title,
                recipients_count=0,
                event_id=event_id,
                reason="no_delivery_tokens",
            )
            return 0

        with timing("push_fanout") as timer:
            try:
                await self.transport.send(tokens, title, body, link.as_data())
            except DispatchError:
                raise
            except Exception as exc:
                raise DispatchError(f"Push transport failed: {exc}") from exc

        log_event(
            action="notified",
            driver=self.driver,
            title=title,
            recipients_count=len(tokens),
            event_id=event_id,
            duration_ms=timer.get_duration_ms(),
        )
        return len(tokens)


# Global dispatcher instance
_dispatcher: Optional[NotificationDispatcher] = None


def get_dispatcher() -> NotificationDispatcher:
    """Get the global dispatcher, wired to the transport named by PUSH_DRIVER."""
    global _dispatcher
    if _dispatcher is None:
        _dispatcher = NotificationDispatcher(select_push_transport_from_env())
    return _dispatcher


def reset_dispatcher() -> None:
    global _dispatcher
    _dispatcher = None
