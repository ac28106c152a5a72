"""
Error taxonomy for the scheduling flow.

Validation and persistence errors are recoverable and surface to the user.
Dispatch errors are secondary: the event is already saved when they occur.
"""

from typing import List, Sequence


class SchedulingError(Exception):
    """Base class for every error raised by the scheduling core."""


class ValidationError(SchedulingError):
    """One or more required fields are missing from the draft."""

    def __init__(self, messages: Sequence[str]):
        self.messages: List[str] = list(messages)
        super().__init__(self.message)

    @property
    def message(self) -> str:
        return "\n".join(self.messages)


class PersistenceError(SchedulingError):
    """The event store was unreachable or rejected the write."""


class DispatchError(SchedulingError):
    """The push transport failed to deliver an alert."""
