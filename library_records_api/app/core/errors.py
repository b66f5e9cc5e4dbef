"""
Service level errors.

These exceptions describe expected, recoverable failures of an
operation: the payload was rejected or something referenced does not
exist.  Each one carries the ``Message`` that is returned to the caller.
Storage failures are not part of this hierarchy; see
``library_records_api.app.stable.errors``.
"""

from library_records_api.app.schemas.message import Message, MessageKind


class LibraryError(Exception):
    """Base class for errors reported through the message envelope."""

    kind: MessageKind = MessageKind.ERROR

    def __init__(self, text: str) -> None:
        super().__init__(text)
        self.text = text

    @property
    def message(self) -> Message:
        return Message(kind=self.kind, text=self.text)


class NotFoundError(LibraryError):
    """An entity, a referenced entity or any row of a listing is missing."""

    kind = MessageKind.NOT_FOUND


class InvalidPayloadError(LibraryError):
    """A required payload field is missing, empty or zero."""

    kind = MessageKind.INVALID_PAYLOAD
