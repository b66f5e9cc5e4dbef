"""
Result envelope returned for deletions and failed operations.

On the wire a message is a single-key object naming its kind, e.g.
``{"NotFound": "Book not found"}``.
"""

from enum import Enum
from typing import Dict

from pydantic import BaseModel


class MessageKind(str, Enum):
    SUCCESS = "Success"
    ERROR = "Error"
    NOT_FOUND = "NotFound"
    INVALID_PAYLOAD = "InvalidPayload"


class Message(BaseModel):
    kind: MessageKind
    text: str

    @classmethod
    def success(cls, text: str) -> "Message":
        return cls(kind=MessageKind.SUCCESS, text=text)

    def envelope(self) -> Dict[str, str]:
        return {self.kind.value: self.text}
