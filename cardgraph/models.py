"""Pydantic schemas for the card API.

Card bodies are returned as plain dicts built by the repository; the nested
measure fields come straight from imported data and have no fixed types.
"""

from enum import Enum
from typing import Any

from pydantic import BaseModel


class CardState(str, Enum):
    CHECKED = "avhuket"
    UNCHECKED = "ikke_avhuket"

    @classmethod
    def values(cls) -> tuple[str, ...]:
        return tuple(s.value for s in cls)


class StateUpdateRequest(BaseModel):
    # Untyped so any bad value reaches the repository check and comes back as 400
    state: Any = None


class StateUpdateResponse(BaseModel):
    id: int
    state: str


class PointsResponse(BaseModel):
    points: int


class MessageResponse(BaseModel):
    message: str
