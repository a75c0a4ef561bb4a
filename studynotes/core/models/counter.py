from __future__ import annotations

from enum import Enum

from pydantic import Field

from .base import AppBaseModel


class CounterCollection(str, Enum):
    """Collections holding denormalized usage counters."""

    TAGS = "tags"
    SUBJECTS = "subjects"


class CounterRecord(AppBaseModel):
    """Usage counter for a tag or subject name.

    Counts are advisory display statistics; concurrent writers may lose
    updates.
    """

    name: str = Field(..., min_length=1)
    color: str
    count: int = 0
