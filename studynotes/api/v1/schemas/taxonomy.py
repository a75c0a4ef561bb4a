from __future__ import annotations

from studynotes.core.models.base import AppBaseModel


class CounterRead(AppBaseModel):
    name: str
    color: str
    count: int
