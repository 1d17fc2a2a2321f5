"""Modelo tipado del registro diario de horas y millas."""

from __future__ import annotations

import math
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from timekeeper.errors import ResponseFormatError

SECONDS_PER_DAY = 86_400


@dataclass(frozen=True)
class DayRecord:
    """Hours and miles logged for one canonical (UTC-midnight) day."""

    date: int
    hours: float
    miles: float

    def __post_init__(self) -> None:
        if self.date % SECONDS_PER_DAY != 0:
            raise ValueError(f"date {self.date} is not aligned to UTC midnight")
        if self.hours < 0 or self.miles < 0:
            raise ValueError("hours and miles must be non-negative")

    @property
    def is_empty(self) -> bool:
        """A zero/zero record stands for "nothing logged"."""
        return self.hours == 0 and self.miles == 0

    def to_json(self) -> dict[str, Any]:
        """Return the wire representation sent to the store."""
        return {"date": self.date, "hours": self.hours, "miles": self.miles}

    @classmethod
    def from_json(cls, payload: object) -> DayRecord:
        """Build a record from one element of the store's JSON array.

        Raises:
            ResponseFormatError: If keys are missing or values are not numbers.
        """
        if not isinstance(payload, Mapping):
            raise ResponseFormatError(f"expected an object, got {payload!r}")
        try:
            raw_date = payload["date"]
            hours = _as_number(payload["hours"])
            miles = _as_number(payload["miles"])
        except KeyError as exc:
            raise ResponseFormatError(f"missing key {exc} in {payload!r}") from exc
        if isinstance(raw_date, bool) or not isinstance(raw_date, int | float):
            raise ResponseFormatError(f"invalid date {raw_date!r}")
        try:
            return cls(date=int(raw_date), hours=hours, miles=miles)
        except ValueError as exc:
            raise ResponseFormatError(str(exc)) from exc


def _as_number(value: object) -> float:
    if isinstance(value, bool) or not isinstance(value, int | float):
        raise ResponseFormatError(f"expected a number, got {value!r}")
    out = float(value)
    if not math.isfinite(out):
        raise ResponseFormatError(f"expected a finite number, got {value!r}")
    return out
