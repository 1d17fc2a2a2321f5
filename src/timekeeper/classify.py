"""Clasificación de días del calendario (horas, millas, ambos) con pandas."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date

import pandas as pd

from timekeeper.day_identity import DayIdentity
from timekeeper.model import DayRecord

HOURS_COLOR = "#a7f3d0"
MILES_COLOR = "#e9d5ff"

FRAME_COLUMNS = ["date", "day", "hours", "miles"]


@dataclass(frozen=True)
class DayClassification:
    """Local days per styling predicate; the sets may overlap."""

    hours: frozenset[date] = field(default_factory=frozenset)
    miles: frozenset[date] = field(default_factory=frozenset)
    both: frozenset[date] = field(default_factory=frozenset)

    def style_for(self, day: date) -> str | None:
        """Most specific style for ``day``: both > hours > miles."""
        if day in self.both:
            return "both"
        if day in self.hours:
            return "hours"
        if day in self.miles:
            return "miles"
        return None


def records_to_frame(
    records: Iterable[DayRecord], identity: DayIdentity
) -> pd.DataFrame:
    """Convert records to a DataFrame with canonical and local day columns."""
    rows = [
        {
            "date": r.date,
            "day": identity.day_of(r.date),
            "hours": r.hours,
            "miles": r.miles,
        }
        for r in records
    ]
    df = pd.DataFrame(rows)
    if df.empty:
        return pd.DataFrame(columns=FRAME_COLUMNS)
    return df[FRAME_COLUMNS].sort_values("date").reset_index(drop=True)


def classify_days(frame: pd.DataFrame) -> DayClassification:
    """Split local days by which metrics were logged."""
    if frame.empty:
        return DayClassification()
    has_hours = frame["hours"] > 0
    has_miles = frame["miles"] > 0
    return DayClassification(
        hours=frozenset(frame.loc[has_hours, "day"]),
        miles=frozenset(frame.loc[has_miles, "day"]),
        both=frozenset(frame.loc[has_hours & has_miles, "day"]),
    )


def blend_colors(first: str, second: str) -> str:
    """Average two ``#rrggbb`` colors, used for the "both" cell style."""
    a = [int(first[i : i + 2], 16) for i in (1, 3, 5)]
    b = [int(second[i : i + 2], 16) for i in (1, 3, 5)]
    return "#" + "".join(f"{(x + y) // 2:02x}" for x, y in zip(a, b, strict=True))


STYLE_COLORS: dict[str, str] = {
    "hours": HOURS_COLOR,
    "miles": MILES_COLOR,
    "both": blend_colors(HOURS_COLOR, MILES_COLOR),
}
