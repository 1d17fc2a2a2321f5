"""Conversión entre el día canónico (medianoche UTC) y la fecha local mostrada.

El almacén guarda cada día como el timestamp Unix de las 00:00 UTC de ese día.
Ese valor coincide con la medianoche local sólo cuando el offset es 0.

- Servidor -> cliente: se SUMA ``offset_seconds`` al timestamp canónico.
- Cliente -> servidor: se RESTA ``offset_seconds`` a la medianoche local.

``offset_seconds`` sigue la convención de ``Date.getTimezoneOffset``: positivo
al oeste de UTC (UTC-5 -> 18000).
"""

from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone

from dateutil import tz


def session_offset_seconds(now: datetime | None = None) -> int:
    """Read the viewer's offset once, from the runtime's local timezone.

    Args:
        now: Instant used to resolve DST; defaults to the current time.

    Returns:
        Seconds to add when going canonical -> local.
    """
    local_tz = tz.tzlocal()
    moment = now if now is not None else datetime.now(tz=local_tz)
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=local_tz)
    utcoffset = moment.astimezone(local_tz).utcoffset() or timedelta(0)
    return -int(utcoffset.total_seconds())


class DayIdentity:
    """Pure translator bound to one fixed session offset."""

    def __init__(self, offset_seconds: int) -> None:
        self._offset = int(offset_seconds)
        self._zone = timezone(timedelta(seconds=-self._offset))

    @property
    def offset_seconds(self) -> int:
        return self._offset

    @property
    def zone(self) -> timezone:
        return self._zone

    def to_canonical(self, local_midnight: datetime) -> int:
        """Local midnight -> UTC-midnight Unix seconds."""
        if local_midnight.tzinfo is None:
            local_midnight = local_midnight.replace(tzinfo=self._zone)
        return int(local_midnight.timestamp()) - self._offset

    def to_local(self, utc_seconds: int) -> datetime:
        """UTC-midnight Unix seconds -> aware local midnight of the same day."""
        return datetime.fromtimestamp(utc_seconds + self._offset, tz=self._zone)

    def local_midnight(self, day: date) -> datetime:
        """Local midnight of ``day`` in the session zone."""
        return datetime(day.year, day.month, day.day, tzinfo=self._zone)

    def day_of(self, utc_seconds: int) -> date:
        """Calendar day a canonical timestamp stands for."""
        return self.to_local(utc_seconds).date()

    def canonical_day(self, day: date) -> int:
        return self.to_canonical(self.local_midnight(day))


def utc_midnight(day: date) -> int:
    """Canonical identity of ``day`` without going through any offset."""
    return calendar.timegm(day.timetuple())
