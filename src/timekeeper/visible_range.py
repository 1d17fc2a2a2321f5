"""Cache de registros para la ventana de dos meses visible en el calendario."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime

from dateutil.relativedelta import relativedelta

from timekeeper.day_identity import DayIdentity
from timekeeper.model import DayRecord
from timekeeper.remote import DayRecordClient

logger = logging.getLogger(__name__)

MONTHS_SHOWN = 2


@dataclass(frozen=True)
class FetchTicket:
    """Tag for one issued range fetch."""

    seq: int
    start: int
    end: int


def month_window(month: date) -> tuple[date, date]:
    """First day of ``month`` and last day of the month after it."""
    first = month.replace(day=1)
    last = first + relativedelta(months=MONTHS_SHOWN) - relativedelta(days=1)
    return first, last


def default_visible_month(today: date) -> date:
    """Previous month, so that today falls in the second panel."""
    return today.replace(day=1) - relativedelta(months=1)


class VisibleRangeCache:
    """Records of the visible window, always replaced as a whole."""

    def __init__(
        self,
        client: DayRecordClient,
        identity: DayIdentity,
        month: date,
    ) -> None:
        self._client = client
        self._identity = identity
        self._records: dict[int, DayRecord] = {}
        self._issued = 0
        self._latest = 0
        self.move_to(month)

    @property
    def range_start(self) -> datetime:
        return self._range_start

    @property
    def range_end(self) -> datetime:
        return self._range_end

    @property
    def month(self) -> date:
        return self._range_start.date()

    @property
    def canonical_range(self) -> tuple[int, int]:
        return (
            self._identity.to_canonical(self._range_start),
            self._identity.to_canonical(self._range_end),
        )

    @property
    def records(self) -> dict[int, DayRecord]:
        return dict(self._records)

    def record_for(self, utc_seconds: int) -> DayRecord | None:
        return self._records.get(utc_seconds)

    def set_visible_month(self, month: date) -> bool:
        """Move the window to ``month`` and the following one, then re-fetch.

        The range is updated before the fetch is issued.
        """
        self.move_to(month)
        return self.refresh()

    def refresh(self) -> bool:
        """Re-fetch the current canonical range and replace the cache.

        Returns:
            True if the result was applied.
        """
        ticket = self.begin_fetch()
        records = self._client.fetch_range(ticket.start, ticket.end)
        return self.complete_fetch(ticket, records)

    def begin_fetch(self) -> FetchTicket:
        """Issue a new tagged fetch for the current range.

        Results of any earlier ticket will be discarded from now on.
        """
        self._issued += 1
        self._latest = self._issued
        start, end = self.canonical_range
        logger.debug("Fetch #%d issued for [%d, %d]", self._issued, start, end)
        return FetchTicket(seq=self._issued, start=start, end=end)

    def complete_fetch(
        self, ticket: FetchTicket, records: Iterable[DayRecord]
    ) -> bool:
        """Apply a fetch result if ``ticket`` is still the latest one."""
        if ticket.seq != self._latest:
            logger.info(
                "Discarding stale fetch #%d (latest is #%d)",
                ticket.seq,
                self._latest,
            )
            return False
        self._records = {r.date: r for r in records}
        logger.debug("Fetch #%d applied: %d records", ticket.seq, len(self._records))
        return True

    def is_current(self, ticket: FetchTicket) -> bool:
        return ticket.seq == self._latest

    def cancel_pending(self) -> None:
        """Invalidate every outstanding ticket; none of them will apply."""
        self._latest = 0

    def use_client(self, client: DayRecordClient) -> None:
        """Point future fetches at ``client``; results already in flight are dropped."""
        self._client = client
        self.cancel_pending()

    def move_to(self, month: date) -> None:
        """Set the window bounds for ``month`` without fetching."""
        first, last = month_window(month)
        self._range_start = self._identity.local_midnight(first)
        self._range_end = self._identity.local_midnight(last)
