"""Sincronizador de registros diarios: cache visible + formulario + almacén.

Todas las fallas remotas se atrapan aquí y se exponen como ``notice``; nunca
llegan a la capa de presentación.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date

import pandas as pd

from timekeeper.classify import DayClassification, classify_days, records_to_frame
from timekeeper.day_identity import DayIdentity
from timekeeper.errors import TimekeeperError, ValidationError
from timekeeper.form import DayEditForm
from timekeeper.model import DayRecord
from timekeeper.remote import DayRecordClient
from timekeeper.visible_range import (
    FetchTicket,
    VisibleRangeCache,
    default_visible_month,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Mutation:
    """One pending write: an upsert, or a delete when ``record`` is None."""

    date: int
    record: DayRecord | None

    @property
    def is_delete(self) -> bool:
        return self.record is None


class DayRecordSynchronizer:
    """Controller binding the visible-range cache to the day-edit form."""

    def __init__(
        self,
        client: DayRecordClient,
        identity: DayIdentity,
        *,
        today: date,
        month: date | None = None,
    ) -> None:
        self.client = client
        self.identity = identity
        self.cache = VisibleRangeCache(
            client,
            identity,
            month if month is not None else default_visible_month(today),
        )
        self.form = DayEditForm()
        self.notice: str | None = None
        self._classification = DayClassification()
        self.form.show(today, None)

    @property
    def classification(self) -> DayClassification:
        return self._classification

    def frame(self) -> pd.DataFrame:
        """Visible records as a DataFrame (for previews and export)."""
        return records_to_frame(self.cache.records.values(), self.identity)

    def selected_record(self) -> DayRecord | None:
        day = self.form.selected_date
        if day is None:
            return None
        return self.cache.record_for(self.identity.canonical_day(day))

    def select_day(self, day: date | None) -> None:
        """Change the selection and re-populate the form from the cache."""
        if day is None:
            self.form.show(None, None)
            return
        self.form.show(day, self.cache.record_for(self.identity.canonical_day(day)))

    # Synchronous flow (CLI, tests)

    def set_visible_month(self, month: date) -> bool:
        ticket = self.plan_month(month)
        return self._fetch_and_finish(ticket)

    def refresh(self) -> bool:
        return self._fetch_and_finish(self.plan_refresh())

    def submit(self) -> bool:
        """Send the form's mutation, then refresh strictly after it lands.

        Returns:
            True if the mutation was accepted and the refresh applied.
        """
        mutation = self.plan_submit()
        if mutation is None:
            return False
        try:
            self.send_mutation(mutation)
        except TimekeeperError as exc:
            self.fail(exc)
            return False
        return self.refresh()

    # Split flow (UI thread plans and applies, worker thread does I/O)

    def plan_month(self, month: date) -> FetchTicket:
        self.cache.move_to(month)
        return self.plan_refresh()

    def plan_refresh(self) -> FetchTicket:
        return self.cache.begin_fetch()

    def fetch(self, ticket: FetchTicket) -> list[DayRecord]:
        """Run the network part of ``ticket``; touches no local state."""
        return self.client.fetch_range(ticket.start, ticket.end)

    def finish_refresh(
        self, ticket: FetchTicket, records: Iterable[DayRecord]
    ) -> bool:
        """Apply fetched records (if still current) and re-sync the form."""
        if not self.cache.complete_fetch(ticket, records):
            return False
        self.notice = None
        self._classification = classify_days(self.frame())
        self.select_day(self.form.selected_date)
        return True

    def plan_submit(self) -> Mutation | None:
        """Validate the form and build the pending write.

        Returns:
            The mutation, or None (with ``notice`` set) if the input is invalid.
        """
        day = self.form.selected_date
        if day is None or not self.form.can_submit:
            self.notice = "Completá horas y millas para un día seleccionado."
            return None
        try:
            hours, miles = self.form.parse()
        except ValidationError as exc:
            self.notice = str(exc)
            return None
        utc = self.identity.canonical_day(day)
        if hours == 0 and miles == 0:
            return Mutation(date=utc, record=None)
        record = DayRecord(date=utc, hours=hours, miles=miles)
        return Mutation(date=utc, record=record)

    def send_mutation(self, mutation: Mutation) -> None:
        """Run the network part of ``mutation``; touches no local state."""
        if mutation.record is None:
            self.client.delete(mutation.date)
        else:
            self.client.upsert(mutation.record)

    def use_client(self, client: DayRecordClient) -> None:
        """Switch stores in place, keeping the window and the selection.

        Fetches issued against the previous client will not be applied.
        """
        self.client = client
        self.cache.use_client(client)

    def fail(self, exc: TimekeeperError) -> None:
        """Record a remote failure as a notice; the cache stays unchanged."""
        logger.error("Remote call failed (%s): %s", type(exc).__name__, exc)
        self.notice = f"Error ({type(exc).__name__}): {exc}"

    def _fetch_and_finish(self, ticket: FetchTicket) -> bool:
        try:
            records = self.fetch(ticket)
        except TimekeeperError as exc:
            self.fail(exc)
            return False
        return self.finish_refresh(ticket, records)
