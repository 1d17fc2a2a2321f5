"""Estado del formulario de edición del día seleccionado."""

from __future__ import annotations

import math
from datetime import date
from enum import Enum

from timekeeper.errors import ValidationError
from timekeeper.model import DayRecord


class FormState(Enum):
    """Which of the three form states the selection is in."""

    NO_SELECTION = "no_selection"
    SELECTED_WITH_RECORD = "selected_with_record"
    SELECTED_WITHOUT_RECORD = "selected_without_record"


class DayEditForm:
    """Hours/miles text fields bound to the selected day."""

    def __init__(self) -> None:
        self.selected_date: date | None = None
        self.hours_text = ""
        self.miles_text = ""
        self._record: DayRecord | None = None

    @property
    def state(self) -> FormState:
        if self.selected_date is None:
            return FormState.NO_SELECTION
        if self._record is None:
            return FormState.SELECTED_WITHOUT_RECORD
        return FormState.SELECTED_WITH_RECORD

    @property
    def record(self) -> DayRecord | None:
        return self._record

    @property
    def editable(self) -> bool:
        return self.selected_date is not None

    @property
    def can_submit(self) -> bool:
        """Submit is enabled only with a day selected and both fields filled."""
        return (
            self.selected_date is not None
            and bool(self.hours_text.strip())
            and bool(self.miles_text.strip())
        )

    def show(self, day: date | None, record: DayRecord | None) -> None:
        """Enter the state for ``day``, overwriting both fields.

        Args:
            day: Selected local day, or None to clear the selection.
            record: Stored record for that day, if any.
        """
        self.selected_date = day
        self._record = record if day is not None else None
        if self._record is not None:
            self.hours_text = f"{self._record.hours:.2f}"
            self.miles_text = f"{self._record.miles:.2f}"
        else:
            self.hours_text = ""
            self.miles_text = ""

    def parse(self) -> tuple[float, float]:
        """Parse both fields.

        Raises:
            ValidationError: If no day is selected or a field is not a
                non-negative finite number.
        """
        if self.selected_date is None:
            raise ValidationError("No hay un día seleccionado.")
        hours = _parse_field("horas", self.hours_text)
        miles = _parse_field("millas", self.miles_text)
        return hours, miles


def _parse_field(name: str, text: str) -> float:
    raw = text.strip()
    if not raw:
        raise ValidationError(f"El campo {name} está vacío.")
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValidationError(f"El campo {name} no es numérico: {raw!r}") from exc
    if not math.isfinite(value):
        raise ValidationError(f"El campo {name} no es un número finito: {raw!r}")
    if value < 0:
        raise ValidationError(f"El campo {name} no puede ser negativo: {raw!r}")
    return value
