from __future__ import annotations

from datetime import date
from pathlib import Path
from typing import cast

from openpyxl import Workbook, load_workbook
from openpyxl.worksheet.worksheet import Worksheet

from timekeeper.classify import records_to_frame
from timekeeper.day_identity import DayIdentity, utc_midnight
from timekeeper.excel_writer import (
    TOTAL_LABEL,
    ExcelLayout,
    _format_sheet,
    write_timesheet_xlsx,
)
from timekeeper.model import DayRecord


def test_write_timesheet_xlsx_happy_path_and_formatting(tmp_path: Path) -> None:
    """Una fila por día: Día, Fecha, Horas, Millas y fila de totales."""
    df = records_to_frame(
        [
            DayRecord(date=utc_midnight(date(2024, 3, 11)), hours=8.0, miles=60.0),
            DayRecord(date=utc_midnight(date(2024, 3, 12)), hours=4.5, miles=0.0),
        ],
        DayIdentity(5 * 3600),
    )
    out = tmp_path / "nested" / "out.xlsx"
    write_timesheet_xlsx(df, out, ExcelLayout())

    wb = load_workbook(out)
    ws = cast(Worksheet, wb[ExcelLayout().sheet_name])

    headers = [cell.value for cell in ws[1]]
    assert headers == ["Día", "Fecha", "Horas", "Millas"]
    assert ws.cell(row=2, column=1).value == "lun"
    assert ws.cell(row=2, column=2).value.date() == date(2024, 3, 11)
    assert ws.cell(row=3, column=3).value == 4.5

    assert ws.cell(row=4, column=2).value == TOTAL_LABEL
    assert ws.cell(row=4, column=3).value == 12.5
    assert ws.cell(row=4, column=4).value == 60.0
    assert ws.cell(row=4, column=3).font.bold is True

    assert ws.column_dimensions["A"].width == 6
    assert ws.cell(row=2, column=2).number_format == "dd/mm/yyyy"
    assert ws.cell(row=2, column=3).number_format == "0.00"


def test_write_timesheet_xlsx_empty_frame(tmp_path: Path) -> None:
    df = records_to_frame([], DayIdentity(0))
    out = tmp_path / "empty.xlsx"
    write_timesheet_xlsx(df, out, ExcelLayout(include_totals=False))
    ws = load_workbook(out)[ExcelLayout().sheet_name]
    assert [cell.value for cell in ws[1]] == ["Día", "Fecha", "Horas", "Millas"]
    assert ws.max_row == 1


def test_format_sheet_handles_missing_headers() -> None:
    wb = Workbook()
    ws = cast(Worksheet, wb.active)
    ws.append(["Solo"])
    ws.append([1])

    _format_sheet(ws)

    assert ws.cell(row=1, column=1).font.bold is True
    assert ws.cell(row=2, column=1).alignment.horizontal == "center"
