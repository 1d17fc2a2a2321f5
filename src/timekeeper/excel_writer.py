"""Generación de Excel de horas y millas para la ventana visible."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Any

import pandas as pd
from openpyxl.styles import Alignment, Border, Font, Side

_DIA_SEMANA: tuple[str, ...] = ("lun", "mar", "mie", "jue", "vie", "sab", "dom")

_HEADER_MAP: dict[str, str] = {
    "weekday": "Día",
    "day": "Fecha",
    "hours": "Horas",
    "miles": "Millas",
}

TOTAL_LABEL = "Total"


@dataclass(frozen=True)
class ExcelLayout:
    """Layout/formatting configuration for the timesheet."""

    sheet_name: str = "Horas y millas"
    include_totals: bool = True


def _weekday_label(i: object) -> str:
    """Convierte índice 0-6 (lunes-domingo) a etiqueta de 3 letras."""
    try:
        if i is None or (isinstance(i, float) and pd.isna(i)):
            return ""
        if isinstance(i, int | float):
            idx = int(i)
            return _DIA_SEMANA[idx] if 0 <= idx < 7 else ""
        return ""
    except (ValueError, TypeError):
        return ""


def _prepare_export_frame(df: pd.DataFrame) -> pd.DataFrame:
    """Deja sólo Día, Fecha, Horas y Millas en ese orden."""
    export_df = df.copy()
    if "day" in export_df.columns and not export_df.empty:
        days = pd.to_datetime(export_df["day"], errors="coerce")
        export_df["weekday"] = days.dt.weekday.map(_weekday_label)
        export_df["day"] = days
    else:
        export_df["weekday"] = pd.Series(dtype=object)
    cols = [c for c in _HEADER_MAP if c in export_df.columns]
    return export_df[cols].rename(columns=_HEADER_MAP)


def write_timesheet_xlsx(
    df: pd.DataFrame, out_path: Path, layout: ExcelLayout
) -> None:
    """Write a formatted timesheet suitable for printing.

    Args:
        df: Records frame (see ``classify.records_to_frame``).
        out_path: Output path for the XLSX file.
        layout: Excel layout parameters.
    """
    out_path.parent.mkdir(parents=True, exist_ok=True)

    export_df = _prepare_export_frame(df)

    with pd.ExcelWriter(out_path, engine="openpyxl") as writer:
        export_df.to_excel(writer, index=False, sheet_name=layout.sheet_name)
        ws = writer.book[layout.sheet_name]
        if layout.include_totals:
            _append_totals(ws, export_df)
        _format_sheet(ws)


def _append_totals(ws: Any, export_df: pd.DataFrame) -> None:
    """Agrega una fila final con la suma de horas y millas."""
    row: list[object] = []
    for header in export_df.columns:
        if header == "Fecha":
            row.append(TOTAL_LABEL)
        elif header in ("Horas", "Millas"):
            row.append(float(pd.to_numeric(export_df[header]).sum()))
        else:
            row.append(None)
    ws.append(row)
    for cell in ws[ws.max_row]:
        cell.font = Font(bold=True)


def _style_header_row(ws: Any) -> None:
    """Aplica fuente negrita, alineación y borde a la fila de cabecera."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    header_font = Font(bold=True)
    center = Alignment(horizontal="center", vertical="center", wrap_text=True)
    for cell in ws[1]:
        cell.font = header_font
        cell.alignment = center
        cell.border = border


def _style_body_rows(ws: Any) -> None:
    """Aplica alineación y borde a las filas de datos."""
    thin = Side(style="thin")
    border = Border(left=thin, right=thin, top=thin, bottom=thin)
    center = Alignment(horizontal="center", vertical="center")
    for row in ws.iter_rows(min_row=2):
        for cell in row:
            cell.alignment = center
            cell.border = border
        ws.row_dimensions[row[0].row].height = 15


def _get_header_col_index(ws: Any) -> dict[str, int]:
    """Devuelve mapa nombre de cabecera -> índice de columna (1-based)."""
    headers = [str(cell.value) for cell in ws[1]]
    return {name: idx + 1 for idx, name in enumerate(headers)}


def _apply_column_widths(ws: Any, col_index: dict[str, int]) -> None:
    widths = [("Día", 6), ("Fecha", 12), ("Horas", 10), ("Millas", 10)]
    for header, width in widths:
        idx = col_index.get(header)
        if idx is not None:
            letter = ws.cell(row=1, column=idx).column_letter
            ws.column_dimensions[letter].width = width


def _apply_number_formats(ws: Any, col_index: dict[str, int]) -> None:
    fmt_map: dict[str, str] = {
        "Fecha": "dd/mm/yyyy",
        "Horas": "0.00",
        "Millas": "#,##0.00",
    }
    for row in ws.iter_rows(min_row=2):
        for header, fmt in fmt_map.items():
            idx = col_index.get(header)
            if idx is not None:
                row[idx - 1].number_format = fmt


def _format_sheet(ws: Any) -> None:
    """Apply borders, widths and number formats to a worksheet.

    Args:
        ws: openpyxl worksheet.
    """
    _style_header_row(ws)
    _style_body_rows(ws)
    col_index = _get_header_col_index(ws)
    _apply_column_widths(ws, col_index)
    _apply_number_formats(ws, col_index)
