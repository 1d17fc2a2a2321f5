"""CLI para consultar, registrar y exportar horas y millas por día."""

from __future__ import annotations

import argparse
import logging
from collections.abc import Sequence
from datetime import date, datetime
from pathlib import Path

from dateutil import tz

from timekeeper.day_identity import DayIdentity, session_offset_seconds
from timekeeper.excel_writer import ExcelLayout, write_timesheet_xlsx
from timekeeper.remote import DayRecordClient
from timekeeper.storage import SQLiteStore
from timekeeper.sync import DayRecordSynchronizer

logger = logging.getLogger(__name__)

_LOCAL_TZ = tz.tzlocal()


def parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Returns:
        Parsed argparse namespace.
    """
    parser = argparse.ArgumentParser(
        description="Timekeeper: horas trabajadas y millas recorridas por día."
    )
    parser.add_argument(
        "--db",
        default=str(Path.cwd() / "timekeeper.sqlite3"),
        help="Base SQLite de configuración (default: ./timekeeper.sqlite3).",
    )
    parser.add_argument("--api-url", help="URL del almacén (pisa la configurada).")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log DEBUG.")
    sub = parser.add_subparsers(dest="command", required=True)

    show = sub.add_parser("show", help="Muestra los registros de dos meses.")
    show.add_argument("--month", type=_parse_month, help="Primer mes (YYYY-MM).")

    log = sub.add_parser("log", help="Registra (o borra con 0/0) un día.")
    log.add_argument("--day", type=_parse_day, required=True, help="YYYY-MM-DD")
    log.add_argument("--hours", required=True, help="Horas trabajadas.")
    log.add_argument("--miles", required=True, help="Millas recorridas.")

    export = sub.add_parser("export", help="Exporta dos meses a Excel.")
    export.add_argument("--month", type=_parse_month, help="Primer mes (YYYY-MM).")
    export.add_argument("--out", help="Ruta del .xlsx de salida.")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI.

    Returns:
        Exit code (0 on success, 1 if the store or the input failed).
    """
    ns = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if ns.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    store = SQLiteStore(Path(ns.db).expanduser())
    config = store.load_config()
    client = DayRecordClient(ns.api_url or config.api_url, timeout_s=config.timeout_s)
    logger.debug("Using store at %s", client.base_url)
    identity = DayIdentity(session_offset_seconds())
    today = datetime.now(tz=_LOCAL_TZ).date()

    month = getattr(ns, "month", None)
    if ns.command == "log":
        month = ns.day.replace(day=1)
    sync = DayRecordSynchronizer(client, identity, today=today, month=month)
    if not sync.refresh():
        print(f"ERROR: {sync.notice}")
        return 1

    if ns.command == "show":
        _print_window(sync)
        return 0
    if ns.command == "log":
        return _log_day(sync, ns.day, ns.hours, ns.miles)

    out_dir = (
        Path(config.export_dir).expanduser()
        if config.export_dir
        else Path.cwd() / "salidas"
    )
    start = sync.cache.range_start.date()
    out_path = (
        Path(ns.out).expanduser()
        if ns.out
        else out_dir / f"timekeeper_{start:%Y-%m}.xlsx"
    )
    write_timesheet_xlsx(sync.frame(), out_path, ExcelLayout())
    print(f"OK: Output: {out_path}")
    return 0


def _log_day(sync: DayRecordSynchronizer, day: date, hours: str, miles: str) -> int:
    sync.select_day(day)
    sync.form.hours_text = hours
    sync.form.miles_text = miles
    if not sync.submit():
        print(f"ERROR: {sync.notice}")
        return 1
    record = sync.selected_record()
    if record is None:
        print(f"OK: {day.isoformat()} sin registro")
    else:
        print(
            f"OK: {day.isoformat()} horas={record.hours:.2f} millas={record.miles:.2f}"
        )
    return 0


def _print_window(sync: DayRecordSynchronizer) -> None:
    start = sync.cache.range_start.date()
    end = sync.cache.range_end.date()
    print(f"Rango: {start.isoformat()} .. {end.isoformat()}")
    classification = sync.classification
    df = sync.frame()
    for _, row in df.iterrows():
        style = classification.style_for(row["day"]) or "-"
        print(
            f"{row['day'].isoformat()}  horas={row['hours']:.2f}  "
            f"millas={row['miles']:.2f}  [{style}]"
        )
    print(f"Total: {len(df)} días")


def _parse_month(raw: str) -> date:
    try:
        return datetime.strptime(raw, "%Y-%m").date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"mes inválido: {raw!r}") from exc


def _parse_day(raw: str) -> date:
    try:
        return datetime.strptime(raw, "%Y-%m-%d").date()
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"día inválido: {raw!r}") from exc
