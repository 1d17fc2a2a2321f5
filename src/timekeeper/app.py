"""App Kivy: calendario de dos meses con formulario de horas y millas."""

from __future__ import annotations

import calendar
import logging
import threading
import traceback
from collections.abc import Callable, Sequence
from datetime import date, datetime
from pathlib import Path
from typing import Any, TypeVar

from dateutil import tz
from dateutil.relativedelta import relativedelta

from timekeeper.classify import STYLE_COLORS
from timekeeper.day_identity import DayIdentity, session_offset_seconds
from timekeeper.errors import TimekeeperError
from timekeeper.excel_writer import ExcelLayout, write_timesheet_xlsx
from timekeeper.model import DayRecord
from timekeeper.remote import DayRecordClient
from timekeeper.storage import AppConfig, SQLiteStore
from timekeeper.sync import DayRecordSynchronizer, Mutation
from timekeeper.visible_range import MONTHS_SHOWN, FetchTicket

logger = logging.getLogger(__name__)

T = TypeVar("T")

WEEKS_SHOWN = 6
WEEKDAY_LABELS = ("do", "lu", "ma", "mi", "ju", "vi", "sa")
_MONTH_NAMES = (
    "enero",
    "febrero",
    "marzo",
    "abril",
    "mayo",
    "junio",
    "julio",
    "agosto",
    "septiembre",
    "octubre",
    "noviembre",
    "diciembre",
)

# (day, style, selected, today, on_press) -> widget de la celda
CellFactory = Callable[[date | None, str | None, bool, bool, Callable[[], None]], Any]


class CalendarController:
    """UI-thread logic of the app, independent of the Kivy widget classes.

    Widgets only need ``text``/``disabled`` attributes, ``bind(text=...)`` on
    the inputs and ``clear_widgets``/``add_widget`` on the grids. ``spawn``
    runs a callable off the UI thread and ``schedule`` hands one back to it.
    """

    def __init__(
        self,
        sync: DayRecordSynchronizer,
        *,
        hours_input: Any,
        miles_input: Any,
        submit_btn: Any,
        status: Any,
        range_label: Any,
        month_grids: Sequence[Any],
        make_label: Callable[[str], Any],
        make_cell: CellFactory,
        spawn: Callable[[Callable[[], None]], None],
        schedule: Callable[[Callable[[], None]], None],
        today: Callable[[], date],
    ) -> None:
        self.sync = sync
        self.hours_input = hours_input
        self.miles_input = miles_input
        self.submit_btn = submit_btn
        self.status = status
        self.range_label = range_label
        self.month_grids = list(month_grids)
        self._make_label = make_label
        self._make_cell = make_cell
        self._spawn = spawn
        self._schedule = schedule
        self._today = today
        self._busy = False
        self._writing_fields = False
        self.hours_input.bind(text=self.on_field_change)
        self.miles_input.bind(text=self.on_field_change)

    @property
    def busy(self) -> bool:
        """True while a mutation and its follow-up refresh are in flight."""
        return self._busy

    def start(self) -> None:
        self.render()
        self.start_refresh(self.sync.plan_refresh())

    # Red: el trabajo corre en un hilo, el resultado vuelve al hilo de UI.

    def run_in_background(
        self,
        work: Callable[[], T],
        on_done: Callable[[T], None],
        on_error: Callable[[TimekeeperError], None],
    ) -> None:
        def runner() -> None:
            try:
                result = work()
            except TimekeeperError as exc:
                error = exc
                self._schedule(lambda: on_error(error))
                return
            except Exception as exc:
                logger.exception("Unexpected failure in background call")
                wrapped = TimekeeperError(f"{type(exc).__name__}: {exc}")
                self._schedule(lambda: on_error(wrapped))
                return
            self._schedule(lambda: on_done(result))

        self._spawn(runner)

    def start_refresh(
        self, ticket: FetchTicket, *, after_mutation: bool = False
    ) -> None:
        sync = self.sync

        def done(records: list[DayRecord]) -> None:
            if after_mutation:
                self._set_busy(False)
            if sync.finish_refresh(ticket, records):
                self.set_status(f"{len(records)} días con registros.")
                self.render()

        def failed(exc: TimekeeperError) -> None:
            if after_mutation:
                self._set_busy(False)
            if sync.cache.is_current(ticket):
                self.on_remote_error(exc)

        self.run_in_background(lambda: sync.fetch(ticket), done, failed)

    def on_remote_error(self, exc: TimekeeperError) -> None:
        self.sync.fail(exc)
        self.set_status(self.sync.notice or "")
        self.sync_submit_enabled()

    def shift_month(self, delta: int) -> None:
        month = self.sync.cache.month + relativedelta(months=delta)
        ticket = self.sync.plan_month(month)
        self.render()
        self.start_refresh(ticket)

    def submit(self) -> None:
        if self._busy:
            return
        mutation = self.sync.plan_submit()
        if mutation is None:
            self.set_status(self.sync.notice or "")
            return
        self._set_busy(True)
        sync = self.sync

        def failed(exc: TimekeeperError) -> None:
            self._set_busy(False)
            self.on_remote_error(exc)

        self.run_in_background(
            lambda: sync.send_mutation(mutation),
            lambda _result: self._on_mutation_sent(mutation),
            failed,
        )

    def _on_mutation_sent(self, mutation: Mutation) -> None:
        action = "borrado" if mutation.is_delete else "guardado"
        self.set_status(f"Día {action}, actualizando...")
        self.start_refresh(self.sync.plan_refresh(), after_mutation=True)

    def replace_client(self, client: DayRecordClient) -> None:
        """Switch to another store, keeping the visible window and selection."""
        self.sync.use_client(client)
        ticket = self.sync.plan_month(self.sync.cache.month)
        self.render()
        self.start_refresh(ticket)

    def select(self, day: date) -> None:
        self.sync.select_day(day)
        self.render()

    def on_field_change(self, *_args: object) -> None:
        if self._writing_fields:
            return
        self.sync.form.hours_text = self.hours_input.text
        self.sync.form.miles_text = self.miles_input.text
        self.sync_submit_enabled()

    def sync_submit_enabled(self) -> None:
        self.submit_btn.disabled = self._busy or not self.sync.form.can_submit

    def render(self) -> None:
        cache = self.sync.cache
        self.range_label.text = format_range(
            cache.range_start.date(), cache.range_end.date()
        )
        classification = self.sync.classification
        selected = self.sync.form.selected_date
        today = self._today()
        for offset, grid in enumerate(self.month_grids):
            month = cache.month + relativedelta(months=offset)
            grid.clear_widgets()
            for label in WEEKDAY_LABELS:
                grid.add_widget(self._make_label(label))
            for week in month_grid(month):
                for day in week:
                    style = classification.style_for(day) if day is not None else None
                    grid.add_widget(
                        self._make_cell(
                            day,
                            style,
                            day is not None and day == selected,
                            day is not None and day == today,
                            self._select_callback(day),
                        )
                    )

        # Escribir un campo dispara el binding de text en el acto.
        form = self.sync.form
        self._writing_fields = True
        try:
            self.hours_input.text = form.hours_text
            self.miles_input.text = form.miles_text
        finally:
            self._writing_fields = False
        self.hours_input.disabled = not form.editable
        self.miles_input.disabled = not form.editable
        self.sync_submit_enabled()

    def set_status(self, text: str) -> None:
        self.status.text = text

    def _select_callback(self, day: date | None) -> Callable[[], None]:
        def callback() -> None:
            if day is not None:
                self.select(day)

        return callback

    def _set_busy(self, busy: bool) -> None:
        self._busy = busy
        self.sync_submit_enabled()


def run_app() -> int:
    """Lanza la app Kivy."""
    from kivy.app import App
    from kivy.clock import Clock
    from kivy.core.window import Window
    from kivy.uix.boxlayout import BoxLayout
    from kivy.uix.button import Button
    from kivy.uix.gridlayout import GridLayout
    from kivy.uix.label import Label
    from kivy.uix.popup import Popup
    from kivy.uix.textinput import TextInput

    def local_today() -> date:
        return datetime.now(tz=tz.tzlocal()).date()

    def make_cell(
        day: date | None,
        style: str | None,
        selected: bool,
        today: bool,
        on_press: Callable[[], None],
    ) -> Button | Label:
        if day is None:
            return Label(text="")
        text = f"[u]{day.day}[/u]" if today else str(day.day)
        if selected:
            text = f"[b]{text}[/b]"
        btn = Button(text=text, markup=True)
        if style is not None:
            btn.background_normal = ""
            btn.background_color = hex_to_rgba(STYLE_COLORS[style])
            btn.color = (0, 0, 0, 1)
        btn.bind(on_press=lambda *_args: on_press())
        return btn

    def spawn(work: Callable[[], None]) -> None:
        threading.Thread(target=work, daemon=True).start()

    def schedule(callback: Callable[[], None]) -> None:
        Clock.schedule_once(lambda _dt: callback())

    class TimekeeperApp(App):
        """Main Kivy app."""

        def __init__(self, **kwargs: object) -> None:
            super().__init__(**kwargs)
            self.store = SQLiteStore(Path.cwd() / "timekeeper.sqlite3")
            self.app_config = self.store.load_config()
            self.controller: CalendarController | None = None

        def build(self) -> BoxLayout:
            Window.bind(on_key_down=self._on_key_down)

            root = BoxLayout(orientation="vertical", spacing=8, padding=10)
            root.add_widget(Label(text="Timekeeper", size_hint_y=None, height=36))

            nav = BoxLayout(orientation="horizontal", size_hint_y=None, height=40)
            prev_btn = Button(text="<", size_hint_x=0.15)
            next_btn = Button(text=">", size_hint_x=0.15)
            range_label = Label(text="")
            nav.add_widget(prev_btn)
            nav.add_widget(range_label)
            nav.add_widget(next_btn)
            root.add_widget(nav)

            months = BoxLayout(orientation="horizontal", spacing=12)
            month_grids = []
            for _ in range(MONTHS_SHOWN):
                grid = GridLayout(cols=7, spacing=2)
                month_grids.append(grid)
                months.add_widget(grid)
            root.add_widget(months)

            form = GridLayout(cols=2, spacing=6, size_hint_y=None, height=84)
            form.add_widget(Label(text="Horas", size_hint_x=0.3))
            hours_input = TextInput(
                multiline=False, input_filter="float", hint_text="8.0"
            )
            form.add_widget(hours_input)
            form.add_widget(Label(text="Millas", size_hint_x=0.3))
            miles_input = TextInput(
                multiline=False, input_filter="float", hint_text="60"
            )
            form.add_widget(miles_input)
            root.add_widget(form)

            actions = BoxLayout(
                orientation="horizontal",
                spacing=8,
                size_hint_y=None,
                height=40,
            )
            submit_btn = Button(text="Guardar día")
            settings_btn = Button(text="Configuracion")
            export_btn = Button(text="Exportar Excel")
            exit_btn = Button(text="Salir")
            actions.add_widget(submit_btn)
            actions.add_widget(settings_btn)
            actions.add_widget(export_btn)
            actions.add_widget(exit_btn)
            root.add_widget(actions)

            status = Label(text="Cargando...", size_hint_y=None, height=30)
            root.add_widget(status)

            client = DayRecordClient(
                self.app_config.api_url, timeout_s=self.app_config.timeout_s
            )
            sync = DayRecordSynchronizer(
                client, DayIdentity(session_offset_seconds()), today=local_today()
            )
            controller = CalendarController(
                sync,
                hours_input=hours_input,
                miles_input=miles_input,
                submit_btn=submit_btn,
                status=status,
                range_label=range_label,
                month_grids=month_grids,
                make_label=lambda text: Label(text=text),
                make_cell=make_cell,
                spawn=spawn,
                schedule=schedule,
                today=local_today,
            )
            self.controller = controller
            prev_btn.bind(on_press=lambda *_args: controller.shift_month(-1))
            next_btn.bind(on_press=lambda *_args: controller.shift_month(1))
            submit_btn.bind(on_press=lambda *_args: controller.submit())
            settings_btn.bind(on_press=self._open_config_popup)
            export_btn.bind(on_press=self._on_export)
            exit_btn.bind(on_press=lambda *_args: self.stop())

            controller.start()
            return root

        def _on_key_down(
            self,
            _window: object,
            keycode: int,
            _scancode: int,
            _text: str,
            _modifiers: list[str],
        ) -> bool:
            # Esc: salir de fullscreen o cerrar app.
            if keycode != 27:
                return False
            if Window.fullscreen:
                Window.fullscreen = False
            else:
                self.stop()
            return True

        def _open_config_popup(self, _: object) -> None:
            box = BoxLayout(orientation="vertical", spacing=8, padding=8)
            inputs: dict[str, TextInput] = {}
            for label, key, initial in (
                ("URL del almacén", "api_url", self.app_config.api_url),
                ("Path salida", "export_dir", self.app_config.export_dir),
                ("Timeout (s)", "timeout_s", str(self.app_config.timeout_s)),
            ):
                row = BoxLayout(orientation="horizontal", size_hint_y=None, height=36)
                row.add_widget(Label(text=label, size_hint_x=0.3))
                inp = TextInput(text=initial, multiline=False)
                row.add_widget(inp)
                inputs[key] = inp
                box.add_widget(row)

            footer = BoxLayout(orientation="horizontal", size_hint_y=None, height=42)
            cancel_btn = Button(text="Cancelar")
            save_btn = Button(text="Guardar")
            footer.add_widget(cancel_btn)
            footer.add_widget(save_btn)
            box.add_widget(footer)

            popup = Popup(title="Configuracion", content=box, size_hint=(0.8, 0.6))
            cancel_btn.bind(on_press=lambda *_args: popup.dismiss())
            save_btn.bind(
                on_press=lambda *_args: self._save_popup_config(popup, inputs)
            )
            popup.open()

        def _save_popup_config(
            self, popup: Popup, inputs: dict[str, TextInput]
        ) -> None:
            self.app_config = config_from_inputs(
                self.app_config,
                api_url=inputs["api_url"].text,
                export_dir=inputs["export_dir"].text,
                timeout_s=inputs["timeout_s"].text,
            )
            self.store.save_config(self.app_config)
            popup.dismiss()
            if self.controller is None:
                return
            self.controller.set_status("Configuracion guardada.")
            self.controller.replace_client(
                DayRecordClient(
                    self.app_config.api_url, timeout_s=self.app_config.timeout_s
                )
            )

        def _on_export(self, _: object) -> None:
            if self.controller is None:
                return
            config = self.app_config
            out_dir = (
                Path(config.export_dir).expanduser()
                if config.export_dir
                else Path.cwd() / "salidas"
            )
            timestamp = datetime.now().strftime("%Y-%m-%d_%H-%M-%S")
            out_path = out_dir / f"timekeeper_{timestamp}.xlsx"
            try:
                write_timesheet_xlsx(
                    self.controller.sync.frame(), out_path, ExcelLayout()
                )
            except OSError as exc:
                logger.error("Export failed: %s", traceback.format_exc())
                self.controller.set_status(
                    f"Error al exportar ({type(exc).__name__}): {exc}"
                )
                return
            self.controller.set_status(f"Excel generado: {out_path}")

    TimekeeperApp().run()
    return 0


def config_from_inputs(
    current: AppConfig, *, api_url: str, export_dir: str, timeout_s: str
) -> AppConfig:
    """Build the config typed in the settings popup, keeping invalid fields."""
    try:
        timeout = float(timeout_s.strip())
    except ValueError:
        timeout = current.timeout_s
    return AppConfig(
        api_url=api_url.strip() or current.api_url,
        export_dir=export_dir.strip(),
        timeout_s=timeout if timeout > 0 else current.timeout_s,
    )


def month_grid(month: date) -> list[list[date | None]]:
    """Sunday-first weeks of ``month``, padded to a fixed six rows."""
    cal = calendar.Calendar(firstweekday=calendar.SUNDAY)
    weeks: list[list[date | None]] = [
        [day if day.month == month.month else None for day in week]
        for week in cal.monthdatescalendar(month.year, month.month)
    ]
    while len(weeks) < WEEKS_SHOWN:
        weeks.append([None] * 7)
    return weeks


def format_range(start: date, end: date) -> str:
    """Header text for the visible window, e.g. "marzo 2024 - abril 2024"."""
    return (
        f"{_MONTH_NAMES[start.month - 1]} {start.year} - "
        f"{_MONTH_NAMES[end.month - 1]} {end.year}"
    )


def hex_to_rgba(color: str, alpha: float = 1.0) -> tuple[float, float, float, float]:
    """Convert ``#rrggbb`` to the 0-1 RGBA tuple Kivy expects."""
    r, g, b = (int(color[i : i + 2], 16) / 255 for i in (1, 3, 5))
    return (r, g, b, alpha)
