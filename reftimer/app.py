#!/usr/bin/env python3
"""
EVE Structure Timer: track reinforcement timers (with optional calendar reminders)

- List of timers, soonest first; past-due timers greyed out
- Add / edit form: system, location, time entered reinforcement (HH:MM, blank = now),
  time remaining (D:HH:MM or 1j 2h 30m), defence flag
- Due date recomputed live while typing, shown in EVE time (UTC) or local time
- Add a timer to the calendar (.ics files or Google Calendar, see config)
"""
from __future__ import annotations

import asyncio
import logging
import queue
import sys
import threading
import tkinter as tk
from tkinter import messagebox, ttk
from typing import Awaitable, Callable

from . import __version__, config
from .calendar_bridge import make_bridge
from .controller import OperationResult, TimerController
from .duration import describe_duration
from .errors import PersistenceError
from .form import EventForm, FormState
from .store import PickleEventStore
from .timecalc import DisplayZone, format_for_display

logger = logging.getLogger(__name__)

REFRESH_MS = 30_000
HELP_URL = "https://nissabba.github.io"


# ------------------------------ Form window ---------------------------- #
class TimerFormWindow(tk.Toplevel):
    """Modal add/edit window driven by an EventForm."""

    FIELD_LABELS = (
        ("system_name", "System Name", "Jita"),
        ("location", "Location Information", "planet 8 or Fortizar near the Sun..."),
        ("start_time", "Entered Reinforcement at (HH:MM, blank = now)", ""),
        ("offset", "Time remaining (D:HH:MM or 1j 2h 30m)", ""),
    )

    def __init__(self, master: "App", form: EventForm) -> None:
        super().__init__(master)
        self.app = master
        self.form = form
        self.title("Edit Timer" if form.editing else "New Timer")
        self.resizable(False, False)
        self.transient(master)

        self.vars: dict[str, tk.StringVar] = {}
        self.error_labels: dict[str, ttk.Label] = {}
        self.defence_var = tk.BooleanVar(value=form.is_defence)
        self.utc_var = tk.BooleanVar(value=form.display_zone == DisplayZone.UTC)
        self.result_var = tk.StringVar(value=form.result_text)

        self._build()
        self._unsubscribe = form.subscribe(lambda f: self.result_var.set(f.result_text))
        self._refresh()
        self.protocol("WM_DELETE_WINDOW", self._cancel)
        self.grab_set()

    def _build(self) -> None:
        pad = dict(padx=10, pady=4)
        body = ttk.Frame(self)
        body.pack(fill="both", expand=True, **pad)

        row = 0
        for name, label, hint in self.FIELD_LABELS:
            ttk.Label(body, text=label, font=("Segoe UI", 10, "bold")).grid(row=row, column=0, sticky="w")
            row += 1
            var = tk.StringVar(value=getattr(self.form, name))
            entry = ttk.Entry(body, textvariable=var, width=36)
            entry.grid(row=row, column=0, sticky="we")
            if hint:
                ttk.Label(body, text=hint, foreground="grey").grid(row=row, column=1, sticky="w", padx=(6, 0))
            var.trace_add("write", lambda *_a, n=name, v=var: self._on_field(n, v.get()))
            self.vars[name] = var
            row += 1
            err = ttk.Label(body, text="", foreground="red")
            err.grid(row=row, column=0, sticky="w")
            self.error_labels[name] = err
            row += 1

        if self.form.explicit_start is not None:
            self.anchor_note = ttk.Label(
                body,
                text=f"Keeping original start {format_for_display(self.form.explicit_start, self.form.display_zone)}"
                     "; type a time to replace it",
                foreground="grey",
            )
            self.anchor_note.grid(row=row, column=0, columnspan=2, sticky="w")
            row += 1

        ttk.Checkbutton(body, text="Is defence timer", variable=self.defence_var,
                        command=lambda: setattr(self.form, "is_defence", self.defence_var.get())
                        ).grid(row=row, column=0, sticky="w", pady=(8, 0))
        row += 1
        ttk.Checkbutton(body, text="Show Time in UTC (Eve Time)", variable=self.utc_var,
                        command=self._on_zone).grid(row=row, column=0, sticky="w")
        row += 1

        result = ttk.Label(body, textvariable=self.result_var, font=("Segoe UI", 16, "bold"))
        result.grid(row=row, column=0, columnspan=2, pady=(12, 4))
        result.bind("<Button-3>", lambda e: self._copy_result())
        row += 1

        actions = ttk.Frame(body)
        actions.grid(row=row, column=0, columnspan=2, pady=(4, 8))
        self.save_btn = ttk.Button(actions, text="Save", command=self._save)
        self.save_btn.grid(row=0, column=0, padx=(0, 10))
        ttk.Button(actions, text="Copy", command=self._copy_result).grid(row=0, column=1, padx=(0, 10))
        ttk.Button(actions, text="Cancel", command=self._cancel).grid(row=0, column=2)

    def _on_field(self, name: str, value: str) -> None:
        if name == "start_time" and self.form.explicit_start is not None and value.strip():
            self.anchor_note.configure(text="")
            self.form.set_start_time(value)
        else:
            setattr(self.form, name, value)
        self._refresh()

    def _on_zone(self) -> None:
        self.form.display_zone = DisplayZone.UTC if self.utc_var.get() else DisplayZone.LOCAL
        self._refresh()

    def _refresh(self) -> None:
        for name, label in self.error_labels.items():
            # Untouched fields stay quiet until the user types something.
            shown = self.form.errors.get(name) if self.form.state != FormState.EMPTY else None
            label.configure(text=shown or "")
        self.result_var.set(self.form.result_text)
        if self.form.is_all_valid:
            self.save_btn.state(["!disabled"])
        else:
            self.save_btn.state(["disabled"])

    def _copy_result(self) -> None:
        self.clipboard_clear()
        self.clipboard_append(self.result_var.get())

    def _save(self) -> None:
        result = self.app.controller.commit(self.form)
        if not result.ok:
            messagebox.showerror("Error Saving Timer", result.message, parent=self)
            return
        if result.needs_sync and result.record is not None:
            self.app.run_async(self.app.controller.sync_calendar(result.record), self.app.report_failure)
        self._close()

    def _cancel(self) -> None:
        self._close()

    def _close(self) -> None:
        self._unsubscribe()
        self.form.close()
        self.grab_release()
        self.destroy()


# ------------------------------ GUI App ------------------------------- #
class App(tk.Tk):
    COLUMNS = (
        ("system", "System", 130),
        ("location", "Location", 170),
        ("kind", "Type", 70),
        ("due", "Due", 130),
        ("remaining", "Remaining", 100),
        ("calendar", "Cal", 40),
    )

    def __init__(self, controller: TimerController) -> None:
        super().__init__()
        self.controller = controller
        self.title("Eve Structure Timer")
        self.geometry("720x520")
        self.minsize(640, 420)
        self.utc_var = tk.BooleanVar(value=controller.display_zone == DisplayZone.UTC)
        self.status_var = tk.StringVar(value="")
        self._results: queue.Queue[Callable[[], None]] = queue.Queue()
        self._build()
        self._build_menu()
        # Controller changes may come from calendar worker threads.
        controller.subscribe(lambda c: self._results.put(self._reload))
        self._reload()
        self.after(REFRESH_MS, self._tick)
        self.after(100, self._drain_results)

    def _build(self) -> None:
        pad = dict(padx=10, pady=6)
        header = ttk.Label(self, text="Reinforcement Timers", font=("Segoe UI", 16, "bold"))
        header.pack(anchor="w", **pad)

        toolbar = ttk.Frame(self)
        toolbar.pack(fill="x", **pad)
        ttk.Button(toolbar, text="Add Event", command=self.add_event).grid(row=0, column=0, padx=(0, 6))
        ttk.Button(toolbar, text="Edit", command=self.edit_event).grid(row=0, column=1, padx=(0, 6))
        ttk.Button(toolbar, text="Add to Calendar", command=self.add_to_calendar).grid(row=0, column=2, padx=(0, 6))
        ttk.Button(toolbar, text="Delete", command=self.delete_event).grid(row=0, column=3, padx=(0, 6))
        ttk.Checkbutton(toolbar, text="Show Time in UTC (Eve Time)", variable=self.utc_var,
                        command=self._on_zone).grid(row=0, column=4, padx=(16, 0))

        self.count_lbl = ttk.Label(self, text="")
        self.count_lbl.pack(anchor="w", padx=10)

        list_fr = ttk.Frame(self)
        list_fr.pack(fill="both", expand=True, **pad)
        self.tree = ttk.Treeview(list_fr, columns=[c[0] for c in self.COLUMNS], show="headings",
                                 selectmode="browse")
        for key, title, width in self.COLUMNS:
            self.tree.heading(key, text=title)
            self.tree.column(key, width=width, anchor="w")
        self.tree.tag_configure("past", foreground="grey")
        self.tree.tag_configure("defence", foreground="#1565c0")
        self.tree.pack(side="left", fill="both", expand=True)
        scroll = ttk.Scrollbar(list_fr, orient="vertical", command=self.tree.yview)
        scroll.pack(side="right", fill="y")
        self.tree.configure(yscrollcommand=scroll.set)
        self.tree.bind("<<TreeviewSelect>>", self._on_select)
        self.tree.bind("<Double-1>", lambda e: self.edit_event())

        ttk.Label(self, textvariable=self.status_var, foreground="grey").pack(anchor="w", padx=10, pady=(0, 8))

    def _build_menu(self) -> None:
        menubar = tk.Menu(self)
        events = tk.Menu(menubar, tearoff=False)
        events.add_command(label="Add Event", command=self.add_event, accelerator="Ctrl+N")
        events.add_command(label="Edit Event", command=self.edit_event, accelerator="Ctrl+E")
        events.add_command(label="Add to Calendar", command=self.add_to_calendar, accelerator="Ctrl+F")
        events.add_command(label="Remove from Calendar", command=self.remove_from_calendar)
        events.add_separator()
        events.add_command(label="Delete Event", command=self.delete_event, accelerator="Ctrl+G")
        menubar.add_cascade(label="Events", menu=events)

        help_menu = tk.Menu(menubar, tearoff=False)
        help_menu.add_command(label="Eve Structure Timer Help", command=self.show_help)
        help_menu.add_command(label="About This App", command=self.show_about)
        menubar.add_cascade(label="Help", menu=help_menu)
        self.config(menu=menubar)

        self.bind_all("<Control-n>", lambda e: self.add_event())
        self.bind_all("<Control-e>", lambda e: self.edit_event())
        self.bind_all("<Control-f>", lambda e: self.add_to_calendar())
        self.bind_all("<Control-g>", lambda e: self.delete_event())

    # ------------------------------ List ------------------------------ #
    def _reload(self) -> None:
        zone = self.controller.display_zone
        selected = self.controller.selected
        self.tree.delete(*self.tree.get_children())
        events = self.controller.events
        for r in events:
            tags = ["past"] if r.is_past_due() else (["defence"] if r.is_defence else [])
            remaining = "past due" if r.is_past_due() else describe_duration(r.remaining().total_seconds()) or "< 1m"
            self.tree.insert("", "end", iid=r.id, tags=tags, values=(
                r.system_name,
                r.location,
                "Defence" if r.is_defence else "Offence",
                format_for_display(r.due_date, zone),
                remaining,
                "✓" if r.calendar_event_id else "",
            ))
        if selected is not None and self.tree.exists(selected.id):
            self.tree.selection_set(selected.id)
        self.count_lbl.configure(text=f"Number of Events: {len(events)}")

    def _tick(self) -> None:
        self._reload()
        self.after(REFRESH_MS, self._tick)

    def _on_select(self, _event=None) -> None:
        sel = self.tree.selection()
        self.controller.select(sel[0] if sel else None)

    def _on_zone(self) -> None:
        self.controller.set_display_zone(DisplayZone.UTC if self.utc_var.get() else DisplayZone.LOCAL)

    # ----------------------------- Actions ---------------------------- #
    def add_event(self) -> None:
        TimerFormWindow(self, self.controller.open_form())

    def edit_event(self) -> None:
        if self.controller.selected is None:
            messagebox.showinfo("Edit Event", "Select a timer first.")
            return
        TimerFormWindow(self, self.controller.open_form(edit_selected=True))

    def delete_event(self) -> None:
        record = self.controller.selected
        if record is None:
            return
        if not messagebox.askyesno("Delete Event", f"Delete the timer for {record.system_name} - {record.location}?"):
            return
        self.run_async(self.controller.delete_selected(), self.report_failure)

    def add_to_calendar(self) -> None:
        if self.controller.selected is None:
            return
        self.status_var.set("Adding to calendar…")
        self.run_async(self.controller.add_selected_to_calendar(), self.report_result("Error Adding to Calendar"))

    def remove_from_calendar(self) -> None:
        if self.controller.selected is None:
            return
        self.run_async(self.controller.remove_selected_from_calendar(),
                       self.report_result("Error Removing from Calendar"))

    def show_about(self) -> None:
        messagebox.showinfo(
            "About This App",
            f"Eve Structure Timer {__version__}\n\nKeeps track of structure reinforcement timers.",
        )

    def show_help(self) -> None:
        messagebox.showinfo(
            "Need Help?",
            "Add a timer with the system, the structure's location and the time left "
            "on the reinforcement (D:HH:MM).\n\n"
            f"Website: {HELP_URL}",
        )

    # ------------------------- Async plumbing ------------------------- #
    def run_async(self, coro: Awaitable[OperationResult], done: Callable[[OperationResult], None]) -> None:
        """Run ``coro`` on a worker thread; ``done`` is called back on the Tk thread."""
        def worker() -> None:
            try:
                result = asyncio.run(coro)
            except Exception as e:
                logger.exception("Background task failed")
                result = OperationResult(False, f"Unexpected error: {e}")
            self._results.put(lambda: done(result))

        threading.Thread(target=worker, daemon=True).start()

    def _drain_results(self) -> None:
        while True:
            try:
                callback = self._results.get_nowait()
            except queue.Empty:
                break
            callback()
        self.after(100, self._drain_results)

    def report_result(self, title: str) -> Callable[[OperationResult], None]:
        def show(result: OperationResult) -> None:
            self.status_var.set(result.message)
            if not result.ok:
                messagebox.showerror(title, result.message)
        return show

    def report_failure(self, result: OperationResult) -> None:
        self.status_var.set(result.message)
        if not result.ok:
            messagebox.showerror("Eve Structure Timer", result.message)


def main() -> int:
    logging.basicConfig(
        level=config.LOG_LEVEL,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        store = PickleEventStore(config.STORE_PATH)
    except PersistenceError as e:
        logger.critical("Cannot open timer store: %s", e)
        messagebox.showerror("Eve Structure Timer", str(e))
        return 1
    controller = TimerController(store, make_bridge())
    app = App(controller)
    app.mainloop()
    return 0


if __name__ == "__main__":
    sys.exit(main())
