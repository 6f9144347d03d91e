from __future__ import annotations

from pathlib import Path
from typing import Callable, Dict, List, Optional, Tuple

import tkinter as tk
from tkinter import ttk, messagebox, filedialog

from .autostop import stop_all_running_timers
from .durations import get_duration, get_total_duration_today, has_running_entry
from .entries import entry_at, entry_path, ordered_entries
from .formatting import create_csv, format_duration, progress, progress_text
from .model import Entry
from .schedule import AutoStopClock
from .session import TrackerSession, open_sessions
from .settings import APP_NAME, Settings
from .timestamps import format_editable_timestamp, format_timestamp


class Repeater:
    """Calls ``callback`` every ``interval_ms`` on the Tk loop until cancelled.

    Stops by itself once ``widget`` has been destroyed.
    """

    def __init__(self, widget: tk.Misc, interval_ms: int, callback: Callable[[], None]):
        self.widget = widget
        self.interval_ms = interval_ms
        self.callback = callback
        self.job: Optional[str] = None

    def start(self) -> None:
        self.job = self.widget.after(self.interval_ms, self._run)

    def _run(self) -> None:
        self.job = None
        if not self.widget.winfo_exists():
            return
        try:
            self.callback()
        finally:
            self.start()

    def cancel(self) -> None:
        if self.job is not None:
            self.widget.after_cancel(self.job)
            self.job = None


class TrackerApp(ttk.Frame):
    def __init__(self, master: tk.Tk, store, path: str, settings: Settings):
        super().__init__(master)
        self.master = master
        self.store = store
        self.path = path
        self.settings = settings
        self.sessions: List[TrackerSession] = []
        # tree item -> (session index, entry id or None for the block row)
        self.items: Dict[str, Tuple[int, Optional[str]]] = {}
        self.duration_cells: List[Tuple[str, Entry]] = []
        self.clock = AutoStopClock(store, lambda: self.settings)
        self.ticker = Repeater(self, 1000, self._tick)

        self._build_ui()
        self._reload()
        self.ticker.start()
        self.bind("<Destroy>", self._on_destroy, add="+")

    # --- UI builders ---
    def _build_ui(self):
        self.master.title(f"{APP_NAME} - {self.path}")
        self.master.geometry("900x520")
        self.master.minsize(720, 400)

        menubar = tk.Menu(self.master)
        filemenu = tk.Menu(menubar, tearoff=0)
        filemenu.add_command(label="Export CSV…", command=self.on_export_csv)
        filemenu.add_command(label="Stop All Running Timers", command=self.on_stop_all)
        filemenu.add_separator()
        filemenu.add_command(label="Exit", command=self.master.destroy)
        menubar.add_cascade(label="File", menu=filemenu)
        self.master.config(menu=menubar)

        container = ttk.Frame(self, padding=10)
        container.pack(fill=tk.BOTH, expand=True)

        form = ttk.LabelFrame(container, text="New Segment")
        form.pack(fill=tk.X)
        ttk.Label(form, text="Name").grid(row=0, column=0, sticky=tk.W, padx=6, pady=6)
        self.name_var = tk.StringVar()
        ttk.Entry(form, textvariable=self.name_var).grid(row=0, column=1, sticky=tk.EW, padx=6, pady=6)
        form.columnconfigure(1, weight=1)

        buttons = ttk.Frame(container)
        buttons.pack(fill=tk.X, pady=(6, 2))

        self.start_btn = tk.Button(
            buttons,
            text="Start",
            command=self.on_start,
            bg="#2e7d32",
            fg="white",
            activebackground="#388e3c",
            activeforeground="white",
            font=("Segoe UI", 10, "bold"),
            padx=16,
            pady=6,
        )
        self.continue_btn = ttk.Button(buttons, text="Continue", command=self.on_continue)
        self.stop_btn = tk.Button(
            buttons,
            text="Stop",
            command=self.on_stop,
            state=tk.DISABLED,
            bg="#c62828",
            fg="white",
            activebackground="#e53935",
            activeforeground="white",
            font=("Segoe UI", 10, "bold"),
            padx=16,
            pady=6,
        )
        self.edit_btn = ttk.Button(buttons, text="Edit Selected", command=self.on_edit_selected)
        self.delete_btn = ttk.Button(buttons, text="Remove Selected", command=self.on_delete)

        for btn in (self.start_btn, self.continue_btn, self.stop_btn, self.edit_btn, self.delete_btn):
            btn.pack(side=tk.LEFT, padx=4)

        stats = ttk.Frame(container)
        stats.pack(fill=tk.X)
        self.live_label = ttk.Label(stats, text="Not running", font=("Segoe UI", 11, "bold"))
        self.today_total = ttk.Label(stats, text="Today: 0s")
        self.live_label.pack(side=tk.LEFT, padx=4, pady=6)
        self.today_total.pack(side=tk.RIGHT, padx=4, pady=6)

        table_frame = ttk.Frame(container)
        table_frame.pack(fill=tk.BOTH, expand=True, pady=6)

        cols = ("start", "end", "duration")
        self.tree = ttk.Treeview(table_frame, columns=cols, show="tree headings", selectmode="browse")
        self.tree.heading("#0", text="Segment")
        self.tree.column("#0", width=300, anchor=tk.W)
        for c, title, w in zip(cols, ("Start time", "End time", "Duration"), (160, 160, 200)):
            self.tree.heading(c, text=title)
            self.tree.column(c, width=w, anchor=tk.W)
        self.tree.pack(fill=tk.BOTH, expand=True, side=tk.LEFT)

        vsb = ttk.Scrollbar(table_frame, orient="vertical", command=self.tree.yview)
        self.tree.configure(yscrollcommand=vsb.set)
        vsb.pack(side=tk.RIGHT, fill=tk.Y)

        self.tree.bind("<Double-1>", lambda e: self.on_edit_selected())
        self.tree.bind("<<TreeviewSelect>>", lambda e: self._update_buttons())
        self.tree.bind("<<TreeviewOpen>>", lambda e: self._on_open_close(False))
        self.tree.bind("<<TreeviewClose>>", lambda e: self._on_open_close(True))
        self.master.bind("<Control-Return>", lambda e: self.on_start())
        self.master.bind("<Escape>", lambda e: self.on_stop())

    # --- loading / rendering ---
    def _close_sessions(self):
        for session in self.sessions:
            session.close()
        self.sessions = []

    def _reload(self):
        # entry ids are regenerated on load, keep the selection by position
        selected = None
        sel = self._selected()
        if sel:
            index, entry_id = sel
            selected = (index, entry_path(self.sessions[index].tracker.entries, entry_id) if entry_id else None)
        if self.sessions:
            self.path = self.sessions[0].path
        self._close_sessions()
        self.sessions = open_sessions(self.store, self.path, self.settings)
        self._render(selected)

    def _render(self, selected: Optional[Tuple[int, Optional[str]]] = None):
        self.tree.delete(*self.tree.get_children())
        self.items.clear()
        self.duration_cells.clear()

        for i, session in enumerate(self.sessions):
            block = self.tree.insert("", tk.END, text=f"Tracker {i + 1}", values=("", "", ""), open=True)
            self.items[block] = (i, None)
            for entry in ordered_entries(session.tracker.entries, self.settings.reverse_segment_order):
                self._insert_entry(block, i, entry)

        if selected and selected[0] < len(self.sessions):
            index, path = selected
            entry = entry_at(self.sessions[index].tracker.entries, path) if path else None
            ref = (index, entry.id if entry else None)
            for iid, item in self.items.items():
                if item == ref:
                    self.tree.selection_set(iid)
                    break
        self._tick()
        self._update_buttons()

    def _insert_entry(self, parent: str, index: int, entry: Entry):
        fmt = self.settings.timestamp_format
        running = has_running_entry(entry)
        name = f"{entry.name} ● RUNNING" if running else entry.name
        iid = self.tree.insert(
            parent,
            tk.END,
            text=name,
            values=(
                format_timestamp(entry.start_time, fmt) if entry.start_time and entry.is_leaf else "",
                format_timestamp(entry.end_time, fmt) if entry.end_time and entry.is_leaf else "",
                format_duration(get_duration(entry), self.settings),
            ),
            open=not entry.collapsed,
        )
        self.items[iid] = (index, entry.id)
        self.duration_cells.append((iid, entry))
        for sub in ordered_entries(entry.sub_entries, self.settings.reverse_segment_order):
            self._insert_entry(iid, index, sub)

    def _tick(self):
        # in-memory only; the store is touched by the auto-stop clock alone
        for iid, entry in self.duration_cells:
            if self.tree.exists(iid):
                self.tree.set(iid, "duration", format_duration(get_duration(entry), self.settings))

        for iid, (index, entry_id) in self.items.items():
            if entry_id is None:
                tracker = self.sessions[index].tracker
                prog = progress(tracker)
                if prog:
                    self.tree.set(iid, "duration", f"{progress_text(tracker, prog, self.settings)} [{prog.color}]")

        today = sum(get_total_duration_today(s.tracker.entries) for s in self.sessions)
        self.today_total.configure(text=f"Today: {format_duration(today, self.settings)}")
        running = next((s for s in self.sessions if s.running), None)
        if running:
            self.live_label.configure(text=f"Running in tracker {running.index + 1}")
        else:
            self.live_label.configure(text="Not running")

        stopped = self.clock.poll()
        if stopped:
            messagebox.showinfo("Auto-stop", f"Auto-stopped timers in {stopped} file(s)")
            self._reload()

    def _update_buttons(self):
        sel = self._selected()
        session = self.sessions[sel[0]] if sel else (self.sessions[0] if self.sessions else None)
        entry = session.entry(sel[1]) if sel and sel[1] else None
        top_level = entry is not None and any(e.id == entry.id for e in session.tracker.entries)
        entry_running = entry is not None and has_running_entry(entry)

        self.start_btn.configure(state=tk.NORMAL if session else tk.DISABLED)
        self.continue_btn.configure(state=tk.NORMAL if top_level and not session.running else tk.DISABLED)
        self.stop_btn.configure(state=tk.NORMAL if entry_running or (entry is None and session and session.running) else tk.DISABLED)
        self.edit_btn.configure(state=tk.NORMAL if entry else tk.DISABLED)
        self.delete_btn.configure(state=tk.NORMAL if entry and not entry_running else tk.DISABLED)

    def _selected(self) -> Optional[Tuple[int, Optional[str]]]:
        sel = self.tree.selection()
        if not sel:
            return None
        return self.items.get(sel[0])

    def _selected_session(self) -> Optional[TrackerSession]:
        sel = self._selected()
        if sel:
            return self.sessions[sel[0]]
        return self.sessions[0] if self.sessions else None

    # --- actions ---
    def on_start(self):
        session = self._selected_session()
        if not session:
            messagebox.showwarning("No tracker", "This document has no tracker block.")
            return
        session.start_new(self.name_var.get().strip())
        self.name_var.set("")
        self._reload()

    def on_continue(self):
        sel = self._selected()
        if not sel or not sel[1]:
            return
        self.sessions[sel[0]].continue_entry(sel[1], self.name_var.get().strip())
        self.name_var.set("")
        self._reload()

    def on_stop(self):
        sel = self._selected()
        session = self._selected_session()
        if not session:
            return
        session.stop(sel[1] if sel else None)
        self._reload()

    def on_stop_all(self):
        stopped = stop_all_running_timers(self.store)
        if stopped:
            messagebox.showinfo("Stopped", f"Stopped running timers in {stopped} file(s)")
        else:
            messagebox.showinfo("Stopped", "No running timers found")
        self._reload()

    def on_delete(self):
        sel = self._selected()
        if not sel or not sel[1]:
            return
        if messagebox.askyesno("Remove", "Are you sure you want to delete this entry?"):
            try:
                self.sessions[sel[0]].remove(sel[1])
            except ValueError as ex:
                messagebox.showerror("Cannot remove", str(ex))
            self._reload()

    def on_edit_selected(self):
        sel = self._selected()
        if not sel or not sel[1]:
            return
        EditDialog(self.master, self.sessions[sel[0]], sel[1], on_saved=self._reload)

    def _on_open_close(self, collapsed: bool):
        iid = self.tree.focus()
        ref = self.items.get(iid)
        if not ref or not ref[1]:
            return
        session = self.sessions[ref[0]]
        if session.entry(ref[1]).collapsed != collapsed:
            session.toggle_collapsed(ref[1])

    def on_export_csv(self):
        session = self._selected_session()
        if not session or not session.tracker.entries:
            messagebox.showinfo("Nothing to export", "The selected tracker has no entries.")
            return
        dest = filedialog.asksaveasfilename(
            title="Export CSV",
            defaultextension=".csv",
            filetypes=[("CSV", "*.csv"), ("All files", "*.*")],
            initialfile=f"{Path(self.path).stem}_tracker_{session.index + 1}.csv",
        )
        if not dest:
            return
        try:
            Path(dest).write_text(create_csv(session.tracker, self.settings), encoding="utf-8")
            messagebox.showinfo("Exported", f"Saved to {dest}")
        except OSError as ex:
            messagebox.showerror("Export failed", str(ex))

    def _on_destroy(self, event):
        if event.widget is self:
            self.ticker.cancel()
            self._close_sessions()


class EditDialog(tk.Toplevel):
    def __init__(self, master: tk.Tk, session: TrackerSession, entry_id: str, on_saved):
        super().__init__(master)
        self.title("Edit Entry")
        self.resizable(False, False)
        self.session = session
        self.entry_id = entry_id
        self.on_saved = on_saved

        entry = session.entry(entry_id)
        fmt = session.settings.editable_timestamp_format
        self.running = has_running_entry(entry)
        self.vars = {
            "name": tk.StringVar(value=entry.name),
            "start": tk.StringVar(value=format_editable_timestamp(entry.start_time, fmt) if entry.start_time else ""),
            "end": tk.StringVar(value=format_editable_timestamp(entry.end_time, fmt) if entry.end_time else ""),
        }

        frm = ttk.Frame(self, padding=10)
        frm.pack(fill=tk.BOTH, expand=True)

        ttk.Label(frm, text="Name").grid(row=0, column=0, sticky=tk.W, padx=6, pady=6)
        ttk.Entry(frm, textvariable=self.vars["name"]).grid(row=0, column=1, sticky=tk.EW, padx=6, pady=6)

        time_state = tk.NORMAL if entry.is_leaf else tk.DISABLED
        ttk.Label(frm, text=f"Start ({fmt})").grid(row=1, column=0, sticky=tk.W, padx=6, pady=6)
        ttk.Entry(frm, textvariable=self.vars["start"], state=time_state).grid(row=1, column=1, sticky=tk.EW, padx=6, pady=6)

        ttk.Label(frm, text="End (or empty)").grid(row=2, column=0, sticky=tk.W, padx=6, pady=6)
        end_state = tk.DISABLED if self.running else time_state
        ttk.Entry(frm, textvariable=self.vars["end"], state=end_state).grid(row=2, column=1, sticky=tk.EW, padx=6, pady=6)

        self.error_lbl = ttk.Label(frm, text="", foreground="red")
        self.error_lbl.grid(row=3, column=0, columnspan=2, sticky=tk.W, padx=6)

        btns = ttk.Frame(frm)
        btns.grid(row=4, column=0, columnspan=2, sticky=tk.E, pady=(8, 0))
        ttk.Button(btns, text="Save", command=self.on_save).pack(side=tk.RIGHT, padx=4)
        ttk.Button(btns, text="Cancel", command=self.destroy).pack(side=tk.RIGHT, padx=4)

        self.bind("<Return>", lambda e: self.on_save())
        self.bind("<Escape>", lambda e: self.destroy())
        frm.columnconfigure(1, weight=1)

    def on_save(self):
        try:
            self.session.edit(
                self.entry_id,
                self.vars["name"].get().strip(),
                self.vars["start"].get(),
                None if self.running else self.vars["end"].get(),
            )
        except ValueError as ex:
            self.error_lbl.configure(text=str(ex))
            return
        self.on_saved()
        self.destroy()


def run(store, path: str, settings: Settings) -> None:
    root = tk.Tk()
    style = ttk.Style()
    # Use 'clam' for better cross‑platform look
    try:
        style.theme_use("clam")
    except tk.TclError:
        pass

    app = TrackerApp(root, store, path, settings)
    app.pack(fill=tk.BOTH, expand=True)
    root.mainloop()
