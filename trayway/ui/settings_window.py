"""
Settings window (tkinter).

A thin view over SettingsBridge. Runs in its own thread with its own Tk
root; store and updater callbacks arrive from other threads and are queued
for the Tk loop.
"""

import queue
import threading
from typing import Optional

from trayway.services.bridge import SettingsBridge
from trayway.services.updater import UpdateState, UpdateStatus
from trayway.settings import NO_GLYPH, TrayConfig
from trayway.utils.logger import get_logger

logger = get_logger(__name__)

EMOJI_CHOICES = [NO_GLYPH, '😊', '😎', '🤖', '🚀', '⭐', '🔥', '🐱', '🐶', '🦊', '🍀', '☕', '📁', '💡']

TOGGLE_LABELS = [
    ('allowIconChange', 'allow_icon_change', 'Custom tray icon'),
    ('showClock', 'show_clock', 'Show clock'),
    ('use24HourFormat', 'use_24_hour_format', '24-hour format'),
    ('showAmPm', 'show_am_pm', 'Show AM/PM'),
    ('showBattery', 'show_battery', 'Show battery'),
]


class SettingsWindow:

    def __init__(self, bridge: SettingsBridge):
        self.bridge = bridge
        self.root = None
        self._events: 'queue.Queue' = queue.Queue()

    # Callbacks from other threads

    def _on_config(self, config: TrayConfig) -> None:
        self._events.put(('config', config))

    def _on_update(self, status: UpdateStatus) -> None:
        self._events.put(('update', status))

    def _poll(self) -> None:
        while True:
            try:
                kind, payload = self._events.get_nowait()
            except queue.Empty:
                break
            if kind == 'config':
                self._populate(payload)
            elif kind == 'update':
                self._show_update(payload)
            elif kind == 'focus':
                self.root.deiconify()
                self.root.lift()
                self.root.focus_force()
            elif kind == 'close':
                self.close()
                return
        self.root.after(100, self._poll)

    def focus(self) -> None:
        self._events.put(('focus', None))

    # Window

    def run(self) -> None:
        import tkinter as tk
        from tkinter import ttk

        self.root = tk.Tk()
        self.root.title(f"{self.bridge.config.display_name} Settings")
        self.root.resizable(False, False)
        self.root.protocol('WM_DELETE_WINDOW', self.close)

        body = ttk.Frame(self.root, padding=12)
        body.pack(fill='both', expand=True)

        # Icon
        icon_frame = ttk.LabelFrame(body, text='Tray icon', padding=8)
        icon_frame.pack(fill='x', pady=4)
        self.emoji_var = tk.StringVar()
        emoji_box = ttk.Combobox(icon_frame, textvariable=self.emoji_var, values=EMOJI_CHOICES, width=6)
        emoji_box.bind('<<ComboboxSelected>>', lambda e: self.bridge.select_emoji(self.emoji_var.get()))
        emoji_box.bind('<Return>', lambda e: self.bridge.select_emoji(self.emoji_var.get().strip()))
        emoji_box.grid(row=0, column=0, padx=4)
        self.text_var = tk.StringVar()
        text_entry = ttk.Entry(icon_frame, textvariable=self.text_var, width=24)
        text_entry.grid(row=0, column=1, padx=4)
        ttk.Button(
            icon_frame, text='Set text',
            command=lambda: self.bridge.update_tray_text(self.text_var.get()),
        ).grid(row=0, column=2, padx=4)

        # Toggles
        display_frame = ttk.LabelFrame(body, text='Display', padding=8)
        display_frame.pack(fill='x', pady=4)
        self.toggle_vars = {}
        for row, (key, _attr, label) in enumerate(TOGGLE_LABELS):
            var = tk.BooleanVar()
            ttk.Checkbutton(
                display_frame, text=label, variable=var,
                command=lambda k=key, v=var: self.bridge.set_toggle(k, v.get()),
            ).grid(row=row // 2, column=row % 2, sticky='w', padx=4)
            self.toggle_vars[key] = var

        self.autostart_var = tk.BooleanVar(value=self.bridge.get_auto_start_status())
        ttk.Checkbutton(
            display_frame, text='Launch at login', variable=self.autostart_var, command=self._toggle_autostart,
        ).grid(row=3, column=0, sticky='w', padx=4)

        # Shortcuts
        self.folder_list = self._list_section(
            body, 'Folders',
            [('Add…', self._add_folder), ('Remove', self._remove_folder)],
        )
        self.site_list = self._list_section(
            body, 'Links and applications',
            [('Add link…', self._add_site), ('Add app…', self._add_app), ('Remove', self._remove_site)],
        )

        # Updates
        update_frame = ttk.LabelFrame(body, text='Updates', padding=8)
        update_frame.pack(fill='x', pady=4)
        self.update_label = ttk.Label(update_frame, text='')
        self.update_label.pack(side='left', fill='x', expand=True)
        self.restart_button = ttk.Button(update_frame, text='Restart', command=self.bridge.request_restart_to_install)
        self.download_button = ttk.Button(update_frame, text='Download', command=self.bridge.request_update_download)
        ttk.Button(update_frame, text='Check', command=self.bridge.request_update_check).pack(side='right')

        buttons = ttk.Frame(body)
        buttons.pack(fill='x', pady=(8, 0))
        ttk.Button(buttons, text='Save', command=self._save).pack(side='right')
        ttk.Button(buttons, text='Reset', command=self.bridge.reset_to_defaults).pack(side='right', padx=4)
        ttk.Button(buttons, text='Reload', command=self.bridge.reload).pack(side='left')

        self.bridge.store.subscribe(self._on_config)
        self.bridge.add_update_listener(self._on_update)
        self._populate(self.bridge.config)
        self.root.after(100, self._poll)
        self.root.mainloop()

    def _list_section(self, parent, title, actions):
        import tkinter as tk
        from tkinter import ttk

        frame = ttk.LabelFrame(parent, text=title, padding=8)
        frame.pack(fill='x', pady=4)
        listbox = tk.Listbox(frame, height=5, width=48)
        listbox.pack(side='left', fill='x', expand=True)
        column = ttk.Frame(frame)
        column.pack(side='right', padx=4)
        for label, command in actions:
            ttk.Button(column, text=label, command=command).pack(fill='x', pady=1)
        return listbox

    def _populate(self, config: TrayConfig) -> None:
        self.emoji_var.set(config.tray_emoji)
        self.text_var.set(config.tray_text)
        for key, attr, _label in TOGGLE_LABELS:
            self.toggle_vars[key].set(getattr(config, attr))
        self.autostart_var.set(config.auto_start)

        self.folder_list.delete(0, 'end')
        for folder in config.folders:
            self.folder_list.insert('end', f"{folder.label or '(no name)'}  -  {folder.path or '(no folder)'}")
        self.site_list.delete(0, 'end')
        for site in config.sites:
            kind = 'app' if site.is_app else 'link'
            self.site_list.insert('end', f"[{kind}] {site.label or '(no name)'}  -  {site.url or '(not set)'}")

    def _show_update(self, status: UpdateStatus) -> None:
        self.update_label.configure(text=status.message)
        self.download_button.pack_forget()
        self.restart_button.pack_forget()
        if status.state == UpdateState.AVAILABLE:
            self.download_button.pack(side='right', padx=4)
        elif status.state == UpdateState.DOWNLOADED:
            self.restart_button.pack(side='right', padx=4)

    # Actions

    def _toggle_autostart(self) -> None:
        wanted = self.autostart_var.get()
        if not self.bridge.set_auto_start(wanted):
            self.autostart_var.set(not wanted)

    def _selected(self, listbox) -> Optional[int]:
        selection = listbox.curselection()
        return selection[0] if selection else None

    def _add_folder(self) -> None:
        from tkinter import filedialog

        path = filedialog.askdirectory(parent=self.root, title='Choose a folder')
        if path:
            index = self.bridge.add_folder()
            self.bridge.set_folder_path(index, path)

    def _remove_folder(self) -> None:
        index = self._selected(self.folder_list)
        if index is not None:
            self.bridge.remove_folder(index)

    def _add_site(self) -> None:
        from tkinter import simpledialog

        url = simpledialog.askstring('Add link', 'Address (https:// is added if missing):', parent=self.root)
        if not url:
            return
        label = simpledialog.askstring('Add link', 'Menu label:', parent=self.root)
        if label:
            self.bridge.add_site(label, url)

    def _add_app(self) -> None:
        from tkinter import filedialog

        path = filedialog.askopenfilename(parent=self.root, title='Choose an application')
        if path:
            self.bridge.add_application(path)

    def _remove_site(self) -> None:
        index = self._selected(self.site_list)
        if index is not None:
            self.bridge.remove_site(index)

    def _save(self) -> None:
        self.bridge.save_config(self.bridge.config)

    def close(self) -> None:
        self.bridge.store.unsubscribe(self._on_config)
        self.bridge.remove_update_listener(self._on_update)
        self.root.destroy()


class SettingsWindowLauncher:
    """Opens at most one settings window; a second request focuses it."""

    def __init__(self, bridge: SettingsBridge):
        self.bridge = bridge
        self._lock = threading.Lock()
        self._window: Optional[SettingsWindow] = None
        self._thread: Optional[threading.Thread] = None

    @property
    def is_open(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def open(self) -> None:
        with self._lock:
            if self.is_open:
                self._window.focus()
                return
            self._window = SettingsWindow(self.bridge)
            self._thread = threading.Thread(target=self._run, args=(self._window,), daemon=True, name='settings-window')
            self._thread.start()

    def _run(self, window: SettingsWindow) -> None:
        try:
            window.run()
        except Exception as e:
            logger.error(f"Settings window failed: {e}")
            self.bridge.store.unsubscribe(window._on_config)
            self.bridge.remove_update_listener(window._on_update)

    def close(self) -> None:
        with self._lock:
            if self.is_open:
                self._window._events.put(('close', None))
