"""
Quick-access popup

A global hotkey opens a small borderless menu at the mouse pointer listing
the folder and link shortcuts. It closes when it loses focus.
"""

import sys
import threading
from typing import Callable, Optional

from pynput import keyboard

from trayway.settings import ConfigStore
from trayway.tray.menu import MenuEntry, build_popup_menu
from trayway.utils.logger import get_logger

logger = get_logger(__name__)


def default_hotkey(platform: Optional[str] = None) -> str:
    platform = platform or sys.platform
    return '<cmd>+1' if platform == 'darwin' else '<ctrl>+1'


class QuickAccessMenu:

    def __init__(self, store: ConfigStore, dispatch: Callable[[MenuEntry], None], hotkey: Optional[str] = None):
        self.store = store
        self.dispatch = dispatch
        self.hotkey = hotkey or default_hotkey()
        self._listener: Optional[keyboard.GlobalHotKeys] = None
        self._showing = threading.Event()

    def start(self) -> bool:
        try:
            self._listener = keyboard.GlobalHotKeys({self.hotkey: self.show})
            self._listener.start()
            logger.info(f"Quick menu hotkey registered: {self.hotkey}")
            return True
        except Exception as e:
            logger.warning(f"Failed to register quick menu hotkey {self.hotkey}: {e}")
            self._listener = None
            return False

    def stop(self) -> None:
        if self._listener is not None:
            self._listener.stop()
            self._listener = None

    def show(self) -> None:
        if self._showing.is_set():
            return
        self._showing.set()
        threading.Thread(target=self._run_popup, daemon=True, name='quick-menu').start()

    def _choose(self, root, entry: MenuEntry) -> None:
        root.destroy()
        self.dispatch(entry)

    def _run_popup(self) -> None:
        try:
            import tkinter as tk
            from tkinter import ttk

            root = tk.Tk()
            root.overrideredirect(True)
            root.attributes('-topmost', True)
            x, y = root.winfo_pointerxy()
            root.geometry(f'+{x}+{y}')

            for entry in build_popup_menu(self.store.config):
                if entry.separator:
                    ttk.Separator(root, orient='horizontal').pack(fill='x', pady=2)
                    continue
                tk.Button(
                    root,
                    text=entry.label,
                    anchor='w',
                    relief='flat',
                    padx=12,
                    command=lambda e=entry: self._choose(root, e),
                ).pack(fill='x')

            # Child widgets inherit the toplevel binding; only react to the window itself
            root.bind('<FocusOut>', lambda event: event.widget is root and root.destroy())
            root.bind('<Escape>', lambda event: root.destroy())
            root.focus_force()
            root.mainloop()
        except Exception as e:
            logger.error(f"Quick menu failed: {e}")
        finally:
            self._showing.clear()
