"""
OS shell and dialog services.

Opening folders, URLs and applications, and native yes/no dialogs, behind
small classes so the tray logic can be exercised without touching the OS.
"""

import os
import subprocess
import sys
import webbrowser
from typing import Optional

from trayway.utils.logger import get_logger

logger = get_logger(__name__)


class ShellOpener:
    """Opens paths, URLs and applications with the platform's default handler."""

    def __init__(self, platform: Optional[str] = None):
        self.platform = platform or sys.platform

    def open_path(self, path: str) -> bool:
        """Open a folder or file with the system file manager / default app."""
        path = os.path.expanduser(path)
        logger.info(f"Opening path {path}")
        try:
            if self.platform == 'win32':
                os.startfile(path)  # type: ignore[attr-defined]
            elif self.platform == 'darwin':
                subprocess.Popen(['open', path])
            else:
                subprocess.Popen(['xdg-open', path])
            return True
        except Exception as e:
            logger.error(f"Failed to open path {path}: {e}")
            return False

    def open_app(self, path: str) -> bool:
        """Launch an application bundle or executable."""
        return self.open_path(path)

    def open_url(self, url: str) -> bool:
        """Open a URL in the external browser."""
        logger.info(f"Opening URL {url}")
        try:
            return webbrowser.open(url)
        except Exception as e:
            logger.error(f"Failed to open URL {url}: {e}")
            return False


def applescript_string(text: str) -> str:
    """Quote ``text`` as an AppleScript string literal."""
    escaped = text.replace('\\', '\\\\').replace('"', '\\"').replace('\n', '\\n')
    return f'"{escaped}"'


class DialogService:
    """
    Native message boxes.

    macOS dialogs run in an osascript process; Tk must not start off the
    main thread there. Other platforms use a hidden tkinter root.
    """

    def __init__(self, platform: Optional[str] = None):
        self.platform = platform or sys.platform

    def _run(self, show):
        import tkinter as tk

        root = tk.Tk()
        root.withdraw()
        root.attributes('-topmost', True)
        try:
            return show(root)
        finally:
            root.destroy()

    def _osascript(self, script: str) -> str:
        proc = subprocess.run(['osascript', '-e', script], capture_output=True, text=True)
        if proc.returncode != 0:
            raise RuntimeError(proc.stderr.strip() or f"osascript exited with {proc.returncode}")
        return proc.stdout.strip()

    def confirm(self, title: str, message: str, detail: str = "") -> Optional[bool]:
        """Ask a yes/no question. Returns None when the dialog could not be shown."""
        text = f"{message}\n\n{detail}" if detail else message
        try:
            if self.platform == 'darwin':
                answer = self._osascript(
                    f'display dialog {applescript_string(text)} with title {applescript_string(title)} '
                    f'buttons {{"No", "Yes"}} default button "Yes"'
                )
                return answer.endswith(':Yes')

            from tkinter import messagebox

            return bool(self._run(lambda root: messagebox.askyesno(title, text, parent=root)))
        except Exception as e:
            logger.error(f"Failed to show dialog '{title}': {e}")
            return None

    def info(self, title: str, message: str) -> None:
        try:
            if self.platform == 'darwin':
                self._osascript(
                    f'display dialog {applescript_string(message)} with title {applescript_string(title)} '
                    f'buttons {{"OK"}} default button "OK"'
                )
                return

            from tkinter import messagebox

            self._run(lambda root: messagebox.showinfo(title, message, parent=root))
        except Exception as e:
            logger.error(f"Failed to show dialog '{title}': {e}")
