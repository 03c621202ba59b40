"""
TrayWay Desktop Application Entry Point

This is the main entry point for the TrayWay system tray utility.
It makes sure only one copy runs, prepares the data directory and runs the tray app.

Usage:
    python -m trayway
    or
    TrayWay.exe (when packaged with PyInstaller)
"""

import sys
from pathlib import Path

from trayway.config import settings


def setup_environment() -> Path:
    """Set up environment for desktop mode."""
    data_dir = settings.data_dir

    # Ensure data directory exists
    data_dir.mkdir(parents=True, exist_ok=True)

    return data_dir


def check_single_instance():
    """
    Ensure only one instance of the app is running.
    Returns True if this is the only instance.
    """
    try:
        import win32api
        import win32event
        import winerror
    except ImportError:
        # pywin32 not available (macOS/Linux), allow running
        return True

    # Create a named mutex; the handle stays open for the life of the process
    mutex_name = "TrayWay_SingleInstance_Mutex"
    check_single_instance.mutex = win32event.CreateMutex(None, False, mutex_name)
    last_error = win32api.GetLastError()

    if last_error == winerror.ERROR_ALREADY_EXISTS:
        # Another instance is already running
        print("TrayWay is already running. Check your system tray.")
        return False

    return True


def main():
    """Main entry point for the desktop application."""
    # Check for single instance
    if not check_single_instance():
        sys.exit(0)

    # Set up environment
    setup_environment()

    # Import and run tray app
    from trayway.tray.app import TrayApp

    app = TrayApp(settings)
    app.run()


if __name__ == '__main__':
    main()
