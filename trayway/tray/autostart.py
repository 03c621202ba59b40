"""
Login Item Management

Registers TrayWay to start when the user logs in:
- Windows: HKCU Run registry key
- macOS: a LaunchAgent property list
- Linux/BSD: an XDG autostart desktop entry
"""

import os
import plistlib
import sys
from pathlib import Path
from typing import List, Optional

from trayway.utils.logger import get_logger

logger = get_logger(__name__)

APP_NAME = "TrayWay"
AUTOSTART_KEY = r"Software\Microsoft\Windows\CurrentVersion\Run"
LAUNCH_AGENT_LABEL = "com.trayway.app"


def get_launch_command() -> List[str]:
    """Get the command line that starts the current application."""
    if getattr(sys, 'frozen', False):
        # Running as compiled executable
        return [sys.executable]
    # Running from source - run the package with the current interpreter
    return [sys.executable, '-m', 'trayway']


class LoginItemRegistry:
    """OS login-item registration. Implementations never raise."""

    def is_enabled(self) -> bool:
        raise NotImplementedError

    def set_enabled(self, enabled: bool) -> bool:
        """Returns True if the OS state now matches ``enabled``."""
        raise NotImplementedError


class WindowsLoginItems(LoginItemRegistry):

    def is_enabled(self) -> bool:
        try:
            import winreg
            key = winreg.OpenKey(winreg.HKEY_CURRENT_USER, AUTOSTART_KEY, 0, winreg.KEY_READ)
            try:
                value, _ = winreg.QueryValueEx(key, APP_NAME)
                return bool(value)
            except FileNotFoundError:
                return False
            finally:
                winreg.CloseKey(key)
        except Exception as e:
            logger.warning(f"Failed to check autostart status: {e}")
            return False

    def set_enabled(self, enabled: bool) -> bool:
        try:
            import winreg
            key = winreg.OpenKey(
                winreg.HKEY_CURRENT_USER,
                AUTOSTART_KEY,
                0,
                winreg.KEY_SET_VALUE | winreg.KEY_READ
            )
            try:
                if enabled:
                    command = ' '.join(f'"{part}"' for part in get_launch_command())
                    winreg.SetValueEx(key, APP_NAME, 0, winreg.REG_SZ, command)
                    logger.info(f"Auto-start enabled: {command}")
                else:
                    try:
                        winreg.DeleteValue(key, APP_NAME)
                        logger.info("Auto-start disabled")
                    except FileNotFoundError:
                        # Already disabled
                        pass
                return True
            finally:
                winreg.CloseKey(key)
        except PermissionError:
            logger.error("Permission denied when modifying registry")
            return False
        except Exception as e:
            logger.error(f"Failed to set autostart: {e}")
            return False


class FileLoginItems(LoginItemRegistry):
    """Login item backed by a single file whose presence means 'enabled'."""

    def __init__(self, path: Path):
        self.path = path

    def render(self) -> bytes:
        raise NotImplementedError

    def is_enabled(self) -> bool:
        return self.path.exists()

    def set_enabled(self, enabled: bool) -> bool:
        try:
            if enabled:
                self.path.parent.mkdir(parents=True, exist_ok=True)
                self.path.write_bytes(self.render())
                logger.info(f"Auto-start enabled: {self.path}")
            elif self.path.exists():
                self.path.unlink()
                logger.info("Auto-start disabled")
            return True
        except OSError as e:
            logger.error(f"Failed to set autostart: {e}")
            return False


class LaunchAgentLoginItems(FileLoginItems):

    def __init__(self, path: Optional[Path] = None):
        super().__init__(path or Path.home() / 'Library' / 'LaunchAgents' / f'{LAUNCH_AGENT_LABEL}.plist')

    def render(self) -> bytes:
        return plistlib.dumps({
            'Label': LAUNCH_AGENT_LABEL,
            'ProgramArguments': get_launch_command(),
            'RunAtLoad': True,
            'ProcessType': 'Interactive',
        })


class XdgLoginItems(FileLoginItems):

    def __init__(self, path: Optional[Path] = None):
        config_home = Path(os.environ.get('XDG_CONFIG_HOME', Path.home() / '.config'))
        super().__init__(path or config_home / 'autostart' / 'trayway.desktop')

    def render(self) -> bytes:
        command = ' '.join(f'"{part}"' if ' ' in part else part for part in get_launch_command())
        lines = [
            '[Desktop Entry]',
            'Type=Application',
            f'Name={APP_NAME}',
            f'Exec={command}',
            'X-GNOME-Autostart-enabled=true',
            'NoDisplay=true',
            '',
        ]
        return '\n'.join(lines).encode('utf-8')


def get_login_item_registry(platform: Optional[str] = None) -> LoginItemRegistry:
    """Pick the login-item backend for the host platform."""
    platform = platform or sys.platform
    if platform == 'win32':
        return WindowsLoginItems()
    if platform == 'darwin':
        return LaunchAgentLoginItems()
    return XdgLoginItems()
