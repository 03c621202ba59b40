"""
Main System Tray Application

Builds the services, hosts the tray icon with pystray and hands control to
the TrayController once the icon is up.
"""

import sys
from typing import Optional

import pystray
from PIL import Image

from trayway.config import Settings, settings as default_settings
from trayway.services.bridge import SettingsBridge
from trayway.services.clock import ClockReadout
from trayway.services.shell import DialogService, ShellOpener
from trayway.services.updater import UpdateChecker
from trayway.settings import ConfigStore
from trayway.tray.autostart import get_login_item_registry
from trayway.tray.controller import TrayController, TrayHost
from trayway.tray.icon import IconRenderer, create_default_icon
from trayway.tray.menu import MenuSpec, to_pystray_menu
from trayway.ui.quick_menu import QuickAccessMenu
from trayway.ui.settings_window import SettingsWindowLauncher
from trayway.utils.logger import get_logger
from trayway.utils.scheduler import Scheduler

logger = get_logger(__name__)


class TrayApp(TrayHost):
    """
    System Tray Application for TrayWay.

    Manages:
    - The pystray icon (image, menu, tooltip, title)
    - Wiring of config store, controller, updater and windows
    - The quick-access hotkey
    """

    def __init__(self, app_settings: Optional[Settings] = None):
        """
        Initialize the tray application.

        Args:
            app_settings: Environment settings (data directory, update feed, clock offset)
        """
        self.settings = app_settings or default_settings

        # Ensure data directory exists
        self.settings.data_dir.mkdir(parents=True, exist_ok=True)

        self.scheduler = Scheduler()
        self.login_items = get_login_item_registry()
        self.store = ConfigStore(self.settings.config_path, self.login_items)
        self.shell = ShellOpener()
        self.dialogs = DialogService()
        self.renderer = IconRenderer(self.settings.icons_dir)

        self.updater = UpdateChecker(
            current_version=self.settings.app_version,
            repo=self.settings.update_repo,
            scheduler=self.scheduler,
            downloads_dir=self.settings.downloads_dir,
            dialogs=self.dialogs,
            shell=self.shell,
            interval_seconds=self.settings.update_check_interval_hours * 3600,
            timeout=self.settings.update_timeout_seconds,
        )

        self.controller = TrayController(
            store=self.store,
            renderer=self.renderer,
            host=self,
            scheduler=self.scheduler,
            login_items=self.login_items,
            clock=ClockReadout(self.settings.clock_utc_offset_hours),
            shell=self.shell,
            dialogs=self.dialogs,
            updater=self.updater,
            clock_interval=self.settings.clock_interval_seconds,
        )

        self.bridge = SettingsBridge(self.store, self.controller, self.updater, self.dialogs)
        self.settings_window = SettingsWindowLauncher(self.bridge)
        self.controller.settings_opener = self.settings_window.open
        self.quick_menu = QuickAccessMenu(self.store, self.controller.dispatch, self.settings.quick_menu_hotkey)

        # Tray state
        self.icon: Optional[pystray.Icon] = None

        logger.info(f"TrayApp initialized - data_dir: {self.settings.data_dir}")

    def run(self) -> None:
        """Create the tray icon and run its loop (blocking)."""
        logger.info("Starting TrayWay...")
        self.icon = pystray.Icon(
            'TrayWay',
            create_default_icon(self.renderer.size),
            'TrayWay',
            menu=pystray.Menu(),
        )
        self.icon.run(setup=self._on_ready)
        logger.info("TrayApp exiting...")

    def _on_ready(self, icon: pystray.Icon) -> None:
        """Runs once the native icon exists."""
        icon.visible = True
        self.controller.start()
        self.quick_menu.start()
        self.controller.run_first_run()

    # TrayHost

    @property
    def supports_title(self) -> bool:
        return sys.platform == 'darwin'

    def set_icon(self, image: Image.Image) -> None:
        if self.icon:
            self.icon.icon = image

    def set_menu(self, spec: MenuSpec) -> None:
        if self.icon:
            self.icon.menu = to_pystray_menu(spec, self.controller.dispatch)
            self.icon.update_menu()

    def set_tooltip(self, text: str) -> None:
        if self.icon:
            self.icon.title = text

    def set_title(self, text: str) -> None:
        # pystray has no API for the macOS status item title; use its NSStatusItem
        status_item = getattr(self.icon, '_status_item', None)
        if status_item is None:
            return
        try:
            status_item.button().setTitle_(text)
        except Exception as e:
            logger.debug(f"Failed to set tray title: {e}")

    def notify(self, title: str, message: str) -> None:
        if self.icon and self.icon.HAS_NOTIFICATION:
            self.icon.notify(message, title)

    def stop(self) -> None:
        """Remove the icon and end the pystray loop."""
        self.quick_menu.stop()
        self.settings_window.close()
        if self.icon:
            self.icon.stop()
        logger.info("TrayWay stopped")
