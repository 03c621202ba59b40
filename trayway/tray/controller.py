"""
Tray Controller

Keeps the tray icon, menu, tooltip and title in sync with the config store
and runs the clock/battery readout.
"""

import threading
from typing import Callable, Optional

from PIL import Image

from trayway.services.clock import ClockReadout, idle_title
from trayway.services.shell import DialogService, ShellOpener
from trayway.services.updater import UpdateChecker, UpdateState, UpdateStatus
from trayway.settings import ConfigStore, TrayConfig
from trayway.tray.autostart import LoginItemRegistry
from trayway.tray.icon import IconRenderer
from trayway.tray.menu import MenuAction, MenuEntry, MenuSpec, build_menu
from trayway.utils.logger import get_logger
from trayway.utils.scheduler import PeriodicTask, Scheduler

logger = get_logger(__name__)


class TrayHost:
    """The native tray icon. Implemented with pystray by TrayApp."""

    supports_title = False

    def set_icon(self, image: Image.Image) -> None:
        raise NotImplementedError

    def set_menu(self, spec: MenuSpec) -> None:
        raise NotImplementedError

    def set_tooltip(self, text: str) -> None:
        raise NotImplementedError

    def set_title(self, text: str) -> None:
        """Text next to the icon, where the host has such a thing."""

    def notify(self, title: str, message: str) -> None:
        """Balloon/notification, where supported."""

    def stop(self) -> None:
        raise NotImplementedError


def icon_key(config: TrayConfig) -> tuple:
    """The config fields the icon image depends on."""
    return config.allow_icon_change, config.tray_emoji, config.display_name


class TrayController:
    """
    Tray state machine: idle -> running -> stopped.

    Manages:
    - Icon and menu refresh on every config update
    - The one-second clock/battery tick (at most one active)
    - Menu actions and the quit confirmation
    - Login-item state and the first-run prompt
    """

    IDLE = 'idle'
    RUNNING = 'running'
    STOPPED = 'stopped'

    def __init__(
        self,
        store: ConfigStore,
        renderer: IconRenderer,
        host: TrayHost,
        scheduler: Scheduler,
        login_items: LoginItemRegistry,
        clock: ClockReadout,
        shell: Optional[ShellOpener] = None,
        dialogs: Optional[DialogService] = None,
        updater: Optional[UpdateChecker] = None,
        clock_interval: float = 1.0,
    ):
        self.store = store
        self.renderer = renderer
        self.host = host
        self.scheduler = scheduler
        self.login_items = login_items
        self.clock = clock
        self.shell = shell or ShellOpener()
        self.dialogs = dialogs or DialogService()
        self.updater = updater
        self.clock_interval = clock_interval

        self.settings_opener: Optional[Callable[[], None]] = None
        self.on_stopped: Optional[Callable[[], None]] = None

        self.state = self.IDLE
        self._lock = threading.RLock()
        self._clock_lock = threading.Lock()
        self._clock_task: Optional[PeriodicTask] = None
        self._icon_key: Optional[tuple] = None

        if self.updater is not None:
            self.updater.quit_handler = self.quit

    # Lifecycle

    def start(self) -> None:
        """Load config, render icon, build menu and attach to the host."""
        if self.state != self.IDLE:
            logger.warning(f"TrayController.start() called in state {self.state}")
            return

        config = self.store.load()
        self.renderer.purge_stale()
        self.state = self.RUNNING
        self.refresh(config, force_icon=True)
        self.store.subscribe(self.on_config_updated)

        if self.updater is not None:
            self.updater.add_listener(self.on_update_status)
            self.updater.start()

        logger.info("Tray controller running")

    def stop(self) -> None:
        """Cancel every timer and listener and remove the tray icon."""
        if self.state == self.STOPPED:
            return
        self.state = self.STOPPED
        self.store.unsubscribe(self.on_config_updated)
        self.stop_clock()
        if self.updater is not None:
            self.updater.remove_listener(self.on_update_status)
            self.updater.stop()
            self.updater.install_on_quit()
        self.scheduler.cancel_all()
        self.host.stop()
        logger.info("Tray controller stopped")
        if self.on_stopped is not None:
            self.on_stopped()

    def quit(self) -> None:
        self.stop()

    # Config updates

    def on_config_updated(self, config: TrayConfig) -> None:
        if self.state != self.RUNNING:
            return
        self.refresh(config)

    def refresh(self, config: TrayConfig, force_icon: bool = False) -> None:
        with self._lock:
            key = icon_key(config)
            if force_icon or key != self._icon_key:
                self.host.set_icon(self.renderer.render(config))
                self._icon_key = key
            self.host.set_menu(build_menu(config))

        if config.clock_enabled:
            if not self.clock_running:
                self.start_clock()
            self.tick()
        else:
            self.stop_clock()
            with self._lock:
                self.host.set_tooltip(config.display_name)
                self.host.set_title(idle_title(config))

    def on_update_status(self, status: UpdateStatus) -> None:
        if status.state == UpdateState.AVAILABLE and self.state == self.RUNNING:
            self.host.notify(f"{self.store.config.display_name} update", status.message)

    # Clock

    @property
    def clock_running(self) -> bool:
        task = self._clock_task
        return task is not None and task.is_active

    def start_clock(self) -> None:
        """(Re)start the clock tick; any previous tick is cancelled first."""
        with self._clock_lock:
            if self._clock_task is not None:
                self._clock_task.cancel()
            self._clock_task = self.scheduler.every(self.clock_interval, self.tick, name='tray-clock')
        logger.info("Clock started")

    def stop_clock(self) -> None:
        with self._clock_lock:
            task, self._clock_task = self._clock_task, None
        if task is not None:
            task.cancel()
            logger.info("Clock stopped")

    def tick(self) -> None:
        config = self.store.config
        if self.state != self.RUNNING or not config.clock_enabled:
            return
        tooltip, title = self.clock.snapshot(config)
        with self._lock:
            self.host.set_tooltip(tooltip)
            if self.host.supports_title:
                self.host.set_title(title)

    # Menu actions

    def dispatch(self, entry: MenuEntry) -> None:
        logger.info(f"Menu action {entry.action} {entry.label!r}")
        if entry.action == MenuAction.OPEN_PATH:
            self.shell.open_path(entry.target)
        elif entry.action == MenuAction.OPEN_URL:
            self.shell.open_url(entry.target)
        elif entry.action == MenuAction.OPEN_APP:
            self.shell.open_app(entry.target)
        elif entry.action == MenuAction.OPEN_SETTINGS:
            self.open_settings()
        elif entry.action == MenuAction.QUIT:
            self.request_quit()

    def open_settings(self) -> None:
        if self.settings_opener is None:
            logger.warning("No settings window available")
            return
        self.settings_opener()

    def request_quit(self) -> bool:
        """Ask for confirmation, then quit. Returns True if quitting."""
        name = self.store.config.display_name
        confirmed = self.dialogs.confirm(
            f"Quit {name}",
            f"Close {name}?",
            "The application will exit completely.",
        )
        if confirmed is None:
            logger.warning("Quit dialog unavailable, quitting without confirmation")
            confirmed = True
        if confirmed:
            self.quit()
        return confirmed

    # Login item

    def get_auto_start_status(self) -> bool:
        """OS login-item state, written back into the config."""
        enabled = self.login_items.is_enabled()
        if enabled != self.store.config.auto_start:
            self.store.merge({'autoStart': enabled})
        return enabled

    def set_auto_start(self, enabled: bool) -> bool:
        """Returns True if the login item now matches ``enabled``; config is saved only then."""
        if not self.login_items.set_enabled(enabled):
            logger.warning(f"Failed to set auto-start to {enabled}")
            return False
        self.store.merge({'autoStart': enabled}, persist=True)
        return True

    def run_first_run(self) -> None:
        """Offer to launch at login on the very first start."""
        config = self.store.config
        if not config.first_run:
            return

        name = config.display_name
        wants_autostart = self.dialogs.confirm(
            "Launch at login",
            f"Start {name} when you log in?",
            "It will run in the background and can be changed later in Settings.",
        )
        if wants_autostart is None:
            logger.warning("Launch-at-login prompt unavailable, asking again next start")
            return
        if wants_autostart:
            if self.login_items.set_enabled(True):
                self.store.merge({'autoStart': True, 'firstRun': False}, persist=True)
                self.dialogs.info("Launch at login", f"{name} will start when you log in.")
        else:
            self.store.merge({'autoStart': False, 'firstRun': False}, persist=True)
