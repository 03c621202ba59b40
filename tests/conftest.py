"""
Pytest configuration and fixtures for TrayWay tests.
"""
import os
import tempfile

# Keep logs and data out of the real user profile; must run before trayway is imported
os.environ.setdefault("TRAYWAY_DATA_DIR", tempfile.mkdtemp(prefix="trayway-tests-"))
# Headless test runs have no X display; use pystray's built-in dummy backend unless one is chosen
os.environ.setdefault("PYSTRAY_BACKEND", "dummy")

import pytest
from PIL import Image

from trayway.services.clock import BatteryInfo, ClockReadout
from trayway.settings import ConfigStore, TrayConfig
from trayway.tray.autostart import LoginItemRegistry
from trayway.tray.controller import TrayController, TrayHost
from trayway.utils.scheduler import Scheduler


class FakeLoginItems(LoginItemRegistry):
    """In-memory login item; ``fail`` makes set_enabled report failure."""

    def __init__(self, enabled=False, fail=False):
        self.enabled = enabled
        self.fail = fail
        self.calls = []

    def is_enabled(self):
        return self.enabled

    def set_enabled(self, enabled):
        self.calls.append(enabled)
        if self.fail:
            return False
        self.enabled = enabled
        return True


class FakeHost(TrayHost):
    """Records everything the controller pushes to the tray."""

    def __init__(self, supports_title=True):
        self.supports_title = supports_title
        self.icons = []
        self.menus = []
        self.tooltips = []
        self.titles = []
        self.notifications = []
        self.stopped = False

    def set_icon(self, image):
        self.icons.append(image)

    def set_menu(self, spec):
        self.menus.append(spec)

    def set_tooltip(self, text):
        self.tooltips.append(text)

    def set_title(self, text):
        self.titles.append(text)

    def notify(self, title, message):
        self.notifications.append((title, message))

    def stop(self):
        self.stopped = True


class FakeDialogs:
    """Answers every confirm() with ``answer`` and records the questions."""

    def __init__(self, answer=True):
        self.answer = answer
        self.confirmations = []
        self.infos = []

    def confirm(self, title, message, detail=""):
        self.confirmations.append(title)
        return self.answer

    def info(self, title, message):
        self.infos.append(title)


class FakeShell:

    def __init__(self):
        self.opened = []

    def open_path(self, path):
        self.opened.append(("path", path))
        return True

    def open_app(self, path):
        self.opened.append(("app", path))
        return True

    def open_url(self, url):
        self.opened.append(("url", url))
        return True


class FakeRenderer:
    """Stands in for IconRenderer; counts renders."""

    def __init__(self):
        self.rendered = []
        self.purged = 0

    def render(self, config):
        self.rendered.append(config.tray_emoji)
        return Image.new("RGBA", (16, 16))

    def purge_stale(self):
        self.purged += 1
        return 0


@pytest.fixture
def login_items():
    return FakeLoginItems()


@pytest.fixture
def config_path(tmp_path):
    return tmp_path / "config.json"


@pytest.fixture
def store(config_path, login_items):
    """ConfigStore backed by a temporary file."""
    return ConfigStore(config_path, login_items)


@pytest.fixture
def host():
    return FakeHost()


@pytest.fixture
def dialogs():
    return FakeDialogs()


@pytest.fixture
def shell():
    return FakeShell()


@pytest.fixture
def renderer():
    return FakeRenderer()


@pytest.fixture
def scheduler():
    scheduler = Scheduler()
    yield scheduler
    scheduler.cancel_all()


@pytest.fixture
def clock():
    return ClockReadout(5.0, battery_source=lambda: BatteryInfo(percentage=80))


@pytest.fixture
def controller(store, renderer, host, scheduler, login_items, clock, shell, dialogs):
    """TrayController wired to fakes; the clock interval is long so only explicit ticks run."""
    controller = TrayController(
        store=store,
        renderer=renderer,
        host=host,
        scheduler=scheduler,
        login_items=login_items,
        clock=clock,
        shell=shell,
        dialogs=dialogs,
        clock_interval=3600,
    )
    yield controller
    controller.stop()


@pytest.fixture
def sample_config():
    """A config with one folder, one link and one application."""
    return TrayConfig.from_dict({
        "folders": [{"label": "Docs", "path": "/home/user/Docs"}],
        "sites": [
            {"label": "News", "url": "https://news.example.com", "type": "site"},
            {"label": "Editor", "url": "/usr/bin/editor", "type": "app"},
        ],
        "firstRun": False,
    })
