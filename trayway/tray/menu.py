"""
Tray menu construction.

build_menu() turns the configuration into a plain, comparable MenuSpec;
to_pystray_menu() turns a MenuSpec into the native pystray menu.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Tuple

import pystray

from trayway.settings import TrayConfig


class MenuAction(str, Enum):
    OPEN_PATH = "open_path"
    OPEN_URL = "open_url"
    OPEN_APP = "open_app"
    OPEN_SETTINGS = "open_settings"
    QUIT = "quit"


@dataclass(frozen=True)
class MenuEntry:
    label: str = ""
    action: MenuAction = None
    target: str = ""
    separator: bool = False

    @classmethod
    def divider(cls) -> 'MenuEntry':
        return cls(separator=True)


MenuSpec = Tuple[MenuEntry, ...]

SETTINGS_LABEL = "Settings"
QUIT_LABEL = "Quit"


def shortcut_entries(config: TrayConfig) -> MenuSpec:
    """Folder and site/app entries, each group followed by a separator when non-empty."""
    items = []

    folders = [
        MenuEntry(folder.label, MenuAction.OPEN_PATH, folder.path)
        for folder in config.folders
        if folder.is_valid
    ]
    if folders:
        items.extend(folders)
        items.append(MenuEntry.divider())

    sites = [
        MenuEntry(site.label, MenuAction.OPEN_APP if site.is_app else MenuAction.OPEN_URL, site.url)
        for site in config.sites
        if site.is_valid
    ]
    if sites:
        items.extend(sites)
        items.append(MenuEntry.divider())

    return tuple(items)


def build_menu(config: TrayConfig) -> MenuSpec:
    """Full tray menu: shortcuts, then a separator, Settings and Quit."""
    return shortcut_entries(config) + (
        MenuEntry.divider(),
        MenuEntry(SETTINGS_LABEL, MenuAction.OPEN_SETTINGS),
        MenuEntry(QUIT_LABEL, MenuAction.QUIT),
    )


def build_popup_menu(config: TrayConfig) -> MenuSpec:
    """Quick-access popup: shortcuts followed by Settings; there is no Quit."""
    return shortcut_entries(config) + (MenuEntry(SETTINGS_LABEL, MenuAction.OPEN_SETTINGS),)


def to_pystray_menu(spec: MenuSpec, dispatch: Callable[[MenuEntry], None]) -> pystray.Menu:
    """Build the pystray menu; clicking an item calls ``dispatch(entry)``."""
    def make_handler(entry: MenuEntry):
        return lambda icon, item: dispatch(entry)

    items = []
    for entry in spec:
        if entry.separator:
            items.append(pystray.Menu.SEPARATOR)
        else:
            items.append(pystray.MenuItem(entry.label, make_handler(entry)))
    return pystray.Menu(*items)
