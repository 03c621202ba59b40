"""
Settings bridge

The operations the settings window performs on the running tray: live
config updates, auto-start, updates, and the shortcut list edits.
"""

from dataclasses import replace
from typing import Any, Dict, Optional, Union

from trayway.services.shell import DialogService
from trayway.services.updater import UpdateChecker, UpdateListener
from trayway.settings import NO_GLYPH, SITE_TYPE_APP, SITE_TYPE_SITE, ConfigStore, FolderEntry, SiteEntry, TrayConfig
from trayway.tray.controller import TrayController
from trayway.utils.logger import get_logger

logger = get_logger(__name__)

NEW_APP_LABEL = "New application"

TOGGLES = {
    'allowIconChange',
    'showClock',
    'showBattery',
    'use24HourFormat',
    'showAmPm',
}


def normalize_site_url(url: str) -> str:
    """Prefix bare host names with https://."""
    url = url.strip()
    if url and '://' not in url:
        return f'https://{url}'
    return url


def path_basename(path: str) -> str:
    """Last path component, for both slash styles."""
    return path.rstrip('/\\').replace('\\', '/').rsplit('/', 1)[-1]


def app_label_from_path(path: str) -> str:
    """'/Applications/Safari.app' -> 'Safari'."""
    name = path_basename(path)
    for suffix in ('.app', '.exe', '.desktop', '.AppImage'):
        if name.endswith(suffix):
            return name[:-len(suffix)]
    return name


class SettingsBridge:
    """Applies settings-window edits to the config store and tray."""

    def __init__(
        self,
        store: ConfigStore,
        controller: TrayController,
        updater: Optional[UpdateChecker] = None,
        dialogs: Optional[DialogService] = None,
    ):
        self.store = store
        self.controller = controller
        self.updater = updater
        self.dialogs = dialogs or controller.dialogs

    @property
    def config(self) -> TrayConfig:
        return self.store.config

    # Event surface

    def config_updated(self, partial: Dict[str, Any], persist: bool = False) -> TrayConfig:
        """Live update from the window. Persisted only when ``persist`` is set."""
        return self.store.merge(partial, persist=persist)

    def save_config(self, config: Union[TrayConfig, Dict[str, Any]]) -> bool:
        """Explicit save of the full document."""
        if isinstance(config, dict):
            config = TrayConfig.from_dict(config)
        self.store.replace(config, persist=False)
        return self.store.save()

    def get_auto_start_status(self) -> bool:
        return self.controller.get_auto_start_status()

    def set_auto_start(self, enabled: bool) -> bool:
        return self.controller.set_auto_start(enabled)

    def request_update_check(self) -> None:
        if self.updater is not None:
            self.updater.request_check()

    def request_update_download(self) -> None:
        if self.updater is not None:
            self.updater.request_download()

    def request_restart_to_install(self) -> bool:
        if self.updater is None:
            return False
        return self.updater.quit_and_install()

    def add_update_listener(self, listener: UpdateListener) -> None:
        if self.updater is not None:
            self.updater.add_listener(listener)

    def remove_update_listener(self, listener: UpdateListener) -> None:
        if self.updater is not None:
            self.updater.remove_listener(listener)

    # Display options

    def set_toggle(self, key: str, value: bool) -> TrayConfig:
        if key not in TOGGLES:
            raise KeyError(f"Unknown toggle: {key}")
        return self.config_updated({key: bool(value)}, persist=True)

    def select_emoji(self, glyph: str) -> TrayConfig:
        """Pick the tray glyph. The no-glyph choice without text turns icon change off."""
        update: Dict[str, Any] = {'trayEmoji': glyph}
        if glyph == NO_GLYPH:
            if not self.config.tray_text.strip():
                update['allowIconChange'] = False
        else:
            update['allowIconChange'] = True
        return self.config_updated(update)

    def update_tray_text(self, text: str) -> TrayConfig:
        return self.config_updated({'trayText': text})

    # Folders

    def _folders(self):
        return [replace(folder) for folder in self.config.folders]

    def _sites(self):
        return [replace(site) for site in self.config.sites]

    def add_folder(self) -> int:
        """Append an empty folder row; it reaches the menu once a path is set."""
        folders = self._folders()
        folders.append(FolderEntry())
        self.config_updated({'folders': [f.to_dict() for f in folders]})
        return len(folders) - 1

    def set_folder_path(self, index: int, path: str) -> TrayConfig:
        folders = self._folders()
        folder = folders[index]
        folder.path = path
        if not folder.label.strip():
            folder.label = path_basename(path) or path
        return self.config_updated({'folders': [f.to_dict() for f in folders]}, persist=True)

    def rename_folder(self, index: int, label: str) -> TrayConfig:
        folders = self._folders()
        folders[index].label = label
        return self.config_updated({'folders': [f.to_dict() for f in folders]}, persist=True)

    def remove_folder(self, index: int) -> TrayConfig:
        folders = self._folders()
        del folders[index]
        return self.config_updated({'folders': [f.to_dict() for f in folders]}, persist=True)

    # Sites and applications

    def add_site(self, label: str = "", url: str = "") -> int:
        sites = self._sites()
        sites.append(SiteEntry(label=label, url=normalize_site_url(url), type=SITE_TYPE_SITE))
        self.config_updated({'sites': [s.to_dict() for s in sites]}, persist=bool(label and url))
        return len(sites) - 1

    def add_application(self, path: str = "") -> int:
        sites = self._sites()
        sites.append(SiteEntry(label=NEW_APP_LABEL, url="", type=SITE_TYPE_APP))
        self.config_updated({'sites': [s.to_dict() for s in sites]})
        index = len(sites) - 1
        if path:
            self.set_app_for_site(index, path)
        return index

    def set_app_for_site(self, index: int, path: str) -> TrayConfig:
        sites = self._sites()
        site = sites[index]
        site.url = path
        if site.label == NEW_APP_LABEL or not site.label.strip():
            site.label = app_label_from_path(path)
        return self.config_updated({'sites': [s.to_dict() for s in sites]}, persist=True)

    def update_site(self, index: int, label: Optional[str] = None, url: Optional[str] = None) -> TrayConfig:
        sites = self._sites()
        site = sites[index]
        if label is not None:
            site.label = label
        if url is not None:
            site.url = url if site.is_app else normalize_site_url(url)
        return self.config_updated({'sites': [s.to_dict() for s in sites]}, persist=True)

    def remove_site(self, index: int) -> TrayConfig:
        sites = self._sites()
        del sites[index]
        return self.config_updated({'sites': [s.to_dict() for s in sites]}, persist=True)

    # Whole document

    def reset_to_defaults(self) -> bool:
        confirmed = self.dialogs.confirm(
            "Reset settings",
            "Reset all settings to their defaults?",
            "Your folders, links and display options will be replaced by the defaults.",
        )
        if confirmed:
            self.store.reset_to_defaults()
            logger.info("Settings reset to defaults")
        return bool(confirmed)

    def reload(self) -> TrayConfig:
        """Re-read config.json, e.g. after editing it by hand."""
        return self.store.load()
