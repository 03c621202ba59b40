"""
Update Checker

Polls the GitHub "latest release" endpoint on a weekly interval and on
request, downloads the installer for the current platform and hands it to
the OS when the user agrees to restart.
"""

import re
import sys
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Optional

import httpx

from trayway.services.shell import DialogService, ShellOpener
from trayway.utils.exceptions import UpdateError
from trayway.utils.logger import get_logger
from trayway.utils.scheduler import PeriodicTask, Scheduler

logger = get_logger(__name__)

GITHUB_API_BASE = "https://api.github.com"

PLATFORM_ASSET_SUFFIXES = {
    'darwin': ('.dmg', '.pkg', '.zip'),
    'win32': ('.exe', '.msi'),
    'linux': ('.AppImage', '.deb', '.tar.gz'),
}

_SEMVER_RE = re.compile(
    r"^(?P<major>0|[1-9]\d*)"
    r"\.(?P<minor>0|[1-9]\d*)"
    r"\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*)?$"
)


def normalize_version(value: str) -> str:
    value = (value or "").strip()
    if value.lower().startswith("v"):
        return value[1:].strip()
    return value


def parse_semver(version: str):
    match = _SEMVER_RE.match(normalize_version(version))
    if not match:
        return None

    prerelease = match.group("prerelease")
    prerelease_ids = ()
    if prerelease:
        prerelease_ids = tuple((0, int(ident)) if ident.isdigit() else (1, ident) for ident in prerelease.split("."))

    core = (int(match.group("major")), int(match.group("minor")), int(match.group("patch")))
    return core, prerelease_ids


def compare_semver(a: str, b: str) -> int:
    """
    Semantic Versioning 2.0.0 precedence:
    - Compare MAJOR, MINOR, PATCH numerically.
    - A version without prerelease > a version with prerelease.
    - Otherwise compare prerelease identifiers.
    """
    a_parsed = parse_semver(a)
    b_parsed = parse_semver(b)
    if not a_parsed or not b_parsed:
        raise ValueError(f"Invalid semantic version: {a!r} / {b!r}")

    (core_a, pre_a), (core_b, pre_b) = a_parsed, b_parsed
    if core_a != core_b:
        return -1 if core_a < core_b else 1
    if not pre_a or not pre_b:
        # Release beats prerelease
        return (len(pre_b) > 0) - (len(pre_a) > 0)
    if pre_a == pre_b:
        return 0
    return -1 if pre_a < pre_b else 1


def is_newer_version(current_version: str, latest_version: str) -> bool:
    return compare_semver(latest_version, current_version) > 0


class UpdateState(str, Enum):
    CHECKING = "checking"
    AVAILABLE = "available"
    UP_TO_DATE = "up_to_date"
    ERROR = "error"
    DOWNLOADING = "downloading"
    DOWNLOADED = "downloaded"


@dataclass
class UpdateStatus:
    state: UpdateState
    version: str = ""
    message: str = ""
    percent: int = 0

    @classmethod
    def checking(cls) -> 'UpdateStatus':
        return cls(UpdateState.CHECKING, message="Checking for updates...")

    @classmethod
    def available(cls, version: str) -> 'UpdateStatus':
        return cls(UpdateState.AVAILABLE, version=version, message=f"Version {version} is available")

    @classmethod
    def up_to_date(cls, version: str = "") -> 'UpdateStatus':
        return cls(UpdateState.UP_TO_DATE, version=version, message="You have the latest version")

    @classmethod
    def error(cls, message: str) -> 'UpdateStatus':
        return cls(UpdateState.ERROR, message=message)

    @classmethod
    def progress(cls, version: str, percent: int) -> 'UpdateStatus':
        return cls(UpdateState.DOWNLOADING, version=version, message=f"Downloaded {percent}%", percent=percent)

    @classmethod
    def downloaded(cls, version: str) -> 'UpdateStatus':
        return cls(UpdateState.DOWNLOADED, version=version, message=f"Version {version} downloaded", percent=100)


@dataclass
class ReleaseInfo:
    version: str
    html_url: str = ""
    assets: List[Dict[str, object]] = field(default_factory=list)

    def asset_for(self, platform: str) -> Optional[Dict[str, object]]:
        suffixes = PLATFORM_ASSET_SUFFIXES.get(platform, PLATFORM_ASSET_SUFFIXES['linux'])
        for suffix in suffixes:
            for asset in self.assets:
                if str(asset.get('name', '')).endswith(suffix):
                    return asset
        return None


UpdateListener = Callable[[UpdateStatus], None]


class UpdateChecker:
    """Release feed polling, download and restart-to-install."""

    def __init__(
        self,
        current_version: str,
        repo: str,
        scheduler: Scheduler,
        downloads_dir: Path,
        dialogs: Optional[DialogService] = None,
        shell: Optional[ShellOpener] = None,
        interval_seconds: float = 7 * 24 * 60 * 60,
        timeout: float = 10.0,
        client_factory: Callable[..., httpx.Client] = httpx.Client,
        platform: Optional[str] = None,
    ):
        self.current_version = current_version
        self.repo = repo
        self.scheduler = scheduler
        self.downloads_dir = downloads_dir
        self.dialogs = dialogs or DialogService()
        self.shell = shell or ShellOpener()
        self.interval_seconds = interval_seconds
        self.timeout = timeout
        self.client_factory = client_factory
        self.platform = platform or sys.platform

        self.auto_install_on_quit = True
        self.quit_handler: Optional[Callable[[], None]] = None

        self._lock = threading.Lock()
        self._listeners: List[UpdateListener] = []
        self._task: Optional[PeriodicTask] = None
        self._latest: Optional[ReleaseInfo] = None
        self._pending_installer: Optional[Path] = None

    # Listeners

    def add_listener(self, listener: UpdateListener) -> None:
        if listener not in self._listeners:
            self._listeners.append(listener)

    def remove_listener(self, listener: UpdateListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def _report(self, status: UpdateStatus) -> UpdateStatus:
        for listener in list(self._listeners):
            try:
                listener(status)
            except Exception as e:
                logger.error(f"Update listener {listener!r} failed: {e}")
        return status

    # Scheduling

    def start(self) -> None:
        """Start the periodic check, replacing any previous schedule."""
        self.stop()
        self._task = self.scheduler.every(self.interval_seconds, self.check, name='update-check')
        logger.info(f"Update checks scheduled every {self.interval_seconds / 3600:.0f}h")

    def stop(self) -> None:
        if self._task is not None:
            self._task.cancel()
            self._task = None

    @property
    def is_scheduled(self) -> bool:
        return self._task is not None and self._task.is_active

    @property
    def pending_installer(self) -> Optional[Path]:
        return self._pending_installer

    # Feed

    @property
    def feed_url(self) -> str:
        repo = (self.repo or "").strip()
        if "/" not in repo:
            raise UpdateError("Repo must be in the form 'owner/repo'.")
        return f"{GITHUB_API_BASE}/repos/{repo}/releases/latest"

    def fetch_latest_release(self) -> ReleaseInfo:
        headers = {
            "Accept": "application/vnd.github+json",
            "User-Agent": "TrayWay-Updater",
        }
        with self.client_factory(timeout=self.timeout, follow_redirects=True) as client:
            response = client.get(self.feed_url, headers=headers)
            response.raise_for_status()
            payload = response.json()

        if not isinstance(payload, dict):
            raise UpdateError("Unexpected response from release feed")

        version = normalize_version(str(payload.get("tag_name") or payload.get("name") or ""))
        if not parse_semver(version):
            raise UpdateError(f"Release has no valid version: {version!r}")

        assets = [
            {
                'name': asset.get('name', ''),
                'url': asset.get('browser_download_url', ''),
                'size': asset.get('size', 0),
            }
            for asset in payload.get("assets") or []
            if isinstance(asset, dict)
        ]
        return ReleaseInfo(version=version, html_url=str(payload.get("html_url") or ""), assets=assets)

    def check(self) -> UpdateStatus:
        """Query the feed and report the outcome to listeners."""
        logger.info("Checking for updates...")
        self._report(UpdateStatus.checking())
        try:
            release = self.fetch_latest_release()
            newer = is_newer_version(self.current_version, release.version)
        except (httpx.HTTPError, UpdateError, ValueError) as e:
            logger.error(f"Update check failed: {e}")
            return self._report(UpdateStatus.error(f"Update check failed: {e}"))

        with self._lock:
            self._latest = release if newer else None
        if newer:
            logger.info(f"Update available: {release.version}")
            return self._report(UpdateStatus.available(release.version))
        logger.info(f"No update, latest is {release.version}")
        return self._report(UpdateStatus.up_to_date(release.version))

    def request_check(self) -> threading.Thread:
        """Run check() on a background thread."""
        thread = threading.Thread(target=self.check, daemon=True, name='update-check-now')
        thread.start()
        return thread

    # Download / install

    def download(self) -> Optional[Path]:
        """Download the installer for the latest release, reporting progress."""
        with self._lock:
            release = self._latest
        if release is None:
            self._report(UpdateStatus.error("No update available to download"))
            return None

        asset = release.asset_for(self.platform)
        if asset is None:
            self._report(UpdateStatus.error(f"No installer for {self.platform} in release {release.version}"))
            return None

        target = self.downloads_dir / str(asset['name'])
        logger.info(f"Downloading {asset['url']} to {target}")
        try:
            self.downloads_dir.mkdir(parents=True, exist_ok=True)
            with self.client_factory(timeout=self.timeout, follow_redirects=True) as client:
                with client.stream("GET", str(asset['url'])) as response:
                    response.raise_for_status()
                    total = int(response.headers.get("content-length") or asset.get('size') or 0)
                    received = 0
                    last_percent = -1
                    with open(target, 'wb') as f:
                        for chunk in response.iter_bytes():
                            f.write(chunk)
                            received += len(chunk)
                            percent = round(received * 100 / total) if total else 0
                            if percent != last_percent:
                                last_percent = percent
                                self._report(UpdateStatus.progress(release.version, percent))
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Update download failed: {e}")
            self._report(UpdateStatus.error(f"Update download failed: {e}"))
            return None

        with self._lock:
            self._pending_installer = target
        logger.info(f"Update {release.version} downloaded")
        self._report(UpdateStatus.downloaded(release.version))
        self.prompt_restart(release.version)
        return target

    def request_download(self) -> threading.Thread:
        """Run download() on a background thread."""
        thread = threading.Thread(target=self.download, daemon=True, name='update-download')
        thread.start()
        return thread

    def prompt_restart(self, version: str) -> bool:
        """Offer to restart now; declining leaves install-on-quit armed."""
        restart = self.dialogs.confirm(
            "Update ready",
            f"Update to version {version} has been downloaded.",
            "Restart the application to apply the update?",
        )
        if restart:
            self.quit_and_install()
        return bool(restart)

    def _launch_installer(self) -> bool:
        with self._lock:
            installer = self._pending_installer
            self._pending_installer = None
        if installer is None:
            return False
        logger.info(f"Launching installer {installer}")
        return self.shell.open_path(str(installer))

    def quit_and_install(self) -> bool:
        launched = self._launch_installer()
        if launched and self.quit_handler is not None:
            self.quit_handler()
        return launched

    def install_on_quit(self) -> bool:
        """Called on shutdown: run a downloaded installer the user deferred."""
        if not self.auto_install_on_quit:
            return False
        return self._launch_installer()
