"""
Unit tests for the update checker.
"""
import httpx
import pytest

from trayway.services.updater import (
    ReleaseInfo,
    UpdateChecker,
    UpdateState,
    compare_semver,
    is_newer_version,
    normalize_version,
    parse_semver,
)

FEED_URL = "https://api.github.com/repos/acme/trayway/releases/latest"
ASSET_URL = "https://downloads.example.com/TrayWay-1.2.0.AppImage"
PAYLOAD = b"x" * 1000


def release_payload(tag="v1.2.0"):
    return {
        "tag_name": tag,
        "html_url": "https://github.com/acme/trayway/releases/tag/" + tag,
        "assets": [
            {"name": "TrayWay-1.2.0.exe", "browser_download_url": "https://downloads.example.com/TrayWay-1.2.0.exe", "size": 1000},
            {"name": "TrayWay-1.2.0.AppImage", "browser_download_url": ASSET_URL, "size": 1000},
        ],
    }


def make_factory(handler):
    transport = httpx.MockTransport(handler)

    def factory(**kwargs):
        return httpx.Client(transport=transport, **kwargs)

    return factory


def feed_handler(payload, status_code=200):
    def handler(request):
        if str(request.url) == FEED_URL:
            return httpx.Response(status_code, json=payload)
        if str(request.url) == ASSET_URL:
            return httpx.Response(200, content=PAYLOAD)
        return httpx.Response(404)
    return handler


@pytest.fixture
def make_checker(scheduler, tmp_path, dialogs, shell):
    def _make(handler, current="1.0.0", repo="acme/trayway"):
        return UpdateChecker(
            current_version=current,
            repo=repo,
            scheduler=scheduler,
            downloads_dir=tmp_path / "updates",
            dialogs=dialogs,
            shell=shell,
            client_factory=make_factory(handler),
            platform="linux",
        )
    return _make


class TestSemver:
    """Tests for the version helpers."""

    def test_normalize_strips_v(self):
        assert normalize_version(" v1.2.3 ") == "1.2.3"

    def test_parse_invalid(self):
        assert parse_semver("1.2") is None
        assert parse_semver("latest") is None

    @pytest.mark.parametrize("a,b,expected", [
        ("1.0.0", "1.0.0", 0),
        ("1.0.1", "1.0.0", 1),
        ("1.10.0", "1.9.0", 1),
        ("2.0.0", "10.0.0", -1),
        ("1.0.0-beta", "1.0.0", -1),
        ("1.0.0-alpha.2", "1.0.0-alpha.10", -1),
        ("1.0.0-rc.1", "1.0.0-beta.9", 1),
        ("1.0.0+build.5", "1.0.0", 0),
    ])
    def test_compare(self, a, b, expected):
        assert compare_semver(a, b) == expected

    def test_compare_invalid_raises(self):
        with pytest.raises(ValueError):
            compare_semver("1.0", "1.0.0")

    def test_is_newer(self):
        assert is_newer_version("1.0.0", "v1.2.0")
        assert not is_newer_version("1.2.0", "1.2.0")


class TestReleaseInfo:
    """Tests for asset selection."""

    def test_asset_for_platform(self):
        release = ReleaseInfo("1.2.0", assets=[{"name": "a.dmg"}, {"name": "b.exe"}])
        assert release.asset_for("darwin")["name"] == "a.dmg"
        assert release.asset_for("win32")["name"] == "b.exe"
        assert release.asset_for("linux") is None


class TestCheck:
    """Tests for UpdateChecker.check."""

    def test_update_available(self, make_checker):
        """Test that a newer release is reported as available."""
        statuses = []
        checker = make_checker(feed_handler(release_payload()))
        checker.add_listener(statuses.append)

        status = checker.check()
        assert status.state == UpdateState.AVAILABLE
        assert status.version == "1.2.0"
        assert [s.state for s in statuses] == [UpdateState.CHECKING, UpdateState.AVAILABLE]

    def test_up_to_date(self, make_checker):
        checker = make_checker(feed_handler(release_payload("v1.0.0")))
        assert checker.check().state == UpdateState.UP_TO_DATE

    def test_http_error(self, make_checker):
        """Test that a failed request becomes an error status."""
        checker = make_checker(feed_handler({"message": "Not Found"}, status_code=404))
        status = checker.check()
        assert status.state == UpdateState.ERROR
        assert status.message.startswith("Update check failed:")

    def test_network_error(self, make_checker):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        assert make_checker(handler).check().state == UpdateState.ERROR

    def test_invalid_version_in_feed(self, make_checker):
        checker = make_checker(feed_handler(release_payload("nightly")))
        assert checker.check().state == UpdateState.ERROR

    def test_invalid_repo(self, make_checker):
        checker = make_checker(feed_handler(release_payload()), repo="trayway")
        assert checker.check().state == UpdateState.ERROR

    def test_failing_listener_is_isolated(self, make_checker):
        """Test that a raising listener does not break the check."""
        def broken(status):
            raise RuntimeError("boom")

        checker = make_checker(feed_handler(release_payload()))
        checker.add_listener(broken)
        assert checker.check().state == UpdateState.AVAILABLE


class TestSchedule:
    """Tests for the periodic check."""

    def test_start_replaces_schedule(self, make_checker, scheduler):
        checker = make_checker(feed_handler(release_payload()))
        checker.start()
        checker.start()
        assert [t.name for t in scheduler.active_tasks()] == ["update-check"]

        checker.stop()
        assert not checker.is_scheduled


class TestDownload:
    """Tests for download and install."""

    def test_download_without_update(self, make_checker):
        """Test that download before a successful check reports an error."""
        checker = make_checker(feed_handler(release_payload()))
        assert checker.download() is None

    def test_download_reports_progress(self, make_checker, dialogs, shell):
        """Test download progress, the restart prompt and the installer launch."""
        statuses = []
        quit_calls = []
        checker = make_checker(feed_handler(release_payload()))
        checker.quit_handler = lambda: quit_calls.append(True)
        checker.add_listener(statuses.append)
        checker.check()

        target = checker.download()
        assert target.read_bytes() == PAYLOAD

        percents = [s.percent for s in statuses if s.state == UpdateState.DOWNLOADING]
        assert percents[-1] == 100
        assert percents == sorted(set(percents))
        assert statuses[-1].state == UpdateState.DOWNLOADED

        assert dialogs.confirmations == ["Update ready"]
        assert shell.opened == [("path", str(target))]
        assert quit_calls == [True]
        assert checker.pending_installer is None

    def test_declined_restart_installs_on_quit(self, make_checker, dialogs, shell):
        """Test that a deferred update is launched when the app quits."""
        dialogs.answer = False
        checker = make_checker(feed_handler(release_payload()))
        checker.check()
        target = checker.download()

        assert shell.opened == []
        assert checker.pending_installer == target

        assert checker.install_on_quit() is True
        assert shell.opened == [("path", str(target))]
        assert checker.install_on_quit() is False

    def test_install_on_quit_disabled(self, make_checker, dialogs, shell):
        dialogs.answer = False
        checker = make_checker(feed_handler(release_payload()))
        checker.auto_install_on_quit = False
        checker.check()
        checker.download()
        assert checker.install_on_quit() is False
        assert shell.opened == []

    def test_no_asset_for_platform(self, make_checker):
        payload = release_payload()
        payload["assets"] = [a for a in payload["assets"] if a["name"].endswith(".exe")]
        statuses = []
        checker = make_checker(feed_handler(payload))
        checker.add_listener(statuses.append)
        checker.check()
        assert checker.download() is None
        assert statuses[-1].state == UpdateState.ERROR
        assert statuses[-1].message == "No installer for linux in release 1.2.0"

    def test_download_error_message(self, make_checker):
        """Test that a failed download is reported as a download failure."""
        def handler(request):
            if str(request.url) == FEED_URL:
                return httpx.Response(200, json=release_payload())
            return httpx.Response(500)

        statuses = []
        checker = make_checker(handler)
        checker.add_listener(statuses.append)
        checker.check()
        assert checker.download() is None
        assert statuses[-1].state == UpdateState.ERROR
        assert statuses[-1].message.startswith("Update download failed:")

    def test_download_without_check_message(self, make_checker):
        statuses = []
        checker = make_checker(feed_handler(release_payload()))
        checker.add_listener(statuses.append)
        checker.download()
        assert statuses[-1].message == "No update available to download"
