"""
Unit tests for tray icon rendering and the icon cache.
"""
from unittest.mock import patch

import pytest
from PIL import Image
from PIL.PngImagePlugin import PngInfo

from trayway.settings import NO_GLYPH, TrayConfig
from trayway.tray.icon import (
    CACHE_MARKER_KEY,
    CACHE_SIZE,
    CACHE_VERSION,
    IconRenderer,
    cache_filename,
    create_default_icon,
    create_fallback_icon,
    tray_icon_size,
)


def red_square(size=CACHE_SIZE):
    return Image.new("RGBA", (size, size), (255, 0, 0, 255))


@pytest.fixture
def icon_renderer(tmp_path):
    return IconRenderer(tmp_path / "icons", size=16)


class TestIconHelpers:
    """Tests for the module-level helpers."""

    @pytest.mark.parametrize("platform,size", [("darwin", 22), ("win32", 16), ("linux", 24)])
    def test_tray_icon_size(self, platform, size):
        """Test the native tray size per platform."""
        assert tray_icon_size(platform) == size

    def test_cache_filename_uses_code_points(self):
        """Test that cache names are derived from the glyph's code points."""
        assert cache_filename("😊") == "emoji-1f60a.png"
        assert cache_filename("👍🏽") == "emoji-1f44d-1f3fd.png"

    def test_default_icon(self):
        """Test that the default icon has the requested size and is not blank."""
        image = create_default_icon(32, "TrayWay")
        assert image.size == (32, 32)
        assert image.getchannel("A").getbbox() is not None

    def test_fallback_icon(self):
        """Test that the fallback icon draws even for glyphs the default font lacks."""
        image = create_fallback_icon("😊", 16)
        assert image.size == (16, 16)


class TestRender:
    """Tests for IconRenderer.render."""

    def test_no_glyph_uses_default_icon(self, icon_renderer):
        """Test that the no-glyph choice never renders a glyph."""
        config = TrayConfig(tray_emoji=NO_GLYPH)
        with patch("trayway.tray.icon.render_glyph") as mock_render:
            image = icon_renderer.render(config)
        mock_render.assert_not_called()
        assert image.size == (16, 16)

    def test_empty_glyph_uses_default_icon(self, icon_renderer):
        """Test that an empty glyph falls back to the default icon."""
        with patch("trayway.tray.icon.render_glyph") as mock_render:
            icon_renderer.render(TrayConfig(tray_emoji="  "))
        mock_render.assert_not_called()

    def test_icon_change_disabled_uses_default_icon(self, icon_renderer):
        """Test that allowIconChange=false ignores the configured glyph."""
        with patch("trayway.tray.icon.render_glyph") as mock_render:
            icon_renderer.render(TrayConfig(tray_emoji="😎", allow_icon_change=False))
        mock_render.assert_not_called()

    def test_glyph_rendered_and_scaled(self, icon_renderer):
        """Test that a glyph is rendered at cache size and scaled to the tray size."""
        with patch("trayway.tray.icon.render_glyph", return_value=red_square()) as mock_render:
            image = icon_renderer.render(TrayConfig(tray_emoji="😎"))
        mock_render.assert_called_once_with("😎", CACHE_SIZE)
        assert image.size == (16, 16)

    def test_cache_reused(self, tmp_path):
        """Test that a cached glyph is not rendered again, even by a new renderer."""
        config = TrayConfig(tray_emoji="😎")
        with patch("trayway.tray.icon.render_glyph", return_value=red_square()) as mock_render:
            IconRenderer(tmp_path, size=16).render(config)
            IconRenderer(tmp_path, size=22).render(config)
        assert mock_render.call_count == 1
        assert (tmp_path / cache_filename("😎")).exists()

    def test_render_failure_uses_fallback(self, icon_renderer):
        """Test that a rendering error produces the fallback icon instead of raising."""
        with patch("trayway.tray.icon.render_glyph", side_effect=OSError("no emoji font")):
            image = icon_renderer.render(TrayConfig(tray_emoji="😎"))
        assert image.size == (16, 16)


class TestCacheValidation:
    """Tests for stale cache detection."""

    def test_cached_file_has_marker(self, icon_renderer):
        """Test that stored icons carry the cache version marker."""
        icon_renderer.store_cached("😎", red_square())
        with Image.open(icon_renderer.cache_path("😎")) as image:
            assert image.info[CACHE_MARKER_KEY] == CACHE_VERSION

    def test_unmarked_cache_discarded(self, icon_renderer):
        """Test that a cached PNG from an older renderer is deleted and re-rendered."""
        path = icon_renderer.cache_path("😎")
        path.parent.mkdir(parents=True)
        red_square().save(path, format="PNG")

        with patch("trayway.tray.icon.render_glyph", return_value=red_square()) as mock_render:
            icon_renderer.render(TrayConfig(tray_emoji="😎"))
        mock_render.assert_called_once()
        assert icon_renderer.is_valid_cache(path)

    def test_undersized_cache_is_stale(self, icon_renderer):
        """Test that a marked but too small cached icon is not trusted."""
        path = icon_renderer.cache_path("😎")
        path.parent.mkdir(parents=True)
        info = PngInfo()
        info.add_text(CACHE_MARKER_KEY, CACHE_VERSION)
        red_square(16).save(path, format="PNG", pnginfo=info)

        assert icon_renderer.load_cached("😎") is None
        assert not path.exists()

    def test_corrupt_cache_is_stale(self, icon_renderer):
        """Test that an unreadable cache file is treated as stale."""
        path = icon_renderer.cache_path("😎")
        path.parent.mkdir(parents=True)
        path.write_bytes(b"not a png")
        assert not icon_renderer.is_valid_cache(path)

    def test_purge_stale(self, icon_renderer):
        """Test that purge_stale removes only invalid cache files."""
        icon_renderer.store_cached("😎", red_square())
        stale = icon_renderer.cache_path("🚀")
        red_square().save(stale, format="PNG")

        assert icon_renderer.purge_stale() == 1
        assert not stale.exists()
        assert icon_renderer.cache_path("😎").exists()

    def test_purge_without_cache_dir(self, tmp_path):
        """Test that purging a missing cache directory is a no-op."""
        assert IconRenderer(tmp_path / "missing", size=16).purge_stale() == 0
