"""
Tray icon rendering.

Draws the configured emoji onto a 64px canvas, caches the result as a PNG
per glyph, and scales it down to the host tray size.
"""

import sys
from pathlib import Path
from typing import List, Optional, Tuple

from PIL import Image, ImageDraw, ImageFont
from PIL.PngImagePlugin import PngInfo

from trayway.settings import NO_GLYPH, TrayConfig
from trayway.utils.logger import get_logger

logger = get_logger(__name__)

CACHE_SIZE = 64
CACHE_VERSION = "2"
CACHE_MARKER_KEY = "trayway-cache-version"
CACHE_PATTERNS = ('emoji-*.png',)

DEFAULT_COLOR = '#1e90ff'

# (font file, pixel size) - bitmap emoji fonts only render at their strike sizes
EMOJI_FONTS: List[Tuple[str, int]] = [
    ('/System/Library/Fonts/Apple Color Emoji.ttc', 160),
    ('C:/Windows/Fonts/seguiemj.ttf', 96),
    ('/usr/share/fonts/truetype/noto/NotoColorEmoji.ttf', 109),
    ('/usr/share/fonts/noto/NotoColorEmoji.ttf', 109),
    ('/usr/share/fonts/google-noto-emoji/NotoColorEmoji.ttf', 109),
    ('/usr/share/fonts/noto-emoji/NotoColorEmoji.ttf', 109),
]


def tray_icon_size(platform: Optional[str] = None) -> int:
    """Native tray icon size for the host platform."""
    platform = platform or sys.platform
    if platform == 'darwin':
        return 22
    if platform == 'win32':
        return 16
    return 24


def create_default_icon(size: int = CACHE_SIZE, letter: str = 'T', color: str = DEFAULT_COLOR) -> Image.Image:
    """Create the standard icon (blue circle with the app initial)."""
    image = Image.new('RGBA', (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)

    draw.ellipse([0, 0, size - 1, size - 1], fill=color)
    _draw_centered(draw, size, letter[:1].upper() or 'T', fill='white')

    return image


def create_fallback_icon(glyph: str, size: int) -> Image.Image:
    """Vector stand-in used when the glyph cannot be rendered."""
    image = Image.new('RGBA', (size, size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(image)
    draw.ellipse([0, 0, size - 1, size - 1], outline=DEFAULT_COLOR, width=max(1, size // 12))
    try:
        _draw_centered(draw, size, glyph, fill=DEFAULT_COLOR)
    except (UnicodeError, OSError, ValueError):
        _draw_centered(draw, size, '?', fill=DEFAULT_COLOR)
    return image


def _draw_centered(draw: ImageDraw.ImageDraw, size: int, text: str, fill) -> None:
    try:
        font = ImageFont.load_default(size=max(8, int(size * 0.6)))
    except TypeError:
        # Pillow < 10.1 has no sized default font
        font = ImageFont.load_default()
    # Get text bounding box for centering
    left, top, right, bottom = draw.textbbox((0, 0), text, font=font)
    x = (size - (right - left)) // 2 - left
    y = (size - (bottom - top)) // 2 - top
    draw.text((x, y), text, fill=fill, font=font)


def load_emoji_font() -> ImageFont.FreeTypeFont:
    for path, font_size in EMOJI_FONTS:
        if Path(path).exists():
            try:
                return ImageFont.truetype(path, font_size)
            except OSError as e:
                logger.debug(f"Cannot use emoji font {path}: {e}")
    raise OSError("No color emoji font available")


def render_glyph(glyph: str, size: int = CACHE_SIZE) -> Image.Image:
    """Render a glyph with the system color emoji font onto a transparent square."""
    font = load_emoji_font()
    canvas_size = int(font.size * 1.5)
    canvas = Image.new('RGBA', (canvas_size, canvas_size), (0, 0, 0, 0))
    draw = ImageDraw.Draw(canvas)
    draw.text((canvas_size / 2, canvas_size / 2), glyph, font=font, anchor='mm', embedded_color=True)

    bbox = canvas.getchannel('A').getbbox()
    if bbox is None:
        raise ValueError(f"Glyph {glyph!r} rendered empty")
    glyph_image = canvas.crop(bbox)

    # Pad to a square so the glyph keeps its aspect ratio
    side = max(glyph_image.size)
    square = Image.new('RGBA', (side, side), (0, 0, 0, 0))
    square.paste(glyph_image, ((side - glyph_image.width) // 2, (side - glyph_image.height) // 2))
    return square.resize((size, size), Image.Resampling.LANCZOS)


def cache_filename(glyph: str) -> str:
    """Filesystem-safe cache name derived from the glyph's code points."""
    return 'emoji-' + '-'.join(f'{ord(char):x}' for char in glyph) + '.png'


class IconRenderer:
    """Renders tray icons and keeps the per-glyph PNG cache."""

    def __init__(self, cache_dir: Path, size: Optional[int] = None):
        self.cache_dir = cache_dir
        self.size = size or tray_icon_size()

    def cache_path(self, glyph: str) -> Path:
        return self.cache_dir / cache_filename(glyph)

    def is_valid_cache(self, path: Path) -> bool:
        try:
            with Image.open(path) as image:
                marker = image.info.get(CACHE_MARKER_KEY)
                return marker == CACHE_VERSION and min(image.size) >= CACHE_SIZE
        except Exception:
            return False

    def purge_stale(self) -> int:
        """Delete cached icons written by an older renderer. Returns how many were removed."""
        if not self.cache_dir.exists():
            return 0
        removed = 0
        for pattern in CACHE_PATTERNS:
            for path in self.cache_dir.glob(pattern):
                if not self.is_valid_cache(path):
                    try:
                        path.unlink()
                        removed += 1
                        logger.info(f"Removed stale icon {path.name}")
                    except OSError as e:
                        logger.warning(f"Failed to remove stale icon {path}: {e}")
        return removed

    def load_cached(self, glyph: str) -> Optional[Image.Image]:
        path = self.cache_path(glyph)
        if not path.exists():
            return None
        if not self.is_valid_cache(path):
            logger.info(f"Discarding stale cached icon for {glyph}")
            try:
                path.unlink()
            except OSError as e:
                logger.warning(f"Failed to remove stale icon {path}: {e}")
            return None
        with Image.open(path) as image:
            return image.convert('RGBA')

    def store_cached(self, glyph: str, image: Image.Image) -> None:
        path = self.cache_path(glyph)
        info = PngInfo()
        info.add_text(CACHE_MARKER_KEY, CACHE_VERSION)
        try:
            self.cache_dir.mkdir(parents=True, exist_ok=True)
            image.save(path, format='PNG', pnginfo=info)
            logger.info(f"Cached icon for {glyph} at {path}")
        except OSError as e:
            logger.warning(f"Failed to cache icon for {glyph}: {e}")

    def full_resolution(self, glyph: str) -> Image.Image:
        """The 64px rendering of a glyph, from cache when possible."""
        image = self.load_cached(glyph)
        if image is None:
            image = render_glyph(glyph, CACHE_SIZE)
            self.store_cached(glyph, image)
        return image

    def render(self, config: TrayConfig) -> Image.Image:
        """Icon for the live tray at the host size."""
        glyph = (config.tray_emoji or '').strip()
        if not config.allow_icon_change or not glyph or glyph == NO_GLYPH:
            return create_default_icon(self.size, config.display_name)

        try:
            image = self.full_resolution(glyph)
        except Exception as e:
            logger.warning(f"Failed to render icon for {glyph}: {e}, using fallback")
            return create_fallback_icon(glyph, self.size)
        return image.resize((self.size, self.size), Image.Resampling.LANCZOS)
