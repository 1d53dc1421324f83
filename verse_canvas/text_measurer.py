"""
Pillow-backed text measurement for the layout engine.
"""

import os
import logging
import threading
from pathlib import Path
from typing import Dict, List, Optional

from PIL import ImageFont


SYSTEM_DEJAVU_PATH = Path('/usr/share/fonts/truetype/dejavu')
LOCAL_FONT_DIR = Path('data/fonts')
NIMBUS_SANS_PATH = Path('/usr/share/fonts/opentype/urw-base35/NimbusSans-Regular.otf')


class TextMeasurer:
    """Measures rendered string widths for one sans-serif font family."""

    def __init__(self, font_path: Optional[str] = None):
        self.logger = logging.getLogger(__name__)
        self.font_path = font_path or os.getenv('FONT_PATH') or self._discover_font()
        self._fonts: Dict[int, ImageFont.ImageFont] = {}
        self._lock = threading.Lock()

        if self.font_path:
            self.logger.info(f"Using font {self.font_path}")
        else:
            self.logger.warning("No TrueType sans-serif font found - using Pillow default font")

    def _font_candidates(self) -> List[Path]:
        return [
            SYSTEM_DEJAVU_PATH / 'DejaVuSans.ttf',
            LOCAL_FONT_DIR / 'DejaVuSans.ttf',
            NIMBUS_SANS_PATH,
        ]

    def _discover_font(self) -> Optional[str]:
        """Return the first sans-serif font file present on this machine."""
        for candidate in self._font_candidates():
            if candidate.exists():
                return str(candidate)
        return None

    def get_font(self, size: int) -> ImageFont.ImageFont:
        """Font at the given pixel size, loaded once per size."""
        with self._lock:
            font = self._fonts.get(size)
            if font is None:
                font = self._load_font(size)
                self._fonts[size] = font
            return font

    def _load_font(self, size: int) -> ImageFont.ImageFont:
        if self.font_path:
            try:
                return ImageFont.truetype(self.font_path, size)
            except OSError as e:
                self.logger.warning(f"Failed to load font {self.font_path} at size {size}: {e}")
        return ImageFont.load_default(size=size)

    def measure(self, text: str, font_size: int) -> float:
        """Advance width of text in pixels, trailing spaces included."""
        return float(self.get_font(font_size).getlength(text))
