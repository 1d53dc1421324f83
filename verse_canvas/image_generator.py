"""
Generates verse images: a black canvas with the verse fitted and centered in white.
"""

import os
import io
import base64
import logging
from typing import Optional, Union

from PIL import Image, ImageDraw, ImageFont

from verse_canvas.layout_engine import LayoutEngine, LayoutResult
from verse_canvas.text_measurer import TextMeasurer

OUTPUT_TYPES = ('data', 'dataURL')


class VerseCanvas:
    """Raster canvas taking absolute draw commands."""

    def __init__(self, width: int, height: int, mode: str = 'RGB'):
        self.width = width
        self.height = height
        self.image = Image.new(mode, (width, height))
        self.draw = ImageDraw.Draw(self.image)

    def fill_rect(self, x: float, y: float, width: float, height: float, color: str = '#000'):
        self.draw.rectangle([x, y, x + width - 1, y + height - 1], fill=color)

    def fill_text(self, text: str, x: float, y: float, font: ImageFont.ImageFont, color: str = '#fff'):
        """Draw text with its left baseline at (x, y)."""
        self.draw.text((x, y), text, fill=color, font=font, anchor='ls')

    def to_buffer(self) -> bytes:
        """PNG encoded image."""
        buffer = io.BytesIO()
        self.image.save(buffer, format='PNG')
        return buffer.getvalue()

    def to_data_url(self) -> str:
        encoded = base64.b64encode(self.to_buffer()).decode('ascii')
        return f"data:image/png;base64,{encoded}"


class ImageGenerator:
    def __init__(self, measurer: Optional[TextMeasurer] = None, layout_engine: Optional[LayoutEngine] = None,
                 width: Optional[int] = None, height: Optional[int] = None):
        self.logger = logging.getLogger(__name__)
        # Canvas dimensions (configurable)
        self.width = width if width is not None else int(os.getenv('CANVAS_WIDTH', '1920'))
        self.height = height if height is not None else int(os.getenv('CANVAS_HEIGHT', '1080'))

        self.background_color = '#000'
        self.text_color = '#fff'

        self.measurer = measurer or TextMeasurer()
        self.layout_engine = layout_engine or LayoutEngine(self.measurer.measure)

    def create_verse_image(self, verse_text: str, caption: Optional[str] = None) -> VerseCanvas:
        """Draw the fitted verse and its caption on a fresh canvas."""
        result = self.layout_engine.layout(verse_text, self.width, self.height)

        canvas = VerseCanvas(self.width, self.height)
        canvas.fill_rect(0, 0, self.width, self.height, self.background_color)

        font = self.measurer.get_font(result.font_size)
        for line in result.lines:
            canvas.fill_text(line.text, line.x, line.y, font, self.text_color)

        if caption:
            self._draw_caption(canvas, caption, result, font)

        self.logger.info(f"Rendered verse image: {len(result.lines)} line(s) at {result.font_size}px")
        return canvas

    def _draw_caption(self, canvas: VerseCanvas, caption: str, result: LayoutResult, font: ImageFont.ImageFont):
        """Caption uses the verse font size, below the block."""
        line = self.layout_engine.caption(caption, result, self.width)
        canvas.fill_text(line.text, line.x, line.y, font, self.text_color)

    def render(self, verse_text: str, caption: Optional[str] = None, output_type: str = 'data') -> Union[bytes, str]:
        """Render and serialize: 'data' gives PNG bytes, 'dataURL' a base64 data URL."""
        if output_type not in OUTPUT_TYPES:
            raise ValueError(f"Invalid output type: {output_type}. Valid types: {', '.join(OUTPUT_TYPES)}")

        canvas = self.create_verse_image(verse_text, caption)
        if output_type == 'dataURL':
            return canvas.to_data_url()
        return canvas.to_buffer()

    def get_display_info(self) -> dict:
        return {
            'width': self.width,
            'height': self.height,
            'font_path': self.measurer.font_path,
            'font_range': [self.layout_engine.font_range.min, self.layout_engine.font_range.max],
            'line_height_factor': self.layout_engine.line_height_factor,
            'fit_policy': self.layout_engine.policy.value,
        }
