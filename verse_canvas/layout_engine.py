"""
Auto-fit multi-line text layout for verse images.

Picks the largest font size whose greedy word wrap fits the bounding box,
then centers every line horizontally and the whole block vertically.
"""

import os
import logging
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Callable, List, Optional

# measure(text, font_size) -> rendered width in pixels
MeasureFunc = Callable[[str, int], float]


class InvalidInput(ValueError):
    """Raised when the layout inputs cannot produce any layout."""


class FitPolicy(Enum):
    # Keep the last font size whose layout fitted the box
    LAST_FIT = 'last_fit'
    # Keep the overflowing size and layout the search stopped on
    COMPATIBLE = 'compatible'


@dataclass(frozen=True)
class BoundingBox:
    x: float
    y: float
    width: float
    height: float

    @classmethod
    def inset_for_canvas(cls, canvas_width: int, canvas_height: int) -> 'BoundingBox':
        """Box used for verse text: 3/4 of the canvas, offset by 1.5/4."""
        return cls(
            x=canvas_width / 4 * 1.5,
            y=canvas_height / 4 * 1.5,
            width=canvas_width / 4 * 3,
            height=canvas_height / 4 * 3,
        )


@dataclass(frozen=True)
class FontSizeRange:
    min: int = 15
    max: int = 75


@dataclass
class Line:
    text: str
    width: float
    x: float
    y: float


@dataclass
class LayoutResult:
    font_size: int
    lines: List[Line] = field(default_factory=list)
    block_height: float = 0.0
    block_start_y: float = 0.0


def _validate(text: str, box: BoundingBox, canvas_width: float, canvas_height: float,
              font_range: FontSizeRange, line_height_factor: float) -> List[str]:
    if not text or not text.strip():
        raise InvalidInput("Text to lay out is empty")
    if box.width <= 0 or box.height <= 0:
        raise InvalidInput(f"Bounding box must have a positive size, got {box.width}x{box.height}")
    if canvas_width <= 0 or canvas_height <= 0:
        raise InvalidInput(f"Canvas must have a positive size, got {canvas_width}x{canvas_height}")
    if font_range.min < 1 or font_range.min > font_range.max:
        raise InvalidInput(f"Invalid font size range {font_range.min}..{font_range.max}")
    if line_height_factor <= 0:
        raise InvalidInput(f"Line height factor must be positive, got {line_height_factor}")

    # Literal single-space split; runs of spaces leave empty tokens, which are dropped
    return [word for word in text.split(' ') if word]


def _centered_line(text: str, font_size: int, canvas_width: float, y: float,
                   measure: MeasureFunc) -> Line:
    width = measure(text, font_size)
    return Line(text=text, width=width, x=canvas_width / 2 - width / 2, y=y)


def _wrap_words(words: List[str], box: BoundingBox, canvas_width: float, font_size: int,
                line_height: float, measure: MeasureFunc):
    """Greedy wrap at one font size. Returns (lines, last baseline)."""
    y = box.y + font_size  # baseline of the first line
    lines = []
    line = ''

    for word in words:
        candidate = line + word + ' '
        # A word wider than the box still goes on a line of its own, unsplit
        if line and measure(candidate, font_size) > box.width:
            lines.append(_centered_line(line, font_size, canvas_width, y, measure))
            line = word + ' '
            y += line_height
        else:
            line = candidate

    lines.append(_centered_line(line, font_size, canvas_width, y, measure))
    return lines, y


def reflow_lines(lines: List[Line], block_start_y: float, font_size: int,
                 line_height_factor: float) -> List[Line]:
    """Assign final baselines top-down from the centered block start."""
    line_height = font_size * line_height_factor
    reflowed = []
    y = block_start_y
    for line in lines:
        y += line_height
        reflowed.append(replace(line, y=y))
    return reflowed


def fit(text: str, box: BoundingBox, canvas_width: float, canvas_height: float,
        font_range: FontSizeRange, line_height_factor: float, measure: MeasureFunc,
        policy: FitPolicy = FitPolicy.LAST_FIT) -> LayoutResult:
    """Find the font size and line positions for text inside box.

    Font sizes are tried in ascending order. A size is accepted while the last
    baseline of its wrapped layout does not exceed ``box.height``; the search
    stops at the first size that overflows. With ``FitPolicy.LAST_FIT`` the
    last accepted layout is used, with ``FitPolicy.COMPATIBLE`` the overflowing
    one is. If the smallest size already overflows its layout is returned
    as-is; overflow is never an error.

    Line ``x`` is computed from the untrimmed line text (trailing space
    included) while ``text`` holds the trimmed form that gets drawn.
    """
    words = _validate(text, box, canvas_width, canvas_height, font_range, line_height_factor)

    chosen_size = None
    chosen_lines = None
    for font_size in range(font_range.min, font_range.max + 1):
        lines, last_y = _wrap_words(words, box, canvas_width, font_size,
                                    font_size * line_height_factor, measure)
        if last_y > box.height:
            if policy is FitPolicy.COMPATIBLE or chosen_lines is None:
                chosen_size, chosen_lines = font_size, lines
            break
        chosen_size, chosen_lines = font_size, lines

    line_height = chosen_size * line_height_factor
    block_height = chosen_lines[-1].y + line_height - chosen_lines[0].y
    block_start_y = canvas_height / 2 - block_height / 2 - line_height

    # First-pass baselines only decide breaks and acceptance
    final_lines = [replace(line, text=line.text.strip())
                   for line in reflow_lines(chosen_lines, block_start_y, chosen_size, line_height_factor)]

    return LayoutResult(
        font_size=chosen_size,
        lines=final_lines,
        block_height=block_height,
        block_start_y=block_start_y,
    )


def caption_line(caption_text: str, font_size: int, canvas_width: float, y_anchor: float,
                 measure: MeasureFunc) -> Line:
    """Single centered line at a fixed baseline, no fitting."""
    return _centered_line(caption_text, font_size, canvas_width, y_anchor, measure)


class LayoutEngine:
    """Holds the fitting constants and runs fit() against a measurer."""

    def __init__(self, measure: MeasureFunc, font_range: Optional[FontSizeRange] = None,
                 line_height_factor: Optional[float] = None, caption_offset: Optional[float] = None,
                 policy: Optional[FitPolicy] = None):
        self.logger = logging.getLogger(__name__)
        self.measure = measure
        self.font_range = font_range or FontSizeRange(
            int(os.getenv('MIN_FONT_SIZE', '15')),
            int(os.getenv('MAX_FONT_SIZE', '75')),
        )
        self.line_height_factor = (line_height_factor if line_height_factor is not None
                                   else float(os.getenv('LINE_HEIGHT_FACTOR', '1.1')))
        self.caption_offset = caption_offset if caption_offset is not None else float(os.getenv('CAPTION_OFFSET', '225'))
        self.policy = policy or FitPolicy(os.getenv('FIT_POLICY', FitPolicy.LAST_FIT.value).lower())

    def layout(self, text: str, canvas_width: int, canvas_height: int,
               box: Optional[BoundingBox] = None) -> LayoutResult:
        """Fit text into box (default: the inset box of the canvas)."""
        box = box or BoundingBox.inset_for_canvas(canvas_width, canvas_height)
        result = fit(text, box, canvas_width, canvas_height, self.font_range,
                     self.line_height_factor, self.measure, self.policy)
        self.logger.debug(f"Fitted {len(result.lines)} line(s) at {result.font_size}px "
                          f"(policy={self.policy.value}, block height {result.block_height:.1f})")
        return result

    def caption(self, caption_text: str, result: LayoutResult, canvas_width: int) -> Line:
        """Caption placed caption_offset below the verse block."""
        y_anchor = result.block_start_y + result.block_height + self.caption_offset
        return caption_line(caption_text, result.font_size, canvas_width, y_anchor, self.measure)
