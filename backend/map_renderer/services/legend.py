"""Horizontal and vertical choropleth legends.

A legend is a bar split into one coloured segment per break, sized in
proportion to the range the break covers, with a tick and value label at
every boundary. An optional reference value gets its own grey tick with a
label on one side and the value on the other, and a "data unavailable"
swatch is added when some regions have no data.

There is no font engine available, so text widths are estimated from a
per-character table (narrow, medium and wide characters) scaled by font
size. The estimate decides the width of the vertical legend, how far the
horizontal bar is inset so that end labels are not clipped, which side of
the reference tick its label goes on, and when text is compressed with
``textLength``/``lengthAdjust``.
"""

from __future__ import annotations

import dataclasses
import html
import math
import re
from typing import TYPE_CHECKING

from map_renderer.services import choropleth as styling
from map_renderer.utils import formatting

if TYPE_CHECKING:
    from collections.abc import Sequence

    from map_renderer import models
    from map_renderer.svg import png

DEFAULT_FONT_SIZE = 14
HORIZONTAL_LEGEND_HEIGHT = 90
MISSING_TEXT_MARGIN = 12
MIN_KEY_FRACTION = 0.5
KEY_INSET_FRACTION = 0.05
REFERENCE_GAP = 2
RESPONSIVE_STYLE = "width:100%;"

_NARROW_WIDTH = 4
_MEDIUM_WIDTH = 9
_WIDE_WIDTH = 11
_NARROW_CHARS = re.compile(r"[1ijlt;:,.'!]")
_MEDIUM_CHARS = re.compile(r"[abcdefghknoprsuvxyz ]")

_COMPRESS = ' textLength="{length}" lengthAdjust="spacingAndGlyphs"'


def text_width(text: str, margin: int = 0, font_size: int = DEFAULT_FONT_SIZE) -> int:
    """Approximate rendered width of text, in pixels.

    Characters in ``1ijlt;:,.'!`` count 4, those in ``abcdefghknoprsuvxyz``
    and space count 9 and everything else 11, at the default font size of
    14. Other sizes scale the total proportionally.

    Example:
        >>> text_width("data unavailable", 12)
        136
    """
    narrow = len(_NARROW_CHARS.findall(text))
    medium = len(_MEDIUM_CHARS.findall(text))
    wide = len(text) - narrow - medium
    raw = wide * _WIDE_WIDTH + medium * _MEDIUM_WIDTH + narrow * _NARROW_WIDTH
    if font_size <= 0:
        font_size = DEFAULT_FONT_SIZE
    return math.ceil(raw * font_size / DEFAULT_FONT_SIZE) + margin


@dataclasses.dataclass(frozen=True)
class BreakInfo:
    lower_bound: float
    upper_bound: float
    relative_size: float
    colour: str


@dataclasses.dataclass(frozen=True)
class LegendScale:
    """Breaks laid out along a legend.

    Attributes:
        breaks: Breaks in ascending order. The first starts at the minimum
            value and the last ends at the maximum value.
        reference_position: Position of the reference value as a fraction
            of the legend length.
        min_value: Lowest value covered by the legend.
        max_value: Highest value covered by the legend, written at its
            top end.
    """

    breaks: list[BreakInfo]
    reference_position: float
    min_value: float
    max_value: float

    def tick_values(self) -> list[float]:
        return [b.lower_bound for b in self.breaks] + [self.max_value]


def sorted_break_info(
    choropleth: models.Choropleth, data: Sequence[models.DataRow]
) -> LegendScale:
    """Compute the legend layout of a choropleth's breaks.

    The legend covers ``min(lowest value, lowest lower bound)`` to
    ``max(highest value, upper bound)``; each break's share is
    ``(upper - lower) / range``. The top label shows ``max_value``, the
    value the legend ends at.

    Raises:
        ValueError: If the choropleth has no breaks.
    """
    breaks = styling.sort_breaks(choropleth.breaks, ascending=True)
    if not breaks:
        raise ValueError("A legend needs at least one break")
    values = [row.value for row in data]
    min_value = min([*values, breaks[0].lower_bound])
    max_value = max([*values, choropleth.upper_bound, breaks[-1].lower_bound])
    total_range = max_value - min_value

    bounds = [b.lower_bound for b in breaks[1:]] + [max_value]
    lowers = [min_value] + [b.lower_bound for b in breaks[1:]]
    info = []
    for lower, upper, choropleth_break in zip(lowers, bounds, breaks, strict=True):
        size = (upper - lower) / total_range if total_range > 0 else 1 / len(breaks)
        info.append(BreakInfo(lower, upper, size, choropleth_break.colour))

    if total_range > 0:
        reference_position = (choropleth.reference_value - min_value) / total_range
    else:
        reference_position = 0.0
    return LegendScale(info, reference_position, min_value, max_value)


def _text(value: str) -> str:
    return html.escape(value, quote=False)


def _title_text(choropleth: models.Choropleth) -> str:
    return f"{choropleth.value_prefix} {choropleth.value_suffix}"


def _has_reference(choropleth: models.Choropleth) -> bool:
    return bool(choropleth.reference_value_text)


def vertical_key_width(
    choropleth: models.Choropleth, scale: LegendScale, font_size: int = DEFAULT_FONT_SIZE
) -> int:
    """Width needed by the vertical legend.

    The widest of the missing-data label, the title and the tick labels on
    both sides of the bar (allowing 36 pixels for the bar itself), plus 10.
    """
    missing = text_width(styling.MISSING_DATA_TEXT, MISSING_TEXT_MARGIN, font_size)
    title = text_width(_title_text(choropleth), 0, font_size)
    ticks = _max_tick_width(scale, font_size) + _reference_width(choropleth, font_size) + 36
    return max(missing, title, ticks) + 10


def _max_tick_width(scale: LegendScale, font_size: int) -> int:
    return max(
        text_width(formatting.format_number(value), 0, font_size)
        for value in scale.tick_values()
    )


def _reference_width(choropleth: models.Choropleth, font_size: int) -> int:
    if not _has_reference(choropleth):
        return 0
    return max(
        text_width(choropleth.reference_value_text, 0, font_size),
        text_width(formatting.format_number(choropleth.reference_value), 0, font_size),
    )


def _legend_svg(
    attributes: str, content: str, png_converter: png.PNGConverter | None
) -> str:
    if png_converter is not None:
        return png_converter.include_fallback_image(attributes, content)
    return f"<svg {attributes}>{content}</svg>"


def _root_attributes(
    svg_id: str, css_class: str, width: float, height: float, responsive: bool
) -> str:
    width_text = formatting.format_number(width)
    height_text = formatting.format_number(height)
    attributes = f'id="{svg_id}" class="{css_class}"'
    if not responsive:
        attributes += f' width="{width_text}" height="{height_text}"'
    attributes += f' viewBox="0 0 {width_text} {height_text}"'
    if responsive:
        attributes += f' style="{RESPONSIVE_STYLE}"'
    return attributes


def _missing_defs(pattern_id: str) -> str:
    # each legend may be rasterized on its own, apart from the map
    return f"\n<defs>{styling.missing_data_pattern(pattern_id)}</defs>"


def _missing_swatch(pattern_id: str, x: float, y: float) -> str:
    return (
        f'\n<g class="missingColour" transform="translate({x:f}, {y:f})">'
        '\n<rect class="keyColour" height="8" width="8" '
        'style="stroke-width: 0.8; stroke: black; '
        f'{styling.missing_data_style(pattern_id)}"></rect>'
        '\n<text x="12" dy=".55em" style="text-anchor: start; fill: DimGrey;" '
        f'class="keyText">{styling.MISSING_DATA_TEXT}</text>'
        "\n</g>"
    )


@dataclasses.dataclass(frozen=True)
class _HorizontalLayout:
    left: float
    key_width: float
    text_on_left: bool = True
    text_length: float | None = None


def _reference_overflow(
    x: float, before: float, after: float, width: float
) -> float:
    return max(0.0, before - x) + max(0.0, x + after - width)


def _layout_horizontal(
    width: float,
    scale: LegendScale,
    choropleth: models.Choropleth,
    font_size: int,
) -> _HorizontalLayout:
    ticks = scale.tick_values()
    first = text_width(formatting.format_number(ticks[0]), 0, font_size) / 2
    last = text_width(formatting.format_number(ticks[-1]), 0, font_size) / 2
    left = max(width * KEY_INSET_FRACTION, first)
    key_width = width - left - max(width * KEY_INSET_FRACTION, last)
    if not _has_reference(choropleth):
        return _HorizontalLayout(left, key_width)

    position = min(max(scale.reference_position, 0.0), 1.0)
    text = text_width(choropleth.reference_value_text, REFERENCE_GAP, font_size)
    value = text_width(
        formatting.format_number(choropleth.reference_value), REFERENCE_GAP, font_size
    )
    x = left + key_width * position
    text_on_left = _reference_overflow(x, text, value, width) <= _reference_overflow(
        x, value, text, width
    )
    before, after = (text, value) if text_on_left else (value, text)
    lowest, highest = before, width - after
    min_key_width = width * MIN_KEY_FRACTION

    # end tick labels must stay inside the surface
    edge_left, edge_right = first, width - last

    if x < lowest:
        # move the key right, then shrink it from the left
        left += max(0.0, min(lowest - x, edge_right - (left + key_width)))
        x = left + key_width * position
        if x < lowest and position < 1:
            end = left + key_width
            key_width = max(
                min_key_width, min(key_width, (end - lowest) / (1 - position))
            )
            left = end - key_width
    elif x > highest:
        # move the key left, then shrink it from the right
        left -= max(0.0, min(x - highest, left - edge_left))
        x = left + key_width * position
        if x > highest and position > 0:
            key_width = max(
                min_key_width, min(key_width, (highest - left) / position)
            )

    x = left + key_width * position
    available = x if text_on_left else width - x
    text_length = None
    if text > available:
        text_length = max(math.floor(available - REFERENCE_GAP), 1)
    return _HorizontalLayout(left, key_width, text_on_left, text_length)


def _horizontal_tick(x: float, value: float) -> str:
    return (
        f'\n<g class="map__tick" transform="translate({x:f}, 0)">'
        '\n<line x2="0" y2="15" style="stroke-width: 1; stroke: Black;"></line>'
        '\n<text x="0" y="18" dy=".74em" style="text-anchor: middle;" '
        f'class="keyText">{formatting.format_number(value)}</text>'
        "\n</g>"
    )


def _horizontal_reference_tick(
    x: float, choropleth: models.Choropleth, layout: _HorizontalLayout
) -> str:
    compress = (
        _COMPRESS.format(length=layout.text_length)
        if layout.text_length is not None
        else ""
    )
    left_side = 'dx="-0.1em" dy=".74em" style="text-anchor: end; fill: DimGrey;"'
    right_side = 'dx="0.1em" dy=".74em" style="text-anchor: start; fill: DimGrey;"'
    text_side, value_side = (
        (left_side, right_side) if layout.text_on_left else (right_side, left_side)
    )
    return (
        f'\n<g class="map__tick" transform="translate({x:f}, 0)">'
        '\n<line x2="0" y1="8" y2="45" style="stroke-width: 1; stroke: DimGrey;"></line>'
        f'\n<text x="0" y="33" {text_side} class="keyText"{compress}>'
        f"{_text(choropleth.reference_value_text)}</text>"
        f'<text x="0" y="33" {value_side} class="keyText">'
        f"{formatting.format_number(choropleth.reference_value)}</text>"
        "\n</g>"
    )


def render_horizontal_legend(
    *,
    filename: str,
    choropleth: models.Choropleth,
    scale: LegendScale,
    width: float,
    both: bool = False,
    include_missing: bool = False,
    responsive: bool = False,
    font_size: int = DEFAULT_FONT_SIZE,
    png_converter: png.PNGConverter | None = None,
) -> str:
    """Render a horizontal legend as an ``<svg>`` element.

    Args:
        filename: Id prefix shared with the map.
        choropleth: Value prefix/suffix and reference value.
        scale: Break layout from sorted_break_info.
        width: Legend width (the map's view-box width).
        both: The vertical legend is shown too; adds a ``_both`` class.
        include_missing: Add the "data unavailable" swatch.
        responsive: Size with CSS instead of fixed width and height.
        font_size: Font size used for text width estimates.
        png_converter: Embed a PNG fallback when given.

    Returns:
        The legend markup.
    """
    css_class = "map_key_horizontal" + (" map_key_horizontal_both" if both else "")
    attributes = _root_attributes(
        f"{filename}-legend-horizontal-svg",
        css_class,
        width,
        HORIZONTAL_LEGEND_HEIGHT,
        responsive,
    )
    layout = _layout_horizontal(width, scale, choropleth, font_size)

    title = _title_text(choropleth)
    title_compress = ""
    if text_width(title, 0, font_size) > width:
        title_compress = _COMPRESS.format(length=formatting.format_number(width - 2))

    parts = [_missing_defs(f"{filename}-nodata")] if include_missing else []
    parts += [
        f'\n<g id="{filename}-legend-horizontal-container">',
        f'\n<text x="{width / 2:f}" y="6" dy=".5em" style="text-anchor: middle;" '
        f'class="keyText"{title_compress}>{_text(title)}</text>',
        f'\n<g id="{filename}-legend-horizontal-key" '
        f'transform="translate({layout.left:f}, 20)">',
    ]
    ticks = []
    left = 0.0
    for info in scale.breaks:
        segment = info.relative_size * layout.key_width
        parts.append(
            f'\n<rect class="keyColour" height="8" width="{segment:f}" x="{left:f}" '
            f'style="stroke-width: 0.5; stroke: black; fill: {info.colour};"></rect>'
        )
        ticks.append(_horizontal_tick(left, info.lower_bound))
        left += segment
    ticks.append(_horizontal_tick(layout.key_width, scale.max_value))
    if _has_reference(choropleth):
        position = min(max(scale.reference_position, 0.0), 1.0)
        ticks.append(
            _horizontal_reference_tick(layout.key_width * position, choropleth, layout)
        )
    parts.extend(ticks)
    if include_missing:
        parts.append(_missing_swatch(f"{filename}-nodata", 0.0, 55.0))
    parts.append("\n</g>\n</g>\n")
    return _legend_svg(attributes, "".join(parts), png_converter)


def _vertical_tick(y: float, value: float) -> str:
    return (
        f'\n<g class="map__tick" transform="translate(0, {y:f})">'
        '\n<line x1="8" x2="-15" style="stroke-width: 1; stroke: Black;"></line>'
        '\n<text x="-18" y="0" dy="0.32em" style="text-anchor: end;" '
        f'class="keyText">{formatting.format_number(value)}</text>'
        "\n</g>"
    )


def _vertical_reference_tick(y: float, choropleth: models.Choropleth) -> str:
    return (
        f'\n<g class="map__tick" transform="translate(0, {y:f})">'
        '\n<line x1="8" x2="45" style="stroke-width: 1; stroke: DimGrey;"></line>'
        '\n<text x="18" dy="-.32em" style="text-anchor: start; fill: DimGrey;" '
        f'class="keyText">{_text(choropleth.reference_value_text)}</text>'
        '<text x="18" dy="1em" style="text-anchor: start; fill: DimGrey;" '
        f'class="keyText">{formatting.format_number(choropleth.reference_value)}</text>'
        "\n</g>"
    )


def render_vertical_legend(
    *,
    filename: str,
    choropleth: models.Choropleth,
    scale: LegendScale,
    height: float,
    key_width: int,
    both: bool = False,
    include_missing: bool = False,
    responsive: bool = False,
    font_size: int = DEFAULT_FONT_SIZE,
    png_converter: png.PNGConverter | None = None,
) -> str:
    """Render a vertical legend as an ``<svg>`` element.

    The bar spans 80% of ``height``, starting at 10%; the lowest value is
    at the bottom. Tick labels sit left of the bar and the reference label
    right of it, with the text above the tick and the value below.

    Args:
        filename: Id prefix shared with the map.
        choropleth: Value prefix/suffix and reference value.
        scale: Break layout from sorted_break_info.
        height: Legend height (the map's view-box height).
        key_width: Legend width from vertical_key_width.
        both: The horizontal legend is shown too; adds a ``_both`` class.
        include_missing: Add the "data unavailable" swatch.
        responsive: Size with CSS instead of fixed width and height.
        font_size: Font size used for text width estimates.
        png_converter: Embed a PNG fallback when given.

    Returns:
        The legend markup.
    """
    css_class = "map_key_vertical" + (" map_key_vertical_both" if both else "")
    attributes = _root_attributes(
        f"{filename}-legend-vertical-svg", css_class, key_width, height, responsive
    )
    bar_height = height * 0.8
    max_tick = _max_tick_width(scale, font_size)
    needed = max_tick + _reference_width(choropleth, font_size) + 36
    bar_x = (key_width - needed) / 2 + max_tick + 18

    parts = [_missing_defs(f"{filename}-nodata")] if include_missing else []
    parts += [
        f'\n<g id="{filename}-legend-vertical-container">',
        f'\n<text x="{key_width / 2:f}" y="{height * 0.05:f}" dy=".5em" '
        'style="text-anchor: middle;" class="keyText">'
        f"{_text(_title_text(choropleth))}</text>",
        f'\n<g id="{filename}-legend-vertical-key" '
        f'transform="translate({bar_x:f}, {height * 0.1:f})">',
    ]
    ticks = []
    position = 0.0
    for info in scale.breaks:
        segment = info.relative_size * bar_height
        bottom = bar_height - position
        parts.append(
            f'\n<rect class="keyColour" height="{segment:f}" width="8" '
            f'y="{bottom - segment:f}" '
            f'style="stroke-width: 0.5; stroke: black; fill: {info.colour};"></rect>'
        )
        ticks.append(_vertical_tick(bottom, info.lower_bound))
        position += segment
    ticks.append(_vertical_tick(bar_height - position, scale.max_value))
    if _has_reference(choropleth):
        reference = min(max(scale.reference_position, 0.0), 1.0)
        ticks.append(
            _vertical_reference_tick(bar_height - bar_height * reference, choropleth)
        )
    parts.extend(ticks)
    parts.append("\n</g>")
    if include_missing:
        missing_width = text_width(
            styling.MISSING_DATA_TEXT, MISSING_TEXT_MARGIN, font_size
        )
        parts.append(
            _missing_swatch(
                f"{filename}-nodata", (key_width - missing_width) / 2, height * 0.95
            )
        )
    parts.append("\n</g>\n")
    return _legend_svg(attributes, "".join(parts), png_converter)
