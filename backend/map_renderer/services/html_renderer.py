"""Render a map request as an HTML figure.

The figure holds a caption (title and subtitle), a container with the map
and its legends, and a footer with licence, source and footnotes. The map
and legends are embedded either as inline SVG or as PNG images.

Text values may contain line breaks, which become ``<br />``, and
footnote references such as ``[1]``, which become links to the matching
footnote in the footer.

Example:
    Render a request with inline SVG:
        >>> from map_renderer.services import html_renderer
        >>> markup = html_renderer.render_html_with_svg(request)
        >>> markup.startswith('<figure class="figure"')
        True
"""

from __future__ import annotations

import logging
import math
import re
from html import escape
from typing import TYPE_CHECKING

from map_renderer.services import svg_renderer
from map_renderer.svg import png

if TYPE_CHECKING:
    from collections.abc import Callable

    from map_renderer import models

_LOGGER = logging.getLogger("map_renderer.html")

SOURCE_TEXT = "Source: "
NOTES_TEXT = "Notes"
FOOTNOTE_HIDDEN_TEXT = "Footnote "

_FOOTNOTE_REFERENCE = re.compile(r"\[([0-9]+)]")
_WIDTH_ATTRIBUTE = re.compile(r'width="[^"]*"')
_HEIGHT_ATTRIBUTE = re.compile(r'height="[^"]+"')


def _id_prefix(request: models.RenderRequest) -> str:
    return f"map-{request.filename}"


def parse_value(request: models.RenderRequest, value: str) -> str:
    """Escape text, turning newlines into breaks and [N] into footnote links.

    Only references to existing footnotes are linked; anything else is
    left as plain text.
    """
    text = escape(value, quote=False).replace("\n", "<br />")
    count = len(request.footnotes)
    prefix = _id_prefix(request)

    def link(match: re.Match[str]) -> str:
        number = int(match.group(1))
        if not 1 <= number <= count:
            return match.group(0)
        return (
            f'<a href="#{prefix}-note-{number}" class="footnote__link">'
            f'<span class="visuallyhidden">{FOOTNOTE_HIDDEN_TEXT}</span>{number}</a>'
        )

    return _FOOTNOTE_REFERENCE.sub(link, text)


def _caption(request: models.RenderRequest) -> str:
    if not request.title and not request.subtitle:
        return ""
    subtitle = ""
    if request.subtitle:
        subtitle = (
            '<br /><span class="map__subtitle">'
            f"{parse_value(request, request.subtitle)}</span>"
        )
    return (
        '<figcaption class="map__caption">'
        f"{parse_value(request, request.title)}{subtitle}</figcaption>\n"
    )


def _div(element_id: str, css_class: str, content: str) -> str:
    return f'<div id="{element_id}" class="{css_class}">\n{content}\n</div>'


def _footer(request: models.RenderRequest) -> str:
    lines = ['<footer class="figure__footer">']
    if request.licence:
        lines.append(f'<p class="figure__licence">{escape(request.licence)}</p>')
    if request.source:
        source = escape(request.source)
        if request.source_link:
            source = f'<a href="{escape(request.source_link)}">{source}</a>'
        lines.append(f'<p class="figure__source">{SOURCE_TEXT}{source}</p>')
    if request.footnotes:
        lines.append(f'<p class="figure__notes">{NOTES_TEXT}</p>')
        lines.append('<ol class="figure__footnotes">')
        prefix = _id_prefix(request)
        for number, note in enumerate(request.footnotes, start=1):
            lines.append(
                f'<li id="{prefix}-note-{number}" class="figure__footnote-item">'
                f"{parse_value(request, note)}</li>"
            )
        lines.append("</ol>")
    lines.append("</footer>")
    return "\n".join(lines) + "\n"


def render_css(prepared: svg_renderer.PreparedSVGRequest) -> str:
    """Style block sizing the map and switching between the legends.

    With both legends in a responsive layout, the vertical legend is shown
    beside the map when the window is wider than map plus legend, and the
    horizontal legend below or above it otherwise.
    """
    request = prepared.request
    prefix = _id_prefix(request)
    width = prepared.view_box_width
    lines = ['<style type="text/css">']
    lines.append(f"\t#{prefix}-map, #{prefix}-legend-horizontal {{")
    if prepared.responsive:
        lines.append(f"\t\tmin-width: {request.min_width:.0f}px;")
        lines.append(f"\t\tmax-width: {request.max_width:.0f}px;")
    else:
        lines.append(f"\t\twidth: {width:.0f}px;")
    lines.append("\t}")

    choropleth = request.choropleth
    if choropleth is not None and choropleth.has_vertical_legend and prepared.is_choropleth:
        legend_width = prepared.vertical_legend_width
        svg_percent = max(math.floor(width / (width + legend_width) * 100), 1)
        legend_percent = 100 - svg_percent - 1
        legend_max = max(request.max_width, width) / svg_percent * legend_percent
        map_rule = f"#{prefix}-map {{ display: inline-block; width: {svg_percent:.0f}%;}}"
        legend_rule = (
            f"#{prefix}-legend-vertical {{ display: inline-block; "
            f"width: {legend_percent:.0f}%; max-width: {legend_max:.0f}px;}}"
        )
        if choropleth.has_horizontal_legend and prepared.responsive:
            switch_point = width + legend_width
            lines.extend(
                [
                    f"\t@media (min-width: {switch_point + 1:.0f}px) {{",
                    f"\t\t#{prefix}-legend-horizontal {{ display: none;}}",
                    f"\t\t{map_rule}",
                    f"\t\t{legend_rule}",
                    "\t}",
                    f"\t@media (max-width: {switch_point:.0f}px) {{",
                    f"\t\t#{prefix}-legend-vertical {{ display: none;}}",
                    f"\t\t#{prefix}-map {{ width: 100%;}}",
                    "\t}",
                ]
            )
        else:
            lines.extend([f"\t{map_rule}", f"\t{legend_rule}"])
    lines.append("</style>")
    return "\n" + "\n".join(lines) + "\n"


def render_resize_script(prepared: svg_renderer.PreparedSVGRequest) -> str:
    """Script keeping the responsive map's height in proportion to its width."""
    ratio = prepared.view_box_height / prepared.view_box_width
    return "\n".join(
        [
            '<script type="text/javascript">',
            "(function() {",
            f'\tvar svg = document.getElementById("{prepared.svg_id}");',
            "\tif (!svg) { return; }",
            "\tfunction resize() {",
            f'\t\tsvg.style.height = Math.round(svg.clientWidth * {ratio:.2f}) + "px";',
            "\t}",
            "\tresize();",
            '\twindow.addEventListener("resize", resize);',
            "})();",
            "</script>",
        ]
    )


def _render_figure(
    prepared: svg_renderer.PreparedSVGRequest,
    embed: Callable[[str], str],
    *,
    css: str,
    script: str,
    horizontal_legend: bool,
) -> str:
    request = prepared.request
    prefix = _id_prefix(request)
    choropleth = request.choropleth if prepared.is_choropleth else None

    def horizontal() -> str:
        return _div(
            f"{prefix}-legend-horizontal",
            "map_key map_key__horizontal",
            embed(svg_renderer.render_horizontal_key(prepared)),
        )

    def vertical() -> str:
        return _div(
            f"{prefix}-legend-vertical",
            "map_key map_key__vertical",
            embed(svg_renderer.render_vertical_key(prepared)),
        )

    before: list[str] = []
    after: list[str] = []
    if choropleth is not None:
        show_horizontal = horizontal_legend and choropleth.has_horizontal_legend
        if show_horizontal and choropleth.horizontal_legend_position == "before":
            before.append(horizontal())
        if choropleth.vertical_legend_position == "before":
            before.append(vertical())
        if choropleth.vertical_legend_position == "after":
            after.append(vertical())
        if show_horizontal and choropleth.horizontal_legend_position == "after":
            after.append(horizontal())

    map_content = embed(svg_renderer.render_svg(prepared))
    if script:
        map_content = f"{map_content}\n{script}"
    map_div = _div(f"{prefix}-map", "map", map_content)

    container = "".join([css, *before, map_div, *after])
    return "".join(
        [
            f'<figure class="figure" id="{prefix}-figure">\n',
            _caption(request),
            f'<div class="map_container">{container}</div>',
            _footer(request),
            "</figure>\n",
        ]
    )


def render_html_with_svg(
    request: models.RenderRequest,
    png_converter: png.PNGConverter | None = None,
) -> str:
    """HTML figure with the map and legends as inline SVG.

    Args:
        request: The render request.
        png_converter: Converter for fallback images (used only when the
            request asks for them).

    Returns:
        The figure markup.
    """
    prepared = svg_renderer.prepare_svg_request(request, png_converter)
    script = ""
    if prepared.responsive and prepared.features is not None:
        script = render_resize_script(prepared)
    return _render_figure(
        prepared,
        lambda svg: svg,
        css=render_css(prepared),
        script=script,
        horizontal_legend=True,
    )


def render_png(svg: str, png_converter: png.PNGConverter | None) -> str:
    """Replace an SVG with an equivalent ``<img>``.

    The width and height attributes of the SVG are kept on the image. When
    conversion is unavailable or fails the SVG is returned unchanged.
    """
    if not svg:
        return svg
    if png_converter is None:
        _LOGGER.error("No PNG converter configured - cannot convert svg to png")
        return svg
    try:
        data = png_converter.convert(svg)
    except png.PNGConversionError:
        _LOGGER.exception("Unable to convert svg to png")
        return svg
    attributes = [
        match.group(0)
        for match in (_WIDTH_ATTRIBUTE.search(svg), _HEIGHT_ATTRIBUTE.search(svg))
        if match is not None
    ]
    return f'<img {" ".join(attributes)} src="data:image/png;base64,{data}" />'


def render_html_with_png(
    request: models.RenderRequest,
    png_converter: png.PNGConverter | None,
) -> str:
    """HTML figure with the map and legends as PNG images.

    The layout is never responsive and fallback images are disabled. Only
    one legend is included: the vertical one when requested, otherwise the
    horizontal one.

    Args:
        request: The render request (left unmodified).
        png_converter: Converter used for every image.

    Returns:
        The figure markup.
    """
    request = request.model_copy(update={"include_fallback_png": False})
    prepared = svg_renderer.prepare_svg_request(request, png_converter)
    prepared.responsive = False
    choropleth = request.choropleth
    horizontal_legend = not (choropleth is not None and choropleth.has_vertical_legend)
    return _render_figure(
        prepared,
        lambda svg: render_png(svg, png_converter),
        css="",
        script="",
        horizontal_legend=horizontal_legend,
    )
