"""Render the map and its legends as SVG.

A render request is prepared once per HTTP request: the topology is parsed
and decoded, the projected bounding box, view-box size and legend layout
are computed, and the result is shared by the three render calls (map,
vertical legend, horizontal legend). Each call styles its own copy of the
decoded features, so titles are never styled twice.

Example:
    Render a map and its vertical legend:
        >>> from map_renderer.services import svg_renderer
        >>> prepared = svg_renderer.prepare_svg_request(request)
        >>> map_svg = svg_renderer.render_svg(prepared)
        >>> legend_svg = svg_renderer.render_vertical_key(prepared)
"""

from __future__ import annotations

import dataclasses
import logging
from typing import TYPE_CHECKING

from map_renderer.services import choropleth as styling
from map_renderer.services import legend
from map_renderer.svg import composer
from map_renderer.svg import projection as proj
from map_renderer.topology import geometry as geo
from map_renderer.topology import topology as topo
from map_renderer.utils import formatting

if TYPE_CHECKING:
    from map_renderer import models
    from map_renderer.svg import png

_LOGGER = logging.getLogger("map_renderer.renderer")

DEFAULT_WIDTH = 400.0
MAP_PROPERTIES = ("style", "class")


@dataclasses.dataclass
class PreparedSVGRequest:
    """Request-scoped values shared by the map and legend renders.

    Attributes:
        request: The render request.
        features: Decoded features before any styling, or None when the
            request has no drawable topology.
        bounding_box: Projected bounding box of the features.
        view_box_width: Width of the map view box.
        view_box_height: Height of the map view box.
        responsive: Size with CSS (min/max width given) instead of fixed
            dimensions.
        include_fallback_png: Embed PNG fallbacks in each SVG.
        png_converter: Converter for fallback images and PNG output.
        legend_scale: Break layout, when the request is a choropleth.
        vertical_legend_width: Width of the vertical legend (0 without one).
        has_missing_data: Some regions have no data row.
    """

    request: models.RenderRequest
    features: geo.FeatureCollection | None = None
    bounding_box: proj.BoundingBox | None = None
    view_box_width: float = DEFAULT_WIDTH
    view_box_height: float = 0.0
    responsive: bool = False
    include_fallback_png: bool = False
    png_converter: png.PNGConverter | None = None
    legend_scale: legend.LegendScale | None = None
    vertical_legend_width: float = 0.0
    has_missing_data: bool = False

    @property
    def filename(self) -> str:
        return self.request.filename

    @property
    def id_prefix(self) -> str:
        return f"{self.request.filename}-"

    @property
    def svg_id(self) -> str:
        return f"{self.request.filename}-map-svg"

    @property
    def pattern_id(self) -> str:
        return f"{self.request.filename}-nodata"

    @property
    def font_size(self) -> int:
        return self.request.font_size or legend.DEFAULT_FONT_SIZE

    @property
    def fallback_converter(self) -> png.PNGConverter | None:
        return self.png_converter if self.include_fallback_png else None

    @property
    def is_choropleth(self) -> bool:
        return self.legend_scale is not None


def _decode_topology(request: models.RenderRequest) -> geo.FeatureCollection | None:
    geography = request.geography
    if geography is None or not geography.topojson:
        return None
    topology = topo.Topology.from_dict(geography.topojson)
    if topology.is_empty:
        _LOGGER.info("Topology for %s has no arcs or objects", request.filename)
        return None
    return topo.decode(topology)


def _with_ids(
    prepared: PreparedSVGRequest, decoded: geo.FeatureCollection
) -> geo.FeatureCollection:
    request = prepared.request
    features = decoded.copy()
    id_property = request.geography.id_property if request.geography else ""
    styling.set_feature_ids(features, id_property, prepared.id_prefix)
    return features


def _styled_features(
    prepared: PreparedSVGRequest, decoded: geo.FeatureCollection
) -> geo.FeatureCollection:
    request = prepared.request
    features = _with_ids(prepared, decoded)
    styling.set_class_property(features, styling.REGION_CLASS_NAME)
    if prepared.is_choropleth and request.choropleth is not None:
        styling.assign_colours_and_titles(
            features,
            request.choropleth,
            request.data or [],
            id_prefix=prepared.id_prefix,
            name_property=_name_property(request),
            missing_style=styling.missing_data_style(prepared.pattern_id),
        )
    return features


def _name_property(request: models.RenderRequest) -> str:
    return request.geography.name_property if request.geography else ""


def prepare_svg_request(
    request: models.RenderRequest,
    png_converter: png.PNGConverter | None = None,
) -> PreparedSVGRequest:
    """Decode the topology and compute everything the renders share.

    Args:
        request: The render request.
        png_converter: Converter for fallback images, or None.

    Returns:
        The prepared request. When the request has no drawable topology
        its ``features`` is None and every render returns "".

    Raises:
        TopologyError: If the topology is structurally invalid.
    """
    prepared = PreparedSVGRequest(
        request=request,
        responsive=request.min_width > 0 or request.max_width > 0,
        include_fallback_png=request.include_fallback_png,
        png_converter=png_converter,
    )
    prepared.features = _decode_topology(request)
    if prepared.features is None:
        return prepared

    svg = composer.SVG()
    svg.append_features(prepared.features)
    prepared.bounding_box = svg.bounding_box(proj.mercator)
    prepared.view_box_width = request.width if request.width > 0 else DEFAULT_WIDTH
    prepared.view_box_height = proj.height_for_width(
        prepared.view_box_width, prepared.bounding_box
    )

    choropleth = request.choropleth
    if choropleth is not None and choropleth.breaks:
        data = request.data or []
        prepared.legend_scale = legend.sorted_break_info(choropleth, data)
        if choropleth.has_vertical_legend:
            prepared.vertical_legend_width = legend.vertical_key_width(
                choropleth, prepared.legend_scale, prepared.font_size
            )
        prepared.has_missing_data = styling.has_missing_data(
            _with_ids(prepared, prepared.features), data, prepared.id_prefix
        )
    return prepared


def render_svg(prepared: PreparedSVGRequest) -> str:
    """Render the map, or "" when there is nothing to draw."""
    if prepared.features is None:
        return ""
    features = _styled_features(prepared, prepared.features)
    svg = composer.SVG()
    svg.append_features(features)

    width = prepared.view_box_width
    height = prepared.view_box_height
    attributes = {
        "id": prepared.svg_id,
        "viewBox": (
            f"0 0 {formatting.format_number(width)} "
            f"{formatting.format_number(height)}"
        ),
    }
    patterns = []
    if prepared.is_choropleth:
        patterns.append(styling.missing_data_pattern(prepared.pattern_id))
    return svg.draw(
        width,
        height,
        projection=proj.mercator,
        use_properties=MAP_PROPERTIES,
        title_property=_name_property(prepared.request) or None,
        with_ids=True,
        attributes=attributes,
        patterns=patterns,
        responsive=prepared.responsive,
        png_converter=prepared.fallback_converter,
        bounding_box=prepared.bounding_box,
    )


def _both_legends(prepared: PreparedSVGRequest) -> bool:
    choropleth = prepared.request.choropleth
    return bool(
        choropleth
        and choropleth.has_horizontal_legend
        and choropleth.has_vertical_legend
    )


def render_horizontal_key(prepared: PreparedSVGRequest) -> str:
    """Render the horizontal legend, or "" for a map without breaks."""
    choropleth = prepared.request.choropleth
    if (
        prepared.features is None
        or prepared.legend_scale is None
        or choropleth is None
    ):
        return ""
    return legend.render_horizontal_legend(
        filename=prepared.filename,
        choropleth=choropleth,
        scale=prepared.legend_scale,
        width=prepared.view_box_width,
        both=_both_legends(prepared),
        include_missing=prepared.has_missing_data,
        responsive=prepared.responsive,
        font_size=prepared.font_size,
        png_converter=prepared.fallback_converter,
    )


def render_vertical_key(prepared: PreparedSVGRequest) -> str:
    """Render the vertical legend, or "" for a map without breaks."""
    choropleth = prepared.request.choropleth
    if (
        prepared.features is None
        or prepared.legend_scale is None
        or choropleth is None
    ):
        return ""
    key_width = int(prepared.vertical_legend_width) or legend.vertical_key_width(
        choropleth, prepared.legend_scale, prepared.font_size
    )
    return legend.render_vertical_legend(
        filename=prepared.filename,
        choropleth=choropleth,
        scale=prepared.legend_scale,
        height=prepared.view_box_height,
        key_width=key_width,
        both=_both_legends(prepared),
        include_missing=prepared.has_missing_data,
        responsive=prepared.responsive,
        font_size=prepared.font_size,
        png_converter=prepared.fallback_converter,
    )
