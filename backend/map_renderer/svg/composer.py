"""Compose decoded features into SVG markup.

The SVG class collects geometries and features, then draws all of them
into a single ``<svg>`` document scaled to fit the requested surface. Each
geometry variant maps onto a fixed element:

    Point            -> ``<circle>``
    LineString       -> open ``<path>``
    Polygon          -> closed ``<path>``, one ``M`` segment per ring
    Multi*/Collection -> ``<g>`` wrapping one plain element per member

Feature properties can be copied onto the element as attributes (only
``class`` by default), the feature id can be emitted as ``id`` and a chosen
property can become a nested ``<title>``. Attributes are always written in
sorted key order so the output is deterministic.

Example:
    Draw a feature collection at 400 pixels wide:
        >>> from map_renderer.svg import composer
        >>> svg = composer.SVG()
        >>> svg.append_features(collection)
        >>> height = svg.height_for_width(400)
        >>> markup = svg.draw(400, height, title_property="name", with_ids=True)
"""

from __future__ import annotations

import html
import logging
from typing import TYPE_CHECKING, Any

from map_renderer.svg import projection as proj
from map_renderer.topology import geometry as geo
from map_renderer.utils import formatting

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator, Mapping

    from map_renderer.svg import png

_LOGGER = logging.getLogger("map_renderer.svg")

DEFAULT_PROPERTIES = ("class",)
RESPONSIVE_STYLE = "width:100%;"


def make_attributes(attributes: Mapping[str, Any]) -> str:
    """Format a mapping as SVG attribute text, sorted by name.

    Every attribute is preceded by a space, so the result can be appended
    directly after an element name. Values are escaped.

    Example:
        >>> make_attributes({"viewBox": "0 0 4 3", "id": "map"})
        ' id="map" viewBox="0 0 4 3"'
    """
    return "".join(
        f' {key}="{html.escape(str(attributes[key]), quote=True)}"'
        for key in sorted(attributes)
    )


def _title(text: str | None) -> str:
    if text is None:
        return ""
    return f"<title>{html.escape(text, quote=False)}</title>"


def _element(tag: str, body: str, attributes: str, title: str) -> str:
    if title:
        return f"<{tag} {body}{attributes}>{title}</{tag}>"
    return f"<{tag} {body}{attributes}/>"


def _path_data(scale: proj.ScaleFunction, line: geo.Line) -> str:
    points = []
    for x, y in line:
        sx, sy = scale(x, y)
        points.append(f"{sx:f} {sy:f}")
    return "M" + ",".join(points)


class _Writer:
    """Renders geometries with one scale function."""

    def __init__(self, scale: proj.ScaleFunction) -> None:
        self.scale = scale

    def point(self, position: geo.Position, attributes: str, title: str) -> str:
        x, y = self.scale(*position)
        return _element("circle", f'cx="{x:f}" cy="{y:f}" r="1"', attributes, title)

    def line(self, line: geo.Line, attributes: str, title: str) -> str:
        data = _path_data(self.scale, line)
        return _element("path", f'd="{data}"', attributes, title)

    def polygon(self, rings: list[geo.Line], attributes: str, title: str) -> str:
        data = " ".join(_path_data(self.scale, ring) for ring in rings if ring)
        return _element("path", f'd="{data} Z"', attributes, title)

    def group(self, members: Iterable[str], attributes: str, title: str) -> str:
        body = "\n".join(members)
        return f"<g{attributes}>{title}\n{body}\n</g>"

    def geometry(
        self, geometry: geo.Geometry, attributes: str = "", title: str = ""
    ) -> str:
        match geometry:
            case geo.Point(coordinates=position):
                return self.point(position, attributes, title)
            case geo.LineString(coordinates=line):
                return self.line(line, attributes, title)
            case geo.Polygon(coordinates=rings):
                return self.polygon(rings, attributes, title)
            case geo.MultiPoint(coordinates=positions):
                members = (self.point(p, "", "") for p in positions)
                return self.group(members, attributes, title)
            case geo.MultiLineString(coordinates=lines):
                members = (self.line(line, "", "") for line in lines)
                return self.group(members, attributes, title)
            case geo.MultiPolygon(coordinates=polygons):
                members = (self.polygon(rings, "", "") for rings in polygons)
                return self.group(members, attributes, title)
            case geo.GeometryCollection(geometries=geometries):
                members = (self.geometry(g) for g in geometries)
                return self.group(members, attributes, title)
        raise geo.GeometryError(f"Unsupported geometry: {geometry!r}")


class SVG:
    """A drawing surface holding geometries and features.

    The projected bounding box of everything appended is computed lazily and
    cached per projection function; appending anything clears the cache.
    """

    def __init__(self) -> None:
        self._elements: list[geo.Geometry | geo.Feature] = []
        self._bounding_boxes: dict[proj.Projection, proj.BoundingBox | None] = {}

    def __len__(self) -> int:
        return len(self._elements)

    def append_geometry(self, geometry: geo.Geometry) -> None:
        """Add a bare geometry, drawn without attributes or title."""
        self._elements.append(geometry)
        self._bounding_boxes.clear()

    def append_feature(self, feature: geo.Feature) -> None:
        self._elements.append(feature)
        self._bounding_boxes.clear()

    def append_features(self, features: Iterable[geo.Feature]) -> None:
        """Add every feature of a collection (or any iterable of features)."""
        self._elements.extend(features)
        self._bounding_boxes.clear()

    def points(self) -> Iterator[geo.Position]:
        """Yield every coordinate that will be drawn."""
        for element in self._elements:
            if isinstance(element, geo.Feature):
                yield from geo.iter_positions(element.geometry)
            else:
                yield from geo.iter_positions(element)

    def bounding_box(
        self, projection: proj.Projection = proj.identity
    ) -> proj.BoundingBox | None:
        """Projected bounding box of all elements (None when empty)."""
        if projection not in self._bounding_boxes:
            self._bounding_boxes[projection] = proj.BoundingBox.from_points(
                self.points(), projection
            )
        return self._bounding_boxes[projection]

    def height_for_width(
        self, width: float, projection: proj.Projection = proj.identity
    ) -> float:
        """Height matching the aspect ratio of the projected elements."""
        return proj.height_for_width(width, self.bounding_box(projection))

    def draw(
        self,
        width: float,
        height: float,
        *,
        projection: proj.Projection = proj.identity,
        use_properties: Iterable[str] = DEFAULT_PROPERTIES,
        title_property: str | None = None,
        with_ids: bool = False,
        attributes: Mapping[str, Any] | None = None,
        padding: proj.Padding | None = None,
        patterns: Iterable[str] = (),
        responsive: bool = False,
        png_converter: png.PNGConverter | None = None,
        bounding_box: proj.BoundingBox | None = None,
    ) -> str:
        """Render every element into an ``<svg>`` document.

        Args:
            width: Width of the surface (and of the root element unless
                responsive).
            height: Height of the surface.
            projection: Projection applied before scaling.
            use_properties: Feature properties copied onto elements as
                attributes.
            title_property: Feature property emitted as a ``<title>``
                child; None disables titles.
            with_ids: Emit the feature id as the ``id`` attribute.
            attributes: Extra attributes for the root element.
            padding: Space left around the drawing.
            patterns: Complete ``<pattern>`` elements placed in ``<defs>``.
            responsive: Replace the fixed width/height of the root element
                with ``style="width:100%;"``.
            png_converter: When given, wrap the drawing in a ``<switch>``
                with a rasterized fallback image.
            bounding_box: Precomputed projected bounding box to scale
                against. Defaults to the box of the appended elements.

        Returns:
            The SVG markup.
        """
        bbox = bounding_box or self.bounding_box(projection)
        scale = proj.scale_function_for_box(width, height, padding, bbox, projection)
        writer = _Writer(scale)
        allowed = set(use_properties)

        parts: list[str] = []
        pattern_markup = "".join(patterns)
        if pattern_markup:
            parts.append(f"<defs>{pattern_markup}</defs>")
        for element in self._elements:
            if isinstance(element, geo.Feature):
                markup = self._feature(writer, element, allowed, title_property, with_ids)
                if markup:
                    parts.append(markup)
            else:
                parts.append(writer.geometry(element))
        content = "\n" + "\n".join(parts) if parts else ""

        root = dict(attributes or {})
        if responsive:
            root["style"] = RESPONSIVE_STYLE
            root_attributes = make_attributes(root)
        else:
            root_attributes = (
                f' width="{formatting.format_number(width)}"'
                f' height="{formatting.format_number(height)}"'
                + make_attributes(root)
            )

        if png_converter is not None:
            return png_converter.include_fallback_image(root_attributes.lstrip(), content)
        return f"<svg{root_attributes}>{content}\n</svg>"

    @staticmethod
    def _feature(
        writer: _Writer,
        feature: geo.Feature,
        allowed: set[str],
        title_property: str | None,
        with_ids: bool,
    ) -> str:
        if feature.geometry is None:
            _LOGGER.debug("Skipping feature %s without geometry", feature.id)
            return ""
        element_attributes = {
            key: value
            for key, value in feature.properties.items()
            if key in allowed and value is not None
        }
        if with_ids and feature.id:
            element_attributes["id"] = feature.id
        title = None
        if title_property:
            value = feature.properties.get(title_property)
            title = None if value is None else str(value)
        return writer.geometry(
            feature.geometry, make_attributes(element_attributes), _title(title)
        )
