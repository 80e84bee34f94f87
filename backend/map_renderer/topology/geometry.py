"""Decoded geometry, features and feature collections.

Geometries are modelled as a closed set of frozen dataclasses, one per
GeoJSON geometry type, and are dispatched with ``match`` statements rather
than string type tags. Features pair a geometry with an id and an open
property mapping; feature properties are mutable so that the renderer can
attach classes, styles and titles before drawing.

Example:
    Build a feature from GeoJSON and walk its coordinates:
        >>> from map_renderer.topology import geometry
        >>> feature = geometry.Feature.from_geojson({
        ...     "type": "Feature",
        ...     "id": "E01",
        ...     "properties": {"name": "Somewhere"},
        ...     "geometry": {"type": "Point", "coordinates": [1.5, 52.0]},
        ... })
        >>> list(geometry.iter_positions(feature.geometry))
        [(1.5, 52.0)]
"""

from __future__ import annotations

import dataclasses
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Iterator

Position = tuple[float, float]
Line = list[Position]


class GeometryError(ValueError):
    """Raised when a GeoJSON geometry object cannot be interpreted."""


@dataclasses.dataclass(frozen=True, slots=True)
class Point:
    coordinates: Position


@dataclasses.dataclass(frozen=True, slots=True)
class MultiPoint:
    coordinates: list[Position]


@dataclasses.dataclass(frozen=True, slots=True)
class LineString:
    coordinates: Line


@dataclasses.dataclass(frozen=True, slots=True)
class MultiLineString:
    coordinates: list[Line]


@dataclasses.dataclass(frozen=True, slots=True)
class Polygon:
    """A polygon as an outer ring followed by any holes."""

    coordinates: list[Line]


@dataclasses.dataclass(frozen=True, slots=True)
class MultiPolygon:
    coordinates: list[list[Line]]


@dataclasses.dataclass(frozen=True, slots=True)
class GeometryCollection:
    geometries: list[Geometry]


Geometry = (
    Point
    | MultiPoint
    | LineString
    | MultiLineString
    | Polygon
    | MultiPolygon
    | GeometryCollection
)


@dataclasses.dataclass
class Feature:
    """A geometry with an identifier and arbitrary properties.

    Attributes:
        geometry: The decoded geometry, or None for a feature without one.
        id: Feature identifier. Rendering replaces it with a prefixed id.
        properties: Open string-keyed mapping (names, classes, styles...).
    """

    geometry: Geometry | None
    id: str | None = None
    properties: dict[str, Any] = dataclasses.field(default_factory=dict)

    def copy(self) -> Feature:
        """Return a copy with its own property mapping.

        Geometry is immutable and is shared with the original.
        """
        return Feature(self.geometry, self.id, dict(self.properties))

    @classmethod
    def from_geojson(cls, obj: dict[str, Any]) -> Feature:
        raw_geometry = obj.get("geometry")
        geometry = (
            geometry_from_geojson(raw_geometry) if raw_geometry else None
        )
        raw_id = obj.get("id")
        return cls(
            geometry=geometry,
            id=None if raw_id is None else str(raw_id),
            properties=dict(obj.get("properties") or {}),
        )

    def to_geojson(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": "Feature",
            "geometry": (
                geometry_to_geojson(self.geometry) if self.geometry else None
            ),
            "properties": dict(self.properties),
        }
        if self.id is not None:
            result["id"] = self.id
        return result


@dataclasses.dataclass
class FeatureCollection:
    """An ordered sequence of features."""

    features: list[Feature] = dataclasses.field(default_factory=list)

    def __len__(self) -> int:
        return len(self.features)

    def __iter__(self) -> Iterator[Feature]:
        return iter(self.features)

    def copy(self) -> FeatureCollection:
        """Return a collection of feature copies (see Feature.copy)."""
        return FeatureCollection([feature.copy() for feature in self.features])

    @classmethod
    def from_geojson(cls, obj: dict[str, Any]) -> FeatureCollection:
        if obj.get("type") != "FeatureCollection":
            raise GeometryError(
                f"Expected a FeatureCollection, got {obj.get('type')!r}"
            )
        return cls(
            [Feature.from_geojson(raw) for raw in obj.get("features") or []]
        )

    def to_geojson(self) -> dict[str, Any]:
        return {
            "type": "FeatureCollection",
            "features": [feature.to_geojson() for feature in self.features],
        }


def _position(raw: Any) -> Position:
    try:
        return float(raw[0]), float(raw[1])
    except (TypeError, ValueError, IndexError) as exc:
        raise GeometryError(f"Invalid position: {raw!r}") from exc


def _line(raw: Any) -> Line:
    return [_position(p) for p in raw]


def geometry_from_geojson(obj: dict[str, Any]) -> Geometry:
    """Convert a GeoJSON geometry object into a Geometry.

    Args:
        obj: Parsed GeoJSON geometry (a dict with "type" and
            "coordinates" or "geometries").

    Returns:
        The matching Geometry variant.

    Raises:
        GeometryError: If the type is unknown or coordinates are malformed.
    """
    coordinates = obj.get("coordinates")
    match obj.get("type"):
        case "Point":
            return Point(_position(coordinates))
        case "MultiPoint":
            return MultiPoint(_line(coordinates))
        case "LineString":
            return LineString(_line(coordinates))
        case "MultiLineString":
            return MultiLineString([_line(line) for line in coordinates])
        case "Polygon":
            return Polygon([_line(ring) for ring in coordinates])
        case "MultiPolygon":
            return MultiPolygon(
                [[_line(ring) for ring in polygon] for polygon in coordinates]
            )
        case "GeometryCollection":
            return GeometryCollection(
                [geometry_from_geojson(g) for g in obj.get("geometries") or []]
            )
        case other:
            raise GeometryError(f"Unknown geometry type: {other!r}")


def _as_lists(line: Line) -> list[list[float]]:
    return [[x, y] for x, y in line]


def geometry_to_geojson(geometry: Geometry) -> dict[str, Any]:
    """Convert a Geometry back into a GeoJSON geometry object."""
    match geometry:
        case Point(coordinates=(x, y)):
            return {"type": "Point", "coordinates": [x, y]}
        case MultiPoint(coordinates=points):
            return {"type": "MultiPoint", "coordinates": _as_lists(points)}
        case LineString(coordinates=line):
            return {"type": "LineString", "coordinates": _as_lists(line)}
        case MultiLineString(coordinates=lines):
            return {
                "type": "MultiLineString",
                "coordinates": [_as_lists(line) for line in lines],
            }
        case Polygon(coordinates=rings):
            return {
                "type": "Polygon",
                "coordinates": [_as_lists(ring) for ring in rings],
            }
        case MultiPolygon(coordinates=polygons):
            return {
                "type": "MultiPolygon",
                "coordinates": [
                    [_as_lists(ring) for ring in polygon]
                    for polygon in polygons
                ],
            }
        case GeometryCollection(geometries=geometries):
            return {
                "type": "GeometryCollection",
                "geometries": [geometry_to_geojson(g) for g in geometries],
            }
    raise GeometryError(f"Unsupported geometry: {geometry!r}")


def iter_positions(geometry: Geometry | None) -> Iterator[Position]:
    """Yield every coordinate of a geometry, depth first."""
    match geometry:
        case None:
            return
        case Point(coordinates=position):
            yield position
        case MultiPoint(coordinates=line) | LineString(coordinates=line):
            yield from line
        case MultiLineString(coordinates=lines) | Polygon(coordinates=lines):
            for line in lines:
                yield from line
        case MultiPolygon(coordinates=polygons):
            for polygon in polygons:
                for ring in polygon:
                    yield from ring
        case GeometryCollection(geometries=geometries):
            for child in geometries:
                yield from iter_positions(child)
