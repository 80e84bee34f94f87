"""Encode features as a TopoJSON topology.

This is the inverse of ``topology.decode``: every line and ring of the input
geometries becomes an arc, and an arc that repeats an earlier one (in the
same or the opposite direction) is referenced by index instead of being
stored twice. Shared boundaries between neighbouring polygons are detected
only when the whole ring or line matches; no junction splitting is done.

Optionally the coordinates can be quantized onto an integer grid covering
the bounding box of the input, in which case arcs are delta-encoded and a
``transform`` is recorded so that decoding restores (approximately) the
original positions.

Example:
    Encode and decode a collection without loss:
        >>> from map_renderer.topology import encode, topology
        >>> topo = encode.encode(collection, "regions")
        >>> topology.decode(topo).to_geojson() == collection.to_geojson()
        True
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from map_renderer.topology import geometry as geo
from map_renderer.topology import topology as topo

if TYPE_CHECKING:
    from collections.abc import Iterable


class _Quantizer:
    def __init__(
        self, bbox: tuple[float, float, float, float], quantization: int
    ) -> None:
        min_x, min_y, max_x, max_y = bbox
        self.kx = (quantization - 1) / (max_x - min_x) if max_x > min_x else 1.0
        self.ky = (quantization - 1) / (max_y - min_y) if max_y > min_y else 1.0
        self.translate = (min_x, min_y)

    @property
    def transform(self) -> topo.Transform:
        return topo.Transform((1 / self.kx, 1 / self.ky), self.translate)

    def point(self, position: geo.Position) -> list[float]:
        return [
            round((position[0] - self.translate[0]) * self.kx),
            round((position[1] - self.translate[1]) * self.ky),
        ]

    def arc(self, line: geo.Line) -> list[list[float]]:
        """Quantize and delta-encode, dropping repeated grid positions."""
        result: list[list[float]] = []
        previous: list[float] | None = None
        for position in line:
            current = self.point(position)
            if previous is not None and current == previous:
                continue
            if previous is None:
                result.append(current)
            else:
                result.append(
                    [current[0] - previous[0], current[1] - previous[1]]
                )
            previous = current
        return result


class _Encoder:
    def __init__(self, quantizer: _Quantizer | None) -> None:
        self.arcs: list[list[list[float]]] = []
        self._index: dict[tuple[geo.Position, ...], int] = {}
        self._quantizer = quantizer

    def _arc(self, line: geo.Line) -> int:
        key = tuple(line)
        if key in self._index:
            return self._index[key]
        reversed_key = key[::-1]
        if reversed_key in self._index:
            return ~self._index[reversed_key]
        index = len(self.arcs)
        if self._quantizer is None:
            self.arcs.append([[x, y] for x, y in line])
        else:
            self.arcs.append(self._quantizer.arc(line))
        self._index[key] = index
        return index

    def _point(self, position: geo.Position) -> list[float]:
        if self._quantizer is None:
            return [position[0], position[1]]
        return self._quantizer.point(position)

    def object(self, geometry: geo.Geometry) -> topo.TopoObject:
        kind = topo.GeometryType
        match geometry:
            case geo.Point(coordinates=position):
                return topo.TopoObject(
                    kind.POINT, coordinates=self._point(position)
                )
            case geo.MultiPoint(coordinates=positions):
                return topo.TopoObject(
                    kind.MULTI_POINT,
                    coordinates=[self._point(p) for p in positions],
                )
            case geo.LineString(coordinates=line):
                return topo.TopoObject(kind.LINE_STRING, arcs=[self._arc(line)])
            case geo.MultiLineString(coordinates=lines):
                return topo.TopoObject(
                    kind.MULTI_LINE_STRING,
                    arcs=[[self._arc(line)] for line in lines],
                )
            case geo.Polygon(coordinates=rings):
                return topo.TopoObject(
                    kind.POLYGON, arcs=[[self._arc(ring)] for ring in rings]
                )
            case geo.MultiPolygon(coordinates=polygons):
                return topo.TopoObject(
                    kind.MULTI_POLYGON,
                    arcs=[
                        [[self._arc(ring)] for ring in polygon]
                        for polygon in polygons
                    ],
                )
            case geo.GeometryCollection(geometries=members):
                return topo.TopoObject(
                    kind.GEOMETRY_COLLECTION,
                    geometries=[self.object(g) for g in members],
                )
        raise geo.GeometryError(f"Unsupported geometry: {geometry!r}")


def _bounds(
    features: Iterable[geo.Feature],
) -> tuple[float, float, float, float] | None:
    xs: list[float] = []
    ys: list[float] = []
    for feature in features:
        for x, y in geo.iter_positions(feature.geometry):
            xs.append(x)
            ys.append(y)
    if not xs:
        return None
    return min(xs), min(ys), max(xs), max(ys)


def encode(
    collection: geo.FeatureCollection,
    object_name: str = "features",
    quantization: int = 0,
) -> topo.Topology:
    """Build a topology holding the given features.

    Args:
        collection: Features to encode. Features without geometry are
            skipped.
        object_name: Name of the GeometryCollection object in the result.
        quantization: Grid resolution; values above 1 enable quantization
            and delta-encoding. 0 keeps the exact coordinates.

    Returns:
        A Topology with a single GeometryCollection object whose members
        carry the feature ids and properties.
    """
    features = [f for f in collection if f.geometry is not None]
    bbox = _bounds(features)
    quantizer = (
        _Quantizer(bbox, quantization)
        if quantization > 1 and bbox is not None
        else None
    )
    encoder = _Encoder(quantizer)

    members = []
    for feature in features:
        member = encoder.object(feature.geometry)  # type: ignore[arg-type]
        member.id = feature.id
        member.properties = dict(feature.properties)
        members.append(member)

    return topo.Topology(
        arcs=encoder.arcs,
        objects={
            object_name: topo.TopoObject(
                topo.GeometryType.GEOMETRY_COLLECTION, geometries=members
            )
        },
        transform=quantizer.transform if quantizer else None,
        bbox=list(bbox) if bbox else None,
    )
