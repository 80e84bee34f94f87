"""TopoJSON topology model and decoder.

A topology stores shared boundary arcs once and lets every geometry refer to
them by signed index: ``i >= 0`` reads ``arcs[i]`` forward, ``i < 0`` reads
``arcs[~i]`` backwards. When the topology is quantized, arc positions are
delta-encoded integers that must be summed and then mapped through the
``transform`` (``x * scale + translate``) before use.

Decoding turns each named object into features. A top-level
GeometryCollection is split into one feature per member geometry rather than
being kept as a single grouped feature; consumers rely on one feature per
region.

Example:
    Decode a TopoJSON document:
        >>> import json
        >>> from map_renderer.topology import topology
        >>> with open("regions.topojson") as fh:
        ...     topo = topology.Topology.from_dict(json.load(fh))
        >>> collection = topology.decode(topo)
        >>> [feature.id for feature in collection]
        ['E06000001', 'E06000002', ...]
"""

from __future__ import annotations

import dataclasses
import enum
from typing import Any

from map_renderer.topology import geometry as geo

MIN_LINE_POSITIONS = 2
MIN_RING_POSITIONS = 4


class TopologyError(ValueError):
    """Raised for structurally invalid topologies and bad arc references."""


class GeometryType(enum.StrEnum):
    POINT = "Point"
    MULTI_POINT = "MultiPoint"
    LINE_STRING = "LineString"
    MULTI_LINE_STRING = "MultiLineString"
    POLYGON = "Polygon"
    MULTI_POLYGON = "MultiPolygon"
    GEOMETRY_COLLECTION = "GeometryCollection"


@dataclasses.dataclass(frozen=True)
class Transform:
    """Quantization transform: ``position * scale + translate``."""

    scale: tuple[float, float]
    translate: tuple[float, float]

    def apply(self, x: float, y: float) -> geo.Position:
        return (
            x * self.scale[0] + self.translate[0],
            y * self.scale[1] + self.translate[1],
        )


@dataclasses.dataclass
class TopoObject:
    """A geometry as stored in a topology.

    Attributes:
        type: Geometry type of the object.
        id: Optional identifier carried by the object.
        properties: Arbitrary properties (names, codes, classes...).
        arcs: Arc index lists for line and area types, nested as deep as
            the matching GeoJSON coordinates minus one level.
        coordinates: Raw positions for Point and MultiPoint.
        geometries: Members of a GeometryCollection.
    """

    type: GeometryType
    id: str | None = None
    properties: dict[str, Any] = dataclasses.field(default_factory=dict)
    arcs: Any = None
    coordinates: Any = None
    geometries: list[TopoObject] = dataclasses.field(default_factory=list)

    @classmethod
    def from_dict(cls, obj: Any) -> TopoObject:
        if not isinstance(obj, dict):
            raise TopologyError(f"Topology object must be a mapping: {obj!r}")
        try:
            kind = GeometryType(obj.get("type"))
        except ValueError as exc:
            raise TopologyError(
                f"Unknown geometry type: {obj.get('type')!r}"
            ) from exc
        raw_id = obj.get("id")
        return cls(
            type=kind,
            id=None if raw_id is None else str(raw_id),
            properties=dict(obj.get("properties") or {}),
            arcs=obj.get("arcs"),
            coordinates=obj.get("coordinates"),
            geometries=[cls.from_dict(g) for g in obj.get("geometries") or []],
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {"type": str(self.type)}
        if self.id is not None:
            result["id"] = self.id
        if self.properties:
            result["properties"] = dict(self.properties)
        if self.type == GeometryType.GEOMETRY_COLLECTION:
            result["geometries"] = [g.to_dict() for g in self.geometries]
        elif self.type in (GeometryType.POINT, GeometryType.MULTI_POINT):
            result["coordinates"] = self.coordinates
        else:
            result["arcs"] = self.arcs
        return result


@dataclasses.dataclass
class Topology:
    """A parsed TopoJSON topology.

    Attributes:
        arcs: Arc positions exactly as stored (delta-encoded when a
            transform is present).
        objects: Named top-level objects.
        transform: Optional quantization transform.
        bbox: Optional bounding box as stored in the document.
    """

    arcs: list[list[list[float]]] = dataclasses.field(default_factory=list)
    objects: dict[str, TopoObject] = dataclasses.field(default_factory=dict)
    transform: Transform | None = None
    bbox: list[float] | None = None

    @property
    def is_empty(self) -> bool:
        """True when there is nothing to draw (no arcs or no objects)."""
        return not self.arcs or not self.objects

    @classmethod
    def from_dict(cls, obj: Any) -> Topology:
        """Parse a TopoJSON wire object.

        Args:
            obj: Decoded JSON of a ``{"type": "Topology", ...}`` document.

        Returns:
            The parsed Topology. Missing ``arcs`` or ``objects`` produce an
            empty topology rather than an error.

        Raises:
            TopologyError: If the document has the wrong shape.
        """
        if not isinstance(obj, dict):
            raise TopologyError("Topology must be a JSON object")
        kind = obj.get("type", "Topology")
        if kind != "Topology":
            raise TopologyError(f"Expected a Topology, got {kind!r}")

        arcs = obj.get("arcs") or []
        raw_objects = obj.get("objects") or {}
        if not isinstance(arcs, list):
            raise TopologyError("Topology arcs must be a list")
        if not isinstance(raw_objects, dict):
            raise TopologyError("Topology objects must be a mapping")

        transform = None
        raw_transform = obj.get("transform")
        if raw_transform:
            try:
                sx, sy = raw_transform["scale"]
                tx, ty = raw_transform["translate"]
                transform = Transform(
                    (float(sx), float(sy)), (float(tx), float(ty))
                )
            except (KeyError, TypeError, ValueError) as exc:
                raise TopologyError(
                    f"Invalid topology transform: {raw_transform!r}"
                ) from exc

        return cls(
            arcs=arcs,
            objects={
                name: TopoObject.from_dict(raw)
                for name, raw in raw_objects.items()
            },
            transform=transform,
            bbox=obj.get("bbox"),
        )

    def to_dict(self) -> dict[str, Any]:
        result: dict[str, Any] = {
            "type": "Topology",
            "objects": {
                name: obj.to_dict() for name, obj in self.objects.items()
            },
            "arcs": self.arcs,
        }
        if self.transform is not None:
            result["transform"] = {
                "scale": list(self.transform.scale),
                "translate": list(self.transform.translate),
            }
        if self.bbox is not None:
            result["bbox"] = self.bbox
        return result


class _Decoder:
    """Resolves arc references for one topology."""

    def __init__(self, topology: Topology) -> None:
        self._topology = topology
        self._decoded: dict[int, geo.Line] = {}

    def arc(self, index: int) -> geo.Line:
        """Absolute positions of an arc, honouring the signed index."""
        reverse = index < 0
        position = ~index if reverse else index
        if not 0 <= position < len(self._topology.arcs):
            raise TopologyError(
                f"Arc index {index} out of range "
                f"({len(self._topology.arcs)} arcs)"
            )
        line = self._decoded.get(position)
        if line is None:
            line = self._decode_arc(self._topology.arcs[position])
            self._decoded[position] = line
        return line[::-1] if reverse else list(line)

    def _decode_arc(self, raw: list[list[float]]) -> geo.Line:
        transform = self._topology.transform
        try:
            if transform is None:
                return [(float(p[0]), float(p[1])) for p in raw]
            x = y = 0.0
            line = []
            for p in raw:
                x += p[0]
                y += p[1]
                line.append(transform.apply(x, y))
            return line
        except (TypeError, IndexError) as exc:
            raise TopologyError(f"Malformed arc: {raw!r}") from exc

    def point(self, raw: Any) -> geo.Position:
        try:
            x, y = float(raw[0]), float(raw[1])
        except (TypeError, ValueError, IndexError) as exc:
            raise TopologyError(f"Malformed position: {raw!r}") from exc
        transform = self._topology.transform
        return transform.apply(x, y) if transform else (x, y)

    def line(self, indexes: list[int]) -> geo.Line:
        positions: geo.Line = []
        for index in indexes:
            positions.extend(self.arc(index))
        if not positions:
            return positions
        while len(positions) < MIN_LINE_POSITIONS:
            positions.append(positions[0])
        return positions

    def ring(self, indexes: list[int]) -> geo.Line:
        positions = self.line(indexes)
        if not positions:
            return positions
        if positions[0] != positions[-1]:
            positions.append(positions[0])
        while len(positions) < MIN_RING_POSITIONS:
            positions.append(positions[0])
        return positions

    def geometry(self, obj: TopoObject) -> geo.Geometry:
        try:
            match obj.type:
                case GeometryType.POINT:
                    return geo.Point(self.point(obj.coordinates))
                case GeometryType.MULTI_POINT:
                    return geo.MultiPoint(
                        [self.point(p) for p in obj.coordinates or []]
                    )
                case GeometryType.LINE_STRING:
                    return geo.LineString(self.line(obj.arcs or []))
                case GeometryType.MULTI_LINE_STRING:
                    return geo.MultiLineString(
                        [self.line(arcs) for arcs in obj.arcs or []]
                    )
                case GeometryType.POLYGON:
                    return geo.Polygon(
                        [self.ring(arcs) for arcs in obj.arcs or []]
                    )
                case GeometryType.MULTI_POLYGON:
                    return geo.MultiPolygon(
                        [
                            [self.ring(arcs) for arcs in polygon]
                            for polygon in obj.arcs or []
                        ]
                    )
                case GeometryType.GEOMETRY_COLLECTION:
                    return geo.GeometryCollection(
                        [self.geometry(g) for g in obj.geometries]
                    )
        except TypeError as exc:
            raise TopologyError(
                f"Malformed {obj.type} arcs: {obj.arcs!r}"
            ) from exc
        raise TopologyError(f"Unsupported geometry type: {obj.type!r}")

    def feature(self, obj: TopoObject) -> geo.Feature:
        return geo.Feature(
            geometry=self.geometry(obj),
            id=obj.id,
            properties=dict(obj.properties),
        )


def decode(topology: Topology) -> geo.FeatureCollection:
    """Reconstruct features from a topology.

    Every named object becomes a feature, except top-level
    GeometryCollections whose members each become a separate feature
    carrying their own id and properties.

    Polygon rings are closed and padded to at least four positions, lines
    to at least two, by repeating the first position.

    Args:
        topology: Parsed topology.

    Returns:
        The decoded features, in object order.

    Raises:
        TopologyError: If a geometry references an arc that does not exist
            or its arc lists are malformed.
    """
    decoder = _Decoder(topology)
    collection = geo.FeatureCollection()
    for obj in topology.objects.values():
        if obj.type == GeometryType.GEOMETRY_COLLECTION:
            collection.features.extend(
                decoder.feature(member) for member in obj.geometries
            )
        else:
            collection.features.append(decoder.feature(obj))
    return collection
