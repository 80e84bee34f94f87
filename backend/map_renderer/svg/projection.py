"""Projection and scaling of geographic coordinates onto a drawing surface.

Coordinates are first passed through a projection function and the
projected bounding box is used to derive a single resolution (units per
pixel) for both axes, so the aspect ratio of the projected geometry is
preserved. The y axis is flipped because SVG grows downwards while north
is up.

Example:
    Scale a line into a 400x400 surface:
        >>> from map_renderer.svg import projection
        >>> points = [(10.4, 20.5), (40.3, 42.3)]
        >>> scale = projection.make_scale_function(400, 400, None, points)
        >>> scale(10.4, 20.5)
        (0.0, 291.63879598662206)
"""

from __future__ import annotations

import dataclasses
import math
from collections.abc import Callable, Iterable

from map_renderer.topology import geometry as geo

Projection = Callable[[float, float], geo.Position]
ScaleFunction = Callable[[float, float], geo.Position]

MERCATOR_SIZE = 100.0
# the projection is undefined at the poles
MAX_LATITUDE = 89.9999


def identity(x: float, y: float) -> geo.Position:
    return x, y


def mercator(longitude: float, latitude: float) -> geo.Position:
    """Project longitude/latitude degrees onto a 100x100 Mercator square.

    The returned y grows northwards, matching the geographic convention
    expected by the scale function. Latitudes are clamped to
    +/-MAX_LATITUDE so that points on the poles stay finite.
    """
    x = (longitude + 180) * (MERCATOR_SIZE / 360)
    latitude = min(max(latitude, -MAX_LATITUDE), MAX_LATITUDE)
    lat_rad = latitude * math.pi / 180
    merc_n = math.log(math.tan((math.pi / 4) + (lat_rad / 2)))
    y = (MERCATOR_SIZE / 2) - (MERCATOR_SIZE * merc_n / (2 * math.pi))
    return x, MERCATOR_SIZE - y


@dataclasses.dataclass(frozen=True)
class Padding:
    top: float = 0.0
    right: float = 0.0
    bottom: float = 0.0
    left: float = 0.0


@dataclasses.dataclass(frozen=True)
class BoundingBox:
    """Projected extent of a set of points."""

    min_x: float
    min_y: float
    max_x: float
    max_y: float

    @property
    def width(self) -> float:
        return self.max_x - self.min_x

    @property
    def height(self) -> float:
        return self.max_y - self.min_y

    @classmethod
    def from_points(
        cls,
        points: Iterable[geo.Position],
        projection: Projection = identity,
    ) -> BoundingBox | None:
        """Bounding box of the projected points, or None when empty."""
        iterator = iter(points)
        first = next(iterator, None)
        if first is None:
            return None
        min_x, min_y = max_x, max_y = projection(*first)
        for point in iterator:
            x, y = projection(*point)
            min_x = min(min_x, x)
            max_x = max(max_x, x)
            min_y = min(min_y, y)
            max_y = max(max_y, y)
        return cls(min_x, min_y, max_x, max_y)


def scale_function_for_box(
    width: float,
    height: float,
    padding: Padding | None,
    bbox: BoundingBox | None,
    projection: Projection = identity,
) -> ScaleFunction:
    """Build the scale function for an already computed bounding box.

    Args:
        width: Target surface width.
        height: Target surface height.
        padding: Space to leave around the drawing.
        bbox: Projected bounding box of everything that will be drawn, or
            None when there is nothing to draw.
        projection: Projection applied to every coordinate.

    Returns:
        A function mapping (lon, lat) to surface coordinates. With no
        bounding box it only projects. A box without extent (a single
        point, or identical points) maps everything to the centre of the
        usable area.
    """
    padding = padding or Padding()
    usable_width = width - padding.left - padding.right
    usable_height = height - padding.top - padding.bottom

    if bbox is None:
        return projection

    res = max(bbox.width / usable_width, bbox.height / usable_height)
    if res == 0:
        centre = (usable_width / 2, usable_height / 2)
        return lambda x, y: centre

    def scale(x: float, y: float) -> geo.Position:
        px, py = projection(x, y)
        return (
            (px - bbox.min_x) / res + padding.left,
            (bbox.max_y - py) / res + padding.top,
        )

    return scale


def make_scale_function(
    width: float,
    height: float,
    padding: Padding | None,
    points: Iterable[geo.Position],
    projection: Projection = identity,
) -> ScaleFunction:
    """Build a function mapping geographic coordinates onto the surface.

    The bounding box of the projected points determines the resolution:
    ``res = max(xRange / usableWidth, yRange / usableHeight)``, and each
    point is mapped to ``((x - minX) / res + left, (maxY - y) / res + top)``.

    Args:
        width: Target surface width.
        height: Target surface height.
        padding: Space to leave around the drawing (None for no padding).
        points: Every coordinate that will be drawn.
        projection: Projection applied before scaling (default identity).

    Returns:
        The scale function.
    """
    bbox = BoundingBox.from_points(points, projection)
    return scale_function_for_box(width, height, padding, bbox, projection)


def height_for_width(width: float, bbox: BoundingBox | None) -> float:
    """Height that preserves the aspect ratio of a projected bounding box.

    Returns ``floor(width * bboxHeight / bboxWidth + 0.5)``. When the ratio
    is undefined (no box, or a box without horizontal extent) the width is
    returned, giving a square surface.
    """
    if bbox is None or bbox.width == 0:
        return float(width)
    ratio = bbox.height / bbox.width
    return float(math.floor(width * ratio + 0.5))


def _ring_area(scale: ScaleFunction, ring: geo.Line) -> float:
    total = 0.0
    for (x0, y0), (x1, y1) in zip(ring, ring[1:], strict=False):
        ax, ay = scale(x0, y0)
        bx, by = scale(x1, y1)
        total += ax * by - bx * ay
    return total / 2


def polygon_centroid(
    scale: ScaleFunction, polygon: list[geo.Line]
) -> geo.Position | None:
    """Centroid, in surface coordinates, of the largest ring of a polygon.

    Useful for placing labels. Rings are compared by absolute area so the
    result does not depend on winding order.

    Args:
        scale: Scale function produced by make_scale_function.
        polygon: Polygon rings (outer ring and holes).

    Returns:
        The (x, y) centroid, or None when every ring is degenerate.
    """
    best_ring: geo.Line | None = None
    best_area = 0.0
    for ring in polygon:
        area = _ring_area(scale, ring)
        if abs(area) > abs(best_area):
            best_area = area
            best_ring = ring
    if best_ring is None:
        return None

    cx = cy = 0.0
    for (x0, y0), (x1, y1) in zip(best_ring, best_ring[1:], strict=False):
        ax, ay = scale(x0, y0)
        bx, by = scale(x1, y1)
        cross = ax * by - bx * ay
        cx += (ax + bx) * cross
        cy += (ay + by) * cross
    return cx / (6 * best_area), cy / (6 * best_area)
