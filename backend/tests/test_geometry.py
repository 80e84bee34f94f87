"""Unit tests for map_renderer.topology.geometry.

Covers GeoJSON conversion of every geometry variant, feature and
collection copies, and coordinate iteration.

See Also:
    - backend/map_renderer/topology/geometry.py for implementation details.
"""

from __future__ import annotations

import pytest

from map_renderer.topology import geometry as geo


def test_geometry_from_geojson_polygon() -> None:
    """Polygon coordinates become float position tuples."""
    polygon = geo.geometry_from_geojson(
        {"type": "Polygon", "coordinates": [[[0, 0], [1, 0], [1, 1], [0, 0]]]}
    )
    assert polygon == geo.Polygon([[(0.0, 0.0), (1.0, 0.0), (1.0, 1.0), (0.0, 0.0)]])


def test_geometry_collection_round_trip() -> None:
    """A nested collection converts back to the same GeoJSON."""
    raw = {
        "type": "GeometryCollection",
        "geometries": [
            {"type": "Point", "coordinates": [1.5, 2.5]},
            {"type": "MultiLineString", "coordinates": [[[0.0, 0.0], [1.0, 1.0]]]},
            {
                "type": "MultiPolygon",
                "coordinates": [[[[0.0, 0.0], [1.0, 0.0], [0.0, 1.0], [0.0, 0.0]]]],
            },
        ],
    }
    assert geo.geometry_to_geojson(geo.geometry_from_geojson(raw)) == raw


def test_geometry_from_geojson_unknown_type() -> None:
    """Unknown geometry types raise GeometryError."""
    with pytest.raises(geo.GeometryError, match="Unknown geometry type"):
        geo.geometry_from_geojson({"type": "Circle", "coordinates": [0, 0]})


def test_geometry_from_geojson_bad_position() -> None:
    """Malformed positions raise GeometryError."""
    with pytest.raises(geo.GeometryError, match="Invalid position"):
        geo.geometry_from_geojson({"type": "Point", "coordinates": ["a"]})


def test_feature_from_geojson_stringifies_id() -> None:
    """Numeric feature ids are kept as text."""
    feature = geo.Feature.from_geojson(
        {
            "type": "Feature",
            "id": 7,
            "properties": {"name": "Seven"},
            "geometry": {"type": "Point", "coordinates": [0, 0]},
        }
    )
    assert feature.id == "7"
    assert feature.properties == {"name": "Seven"}
    assert feature.to_geojson()["id"] == "7"


def test_feature_without_geometry() -> None:
    """A null geometry is kept as None."""
    feature = geo.Feature.from_geojson({"type": "Feature", "geometry": None})
    assert feature.geometry is None
    assert feature.to_geojson() == {
        "type": "Feature",
        "geometry": None,
        "properties": {},
    }


def test_feature_copy_has_own_properties() -> None:
    """Changing a copy's properties leaves the original untouched."""
    original = geo.Feature(geo.Point((0.0, 0.0)), "a", {"class": "x"})
    collection = geo.FeatureCollection([original])
    copied = collection.copy()
    copied.features[0].properties["class"] = "y"
    copied.features[0].id = "b"
    assert original.properties == {"class": "x"}
    assert original.id == "a"
    assert copied.features[0].geometry is original.geometry


def test_feature_collection_from_geojson_requires_type() -> None:
    """Only FeatureCollection documents are accepted."""
    with pytest.raises(geo.GeometryError, match="Expected a FeatureCollection"):
        geo.FeatureCollection.from_geojson({"type": "Feature"})


def test_feature_collection_len_and_iter() -> None:
    """Collections report their size and iterate over features."""
    collection = geo.FeatureCollection.from_geojson(
        {
            "type": "FeatureCollection",
            "features": [
                {"type": "Feature", "geometry": {"type": "Point", "coordinates": [1, 2]}},
                {"type": "Feature", "geometry": None},
            ],
        }
    )
    assert len(collection) == 2
    assert [f.geometry for f in collection] == [geo.Point((1.0, 2.0)), None]


def test_iter_positions_depth_first() -> None:
    """Positions are yielded in document order through nested geometries."""
    geometry = geo.GeometryCollection(
        [
            geo.Point((0.0, 0.0)),
            geo.MultiPolygon([[[(1.0, 1.0), (2.0, 2.0)]], [[(3.0, 3.0)]]]),
        ]
    )
    assert list(geo.iter_positions(geometry)) == [
        (0.0, 0.0),
        (1.0, 1.0),
        (2.0, 2.0),
        (3.0, 3.0),
    ]
    assert list(geo.iter_positions(None)) == []
