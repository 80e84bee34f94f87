"""Unit tests for map_renderer.topology.topology parsing and decoding.

Covers:
    - Parsing the TopoJSON wire format, including transforms
    - Arc resolution with reversed indexes and delta decoding
    - Flattening of top-level geometry collections into features
    - Ring closing and padding
    - Structural errors reported as TopologyError

See Also:
    - backend/map_renderer/topology/topology.py for implementation details.
"""

from __future__ import annotations

from typing import Any

import pytest

from map_renderer.topology import geometry as geo
from map_renderer.topology import topology as topo


def test_decode_simple_topology(simple_topology: dict[str, Any]) -> None:
    """A geometry collection is split into one feature per member."""
    collection = topo.decode(topo.Topology.from_dict(simple_topology))
    assert len(collection) == 2
    first, second = collection.features
    assert first.properties == {"code": "f0", "name": "feature 0"}
    assert first.id is None
    assert second.properties["code"] == "f1"
    assert isinstance(second.geometry, geo.Polygon)
    assert len(second.geometry.coordinates[0]) == 5
    assert second.geometry.coordinates[0][0] == (47.128000259399414, 9.52858586376412)


def test_from_dict_round_trip(simple_topology: dict[str, Any]) -> None:
    """to_dict restores the parsed document."""
    parsed = topo.Topology.from_dict(simple_topology)
    assert parsed.to_dict() == simple_topology
    assert not parsed.is_empty


def test_decode_quantized_arcs() -> None:
    """Delta-encoded arcs are summed and transformed."""
    topology = topo.Topology.from_dict(
        {
            "type": "Topology",
            "transform": {"scale": [0.5, 0.5], "translate": [10, 20]},
            "objects": {
                "square": {"type": "Polygon", "id": "sq", "arcs": [[0]]},
                "point": {"type": "Point", "coordinates": [4, 2]},
            },
            "arcs": [[[0, 0], [2, 0], [0, 2], [-2, -2]]],
        }
    )
    square, point = topo.decode(topology).features
    assert square.id == "sq"
    assert square.geometry == geo.Polygon(
        [[(10.0, 20.0), (11.0, 20.0), (11.0, 21.0), (10.0, 20.0)]]
    )
    assert point.geometry == geo.Point((12.0, 21.0))


def test_decode_reversed_arc() -> None:
    """Negative indexes read the complemented arc backwards."""
    topology = topo.Topology.from_dict(
        {
            "type": "Topology",
            "objects": {"line": {"type": "LineString", "arcs": [-1]}},
            "arcs": [[[0, 0], [1, 0], [2, 1]]],
        }
    )
    (feature,) = topo.decode(topology).features
    assert feature.geometry == geo.LineString([(2.0, 1.0), (1.0, 0.0), (0.0, 0.0)])


def test_decode_closes_and_pads_rings() -> None:
    """Open rings are closed and short rings padded to four positions."""
    topology = topo.Topology.from_dict(
        {
            "type": "Topology",
            "objects": {"tiny": {"type": "Polygon", "arcs": [[0]]}},
            "arcs": [[[0, 0], [1, 1]]],
        }
    )
    (feature,) = topo.decode(topology).features
    assert feature.geometry == geo.Polygon(
        [[(0.0, 0.0), (1.0, 1.0), (0.0, 0.0), (0.0, 0.0)]]
    )


def test_decode_arc_out_of_range() -> None:
    """References to missing arcs raise TopologyError."""
    topology = topo.Topology.from_dict(
        {
            "type": "Topology",
            "objects": {"bad": {"type": "Polygon", "arcs": [[3]]}},
            "arcs": [[[0, 0], [1, 1]]],
        }
    )
    with pytest.raises(topo.TopologyError, match="Arc index 3 out of range"):
        topo.decode(topology)


@pytest.mark.parametrize(
    "document",
    [
        [],
        {"type": "FeatureCollection"},
        {"type": "Topology", "arcs": {"a": 1}},
        {"type": "Topology", "objects": ["x"]},
        {"type": "Topology", "transform": {"scale": [1]}},
        {"type": "Topology", "objects": {"x": {"type": "Circle"}}},
    ],
)
def test_from_dict_invalid(document: Any) -> None:
    """Structurally invalid documents raise TopologyError."""
    with pytest.raises(topo.TopologyError):
        topo.Topology.from_dict(document)


def test_is_empty_without_arcs_or_objects(simple_topology: dict[str, Any]) -> None:
    """Topologies without arcs or objects have nothing to draw."""
    no_arcs = dict(simple_topology, arcs=None)
    no_objects = dict(simple_topology, objects=None)
    assert topo.Topology.from_dict(no_arcs).is_empty
    assert topo.Topology.from_dict(no_objects).is_empty
