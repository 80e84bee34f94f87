"""Tests for map_renderer.services.svg_renderer.

This module validates that:
    - Requests are prepared once (decoding, bounding box, view box, legend
      layout) and shared by the map and legend renders,
    - The map is drawn with prefixed ids, region classes, titles and, for
      choropleths, fill styles and the missing-data pattern,
    - Rendering twice from one prepared request gives identical output,
    - Requests without drawable topology render nothing.

See Also:
    - backend/map_renderer/services/svg_renderer.py for the renderer.
"""

from __future__ import annotations

from typing import Any

import pytest

from map_renderer import models
from map_renderer.services import svg_renderer
from map_renderer.topology import topology as topo


def _request(topojson: dict[str, Any] | None, **overrides: Any) -> models.RenderRequest:
    values: dict[str, Any] = {
        "filename": "fn",
        "geography": {
            "topojson": topojson,
            "id_property": "code",
            "name_property": "name",
        },
        "data": [{"id": "f1", "value": 15}],
    }
    values.update(overrides)
    return models.RenderRequest.model_validate(values)


def _choropleth(**overrides: Any) -> dict[str, Any]:
    values: dict[str, Any] = {
        "breaks": [
            {"lower_bound": 0, "color": "#aaa"},
            {"lower_bound": 10, "color": "#bbb"},
        ],
        "upper_bound": 20,
        "horizontal_legend_position": "before",
        "vertical_legend_position": "after",
    }
    values.update(overrides)
    return values


def test_prepare_plain_map(simple_topology: dict[str, Any]) -> None:
    """The view box keeps the projected aspect ratio at the default width."""
    prepared = svg_renderer.prepare_svg_request(_request(simple_topology))
    assert prepared.features is not None
    assert len(prepared.features) == 2
    assert prepared.view_box_width == 400
    assert prepared.view_box_height == 329
    assert not prepared.responsive
    assert not prepared.is_choropleth
    assert prepared.vertical_legend_width == 0


def test_render_plain_map(simple_topology: dict[str, Any]) -> None:
    """Regions get prefixed ids, the region class and name titles."""
    prepared = svg_renderer.prepare_svg_request(_request(simple_topology))
    svg = svg_renderer.render_svg(prepared)
    assert svg.startswith(
        '<svg width="400" height="329" id="fn-map-svg" viewBox="0 0 400 329">'
    )
    assert 'class="mapRegion" id="fn-f0"><title>feature 0</title></path>' in svg
    assert 'class="mapRegion" id="fn-f1"><title>feature 1</title></path>' in svg
    assert "<defs>" not in svg
    assert "style=" not in svg
    assert svg_renderer.render_horizontal_key(prepared) == ""
    assert svg_renderer.render_vertical_key(prepared) == ""


def test_render_choropleth_map(simple_topology: dict[str, Any]) -> None:
    """Regions are coloured from data; regions without data use the pattern."""
    request = _request(simple_topology, choropleth=_choropleth())
    prepared = svg_renderer.prepare_svg_request(request)
    assert prepared.is_choropleth
    assert prepared.has_missing_data
    assert prepared.vertical_legend_width == 146

    svg = svg_renderer.render_svg(prepared)
    assert '<defs><pattern id="fn-nodata"' in svg
    assert (
        'class="mapRegion" id="fn-f0" style="fill: url(#fn-nodata);">'
        "<title>feature 0 data unavailable</title>"
    ) in svg
    assert (
        'class="mapRegion" id="fn-f1" style="fill: #bbb;">'
        "<title>feature 1 15</title>"
    ) in svg


def test_render_twice_is_identical(simple_topology: dict[str, Any]) -> None:
    """Each render styles its own copy of the decoded features."""
    prepared = svg_renderer.prepare_svg_request(
        _request(simple_topology, choropleth=_choropleth())
    )
    assert svg_renderer.render_svg(prepared) == svg_renderer.render_svg(prepared)
    assert prepared.features is not None
    assert "class" not in prepared.features.features[0].properties


def test_render_legends(simple_topology: dict[str, Any]) -> None:
    """Both legends are rendered with their ids and the both classes."""
    prepared = svg_renderer.prepare_svg_request(
        _request(simple_topology, choropleth=_choropleth())
    )
    horizontal = svg_renderer.render_horizontal_key(prepared)
    vertical = svg_renderer.render_vertical_key(prepared)
    assert horizontal.startswith(
        '<svg id="fn-legend-horizontal-svg" '
        'class="map_key_horizontal map_key_horizontal_both" width="400" height="90"'
    )
    assert vertical.startswith(
        '<svg id="fn-legend-vertical-svg" '
        'class="map_key_vertical map_key_vertical_both" width="146" height="329"'
    )
    assert "missingColour" in horizontal
    assert "missingColour" in vertical


def test_render_without_missing_data(simple_topology: dict[str, Any]) -> None:
    """The missing-data swatch is left out when every region has data."""
    request = _request(
        simple_topology,
        choropleth=_choropleth(vertical_legend_position=""),
        data=[{"id": "f0", "value": 1}, {"id": "f1", "value": 2}],
    )
    prepared = svg_renderer.prepare_svg_request(request)
    assert not prepared.has_missing_data
    horizontal = svg_renderer.render_horizontal_key(prepared)
    assert "missingColour" not in horizontal
    assert 'class="map_key_horizontal"' in horizontal
    assert svg_renderer.render_vertical_key(prepared).startswith(
        '<svg id="fn-legend-vertical-svg"'
    )


def test_render_responsive(simple_topology: dict[str, Any]) -> None:
    """A minimum or maximum width switches to responsive sizing."""
    prepared = svg_renderer.prepare_svg_request(
        _request(simple_topology, min_width=300)
    )
    assert prepared.responsive
    svg = svg_renderer.render_svg(prepared)
    assert svg.startswith(
        '<svg id="fn-map-svg" style="width:100%;" viewBox="0 0 400 329">'
    )


def test_render_with_fallback_png(
    simple_topology: dict[str, Any], fake_converter: Any
) -> None:
    """Fallback images are embedded only when requested."""
    request = _request(simple_topology, include_fallback_png=True)
    prepared = svg_renderer.prepare_svg_request(request, fake_converter)
    svg = svg_renderer.render_svg(prepared)
    assert "<switch>" in svg
    assert "data:image/png;base64,dGVzdAo=" in svg

    request = _request(simple_topology)
    prepared = svg_renderer.prepare_svg_request(request, fake_converter)
    assert "<switch>" not in svg_renderer.render_svg(prepared)


@pytest.mark.parametrize(
    "topojson",
    [
        None,
        {},
        {"type": "Topology", "objects": {}, "arcs": [[[0, 0], [1, 1]]]},
        {"type": "Topology", "objects": {"a": {"type": "Polygon", "arcs": [[0]]}}},
    ],
)
def test_render_without_topology(topojson: dict[str, Any] | None) -> None:
    """Requests without drawable topology render nothing."""
    prepared = svg_renderer.prepare_svg_request(
        _request(topojson, choropleth=_choropleth())
    )
    assert prepared.features is None
    assert svg_renderer.render_svg(prepared) == ""
    assert svg_renderer.render_horizontal_key(prepared) == ""
    assert svg_renderer.render_vertical_key(prepared) == ""


def test_prepare_invalid_topology() -> None:
    """Broken arc references are reported as TopologyError."""
    topojson = {
        "type": "Topology",
        "objects": {"a": {"type": "Polygon", "arcs": [[5]]}},
        "arcs": [[[0, 0], [1, 1]]],
    }
    with pytest.raises(topo.TopologyError):
        svg_renderer.prepare_svg_request(_request(topojson))


def test_render_polar_region() -> None:
    """A region reaching the south pole is drawn like any other."""
    topojson = {
        "type": "Topology",
        "arcs": [[[-180, -90], [180, -90], [180, -60], [-180, -60], [-180, -90]]],
        "objects": {
            "antarctica": {
                "type": "Polygon",
                "arcs": [[0]],
                "properties": {"code": "aq", "name": "Antarctica"},
            }
        },
    }
    request = _request(topojson, data=[{"id": "aq", "value": 1}])
    prepared = svg_renderer.prepare_svg_request(request)
    svg = svg_renderer.render_svg(prepared)
    assert prepared.view_box_height > 0
    assert 'id="fn-aq"' in svg
    assert "<title>Antarctica</title>" in svg
