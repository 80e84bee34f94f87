"""Unit tests for the request and response models.

These tests cover parsing of request bodies, the ``color`` alias of
choropleth breaks and the validation messages listing missing mandatory
fields.

See Also:
    - backend/map_renderer/models.py for the model definitions.
"""

from __future__ import annotations

import pytest

from map_renderer import models


def test_render_request_missing_fields() -> None:
    """Missing geography and data are all reported together."""
    request = models.RenderRequest.model_validate({"title": "A map"})
    assert request.missing_fields() == ["geography", "data"]
    assert (
        request.validation_error() == "Missing mandatory field(s): [geography, data]"
    )

    request = models.RenderRequest.model_validate({"geography": {}, "data": []})
    assert request.missing_fields() == [
        "geography.topojson",
        "geography.id_property",
        "data",
    ]


def test_render_request_valid(example_request: dict) -> None:
    """A complete request passes validation."""
    request = models.RenderRequest.model_validate(example_request)
    assert request.validation_error() is None
    assert request.geography is not None
    assert request.geography.id_property == "code"
    assert request.data is not None
    assert [row.id for row in request.data] == ["r1", "r2"]


def test_choropleth_break_colour_alias() -> None:
    """Break colours are read from ``color`` or by field name."""
    assert models.ChoroplethBreak.model_validate({"color": "#fff"}).colour == "#fff"
    assert models.ChoroplethBreak(colour="#000").colour == "#000"


def test_legend_positions() -> None:
    """Only "before" and "after" enable a legend."""
    choropleth = models.Choropleth(
        horizontal_legend_position="before", vertical_legend_position="none"
    )
    assert choropleth.has_horizontal_legend
    assert not choropleth.has_vertical_legend


@pytest.mark.parametrize(
    ("fields", "error"),
    [
        ({}, "Missing mandatory field(s): [geography, csv]"),
        (
            {"geography": {"topojson": {}, "id_property": "code"}, "csv": "a,1"},
            None,
        ),
        (
            {
                "geography": {"topojson": {}, "id_property": "code"},
                "csv": "a,1",
                "id_index": -1,
            },
            "id_index and value_index must be >=0: id_index=-1, value_index=1",
        ),
        (
            {"geography": {"topojson": {}}, "csv": ""},
            "Missing mandatory field(s): [geography.id_property, csv]",
        ),
    ],
)
def test_analyse_request_validation(fields: dict, error: str | None) -> None:
    """Analyse requests need a geography, CSV and distinct columns."""
    fields.setdefault("value_index", 1)
    request = models.AnalyseRequest.model_validate(fields)
    assert request.validation_error() == error


def test_analyse_request_same_column() -> None:
    """The id and value columns must differ."""
    request = models.AnalyseRequest(
        geography=models.Geography(topojson={}, id_property="code"),
        csv="a,1",
        id_index=2,
        value_index=2,
    )
    assert request.validation_error() == (
        "id_index and value_index cannot refer to the same column: "
        "id_index=2, value_index=2"
    )


def test_parse_body() -> None:
    """Bodies are parsed as JSON into the given model."""
    request = models.parse_body(models.RenderRequest, b'{"width": 300}')
    assert request.width == 300


@pytest.mark.parametrize(
    ("body", "message"),
    [
        (b"{}", models.NO_DATA_ERROR),
        (b" {} \n", models.NO_DATA_ERROR),
        (b"not json", "Invalid JSON"),
        (b'{"width": "wide"}', "width"),
    ],
)
def test_parse_body_invalid(body: bytes, message: str) -> None:
    """Empty, malformed or mistyped bodies raise RequestBodyError."""
    with pytest.raises(models.RequestBodyError, match=message):
        models.parse_body(models.RenderRequest, body)
