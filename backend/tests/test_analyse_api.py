"""API endpoint tests for the /analyse endpoint.

See Also:
    - backend/map_renderer/api/analyse.py for API implementation,
    - backend/map_renderer/services/analyser.py for the analysis itself.
"""

from __future__ import annotations

from typing import Any

import pytest
from fastapi import testclient

from map_renderer import main, models


def _body(topology: dict[str, Any], csv: str) -> dict[str, Any]:
    return {
        "geography": {"topojson": topology, "id_property": "code"},
        "csv": csv,
        "id_index": 0,
        "value_index": 1,
    }


def test_analyse(simple_topology: dict[str, Any]) -> None:
    """Test that matching data is returned with suggested breaks."""
    client = testclient.TestClient(main.create_app())
    response = client.post("/analyse", json=_body(simple_topology, "f0,1\nf1,3\n"))

    assert response.status_code == 200
    result = response.json()
    assert result["data"] == [{"id": "f0", "value": 1.0}, {"id": "f1", "value": 3.0}]
    assert result["messages"] == [
        {"level": "info", "text": "Successfully processed 2 of 2 rows"}
    ]
    assert result["breaks"] == [[1.0, 3.0]]
    assert result["best_fit_class_count"] == 2
    assert result["min_value"] == 1.0
    assert result["max_value"] == 3.0


@pytest.mark.parametrize(
    ("csv", "detail"),
    [
        ("f0,a\nf1,b\n", "No CSV rows had a numeric value - could not read data"),
        ("f0\nf1\n", "All CSV rows had fewer than 2 columns - could not read data"),
    ],
)
def test_analyse_unreadable_data(
    simple_topology: dict[str, Any], csv: str, detail: str
) -> None:
    """Test that unusable CSV data is a bad request."""
    client = testclient.TestClient(main.create_app())
    response = client.post("/analyse", json=_body(simple_topology, csv))
    assert response.status_code == 400
    assert response.json() == {"detail": detail}


def test_analyse_unmatched_data(simple_topology: dict[str, Any]) -> None:
    """Test that data with no ids in the topology is a bad request."""
    client = testclient.TestClient(main.create_app())
    response = client.post("/analyse", json=_body(simple_topology, "x,1\n"))
    assert response.status_code == 400
    assert response.json()["detail"].startswith("Data does not match Topology")


@pytest.mark.parametrize(
    ("body", "detail"),
    [
        ("{}", models.NO_DATA_ERROR),
        ('{"csv": "a,1"}', "Missing mandatory field(s): [geography]"),
    ],
)
def test_analyse_bad_request(body: str, detail: str) -> None:
    """Test that incomplete requests are rejected."""
    client = testclient.TestClient(main.create_app())
    response = client.post("/analyse", content=body)
    assert response.status_code == 400
    assert response.json() == {"detail": detail}
