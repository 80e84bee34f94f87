"""Pytest configuration to expose the map_renderer package for imports.

Also provides fixtures for the JSON documents in ``tests/testdata`` and a
fake PNG converter, so no rasterizer executable is needed.
"""

import json
import pathlib
import sys
from typing import Any

import pytest

BACKEND_ROOT = pathlib.Path(__file__).resolve().parent
TESTDATA_DIR = BACKEND_ROOT / "tests" / "testdata"

if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from map_renderer.svg import png  # noqa: E402

FAKE_PNG_BASE64 = "dGVzdAo="


def load_testdata(name: str) -> Any:
    """Parse a JSON document from the testdata directory."""
    return json.loads((TESTDATA_DIR / name).read_text(encoding="utf-8"))


class FakePNGConverter:
    """PNG converter returning a fixed payload and recording its input."""

    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.converted: list[str] = []

    def convert(self, svg: str) -> str:
        if self.fail:
            raise png.PNGConversionError("conversion failed")
        self.converted.append(svg)
        return FAKE_PNG_BASE64

    def include_fallback_image(self, attributes: str, content: str) -> str:
        return png.wrap_with_fallback(self, attributes, content)


@pytest.fixture
def simple_topology() -> dict[str, Any]:
    """Two polygons: a degenerate one (code f0) and a rectangle (code f1)."""
    return load_testdata("simple_topology.json")


@pytest.fixture
def example_request() -> dict[str, Any]:
    """A complete choropleth render request with three regions."""
    return load_testdata("example_request.json")


@pytest.fixture
def fake_converter() -> FakePNGConverter:
    """Converter whose PNG is the base64 text "dGVzdAo="."""
    return FakePNGConverter()


@pytest.fixture
def failing_converter() -> FakePNGConverter:
    """Converter that always raises PNGConversionError."""
    return FakePNGConverter(fail=True)
