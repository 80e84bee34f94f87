"""Unit tests for map_renderer.utils.formatting number output."""

from map_renderer.utils import formatting


def test_format_number_integral() -> None:
    """Integral values have no decimal point."""
    assert formatting.format_number(400.0) == "400"
    assert formatting.format_number(-3) == "-3"
    assert formatting.format_number(0.0) == "0"


def test_format_number_fraction() -> None:
    """Fractions use the shortest round-tripping form."""
    assert formatting.format_number(12.5) == "12.5"
    assert formatting.format_number(0.1) == "0.1"


def test_format_fixed() -> None:
    """Fixed formatting always has six decimal places."""
    assert formatting.format_fixed(200) == "200.000000"
    assert formatting.format_fixed(1.25) == "1.250000"
