"""Number formatting shared by the SVG and HTML writers."""


def format_number(value: float) -> str:
    """Format a number in its shortest form.

    Integral values are written without a decimal point, anything else uses
    the shortest representation that round-trips.

    Args:
        value: Number to format.

    Returns:
        Text such as "400", "400.45" or "-0.5".

    Example:
        >>> format_number(400.0)
        '400'
        >>> format_number(12.5)
        '12.5'
    """
    number = float(value)
    if number.is_integer():
        return str(int(number))
    return repr(number)


def format_fixed(value: float) -> str:
    """Format a coordinate with six decimal places (e.g. "200.000000")."""
    return f"{float(value):f}"
