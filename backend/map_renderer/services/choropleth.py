"""Choropleth styling of decoded features.

Features are given prefixed ids, a region class, and (for choropleth maps)
a fill style and a title that includes the data value. Data rows are joined
to features by exact, case-sensitive comparison of ``prefix + row.id`` with
the feature id.

Styling mutates feature properties in place, so it must only ever be
applied to a freshly decoded (or copied) collection. Styling the same
features twice duplicates the value text in titles.

Example:
    Colour a decoded collection:
        >>> from map_renderer.services import choropleth
        >>> choropleth.set_feature_ids(collection, "code", "map1-")
        >>> choropleth.set_class_property(collection, choropleth.REGION_CLASS_NAME)
        >>> choropleth.assign_colours_and_titles(
        ...     collection, request.choropleth, request.data,
        ...     id_prefix="map1-", name_property="name",
        ...     missing_style="fill: url(#map1-nodata);",
        ... )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from map_renderer.utils import formatting

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from map_renderer import models
    from map_renderer.topology import geometry as geo

_LOGGER = logging.getLogger("map_renderer.choropleth")

REGION_CLASS_NAME = "mapRegion"
MISSING_DATA_TEXT = "data unavailable"

_MISSING_DATA_PATTERN = (
    '<pattern id="{pattern_id}" width="20" height="20" '
    'patternUnits="userSpaceOnUse">'
    '<rect width="20" height="20" fill="#FFFFFF"></rect>'
    '<g fill="#6D6E72">'
    '<polygon points="5 0 6.5 0 0 6.5 0 5"></polygon>'
    '<polygon points="20 5 20 6.5 6.5 20 5 20"></polygon>'
    "</g></pattern>"
)


def missing_data_pattern(pattern_id: str) -> str:
    """Diagonal stripe ``<pattern>`` used to fill regions without data."""
    return _MISSING_DATA_PATTERN.format(pattern_id=pattern_id)


def missing_data_style(pattern_id: str) -> str:
    return f"fill: url(#{pattern_id});"


def sort_breaks(
    breaks: Iterable[models.ChoroplethBreak], ascending: bool
) -> list[models.ChoroplethBreak]:
    """Return a sorted copy of the breaks (by lower bound)."""
    return sorted(breaks, key=lambda b: b.lower_bound, reverse=not ascending)


def get_colour(value: float, breaks: Sequence[models.ChoroplethBreak]) -> str:
    """Colour for a value, given breaks sorted descending by lower bound.

    The first break whose lower bound does not exceed the value wins. A
    value below every lower bound gets the colour of the last (lowest)
    break.

    Raises:
        ValueError: If there are no breaks.
    """
    if not breaks:
        raise ValueError("Cannot choose a colour without breaks")
    for choropleth_break in breaks:
        if value >= choropleth_break.lower_bound:
            return choropleth_break.colour
    return breaks[-1].colour


def set_feature_ids(
    features: Iterable[geo.Feature], id_property: str, id_prefix: str
) -> None:
    """Give every feature a prefixed id.

    The value of ``id_property`` is preferred, then the feature's own id.
    Features with neither get the prefix followed by their position so
    that ids stay unique within the render.
    """
    for index, feature in enumerate(features):
        value = feature.properties.get(id_property)
        if isinstance(value, str) and value:
            feature.id = id_prefix + value
        elif feature.id:
            feature.id = id_prefix + feature.id
        else:
            feature.id = f"{id_prefix}{index}"


def append_property(feature: geo.Feature, name: str, value: str) -> None:
    """Set a property, keeping any existing value after the new one."""
    if name in feature.properties:
        original: Any = feature.properties[name]
        value = f"{value} {original}"
    feature.properties[name] = value


def set_class_property(features: Iterable[geo.Feature], class_name: str) -> None:
    for feature in features:
        append_property(feature, "class", class_name)


def _value_text(value: float, choropleth: models.Choropleth) -> str:
    return (
        f"{choropleth.value_prefix}{formatting.format_number(value)}"
        f"{choropleth.value_suffix}"
    )


def has_missing_data(
    features: Iterable[geo.Feature],
    data: Iterable[models.DataRow],
    id_prefix: str,
) -> bool:
    """True when at least one feature has no matching data row."""
    ids = {id_prefix + row.id for row in data}
    return any(feature.id not in ids for feature in features)


def assign_colours_and_titles(
    features: Iterable[geo.Feature],
    choropleth: models.Choropleth,
    data: Sequence[models.DataRow],
    *,
    id_prefix: str,
    name_property: str,
    missing_style: str,
) -> int:
    """Style each feature from its data value.

    Matched features get ``fill: <colour>;`` prepended to their style and
    the title ``"{name} {prefix}{value}{suffix}"``; unmatched features get
    ``missing_style`` and ``"{name} data unavailable"``. A missing name is
    treated as empty text. Titles are only written when ``name_property``
    is set.

    Args:
        features: Features with ids already assigned.
        choropleth: Breaks and value formatting.
        data: Data rows to join.
        id_prefix: Prefix applied to row ids before matching.
        name_property: Property holding (and receiving) the title.
        missing_style: Style for features without data.

    Returns:
        The number of features without data.
    """
    breaks = sort_breaks(choropleth.breaks, ascending=False)
    values = {id_prefix + row.id: row.value for row in data}
    missing = 0
    for feature in features:
        value = values.get(feature.id) if feature.id is not None else None
        if value is None:
            missing += 1
            style = missing_style
            suffix = MISSING_DATA_TEXT
        else:
            style = f"fill: {get_colour(value, breaks)};"
            suffix = _value_text(value, choropleth)
        if name_property:
            name = feature.properties.get(name_property)
            feature.properties[name_property] = (
                f"{'' if name is None else name} {suffix}"
            )
        append_property(feature, "style", style)
    if missing:
        _LOGGER.debug("%d features have no data", missing)
    return missing
