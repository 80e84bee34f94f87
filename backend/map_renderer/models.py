"""Request and response models for the render and analyse endpoints.

The models mirror the JSON documents exchanged with clients. Field names
are snake_case on the wire; the only alias is ``color`` for a choropleth
break colour. Every field is optional at parse time so that a partially
filled request can be reported with the complete list of missing fields
instead of a schema error per field.

Example:
    Parse and validate a render request:
        >>> from map_renderer import models
        >>> request = models.RenderRequest.model_validate_json(body)
        >>> request.missing_fields()
        []
"""

from __future__ import annotations

from typing import Any, TypeVar

import pydantic

NO_DATA_ERROR = "Bad request - Missing data in body"

LEGEND_POSITION_BEFORE = "before"
LEGEND_POSITION_AFTER = "after"
LEGEND_POSITIONS = (LEGEND_POSITION_BEFORE, LEGEND_POSITION_AFTER)


def _missing_fields_message(missing: list[str]) -> str:
    return f"Missing mandatory field(s): [{', '.join(missing)}]"


class Geography(pydantic.BaseModel):
    """Topology plus the property names used to identify and label regions.

    Attributes:
        topojson: Raw TopoJSON document.
        id_property: Feature property holding the id used to join data.
        name_property: Feature property holding the display name.
    """

    topojson: dict[str, Any] | None = None
    id_property: str = ""
    name_property: str = ""

    def missing_fields(self) -> list[str]:
        missing = []
        if self.topojson is None:
            missing.append("geography.topojson")
        if not self.id_property:
            missing.append("geography.id_property")
        return missing


class DataRow(pydantic.BaseModel):
    id: str = ""
    value: float = 0.0


class ChoroplethBreak(pydantic.BaseModel):
    """The value at which the fill colour changes."""

    model_config = pydantic.ConfigDict(populate_by_name=True)

    lower_bound: float = 0.0
    colour: str = pydantic.Field(default="", alias="color")


class Choropleth(pydantic.BaseModel):
    """Styling of a choropleth map and its legends.

    Attributes:
        reference_value: Value marked with a separate tick on the legends.
        reference_value_text: Label of the reference tick; empty disables
            the tick.
        value_prefix: Text placed before values in titles and legends.
        value_suffix: Text placed after values in titles and legends.
        breaks: Colour breaks, in any order.
        upper_bound: Value displayed at the top end of the legend.
        horizontal_legend_position: "before", "after" or anything else
            for no horizontal legend.
        vertical_legend_position: As above, for the vertical legend.
    """

    reference_value: float = 0.0
    reference_value_text: str = ""
    value_prefix: str = ""
    value_suffix: str = ""
    breaks: list[ChoroplethBreak] = []
    upper_bound: float = 0.0
    horizontal_legend_position: str = ""
    vertical_legend_position: str = ""

    @property
    def has_horizontal_legend(self) -> bool:
        return self.horizontal_legend_position in LEGEND_POSITIONS

    @property
    def has_vertical_legend(self) -> bool:
        return self.vertical_legend_position in LEGEND_POSITIONS


class RenderRequest(pydantic.BaseModel):
    """A request to render a map as an HTML figure.

    Attributes:
        title: Figure caption.
        subtitle: Second caption line.
        source: Data source text for the footer.
        source_link: Optional link for the source text.
        licence: Licence text for the footer.
        filename: Prefix for every generated element id.
        footnotes: Footnotes, referenced from text values as "[1]", "[2]"...
        map_type: Kind of map (informational only).
        geography: Topology and its id and name properties.
        data: Values to join against the regions.
        choropleth: Choropleth styling; None draws a plain map.
        width: View-box width; defaults to 400 when not positive.
        min_width: Minimum width in a responsive layout.
        max_width: Maximum width in a responsive layout.
        include_fallback_png: Embed a PNG fallback inside each SVG.
        font_size: Font size used to estimate legend text widths.
    """

    title: str = ""
    subtitle: str = ""
    source: str = ""
    source_link: str = ""
    licence: str = ""
    filename: str = ""
    footnotes: list[str] = []
    map_type: str = ""
    geography: Geography | None = None
    data: list[DataRow] | None = None
    choropleth: Choropleth | None = None
    width: float = 0.0
    min_width: float = 0.0
    max_width: float = 0.0
    include_fallback_png: bool = False
    font_size: int = 0

    def missing_fields(self) -> list[str]:
        """Names of mandatory fields that are absent or empty."""
        missing = []
        if self.geography is None:
            missing.append("geography")
        else:
            missing.extend(self.geography.missing_fields())
        if not self.data:
            missing.append("data")
        return missing

    def validation_error(self) -> str | None:
        missing = self.missing_fields()
        return _missing_fields_message(missing) if missing else None


class AnalyseRequest(pydantic.BaseModel):
    """A request to check CSV data against a topology and suggest breaks.

    Attributes:
        geography: Topology and its id property.
        csv: CSV text.
        id_index: Zero-based column holding the region id.
        value_index: Zero-based column holding the value.
        has_header_row: Skip the first CSV row.
    """

    geography: Geography | None = None
    csv: str = ""
    id_index: int = 0
    value_index: int = 0
    has_header_row: bool = False

    def validation_error(self) -> str | None:
        """Describe the first problem with the request, or None if valid."""
        missing = []
        if self.geography is None:
            missing.append("geography")
        else:
            missing.extend(self.geography.missing_fields())
        if not self.csv:
            missing.append("csv")
        if missing:
            return _missing_fields_message(missing)
        if self.id_index < 0 or self.value_index < 0:
            return (
                "id_index and value_index must be >=0: "
                f"id_index={self.id_index}, value_index={self.value_index}"
            )
        if self.id_index == self.value_index:
            return (
                "id_index and value_index cannot refer to the same column: "
                f"id_index={self.id_index}, value_index={self.value_index}"
            )
        return None


class Message(pydantic.BaseModel):
    level: str
    text: str


class AnalyseResponse(pydantic.BaseModel):
    data: list[DataRow] = []
    messages: list[Message] = []
    breaks: list[list[float]] = []
    best_fit_class_count: int = 0
    min_value: float = 0.0
    max_value: float = 0.0


class RequestBodyError(ValueError):
    """Raised when a request body cannot be parsed into its model."""


ModelT = TypeVar("ModelT", bound=pydantic.BaseModel)


def parse_body(model: type[ModelT], body: bytes | str) -> ModelT:
    """Parse a JSON request body into ``model``.

    Args:
        model: The request model class.
        body: Raw request body.

    Returns:
        The parsed model.

    Raises:
        RequestBodyError: If the body is not valid JSON for the model, or
            is an empty object.
    """
    try:
        parsed = model.model_validate_json(body)
    except pydantic.ValidationError as err:
        raise RequestBodyError(str(err)) from err
    if len(body.strip()) == 2:
        raise RequestBodyError(NO_DATA_ERROR)
    return parsed
