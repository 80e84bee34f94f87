"""Check CSV data against a topology and suggest choropleth breaks.

The CSV is parsed into data rows (id and numeric value), the ids are
matched against the regions of the topology, and Jenks natural breaks are
computed for the values. Problems that still leave usable data are
reported as messages in the response; problems that leave nothing to work
with raise AnalysisError.

Example:
    Analyse a request:
        >>> from map_renderer.services import analyser
        >>> response = analyser.analyse_data(request)
        >>> [message.level for message in response.messages]
        ['warn', 'info']
"""

from __future__ import annotations

import csv
import dataclasses
import io
import logging
import math
from typing import TYPE_CHECKING

from map_renderer import models
from map_renderer.services import jenks
from map_renderer.topology import topology as topo

if TYPE_CHECKING:
    from collections.abc import Iterable

_LOGGER = logging.getLogger("map_renderer.analyser")

MAX_CLASSES = 11


class AnalysisError(ValueError):
    """Raised when the data cannot be analysed at all."""


@dataclasses.dataclass
class ParsedCSV:
    """Rows read from a CSV document.

    Attributes:
        rows: Rows with an id and a numeric value.
        messages: Warnings about rows that could not be parsed.
        total_rows: Number of data rows read, header excluded.
    """

    rows: list[models.DataRow]
    messages: list[models.Message]
    total_rows: int


def _parse_value(text: str) -> float | None:
    try:
        value = float(text)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def parse_csv(
    source: str, id_index: int, value_index: int, has_header_row: bool = False
) -> ParsedCSV:
    """Read id and value columns from CSV text.

    Rows may have different numbers of columns. Blank lines are ignored.

    Args:
        source: CSV text.
        id_index: Zero-based column of the id.
        value_index: Zero-based column of the value.
        has_header_row: Skip the first row.

    Returns:
        The parsed rows, with a warning for rows lacking the columns and
        another for rows whose value is not a number.

    Raises:
        AnalysisError: If the CSV is malformed, has no data rows, no
            row with enough columns or no row with a numeric value.
    """
    required_columns = max(id_index, value_index) + 1
    reader = csv.reader(io.StringIO(source), strict=True)
    records = (record for record in reader if record)

    missing_columns: list[int] = []
    missing_values: list[str] = []
    rows: list[models.DataRow] = []
    total = 0
    try:
        if has_header_row:
            next(records, None)
        for record in records:
            total += 1
            if len(record) < required_columns:
                missing_columns.append(total)
                continue
            row_id = record[id_index]
            value = _parse_value(record[value_index])
            if value is None:
                missing_values.append(row_id)
                continue
            rows.append(models.DataRow(id=row_id, value=value))
    except csv.Error as err:
        _LOGGER.error("Error reading CSV: %s", err)
        raise AnalysisError(f"Error reading CSV: {err}") from err

    if total == 0:
        raise AnalysisError("CSV has no data rows - could not read data")
    if len(missing_columns) == total:
        raise AnalysisError(
            f"All CSV rows had fewer than {required_columns} columns - could not read data"
        )
    if not rows:
        raise AnalysisError("No CSV rows had a numeric value - could not read data")

    messages = []
    if missing_columns:
        numbers = ", ".join(str(number) for number in missing_columns)
        messages.append(
            models.Message(
                level="warn",
                text=(
                    f"{len(missing_columns)} rows have missing columns and could "
                    f"not be parsed. Row numbers: [{numbers}]"
                ),
            )
        )
    if missing_values:
        messages.append(
            models.Message(
                level="warn",
                text=(
                    f"{len(missing_values)} rows have missing (or non-numeric) "
                    "values and could not be parsed. "
                    f"Row IDs: [{', '.join(missing_values)}]"
                ),
            )
        )
    return ParsedCSV(rows=rows, messages=messages, total_rows=total)


def _object_ids(objects: Iterable[topo.TopoObject], id_property: str) -> set[str]:
    ids = set()
    for obj in objects:
        if obj.type == topo.GeometryType.GEOMETRY_COLLECTION:
            ids |= _object_ids(obj.geometries, id_property)
            continue
        value = obj.properties.get(id_property)
        if isinstance(value, str) and value:
            ids.add(value)
        elif obj.id is not None:
            ids.add(obj.id)
    return ids


def topology_ids(topology: topo.Topology, id_property: str) -> set[str]:
    """Ids of every region in the topology.

    The string value of ``id_property`` is used when present, otherwise
    the object's own id. Geometry collections are searched recursively.
    """
    return _object_ids(topology.objects.values(), id_property)


def analyse_data(request: models.AnalyseRequest) -> models.AnalyseResponse:
    """Parse the CSV, match it to the topology and compute breaks.

    Args:
        request: A validated analyse request.

    Returns:
        Every parsed row, the messages, breaks for each class count, the
        suggested class count and the value range.

    Raises:
        AnalysisError: If the CSV cannot be read or none of its ids are in
            the topology.
        TopologyError: If the topology is malformed.
    """
    if request.geography is None or request.geography.topojson is None:
        raise AnalysisError("Missing mandatory field(s): [geography]")
    id_property = request.geography.id_property

    parsed = parse_csv(
        request.csv, request.id_index, request.value_index, request.has_header_row
    )
    messages = list(parsed.messages)

    topology = topo.Topology.from_dict(request.geography.topojson)
    ids = topology_ids(topology, id_property)
    unmatched = [row.id for row in parsed.rows if row.id not in ids]
    if len(unmatched) == len(parsed.rows):
        raise AnalysisError(
            "Data does not match Topology - IDs in the data do not match any IDs "
            f"in the topology (using property '{id_property}' to identify "
            "features in the topology)"
        )
    if unmatched:
        messages.append(
            models.Message(
                level="error",
                text=(
                    f"IDs of {len(unmatched)} rows could not be found in the "
                    f"topology. Row IDs: [{', '.join(unmatched)}]"
                ),
            )
        )

    matched = len(parsed.rows) - len(unmatched)
    messages.append(
        models.Message(
            level="info",
            text=f"Successfully processed {matched} of {parsed.total_rows} rows",
        )
    )

    values = sorted(row.value for row in parsed.rows)
    breaks = [
        jenks.round_breaks(candidate, values)
        for candidate in jenks.all_natural_breaks(values, MAX_CLASSES)
    ]
    class_count = jenks.best_fit_class_count(values, breaks)
    _LOGGER.info(
        "Analysed %d rows: %d matched, best fit %d classes",
        parsed.total_rows,
        matched,
        class_count,
    )
    return models.AnalyseResponse(
        data=parsed.rows,
        messages=messages,
        breaks=breaks,
        best_fit_class_count=class_count,
        min_value=values[0],
        max_value=values[-1],
    )
