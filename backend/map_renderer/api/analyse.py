"""Data analysis API endpoint.

Checks that CSV data matches the regions of a topology, returning the data
as JSON along with warnings and suggested choropleth breaks.
"""

from __future__ import annotations

import logging

import fastapi
from fastapi.concurrency import run_in_threadpool

from map_renderer import models
from map_renderer.services import analyser
from map_renderer.topology import topology as topo

_LOGGER = logging.getLogger("map_renderer.api")

router = fastapi.APIRouter(tags=["analyse"])


@router.post("/analyse")
async def analyse_data(request: fastapi.Request) -> models.AnalyseResponse:
    """Analyse CSV data against a topology.

    Args:
        request: Incoming request; the body is an AnalyseRequest document.

    Returns:
        The parsed rows, messages, breaks and value range.

    Raises:
        HTTPException: 400 if the body is invalid, fails validation, or the
            data cannot be analysed.
    """
    body = await request.body()
    try:
        analyse_request = models.parse_body(models.AnalyseRequest, body)
    except models.RequestBodyError as err:
        _LOGGER.error("Invalid analyse request: %s", err)
        raise fastapi.HTTPException(status_code=400, detail=str(err)) from err

    error = analyse_request.validation_error()
    if error:
        _LOGGER.error("Analyse request failed validation: %s", error)
        raise fastapi.HTTPException(status_code=400, detail=error)

    try:
        return await run_in_threadpool(analyser.analyse_data, analyse_request)
    except (analyser.AnalysisError, topo.TopologyError) as err:
        _LOGGER.error("Unable to analyse request: %s", err)
        raise fastapi.HTTPException(status_code=400, detail=str(err)) from err
