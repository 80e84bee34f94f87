"""Map rendering API endpoint.

Renders a RenderRequest as an HTML figure. The render type selects how the
map and legends are embedded: ``svg`` inlines them as SVG, ``png`` converts
them to base64 PNG images with the configured external converter.

Example:
    Render a map as inline SVG:
        >>> response = client.post("/render/svg", content=body)
        >>> response.headers["content-type"]
        'text/html; charset=utf-8'
"""

from __future__ import annotations

import logging

import fastapi
from fastapi import responses
from fastapi.concurrency import run_in_threadpool

from map_renderer import models
from map_renderer.core import config
from map_renderer.services import html_renderer
from map_renderer.svg import png
from map_renderer.topology import topology as topo

_LOGGER = logging.getLogger("map_renderer.api")

UNKNOWN_RENDER_TYPE = "Unknown render type"

router = fastapi.APIRouter(prefix="/render", tags=["render"])


def _get_png_converter(
    settings: config.Settings = fastapi.Depends(config.get_settings),  # noqa: B008
) -> png.PNGConverter | None:
    """Resolve the PNG converter dependency.

    Args:
        settings: Application settings (injected via FastAPI Depends).

    Returns:
        Converter running the configured executable, or None when PNG
        conversion is not configured.
    """
    return png.converter_from_settings(settings)


def _bad_request(detail: str) -> fastapi.HTTPException:
    return fastapi.HTTPException(status_code=400, detail=detail)


@router.post("/{render_type}", response_class=responses.HTMLResponse)
async def render_map(
    render_type: str,
    request: fastapi.Request,
    png_converter: png.PNGConverter | None = fastapi.Depends(  # noqa: B008
        _get_png_converter
    ),
) -> responses.HTMLResponse:
    """Render a map request as an HTML figure.

    Rendering runs in the thread pool because PNG conversion waits on a
    subprocess.

    Args:
        render_type: "svg" or "png".
        request: Incoming request; the body is a RenderRequest document.
        png_converter: PNG converter (injected via FastAPI Depends).

    Returns:
        The HTML figure.

    Raises:
        HTTPException: 400 if the body is invalid or misses mandatory
            fields or holds a malformed topology, 404 for an unknown
            render type.
    """
    body = await request.body()
    try:
        render_request = models.parse_body(models.RenderRequest, body)
    except models.RequestBodyError as err:
        _LOGGER.error("Invalid render request: %s", err)
        raise _bad_request(str(err)) from err

    error = render_request.validation_error()
    if error:
        _LOGGER.error("Render request failed validation: %s", error)
        raise _bad_request(error)

    if render_type == "svg":
        render = html_renderer.render_html_with_svg
    elif render_type == "png":
        render = html_renderer.render_html_with_png
    else:
        _LOGGER.error("%s: %s", UNKNOWN_RENDER_TYPE, render_type)
        raise fastapi.HTTPException(status_code=404, detail=UNKNOWN_RENDER_TYPE)

    try:
        html = await run_in_threadpool(render, render_request, png_converter)
    except topo.TopologyError as err:
        _LOGGER.error("Unable to render %s: %s", render_request.filename, err)
        raise _bad_request(str(err)) from err
    return responses.HTMLResponse(content=html)
