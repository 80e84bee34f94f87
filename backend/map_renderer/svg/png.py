"""PNG fallback images for SVG output.

Rasterization is delegated to an external executable (for example
``rsvg-convert`` or ``inkscape``). The SVG is written to a temporary file,
the executable is run with its arguments templated by the ``<SVG>`` and
``<PNG>`` placeholders, and the resulting PNG is returned base64 encoded.
Temporary files are always removed; failures to remove them are logged
only.

A converter is an explicit dependency of the renderers: it is created from
settings for each request and passed down, never stored globally.

Example:
    Wrap SVG content so older browsers show a PNG instead:
        >>> from map_renderer.svg import png
        >>> converter = png.ExecutablePNGConverter(
        ...     "rsvg-convert", ["-o", png.ARG_PNG_FILENAME, png.ARG_SVG_FILENAME]
        ... )
        >>> markup = converter.include_fallback_image(
        ...     'width="400" height="300"', "<circle .../>"
        ... )
"""

from __future__ import annotations

import base64
import logging
import os
import pathlib
import tempfile
from typing import TYPE_CHECKING, Protocol

from map_renderer.utils import command

if TYPE_CHECKING:
    from collections.abc import Sequence

    from map_renderer.core import config

_LOGGER = logging.getLogger("map_renderer.png")

ARG_SVG_FILENAME = "<SVG>"
ARG_PNG_FILENAME = "<PNG>"

FALLBACK_IMAGE_TEMPLATE = (
    '<img alt="Fallback map image for older browsers" '
    'src="data:image/png;base64,{}" />'
)
UNSUPPORTED_BROWSER_TEXT = "<p>Unsupported Browser</p>"

SVG_SWITCH_TEMPLATE = """<svg {attributes}>
\t<switch>
\t\t<g>
{content}
\t\t</g>
\t\t<foreignObject>{fallback}</foreignObject>
\t</switch>
</svg>"""


class PNGConversionError(RuntimeError):
    """Raised when an SVG could not be converted to PNG."""


class PNGConverter(Protocol):
    """Interface for anything that can rasterize SVG markup."""

    def convert(self, svg: str) -> str:
        """Return the base64 encoded PNG rendering of ``svg``.

        Raises:
            PNGConversionError: If the conversion failed.
        """
        ...

    def include_fallback_image(self, attributes: str, content: str) -> str:
        """Return an ``<svg>`` wrapping ``content`` with a PNG fallback."""
        ...


def wrap_with_fallback(
    converter: PNGConverter, attributes: str, content: str
) -> str:
    """Wrap SVG content in a ``<switch>`` with a rasterized fallback.

    The content is drawn natively by browsers that support SVG; others get
    the ``<foreignObject>`` holding an ``<img>`` of the same drawing, or an
    "Unsupported Browser" notice when the conversion failed.

    Args:
        converter: Converter used to rasterize the drawing.
        attributes: Attribute text of the root ``<svg>`` element.
        content: Inner markup of the drawing.

    Returns:
        The complete ``<svg>`` element.
    """
    svg = f"<svg {attributes}>{content}\n</svg>"
    try:
        fallback = FALLBACK_IMAGE_TEMPLATE.format(converter.convert(svg))
    except PNGConversionError:
        _LOGGER.exception("Unable to include fallback png")
        fallback = UNSUPPORTED_BROWSER_TEXT
    return SVG_SWITCH_TEMPLATE.format(
        attributes=attributes, content=content, fallback=fallback
    )


class ExecutablePNGConverter:
    """PNG converter backed by an external command-line rasterizer.

    Attributes:
        executable: Program to run (e.g. "rsvg-convert").
        arguments: Arguments, where ``<SVG>`` and ``<PNG>`` are replaced by
            the temporary input and output file names.
        temp_dir: Directory for temporary files (system default if None).
        timeout: Seconds to wait for the executable (None waits forever).
    """

    def __init__(
        self,
        executable: str,
        arguments: Sequence[str],
        temp_dir: pathlib.Path | None = None,
        timeout: float | None = None,
    ) -> None:
        self.executable = executable
        self.arguments = list(arguments)
        self.temp_dir = temp_dir
        self.timeout = timeout

    def _command(self, svg_path: pathlib.Path, png_path: pathlib.Path) -> list[str]:
        args = [
            arg.replace(ARG_SVG_FILENAME, str(svg_path)).replace(
                ARG_PNG_FILENAME, str(png_path)
            )
            for arg in self.arguments
        ]
        return [self.executable, *args]

    def convert(self, svg: str) -> str:
        """Rasterize SVG markup and return the PNG as base64 text.

        Args:
            svg: Complete SVG document.

        Returns:
            Base64 encoded PNG bytes as ASCII text.

        Raises:
            PNGConversionError: If the temporary files cannot be written or
                read, or the executable fails.
        """
        fd, name = tempfile.mkstemp(
            prefix="temp_", suffix=".svg", dir=self.temp_dir
        )
        os.close(fd)
        svg_path = pathlib.Path(name)
        png_path = svg_path.with_suffix(".png")
        try:
            svg_path.write_text(svg, encoding="utf-8")
            command.run_command(
                self._command(svg_path, png_path), timeout=self.timeout
            )
            data = png_path.read_bytes()
        except command.CommandError as exc:
            _LOGGER.error(
                "Rasterizer %s failed for %s: %s", self.executable, svg_path, exc
            )
            raise PNGConversionError(str(exc)) from exc
        except OSError as exc:
            _LOGGER.error("Unable to exchange files with rasterizer: %s", exc)
            raise PNGConversionError(str(exc)) from exc
        finally:
            _delete_temporary_files(svg_path, png_path)
        return base64.b64encode(data).decode("ascii")

    def include_fallback_image(self, attributes: str, content: str) -> str:
        return wrap_with_fallback(self, attributes, content)


def _delete_temporary_files(*paths: pathlib.Path) -> None:
    for path in paths:
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            _LOGGER.debug("Unable to delete temporary file %s: %s", path, exc)


def converter_from_settings(
    settings: config.Settings,
) -> ExecutablePNGConverter | None:
    """Create the configured converter, or None when PNG output is disabled."""
    if not settings.svg2png_executable:
        return None
    return ExecutablePNGConverter(
        settings.svg2png_executable,
        settings.svg2png_arguments,
        temp_dir=settings.temp_dir,
        timeout=settings.svg2png_timeout_seconds,
    )
