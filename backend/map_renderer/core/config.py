"""Application settings and configuration management.

This module provides Pydantic-based settings management that loads
configuration from environment variables or a .env file. Settings include
CORS origins, the external SVG to PNG rasterizer, the directory used for
temporary conversion files, the listen address and logging options.

Example:
    Settings can be accessed via the cached get_settings() function:
        >>> from map_renderer.core.config import get_settings
        >>> settings = get_settings()
        >>> print(settings.port)
        23500

    Environment variables can override defaults:
        >>> SVG2PNG_EXECUTABLE=rsvg-convert
        >>> SVG2PNG_ARGUMENTS='["-o", "<PNG>", "<SVG>"]'
        >>> TEMP_DIR=/var/tmp/map_renderer
        >>> LOG_LEVEL=DEBUG
"""

import functools
import pathlib

import pydantic_settings


class Settings(pydantic_settings.BaseSettings):
    """Runtime configuration pulled from environment variables or defaults.

    All settings can be overridden via environment variables or .env file.
    The temporary directory is created by ensure_directories().

    Attributes:
        allow_origins: List of allowed CORS origins (["*"] allows all).
        temp_dir: Directory for temporary SVG and PNG files.
        svg2png_executable: Rasterizer used for PNG output and fallback
            images. Leave unset to disable PNG conversion.
        svg2png_arguments: Rasterizer arguments. "<SVG>" and "<PNG>" are
            replaced by the input and output file names.
        svg2png_timeout_seconds: Maximum time a single conversion may take.
        host: Interface the HTTP server binds to.
        port: Port the HTTP server listens on.
        shutdown_timeout_seconds: Grace period for in-flight requests on
            shutdown.
        log_level: Root logging level name.
        log_file: Optional file that receives a copy of the log output.

    Example:
        Create settings with custom values:
            >>> settings = Settings(
            ...     svg2png_executable="inkscape",
            ...     svg2png_arguments=["<SVG>", "--export-png=<PNG>"],
            ...     temp_dir=pathlib.Path("/custom/tmp"),
            ... )
            >>> settings.ensure_directories()
    """

    allow_origins: list[str] = ["*"]
    temp_dir: pathlib.Path = pathlib.Path("/tmp/map_renderer")
    svg2png_executable: str | None = None
    svg2png_arguments: list[str] = ["-o", "<PNG>", "<SVG>"]
    svg2png_timeout_seconds: float = 30.0
    host: str = "0.0.0.0"
    port: int = 23500
    shutdown_timeout_seconds: float = 5.0
    log_level: str = "INFO"
    log_file: pathlib.Path | None = None

    model_config = pydantic_settings.SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
    )

    def ensure_directories(self) -> None:
        """Create the temporary directory used for PNG conversion."""
        self.temp_dir.mkdir(parents=True, exist_ok=True)


@functools.lru_cache
def get_settings() -> Settings:
    """Get cached settings instance with directories initialized.

    Settings are loaded from environment variables or .env file and cached
    for the lifetime of the application. Directories are created on first
    call. Subsequent calls return the same cached instance.

    Returns:
        Settings instance with all configuration values populated and
        directories ensured to exist.

    Example:
        The settings are cached, so multiple calls return the same instance:
            >>> settings1 = get_settings()
            >>> settings2 = get_settings()
            >>> assert settings1 is settings2  # Same instance
    """
    settings = Settings()
    settings.ensure_directories()
    return settings
