"""
Application Configuration

Uses pydantic-settings for environment variable loading with validation.
All configuration is centralized here for easy management.
"""

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class CodeFramePalette(BaseModel):
    """
    Colors used for the code excerpt on the SSR error page.

    Values are hex colors without the leading ``#``.
    """
    background: str = "fdfaf6"
    text: str = "452475"
    green: str = "137886"
    dark_green: str = "006500"
    comment: str = "527713"
    keyword: str = "096fb3"
    yellow: str = "DB3A00"
    gutter: str = "888"


class CodeFrameSettings(BaseModel):
    """How failing source locations are resolved and excerpted."""

    # Leading path segments to drop from stack trace file names before joining
    # them to the project directory. 0 keeps the parsed path as-is.
    strip_segments: int = Field(default=0, ge=0)
    lines_above: int = Field(default=2, ge=0)
    lines_below: int = Field(default=3, ge=0)
    palette: CodeFramePalette = Field(default_factory=CodeFramePalette)


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    Environment variables can be set directly or via .env file.
    Nested values use a double underscore, e.g.
    ``DEVSERVER_CODE_FRAME__STRIP_SEGMENTS=2``.
    """

    model_config = SettingsConfigDict(
        env_prefix="DEVSERVER_",
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Environment
    # ==========================================================================
    environment: Literal["development", "testing", "production"] = Field(
        default="development",
        description="Runtime environment"
    )

    debug: bool = Field(
        default=False,
        description="Enable FastAPI debug mode (tracebacks in server error responses)"
    )

    # ==========================================================================
    # Project
    # ==========================================================================
    directory: str = Field(
        default=".",
        description="Project root directory"
    )

    renderer_entry: str = Field(
        default="public/render_page.py",
        description="Renderer entry module, relative to the project directory"
    )

    pages_manifest: str | None = Field(
        default=None,
        description="Optional JSON file listing the pages to serve"
    )

    # ==========================================================================
    # Render workers
    # ==========================================================================
    render_workers: int = Field(
        default=1,
        ge=1,
        description="Number of concurrent render workers"
    )

    render_isolation: Literal["process", "thread"] = Field(
        default="process",
        description=(
            "Run renders in worker processes or worker threads. Thread workers "
            "share the server process: os.environ and sys.path are changed for "
            "the duration of each render, so use a single thread worker"
        )
    )

    forwarded_env: list[str] = Field(
        default_factory=lambda: [
            "APP_ENV",
            "DEVSERVER_EXECUTING_COMMAND",
            "DEVSERVER_LOG_LEVEL",
        ],
        description="Host environment variables passed through to the renderer"
    )

    code_frame: CodeFrameSettings = Field(default_factory=CodeFrameSettings)

    # ==========================================================================
    # Server
    # ==========================================================================
    host: str = Field(
        default="127.0.0.1",
        description="Server host"
    )

    port: int = Field(
        default=8000,
        description="Server port"
    )

    # ==========================================================================
    # Computed Properties
    # ==========================================================================
    @computed_field
    @property
    def project_directory(self) -> str:
        """Absolute project directory."""
        return str(Path(self.directory).expanduser().resolve())

    @computed_field
    @property
    def renderer_path(self) -> str:
        """Absolute path of the renderer entry module."""
        return str(Path(self.project_directory) / self.renderer_entry)

    @computed_field
    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses lru_cache to ensure settings are only loaded once.
    """
    return Settings()
