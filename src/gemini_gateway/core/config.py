"""Configuration management for the Gemini Gateway.

This module provides centralized configuration management using Pydantic Settings.
Values are loaded from environment variables with the GEMINI_GATEWAY_ prefix,
allowing easy customization without code changes.

Environment Variable Loading
-----------------------------
Configuration values are loaded in the following priority order:
1. Environment variables (GEMINI_GATEWAY_* prefix)
2. .env file in the project root
3. Default values defined in GatewayConfig

Two unprefixed names are also honoured so that existing deployments keep
working: ``GOOGLE_GEMINI_API_KEY`` for the API credential and ``PORT`` for
the listening port.

Example .env file:
    GOOGLE_GEMINI_API_KEY=your-key-here
    GEMINI_GATEWAY_MODEL=gemini-2.0-flash
    PORT=3000

Global Configuration Instance
------------------------------
A global ``config`` instance is created automatically at module import time.
It is read-only after startup and is handed to route handlers through the
``get_config`` dependency in :mod:`gemini_gateway.api.main`.

Usage Example
-------------
    from gemini_gateway.core.config import config

    print(config.model)
    print(config.upload_dir)

Directory Management
--------------------
The scratch directory (``upload_dir``) is created on initialization if it
does not already exist.
"""

from pathlib import Path
from typing import Literal

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Upload size ceiling shared by every file route.
DEFAULT_MAX_UPLOAD_BYTES = 10 * 1024 * 1024


class GatewayConfig(BaseSettings):
    """Main configuration for the Gemini Gateway.

    Attributes
    ----------
    Provider Settings:
        api_key : str | None
            Gemini API key.  Read from ``GEMINI_GATEWAY_API_KEY`` or
            ``GOOGLE_GEMINI_API_KEY``.
        model : str
            Gemini model used for every generation call.

    Server Settings:
        server_host : str
            Bind address for uvicorn.
        server_port : int
            Listening port.  Read from ``GEMINI_GATEWAY_SERVER_PORT`` or
            ``PORT``.
        log_level : Literal["DEBUG", "INFO", "WARNING", "ERROR"]
            Root log level configured by the CLI entry point.

    Upload Settings:
        upload_dir : Path
            Scratch directory that buffers uploaded files while a request is
            being handled.
        max_upload_bytes : int
            Maximum accepted size for a single uploaded file.

    Notes
    -----
    - ``upload_dir`` is created automatically if it doesn't exist
    - Configuration is treated as immutable after initialization
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="GEMINI_GATEWAY_",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )

    # Provider settings
    api_key: str | None = Field(
        default=None,
        validation_alias=AliasChoices("GEMINI_GATEWAY_API_KEY", "GOOGLE_GEMINI_API_KEY"),
        description="API key for the Gemini API",
    )
    model: str = Field(
        default="gemini-2.0-flash",
        description="Gemini model used for all generation requests",
    )

    # Server settings
    server_host: str = Field(
        default="0.0.0.0",
        description="Server bind address",
    )
    server_port: int = Field(
        default=3000,
        validation_alias=AliasChoices("GEMINI_GATEWAY_SERVER_PORT", "PORT"),
        description="Server port",
        ge=1,
        le=65535,
    )
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Log level for the CLI entry point",
    )

    # Uploads
    upload_dir: Path = Field(
        default=Path("uploads"),
        description="Scratch directory for uploaded files",
    )
    max_upload_bytes: int = Field(
        default=DEFAULT_MAX_UPLOAD_BYTES,
        description="Maximum size of a single uploaded file in bytes",
        gt=0,
    )

    def __init__(self, **kwargs):
        """Initialize configuration and create the scratch directory.

        Args:
            **kwargs: Configuration overrides (typically from environment variables)
        """
        super().__init__(**kwargs)
        self.upload_dir.mkdir(parents=True, exist_ok=True)


# Global configuration instance
# Created when the module is imported; loads GEMINI_GATEWAY_* variables and .env.
config = GatewayConfig()
