"""Core functionality for the Gemini Gateway.

- **GatewayConfig** / **config**: environment-driven settings (Pydantic Settings)
- **GenerationClient**: async façade over the Gemini API
- **file_types**: extension extraction and per-route allowlists
- **errors**: error taxonomy mapped to HTTP status codes
"""

from gemini_gateway.core.config import GatewayConfig, config
from gemini_gateway.core.errors import (
    GatewayError,
    MissingInput,
    UnsupportedType,
    UploadTooLarge,
    UpstreamError,
)
from gemini_gateway.core.generation import GenerationClient

__all__ = [
    "GatewayConfig",
    "config",
    "GenerationClient",
    "GatewayError",
    "MissingInput",
    "UnsupportedType",
    "UploadTooLarge",
    "UpstreamError",
]
