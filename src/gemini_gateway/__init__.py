"""Gemini Gateway - HTTP gateway for text, image, document and audio generation with Gemini."""

__version__ = "1.0.0"

from gemini_gateway.core.config import GatewayConfig, config
from gemini_gateway.core.generation import GenerationClient

__all__ = [
    "GatewayConfig",
    "config",
    "GenerationClient",
]
