"""Gemini API façade for the Gemini Gateway.

This module provides :class:`GenerationClient`, the single point of contact
with the external model service.  It wraps a ``google.genai.Client`` and
exposes the two operations the routes need.

Key Responsibilities
--------------------
- **Text generation** — send a raw prompt string and return the generated
  text.
- **File-grounded generation** — upload a local file to the Gemini file
  store, then ask the model to respond to ``(prompt, file reference)`` as a
  single user turn.
- **Error mapping** — any exception from the SDK, in either step, is
  re-raised as :class:`~gemini_gateway.core.errors.UpstreamError` carrying
  the provider's own message.

All calls go through the SDK's async surface (``client.aio``) so a request
waiting on Gemini never blocks the event loop.  There is no retry, timeout
or streaming configuration: each call is one round trip.

Usage
-----
::

    from gemini_gateway.core.config import config
    from gemini_gateway.core.generation import GenerationClient

    client = GenerationClient(config)
    text = await client.generate_from_text("hello")
    text = await client.generate_from_file("uploads/abc.png", "image/png", "Describe this")
"""

from __future__ import annotations

import logging
from pathlib import Path

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from gemini_gateway.core.config import GatewayConfig
from gemini_gateway.core.errors import UpstreamError

logger = logging.getLogger(__name__)


def _provider_message(exc: Exception) -> str:
    """Return the message the provider attached to *exc*.

    ``google.genai`` API errors expose the server's text on ``.message``;
    anything else (network failures, local validation) falls back to
    ``str(exc)``.
    """
    if isinstance(exc, genai_errors.APIError) and exc.message:
        return exc.message
    return str(exc)


class GenerationClient:
    """Thin wrapper around the Gemini API.

    Attributes:
        model (str):
            Gemini model name used for every ``generate_content`` call.
        _client (genai.Client | None):
            Underlying SDK client.  Built from ``config.api_key`` on first
            use unless one is injected.
    """

    def __init__(self, config: GatewayConfig, client: genai.Client | None = None) -> None:
        """Initialise the client.

        Args:
            config: Application configuration.  ``api_key`` and ``model``
                are read from it.
            client: Pre-built SDK client.  Tests pass a fake here.
        """
        self.model = config.model
        self._api_key = config.api_key
        self._client = client

    def _sdk(self) -> genai.Client:
        """Return the SDK client, building it on first use.

        The SDK refuses to build a client without a key.  Deferring
        construction lets the service start without one and report the
        failure per request as an :class:`UpstreamError`.
        """
        if self._client is None:
            self._client = genai.Client(api_key=self._api_key)
        return self._client

    async def generate_from_text(self, prompt: str) -> str:
        """Generate text from a plain prompt.

        Args:
            prompt: Prompt text sent to the model as-is.

        Returns:
            The generated text (empty string if the model returned none).

        Raises:
            UpstreamError: If the Gemini call fails.
        """
        try:
            response = await self._sdk().aio.models.generate_content(
                model=self.model,
                contents=prompt,
            )
        except Exception as exc:
            raise UpstreamError(_provider_message(exc)) from exc
        return response.text or ""

    async def generate_from_file(self, local_path: str | Path, mime_type: str, prompt: str) -> str:
        """Upload a local file and generate text grounded on it.

        The file is first pushed to the Gemini file store, which returns an
        opaque URI and the MIME type it settled on.  The generation request
        then carries one user turn made of the prompt text followed by a
        reference to that URI.

        Args:
            local_path: Path of the buffered upload on local disk.
            mime_type: MIME type declared by the HTTP client.
            prompt: Instruction text for the model.

        Returns:
            The generated text (empty string if the model returned none).

        Raises:
            UpstreamError: If either the upload or the generation fails.
                The two cases are not distinguished.
        """
        try:
            uploaded = await self._sdk().aio.files.upload(
                file=str(local_path),
                config=types.UploadFileConfig(mime_type=mime_type),
            )
            logger.debug("Uploaded %s to Gemini as %s", local_path, uploaded.uri)

            contents = [
                types.Content(
                    role="user",
                    parts=[
                        types.Part.from_text(text=prompt),
                        types.Part.from_uri(
                            file_uri=uploaded.uri,
                            mime_type=uploaded.mime_type or mime_type,
                        ),
                    ],
                )
            ]
            response = await self._sdk().aio.models.generate_content(
                model=self.model,
                contents=contents,
            )
        except Exception as exc:
            raise UpstreamError(_provider_message(exc)) from exc
        return response.text or ""
