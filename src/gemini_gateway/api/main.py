"""Gemini Gateway — FastAPI Application.

This module is the single entry point for the web service.  It defines the
FastAPI ``app`` instance, all REST API routes, and the ``main()`` CLI
function that launches the uvicorn server.

Architecture
------------
The gateway is stateless pass-through plumbing:

- **Configuration** comes from :data:`~gemini_gateway.core.config.config`
  and is injected into routes with the :func:`get_config` dependency.
- **Generation** is delegated to
  :class:`~gemini_gateway.core.generation.GenerationClient`, created once in
  the lifespan handler and stored on ``app.state``.
- **Uploads** are buffered to the scratch directory by
  :func:`~gemini_gateway.api.uploads.upload_scope`, which removes the file
  when the route finishes.  Bodies over the size limit are refused earlier
  by :class:`~gemini_gateway.api.uploads.UploadLimitMiddleware`.
- **Errors** are raised as
  :class:`~gemini_gateway.core.errors.GatewayError` subclasses and rendered
  as ``{"error": message}`` by a single exception handler.  Bodies that do
  not match a route signature are rendered the same way with status 400.

Endpoints
---------
========  ===========================  ====================================
Method    Path                         Purpose
========  ===========================  ====================================
GET       ``/``                        Health check and endpoint listing
POST      ``/generate-text``           Generate from a text prompt
POST      ``/generate-from-image``     Describe an uploaded image
POST      ``/generate-from-document``  Analyse an uploaded document
POST      ``/generate-from-audio``     Transcribe and analyse uploaded audio
========  ===========================  ====================================

Usage
-----
CLI (installed entry point)::

    gemini-gateway

Direct invocation::

    python -m gemini_gateway.api.main
"""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, File, Form, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from gemini_gateway import __version__
from gemini_gateway.api.models import (
    AudioGenerationResponse,
    DocumentGenerationResponse,
    ErrorResponse,
    GenerationResponse,
    TextGenerationRequest,
)
from gemini_gateway.api.uploads import StoredUpload, UploadLimitMiddleware, upload_scope
from gemini_gateway.core.config import GatewayConfig, config
from gemini_gateway.core.errors import GatewayError, MissingInput
from gemini_gateway.core.file_types import AUDIO_EXTENSIONS, DOCUMENT_EXTENSIONS, check_extension
from gemini_gateway.core.generation import GenerationClient

logger = logging.getLogger(__name__)

DEFAULT_IMAGE_PROMPT = "Describe this uploaded image"
DEFAULT_DOCUMENT_PROMPT = "Analyze this document"
DEFAULT_AUDIO_PROMPT = "Transcribe and analyze this audio"

ERROR_RESPONSES = {
    400: {"model": ErrorResponse},
    413: {"model": ErrorResponse},
    500: {"model": ErrorResponse},
}

# Message for a body that does not match the route signature, by path.
VALIDATION_MESSAGES = {
    "/generate-text": "Prompt is required",
    "/generate-from-image": "Image file is required",
    "/generate-from-document": "Document file is required",
    "/generate-from-audio": "Audio file is required",
}


# ---------------------------------------------------------------------------
# Application lifecycle — generation client setup.
# ---------------------------------------------------------------------------


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the shared :class:`GenerationClient` for the app's lifetime.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control back to the application for the duration of its lifetime.
    """
    if not config.api_key:
        logger.warning("No Gemini API key configured; generation requests will fail until set.")
    app.state.generation_client = GenerationClient(config)
    logger.info("GenerationClient initialised (model=%s).", config.model)
    logger.info("Uploads directory: %s", config.upload_dir.resolve())

    yield


# ---------------------------------------------------------------------------
# FastAPI application instance.
# ---------------------------------------------------------------------------
app = FastAPI(
    title="Gemini Gateway",
    description="HTTP gateway for text, image, document and audio generation with Gemini.",
    version=__version__,
    lifespan=lifespan,
)

# Added first so that CORS wraps it and 413 responses carry CORS headers.
app.add_middleware(UploadLimitMiddleware, max_upload_bytes=lambda: config.max_upload_bytes)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(GatewayError)
async def gateway_error_handler(request: Request, exc: GatewayError) -> JSONResponse:
    """Render any :class:`GatewayError` as ``{"error": message}``."""
    if exc.status_code >= 500:
        logger.error("Generation failed on %s: %s", request.url.path, exc.message, exc_info=exc)
    else:
        logger.info("Rejected %s (%d): %s", request.url.path, exc.status_code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render a malformed body as a 400 ``{"error": message}``.

    A non-string prompt, a form body on the JSON route or a plain text value
    where a file is expected all count as the required input being missing.
    """
    message = VALIDATION_MESSAGES.get(request.url.path, "Invalid request")
    logger.info("Rejected %s (400): %s %s", request.url.path, message, exc.errors())
    return JSONResponse(status_code=400, content={"error": message})


# ---------------------------------------------------------------------------
# Dependencies.
# ---------------------------------------------------------------------------


def get_config() -> GatewayConfig:
    """Return the process-wide configuration."""
    return config


def get_generation_client(request: Request) -> GenerationClient:
    """Return the :class:`GenerationClient` created at startup."""
    return request.app.state.generation_client


def _require_upload(upload: UploadFile | None, label: str) -> UploadFile:
    """Raise :class:`MissingInput` unless a file was actually sent."""
    if upload is None or not upload.filename:
        raise MissingInput(f"{label} file is required")
    return upload


async def _generate_from_upload(client: GenerationClient, stored: StoredUpload, prompt: str) -> str:
    return await client.generate_from_file(stored.path, stored.content_type, prompt)


# ---------------------------------------------------------------------------
# Routes.
# ---------------------------------------------------------------------------


@app.get("/")
async def index() -> dict:
    """Report that the service is running and list the generation endpoints."""
    return {
        "message": "Gemini AI Chatbot API is running",
        "endpoints": {
            "text": "POST /generate-text",
            "image": "POST /generate-from-image",
            "document": "POST /generate-from-document",
            "audio": "POST /generate-from-audio",
        },
    }


@app.post("/generate-text", responses=ERROR_RESPONSES)
async def generate_text(
    req: TextGenerationRequest | None = None,
    client: GenerationClient = Depends(get_generation_client),
) -> GenerationResponse:
    """Generate text from a prompt.

    Args:
        req: JSON body with a ``prompt`` field.
        client: Injected generation client.

    Returns:
        :class:`GenerationResponse` with the model output.

    Raises:
        MissingInput: 400 if ``prompt`` is missing or empty.
        UpstreamError: 500 if the Gemini call fails.
    """
    if req is None or not req.prompt:
        raise MissingInput("Prompt is required")
    output = await client.generate_from_text(req.prompt)
    return GenerationResponse(output=output)


@app.post("/generate-from-image", responses=ERROR_RESPONSES)
async def generate_from_image(
    image: UploadFile | None = File(None),
    prompt: str | None = Form(None),
    settings: GatewayConfig = Depends(get_config),
    client: GenerationClient = Depends(get_generation_client),
) -> GenerationResponse:
    """Describe an uploaded image.

    Any file type is accepted.  The prompt defaults to
    ``"Describe this uploaded image"``.

    Raises:
        MissingInput: 400 if no ``image`` file was sent.
        UploadTooLarge: 413 if the file exceeds the size limit.
        UpstreamError: 500 if the Gemini upload or generation fails.
    """
    upload = _require_upload(image, "Image")
    text = prompt if prompt is not None else DEFAULT_IMAGE_PROMPT
    async with upload_scope(upload, settings) as stored:
        output = await _generate_from_upload(client, stored, text)
    return GenerationResponse(output=output)


@app.post("/generate-from-document", responses=ERROR_RESPONSES)
async def generate_from_document(
    document: UploadFile | None = File(None),
    prompt: str | None = Form(None),
    settings: GatewayConfig = Depends(get_config),
    client: GenerationClient = Depends(get_generation_client),
) -> DocumentGenerationResponse:
    """Analyse an uploaded document.

    Only PDF, TXT, DOC, DOCX, PPT and PPTX files are accepted.  The prompt
    defaults to ``"Analyze this document"``.

    Raises:
        MissingInput: 400 if no ``document`` file was sent.
        UnsupportedType: 400 if the extension is not allowed.
        UploadTooLarge: 413 if the file exceeds the size limit.
        UpstreamError: 500 if the Gemini upload or generation fails.
    """
    upload = _require_upload(document, "Document")
    text = prompt if prompt is not None else DEFAULT_DOCUMENT_PROMPT
    async with upload_scope(upload, settings) as stored:
        ext = check_extension(stored.original_filename, DOCUMENT_EXTENSIONS, "document")
        output = await _generate_from_upload(client, stored, text)
    return DocumentGenerationResponse(
        output=output,
        document_type=ext,
        file_name=stored.original_filename,
    )


@app.post("/generate-from-audio", responses=ERROR_RESPONSES)
async def generate_from_audio(
    audio: UploadFile | None = File(None),
    prompt: str | None = Form(None),
    settings: GatewayConfig = Depends(get_config),
    client: GenerationClient = Depends(get_generation_client),
) -> AudioGenerationResponse:
    """Transcribe and analyse an uploaded audio file.

    Only MP3, WAV, M4A, FLAC and OGG files are accepted.  The prompt
    defaults to ``"Transcribe and analyze this audio"``.

    Raises:
        MissingInput: 400 if no ``audio`` file was sent.
        UnsupportedType: 400 if the extension is not allowed.
        UploadTooLarge: 413 if the file exceeds the size limit.
        UpstreamError: 500 if the Gemini upload or generation fails.
    """
    upload = _require_upload(audio, "Audio")
    text = prompt if prompt is not None else DEFAULT_AUDIO_PROMPT
    async with upload_scope(upload, settings) as stored:
        ext = check_extension(stored.original_filename, AUDIO_EXTENSIONS, "audio")
        output = await _generate_from_upload(client, stored, text)
    return AudioGenerationResponse(
        output=output,
        audio_type=ext,
        file_name=stored.original_filename,
    )


# ---------------------------------------------------------------------------
# CLI entry point.
# ---------------------------------------------------------------------------


def main() -> None:
    """Launch the uvicorn ASGI server.

    Reads host, port and log level from
    :data:`~gemini_gateway.core.config.config`.  The port honours the
    ``PORT`` environment variable and defaults to 3000.

    This function is registered as the ``gemini-gateway`` console script in
    ``pyproject.toml``.
    """
    import uvicorn

    logging.basicConfig(
        level=config.log_level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Server running on port %s", config.server_port)

    uvicorn.run(
        "gemini_gateway.api.main:app",
        host=config.server_host,
        port=config.server_port,
        reload=False,
    )


if __name__ == "__main__":
    main()
