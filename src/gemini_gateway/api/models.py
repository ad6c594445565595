"""Pydantic request and response models for the Gemini Gateway API.

FastAPI uses these for request validation, response serialisation, and
OpenAPI documentation.  Response field names follow the public JSON
contract (``documentType``, ``fileName``...) through aliases, so Python code
keeps snake_case attribute names.

Models
------
TextGenerationRequest
    JSON payload for ``POST /generate-text``.
GenerationResponse
    ``{output}`` body shared by the text and image routes.
DocumentGenerationResponse
    Adds ``documentType`` and ``fileName`` for ``POST /generate-from-document``.
AudioGenerationResponse
    Adds ``audioType`` and ``fileName`` for ``POST /generate-from-audio``.
ErrorResponse
    ``{error}`` body returned for every failure.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class TextGenerationRequest(BaseModel):
    """Request body for ``POST /generate-text``.

    ``prompt`` is optional at the schema level so that a missing prompt is
    reported with the gateway's own 400 error instead of a 422.
    """

    prompt: str | None = Field(
        default=None,
        description="Prompt text sent to the model.",
    )


class GenerationResponse(BaseModel):
    """Successful generation result."""

    output: str = Field(..., description="Text generated by the model.")


class DocumentGenerationResponse(GenerationResponse):
    """Successful document analysis result.

    Attributes:
        document_type: Validated lowercase extension, e.g. ``".pdf"``.
        file_name: Original filename of the upload.
    """

    model_config = ConfigDict(populate_by_name=True)

    document_type: str = Field(..., alias="documentType")
    file_name: str = Field(..., alias="fileName")


class AudioGenerationResponse(GenerationResponse):
    """Successful audio analysis result.

    Attributes:
        audio_type: Validated lowercase extension, e.g. ``".mp3"``.
        file_name: Original filename of the upload.
    """

    model_config = ConfigDict(populate_by_name=True)

    audio_type: str = Field(..., alias="audioType")
    file_name: str = Field(..., alias="fileName")


class ErrorResponse(BaseModel):
    """Body returned for client and upstream errors."""

    error: str
