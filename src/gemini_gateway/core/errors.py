"""Error taxonomy for the gateway.

Every error carries the HTTP status it maps to.  The FastAPI application
registers a single handler for :class:`GatewayError` that renders the
uniform ``{"error": message}`` body, so route code only has to raise.
"""

from __future__ import annotations


class GatewayError(Exception):
    """Base class for errors that are reported to the client.

    Attributes:
        message: Text returned in the ``error`` field of the response.
        status_code: HTTP status used for the response.
    """

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class MissingInput(GatewayError):
    """A required prompt or file was not supplied."""

    status_code = 400


class UnsupportedType(GatewayError):
    """The uploaded file's extension is not accepted by the route."""

    status_code = 400


class UploadTooLarge(GatewayError):
    """The uploaded file exceeds the configured size limit."""

    status_code = 413


class UpstreamError(GatewayError):
    """The Gemini API call failed.

    The message is the provider's own error text.  A failure while uploading
    the file and a failure while generating are reported the same way.
    """

    status_code = 500
