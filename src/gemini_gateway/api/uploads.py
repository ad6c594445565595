"""Scratch-file buffering for multipart uploads.

Uploaded files are copied to ``config.upload_dir`` under a generated name
before the route does anything with them, and removed again when the route
is done.  Route handlers use :func:`upload_scope`, which guarantees the
removal whether generation succeeded or failed::

    async with upload_scope(document, settings) as stored:
        output = await client.generate_from_file(stored.path, stored.content_type, prompt)

Concurrent requests never collide because every stored file gets its own
``uuid4`` name.

The size limit is enforced twice.  :class:`UploadLimitMiddleware` rejects a
request body that is too big before the multipart parser spools it, and
:func:`store_upload` checks the file itself while copying it.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import AsyncIterator, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass
from pathlib import Path

from fastapi import UploadFile
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from gemini_gateway.core.config import GatewayConfig
from gemini_gateway.core.errors import UploadTooLarge
from gemini_gateway.core.file_types import extension

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024
DEFAULT_CONTENT_TYPE = "application/octet-stream"

# Room for multipart boundaries, part headers and the prompt field on top of
# the file itself.
FORM_OVERHEAD_BYTES = 64 * 1024


def too_large_message(max_bytes: int) -> str:
    """Return the 413 error text for a limit of *max_bytes*."""
    mib = 1024 * 1024
    if max_bytes % mib == 0:
        return f"File too large. Maximum size is {max_bytes // mib} MB"
    return f"File too large. Maximum size is {max_bytes} bytes"


@dataclass(frozen=True)
class StoredUpload:
    """An uploaded file buffered on local disk for the lifetime of a request.

    Attributes:
        path: Location of the scratch copy.
        original_filename: Filename as sent by the client.
        content_type: MIME type declared by the client.
        size: Number of bytes written.
    """

    path: Path
    original_filename: str
    content_type: str
    size: int


def remove_upload(path: Path) -> bool:
    """Delete a scratch file if it still exists.

    Returns:
        ``True`` if a file was removed, ``False`` if it was already gone.
    """
    try:
        path.unlink()
    except FileNotFoundError:
        return False
    logger.debug("Removed scratch file %s", path)
    return True


async def store_upload(upload: UploadFile, upload_dir: Path, max_bytes: int) -> StoredUpload:
    """Copy *upload* into *upload_dir*, enforcing *max_bytes*.

    The file is streamed in 1 MiB chunks.  As soon as the running total goes
    past the limit the partial copy is deleted and :class:`UploadTooLarge`
    is raised.

    Args:
        upload: The multipart file from the request.
        upload_dir: Scratch directory.
        max_bytes: Size limit for the file.

    Returns:
        A :class:`StoredUpload` describing the scratch copy.

    Raises:
        UploadTooLarge: If the file is bigger than *max_bytes*.
    """
    original = upload.filename or ""
    dest = upload_dir / f"{uuid.uuid4().hex}{extension(Path(original).name)}"
    size = 0
    try:
        with open(dest, "wb") as fh:
            while True:
                chunk = await upload.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_bytes:
                    raise UploadTooLarge(too_large_message(max_bytes))
                fh.write(chunk)
    except BaseException:
        remove_upload(dest)
        raise

    logger.debug("Stored upload %r as %s (%d bytes)", original, dest, size)
    return StoredUpload(
        path=dest,
        original_filename=original,
        content_type=upload.content_type or DEFAULT_CONTENT_TYPE,
        size=size,
    )


@asynccontextmanager
async def upload_scope(upload: UploadFile, settings: GatewayConfig) -> AsyncIterator[StoredUpload]:
    """Buffer *upload* for the duration of the ``async with`` block.

    The scratch file is removed on exit, including when the block raises.

    Args:
        upload: The multipart file from the request.
        settings: Application configuration (scratch dir and size limit).

    Yields:
        The :class:`StoredUpload` for this request.
    """
    stored = await store_upload(upload, settings.upload_dir, settings.max_upload_bytes)
    try:
        yield stored
    finally:
        remove_upload(stored.path)


class UploadLimitMiddleware:
    """Reject POST bodies bigger than the upload limit before they are parsed.

    A declared ``Content-Length`` over the limit is refused without reading
    the body.  Otherwise the bytes arriving on ``receive`` are counted, and
    once the total passes the limit the inner app sees a disconnect, its
    response is dropped and a 413 is sent instead.

    Args:
        app: The wrapped ASGI application.
        max_upload_bytes: Callable returning the current per-file limit.
            The body may be :data:`FORM_OVERHEAD_BYTES` larger to leave room
            for the multipart framing.
    """

    def __init__(self, app: ASGIApp, max_upload_bytes: Callable[[], int]) -> None:
        self.app = app
        self.max_upload_bytes = max_upload_bytes

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http" or scope["method"] != "POST":
            await self.app(scope, receive, send)
            return

        max_bytes = self.max_upload_bytes()
        max_body = max_bytes + FORM_OVERHEAD_BYTES

        declared = Headers(scope=scope).get("content-length")
        if declared is not None and declared.isdigit() and int(declared) > max_body:
            logger.info("Rejected %s: declared body of %s bytes", scope["path"], declared)
            await self._reject(scope, receive, send, max_bytes)
            return

        received = 0
        exceeded = False
        response_started = False

        async def limited_receive() -> Message:
            nonlocal received, exceeded
            if exceeded:
                return {"type": "http.disconnect"}
            message = await receive()
            if message["type"] == "http.request":
                received += len(message.get("body", b""))
                if received > max_body:
                    exceeded = True
                    return {"type": "http.disconnect"}
            return message

        async def guarded_send(message: Message) -> None:
            nonlocal response_started
            if exceeded:
                return
            if message["type"] == "http.response.start":
                response_started = True
            await send(message)

        try:
            await self.app(scope, limited_receive, guarded_send)
        except Exception:
            if not exceeded:
                raise

        if exceeded and not response_started:
            logger.info("Rejected %s: body passed %d bytes", scope["path"], max_body)
            await self._reject(scope, receive, send, max_bytes)

    @staticmethod
    async def _reject(scope: Scope, receive: Receive, send: Send, max_bytes: int) -> None:
        response = JSONResponse(status_code=413, content={"error": too_large_message(max_bytes)})
        await response(scope, receive, send)
