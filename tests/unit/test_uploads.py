"""Tests for gemini_gateway.api.uploads — scratch-file buffering.

Tests cover:
- Storing an upload under a generated name with the original metadata.
- Size limit enforcement and removal of the partial copy.
- Guaranteed cleanup by upload_scope on success and on failure.
- Idempotent removal.
- The 413 message and the request-body limit middleware.
"""

from __future__ import annotations

import asyncio
import io
from pathlib import Path

import json

import pytest
from fastapi import UploadFile
from fastapi.responses import JSONResponse
from starlette.datastructures import Headers

from gemini_gateway.api.uploads import (
    DEFAULT_CONTENT_TYPE,
    FORM_OVERHEAD_BYTES,
    UploadLimitMiddleware,
    remove_upload,
    store_upload,
    too_large_message,
    upload_scope,
)
from gemini_gateway.core.config import GatewayConfig
from gemini_gateway.core.errors import UploadTooLarge


def _make_upload(data: bytes, filename: str = "photo.JPG", content_type: str | None = "image/jpeg"):
    headers = Headers({"content-type": content_type}) if content_type else Headers({})
    return UploadFile(file=io.BytesIO(data), filename=filename, headers=headers)


class TestStoreUpload:
    """Test store_upload()."""

    def test_stores_bytes_and_metadata(self, upload_dir: Path, test_config: GatewayConfig):
        stored = asyncio.run(store_upload(_make_upload(b"jpeg-bytes"), upload_dir, 1024))

        assert stored.path.parent == upload_dir
        assert stored.path.read_bytes() == b"jpeg-bytes"
        assert stored.original_filename == "photo.JPG"
        assert stored.content_type == "image/jpeg"
        assert stored.size == len(b"jpeg-bytes")

    def test_generated_name_keeps_extension(self, upload_dir: Path, test_config: GatewayConfig):
        stored = asyncio.run(store_upload(_make_upload(b"x"), upload_dir, 1024))
        assert stored.path.suffix == ".jpg"
        assert stored.path.name != "photo.JPG"

    def test_names_are_unique(self, upload_dir: Path, test_config: GatewayConfig):
        first = asyncio.run(store_upload(_make_upload(b"a"), upload_dir, 1024))
        second = asyncio.run(store_upload(_make_upload(b"b"), upload_dir, 1024))
        assert first.path != second.path

    def test_missing_content_type_defaults(self, upload_dir: Path, test_config: GatewayConfig):
        stored = asyncio.run(store_upload(_make_upload(b"x", content_type=None), upload_dir, 1024))
        assert stored.content_type == DEFAULT_CONTENT_TYPE

    def test_exact_limit_is_accepted(self, upload_dir: Path, test_config: GatewayConfig):
        stored = asyncio.run(store_upload(_make_upload(b"x" * 16), upload_dir, 16))
        assert stored.size == 16

    def test_oversized_upload_rejected_and_removed(
        self, upload_dir: Path, test_config: GatewayConfig
    ):
        with pytest.raises(UploadTooLarge) as exc_info:
            asyncio.run(store_upload(_make_upload(b"x" * 17), upload_dir, 16))
        assert exc_info.value.status_code == 413
        assert exc_info.value.message == "File too large. Maximum size is 16 bytes"
        assert list(upload_dir.iterdir()) == []


class TestUploadScope:
    """Test upload_scope() cleanup guarantees."""

    def test_file_removed_after_block(self, test_config: GatewayConfig):
        async def run() -> Path:
            async with upload_scope(_make_upload(b"data"), test_config) as stored:
                assert stored.path.exists()
                return stored.path

        path = asyncio.run(run())
        assert not path.exists()

    def test_file_removed_when_block_raises(self, test_config: GatewayConfig):
        seen: list[Path] = []

        async def run() -> None:
            async with upload_scope(_make_upload(b"data"), test_config) as stored:
                seen.append(stored.path)
                raise RuntimeError("boom")

        with pytest.raises(RuntimeError):
            asyncio.run(run())
        assert seen and not seen[0].exists()
        assert list(test_config.upload_dir.iterdir()) == []

    def test_file_deleted_inside_block_is_tolerated(self, test_config: GatewayConfig):
        async def run() -> None:
            async with upload_scope(_make_upload(b"data"), test_config) as stored:
                stored.path.unlink()

        asyncio.run(run())


class TestRemoveUpload:
    """Test remove_upload()."""

    def test_remove_existing(self, temp_dir: Path):
        path = temp_dir / "f.bin"
        path.write_bytes(b"1")
        assert remove_upload(path) is True
        assert not path.exists()

    def test_remove_missing(self, temp_dir: Path):
        assert remove_upload(temp_dir / "missing.bin") is False


class TestTooLargeMessage:
    """Test too_large_message()."""

    def test_whole_mebibytes(self):
        assert too_large_message(10 * 1024 * 1024) == "File too large. Maximum size is 10 MB"

    def test_below_one_mebibyte_uses_bytes(self):
        assert too_large_message(512 * 1024) == "File too large. Maximum size is 524288 bytes"


# ---------------------------------------------------------------------------
# UploadLimitMiddleware helpers.
# ---------------------------------------------------------------------------


class _ReadingApp:
    """ASGI app that reads the whole body, then echoes its size.

    A disconnect gets a 400, the way the form parser reacts to one.
    """

    def __init__(self) -> None:
        self.called = False

    async def __call__(self, scope, receive, send):
        self.called = True
        size = 0
        while True:
            message = await receive()
            if message["type"] == "http.disconnect":
                response = JSONResponse(status_code=400, content={"detail": "parse error"})
                await response(scope, receive, send)
                return
            size += len(message.get("body", b""))
            if not message.get("more_body", False):
                break
        await JSONResponse({"size": size})(scope, receive, send)


def _run_middleware(app, chunks: list[bytes], headers: list[tuple[bytes, bytes]], limit: int):
    """Drive *app* wrapped in UploadLimitMiddleware and collect the response."""
    scope = {"type": "http", "method": "POST", "path": "/generate-from-image", "headers": headers}
    queue = [
        {"type": "http.request", "body": chunk, "more_body": i < len(chunks) - 1}
        for i, chunk in enumerate(chunks)
    ]
    sent: list[dict] = []

    async def receive():
        if queue:
            return queue.pop(0)
        return {"type": "http.disconnect"}

    async def send(message):
        sent.append(message)

    middleware = UploadLimitMiddleware(app, max_upload_bytes=lambda: limit)
    asyncio.run(middleware(scope, receive, send))
    start = next(m for m in sent if m["type"] == "http.response.start")
    body = b"".join(m.get("body", b"") for m in sent if m["type"] == "http.response.body")
    return start["status"], json.loads(body)


class TestUploadLimitMiddleware:
    """Test UploadLimitMiddleware."""

    def test_small_body_passes_through(self):
        app = _ReadingApp()
        status, body = _run_middleware(app, [b"a" * 10, b"b" * 10], [], limit=16)
        assert status == 200
        assert body == {"size": 20}

    def test_declared_length_over_limit_skips_app(self):
        app = _ReadingApp()
        length = str(16 + FORM_OVERHEAD_BYTES + 1).encode()
        status, body = _run_middleware(app, [b""], [(b"content-length", length)], limit=16)
        assert status == 413
        assert body == {"error": "File too large. Maximum size is 16 bytes"}
        assert app.called is False

    def test_streamed_body_over_limit_replaces_response(self):
        app = _ReadingApp()
        chunk = b"x" * (FORM_OVERHEAD_BYTES // 2)
        status, body = _run_middleware(app, [chunk, chunk, chunk], [], limit=16)
        assert status == 413
        assert body == {"error": "File too large. Maximum size is 16 bytes"}
        assert app.called is True

    def test_get_requests_are_not_limited(self):
        sent: list[dict] = []

        async def app(scope, receive, send):
            await JSONResponse({"ok": True})(scope, receive, send)

        async def receive():
            return {"type": "http.request", "body": b"", "more_body": False}

        async def send(message):
            sent.append(message)

        scope = {
            "type": "http",
            "method": "GET",
            "path": "/",
            "headers": [(b"content-length", b"999999999")],
        }
        middleware = UploadLimitMiddleware(app, max_upload_bytes=lambda: 1)
        asyncio.run(middleware(scope, receive, send))
        assert sent[0]["status"] == 200
