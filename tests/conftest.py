"""Shared pytest fixtures for Gemini Gateway tests."""

import os
import shutil
import tempfile
from pathlib import Path
from typing import Generator

import pytest

# The global config instance creates its scratch directory at import time;
# point it somewhere disposable before any gemini_gateway module is imported.
os.environ.setdefault(
    "GEMINI_GATEWAY_UPLOAD_DIR", str(Path(tempfile.gettempdir()) / "gemini-gateway-test-uploads")
)

from fastapi.testclient import TestClient  # noqa: E402

from gemini_gateway.core.config import GatewayConfig  # noqa: E402
from gemini_gateway.core.errors import UpstreamError  # noqa: E402


class FakeGenerationClient:
    """Stand-in for :class:`GenerationClient` that never touches the network.

    Every call is recorded.  For file calls the fake also captures whether
    the scratch file existed at call time and what it contained, so tests
    can check both the hand-off and the cleanup.

    Attributes:
        output: Text returned by successful calls.
        error_message: When set, calls raise ``UpstreamError`` with it.
    """

    def __init__(self, output: str = "generated text") -> None:
        self.output = output
        self.error_message: str | None = None
        self.text_calls: list[str] = []
        self.file_calls: list[dict] = []

    @property
    def call_count(self) -> int:
        return len(self.text_calls) + len(self.file_calls)

    async def generate_from_text(self, prompt: str) -> str:
        self.text_calls.append(prompt)
        if self.error_message is not None:
            raise UpstreamError(self.error_message)
        return self.output

    async def generate_from_file(self, local_path, mime_type: str, prompt: str) -> str:
        path = Path(local_path)
        self.file_calls.append(
            {
                "path": path,
                "mime_type": mime_type,
                "prompt": prompt,
                "existed": path.exists(),
                "content": path.read_bytes() if path.exists() else None,
            }
        )
        if self.error_message is not None:
            raise UpstreamError(self.error_message)
        return self.output


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for test files.

    Yields:
        Path to temporary directory

    Cleanup:
        Directory is removed after test completes
    """
    temp_path = Path(tempfile.mkdtemp())
    try:
        yield temp_path
    finally:
        shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def upload_dir(temp_dir: Path) -> Path:
    """Scratch directory used by :func:`test_config`."""
    return temp_dir / "uploads"


@pytest.fixture
def test_config(upload_dir: Path) -> GatewayConfig:
    """Create a test configuration with a temporary scratch directory.

    Returns:
        GatewayConfig instance for testing
    """
    return GatewayConfig(
        _env_file=None,
        api_key="test-key",
        model="gemini-test-model",
        upload_dir=upload_dir,
    )


@pytest.fixture
def fake_client() -> FakeGenerationClient:
    """Generation client double returning ``"generated text"``."""
    return FakeGenerationClient()


@pytest.fixture
def test_client(test_config: GatewayConfig, fake_client: FakeGenerationClient):
    """FastAPI TestClient wired to the test config and the fake client.

    The client is not used as a context manager, so the lifespan handler
    (which would build a real Gemini client) never runs.
    """
    from gemini_gateway.api.main import app, get_config, get_generation_client

    app.dependency_overrides[get_config] = lambda: test_config
    app.dependency_overrides[get_generation_client] = lambda: fake_client
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()
