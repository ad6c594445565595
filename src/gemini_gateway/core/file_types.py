"""File-type gating for the document and audio routes.

The image route accepts any upload; only documents and audio are checked
against an extension allowlist.
"""

from __future__ import annotations

from collections.abc import Iterable

from gemini_gateway.core.errors import UnsupportedType

DOCUMENT_EXTENSIONS: tuple[str, ...] = (".pdf", ".txt", ".doc", ".docx", ".ppt", ".pptx")
AUDIO_EXTENSIONS: tuple[str, ...] = (".mp3", ".wav", ".m4a", ".flac", ".ogg")


def extension(filename: str | None) -> str:
    """Return the lowercase extension of *filename*, including the dot.

    The extension is everything from the last ``.`` onwards, so a dotfile
    such as ``".hidden"`` is its own extension.  Names without a dot yield
    an empty string.

    Examples:
        >>> extension("photo.JPG")
        '.jpg'
        >>> extension(".hidden")
        '.hidden'
        >>> extension("noext")
        ''
    """
    if not filename:
        return ""
    idx = filename.rfind(".")
    if idx == -1:
        return ""
    return filename[idx:].lower()


def describe_extensions(allowed: Iterable[str]) -> str:
    """Format an allowlist for error messages, e.g. ``"MP3, WAV"``."""
    return ", ".join(ext.lstrip(".").upper() for ext in allowed)


def check_extension(filename: str | None, allowed: Iterable[str], kind: str) -> str:
    """Validate *filename* against an allowlist and return its extension.

    Args:
        filename: Original filename as sent by the client.
        allowed: Accepted extensions, lowercase with leading dot.
        kind: Human-readable file kind used in the error message
            (``"document"``, ``"audio"``).

    Returns:
        The lowercase extension of *filename*.

    Raises:
        UnsupportedType: If the extension is not in *allowed*.
    """
    allowed = tuple(allowed)
    ext = extension(filename)
    if ext not in allowed:
        raise UnsupportedType(
            f"Unsupported {kind} type. Supported: {describe_extensions(allowed)}"
        )
    return ext
