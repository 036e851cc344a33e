"""Media handling for data parts returned by the model.

The agent loop hands every :class:`InlineDataPart` / :class:`FileDataPart`
to a :class:`MediaHandler` and shows the returned text to the user.
"""

from __future__ import annotations

import base64
import binascii
import logging
import mimetypes
import tempfile
from pathlib import Path
from typing import Protocol, runtime_checkable

from aicommand.core.interface.models import FileDataPart, InlineDataPart

logger = logging.getLogger(__name__)


@runtime_checkable
class MediaHandler(Protocol):
    def handle(self, part: InlineDataPart | FileDataPart) -> str: ...


class TempFileMediaHandler:
    """Writes inline data to a temporary file and reports its path.

    File references are only reported; their URIs may expire.
    """

    def __init__(self, directory: Path | None = None, prefix: str = "ai-generated-image") -> None:
        self._directory = directory
        self._prefix = prefix

    def handle(self, part: InlineDataPart | FileDataPart) -> str:
        if isinstance(part, FileDataPart):
            return f"File: {part.uri}"

        try:
            data = decode_base64_data(part.base64_data)
        except (binascii.Error, ValueError) as exc:
            logger.warning("Could not decode inline %s data: %s", part.mime_type, exc)
            return f"Received {part.mime_type} data that could not be decoded."

        path = self.save(data, part.mime_type)
        logger.debug("Saved %d bytes of %s to %s", len(data), part.mime_type, path)
        return f"Generated image: {path}"

    def save(self, data: bytes, mime_type: str) -> Path:
        suffix = _extension_for(mime_type)
        with tempfile.NamedTemporaryFile(
            prefix=f"{self._prefix}-",
            suffix=suffix,
            dir=self._directory,
            delete=False,
        ) as handle:
            handle.write(data)
        return Path(handle.name)


def decode_base64_data(value: str) -> bytes:
    """Decode raw base64 or a ``data:<mime>;base64,<payload>`` URL."""
    if value.startswith("data:"):
        _, _, value = value.partition(",")
    return base64.b64decode(value, validate=True)


def _extension_for(mime_type: str) -> str:
    guessed = mimetypes.guess_extension(mime_type)
    if guessed:
        return guessed
    _, _, subtype = mime_type.partition("/")
    return f".{subtype}" if subtype else ""
