"""Infrastructure: reading local files for upload and content replacement."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import TextIO

from candlekeep.core.models import UploadRequest
from candlekeep.core.upload_service import content_type_for
from candlekeep.exceptions import InvalidInputError, UploadInputError


def read_upload_payload(path: Path) -> tuple[UploadRequest, bytes]:
    """Load *path* and describe it for the ticket request.

    Raises
    ------
    UploadInputError
        When the file is missing or unreadable.
    UnsupportedFileTypeError
        When the extension is not PDF or Markdown.
    """
    if not path.is_file():
        raise UploadInputError(f"File not found: {path}")
    content_type = content_type_for(path.name)
    try:
        data = path.read_bytes()
    except OSError as exc:
        raise UploadInputError(f"Failed to read file {path}: {exc}") from exc
    return UploadRequest(filename=path.name, size=len(data), content_type=content_type), data


def read_text_content(path: Path | None, stdin: TextIO | None = None) -> str:
    """Return document text from *path*, or from stdin when *path* is ``None``.

    Raises
    ------
    InvalidInputError
        When the file is missing or the text is blank.
    """
    if path is not None:
        if not path.is_file():
            raise InvalidInputError(f"File not found: {path}")
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            raise InvalidInputError(f"Failed to read file {path}: {exc}") from exc
    else:
        content = (stdin or sys.stdin).read()

    if not content.strip():
        raise InvalidInputError("No content provided.")
    return content
