"""Reading documents from disk for the headless workspace."""

from __future__ import annotations

import codecs
import locale
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

__all__ = ["DecodedText", "DocumentFormat", "decode_bytes", "read_document", "detect_format"]

_BOM_MAP: tuple[tuple[bytes, str], ...] = (
    # UTF-32 LE starts with the UTF-16 LE BOM, so it must be checked first
    (codecs.BOM_UTF32_LE, "utf-32-le"),
    (codecs.BOM_UTF32_BE, "utf-32-be"),
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF16_LE, "utf-16-le"),
    (codecs.BOM_UTF16_BE, "utf-16-be"),
)


class DocumentFormat(Enum):
    """Document formats recognised from a file suffix."""

    MARKDOWN = "markdown"
    YAML = "yaml"
    JSON = "json"
    PYTHON = "python"
    TEXT = "text"


_SUFFIX_FORMATS: dict[str, DocumentFormat] = {
    ".md": DocumentFormat.MARKDOWN,
    ".markdown": DocumentFormat.MARKDOWN,
    ".yaml": DocumentFormat.YAML,
    ".yml": DocumentFormat.YAML,
    ".json": DocumentFormat.JSON,
    ".py": DocumentFormat.PYTHON,
}


@dataclass(slots=True, frozen=True)
class DecodedText:
    """Text decoded from disk plus what was detected along the way.

    ``newline`` is the first line terminator found in the raw text (``"\\n"``
    when there is none); ``text`` itself always uses ``"\\n"``.
    """

    text: str
    encoding: str
    newline: str = "\n"


def decode_bytes(raw: bytes, *, encoding: str | None = None) -> DecodedText:
    """Decode ``raw`` using its BOM, then UTF-8, the locale encoding and latin-1."""

    detected = encoding or _detect_encoding(raw)
    text = raw.decode(detected).removeprefix("\ufeff")
    newline = _first_newline(text)
    if "\r" in text:
        text = text.replace("\r\n", "\n").replace("\r", "\n")
    return DecodedText(text=text, encoding=detected, newline=newline)


def read_document(path: Path | str, *, encoding: str | None = None) -> DecodedText:
    """Read ``path`` and return its normalised text with the detected encoding."""

    return decode_bytes(Path(path).read_bytes(), encoding=encoding)


def detect_format(path: Path | str | None) -> DocumentFormat:
    """Infer a document format from the file suffix, defaulting to plain text."""

    if not path:
        return DocumentFormat.TEXT
    return _SUFFIX_FORMATS.get(Path(path).suffix.lower(), DocumentFormat.TEXT)


def _detect_encoding(raw: bytes) -> str:
    for bom, name in _BOM_MAP:
        if raw.startswith(bom):
            return name

    candidates = dict.fromkeys(("utf-8", locale.getpreferredencoding(False) or "utf-8", "latin-1"))
    for candidate in candidates:
        try:
            raw.decode(candidate)
        except (UnicodeDecodeError, LookupError):
            continue
        return candidate
    return "latin-1"


def _first_newline(text: str) -> str:
    index = text.find("\r")
    if index == -1:
        return "\n"
    if "\n" in text[:index]:
        return "\n"
    if text.startswith("\r\n", index):
        return "\r\n"
    return "\r"
