"""Structured Info.plist access.

Reads go through ``plistlib``. Writes change only ``CFBundleIdentifier``:
for XML plists the new ``<string>`` value is spliced into the original bytes
(or a new entry is inserted at the end of the root dictionary) and the result
is re-parsed to confirm nothing else moved. Binary plists are re-serialised
from the parsed dictionary with key order preserved.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
import plistlib
import re
import tempfile
from typing import Any
from xml.parsers.expat import ExpatError
from xml.sax.saxutils import escape

from bundlefix.core.errors import RewriteError

logger = logging.getLogger(__name__)

METADATA_FILENAME = "Info.plist"
IDENTIFIER_KEY = "CFBundleIdentifier"

_BINARY_MAGIC = b"bplist00"
_IDENTIFIER_ENTRY = re.compile(
    rb"(<key>\s*" + IDENTIFIER_KEY.encode() + rb"\s*</key>\s*)"
    rb"(<string>[^<]*</string>|<string\s*/>"
    rb"|<(?P<tag>integer|real|date|data)>[^<]*</(?P=tag)>|<(?:true|false)\s*/>)"
)
_ROOT_DICT_OPEN = re.compile(rb"<plist[^>]*>(?:\s|<!--.*?-->)*<dict\s*>", re.DOTALL)
_ROOT_DICT_CLOSE = re.compile(rb"</dict>(?=\s*</plist>\s*\Z)")
_EMPTY_ROOT_DICT = re.compile(rb"<dict\s*/>(?=\s*</plist>\s*\Z)")
_KEY_LINE = re.compile(rb"\n([ \t]*)<key>")


def _read_bytes(path: Path) -> bytes:
    if not path.is_file():
        raise RewriteError("Metadata file is missing", path=path)
    try:
        return path.read_bytes()
    except OSError as e:
        raise RewriteError(f"Metadata file is unreadable: {e}", path=path) from e


def _parse(raw: bytes, path: Path) -> dict[str, Any]:
    try:
        data = plistlib.loads(raw)
    except (plistlib.InvalidFileException, ExpatError, ValueError, TypeError, OverflowError) as e:
        raise RewriteError(f"Metadata file is not a valid plist: {e}", path=path) from e
    if not isinstance(data, dict):
        raise RewriteError("Metadata plist root is not a dictionary", path=path)
    return data


def load_metadata(path: Path | str) -> dict[str, Any]:
    """Parse a metadata plist.

    Raises:
        RewriteError: If the file is missing, unreadable or not a dictionary plist
    """
    path = Path(path)
    return _parse(_read_bytes(path), path)


def read_identifier(path: Path | str) -> str | None:
    """Return the CFBundleIdentifier of a plist, or None if absent or empty.

    Raises:
        RewriteError: If the file cannot be parsed
    """
    path = Path(path)
    value = load_metadata(path).get(IDENTIFIER_KEY)
    if value is None:
        return None
    if not isinstance(value, str):
        logger.warning(f"{path}: {IDENTIFIER_KEY} is not a string ({type(value).__name__})")
        return None
    return value or None


def _splice_xml(raw: bytes, expected: dict[str, Any], identifier: str) -> bytes | None:
    """Replace the top-level identifier value in XML bytes, keeping all other bytes.

    Nested dictionaries may declare the same key, so each match is tried in
    turn and accepted only if the re-parsed document equals ``expected``.
    """
    replacement = f"<string>{escape(identifier)}</string>".encode()
    for match in _IDENTIFIER_ENTRY.finditer(raw):
        candidate = raw[: match.start(2)] + replacement + raw[match.end(2) :]
        try:
            if plistlib.loads(candidate) == expected:
                return candidate
        except (plistlib.InvalidFileException, ExpatError, ValueError):
            continue
    return None


def _line_indent(raw: bytes, pos: int) -> bytes | None:
    """Whitespace before ``pos`` on its line, or None if other text precedes it."""
    start = raw.rfind(b"\n", 0, pos) + 1
    prefix = raw[start:pos]
    return prefix if not prefix.strip() else None


def _insert_xml(raw: bytes, expected: dict[str, Any], identifier: str) -> bytes | None:
    """Append the identifier entry to the root dictionary of XML bytes.

    The entry goes just before the closing ``</dict>`` and copies the
    indentation of the sibling keys. Returns None unless the re-parsed
    document equals ``expected``.
    """
    newline = b"\r\n" if b"\r\n" in raw else b"\n"
    key = f"<key>{IDENTIFIER_KEY}</key>".encode()
    value = f"<string>{escape(identifier)}</string>".encode()

    empty = _EMPTY_ROOT_DICT.search(raw)
    if empty is not None:
        outer = _line_indent(raw, empty.start()) or b""
        inner = outer + b"\t"
        block = (
            b"<dict>" + newline + inner + key + newline + inner + value + newline
            + outer + b"</dict>"
        )
        candidate = raw[: empty.start()] + block + raw[empty.end() :]
    else:
        opening = _ROOT_DICT_OPEN.search(raw)
        closing = _ROOT_DICT_CLOSE.search(raw)
        if opening is None or closing is None:
            return None
        outer = _line_indent(raw, closing.start())
        sibling = _KEY_LINE.search(raw, opening.end(), closing.start())
        if outer is None:
            # Root dictionary closes on a line with other content
            candidate = raw[: closing.start()] + key + value + raw[closing.start() :]
        else:
            inner = sibling.group(1) if sibling is not None else outer + b"\t"
            line_start = closing.start() - len(outer)
            block = inner + key + newline + inner + value + newline
            candidate = raw[:line_start] + block + raw[line_start:]

    try:
        if plistlib.loads(candidate) == expected:
            return candidate
    except (plistlib.InvalidFileException, ExpatError, ValueError):
        pass
    return None


def _atomic_write(path: Path, payload: bytes) -> None:
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", dir=path.parent)
    tmp_path = Path(tmp_name)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(payload)
        os.chmod(tmp_path, path.stat().st_mode & 0o7777)
        os.replace(tmp_path, path)
    except OSError:
        tmp_path.unlink(missing_ok=True)
        raise


def write_identifier(path: Path | str, identifier: str) -> bool:
    """Set CFBundleIdentifier in a plist, leaving every other field untouched.

    Args:
        path: Metadata plist
        identifier: New identifier

    Returns:
        True if the file changed, False if it already held ``identifier``

    Raises:
        RewriteError: If the file is missing, unreadable, malformed or unwritable
    """
    path = Path(path)
    raw = _read_bytes(path)
    data = _parse(raw, path)

    if data.get(IDENTIFIER_KEY) == identifier:
        return False

    expected = dict(data)
    expected[IDENTIFIER_KEY] = identifier

    payload: bytes | None = None
    if raw.startswith(_BINARY_MAGIC):
        payload = plistlib.dumps(expected, fmt=plistlib.FMT_BINARY, sort_keys=False)
    else:
        payload = _splice_xml(raw, expected, identifier)
        if payload is None and IDENTIFIER_KEY not in data:
            logger.debug(f"{path}: no {IDENTIFIER_KEY} entry, inserting one")
            payload = _insert_xml(raw, expected, identifier)
        if payload is None:
            raise RewriteError(
                f"Could not update {IDENTIFIER_KEY} without reformatting the plist", path=path
            )

    try:
        _atomic_write(path, payload)
    except OSError as e:
        raise RewriteError(f"Could not write metadata file: {e}", path=path) from e
    return True
