"""Output parsing helpers shared across transports.

PowerShell running without a console serializes error records to stderr as
CLIXML::

    #< CLIXML
    <Objs Version="1.1.0.1" xmlns="http://schemas.microsoft.com/powershell/2004/04">
      <Obj S="progress" RefId="0">...</Obj>
      <S S="Error">Cannot find path 'C:\\missing' because it does not exist._x000D__x000A_</S>
    </Objs>

Only ``<S S="Error">`` nodes carry the message, one line per node, each node
closed by a single ``_x000D__x000A_`` terminator. Control characters inside
text nodes are written as ``_xHHHH_`` UTF-16 code units, and a literal
underscore followed by ``x`` is itself escaped as ``_x005F_``.
"""

from __future__ import annotations

import json
import re
from typing import Any
from xml.etree import ElementTree
from xml.sax.saxutils import escape as xml_escape

from .errors import ProtocolError

CLIXML_PREFIX = "#< CLIXML"
PS_NAMESPACE = "http://schemas.microsoft.com/powershell/2004/04"
ERROR_STREAM = "error"

LINE_TERMINATOR = "_x000D__x000A_"

_ESCAPE_RE = re.compile(r"_x000D__x000A_|_x([0-9A-Fa-f]{4})_")
_NEEDS_ESCAPE_RE = re.compile(r"_(?=[xX])|[\x00-\x1f\x7f]")


def is_clixml(text: str | None) -> bool:
    return bool(text) and text.startswith(CLIXML_PREFIX)


def unescape_clixml(text: str) -> str:
    """Turn ``_xHHHH_`` sequences back into characters, CRLF into ``\\n``."""

    def replace(match: re.Match[str]) -> str:
        if match.group(1) is None:
            return "\n"
        return chr(int(match.group(1), 16))

    decoded = _ESCAPE_RE.sub(replace, text)
    # Astral characters arrive as two escaped surrogates.
    return decoded.encode("utf-16-le", "surrogatepass").decode("utf-16-le", "surrogatepass")


def escape_clixml(text: str) -> str:
    def replace(match: re.Match[str]) -> str:
        return f"_x{ord(match.group(0)):04X}_"

    return _NEEDS_ESCAPE_RE.sub(replace, text)


def decode_clixml(text: str) -> str:
    """Return the error message carried by a CLIXML stderr payload.

    Input without the ``#< CLIXML`` sentinel is returned unchanged. Several
    envelopes in one payload are decoded in order. Whitespace inside the
    message is kept as sent.
    """
    if not is_clixml(text):
        return text

    segments: list[str] = []
    for document in text.split(CLIXML_PREFIX):
        document = document.strip()
        if not document:
            continue
        try:
            root = ElementTree.fromstring(document)
        except ElementTree.ParseError as exc:
            raise ProtocolError(f"clixml: cannot parse error stream: {exc}", context=text) from exc
        segments.extend(_error_segments(root))

    return "\n".join(segments)


def encode_clixml(message: str) -> str:
    """Serialize ``message`` the way PowerShell writes an error record to stderr.

    Lines are split on ``\\n`` only; a carriage return stays in its line as
    ``_x000D_`` so ``decode_clixml`` gives back exactly ``message``.
    """
    nodes = "".join(
        f'<S S="Error">{xml_escape(escape_clixml(line))}{LINE_TERMINATOR}</S>'
        for line in message.split("\n")
    )
    return f'{CLIXML_PREFIX}\r\n<Objs Version="1.1.0.1" xmlns="{PS_NAMESPACE}">{nodes}</Objs>'


def error_message(stderr: str | None) -> str:
    """Human-readable failure text for a non-empty stderr, surrounding whitespace trimmed."""
    if not stderr:
        return "Error occurred"
    return decode_clixml(stderr).strip() or "Error occurred"


def parse_json_output(stdout: str | None) -> Any:
    """Unmarshal ``ConvertTo-Json`` output; empty output yields ``None``."""
    text = (stdout or "").strip()
    if not text:
        return None
    try:
        return json.loads(text)
    except json.JSONDecodeError as exc:
        raise ProtocolError(f"Invalid JSON output: {exc}", context=text) from exc


def _error_segments(root: ElementTree.Element) -> list[str]:
    segments = []
    for node in root:
        if _local_name(node.tag) != "S" or node.get("S", "").lower() != ERROR_STREAM:
            continue
        text = node.text or ""
        if text.endswith(LINE_TERMINATOR):
            text = text[: -len(LINE_TERMINATOR)]
        segments.append(unescape_clixml(text))
    return segments


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


__all__ = [
    "CLIXML_PREFIX",
    "decode_clixml",
    "encode_clixml",
    "error_message",
    "escape_clixml",
    "is_clixml",
    "parse_json_output",
    "unescape_clixml",
]
