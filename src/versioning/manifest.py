"""Field extraction for ZON documents (``build.zig.zon``, ``zig env`` output).

Instead of grepping raw text for a declaration line, the document is split
into tokens (comments, string literals, field names, punctuation) and only
``name = "string"`` triples are reported. This keeps commented-out
declarations and look-alike text inside other strings from being picked up.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Iterator, Optional, Sequence

from constants import Constants
from .models import ManifestVersions

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(
    r"""
    (?P<comment>//[^\n]*)
  | (?P<string>"(?:[^"\\\n]|\\.)*")
  | (?P<quoted_field>\.@"(?:[^"\\\n]|\\.)*")
  | (?P<field>\.?[A-Za-z_][A-Za-z0-9_]*)
  | (?P<punct>[=,{}\[\]().])
  | (?P<ws>\s+)
  | (?P<other>.)
    """,
    re.VERBOSE,
)

_ESCAPES = {"n": "\n", "r": "\r", "t": "\t", "\\": "\\", "'": "'", '"': '"'}


@dataclass(frozen=True)
class Token:
    kind: str
    text: str


def _unescape(body: str) -> str:
    out = []
    i = 0
    while i < len(body):
        ch = body[i]
        if ch != "\\" or i + 1 >= len(body):
            out.append(ch)
            i += 1
            continue
        nxt = body[i + 1]
        if nxt == "x" and i + 4 <= len(body):
            try:
                out.append(chr(int(body[i + 2:i + 4], 16)))
                i += 4
                continue
            except ValueError:
                pass
        out.append(_ESCAPES.get(nxt, nxt))
        i += 2
    return "".join(out)


def tokenize(text: str) -> Iterator[Token]:
    """Yield significant tokens; whitespace and comments are dropped."""
    for match in _TOKEN_RE.finditer(text):
        kind = match.lastgroup or "other"
        if kind in ("ws", "comment"):
            continue
        value = match.group()
        if kind == "string":
            yield Token("string", _unescape(value[1:-1]))
        elif kind == "quoted_field":
            yield Token("field", _unescape(value[3:-1]))
        elif kind == "field":
            yield Token("field", value.lstrip("."))
        else:
            yield Token(kind, value)


def scan_string_fields(text: str) -> Dict[str, str]:
    """Return ``{name: value}`` for every ``name = "value"`` declaration.

    The first declaration of a name wins.
    """
    fields: Dict[str, str] = {}
    tokens = list(tokenize(text))
    for i in range(len(tokens) - 2):
        name, eq, value = tokens[i], tokens[i + 1], tokens[i + 2]
        if name.kind == "field" and eq.text == "=" and value.kind == "string":
            fields.setdefault(name.text, value.text)
    return fields


def _first_present(fields: Dict[str, str], names: Sequence[str]) -> Optional[str]:
    for name in names:
        value = fields.get(name, "").strip()
        if value:
            return value
    return None


def read_manifest_versions(path: Path) -> ManifestVersions:
    """Read the nominated and minimum version fields from a project manifest.

    An unreadable or absent manifest yields an empty result; it is not an error.
    """
    try:
        text = Path(path).read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        logger.debug("Manifest %s not readable: %s", path, exc)
        return ManifestVersions()

    fields = scan_string_fields(text)
    return ManifestVersions(
        nominated=_first_present(fields, Constants.MANIFEST_NOMINATED_FIELDS),
        minimum=_first_present(fields, Constants.MANIFEST_MINIMUM_FIELDS),
    )
