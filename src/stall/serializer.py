"""Stall file serialization.

Two on-disk formats are supported:

- STRUCTURED: a JSON document validated with pydantic::

      {"entries": [{"local": ".vimrc", "remote": "/home/u/.vimrc"}]}

- LIST: one record per line. A bare path is a remote path whose local name
  is its base name; ``local<TAB>remote`` sets the local name explicitly.
  Blank lines and lines starting with ``#`` or ``//`` are ignored.
  A field that would be misread (leading comment marker or quote, leading
  or trailing whitespace, tabs or line breaks) is written as a JSON string
  literal.

The format is resolved once at load time; everything downstream works on
StallRecord lists.
"""

from __future__ import annotations

import json
import logging
from enum import Enum
from pathlib import Path, PurePath

from pydantic import BaseModel, ConfigDict, ValidationError

from stall.core.types import (
    InvalidNameError,
    ParseError,
    StallRecord,
    normalize_local_name,
)

logger = logging.getLogger(__name__)

LIST_HEADER = "# stall file list: <remote> or <local><TAB><remote>"
LIST_COMMENT_PREFIXES = ("#", "//")
LIST_QUOTE = '"'

_decoder = json.JSONDecoder()


class ConfigFormat(str, Enum):
    """On-disk format of the stall file."""

    STRUCTURED = "json"
    LIST = "list"


class EntryModel(BaseModel):
    """One record of the structured format."""

    model_config = ConfigDict(extra="forbid")

    local: str
    remote: str


class StallDocument(BaseModel):
    """Top-level document of the structured format."""

    model_config = ConfigDict(extra="forbid")

    entries: list[EntryModel] = []


def parse(data: bytes, fmt: ConfigFormat) -> list[StallRecord]:
    """Parse stall file content in the given format.

    Args:
        data: Raw file content.
        fmt: Format to parse.

    Returns:
        Records in file order.

    Raises:
        ParseError: If the content is not valid for the format, or if two
            records share a local name.
    """
    if fmt is ConfigFormat.STRUCTURED:
        records = _parse_structured(data)
    else:
        records = _parse_list(data)
    _check_unique(records)
    return records


def parse_any(data: bytes) -> tuple[list[StallRecord], ConfigFormat]:
    """Parse stall file content, inferring its format.

    The structured parser is tried first; on failure the list parser is used.

    Returns:
        (records, detected format) tuple.
    """
    try:
        return parse(data, ConfigFormat.STRUCTURED), ConfigFormat.STRUCTURED
    except ParseError as e:
        logger.debug(f"Not a structured stall file, switching to list format: {e}")
    return parse(data, ConfigFormat.LIST), ConfigFormat.LIST


def serialize(records: list[StallRecord], fmt: ConfigFormat) -> bytes:
    """Serialize records in the given format."""
    if fmt is ConfigFormat.STRUCTURED:
        document = StallDocument(
            entries=[
                EntryModel(local=r.local_name, remote=str(r.remote_path))
                for r in records
            ]
        )
        return (document.model_dump_json(indent=2) + "\n").encode("utf-8")

    lines = [LIST_HEADER]
    for record in records:
        remote = str(record.remote_path)
        if record.local_name == PurePath(remote).name:
            lines.append(_quote(remote))
        else:
            lines.append(f"{_quote(record.local_name)}\t{_quote(remote)}")
    return ("\n".join(lines) + "\n").encode("utf-8")


def _parse_structured(data: bytes) -> list[StallRecord]:
    try:
        document = StallDocument.model_validate_json(data)
    except ValidationError as e:
        raise ParseError(f"invalid structured stall file: {e}") from e

    records = []
    for entry in document.entries:
        try:
            local_name = normalize_local_name(entry.local)
        except InvalidNameError as e:
            raise ParseError(str(e)) from e
        records.append(StallRecord(local_name=local_name, remote_path=Path(entry.remote)))
    return records


def _parse_list(data: bytes) -> list[StallRecord]:
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as e:
        raise ParseError(f"stall file is not valid UTF-8: {e}") from e

    records = []
    for lineno, raw in enumerate(text.split("\n"), start=1):
        line = raw.rstrip("\r")
        stripped = line.strip()
        if not stripped or stripped.startswith(LIST_COMMENT_PREFIXES):
            continue

        fields = _split_fields(line, lineno)
        try:
            if len(fields) == 1:
                records.append(StallRecord.from_remote(fields[0]))
                continue
            local, remote = fields
            if not remote:
                raise ParseError(f"line {lineno}: missing remote path")
            records.append(
                StallRecord(local_name=normalize_local_name(local), remote_path=Path(remote))
            )
        except InvalidNameError as e:
            raise ParseError(f"line {lineno}: {e}") from e
    return records


def _split_fields(line: str, lineno: int) -> list[str]:
    """Split a list line into one or two tab-separated fields."""
    fields = []
    pos = 0
    while True:
        value, pos = _read_field(line, pos, lineno)
        fields.append(value)
        if pos >= len(line):
            return fields
        if len(fields) == 2:
            raise ParseError(f"line {lineno}: too many fields")
        pos += 1  # skip the tab


def _read_field(line: str, pos: int, lineno: int) -> tuple[str, int]:
    """Read one field starting at pos; returns the value and the end offset."""
    end = line.find("\t", pos)
    if end == -1:
        end = len(line)

    start = pos
    while start < end and line[start].isspace():
        start += 1
    if start == end or line[start] != LIST_QUOTE:
        return line[pos:end].strip(), end

    # Quoted fields never hold a raw tab, so end is past the closing quote
    try:
        value, stop = _decoder.raw_decode(line, start)
    except json.JSONDecodeError as e:
        raise ParseError(f"line {lineno}: invalid quoted field: {e.msg}") from e
    if stop > end or line[stop:end].strip():
        raise ParseError(f"line {lineno}: unexpected text after quoted field")
    return value, end


def _quote(field: str) -> str:
    """Quote a list field that would not read back unchanged."""
    if (
        not field
        or field.startswith(LIST_COMMENT_PREFIXES + (LIST_QUOTE,))
        or field != field.strip()
        or any(ch < " " or ch == "\x7f" for ch in field)
    ):
        return json.dumps(field, ensure_ascii=False)
    return field


def _check_unique(records: list[StallRecord]) -> None:
    seen: set[str] = set()
    for record in records:
        if record.local_name in seen:
            raise ParseError(f"duplicate stall entry: {record.local_name}")
        seen.add(record.local_name)
