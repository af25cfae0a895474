"""Body formats used for marshaling and unmarshaling request/response bodies."""

from __future__ import annotations

import datetime as _dt
import json
from dataclasses import dataclass
from typing import Any, BinaryIO, Callable, Union

import cbor2

_HTML_ESCAPES = {
    "<": "\\u003c",
    ">": "\\u003e",
    "&": "\\u0026",
    "\u2028": "\\u2028",
    "\u2029": "\\u2029",
}


@dataclass(frozen=True)
class Format:
    """A pair of functions writing a value to a stream and reading it back."""

    marshal: Callable[[BinaryIO, Any], None]
    unmarshal: Callable[[Union[bytes, str]], Any]


def json_marshal(stream: BinaryIO, value: Any) -> None:
    """Write compact JSON followed by a newline, with HTML-sensitive characters escaped."""
    text = json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    # These characters can only appear inside JSON strings, so a plain
    # replacement keeps the document valid.
    for char, escaped in _HTML_ESCAPES.items():
        text = text.replace(char, escaped)
    stream.write(text.encode("utf-8") + b"\n")


def json_unmarshal(data: Union[bytes, str]) -> Any:
    """Parse a JSON document."""
    return json.loads(data)


def cbor_marshal(stream: BinaryIO, value: Any) -> None:
    """Write canonical CBOR; times are encoded as tagged Unix timestamps."""
    cbor2.dump(
        value,
        stream,
        canonical=True,
        datetime_as_timestamp=True,
        timezone=_dt.timezone.utc,
    )


def cbor_unmarshal(data: bytes) -> Any:
    """Parse a CBOR document."""
    return cbor2.loads(data)


DEFAULT_JSON_FORMAT = Format(marshal=json_marshal, unmarshal=json_unmarshal)
DEFAULT_CBOR_FORMAT = Format(marshal=cbor_marshal, unmarshal=cbor_unmarshal)


def default_formats() -> dict[str, Format]:
    """Return a fresh map of content types and short names to formats."""
    return {
        "application/json": DEFAULT_JSON_FORMAT,
        "json": DEFAULT_JSON_FORMAT,
        "application/cbor": DEFAULT_CBOR_FORMAT,
        "cbor": DEFAULT_CBOR_FORMAT,
    }