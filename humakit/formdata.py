"""Multipart form file handling: decoding, MIME validation and schemas."""

from __future__ import annotations

import io
from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any, BinaryIO, Callable, Optional

from humakit.errors import ErrorDetail

_SNIFF_LEN = 512
_SNIFF_BUFFER = 1000
_DEFAULT_CONTENT_TYPE = "application/octet-stream"


@dataclass
class FileHeader:
    """One uploaded file part of a multipart form."""

    filename: str = ""
    content: bytes = b""
    headers: Mapping[str, str] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def content_type(self) -> str:
        """The declared Content-Type of the part, or "" if none."""
        for key, value in self.headers.items():
            if key.lower() == "content-type":
                return value
        return ""

    def open(self) -> BinaryIO:
        """Return a fresh readable stream over the file's content."""
        return io.BytesIO(self.content)


@dataclass
class FormFile:
    """A decoded form file; is_set is False for an omitted optional file."""

    file: Optional[BinaryIO] = None
    content_type: str = ""
    is_set: bool = False
    size: int = 0
    filename: str = ""


@dataclass(frozen=True)
class Encoding:
    """Encoding of a multipart field: its accepted content types."""

    content_type: str = ""


@dataclass(frozen=True)
class FormFieldSpec:
    """Describes a file field in a multipart form.

    ``name`` is the key in the decoded data; ``form`` overrides the form key.
    ``multiple`` makes the field a list of files.
    """

    name: str
    multiple: bool = False
    required: bool = False
    form: str = ""
    doc: str = ""
    content_type: str = ""

    @property
    def key(self) -> str:
        return self.form or self.name


# --- content sniffing -----------------------------------------------------

_WS = b"\t\n\x0c\r "
_BINARY_BYTES = frozenset(
    list(range(0x00, 0x09)) + [0x0B] + list(range(0x0E, 0x1B)) + list(range(0x1C, 0x20))
)


def _html(pattern: bytes) -> Callable[[bytes], bool]:
    def match(data: bytes) -> bool:
        data = data.lstrip(_WS)
        if len(data) < len(pattern) + 1:
            return False
        for p, b in zip(pattern, data):
            if 0x41 <= p <= 0x5A:
                b &= 0xDF
            if p != b:
                return False
        return data[len(pattern)] in b" >"

    return match


def _masked(pattern: bytes, mask: bytes, skip_ws: bool = False) -> Callable[[bytes], bool]:
    def match(data: bytes) -> bool:
        if skip_ws:
            data = data.lstrip(_WS)
        if len(data) < len(pattern):
            return False
        return all((b & m) == p for b, m, p in zip(data, mask, pattern))

    return match


def _exact(prefix: bytes) -> Callable[[bytes], bool]:
    return lambda data: data.startswith(prefix)


def _mp4(data: bytes) -> bool:
    if len(data) < 12:
        return False
    box_size = int.from_bytes(data[:4], "big")
    if len(data) < box_size or box_size % 4 != 0:
        return False
    if data[4:8] != b"ftyp":
        return False
    for start in range(8, box_size, 4):
        if start == 12:
            continue
        if data[start:start + 3] == b"mp4":
            return True
    return False


def _text(data: bytes) -> bool:
    return not any(b in _BINARY_BYTES for b in data.lstrip(_WS))


_HTML_CT = "text/html; charset=utf-8"
_RIFF_MASK = b"\xff\xff\xff\xff\x00\x00\x00\x00\xff\xff\xff\xff"

_SIGNATURES: list[tuple[Callable[[bytes], bool], str]] = [
    *(
        (_html(tag), _HTML_CT)
        for tag in (
            b"<!DOCTYPE HTML", b"<HTML", b"<HEAD", b"<SCRIPT", b"<IFRAME", b"<H1",
            b"<DIV", b"<FONT", b"<TABLE", b"<A", b"<STYLE", b"<TITLE", b"<B",
            b"<BODY", b"<BR", b"<P", b"<!--",
        )
    ),
    (_masked(b"<?xml", b"\xff" * 5, skip_ws=True), "text/xml; charset=utf-8"),
    (_exact(b"%PDF-"), "application/pdf"),
    (_exact(b"%!PS-Adobe-"), "application/postscript"),
    (_masked(b"\xfe\xff\x00\x00", b"\xff\xff\x00\x00"), "text/plain; charset=utf-16be"),
    (_masked(b"\xff\xfe\x00\x00", b"\xff\xff\x00\x00"), "text/plain; charset=utf-16le"),
    (_masked(b"\xef\xbb\xbf\x00", b"\xff\xff\xff\x00"), "text/plain; charset=utf-8"),
    (_exact(b"\x00\x00\x01\x00"), "image/x-icon"),
    (_exact(b"\x00\x00\x02\x00"), "image/x-icon"),
    (_exact(b"BM"), "image/bmp"),
    (_exact(b"GIF87a"), "image/gif"),
    (_exact(b"GIF89a"), "image/gif"),
    (_masked(b"RIFF\x00\x00\x00\x00WEBPVP", _RIFF_MASK + b"\xff\xff"), "image/webp"),
    (_exact(b"\x89PNG\x0d\x0a\x1a\x0a"), "image/png"),
    (_exact(b"\xff\xd8\xff"), "image/jpeg"),
    (_masked(b"FORM\x00\x00\x00\x00AIFF", _RIFF_MASK), "audio/aiff"),
    (_exact(b"ID3"), "audio/mpeg"),
    (_exact(b"OggS\x00"), "application/ogg"),
    (_exact(b"MThd\x00\x00\x00\x06"), "audio/midi"),
    (_masked(b"RIFF\x00\x00\x00\x00AVI ", _RIFF_MASK), "video/avi"),
    (_masked(b"RIFF\x00\x00\x00\x00WAVE", _RIFF_MASK), "audio/wave"),
    (_mp4, "video/mp4"),
    (_exact(b"\x1a\x45\xdf\xa3"), "video/webm"),
    (_exact(b"\x00\x01\x00\x00"), "font/ttf"),
    (_exact(b"OTTO"), "font/otf"),
    (_exact(b"ttcf"), "font/collection"),
    (_exact(b"wOFF"), "font/woff"),
    (_exact(b"wOF2"), "font/woff2"),
    (_exact(b"\x1f\x8b\x08"), "application/x-gzip"),
    (_exact(b"PK\x03\x04"), "application/zip"),
    (_exact(b"Rar!\x1a\x07\x00"), "application/x-rar-compressed"),
    (_exact(b"Rar!\x1a\x07\x01\x00"), "application/x-rar-compressed"),
    (_exact(b"\x00\x61\x73\x6d"), "application/wasm"),
    (_text, "text/plain; charset=utf-8"),
]


def detect_content_type(data: bytes) -> str:
    """Sniff a media type from at most the first 512 bytes of data."""
    head = data[:_SNIFF_LEN]
    for match, content_type in _SIGNATURES:
        if match(head):
            return content_type
    return _DEFAULT_CONTENT_TYPE


# --- validation -----------------------------------------------------------


@dataclass(frozen=True)
class MimeTypeValidator:
    """Checks uploaded files against a list of accepted media types."""

    accept: tuple[str, ...] = (_DEFAULT_CONTENT_TYPE,)

    @classmethod
    def from_encoding(cls, encoding: Optional[Encoding]) -> MimeTypeValidator:
        if encoding is None:
            return cls()
        return cls(tuple(part.strip(" ") for part in encoding.content_type.split(",")))

    def _accepts(self, mime_type: str) -> bool:
        return any(
            m in ("text/plain", _DEFAULT_CONTENT_TYPE)
            or (m.endswith("/*") and mime_type.startswith(m.rstrip("*")))
            or mime_type == m
            for m in self.accept
        )

    def validate(self, file_header: FileHeader, location: str) -> str:
        """Return the file's media type, raising ErrorDetail if not accepted.

        Without a declared Content-Type the type is sniffed from the content.
        """
        mime_type = file_header.content_type
        if not mime_type:
            stream = _open(file_header, location)
            with stream:
                buf = stream.read(_SNIFF_BUFFER)
            if not buf:
                raise ErrorDetail(message="Failed to infer file media type", location=location)
            mime_type = detect_content_type(buf.ljust(_SNIFF_BUFFER, b"\x00"))
        if self._accepts(mime_type):
            return mime_type
        raise ErrorDetail(
            message=f"Invalid mime type: got {mime_type}, expected {','.join(self.accept)}",
            location=location,
            value=mime_type,
        )


def _open(file_header: FileHeader, location: str) -> BinaryIO:
    try:
        return file_header.open()
    except OSError as exc:
        raise ErrorDetail(message="Failed to open file", location=location) from exc


# --- decoding -------------------------------------------------------------


class MultipartFormFiles:
    """The file parts of a multipart form, decoded against field specs."""

    def __init__(self, files: Mapping[str, Sequence[FileHeader]]) -> None:
        self.files = files
        self.data: dict[str, Any] = {}

    @staticmethod
    def _read_file(
        file_header: FileHeader, location: str, validator: MimeTypeValidator
    ) -> FormFile:
        stream = _open(file_header, location)
        content_type = validator.validate(file_header, location)
        return FormFile(
            file=stream,
            content_type=content_type,
            is_set=True,
            size=file_header.size,
            filename=file_header.filename,
        )

    def _read_single(
        self, key: str, required: bool, validator: MimeTypeValidator
    ) -> FormFile:
        headers = list(self.files.get(key, ()))
        if not headers:
            if required:
                raise ErrorDetail(message="File required", location=key)
            return FormFile()
        if len(headers) == 1:
            return self._read_file(headers[0], key, validator)
        raise ErrorDetail(
            message="Multiple files received but only one was expected", location=key
        )

    def _read_multiple(
        self, key: str, required: bool, validator: MimeTypeValidator
    ) -> tuple[list[FormFile], list[ErrorDetail]]:
        headers = list(self.files.get(key, ()))
        if required and not headers:
            return [], [ErrorDetail(message="At least one file is required", location=key)]
        files: list[FormFile] = []
        errors: list[ErrorDetail] = []
        for index, file_header in enumerate(headers):
            try:
                files.append(self._read_file(file_header, f"{key}[{index}]", validator))
            except ErrorDetail as err:
                errors.append(err)
                files.append(FormFile())
        return files, errors

    def decode(self, specs: Sequence[FormFieldSpec]) -> list[ErrorDetail]:
        """Decode the files into ``self.data`` and return any validation errors."""
        encodings = multipart_content_encoding(specs)
        data: dict[str, Any] = {}
        errors: list[ErrorDetail] = []
        for spec in specs:
            validator = MimeTypeValidator.from_encoding(encodings.get(spec.key))
            if spec.multiple:
                files, errs = self._read_multiple(spec.key, spec.required, validator)
                if errs:
                    errors.extend(errs)
                    data[spec.name] = []
                    continue
                data[spec.name] = files
            else:
                try:
                    data[spec.name] = self._read_single(spec.key, spec.required, validator)
                except ErrorDetail as err:
                    errors.append(err)
                    data[spec.name] = FormFile()
        self.data = data
        return errors


# --- schema ---------------------------------------------------------------


def _file_schema(spec: FormFieldSpec) -> dict[str, Any]:
    schema: dict[str, Any] = {
        "type": "string",
        "format": "binary",
        "contentEncoding": "binary",
    }
    if spec.doc:
        schema["description"] = spec.doc
    return schema


def multipart_form_schema(specs: Sequence[FormFieldSpec]) -> dict[str, Any]:
    """Build the JSON Schema object describing the form's file fields."""
    properties: dict[str, Any] = {}
    required: list[str] = []
    for spec in specs:
        file_schema = _file_schema(spec)
        properties[spec.key] = (
            {"type": "array", "items": file_schema} if spec.multiple else file_schema
        )
        if spec.required:
            required.append(spec.key)
    return {"type": "object", "properties": properties, "required": required}


def multipart_content_encoding(specs: Sequence[FormFieldSpec]) -> dict[str, Encoding]:
    """Map each form key to its encoding, defaulting to application/octet-stream."""
    return {
        spec.key: Encoding(content_type=spec.content_type or _DEFAULT_CONTENT_TYPE)
        for spec in specs
    }