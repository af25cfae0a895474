"""Error models for HTTP APIs based on RFC 9457 Problem Details."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from typing import Any, Optional, Union

_STATUS_TEXT: dict[int, str] = {
    100: "Continue",
    101: "Switching Protocols",
    102: "Processing",
    103: "Early Hints",
    200: "OK",
    201: "Created",
    202: "Accepted",
    203: "Non-Authoritative Information",
    204: "No Content",
    205: "Reset Content",
    206: "Partial Content",
    207: "Multi-Status",
    208: "Already Reported",
    226: "IM Used",
    300: "Multiple Choices",
    301: "Moved Permanently",
    302: "Found",
    303: "See Other",
    304: "Not Modified",
    305: "Use Proxy",
    307: "Temporary Redirect",
    308: "Permanent Redirect",
    400: "Bad Request",
    401: "Unauthorized",
    402: "Payment Required",
    403: "Forbidden",
    404: "Not Found",
    405: "Method Not Allowed",
    406: "Not Acceptable",
    407: "Proxy Authentication Required",
    408: "Request Timeout",
    409: "Conflict",
    410: "Gone",
    411: "Length Required",
    412: "Precondition Failed",
    413: "Request Entity Too Large",
    414: "Request URI Too Long",
    415: "Unsupported Media Type",
    416: "Requested Range Not Satisfiable",
    417: "Expectation Failed",
    418: "I'm a teapot",
    421: "Misdirected Request",
    422: "Unprocessable Entity",
    423: "Locked",
    424: "Failed Dependency",
    425: "Too Early",
    426: "Upgrade Required",
    428: "Precondition Required",
    429: "Too Many Requests",
    431: "Request Header Fields Too Large",
    451: "Unavailable For Legal Reasons",
    500: "Internal Server Error",
    501: "Not Implemented",
    502: "Bad Gateway",
    503: "Service Unavailable",
    504: "Gateway Timeout",
    505: "HTTP Version Not Supported",
    506: "Variant Also Negotiates",
    507: "Insufficient Storage",
    508: "Loop Detected",
    510: "Not Extended",
    511: "Network Authentication Required",
}


def status_text(status: int) -> str:
    """Return the standard reason phrase for a status code, or "" if unknown."""
    return _STATUS_TEXT.get(status, "")


def _iter_chain(err: Optional[BaseException]) -> Iterator[BaseException]:
    """Yield an exception followed by the exceptions it was raised from."""
    seen: set[int] = set()
    while err is not None and id(err) not in seen:
        seen.add(id(err))
        yield err
        if err.__cause__ is not None:
            err = err.__cause__
        elif not err.__suppress_context__:
            err = err.__context__
        else:
            err = None


class ErrorDetail(Exception):
    """Details about one specific error, e.g. a failed validation."""

    def __init__(self, message: str = "", location: str = "", value: Any = None) -> None:
        super().__init__(message)
        self.message = message
        self.location = location
        self.value = value

    def __str__(self) -> str:
        if not self.location and self.value is None:
            return self.message
        return f"{self.message} ({self.location}: {self.value})"

    def __repr__(self) -> str:
        return (
            f"ErrorDetail(message={self.message!r}, "
            f"location={self.location!r}, value={self.value!r})"
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ErrorDetail):
            return NotImplemented
        return (self.message, self.location, self.value) == (
            other.message,
            other.location,
            other.value,
        )

    __hash__ = Exception.__hash__

    def error_detail(self) -> ErrorDetail:
        """Return this detail; lets custom errors supply their own details."""
        return self

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, omitting empty fields."""
        out: dict[str, Any] = {}
        if self.message:
            out["message"] = self.message
        if self.location:
            out["location"] = self.location
        if self.value is not None:
            out["value"] = self.value
        return out


class StatusError(Exception):
    """An error carrying the HTTP status code to send to the client."""

    def __init__(self, status: int, message: str = "") -> None:
        super().__init__(message)
        self.status = status

    def get_status(self) -> int:
        return self.status


def _to_detail(err: BaseException) -> ErrorDetail:
    detailer = getattr(err, "error_detail", None)
    if callable(detailer):
        return detailer()
    return ErrorDetail(message=str(err))


class ErrorModel(StatusError):
    """RFC 9457 problem details, with a list of individual error details."""

    def __init__(
        self,
        status: int = 0,
        title: str = "",
        detail: str = "",
        type: str = "",
        instance: str = "",
        errors: Optional[list[ErrorDetail]] = None,
    ) -> None:
        super().__init__(status, detail)
        self.title = title
        self.detail = detail
        self.type = type
        self.instance = instance
        self.errors: list[ErrorDetail] = list(errors) if errors else []

    def __str__(self) -> str:
        return self.detail

    def __repr__(self) -> str:
        return (
            f"ErrorModel(status={self.status!r}, title={self.title!r}, "
            f"detail={self.detail!r}, errors={self.errors!r})"
        )

    def add(self, err: BaseException) -> None:
        """Append an error, using its own details if it provides them."""
        self.errors.append(_to_detail(err))

    def get_status(self) -> int:
        return self.status

    def content_type(self, ct: str) -> str:
        """Map a response content type to its problem-details variant."""
        if ct == "application/json":
            return "application/problem+json"
        if ct == "application/cbor":
            return "application/problem+cbor"
        return ct

    def to_dict(self) -> dict[str, Any]:
        """Serializable form, omitting empty fields."""
        out: dict[str, Any] = {}
        if self.type:
            out["type"] = self.type
        if self.title:
            out["title"] = self.title
        if self.status:
            out["status"] = self.status
        if self.detail:
            out["detail"] = self.detail
        if self.instance:
            out["instance"] = self.instance
        if self.errors:
            out["errors"] = [e.to_dict() for e in self.errors]
        return out


HeaderValues = Union[str, "list[str]", "tuple[str, ...]"]


def _canonical_header_key(key: str) -> str:
    return "-".join(part[:1].upper() + part[1:].lower() for part in key.split("-"))


def _normalize_headers(headers: Mapping[str, HeaderValues]) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for key, values in headers.items():
        if isinstance(values, str):
            values = [values]
        out.setdefault(_canonical_header_key(key), []).extend(values)
    return out


class HeadersError(Exception):
    """Wraps an error with HTTP headers to send along with the response."""

    def __init__(self, err: BaseException, headers: Mapping[str, HeaderValues]) -> None:
        super().__init__(str(err))
        self.err = err
        self.headers = _normalize_headers(headers)
        self.__cause__ = err

    def __str__(self) -> str:
        return str(self.err)

    def get_headers(self) -> dict[str, list[str]]:
        return self.headers


def find_status_error(err: Optional[BaseException]) -> Optional[StatusError]:
    """Return the first StatusError in an exception's cause chain, if any."""
    for item in _iter_chain(err):
        if isinstance(item, StatusError):
            return item
    return None


def error_with_headers(
    err: BaseException, headers: Mapping[str, HeaderValues]
) -> BaseException:
    """Attach headers to an error, merging into an existing HeadersError."""
    for item in _iter_chain(err):
        if isinstance(item, HeadersError):
            orig = item.get_headers()
            for key, values in _normalize_headers(headers).items():
                orig.setdefault(key, []).extend(values)
            return err
    return HeadersError(err, headers)


def new_error(status: int, msg: str, *args: Optional[BaseException]) -> StatusError:
    """Create an ErrorModel with the given status, message and details."""
    details = [_to_detail(e) for e in args if e is not None]
    return ErrorModel(
        status=status,
        title=status_text(status),
        detail=msg,
        errors=details,
    )


def status304_not_modified() -> StatusError:
    """A 304 response; not really an error but a non-default response."""
    return new_error(304, "")


def error400_bad_request(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(400, msg, *args)


def error401_unauthorized(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(401, msg, *args)


def error403_forbidden(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(403, msg, *args)


def error404_not_found(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(404, msg, *args)


def error405_method_not_allowed(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(405, msg, *args)


def error406_not_acceptable(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(406, msg, *args)


def error409_conflict(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(409, msg, *args)


def error410_gone(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(410, msg, *args)


def error412_precondition_failed(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(412, msg, *args)


def error415_unsupported_media_type(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(415, msg, *args)


def error422_unprocessable_entity(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(422, msg, *args)


def error429_too_many_requests(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(429, msg, *args)


def error500_internal_server_error(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(500, msg, *args)


def error501_not_implemented(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(501, msg, *args)


def error502_bad_gateway(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(502, msg, *args)


def error503_service_unavailable(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(503, msg, *args)


def error504_gateway_timeout(msg: str, *args: Optional[BaseException]) -> StatusError:
    return new_error(504, msg, *args)