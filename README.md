# humakit

Small pieces for building HTTP APIs in Python:

- `humakit.errors`: problem-details errors (RFC 9457) with per-field error
  details, helpers for common 3xx/4xx/5xx statuses, and a way to attach
  response headers to any error.
- `humakit.formats`: JSON and CBOR body formats keyed by content type.
- `humakit.formdata`: decoding of uploaded multipart files against declared
  fields, media-type checks, and the matching JSON Schema and encodings.
- `humakit.asciinema`: a command that types a shell script into
  `asciinema rec` at a human pace.

## Installation

```
pip install humakit
```

To run the tests:

```
pip install "humakit[test]"
pytest
```

## Errors

```python
from humakit.errors import ErrorDetail, error422_unprocessable_entity

err = error422_unprocessable_entity(
    "validation failed",
    ErrorDetail(message="expected boolean", location="body.friends[1].active", value=5),
)
err.get_status()                        # 422
err.title                               # "Unprocessable Entity"
err.content_type("application/json")    # "application/problem+json"
err.content_type("application/cbor")    # "application/problem+cbor"
err.to_dict()                           # body fields, empty ones left out
```

`new_error(status, msg, *errors)` builds an `ErrorModel` whose title is the
reason phrase from `status_text`; the `error4xx_...`/`error5xx_...` helpers and
`status304_not_modified()` call it with a fixed status. `None` entries among
the errors are skipped.

`ErrorModel.add(err)` appends a detail: an exception that has an
`error_detail()` method (such as `ErrorDetail`) supplies its own, anything
else is recorded by its message. `str(ErrorDetail)` is the message alone, or
`"message (location: value)"` when a location or value is set.

`error_with_headers(err, headers)` wraps an error in a `HeadersError`; if the
error or one of its causes already is a `HeadersError`, the new headers are
merged into it and the error is returned unchanged. Header names are
canonicalised (`my-header` becomes `My-Header`). `find_status_error(err)`
returns the first `StatusError` in an exception's cause chain, or `None`.

## Formats

```python
import io
from humakit.formats import default_formats

formats = default_formats()   # "application/json", "json", "application/cbor", "cbor"
buf = io.BytesIO()
formats["cbor"].marshal(buf, {"hello": "world"})
formats["cbor"].unmarshal(buf.getvalue())   # {"hello": "world"}
```

A `Format` holds a `marshal(stream, value)` and an `unmarshal(data)` function.
`json_marshal` writes compact JSON followed by a newline, with `<`, `>`, `&`,
U+2028 and U+2029 escaped. `cbor_marshal` writes canonical CBOR and encodes
datetimes as tagged Unix timestamps.

## Multipart file forms

```python
from humakit.formdata import FileHeader, FormFieldSpec, MultipartFormFiles

specs = [
    FormFieldSpec(name="avatar", required=True, content_type="image/*"),
    FormFieldSpec(name="attachments", multiple=True),
]
form = MultipartFormFiles({
    "avatar": [FileHeader(filename="me.png", content=png_bytes)],
})
errors = form.decode(specs)      # list of ErrorDetail
form.data["avatar"].content_type # "image/png"
```

Each field is read from the key `form` (or `name` if unset) and stored in
`data` under `name`: a `FormFile` for single fields, a list for `multiple`
ones. A missing optional file gives a `FormFile` with `is_set=False`; a
missing required one, more than one file for a single field, or a rejected
media type each produce an `ErrorDetail` naming the key (with `[index]` for
multi-file fields).

`MimeTypeValidator` accepts a type listed exactly, a `type/*` wildcard, or
anything at all when `text/plain` or `application/octet-stream` is listed.
When a part declares no Content-Type, the type is sniffed with
`detect_content_type`. `multipart_form_schema(specs)` and
`multipart_content_encoding(specs)` return the JSON Schema object and the
per-key `Encoding` (default `application/octet-stream`) for the same fields.

## Recording a scripted terminal session

Write a script with one shell command per line. Lines starting with `#$` are
control lines:

```
#$ delay 60
#$ wait 500
echo "hello"
ls -la
```

`delay` sets the milliseconds between typed characters (default 40), `wait`
the pause after each line (default 100). Then run:

```
humakit-asciinema-run demo.script demo.cast
```

Arguments after the script are passed to `asciinema rec`; the `asciinema`
executable must be on your `PATH`. When no file name is given (no arguments,
or the first one starts with `-`), the command waits at the end for you to
press Enter, which is passed on to asciinema's save prompt; Ctrl-C sends an
interrupt to it instead. `Script.parse` and `Script.from_file` can be used
directly and raise `ScriptError` for unknown or malformed control lines.

## What this package does not do

There is no HTTP server, router, operation registration, OpenAPI document or
schema registry here. The errors, formats and form decoding are meant to be
used from whatever web framework you serve requests with; writing the
response is up to that code.