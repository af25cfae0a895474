import pytest

from humakit.errors import ErrorDetail
from humakit.formdata import (
    Encoding,
    FileHeader,
    FormFieldSpec,
    FormFile,
    MimeTypeValidator,
    MultipartFormFiles,
    detect_content_type,
    multipart_content_encoding,
    multipart_form_schema,
)

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 16


def header(content=b"data", content_type="", filename="f.bin"):
    headers = {"Content-Type": content_type} if content_type else {}
    return FileHeader(filename=filename, content=content, headers=headers)


def test_from_encoding_splits_and_trims():
    validator = MimeTypeValidator.from_encoding(Encoding(" image/png , image/jpeg"))
    assert validator.accept == ("image/png", "image/jpeg")


def test_from_encoding_none_defaults():
    assert MimeTypeValidator.from_encoding(None).accept == ("application/octet-stream",)


def test_validate_declared_type():
    validator = MimeTypeValidator(("image/png",))
    assert validator.validate(header(content_type="image/png"), "file") == "image/png"


def test_validate_wildcard():
    validator = MimeTypeValidator(("image/*",))
    assert validator.validate(header(content_type="image/gif"), "file") == "image/gif"


def test_validate_rejects():
    validator = MimeTypeValidator(("image/png", "image/gif"))
    with pytest.raises(ErrorDetail) as exc:
        validator.validate(header(content_type="text/csv"), "file")
    assert exc.value.location == "file"
    assert exc.value.value == "text/csv"
    assert exc.value.message.startswith("Invalid mime type")
    assert "image/png,image/gif" in exc.value.message


def test_octet_stream_accepts_anything():
    validator = MimeTypeValidator(("application/octet-stream",))
    assert validator.validate(header(content_type="text/csv"), "f") == "text/csv"


def test_validate_sniffs_png():
    validator = MimeTypeValidator(("image/*",))
    assert validator.validate(header(PNG), "f") == "image/png"


def test_validate_empty_file_without_type():
    with pytest.raises(ErrorDetail) as exc:
        MimeTypeValidator().validate(header(b""), "upload")
    assert exc.value.message == "Failed to infer file media type"
    assert exc.value.location == "upload"


def test_short_text_sniffed_with_padding_is_binary():
    validator = MimeTypeValidator(("application/octet-stream",))
    assert validator.validate(header(b"hello"), "f") == "application/octet-stream"


def test_detect_html_case_insensitive():
    assert detect_content_type(b"  <!DOCTYPE html><p>") == "text/html; charset=utf-8"
    assert detect_content_type(b"<HtMl>") == detect_content_type(b"<html>")


def test_detect_text_and_binary():
    assert detect_content_type(b"hello world").startswith("text/plain")
    assert detect_content_type(b"hello\x00world") == "application/octet-stream"
    assert detect_content_type(b"") .startswith("text/plain")


def test_detect_png_ignores_trailing_data():
    assert detect_content_type(PNG) == detect_content_type(PNG + b"\x01" * 2000)


def test_decode_required_missing():
    form = MultipartFormFiles({})
    errors = form.decode([FormFieldSpec("avatar", required=True)])
    assert errors == [ErrorDetail(message="File required", location="avatar")]
    assert form.data["avatar"] == FormFile()


def test_decode_optional_missing():
    form = MultipartFormFiles({})
    assert form.decode([FormFieldSpec("avatar")]) == []
    assert form.data["avatar"].is_set is False


def test_decode_single_too_many():
    form = MultipartFormFiles({"avatar": [header(), header()]})
    errors = form.decode([FormFieldSpec("avatar")])
    assert [e.message for e in errors] == [
        "Multiple files received but only one was expected"
    ]
    assert errors[0].location == "avatar"


def test_decode_single_ok():
    form = MultipartFormFiles(
        {"avatar": [header(b"payload", "text/csv", filename="a.csv")]}
    )
    assert form.decode([FormFieldSpec("avatar")]) == []
    result = form.data["avatar"]
    assert result.is_set
    assert result.filename == "a.csv"
    assert result.size == len(b"payload")
    assert result.content_type == "text/csv"
    assert result.file.read() == b"payload"


def test_decode_form_key_override():
    form = MultipartFormFiles({"image": [header(content_type="image/png")]})
    errors = form.decode([FormFieldSpec("avatar", form="image", content_type="image/png")])
    assert errors == []
    assert form.data["avatar"].is_set


def test_decode_multiple_ok():
    form = MultipartFormFiles({"docs": [header(b"one"), header(b"two")]})
    assert form.decode([FormFieldSpec("docs", multiple=True)]) == []
    assert [f.file.read() for f in form.data["docs"]] == [b"one", b"two"]


def test_decode_multiple_required_empty():
    form = MultipartFormFiles({"docs": []})
    errors = form.decode([FormFieldSpec("docs", multiple=True, required=True)])
    assert [e.message for e in errors] == ["At least one file is required"]
    assert form.data["docs"] == []


def test_decode_multiple_reports_index():
    form = MultipartFormFiles(
        {"docs": [header(content_type="image/png"), header(content_type="text/csv")]}
    )
    errors = form.decode([FormFieldSpec("docs", multiple=True, content_type="image/png")])
    assert len(errors) == 1
    assert errors[0].location == "docs[1]"
    assert errors[0].value == "text/csv"
    assert form.data["docs"] == []


def test_form_schema():
    schema = multipart_form_schema(
        [
            FormFieldSpec("avatar", required=True, doc="Profile picture"),
            FormFieldSpec("docs", multiple=True),
        ]
    )
    assert schema["type"] == "object"
    assert schema["required"] == ["avatar"]
    avatar = schema["properties"]["avatar"]
    assert avatar["type"] == "string"
    assert avatar["format"] == "binary"
    assert avatar["contentEncoding"] == "binary"
    assert avatar["description"] == "Profile picture"
    docs = schema["properties"]["docs"]
    assert docs["type"] == "array"
    assert docs["items"]["format"] == "binary"


def test_content_encoding_defaults():
    encodings = multipart_content_encoding(
        [FormFieldSpec("a"), FormFieldSpec("b", form="bee", content_type="image/png")]
    )
    assert encodings == {
        "a": Encoding("application/octet-stream"),
        "bee": Encoding("image/png"),
    }