import pytest

from humakit import errors as he
from humakit.errors import ErrorDetail, ErrorModel, HeadersError


def test_error_model_add_and_messages():
    err = ErrorModel(status=400, detail="test err")
    err.add(ErrorDetail(message="test detail", location="body.foo", value="bar"))
    err.add(ValueError("plain error"))

    assert str(err) == "test err"
    assert len(err.errors) == 2
    assert str(err.errors[0]) == "test detail (body.foo: bar)"
    assert str(err.errors[1]) == "plain error"


def test_content_type_filter():
    err = ErrorModel(status=400, detail="x")
    assert err.content_type("application/json") == "application/problem+json"
    assert err.content_type("application/cbor") == "application/problem+cbor"
    assert err.content_type("other") == "other"


def test_not_modified():
    assert he.status304_not_modified().get_status() == 304


@pytest.mark.parametrize(
    "constructor, expected",
    [
        (he.error400_bad_request, 400),
        (he.error401_unauthorized, 401),
        (he.error403_forbidden, 403),
        (he.error404_not_found, 404),
        (he.error405_method_not_allowed, 405),
        (he.error406_not_acceptable, 406),
        (he.error409_conflict, 409),
        (he.error410_gone, 410),
        (he.error412_precondition_failed, 412),
        (he.error415_unsupported_media_type, 415),
        (he.error422_unprocessable_entity, 422),
        (he.error429_too_many_requests, 429),
        (he.error500_internal_server_error, 500),
        (he.error501_not_implemented, 501),
        (he.error502_bad_gateway, 502),
        (he.error503_service_unavailable, 503),
        (he.error504_gateway_timeout, 504),
    ],
)
def test_error_responses(constructor, expected):
    assert constructor("test").get_status() == expected


def test_error_as_through_wrapping():
    try:
        try:
            raise he.error400_bad_request("test")
        except he.StatusError as inner:
            raise RuntimeError("wrapped: test") from inner
    except RuntimeError as outer:
        found = he.find_status_error(outer)
    assert found is not None
    assert found.get_status() == 400


def test_find_status_error_none():
    assert he.find_status_error(ValueError("nope")) is None


def test_error_with_headers_merges():
    err = he.error_with_headers(he.error400_bad_request("test"), {"My-Header": ["bar"]})
    assert str(err) == "test"
    assert isinstance(err, HeadersError)

    again = he.error_with_headers(err, {"Another": ["bar"]})
    assert again is err
    assert err.get_headers() == {"My-Header": ["bar"], "Another": ["bar"]}

    status = he.find_status_error(err)
    assert status is not None and status.get_status() == 400


def test_error_with_headers_found_through_cause():
    inner = he.error_with_headers(he.error404_not_found("gone"), {"x-one": "1"})
    try:
        raise RuntimeError("wrapped") from inner
    except RuntimeError as outer:
        result = he.error_with_headers(outer, {"X-One": ["2"]})
    assert result is outer
    assert inner.get_headers() == {"X-One": ["1", "2"]}


def test_new_error_details_and_title():
    err = he.new_error(
        422,
        "validation failed",
        ErrorDetail(message="bad", location="body.count", value=30),
        ValueError("other"),
        None,
    )
    assert err.to_dict() == {
        "title": "Unprocessable Entity",
        "status": 422,
        "detail": "validation failed",
        "errors": [
            {"message": "bad", "location": "body.count", "value": 30},
            {"message": "other"},
        ],
    }


def test_error_detail_plain_message_and_self():
    detail = ErrorDetail(message="only message")
    assert str(detail) == "only message"
    assert detail.error_detail() is detail
    assert detail.to_dict() == {"message": "only message"}


def test_add_uses_custom_detailer():
    class Custom(Exception):
        def error_detail(self):
            return ErrorDetail(message="custom", location="query.q")

    err = ErrorModel(status=400)
    err.add(Custom("ignored"))
    assert err.errors == [ErrorDetail(message="custom", location="query.q")]


@pytest.mark.parametrize(
    "status, text",
    [(200, "OK"), (404, "Not Found"), (422, "Unprocessable Entity"), (999, "")],
)
def test_status_text(status, text):
    assert he.status_text(status) == text


def test_raising_status_error():
    err = he.error503_service_unavailable("down")
    assert err.get_status() == 503
    assert str(err) == "down"
    with pytest.raises(he.StatusError) as info:
        raise err
    assert info.value is err