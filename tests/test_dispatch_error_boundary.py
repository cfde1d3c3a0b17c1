from dyfunc.dispatch.error_boundary import (
    classify_http_status,
    dyfunc_error_result,
    error_headers,
    unhandled_exception_result,
)
from dyfunc.utils.exceptions import (
    DuplicateIdentifierError,
    FunctionNotFoundError,
    InvalidCredentialsError,
    MalformedBatchError,
    MiddlewareRejectedError,
    MissingCredentialsError,
    ResponseEncodingError,
)


def test_dyfunc_error_result_logs_and_maps():
    calls = []
    res = dyfunc_error_result(
        identifier="a",
        func="missing",
        exc=FunctionNotFoundError("missing"),
        log_warning=lambda fmt, *args: calls.append(args),
    )
    assert res.to_dict() == {"error": "function missing not found"}
    assert calls and calls[0][:3] == ("a", "missing", "FUNCTION_NOT_FOUND")


def test_unhandled_exception_result_logs_and_maps():
    calls = []
    res = unhandled_exception_result(
        identifier="b",
        func="boom",
        exc=KeyError("k"),
        log_exception=lambda fmt, *args: calls.append(args),
    )
    assert res.id == "b"
    assert not res.succeeded
    assert res.error == "'k'"
    assert calls and calls[0][2] == "INVALID_VALUE"


def test_unhandled_exception_without_message_uses_type_name():
    res = unhandled_exception_result(
        identifier="c", func="f", exc=RuntimeError(), log_exception=lambda *a: None
    )
    assert res.error == "RuntimeError"


def test_classify_http_status():
    assert classify_http_status(MalformedBatchError("bad")) == 400
    assert classify_http_status(DuplicateIdentifierError(["a"])) == 400
    assert classify_http_status(MissingCredentialsError()) == 401
    assert classify_http_status(InvalidCredentialsError()) == 401
    assert classify_http_status(MiddlewareRejectedError("no")) == 403
    assert classify_http_status(ResponseEncodingError("nan")) == 500
    assert classify_http_status(RuntimeError("x")) == 500


def test_error_headers_only_for_auth_failures():
    assert error_headers(MissingCredentialsError()) == {"WWW-Authenticate": 'Basic realm="dyfunc"'}
    assert error_headers(MalformedBatchError("bad")) is None
