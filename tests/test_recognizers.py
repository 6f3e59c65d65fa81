"""Unit tests for third-party exception recognizers."""

import httpx
import pydantic
import pytest
from sqlalchemy import exc as sa_exc

from faultline.models import DatabaseErrorCode, ErrorCategory, ErrorContext, NetworkErrorCode
from faultline.models.errors import (
    DatabaseError,
    ExternalServiceError,
    InternalError,
    NetworkError,
    ValidationError,
)
from faultline.services.diagnostics.error_classifier import classify
from faultline.services.diagnostics.recognizers import validation_error_from_issues


class Person(pydantic.BaseModel):
    name: str
    age: int


class TestHttpx:
    @pytest.mark.parametrize(
        ("raw", "code", "status"),
        [
            (httpx.ConnectTimeout("connect timed out"), NetworkErrorCode.REQUEST_TIMEOUT, 408),
            (httpx.ReadTimeout("read timed out"), NetworkErrorCode.REQUEST_TIMEOUT, 408),
            (httpx.ConnectError("connection refused"), NetworkErrorCode.SERVER_NOT_REACHABLE, 503),
            (httpx.TooManyRedirects("redirect loop"), NetworkErrorCode.TOO_MANY_REDIRECTS, 310),
            (httpx.UnsupportedProtocol("ftp is not supported"), NetworkErrorCode.INVALID_URL, 400),
            (httpx.RemoteProtocolError("bad frame"), NetworkErrorCode.BAD_CONFIGURATION, 502),
            (httpx.DecodingError("bad gzip"), NetworkErrorCode.UNKNOWN_ERROR, 520),
        ],
    )
    def test_request_errors(self, raw, code, status):
        error = classify(raw, {"layer": "service"})

        assert isinstance(error, NetworkError)
        assert error.code == code
        assert error.status_code == status
        assert error.message == str(raw)
        assert error.cause is raw

    def test_status_error_names_remote_host(self):
        request = httpx.Request("GET", "https://payments.example.com/charges")
        response = httpx.Response(503, request=request)
        raw = httpx.HTTPStatusError("Service unavailable", request=request, response=response)

        error = classify(raw)

        assert isinstance(error, ExternalServiceError)
        assert error.external_service == "payments.example.com"
        assert error.category == ErrorCategory.EXTERNAL_SERVICE
        assert error.context.extra["response_status"] == 503

    def test_from_httpx_error(self):
        raw = httpx.ConnectError("connection refused")

        error = NetworkError.from_httpx_error(raw, {"layer": "service"})

        assert error.code == NetworkErrorCode.SERVER_NOT_REACHABLE
        assert error.cause is raw

    def test_from_httpx_error_rejects_response_errors(self):
        request = httpx.Request("GET", "https://example.com")
        raw = httpx.HTTPStatusError("Not found", request=request, response=httpx.Response(404, request=request))

        with pytest.raises(InternalError) as info:
            NetworkError.from_httpx_error(raw)

        assert info.value.code == "INVALID_CALL"

    def test_from_httpx_error_rejects_other_errors(self):
        with pytest.raises(InternalError) as info:
            NetworkError.from_httpx_error(ValueError("nope"))

        assert info.value.code == "INVALID_CALL"


class TestSqlAlchemy:
    @pytest.mark.parametrize(
        ("raw", "code"),
        [
            (sa_exc.TimeoutError("QueuePool limit reached"), DatabaseErrorCode.DATABASE_TIMEOUT_ERROR),
            (sa_exc.PendingRollbackError("rollback first"), DatabaseErrorCode.DATABASE_TRANSACTION_ERROR),
            (
                sa_exc.OperationalError("SELECT 1", {}, Exception("connection refused")),
                DatabaseErrorCode.DATABASE_CONNECTION_ERROR,
            ),
            (
                sa_exc.IntegrityError("INSERT", {}, Exception("duplicate key")),
                DatabaseErrorCode.DATABASE_VALIDATION_ERROR,
            ),
            (sa_exc.NoResultFound("no row"), DatabaseErrorCode.DATABASE_QUERY_ERROR),
        ],
    )
    def test_codes(self, raw, code):
        error = classify(raw, {"layer": "repository"})

        assert isinstance(error, DatabaseError)
        assert error.code == code
        assert error.cause is raw

    def test_message_comes_from_driver_error(self):
        raw = sa_exc.IntegrityError("INSERT INTO users", {"id": 1}, Exception("duplicate key"))

        assert classify(raw).message == "duplicate key"


class TestPydantic:
    def test_first_issue_becomes_the_error(self):
        with pytest.raises(pydantic.ValidationError) as info:
            Person(name="Ada", age="old")
        raw = info.value

        error = classify(raw)

        assert isinstance(error, ValidationError)
        assert error.status_code == 400
        assert error.code == error.message
        assert error.message.startswith("Input should be a valid integer")
        assert error.context.extra["path"] == "age"
        assert error.context.extra["constraint"] == "int_parsing"
        assert error.context.extra["value"] == "old"
        assert error.cause is raw

    def test_no_issues(self):
        error = validation_error_from_issues([], ErrorContext(), cause=None)

        assert error.code == "UNKNOWN_VALIDATION_ERROR"
