"""Unit tests for error classification."""

import pytest

from faultline.models import (
    DatabaseErrorCode,
    ErrorCategory,
    ErrorContext,
    ErrorLayer,
    NetworkErrorCode,
)
from faultline.models.errors import (
    DatabaseError,
    InternalError,
    NetworkError,
    NotFoundError,
    StructuredError,
)
from faultline.services.diagnostics.error_classifier import (
    DEFAULT_CODE,
    UNKNOWN_MESSAGE,
    classify,
    extract_code,
    extract_message,
)


class CodedError(Exception):
    def __init__(self, code, message):
        super().__init__(message)
        self.code = code


class BrokenStr:
    def __str__(self):
        raise RuntimeError("no string form")


class BrokenStrError(Exception):
    def __str__(self):
        raise RuntimeError("no string form")


class TestScenarios:
    def test_generic_error_becomes_internal(self):
        raw = LookupError("User not found")

        error = classify(raw, {"layer": "repository"})

        assert isinstance(error, InternalError)
        assert error.category == ErrorCategory.INTERNAL
        assert error.message == "User not found"
        assert error.code == DEFAULT_CODE
        assert error.cause is raw
        assert error.context.layer == ErrorLayer.REPOSITORY

    def test_mapping_with_network_code(self):
        raw = {"code": "REQUEST_TIMEOUT", "message": "timed out"}

        error = classify(raw, {"layer": "service"})

        assert isinstance(error, NetworkError)
        assert error.category == ErrorCategory.NETWORK
        assert error.code == NetworkErrorCode.REQUEST_TIMEOUT
        assert error.status_code == 408
        assert error.message == "timed out"
        assert error.cause is raw

    def test_exception_with_database_code(self):
        raw = CodedError("DATABASE_TIMEOUT_ERROR", "pool exhausted")

        error = classify(raw)

        assert isinstance(error, DatabaseError)
        assert error.code == DatabaseErrorCode.DATABASE_TIMEOUT_ERROR
        assert error.message == "pool exhausted"

    def test_unknown_code_is_kept_on_internal_error(self):
        error = classify(CodedError("PAYMENT_DECLINED", "card declined"))

        assert isinstance(error, InternalError)
        assert error.code == "PAYMENT_DECLINED"

    def test_category_hint_stays_in_context(self):
        error = classify(ValueError("bad"), {"category": "validation"})

        assert isinstance(error, InternalError)
        assert error.category == ErrorCategory.INTERNAL
        assert error.context.category == ErrorCategory.VALIDATION


class TestTotality:
    @pytest.mark.parametrize(
        "raw",
        [None, 42, 3.5, object(), {}, {"unrelated": True}, "plain text", BrokenStr(), BrokenStrError()],
    )
    def test_never_raises(self, raw):
        error = classify(raw)

        assert isinstance(error, StructuredError)
        assert error.kind is not None
        assert error.category is not None
        assert error.message
        assert error.cause is raw

    def test_none_message(self):
        assert classify(None).message == UNKNOWN_MESSAGE

    def test_number_message(self):
        assert classify(42).message == "42"

    def test_unusable_context_is_ignored(self):
        error = classify(ValueError("boom"), context=["not", "a", "mapping"])

        assert isinstance(error, InternalError)
        assert error.context.is_empty

    def test_failing_recognizer_falls_back(self):
        def explode(raw, context):
            raise RuntimeError("recognizer bug")

        raw = ValueError("boom")
        error = classify(raw, recognizers=[explode])

        assert isinstance(error, InternalError)
        assert error.message == "boom"
        assert error.cause is raw


class UserNotFound(NotFoundError):
    def __init__(self, user_id):
        super().__init__("USER_NOT_FOUND", f"User {user_id} not found")
        self.user_id = user_id


class TestStructuredErrors:
    def test_existing_error_keeps_kind_and_context(self):
        raw = NotFoundError("USER_NOT_FOUND", "User not found", context={"layer": "repository"})

        error = classify(raw, {"layer": "service", "method_name": "get_user"})

        assert isinstance(error, NotFoundError)
        assert error.code == "USER_NOT_FOUND"
        assert error.context.layer == ErrorLayer.REPOSITORY
        assert error.context.method_name == "get_user"

    def test_subclass_with_own_constructor_keeps_its_type(self):
        error = classify(UserNotFound(7), {"layer": "service"})

        assert isinstance(error, UserNotFound)
        assert error.user_id == 7
        assert error.code == "USER_NOT_FOUND"
        assert error.context.layer == ErrorLayer.SERVICE

    def test_idempotence(self):
        raw = ValueError("boom")
        first = {"layer": "service", "module_name": "users"}
        second = {"layer": "repository", "method_name": "find", "request_id": "r-1"}

        twice = classify(classify(raw, first), second)
        merged = classify(raw, ErrorContext.coerce(first).merge(second))

        assert type(twice) is type(merged)
        assert twice.category == merged.category
        assert twice.message == merged.message
        assert twice.code == merged.code
        assert twice.cause is merged.cause is raw
        assert twice.context.to_dict() == merged.context.to_dict()


class TestExtractors:
    def test_message_prefers_message_field(self):
        assert extract_message({"message": "from field", "code": "X"}) == "from field"

    def test_message_falls_back_to_code(self):
        assert extract_message({"code": "SOME_CODE"}) == "SOME_CODE"

    def test_message_of_silent_exception_is_its_type(self):
        assert extract_message(RuntimeError()) == "RuntimeError"

    def test_code_accepts_enum_values(self):
        assert extract_code({"code": NetworkErrorCode.INVALID_URL}) == "INVALID_URL"

    def test_code_ignores_non_strings(self):
        assert extract_code({"code": 500}) is None
