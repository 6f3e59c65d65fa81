"""Unit tests for the transform wrappers and registration helpers."""

import asyncio

import pytest

from faultline.config import Settings
from faultline.models import ErrorKind, ErrorLayer
from faultline.models.errors import ConflictError, InternalError, StructuredError
from faultline.services.transformer import (
    ErrorMapBuilder,
    ErrorTransformer,
    register_transforms,
    transform_errors,
    wrap_with_transform,
)


@pytest.fixture
def transformer():
    return ErrorTransformer(module_name="users", settings=Settings())


class UserRepository:
    def __init__(self):
        self.calls = 0

    def find(self, user_id):
        self.calls += 1
        raise LookupError(f"User {user_id} not found")

    async def find_async(self, user_id):
        await asyncio.sleep(0)
        raise LookupError(f"User {user_id} not found")

    def count(self):
        return 3

    label = "repository"


class TestWrapWithTransform:
    def test_sync_function(self, transformer):
        def load():
            raise ValueError("broken row")

        wrapped = wrap_with_transform(load, {"layer": "repository"}, transformer=transformer)

        with pytest.raises(InternalError) as info:
            wrapped()

        error = info.value
        assert error.message == "broken row"
        assert error.context.layer == ErrorLayer.REPOSITORY
        assert error.context.method_name == "load"
        assert error.context.extra["synchronous"] is True
        assert isinstance(error.__cause__, ValueError)
        assert error.cause is error.__cause__

    def test_return_value_is_untouched(self, transformer):
        wrapped = wrap_with_transform(lambda a, b: a + b, transformer=transformer)

        assert wrapped(2, b=3) == 5

    def test_keeps_metadata(self, transformer):
        def documented():
            """Docs."""

        wrapped = wrap_with_transform(documented, transformer=transformer)

        assert wrapped.__name__ == "documented"
        assert wrapped.__doc__ == "Docs."

    def test_bound_method_records_class_name(self, transformer):
        repository = UserRepository()
        wrapped = wrap_with_transform(repository.find, transformer=transformer)

        with pytest.raises(StructuredError) as info:
            wrapped(7)

        assert info.value.context.class_name == "UserRepository"
        assert info.value.context.method_name == "find"
        assert info.value.message == "User 7 not found"

    def test_async_function(self, transformer):
        repository = UserRepository()
        wrapped = wrap_with_transform(repository.find_async, {"layer": "repository"}, transformer=transformer)

        with pytest.raises(InternalError) as info:
            asyncio.run(wrapped(1))

        assert info.value.context.extra["synchronous"] is False
        assert info.value.cleaned_stack.startswith("RepositoryError:\n")

    def test_cancellation_is_not_intercepted(self, transformer):
        async def cancelled():
            raise asyncio.CancelledError()

        wrapped = wrap_with_transform(cancelled, transformer=transformer)

        with pytest.raises(asyncio.CancelledError):
            asyncio.run(wrapped())

    def test_keyboard_interrupt_is_not_intercepted(self, transformer):
        def interrupted():
            raise KeyboardInterrupt

        with pytest.raises(KeyboardInterrupt):
            wrap_with_transform(interrupted, transformer=transformer)()

    def test_on_error_sees_the_structured_error(self, transformer):
        seen = []

        def fail():
            raise ValueError("x")

        wrapped = wrap_with_transform(fail, transformer=transformer, on_error=seen.append)

        with pytest.raises(InternalError) as info:
            wrapped()

        assert seen == [info.value]

    def test_uses_error_map(self):
        error_map = ErrorMapBuilder().instance_of(LookupError).to_kind(ErrorKind.CONFLICT, "USER_EXISTS")
        transformer = ErrorTransformer(error_map, "users", Settings())

        with pytest.raises(ConflictError):
            wrap_with_transform(UserRepository().find, transformer=transformer)(1)


class TestTransformErrors:
    def test_decorator_context(self, transformer):
        @transform_errors(layer="service", transformer=transformer, feature="signup")
        def register(email):
            raise ValueError(f"invalid email {email}")

        with pytest.raises(InternalError) as info:
            register("a@b")

        context = info.value.context
        assert context.layer == ErrorLayer.SERVICE
        assert context.method_name == "register"
        assert context.extra["feature"] == "signup"

    def test_decorator_on_coroutine(self, transformer):
        @transform_errors(transformer=transformer)
        async def fetch():
            raise RuntimeError("gone")

        with pytest.raises(InternalError):
            asyncio.run(fetch())

    def test_decorated_in_class_body_records_class_name(self, transformer):
        class UserRepository:
            @transform_errors(layer="repository", transformer=transformer)
            def find(self, user_id):
                raise LookupError(f"User {user_id} not found")

        with pytest.raises(StructuredError) as info:
            UserRepository().find(7)

        assert info.value.context.class_name == "UserRepository"
        assert info.value.context.method_name == "find"
        assert info.value.context.layer == ErrorLayer.REPOSITORY

    def test_nested_function_has_no_class_name(self, transformer):
        @transform_errors(transformer=transformer)
        def load():
            raise ValueError("x")

        with pytest.raises(InternalError) as info:
            load()

        assert info.value.context.class_name is None


class TestRegisterTransforms:
    def test_wraps_listed_methods(self, transformer):
        repository = register_transforms(
            UserRepository(), ["find", "count"], context={"layer": "repository"}, transformer=transformer
        )

        assert repository.count() == 3
        with pytest.raises(InternalError) as info:
            repository.find(5)

        assert repository.calls == 1
        assert info.value.context.class_name == "UserRepository"
        assert info.value.context.layer == ErrorLayer.REPOSITORY

    def test_exclude(self, transformer):
        repository = register_transforms(UserRepository(), ["find"], exclude=["find"], transformer=transformer)

        with pytest.raises(LookupError):
            repository.find(1)

    def test_async_only(self, transformer):
        repository = register_transforms(
            UserRepository(), ["find", "find_async"], async_only=True, transformer=transformer
        )

        with pytest.raises(LookupError) as sync_info:
            repository.find(1)
        assert not isinstance(sync_info.value, StructuredError)

        with pytest.raises(InternalError):
            asyncio.run(repository.find_async(1))

    def test_unknown_method(self, transformer):
        with pytest.raises(AttributeError):
            register_transforms(UserRepository(), ["delete"], transformer=transformer)

    def test_non_callable(self, transformer):
        with pytest.raises(TypeError):
            register_transforms(UserRepository(), ["label"], transformer=transformer)
