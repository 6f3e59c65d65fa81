from __future__ import annotations

"""faultline/services/transformer/wrappers.py

Adapters that route exceptions raised by functions and methods through an
ErrorTransformer and re-raise the resulting StructuredError.

- wrap_with_transform(fn, ...)      wrap one callable (sync or async)
- transform_errors(**context)       decorator form
- register_transforms(obj, [...])   wrap a list of bound methods on an instance

Only ``Exception`` subclasses are intercepted. Cancellation and interpreter
exit signals propagate unchanged.
"""

import functools
import inspect
from typing import Any, Callable, Iterable, Optional, TypeVar

from faultline.models import ErrorContext
from faultline.models.errors import StructuredError
from faultline.services.transformer.transformer import ErrorTransformer, get_default_transformer

F = TypeVar("F", bound=Callable[..., Any])
OnError = Callable[[StructuredError], None]


def _owner_name(fn: Callable[..., Any]) -> Optional[str]:
    owner = getattr(fn, "__self__", None)
    if owner is not None:
        return owner.__name__ if inspect.isclass(owner) else type(owner).__name__
    # Decorated in a class body: the function is still unbound, use its qualname.
    qualname = getattr(fn, "__qualname__", "") or ""
    if "." not in qualname:
        return None
    owner_path = qualname.rsplit(".", 1)[0]
    class_name = owner_path.rsplit(".", 1)[-1]
    return None if class_name == "<locals>" else class_name


def _call_context(fn: Callable[..., Any], context: Any) -> ErrorContext:
    class_name = _owner_name(fn)
    return ErrorContext.coerce(context).merge(
        {"class_name": class_name, "method_name": getattr(fn, "__name__", None)}
    )


def wrap_with_transform(
    fn: F,
    context: Any = None,
    *,
    transformer: Optional[ErrorTransformer] = None,
    on_error: Optional[OnError] = None,
) -> F:
    """Return ``fn`` wrapped so that raised exceptions become StructuredErrors.

    The structured error is raised ``from`` the original exception, and
    ``on_error`` is called with it first.
    """
    call_context = _call_context(fn, context)

    def _handle(exc: Exception, synchronous: bool) -> StructuredError:
        error = (transformer or get_default_transformer()).transform(
            exc, call_context, synchronous=synchronous
        )
        if on_error is not None:
            on_error(error)
        return error

    if inspect.iscoroutinefunction(fn):

        @functools.wraps(fn)
        async def async_wrapper(*args: Any, **kwargs: Any) -> Any:
            try:
                return await fn(*args, **kwargs)
            except Exception as exc:
                raise _handle(exc, synchronous=False) from exc

        return async_wrapper  # type: ignore[return-value]

    @functools.wraps(fn)
    def wrapper(*args: Any, **kwargs: Any) -> Any:
        try:
            return fn(*args, **kwargs)
        except Exception as exc:
            raise _handle(exc, synchronous=True) from exc

    return wrapper  # type: ignore[return-value]


def transform_errors(
    *,
    transformer: Optional[ErrorTransformer] = None,
    on_error: Optional[OnError] = None,
    **context: Any,
) -> Callable[[F], F]:
    """Decorator form of wrap_with_transform.

    Keyword arguments other than ``transformer`` and ``on_error`` become the
    error context, e.g. ``@transform_errors(layer="repository")``.
    """

    def decorator(fn: F) -> F:
        return wrap_with_transform(fn, context or None, transformer=transformer, on_error=on_error)

    return decorator


def register_transforms(
    instance: Any,
    methods: Iterable[str],
    *,
    context: Any = None,
    transformer: Optional[ErrorTransformer] = None,
    exclude: Iterable[str] = (),
    async_only: bool = False,
) -> Any:
    """Wrap the named bound methods of ``instance`` in place and return it.

    Raises:
        AttributeError: a listed method does not exist.
        TypeError: a listed attribute is not callable.
    """
    excluded = set(exclude)
    for name in methods:
        if name in excluded:
            continue
        method = getattr(instance, name)
        if not callable(method):
            raise TypeError(f"{type(instance).__name__}.{name} is not callable")
        if async_only and not inspect.iscoroutinefunction(method):
            continue
        setattr(instance, name, wrap_with_transform(method, context, transformer=transformer))
    return instance
