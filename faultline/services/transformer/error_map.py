from __future__ import annotations

"""faultline/services/transformer/error_map.py

Declarative mapping rules consulted by ErrorTransformer before falling back
to classification.

Rules are built fluently, one input followed by one output:

    builder = ErrorMapBuilder()
    builder.includes(["duplicate key"]).to_kind(ErrorKind.CONFLICT, "USER_EXISTS")
    builder.instance_of(PermissionError).to_error(AuthorizationError("FORBIDDEN"))

Inputs read one property of the raised value (``message`` by default,
which for exceptions is their text):
- equals(value)       exact match
- one_of(values)      membership
- matches(regex)      regular expression search
- includes(parts)     all parts present, case-insensitive
- instance_of(cls)    isinstance check on the raised value itself

Outputs:
- to_error(template)  derive the template with the call context and cause
- to_kind(kind, code) build a fresh error of that kind
- using(handler)      handler(raw, context) -> StructuredError
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Iterable, List, Literal, Optional, Pattern, Union

from faultline.models import ErrorContext, ErrorKind
from faultline.models.errors import StructuredError, get_error_class
from faultline.services.diagnostics.error_classifier import extract_message, get_field

Condition = Literal["equals", "one_of", "matches", "includes", "instance_of"]
CustomErrorHandler = Callable[[Any, ErrorContext], StructuredError]


class IncompleteMappingError(Exception):
    """Raised when a rule input is started before the previous one got an output."""


def _property_value(raw: Any, name: str) -> Any:
    if raw is None:
        return None
    if name == "message":
        return extract_message(raw)
    value = get_field(raw, name)
    return getattr(value, "value", value)


@dataclass(frozen=True)
class ErrorMapInput:
    condition: Condition
    value: Any
    property_name: Optional[str] = None

    def matches(self, raw: Any, global_property: str) -> bool:
        if self.condition == "instance_of":
            return isinstance(raw, self.value)

        actual = _property_value(raw, self.property_name or global_property)
        if actual is None or actual == "":
            return False
        if self.condition == "equals":
            return actual == self.value
        if self.condition == "one_of":
            return actual in self.value
        if not isinstance(actual, str):
            return False
        if self.condition == "matches":
            return self.value.search(actual) is not None
        if self.condition == "includes":
            lowered = actual.lower()
            return all(part.lower() in lowered for part in self.value)
        return False


@dataclass(frozen=True)
class ErrorMapOutput:
    template: Optional[StructuredError] = None
    handler: Optional[CustomErrorHandler] = None

    def build(self, raw: Any, context: ErrorContext) -> StructuredError:
        if self.handler is not None:
            error = self.handler(raw, context)
            if not isinstance(error, StructuredError):
                raise TypeError(
                    f"Error map handler returned {type(error).__name__}, expected a StructuredError"
                )
            return error
        assert self.template is not None
        # Call context wins over the template's own context.
        return self.template.derive(
            context=context.merge(self.template.context),
            cause=raw,
            timestamp=None,
        )


@dataclass(frozen=True)
class ErrorMapRule:
    input: ErrorMapInput
    output: ErrorMapOutput


class _RuleOutput:
    """Output half of a rule; each method completes the rule."""

    def __init__(self, builder: "ErrorMapBuilder", rule_input: ErrorMapInput) -> None:
        self._builder = builder
        self._input = rule_input

    def to_error(self, template: StructuredError) -> "ErrorMapBuilder":
        if not isinstance(template, StructuredError):
            raise TypeError("to_error expects a StructuredError template")
        return self._builder._complete(self._input, ErrorMapOutput(template=template))

    def to_kind(self, kind: Union[ErrorKind, str], code: str, message: Optional[str] = None) -> "ErrorMapBuilder":
        template = get_error_class(kind)(code, message)
        return self._builder._complete(self._input, ErrorMapOutput(template=template))

    def using(self, handler: CustomErrorHandler) -> "ErrorMapBuilder":
        return self._builder._complete(self._input, ErrorMapOutput(handler=handler))


class ErrorMapBuilder:
    """Ordered list of mapping rules; the first matching rule wins."""

    def __init__(self, global_property: str = "message", fallback: Optional[StructuredError] = None) -> None:
        self.rules: List[ErrorMapRule] = []
        self.global_property = global_property or "message"
        self.fallback = fallback
        self._pending: Optional[ErrorMapInput] = None

    def equals(self, value: Any, *, property_name: Optional[str] = None) -> _RuleOutput:
        return self._start(ErrorMapInput("equals", value, property_name))

    def one_of(self, values: Iterable[Any], *, property_name: Optional[str] = None) -> _RuleOutput:
        return self._start(ErrorMapInput("one_of", tuple(values), property_name))

    def matches(self, pattern: Union[str, Pattern[str]], *, property_name: Optional[str] = None) -> _RuleOutput:
        return self._start(ErrorMapInput("matches", re.compile(pattern), property_name))

    def includes(self, parts: Iterable[str], *, property_name: Optional[str] = None) -> _RuleOutput:
        return self._start(ErrorMapInput("includes", tuple(parts), property_name))

    def instance_of(self, exc_type: Union[type, tuple]) -> _RuleOutput:
        return self._start(ErrorMapInput("instance_of", exc_type))

    def match(self, raw: Any) -> Optional[ErrorMapRule]:
        """Return the first rule matching ``raw``.

        Nothing matches when ``raw`` does not expose the global property.
        """
        if not _property_value(raw, self.global_property):
            return None
        for rule in self.rules:
            if rule.input.matches(raw, self.global_property):
                return rule
        return None

    def _start(self, rule_input: ErrorMapInput) -> _RuleOutput:
        if self._pending is not None:
            raise IncompleteMappingError(
                "Incomplete mapping: previous input was not completed. Call an output method "
                "(to_error, to_kind, using) before starting a new mapping."
            )
        self._pending = rule_input
        return _RuleOutput(self, rule_input)

    def _complete(self, rule_input: ErrorMapInput, output: ErrorMapOutput) -> "ErrorMapBuilder":
        if self._pending is not rule_input:
            raise IncompleteMappingError("This mapping input was already completed")
        self.rules.append(ErrorMapRule(rule_input, output))
        self._pending = None
        return self
