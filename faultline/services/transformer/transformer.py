from __future__ import annotations

"""faultline/services/transformer/transformer.py

Turns any raised value into a StructuredError with a normalized stack.

Pipeline for one call:
1. merge the call context with the transformer's module name and the
   ``synchronous`` flag (caller-set values win)
2. consult the error map rules; a matching rule builds the error
3. otherwise use the error map fallback template, or classify()
4. attach a normalized stack labelled after the context layer
5. optionally log the error report

The transformer never raises.
"""

import logging
from typing import Any, Optional

from faultline.config import Settings, TransformerLogLevel, get_settings
from faultline.models import ErrorContext
from faultline.models.errors import InternalError, StructuredError
from faultline.services.diagnostics.error_classifier import DEFAULT_CODE, classify, extract_message
from faultline.services.diagnostics.report import log_error
from faultline.services.diagnostics.stack import generate_normalized_stack
from faultline.services.transformer.error_map import ErrorMapBuilder

logger = logging.getLogger(__name__)

UNKNOWN_MODULE = "unknown_module"


def stack_label(context: ErrorContext) -> Optional[str]:
    """Header label for the normalized stack: ``repository`` -> ``RepositoryError``."""
    if context.layer is None:
        return None
    return f"{context.layer.value.title()}Error"


class ErrorTransformer:
    def __init__(
        self,
        error_map: Optional[ErrorMapBuilder] = None,
        module_name: Optional[str] = None,
        settings: Optional[Settings] = None,
        log: Optional[TransformerLogLevel] = None,
    ) -> None:
        if not module_name:
            logger.warning("ErrorTransformer created without a module name, using %r", UNKNOWN_MODULE)
        self.error_map = error_map
        self.module_name = module_name or UNKNOWN_MODULE
        self.settings = settings or get_settings()
        self.log = log or self.settings.transformer_log_level

    def transform(self, raw: Any, context: Any = None, *, synchronous: bool = True) -> StructuredError:
        """Transform ``raw`` into a StructuredError. Never raises."""
        try:
            ctx = ErrorContext.coerce(context)
        except (TypeError, ValueError) as exc:
            logger.warning("Ignoring unusable error context: %s", exc)
            ctx = ErrorContext()
        ctx = ctx.merge({"module_name": self.module_name, "synchronous": synchronous})

        try:
            error, known = self._resolve(raw, ctx)
            stack = generate_normalized_stack(
                self.settings.stack_exclusions,
                self.settings.strip_working_directory,
                stack_label(ctx),
                skip=1,
            )
            error = error.derive(cleaned_stack=stack)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Error transformation failed, falling back to InternalError: %s", exc)
            error, known = InternalError(DEFAULT_CODE, extract_message(raw), context=ctx, cause=raw), False

        try:
            self._maybe_log(error, known)
        except Exception as exc:  # noqa: BLE001
            logger.warning("Could not log transformed %s: %s", type(error).__name__, exc)
        return error

    def _resolve(self, raw: Any, context: ErrorContext) -> tuple[StructuredError, bool]:
        if self.error_map is None:
            return classify(raw, context), False

        rule = self.error_map.match(raw)
        if rule is not None:
            try:
                return rule.output.build(raw, context), True
            except Exception as exc:  # noqa: BLE001
                logger.warning("Error map rule failed for %s, classifying instead: %s", type(raw).__name__, exc)
                return classify(raw, context), False

        if self.error_map.fallback is not None:
            fallback = self.error_map.fallback
            return fallback.derive(context=context.merge(fallback.context), cause=raw, timestamp=None), False
        return classify(raw, context), False

    def _maybe_log(self, error: StructuredError, known: bool) -> None:
        if self.log == "never" or not self.settings.enable_logging:
            return
        if self.log == "all" or (self.log == "known") == known:
            log_error(error, logger=logger)


_default_transformer: Optional[ErrorTransformer] = None


def get_default_transformer() -> ErrorTransformer:
    global _default_transformer
    if _default_transformer is None:
        _default_transformer = ErrorTransformer(module_name=get_settings().service_name)
    return _default_transformer


def transform(raw: Any, context: Any = None, *, synchronous: bool = True) -> StructuredError:
    """Transform ``raw`` with the process-wide default transformer."""
    return get_default_transformer().transform(raw, context, synchronous=synchronous)
