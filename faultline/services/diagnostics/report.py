# faultline/services/diagnostics/report.py
from __future__ import annotations

"""
Plain-text error reports for logs.

This module is pure apart from ``log_error``: it takes a StructuredError and
returns a multi-line string showing the error name and code, the call
stack (innermost frame first) and the error context.

It does **not** configure logging; ``log_error`` writes through the
standard ``logging`` module.
"""

import logging
import re
from dataclasses import dataclass
from typing import Iterable, List, Optional, Sequence

from faultline.models.errors import StructuredError
from faultline.services.diagnostics.error_classifier import _safe_str
from faultline.services.diagnostics.stack import format_exception_stack

DEFAULT_REPORT_EXCLUSIONS: Sequence[str] = ("site-packages", "<frozen ")

_FRAME_PATTERN = re.compile(r'^\s*File "(?P<path>.*)", line (?P<line>\d+), in (?P<function>.+)$')


@dataclass
class CallSite:
    """One parsed frame of a captured stack."""

    function_name: str
    file_path: str
    line_number: int
    full_file_ref: str


def parse_call_stack(stack: Optional[str]) -> List[CallSite]:
    """Parse a captured stack into call sites, innermost frame first.

    Lines that are not frame lines (the header, blank lines) are skipped.
    """
    if not stack:
        return []
    sites: list[CallSite] = []
    for line in stack.split("\n"):
        match = _FRAME_PATTERN.match(line)
        if not match:
            continue
        path = match.group("path")
        line_number = match.group("line")
        sites.append(
            CallSite(
                function_name=match.group("function").strip(),
                file_path=path,
                line_number=int(line_number),
                full_file_ref=f"{path}:{line_number}",
            )
        )
    sites.reverse()
    return sites


def filter_call_stack(call_stack: Iterable[CallSite], keywords: Sequence[str]) -> List[CallSite]:
    return [site for site in call_stack if not any(keyword in site.full_file_ref for keyword in keywords)]


def format_call_site(call_site: CallSite, index: int = 0) -> str:
    indicator = "|\n|--> inside" if index == 0 else f"|--> parent {index}"
    return (
        f"{indicator} {call_site.full_file_ref} #{call_site.function_name}\n"
        f"|--- Line: {call_site.line_number} Function: {call_site.function_name}()\n"
        "|"
    )


def _error_stack(error: StructuredError) -> Optional[str]:
    # The original traceback points at the failing code; prefer it.
    if isinstance(error.cause, BaseException):
        stack = format_exception_stack(error.cause)
        if stack:
            return stack
    return error.cleaned_stack


def format_error_report(
    error: StructuredError,
    *,
    include_context: bool = True,
    filter_stack: bool = True,
    keywords: Sequence[str] = DEFAULT_REPORT_EXCLUSIONS,
) -> str:
    lines: list[str] = []

    # Header
    code = getattr(error.code, "value", error.code)
    header = f"{error.name}: {code}"
    if error.message and error.message != code:
        header += f" - {error.message}"
    lines.append(header)

    # Call stack
    call_stack = parse_call_stack(_error_stack(error))
    if filter_stack:
        call_stack = filter_call_stack(call_stack, keywords)
    for index, site in enumerate(call_stack):
        lines.append(format_call_site(site, index))

    # Context
    context = error.context.to_dict()
    if include_context and context:
        lines.append("----------Context----------")
        for key, value in context.items():
            lines.append(f"- {key}: {_safe_str(value)}")
    else:
        lines.append("No context")

    lines.append("========== > End of Error < ==========")
    return "\n".join(lines)


def log_error(
    error: StructuredError,
    *,
    logger: Optional[logging.Logger] = None,
    include_context: bool = True,
    filter_stack: bool = True,
) -> None:
    (logger or logging.getLogger(__name__)).error(
        "%s",
        format_error_report(error, include_context=include_context, filter_stack=filter_stack),
    )
