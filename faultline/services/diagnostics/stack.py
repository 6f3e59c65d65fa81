from __future__ import annotations

"""faultline/services/diagnostics/stack.py

Call stack capture and normalization.

A captured stack is plain text: an ``Error:`` header line followed by one
line per frame, oldest call first:

    Error:
      File "/srv/app/main.py", line 12, in <module>
      File "/srv/app/users/repository.py", line 40, in find_user

Transforms are applied in a fixed order by generate_normalized_stack:
capture -> relabel header -> strip working directory -> filter lines.
"""

import inspect
import os
import re
import traceback
from typing import Iterable, Optional, Sequence

HEADER = "Error:"

# Only an exact "Error:" header followed by a line break is relabelled.
_HEADER_PATTERN = re.compile(r"\AError:\n")


def format_frames(frames: Iterable[traceback.FrameSummary]) -> list[str]:
    return [f'  File "{frame.filename}", line {frame.lineno}, in {frame.name}' for frame in frames]


def capture_stack(skip: int = 0) -> Optional[str]:
    """Capture the stack of the caller.

    ``skip`` drops that many additional innermost frames. Returns None when
    the interpreter does not expose frames.
    """
    frame = inspect.currentframe()
    if frame is None:
        return None
    frame = frame.f_back
    for _ in range(skip):
        if frame is None:
            break
        frame = frame.f_back
    if frame is None:
        return None
    try:
        frames = traceback.extract_stack(frame)
    finally:
        del frame
    if not frames:
        return None
    return "\n".join([HEADER, *format_frames(frames)])


def format_exception_stack(exc: BaseException) -> Optional[str]:
    """Render the traceback attached to ``exc`` in the captured-stack format."""
    tb = exc.__traceback__
    if tb is None:
        return None
    return "\n".join([f"{type(exc).__name__}:", *format_frames(traceback.extract_tb(tb))])


def relabel_stack(stack: str, error_label: str) -> str:
    """Replace the leading ``Error:`` header with ``<error_label>:``.

    Any other header format is left untouched.
    """
    return _HEADER_PATTERN.sub(lambda _: f"{error_label}:\n", stack, count=1)


def remove_working_directory_prefix(stack: str) -> str:
    """Remove the first literal occurrence of the working directory path."""
    try:
        cwd = os.getcwd()
    except OSError:
        return stack
    if not cwd:
        return stack
    return stack.replace(cwd, "", 1)


def filter_lines(stack: str, exclusions: Sequence[str]) -> str:
    """Drop every line containing any of ``exclusions``; order is preserved."""
    if not exclusions:
        return stack
    return "\n".join(
        line for line in stack.split("\n") if not any(exclusion in line for exclusion in exclusions)
    )


def generate_normalized_stack(
    exclusions: Optional[Sequence[str]] = None,
    strip_working_directory: bool = False,
    error_label: Optional[str] = None,
    *,
    skip: int = 0,
) -> Optional[str]:
    """Capture the caller's stack and normalize it.

    The working directory is stripped line by line so that no frame keeps
    the absolute path. Returns None when no stack could be captured; callers
    must not treat that as an empty stack.
    """
    stack = capture_stack(skip=skip + 1)
    if stack is None:
        return None

    if error_label:
        stack = relabel_stack(stack, error_label)

    if strip_working_directory:
        stack = "\n".join(remove_working_directory_prefix(line) for line in stack.split("\n"))

    if exclusions:
        stack = filter_lines(stack, exclusions)
    return stack
