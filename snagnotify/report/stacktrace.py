"""Convert Python tracebacks into Bugsnag stack frames."""

import linecache
import os
from dataclasses import dataclass, field
from types import TracebackType
from typing import Dict, Iterable, List, Optional, Protocol

import structlog

from .models import StackFrame

logger = structlog.get_logger(__name__)

# Never a prefix of a real module name
NO_PROJECT_NS = "\x00"

SOURCE_CONTEXT_LINES = 3
SOURCE_EXTENSIONS = (".py",)

_THIS_FILE = "snagnotify/report/stacktrace.py"


@dataclass(frozen=True)
class RawFrame:
    """A traceback entry before transformation."""

    file: Optional[str]
    line: Optional[int]
    module: Optional[str]
    function: Optional[str]


@dataclass(frozen=True)
class ParsedException:
    """Message, class name and frames of a raised exception."""

    message: str
    class_name: str
    frames: List[RawFrame] = field(default_factory=list)


class SourceLocator(Protocol):
    """Looks up source text around a line of a file."""

    def window(self, path: str, line: int, around: int) -> Optional[Dict[int, str]]:
        ...


class NullSourceLocator:
    """Source locator that never finds anything."""

    def window(self, path: str, line: int, around: int) -> Optional[Dict[int, str]]:
        return None


class LinecacheSourceLocator:
    """Read source windows through :mod:`linecache`."""

    def window(self, path: str, line: int, around: int) -> Optional[Dict[int, str]]:
        """
        Return lines ``line - around`` to ``line + around`` keyed by line number.

        Lines past the end of the file are left out. Returns None when the
        file cannot be read.
        """
        linecache.checkcache(path)
        lines = linecache.getlines(path)
        if not lines:
            return None

        start = max(1, line - around)
        end = min(len(lines), line + around)
        if start > end:
            return None

        return {i: lines[i - 1].rstrip() for i in range(start, end + 1)}


def _qualified_function(frame) -> str:
    code = frame.f_code
    # co_qualname exists on 3.11+
    return getattr(code, "co_qualname", code.co_name)


def parse_exception(exc: BaseException) -> ParsedException:
    """
    Split an exception into message, class name and frames.

    Frames are ordered most recent call first.
    """
    frames: List[RawFrame] = []
    tb: Optional[TracebackType] = exc.__traceback__
    while tb is not None:
        frame = tb.tb_frame
        frames.append(
            RawFrame(
                file=frame.f_code.co_filename,
                line=tb.tb_lineno,
                module=frame.f_globals.get("__name__"),
                function=_qualified_function(frame),
            )
        )
        tb = tb.tb_next
    frames.reverse()

    return ParsedException(
        message=str(exc),
        class_name=type(exc).__name__,
        frames=frames,
    )


def method_name(frame: RawFrame) -> str:
    """Human readable ``module.function`` for a frame."""
    function = frame.function or "<unknown>"
    if frame.module:
        return f"{frame.module}.{function}"
    return function


def _is_source_file(path: Optional[str]) -> bool:
    return bool(path) and path.endswith(SOURCE_EXTENSIONS)


def _find_source_snippet(
    locator: SourceLocator, path: str, line: Optional[int]
) -> Optional[Dict[int, str]]:
    if line is None:
        return None
    try:
        return locator.window(os.path.abspath(path), line, SOURCE_CONTEXT_LINES)
    except Exception as e:
        logger.debug("source_snippet_unavailable", file=path, line=line, error=str(e))
        return None


def transform_stacktrace(
    frames: Iterable[RawFrame],
    project_ns: str = NO_PROJECT_NS,
    locator: Optional[SourceLocator] = None,
) -> List[StackFrame]:
    """
    Build Bugsnag stack frames, keeping the input order.

    Never raises: if the trace cannot be transformed, a single frame
    describing the failure is returned instead.

    Args:
        frames: Parsed frames, most recent first
        project_ns: Module prefix marking frames as in-project
        locator: Source lookup for code snippets. Defaults to linecache.

    Returns:
        List of StackFrame
    """
    locator = locator if locator is not None else LinecacheSourceLocator()

    try:
        result = []
        for frame in frames:
            code = None
            if _is_source_file(frame.file):
                code = _find_source_snippet(locator, frame.file, frame.line)

            result.append(
                StackFrame(
                    file=frame.file,
                    line_number=frame.line,
                    method=method_name(frame),
                    in_project=(frame.module or "_").startswith(project_ns),
                    code=code,
                )
            )
        return result

    except Exception as e:
        logger.warning("stacktrace_transform_failed", error=str(e))
        return [
            StackFrame(
                file=_THIS_FILE,
                line_number=1,
                code={1: str(e), 2: "thrown while building stack trace."},
            )
        ]
