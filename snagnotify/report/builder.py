"""Build Bugsnag error reports from exceptions."""

from collections.abc import Mapping
from typing import Any, Dict, Optional

import structlog

from ..client import environment
from ..config import settings
from ..errors import StructuredError
from .models import (
    AppInfo,
    DeviceInfo,
    ErrorReport,
    Event,
    ExceptionInfo,
    ReportOptions,
)
from .stacktrace import (
    NO_PROJECT_NS,
    SourceLocator,
    parse_exception,
    transform_stacktrace,
)

logger = structlog.get_logger(__name__)

HANDLED_EXCEPTION = "handledException"
UNHANDLED_EXCEPTION = "unhandledException"
UNHANDLED_EXCEPTION_MIDDLEWARE = "unhandledExceptionMiddleware"

EXCEPTION_DATA_KEY = "exception_data"


def stringify(value: Any) -> Any:
    """Pass JSON-friendly values through, stringify anything else."""
    if value is None or isinstance(value, (Mapping, str, int, float, list, tuple)):
        return value
    return str(value)


def _coerce_key(key: Any) -> Any:
    if key is None or isinstance(key, (str, int, float)):
        return key
    return str(key)


def coerce_metadata(value: Any) -> Any:
    """
    Recursively make a metadata value safe for JSON encoding.

    Mappings become dicts, lists and tuples become lists, and any value that
    is not a string, number, bool or None is replaced by ``str(value)``.
    Applying it twice gives the same result as applying it once.
    """
    value = stringify(value)
    if isinstance(value, Mapping):
        return {_coerce_key(k): coerce_metadata(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [coerce_metadata(v) for v in value]
    return value


def grouping_hash(exception: BaseException, message: str, class_name: str) -> str:
    """Structured errors group by message, everything else by class name."""
    if isinstance(exception, StructuredError) and message:
        return message
    return class_name


class ReportBuilder:
    """
    Turn an exception plus ReportOptions into an ErrorReport.

    Apart from the hostname and git revision lookups this does no I/O.
    """

    def __init__(self, locator: Optional[SourceLocator] = None):
        """
        Initialize builder.

        Args:
            locator: Source lookup for stack frame code snippets
        """
        self.locator = locator

    def build(self, exception: BaseException, options: Any = None) -> ErrorReport:
        """
        Build the report for ``exception``.

        Args:
            exception: The exception to report
            options: ReportOptions, a mapping of option fields, or None

        Returns:
            ErrorReport ready to be sent

        Raises:
            ConfigurationError: If no API key can be resolved
        """
        options = ReportOptions.coerce(options)

        api_key = environment.load_api_key(options.api_key)

        parsed = parse_exception(exception)
        stacktrace = transform_stacktrace(
            parsed.frames,
            options.project_ns or NO_PROJECT_NS,
            self.locator,
        )

        event = Event(
            exceptions=[
                ExceptionInfo(
                    error_class=parsed.class_name,
                    message=parsed.message,
                    stacktrace=stacktrace,
                )
            ],
            breadcrumbs=[],
            context=options.context,
            grouping_hash=options.group
            or grouping_hash(exception, parsed.message, parsed.class_name),
            severity=options.severity,
            severity_reason=options.severity_reason or {"type": HANDLED_EXCEPTION},
            unhandled=options.unhandled,
            user=options.user,
            app=AppInfo(
                version=options.version or environment.git_revision(),
                release_stage=options.environment or settings.release_stage,
            ),
            device=DeviceInfo(hostname=environment.get_hostname()),
            meta_data=self._metadata(exception, options.meta),
        )

        logger.debug(
            "report_built",
            error_class=parsed.class_name,
            grouping_hash=event.grouping_hash,
            frames=len(stacktrace),
        )

        return ErrorReport(api_key=api_key, events=[event])

    def _metadata(
        self, exception: BaseException, meta: Optional[Dict[Any, Any]]
    ) -> Dict[Any, Any]:
        """Exception payload data merged with caller metadata; caller wins."""
        merged: Dict[Any, Any] = {}
        if isinstance(exception, StructuredError):
            merged[EXCEPTION_DATA_KEY] = exception.data
        merged.update(meta or {})
        return coerce_metadata(merged)


def build_report(
    exception: BaseException,
    options: Any = None,
    locator: Optional[SourceLocator] = None,
) -> ErrorReport:
    """Build a report with a one-off ReportBuilder."""
    return ReportBuilder(locator).build(exception, options)
