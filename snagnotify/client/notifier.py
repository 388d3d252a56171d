"""Report exceptions to Bugsnag."""

from typing import Any, Optional

import httpx
import structlog

from ..report.builder import ReportBuilder
from ..report.models import ReportOptions
from .transport import Transport

logger = structlog.get_logger(__name__)


class Notifier:
    """
    Build and send error reports.

    Options accepted by :meth:`notify` (as a ReportOptions or a mapping):

    - api_key: Bugsnag API key. Falls back to the ``BUGSNAG_KEY``
      environment variable, then the ``bugsnagKey`` process property;
      ConfigurationError if none is set.
    - project_ns: Module prefix whose frames are marked in-project.
    - context: Where the error happened, e.g. ``"GET /users"``.
    - group: Grouping hash. Defaults to the message for StructuredError,
      otherwise the exception class name.
    - severity: ``info``, ``warning`` or ``error`` (default).
    - severity_reason: Defaults to ``{"type": "handledException"}``.
    - unhandled: Defaults to False.
    - user: String or mapping describing the active user.
    - version: App version. Defaults to the git revision.
    - environment: Release stage. Defaults to ``production``.
    - meta: Arbitrary metadata.
    - suppress_response: Return None instead of the HTTP response.
    """

    def __init__(
        self,
        builder: Optional[ReportBuilder] = None,
        transport: Optional[Transport] = None,
    ):
        self.builder = builder or ReportBuilder()
        self.transport = transport or Transport()

    def notify(
        self, exception: BaseException, options: Any = None
    ) -> Optional[httpx.Response]:
        """
        Report ``exception``.

        Returns:
            The HTTP response, or None when ``suppress_response`` is set

        Raises:
            ConfigurationError: If no API key is configured; nothing is sent
            httpx.HTTPError: If delivery fails
        """
        options = ReportOptions.coerce(options)
        report = self.builder.build(exception, options)

        logger.info(
            "notifying_bugsnag",
            error_class=type(exception).__name__,
            context=options.context,
            unhandled=options.unhandled,
        )

        return self.transport.send(report, suppress_response=options.suppress_response)

    def notify_silently(self, exception: BaseException, options: Any = None) -> None:
        """Report ``exception`` and always return None."""
        options = ReportOptions.coerce(options)
        self.notify(exception, options.model_copy(update={"suppress_response": True}))


_default_notifier: Optional[Notifier] = None


def get_notifier() -> Notifier:
    """Get or create the process-wide default notifier."""
    global _default_notifier
    if _default_notifier is None:
        _default_notifier = Notifier()
    return _default_notifier


def notify(exception: BaseException, options: Any = None) -> Optional[httpx.Response]:
    """Report ``exception`` with the default notifier."""
    return get_notifier().notify(exception, options)


def notify_silently(exception: BaseException, options: Any = None) -> None:
    """Report ``exception`` with the default notifier, returning None."""
    get_notifier().notify_silently(exception, options)
