"""Wrap request handlers so unhandled exceptions are reported, then re-raised."""

import functools
from collections.abc import Mapping
from typing import Any, Callable, Dict, Optional, TypeVar

import structlog

from ..client.notifier import Notifier, get_notifier
from ..report.builder import UNHANDLED_EXCEPTION_MIDDLEWARE
from ..report.models import ReportOptions

logger = structlog.get_logger(__name__)

Request = Mapping
UserCallback = Callable[[Any], Any]
GroupCallback = Callable[[BaseException, Any], Optional[str]]

T = TypeVar("T")


def verb_path(request: Request) -> str:
    """``"<METHOD> <uri>"`` for a request, e.g. ``"GET /users/1"``."""
    method = str(request.get("request_method") or "unknown").upper()
    return f"{method} {request.get('uri') or ''}"


def user_from(callback: Optional[UserCallback], request: Request) -> Optional[Any]:
    """
    Run the user callback without letting it break reporting.

    Mappings are used as-is, other values become ``{"id": value}``.
    None, or a callback that raises, gives None.
    """
    if callback is None:
        return None
    try:
        user = callback(request)
    except Exception as e:
        logger.warning("user_callback_failed", error=str(e))
        return None
    if user is None:
        return None
    if isinstance(user, Mapping):
        return dict(user)
    return {"id": user}


def group_from(
    callback: Optional[GroupCallback], exception: BaseException, request: Request
) -> Optional[str]:
    """Run the grouping callback; a failure means no explicit group."""
    if callback is None:
        return None
    try:
        group = callback(exception, request)
    except Exception as e:
        logger.warning("grouping_callback_failed", error=str(e))
        return None
    return None if group is None else str(group)


def request_options(
    exception: BaseException,
    request: Request,
    options: Any = None,
    user_from_request: Optional[UserCallback] = None,
    grouping_hash_from_exception: Optional[GroupCallback] = None,
) -> ReportOptions:
    """
    Configured options plus the fields derived from a failed request.

    A configured ``context``, ``group`` or ``user`` wins over the value
    derived from the request; callbacks only run when it is missing.
    """
    options = ReportOptions.coerce(options)

    request_meta = {k: v for k, v in request.items() if k != "body"}
    meta: Dict[Any, Any] = dict(options.meta or {})
    meta["request"] = request_meta

    context = options.context
    if context is None:
        context = verb_path(request)

    group = options.group
    if group is None:
        group = group_from(grouping_hash_from_exception, exception, request)

    user = options.user
    if user is None:
        user = user_from(user_from_request, request)

    return options.model_copy(
        update={
            "context": context,
            "severity_reason": {"type": UNHANDLED_EXCEPTION_MIDDLEWARE},
            "unhandled": True,
            "group": group,
            "user": user,
            "meta": meta,
        }
    )


def report_request_exception(
    exception: BaseException,
    request: Request,
    options: Any = None,
    user_from_request: Optional[UserCallback] = None,
    grouping_hash_from_exception: Optional[GroupCallback] = None,
    notifier: Optional[Notifier] = None,
) -> None:
    """
    Report an exception raised while handling ``request``.

    Any failure while reporting (no API key, network errors) is logged and
    swallowed so the caller can re-raise the original exception.
    """
    try:
        report_options = request_options(
            exception,
            request,
            options,
            user_from_request,
            grouping_hash_from_exception,
        )
        logger.info(
            "request_exception_caught",
            context=report_options.context,
            group=report_options.group,
        )
        response = (notifier or get_notifier()).notify(exception, report_options)
        if response is not None:
            logger.info("request_exception_reported", status_code=response.status_code)
    except Exception as e:
        logger.error(
            "request_exception_report_failed",
            error=str(e),
            error_type=type(e).__name__,
        )


def wrap_handler(
    handler: Callable[[Request], T],
    options: Any = None,
    user_from_request: Optional[UserCallback] = None,
    grouping_hash_from_exception: Optional[GroupCallback] = None,
    notifier: Optional[Notifier] = None,
) -> Callable[[Request], T]:
    """
    Wrap a request handler to report unhandled exceptions to Bugsnag.

    The request is a mapping with at least ``request_method``, ``uri`` and
    optionally ``body`` (never reported). Successful results pass through
    untouched; exceptions are reported and then re-raised unchanged.

    Args:
        handler: Callable taking the request
        options: ReportOptions or mapping applied to every report
        user_from_request: ``(request) -> user`` callback
        grouping_hash_from_exception: ``(exception, request) -> group`` callback
        notifier: Notifier to report with. Defaults to the global one.

    Returns:
        The wrapped handler
    """
    options = ReportOptions.coerce(options)

    @functools.wraps(handler)
    def wrapped(request: Request) -> T:
        try:
            return handler(request)
        except Exception as exc:
            report_request_exception(
                exc,
                request,
                options,
                user_from_request,
                grouping_hash_from_exception,
                notifier,
            )
            raise

    return wrapped
