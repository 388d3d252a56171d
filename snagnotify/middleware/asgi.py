"""Starlette / FastAPI middleware reporting unhandled exceptions to Bugsnag."""

from typing import Any, Dict, Optional

from fastapi import Request
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware

from ..client.notifier import Notifier
from .wrapper import GroupCallback, UserCallback, report_request_exception

# Headers that are never sent to Bugsnag
SENSITIVE_HEADERS = frozenset({"authorization", "cookie", "set-cookie", "x-api-key"})


def request_to_dict(request: Request) -> Dict[str, Any]:
    """Describe a Starlette request in the mapping shape the reporter expects."""
    headers = {
        k: v for k, v in request.headers.items() if k.lower() not in SENSITIVE_HEADERS
    }
    return {
        "request_method": request.method,
        "uri": request.url.path,
        "query_string": request.url.query,
        "scheme": request.url.scheme,
        "server_name": request.url.hostname,
        "headers": headers,
        "remote_addr": request.client.host if request.client else None,
    }


class SnagnotifyMiddleware(BaseHTTPMiddleware):
    """
    Report exceptions escaping the app, then re-raise them.

    The request body is never read or reported. Callbacks receive the
    request mapping built by :func:`request_to_dict`.
    """

    def __init__(
        self,
        app,
        options: Any = None,
        user_from_request: Optional[UserCallback] = None,
        grouping_hash_from_exception: Optional[GroupCallback] = None,
        notifier: Optional[Notifier] = None,
    ):
        super().__init__(app)
        self.options = options
        self.user_from_request = user_from_request
        self.grouping_hash_from_exception = grouping_hash_from_exception
        self.notifier = notifier

    async def dispatch(self, request: Request, call_next):
        try:
            return await call_next(request)
        except Exception as exc:
            await run_in_threadpool(
                report_request_exception,
                exc,
                request_to_dict(request),
                self.options,
                self.user_from_request,
                self.grouping_hash_from_exception,
                self.notifier,
            )
            raise
