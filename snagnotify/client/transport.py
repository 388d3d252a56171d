"""HTTP delivery of error reports."""

from typing import Optional

import httpx
import orjson
import structlog

from ..config import settings
from ..report.models import ErrorReport

logger = structlog.get_logger(__name__)


def serialize_report(report: ErrorReport) -> bytes:
    """Encode a report as JSON; integer keys (source line numbers) become strings."""
    return orjson.dumps(report.to_payload(), option=orjson.OPT_NON_STR_KEYS)


class Transport:
    """
    POST error reports to the Bugsnag notify endpoint.

    One synchronous attempt per report. Network and protocol errors from
    httpx propagate to the caller.
    """

    def __init__(
        self,
        url: Optional[str] = None,
        client: Optional[httpx.Client] = None,
        timeout: Optional[float] = None,
    ):
        """
        Initialize transport.

        Args:
            url: Notify endpoint. Defaults to ``settings.notify_url``.
            client: httpx client to send with. A client is created per send
                when omitted.
            timeout: Request timeout in seconds when no client is given
        """
        self.url = url or settings.notify_url
        self.client = client
        self.timeout = timeout if timeout is not None else settings.timeout_seconds

    def send(
        self, report: ErrorReport, suppress_response: bool = False
    ) -> Optional[httpx.Response]:
        """
        Send a report.

        Args:
            report: Report to deliver
            suppress_response: Return None instead of the response

        Returns:
            The httpx response, or None if suppressed
        """
        body = serialize_report(report)
        headers = {"Content-Type": "application/json"}

        if self.client is not None:
            response = self.client.post(self.url, content=body, headers=headers)
        else:
            with httpx.Client(timeout=self.timeout) as client:
                response = client.post(self.url, content=body, headers=headers)

        logger.debug(
            "report_sent",
            url=self.url,
            status_code=response.status_code,
        )

        if suppress_response:
            return None
        return response
