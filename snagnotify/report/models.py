"""Bugsnag error report models."""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PAYLOAD_VERSION = "4.0"

NOTIFIER_NAME = "snagnotify"
NOTIFIER_VERSION = "1.1.0"
NOTIFIER_URL = "https://github.com/snagnotify/snagnotify"


class Severity(str, Enum):
    """Bugsnag event severity."""

    INFO = "info"
    WARNING = "warning"
    ERROR = "error"

    @classmethod
    def parse(cls, value: Any) -> "Severity":
        """Map any input to a severity, defaulting to ERROR."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        return cls.ERROR


class ReportOptions(BaseModel):
    """
    How to build one report.

    All fields are optional. Instances are immutable; build a new one per
    call instead of mutating.
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    api_key: Optional[str] = None
    project_ns: Optional[str] = None
    context: Optional[str] = None
    group: Optional[str] = None
    severity: Severity = Severity.ERROR
    severity_reason: Optional[Dict[str, Any]] = None
    unhandled: bool = False
    user: Optional[Any] = None
    version: Optional[str] = None
    environment: Optional[str] = None
    meta: Optional[Dict[Any, Any]] = None
    suppress_response: bool = False

    @field_validator("severity", mode="before")
    @classmethod
    def parse_severity(cls, v: Any) -> Severity:
        """Unknown or missing severities become ``error``."""
        return Severity.parse(v)

    @field_validator("unhandled", "suppress_response", mode="before")
    @classmethod
    def parse_flag(cls, v: Any) -> bool:
        """Treat None as False."""
        return bool(v) if v is not None else False

    @classmethod
    def coerce(cls, options: Any) -> "ReportOptions":
        """Accept None, a mapping or a ReportOptions instance."""
        if options is None:
            return cls()
        if isinstance(options, cls):
            return options
        return cls.model_validate(options)


class StackFrame(BaseModel):
    """One source-located stack frame."""

    model_config = ConfigDict(populate_by_name=True)

    file: Optional[str] = None
    line_number: Optional[int] = Field(default=None, alias="lineNumber")
    method: Optional[str] = None
    in_project: bool = Field(default=False, alias="inProject")
    code: Optional[Dict[int, str]] = None


class ExceptionInfo(BaseModel):
    """Exception class, message and stacktrace."""

    model_config = ConfigDict(populate_by_name=True)

    error_class: str = Field(alias="errorClass")
    message: str = ""
    stacktrace: List[StackFrame] = []


class Notifier(BaseModel):
    """Identity of this notifier library."""

    name: str = NOTIFIER_NAME
    version: str = NOTIFIER_VERSION
    url: str = NOTIFIER_URL


class AppInfo(BaseModel):
    """Application version and release stage."""

    model_config = ConfigDict(populate_by_name=True)

    version: Optional[str] = None
    release_stage: str = Field(default="production", alias="releaseStage")


class DeviceInfo(BaseModel):
    """Host the error occurred on."""

    hostname: str


class Event(BaseModel):
    """A single error occurrence."""

    model_config = ConfigDict(populate_by_name=True)

    exceptions: List[ExceptionInfo]
    breadcrumbs: List[Dict[str, Any]] = []
    context: Optional[str] = None
    grouping_hash: str = Field(alias="groupingHash")
    severity: Severity = Severity.ERROR
    severity_reason: Dict[str, Any]
    unhandled: bool = False
    user: Optional[Any] = None
    app: AppInfo
    device: DeviceInfo
    meta_data: Dict[Any, Any] = Field(default_factory=dict, alias="metaData")


class ErrorReport(BaseModel):
    """
    Bugsnag notify payload.

    This is the document POSTed to the ingestion endpoint.
    """

    model_config = ConfigDict(populate_by_name=True)

    api_key: str = Field(alias="apiKey")
    notifier: Notifier = Field(default_factory=Notifier)
    payload_version: str = Field(default=PAYLOAD_VERSION, alias="payloadVersion")
    events: List[Event]

    def to_payload(self) -> Dict[str, Any]:
        """Dump to the wire field names."""
        return self.model_dump(mode="python", by_alias=True)
