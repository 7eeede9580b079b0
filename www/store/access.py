"""Access log sinks: where one record per request ends up."""

from __future__ import annotations

import abc
import re
from collections import deque
from dataclasses import asdict, dataclass
from datetime import datetime, timezone

import structlog

from www.middleware.pipeline import RequestContext

logger = structlog.get_logger("www.access")

# C0/C1 controls, DEL, line separators, bidi overrides, BOM
_CONTROL_CHARS = re.compile(
    r"[\x00-\x1f\x7f-\x9f\u2028\u2029\u200b-\u200f\u202a-\u202e\u2066-\u2069\ufeff]"
)

_MAX_PATH_LENGTH = 2048
_MAX_UA_LENGTH = 1024
_MAX_REFERRER_LENGTH = 2048
_MAX_HOST_LENGTH = 255
_MAX_IP_LENGTH = 45       # IPv6 max = 45 chars
_MAX_METHOD_LENGTH = 10


def _sanitize(value: str, max_length: int) -> str:
    """Strip control chars and truncate."""
    return _CONTROL_CHARS.sub("", value)[:max_length]


@dataclass(frozen=True)
class AccessRecord:
    """One served request."""

    timestamp: datetime
    method: str
    path: str
    status: int
    duration_ms: float
    client_ip: str = ""
    user_agent: str = ""
    referrer: str = ""
    host: str = ""
    request_id: str = ""

    @classmethod
    def from_context(cls, context: RequestContext, duration_ms: float, status: int | None = None) -> AccessRecord:
        request = context.request
        headers = request.headers if request is not None else {}
        client_ip = request.client.host if request is not None and request.client else ""
        return cls(
            timestamp=datetime.now(timezone.utc),
            method=_sanitize(context.method, _MAX_METHOD_LENGTH),
            path=_sanitize(context.path, _MAX_PATH_LENGTH),
            status=status if status is not None else context.final_status,
            duration_ms=round(max(duration_ms, 0.0), 2),
            client_ip=client_ip[:_MAX_IP_LENGTH],
            user_agent=_sanitize(headers.get("user-agent", ""), _MAX_UA_LENGTH),
            referrer=_sanitize(headers.get("referer", ""), _MAX_REFERRER_LENGTH),
            host=_sanitize(context.host, _MAX_HOST_LENGTH),
            request_id=context.request_id,
        )

    def as_dict(self) -> dict:
        row = asdict(self)
        row["timestamp"] = self.timestamp.isoformat()
        return row


class AccessLogSink(abc.ABC):
    """Destination for access records."""

    @abc.abstractmethod
    async def access(self, record: AccessRecord) -> None:
        ...


class StructlogAccessSink(AccessLogSink):
    """Emit each record as an ``access`` log event."""

    async def access(self, record: AccessRecord) -> None:
        row = record.as_dict()
        # "timestamp" is the log line's own key
        row["requested_at"] = row.pop("timestamp")
        logger.info("access", **row)


class CappedAccessSink(AccessLogSink):
    """Keep the newest ``max_entries`` records in memory, oldest evicted first."""

    def __init__(self, max_entries: int = 1000) -> None:
        self._records: deque[AccessRecord] = deque(maxlen=max_entries)

    async def access(self, record: AccessRecord) -> None:
        self._records.append(record)

    def recent(self, n: int | None = None) -> list[AccessRecord]:
        """Most recent records, newest first."""
        records = list(reversed(self._records))
        return records if n is None else records[:n]

    def __len__(self) -> int:
        return len(self._records)


def build_sink(kind: str, max_entries: int = 1000) -> AccessLogSink:
    if kind == "memory":
        return CappedAccessSink(max_entries)
    if kind == "log":
        return StructlogAccessSink()
    raise ValueError(f"unknown access log sink: {kind!r}")
