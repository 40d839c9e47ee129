"""Datasource connection object and the execution backend interface."""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from pydantic import BaseModel, ConfigDict, Field

from .connection import ConnectionSettings
from .host import InstanceSettings
from .models import FrameField, QueryDefinition, RawQuery, with_defaults

logger = logging.getLogger(__name__)


class HealthStatus(str, Enum):
    OK = "ok"
    ERROR = "error"
    UNKNOWN = "unknown"


class StreamStatus(str, Enum):
    OK = "ok"
    PERMISSION_DENIED = "permission_denied"


class StreamResult(BaseModel):
    """Answer to a request to subscribe or publish on a live channel."""

    status: StreamStatus
    message: str = ""


class HealthResult(BaseModel):
    """Outcome of a datasource health check."""

    status: HealthStatus
    message: str = ""


class TimeRange(BaseModel):
    start: datetime
    end: datetime


class QueryRequest(BaseModel):
    """One query from the host's envelope, already defaulted."""

    model_config = ConfigDict(frozen=True)

    ref_id: str
    query: QueryDefinition
    time_range: Optional[TimeRange] = None
    channel: Optional[str] = None


class QueryResult(BaseModel):
    """Result for a single ref id."""

    ref_id: str
    fields: List[FrameField] = Field(default_factory=list)
    rows: List[Dict[str, Any]] = Field(default_factory=list)
    channel: Optional[str] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.error is None


class QueryExecutor(ABC):
    """Backend that subscribes to the broker and extracts rule values."""

    @abstractmethod
    def execute(self, settings: ConnectionSettings, request: QueryRequest) -> QueryResult:
        """Run one query against the broker described by ``settings``."""
        pass

    @abstractmethod
    def check_health(self, settings: ConnectionSettings) -> HealthResult:
        """Report whether the broker is reachable with these settings."""
        pass


class MqttDataSource:
    """Connection object the host creates for each datasource instance."""

    def __init__(self, instance_settings: InstanceSettings, executor: Optional[QueryExecutor] = None):
        self.instance_settings = instance_settings
        self.settings = instance_settings.connection_settings()
        self.executor = executor

    @property
    def uid(self) -> str:
        return self.instance_settings.uid

    def stream_channel(self) -> str:
        """Live channel that streamed frames for this instance are sent on."""
        return f"ds/{self.uid}/stream"

    def build_request(self, raw: RawQuery, ref_id: str = "A",
                      time_range: Optional[TimeRange] = None) -> QueryRequest:
        return QueryRequest(
            ref_id=ref_id,
            query=with_defaults(raw),
            time_range=time_range,
            channel=self.stream_channel(),
        )

    def query(
        self,
        queries: Union[Mapping[str, RawQuery], Iterable[Mapping[str, Any]]],
        time_range: Optional[TimeRange] = None,
    ) -> Dict[str, QueryResult]:
        """Execute each query and collect results keyed by ref id.

        ``queries`` is either a ``{ref_id: query}`` mapping or a list of host
        envelopes carrying a ``refId`` key.
        """
        if isinstance(queries, Mapping):
            items = list(queries.items())
        else:
            items = [(envelope.get("refId", "A"), envelope) for envelope in queries]

        ref_ids = [ref_id for ref_id, _ in items]
        duplicates = sorted({ref_id for ref_id in ref_ids if ref_ids.count(ref_id) > 1})
        if duplicates:
            # Results are keyed by ref id; a repeat would hide an earlier result.
            raise ValueError(f"Duplicate query ref ids: {', '.join(duplicates)}")

        logger.info(f"Query called for datasource '{self.uid}' with {len(items)} queries")

        responses = {}
        for ref_id, raw in items:
            request = self.build_request(raw, ref_id, time_range)
            responses[ref_id] = self._execute(request)
        return responses

    def _execute(self, request: QueryRequest) -> QueryResult:
        duplicates = request.query.duplicate_aliases()
        if duplicates:
            logger.warning(
                f"Query {request.ref_id} has duplicate output aliases: {', '.join(duplicates)}")

        if self.executor is None:
            # No backend bound: describe the frame without data.
            return QueryResult(
                ref_id=request.ref_id,
                fields=request.query.output_columns(),
                channel=request.channel,
            )

        try:
            return self.executor.execute(self.settings, request)
        except Exception as e:
            logger.error(f"Query {request.ref_id} failed: {e}")
            return QueryResult(ref_id=request.ref_id, channel=request.channel, error=str(e))

    def check_health(self) -> HealthResult:
        if not self.settings.endpoint:
            return HealthResult(status=HealthStatus.ERROR,
                                message="No broker endpoint configured")

        if self.executor is None:
            return HealthResult(status=HealthStatus.UNKNOWN,
                                message="No execution backend available")

        try:
            result = self.executor.check_health(self.settings)
        except Exception as e:
            logger.warning(f"Health check failed: {e}")
            return HealthResult(status=HealthStatus.ERROR, message=str(e))

        if result.status != HealthStatus.OK:
            logger.warning(f"Health check for '{self.uid}' returned {result.status.value}: {result.message}")
        return result

    def subscribe_stream(self, path: str = "stream") -> StreamResult:
        """Allow subscribing to the live channel only while the broker is healthy."""
        logger.info(f"Subscribe requested for '{self.uid}' on path '{path}'")
        health = self.check_health()
        if health.status == HealthStatus.OK:
            return StreamResult(status=StreamStatus.OK)
        return StreamResult(status=StreamStatus.PERMISSION_DENIED, message=health.message)

    def publish_stream(self, path: str = "stream", data: Any = None) -> StreamResult:
        """Publishing to the broker through the live channel is never allowed."""
        logger.info(f"Publish requested for '{self.uid}' on path '{path}'")
        return StreamResult(status=StreamStatus.PERMISSION_DENIED,
                            message="Publishing is not supported")
