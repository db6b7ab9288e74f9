"""Metrics middleware and bridge counters"""

import re
import time

from starlette.middleware.base import BaseHTTPMiddleware
from prometheus_client import Counter, Histogram, Gauge
import structlog

logger = structlog.get_logger(__name__)

# HTTP
REQUEST_COUNT = Counter(
    'gesturevoice_http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code']
)

REQUEST_DURATION = Histogram(
    'gesturevoice_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint']
)

# Realtime channel
ACTIVE_CONNECTIONS = Gauge(
    'gesturevoice_websocket_connections_active',
    'Active WebSocket connections'
)

ACTIVE_SESSIONS = Gauge(
    'gesturevoice_sessions_active',
    'Sessions registered with the coordinator'
)

EVENTS_RECEIVED = Counter(
    'gesturevoice_events_received_total',
    'Inbound events dispatched',
    ['event']
)

EVENTS_DROPPED = Counter(
    'gesturevoice_events_dropped_total',
    'Inbound events dropped because the stage was busy',
    ['stage']
)

DISPATCH_ERRORS = Counter(
    'gesturevoice_dispatch_errors_total',
    'Error events sent to clients',
    ['code']
)

STAGE_DURATION = Histogram(
    'gesturevoice_stage_duration_seconds',
    'Time spent in a gated perception stage',
    ['stage']
)

_UUID = re.compile(r'/[0-9a-f]{8}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{4}-[0-9a-f]{12}')
_NUMERIC = re.compile(r'/\d+')


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware to collect HTTP metrics"""
    
    async def dispatch(self, request, call_next):
        start_time = time.time()
        response = await call_next(request)
        duration = time.time() - start_time
        
        endpoint = self._normalize_endpoint(request.url.path)
        
        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=endpoint,
            status_code=response.status_code
        ).inc()
        
        REQUEST_DURATION.labels(
            method=request.method,
            endpoint=endpoint
        ).observe(duration)
        
        return response
    
    def _normalize_endpoint(self, path: str) -> str:
        """Collapse ids so label cardinality stays bounded"""
        path = _UUID.sub('/{uuid}', path)
        return _NUMERIC.sub('/{id}', path)


def record_websocket_connection():
    ACTIVE_CONNECTIONS.inc()


def record_websocket_disconnection():
    ACTIVE_CONNECTIONS.dec()


def record_session_opened():
    ACTIVE_SESSIONS.inc()


def record_session_closed():
    ACTIVE_SESSIONS.dec()


def record_event(event: str):
    EVENTS_RECEIVED.labels(event=event).inc()


def record_dropped_event(stage: str):
    EVENTS_DROPPED.labels(stage=stage).inc()


def record_dispatch_error(code: str):
    DISPATCH_ERRORS.labels(code=code).inc()


def observe_stage_duration(stage: str, seconds: float):
    STAGE_DURATION.labels(stage=stage).observe(seconds)
