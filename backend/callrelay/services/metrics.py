"""Prometheus metrics instrumentation for the call relay.

Metrics exported:
- relay_calls_initiated_total: Counter of calls that started ringing
- relay_calls_ended_total: Counter of finished calls by end reason
- relay_messages_relayed_total: Counter of forwarded signaling messages by kind
- relay_signaling_errors_total: Counter of errors reported to clients by code
- relay_live_sessions: Gauge of ringing/active sessions
- relay_connections: Gauge of open WebSocket connections

Usage:
    from callrelay.services.metrics import start_metrics_server, calls_ended

    start_metrics_server(port=8001)
    calls_ended.labels(reason='timeout').inc()
"""

from prometheus_client import Counter, Gauge, start_http_server
import logging

logger = logging.getLogger(__name__)

calls_initiated = Counter(
    'relay_calls_initiated_total',
    'Total calls that started ringing'
)

calls_ended = Counter(
    'relay_calls_ended_total',
    'Total finished calls',
    labelnames=['reason']  # declined, caller_ended, receiver_ended, timeout, disconnect, expired
)

messages_relayed = Counter(
    'relay_messages_relayed_total',
    'Total opaque signaling messages forwarded',
    labelnames=['kind']  # call:offer, call:answer, call:ice-candidate
)

signaling_errors = Counter(
    'relay_signaling_errors_total',
    'Total signaling errors reported back to clients',
    labelnames=['code']
)

live_sessions_gauge = Gauge(
    'relay_live_sessions',
    'Number of ringing or active call sessions'
)

connections_gauge = Gauge(
    'relay_connections',
    'Number of open WebSocket connections'
)


def start_metrics_server(port: int = 8001):
    """Start Prometheus metrics HTTP server."""
    try:
        start_http_server(port)
        logger.info(f"✅ Metrics server started on port {port}")
    except Exception as e:
        logger.error(f"❌ Failed to start metrics server: {e}")
