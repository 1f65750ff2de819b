"""
Prometheus metrics configuration
"""
import os

from prometheus_client import (CONTENT_TYPE_LATEST, CollectorRegistry,
                               Counter, Histogram, generate_latest)
from prometheus_client.multiprocess import MultiProcessCollector
from prometheus_client.registry import REGISTRY

# ============================================================================
# HTTP Request Metrics
# ============================================================================

http_requests_total = Counter(
    'jtbd_http_requests_total',
    'Total number of HTTP requests',
    ['method', 'endpoint', 'status_code']
)

http_request_duration_seconds = Histogram(
    'jtbd_http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint', 'status_code'],
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0)
)

http_errors_total = Counter(
    'jtbd_http_errors_total',
    'Total number of HTTP errors',
    ['method', 'endpoint', 'status_code', 'error_type']
)

# ============================================================================
# Database Metrics
# ============================================================================

db_queries_total = Counter(
    'jtbd_db_queries_total',
    'Total number of database queries',
    ['operation']  # select, insert, update, delete
)

db_query_duration_seconds = Histogram(
    'jtbd_db_query_duration_seconds',
    'Database query duration in seconds',
    ['operation'],
    buckets=(0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5)
)

# ============================================================================
# Domain Metrics
# ============================================================================

collection_writes_total = Counter(
    'jtbd_collection_writes_total',
    'Writes against named collections',
    ['collection', 'operation', 'outcome']  # outcome: ok, rejected, not_found
)

auth_events_total = Counter(
    'jtbd_auth_events_total',
    'Authentication events',
    ['event']  # register, login, login_failed, logout, session_expired
)

log_records_total = Counter(
    'jtbd_log_records_total',
    'Log records emitted by level',
    ['level']
)


def get_metrics():
    """
    Get Prometheus metrics in text format

    Under several workers (PROMETHEUS_MULTIPROC_DIR set) the samples are
    aggregated from the shared directory instead of this process only.

    Returns:
        bytes: Metrics in Prometheus text format
    """
    if os.environ.get('PROMETHEUS_MULTIPROC_DIR'):
        registry = CollectorRegistry()
        MultiProcessCollector(registry)
        return generate_latest(registry)
    return generate_latest(REGISTRY)


def get_metrics_content_type():
    """Get content type for Prometheus metrics"""
    return CONTENT_TYPE_LATEST
