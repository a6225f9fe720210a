"""
Prometheus metrics definitions.
All metrics are registered here and can be imported by other modules.
"""
from prometheus_client import Counter, Histogram

# HTTP request metrics
http_requests_total = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'path', 'status']
)

http_request_duration_seconds = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'path'],
    buckets=[0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0]
)

# Error metrics
errors_total = Counter(
    'errors_total',
    'Total errors',
    ['error_type']
)

# Ingestion metrics
ingestions_total = Counter(
    'ingestions_total',
    'Total media ingestions',
    ['kind', 'outcome']
)

ingest_stage_duration_seconds = Histogram(
    'ingest_stage_duration_seconds',
    'Duration of each ingestion stage in seconds',
    ['stage'],
    buckets=[0.01, 0.05, 0.1, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, 60.0, 120.0, 300.0]
)

ingested_bytes_total = Counter(
    'ingested_bytes_total',
    'Total bytes of processed media stored',
    ['kind']
)

# External tool metrics
external_tool_failures_total = Counter(
    'external_tool_failures_total',
    'Total external media tool failures',
    ['tool']
)
