from fastapi import APIRouter, Response
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST, CollectorRegistry
from prometheus_client.multiprocess import MultiProcessCollector
import logging
import os

logger = logging.getLogger(__name__)

router = APIRouter()

registry = CollectorRegistry()

if 'PROMETHEUS_MULTIPROC_DIR' in os.environ:
    try:
        MultiProcessCollector(registry)
    except ValueError as e:
        logger.warning("Prometheus multiprocess collector disabled: %s", e)

auth_jwt_errors = Counter(
    'focusshield_auth_jwt_errors_total',
    'Total number of JWT decode/validation errors',
    registry=registry
)

records_upserted = Counter(
    'focusshield_records_upserted_total',
    'Total number of records upserted by clients',
    labelnames=['kind'],
    registry=registry
)

remote_store_errors = Counter(
    'focusshield_remote_store_errors_total',
    'Total number of failed remote store operations',
    labelnames=['operation'],
    registry=registry
)

webhook_events = Counter(
    'focusshield_webhook_events_total',
    'Total number of payment webhook events received',
    labelnames=['event_type'],
    registry=registry
)

report_build_duration = Histogram(
    'focusshield_report_build_duration_seconds',
    'Weekly report build duration in seconds',
    buckets=[0.001, 0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0],
    registry=registry
)


@router.get("/metrics")
async def get_metrics():
    """
    Prometheus metrics endpoint.
    Exposes application metrics in Prometheus text format.
    """
    return Response(content=generate_latest(registry), media_type=CONTENT_TYPE_LATEST)
