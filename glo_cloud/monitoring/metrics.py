# glo_cloud/monitoring/metrics.py
from prometheus_client import Counter, Gauge
from prometheus_fastapi_instrumentator import Instrumentator

# Business Metrics
files_uploaded = Counter(
    'glo_files_uploaded_total',
    'Total number of files stored',
    ['source']
)

upload_bytes = Counter(
    'glo_upload_bytes_total',
    'Total bytes written by uploads'
)

files_downloaded = Counter(
    'glo_files_downloaded_total',
    'Total number of downloads served',
    ['channel']
)

public_share_access = Counter(
    'glo_public_share_access_total',
    'Public share link requests by outcome',
    ['outcome']
)

shares_created = Counter(
    'glo_shares_created_total',
    'Shares created',
    ['kind']
)

storage_used_bytes = Gauge(
    'glo_storage_used_bytes',
    'Bytes stored across all users, as of the last analytics query'
)

class MetricsCollector:
    def __init__(self):
        self.instrumentator = Instrumentator(
            should_group_status_codes=False,
            should_ignore_untemplated=True,
            should_instrument_requests_inprogress=True,
            excluded_handlers=["/metrics", "/api/health", "/api/live", "/api/ready"],
            inprogress_name="glo_requests_inprogress",
            inprogress_labels=True,
        )

    def instrument_app(self, app):
        """Add automatic instrumentation to FastAPI app and expose /metrics"""
        self.instrumentator.instrument(app).expose(app, endpoint="/metrics", include_in_schema=False)

metrics_collector = MetricsCollector()
