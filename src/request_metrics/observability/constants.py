"""Constants for the observability layer."""

# Service identifier for logs
SERVICE_NAME = "request-metrics"

# Default event name for instrumented HTTP requests
REQUEST_EVENT = "request"

# Paths under this prefix belong to the metrics system itself and are never instrumented
DEFAULT_EXCLUDE_PREFIX = "/request_metrics"

# Placeholder substituted for the project root in rendered template paths
ROOT_PLACEHOLDER = "PROJECT_ROOT"


# Log event names following the pattern: {domain}.{action}.{result}
class LogEvents:
    """Standardized log event names."""

    # Notification bus
    NOTIFICATION_PUBLISHED = "notification.event.published"
    NOTIFICATION_LISTENER_FAILED = "notification.listener.failed"
    NOTIFICATION_BUILD_FAILED = "notification.event.build_failed"

    # Payload filtering
    PAYLOAD_FILTER_REGISTERED = "payload_filter.registered"
    PAYLOAD_FILTER_UNREGISTERED = "payload_filter.unregistered"
    PAYLOAD_FILTER_FAILED = "payload_filter.failed"

    # Request lifecycle
    REQUEST_EXCLUDED = "request.instrumentation.skipped"

    # Setup
    INSTRUMENTATION_READY = "instrumentation.setup.completed"

    # Recorder
    RECORD_SKIPPED = "recorder.event.skipped"
