from prometheus_client import Counter, Histogram

REQUEST_COUNT = Counter(
    "app_request_count",
    "Application Request Count",
    ["app_name", "method", "endpoint", "http_status"]
)
REQUEST_LATENCY = Histogram(
    "app_request_latency_seconds",
    "Application Request Latency",
    ["app_name", "method", "endpoint"]
)
PAYMENT_ATTEMPTS = Counter(
    "payment_attempts_total",
    "Payment attempts by outcome",
    ["outcome"]
)
