from prometheus_client import Counter

REQUEST_COUNT = Counter(
    "http_requests_total",
    "Total number of HTTP requests",
    ["method", "path", "status_code"],
)

PRODUCT_MUTATIONS = Counter(
    "product_mutations_total",
    "Total number of committed product mutations",
    ["operation"],
)

PHOTO_LOADS = Counter(
    "photo_loads_total",
    "Total number of photo loads by outcome",
    ["status"],
)
