from __future__ import annotations

from prometheus_client import Counter

AUTH_FAILURES_TOTAL = Counter(
    "auth_failures_total", "Total authentication failures", ["reason"]
)

BLOCKED_REQUESTS_TOTAL = Counter(
    "blocked_requests_total", "Total requests blocked by security controls", ["control"]
)

DECRYPTION_FAILURES_TOTAL = Counter(
    "decryption_failures_total", "Total payloads that failed to decrypt", ["reason"]
)

UPLOAD_REJECTIONS_TOTAL = Counter(
    "upload_rejections_total", "Total uploads rejected by the upload policy", ["reason"]
)
