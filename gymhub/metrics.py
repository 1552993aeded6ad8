from __future__ import annotations

import re

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.requests import Request


http_requests_total = Counter(
    "http_requests_total",
    "Total HTTP requests",
    ["method", "path", "status"],
)

http_request_duration_seconds = Histogram(
    "http_request_duration_seconds",
    "HTTP request duration in seconds",
    ["method", "path"],
)

plan_limit_exceeded_total = Counter(
    "plan_limit_exceeded_total",
    "Create or move operations rejected by a plan quota",
    ["resource_type"],
)

owner_subscriptions_expired_total = Counter(
    "owner_subscriptions_expired_total",
    "Owner subscriptions flipped to expired by the sweeper",
)

member_subscriptions_expired_total = Counter(
    "member_subscriptions_expired_total",
    "Member subscriptions flipped to expired by the sweeper",
)

ownership_denied_writes_total = Counter(
    "ownership_denied_writes_total",
    "Writes rejected because the caller does not own the resource",
    ["resource"],
)


_UUID_RE = re.compile(
    r"\b[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[1-5][0-9a-fA-F]{3}-[89abAB][0-9a-fA-F]{3}-[0-9a-fA-F]{12}\b"
)
_INT_RE = re.compile(r"/\d+\b")
_PATH_PARAM_RE = re.compile(r"\{[^{}]+\}")


def _sanitize_path(path: str) -> str:
    without_uuids = _UUID_RE.sub("{id}", path)
    return _INT_RE.sub("/{id}", without_uuids)


def resolve_http_path_label(request: Request) -> str:
    route = request.scope.get("route")
    if route is not None:
        path_format = getattr(route, "path_format", None) or getattr(route, "path", None)
        if isinstance(path_format, str) and path_format:
            return _PATH_PARAM_RE.sub("{id}", path_format)
    return _sanitize_path(request.url.path)


def observe_http_request(method: str, path: str, status: int, duration: float) -> None:
    http_requests_total.labels(method=method, path=path, status=str(status)).inc()
    http_request_duration_seconds.labels(method=method, path=path).observe(duration)


def observe_limit_exceeded(resource_type: str) -> None:
    plan_limit_exceeded_total.labels(resource_type=resource_type).inc()


def observe_subscriptions_expired(owner_count: int, member_count: int) -> None:
    if owner_count > 0:
        owner_subscriptions_expired_total.inc(owner_count)
    if member_count > 0:
        member_subscriptions_expired_total.inc(member_count)


def observe_ownership_denied_write(resource: str) -> None:
    ownership_denied_writes_total.labels(resource=resource).inc()


def generate_metrics_payload() -> bytes:
    return generate_latest()


def metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST
