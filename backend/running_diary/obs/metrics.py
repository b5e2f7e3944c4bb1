"""Central registry for Prometheus metrics used across the backend."""

from __future__ import annotations

from prometheus_client import Counter, Gauge, Histogram

REQUEST_COUNTER = Counter(
	"diary_http_requests_total",
	"Total HTTP requests processed",
	["route", "method", "status"],
)

REQUEST_LATENCY = Histogram(
	"diary_http_request_duration_seconds",
	"HTTP request latency in seconds",
	["route", "method"],
	buckets=(0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.0, 5.0),
)

INVITATIONS = Counter(
	"diary_invitations_total",
	"Invitation lifecycle transitions",
	["action"],
)

JOIN_REQUESTS = Counter(
	"diary_join_requests_total",
	"Join request lifecycle transitions",
	["action"],
)

EVENT_RSVPS_UPDATED = Counter(
	"diary_event_rsvps_updated_total",
	"Event RSVP changes",
	["status"],
)

EVENTS_CREATED = Counter(
	"diary_events_created_total",
	"Events created (one per occurrence)",
)

EMAILS = Counter(
	"diary_emails_total",
	"Transactional emails by kind and outcome",
	["kind", "result"],
)

RATE_LIMITED = Counter(
	"diary_rate_limited_total",
	"Requests rejected by rate limiting",
	["kind"],
)

SOCKET_CLIENTS = Gauge(
	"diary_socketio_clients",
	"Active Socket.IO clients per namespace",
	["namespace"],
)

SOCKET_EVENTS = Counter(
	"diary_socketio_events_total",
	"Socket.IO events emitted per namespace",
	["namespace", "event"],
)

BACKGROUND_RUNS = Counter(
	"diary_background_runs_total",
	"Background job executions",
	["name", "result"],
)

BACKGROUND_DURATION = Histogram(
	"diary_background_duration_seconds",
	"Background job duration in seconds",
	["name"],
)


def observe_request(route: str, method: str, status: int, duration_seconds: float) -> None:
	REQUEST_COUNTER.labels(route=route, method=method, status=str(status)).inc()
	REQUEST_LATENCY.labels(route=route, method=method).observe(duration_seconds)


def inc_invitation(action: str) -> None:
	INVITATIONS.labels(action=action).inc()


def inc_join_request(action: str) -> None:
	JOIN_REQUESTS.labels(action=action).inc()


def inc_event_rsvp_updated(status: str) -> None:
	EVENT_RSVPS_UPDATED.labels(status=status).inc()


def inc_events_created(count: int = 1) -> None:
	EVENTS_CREATED.inc(count)


def inc_email(kind: str, result: str) -> None:
	EMAILS.labels(kind=kind, result=result).inc()


def inc_rate_limited(kind: str) -> None:
	RATE_LIMITED.labels(kind=kind).inc()


def socket_connected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).inc()


def socket_disconnected(namespace: str) -> None:
	SOCKET_CLIENTS.labels(namespace=namespace).dec()


def socket_event(namespace: str, event: str) -> None:
	SOCKET_EVENTS.labels(namespace=namespace, event=event).inc()
