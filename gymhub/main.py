from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from gymhub.api.routes import router as api_router
from gymhub.core.config import get_settings
from gymhub.core.events import InternalEvent, event_bus
from gymhub.logging import configure_logging
from gymhub.middleware.correlation_id import CorrelationIdMiddleware
from gymhub.middleware.request_logging import RequestLoggingMiddleware
from gymhub.otel import get_fastapi_server_request_hook, setup_otel
from gymhub.platform.errors import register_exception_handlers


configure_logging()
logger = logging.getLogger("gymhub.lifecycle")

_subscription_event_types = [
    "owner_subscription.activated",
    "owner_subscription.renewed",
    "owner_subscription.deactivated",
    "owner_subscription.deleted",
    "member_subscription.activated",
    "subscription.expired",
    "subscription.expiring",
]


def _on_system_started(event: InternalEvent) -> None:
    logger.info("system_event", extra={"event_name": event.name})


def _on_subscription_event(event: InternalEvent) -> None:
    payload = event.payload.get("payload") if isinstance(event.payload, dict) else None
    subscription_id = payload.get("subscription_id") if isinstance(payload, dict) else None
    logger.info("subscription_event", extra={"event_name": event.name, "subscription_id": subscription_id})


@asynccontextmanager
async def lifespan(app: FastAPI):
    event_bus.subscribe("system.started", _on_system_started)
    for event_name in _subscription_event_types:
        event_bus.subscribe(event_name, _on_subscription_event)
    event_bus.publish("system.started", {"service": "api"})
    try:
        yield
    finally:
        event_bus.unsubscribe("system.started", _on_system_started)
        for event_name in _subscription_event_types:
            event_bus.unsubscribe(event_name, _on_subscription_event)


settings = get_settings()

app = FastAPI(title=settings.app_name, version="0.1.0", lifespan=lifespan)
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(CorrelationIdMiddleware)
register_exception_handlers(app)
app.include_router(api_router)

if settings.otel_enabled:
    setup_otel("api", True)

if not getattr(app, "_is_instrumented_by_opentelemetry", False):
    FastAPIInstrumentor().instrument_app(app, server_request_hook=get_fastapi_server_request_hook())
