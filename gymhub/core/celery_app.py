from celery import Celery

from gymhub.business.maintenance.service import expiry_sweeper
from gymhub.core.config import get_settings
from gymhub.core.database import SessionLocal

settings = get_settings()

celery_app = Celery("gymhub_api", broker=settings.redis_url, backend=settings.redis_url)
celery_app.conf.beat_schedule = {
    "expire-subscriptions": {
        "task": "gymhub.tasks.expire_subscriptions",
        "schedule": float(settings.expiry_sweep_interval_seconds),
    },
}


@celery_app.task(name="gymhub.tasks.expire_subscriptions")
def expire_subscriptions_task() -> dict[str, int]:
    session = SessionLocal()
    try:
        return expiry_sweeper.expire_subscriptions(session).model_dump()
    finally:
        session.close()
