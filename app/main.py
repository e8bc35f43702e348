import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.v1.admin import router as admin_router
from app.api.v1.availability import router as availability_router
from app.api.v1.bookings import router as bookings_router
from app.core.config import settings
from app.wiring.dependencies import get_calendar_feed

LOG_CONTEXT_KEYS = ("booking_id", "status", "slot", "reason", "event_count", "error")


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        base = super().format(record)
        context = [
            f"{key}={getattr(record, key)}"
            for key in LOG_CONTEXT_KEYS
            if getattr(record, key, None) not in (None, "")
        ]
        return f"{base} | {' '.join(context)}" if context else base


handler = logging.StreamHandler()
handler.setFormatter(ContextFormatter("%(asctime)s %(levelname)s:%(name)s:%(message)s"))

root = logging.getLogger()
root.setLevel(getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
root.handlers.clear()
root.addHandler(handler)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(
        "Booking engine starting",
        extra={"status": f"store={settings.STORE_PROVIDER} tz={settings.APP_TIMEZONE} env={settings.ENV}"},
    )
    yield
    feed = get_calendar_feed()
    close = getattr(feed, "close", None)
    if close is not None:
        close()


app = FastAPI(title="Slot Booking Engine", version="1.0.0", lifespan=lifespan)

app.include_router(availability_router, tags=["availability"])
app.include_router(bookings_router, tags=["bookings"])
app.include_router(admin_router, tags=["admin"])


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
