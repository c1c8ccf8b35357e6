from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from booking_app.api import auth, bookings, catalog, notifications, verification
from booking_app.core.config import settings
from booking_app.core.errors import BookingAppError
from booking_app.core.logger import logger, setup_logging
from booking_app.models.db_models import Notification
from booking_app.services.notification_service import email_admin, email_enabled, flush_emails, hub

setup_logging()


def _log_notification(notification: Notification) -> None:
    logger.info(f"📬 {notification.message} ({notification.service}, {notification.date.isoformat()} {notification.time_slot})")


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"🚀 Starting {settings.PROJECT_NAME} ({settings.STORE_BACKEND} store)")
    unsubscribers = [hub.subscribe(_log_notification)]
    if email_enabled():
        unsubscribers.append(hub.subscribe(email_admin))
        logger.info(f"📧 New bookings will be emailed to {settings.ADMIN_EMAIL}")
    logger.info(f"📡 {hub.listener_count} notification listener(s) subscribed")
    yield
    # Shutdown
    await flush_emails()
    for unsubscribe in unsubscribers:
        unsubscribe()
    logger.info("🛑 Shutting down backend")


app = FastAPI(
    title=settings.PROJECT_NAME,
    version="0.1.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(BookingAppError)
async def booking_error_handler(request: Request, exc: BookingAppError):
    if exc.status_code >= 500:
        logger.error(f"❌ {request.method} {request.url.path}: {exc.message}")
    return JSONResponse(status_code=exc.status_code, content={"error": exc.message})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first.get("loc", ())[1:]) or "request"
        message = f"{field}: {first.get('msg', 'invalid value')}"
    else:
        message = "Invalid request"
    return JSONResponse(status_code=400, content={"error": message})


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse(status_code=exc.status_code, content={"error": str(exc.detail)})


# Global Exception Handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error(f"🔥 UNHANDLED ERROR: {str(exc)}", exc_info=True)
    return JSONResponse(status_code=500, content={"error": "An unexpected error occurred"})


# Include routers
for module, tag in (
    (auth, "Auth"),
    (bookings, "Bookings"),
    (catalog, "Catalog"),
    (notifications, "Notifications"),
    (verification, "Verification"),
):
    app.include_router(module.router, prefix=settings.API_PREFIX, tags=[tag])


@app.get(f"{settings.API_PREFIX}/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("booking_app.main:app", host="0.0.0.0", port=settings.PORT, reload=True)
