"""FastAPI server for the payments chat bot: Telegram webhook and deposit events."""

from fastapi import FastAPI, Request, Header, status
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel, ValidationError
from typing import Optional, Any
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.util import get_remote_address
from slowapi.errors import RateLimitExceeded

from paybot.agents.bot_context import build_bot_context
from paybot.agents.message_processor import MessageProcessor
from paybot.schemas.core import NotificationEvent
from paybot.services.api_gateway import PaymentsAPIError
from paybot.utils.config import settings
from paybot.utils.logger import get_logger
from paybot.utils.response_utils import redact_sensitive

# Initialize logger first
logger = get_logger("api_server")

# Process-wide bot state, shared by the webhook and the polling runner
bot_context = build_bot_context(settings)
processor = MessageProcessor(bot_context)

# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Telegram webhook and deposit notification endpoints for the payments bot",
    version=settings.app_version,
    docs_url="/docs" if settings.debug else None,  # Disable docs in production
    redoc_url="/redoc" if settings.debug else None  # Disable redoc in production
)

# Initialize rate limiter
limiter = Limiter(key_func=get_remote_address)
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)


class StandardResponse(BaseModel):
    status: bool
    message: str
    data: Optional[Any] = None


# Exception handler for payments API errors
@app.exception_handler(PaymentsAPIError)
async def payments_api_exception_handler(request, exc: PaymentsAPIError):
    logger.error(f"Payments API error: {redact_sensitive(exc.message)}")
    return JSONResponse(
        status_code=exc.status_code or status.HTTP_502_BAD_GATEWAY,
        content={
            "status": False,
            "message": redact_sensitive(exc.message),
            "data": None
        }
    )


# General exception handler
@app.exception_handler(Exception)
async def general_exception_handler(request, exc: Exception):
    logger.error(f"Unexpected error: {redact_sensitive(str(exc))}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "status": False,
            "message": "An unexpected error occurred",
            "data": None
        }
    )


@app.on_event("startup")
async def startup_webhook_check():
    """Log configuration status and register the Telegram webhook when WEBHOOK_URL is set."""
    try:
        from paybot.utils.service_validator import log_service_status
        log_service_status(settings)
    except Exception as e:
        logger.warning(f"Could not validate services: {e}")

    if not settings.telegram_enabled:
        return
    webhook_url = (settings.webhook_url or "").strip()
    if not webhook_url:
        logger.info("WEBHOOK_URL not set; run `python main.py --polling` to receive Telegram updates")
        return
    host = settings.api_host
    if host in ("127.0.0.1", "localhost"):
        logger.warning(f"WEBHOOK_URL is set but API_HOST is {host}; Telegram cannot reach localhost. "
                       "On a VPS set API_HOST=0.0.0.0.")
    if not await bot_context.messenger.set_webhook(webhook_url, settings.telegram_webhook_secret):
        logger.error(f"Failed to register Telegram webhook at {webhook_url}")


@app.on_event("shutdown")
async def shutdown_notifications():
    bot_context.notifications.disconnect_all()


# Health check endpoint
@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "app": settings.app_name,
        "version": settings.app_version,
        "sessions": len(bot_context.sessions),
    }


# =============================================================================
# TELEGRAM WEBHOOK
# =============================================================================

@app.post("/telegram/webhook")
@limiter.limit("100/minute")
async def telegram_webhook(request: Request):
    """Handle incoming Telegram updates.

    Anything past the secret check answers 200, including updates that fail, so
    Telegram does not redeliver them.
    """
    if not settings.telegram_enabled:
        return Response(status_code=200)

    secret = (settings.telegram_webhook_secret or "").strip()
    if secret and request.headers.get("X-Telegram-Bot-Api-Secret-Token") != secret:
        logger.warning("Rejected Telegram webhook call with a bad secret token")
        return Response(status_code=403)

    try:
        body = await request.json()
    except ValueError:
        return Response(status_code=200)
    if not isinstance(body, dict):
        return Response(status_code=200)

    try:
        await processor.process_update(body)
    except Exception as e:
        logger.error(f"Telegram webhook error: {redact_sensitive(str(e))}")
    return Response(status_code=200)


# =============================================================================
# DEPOSIT NOTIFICATIONS
# =============================================================================

@app.post("/notifications/events")
@limiter.limit("300/minute")
async def notification_events(request: Request, x_notifications_secret: Optional[str] = Header(None)):
    """Receive an organization event from the push relay and fan it out to subscribed chats."""
    expected = (settings.notifications_secret or "").strip()
    if not expected:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": False, "message": "Notifications are not configured", "data": None},
        )
    if x_notifications_secret != expected:
        logger.warning("Rejected notification event with a bad secret")
        return JSONResponse(
            status_code=status.HTTP_403_FORBIDDEN,
            content={"status": False, "message": "Invalid notifications secret", "data": None},
        )

    try:
        event = NotificationEvent.model_validate(await request.json())
    except (ValueError, ValidationError) as e:
        logger.warning(f"Malformed notification event: {e}")
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"status": False, "message": "Malformed notification event", "data": None},
        )

    delivered = await bot_context.notifications.handle_event(event.organization_id, event.event, event.data)
    return StandardResponse(
        status=True,
        message=f"Event '{event.event}' processed",
        data={"delivered": delivered},
    )
