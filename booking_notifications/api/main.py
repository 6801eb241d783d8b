"""Notification pipeline operations API.

FastAPI application exposing the notification queue:
- POST /notifications: Enqueue a notification
- GET /notifications/{job_id}: Inspect one job
- GET /appointments/{ref}/notifications: Audit trail of an appointment
- GET /queue/status: Queue statistics
- POST /queue/process: Run one delivery tick
- GET /health: Service health check

Security features:
- API key authentication
- Sanitized error responses

Author: Odiseo
Version: 2.1.0
"""

from __future__ import annotations

import asyncio
import secrets
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, status
from fastapi.responses import JSONResponse
from fastapi.security import APIKeyHeader

from booking_notifications.api.schemas import (
    AppointmentNotificationsResponse,
    EnqueueResponse,
    ErrorResponse,
    HealthResponse,
    NotificationRequest,
    NotificationResponse,
    ProcessQueueResponse,
    QueueStatusResponse,
)
from booking_notifications.clients import build_transport
from booking_notifications.config import NotificationConfig
from booking_notifications.core.exceptions import JobNotFound, UnknownNotificationKind
from booking_notifications.core.logger import get_logger, setup_logging_from_config
from booking_notifications.database import Database, NotificationQueue
from booking_notifications.templates import TemplateRenderer
from booking_notifications.worker.processor import DeliveryWorker

logger = get_logger(__name__)


# =============================================================================
# Application State (Dependency Injection)
# =============================================================================
@dataclass
class AppState:
    """Application state container for dependency injection."""

    config: NotificationConfig
    queue: NotificationQueue | None = None
    process_lock: asyncio.Lock = field(default_factory=asyncio.Lock)


app_state: AppState | None = None


def get_config() -> NotificationConfig:
    """Dependency: Get application configuration."""
    if not app_state or not app_state.config:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return app_state.config


def get_queue() -> NotificationQueue:
    """Dependency: Get notification queue instance."""
    if not app_state or not app_state.queue:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return app_state.queue


def get_process_lock() -> asyncio.Lock:
    """Dependency: Lock serializing API delivery ticks."""
    if not app_state:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service not initialized",
        )
    return app_state.process_lock


# =============================================================================
# API Key Authentication
# =============================================================================
API_KEY_HEADER = APIKeyHeader(name="X-API-Key", auto_error=False)


async def verify_api_key(
    api_key: Annotated[str | None, Depends(API_KEY_HEADER)],
    config: Annotated[NotificationConfig, Depends(get_config)],
) -> bool:
    """Verify API key if authentication is enabled.

    Returns True if:
    - API_KEY is not configured (auth disabled)
    - API_KEY matches the provided key
    """
    configured_key = config.API_KEY

    if not configured_key:
        return True

    if not api_key:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="API key required",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    if not secrets.compare_digest(api_key, configured_key):
        logger.warning("Invalid API key attempt")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid API key",
            headers={"WWW-Authenticate": "ApiKey"},
        )

    return True


_config = NotificationConfig()


# =============================================================================
# Lifespan Context Manager
# =============================================================================
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup/shutdown."""
    global app_state

    app_state = AppState(config=_config)
    setup_logging_from_config(_config)

    try:
        db = Database(_config)
        renderer = TemplateRenderer(_config.TEMPLATE_DIR, _config.APP_URL)
        app_state.queue = NotificationQueue(db, renderer, _config)
        logger.info(f"Database connected: {_config.SCHEMA_NAME}.notification_jobs")
    except Exception as e:
        logger.error(f"Failed to start API: {e}")
        raise

    yield

    logger.info(f"Shutting down {_config.SERVICE_NAME}...")
    if app_state and app_state.queue:
        app_state.queue.close()
    logger.info(f"{_config.SERVICE_NAME} stopped")


def create_app() -> FastAPI:
    """Create and configure FastAPI application."""
    return FastAPI(
        title=_config.SERVICE_NAME,
        description="Appointment notification queue and delivery operations",
        version=_config.SERVICE_VERSION,
        lifespan=lifespan,
    )


app = create_app()


# =============================================================================
# API Endpoints
# =============================================================================
@app.post(
    "/notifications",
    response_model=EnqueueResponse,
    status_code=status.HTTP_202_ACCEPTED,
    responses={
        400: {"model": ErrorResponse, "description": "Unknown notification kind"},
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
)
async def enqueue_notification(
    request: NotificationRequest,
    queue: Annotated[NotificationQueue, Depends(get_queue)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> EnqueueResponse:
    """Queue a notification for delivery.

    Nothing is sent synchronously; the delivery worker picks the job up
    once it is due.
    """
    try:
        job = queue.enqueue(
            request.kind,
            str(request.recipient_address),
            request.recipient_name,
            request.variables,
            appointment_ref=request.appointment_ref,
            delay_minutes=request.delay_minutes,
            business_ref=request.business_ref,
            customer_ref=request.customer_ref,
        )

        return EnqueueResponse(
            status="accepted",
            queued=True,
            job_id=job.id,
            scheduled_for=job.scheduled_for,
            detail="Notification stored in queue",
        )

    except UnknownNotificationKind as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        ) from None
    except Exception as e:
        logger.error(f"Failed to queue notification: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process notification request",
        ) from None


@app.get(
    "/notifications/{job_id}",
    response_model=NotificationResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        404: {"model": ErrorResponse, "description": "Job not found"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
)
async def get_notification(
    job_id: int,
    queue: Annotated[NotificationQueue, Depends(get_queue)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> NotificationResponse:
    try:
        return NotificationResponse.from_job(queue.get_job(job_id))
    except JobNotFound as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e)) from None
    except Exception as e:
        logger.error(f"Failed to get notification #{job_id}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve notification",
        ) from None


@app.get(
    "/appointments/{appointment_ref}/notifications",
    response_model=AppointmentNotificationsResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
)
async def get_appointment_notifications(
    appointment_ref: str,
    queue: Annotated[NotificationQueue, Depends(get_queue)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> AppointmentNotificationsResponse:
    """All notifications ever queued for an appointment, oldest first."""
    try:
        jobs = queue.jobs_for_appointment(appointment_ref)
        return AppointmentNotificationsResponse(
            appointment_ref=appointment_ref,
            notifications=[NotificationResponse.from_job(job) for job in jobs],
        )
    except Exception as e:
        logger.error(f"Failed to get notifications for {appointment_ref}: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve notifications",
        ) from None


@app.get(
    "/queue/status",
    response_model=QueueStatusResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Unauthorized"},
        500: {"model": ErrorResponse, "description": "Server error"},
    },
)
async def get_queue_status_endpoint(
    queue: Annotated[NotificationQueue, Depends(get_queue)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> QueueStatusResponse:
    """Get notification queue statistics."""
    try:
        stats = queue.stats()
        return QueueStatusResponse(
            pending=stats.pending,
            sent=stats.sent,
            failed=stats.failed,
            total=stats.total,
            success_rate=round(stats.success_rate, 1),
        )

    except Exception as e:
        logger.error(f"Failed to get queue status: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to retrieve queue status",
        ) from None


@app.post(
    "/queue/process",
    response_model=ProcessQueueResponse,
    responses={
        409: {"model": ErrorResponse, "description": "API processing disabled"},
        500: {"model": ErrorResponse, "description": "Processing failed"},
    },
)
async def process_queue_endpoint(
    queue: Annotated[NotificationQueue, Depends(get_queue)],
    config: Annotated[NotificationConfig, Depends(get_config)],
    lock: Annotated[asyncio.Lock, Depends(get_process_lock)],
    _auth: Annotated[bool, Depends(verify_api_key)],
) -> ProcessQueueResponse:
    """Run one delivery tick.

    For platforms without background workers: call this endpoint from an
    external scheduler instead of running the pipeline runner. Disabled
    unless API_QUEUE_PROCESSING_ENABLED is set, since the queue supports a
    single consumer. Overlapping calls are skipped.
    """
    if not config.API_QUEUE_PROCESSING_ENABLED:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Queue processing via API is disabled",
        )

    if lock.locked():
        logger.warning("Delivery tick already in progress, skipping request")
        return ProcessQueueResponse(
            sent=0, retried=0, failed=0, skipped=0, detail="Delivery tick already in progress"
        )

    try:
        async with lock:
            transport = build_transport(config)
            try:
                report = await DeliveryWorker(queue, transport, config).run_once()
            finally:
                transport.close()

        detail = (
            f"Processed batch: {report.sent} sent, {report.retried} retried, "
            f"{report.failed} failed"
        )
        if not report.processed:
            detail = "No due notifications in queue"
        logger.info(detail)

        return ProcessQueueResponse(
            sent=report.sent,
            retried=report.retried,
            failed=report.failed,
            skipped=report.skipped,
            detail=detail,
        )

    except Exception as e:
        logger.error(f"Queue processing error: {e}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process notification queue",
        ) from None


@app.get(
    "/health",
    response_model=HealthResponse,
    responses={503: {"model": ErrorResponse, "description": "Service unhealthy"}},
)
async def health_check(
    queue: Annotated[NotificationQueue, Depends(get_queue)],
    config: Annotated[NotificationConfig, Depends(get_config)],
) -> HealthResponse | JSONResponse:
    """Check service health.

    No authentication required - used by load balancers and monitoring.
    """
    db_status = "error"

    try:
        if queue.health_check():
            db_status = "ok"
    except Exception as e:
        logger.warning(f"Database health check failed: {e}")

    if config.EMAIL_DEBUG_MODE:
        provider_status = "debug"
    else:
        try:
            config.validate_smtp_config()
            provider_status = "ok"
        except Exception:
            provider_status = "not_configured"

    overall_status = "ok" if db_status == "ok" else "degraded"

    response = HealthResponse(
        status=overall_status,
        db=db_status,
        email_provider=provider_status,
        version=config.SERVICE_VERSION,
    )

    if overall_status != "ok":
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=response.model_dump(mode="json"),
        )

    return response


# =============================================================================
# Entry Point
# =============================================================================
def run():
    """Run the API server."""
    import uvicorn

    logger.info(f"Starting {_config.SERVICE_NAME} on {_config.API_HOST}:{_config.API_PORT}")
    uvicorn.run(
        "booking_notifications.api.main:app",
        host=_config.API_HOST,
        port=_config.API_PORT,
        reload=False,
    )


if __name__ == "__main__":
    run()
