"""LearnPath API - Main Application."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.access.gate import AccessGate
from src.acquisitions.router import router as acquisitions_router
from src.acquisitions.service import AcquisitionService
from src.auth.service import UserService
from src.catalog.router import router as catalog_router
from src.catalog.service import CatalogService
from src.certificates.repository import CertificateRepository
from src.certificates.router import router as certificates_router
from src.certificates.service import CertificateService
from src.config import Settings, get_settings
from src.core.context import get_request_id
from src.core.database import init_async_cassandra, shutdown_async_cassandra
from src.core.logging import configure_structlog, get_logger
from src.core.middleware import RequestContextMiddleware
from src.core.redis import init_redis, shutdown_redis
from src.email.service import EmailService
from src.enrollments.effects import EnrollmentEffects
from src.enrollments.repository import EnrollmentRepository
from src.enrollments.router import router as enrollments_router
from src.enrollments.service import EnrollmentService
from src.health import router as health_router
from src.notifications.dispatcher import SideEffectDispatcher
from src.notifications.router import router as notifications_router
from src.notifications.service import NotificationService
from src.progression.repository import ProgressionRepository
from src.progression.router import router as progression_router
from src.progression.service import ProgressionService


# Configure logging early (before creating logger)
settings = get_settings()
configure_structlog(settings)

logger = get_logger(__name__)


def init_email_service(settings: Settings) -> EmailService | None:
    """Create the Gmail sender, or None when email is off or misconfigured."""
    if not settings.email_configured:
        return None
    try:
        service = EmailService(
            credentials_path=settings.email_credentials_path,
            sender_address=settings.email_sender_address,
            sender_name=settings.email_sender_name,
            frontend_url=settings.frontend_url,
        )
    except Exception as e:
        logger.warning(
            "email_service_init_skipped",
            error=str(e),
            message="Running without email service",
        )
        return None
    logger.info("email_service_initialized", sender=settings.email_sender_address)
    return service


def init_services(
    app: FastAPI,
    session: Any,
    settings: Settings,
    redis_client: Any,
    dispatcher: SideEffectDispatcher,
    email_service: EmailService | None,
) -> None:
    """Build the service graph and expose it on ``app.state``."""
    keyspace = settings.cassandra_keyspace

    user_service = UserService(session=session, keyspace=keyspace)
    catalog_service = CatalogService(
        session=session,
        keyspace=keyspace,
        dispatcher=dispatcher,
        email_service=email_service,
        admin_emails=settings.admin_notification_emails,
        default_passing_score=settings.default_passing_score,
        default_max_attempts=settings.default_max_attempts,
    )
    acquisition_service = AcquisitionService(
        session=session,
        keyspace=keyspace,
        redis=redis_client,
        cache_ttl_seconds=settings.access_cache_ttl_seconds,
    )
    progression_service = ProgressionService(
        repository=ProgressionRepository(session=session, keyspace=keyspace),
        catalog=catalog_service,
        max_retries=settings.enrollment_write_max_retries,
    )
    certificate_service = CertificateService(
        repository=CertificateRepository(session=session, keyspace=keyspace),
        users=user_service,
        catalog=catalog_service,
        number_prefix=settings.certificate_number_prefix,
    )
    notification_service = NotificationService(
        session=session,
        keyspace=keyspace,
        redis=redis_client,
    )
    enrollment_service = EnrollmentService(
        repository=EnrollmentRepository(session=session, keyspace=keyspace),
        catalog=catalog_service,
        gate=AccessGate(acquisitions=acquisition_service, progression=progression_service),
        progression=progression_service,
        certificates=certificate_service,
        effects=EnrollmentEffects(
            dispatcher=dispatcher,
            notifications=notification_service,
            users=user_service,
            email=email_service,
            frontend_url=settings.frontend_url,
        ),
        max_retries=settings.enrollment_write_max_retries,
    )

    app.state.user_service = user_service
    app.state.catalog_service = catalog_service
    app.state.acquisition_service = acquisition_service
    app.state.progression_service = progression_service
    app.state.certificate_service = certificate_service
    app.state.notification_service = notification_service
    app.state.enrollment_service = enrollment_service
    logger.info(
        "services_initialized",
        redis_enabled=redis_client is not None,
        email_enabled=email_service is not None,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    settings = get_settings()
    logger.info(
        "starting_application",
        app_name=settings.app_name,
        version=settings.app_version,
        environment=settings.environment,
    )

    # Redis is optional: caching and live notifications degrade without it
    redis_client = None
    try:
        redis_client = await init_redis()
    except Exception as e:
        logger.warning(
            "redis_init_skipped",
            error=str(e),
            message="Running without Redis - caching and real-time notifications disabled",
        )

    dispatcher = SideEffectDispatcher(queue_size=settings.side_effect_queue_size)
    await dispatcher.start()
    app.state.dispatcher = dispatcher

    email_service = init_email_service(settings)

    try:
        session = await init_async_cassandra()
        init_services(app, session, settings, redis_client, dispatcher, email_service)
    except Exception as e:
        logger.warning(
            "database_init_skipped",
            error=str(e),
            message="Running without database connection",
        )

    yield

    logger.info("shutting_down_application")
    await dispatcher.stop()
    await shutdown_redis()
    await shutdown_async_cassandra()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # debug=False keeps Starlette from rendering tracebacks in responses
    app = FastAPI(
        title=settings.app_name,
        version=settings.app_version,
        description="LearnPath - module enrollment, level progression and assessments",
        debug=False,
        lifespan=lifespan,
        default_response_class=ORJSONResponse,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        openapi_url="/openapi.json" if settings.is_development else None,
    )

    # Request context middleware (must be added first - outermost)
    app.add_middleware(
        RequestContextMiddleware,
        log_requests=settings.log_requests,
        exclude_paths=settings.log_exclude_paths,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        max_age=settings.cors_max_age,
    )

    def _get_request_id_safe(request: Request) -> str | None:
        if hasattr(request.state, "request_id"):
            return request.state.request_id
        return get_request_id()

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> ORJSONResponse:
        """Handle HTTP exceptions with safe error messages.

        Structured details (e.g. the 402 payment-required payload) are
        returned under ``detail``.
        """
        logger.warning(
            "http_exception",
            status_code=exc.status_code,
            detail=str(exc.detail),
            path=request.url.path,
            method=request.method,
        )

        content: dict[str, Any] = {
            "error": True,
            "message": str(exc.detail)
            if exc.status_code < status.HTTP_500_INTERNAL_SERVER_ERROR
            else "Internal server error",
            "status_code": exc.status_code,
            "request_id": _get_request_id_safe(request),
        }
        if isinstance(exc.detail, dict):
            content["message"] = exc.detail.get("message", "Request refused")
            content["detail"] = exc.detail
        return ORJSONResponse(
            status_code=exc.status_code,
            content=content,
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> ORJSONResponse:
        """Handle validation errors with field-level messages."""
        logger.warning(
            "validation_error",
            errors=exc.errors(),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={
                "error": True,
                "message": "Validation error",
                "status_code": 422,
                "request_id": _get_request_id_safe(request),
                "details": [
                    {
                        "field": ".".join(str(loc) for loc in err.get("loc", [])),
                        "message": err.get("msg", "Invalid value"),
                    }
                    for err in exc.errors()
                ],
            },
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(
        request: Request, exc: Exception
    ) -> ORJSONResponse:
        """Catch-all handler. Details are logged, never returned."""
        logger.exception(
            "unhandled_exception",
            error_type=type(exc).__name__,
            error_message=str(exc),
            path=request.url.path,
            method=request.method,
        )

        return ORJSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content={
                "error": True,
                "message": "An unexpected error occurred. Please try again later.",
                "status_code": 500,
                "request_id": _get_request_id_safe(request),
            },
        )

    app.include_router(health_router)
    app.include_router(catalog_router)
    app.include_router(acquisitions_router)
    app.include_router(progression_router)
    app.include_router(enrollments_router)
    app.include_router(certificates_router)
    app.include_router(notifications_router)

    @app.get("/", include_in_schema=False)
    async def root(request: Request) -> dict[str, str]:
        """Root endpoint."""
        return {
            "message": "LearnPath API",
            "version": settings.app_version,
            "docs": f"{request.url}docs",
        }

    return app


app = create_app()
