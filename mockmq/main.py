"""
Mock MQ Manager - Main FastAPI application entry point
"""

import uuid
from typing import Optional
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import Settings, load_imposter_definitions, validate_configuration
from .api.routes import router
from .api.imposter_routes import router as imposter_router
from .models.base import ErrorResponse
from .exceptions import MockMQError, ErrorCode
from .services.imposter_manager import ImposterManager
from .services.message_handler import MessageHandler
from .services.operations import OperationService
from .services.persistence import SnapshotPersistence
from .services.queue_store import QueueStore
from .storage.file_backend import FileStateBackend
from .utils.logging import setup_logging, get_logger
from .middleware.logging_middleware import LoggingMiddleware
from .utils.metrics import MetricsCollector


logger = get_logger(__name__)


# HTTP status codes for application error codes; anything else is a 500
ERROR_STATUS_CODES = {
    ErrorCode.VALIDATION_ERROR: 400,
    ErrorCode.NOT_FOUND: 404,
    ErrorCode.QUEUE_NOT_FOUND: 404,
    ErrorCode.CONNECTION_NOT_FOUND: 404,
    ErrorCode.IMPOSTER_NOT_FOUND: 404,
    ErrorCode.STUB_NOT_FOUND: 404,
    ErrorCode.TIMEOUT: 408,
    ErrorCode.CONFLICT: 409,
    ErrorCode.QUEUE_FULL: 409,
    ErrorCode.QUEUE_ALREADY_EXISTS: 409,
    ErrorCode.IMPOSTER_ALREADY_EXISTS: 409,
    ErrorCode.SERVICE_UNAVAILABLE: 503,
    ErrorCode.STORAGE_ERROR: 503,
}


def generate_request_id() -> str:
    """Generate a unique request ID for error tracking."""
    return str(uuid.uuid4())[:8]


def create_app(settings: Optional[Settings] = None, store: Optional[QueueStore] = None) -> FastAPI:
    """
    Build the application and the services it serves.

    Args:
        settings: Application settings (the global settings if None)
        store: Queue store to serve (a new one if None)
    """
    if settings is None:
        from .config import settings

    metrics = MetricsCollector(enabled=settings.monitoring.enable_metrics)
    store = store or QueueStore(settings.mq, metrics=metrics)

    backend = FileStateBackend(settings.get_state_file_path())
    persistence = SnapshotPersistence(
        backend,
        debounce_ms=settings.storage.snapshot_debounce_ms,
        enabled=settings.storage.enabled
    )
    persistence.attach(store)

    handler = MessageHandler(store, settings.mq.processing_timeout_ms, metrics=metrics)
    imposters = ImposterManager(store, handler, poll_interval_ms=settings.mq.poll_interval_ms)
    operations = OperationService(store, settings, metrics=metrics)

    app = FastAPI(
        title=settings.api.title,
        description=settings.api.description,
        version=settings.api.version,
        docs_url=settings.api.docs_url,
        openapi_url=settings.api.openapi_url,
        openapi_tags=[
            {
                "name": "Operations",
                "description": "Send, receive, depth, health, list, create and clear envelopes"
            },
            {
                "name": "Queue Management",
                "description": "Queue CRUD operations and depth"
            },
            {
                "name": "Message Operations",
                "description": "Putting, getting and browsing messages"
            },
            {
                "name": "Connections",
                "description": "Client connections to the queue manager"
            },
            {
                "name": "Imposters",
                "description": "MQ imposters, their stubs and recorded requests"
            },
            {
                "name": "Health",
                "description": "Health check and monitoring endpoints"
            }
        ]
    )

    app.state.settings = settings
    app.state.metrics = metrics
    app.state.store = store
    app.state.persistence = persistence
    app.state.imposters = imposters
    app.state.operations = operations

    app.add_middleware(
        LoggingMiddleware,
        log_requests=True,
        exclude_paths=['/health', '/metrics', '/favicon.ico']
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.api.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(router)
    app.include_router(imposter_router)

    # Application lifecycle events
    @app.on_event("startup")
    async def startup_event():
        """Restore queue state, create default queues and load imposters."""
        logger.info(
            "Starting Mock MQ Manager application",
            extra={
                'environment': settings.environment.value,
                'queue_manager': settings.mq.queue_manager,
                'persistence': settings.storage.enabled
            }
        )
        metrics.counter('application.startup', 1)

        config_check = validate_configuration(settings)
        for warning in config_check["warnings"]:
            logger.warning(f"Configuration warning: {warning}")
        for error in config_check["errors"]:
            logger.error(f"Configuration error: {error}")

        if settings.storage.enabled:
            await backend.initialize()
            if await persistence.restore():
                logger.info("Queue state restored", extra={'state_file': backend.state_file})

        if not store.list_queues():
            created = store.initialize_default_queues()
            logger.info(f"Created {created} default queues")

        if settings.mq.imposters_file:
            await _load_imposters(imposters, settings.mq.imposters_file)

    @app.on_event("shutdown")
    async def shutdown_event():
        """Stop imposters and write a final snapshot."""
        logger.info("Shutting down Mock MQ Manager application")
        metrics.counter('application.shutdown', 1)

        stopped = await imposters.delete_all()
        if stopped:
            logger.info(f"Stopped {stopped} imposters")
        await persistence.flush()

    @app.get("/", tags=["General"])
    async def root():
        """Root endpoint returning basic API information and available endpoints"""
        return {
            "name": settings.api.title,
            "version": settings.api.version,
            "description": settings.api.description,
            "environment": settings.environment.value,
            "queueManager": settings.mq.queue_manager,
            "docs_url": settings.api.docs_url,
            "openapi_url": settings.api.openapi_url,
            "endpoints": {
                "operations": "/mq/{operation}",
                "queues": "/queues",
                "messages": "/queues/{queue}/messages",
                "connections": "/connections",
                "imposters": "/imposters",
                "health": "/health",
                "metrics": "/metrics"
            }
        }

    _register_exception_handlers(app, settings)
    return app


async def _load_imposters(imposters: ImposterManager, file_path: str) -> None:
    """Create the imposters defined in a configuration file."""
    try:
        definitions = load_imposter_definitions(file_path)
    except (FileNotFoundError, ValueError) as e:
        logger.error(f"Failed to load imposters from {file_path}: {e}")
        return

    for definition in definitions:
        try:
            await imposters.create_imposter(definition)
        except MockMQError as e:
            logger.error(
                f"Skipping imposter from {file_path}: {e.message}",
                extra={'details': e.details}
            )


# Global exception handlers

def _register_exception_handlers(app: FastAPI, settings: Settings) -> None:

    @app.exception_handler(MockMQError)
    async def mock_mq_exception_handler(request: Request, exc: MockMQError):
        """Handle MockMQError exceptions with structured response."""
        request_id = generate_request_id()
        status_code = ERROR_STATUS_CODES.get(exc.error_code, 500)

        if status_code >= 500:
            logger.error(f"[{request_id}] Server error for {request.url}: {exc}", exc_info=exc.cause)
        else:
            logger.warning(f"[{request_id}] Client error for {request.url}: {exc}")

        error_dict = exc.to_dict()
        error_response = ErrorResponse(
            error=error_dict["error"],
            message=error_dict["message"],
            details=error_dict["details"],
            request_id=request_id
        )

        return JSONResponse(
            status_code=status_code,
            content=error_response.model_dump(mode='json')
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle request validation errors with structured response."""
        request_id = generate_request_id()
        logger.warning(f"[{request_id}] Validation error for {request.url}: {exc.errors()}")

        field_errors = {}
        for error in exc.errors():
            field_path = ".".join(str(loc) for loc in error["loc"])
            field_errors[field_path] = error["msg"]

        return JSONResponse(
            status_code=422,
            content=ErrorResponse(
                error=ErrorCode.VALIDATION_ERROR.value,
                message="Request validation failed",
                details={"field_errors": field_errors},
                request_id=request_id
            ).model_dump(mode='json')
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions with structured response."""
        request_id = generate_request_id()
        logger.warning(f"[{request_id}] HTTP error {exc.status_code} for {request.url}: {exc.detail}")

        error_code_map = {
            400: ErrorCode.VALIDATION_ERROR,
            404: ErrorCode.NOT_FOUND,
            405: "METHOD_NOT_ALLOWED",
            408: ErrorCode.TIMEOUT,
            409: ErrorCode.CONFLICT,
            422: ErrorCode.VALIDATION_ERROR,
            500: ErrorCode.INTERNAL_SERVER_ERROR,
            503: ErrorCode.SERVICE_UNAVAILABLE
        }

        error_code = error_code_map.get(exc.status_code, f"HTTP_{exc.status_code}")

        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=error_code if isinstance(error_code, str) else error_code.value,
                message=exc.detail or f"HTTP {exc.status_code} error occurred",
                details={"status_code": exc.status_code},
                request_id=request_id
            ).model_dump(mode='json')
        )

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle unexpected exceptions with structured response."""
        request_id = generate_request_id()
        logger.error(f"[{request_id}] Unexpected error for {request.url}: {exc}", exc_info=True)

        details = {
            "type": type(exc).__name__,
            "request_id": request_id
        }

        # In development, include more details
        if settings.is_development() or settings.debug:
            details["message"] = str(exc)

        return JSONResponse(
            status_code=500,
            content=ErrorResponse(
                error=ErrorCode.INTERNAL_SERVER_ERROR.value,
                message="An unexpected error occurred. Please try again or contact support.",
                details=details,
                request_id=request_id
            ).model_dump(mode='json')
        )


# Initialize structured logging
setup_logging()

app = create_app()


if __name__ == "__main__":
    import uvicorn
    from .config import settings

    uvicorn.run(
        "mockmq.main:app",
        host=settings.api.host,
        port=settings.api.port,
        reload=settings.api.reload
    )
