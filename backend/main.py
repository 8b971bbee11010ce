import sys
import logging
from typing import Optional
import httpx
from dotenv import load_dotenv
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse
from datanova.api.routes import router
from datanova.api.metrics import router as metrics_router
from datanova.core.config import Settings, get_settings
from datanova.core.errors import WorkflowError
from datanova.core.logging import NO_REQUEST_ID, configure_logging
from datanova.core.middleware import CorrelationIDMiddleware
from datanova.core.storage import StorageBackend
from datanova.services.workspace import Workspace

# Load environment variables
load_dotenv()

logger = logging.getLogger(__name__)


def workflow_error_handler(request: Request, exc: WorkflowError):
    """Turn a workflow failure into a structured, user-facing error response."""
    correlation_id = getattr(request.state, 'correlation_id', NO_REQUEST_ID)
    error_info = exc.to_response()
    error_info['correlation_id'] = correlation_id
    log = logger.warning if exc.status_code >= 500 else logger.info
    log(f"{exc.code} on {request.method} {request.url.path}: {exc}")
    return JSONResponse(
        status_code=exc.status_code,
        content=error_info,
        headers={"X-Correlation-ID": correlation_id}
    )


def create_app(
    settings: Optional[Settings] = None,
    storage: Optional[StorageBackend] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the DataNova workflow API.

    The workspace (session store, service client, coordinators) is created
    once here and shared by every request through app.state.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="DataNova Workflow API",
        description="Local workflow shell for DataNova dataset sessions",
        version="1.0.0"
    )
    app.state.settings = settings
    app.state.workspace = Workspace.create(settings, storage=storage, transport=transport)

    app.add_exception_handler(WorkflowError, workflow_error_handler)

    # Middleware order: last added is first executed
    app.add_middleware(CorrelationIDMiddleware)
    app.add_middleware(GZipMiddleware, minimum_size=1000)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
        allow_headers=["Content-Type", "Authorization", "X-Correlation-ID"],
        expose_headers=["X-Correlation-ID", "Content-Disposition"]
    )

    app.include_router(router, prefix="/api")
    app.include_router(metrics_router, prefix="/api")

    @app.get("/")
    async def root():
        return {"message": "DataNova workflow API is running"}

    logger.info(f"CORS allowed origins: {settings.allowed_origins_list}")
    return app


# Load and validate configuration
try:
    _settings = get_settings()
except Exception as e:
    logging.basicConfig(level=logging.ERROR)
    logger.error(f"Failed to load configuration: {e}")
    sys.exit(1)

configure_logging(_settings.log_level)
app = create_app(_settings)
logger.info("Application started successfully")
