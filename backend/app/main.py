"""Journal Archive Backend Application.

This is the main entry point for the journal archive service.  Clients
upload journal articles and manuscript submissions, which are validated,
stored remotely (with a local fallback) and served back through a layered
download chain.

Modules:
    - intake: multipart validation and local staging
    - storage: S3 / Google Drive providers and the uploader
    - records: DuckDB-backed journal and submission records
    - ingest: the upload-to-record pipeline
    - downloads: download resolver and routes
    - journals / submissions: record endpoints
"""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from app.config import get_config
from app.dependencies import build_services, close_services, set_services
from app.downloads.router import router as downloads_router
from app.errors import register_exception_handlers
from app.journals.router import router as journals_router
from app.submissions.router import router as submissions_router

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)

# Silence verbose third-party loggers.
# botocore.auth logs the full SigV4 canonical request, including
# x-amz-security-token.  urllib3/httpx/httpcore log every connection.
for _noisy in (
    "botocore",
    "boto3",
    "s3transfer",
    "urllib3",
    "urllib3.connectionpool",
    "httpx",
    "httpcore",
    "httpcore.http11",
    "httpcore.connection",
):
    logging.getLogger(_noisy).setLevel(logging.WARNING)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup/shutdown events."""
    # Startup
    config = get_config()
    app.state.config = config

    # Apply configured log level to root logger so that
    # `logging.level: "debug"` in journal.settings.yaml activates DEBUG output.
    configured_level = getattr(logging, config.logging.level.upper(), None)
    if configured_level is not None:
        logging.getLogger().setLevel(configured_level)
        logger.info("Root logger level set to %s", config.logging.level.upper())

    services = build_services(config)
    set_services(services)
    logger.info(
        "Journal archive ready on http://%s:%s (env=%s, providers=%s)",
        config.server.host,
        config.server.port,
        config.server.environment,
        [p.name for p in services.uploader.providers] or "none",
    )

    yield  # Application runs here

    # Shutdown
    await close_services(services)
    set_services(None)
    logger.info("Application shutdown complete")


# Create FastAPI application with metadata
app = FastAPI(
    title="Journal Archive API",
    description="Backend service for journal article and manuscript submission archiving",
    version="0.1.0",
    lifespan=lifespan,
)


@app.middleware("http")
async def api_prefix_alias(request: Request, call_next):
    """Accept both `/path` and `/api/path` for frontend compatibility."""
    if request.scope.get("path", "").startswith("/api/"):
        request.scope["path"] = request.scope["path"][4:]
    return await call_next(request)


app.add_middleware(
    CORSMiddleware,
    allow_origins=get_config().server.allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=["Content-Disposition", "Content-Type", "Content-Length"],
)

register_exception_handlers(app)

# Register all routers
app.include_router(journals_router)
app.include_router(submissions_router)
app.include_router(downloads_router)


@app.get("/health")
async def health() -> dict:
    """Health check endpoint.

    Returns:
        dict: Status object indicating the server is running.
    """
    return {"status": "ok"}
