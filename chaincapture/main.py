import json
import structlog
from typing import Optional
from contextlib import asynccontextmanager

from fastapi import FastAPI, UploadFile, File, Form, Query, Request, status
from fastapi.concurrency import run_in_threadpool
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
import uvicorn

from chaincapture import __version__, config
from chaincapture.core.chain import create_chain_client
from chaincapture.core.errors import ChainCaptureError, MediaValidationError
from chaincapture.core.storage import ContentStoreClient
from chaincapture.core.utils import capture_filename, explorer_url
from chaincapture.models.ip_asset import RemixRequest
from chaincapture.models.media import IPMetadata
from chaincapture.models.responses import (
    AttachLicenseRequest, AttachLicenseResponse, ErrorResponse, HealthResponse,
    IPAssetsResponse, RegisterDerivativeRequest, RegisterIPRequest, RegisterIPResponse,
    RemixResponse, UploadResponse,
)
from chaincapture.services.capture import check_file_size, check_metadata_matches, create_captured_media
from chaincapture.services.ownership import scan_owned_assets
from chaincapture.services.registration import IPRegistrationClient
from chaincapture.services.remix import RemixClient

# Configure structured logging
structlog.configure(
    processors=[
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer()
    ],
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()

# Global clients, created at startup
content_store = None
chain_client = None
registration_client = None
remix_client = None

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown events."""
    global content_store, chain_client, registration_client, remix_client

    # Startup
    logger.info("Starting ChainCapture API")
    try:
        content_store = ContentStoreClient()
        chain_client = create_chain_client()
        registration_client = IPRegistrationClient(chain_client)
        remix_client = RemixClient()
        logger.info("Clients initialized",
                   ipfs_provider=content_store.provider, chain_backend=chain_client.backend)
    except Exception as e:
        logger.error("Failed to initialize application", error=str(e))
        raise

    yield

    # Shutdown
    logger.info("Shutting down ChainCapture API")

# Create FastAPI application
app = FastAPI(
    title="ChainCapture API",
    description="Capture media, pin it to IPFS and register it as an IP Asset on Story Protocol",
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
    responses={
        400: {"model": ErrorResponse, "description": "Validation Error"},
        500: {"model": ErrorResponse, "description": "Internal Server Error"},
    }
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})

@app.exception_handler(ChainCaptureError)
async def chaincapture_exception_handler(request: Request, exc: ChainCaptureError):
    logger.error("Request failed",
                url=str(request.url), method=request.method,
                error_type=type(exc).__name__, error=str(exc))
    return error_response(exc.status_code, str(exc))

@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    problems = []
    for err in exc.errors():
        field = ".".join(str(part) for part in err.get("loc", ()) if part not in ("body", "query", "form"))
        problems.append(f"{field}: {err.get('msg')}" if field else err.get("msg", "invalid"))
    message = "Invalid request: " + "; ".join(problems)
    logger.warning("Request validation failed", url=str(request.url), error=message)
    return error_response(status.HTTP_400_BAD_REQUEST, message)

# Global exception handler
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    logger.error("Unhandled exception",
                url=str(request.url), method=request.method, error=str(exc), exc_info=True)
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "An unexpected error occurred")

@app.get("/", response_model=dict)
async def root():
    """Root endpoint with API information."""
    return {
        "name": "ChainCapture API",
        "version": __version__,
        "description": "Capture → IPFS → IP Asset registration → AI remix",
        "docs_url": "/docs",
        "health_url": "/health",
        "chain_backend": chain_client.backend if chain_client else None,
        "ipfs_provider": content_store.provider if content_store else None,
    }

@app.get("/health", response_model=HealthResponse)
async def health_check():
    """Health check endpoint with per-component status."""
    storage_health = await run_in_threadpool(content_store.health_check) if content_store else {"available": False, "error": "not_initialized"}
    chain_health = await run_in_threadpool(chain_client.health_check) if chain_client else {"available": False, "error": "not_initialized"}
    remix_health = remix_client.health_check() if remix_client else {"available": False, "error": "not_initialized"}

    components = {
        "storage": "healthy" if storage_health.get("available") else "unhealthy",
        "chain": "healthy" if chain_health.get("available") else "unhealthy",
        "remix_gateway": "healthy" if remix_health.get("available") else "unconfigured",
    }
    overall_status = "healthy" if all(s == "healthy" for s in components.values()) else "degraded"

    return HealthResponse(
        status=overall_status,
        version=__version__,
        components={
            **components,
            "storage_health": storage_health,
            "chain_health": chain_health,
            "remix_health": remix_health,
        }
    )

@app.post("/api/upload-ipfs", response_model=UploadResponse)
async def upload_ipfs(
    file: UploadFile = File(..., description="Captured photo or video"),
    metadata: str = Form(..., description="IP metadata as a JSON string"),
):
    """
    Upload a capture and its IP metadata to IPFS.

    Both uploads run concurrently and return ``ipfs://`` URIs for the
    registration step.
    """
    try:
        ip_metadata = IPMetadata.model_validate(json.loads(metadata))
    except ValueError as e:
        raise MediaValidationError(f"Invalid metadata: {e}") from e

    # Declared size first so oversized captures are never read into memory
    check_file_size(file.size)
    media = create_captured_media(await file.read(), file.content_type, file.filename)
    check_metadata_matches(media, ip_metadata)
    filename = capture_filename(ip_metadata.title, media.content_type)

    logger.info("Uploading capture to IPFS",
               media_id=media.id, filename=filename, title=ip_metadata.title)

    media_uri, metadata_uri = await content_store.upload(
        filename, media.payload, media.content_type, ip_metadata.to_document()
    )

    logger.info("Capture uploaded", media_id=media.id, media_uri=media_uri, metadata_uri=metadata_uri)
    return UploadResponse(media_uri=media_uri, metadata_uri=metadata_uri)

@app.post("/api/register-ip", response_model=RegisterIPResponse)
async def register_ip(body: RegisterIPRequest):
    """Mint an NFT for uploaded content and register it as an IP Asset."""
    asset = await run_in_threadpool(
        registration_client.register,
        body.media_uri, body.metadata_uri, body.metadata, body.recipient,
    )
    return RegisterIPResponse(
        ip_id=asset.ip_id,
        token_id=asset.token_id,
        tx_hash=asset.transaction_hash,
        message="IP Asset registered successfully!",
        explorer_url=explorer_url(config.STORY_EXPLORER_URL, asset.ip_id),
    )

@app.post("/api/register-derivative", response_model=RegisterIPResponse)
async def register_derivative(body: RegisterDerivativeRequest):
    """Register uploaded content as a derivative of existing IP Assets."""
    asset = await run_in_threadpool(
        registration_client.register_derivative,
        body.parent_ip_ids, body.media_uri, body.metadata_uri, body.metadata,
        body.license_terms_ids, body.recipient,
    )
    return RegisterIPResponse(
        ip_id=asset.ip_id,
        token_id=asset.token_id,
        tx_hash=asset.transaction_hash,
        message="Derivative IP Asset registered successfully!",
        explorer_url=explorer_url(config.STORY_EXPLORER_URL, asset.ip_id),
    )

@app.post("/api/attach-license", response_model=AttachLicenseResponse)
async def attach_license(body: AttachLicenseRequest):
    """Attach PIL license terms to a registered IP Asset."""
    tx_hash = await run_in_threadpool(
        registration_client.attach_license_terms, body.ip_id, body.license_terms_id
    )
    return AttachLicenseResponse(tx_hash=tx_hash)

@app.post("/api/remix", response_model=RemixResponse)
async def remix(body: RemixRequest):
    """Generate an AI remix description; the gateway registers the derivative."""
    result = await run_in_threadpool(remix_client.generate, body)
    return RemixResponse(
        description=result.description,
        trace_id=result.trace_id,
        cost=result.cost,
        message="AI remix generated and registered as IP Asset",
    )

@app.get("/api/get-ip-assets", response_model=IPAssetsResponse)
async def get_ip_assets(
    address: Optional[str] = Query(default=None, description="Wallet address to look up")
):
    """List IP Assets owned by a wallet (bounded token-id scan)."""
    scan = await run_in_threadpool(scan_owned_assets, chain_client, address)
    return IPAssetsResponse(
        ip_assets=scan.assets,
        count=len(scan.assets),
        balance=scan.balance,
        scan_limit=scan.scan_limit,
        complete=scan.complete,
    )

if __name__ == "__main__":
    uvicorn.run(
        "chaincapture.main:app",
        host=config.API_HOST,
        port=config.API_PORT,
        reload=config.DEBUG,
        log_config=None,  # We handle logging with structlog
    )
