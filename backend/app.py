"""
FastAPI application for JSON <-> TOON conversion.
"""

import os
import time
from contextlib import asynccontextmanager
from functools import partial

from fastapi import (
    Depends,
    FastAPI,
    File,
    HTTPException,
    Query,
    Request,
    Response,
    UploadFile,
)
from fastapi.middleware.cors import CORSMiddleware
from prometheus_client import (
    CONTENT_TYPE_LATEST,
    Counter,
    Gauge,
    Histogram,
    generate_latest,
)
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from codec.exceptions import ToonError
from codec.models import DecodeConfig, DecodeRequestBody, EncodeRequestBody, OutputFormat
from codec.tokens import count_tokens
from codec.toon import decode, to_json_compatible
from config import (
    API_TITLE,
    API_VERSION,
    CORS_ORIGINS,
    DEFAULT_DELIMITER,
    DEFAULT_NESTED_SEPARATOR,
    DEFAULT_OUTPUT_FORMAT,
    RATE_LIMIT,
    SECURE_HEADERS,
    TOKEN_COUNT_MODEL,
)
from logger import get_logger, setup_logging
from services.conversion_service import ConversionService
from services.validation_service import ValidationService

setup_logging()
logger = get_logger(__name__)

# --- Environment ---
IS_PRODUCTION = os.getenv("ENV", "development").lower() == "production"


# --- Rate Limiting ---
def get_real_client_ip(request: Request) -> str:
    """
    Get the real client IP address, respecting X-Forwarded-For header.
    """
    forwarded_for = request.headers.get("X-Forwarded-For")
    if forwarded_for:
        # Take the first IP in the chain (original client)
        return forwarded_for.split(",")[0].strip()

    real_ip = request.headers.get("X-Real-IP")
    if real_ip:
        return real_ip.strip()

    return get_remote_address(request)

limiter = Limiter(key_func=get_real_client_ip)

# --- Metrics ---
REQUEST_COUNT = Counter('api_requests_total', 'Total API requests', ['method', 'endpoint', 'status'])
REQUEST_DURATION = Histogram('api_request_duration_seconds', 'Request duration', ['method', 'endpoint'])
ACTIVE_REQUESTS = Gauge('active_requests', 'Currently processing requests')
CONVERSIONS = Counter('toon_conversions_total', 'Converted items', ['direction', 'outcome'])


# --- Lifespan (startup/shutdown) ---
@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan: startup and shutdown."""
    app.state.start_time = time.time()
    logger.info(f"{API_TITLE} v{API_VERSION} starting up")

    yield

    logger.info(f"{API_TITLE} shutting down")


app = FastAPI(
    title=API_TITLE,
    version=API_VERSION,
    description="Convert JSON to TOON (Token-Oriented Object Notation) and back",
    lifespan=lifespan,
    # Disable docs in production
    docs_url=None if IS_PRODUCTION else "/docs",
    redoc_url=None if IS_PRODUCTION else "/redoc",
)

app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Middleware ---
@app.middleware("http")
async def security_headers_middleware(request: Request, call_next):
    """Add security headers to all responses."""
    response = await call_next(request)
    for header, value in SECURE_HEADERS.items():
        response.headers[header] = value
    return response


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):
    """Track request metrics."""
    ACTIVE_REQUESTS.inc()
    start_time = time.time()

    try:
        response = await call_next(request)
        duration = time.time() - start_time

        REQUEST_COUNT.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()

        REQUEST_DURATION.labels(
            method=request.method,
            endpoint=request.url.path
        ).observe(duration)

        return response
    finally:
        ACTIVE_REQUESTS.dec()


# --- Dependencies ---
def get_conversion_service():
    return ConversionService()


def _record_outcomes(direction: str, stats: dict) -> None:
    CONVERSIONS.labels(direction=direction, outcome="ok").inc(stats["succeeded"])
    CONVERSIONS.labels(direction=direction, outcome="error").inc(stats["failed"])


# --- Endpoints ---

@app.get("/health")
async def health_check():
    """Health check with uptime."""
    uptime = time.time() - getattr(app.state, 'start_time', time.time())

    return {
        "status": "healthy",
        "version": API_VERSION,
        "uptime_seconds": round(uptime, 2),
        "environment": "production" if IS_PRODUCTION else "development",
    }


@app.get("/metrics")
async def metrics():
    """Prometheus metrics endpoint."""
    return Response(
        content=generate_latest(),
        media_type=CONTENT_TYPE_LATEST
    )


@app.post("/json-to-toon")
@limiter.limit(f"{RATE_LIMIT}/minute")
async def json_to_toon_endpoint(
    request: Request,
    body: EncodeRequestBody,
    service: ConversionService = Depends(get_conversion_service),
):
    """
    Convert JSON values to TOON.

    Request body:
    ```json
    {
        "items": [
            {"mode": "object", "jsonInput": {"name": "John", "age": 30}, "options": {"delimiter": "|"}}
        ],
        "continue_on_fail": false,
        "exact_tokens": false
    }
    ```

    Each result holds `toon`, `original_json` and `token_savings_estimate`.
    The estimate is approximate (length/4) unless `exact_tokens` is set.
    """
    ValidationService.validate_batch_size(len(body.items))
    logger.info(f"json-to-toon: {len(body.items)} item(s), exact_tokens={body.exact_tokens}")

    if body.exact_tokens:
        service.counter = partial(count_tokens, model=TOKEN_COUNT_MODEL)

    try:
        results = service.encode_items(body.items, continue_on_fail=body.continue_on_fail)
    except ToonError as e:
        CONVERSIONS.labels(direction="encode", outcome="error").inc()
        raise HTTPException(status_code=400, detail=str(e)) from e

    _record_outcomes("encode", service.last_stats)
    return {"results": to_json_compatible(results), "stats": service.last_stats}


@app.post("/toon-to-json")
@limiter.limit(f"{RATE_LIMIT}/minute")
async def toon_to_json_endpoint(
    request: Request,
    body: DecodeRequestBody,
    service: ConversionService = Depends(get_conversion_service),
):
    """
    Convert TOON documents back to JSON.

    Request body:
    ```json
    {
        "items": [{"toonInput": "@schema|name|age\\nJohn|30", "options": {"outputFormat": "auto"}}],
        "continue_on_fail": false
    }
    ```
    """
    ValidationService.validate_batch_size(len(body.items))
    logger.info(f"toon-to-json: {len(body.items)} item(s)")

    try:
        results = service.decode_items(body.items, continue_on_fail=body.continue_on_fail)
    except ToonError as e:
        CONVERSIONS.labels(direction="decode", outcome="error").inc()
        raise HTTPException(status_code=400, detail=str(e)) from e

    _record_outcomes("decode", service.last_stats)
    return {"results": to_json_compatible(results), "stats": service.last_stats}


@app.post("/toon-to-json/upload")
@limiter.limit(f"{RATE_LIMIT}/minute")
async def toon_upload_endpoint(
    request: Request,
    file: UploadFile = File(..., description="TOON document (UTF-8)"),
    delimiter: str = Query(DEFAULT_DELIMITER, description="Delimiter used in the document"),
    nested_separator: str = Query(DEFAULT_NESTED_SEPARATOR, description="Separator for nested paths"),
    output_format: OutputFormat = Query(OutputFormat(DEFAULT_OUTPUT_FORMAT)),
    parse_numbers: bool = Query(True),
    parse_booleans: bool = Query(True),
):
    """Decode an uploaded TOON file."""
    text = await ValidationService.validate_and_read_upload(file)
    logger.info(f"toon upload: {file.filename} ({len(text)} chars)")

    config = DecodeConfig(
        delimiter=delimiter,
        nested_separator=nested_separator,
        output_format=output_format,
        parse_numbers=parse_numbers,
        parse_booleans=parse_booleans,
    )

    try:
        result = decode(text, config)
    except ToonError as e:
        CONVERSIONS.labels(direction="decode", outcome="error").inc()
        raise HTTPException(status_code=400, detail=f"{file.filename}: {e}") from e

    CONVERSIONS.labels(direction="decode", outcome="ok").inc()
    return {"filename": file.filename, "result": to_json_compatible(result)}
