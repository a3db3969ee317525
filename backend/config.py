# Configuration and Environment Settings
import os

# API Configuration
API_TITLE = "toonbridge API"
API_VERSION = "1.0.0"  # Single source of truth for version

# TOON defaults
DEFAULT_DELIMITER = os.getenv("TOON_DELIMITER", "|") or "|"
DEFAULT_NESTED_SEPARATOR = os.getenv("TOON_NESTED_SEPARATOR", ".") or "."
DEFAULT_INCLUDE_SCHEMA = os.getenv("TOON_INCLUDE_SCHEMA", "true").lower() != "false"
SCHEMA_PREFIX = "@schema"

# Supported output formats for decoding
SUPPORTED_OUTPUT_FORMATS = ["object", "array", "auto"]
DEFAULT_OUTPUT_FORMAT = "auto"


# CORS Settings - load from environment or use secure defaults
def _parse_cors_origins(origins_str: str) -> list[str]:
    """Parse CORS origins from a comma-separated string.

    Args:
        origins_str: Comma-separated list of allowed origins

    Returns:
        List of valid origins with empty strings and duplicates removed
    """
    if not origins_str:
        return []

    origins = [o.strip() for o in origins_str.split(",") if o.strip()]

    # Remove duplicates while preserving order
    return list(dict.fromkeys(origins))


DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:5173",
    "http://127.0.0.1:5173",
]

_cors_origins_str = os.getenv("CORS_ORIGINS")
if not _cors_origins_str and os.getenv("ENV") == "production":
    CORS_ORIGINS = []
    print("WARNING: ENV=production but CORS_ORIGINS is not set. API will be inaccessible from browsers.")
else:
    CORS_ORIGINS = (
        _parse_cors_origins(_cors_origins_str)
        if _cors_origins_str is not None
        else DEFAULT_CORS_ORIGINS
    )

# Security headers configuration
SECURE_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "X-XSS-Protection": "1; mode=block",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}

# Rate limiting (requests per minute)
try:
    RATE_LIMIT = int(os.getenv("RATE_LIMIT", "120"))
except (ValueError, TypeError):
    RATE_LIMIT = 120

# Batch limits
try:
    MAX_BATCH_ITEMS = int(os.getenv("MAX_BATCH_ITEMS", "500"))
except (ValueError, TypeError):
    MAX_BATCH_ITEMS = 500

# Upload limits (bytes)
try:
    MAX_UPLOAD_SIZE = int(os.getenv("MAX_UPLOAD_SIZE", str(1024 * 1024)))
except (ValueError, TypeError):
    MAX_UPLOAD_SIZE = 1024 * 1024  # 1MB

# Model used when exact token counting is requested
TOKEN_COUNT_MODEL = os.getenv("TOKEN_COUNT_MODEL", "gpt-4")

# Logging configuration
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("LOG_FILE", "toonbridge.log")
