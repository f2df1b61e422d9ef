"""API-related constants."""

# HTTP Status Codes
HTTP_500_INTERNAL_SERVER_ERROR = 500

# HTTP Headers
CORRELATION_ID_HEADER = "X-Correlation-ID"
REQUEST_ID_HEADER = "X-Request-ID"

# Route prefixes
CREDITS_PREFIX = "/api/creditos"
ADMIN_PREFIX = "/api/admin"

# Request handling
MAX_USER_AGENT_LENGTH = 200
DEFAULT_PAGE_SIZE = 20

# Existence check subjects
EXISTENCE_TYPE_CREDIT = "credito"
EXISTENCE_TYPE_INVOICE = "nfse"

# CORS preflight cache, matching the public API contract
CORS_MAX_AGE_SECONDS = 3600
