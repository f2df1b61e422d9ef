"""Core application constants."""

from decimal import Decimal

# Time constants
MILLISECONDS_PER_SECOND = 1000

# Security and redaction
REDACTED = "[REDACTED]"

# Document numbers (credit number and NFS-e number)
MAX_DOCUMENT_NUMBER_LENGTH = 50
DOCUMENT_NUMBER_PATTERN = r"[0-9]{1,50}"

# Monetary values, stored as NUMERIC(15,2)
MONETARY_SCALE = 2
MAX_MONETARY_INTEGER_DIGITS = 13
CENT = Decimal("0.01")
ONE_HUNDRED = Decimal(100)

# Tax rate bounds (percentage, inclusive)
MIN_TAX_RATE = Decimal(0)
MAX_TAX_RATE = Decimal(100)

# Integer digits of the NUMERIC(5,2) rate column
MAX_RATE_INTEGER_DIGITS = 3

# Largest accepted gap between a stored ISSQN value and base * rate / 100
ISSQN_TOLERANCE = Decimal("0.01")

# Longest period accepted by date-range searches
MAX_PERIOD_YEARS = 5

# Supported credit types, in display order
CREDIT_TYPES = ("ISSQN", "IPTU", "ITBI", "TAXAS")

# Wire labels for the Simples Nacional flag
SIMPLIFIED_REGIME_YES = "Sim"
SIMPLIFIED_REGIME_NO = "Não"
