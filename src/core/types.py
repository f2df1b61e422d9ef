"""Type aliases for values shared across layers.

- **NumericInput**: monetary amounts and rates as received from input,
  before they are coerced to ``Decimal``
- **CacheKey**: keys of the read-through query cache
"""

from decimal import Decimal

# Numeric input accepted by the monetary and rate validators
type NumericInput = Decimal | int | float | str | None

# Read-through cache key, e.g. "nfse_7891011"
type CacheKey = str
