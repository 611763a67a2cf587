"""
Constants for the vmcatalog fetching infrastructure.

This module defines the ARM endpoints, pinned API versions, timeouts,
cache durations, rate limit and retry defaults used by the catalog clients.

Cache Strategy Overview:
- Cache TTL: How long a listing stays valid in memory (5 minutes by default)
- Expiry is checked lazily on access, there is no background refresh
- Entries live for the process lifetime at most, nothing is persisted
"""

# Azure Resource Manager endpoint
ARM_BASE_URL = "https://management.azure.com"
COMPUTE_PROVIDER = "Microsoft.Compute"

# Pinned API versions
COMPUTE_API_VERSION = "2023-07-01"
SUBSCRIPTIONS_API_VERSION = "2020-01-01"
LOCATIONS_API_VERSION = "2022-12-01"

# Older compute API versions tried for version listings when the pinned one
# is rejected with 400/404
VERSION_API_FALLBACKS = (
    "2023-07-01",
    "2023-03-01",
    "2022-11-01",
    "2022-08-01",
)
FALLBACK_STATUS_CODES = (400, 404)

DEFAULT_LOCATION = "eastus"

# Timeout constants (in seconds)
REQUEST_TIMEOUT = 30

# Cache TTL constants (in seconds)
PUBLISHERS_CACHE_TTL = 300
OFFERS_CACHE_TTL = 300
SKUS_CACHE_TTL = 300
VERSIONS_CACHE_TTL = 300
SUBSCRIPTIONS_CACHE_TTL = 300
DEFAULT_CACHE_MAXSIZE = 1024

# Sliding window rate limit defaults
DEFAULT_MAX_REQUESTS_PER_WINDOW = 60
DEFAULT_WINDOW_SECONDS = 60.0

# Retry defaults
DEFAULT_RETRY_COUNT = 3
DEFAULT_BASE_DELAY = 1.0
DEFAULT_MAX_DELAY = 30.0
RATE_LIMIT_BACKOFF_FACTOR = 2

# Numeric reset header values below this are seconds until reset, not an
# epoch timestamp (2001-09-09)
EPOCH_RESET_THRESHOLD = 1_000_000_000

# Circuit breaker defaults
DEFAULT_FAILURE_THRESHOLD = 5
DEFAULT_RESET_TIMEOUT = 60.0

# Field holding the record list in ARM list responses
LIST_FIELD = "value"

# Common headers for rate limit detection, in order of preference
RATE_LIMIT_HEADERS = [
    'Retry-After',
    'X-Ratelimit-Retry-At',
    'X-RateLimit-Reset',
    'RateLimit-Reset',
    'X-Rate-Limit-Reset'
]

# Cache key kinds
KIND_PUBLISHERS = "publishers"
KIND_OFFERS = "offers"
KIND_SKUS = "skus"
KIND_VERSIONS = "versions"
KIND_SUBSCRIPTIONS = "subscriptions"
KIND_SUBSCRIPTION = "subscription"
KIND_LOCATIONS = "locations"

# Token supplier
TOKEN_ENV_VARIABLE = "AZURE_ACCESS_TOKEN"
