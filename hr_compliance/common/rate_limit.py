"""Rate limiting configuration using slowapi.

Module-level Limiter instance imported by routers for per-endpoint limits
(the batch import endpoints fan out to the external classifier) and wired
into the FastAPI app in main.py.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

# Default: 60 requests/minute per client IP for all endpoints.
limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["60/minute"],
)

# Batch imports trigger one classifier call per record.
IMPORT_RATE_LIMIT = "10/minute"
