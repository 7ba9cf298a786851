from .rate_limiter import HostRateLimiter, TokenBucket
from .retry_transport import RetryTransport

__all__ = ["HostRateLimiter", "RetryTransport", "TokenBucket"]
