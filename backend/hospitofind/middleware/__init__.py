from hospitofind.middleware.rate_limit import limiter, rate_limit_exceeded_handler
from hospitofind.middleware.request_logging import RequestLoggingMiddleware, client_ip, request_id

__all__ = ["RequestLoggingMiddleware", "client_ip", "limiter", "rate_limit_exceeded_handler", "request_id"]
