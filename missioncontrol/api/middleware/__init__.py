"""Middleware components for request processing.

Provides request correlation ids for log tracing and the permissive CORS
policy the dashboard UI relies on.
"""

from .correlation_id import correlation_id_middleware, get_request_id
from .cors import cors_middleware

__all__ = ["correlation_id_middleware", "cors_middleware", "get_request_id"]
