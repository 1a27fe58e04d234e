"""HTTP middleware package."""

from tcof.middleware.logging import LoggingMiddleware
from tcof.middleware.request_id import RequestIDMiddleware

__all__ = ["LoggingMiddleware", "RequestIDMiddleware"]
