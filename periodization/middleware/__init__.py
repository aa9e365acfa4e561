"""HTTP middleware."""
from periodization.middleware.request_id import RequestIDMiddleware

__all__ = ["RequestIDMiddleware"]
