"""
Requests module - Student requests and their administrative review.
"""

from app.modules.requests.models import Request, RequestType
from app.modules.requests.router import router

__all__ = ["Request", "RequestType", "router"]
