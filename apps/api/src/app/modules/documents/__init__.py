"""
Documents module - Uploaded owner documents and their administrative review.
"""

from app.modules.documents.models import Document, DocumentType, DocumentUserType
from app.modules.documents.router import router

__all__ = ["Document", "DocumentType", "DocumentUserType", "router"]
