from fastapi import APIRouter

from app.modules.auth import router as auth_router
from app.modules.documents import router as documents_router
from app.modules.maintenance import router as jobs_router
from app.modules.requests import router as requests_router

api_router = APIRouter()

api_router.include_router(auth_router, prefix="/auth", tags=["Authentication"])

api_router.include_router(requests_router, prefix="/requests", tags=["Requests"])

api_router.include_router(documents_router, prefix="/documents", tags=["Documents"])

api_router.include_router(jobs_router, prefix="/admin/jobs", tags=["Admin Jobs"])
