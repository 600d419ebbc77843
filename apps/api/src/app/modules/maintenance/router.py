"""
Job Administration Router

Admin endpoints over the application's JobRegistry. Scheduled jobs run on
their own; these endpoints inspect them and allow manual control.

Endpoints:
- GET /admin/jobs - Registered jobs in registration order
- GET /admin/jobs/history - Recent run results
- POST /admin/jobs/{name}/run - Run a job now and wait for the result
- POST /admin/jobs/{name}/stop - Pause a job's schedule
- POST /admin/jobs/{name}/start - Resume a job's schedule
- POST /admin/jobs/{name}/restart - Stop then start
"""

import logging

from fastapi import APIRouter, Depends, Query, Request

from app.core.auth import CurrentUser, get_current_admin
from app.core.errors import InternalError
from app.core.scheduler import JobNotFoundError, JobRegistry
from app.modules.maintenance.schemas import JobInfoResponse, JobRunResponse, JobToggleResponse
from app.modules.shared.schemas import ApiResponse

logger = logging.getLogger(__name__)

router = APIRouter()


def get_job_registry(request: Request) -> JobRegistry:
    """Dependency returning the registry built during startup."""
    registry = getattr(request.app.state, "job_registry", None)
    if registry is None:
        raise InternalError("Job registry is not initialized.", error_code="SCHEDULER_UNAVAILABLE")
    return registry


@router.get("", response_model=ApiResponse[list[JobInfoResponse]])
async def list_jobs(
    registry: JobRegistry = Depends(get_job_registry),
    _admin: CurrentUser = Depends(get_current_admin),
) -> ApiResponse[list[JobInfoResponse]]:
    return ApiResponse(data=[JobInfoResponse.model_validate(job) for job in registry.list_jobs()])


@router.get("/history", response_model=ApiResponse[list[JobRunResponse]])
async def job_history(
    name: str | None = Query(None),
    registry: JobRegistry = Depends(get_job_registry),
    _admin: CurrentUser = Depends(get_current_admin),
) -> ApiResponse[list[JobRunResponse]]:
    return ApiResponse(
        data=[JobRunResponse.model_validate(result) for result in registry.history(name)]
    )


@router.post("/{name}/run", response_model=ApiResponse[JobRunResponse])
async def run_job(
    name: str,
    registry: JobRegistry = Depends(get_job_registry),
    admin: CurrentUser = Depends(get_current_admin),
) -> ApiResponse[JobRunResponse]:
    """Run the job immediately; task failures are reported in the result, not as errors."""
    logger.info(f"Admin {admin.id} triggered job {name}")
    result = await registry.run_job(name)
    return ApiResponse(data=JobRunResponse.model_validate(result))


def _toggle(name: str, action: str, ok: bool, admin: CurrentUser) -> ApiResponse[JobToggleResponse]:
    if not ok:
        raise JobNotFoundError(name)
    logger.info(f"Admin {admin.id} {action} job {name}")
    return ApiResponse(data=JobToggleResponse(name=name, action=action, ok=ok))


@router.post("/{name}/stop", response_model=ApiResponse[JobToggleResponse])
async def stop_job(
    name: str,
    registry: JobRegistry = Depends(get_job_registry),
    admin: CurrentUser = Depends(get_current_admin),
) -> ApiResponse[JobToggleResponse]:
    return _toggle(name, "stopped", registry.stop_job(name), admin)


@router.post("/{name}/start", response_model=ApiResponse[JobToggleResponse])
async def start_job(
    name: str,
    registry: JobRegistry = Depends(get_job_registry),
    admin: CurrentUser = Depends(get_current_admin),
) -> ApiResponse[JobToggleResponse]:
    return _toggle(name, "started", registry.start_job(name), admin)


@router.post("/{name}/restart", response_model=ApiResponse[JobToggleResponse])
async def restart_job(
    name: str,
    registry: JobRegistry = Depends(get_job_registry),
    admin: CurrentUser = Depends(get_current_admin),
) -> ApiResponse[JobToggleResponse]:
    return _toggle(name, "restarted", registry.restart_job(name), admin)
