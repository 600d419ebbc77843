"""Job administration schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class JobInfoResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    name: str
    schedule: str
    timezone: str
    registered_at: datetime
    is_running: bool
    is_executing: bool
    next_run_time: datetime | None = None


class JobRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    job_name: str
    trigger: str
    started_at: datetime
    finished_at: datetime
    duration_ms: float
    success: bool
    error: str | None = None


class JobToggleResponse(BaseModel):
    name: str
    action: str
    ok: bool
