"""
Maintenance module - Housekeeping jobs and their admin endpoints.
"""

from app.modules.maintenance.jobs import cleanup_temp_files, register_maintenance_jobs
from app.modules.maintenance.router import router

__all__ = ["cleanup_temp_files", "register_maintenance_jobs", "router"]
