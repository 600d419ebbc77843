"""
Maintenance Background Jobs

1. cleanup-temp: removes files older than the retention window from the
   temporary upload directory, daily at 02:00 (America/Sao_Paulo)

Behaviour:
- The directory is scanned non-recursively; subdirectories are skipped
- A missing directory is created and counts as nothing to clean
- Each file's outcome (kept/removed/failed) is logged
- One file failing to delete does not stop the others
- The run ends with a summary of counts, bytes freed and elapsed time
"""

import asyncio
import logging
import os
import time
from dataclasses import asdict, dataclass, field
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any

from app.core.config import settings
from app.core.scheduler import JobRegistry
from app.modules.shared.formatters import format_bytes

logger = logging.getLogger(__name__)

JOB_NAME_CLEANUP_TEMP = "cleanup-temp"
CLEANUP_TEMP_SCHEDULE = "0 2 * * *"


@dataclass
class CleanupSummary:
    directory: str
    processed: int = 0
    removed: int = 0
    kept: int = 0
    failed: int = 0
    skipped: int = 0
    bytes_freed: int = 0
    elapsed_ms: float = 0.0
    removed_files: list[str] = field(default_factory=list)
    errors: list[dict[str, str]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def cleanup_directory(
    directory: Path,
    retention_days: int,
    now: datetime | None = None,
) -> CleanupSummary:
    """
    Delete regular files in `directory` whose age exceeds `retention_days`.

    Age is measured from the file's modification time.

    Args:
        directory: Directory to scan (not recursed into)
        retention_days: Files strictly older than this are removed
        now: Reference time (defaults to the current time)

    Returns:
        CleanupSummary of the run
    """
    start = time.perf_counter()
    now = now or datetime.now(UTC)
    retention = timedelta(days=retention_days)
    summary = CleanupSummary(directory=str(directory))

    if not directory.exists():
        logger.info(f"Temp directory {directory} does not exist, creating it")
        directory.mkdir(parents=True, exist_ok=True)
        summary.elapsed_ms = (time.perf_counter() - start) * 1000
        return summary

    with os.scandir(directory) as entries:
        for entry in entries:
            if not entry.is_file(follow_symlinks=False):
                summary.skipped += 1
                logger.debug(f"Skipping non-file entry: {entry.name}")
                continue

            summary.processed += 1
            try:
                stat = entry.stat(follow_symlinks=False)
                age = now - datetime.fromtimestamp(stat.st_mtime, tz=UTC)

                if age <= retention:
                    summary.kept += 1
                    logger.debug(f"Kept {entry.name} (age {age.days}d)")
                    continue

                os.remove(entry.path)
                summary.removed += 1
                summary.bytes_freed += stat.st_size
                summary.removed_files.append(entry.name)
                logger.info(
                    f"Removed {entry.name} (age {age.days}d, {format_bytes(stat.st_size)})"
                )
            except OSError as e:
                summary.failed += 1
                summary.errors.append({"file": entry.name, "error": str(e)})
                logger.error(f"Failed to process {entry.name}: {e}")

    summary.elapsed_ms = (time.perf_counter() - start) * 1000
    logger.info(
        f"Temp cleanup of {directory} finished. "
        f"Processed: {summary.processed}, Removed: {summary.removed}, "
        f"Failed: {summary.failed}, Freed: {format_bytes(summary.bytes_freed)}, "
        f"Duration: {summary.elapsed_ms:.0f}ms"
    )
    return summary


async def cleanup_temp_files() -> dict[str, Any]:
    """Scheduled task: clean the configured temp upload directory."""
    logger.info("Starting temp file cleanup job...")
    summary = await asyncio.to_thread(
        cleanup_directory,
        settings.temp_upload_dir,
        settings.temp_retention_days,
    )
    return summary.to_dict()


def register_maintenance_jobs(registry: JobRegistry) -> None:
    """Register maintenance jobs. Call during startup before `registry.start()`."""
    logger.info("Registering maintenance background jobs...")
    registry.register(
        JOB_NAME_CLEANUP_TEMP,
        CLEANUP_TEMP_SCHEDULE,
        cleanup_temp_files,
        timezone=settings.scheduler_timezone,
    )
