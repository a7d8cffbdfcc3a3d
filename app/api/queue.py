"""Queue endpoints polled by the automation worker."""

import asyncio
import logging
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.config import settings
from app.api.dependencies import get_queue_service
from app.services.queue_service import QueueService

logger = logging.getLogger(__name__)

router = APIRouter()


class QueueStatsResponse(BaseModel):
    """Job counts per queue state."""
    waiting: int
    active: int
    completed: int
    failed: int


@router.get("/jobs/next")
async def get_next_job(
    queue_service: QueueService = Depends(get_queue_service)
) -> Optional[Dict[str, Any]]:
    """Claim the oldest waiting job for the worker.

    Always answers within the poll timeout. ``null`` means no job is
    available, which also covers a slow or unreachable broker.
    """
    logger.debug("Worker polling for next job")
    try:
        job = await asyncio.wait_for(
            queue_service.get_next_job(), timeout=settings.queue_poll_timeout
        )
    except asyncio.TimeoutError:
        logger.debug(f"Queue claim timed out after {settings.queue_poll_timeout}s")
        return None
    except Exception as e:
        logger.error(f"Error getting next job from queue: {e}", exc_info=True)
        return None

    if not job:
        logger.debug("No jobs available in queue")
        return None

    logger.info(
        f"Returning job {job.get('id')}: applicationId={job.get('applicationId')}, "
        f"jobId={job.get('jobId')}, platform={job.get('platform')}",
        extra={"component": "queue", "application_id": job.get("applicationId"), "queue_job_id": job.get("id")},
    )
    return job


@router.get("/stats", response_model=QueueStatsResponse)
async def get_queue_stats(
    queue_service: QueueService = Depends(get_queue_service)
) -> QueueStatsResponse:
    """Queue counts; all zero while the broker is down."""
    stats = await queue_service.get_queue_stats()
    return QueueStatsResponse(**stats.to_dict())


@router.get("/health")
async def queue_health(
    queue_service: QueueService = Depends(get_queue_service)
) -> Dict[str, Any]:
    """Broker connectivity check."""
    return await queue_service.health()
