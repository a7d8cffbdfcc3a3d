"""Shared FastAPI dependencies."""

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from app.config import settings
from app.queue.store import JobQueueStore, create_redis_client
from app.services.application_service import ApplicationService
from app.services.queue_service import QueueService

logger = logging.getLogger(__name__)

# Global queue service, created on first use
_queue_service: Optional[QueueService] = None


def get_queue_service() -> QueueService:
    """Get the process-wide queue service."""
    global _queue_service
    if _queue_service is None:
        store = JobQueueStore(
            create_redis_client(settings),
            queue_name=settings.queue_name,
            prefix=settings.queue_prefix,
        )
        _queue_service = QueueService(store, settings)
        logger.info(f"Queue broker configured at {settings.redis_address}")
    return _queue_service


async def close_queue_service():
    """Release the broker connection pool."""
    global _queue_service
    if _queue_service is not None:
        try:
            await _queue_service.wait_released()
            await _queue_service.store.close()
        except Exception as e:
            logger.error(f"Error closing queue broker connection: {e}")
        _queue_service = None


def get_application_service(
    queue_service: QueueService = Depends(get_queue_service),
) -> ApplicationService:
    """Get application service instance."""
    return ApplicationService(queue_service)


def get_current_user_id(x_user_id: Optional[str] = Header(None)) -> str:
    """Identify the caller from the X-User-Id header set by the auth gateway."""
    if not x_user_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing X-User-Id header"
        )
    return x_user_id
