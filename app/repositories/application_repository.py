"""Application repository with application-specific operations."""

from typing import List, Optional, Dict, Any, Union
from datetime import datetime, timezone
from bson import ObjectId
from pymongo import DESCENDING
from app.models.application import Application, ApplicationStatus
from app.repositories.base import BaseRepository, to_object_id
from app.database_utils import handle_db_errors


class ApplicationRepository(BaseRepository[Application]):
    """Repository for Application document operations."""

    def __init__(self):
        super().__init__(Application)

    @handle_db_errors
    async def create_application(self,
                                 user_id: ObjectId,
                                 job_id: ObjectId,
                                 resume_id: ObjectId) -> Application:
        """Insert a PENDING application.

        The unique (user_id, job_id) index turns a concurrent duplicate into
        DuplicateError.
        """
        return await self.create({
            'user_id': user_id,
            'job_id': job_id,
            'resume_id': resume_id,
            'status': ApplicationStatus.PENDING
        })

    @handle_db_errors
    async def find_by_user_and_job(self, user_id: Union[str, ObjectId],
                                   job_id: Union[str, ObjectId]) -> Optional[Application]:
        """Find application by user and job."""
        user_oid, job_oid = to_object_id(user_id), to_object_id(job_id)
        if user_oid is None or job_oid is None:
            return None
        return await self.find_one({"user_id": user_oid, "job_id": job_oid})

    @handle_db_errors
    async def find_by_user(self, user_id: Union[str, ObjectId],
                           status: Optional[ApplicationStatus] = None,
                           limit: Optional[int] = None) -> List[Application]:
        """Find applications for a specific user, newest first."""
        user_oid = to_object_id(user_id)
        if user_oid is None:
            return []

        filter_dict: Dict[str, Any] = {"user_id": user_oid}
        if status:
            filter_dict["status"] = status

        return await self.find_all(
            filter_dict=filter_dict,
            sort_by="created_at",
            sort_order=DESCENDING,
            limit=limit
        )

    @handle_db_errors
    async def get_application_statistics(self, user_id: Union[str, ObjectId]) -> Dict[str, Any]:
        """Get application statistics for user."""
        user_oid = to_object_id(user_id)
        if user_oid is None:
            return {"total": 0, "appliedToday": 0, "successRate": 0.0, "byStatus": {}}

        status_stats = await self.aggregate([
            {"$match": {"user_id": user_oid}},
            {"$group": {"_id": "$status", "count": {"$sum": 1}}}
        ])
        by_status = {stat["_id"]: stat["count"] for stat in status_stats}

        total = sum(by_status.values())
        success_count = by_status.get(ApplicationStatus.SUCCESS.value, 0)
        success_rate = (success_count / total * 100) if total > 0 else 0.0

        start_of_day = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        applied_today = await self.count({
            "user_id": user_oid,
            "status": ApplicationStatus.SUCCESS,
            "applied_at": {"$gte": start_of_day}
        })

        return {
            "total": total,
            "appliedToday": applied_today,
            "successRate": round(success_rate, 2),
            "byStatus": by_status
        }


# Global repository instance
application_repository = ApplicationRepository()
