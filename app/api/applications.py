"""Application management API endpoints."""

from datetime import datetime
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, HTTPException, status, Depends
from pydantic import BaseModel, ConfigDict, Field
import logging

from app.api.dependencies import get_application_service, get_current_user_id
from app.models.application import ApplicationStatus, InvalidTransitionError
from app.services.application_service import (
    ApplicationNotFoundError,
    ApplicationService,
    ApplicationValidationError,
    DuplicateApplicationError,
    JobNotFoundError,
)
from app.services.queue_service import QueueUnavailableError

logger = logging.getLogger(__name__)

router = APIRouter()


# Request/Response Models
class ApplyRequest(BaseModel):
    """Request to apply to a job."""
    model_config = ConfigDict(populate_by_name=True)

    job_id: str = Field(..., alias="jobId", description="ID of the job to apply to")
    resume_id: str = Field(..., alias="resumeId", description="Resume to submit")
    job_url: Optional[str] = Field(None, alias="jobUrl", description="Posting URL, defaults to the catalog URL")
    platform: Optional[str] = Field(None, description="Job site, defaults to the catalog platform")
    email: Optional[str] = None
    phone: Optional[str] = None


class CompleteApplicationRequest(BaseModel):
    """Completion report sent by the automation worker."""
    model_config = ConfigDict(populate_by_name=True, extra="allow")

    status: ApplicationStatus
    error_message: Optional[str] = Field(None, alias="errorMessage")
    applied_at: Optional[datetime] = Field(None, alias="appliedAt")


class UpdateStatusRequest(BaseModel):
    """Manual status change."""
    model_config = ConfigDict(populate_by_name=True)

    status: ApplicationStatus
    error_message: Optional[str] = Field(None, alias="errorMessage")


class ApplicationResponse(BaseModel):
    """Application response model."""
    model_config = ConfigDict(populate_by_name=True)

    id: str
    user_id: str = Field(..., alias="userId")
    job_id: str = Field(..., alias="jobId")
    resume_id: str = Field(..., alias="resumeId")
    status: ApplicationStatus
    applied_at: Optional[datetime] = Field(None, alias="appliedAt")
    error_message: Optional[str] = Field(None, alias="errorMessage")
    created_at: datetime = Field(..., alias="createdAt")
    updated_at: datetime = Field(..., alias="updatedAt")

    @classmethod
    def from_application(cls, application) -> "ApplicationResponse":
        """Create response from Application model."""
        return cls(
            id=str(application.id),
            user_id=str(application.user_id),
            job_id=str(application.job_id),
            resume_id=str(application.resume_id),
            status=application.status,
            applied_at=application.applied_at,
            error_message=application.error_message,
            created_at=application.created_at,
            updated_at=application.updated_at
        )


class ApplicationStatsResponse(BaseModel):
    """Per-user application statistics."""
    model_config = ConfigDict(populate_by_name=True)

    total: int
    applied_today: int = Field(..., alias="appliedToday")
    success_rate: float = Field(..., alias="successRate")
    by_status: Dict[str, int] = Field(default_factory=dict, alias="byStatus")


def _not_found(e: Exception) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/apply", response_model=ApplicationResponse, status_code=status.HTTP_201_CREATED)
async def create_application(
    request: ApplyRequest,
    user_id: str = Depends(get_current_user_id),
    app_service: ApplicationService = Depends(get_application_service)
) -> ApplicationResponse:
    """Create an application and queue it for the automation worker."""
    logger.info(f"POST /applications/apply - userId={user_id}, jobId={request.job_id}")
    try:
        application = await app_service.create_application(
            user_id=user_id,
            job_id=request.job_id,
            resume_id=request.resume_id,
            job_url=request.job_url,
            platform=request.platform,
            email=request.email,
            phone=request.phone
        )
    except DuplicateApplicationError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    except JobNotFoundError as e:
        raise _not_found(e)
    except ApplicationValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except QueueUnavailableError:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Application queue is unavailable, please try again later"
        )

    return ApplicationResponse.from_application(application)


@router.get("", response_model=List[ApplicationResponse])
async def get_user_applications(
    user_id: str = Depends(get_current_user_id),
    app_service: ApplicationService = Depends(get_application_service)
) -> List[ApplicationResponse]:
    """Get the caller's applications, newest first."""
    applications = await app_service.get_user_applications(user_id)
    return [ApplicationResponse.from_application(app) for app in applications]


@router.get("/stats", response_model=ApplicationStatsResponse)
async def get_application_stats(
    user_id: str = Depends(get_current_user_id),
    app_service: ApplicationService = Depends(get_application_service)
) -> ApplicationStatsResponse:
    """Totals, today's submissions and success rate for the caller."""
    stats = await app_service.get_application_stats(user_id)
    return ApplicationStatsResponse(**stats)


@router.get("/job/{job_id}", response_model=Optional[ApplicationResponse])
async def get_application_by_job_id(
    job_id: str,
    user_id: str = Depends(get_current_user_id),
    app_service: ApplicationService = Depends(get_application_service)
) -> Optional[ApplicationResponse]:
    """The caller's application for a job, or null."""
    application = await app_service.get_application_by_job_id(user_id, job_id)
    return ApplicationResponse.from_application(application) if application else None


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application_detail(
    application_id: str,
    user_id: str = Depends(get_current_user_id),
    app_service: ApplicationService = Depends(get_application_service)
) -> ApplicationResponse:
    """Get one of the caller's applications."""
    try:
        application = await app_service.get_application_by_id(application_id, user_id)
    except ApplicationNotFoundError as e:
        raise _not_found(e)
    return ApplicationResponse.from_application(application)


@router.patch("/{application_id}/status", response_model=ApplicationResponse)
async def update_application_status(
    application_id: str,
    request: UpdateStatusRequest,
    user_id: str = Depends(get_current_user_id),
    app_service: ApplicationService = Depends(get_application_service)
) -> ApplicationResponse:
    """Manually change an application's status."""
    try:
        await app_service.get_application_by_id(application_id, user_id)
        application = await app_service.update_application_status(
            application_id, request.status, request.error_message
        )
    except ApplicationNotFoundError as e:
        raise _not_found(e)
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ApplicationResponse.from_application(application)


@router.post("/{application_id}/complete", response_model=ApplicationResponse)
async def complete_application(
    application_id: str,
    request: CompleteApplicationRequest,
    app_service: ApplicationService = Depends(get_application_service)
) -> ApplicationResponse:
    """Record the worker's terminal outcome for an application."""
    extra: Dict[str, Any] = request.model_extra or {}
    logger.info(
        f"POST /applications/{application_id}/complete - status={request.status.value}"
        + (f", platform={extra['platform']}" if "platform" in extra else "")
    )
    try:
        application = await app_service.complete_application(
            application_id,
            request.status,
            error_message=request.error_message,
            applied_at=request.applied_at
        )
    except ApplicationNotFoundError as e:
        raise _not_found(e)
    except ApplicationValidationError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))
    except InvalidTransitionError as e:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(e))
    return ApplicationResponse.from_application(application)
