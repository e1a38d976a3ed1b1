"""User data processing endpoints.

POST /user-data-processing/{fiscal_code}           - Submit (or resubmit) a request
GET  /user-data-processing/{fiscal_code}/{choice}  - Get the request for a choice

The fiscal code arrives already authenticated by the API gateway; it is only
validated for shape here. Status is always computed server-side.
"""

from __future__ import annotations

from datetime import datetime

from fastapi import APIRouter, Depends, Path
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from citizen_backend.core.errors import RecordNotFoundError
from citizen_backend.core.fiscal_code import FISCAL_CODE_PATTERN
from citizen_backend.database import get_db_session
from citizen_backend.models.user_data_processing import (
    UserDataProcessing,
    UserDataProcessingChoice,
    UserDataProcessingStatus,
    make_user_data_processing_id,
)
from citizen_backend.repositories.user_data_processing import (
    SqlUserDataProcessingRepository,
    UserDataProcessingStore,
)
from citizen_backend.services.user_data_processing import UserDataProcessingService
from citizen_backend.telemetry import subject_logger

router = APIRouter(prefix="/user-data-processing", tags=["user-data-processing"])


class UserDataProcessingChoiceRequest(BaseModel):
    choice: UserDataProcessingChoice = Field(..., description="DOWNLOAD or DELETE")


class UserDataProcessingResponse(BaseModel):
    choice: UserDataProcessingChoice
    status: UserDataProcessingStatus
    created_at: datetime

    @classmethod
    def from_domain(cls, request: UserDataProcessing) -> UserDataProcessingResponse:
        return cls(
            choice=request.choice,
            status=request.status,
            created_at=request.created_at,
        )


def get_user_data_processing_store(
    db: AsyncSession = Depends(get_db_session),
) -> UserDataProcessingStore:
    """FastAPI dependency: store bound to the request session."""
    return SqlUserDataProcessingRepository(db)


@router.post(
    "/{fiscal_code}",
    response_model=UserDataProcessingResponse,
    summary="Submit a user data processing request",
)
async def upsert_user_data_processing(
    body: UserDataProcessingChoiceRequest,
    fiscal_code: str = Path(..., pattern=FISCAL_CODE_PATTERN, description="Citizen fiscal code"),
    store: UserDataProcessingStore = Depends(get_user_data_processing_store),
) -> UserDataProcessingResponse:
    """Create the request, or refresh it without regressing a request in progress."""
    service = UserDataProcessingService(
        store, log=subject_logger(__name__, fiscal_code, handler="upsert")
    )
    request = await service.upsert(fiscal_code, body.choice)
    return UserDataProcessingResponse.from_domain(request)


@router.get(
    "/{fiscal_code}/{choice}",
    response_model=UserDataProcessingResponse,
    summary="Get a user data processing request",
)
async def get_user_data_processing(
    fiscal_code: str = Path(..., pattern=FISCAL_CODE_PATTERN, description="Citizen fiscal code"),
    choice: UserDataProcessingChoice = Path(..., description="DOWNLOAD or DELETE"),
    store: UserDataProcessingStore = Depends(get_user_data_processing_store),
) -> UserDataProcessingResponse:
    """Return the request for the given choice, 404 when none was ever submitted."""
    request_log = subject_logger(__name__, fiscal_code, handler="get")
    service = UserDataProcessingService(store, log=request_log)

    request_id = make_user_data_processing_id(choice, fiscal_code)
    request = await service.find_one(fiscal_code, request_id)
    if request is None:
        raise RecordNotFoundError("User data processing not found", record_id=request_id)
    return UserDataProcessingResponse.from_domain(request)
