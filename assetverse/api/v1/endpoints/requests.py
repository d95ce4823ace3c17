# assetverse/api/v1/endpoints/requests.py
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Query, Request
from loguru import logger

from assetverse.core.lifecycle import LifecycleEngine
from assetverse.core.rate_limiter import limiter
from assetverse.core.security import get_current_user, require_hr
from assetverse.db.database import get_engine
from assetverse.models.asset_request import AssetRequest
from assetverse.models.enum import RequestStatus, UserRole

router = APIRouter(tags=["Asset Requests"])


@router.post(
    "/",
    response_model=AssetRequest.Response,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("30/minute")
async def create_request(
    request: Request,
    request_in: AssetRequest.Create = Body(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Submit a request for an asset (status: pending)."""
    if current_user["role"] == UserRole.HR.value:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="HR accounts cannot request assets.")
    record = await engine.create_request(
        request_in, requester_email=current_user["email"], requester_name=current_user.get("name")
    )
    return AssetRequest.Response.model_validate(record)


@router.get("/", response_model=List[AssetRequest.Response])
@limiter.limit("120/minute")
async def read_requests(
    request: Request,
    status: Optional[RequestStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: Dict[str, Any] = Depends(get_current_user),
    engine: LifecycleEngine = Depends(get_engine),
):
    """HR sees requests addressed to them; everyone else sees their own requests."""
    if current_user["role"] == UserRole.HR.value:
        records = await engine.list_requests_for_hr(current_user["email"], status=status, skip=skip, limit=limit)
    else:
        records = await engine.list_requests_for_employee(current_user["email"], status=status, skip=skip, limit=limit)
    return [AssetRequest.Response.model_validate(r) for r in records]


@router.patch("/{request_id}/approve", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def approve_request(
    request: Request,
    request_id: str = Path(...),
    current_user: Dict[str, Any] = Depends(require_hr),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Approve a pending request: one unit leaves stock and an assignment is created."""
    logger.info(f"HR '{current_user['email']}' approving request '{request_id}'.")
    approved, assignment = await engine.approve_request(
        request_id, processor_email=current_user["email"], owner_email=current_user["email"]
    )
    return {
        "message": "Request approved successfully",
        "request_id": request_id,
        "new_status": approved["status"],
        "assignment_id": assignment["id"],
    }


@router.patch("/{request_id}/reject", status_code=status.HTTP_200_OK)
@limiter.limit("60/minute")
async def reject_request(
    request: Request,
    request_id: str = Path(...),
    current_user: Dict[str, Any] = Depends(require_hr),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Reject a pending request. Stock and assignments are untouched."""
    logger.info(f"HR '{current_user['email']}' rejecting request '{request_id}'.")
    rejected = await engine.reject_request(
        request_id, processor_email=current_user["email"], owner_email=current_user["email"]
    )
    return {"message": "Request rejected successfully", "request_id": request_id, "new_status": rejected["status"]}
