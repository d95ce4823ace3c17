# assetverse/api/v1/endpoints/assignments.py
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, Path, Query, Request
from loguru import logger

from assetverse.core.lifecycle import LifecycleEngine
from assetverse.core.rate_limiter import limiter
from assetverse.core.security import get_current_user, require_hr
from assetverse.db.database import get_engine
from assetverse.models.assignment import AssignedAsset
from assetverse.models.enum import AssignmentStatus, UserRole
from assetverse.models.report import AssetHistoryEntry, EmployeeAssetSummary

router = APIRouter(tags=["Assigned Assets"])


@router.get("/", response_model=List[AssignedAsset.Response])
@limiter.limit("120/minute")
async def read_assignments(
    request: Request,
    status: Optional[AssignmentStatus] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: Dict[str, Any] = Depends(get_current_user),
    engine: LifecycleEngine = Depends(get_engine),
):
    """HR gets every asset they assigned; employees get the assets they hold."""
    if current_user["role"] == UserRole.HR.value:
        records = await engine.list_assignments_for_hr(current_user["email"], status=status, skip=skip, limit=limit)
    else:
        records = await engine.list_assignments_for_employee(current_user["email"], status=status)
    return [AssignedAsset.Response.model_validate(r) for r in records]


@router.get("/by-employee", response_model=List[EmployeeAssetSummary])
async def read_assignments_by_employee(
    current_user: Dict[str, Any] = Depends(require_hr),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Assignments of the calling HR grouped per employee."""
    return await engine.aggregate_assignments_by_employee(current_user["email"])


@router.get("/history", response_model=List[AssetHistoryEntry])
@limiter.limit("120/minute")
async def read_asset_history(
    request: Request,
    employee_email: Optional[str] = Query(None, description="Defaults to the caller"),
    current_user: Dict[str, Any] = Depends(get_current_user),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Approved and rejected requests of an employee, with the asset's current data."""
    target = employee_email or current_user["email"]
    if target.lower() == current_user["email"].lower():
        return await engine.get_employee_asset_history(target)
    if current_user["role"] == UserRole.EMPLOYEE.value:
        raise HTTPException(status_code=403, detail="Employees can only view their own history.")
    # HR only sees requests addressed to them; admins see everything
    scope = current_user["email"] if current_user["role"] == UserRole.HR.value else None
    return await engine.get_employee_asset_history(target, hr_email=scope)


@router.post("/{assignment_id}/return", response_model=AssignedAsset.Response)
@limiter.limit("30/minute")
async def return_assignment(
    request: Request,
    assignment_id: str = Path(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Return a returnable asset; the unit goes back into stock."""
    logger.info(f"'{current_user['email']}' returning assignment '{assignment_id}'.")
    record = await engine.return_assignment(assignment_id, actor_email=current_user["email"])
    return AssignedAsset.Response.model_validate(record)
