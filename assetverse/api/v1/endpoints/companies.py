# assetverse/api/v1/endpoints/companies.py
from typing import Any, Dict, List
from fastapi import APIRouter, Depends, Path, Query

from assetverse.core.config import BIRTHDAY_WINDOW_DAYS
from assetverse.core.directory import UserDirectory
from assetverse.core.security import get_current_user
from assetverse.db.database import get_directory
from assetverse.models.report import BirthdayEntry
from assetverse.models.user import User

router = APIRouter(tags=["Companies"])


@router.get("/", response_model=List[str])
async def read_companies(
    current_user: Dict[str, Any] = Depends(get_current_user),
    directory: UserDirectory = Depends(get_directory),
):
    """Company names registered by HR accounts."""
    return await directory.list_companies()


@router.get("/{company_name}/employees", response_model=List[User.Response])
async def read_company_employees(
    company_name: str = Path(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    directory: UserDirectory = Depends(get_directory),
):
    records = await directory.list_employees(company_name)
    return [User.Response.model_validate(r) for r in records]


@router.get("/{company_name}/birthdays", response_model=List[BirthdayEntry])
async def read_upcoming_birthdays(
    company_name: str = Path(...),
    days: int = Query(BIRTHDAY_WINDOW_DAYS, ge=0, le=366),
    current_user: Dict[str, Any] = Depends(get_current_user),
    directory: UserDirectory = Depends(get_directory),
):
    """Employees of the company with a birthday in the next `days` days."""
    return await directory.upcoming_birthdays(company_name, days)
