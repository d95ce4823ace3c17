# assetverse/api/v1/endpoints/users.py
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, HTTPException, status, Path, Body, Query, Request
from loguru import logger

from assetverse.core.directory import UserDirectory
from assetverse.core.rate_limiter import limiter
from assetverse.core.security import get_current_user, get_token_email, require_hr_or_admin
from assetverse.db.database import get_directory
from assetverse.models.enum import UserRole
from assetverse.models.user import RoleResponse, User

router = APIRouter(tags=["Users"])


@router.post(
    "/",
    response_model=User.Response,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("10/minute")
async def create_user(
    request: Request,
    user_in: User.Create = Body(...),
    token_email: str = Depends(get_token_email),
    directory: UserDirectory = Depends(get_directory),
):
    """Create the caller's profile after signing up with the identity provider. Admins may create any profile."""
    if user_in.email.lower() != token_email.lower():
        caller = await directory.find_user(token_email)
        if caller is None or caller["role"] != UserRole.ADMIN.value:
            logger.warning(f"'{token_email}' attempted to create profile for '{user_in.email}'.")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only create your own profile.")
    if user_in.role == UserRole.ADMIN:
        caller = await directory.find_user(token_email)
        if caller is None or caller["role"] != UserRole.ADMIN.value:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can create admin profiles.")
    record = await directory.create_user(user_in)
    return User.Response.model_validate(record)


@router.get("/", response_model=List[User.Response])
@limiter.limit("30/minute")
async def read_users(
    request: Request,
    role: Optional[UserRole] = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: Dict[str, Any] = Depends(require_hr_or_admin),
    directory: UserDirectory = Depends(get_directory),
):
    records = await directory.list_users(role=role, skip=skip, limit=limit)
    return [User.Response.model_validate(r) for r in records]


@router.get("/role/{email}", response_model=RoleResponse)
async def read_user_role(
    email: str = Path(...),
    token_email: str = Depends(get_token_email),
    directory: UserDirectory = Depends(get_directory),
):
    return {"role": await directory.get_user_role(email)}


@router.get("/{email}", response_model=User.Response)
async def read_user(
    email: str = Path(...),
    current_user: Dict[str, Any] = Depends(get_current_user),
    directory: UserDirectory = Depends(get_directory),
):
    return User.Response.model_validate(await directory.get_user(email))
