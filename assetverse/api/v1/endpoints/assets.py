# assetverse/api/v1/endpoints/assets.py
from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, status, Path, Body, Query, Request
from loguru import logger

from assetverse.core.lifecycle import LifecycleEngine
from assetverse.core.rate_limiter import limiter
from assetverse.core.security import get_current_user, require_hr
from assetverse.db.database import get_engine
from assetverse.models.asset import Asset, AssetDeleteResult

router = APIRouter(tags=["Assets"])


@router.post(
    "/",
    response_model=Asset.Response,
    status_code=status.HTTP_201_CREATED,
)
@limiter.limit("60/minute")
async def create_asset(
    request: Request,
    asset_in: Asset.Create = Body(...),
    current_user: Dict[str, Any] = Depends(require_hr),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Register a company asset owned by the calling HR."""
    record = await engine.create_asset(asset_in, hr_email=current_user["email"], company_name=current_user.get("company_name"))
    return Asset.Response.model_validate(record)


@router.get("/", response_model=List[Asset.Response])
@limiter.limit("120/minute")
async def read_assets(
    request: Request,
    hr_email: Optional[str] = Query(None, description="Only assets owned by this HR"),
    search: Optional[str] = Query(None, description="Case-insensitive product name match"),
    product_type: Optional[str] = Query(None),
    available_only: bool = Query(False, description="Only assets with quantity > 0"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: Dict[str, Any] = Depends(get_current_user),
    engine: LifecycleEngine = Depends(get_engine),
):
    """List assets. Without hr_email every asset is returned (employee catalogue)."""
    records = await engine.list_assets(
        hr_email=hr_email, search=search, product_type=product_type,
        available_only=available_only, skip=skip, limit=limit,
    )
    return [Asset.Response.model_validate(r) for r in records]


@router.get("/{asset_id}", response_model=Asset.Response)
async def read_asset(
    asset_id: str = Path(..., description="The ID of the asset to retrieve"),
    current_user: Dict[str, Any] = Depends(get_current_user),
    engine: LifecycleEngine = Depends(get_engine),
):
    return Asset.Response.model_validate(await engine.get_asset(asset_id))


@router.put("/{asset_id}", response_model=Asset.Response)
@limiter.limit("60/minute")
async def update_asset(
    request: Request,
    asset_id: str = Path(..., description="The ID of the asset to update"),
    asset_in: Asset.Update = Body(...),
    current_user: Dict[str, Any] = Depends(require_hr),
    engine: LifecycleEngine = Depends(get_engine),
):
    """
    Update asset details. Name, type and image changes are copied to every
    request and assignment of this asset in the same transaction.
    """
    logger.info(f"HR '{current_user['email']}' updating asset '{asset_id}'.")
    record = await engine.update_asset(asset_id, asset_in, owner_email=current_user["email"])
    return Asset.Response.model_validate(record)


@router.delete("/{asset_id}", response_model=AssetDeleteResult)
@limiter.limit("30/minute")
async def delete_asset(
    request: Request,
    asset_id: str = Path(..., description="The ID of the asset to delete"),
    current_user: Dict[str, Any] = Depends(require_hr),
    engine: LifecycleEngine = Depends(get_engine),
):
    """Delete the asset and cascade to its requests and assignments."""
    logger.info(f"HR '{current_user['email']}' deleting asset '{asset_id}'.")
    return await engine.delete_asset(asset_id, owner_email=current_user["email"])
