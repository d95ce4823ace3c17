# assetverse/core/lifecycle.py
"""
Asset lifecycle and request-approval workflow.

The engine keeps three stores in agreement: assets, requests and assignments.
Requests and assignments carry denormalized copies of the asset's name, type and
image, so every asset edit or delete is cascaded to them inside one transaction.
"""
import re
from datetime import datetime, timezone
from typing import Dict, List, Optional, Tuple, Union

from loguru import logger

from assetverse.core.errors import (
    ConflictError,
    ForbiddenError,
    InsufficientQuantityError,
    NotFoundError,
    ValidationFailedError,
)
from assetverse.core.projections import RESOLVED_STATUSES, build_asset_history, group_assignments_by_employee
from assetverse.db.stores import Record, Store, Transactor
from assetverse.models.asset import Asset, AssetDeleteResult
from assetverse.models.asset_request import AssetRequest
from assetverse.models.enum import AssignmentStatus, RequestStatus
from assetverse.models.report import AssetHistoryEntry, EmployeeAssetSummary

# Asset field -> denormalized field on requests and assignments
DENORMALIZED_FIELDS: Dict[str, str] = {
    "product_name": "asset_name",
    "product_type": "asset_type",
    "product_image": "asset_image",
}

# Fields of Asset.Update that may be explicitly cleared
NULLABLE_ASSET_FIELDS = ("product_image", "description")

NEWEST_FIRST = -1


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _same_email(a: Optional[str], b: Optional[str]) -> bool:
    return bool(a) and bool(b) and a.lower() == b.lower()


def _status_value(status: Union[str, RequestStatus, AssignmentStatus, None]) -> Optional[str]:
    if status is None:
        return None
    return status.value if hasattr(status, "value") else str(status)


class LifecycleEngine:
    def __init__(self, assets: Store, requests: Store, assignments: Store, transactor: Transactor):
        self.assets = assets
        self.requests = requests
        self.assignments = assignments
        self.transactor = transactor

    @staticmethod
    def _check_owner(record: Record, owner_email: Optional[str], label: str) -> None:
        if owner_email is not None and not _same_email(record.get("hr_email"), owner_email):
            logger.warning(f"Forbidden: '{owner_email}' does not own {label} '{record.get('id')}'.")
            raise ForbiddenError(f"This {label} belongs to another HR account.")

    # --- Assets ---

    async def create_asset(self, asset_in: Asset.Create, hr_email: str, company_name: Optional[str] = None) -> Record:
        now = _now()
        record = asset_in.model_dump()
        record.update(hr_email=hr_email, company_name=company_name, created_at=now, updated_at=now)
        record["id"] = await self.assets.insert(record)
        logger.info(f"Asset '{record['product_name']}' ({record['id']}) created by '{hr_email}' with quantity {record['quantity']}.")
        return record

    async def get_asset(self, asset_id: str) -> Record:
        asset = await self.assets.find_by_id(asset_id)
        if asset is None:
            raise NotFoundError(f"Asset with ID '{asset_id}' not found.")
        return asset

    async def list_assets(
        self,
        hr_email: Optional[str] = None,
        search: Optional[str] = None,
        product_type: Optional[str] = None,
        available_only: bool = False,
        skip: int = 0,
        limit: int = 0,
    ) -> List[Record]:
        query: Record = {}
        if hr_email:
            query["hr_email"] = hr_email
        if search:
            query["product_name"] = {"$regex": re.escape(search), "$options": "i"}
        if product_type:
            query["product_type"] = product_type
        if available_only:
            query["quantity"] = {"$gt": 0}
        return await self.assets.find_many(query, sort=[("created_at", NEWEST_FIRST)], skip=skip, limit=limit)

    async def update_asset(self, asset_id: str, asset_in: Asset.Update, owner_email: Optional[str] = None) -> Record:
        """Apply the edit and sync denormalized fields of every request/assignment of this asset."""
        patch = {
            k: v for k, v in asset_in.model_dump(exclude_unset=True).items()
            if v is not None or k in NULLABLE_ASSET_FIELDS
        }
        if not patch:
            raise ValidationFailedError("No update data provided.")
        patch["updated_at"] = _now()
        synced = {dst: patch[src] for src, dst in DENORMALIZED_FIELDS.items() if src in patch}

        async def _update(session) -> Record:
            asset = await self.assets.find_by_id(asset_id, session=session)
            if asset is None:
                raise NotFoundError(f"Asset with ID '{asset_id}' not found.")
            self._check_owner(asset, owner_email, "asset")
            await self.assets.update_by_id(asset_id, patch, session=session)
            if synced:
                touched_requests = await self.requests.update_many({"asset_id": asset_id}, synced, session=session)
                touched_assignments = await self.assignments.update_many({"asset_id": asset_id}, synced, session=session)
                logger.debug(
                    f"Asset {asset_id}: synced {list(synced)} to {touched_requests} request(s) "
                    f"and {touched_assignments} assignment(s)."
                )
            return await self.assets.find_by_id(asset_id, session=session)

        updated = await self.transactor.run(_update)
        logger.info(f"Asset {asset_id} updated. Fields: {[k for k in patch if k != 'updated_at']}")
        return updated

    async def delete_asset(self, asset_id: str, owner_email: Optional[str] = None) -> AssetDeleteResult:
        """Remove the asset together with every request and assignment that references it."""

        async def _delete(session) -> AssetDeleteResult:
            asset = await self.assets.find_by_id(asset_id, session=session)
            if asset is None:
                raise NotFoundError(f"Asset with ID '{asset_id}' not found.")
            self._check_owner(asset, owner_email, "asset")
            deleted_assets = await self.assets.delete_by_id(asset_id, session=session)
            if deleted_assets == 0:
                raise NotFoundError(f"Asset with ID '{asset_id}' not found.")
            deleted_requests = await self.requests.delete_many({"asset_id": asset_id}, session=session)
            deleted_assignments = await self.assignments.delete_many({"asset_id": asset_id}, session=session)
            return AssetDeleteResult(
                asset_id=asset_id,
                deleted_assets=deleted_assets,
                deleted_requests=deleted_requests,
                deleted_assignments=deleted_assignments,
            )

        result = await self.transactor.run(_delete)
        logger.info(
            f"Asset {asset_id} deleted with {result.deleted_requests} request(s) "
            f"and {result.deleted_assignments} assignment(s)."
        )
        return result

    # --- Requests ---

    async def create_request(
        self, request_in: AssetRequest.Create, requester_email: str, requester_name: Optional[str] = None
    ) -> Record:
        # Asset existence and stock are only checked at approval time
        record = request_in.model_dump()
        record.update(asset_name=None, asset_type=None, asset_image=None)
        asset = await self.assets.find_by_id(request_in.asset_id)
        if asset is not None:
            record.update({dst: asset.get(src) for src, dst in DENORMALIZED_FIELDS.items()})
            record.update(hr_email=asset["hr_email"], company_name=asset.get("company_name"))
        record.update(
            requester_email=requester_email,
            requester_name=requester_name,
            status=RequestStatus.PENDING.value,
            request_date=_now(),
            approval_date=None,
            processed_by=None,
        )
        record["id"] = await self.requests.insert(record)
        logger.info(f"Request {record['id']} for asset '{record['asset_id']}' submitted by '{requester_email}'.")
        return record

    async def get_request(self, request_id: str) -> Record:
        request = await self.requests.find_by_id(request_id)
        if request is None:
            raise NotFoundError(f"Request with ID '{request_id}' not found.")
        return request

    async def list_requests_for_hr(self, hr_email: str, status=None, skip: int = 0, limit: int = 0) -> List[Record]:
        query: Record = {"hr_email": hr_email}
        if status is not None:
            query["status"] = _status_value(status)
        return await self.requests.find_many(query, sort=[("request_date", NEWEST_FIRST)], skip=skip, limit=limit)

    async def list_requests_for_employee(self, email: str, status=None, skip: int = 0, limit: int = 0) -> List[Record]:
        query: Record = {"requester_email": email}
        if status is not None:
            query["status"] = _status_value(status)
        return await self.requests.find_many(query, sort=[("request_date", NEWEST_FIRST)], skip=skip, limit=limit)

    async def _load_pending(self, request_id: str, owner_email: Optional[str], session) -> Record:
        request = await self.requests.find_by_id(request_id, session=session)
        if request is None:
            raise NotFoundError(f"Request with ID '{request_id}' not found.")
        self._check_owner(request, owner_email, "request")
        if request["status"] != RequestStatus.PENDING.value:
            raise ConflictError(f"Request already processed (status '{request['status']}').")
        return request

    async def _resolve(self, request_id: str, status: RequestStatus, processor_email: str, session) -> Record:
        """Flip a request out of pending; None from the store means another caller got there first."""
        resolved = await self.requests.find_and_modify(
            request_id,
            {"status": RequestStatus.PENDING.value},
            {"$set": {"status": status.value, "approval_date": _now(), "processed_by": processor_email}},
            session=session,
        )
        if resolved is None:
            raise ConflictError("Request already processed.")
        return resolved

    async def approve_request(
        self, request_id: str, processor_email: str, owner_email: Optional[str] = None
    ) -> Tuple[Record, Record]:
        """
        Approve a pending request: decrement the asset's quantity by one and create the
        assignment. Everything happens in one transaction; any failure leaves no change.
        Returns the approved request and the new assignment.
        """

        async def _approve(session) -> Tuple[Record, Record]:
            pending = await self._load_pending(request_id, owner_email, session)
            asset_id = pending["asset_id"]
            current = await self.assets.find_by_id(asset_id, session=session)
            if current is None:
                raise NotFoundError(f"Asset with ID '{asset_id}' not found.")
            self._check_owner(current, owner_email, "asset")
            approved = await self._resolve(request_id, RequestStatus.APPROVED, processor_email, session)

            asset = await self.assets.find_and_modify(
                asset_id,
                {"quantity": {"$gte": 1}},
                {"$inc": {"quantity": -1}, "$set": {"updated_at": _now()}},
                session=session,
            )
            if asset is None:
                raise InsufficientQuantityError(f"Asset '{current['product_name']}' is out of stock.")

            assignment = {
                "asset_id": asset_id,
                "asset_name": asset.get("product_name"),
                "asset_type": asset.get("product_type"),
                "asset_image": asset.get("product_image"),
                "employee_email": pending["requester_email"],
                "employee_name": pending.get("requester_name"),
                "hr_email": asset["hr_email"],
                "company_name": asset.get("company_name"),
                "request_id": request_id,
                "assigned_date": approved["approval_date"],
                "return_date": None,
                "status": AssignmentStatus.ASSIGNED.value,
            }
            assignment["id"] = await self.assignments.insert(assignment, session=session)
            logger.debug(f"Asset {asset_id} quantity now {asset['quantity']}.")
            return approved, assignment

        approved, assignment = await self.transactor.run(_approve)
        logger.info(f"Request {request_id} approved by '{processor_email}'. Assignment {assignment['id']} created.")
        return approved, assignment

    async def reject_request(self, request_id: str, processor_email: str, owner_email: Optional[str] = None) -> Record:
        async def _reject(session) -> Record:
            pending = await self._load_pending(request_id, owner_email, session)
            asset = await self.assets.find_by_id(pending["asset_id"], session=session)
            if asset is not None:
                self._check_owner(asset, owner_email, "asset")
            return await self._resolve(request_id, RequestStatus.REJECTED, processor_email, session)

        rejected = await self.transactor.run(_reject)
        logger.info(f"Request {request_id} rejected by '{processor_email}'.")
        return rejected

    # --- Assignments ---

    async def list_assignments_for_hr(self, hr_email: str, status=None, skip: int = 0, limit: int = 0) -> List[Record]:
        query: Record = {"hr_email": hr_email}
        if status is not None:
            query["status"] = _status_value(status)
        return await self.assignments.find_many(query, sort=[("assigned_date", NEWEST_FIRST)], skip=skip, limit=limit)

    async def list_assignments_for_employee(self, email: str, status=None) -> List[Record]:
        query: Record = {"employee_email": email}
        if status is not None:
            query["status"] = _status_value(status)
        return await self.assignments.find_many(query, sort=[("assigned_date", NEWEST_FIRST)])

    async def return_assignment(self, assignment_id: str, actor_email: str) -> Record:
        """Mark a returnable assignment as returned and put the unit back into stock."""

        async def _return(session) -> Record:
            assignment = await self.assignments.find_by_id(assignment_id, session=session)
            if assignment is None:
                raise NotFoundError(f"Assignment with ID '{assignment_id}' not found.")
            if not (_same_email(assignment["employee_email"], actor_email) or _same_email(assignment["hr_email"], actor_email)):
                raise ForbiddenError("Only the assigned employee or the owning HR can return this asset.")
            if assignment["status"] != AssignmentStatus.ASSIGNED.value:
                raise ConflictError("Asset already returned.")

            asset_id = assignment["asset_id"]
            asset = await self.assets.find_by_id(asset_id, session=session)
            if asset is not None and not asset.get("returnable", True):
                raise ConflictError(f"Asset '{asset['product_name']}' is not returnable.")

            now = _now()
            returned = await self.assignments.find_and_modify(
                assignment_id,
                {"status": AssignmentStatus.ASSIGNED.value},
                {"$set": {"status": AssignmentStatus.RETURNED.value, "return_date": now}},
                session=session,
            )
            if returned is None:
                raise ConflictError("Asset already returned.")
            if asset is not None:
                await self.assets.find_and_modify(
                    asset_id, {}, {"$inc": {"quantity": 1}, "$set": {"updated_at": now}}, session=session
                )
            else:
                logger.warning(f"Assignment {assignment_id} returned but asset '{asset_id}' no longer exists.")
            return returned

        returned = await self.transactor.run(_return)
        logger.info(f"Assignment {assignment_id} returned by '{actor_email}'.")
        return returned

    # --- Read projections ---

    async def get_employee_asset_history(self, employee_email: str, hr_email: Optional[str] = None) -> List[AssetHistoryEntry]:
        """Resolved requests of the employee, optionally only those addressed to one HR."""
        query: Record = {"requester_email": employee_email, "status": {"$in": list(RESOLVED_STATUSES)}}
        if hr_email:
            query["hr_email"] = hr_email
        requests = await self.requests.find_many(
            query,
            sort=[("request_date", NEWEST_FIRST)],
        )
        assets_by_id: Dict[str, Optional[Record]] = {}
        for request in requests:
            asset_id = request["asset_id"]
            if asset_id not in assets_by_id:
                assets_by_id[asset_id] = await self.assets.find_by_id(asset_id)
        return build_asset_history(requests, assets_by_id)

    async def aggregate_assignments_by_employee(self, hr_email: str) -> List[EmployeeAssetSummary]:
        assignments = await self.assignments.find_many({"hr_email": hr_email}, sort=[("assigned_date", NEWEST_FIRST)])
        return group_assignments_by_employee(assignments)
