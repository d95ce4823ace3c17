# assetverse/core/projections.py
"""Read-side projections over records already fetched from the stores."""
import logging
from datetime import date, datetime, timedelta
from typing import Any, Dict, Iterable, List, Mapping, Optional

from assetverse.models.enum import AssignmentStatus, RequestStatus
from assetverse.models.report import (
    AssetHistoryEntry,
    BirthdayEntry,
    EmployeeAssetItem,
    EmployeeAssetSummary,
)

logger = logging.getLogger(__name__)


def group_assignments_by_employee(assignments: Iterable[Mapping[str, Any]]) -> List[EmployeeAssetSummary]:
    """Group assignment records by employee email, counting totals and still-assigned ones."""
    groups: Dict[str, EmployeeAssetSummary] = {}
    for record in assignments:
        email = record["employee_email"]
        summary = groups.get(email)
        if summary is None:
            summary = EmployeeAssetSummary(employee_email=email, employee_name=record.get("employee_name"))
            groups[email] = summary
        elif not summary.employee_name and record.get("employee_name"):
            summary.employee_name = record["employee_name"]

        summary.total_assets += 1
        if record.get("status", AssignmentStatus.ASSIGNED.value) == AssignmentStatus.ASSIGNED.value:
            summary.active_assets += 1
        summary.assets.append(EmployeeAssetItem(
            assignment_id=record["id"],
            asset_id=record["asset_id"],
            asset_name=record.get("asset_name"),
            asset_type=record.get("asset_type"),
            assigned_date=record["assigned_date"],
            status=record.get("status", AssignmentStatus.ASSIGNED.value),
        ))
    return sorted(groups.values(), key=lambda s: s.employee_email)


RESOLVED_STATUSES = (RequestStatus.APPROVED.value, RequestStatus.REJECTED.value)


def build_asset_history(
    requests: Iterable[Mapping[str, Any]],
    assets_by_id: Mapping[str, Optional[Mapping[str, Any]]],
) -> List[AssetHistoryEntry]:
    """Join resolved requests with live asset data. Missing assets leave the product fields empty."""
    history: List[AssetHistoryEntry] = []
    for request in requests:
        if request["status"] not in RESOLVED_STATUSES:
            continue
        asset = assets_by_id.get(request["asset_id"]) or {}
        history.append(AssetHistoryEntry(
            request_id=request["id"],
            asset_id=request["asset_id"],
            status=request["status"],
            request_date=request["request_date"],
            approval_date=request.get("approval_date"),
            processed_by=request.get("processed_by"),
            hr_email=request["hr_email"],
            company_name=request.get("company_name"),
            product_name=asset.get("product_name"),
            product_type=asset.get("product_type"),
            product_image=asset.get("product_image"),
            returnable=asset.get("returnable"),
        ))
    return history


def distinct_companies(users: Iterable[Mapping[str, Any]]) -> List[str]:
    return sorted({u["company_name"] for u in users if u.get("company_name")})


def _birthday_in_year(born: date, year: int) -> date:
    try:
        return born.replace(year=year)
    except ValueError:
        # Feb 29 in a non-leap year
        return date(year, 2, 28)


def upcoming_birthdays(users: Iterable[Mapping[str, Any]], today: date, days: int) -> List[BirthdayEntry]:
    """Users whose next birthday falls within ``days`` of ``today`` (inclusive), soonest first."""
    entries: List[BirthdayEntry] = []
    horizon = today + timedelta(days=days)
    for user in users:
        raw = user.get("date_of_birth")
        if not raw:
            continue
        if isinstance(raw, datetime):
            born = raw.date()
        elif isinstance(raw, date):
            born = raw
        else:
            try:
                born = date.fromisoformat(str(raw)[:10])
            except ValueError:
                logger.warning(f"Skipping unparseable date_of_birth {raw!r} for user '{user.get('email')}'.")
                continue
        next_birthday = _birthday_in_year(born, today.year)
        if next_birthday < today:
            next_birthday = _birthday_in_year(born, today.year + 1)
        if next_birthday > horizon:
            continue
        entries.append(BirthdayEntry(
            email=user["email"],
            name=user.get("name") or user["email"],
            photo=user.get("photo"),
            position=user.get("position"),
            date_of_birth=born,
            next_birthday=next_birthday,
            days_until=(next_birthday - today).days,
        ))
    return sorted(entries, key=lambda e: (e.days_until, e.name))
