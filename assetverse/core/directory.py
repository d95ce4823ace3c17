# assetverse/core/directory.py
import logging
from datetime import date, datetime, timezone
from typing import List, Optional

from assetverse.core.errors import ConflictError, DuplicateRecordError, NotFoundError
from assetverse.core.projections import distinct_companies, upcoming_birthdays
from assetverse.db.stores import Record, Store
from assetverse.models.enum import UserRole
from assetverse.models.report import BirthdayEntry
from assetverse.models.user import User

logger = logging.getLogger(__name__)


class UserDirectory:
    """User profiles and company-level views over the user store."""

    def __init__(self, users: Store):
        self.users = users

    async def create_user(self, user_in: User.Create) -> Record:
        if await self.users.find_one({"email": user_in.email}):
            raise ConflictError(f"User '{user_in.email}' already exists.")
        record = user_in.model_dump()
        if record.get("date_of_birth"):
            record["date_of_birth"] = record["date_of_birth"].isoformat()
        record["role"] = user_in.role.value
        record["created_at"] = datetime.now(timezone.utc)
        try:
            record["id"] = await self.users.insert(record)
        except DuplicateRecordError as e:
            # lost a race with a concurrent signup for the same email
            raise ConflictError(f"User '{user_in.email}' already exists.") from e
        logger.info(f"User '{record['email']}' created with role '{record['role']}'.")
        return record

    async def list_users(self, role: Optional[UserRole] = None, skip: int = 0, limit: int = 0) -> List[Record]:
        query = {"role": role.value} if role else {}
        return await self.users.find_many(query, sort=[("created_at", -1)], skip=skip, limit=limit)

    async def find_user(self, email: str) -> Optional[Record]:
        return await self.users.find_one({"email": email})

    async def get_user(self, email: str) -> Record:
        user = await self.find_user(email)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def get_user_role(self, email: str) -> str:
        return (await self.get_user(email))["role"]

    async def list_companies(self) -> List[str]:
        hr_users = await self.users.find_many({"role": UserRole.HR.value})
        return distinct_companies(hr_users)

    async def list_employees(self, company_name: str) -> List[Record]:
        return await self.users.find_many(
            {"company_name": company_name, "role": UserRole.EMPLOYEE.value},
            sort=[("name", 1)],
        )

    async def upcoming_birthdays(self, company_name: str, days: int, today: Optional[date] = None) -> List[BirthdayEntry]:
        employees = await self.list_employees(company_name)
        return upcoming_birthdays(employees, today or date.today(), days)
