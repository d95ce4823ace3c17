# assetverse/models/enum.py
from enum import Enum


class UserRole(str, Enum):
    ADMIN = "admin"
    HR = "hr"
    EMPLOYEE = "employee"


class RequestStatus(str, Enum):
    PENDING = "pending"     # created by employee, waiting for HR
    APPROVED = "approved"
    REJECTED = "rejected"


class AssignmentStatus(str, Enum):
    ASSIGNED = "assigned"
    RETURNED = "returned"
