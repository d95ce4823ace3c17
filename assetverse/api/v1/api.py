# assetverse/api/v1/api.py
from fastapi import APIRouter

from assetverse.api.v1.endpoints import assets, requests, assignments, users, companies, payments

api_router_v1 = APIRouter(prefix="/api/v1")

api_router_v1.include_router(assets.router, prefix="/assets")
api_router_v1.include_router(requests.router, prefix="/requests")
api_router_v1.include_router(assignments.router, prefix="/assignments")
api_router_v1.include_router(users.router, prefix="/users")
api_router_v1.include_router(companies.router, prefix="/companies")
api_router_v1.include_router(payments.router, prefix="/payments")
