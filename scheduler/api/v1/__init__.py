"""
API Router

Everything is mounted under /api. Tenant-scoped routes act on the active
organization of the session (or the X-Organization-Id header).
"""

from fastapi import APIRouter

from . import auth, billing, invites, organization, travel
from .resources import crews_router, depots_router, employees_router, vehicles_router

router = APIRouter()

router.include_router(auth.router, tags=["Auth"])
router.include_router(invites.router, prefix="/invites", tags=["Invites"])
router.include_router(organization.router, prefix="/organization", tags=["Organization"])
router.include_router(billing.router, prefix="/stripe", tags=["Billing"])
router.include_router(depots_router, prefix="/depots", tags=["Depots"])
router.include_router(crews_router, prefix="/crews", tags=["Crews"])
router.include_router(employees_router, prefix="/employees", tags=["Employees"])
router.include_router(vehicles_router, prefix="/vehicles", tags=["Vehicles"])
router.include_router(travel.router, prefix="/travel-time", tags=["Travel"])
