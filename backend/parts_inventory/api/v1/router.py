"""Aggregate all v1 sub-routers."""

from fastapi import APIRouter

from parts_inventory.api.v1.admin import router as admin_router
from parts_inventory.api.v1.auth import router as auth_router
from parts_inventory.api.v1.categories import router as categories_router
from parts_inventory.api.v1.health import router as health_router
from parts_inventory.api.v1.parts import router as parts_router
from parts_inventory.api.v1.transfer import router as transfer_router

api_v1_router = APIRouter()

api_v1_router.include_router(health_router, tags=["health"])
api_v1_router.include_router(auth_router, prefix="/auth", tags=["auth"])
api_v1_router.include_router(parts_router, prefix="/parts", tags=["parts"])
api_v1_router.include_router(categories_router, prefix="/categories", tags=["categories"])
api_v1_router.include_router(transfer_router, prefix="/transfer", tags=["transfer"])
api_v1_router.include_router(admin_router, prefix="/admin", tags=["admin"])
