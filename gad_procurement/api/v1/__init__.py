# API v1 routes
from fastapi import APIRouter

from gad_procurement.api.v1 import permissions

router = APIRouter()

router.include_router(permissions.router, prefix="/permissions", tags=["permissions"])
