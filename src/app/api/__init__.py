from fastapi import APIRouter

from .v1 import relay_router
from .v1 import router as v1_router

# Main API router with /api prefix
router = APIRouter(prefix="/api")
router.include_router(v1_router)

# Root-level routers (no /api prefix)
# Exported separately to be mounted in main.py
# - relay_router: /health, /check, /update, /log, /forward at the paths
#   existing clients already call
