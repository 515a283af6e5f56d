"""API v1 main router.

Aggregates all v1 API routers into a single router for inclusion in the app.
"""

from fastapi import APIRouter

from freight_distance.api.v1.directions import router as directions_router
from freight_distance.api.v1.distance import router as distance_router
from freight_distance.api.v1.usage import router as usage_router

router = APIRouter()

# Include sub-routers
router.include_router(distance_router, prefix="/distance", tags=["Distance"])
router.include_router(directions_router, prefix="/directions", tags=["Directions"])
router.include_router(usage_router, prefix="/usage", tags=["Usage"])
