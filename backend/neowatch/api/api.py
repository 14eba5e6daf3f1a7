from fastapi import APIRouter
from neowatch.api.endpoints import asteroids, alerts, notifications, watchlist, auth

api_router = APIRouter()

api_router.include_router(asteroids.router, prefix="/asteroids", tags=["asteroids"])
api_router.include_router(alerts.router, prefix="/alerts", tags=["alerts"])
api_router.include_router(notifications.router, prefix="/notifications", tags=["notifications"])
api_router.include_router(watchlist.router, prefix="/watchlist", tags=["watchlist"])
api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
