from fastapi import APIRouter
from overlay_studio.api.v1.routes_overlays import router as overlays_router
from overlay_studio.api.v1.routes_stream_settings import router as stream_settings_router

api_router = APIRouter()
api_router.include_router(overlays_router, prefix="", tags=["overlays"])
api_router.include_router(stream_settings_router, prefix="", tags=["stream-settings"])
