from fastapi import APIRouter, Body, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from typing import Any

from overlay_studio.core.db import get_db
from overlay_studio.schemas.stream_settings import StreamSettings
from overlay_studio.services.stream_settings import (
    create_settings,
    get_current_settings,
    update_settings,
)

router = APIRouter()


@router.get("/stream-settings", response_model=StreamSettings)
def get_stream_settings_route(db: Session = Depends(get_db)):
    """
    Settings in effect, or the built-in defaults when none were saved yet.
    """
    return get_current_settings(db)


@router.post("/stream-settings", response_model=StreamSettings, status_code=201)
def save_stream_settings_route(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
):
    return create_settings(db, payload)


@router.put("/stream-settings", response_model=StreamSettings)
def update_stream_settings_route(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
):
    """
    Update the settings in effect; creates them (201) when none exist.
    """
    value, created = update_settings(db, payload)
    if created:
        return JSONResponse(status_code=201, content=value.to_wire())
    return value
