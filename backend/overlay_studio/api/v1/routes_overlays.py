from fastapi import APIRouter, Body, Depends
from sqlalchemy.orm import Session
from typing import Any, List

from overlay_studio.core.db import get_db
from overlay_studio.schemas.overlay import DeleteResponse, Overlay
from overlay_studio.services.overlays import (
    create_overlay,
    delete_overlay,
    get_overlay,
    list_overlays,
    update_overlay,
)

router = APIRouter()


@router.get("/overlays", response_model=List[Overlay])
def list_overlays_route(db: Session = Depends(get_db)):
    """
    All overlays, sorted ascending by zIndex (bottom layer first).
    """
    return list_overlays(db)


@router.post("/overlays", response_model=Overlay, status_code=201)
def create_overlay_route(
    payload: Any = Body(...),
    db: Session = Depends(get_db),
):
    """
    Create a text or image overlay.
    Requires:
      - type  (text | image)
      - name
    Everything else falls back to the variant defaults.
    """
    return create_overlay(db, payload)


@router.get("/overlays/{overlay_id}", response_model=Overlay)
def get_overlay_route(overlay_id: str, db: Session = Depends(get_db)):
    return get_overlay(db, overlay_id)


@router.put("/overlays/{overlay_id}", response_model=Overlay)
def update_overlay_route(
    overlay_id: str,
    payload: Any = Body(...),
    db: Session = Depends(get_db),
):
    """
    Partial update. `position`, `size` and `style` merge key by key,
    so `{"style": {"opacity": 0.5}}` leaves the other style fields alone.
    The overlay type cannot be changed.
    """
    return update_overlay(db, overlay_id, payload)


@router.delete("/overlays/{overlay_id}", response_model=DeleteResponse)
def delete_overlay_route(overlay_id: str, db: Session = Depends(get_db)):
    delete_overlay(db, overlay_id)
    return DeleteResponse(message="Overlay deleted successfully")
