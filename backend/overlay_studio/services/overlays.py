import logging
import uuid
from typing import Any, List

from sqlalchemy.orm import Session

from overlay_studio.core.errors import InvalidIdentifier, NotFound
from overlay_studio.models.overlay import RECORDS_BY_TYPE, OverlayRecord, utcnow
from overlay_studio.schemas.overlay import ImageOverlay, OverlayBase, TextOverlay, overlay_adapter
from overlay_studio.services.overlay_rules import apply_update, validate_and_fill_defaults

logger = logging.getLogger(__name__)


def parse_overlay_id(overlay_id: Any) -> str:
    """Canonical UUID string, or InvalidIdentifier."""
    try:
        return str(uuid.UUID(str(overlay_id)))
    except (TypeError, ValueError):
        raise InvalidIdentifier("Invalid overlay ID format") from None


def record_to_overlay(record: OverlayRecord) -> OverlayBase:
    data: dict[str, Any] = {
        "id": record.id,
        "type": record.type,
        "name": record.name,
        "position": record.position,
        "size": record.size,
        "zIndex": record.z_index,
        "visible": record.visible,
        "style": record.style,
        "createdAt": record.created_at,
        "updatedAt": record.updated_at,
    }
    if record.type == "text":
        data["content"] = record.content
    else:
        data["imageUrl"] = record.image_url
        data["alt"] = record.alt
    return overlay_adapter.validate_python(data)


def _write_fields(record: OverlayRecord, overlay: OverlayBase) -> None:
    record.name = overlay.name
    record.position = overlay.position.to_wire()
    record.size = overlay.size.to_wire()
    record.style = overlay.style.to_wire()
    record.z_index = overlay.z_index
    record.visible = overlay.visible

    if isinstance(overlay, TextOverlay):
        record.content = overlay.content
    elif isinstance(overlay, ImageOverlay):
        record.image_url = overlay.image_url
        record.alt = overlay.alt


def _get_record(db: Session, overlay_id: Any) -> OverlayRecord:
    key = parse_overlay_id(overlay_id)
    record: OverlayRecord | None = db.get(OverlayRecord, key)
    if record is None:
        raise NotFound("Overlay not found")
    return record


def list_overlays(db: Session) -> List[OverlayBase]:
    records = (
        db.query(OverlayRecord)
        .order_by(OverlayRecord.z_index.asc(), OverlayRecord.created_at.asc())
        .all()
    )
    return [record_to_overlay(r) for r in records]


def get_overlay(db: Session, overlay_id: Any) -> OverlayBase:
    return record_to_overlay(_get_record(db, overlay_id))


def create_overlay(db: Session, data: Any) -> OverlayBase:
    # Validation runs before the session sees anything
    overlay = validate_and_fill_defaults(data)

    now = utcnow()
    record = RECORDS_BY_TYPE[overlay.type](
        id=str(uuid.uuid4()),
        created_at=now,
        updated_at=now,
    )
    _write_fields(record, overlay)

    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info("Created %s overlay %s (%r)", record.type, record.id, record.name)
    return record_to_overlay(record)


def update_overlay(db: Session, overlay_id: Any, patch: Any) -> OverlayBase:
    record = _get_record(db, overlay_id)
    updated = apply_update(record_to_overlay(record), patch)

    _write_fields(record, updated)
    record.updated_at = max(utcnow(), record.updated_at)
    db.commit()
    db.refresh(record)

    logger.info("Updated overlay %s", record.id)
    return record_to_overlay(record)


def delete_overlay(db: Session, overlay_id: Any) -> None:
    record = _get_record(db, overlay_id)
    deleted_id = record.id
    db.delete(record)
    db.commit()
    logger.info("Deleted overlay %s", deleted_id)
