import logging
from typing import Any, Tuple

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from overlay_studio.core.config import get_settings
from overlay_studio.core.errors import InvalidField, MissingField, describe_validation_error
from overlay_studio.models.overlay import utcnow
from overlay_studio.models.stream_settings import StreamSettingsRecord
from overlay_studio.schemas.stream_settings import StreamSettings
from overlay_studio.services.overlay_rules import normalize_keys

logger = logging.getLogger(__name__)
settings = get_settings()

NEW_SETTINGS_DEFAULTS: dict[str, Any] = {
    "name": "Stream",
    "autoPlay": True,
    "showControls": True,
    "defaultVolume": 0.5,
}


def default_stream_settings() -> StreamSettings:
    """What viewers get before anyone has saved settings."""
    return StreamSettings(
        rtsp_url=settings.DEFAULT_RTSP_URL,
        name="Default Stream",
        auto_play=True,
        show_controls=True,
        default_volume=0.5,
    )


def _require_rtsp_url(data: Any) -> dict[str, Any]:
    if not isinstance(data, dict):
        raise InvalidField("Stream settings must be a JSON object")
    data = normalize_keys(data)
    if not data.get("rtspUrl"):
        raise MissingField("Missing required field: rtspUrl")
    # Server-managed
    data.pop("id", None)
    data.pop("lastUpdated", None)
    return data


def _validate(data: dict[str, Any]) -> StreamSettings:
    try:
        return StreamSettings.model_validate(data)
    except PydanticValidationError as exc:
        raise InvalidField(describe_validation_error(exc, "stream settings")) from exc


def _to_schema(record: StreamSettingsRecord) -> StreamSettings:
    return StreamSettings(
        id=record.id,
        rtsp_url=record.rtsp_url,
        name=record.name,
        description=record.description,
        auto_play=record.auto_play,
        show_controls=record.show_controls,
        default_volume=record.default_volume,
        last_updated=record.last_updated,
    )


def _write_fields(record: StreamSettingsRecord, value: StreamSettings) -> None:
    record.rtsp_url = value.rtsp_url
    record.name = value.name
    record.description = value.description
    record.auto_play = value.auto_play
    record.show_controls = value.show_controls
    record.default_volume = value.default_volume
    record.last_updated = utcnow()


def _latest(db: Session) -> StreamSettingsRecord | None:
    return (
        db.query(StreamSettingsRecord)
        .order_by(StreamSettingsRecord.last_updated.desc())
        .first()
    )


def get_current_settings(db: Session) -> StreamSettings:
    record = _latest(db)
    if record is None:
        return default_stream_settings()
    return _to_schema(record)


def create_settings(db: Session, data: Any) -> StreamSettings:
    data = _require_rtsp_url(data)
    provided = {k: v for k, v in data.items() if v is not None}
    value = _validate({**NEW_SETTINGS_DEFAULTS, **provided})

    record = StreamSettingsRecord()
    _write_fields(record, value)
    db.add(record)
    db.commit()
    db.refresh(record)

    logger.info("Saved stream settings %s (%s)", record.id, record.rtsp_url)
    return _to_schema(record)


def update_settings(db: Session, data: Any) -> Tuple[StreamSettings, bool]:
    """Update the settings in effect. Returns (settings, created)."""
    data = _require_rtsp_url(data)
    record = _latest(db)
    if record is None:
        return create_settings(db, data), True

    value = _validate({**_to_schema(record).to_wire(), **data})
    _write_fields(record, value)
    db.commit()
    db.refresh(record)

    logger.info("Updated stream settings %s", record.id)
    return _to_schema(record), False
