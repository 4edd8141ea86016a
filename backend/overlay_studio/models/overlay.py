import uuid
from datetime import datetime, timezone
from sqlalchemy import Boolean, Column, DateTime, Integer, JSON, String, Text
from sqlalchemy.dialects.postgresql import JSONB
from overlay_studio.core.db import Base

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    # Naive UTC, matching what DateTime columns hand back on every backend
    return datetime.now(timezone.utc).replace(tzinfo=None)


class OverlayRecord(Base):
    """
    One table for every overlay variant, `type` is the discriminator.

    Variant columns stay nullable here; which of them a row must carry is
    decided by the overlay rules before anything is written.
    """

    __tablename__ = "overlays"

    id = Column(String, primary_key=True, default=lambda: str(uuid.uuid4()))
    name = Column(String, nullable=False)
    type = Column(String(16), nullable=False, index=True)

    position = Column(JSONDocument, nullable=False)   # {"x": .., "y": ..}
    size = Column(JSONDocument, nullable=False)       # {"width": .., "height": ..}
    style = Column(JSONDocument, nullable=False)      # variant specific
    z_index = Column(Integer, nullable=False, default=1, index=True)
    visible = Column(Boolean, nullable=False, default=True)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    __mapper_args__ = {"polymorphic_on": type}


class TextOverlayRecord(OverlayRecord):
    content = Column(Text, nullable=True)

    __mapper_args__ = {"polymorphic_identity": "text"}


class ImageOverlayRecord(OverlayRecord):
    image_url = Column(Text, nullable=True)
    alt = Column(String, nullable=True)

    __mapper_args__ = {"polymorphic_identity": "image"}


RECORDS_BY_TYPE: dict[str, type[OverlayRecord]] = {
    "text": TextOverlayRecord,
    "image": ImageOverlayRecord,
}
